"""
Cron trigger endpoints.

An external scheduler calls these with `Authorization: Bearer <CRON_SECRET>`.
The Celery beat entry runs the same batch in-process; either path is safe
to run more than once a day.
"""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from core.config import settings
from core.database import get_db
from core.security import require_cron_secret
from schemas import CronRunResponse
from services.adherence_batch import AdherenceConfig, run_daily
from services.date_utils import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/v1/cron",
    tags=["Cron"],
    dependencies=[Depends(require_cron_secret)],
)


@router.api_route("/adherence", methods=["GET", "POST"], response_model=CronRunResponse)
def run_adherence(db: Session = Depends(get_db)):
    """
    Run the daily adherence batch now.

    Synchronous on purpose: FastAPI runs plain def handlers in its threadpool.
    """
    now = utcnow()
    try:
        summary = run_daily(db, now=now, config=AdherenceConfig.from_settings(settings))
    except Exception as e:
        logger.error(f"Adherence cron run failed: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": "Cron job failed", "details": str(e)},
        )

    return {
        "message": "Cron job completed successfully",
        "timestamp": now,
        "results": summary.to_dict(),
    }
