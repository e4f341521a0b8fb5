"""
Celery task for the daily adherence batch.

Scheduled by the `adherence-daily` beat entry. The batch stops between
clients once its time budget is spent, leaving headroom under the soft time
limit; the clients it skipped are picked up on the next run.
"""
from typing import Dict, Optional
import logging
import time

from celery import Task
from sqlalchemy.orm import Session

from core.config import settings
from core.database import get_db_sync
from services.adherence_batch import AdherenceConfig, run_daily
from services.date_utils import utcnow
from tasks import celery_app

logger = logging.getLogger(__name__)

# Stop picking up new clients after this long (soft limit is 25 minutes)
DEFAULT_MAX_RUNTIME_S = 20 * 60


@celery_app.task(name="tasks.run_daily_adherence", bind=True)
def run_daily_adherence_task(self: Task, max_runtime_s: Optional[int] = None) -> Dict:
    """
    Run the adherence batch for all active clients.

    Returns:
        Batch totals plus the task status
    """
    deadline = time.monotonic() + (max_runtime_s or DEFAULT_MAX_RUNTIME_S)
    db: Session = get_db_sync()

    try:
        summary = run_daily(
            db,
            now=utcnow(),
            config=AdherenceConfig.from_settings(settings),
            should_stop=lambda: time.monotonic() >= deadline,
        )
        return {"status": "success", "task_id": str(self.request.id), **summary.totals()}
    except Exception as e:
        logger.error(f"Daily adherence task failed: {e}")
        raise
    finally:
        db.close()
