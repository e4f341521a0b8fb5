"""
Celery worker entry point.

Runs the adherence batch and any other task registered in the API's
`tasks` package. Start with:

    celery -A main worker --beat --loglevel=info
"""
import os
import sys
from pathlib import Path

# Container mounts the API at /api; a checkout has it next to this directory.
API_DIR = os.environ.get("API_DIR") or ("/api" if os.path.isdir("/api") else str(Path(__file__).resolve().parents[1] / "api"))
sys.path.insert(0, API_DIR)

from core.config import settings  # noqa: E402
from core.database import check_db_connection  # noqa: E402
from core.logging import setup_logging  # noqa: E402
from tasks import celery_app  # noqa: E402

setup_logging()

celery_app.autodiscover_tasks(['tasks'])


@celery_app.task(name="worker.health_check")
def health_check():
    """Liveness plus the inputs the daily batch depends on."""
    return {
        "status": "ok",
        "database": check_db_connection(),
        "adherence_run_hour_utc": settings.ADHERENCE_RUN_HOUR_UTC,
    }
