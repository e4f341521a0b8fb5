"""
Celery Beat Schedule Configuration

Defines periodic tasks that run on a schedule.
"""

from celery.schedules import crontab
from core.config import settings

# Schedule configuration
beat_schedule = {
    # Daily adherence batch: missed workouts, streaks, personal records.
    # Safe to re-run the same day; the cron endpoint runs the same engine.
    'adherence-daily': {
        'task': 'tasks.run_daily_adherence',
        'schedule': crontab(hour=settings.ADHERENCE_RUN_HOUR_UTC, minute=0),
    },
}
