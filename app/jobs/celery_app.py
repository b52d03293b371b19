"""Celery application configuration"""

from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging

from app.config import settings
from app.logging_config import configure_logging

# Create Celery app
celery_app = Celery(
    "kitchen_booking",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "app.jobs.tasks",
    ],
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=300,  # 5 minutes
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    # Beat schedule for periodic tasks
    beat_schedule={
        "detect-storage-overstays": {
            "task": "detect_storage_overstays",
            "schedule": crontab(hour=2, minute=0),  # Daily
        },
        "release-unpaid-bookings": {
            "task": "release_unpaid_bookings",
            "schedule": 300.0,  # Every 5 minutes
        },
    },
)


@setup_logging.connect
def _configure_worker_logging(**kwargs):
    configure_logging()
