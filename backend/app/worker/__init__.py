from celery import Celery
from celery.schedules import crontab

from app.config import settings

celery_app = Celery(
    "feederflow",
    broker=settings.redis_url,
    backend=settings.redis_url,
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    task_track_started=True,
    result_expires=86400,
    include=["app.worker.tasks"],
    beat_schedule={
        "daily-feeder-report": {
            "task": "send_daily_report",
            "schedule": crontab(hour=settings.daily_report_hour_utc, minute=0),
        },
    },
)

celery_app.autodiscover_tasks(["app.worker"])
