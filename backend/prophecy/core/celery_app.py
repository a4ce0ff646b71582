from celery import Celery

from prophecy.core.config import settings

celery_app = Celery(
    "prophecy",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["prophecy.tasks.analytics_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    beat_schedule={
        "recalibrate-active-users": {
            "task": "analytics.recalibrate_active_users",
            "schedule": float(settings.RECALIBRATION_INTERVAL),
        },
    },
)
