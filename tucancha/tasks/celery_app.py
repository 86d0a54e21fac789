from datetime import timedelta

from celery import Celery

from tucancha.core.config import settings

celery_app = Celery(
    "tucancha",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["tucancha.tasks.notifications", "tucancha.tasks.reminders", "tucancha.tasks.completions"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.app_timezone,
    enable_utc=True,
    task_ignore_result=True,
    broker_connection_timeout=2,
    beat_schedule={
        "complete-finished-bookings": {
            "task": "bookings.complete_finished",
            "schedule": timedelta(minutes=settings.celery_completion_interval_minutes),
        },
        "send-booking-reminders": {
            "task": "bookings.send_reminders",
            "schedule": timedelta(minutes=settings.celery_reminder_interval_minutes),
        },
    },
)
