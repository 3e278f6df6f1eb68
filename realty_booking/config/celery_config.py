"""Celery application setup"""
from celery import Celery

from realty_booking.config.settings import get_settings

settings = get_settings()


def create_celery_app() -> Celery:
    """Create and configure the Celery application"""
    app = Celery(
        "realty_booking",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
        include=["realty_booking.tasks.calendar_tasks"],
    )

    app.conf.update(
        task_serializer=settings.CELERY_TASK_SERIALIZER,
        result_serializer="json",
        accept_content=["json"],
        timezone="UTC",
        enable_utc=True,
        task_acks_late=True,
        worker_prefetch_multiplier=1,
        beat_schedule={
            "sync-linked-bookings": {
                "task": "realty_booking.tasks.calendar_tasks.sync_linked_bookings",
                "schedule": 15 * 60.0,  # every 15 minutes
            },
        },
    )

    return app


celery_app = create_celery_app()
