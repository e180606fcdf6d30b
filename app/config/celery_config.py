# app/config/celery_config.py
"""Celery application factory and beat schedule"""
from celery import Celery
from celery.schedules import crontab

from app.config.settings import get_settings

settings = get_settings()


def create_celery_app() -> Celery:
    """Create and configure the Celery app used by the worker and the API"""
    app = Celery(
        "booking_engine",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
        include=["app.tasks.booking_tasks"],
    )

    app.conf.update(
        task_serializer=settings.CELERY_TASK_SERIALIZER,
        result_serializer="json",
        accept_content=["json"],
        timezone="UTC",
        enable_utc=True,
        task_acks_late=True,
        worker_prefetch_multiplier=1,
        result_expires=3600,
    )

    app.conf.beat_schedule = {
        "expire-lapsed-proposals": {
            "task": "app.tasks.booking_tasks.expire_lapsed_proposals",
            "schedule": crontab(minute="*/15"),
        },
    }

    return app


celery_app = create_celery_app()
