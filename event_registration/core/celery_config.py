from celery import Celery

from event_registration.core.config import get_settings


def make_celery(app_name: str = "event_registration") -> Celery:
    """Celery app for post-commit notifications.

    The tasks are fire-and-forget, so there is no result backend.
    """
    settings = get_settings()
    celery = Celery(app_name, broker=settings.redis_url, include=["event_registration.tasks"])
    celery.conf.update(
        task_serializer="json",
        accept_content=["json"],
        task_ignore_result=True,
        task_always_eager=settings.celery_task_always_eager,
    )
    return celery


celery_app = make_celery()
