from __future__ import annotations

from celery import Celery

from app.core.config import get_settings

VOUCHER_TASKS_MODULE = "app.workers.tasks.voucher_generation"


def create_celery_app() -> Celery:
    settings = get_settings()
    app = Celery(
        "promo_redemption",
        broker=settings.celery_broker_url,
        backend=settings.celery_result_backend,
        include=[VOUCHER_TASKS_MODULE],
    )
    app.conf.update(
        task_default_queue=settings.celery_default_queue,
        task_routes={f"{VOUCHER_TASKS_MODULE}.*": {"queue": settings.celery_default_queue}},
        task_acks_late=True,
        task_reject_on_worker_lost=True,
        worker_prefetch_multiplier=1,
        task_serializer="json",
        result_serializer="json",
        accept_content=["json"],
        result_expires=3600,
        broker_connection_retry_on_startup=True,
        timezone="UTC",
        enable_utc=True,
    )
    return app


celery_app = create_celery_app()


@celery_app.task(name="app.workers.celery_app.ping")
def ping() -> str:
    return "pong"
