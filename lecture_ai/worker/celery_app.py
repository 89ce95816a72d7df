from celery import Celery

from lecture_ai.core.config import get_settings, is_test_env

settings = get_settings()

# IMPORTANT: the variable name MUST be `celery_app`
celery_app = Celery(
    "lecture_ai",
    broker=settings.celery_broker_url,
    backend=settings.result_backend,
)

# Ensure tasks are discovered
celery_app.autodiscover_tasks(["lecture_ai.worker"], related_name="generate_tasks")

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    task_track_started=True,
    result_extended=True,
    enable_utc=True,
    timezone="UTC",
)

# ENV=test: run tasks inline so API tests see finished jobs without a broker
if is_test_env():
    celery_app.conf.update(
        task_always_eager=True,
        task_eager_propagates=False,
        task_store_eager_result=False,
        broker_url="memory://",
        result_backend="cache+memory://",
    )

__all__ = ["celery_app"]
