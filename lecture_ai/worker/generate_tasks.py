from __future__ import annotations

from typing import Any

import structlog
from celery.signals import worker_process_init

from lecture_ai.core.config import get_settings
from lecture_ai.core.container import Container, build_container
from lecture_ai.core.errors import GenerationError, ServiceError
from lecture_ai.services.jobs import merge_job_payload, set_job_status
from lecture_ai.worker.celery_app import celery_app

log = structlog.get_logger(__name__)

_container: Container | None = None


def bind_container(container: Container | None) -> None:
    """Share an already-built container (API process running tasks eagerly)."""
    global _container
    _container = container


def _get_container() -> Container:
    global _container
    if _container is None:
        _container = build_container(get_settings())
    return _container


@worker_process_init.connect
def _init_worker(**_: Any) -> None:
    bind_container(build_container(get_settings()))


def _run(task, kind: str, job_id: int, subject_id: str, language: str, force_regenerate: bool) -> dict:
    c = _get_container()
    service = c.services[kind]

    with c.session() as db:
        set_job_status(db, job_id, "running")
        merge_job_payload(db, job_id, {"attempt": task.request.retries + 1, "progress": {"stage": "generate"}})

    try:
        result = service.get_or_generate(subject_id, language, force_regenerate=force_regenerate)
    except GenerationError as e:
        final = task.request.retries >= task.max_retries
        with c.session() as db:
            merge_job_payload(db, job_id, {"progress": {"stage": "failed" if final else "retrying"}, "error": e.message})
            set_job_status(db, job_id, "failed" if final else "queued", error=e.message)
        log.warning("job_generation_failed", job_id=job_id, kind=kind, retries=task.request.retries, final=final)
        raise
    except ServiceError as e:
        # not retriable: bad input, missing transcript, feature off
        with c.session() as db:
            merge_job_payload(db, job_id, {"progress": {"stage": "failed"}, "error": e.message})
            set_job_status(db, job_id, "failed", error=e.message)
        raise
    except Exception as e:
        with c.session() as db:
            merge_job_payload(db, job_id, {"progress": {"stage": "failed"}, "error": str(e)})
            set_job_status(db, job_id, "failed", error=str(e))
        log.exception("job_failed", job_id=job_id, kind=kind)
        raise

    out = {
        "ok": True,
        "job_id": job_id,
        "kind": kind,
        "subject_id": result.artifact.subject_id,
        "language": result.artifact.language,
        "provenance": result.provenance.value,
    }
    with c.session() as db:
        merge_job_payload(db, job_id, {"progress": {"stage": "done"}, "result": out})
        set_job_status(db, job_id, "done", error=None)
    return out


@celery_app.task(
    bind=True,
    name="artifacts.generate_summary",
    autoretry_for=(GenerationError,),
    retry_backoff=True,
    retry_backoff_max=60,
    max_retries=3,
)
def generate_summary(self, job_id: int, subject_id: str, language: str, force_regenerate: bool = False) -> dict:
    return _run(self, "summary", job_id, subject_id, language, force_regenerate)


@celery_app.task(
    bind=True,
    name="artifacts.generate_quiz",
    autoretry_for=(GenerationError,),
    retry_backoff=True,
    retry_backoff_max=60,
    max_retries=3,
)
def generate_quiz(self, job_id: int, subject_id: str, language: str, force_regenerate: bool = False) -> dict:
    return _run(self, "quiz", job_id, subject_id, language, force_regenerate)


KIND_TO_TASK = {
    "summary": generate_summary,
    "quiz": generate_quiz,
}
