"""
Optional deferred execution on Celery.

The executor is detected once at startup. When the broker cannot be reached
(or QUEUE_ENABLED=0) callers get ``None`` and the queue endpoints answer 503.
"""
from __future__ import annotations

from typing import Any

import redis
import structlog
from sqlalchemy.orm import Session, sessionmaker

from lecture_ai.core.config import Settings, is_test_env
from lecture_ai.core.errors import QueueUnavailable, ValidationError
from lecture_ai.core.language import normalize_language, normalize_subject_id
from lecture_ai.db.session import session_scope
from lecture_ai.services.jobs import count_jobs_by_status, create_job, set_job_status, set_job_task_id

log = structlog.get_logger(__name__)

QUEUE_KINDS = ("summary", "quiz")

# jobs.status -> queue stats bucket
_STATUS_BUCKETS = {"queued": "waiting", "running": "active", "done": "completed", "failed": "failed"}


class DeferredExecutor:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def submit(self, kind: str, payload: dict[str, Any]) -> int:
        """Record a job row and hand it to the worker. Returns the job id."""
        if kind not in QUEUE_KINDS:
            raise ValidationError(f"Unknown job kind: {kind!r}", kind=kind)
        sid = normalize_subject_id(payload.get("subject_id"))
        lang = normalize_language(payload.get("language"))
        force = bool(payload.get("force_regenerate", False))

        with session_scope(self._session_factory) as db:
            job = create_job(db, kind, {"subject_id": sid, "language": lang, "force_regenerate": force})
            job_id = job.id

        # local import: tasks build a Container, which builds this executor
        from lecture_ai.worker.generate_tasks import KIND_TO_TASK

        try:
            async_result = KIND_TO_TASK[kind].apply_async(
                kwargs={"job_id": job_id, "subject_id": sid, "language": lang, "force_regenerate": force}
            )
        except Exception as e:
            # broker went away after startup; do not leave the row queued
            with session_scope(self._session_factory) as db:
                set_job_status(db, job_id, "failed", error=f"dispatch failed: {e}")
            log.warning("job_dispatch_failed", job_id=job_id, kind=kind, error=str(e))
            raise QueueUnavailable(
                "Queue is unavailable", kind=kind, subject_id=sid, language=lang
            ) from e
        with session_scope(self._session_factory) as db:
            set_job_task_id(db, job_id, async_result.id)

        log.info("job_submitted", job_id=job_id, kind=kind, subject_id=sid, language=lang)
        return job_id

    def get_stats(self) -> dict[str, dict[str, int]]:
        out: dict[str, dict[str, int]] = {}
        with session_scope(self._session_factory) as db:
            for kind in QUEUE_KINDS:
                counts = count_jobs_by_status(db, kind)
                out[kind] = {bucket: counts.get(status, 0) for status, bucket in _STATUS_BUCKETS.items()}
        return out


def broker_reachable(url: str, timeout_sec: float = 2.0) -> bool:
    if not url.startswith(("redis://", "rediss://")):
        return False
    try:
        client = redis.Redis.from_url(url, socket_connect_timeout=timeout_sec, socket_timeout=timeout_sec)
        return bool(client.ping())
    except redis.exceptions.RedisError as e:
        log.warning("queue_broker_unreachable", url=url, error=str(e))
        return False


def detect_queue(settings: Settings, session_factory: sessionmaker[Session]) -> DeferredExecutor | None:
    if not settings.queue_enabled:
        log.info("queue_disabled")
        return None
    # tasks run eagerly in tests; no broker needed
    if is_test_env() or broker_reachable(settings.celery_broker_url):
        log.info("queue_available")
        return DeferredExecutor(session_factory)
    log.warning("queue_unavailable_degraded_mode")
    return None
