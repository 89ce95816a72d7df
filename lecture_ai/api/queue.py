from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from lecture_ai.api.deps import get_container
from lecture_ai.core.container import Container
from lecture_ai.core.errors import NotFound, QueueUnavailable
from lecture_ai.schemas.artifacts import GenerateRequest
from lecture_ai.services.jobs import get_job, get_job_payload
from lecture_ai.services.queue import DeferredExecutor

router = APIRouter(tags=["queue"])


def _executor(c: Container) -> DeferredExecutor:
    if c.executor is None:
        raise QueueUnavailable("Queue is unavailable; generate synchronously instead")
    return c.executor


class QueueSubmitResponse(BaseModel):
    ok: bool
    job_id: int
    kind: str
    subject_id: str
    language: str | None


@router.post("/api/queue/{kind}/{subject_id}", response_model=QueueSubmitResponse)
def submit_job(
    kind: str,
    subject_id: str,
    req: GenerateRequest,
    c: Container = Depends(get_container),
) -> QueueSubmitResponse:
    job_id = _executor(c).submit(
        kind,
        {"subject_id": subject_id, "language": req.language, "force_regenerate": req.force_regenerate},
    )
    return QueueSubmitResponse(ok=True, job_id=job_id, kind=kind, subject_id=subject_id, language=req.language)


@router.get("/api/queue/stats")
def queue_stats(c: Container = Depends(get_container)) -> dict:
    return {"ok": True, "stats": _executor(c).get_stats()}


class JobGetResponse(BaseModel):
    ok: bool
    job_id: int
    job_type: str
    status: str
    error: str | None
    task_id: str | None
    payload: dict


@router.get("/api/jobs/{job_id}", response_model=JobGetResponse)
def read_job(job_id: int, c: Container = Depends(get_container)) -> JobGetResponse:
    with c.session() as db:
        job = get_job(db, job_id)
        if job is None:
            raise NotFound(f"Job {job_id} not found", kind="job")
        return JobGetResponse(
            ok=True,
            job_id=job.id,
            job_type=job.job_type,
            status=job.status,
            error=job.error,
            task_id=job.task_id,
            payload=get_job_payload(job),
        )
