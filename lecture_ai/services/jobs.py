from __future__ import annotations

import json
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from lecture_ai.models.job import Job

JOB_STATUSES = ("queued", "running", "done", "failed")


def create_job(db: Session, job_type: str, payload: dict) -> Job:
    job = Job(
        job_type=job_type,
        status="queued",
        payload_json=json.dumps(payload or {}, ensure_ascii=False),
    )
    db.add(job)
    db.commit()
    db.refresh(job)
    return job


def get_job(db: Session, job_id: int) -> Job | None:
    return db.query(Job).filter(Job.id == job_id).first()


def set_job_status(db: Session, job_id: int, status: str, error: str | None = None) -> Job:
    if status not in JOB_STATUSES:
        raise ValueError(f"Unknown job status: {status}")
    job = db.query(Job).filter(Job.id == job_id).one()
    job.status = status
    job.error = error
    db.commit()
    db.refresh(job)
    return job


def set_job_task_id(db: Session, job_id: int, task_id: str) -> Job:
    job = db.query(Job).filter(Job.id == job_id).one()
    job.task_id = task_id
    db.commit()
    db.refresh(job)
    return job


def get_job_payload(job: Job) -> dict[str, Any]:
    try:
        data = json.loads(job.payload_json or "{}")
    except json.JSONDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def merge_job_payload(db: Session, job_id: int, patch: dict[str, Any]) -> Job:
    """
    Merge a patch into payload_json.
    - Keeps existing keys
    - Overwrites keys present in patch
    """
    job = db.query(Job).filter(Job.id == job_id).one()
    base = get_job_payload(job)
    for k, v in (patch or {}).items():
        base[k] = v

    job.payload_json = json.dumps(base, ensure_ascii=False)
    db.commit()
    db.refresh(job)
    return job


def count_jobs_by_status(db: Session, job_type: str) -> dict[str, int]:
    rows = (
        db.query(Job.status, func.count(Job.id))
        .filter(Job.job_type == job_type)
        .group_by(Job.status)
        .all()
    )
    counts = {s: 0 for s in JOB_STATUSES}
    for status, n in rows:
        counts[status] = int(n)
    return counts
