from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from lecture_ai.services.artifacts import ArtifactResult, Provenance
from lecture_ai.services.cumulative_quiz import CumulativeResult


class GenerateRequest(BaseModel):
    language: str | None = None
    force_regenerate: bool = False


class TranscriptUploadRequest(BaseModel):
    subject_id: str
    language: str | None = None
    content: str = Field(min_length=1)
    source: str = "manual_upload"


def _iso(dt) -> str | None:
    return dt.isoformat() if dt else None


def _provenance_fields(provenance: Provenance) -> dict[str, Any]:
    return {
        "cached": provenance is Provenance.CACHED,
        "from_store": provenance is Provenance.FROM_STORE,
        "provenance": provenance.value,
    }


def artifact_response(result: ArtifactResult, payload_field: str) -> dict[str, Any]:
    a = result.artifact
    return {
        "ok": True,
        "subject_id": a.subject_id,
        "language": a.language,
        payload_field: a.payload,
        "model": a.model,
        "processing_time_ms": a.processing_time_ms,
        "tokens_used": result.tokens_used,
        "moderation": a.moderation,
        "created_at": _iso(a.created_at),
        "updated_at": _iso(a.updated_at),
        **_provenance_fields(result.provenance),
    }


def cumulative_response(result: CumulativeResult) -> dict[str, Any]:
    q = result.quiz
    return {
        "ok": True,
        "subject_id": q.subject_id,
        "series_id": q.series_id,
        "language": q.language,
        "model": q.model,
        "quiz": {"questions": q.questions},
        "included_subject_ids": q.included_subject_ids,
        "subject_count": q.subject_count,
        "question_count": len(q.questions),
        "processing_time_ms": q.processing_time_ms,
        "moderation": q.moderation,
        "created_at": _iso(q.created_at),
        "updated_at": _iso(q.updated_at),
        **_provenance_fields(result.provenance),
    }
