from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from lecture_ai.api.deps import get_container
from lecture_ai.core.container import Container
from lecture_ai.core.language import normalize_language, normalize_subject_id
from lecture_ai.schemas.artifacts import TranscriptUploadRequest

router = APIRouter(prefix="/api/transcripts", tags=["transcripts"])


@router.post("/upload")
def upload_transcript(req: TranscriptUploadRequest, c: Container = Depends(get_container)) -> dict:
    chars = c.transcripts.upload(req.subject_id, req.language, req.content, source=req.source)
    return {
        "ok": True,
        "subject_id": normalize_subject_id(req.subject_id),
        "language": normalize_language(req.language),
        "chars": chars,
        "source": req.source,
    }


@router.get("/{subject_id}")
def get_transcript(
    subject_id: str,
    response: Response,
    language: str | None = None,
    c: Container = Depends(get_container),
) -> dict:
    content, cached = c.transcripts.get(subject_id, language)
    response.headers["X-Cache-Hit"] = "true" if cached else "false"
    return {
        "ok": True,
        "subject_id": normalize_subject_id(subject_id),
        "language": normalize_language(language),
        "content": content,
        "cached": cached,
    }


@router.delete("/{subject_id}")
def delete_transcript(subject_id: str, language: str | None = None, c: Container = Depends(get_container)) -> dict:
    deleted = c.transcripts.delete(subject_id, language)
    return {"ok": True, "deleted": deleted, "subject_id": subject_id, "language": language}
