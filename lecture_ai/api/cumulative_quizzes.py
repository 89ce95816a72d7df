from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from lecture_ai.api.deps import get_container
from lecture_ai.core.container import Container
from lecture_ai.schemas.artifacts import GenerateRequest, cumulative_response

router = APIRouter(prefix="/api/cumulative-quizzes", tags=["cumulative_quizzes"])


@router.post("/generate/{subject_id}")
def generate_cumulative_quiz(
    subject_id: str,
    req: GenerateRequest,
    response: Response,
    c: Container = Depends(get_container),
) -> dict:
    result = c.composer.generate(subject_id, req.language, force_regenerate=req.force_regenerate)
    response.headers["X-Cache-Hit"] = "true" if result.cached else "false"
    return cumulative_response(result)


# declared before /{subject_id} so "stats" is not taken for an id
@router.get("/stats")
def cumulative_quiz_stats(c: Container = Depends(get_container)) -> dict:
    return {"ok": True, "stats": c.composer.stats()}


@router.get("/{subject_id}")
def get_cumulative_quiz(
    subject_id: str,
    response: Response,
    language: str | None = None,
    c: Container = Depends(get_container),
) -> dict:
    result = c.composer.get(subject_id, language)
    response.headers["X-Cache-Hit"] = "true" if result.cached else "false"
    return cumulative_response(result)


@router.delete("/{subject_id}")
def delete_cumulative_quiz(subject_id: str, language: str | None = None, c: Container = Depends(get_container)) -> dict:
    deleted = c.composer.delete(subject_id, language)
    return {"ok": True, "deleted": deleted, "subject_id": subject_id, "language": language}
