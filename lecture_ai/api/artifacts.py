from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from lecture_ai.api.deps import get_container
from lecture_ai.core.container import Container
from lecture_ai.schemas.artifacts import GenerateRequest, artifact_response


def build_artifact_router(kind: str, prefix: str, payload_field: str) -> APIRouter:
    """Generate / read / delete routes for one per-video artifact kind."""
    router = APIRouter(prefix=prefix, tags=[prefix.strip("/").split("/")[-1]])

    @router.post("/generate/{subject_id}")
    def generate(
        subject_id: str,
        req: GenerateRequest,
        response: Response,
        c: Container = Depends(get_container),
    ) -> dict:
        result = c.services[kind].get_or_generate(subject_id, req.language, force_regenerate=req.force_regenerate)
        response.headers["X-Cache-Hit"] = "true" if result.cached else "false"
        return artifact_response(result, payload_field)

    @router.get("/{subject_id}")
    def read(
        subject_id: str,
        response: Response,
        language: str | None = None,
        c: Container = Depends(get_container),
    ) -> dict:
        result = c.services[kind].get(subject_id, language)
        response.headers["X-Cache-Hit"] = "true" if result.cached else "false"
        return artifact_response(result, payload_field)

    @router.delete("/{subject_id}")
    def remove(subject_id: str, language: str | None = None, c: Container = Depends(get_container)) -> dict:
        deleted = c.services[kind].delete(subject_id, language)
        return {"ok": True, "deleted": deleted, "subject_id": subject_id, "language": language}

    return router


summaries_router = build_artifact_router("summary", "/api/summaries", "summary")
quizzes_router = build_artifact_router("quiz", "/api/quizzes", "quiz")
