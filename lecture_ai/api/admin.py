from __future__ import annotations

from fastapi import APIRouter, Depends

from lecture_ai.api.deps import get_container
from lecture_ai.core.container import Container
from lecture_ai.core.errors import ValidationError

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/config")
def get_config(c: Container = Depends(get_container)) -> dict:
    return {
        "ok": True,
        "features": c.flags.snapshot(),
        "generator": {
            "provider": c.generator.name,
            "default_model": getattr(c.generator, "default_model", None),
            "configured": bool(getattr(c.generator, "configured", True)),
        },
        "cache": {
            "ttl_seconds": c.settings.cache_ttl_seconds,
            "cumulative_ttl_seconds": c.settings.cumulative_cache_ttl_seconds,
        },
        "queue_available": c.executor is not None,
    }


@router.get("/metrics")
def get_metrics(c: Container = Depends(get_container)) -> dict:
    return {
        "ok": True,
        "requests": c.metrics.stats(),
        "recent_errors": c.metrics.recent_errors(limit=10),
        "cache": c.cache.stats(),
    }


@router.delete("/{kind}/all")
def delete_all(kind: str, c: Container = Depends(get_container)) -> dict:
    if kind == "transcripts":
        deleted = c.transcripts.delete_all()
    elif kind == "summaries":
        deleted = c.summaries.delete_all()
    elif kind == "quizzes":
        deleted = c.quizzes.delete_all()
    elif kind == "cumulative-quizzes":
        deleted = c.composer.delete_all()
    else:
        raise ValidationError(f"Unknown artifact collection: {kind!r}", kind=kind)
    return {"ok": True, "kind": kind, "deleted": deleted}
