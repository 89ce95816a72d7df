from __future__ import annotations

import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST
from pydantic import BaseModel

from lecture_ai.api.admin import router as admin_router
from lecture_ai.api.artifacts import quizzes_router, summaries_router
from lecture_ai.api.cumulative_quizzes import router as cumulative_router
from lecture_ai.api.deps import get_container
from lecture_ai.api.errors import register_error_handlers
from lecture_ai.api.queue import router as queue_router
from lecture_ai.api.transcripts import router as transcripts_router
from lecture_ai.core.config import get_settings
from lecture_ai.core.container import Container, build_container
from lecture_ai.core.errors import StoreError
from lecture_ai.core.logging import setup_logging

VERSION = "0.1.0"


class HealthResponse(BaseModel):
    ok: bool
    service: str
    version: str
    db_ok: bool
    generator_configured: bool


def create_app(container: Container | None = None) -> FastAPI:
    """
    Pass a prebuilt container to run against test fixtures; otherwise one is
    built from the environment when the app starts.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        c = container or build_container(get_settings())
        setup_logging(c.settings.log_level)
        if c.executor is not None:
            from lecture_ai.worker.generate_tasks import bind_container

            bind_container(c)
        app.state.container = c
        c.start()
        try:
            yield
        finally:
            c.close()

    app = FastAPI(title="Lecture AI API", version=VERSION, lifespan=lifespan)
    register_error_handlers(app)

    @app.middleware("http")
    async def record_request_metrics(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        c = getattr(request.app.state, "container", None)
        if c is not None:
            # route template keeps label cardinality bounded
            route = request.scope.get("route")
            c.metrics.record(
                endpoint=getattr(route, "path", request.url.path),
                method=request.method,
                status_code=response.status_code,
                response_time_ms=(time.perf_counter() - started) * 1000,
                cached=response.headers.get("X-Cache-Hit") == "true",
            )
        return response

    app.include_router(transcripts_router)
    app.include_router(summaries_router)
    app.include_router(quizzes_router)
    app.include_router(cumulative_router)
    app.include_router(queue_router)
    app.include_router(admin_router)

    @app.get("/health", response_model=HealthResponse)
    def health(c: Container = Depends(get_container)) -> HealthResponse:
        # lightweight DB check
        try:
            db_ok = c.store.ping()
        except StoreError:
            db_ok = False
        return HealthResponse(
            ok=True,
            service="api",
            version=app.version,
            db_ok=db_ok,
            generator_configured=bool(getattr(c.generator, "configured", True)),
        )

    @app.get("/metrics", include_in_schema=False)
    def prometheus_metrics(c: Container = Depends(get_container)) -> Response:
        return Response(c.metrics.exposition(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/status")
    def status(c: Container = Depends(get_container)) -> dict:
        return {
            "ok": True,
            "version": app.version,
            "env": c.settings.env,
            "features": c.flags.snapshot(),
            "generator": {"provider": c.generator.name, "default_model": getattr(c.generator, "default_model", None)},
            "queue_available": c.executor is not None,
            "cache": c.cache.stats(),
            "requests": c.metrics.stats(),
        }

    return app


app = create_app()
