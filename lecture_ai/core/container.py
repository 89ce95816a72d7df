"""
Wiring for the service graph.

A Container is built once per process (FastAPI lifespan, Celery worker init)
and passed to whoever needs it; nothing is created at import time.
"""
from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Callable, Iterator

import structlog
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from lecture_ai.core.config import Settings
from lecture_ai.db.session import build_engine, build_sessionmaker, session_scope
from lecture_ai.services.artifacts import CacheAsideService, store_backed_spec
from lecture_ai.services.cache import KeyValueCache
from lecture_ai.services.cumulative_quiz import CumulativeQuizComposer
from lecture_ai.services.feature_flags import FeatureFlags
from lecture_ai.services.llm import Generator, build_generator
from lecture_ai.services.monitoring import RequestMetrics
from lecture_ai.services.queue import DeferredExecutor, detect_queue
from lecture_ai.services.series import SeriesResolver
from lecture_ai.services.single_flight import SingleFlight
from lecture_ai.services.store import ArtifactKind, ArtifactStore
from lecture_ai.services.transcripts import TranscriptService

log = structlog.get_logger(__name__)


class Container:
    def __init__(
        self,
        settings: Settings,
        engine: Engine | None = None,
        generator: Generator | None = None,
        clock: Callable[[], float] = time.monotonic,
        detect_executor: bool = True,
    ) -> None:
        self.settings = settings
        self.engine = engine if engine is not None else build_engine(settings.database_url)
        self.session_factory = build_sessionmaker(self.engine)

        self.cache = KeyValueCache(
            default_ttl=settings.cache_ttl_seconds,
            sweep_interval=settings.cache_sweep_interval_sec,
            clock=clock,
        )
        self.store = ArtifactStore(self.session_factory)
        self.flags = FeatureFlags(self.store)
        self.generator = generator if generator is not None else build_generator(settings)
        self.single_flight = SingleFlight()

        self.transcripts = TranscriptService(self.store, self.cache, max_chars=settings.transcript_max_chars)
        self.summaries = self._artifact_service(ArtifactKind.SUMMARY)
        self.quizzes = self._artifact_service(ArtifactKind.QUIZ)
        self.services: dict[str, CacheAsideService] = {"summary": self.summaries, "quiz": self.quizzes}

        self.resolver = SeriesResolver(self.store)
        self.composer = CumulativeQuizComposer(
            self.store,
            self.cache,
            self.resolver,
            ttl_seconds=settings.cumulative_cache_ttl_seconds,
            model_name=getattr(self.generator, "default_model", settings.openai_model),
            flags=self.flags,
            single_flight=self.single_flight,
        )

        self.metrics = RequestMetrics()
        self.executor: DeferredExecutor | None = (
            detect_queue(settings, self.session_factory) if detect_executor else None
        )

    def _artifact_service(self, kind: ArtifactKind) -> CacheAsideService:
        spec = store_backed_spec(
            kind, self.store, self.generator, flags=self.flags, ttl_seconds=self.settings.cache_ttl_seconds
        )
        return CacheAsideService(spec, self.cache, self.store, single_flight=self.single_flight)

    @contextmanager
    def session(self) -> Iterator[Session]:
        with session_scope(self.session_factory) as db:
            yield db

    def start(self) -> None:
        self.cache.start_sweeper()
        log.info(
            "container_started",
            env=self.settings.env,
            generator=self.generator.name,
            queue=self.executor is not None,
        )

    def close(self) -> None:
        self.cache.stop_sweeper()
        self.engine.dispose()


def build_container(settings: Settings, **overrides) -> Container:
    return Container(settings, **overrides)
