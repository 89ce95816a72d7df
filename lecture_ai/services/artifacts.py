"""
Cache-aside engine shared by every per-subject artifact kind.

    cache -> store -> transcript -> generator -> store -> cache

The engine knows nothing about summaries or quizzes; each kind plugs in an
ArtifactSpec (how to fetch its dependency, generate, persist, look up).
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Callable

import structlog

from lecture_ai.core.errors import FeatureDisabled, GenerationError, NotFound, ServiceError
from lecture_ai.core.language import normalize_language, normalize_subject_id
from lecture_ai.services.cache import KeyValueCache, cache_key
from lecture_ai.services.feature_flags import FeatureFlags
from lecture_ai.services.llm.base import GenerationResult, Generator
from lecture_ai.services.single_flight import SingleFlight
from lecture_ai.services.store import ArtifactKind, ArtifactRecord, ArtifactStore

log = structlog.get_logger(__name__)


class Provenance(str, enum.Enum):
    CACHED = "cached"
    FROM_STORE = "from_store"
    FRESH = "fresh"


@dataclass(frozen=True)
class ArtifactResult:
    artifact: ArtifactRecord
    provenance: Provenance
    tokens_used: int | None = None

    @property
    def cached(self) -> bool:
        return self.provenance is Provenance.CACHED

    @property
    def from_store(self) -> bool:
        return self.provenance is Provenance.FROM_STORE


@dataclass(frozen=True)
class ArtifactSpec:
    kind: ArtifactKind
    # (subject_id, language) -> transcript text or None
    fetch_dependency: Callable[[str, str], str | None]
    # transcript -> generation result; raises GenerationError
    generate: Callable[[str], GenerationResult]
    # (subject_id, language, result) -> stored record
    persist: Callable[[str, str, GenerationResult], ArtifactRecord]
    # (subject_id, language) -> stored record or None
    lookup: Callable[[str, str], ArtifactRecord | None]
    ttl_seconds: int | None = None
    enabled: Callable[[], bool] = lambda: True


def store_backed_spec(
    kind: ArtifactKind,
    store: ArtifactStore,
    generator: Generator,
    flags: FeatureFlags | None = None,
    ttl_seconds: int | None = None,
) -> ArtifactSpec:
    def generate(transcript: str) -> GenerationResult:
        model = flags.default_model() if flags else None
        return generator.generate(kind.value, transcript, model=model)

    def persist(subject_id: str, language: str, result: GenerationResult) -> ArtifactRecord:
        return store.upsert_artifact(
            kind, subject_id, language, result.payload, result.model, result.processing_time_ms
        )

    return ArtifactSpec(
        kind=kind,
        fetch_dependency=store.get_transcript,
        generate=generate,
        persist=persist,
        lookup=lambda sid, lang: store.get_artifact(kind, sid, lang),
        ttl_seconds=ttl_seconds,
        enabled=(lambda: flags.is_enabled(kind.value)) if flags else (lambda: True),
    )


class CacheAsideService:
    def __init__(
        self,
        spec: ArtifactSpec,
        cache: KeyValueCache,
        store: ArtifactStore,
        single_flight: SingleFlight | None = None,
    ) -> None:
        self.spec = spec
        self._cache = cache
        self._store = store
        self._flight = single_flight or SingleFlight()

    @property
    def kind(self) -> str:
        return self.spec.kind.value

    def key(self, subject_id: str, language: str) -> str:
        return cache_key(self.kind, subject_id, language)

    def get_or_generate(self, subject_id: str, language: str, force_regenerate: bool = False) -> ArtifactResult:
        sid, lang = normalize_subject_id(subject_id), normalize_language(language)
        key = self.key(sid, lang)

        if not force_regenerate:
            hit, cached = self._cache.lookup(key)
            if hit:
                log.debug("artifact_cache_hit", kind=self.kind, subject_id=sid, language=lang)
                return ArtifactResult(artifact=cached, provenance=Provenance.CACHED)

            stored = self.spec.lookup(sid, lang)
            if stored is not None:
                self._cache.set(key, stored, self.spec.ttl_seconds)
                log.debug("artifact_store_hit", kind=self.kind, subject_id=sid, language=lang)
                return ArtifactResult(artifact=stored, provenance=Provenance.FROM_STORE)

        return self._flight.do((self.kind, sid, lang), lambda: self._generate(sid, lang))

    def _generate(self, sid: str, lang: str) -> ArtifactResult:
        if not self.spec.enabled():
            raise FeatureDisabled(f"{self.kind} generation is disabled", kind=self.kind, subject_id=sid, language=lang)

        transcript = self.spec.fetch_dependency(sid, lang)
        if not transcript:
            raise NotFound(
                "No transcript found for this video; upload one first",
                kind="transcript",
                subject_id=sid,
                language=lang,
            )

        try:
            result = self.spec.generate(transcript)
        except ServiceError as e:
            if isinstance(e, GenerationError):
                e.kind, e.subject_id, e.language = self.kind, sid, lang
            log.error("artifact_generation_failed", kind=self.kind, subject_id=sid, language=lang, error=e.message)
            raise
        except Exception as e:
            log.error("artifact_generation_failed", kind=self.kind, subject_id=sid, language=lang, error=str(e))
            raise GenerationError(
                f"Failed to generate {self.kind}: {e}", kind=self.kind, subject_id=sid, language=lang
            ) from e

        record = self.spec.persist(sid, lang, result)
        self._cache.set(self.key(sid, lang), record, self.spec.ttl_seconds)
        log.info(
            "artifact_generated",
            kind=self.kind,
            subject_id=sid,
            language=lang,
            model=result.model,
            processing_time_ms=result.processing_time_ms,
        )
        return ArtifactResult(artifact=record, provenance=Provenance.FRESH, tokens_used=result.tokens_used)

    # ----------------------------
    # Direct accessors
    # ----------------------------
    def get(self, subject_id: str, language: str) -> ArtifactResult:
        """Read-only cache -> store lookup; never generates."""
        sid, lang = normalize_subject_id(subject_id), normalize_language(language)
        key = self.key(sid, lang)

        hit, cached = self._cache.lookup(key)
        if hit:
            return ArtifactResult(artifact=cached, provenance=Provenance.CACHED)

        stored = self.spec.lookup(sid, lang)
        if stored is None:
            raise NotFound(f"{self.kind} not found; generate it first", kind=self.kind, subject_id=sid, language=lang)
        self._cache.set(key, stored, self.spec.ttl_seconds)
        return ArtifactResult(artifact=stored, provenance=Provenance.FROM_STORE)

    def invalidate(self, subject_id: str, language: str) -> None:
        sid, lang = normalize_subject_id(subject_id), normalize_language(language)
        self._cache.invalidate(self.key(sid, lang))

    def delete(self, subject_id: str, language: str) -> bool:
        sid, lang = normalize_subject_id(subject_id), normalize_language(language)
        deleted = self._store.delete_artifact(self.spec.kind, sid, lang)
        self._cache.invalidate(self.key(sid, lang))
        return deleted

    def delete_all(self) -> int:
        count = self._store.delete_all_artifacts(self.spec.kind)
        dropped = self._cache.invalidate_prefix(f"{self.kind}:")
        log.info("artifacts_deleted_all", kind=self.kind, count=count, cache_dropped=dropped)
        return count
