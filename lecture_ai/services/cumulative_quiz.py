"""
Cumulative quiz: every question from the per-video quizzes of a series, from
the first video up to and including the requested one.

A stored snapshot stays valid for as long as the series membership up to the
target is unchanged (compared as sets). Edits to a member's own quiz do not
make a snapshot stale; deleting and regenerating it does.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Mapping

import structlog

from lecture_ai.core.errors import EmptySeries, FeatureDisabled, NotFound
from lecture_ai.core.language import normalize_language, normalize_subject_id
from lecture_ai.schemas.quiz import VideoContext, dump_questions, parse_valid_questions
from lecture_ai.services.artifacts import Provenance
from lecture_ai.services.cache import KeyValueCache, cache_key
from lecture_ai.services.feature_flags import FeatureFlags
from lecture_ai.services.series import SeriesMember, SeriesResolver
from lecture_ai.services.single_flight import SingleFlight
from lecture_ai.services.store import ArtifactKind, ArtifactRecord, ArtifactStore, CumulativeRecord

log = structlog.get_logger(__name__)

KIND = ArtifactKind.CUMULATIVE_QUIZ.value
DEFAULT_TTL_SECONDS = 7 * 24 * 60 * 60


@dataclass(frozen=True)
class CumulativeResult:
    quiz: CumulativeRecord
    provenance: Provenance

    @property
    def cached(self) -> bool:
        return self.provenance is Provenance.CACHED

    @property
    def from_store(self) -> bool:
        return self.provenance is Provenance.FROM_STORE


def merge_questions(
    members: list[SeriesMember],
    quizzes: Mapping[str, ArtifactRecord],
    language: str | None = None,
) -> list[dict[str, Any]]:
    """
    Flatten member quizzes in member order, keeping each quiz's own question
    order, and tag every question with the video it came from.
    """
    merged = []
    for m in members:
        rec = quizzes.get(m.id)
        if rec is None:
            log.warning("cumulative_member_quiz_missing", subject_id=m.id, language=language, position=m.position)
            continue
        try:
            questions, skipped = parse_valid_questions(rec.payload)
        except TypeError as e:
            log.warning("cumulative_member_quiz_invalid", subject_id=m.id, language=language, error=str(e))
            continue
        if skipped:
            log.warning(
                "cumulative_member_questions_skipped", subject_id=m.id, language=language, skipped=skipped
            )

        for q in questions:
            ctx = VideoContext(
                subject_id=m.id,
                video_title=m.title,
                video_number=m.position,
                timestamp=q.timestamp,
            )
            merged.append(q.model_copy(update={"video_context": ctx}))
    return dump_questions(merged)


class CumulativeQuizComposer:
    def __init__(
        self,
        store: ArtifactStore,
        cache: KeyValueCache,
        resolver: SeriesResolver,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        model_name: str = "gpt-4o-mini",
        flags: FeatureFlags | None = None,
        single_flight: SingleFlight | None = None,
    ) -> None:
        self._store = store
        self._cache = cache
        self._resolver = resolver
        self._ttl = ttl_seconds
        self._model_name = model_name
        self._flags = flags
        self._flight = single_flight or SingleFlight()

    @staticmethod
    def key(subject_id: str, language: str) -> str:
        return cache_key(KIND, subject_id, language)

    def _snapshot(self, sid: str, lang: str) -> tuple[CumulativeRecord | None, Provenance | None]:
        key = self.key(sid, lang)
        hit, cached = self._cache.lookup(key)
        if hit:
            return cached, Provenance.CACHED
        stored = self._store.get_cumulative(sid, lang)
        if stored is not None:
            self._cache.set(key, stored, self._ttl)
            return stored, Provenance.FROM_STORE
        return None, None

    def is_current(self, snapshot: CumulativeRecord, subject_id: str) -> bool:
        try:
            members = self._resolver.members_up_to(snapshot.series_id, subject_id)
        except NotFound:
            return False
        return sorted(m.id for m in members) == sorted(snapshot.included_subject_ids)

    def generate(self, subject_id: str, language: str, force_regenerate: bool = False) -> CumulativeResult:
        sid, lang = normalize_subject_id(subject_id), normalize_language(language)

        if not force_regenerate:
            snapshot, provenance = self._snapshot(sid, lang)
            if snapshot is not None:
                if self.is_current(snapshot, sid):
                    return CumulativeResult(quiz=snapshot, provenance=provenance)
                log.info(
                    "cumulative_snapshot_stale",
                    subject_id=sid,
                    language=lang,
                    included=snapshot.included_subject_ids,
                )

        return self._flight.do((KIND, sid, lang), lambda: self._compose(sid, lang))

    def _compose(self, sid: str, lang: str) -> CumulativeResult:
        if self._flags is not None and not self._flags.is_enabled(KIND):
            raise FeatureDisabled("Quiz generation is disabled", kind=KIND, subject_id=sid, language=lang)

        started = time.monotonic()
        subject = self._store.get_subject(sid)
        if subject is None or subject.state != "ready" or subject.series_id is None:
            raise NotFound(
                "Video not found, not ready, or not part of a series",
                kind=KIND,
                subject_id=sid,
                language=lang,
            )

        members = self._resolver.members_up_to(subject.series_id, sid)
        if not members:
            raise EmptySeries("Series has no ready members", kind=KIND, subject_id=sid, language=lang)

        quizzes = self._store.get_artifacts(ArtifactKind.QUIZ, [m.id for m in members], lang)
        questions = merge_questions(members, quizzes, language=lang)

        model = (self._flags.default_model() if self._flags else None) or self._model_name
        record = self._store.upsert_cumulative(
            CumulativeRecord(
                subject_id=sid,
                series_id=subject.series_id,
                language=lang,
                model=model,
                questions=questions,
                included_subject_ids=[m.id for m in members],
                subject_count=len(members),
                processing_time_ms=int((time.monotonic() - started) * 1000),
            )
        )
        self._cache.set(self.key(sid, lang), record, self._ttl)
        log.info(
            "cumulative_quiz_generated",
            subject_id=sid,
            language=lang,
            series_id=subject.series_id,
            videos=len(members),
            questions=len(questions),
        )
        return CumulativeResult(quiz=record, provenance=Provenance.FRESH)

    # ----------------------------
    # Accessors
    # ----------------------------
    def get(self, subject_id: str, language: str) -> CumulativeResult:
        sid, lang = normalize_subject_id(subject_id), normalize_language(language)
        snapshot, provenance = self._snapshot(sid, lang)
        if snapshot is None:
            raise NotFound("Cumulative quiz not found; generate it first", kind=KIND, subject_id=sid, language=lang)
        return CumulativeResult(quiz=snapshot, provenance=provenance)

    def invalidate(self, subject_id: str, language: str) -> None:
        sid, lang = normalize_subject_id(subject_id), normalize_language(language)
        self._cache.invalidate(self.key(sid, lang))

    def delete(self, subject_id: str, language: str) -> bool:
        sid, lang = normalize_subject_id(subject_id), normalize_language(language)
        deleted = self._store.delete_cumulative(sid, lang)
        self._cache.invalidate(self.key(sid, lang))
        return deleted

    def delete_all(self) -> int:
        count = self._store.delete_all_cumulative()
        self._cache.invalidate_prefix(f"{KIND}:")
        log.info("artifacts_deleted_all", kind=KIND, count=count)
        return count

    def stats(self) -> dict[str, Any]:
        return self._store.cumulative_stats()
