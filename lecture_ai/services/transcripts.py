from __future__ import annotations

import structlog

from lecture_ai.core.errors import NotFound, ValidationError
from lecture_ai.core.language import normalize_language, normalize_subject_id
from lecture_ai.services.cache import KeyValueCache, cache_key
from lecture_ai.services.store import ArtifactStore

log = structlog.get_logger(__name__)

KIND = "transcript"


class TranscriptService:
    """Cache-aside reads plus upload / delete for raw transcripts."""

    def __init__(self, store: ArtifactStore, cache: KeyValueCache, max_chars: int = 50000) -> None:
        self._store = store
        self._cache = cache
        self._max_chars = max_chars

    def get(self, subject_id: str, language: str) -> tuple[str, bool]:
        """Returns (content, cached)."""
        sid, lang = normalize_subject_id(subject_id), normalize_language(language)
        key = cache_key(KIND, sid, lang)
        hit, content = self._cache.lookup(key)
        if hit:
            return content, True

        content = self._store.get_transcript(sid, lang)
        if content is None:
            raise NotFound("Transcript not found", kind=KIND, subject_id=sid, language=lang)
        self._cache.set(key, content)
        return content, False

    def upload(self, subject_id: str, language: str, content: str, source: str = "manual_upload") -> int:
        sid, lang = normalize_subject_id(subject_id), normalize_language(language)
        if len(content or "") > self._max_chars:
            raise ValidationError(
                f"Transcript too long ({len(content)} chars, max {self._max_chars})",
                kind=KIND,
                subject_id=sid,
                language=lang,
            )
        self._store.upsert_transcript(sid, lang, content, source=source)
        self._cache.invalidate(cache_key(KIND, sid, lang))
        log.info("transcript_uploaded", subject_id=sid, language=lang, chars=len(content))
        return len(content)

    def delete(self, subject_id: str, language: str) -> bool:
        sid, lang = normalize_subject_id(subject_id), normalize_language(language)
        deleted = self._store.delete_transcript(sid, lang)
        self._cache.invalidate(cache_key(KIND, sid, lang))
        return deleted

    def delete_all(self) -> int:
        count = self._store.delete_all_transcripts()
        self._cache.invalidate_prefix(f"{KIND}:")
        log.info("transcripts_deleted_all", count=count)
        return count
