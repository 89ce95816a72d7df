"""
Durable store for transcripts and derived artifacts.

One table per artifact kind, keyed by (subject_id, language). Every call
opens its own short session; language and subject ids are validated and
normalized before any I/O, and database failures surface as StoreError.
"""
from __future__ import annotations

import enum
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Iterator

import structlog
from sqlalchemy import delete, distinct, func, select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from lecture_ai.core.errors import StoreError, ValidationError
from lecture_ai.core.language import normalize_language, normalize_subject_id
from lecture_ai.db.session import session_scope
from lecture_ai.models import AppConfig, CumulativeQuiz, Quiz, Subject, Summary, Transcript

log = structlog.get_logger(__name__)


class ArtifactKind(str, enum.Enum):
    SUMMARY = "summary"
    QUIZ = "quiz"
    CUMULATIVE_QUIZ = "cumulative_quiz"


# kind -> (model, payload column attribute)
_ARTIFACT_TABLES: dict[ArtifactKind, tuple[type, str]] = {
    ArtifactKind.SUMMARY: (Summary, "summary"),
    ArtifactKind.QUIZ: (Quiz, "quiz_data"),
}

_MODERATION_FIELDS = (
    "approved",
    "approved_at",
    "approved_by",
    "edited_by_human",
    "last_edited_by",
    "flagged",
    "flag_count",
)


# ----------------------------
# Records (detached from sessions, safe to cache)
# ----------------------------

@dataclass(frozen=True)
class SubjectRecord:
    id: str
    title: str | None
    series_id: str | None
    state: str
    order_hint: int | None
    created_at: datetime | None


@dataclass(frozen=True)
class ArtifactRecord:
    kind: ArtifactKind
    subject_id: str
    language: str
    payload: Any
    model: str
    processing_time_ms: int | None
    moderation: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class CumulativeRecord:
    subject_id: str
    series_id: str
    language: str
    model: str
    questions: list[dict[str, Any]]
    included_subject_ids: list[str]
    subject_count: int
    processing_time_ms: int | None = None
    moderation: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


def _moderation(row: Any) -> dict[str, Any]:
    out = {}
    for f in _MODERATION_FIELDS:
        v = getattr(row, f)
        out[f] = _iso(v) if isinstance(v, datetime) else v
    return out


def _artifact_kind(kind: ArtifactKind | str) -> ArtifactKind:
    try:
        k = ArtifactKind(kind)
    except ValueError as e:
        raise ValidationError(f"Unknown artifact kind: {kind!r}") from e
    if k not in _ARTIFACT_TABLES:
        raise ValidationError(f"Artifact kind {k.value!r} has no per-subject table", kind=k.value)
    return k


class ArtifactStore:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    @contextmanager
    def _session(self, op: str, **ctx: Any) -> Iterator[Session]:
        try:
            with session_scope(self._session_factory) as db:
                yield db
        except SQLAlchemyError as e:
            log.error("store_error", op=op, error=str(e), **ctx)
            raise StoreError(
                f"Store operation {op} failed: {e}",
                kind=ctx.get("kind"),
                subject_id=ctx.get("subject_id"),
                language=ctx.get("language"),
            ) from e

    def _upsert_row(self, model: type, subject_id: str, language: str, values: dict[str, Any], op: str) -> Any:
        """
        Insert-or-update keyed on (subject_id, language); last write wins.
        A concurrent insert of the same key loses the race on the unique
        constraint and is replayed as an update.
        """
        for attempt in range(2):
            try:
                with self._session(op, subject_id=subject_id, language=language) as db:
                    row = (
                        db.query(model)
                        .filter(model.subject_id == int(subject_id), model.language == language)
                        .first()
                    )
                    if not row:
                        row = model(subject_id=int(subject_id), language=language)
                        db.add(row)
                    for k, v in values.items():
                        setattr(row, k, v)
                    db.flush()
                    db.refresh(row)
                    return row
            except StoreError as e:
                if attempt == 0 and isinstance(e.__cause__, IntegrityError):
                    log.warning("store_upsert_conflict_retry", op=op, subject_id=subject_id, language=language)
                    continue
                raise
        raise StoreError(f"Store operation {op} failed after retry", subject_id=subject_id, language=language)

    def ping(self) -> bool:
        with self._session("ping") as db:
            db.execute(text("SELECT 1"))
        return True

    # ----------------------------
    # Transcripts
    # ----------------------------
    def get_transcript(self, subject_id: str, language: str) -> str | None:
        sid, lang = normalize_subject_id(subject_id), normalize_language(language)
        with self._session("get_transcript", subject_id=sid, language=lang) as db:
            content = db.execute(
                select(Transcript.content).where(Transcript.subject_id == int(sid), Transcript.language == lang)
            ).scalar_one_or_none()
        return content or None

    def has_transcript(self, subject_id: str, language: str) -> bool:
        return self.get_transcript(subject_id, language) is not None

    def upsert_transcript(self, subject_id: str, language: str, content: str, source: str = "manual_upload") -> None:
        sid, lang = normalize_subject_id(subject_id), normalize_language(language)
        if not content or not content.strip():
            raise ValidationError("Transcript content is empty", kind="transcript", subject_id=sid, language=lang)
        self._upsert_row(Transcript, sid, lang, {"content": content, "source": source}, op="upsert_transcript")

    def delete_transcript(self, subject_id: str, language: str) -> bool:
        sid, lang = normalize_subject_id(subject_id), normalize_language(language)
        with self._session("delete_transcript", subject_id=sid, language=lang) as db:
            res = db.execute(
                delete(Transcript).where(Transcript.subject_id == int(sid), Transcript.language == lang)
            )
        return (res.rowcount or 0) > 0

    def delete_all_transcripts(self) -> int:
        with self._session("delete_all_transcripts", kind="transcript") as db:
            res = db.execute(delete(Transcript))
        return res.rowcount or 0

    # ----------------------------
    # Summaries / quizzes
    # ----------------------------
    def _to_artifact(self, kind: ArtifactKind, row: Any) -> ArtifactRecord:
        _, payload_attr = _ARTIFACT_TABLES[kind]
        return ArtifactRecord(
            kind=kind,
            subject_id=str(row.subject_id),
            language=row.language,
            payload=getattr(row, payload_attr),
            model=row.model,
            processing_time_ms=row.processing_time_ms,
            moderation=_moderation(row),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def get_artifact(self, kind: ArtifactKind | str, subject_id: str, language: str) -> ArtifactRecord | None:
        k = _artifact_kind(kind)
        sid, lang = normalize_subject_id(subject_id), normalize_language(language)
        model, _ = _ARTIFACT_TABLES[k]
        with self._session("get_artifact", kind=k.value, subject_id=sid, language=lang) as db:
            row = (
                db.query(model)
                .filter(model.subject_id == int(sid), model.language == lang)
                .first()
            )
            return self._to_artifact(k, row) if row else None

    def get_artifacts(
        self, kind: ArtifactKind | str, subject_ids: Iterable[str], language: str
    ) -> dict[str, ArtifactRecord]:
        """Batched read: subject_id -> record for the ids that have one."""
        k = _artifact_kind(kind)
        lang = normalize_language(language)
        ids = [normalize_subject_id(s) for s in subject_ids]
        if not ids:
            return {}
        model, _ = _ARTIFACT_TABLES[k]
        with self._session("get_artifacts", kind=k.value, language=lang) as db:
            rows = (
                db.query(model)
                .filter(model.subject_id.in_([int(s) for s in ids]), model.language == lang)
                .all()
            )
            return {str(r.subject_id): self._to_artifact(k, r) for r in rows}

    def upsert_artifact(
        self,
        kind: ArtifactKind | str,
        subject_id: str,
        language: str,
        payload: Any,
        model: str,
        processing_time_ms: int | None = None,
    ) -> ArtifactRecord:
        k = _artifact_kind(kind)
        sid, lang = normalize_subject_id(subject_id), normalize_language(language)
        table, payload_attr = _ARTIFACT_TABLES[k]
        # moderation columns are left as they are on an existing row
        row = self._upsert_row(
            table,
            sid,
            lang,
            {payload_attr: payload, "model": model, "processing_time_ms": processing_time_ms},
            op=f"upsert_{k.value}",
        )
        return self._to_artifact(k, row)

    def delete_artifact(self, kind: ArtifactKind | str, subject_id: str, language: str) -> bool:
        k = _artifact_kind(kind)
        sid, lang = normalize_subject_id(subject_id), normalize_language(language)
        model, _ = _ARTIFACT_TABLES[k]
        with self._session("delete_artifact", kind=k.value, subject_id=sid, language=lang) as db:
            res = db.execute(delete(model).where(model.subject_id == int(sid), model.language == lang))
        return (res.rowcount or 0) > 0

    def delete_all_artifacts(self, kind: ArtifactKind | str) -> int:
        k = _artifact_kind(kind)
        model, _ = _ARTIFACT_TABLES[k]
        with self._session("delete_all_artifacts", kind=k.value) as db:
            res = db.execute(delete(model))
        return res.rowcount or 0

    # ----------------------------
    # Cumulative quizzes
    # ----------------------------
    def _to_cumulative(self, row: CumulativeQuiz) -> CumulativeRecord:
        return CumulativeRecord(
            subject_id=str(row.subject_id),
            series_id=str(row.series_id),
            language=row.language,
            model=row.model,
            questions=list(row.questions or []),
            included_subject_ids=[str(s) for s in (row.included_subject_ids or [])],
            subject_count=row.subject_count,
            processing_time_ms=row.processing_time_ms,
            moderation=_moderation(row),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def get_cumulative(self, subject_id: str, language: str) -> CumulativeRecord | None:
        sid, lang = normalize_subject_id(subject_id), normalize_language(language)
        with self._session("get_cumulative", kind="cumulative_quiz", subject_id=sid, language=lang) as db:
            row = (
                db.query(CumulativeQuiz)
                .filter(CumulativeQuiz.subject_id == int(sid), CumulativeQuiz.language == lang)
                .first()
            )
            return self._to_cumulative(row) if row else None

    def upsert_cumulative(self, record: CumulativeRecord) -> CumulativeRecord:
        sid, lang = normalize_subject_id(record.subject_id), normalize_language(record.language)
        if not record.included_subject_ids or record.subject_count != len(record.included_subject_ids):
            raise ValidationError(
                "included_subject_ids must be non-empty and match subject_count",
                kind="cumulative_quiz",
                subject_id=sid,
                language=lang,
            )
        row = self._upsert_row(
            CumulativeQuiz,
            sid,
            lang,
            {
                "series_id": int(normalize_subject_id(record.series_id)),
                "model": record.model,
                "processing_time_ms": record.processing_time_ms,
                "questions": record.questions,
                "included_subject_ids": [str(s) for s in record.included_subject_ids],
                "subject_count": record.subject_count,
            },
            op="upsert_cumulative",
        )
        return self._to_cumulative(row)

    def delete_cumulative(self, subject_id: str, language: str) -> bool:
        sid, lang = normalize_subject_id(subject_id), normalize_language(language)
        with self._session("delete_cumulative", kind="cumulative_quiz", subject_id=sid, language=lang) as db:
            res = db.execute(
                delete(CumulativeQuiz).where(CumulativeQuiz.subject_id == int(sid), CumulativeQuiz.language == lang)
            )
        return (res.rowcount or 0) > 0

    def delete_all_cumulative(self) -> int:
        with self._session("delete_all_cumulative", kind="cumulative_quiz") as db:
            res = db.execute(delete(CumulativeQuiz))
        return res.rowcount or 0

    def cumulative_stats(self) -> dict[str, Any]:
        with self._session("cumulative_stats", kind="cumulative_quiz") as db:
            total, series, avg_subjects = db.execute(
                select(
                    func.count(CumulativeQuiz.id),
                    func.count(distinct(CumulativeQuiz.series_id)),
                    func.avg(CumulativeQuiz.subject_count),
                )
            ).one()
            avg_questions = db.execute(
                select(func.avg(func.json_array_length(CumulativeQuiz.questions)))
            ).scalar_one()
        return {
            "total_quizzes": int(total or 0),
            "total_series": int(series or 0),
            "avg_videos_per_quiz": round(float(avg_subjects), 2) if avg_subjects is not None else 0.0,
            "avg_questions_per_quiz": round(float(avg_questions), 2) if avg_questions is not None else 0.0,
        }

    # ----------------------------
    # Subjects / series
    # ----------------------------
    def _to_subject(self, row: Subject) -> SubjectRecord:
        return SubjectRecord(
            id=str(row.id),
            title=row.title,
            series_id=str(row.series_id) if row.series_id is not None else None,
            state=row.state,
            order_hint=row.order_hint,
            created_at=row.created_at,
        )

    def get_subject(self, subject_id: str) -> SubjectRecord | None:
        sid = normalize_subject_id(subject_id)
        with self._session("get_subject", subject_id=sid) as db:
            row = db.get(Subject, int(sid))
            return self._to_subject(row) if row else None

    def get_series_members(self, series_id: str) -> list[SubjectRecord]:
        """Ready subjects of a series, unordered (ordering is the resolver's job)."""
        ser = normalize_subject_id(series_id)
        with self._session("get_series_members") as db:
            rows = (
                db.query(Subject)
                .filter(Subject.series_id == int(ser), Subject.state == "ready")
                .all()
            )
            return [self._to_subject(r) for r in rows]

    # ----------------------------
    # Runtime config (ai_config)
    # ----------------------------
    def get_config(self, key: str) -> Any:
        with self._session("get_config") as db:
            row = db.get(AppConfig, key)
            return row.value if row else None

    def set_config(self, key: str, value: Any, description: str | None = None) -> None:
        with self._session("set_config") as db:
            row = db.get(AppConfig, key)
            if not row:
                row = AppConfig(key=key, description=description or "")
                db.add(row)
            row.value = value
            if description is not None:
                row.description = description
