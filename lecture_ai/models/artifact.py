from __future__ import annotations

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)

from lecture_ai.db.base import Base


class ModerationMixin:
    """
    Review state mutated by admins, independently of payload regeneration.
    Regenerating an artifact never resets these columns.
    """

    approved = Column(Boolean, nullable=False, default=False)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    approved_by = Column(String(255), nullable=True)
    edited_by_human = Column(Boolean, nullable=False, default=False)
    last_edited_by = Column(String(255), nullable=True)
    flagged = Column(Boolean, nullable=False, default=False)
    flag_count = Column(Integer, nullable=False, default=0)


class Summary(ModerationMixin, Base):
    __tablename__ = "ai_summaries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    subject_id = Column("event_id", BigInteger, nullable=False, index=True)
    language = Column(String(16), nullable=False)

    summary = Column(Text, nullable=False)
    model = Column(String(64), nullable=False)
    processing_time_ms = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("event_id", "language", name="uq_summaries_event_lang"),
    )


class Quiz(ModerationMixin, Base):
    __tablename__ = "ai_quizzes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    subject_id = Column("event_id", BigInteger, nullable=False, index=True)
    language = Column(String(16), nullable=False)

    # {"questions": [...]}
    quiz_data = Column(JSON, nullable=False)
    model = Column(String(64), nullable=False)
    processing_time_ms = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("event_id", "language", name="uq_quizzes_event_lang"),
    )


class CumulativeQuiz(ModerationMixin, Base):
    """
    Derived from series membership + per-video quizzes; always recomputable.

    included_subject_ids is the membership snapshot used for staleness checks:
    written in position order, compared as a set.
    """

    __tablename__ = "ai_cumulative_quizzes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    subject_id = Column("event_id", BigInteger, nullable=False, index=True)
    series_id = Column(BigInteger, nullable=False, index=True)
    language = Column(String(16), nullable=False)

    model = Column(String(64), nullable=False)
    processing_time_ms = Column(Integer, nullable=True)

    questions = Column(JSON, nullable=False)
    # list of subject ids as strings (64-bit safe)
    included_subject_ids = Column("included_event_ids", JSON, nullable=False)
    subject_count = Column("video_count", Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("event_id", "language", name="uq_cumulative_quiz_event_lang"),
        CheckConstraint("video_count > 0", name="ck_cumulative_quiz_video_count"),
    )
