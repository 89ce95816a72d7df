from __future__ import annotations

from sqlalchemy import BigInteger, Column, DateTime, Integer, String, Text, UniqueConstraint, func

from lecture_ai.db.base import Base


class Transcript(Base):
    __tablename__ = "video_transcripts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    subject_id = Column("event_id", BigInteger, nullable=False, index=True)
    language = Column(String(16), nullable=False)

    content = Column(Text, nullable=False)
    # manual_upload | caption_extraction | ...
    source = Column(String(50), nullable=False, default="manual_upload")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("event_id", "language", name="uq_transcripts_event_lang"),
    )
