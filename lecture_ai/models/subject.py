from __future__ import annotations

from sqlalchemy import BigInteger, Column, DateTime, Index, Integer, String, Text, func

from lecture_ai.db.base import Base


class Subject(Base):
    """
    A video/event owned by the video platform. This service only reads it:
    series membership and readiness drive cumulative quiz composition.
    """

    __tablename__ = "all_events"

    # 64-bit platform id, never autogenerated here
    id = Column(BigInteger, primary_key=True, autoincrement=False)
    title = Column(String(512), nullable=True)
    series_id = Column("series", BigInteger, nullable=True, index=True)

    # ready | waiting | processing | failed ...
    state = Column(String(32), nullable=False, default="ready")

    # position hint extracted from the platform metadata ("order" field)
    order_hint = Column(Integer, nullable=True)
    meta_json = Column(Text, nullable=True)

    created_at = Column("created", DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("idx_events_series_state", "series", "state"),
    )
