from __future__ import annotations

from sqlalchemy import JSON, Column, DateTime, String, Text, func

from lecture_ai.db.base import Base


class AppConfig(Base):
    """Runtime feature flags / defaults editable without a redeploy."""

    __tablename__ = "ai_config"

    key = Column(String(128), primary_key=True)
    value = Column(JSON, nullable=True)
    description = Column(Text, nullable=True)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
