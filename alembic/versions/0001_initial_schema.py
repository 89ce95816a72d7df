"""initial schema: events, transcripts, ai artifacts, config, jobs

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _moderation() -> list[sa.Column]:
    return [
        sa.Column("approved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_by", sa.String(length=255), nullable=True),
        sa.Column("edited_by_human", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("last_edited_by", sa.String(length=255), nullable=True),
        sa.Column("flagged", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("flag_count", sa.Integer(), nullable=False, server_default="0"),
    ]


def upgrade() -> None:
    op.create_table(
        "all_events",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=False, nullable=False),
        sa.Column("title", sa.String(length=512), nullable=True),
        sa.Column("series", sa.BigInteger(), nullable=True),
        sa.Column("state", sa.String(length=32), nullable=False, server_default="ready"),
        sa.Column("order_hint", sa.Integer(), nullable=True),
        sa.Column("meta_json", sa.Text(), nullable=True),
        sa.Column("created", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_all_events_series", "all_events", ["series"])
    op.create_index("idx_events_series_state", "all_events", ["series", "state"])

    op.create_table(
        "video_transcripts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("event_id", sa.BigInteger(), nullable=False),
        sa.Column("language", sa.String(length=16), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("source", sa.String(length=50), nullable=False, server_default="manual_upload"),
        *_timestamps(),
        sa.UniqueConstraint("event_id", "language", name="uq_transcripts_event_lang"),
    )
    op.create_index("ix_video_transcripts_event_id", "video_transcripts", ["event_id"])

    op.create_table(
        "ai_summaries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("event_id", sa.BigInteger(), nullable=False),
        sa.Column("language", sa.String(length=16), nullable=False),
        sa.Column("summary", sa.Text(), nullable=False),
        sa.Column("model", sa.String(length=64), nullable=False),
        sa.Column("processing_time_ms", sa.Integer(), nullable=True),
        *_moderation(),
        *_timestamps(),
        sa.UniqueConstraint("event_id", "language", name="uq_summaries_event_lang"),
    )
    op.create_index("ix_ai_summaries_event_id", "ai_summaries", ["event_id"])

    op.create_table(
        "ai_quizzes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("event_id", sa.BigInteger(), nullable=False),
        sa.Column("language", sa.String(length=16), nullable=False),
        sa.Column("quiz_data", sa.JSON(), nullable=False),
        sa.Column("model", sa.String(length=64), nullable=False),
        sa.Column("processing_time_ms", sa.Integer(), nullable=True),
        *_moderation(),
        *_timestamps(),
        sa.UniqueConstraint("event_id", "language", name="uq_quizzes_event_lang"),
    )
    op.create_index("ix_ai_quizzes_event_id", "ai_quizzes", ["event_id"])

    op.create_table(
        "ai_cumulative_quizzes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("event_id", sa.BigInteger(), nullable=False),
        sa.Column("series_id", sa.BigInteger(), nullable=False),
        sa.Column("language", sa.String(length=16), nullable=False),
        sa.Column("model", sa.String(length=64), nullable=False),
        sa.Column("processing_time_ms", sa.Integer(), nullable=True),
        sa.Column("questions", sa.JSON(), nullable=False),
        sa.Column("included_event_ids", sa.JSON(), nullable=False),
        sa.Column("video_count", sa.Integer(), nullable=False),
        *_moderation(),
        *_timestamps(),
        sa.UniqueConstraint("event_id", "language", name="uq_cumulative_quiz_event_lang"),
        sa.CheckConstraint("video_count > 0", name="ck_cumulative_quiz_video_count"),
    )
    op.create_index("ix_ai_cumulative_quizzes_event_id", "ai_cumulative_quizzes", ["event_id"])
    op.create_index("ix_ai_cumulative_quizzes_series_id", "ai_cumulative_quizzes", ["series_id"])

    op.create_table(
        "ai_config",
        sa.Column("key", sa.String(length=128), primary_key=True, nullable=False),
        sa.Column("value", sa.JSON(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.bulk_insert(
        sa.table(
            "ai_config",
            sa.column("key", sa.String),
            sa.column("value", sa.JSON),
            sa.column("description", sa.Text),
        ),
        [
            {"key": "features_enabled", "value": True, "description": "Master switch for AI generation"},
            {"key": "summary_enabled", "value": True, "description": "Allow summary generation"},
            {"key": "quiz_enabled", "value": True, "description": "Allow quiz and cumulative quiz generation"},
        ],
    )

    op.create_table(
        "jobs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("job_type", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="queued"),
        sa.Column("payload_json", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("task_id", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )
    op.create_index("ix_jobs_job_type", "jobs", ["job_type"])


def downgrade() -> None:
    op.drop_index("ix_jobs_job_type", table_name="jobs")
    op.drop_table("jobs")
    op.drop_table("ai_config")
    op.drop_index("ix_ai_cumulative_quizzes_series_id", table_name="ai_cumulative_quizzes")
    op.drop_index("ix_ai_cumulative_quizzes_event_id", table_name="ai_cumulative_quizzes")
    op.drop_table("ai_cumulative_quizzes")
    op.drop_index("ix_ai_quizzes_event_id", table_name="ai_quizzes")
    op.drop_table("ai_quizzes")
    op.drop_index("ix_ai_summaries_event_id", table_name="ai_summaries")
    op.drop_table("ai_summaries")
    op.drop_index("ix_video_transcripts_event_id", table_name="video_transcripts")
    op.drop_table("video_transcripts")
    op.drop_index("idx_events_series_state", table_name="all_events")
    op.drop_index("ix_all_events_series", table_name="all_events")
    op.drop_table("all_events")
