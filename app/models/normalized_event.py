"""
NormalizedEvent — immutable timestamped fact consumed by the goal engine.

Append-only. Produced by the activity parser, derived-state jobs or manual
entry; the evaluator only ever reads these rows.

metadata: JSON-encoded dict stored as Text in the `metadata` column
(`metadata` is reserved on declarative classes, hence `event_metadata`).
"""
import uuid
from datetime import datetime
from sqlalchemy import String, Text, Float, DateTime, func, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class NormalizedEvent(Base):
    __tablename__ = "normalized_events"
    __table_args__ = (
        Index("ix_normalized_events_type_time", "event_type", "occurred_at"),
        Index("ix_normalized_events_name_time", "event_name", "occurred_at"),
        Index("ix_normalized_events_source", "source_type", "source_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    event_type: Mapped[str] = mapped_column(
        String(64), nullable=False,
        comment="e.g. training_session, meal, hormone_peak, sleep_episode",
    )
    event_name: Mapped[str] = mapped_column(
        String(128), nullable=False,
        comment="e.g. GH_peak, protein_meal, heavy_lifting",
    )
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    magnitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    confidence: Mapped[float] = mapped_column(
        Float, nullable=False, default=1.0,
        comment="Data quality 0..1",
    )
    event_metadata: Mapped[str | None] = mapped_column(
        "metadata", Text, nullable=True,
        comment="JSON-encoded dict with free-form event attributes",
    )
    source_type: Mapped[str | None] = mapped_column(
        String(32), nullable=True,
        comment='"activity_log" | "derived" | "manual"',
    )
    source_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
