"""
DecisionImpact — audit record linking one triggering event to one rule.

Append-only. Only impacts attributed to the event that triggered an
evaluation pass are written (see app.services.impact_recorder).

impact_type values:
  "window_created"    — A occurred, waiting for B
  "window_completed"  — B closed an open window
  "window_expired"    — A's window closed without B
  "gate_opened" / "gate_closed" — reserved for gate rules
"""
import enum
import uuid
from datetime import datetime
from sqlalchemy import String, Text, DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class ImpactType(str, enum.Enum):
    window_created = "window_created"
    window_completed = "window_completed"
    window_expired = "window_expired"
    gate_opened = "gate_opened"
    gate_closed = "gate_closed"


class DecisionImpact(Base):
    __tablename__ = "decision_impacts"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    event_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("normalized_events.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    goal_rule_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("goal_rules.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    impact_type: Mapped[str] = mapped_column(String(32), nullable=False)
    impact_details: Mapped[str | None] = mapped_column(
        Text, nullable=True,
        comment="JSON-encoded dict specific to each impact_type",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
