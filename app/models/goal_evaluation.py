"""
GoalEvaluation — one snapshot per rule per evaluation pass.

Append-only: every pass inserts a new row, history is never updated.
The "current" evaluation of a rule is its most recent row by evaluated_at.

pending_windows / details: JSON-encoded Text.
"""
import enum
import uuid
from datetime import datetime
from sqlalchemy import Integer, String, Text, Float, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class GoalStatus(str, enum.Enum):
    on_track = "on_track"
    at_risk = "at_risk"
    off_track = "off_track"
    completed = "completed"


class GoalEvaluation(Base):
    __tablename__ = "goal_evaluations"
    __table_args__ = (
        Index("ix_goal_evaluations_rule_time", "goal_rule_id", "evaluated_at"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    goal_rule_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("goal_rules.id", ondelete="CASCADE"), nullable=False
    )
    evaluated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False,
        comment='"on_track" | "at_risk" | "off_track" | "completed"',
    )
    completions_in_window: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    required_in_window: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    pending_windows: Mapped[str] = mapped_column(
        Text, nullable=False, default="[]",
        comment="JSON array of open A→B windows",
    )
    last_success_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_fail_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_fail_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    confidence: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    details: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
