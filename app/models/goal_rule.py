import enum
import uuid
from datetime import datetime
from sqlalchemy import Integer, String, Text, Boolean, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class RuleType(str, enum.Enum):
    sequence = "sequence"
    count = "count"
    gate = "gate"
    compound = "compound"


class GoalRule(Base):
    """User-authored temporal goal. Read-only to the evaluator."""

    __tablename__ = "goal_rules"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Kept as a plain string so unknown kinds survive a round trip and are
    # reported as unsupported instead of failing to load.
    rule_type: Mapped[str] = mapped_column(String(32), nullable=False)
    rule_config: Mapped[str] = mapped_column(
        Text, nullable=False,
        comment="JSON-encoded config; shape depends on rule_type",
    )
    rolling_window_days: Mapped[int | None] = mapped_column(Integer, nullable=True, default=7)
    required_completions: Mapped[int | None] = mapped_column(Integer, nullable=True, default=1)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
