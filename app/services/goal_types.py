"""
Plain value types shared by the evaluators, the orchestrator and the
what-if simulator (dataclasses — no ORM, no Pydantic).

Evaluators work on EventFact / RuleSpec rather than ORM rows so that
hypothetical events can be mixed into a pass without touching the session.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from app.models.decision_impact import ImpactType
from app.models.goal_evaluation import GoalStatus


@dataclass(frozen=True)
class EventFact:
    id: str
    event_type: str
    event_name: str
    occurred_at: datetime       # tz-aware UTC
    magnitude: Optional[float] = None
    confidence: Optional[float] = 1.0
    metadata: dict[str, Any] = field(default_factory=dict)
    source_type: Optional[str] = None
    source_id: Optional[str] = None


@dataclass(frozen=True)
class RuleSpec:
    id: str
    name: str
    rule_type: str
    rule_config: Any            # decoded JSON; parsed per pass
    rolling_window_days: int = 7
    required_completions: int = 1
    priority: int = 0
    description: Optional[str] = None


@dataclass(frozen=True)
class PendingWindow:
    """Event A happened; waiting for B before window_end."""
    event_a_name: str
    event_a_time: datetime
    window_start: datetime
    window_end: datetime
    event_a_id: str

    def to_dict(self) -> dict[str, str]:
        return {
            "event_a_name": self.event_a_name,
            "event_a_time": self.event_a_time.isoformat(),
            "window_start": self.window_start.isoformat(),
            "window_end": self.window_end.isoformat(),
            "event_a_id": self.event_a_id,
        }


@dataclass(frozen=True)
class Impact:
    event_id: str
    goal_rule_id: str
    impact_type: ImpactType
    impact_details: dict[str, Any] = field(default_factory=dict)


@dataclass
class RuleOutcome:
    """What one evaluator says about one rule (before confidence is known)."""
    status: GoalStatus
    completions_in_window: int = 0
    required_in_window: int = 1
    pending_windows: list[PendingWindow] = field(default_factory=list)
    last_success_at: Optional[datetime] = None
    last_fail_at: Optional[datetime] = None
    last_fail_reason: Optional[str] = None
    impacts: list[Impact] = field(default_factory=list)
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class EvaluationSnapshot:
    """In-memory GoalEvaluation; persisted or not depending on the caller."""
    goal_rule_id: str
    evaluated_at: datetime
    status: GoalStatus
    completions_in_window: int
    required_in_window: int
    pending_windows: list[PendingWindow]
    last_success_at: Optional[datetime]
    last_fail_at: Optional[datetime]
    last_fail_reason: Optional[str]
    confidence: float
    details: dict[str, Any] = field(default_factory=dict)
    id: Optional[str] = None    # set once the row is flushed
