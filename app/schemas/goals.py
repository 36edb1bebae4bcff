"""
Goal evaluation schemas.

POST /goals/evaluate   → EvaluateRequest → EvaluateResponse
POST /goals/what-if    → WhatIfRequest   → WhatIfResponse
GET  /goals/status     → GoalStatusResponse
GET  /goals/impacts    → DecisionImpactListResponse
POST /goal-evaluator   → GoalEvaluatorAction (discriminated on `action`)
POST /events           → EventIngestResponse
"""
from __future__ import annotations

from typing import Any, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from app.schemas.events import NormalizedEventIn, NormalizedEventOut
from app.schemas.rules import GoalRuleOut


# ---------------------------------------------------------------------------
# Output building blocks
# ---------------------------------------------------------------------------

class PendingWindowOut(BaseModel):
    """Event A happened; the goal is waiting for event B before window_end."""
    event_a_name: str
    event_a_time: str
    window_start: str
    window_end: str
    event_a_id: str


class GoalEvaluationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[str] = Field(
        default=None,
        description="Snapshot id; null for snapshots that were not persisted (what-if).",
    )
    goal_rule_id: str
    evaluated_at: str
    status: str = Field(description='"on_track" | "at_risk" | "off_track" | "completed"')
    completions_in_window: int
    required_in_window: int
    pending_windows: list[PendingWindowOut] = Field(default_factory=list)
    last_success_at: Optional[str] = None
    last_fail_at: Optional[str] = None
    last_fail_reason: Optional[str] = None
    confidence: float
    details: dict[str, Any] = Field(default_factory=dict)


class DecisionImpactOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[str] = None
    event_id: str
    goal_rule_id: str
    impact_type: str = Field(
        description=(
            '"window_created" | "window_completed" | "window_expired" '
            '| "gate_opened" | "gate_closed"'
        )
    )
    impact_details: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[str] = None


class GoalDiffOut(BaseModel):
    goal_id: str
    baseline_status: str
    simulated_status: str
    completions_delta: int


# ---------------------------------------------------------------------------
# Requests / responses
# ---------------------------------------------------------------------------

class EvaluateRequest(BaseModel):
    trigger_event_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("trigger_event_id", "triggerEventId"),
        description="Event that caused this pass; only its impacts are recorded.",
    )


class EvaluateResponse(BaseModel):
    evaluations: list[GoalEvaluationOut]
    impacts: list[DecisionImpactOut] = Field(
        description="Every impact computed in the pass (persisted or not).",
    )


class WhatIfRequest(BaseModel):
    # Emptiness is checked by the simulator so it surfaces as EMPTY_HYPOTHETICAL_SET.
    hypothetical_events: list[NormalizedEventIn] = Field(
        default_factory=list,
        validation_alias=AliasChoices("hypothetical_events", "hypotheticalEvents"),
    )


class WhatIfResponse(BaseModel):
    baseline: list[GoalEvaluationOut]
    simulated: list[GoalEvaluationOut]
    diff: list[GoalDiffOut]


class GoalStatusItem(BaseModel):
    rule: GoalRuleOut
    evaluation: Optional[GoalEvaluationOut] = None


class GoalStatusResponse(BaseModel):
    goals: list[GoalStatusItem]


class DecisionImpactListResponse(BaseModel):
    total: int
    items: list[DecisionImpactOut]


# ---------------------------------------------------------------------------
# Single-endpoint actions
# ---------------------------------------------------------------------------

class EvaluateAction(EvaluateRequest):
    action: Literal["evaluate"]


class WhatIfAction(WhatIfRequest):
    action: Literal["what_if"]


class GetStatusAction(BaseModel):
    action: Literal["get_status"]


# Discriminated on `action` at the route (Body(discriminator="action")).
GoalEvaluatorAction = Union[EvaluateAction, WhatIfAction, GetStatusAction]


class EventIngestResponse(BaseModel):
    """The stored event plus the evaluation pass it triggered."""
    event: NormalizedEventOut
    evaluation: EvaluateResponse
