"""
Goal evaluation router.

POST /goals/evaluate   — recompute every active goal and append snapshots
POST /goals/what-if    — counterfactual diff (simulated pass not persisted)
GET  /goals/status     — latest snapshot per active goal
GET  /goals/impacts    — persisted audit trail (paginated, newest first)
POST /goal-evaluator   — single entry point, discriminated on `action`
"""
from __future__ import annotations

from typing import Annotated, Optional, Union

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from app.db.base import get_db
from app.routers.serializers import (
    impact_row_to_response,
    pass_to_response,
    status_to_response,
    to_event_input,
    what_if_to_response,
)
from app.schemas.common import ErrorResponse
from app.schemas.goals import (
    DecisionImpactListResponse,
    EvaluateAction,
    EvaluateRequest,
    EvaluateResponse,
    GoalEvaluatorAction,
    GoalStatusResponse,
    WhatIfAction,
    WhatIfRequest,
    WhatIfResponse,
)
from app.services.goal_evaluator import evaluate_goals, get_goal_status
from app.services.impact_recorder import list_impacts
from app.services.what_if import simulate_what_if

router = APIRouter(prefix="/goals", tags=["goals"])
action_router = APIRouter(tags=["goals"])

_FETCH_FAILED = {503: {"model": ErrorResponse, "description": "Rule/event store unreachable."}}


# ---------------------------------------------------------------------------
# Handlers shared by the REST routes and the action endpoint
# ---------------------------------------------------------------------------

def _evaluate(payload: EvaluateRequest, db: Session) -> EvaluateResponse:
    result = evaluate_goals(db=db, trigger_event_id=payload.trigger_event_id)
    return pass_to_response(result)


def _what_if(payload: WhatIfRequest, db: Session) -> WhatIfResponse:
    hypothetical = [to_event_input(e).to_fact(event_id="") for e in payload.hypothetical_events]
    result = simulate_what_if(db=db, hypothetical_events=hypothetical)
    return what_if_to_response(result)


def _status(db: Session) -> GoalStatusResponse:
    return status_to_response(get_goal_status(db))


# ---------------------------------------------------------------------------
# POST /goals/evaluate
# ---------------------------------------------------------------------------

@router.post(
    "/evaluate",
    response_model=EvaluateResponse,
    summary="Evaluate all active goals",
    responses=_FETCH_FAILED,
)
def evaluate(
    payload: Optional[EvaluateRequest] = None,
    db: Session = Depends(get_db),
):
    """
    Recompute every active goal from scratch and append one snapshot per goal.

    When `trigger_event_id` is given, only impacts attributed to that event
    are written to the audit trail; the response still lists every impact
    computed in the pass.
    """
    return _evaluate(payload or EvaluateRequest(), db)


# ---------------------------------------------------------------------------
# POST /goals/what-if
# ---------------------------------------------------------------------------

@router.post(
    "/what-if",
    response_model=WhatIfResponse,
    summary="Simulate hypothetical events",
    responses={
        422: {"model": ErrorResponse, "description": "Empty or oversized hypothetical set."},
        **_FETCH_FAILED,
    },
)
def what_if(payload: WhatIfRequest, db: Session = Depends(get_db)):
    """
    Evaluate goals as they are (baseline, persisted like a normal evaluate)
    and again with the hypothetical events merged in (not persisted).

    ### Diff fields
    | Field | Meaning |
    |---|---|
    | `baseline_status`   | status over real events |
    | `simulated_status`  | status with hypothetical events added |
    | `completions_delta` | simulated − baseline completions |
    """
    return _what_if(payload, db)


# ---------------------------------------------------------------------------
# GET /goals/status
# ---------------------------------------------------------------------------

@router.get(
    "/status",
    response_model=GoalStatusResponse,
    summary="Latest evaluation per active goal",
)
def status(db: Session = Depends(get_db)):
    """Active rules ordered by priority (highest first), each with its most recent snapshot or null."""
    return _status(db)


# ---------------------------------------------------------------------------
# GET /goals/impacts
# ---------------------------------------------------------------------------

@router.get(
    "/impacts",
    response_model=DecisionImpactListResponse,
    summary="List recorded decision impacts (newest first)",
)
def impacts(
    goal_rule_id: Optional[str] = Query(default=None, description="Filter by goal rule."),
    event_id: Optional[str] = Query(default=None, description="Filter by triggering event."),
    limit: int = Query(default=50, ge=1, le=200, description="Page size."),
    offset: int = Query(default=0, ge=0, description="Skip N items."),
    db: Session = Depends(get_db),
):
    total, items = list_impacts(
        db=db, goal_rule_id=goal_rule_id, event_id=event_id, limit=limit, offset=offset,
    )
    return DecisionImpactListResponse(
        total=total,
        items=[impact_row_to_response(i) for i in items],
    )


# ---------------------------------------------------------------------------
# POST /goal-evaluator
# ---------------------------------------------------------------------------

@action_router.post(
    "/goal-evaluator",
    response_model=Union[EvaluateResponse, WhatIfResponse, GoalStatusResponse],
    summary="Goal evaluator (action dispatch)",
    responses={
        422: {"model": ErrorResponse, "description": "Unknown action or invalid payload."},
        **_FETCH_FAILED,
    },
)
def goal_evaluator(
    payload: Annotated[GoalEvaluatorAction, Body(discriminator="action")],
    db: Session = Depends(get_db),
):
    """
    Single request/response entry point.

    | action | body | returns |
    |---|---|---|
    | `evaluate`   | `trigger_event_id?`   | `{evaluations, impacts}` |
    | `what_if`    | `hypothetical_events` | `{baseline, simulated, diff}` |
    | `get_status` | —                     | `{goals: [{rule, evaluation}]}` |
    """
    if isinstance(payload, EvaluateAction):
        return _evaluate(payload, db)
    if isinstance(payload, WhatIfAction):
        return _what_if(payload, db)
    return _status(db)
