"""
ORM rows / service dataclasses → response schemas, and request schemas →
service DTOs. Shared by the goals, events and rules routers.
"""
from __future__ import annotations

import json
from typing import Any, Optional

from app.core.clock import isoformat
from app.models.decision_impact import DecisionImpact
from app.models.goal_evaluation import GoalEvaluation
from app.models.goal_rule import GoalRule
from app.models.normalized_event import NormalizedEvent
from app.schemas.events import NormalizedEventIn, NormalizedEventOut
from app.schemas.goals import (
    DecisionImpactOut,
    EvaluateResponse,
    GoalDiffOut,
    GoalEvaluationOut,
    GoalStatusItem,
    GoalStatusResponse,
    PendingWindowOut,
    WhatIfResponse,
)
from app.schemas.rules import GoalRuleOut
from app.services.event_store import EventInput
from app.services.goal_evaluator import EvaluationPass, GoalStatusEntry
from app.services.goal_types import EvaluationSnapshot, Impact
from app.services.what_if import WhatIfResult


def _parse_json(raw: Optional[str], default: Any) -> Any:
    if not raw:
        return default
    try:
        return json.loads(raw)
    except (ValueError, TypeError):
        return default


# ---------------------------------------------------------------------------
# Request → service
# ---------------------------------------------------------------------------

def to_event_input(payload: NormalizedEventIn) -> EventInput:
    return EventInput(
        event_type=payload.event_type,
        event_name=payload.event_name,
        occurred_at=payload.occurred_at,
        magnitude=payload.magnitude,
        confidence=payload.confidence,
        metadata=dict(payload.metadata),
        source_type=payload.source_type,
        source_id=payload.source_id,
    )


# ---------------------------------------------------------------------------
# Rows → responses
# ---------------------------------------------------------------------------

def rule_to_response(rule: GoalRule) -> GoalRuleOut:
    return GoalRuleOut(
        id=rule.id,
        name=rule.name,
        description=rule.description,
        rule_type=rule.rule_type,
        rule_config=_parse_json(rule.rule_config, rule.rule_config),
        rolling_window_days=rule.rolling_window_days,
        required_completions=rule.required_completions,
        is_active=rule.is_active,
        priority=rule.priority,
        created_at=isoformat(rule.created_at) or "",
    )


def event_to_response(ev: NormalizedEvent) -> NormalizedEventOut:
    metadata = _parse_json(ev.event_metadata, {})
    return NormalizedEventOut(
        id=ev.id,
        event_type=ev.event_type,
        event_name=ev.event_name,
        occurred_at=isoformat(ev.occurred_at) or "",
        magnitude=ev.magnitude,
        confidence=ev.confidence,
        metadata=metadata if isinstance(metadata, dict) else {},
        source_type=ev.source_type,
        source_id=ev.source_id,
        created_at=isoformat(ev.created_at) or "",
    )


def evaluation_row_to_response(row: GoalEvaluation) -> GoalEvaluationOut:
    details = _parse_json(row.details, {})
    return GoalEvaluationOut(
        id=row.id,
        goal_rule_id=row.goal_rule_id,
        evaluated_at=isoformat(row.evaluated_at) or "",
        status=row.status,
        completions_in_window=row.completions_in_window,
        required_in_window=row.required_in_window,
        pending_windows=[PendingWindowOut(**w) for w in _parse_json(row.pending_windows, [])],
        last_success_at=isoformat(row.last_success_at),
        last_fail_at=isoformat(row.last_fail_at),
        last_fail_reason=row.last_fail_reason,
        confidence=row.confidence,
        details=details if isinstance(details, dict) else {},
    )


def impact_row_to_response(row: DecisionImpact) -> DecisionImpactOut:
    details = _parse_json(row.impact_details, {})
    return DecisionImpactOut(
        id=row.id,
        event_id=row.event_id,
        goal_rule_id=row.goal_rule_id,
        impact_type=row.impact_type,
        impact_details=details if isinstance(details, dict) else {},
        created_at=isoformat(row.created_at),
    )


# ---------------------------------------------------------------------------
# Service results → responses
# ---------------------------------------------------------------------------

def snapshot_to_response(s: EvaluationSnapshot) -> GoalEvaluationOut:
    return GoalEvaluationOut(
        id=s.id,
        goal_rule_id=s.goal_rule_id,
        evaluated_at=isoformat(s.evaluated_at) or "",
        status=s.status.value,
        completions_in_window=s.completions_in_window,
        required_in_window=s.required_in_window,
        pending_windows=[PendingWindowOut(**w.to_dict()) for w in s.pending_windows],
        last_success_at=isoformat(s.last_success_at),
        last_fail_at=isoformat(s.last_fail_at),
        last_fail_reason=s.last_fail_reason,
        confidence=s.confidence,
        details=json.loads(json.dumps(s.details, default=str)),
    )


def impact_to_response(i: Impact) -> DecisionImpactOut:
    return DecisionImpactOut(
        event_id=i.event_id,
        goal_rule_id=i.goal_rule_id,
        impact_type=i.impact_type.value,
        impact_details=i.impact_details,
    )


def pass_to_response(result: EvaluationPass) -> EvaluateResponse:
    return EvaluateResponse(
        evaluations=[snapshot_to_response(s) for s in result.evaluations],
        impacts=[impact_to_response(i) for i in result.impacts],
    )


def what_if_to_response(result: WhatIfResult) -> WhatIfResponse:
    return WhatIfResponse(
        baseline=[snapshot_to_response(s) for s in result.baseline],
        simulated=[snapshot_to_response(s) for s in result.simulated],
        diff=[
            GoalDiffOut(
                goal_id=d.goal_id,
                baseline_status=d.baseline_status,
                simulated_status=d.simulated_status,
                completions_delta=d.completions_delta,
            )
            for d in result.diff
        ],
    )


def status_to_response(entries: list[GoalStatusEntry]) -> GoalStatusResponse:
    return GoalStatusResponse(
        goals=[
            GoalStatusItem(
                rule=rule_to_response(e.rule),
                evaluation=evaluation_row_to_response(e.evaluation) if e.evaluation else None,
            )
            for e in entries
        ]
    )
