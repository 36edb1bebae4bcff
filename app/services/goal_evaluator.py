"""
Evaluation orchestrator — one pass over every active goal rule.

Pass
----
  1. Load active rules, priority DESC.
  2. Load the events covering the widest window any rule needs — once,
     shared read-only by every rule in the pass.
  3. Run each rule through its evaluator (app.services.evaluators).
  4. Confidence per rule = mean confidence of the events its impacts point at.
  5. Insert one goal_evaluations row per rule (never update).
  6. If a trigger event was given, insert the impacts attributed to it.

Failure model
-------------
A rule with a bad config is reported as off_track and the pass continues.
A failure to read rules or events aborts the pass before anything is
written. Steps 5 and 6 commit together or not at all.

Public API
----------
evaluate_rules(rules, events, now)                 -> (snapshots, impacts)  pure
evaluate_goals(db, trigger_event_id=None, now=None) -> EvaluationPass
get_goal_status(db)                                -> list[GoalStatusEntry]
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.clock import as_utc, utcnow
from app.core.config import settings
from app.core.errors import EvaluationPersistError, UpstreamFetchError
from app.models.goal_evaluation import GoalEvaluation
from app.models.goal_rule import GoalRule
from app.models.normalized_event import NormalizedEvent
from app.services.evaluators import evaluate_rule, rule_window_days
from app.services.goal_types import (
    EvaluationSnapshot,
    EventFact,
    Impact,
    RuleOutcome,
    RuleSpec,
)
from app.services.impact_recorder import record_trigger_impacts

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class EvaluationPass:
    evaluated_at: datetime
    rules: list[RuleSpec] = field(default_factory=list)
    events: list[EventFact] = field(default_factory=list)
    evaluations: list[EvaluationSnapshot] = field(default_factory=list)
    impacts: list[Impact] = field(default_factory=list)   # every impact computed
    recorded_impacts: int = 0                              # rows actually written


@dataclass
class GoalStatusEntry:
    rule: GoalRule
    evaluation: Optional[GoalEvaluation]


# ---------------------------------------------------------------------------
# Row → value conversion
# ---------------------------------------------------------------------------

def _decode_json(raw: Optional[str], default: Any) -> Any:
    if raw is None:
        return default
    try:
        return json.loads(raw)
    except (ValueError, TypeError):
        # Leave it undecoded; the config parser reports the problem per rule.
        return raw


def rule_from_row(row: GoalRule) -> RuleSpec:
    return RuleSpec(
        id=row.id,
        name=row.name,
        description=row.description,
        rule_type=row.rule_type,
        rule_config=_decode_json(row.rule_config, {}),
        rolling_window_days=row.rolling_window_days or settings.DEFAULT_WINDOW_DAYS,
        required_completions=row.required_completions or 1,
        priority=row.priority or 0,
    )


def event_from_row(row: NormalizedEvent) -> EventFact:
    metadata = _decode_json(row.event_metadata, {})
    return EventFact(
        id=row.id,
        event_type=row.event_type,
        event_name=row.event_name,
        occurred_at=as_utc(row.occurred_at),
        magnitude=row.magnitude,
        confidence=row.confidence,
        metadata=metadata if isinstance(metadata, dict) else {},
        source_type=row.source_type,
        source_id=row.source_id,
    )


# ---------------------------------------------------------------------------
# Store reads (the only suspension points of a pass)
# ---------------------------------------------------------------------------

def load_active_rules(db: Session) -> list[RuleSpec]:
    try:
        rows: list[GoalRule] = (
            db.query(GoalRule)
            .filter(GoalRule.is_active == True)  # noqa: E712
            .order_by(GoalRule.priority.desc())
            .all()
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise UpstreamFetchError("rules", str(exc)) from exc
    return [rule_from_row(r) for r in rows]


def load_events_since(db: Session, since: datetime) -> list[EventFact]:
    try:
        rows: list[NormalizedEvent] = (
            db.query(NormalizedEvent)
            .filter(NormalizedEvent.occurred_at >= since)
            .order_by(NormalizedEvent.occurred_at.asc())
            .all()
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise UpstreamFetchError("events", str(exc)) from exc
    return [event_from_row(r) for r in rows]


def widest_window_days(rules: Sequence[RuleSpec]) -> int:
    if not rules:
        return settings.DEFAULT_WINDOW_DAYS
    return max(rule_window_days(r) for r in rules)


# ---------------------------------------------------------------------------
# Pure pass
# ---------------------------------------------------------------------------

def average_confidence(impacts: Sequence[Impact], events_by_id: dict[str, EventFact]) -> float:
    """Mean confidence of the distinct events the impacts reference; 1.0 if none."""
    implicated = {i.event_id for i in impacts if i.event_id in events_by_id}
    if not implicated:
        return 1.0
    values = [
        events_by_id[eid].confidence if events_by_id[eid].confidence is not None else 1.0
        for eid in implicated
    ]
    return sum(values) / len(values)


def _snapshot(
    rule: RuleSpec,
    outcome: RuleOutcome,
    events_by_id: dict[str, EventFact],
    now: datetime,
) -> EvaluationSnapshot:
    return EvaluationSnapshot(
        goal_rule_id=rule.id,
        evaluated_at=now,
        status=outcome.status,
        completions_in_window=outcome.completions_in_window,
        required_in_window=outcome.required_in_window,
        pending_windows=list(outcome.pending_windows),
        last_success_at=outcome.last_success_at,
        last_fail_at=outcome.last_fail_at,
        last_fail_reason=outcome.last_fail_reason,
        confidence=average_confidence(outcome.impacts, events_by_id),
        details=dict(outcome.details),
    )


def evaluate_rules(
    rules: Sequence[RuleSpec],
    events: Sequence[EventFact],
    now: datetime,
) -> tuple[list[EvaluationSnapshot], list[Impact]]:
    """Evaluate every rule against one shared event set. No I/O."""
    events_by_id = {e.id: e for e in events}
    snapshots: list[EvaluationSnapshot] = []
    impacts: list[Impact] = []
    for rule in rules:
        outcome = evaluate_rule(rule, events, now)
        if outcome.last_fail_reason:
            logger.debug("Rule %s (%s): %s", rule.id, rule.name, outcome.last_fail_reason)
        snapshots.append(_snapshot(rule, outcome, events_by_id, now))
        impacts.extend(outcome.impacts)
    return snapshots, impacts


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

def _snapshot_row(s: EvaluationSnapshot) -> GoalEvaluation:
    return GoalEvaluation(
        goal_rule_id=s.goal_rule_id,
        evaluated_at=s.evaluated_at,
        status=s.status.value,
        completions_in_window=s.completions_in_window,
        required_in_window=s.required_in_window,
        pending_windows=json.dumps([w.to_dict() for w in s.pending_windows]),
        last_success_at=s.last_success_at,
        last_fail_at=s.last_fail_at,
        last_fail_reason=s.last_fail_reason,
        confidence=s.confidence,
        details=json.dumps(s.details, default=str),
    )


# ---------------------------------------------------------------------------
# Public — main entry point
# ---------------------------------------------------------------------------

def fetch_pass_inputs(db: Session, now: datetime) -> tuple[list[RuleSpec], list[EventFact]]:
    """Active rules plus the single event fetch that covers all of them."""
    rules = load_active_rules(db)
    if not rules:
        return [], []
    since = now - timedelta(days=widest_window_days(rules))
    return rules, load_events_since(db, since)


def evaluate_goals(
    db: Session,
    trigger_event_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> EvaluationPass:
    """
    Recompute every active goal from scratch and append the snapshots.
    Raises UpstreamFetchError (nothing written) or EvaluationPersistError
    (rolled back).
    """
    now = as_utc(now) if now is not None else utcnow()
    rules, events = fetch_pass_inputs(db, now)
    result = EvaluationPass(evaluated_at=now, rules=rules, events=events)
    if not rules:
        logger.info("No active goal rules; nothing to evaluate")
        return result

    result.evaluations, result.impacts = evaluate_rules(rules, events, now)

    try:
        rows = [_snapshot_row(s) for s in result.evaluations]
        db.add_all(rows)
        recorded = record_trigger_impacts(db, result.impacts, trigger_event_id)
        db.flush()
        for snapshot, row in zip(result.evaluations, rows):
            snapshot.id = row.id
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise EvaluationPersistError(str(exc)) from exc

    result.recorded_impacts = len(recorded)
    logger.info(
        "Evaluated %d rule(s) over %d event(s); %d impact(s) computed, %d recorded (trigger=%s)",
        len(rules), len(events), len(result.impacts), result.recorded_impacts, trigger_event_id,
    )
    return result


# ---------------------------------------------------------------------------
# Public — query helpers
# ---------------------------------------------------------------------------

def latest_evaluation(db: Session, goal_rule_id: str) -> Optional[GoalEvaluation]:
    return (
        db.query(GoalEvaluation)
        .filter(GoalEvaluation.goal_rule_id == goal_rule_id)
        .order_by(GoalEvaluation.evaluated_at.desc())
        .first()
    )


def get_goal_status(db: Session) -> list[GoalStatusEntry]:
    """Latest snapshot (or None) for each active rule, priority DESC."""
    try:
        rules: list[GoalRule] = (
            db.query(GoalRule)
            .filter(GoalRule.is_active == True)  # noqa: E712
            .order_by(GoalRule.priority.desc())
            .all()
        )
        return [GoalStatusEntry(rule=r, evaluation=latest_evaluation(db, r.id)) for r in rules]
    except SQLAlchemyError as exc:
        db.rollback()
        raise UpstreamFetchError("goal status", str(exc)) from exc
