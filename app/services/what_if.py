"""
What-if simulator — counterfactual re-evaluation.

  baseline  : a normal evaluation pass over the real events (persisted
              exactly like POST /goals/evaluate, no trigger)
  simulated : the same rules over real + hypothetical events
              (never persisted, hypothetical ids are synthetic)
  diff      : per goal, status before/after and the completions delta
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from app.core.clock import as_utc, utcnow
from app.core.config import settings
from app.core.errors import EmptyHypotheticalSetError, TooManyHypotheticalEventsError
from app.services.goal_evaluator import evaluate_goals, evaluate_rules
from app.services.goal_types import EvaluationSnapshot, EventFact

logger = logging.getLogger(__name__)

HYPOTHETICAL_ID_PREFIX = "hypothetical-"


@dataclass
class GoalDiff:
    goal_id: str
    baseline_status: str
    simulated_status: str
    completions_delta: int


@dataclass
class WhatIfResult:
    baseline: list[EvaluationSnapshot]
    simulated: list[EvaluationSnapshot]
    diff: list[GoalDiff]


def assign_hypothetical_ids(events: Sequence[EventFact]) -> list[EventFact]:
    """Give each hypothetical event a synthetic id that can never hit the store."""
    return [
        replace(e, id=f"{HYPOTHETICAL_ID_PREFIX}{i}", occurred_at=as_utc(e.occurred_at))
        for i, e in enumerate(events)
    ]


def merge_events(real: Sequence[EventFact], hypothetical: Sequence[EventFact]) -> list[EventFact]:
    return sorted([*real, *hypothetical], key=lambda e: e.occurred_at)


def diff_snapshots(
    baseline: Sequence[EvaluationSnapshot],
    simulated: Sequence[EvaluationSnapshot],
) -> list[GoalDiff]:
    by_rule = {b.goal_rule_id: b for b in baseline}
    diff = []
    for sim in simulated:
        base = by_rule.get(sim.goal_rule_id)
        diff.append(GoalDiff(
            goal_id=sim.goal_rule_id,
            baseline_status=base.status.value if base else "unknown",
            simulated_status=sim.status.value,
            completions_delta=sim.completions_in_window - (base.completions_in_window if base else 0),
        ))
    return diff


def simulate_what_if(
    db: Session,
    hypothetical_events: Sequence[EventFact],
    now: Optional[datetime] = None,
) -> WhatIfResult:
    """
    Run baseline + simulated passes and diff them.
    Rejects an empty (or oversized) hypothetical set before touching the store.
    """
    if not hypothetical_events:
        raise EmptyHypotheticalSetError()
    if len(hypothetical_events) > settings.MAX_HYPOTHETICAL_EVENTS:
        raise TooManyHypotheticalEventsError(
            settings.MAX_HYPOTHETICAL_EVENTS, len(hypothetical_events)
        )

    now = as_utc(now) if now is not None else utcnow()
    baseline = evaluate_goals(db, now=now)

    simulated_events = merge_events(baseline.events, assign_hypothetical_ids(hypothetical_events))
    simulated, _ = evaluate_rules(baseline.rules, simulated_events, now)

    diff = diff_snapshots(baseline.evaluations, simulated)
    changed = sum(1 for d in diff if d.baseline_status != d.simulated_status)
    logger.info(
        "What-if over %d hypothetical event(s): %d goal(s), %d status change(s)",
        len(hypothetical_events), len(diff), changed,
    )
    return WhatIfResult(baseline=baseline.evaluations, simulated=simulated, diff=diff)
