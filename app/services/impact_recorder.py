"""
Impact recorder — append-only audit trail of why a goal's state moved.

Evaluators report impacts for every event in the window; only the ones
attributed to the event that triggered the pass are written. The filter
lives here, at the persistence boundary, and nowhere else.
"""
from __future__ import annotations

import json
import logging
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from app.models.decision_impact import DecisionImpact
from app.services.goal_types import Impact

logger = logging.getLogger(__name__)


def select_trigger_impacts(
    impacts: Sequence[Impact],
    trigger_event_id: Optional[str],
) -> list[Impact]:
    if not trigger_event_id:
        return []
    return [i for i in impacts if i.event_id == trigger_event_id]


def record_trigger_impacts(
    db: Session,
    impacts: Sequence[Impact],
    trigger_event_id: Optional[str],
) -> list[DecisionImpact]:
    """
    Stage DecisionImpact rows for the trigger's impacts.
    Adds to the session only; the caller commits with the rest of the pass.
    """
    rows = [
        DecisionImpact(
            event_id=impact.event_id,
            goal_rule_id=impact.goal_rule_id,
            impact_type=impact.impact_type.value,
            impact_details=json.dumps(impact.impact_details, default=str),
        )
        for impact in select_trigger_impacts(impacts, trigger_event_id)
    ]
    db.add_all(rows)
    if rows:
        logger.info(
            "Recording %d impact(s) for trigger event %s", len(rows), trigger_event_id
        )
    return rows


def list_impacts(
    db: Session,
    goal_rule_id: Optional[str] = None,
    event_id: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[int, list[DecisionImpact]]:
    """Return (total, page) of DecisionImpacts ordered by created_at desc."""
    q = db.query(DecisionImpact)
    if goal_rule_id:
        q = q.filter(DecisionImpact.goal_rule_id == goal_rule_id)
    if event_id:
        q = q.filter(DecisionImpact.event_id == event_id)
    total = q.count()
    items = (
        q.order_by(DecisionImpact.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return total, items
