"""
Event store service: persist normalized events and trigger evaluation.

Public API
----------
ingest_event(db, item, now=None)        -> IngestedEvent   (commit + evaluate)
list_events(db, since, until, ...)      -> (total, page)
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from app.core.clock import as_utc
from app.models.normalized_event import NormalizedEvent
from app.services.goal_evaluator import EvaluationPass, evaluate_goals
from app.services.goal_types import EventFact

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class EventInput:
    """Lightweight DTO so the service layer stays schema-agnostic."""
    event_type: str
    event_name: str
    occurred_at: datetime
    magnitude: Optional[float] = None
    confidence: float = 1.0
    metadata: dict[str, Any] = field(default_factory=dict)
    source_type: Optional[str] = None
    source_id: Optional[str] = None

    def to_fact(self, event_id: str) -> EventFact:
        return EventFact(
            id=event_id,
            event_type=self.event_type,
            event_name=self.event_name,
            occurred_at=as_utc(self.occurred_at),
            magnitude=self.magnitude,
            confidence=self.confidence,
            metadata=dict(self.metadata),
            source_type=self.source_type,
            source_id=self.source_id,
        )


@dataclass
class IngestedEvent:
    event: NormalizedEvent
    evaluation: EvaluationPass


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

def ingest_event(
    db: Session,
    item: EventInput,
    now: Optional[datetime] = None,
) -> IngestedEvent:
    """
    Store the event, commit, then run an evaluation pass with the new event
    as its trigger so its impacts land in the audit trail.
    """
    event = NormalizedEvent(
        event_type=item.event_type,
        event_name=item.event_name,
        occurred_at=as_utc(item.occurred_at),
        magnitude=item.magnitude,
        confidence=item.confidence,
        event_metadata=json.dumps(item.metadata, default=str) if item.metadata else None,
        source_type=item.source_type,
        source_id=item.source_id,
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    logger.info("Ingested event %s (%s/%s)", event.id, event.event_type, event.event_name)

    evaluation = evaluate_goals(db, trigger_event_id=event.id, now=now)
    return IngestedEvent(event=event, evaluation=evaluation)


def list_events(
    db: Session,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[int, list[NormalizedEvent]]:
    """Return (total, page) of events ordered by occurred_at asc."""
    q = db.query(NormalizedEvent)
    if since is not None:
        q = q.filter(NormalizedEvent.occurred_at >= as_utc(since))
    if until is not None:
        q = q.filter(NormalizedEvent.occurred_at <= as_utc(until))
    total = q.count()
    items = (
        q.order_by(NormalizedEvent.occurred_at.asc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return total, items
