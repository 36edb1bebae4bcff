"""
Events router.

POST /events   — store one normalized event and evaluate with it as trigger
GET  /events   — list events in a time range (oldest first)
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.db.base import get_db
from app.routers.serializers import event_to_response, pass_to_response, to_event_input
from app.schemas.common import ErrorResponse, ValidationErrorResponse
from app.schemas.events import EventListResponse, NormalizedEventIn
from app.schemas.goals import EventIngestResponse
from app.services.event_store import ingest_event, list_events

router = APIRouter(prefix="/events", tags=["events"])


@router.post(
    "",
    response_model=EventIngestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Ingest a normalized event",
    responses={
        422: {"model": ValidationErrorResponse, "description": "Empty name or confidence out of range."},
        503: {"model": ErrorResponse, "description": "Rule/event store unreachable."},
    },
)
def create_event(payload: NormalizedEventIn, db: Session = Depends(get_db)):
    """
    Persist the event, then run a full evaluation pass with it as the trigger.
    Impacts attributed to this event are recorded in the audit trail.
    """
    ingested = ingest_event(db=db, item=to_event_input(payload))
    return EventIngestResponse(
        event=event_to_response(ingested.event),
        evaluation=pass_to_response(ingested.evaluation),
    )


@router.get(
    "",
    response_model=EventListResponse,
    summary="List normalized events",
)
def get_events(
    since: Optional[datetime] = Query(default=None, description="Inclusive lower bound."),
    until: Optional[datetime] = Query(default=None, description="Inclusive upper bound."),
    limit: int = Query(default=100, ge=1, le=500, description="Page size."),
    offset: int = Query(default=0, ge=0, description="Skip N items."),
    db: Session = Depends(get_db),
):
    total, items = list_events(db=db, since=since, until=until, limit=limit, offset=offset)
    return EventListResponse(total=total, items=[event_to_response(e) for e in items])
