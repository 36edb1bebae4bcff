"""
Normalized event schemas.

POST /events   → NormalizedEventIn → EventIngestResponse (app.schemas.goals)
GET  /events   → EventListResponse
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator



class NormalizedEventIn(BaseModel):
    """A normalized event as produced by the activity parser or entered manually."""

    event_type: Annotated[str, Field(
        min_length=1,
        max_length=64,
        description="Broad category of the event.",
        examples=["meal", "training_session", "hormone_peak"],
    )]
    event_name: Annotated[str, Field(
        min_length=1,
        max_length=128,
        description="Specific event name matched by goal rules (case-insensitive).",
        examples=["protein_bolus", "GH_peak"],
    )]
    occurred_at: datetime = Field(
        description="When the event happened. Naive timestamps are read as UTC.",
        examples=["2026-02-20T08:30:00Z"],
    )
    magnitude: Optional[float] = Field(default=None, description="Optional numeric value.")
    confidence: float = Field(
        default=1.0, ge=0.0, le=1.0,
        description="Data quality of the event, 0..1.",
    )
    metadata: dict[str, Any] = Field(default_factory=dict)
    source_type: Optional[str] = Field(
        default=None, max_length=32,
        examples=["activity_log", "derived", "manual"],
    )
    source_id: Optional[str] = Field(default=None, max_length=64)

    @field_validator("event_type", "event_name", mode="before")
    @classmethod
    def strip_and_check_empty(cls, v: str) -> str:
        stripped = v.strip() if isinstance(v, str) else v
        if not stripped:
            raise ValueError("must not be empty after stripping whitespace")
        return stripped

    @field_validator("occurred_at")
    @classmethod
    def to_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


class NormalizedEventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    event_type: str
    event_name: str
    occurred_at: str
    magnitude: Optional[float] = None
    confidence: float
    metadata: dict[str, Any] = Field(default_factory=dict)
    source_type: Optional[str] = None
    source_id: Optional[str] = None
    created_at: str


class EventListResponse(BaseModel):
    total: int
    items: list[NormalizedEventOut]
