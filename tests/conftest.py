"""
Shared pytest fixtures and factories.

Uses a SQLite database so no Postgres is required for tests. Every table is
emptied after each test: an evaluation pass reads *all* active rules, so
rows left behind by one test would leak into the next.
"""
import json
import os
from datetime import datetime, timezone
from typing import Any, Optional

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_goals.db")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.db.base import Base, get_db
from app.main import app
from app.models.decision_impact import DecisionImpact
from app.models.goal_evaluation import GoalEvaluation
from app.models.goal_rule import GoalRule
from app.models.normalized_event import NormalizedEvent
from app.services.goal_types import EventFact, RuleSpec

SQLITE_URL = "sqlite:///./test_goals.db"

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Fixed evaluation instant for service-level tests.
NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_tables():
    yield
    db = TestingSessionLocal()
    try:
        for model in (DecisionImpact, GoalEvaluation, NormalizedEvent, GoalRule):
            db.query(model).delete()
        db.commit()
    finally:
        db.close()


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(db):
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Factories — pure values
# ---------------------------------------------------------------------------

def make_event(
    name: str,
    at: datetime,
    event_id: Optional[str] = None,
    event_type: str = "generic",
    confidence: Optional[float] = 1.0,
) -> EventFact:
    return EventFact(
        id=event_id or f"{name}@{at.isoformat()}",
        event_type=event_type,
        event_name=name,
        occurred_at=at,
        confidence=confidence,
    )


def sequence_rule(
    a: str = "meal",
    b: str = "supplement",
    min_hours: float = 0,
    max_hours: float = 2,
    required: int = 1,
    window_days: int = 7,
    rule_id: str = "seq-rule",
    a_type: Optional[str] = None,
    b_type: Optional[str] = None,
) -> RuleSpec:
    pattern_a: dict[str, Any] = {"name": a}
    pattern_b: dict[str, Any] = {"name": b}
    if a_type:
        pattern_a["type"] = a_type
    if b_type:
        pattern_b["type"] = b_type
    return RuleSpec(
        id=rule_id,
        name=f"{a} then {b}",
        rule_type="sequence",
        rule_config={"events": [pattern_a, pattern_b], "min_hours": min_hours, "max_hours": max_hours},
        rolling_window_days=window_days,
        required_completions=required,
    )


def count_rule(
    name: str = "workout",
    required_count: int = 10,
    rolling_days: int = 0,
    required: int = 1,
    window_days: int = 7,
    rule_id: str = "count-rule",
) -> RuleSpec:
    return RuleSpec(
        id=rule_id,
        name=f"{required_count}x {name}",
        rule_type="count",
        rule_config={
            "event_pattern": {"name": name},
            "required_count": required_count,
            "rolling_days": rolling_days,
        },
        rolling_window_days=window_days,
        required_completions=required,
    )


# ---------------------------------------------------------------------------
# Factories — persisted rows
# ---------------------------------------------------------------------------

def seed_rule(
    db,
    rule_type: str,
    rule_config: Any,
    name: str = "rule",
    window_days: Optional[int] = 7,
    required: Optional[int] = 1,
    priority: int = 0,
    is_active: bool = True,
) -> GoalRule:
    rule = GoalRule(
        name=name,
        rule_type=rule_type,
        rule_config=rule_config if isinstance(rule_config, str) else json.dumps(rule_config),
        rolling_window_days=window_days,
        required_completions=required,
        priority=priority,
        is_active=is_active,
    )
    db.add(rule)
    db.commit()
    db.refresh(rule)
    return rule


def seed_event(
    db,
    name: str,
    at: datetime,
    event_type: str = "generic",
    confidence: float = 1.0,
) -> NormalizedEvent:
    ev = NormalizedEvent(
        event_type=event_type,
        event_name=name,
        occurred_at=at,
        confidence=confidence,
    )
    db.add(ev)
    db.commit()
    db.refresh(ev)
    return ev
