"""
Rules router.

POST /rules   — author a goal rule (config validated for its kind)
GET  /rules   — list rules, priority DESC
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.db.base import get_db
from app.routers.serializers import rule_to_response
from app.schemas.common import ErrorResponse
from app.schemas.rules import GoalRuleCreate, GoalRuleListResponse, GoalRuleOut
from app.services.rule_registry import create_rule, list_rules

router = APIRouter(prefix="/rules", tags=["rules"])


@router.post(
    "",
    response_model=GoalRuleOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a goal rule",
    responses={422: {"model": ErrorResponse, "description": "Invalid rule_config for rule_type."}},
)
def post_rule(payload: GoalRuleCreate, db: Session = Depends(get_db)):
    rule = create_rule(
        db=db,
        name=payload.name,
        description=payload.description,
        rule_type=payload.rule_type,
        rule_config=payload.rule_config,
        rolling_window_days=payload.rolling_window_days,
        required_completions=payload.required_completions,
        is_active=payload.is_active,
        priority=payload.priority,
    )
    return rule_to_response(rule)


@router.get("", response_model=GoalRuleListResponse, summary="List goal rules")
def get_rules(
    include_inactive: bool = Query(default=False, description="Include disabled rules."),
    db: Session = Depends(get_db),
):
    rules = list_rules(db=db, include_inactive=include_inactive)
    return GoalRuleListResponse(total=len(rules), items=[rule_to_response(r) for r in rules])
