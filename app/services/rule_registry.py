"""
Minimal goal rule registry.

Rules are authored here; the evaluator itself only ever reads them.
Configs are checked on the way in, but a stored config that later turns
out malformed is still handled per rule at evaluation time.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from app.models.goal_rule import GoalRule
from app.services.rule_config import validate_new_rule_config

logger = logging.getLogger(__name__)


def create_rule(
    db: Session,
    name: str,
    rule_type: str,
    rule_config: dict[str, Any],
    description: Optional[str] = None,
    rolling_window_days: int = 7,
    required_completions: int = 1,
    is_active: bool = True,
    priority: int = 0,
) -> GoalRule:
    """Validate the config for its kind and persist the rule. Raises RuleConfigError."""
    validate_new_rule_config(rule_type, rule_config)
    rule = GoalRule(
        name=name,
        description=description,
        rule_type=rule_type,
        rule_config=json.dumps(rule_config),
        rolling_window_days=rolling_window_days,
        required_completions=required_completions,
        is_active=is_active,
        priority=priority,
    )
    db.add(rule)
    db.commit()
    db.refresh(rule)
    logger.info("Created %s rule %s (%s)", rule_type, rule.id, name)
    return rule


def list_rules(db: Session, include_inactive: bool = False) -> list[GoalRule]:
    q = db.query(GoalRule)
    if not include_inactive:
        q = q.filter(GoalRule.is_active == True)  # noqa: E712
    return q.order_by(GoalRule.priority.desc(), GoalRule.created_at.asc()).all()
