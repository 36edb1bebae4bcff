"""
Goal rule registry schemas.

POST /rules → GoalRuleCreate → GoalRuleOut
GET  /rules → GoalRuleListResponse
"""
from __future__ import annotations

from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.goal_rule import RuleType


class GoalRuleCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    name: Annotated[str, Field(min_length=1, max_length=128, examples=["Protein → GH peak"])]
    description: Optional[str] = None
    rule_type: RuleType = Field(description='"sequence" | "count" | "gate" | "compound"')
    rule_config: dict[str, Any] = Field(
        description="Shape depends on rule_type.",
        examples=[{
            "events": [{"name": "protein_bolus"}, {"name": "GH_peak"}],
            "min_hours": 0,
            "max_hours": 3,
        }],
    )
    rolling_window_days: int = Field(default=7, ge=1, le=366)
    required_completions: int = Field(default=1, ge=1)
    is_active: bool = True
    priority: int = Field(default=0, description="Display ordering only; higher first.")


class GoalRuleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: Optional[str] = None
    rule_type: str
    rule_config: Any = None
    rolling_window_days: Optional[int] = None
    required_completions: Optional[int] = None
    is_active: bool
    priority: int
    created_at: str


class GoalRuleListResponse(BaseModel):
    total: int
    items: list[GoalRuleOut]
