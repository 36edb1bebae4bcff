from .normalized_event import NormalizedEvent
from .goal_rule import GoalRule, RuleType
from .goal_evaluation import GoalEvaluation, GoalStatus
from .decision_impact import DecisionImpact, ImpactType

__all__ = [
    "NormalizedEvent",
    "GoalRule",
    "RuleType",
    "GoalEvaluation",
    "GoalStatus",
    "DecisionImpact",
    "ImpactType",
]
