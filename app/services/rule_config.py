"""
Typed rule configs.

`goal_rules.rule_config` is free-form JSON whose shape depends on
`rule_type`. `parse_rule_config` turns the pair into exactly one of
SequenceConfig | CountConfig | GateConfig | CompoundConfig, or raises
RuleConfigError. Evaluators only ever see the typed variant.

Shapes
------
  sequence : {events: [{name, type?}, ...], min_hours, max_hours}
  count    : {event_pattern: {name, type?}, required_count, rolling_days}
  gate     : {condition: {event_name, min_hours_ago?, max_hours_ago?,
              min_magnitude?}, gated_rule_id}
  compound : {operator: "AND" | "OR", child_rule_ids: [id, ...]}
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union

from app.core.errors import RuleConfigError, ShortSequenceError, UnsupportedRuleTypeError
from app.models.goal_rule import RuleType


# ---------------------------------------------------------------------------
# Config variants
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EventPattern:
    name: str
    type: Optional[str] = None

    def matches(self, event_name: str, event_type: str) -> bool:
        """Names compare case-insensitively; type must match exactly when set."""
        if event_name.lower() != self.name.lower():
            return False
        return not self.type or event_type == self.type

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name}
        if self.type:
            data["type"] = self.type
        return data


@dataclass(frozen=True)
class SequenceConfig:
    # Only the first two patterns are consulted by the evaluator.
    events: tuple[EventPattern, ...]
    min_hours: float
    max_hours: float


@dataclass(frozen=True)
class CountConfig:
    event_pattern: EventPattern
    required_count: int = 0   # 0 → fall back to rule.required_completions
    rolling_days: int = 0     # 0 → fall back to rule.rolling_window_days


@dataclass(frozen=True)
class GateCondition:
    event_name: str
    min_hours_ago: Optional[float] = None
    max_hours_ago: Optional[float] = None
    min_magnitude: Optional[float] = None


@dataclass(frozen=True)
class GateConfig:
    condition: GateCondition
    gated_rule_id: str


@dataclass(frozen=True)
class CompoundConfig:
    operator: str
    child_rule_ids: tuple[str, ...]


RuleConfig = Union[SequenceConfig, CountConfig, GateConfig, CompoundConfig]

COMPOUND_OPERATORS = ("AND", "OR")


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------

def _require_dict(value: Any, field: str, rule_type: str) -> dict:
    if not isinstance(value, dict):
        raise RuleConfigError(f"{field} must be an object", rule_type=rule_type)
    return value


def _number(value: Any, field: str, rule_type: str, default: Optional[float] = None) -> Optional[float]:
    if value is None:
        if default is None:
            raise RuleConfigError(f"{field} is required", rule_type=rule_type)
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise RuleConfigError(f"{field} must be a number", rule_type=rule_type)
    return float(value)


def _optional_number(value: Any, field: str, rule_type: str) -> Optional[float]:
    if value is None:
        return None
    return _number(value, field, rule_type)


def _non_negative_int(value: Any, field: str, rule_type: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise RuleConfigError(f"{field} must be a non-negative integer", rule_type=rule_type)
    return value


def _pattern(value: Any, field: str, rule_type: str) -> EventPattern:
    data = _require_dict(value, field, rule_type)
    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        raise RuleConfigError(f"{field}.name must be a non-empty string", rule_type=rule_type)
    type_ = data.get("type")
    if type_ is not None and not isinstance(type_, str):
        raise RuleConfigError(f"{field}.type must be a string", rule_type=rule_type)
    return EventPattern(name=name.strip(), type=type_ or None)


# ---------------------------------------------------------------------------
# Per-kind parsers
# ---------------------------------------------------------------------------

def _parse_sequence(raw: dict) -> SequenceConfig:
    kind = RuleType.sequence.value
    events = raw.get("events")
    if not isinstance(events, list):
        raise RuleConfigError("events must be a list", rule_type=kind)
    if len(events) < 2:
        raise ShortSequenceError(kind)
    patterns = tuple(_pattern(e, f"events[{i}]", kind) for i, e in enumerate(events))
    min_hours = _number(raw.get("min_hours"), "min_hours", kind, default=0.0)
    max_hours = _number(raw.get("max_hours"), "max_hours", kind)
    if min_hours < 0 or max_hours < min_hours:
        raise RuleConfigError(
            "expected 0 <= min_hours <= max_hours", rule_type=kind,
        )
    return SequenceConfig(events=patterns, min_hours=min_hours, max_hours=max_hours)


def _parse_count(raw: dict) -> CountConfig:
    kind = RuleType.count.value
    return CountConfig(
        event_pattern=_pattern(raw.get("event_pattern"), "event_pattern", kind),
        required_count=_non_negative_int(raw.get("required_count"), "required_count", kind),
        rolling_days=_non_negative_int(raw.get("rolling_days"), "rolling_days", kind),
    )


def _parse_gate(raw: dict) -> GateConfig:
    kind = RuleType.gate.value
    cond = _require_dict(raw.get("condition"), "condition", kind)
    event_name = cond.get("event_name")
    if not isinstance(event_name, str) or not event_name:
        raise RuleConfigError("condition.event_name must be a non-empty string", rule_type=kind)
    gated = raw.get("gated_rule_id")
    if not isinstance(gated, str) or not gated:
        raise RuleConfigError("gated_rule_id must be a non-empty string", rule_type=kind)
    return GateConfig(
        condition=GateCondition(
            event_name=event_name,
            min_hours_ago=_optional_number(cond.get("min_hours_ago"), "condition.min_hours_ago", kind),
            max_hours_ago=_optional_number(cond.get("max_hours_ago"), "condition.max_hours_ago", kind),
            min_magnitude=_optional_number(cond.get("min_magnitude"), "condition.min_magnitude", kind),
        ),
        gated_rule_id=gated,
    )


def _parse_compound(raw: dict) -> CompoundConfig:
    kind = RuleType.compound.value
    operator = raw.get("operator")
    if operator not in COMPOUND_OPERATORS:
        raise RuleConfigError('operator must be "AND" or "OR"', rule_type=kind)
    children = raw.get("child_rule_ids")
    if not isinstance(children, list) or not all(isinstance(c, str) for c in children):
        raise RuleConfigError("child_rule_ids must be a list of rule ids", rule_type=kind)
    return CompoundConfig(operator=operator, child_rule_ids=tuple(children))


_PARSERS = {
    RuleType.sequence.value: _parse_sequence,
    RuleType.count.value: _parse_count,
    RuleType.gate.value: _parse_gate,
    RuleType.compound.value: _parse_compound,
}


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

def parse_rule_config(rule_type: str, raw: Any) -> RuleConfig:
    """
    Build the typed config for `rule_type`.
    Raises UnsupportedRuleTypeError for unknown kinds and RuleConfigError
    for shapes that don't match the kind.
    """
    parser = _PARSERS.get(rule_type)
    if parser is None:
        raise UnsupportedRuleTypeError(rule_type)
    return parser(_require_dict(raw, "rule_config", rule_type))


def validate_new_rule_config(rule_type: str, raw: Any) -> RuleConfig:
    """
    Check used when a rule is authored. Gate and compound shapes are
    validated here even though evaluation reports them as unsupported.
    """
    return parse_rule_config(rule_type, raw)
