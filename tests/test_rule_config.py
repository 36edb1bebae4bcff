"""
Tests for rule_config parsing and evaluator dispatch on config problems.

Covered:
  - each rule_type parses into its typed variant
  - malformed configs raise RuleConfigError (INVALID_RULE_CONFIG)
  - unknown kinds raise UnsupportedRuleTypeError
  - evaluate_rule turns every config problem into an off_track outcome
"""
from datetime import timedelta

import pytest

from app.core.errors import RuleConfigError, UnsupportedRuleTypeError
from app.models.goal_evaluation import GoalStatus
from app.services.evaluators import evaluate_rule
from app.services.goal_types import RuleSpec
from app.services.rule_config import (
    CompoundConfig,
    CountConfig,
    EventPattern,
    GateConfig,
    SequenceConfig,
    parse_rule_config,
    validate_new_rule_config,
)
from tests.conftest import NOW, make_event


def _rule(rule_type: str, rule_config) -> RuleSpec:
    return RuleSpec(id="r1", name="rule", rule_type=rule_type, rule_config=rule_config)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

class TestParseVariants:
    def test_sequence(self):
        config = parse_rule_config("sequence", {
            "events": [{"name": "meal", "type": "meal"}, {"name": "supplement"}],
            "min_hours": 1,
            "max_hours": 3.5,
        })
        assert isinstance(config, SequenceConfig)
        assert config.events == (EventPattern("meal", "meal"), EventPattern("supplement"))
        assert (config.min_hours, config.max_hours) == (1.0, 3.5)

    def test_sequence_min_hours_defaults_to_zero(self):
        config = parse_rule_config("sequence", {
            "events": [{"name": "a"}, {"name": "b"}], "max_hours": 2,
        })
        assert config.min_hours == 0.0

    def test_count(self):
        config = parse_rule_config("count", {
            "event_pattern": {"name": "workout"}, "required_count": 4, "rolling_days": 14,
        })
        assert config == CountConfig(EventPattern("workout"), required_count=4, rolling_days=14)

    def test_gate(self):
        config = parse_rule_config("gate", {
            "condition": {"event_name": "fasting", "min_hours_ago": 12},
            "gated_rule_id": "other",
        })
        assert isinstance(config, GateConfig)
        assert config.condition.min_hours_ago == 12.0
        assert config.condition.max_hours_ago is None

    def test_compound(self):
        config = parse_rule_config("compound", {"operator": "OR", "child_rule_ids": ["a", "b"]})
        assert config == CompoundConfig(operator="OR", child_rule_ids=("a", "b"))


class TestParseErrors:
    @pytest.mark.parametrize("raw", [
        {"events": "meal", "max_hours": 2},
        {"events": [{"name": "a"}, {"name": "b"}]},
        {"events": [{"name": "a"}, {"name": "b"}], "min_hours": 3, "max_hours": 2},
        {"events": [{"name": "a"}, {"name": "b"}], "min_hours": -1, "max_hours": 2},
        {"events": [{"name": ""}, {"name": "b"}], "max_hours": 2},
        {"events": [{"name": "a"}, {"name": "b"}], "max_hours": "two"},
    ])
    def test_bad_sequence(self, raw):
        with pytest.raises(RuleConfigError) as exc_info:
            parse_rule_config("sequence", raw)
        assert exc_info.value.code == "INVALID_RULE_CONFIG"
        assert exc_info.value.details == {"rule_type": "sequence"}

    def test_bad_count(self):
        with pytest.raises(RuleConfigError):
            parse_rule_config("count", {"event_pattern": {"name": "x"}, "required_count": -1})

    def test_bad_compound_operator(self):
        with pytest.raises(RuleConfigError):
            parse_rule_config("compound", {"operator": "XOR", "child_rule_ids": []})

    def test_config_must_be_an_object(self):
        with pytest.raises(RuleConfigError):
            parse_rule_config("count", "not json")

    def test_unknown_kind(self):
        with pytest.raises(UnsupportedRuleTypeError) as exc_info:
            parse_rule_config("streak", {})
        assert exc_info.value.message == "Unsupported rule type: streak"

    def test_authoring_rejects_single_event_sequence(self):
        with pytest.raises(RuleConfigError, match="at least 2 events"):
            validate_new_rule_config("sequence", {"events": [{"name": "a"}], "max_hours": 1})

    def test_authoring_checks_event_count_before_bounds(self):
        with pytest.raises(RuleConfigError) as exc_info:
            validate_new_rule_config("sequence", {"events": [{"name": "a"}]})
        assert exc_info.value.message == "Sequence requires at least 2 events"
        assert exc_info.value.code == "INVALID_RULE_CONFIG"


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

class TestDispatch:
    _events = [make_event("meal", NOW - timedelta(hours=1))]

    @pytest.mark.parametrize("rule_type,raw", [
        ("gate", {"condition": {"event_name": "fasting"}, "gated_rule_id": "x"}),
        ("compound", {"operator": "AND", "child_rule_ids": ["a"]}),
    ])
    def test_declared_but_unevaluated_kinds(self, rule_type, raw):
        outcome = evaluate_rule(_rule(rule_type, raw), self._events, NOW)
        assert outcome.status == GoalStatus.off_track
        assert outcome.last_fail_reason == f"Unsupported rule type: {rule_type}"
        assert outcome.details == {"rule_type": rule_type, "error": outcome.last_fail_reason}

    def test_unknown_kind_is_off_track(self):
        outcome = evaluate_rule(_rule("streak", {}), self._events, NOW)
        assert outcome.status == GoalStatus.off_track
        assert outcome.last_fail_reason == "Unsupported rule type: streak"

    @pytest.mark.parametrize("rule_type", ["gate", "compound"])
    def test_unevaluated_kinds_ignore_their_config(self, rule_type):
        for raw in ({}, None, "not json"):
            outcome = evaluate_rule(_rule(rule_type, raw), self._events, NOW)
            assert outcome.status == GoalStatus.off_track
            assert outcome.last_fail_reason == f"Unsupported rule type: {rule_type}"

    @pytest.mark.parametrize("raw", [
        {"events": []},
        {"events": [{"name": "meal"}]},
        {"events": [{"name": "meal"}], "max_hours": 2},
    ])
    def test_short_sequence_reports_event_count_before_bounds(self, raw):
        outcome = evaluate_rule(_rule("sequence", raw), self._events, NOW)
        assert outcome.status == GoalStatus.off_track
        assert outcome.last_fail_reason == "Sequence requires at least 2 events"
        assert outcome.impacts == []

    def test_malformed_config_is_off_track(self):
        outcome = evaluate_rule(_rule("sequence", {"events": "meal"}), self._events, NOW)
        assert outcome.status == GoalStatus.off_track
        assert outcome.last_fail_reason.startswith("Invalid rule config: ")
        assert outcome.impacts == []
