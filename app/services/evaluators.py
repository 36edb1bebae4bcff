"""
Rule evaluators — pure functions, one per evaluable rule kind.

    evaluate_rule(rule, events, now) -> RuleOutcome

No session, no wall clock: `now` is always passed in, so the same
(rule, events, now) triple always yields the same outcome. Each evaluator
returns the full impact list for every event it touched; deciding which
impacts get persisted is the orchestrator's job.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, Sequence

from app.core.errors import RuleConfigError, ShortSequenceError, UnsupportedRuleTypeError
from app.models.decision_impact import ImpactType
from app.models.goal_evaluation import GoalStatus
from app.models.goal_rule import RuleType
from app.services.goal_types import EventFact, Impact, PendingWindow, RuleOutcome, RuleSpec
from app.services.status import classify_count, classify_sequence
from app.services.rule_config import (
    CountConfig,
    EventPattern,
    SequenceConfig,
    parse_rule_config,
)

UNEVALUATED_RULE_TYPES = (RuleType.gate.value, RuleType.compound.value)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _matching(events: Iterable[EventFact], pattern: EventPattern) -> list[EventFact]:
    hits = [e for e in events if pattern.matches(e.event_name, e.event_type)]
    return sorted(hits, key=lambda e: e.occurred_at)


def _fmt_hours(value: float) -> str:
    return f"{value:g}"


def failed_outcome(rule: RuleSpec, reason: str) -> RuleOutcome:
    """Configuration problem: the goal is off track, the pass carries on."""
    return RuleOutcome(
        status=GoalStatus.off_track,
        required_in_window=rule.required_completions,
        last_fail_reason=reason,
        details={"rule_type": rule.rule_type, "error": reason},
    )


# ---------------------------------------------------------------------------
# Sequence — A followed by B within [min_hours, max_hours]
# ---------------------------------------------------------------------------

def evaluate_sequence(
    rule: RuleSpec,
    config: SequenceConfig,
    events: Sequence[EventFact],
    now: datetime,
) -> RuleOutcome:
    """
    Greedy first-fit: A-events are walked oldest first and each takes the
    earliest still-unused B inside its tolerance window (bounds inclusive).
    A B-event closes at most one window.
    """
    pattern_a, pattern_b = config.events[0], config.events[1]
    min_delta = timedelta(hours=config.min_hours)
    max_delta = timedelta(hours=config.max_hours)
    window_hours = f"{_fmt_hours(config.min_hours)}..{_fmt_hours(config.max_hours)}"

    window_start = now - timedelta(days=rule.rolling_window_days)
    in_window = [e for e in events if e.occurred_at >= window_start]
    a_events = _matching(in_window, pattern_a)
    b_events = _matching(in_window, pattern_b)

    completions = 0
    last_success = None
    last_fail = None
    last_fail_reason = None
    pending: list[PendingWindow] = []
    impacts: list[Impact] = []
    used_b: set[str] = set()

    for a in a_events:
        open_at = a.occurred_at + min_delta
        close_at = a.occurred_at + max_delta

        match = next(
            (
                b for b in b_events
                if b.id not in used_b and open_at <= b.occurred_at <= close_at
            ),
            None,
        )

        if match is not None:
            used_b.add(match.id)
            completions += 1
            last_success = match.occurred_at
            impacts.append(Impact(
                event_id=match.id,
                goal_rule_id=rule.id,
                impact_type=ImpactType.window_completed,
                impact_details={
                    "triggered_by": a.id,
                    "sequence": [pattern_a.name, pattern_b.name],
                    "window_hours": window_hours,
                    "window_start": open_at.isoformat(),
                    "window_end": close_at.isoformat(),
                },
            ))
        elif close_at > now:
            pending.append(PendingWindow(
                event_a_name=pattern_a.name,
                event_a_time=a.occurred_at,
                window_start=open_at,
                window_end=close_at,
                event_a_id=a.id,
            ))
            impacts.append(Impact(
                event_id=a.id,
                goal_rule_id=rule.id,
                impact_type=ImpactType.window_created,
                impact_details={
                    "waiting_for": pattern_b.name,
                    "window_end": close_at.isoformat(),
                },
            ))
        else:
            last_fail = close_at
            last_fail_reason = (
                f"{pattern_b.name} did not occur within "
                f"{_fmt_hours(config.min_hours)}-{_fmt_hours(config.max_hours)}h "
                f"after {pattern_a.name}"
            )
            impacts.append(Impact(
                event_id=a.id,
                goal_rule_id=rule.id,
                impact_type=ImpactType.window_expired,
                impact_details={
                    "expected": pattern_b.name,
                    "window_end": close_at.isoformat(),
                },
            ))

    return RuleOutcome(
        status=classify_sequence(completions, rule.required_completions, pending, now),
        completions_in_window=completions,
        required_in_window=rule.required_completions,
        pending_windows=pending,
        last_success_at=last_success,
        last_fail_at=last_fail,
        last_fail_reason=last_fail_reason,
        impacts=impacts,
        details={
            "rule_type": rule.rule_type,
            "sequence": [pattern_a.name, pattern_b.name],
            "window_hours": window_hours,
            "a_events": len(a_events),
            "b_events": len(b_events),
        },
    )


# ---------------------------------------------------------------------------
# Count — N occurrences of one pattern in a rolling window
# ---------------------------------------------------------------------------

def count_window_days(rule: RuleSpec, config: CountConfig) -> int:
    return config.rolling_days or rule.rolling_window_days


def evaluate_count(
    rule: RuleSpec,
    config: CountConfig,
    events: Sequence[EventFact],
    now: datetime,
) -> RuleOutcome:
    window_days = count_window_days(rule, config)
    window_start = now - timedelta(days=window_days)
    hits = _matching(
        (e for e in events if e.occurred_at >= window_start),
        config.event_pattern,
    )
    count = len(hits)
    required = config.required_count or rule.required_completions

    return RuleOutcome(
        status=classify_count(count, required),
        completions_in_window=count,
        required_in_window=required,
        last_success_at=hits[-1].occurred_at if hits else None,
        details={
            "rule_type": rule.rule_type,
            "event_pattern": config.event_pattern.to_dict(),
            "window_days": window_days,
        },
    )


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

def evaluate_rule(
    rule: RuleSpec,
    events: Sequence[EventFact],
    now: datetime,
) -> RuleOutcome:
    """
    Parse the rule's config and run the matching evaluator.
    Config problems and unevaluated kinds become an off_track outcome with
    a reason; they never raise.
    """
    if rule.rule_type in UNEVALUATED_RULE_TYPES:
        # Declared kinds with no agreed semantics yet; the config is not read.
        return failed_outcome(rule, f"Unsupported rule type: {rule.rule_type}")

    try:
        config = parse_rule_config(rule.rule_type, rule.rule_config)
    except (UnsupportedRuleTypeError, ShortSequenceError) as exc:
        return failed_outcome(rule, exc.message)
    except RuleConfigError as exc:
        return failed_outcome(rule, f"Invalid rule config: {exc.message}")

    if isinstance(config, SequenceConfig):
        return evaluate_sequence(rule, config, events, now)
    if isinstance(config, CountConfig):
        return evaluate_count(rule, config, events, now)
    raise TypeError(f"unhandled rule config variant: {type(config).__name__}")


def rule_window_days(rule: RuleSpec) -> int:
    """Days of history this rule needs (count rules may widen the rule window)."""
    try:
        config = parse_rule_config(rule.rule_type, rule.rule_config)
    except RuleConfigError:
        return rule.rolling_window_days
    if isinstance(config, CountConfig):
        return max(count_window_days(rule, config), rule.rolling_window_days)
    return rule.rolling_window_days
