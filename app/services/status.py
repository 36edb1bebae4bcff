"""
Status classifier — maps raw progress metrics to a GoalStatus.

Stateless: no transition table, every pass recomputes the label from the
current metrics only.

Sequence rules
  completed  completions >= required
  at_risk    some pending window closes in < AT_RISK_MARGIN
  on_track   pending windows exist, or at least one completion
  off_track  otherwise

Count rules
  completed  count >= required
  on_track   count >= 0.7 * required
  at_risk    count >= 0.3 * required
  off_track  otherwise
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Sequence

from app.models.goal_evaluation import GoalStatus
from app.services.goal_types import PendingWindow

AT_RISK_MARGIN = timedelta(hours=1)
COUNT_ON_TRACK_RATIO = 0.7
COUNT_AT_RISK_RATIO = 0.3


def classify_sequence(
    completions: int,
    required: int,
    pending: Sequence[PendingWindow],
    now: datetime,
) -> GoalStatus:
    if completions >= required:
        return GoalStatus.completed
    if pending:
        if any(w.window_end - now < AT_RISK_MARGIN for w in pending):
            return GoalStatus.at_risk
        return GoalStatus.on_track
    if completions > 0:
        return GoalStatus.on_track
    return GoalStatus.off_track


def classify_count(count: int, required: int) -> GoalStatus:
    if count >= required:
        return GoalStatus.completed
    ratio = count / required
    if ratio >= COUNT_ON_TRACK_RATIO:
        return GoalStatus.on_track
    if ratio >= COUNT_AT_RISK_RATIO:
        return GoalStatus.at_risk
    return GoalStatus.off_track
