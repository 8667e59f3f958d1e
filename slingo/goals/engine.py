# -*- coding: utf-8 -*-
"""Goal adjustment — pure state transitions.

Both transitions take a ``CalorieGoalState`` and a timezone-aware ``now`` and
return a new state; the input state is never mutated. Persistence lives in
``storage.GoalAdjustmentStore``.

Each excess creates its own adjustment that lowers the goal by ``daily_reduction``
for ``ADJUSTMENT_PERIOD_DAYS`` days, independently of the others. The effective
goal is always ``base_goal`` minus all active reductions, floored at the minimum.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple
from uuid import uuid4

from .models import CalorieAdjustment, CalorieGoalState, GoalNotification
from .rules import (
    ADJUSTMENT_PERIOD_DAYS,
    MINIMUM_EXCESS_THRESHOLD,
    calculate_minimum_goal,
    compute_current_goal,
    days_since,
    is_same_day,
    is_valid_adjustment_time,
    round_to_ten,
)

logger = logging.getLogger(__name__)


class ExcessOutcome(str, Enum):
    CREATED = "created"
    BELOW_THRESHOLD = "below_threshold"
    ALREADY_REGISTERED_TODAY = "already_registered_today"
    AT_MINIMUM_GOAL = "at_minimum_goal"


@dataclass(frozen=True)
class ReconcileResult:
    state: CalorieGoalState
    changed: bool
    notification: Optional[GoalNotification] = None
    expired: Tuple[CalorieAdjustment, ...] = ()


@dataclass(frozen=True)
class ExcessResult:
    state: CalorieGoalState
    outcome: ExcessOutcome
    excess: float
    adjustment: Optional[CalorieAdjustment] = None

    @property
    def changed(self) -> bool:
        return self.adjustment is not None


def reconcile(state: CalorieGoalState, now: datetime) -> ReconcileResult:
    """Expire finished adjustments, count down the rest and flag pending notifications.

    At most one notification is returned; completion wins over a newly applied
    adjustment when both happen in the same pass.
    """
    new_state = state.model_copy(deep=True)
    changed = False
    completed = False
    applied = False
    kept = []
    expired = []

    for adj in new_state.active_adjustments:
        elapsed = days_since(adj.start_date, now)
        if elapsed >= ADJUSTMENT_PERIOD_DAYS + 1:
            logger.info("adjustment %s expired after %d days", adj.id, elapsed)
            expired.append(adj)
            changed = True
            completed = True
            continue

        # A start date slightly in the future (clock skew) still counts as day 0.
        remaining = ADJUSTMENT_PERIOD_DAYS - max(elapsed, 0)
        if remaining != adj.days_remaining:
            adj.days_remaining = remaining
            changed = True

        if (
            not adj.notification_shown
            and new_state.last_excess_date is not None
            and is_valid_adjustment_time(new_state.last_excess_date, now)
        ):
            adj.notification_shown = True
            applied = True
            changed = True
            logger.info("adjustment %s ready to be announced", adj.id)

        kept.append(adj)

    if not changed:
        return ReconcileResult(state=state, changed=False)

    new_state.active_adjustments = kept
    new_state.current_goal = compute_current_goal(
        new_state.base_goal, (a.daily_reduction for a in kept)
    )

    notification = None
    if completed:
        notification = GoalNotification.ADJUSTMENT_COMPLETED
    elif applied:
        notification = GoalNotification.ADJUSTMENT_APPLIED

    return ReconcileResult(
        state=new_state,
        changed=True,
        notification=notification,
        expired=tuple(expired),
    )


def register_excess(state: CalorieGoalState, total_calories: float, now: datetime) -> ExcessResult:
    """Create an adjustment when a day's intake exceeds the current goal by enough.

    Only the first qualifying call of a calendar day has any effect; later, larger
    totals on that same day are not re-evaluated.
    """
    excess = total_calories - state.current_goal

    if excess < MINIMUM_EXCESS_THRESHOLD:
        return ExcessResult(state=state, outcome=ExcessOutcome.BELOW_THRESHOLD, excess=excess)

    if state.last_excess_date is not None and is_same_day(state.last_excess_date, now):
        return ExcessResult(state=state, outcome=ExcessOutcome.ALREADY_REGISTERED_TODAY, excess=excess)

    daily_reduction = round_to_ten(excess / ADJUSTMENT_PERIOD_DAYS)
    new_goal = state.current_goal - daily_reduction
    minimum_goal = calculate_minimum_goal(state.base_goal)

    if new_goal < minimum_goal:
        if state.current_goal <= minimum_goal:
            return ExcessResult(state=state, outcome=ExcessOutcome.AT_MINIMUM_GOAL, excess=excess)
        new_goal = minimum_goal

    adjustment = CalorieAdjustment(
        id=_new_adjustment_id(state),
        start_date=now,
        excess_amount=excess,
        daily_reduction=daily_reduction,
        days_remaining=ADJUSTMENT_PERIOD_DAYS,
        previous_goal=state.current_goal,
        adjusted_goal=new_goal,
        notification_shown=False,
    )

    new_state = state.model_copy(deep=True)
    new_state.active_adjustments.append(adjustment)
    new_state.current_goal = new_goal
    new_state.last_excess_date = now

    logger.info(
        "excess of %.0f kcal registered: goal %d -> %d (-%d/day for %d days)",
        excess,
        state.current_goal,
        new_goal,
        daily_reduction,
        ADJUSTMENT_PERIOD_DAYS,
    )
    return ExcessResult(
        state=new_state,
        outcome=ExcessOutcome.CREATED,
        excess=excess,
        adjustment=adjustment,
    )


def _new_adjustment_id(state: CalorieGoalState) -> str:
    taken = {a.id for a in state.active_adjustments}
    while True:
        candidate = str(uuid4())
        if candidate not in taken:
            return candidate
