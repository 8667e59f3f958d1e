# -*- coding: utf-8 -*-
"""Goal adjustment — constants and small pure helpers."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Iterable

MINIMUM_EXCESS_THRESHOLD = 280  # kcal
ADJUSTMENT_PERIOD_DAYS = 7
MINIMUM_GOAL_PERCENTAGE = 0.85
ADJUSTMENT_START_HOUR = 6  # 06:00 local time
DEFAULT_BASE_GOAL = 2000

_SECONDS_PER_DAY = 24 * 60 * 60


def round_to_ten(value: float) -> int:
    """Round to the nearest multiple of 10, halves away from zero for positives."""
    return int(math.floor(value / 10 + 0.5)) * 10


def calculate_minimum_goal(base_goal: int) -> int:
    """Floor for the effective goal: 85% of the base, rounded up to a multiple of 10."""
    # round() guards against 0.85 not being exact in binary floating point.
    return int(math.ceil(round(base_goal * MINIMUM_GOAL_PERCENTAGE / 10, 6))) * 10


def compute_current_goal(base_goal: int, daily_reductions: Iterable[int]) -> int:
    return max(base_goal - sum(daily_reductions), calculate_minimum_goal(base_goal))


def to_local(value: datetime, now: datetime) -> datetime:
    """Express ``value`` in the same zone as ``now``.

    Naive datetimes are taken to already be in ``now``'s zone.
    """
    if value.tzinfo is None or now.tzinfo is None:
        return value.replace(tzinfo=now.tzinfo)
    return value.astimezone(now.tzinfo)


def is_same_day(a: datetime, b: datetime) -> bool:
    """Calendar-day equality, evaluated in ``b``'s zone."""
    return to_local(a, b).date() == b.date()


def is_valid_adjustment_time(last_excess_date: datetime, now: datetime) -> bool:
    """True once a new calendar day has started and it is past the morning hour."""
    if is_same_day(last_excess_date, now):
        return False
    return now.hour >= ADJUSTMENT_START_HOUR


def days_since(start: datetime, now: datetime) -> int:
    """Whole 24-hour periods elapsed between ``start`` and ``now``."""
    elapsed = (now - to_local(start, now)).total_seconds()
    return math.floor(elapsed / _SECONDS_PER_DAY)
