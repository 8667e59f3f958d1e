# -*- coding: utf-8 -*-
"""Calorie goal auto-adjustment.

A day eaten well above the goal lowers the goal a little for the following
week instead of all at once; the goal never drops below 85% of its base.
"""

from .engine import ExcessOutcome, ExcessResult, ReconcileResult, reconcile, register_excess
from .models import CalorieAdjustment, CalorieGoalState, GoalNotification
from .storage import GoalAdjustmentStore, LoadOutcome

__all__ = [
    "CalorieAdjustment",
    "CalorieGoalState",
    "ExcessOutcome",
    "ExcessResult",
    "GoalAdjustmentStore",
    "GoalNotification",
    "LoadOutcome",
    "ReconcileResult",
    "reconcile",
    "register_excess",
]
