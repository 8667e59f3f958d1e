# -*- coding: utf-8 -*-
"""Goal adjustment — Pydantic models.

Field aliases are camelCase so that ``model_dump_json(by_alias=True)`` yields the
persisted document layout used by the mobile client.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .rules import ADJUSTMENT_PERIOD_DAYS, DEFAULT_BASE_GOAL


class GoalNotification(str, Enum):
    """Modal the presentation layer should show after a reconciliation pass."""

    ADJUSTMENT_APPLIED = "adjustment"
    ADJUSTMENT_COMPLETED = "completion"


class CalorieAdjustment(BaseModel):
    id: str = Field(..., min_length=1)
    start_date: datetime
    excess_amount: float = Field(..., ge=0)
    daily_reduction: int = Field(..., gt=0, multiple_of=10)
    days_remaining: int = Field(ADJUSTMENT_PERIOD_DAYS, ge=0, le=ADJUSTMENT_PERIOD_DAYS)
    previous_goal: int
    adjusted_goal: int
    notification_shown: bool = False

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CalorieGoalState(BaseModel):
    base_goal: int = Field(DEFAULT_BASE_GOAL, gt=0)
    current_goal: int = Field(DEFAULT_BASE_GOAL, gt=0)
    active_adjustments: List[CalorieAdjustment] = Field(default_factory=list)
    last_excess_date: Optional[datetime] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def initial(cls, base_goal: int = DEFAULT_BASE_GOAL) -> "CalorieGoalState":
        return cls(base_goal=base_goal, current_goal=base_goal)


class GoalStatusResponse(BaseModel):
    device_id: str
    base_goal: int
    current_goal: int
    minimum_goal: int
    has_active_adjustments: bool
    active_adjustments: List[CalorieAdjustment] = []
    last_excess_date: Optional[datetime] = None
    notification: Optional[GoalNotification] = None
    warnings: List[str] = []

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterExcessRequest(BaseModel):
    total_calories: Optional[float] = Field(
        None, ge=0, description="Day total in kcal; read from the meal log when omitted"
    )
    date: Optional[str] = Field(None, description="YYYY-MM-DD; must be today in the service timezone when given")

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterExcessResponse(BaseModel):
    status: GoalStatusResponse
    total_calories: float
    adjustment: Optional[CalorieAdjustment] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SetBaseGoalRequest(BaseModel):
    base_goal: int = Field(..., gt=0)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
