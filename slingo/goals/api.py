# -*- coding: utf-8 -*-
"""Goal adjustment — API endpoints."""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, HTTPException

from ..diet.storage import get_daily_calories
from ..errors import ValidationError
from .models import (
    GoalNotification,
    GoalStatusResponse,
    RegisterExcessRequest,
    RegisterExcessResponse,
    SetBaseGoalRequest,
)
from .rules import calculate_minimum_goal
from .storage import GoalAdjustmentStore

router = APIRouter(prefix="/api/goals", tags=["Goals"])


def _open_store(device_id: str) -> tuple[GoalAdjustmentStore, List[str]]:
    store = GoalAdjustmentStore(device_id)
    outcome = store.load()
    warnings: List[str] = []
    if outcome.corrupted:
        warnings.append("Stored goal state was unreadable and has been reset.")
    return store, warnings


def _status(
    store: GoalAdjustmentStore,
    *,
    notification: Optional[GoalNotification] = None,
    warnings: Optional[List[str]] = None,
) -> GoalStatusResponse:
    state = store.state
    return GoalStatusResponse(
        device_id=store.device_id,
        base_goal=state.base_goal,
        current_goal=state.current_goal,
        minimum_goal=calculate_minimum_goal(state.base_goal),
        has_active_adjustments=store.has_active_adjustments(),
        active_adjustments=state.active_adjustments,
        last_excess_date=state.last_excess_date,
        notification=notification,
        warnings=warnings or [],
    )


@router.get("/{device_id}", response_model=GoalStatusResponse, summary="Current goal (runs the daily reconciliation)")
def get_goal(device_id: str):
    store, warnings = _open_store(device_id)
    notification = store.reconcile()
    return _status(store, notification=notification, warnings=warnings)


@router.post("/{device_id}/excess", response_model=RegisterExcessResponse, summary="Register a day's intake")
def register_excess(device_id: str, request: RegisterExcessRequest):
    store, warnings = _open_store(device_id)
    now = store.now()
    today = now.date().isoformat()

    if request.date is not None:
        try:
            requested = date.fromisoformat(request.date)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=f"Invalid date: {request.date}") from exc
        # An excess always starts "now"; an earlier day would block today's registration.
        if requested.isoformat() != today:
            raise HTTPException(status_code=400, detail=f"Only today's intake ({today}) can be registered")

    notification = store.reconcile(now)

    total = request.total_calories
    if total is None:
        total = get_daily_calories(device_id, today)

    result = store.register_excess(total, now)
    return RegisterExcessResponse(
        status=_status(store, notification=notification, warnings=warnings),
        total_calories=total,
        adjustment=result.adjustment,
    )


@router.put("/{device_id}/base", response_model=GoalStatusResponse, summary="Set the base goal (clears adjustments)")
def set_base_goal(device_id: str, request: SetBaseGoalRequest):
    store = GoalAdjustmentStore(device_id)
    try:
        store.set_base_goal(request.base_goal)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _status(store)
