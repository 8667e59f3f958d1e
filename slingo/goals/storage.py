# -*- coding: utf-8 -*-
"""Goal adjustment — JSON file storage for one device's goal state.

The slot is a single JSON document per device. Writers do not lock: when the
same device is served by several processes the last write wins.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional
from zoneinfo import ZoneInfo

from pydantic import ValidationError as PydanticValidationError

from ..config import settings
from ..errors import StorageCorruptionError, ValidationError
from .engine import ExcessResult, reconcile, register_excess
from .models import CalorieAdjustment, CalorieGoalState, GoalNotification
from .rules import calculate_minimum_goal

logger = logging.getLogger(__name__)

STATE_FILENAME = "calorie_goal_state.json"

NotificationListener = Callable[[GoalNotification, CalorieGoalState], None]


def _goals_root_for(device_id: str, data_root: Path | None = None) -> Path:
    return (data_root or settings.data_root) / "devices" / device_id / "goals"


def _ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def local_now() -> datetime:
    return datetime.now(ZoneInfo(settings.timezone))


@dataclass(frozen=True)
class LoadOutcome:
    """Result of ``GoalAdjustmentStore.load``.

    ``reinitialized`` is set when the default state had to be written, either
    because nothing was stored yet or because the stored document was unusable;
    ``reason`` says which.
    """

    state: CalorieGoalState
    reinitialized: bool = False
    reason: Optional[str] = None

    @property
    def corrupted(self) -> bool:
        return self.reinitialized and self.reason is not None and self.reason != "missing"


def read_state(path: Path) -> Optional[CalorieGoalState]:
    """Return the stored state, ``None`` if absent; raise StorageCorruptionError if unreadable."""
    if not path.exists():
        return None
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        return CalorieGoalState.model_validate(raw)
    except (OSError, ValueError, PydanticValidationError) as exc:
        raise StorageCorruptionError(f"{path.name}: {exc}") from exc


def write_state(path: Path, state: CalorieGoalState) -> None:
    _ensure_dir(path.parent)
    path.write_text(state.model_dump_json(by_alias=True, indent=2), encoding="utf-8")


class GoalAdjustmentStore:
    """Owns one device's ``CalorieGoalState`` and persists it after every transition."""

    def __init__(
        self,
        device_id: str,
        *,
        data_root: Path | None = None,
        default_base_goal: int | None = None,
        clock: Callable[[], datetime] = local_now,
    ) -> None:
        self.device_id = device_id
        self.path = _goals_root_for(device_id, data_root) / STATE_FILENAME
        self.default_base_goal = default_base_goal or settings.default_base_goal
        self._clock = clock
        self._state: Optional[CalorieGoalState] = None
        self._listeners: List[NotificationListener] = []

    # ------------------------------------------------------------------
    # Loading / persistence
    # ------------------------------------------------------------------

    def load(self) -> LoadOutcome:
        try:
            stored = read_state(self.path)
        except StorageCorruptionError as exc:
            logger.warning("goal state for %s is corrupt, reinitializing: %s", self.device_id, exc)
            return LoadOutcome(state=self._initialize(), reinitialized=True, reason=str(exc))

        if stored is None:
            logger.info("no goal state for %s, creating default", self.device_id)
            return LoadOutcome(state=self._initialize(), reinitialized=True, reason="missing")

        self._state = stored
        return LoadOutcome(state=stored)

    def _initialize(self) -> CalorieGoalState:
        state = CalorieGoalState.initial(self.default_base_goal)
        self._commit(state)
        return state

    def _commit(self, state: CalorieGoalState) -> None:
        write_state(self.path, state)
        self._state = state

    def now(self) -> datetime:
        return self._clock()

    @property
    def state(self) -> CalorieGoalState:
        if self._state is None:
            self.load()
        assert self._state is not None
        return self._state

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def reconcile(self, now: datetime | None = None) -> Optional[GoalNotification]:
        result = reconcile(self.state, now or self._clock())
        if not result.changed:
            return None
        self._commit(result.state)
        if result.notification is not None:
            self._notify(result.notification, result.state)
        return result.notification

    def register_excess(self, total_calories: float, now: datetime | None = None) -> ExcessResult:
        """Record a day's intake; any resulting modal is surfaced by a later ``reconcile``."""
        result = register_excess(self.state, total_calories, now or self._clock())
        if result.changed:
            self._commit(result.state)
        return result

    def set_base_goal(self, new_base_goal: int) -> CalorieGoalState:
        """Reset the goal and drop every in-flight adjustment."""
        if isinstance(new_base_goal, bool) or not isinstance(new_base_goal, int) or new_base_goal <= 0:
            raise ValidationError(f"Base goal must be a positive integer, got {new_base_goal!r}")
        state = CalorieGoalState.initial(new_base_goal)
        self._commit(state)
        return state

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    def get_current_goal(self) -> int:
        return self.state.current_goal

    def get_base_goal(self) -> int:
        return self.state.base_goal

    def get_minimum_goal(self) -> int:
        return calculate_minimum_goal(self.state.base_goal)

    def has_active_adjustments(self) -> bool:
        return len(self.state.active_adjustments) > 0

    def active_adjustments(self) -> List[CalorieAdjustment]:
        return list(self.state.active_adjustments)

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, listener: NotificationListener) -> Callable[[], None]:
        """Call ``listener(notification, state)`` whenever reconciliation yields a modal."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, notification: GoalNotification, state: CalorieGoalState) -> None:
        for listener in list(self._listeners):
            listener(notification, state)
