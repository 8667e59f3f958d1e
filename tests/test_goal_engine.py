# -*- coding: utf-8 -*-

from __future__ import annotations

import random
import unittest
from datetime import datetime, timedelta, timezone

from slingo.goals.engine import ExcessOutcome, reconcile, register_excess
from slingo.goals.models import CalorieAdjustment, CalorieGoalState, GoalNotification
from slingo.goals.rules import ADJUSTMENT_PERIOD_DAYS, calculate_minimum_goal

UTC = timezone.utc
BRT = timezone(timedelta(hours=-3))
DAY0 = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)


def assert_invariant(test: unittest.TestCase, state: CalorieGoalState) -> None:
    expected = max(
        state.base_goal - sum(a.daily_reduction for a in state.active_adjustments),
        calculate_minimum_goal(state.base_goal),
    )
    test.assertEqual(state.current_goal, expected)


class TestRegisterExcess(unittest.TestCase):
    def test_below_threshold_is_noop(self) -> None:
        state = CalorieGoalState.initial(2000)
        result = register_excess(state, 2279, DAY0)
        self.assertEqual(result.outcome, ExcessOutcome.BELOW_THRESHOLD)
        self.assertIsNone(result.adjustment)
        self.assertIs(result.state, state)

    def test_threshold_creates_adjustment(self) -> None:
        state = CalorieGoalState.initial(2000)
        result = register_excess(state, 2280, DAY0)
        self.assertEqual(result.outcome, ExcessOutcome.CREATED)
        adj = result.adjustment
        assert adj is not None
        self.assertEqual(adj.daily_reduction, 40)
        self.assertEqual(adj.days_remaining, ADJUSTMENT_PERIOD_DAYS)
        self.assertEqual(adj.previous_goal, 2000)
        self.assertEqual(adj.adjusted_goal, 1960)
        self.assertEqual(adj.excess_amount, 280)
        self.assertFalse(adj.notification_shown)
        self.assertEqual(result.state.current_goal, 1960)
        self.assertEqual(result.state.last_excess_date, DAY0)

    def test_input_state_is_not_mutated(self) -> None:
        state = CalorieGoalState.initial(2000)
        register_excess(state, 2700, DAY0)
        self.assertEqual(state.current_goal, 2000)
        self.assertEqual(state.active_adjustments, [])
        self.assertIsNone(state.last_excess_date)

    def test_single_fire_per_day(self) -> None:
        state = CalorieGoalState.initial(2000)
        first = register_excess(state, 2400, DAY0.replace(hour=13))
        second = register_excess(first.state, 3000, DAY0.replace(hour=21))
        self.assertEqual(second.outcome, ExcessOutcome.ALREADY_REGISTERED_TODAY)
        self.assertEqual(len(second.state.active_adjustments), 1)
        self.assertEqual(second.state.current_goal, 1940)

    def test_next_day_creates_another_adjustment(self) -> None:
        state = register_excess(CalorieGoalState.initial(2000), 2400, DAY0).state
        result = register_excess(state, 2340, DAY0 + timedelta(days=1))
        self.assertEqual(result.outcome, ExcessOutcome.CREATED)
        self.assertEqual(len(result.state.active_adjustments), 2)
        self.assertEqual(result.state.current_goal, 1880)
        ids = {a.id for a in result.state.active_adjustments}
        self.assertEqual(len(ids), 2)

    def test_repeated_excess_stops_at_floor(self) -> None:
        state = CalorieGoalState.initial(2000)
        created = []
        for day in range(8):
            now = DAY0 + timedelta(days=day)
            state = reconcile(state, now).state
            result = register_excess(state, state.current_goal + 400, now)
            state = result.state
            if result.adjustment is not None:
                created.append(result.adjustment)
                self.assertEqual(result.adjustment.daily_reduction, 60)
            assert_invariant(self, state)

        self.assertEqual([a.adjusted_goal for a in created], [1940, 1880, 1820, 1760, 1700])
        self.assertEqual(state.current_goal, 1700)

        blocked = register_excess(state, 2100, DAY0 + timedelta(days=8, hours=1))
        self.assertEqual(blocked.outcome, ExcessOutcome.AT_MINIMUM_GOAL)
        self.assertIsNone(blocked.adjustment)

    def test_new_goal_is_clamped_to_floor(self) -> None:
        existing = CalorieAdjustment(
            id="a1",
            start_date=DAY0,
            excess_amount=1960,
            daily_reduction=280,
            previous_goal=2000,
            adjusted_goal=1720,
        )
        state = CalorieGoalState(
            base_goal=2000,
            current_goal=1720,
            active_adjustments=[existing],
            last_excess_date=DAY0,
        )
        result = register_excess(state, 2120, DAY0 + timedelta(days=1))
        adj = result.adjustment
        assert adj is not None
        self.assertEqual(adj.daily_reduction, 60)
        self.assertEqual(adj.previous_goal, 1720)
        self.assertEqual(adj.adjusted_goal, 1700)
        self.assertEqual(result.state.current_goal, 1700)
        assert_invariant(self, result.state)


class TestReconcile(unittest.TestCase):
    def test_empty_state_is_unchanged(self) -> None:
        state = CalorieGoalState.initial(2000)
        result = reconcile(state, DAY0)
        self.assertFalse(result.changed)
        self.assertIsNone(result.notification)
        self.assertIs(result.state, state)

    def test_expiry_after_period(self) -> None:
        state = register_excess(CalorieGoalState.initial(2000), 2700, DAY0).state
        self.assertEqual(state.current_goal, 1900)

        for day in range(1, ADJUSTMENT_PERIOD_DAYS + 1):
            state = reconcile(state, DAY0 + timedelta(days=day)).state
            self.assertEqual(len(state.active_adjustments), 1, day)
            self.assertEqual(state.active_adjustments[0].days_remaining, ADJUSTMENT_PERIOD_DAYS - day)
            self.assertEqual(state.current_goal, 1900)

        result = reconcile(state, DAY0 + timedelta(days=ADJUSTMENT_PERIOD_DAYS + 1))
        self.assertTrue(result.changed)
        self.assertEqual(result.state.active_adjustments, [])
        self.assertEqual(result.state.current_goal, 2000)
        self.assertEqual(result.notification, GoalNotification.ADJUSTMENT_COMPLETED)
        self.assertEqual(len(result.expired), 1)

    def test_expiry_raises_goal_by_its_reduction_only(self) -> None:
        state = register_excess(CalorieGoalState.initial(2000), 2700, DAY0).state
        state = register_excess(state, state.current_goal + 420, DAY0 + timedelta(days=3)).state
        self.assertEqual(state.current_goal, 1840)

        result = reconcile(state, DAY0 + timedelta(days=8))
        self.assertEqual(len(result.state.active_adjustments), 1)
        self.assertEqual(result.state.current_goal, 1940)
        assert_invariant(self, result.state)

    def test_simultaneous_expiries_yield_one_completion(self) -> None:
        adjustments = [
            CalorieAdjustment(
                id=f"a{i}",
                start_date=DAY0,
                excess_amount=700,
                daily_reduction=100,
                previous_goal=2000,
                adjusted_goal=1900,
                notification_shown=True,
            )
            for i in range(2)
        ]
        state = CalorieGoalState(base_goal=2000, current_goal=1800, active_adjustments=adjustments, last_excess_date=DAY0)
        result = reconcile(state, DAY0 + timedelta(days=10))
        self.assertEqual(result.notification, GoalNotification.ADJUSTMENT_COMPLETED)
        self.assertEqual(len(result.expired), 2)
        self.assertEqual(result.state.current_goal, 2000)

    def test_notification_waits_for_next_morning(self) -> None:
        excess_at = datetime(2026, 3, 10, 23, 0, tzinfo=BRT)
        state = register_excess(CalorieGoalState.initial(2000), 2700, excess_at).state

        late_night = reconcile(state, datetime(2026, 3, 10, 23, 40, tzinfo=BRT))
        self.assertIsNone(late_night.notification)
        self.assertFalse(late_night.state.active_adjustments[0].notification_shown)

        early = reconcile(late_night.state, datetime(2026, 3, 11, 5, 59, tzinfo=BRT))
        self.assertIsNone(early.notification)
        self.assertFalse(early.state.active_adjustments[0].notification_shown)

        morning = reconcile(early.state, datetime(2026, 3, 11, 6, 0, tzinfo=BRT))
        self.assertEqual(morning.notification, GoalNotification.ADJUSTMENT_APPLIED)
        self.assertTrue(morning.state.active_adjustments[0].notification_shown)

        again = reconcile(morning.state, datetime(2026, 3, 11, 9, 0, tzinfo=BRT))
        self.assertIsNone(again.notification)

    def test_completion_takes_precedence(self) -> None:
        old = CalorieAdjustment(
            id="old",
            start_date=DAY0 - timedelta(days=9),
            excess_amount=700,
            daily_reduction=100,
            previous_goal=2000,
            adjusted_goal=1900,
            notification_shown=True,
        )
        new = CalorieAdjustment(
            id="new",
            start_date=DAY0 - timedelta(hours=20),
            excess_amount=420,
            daily_reduction=60,
            previous_goal=1900,
            adjusted_goal=1840,
        )
        state = CalorieGoalState(
            base_goal=2000,
            current_goal=1840,
            active_adjustments=[old, new],
            last_excess_date=new.start_date,
        )
        result = reconcile(state, DAY0)
        self.assertEqual(result.notification, GoalNotification.ADJUSTMENT_COMPLETED)
        self.assertEqual([a.id for a in result.state.active_adjustments], ["new"])
        self.assertTrue(result.state.active_adjustments[0].notification_shown)
        self.assertEqual(result.state.current_goal, 1940)

    def test_idempotent_for_same_now(self) -> None:
        state = register_excess(CalorieGoalState.initial(2000), 2700, DAY0).state
        now = DAY0 + timedelta(days=2)
        first = reconcile(state, now)
        second = reconcile(first.state, now)
        self.assertTrue(first.changed)
        self.assertFalse(second.changed)
        self.assertIsNone(second.notification)
        self.assertEqual(second.state, first.state)

    def test_future_start_date_keeps_full_period(self) -> None:
        state = register_excess(CalorieGoalState.initial(2000), 2700, DAY0).state
        result = reconcile(state, DAY0 - timedelta(minutes=5))
        self.assertEqual(result.state.active_adjustments[0].days_remaining, ADJUSTMENT_PERIOD_DAYS)


class TestInvariantUnderRandomHistory(unittest.TestCase):
    def test_goal_matches_active_reductions(self) -> None:
        rng = random.Random(20260302)
        state = CalorieGoalState.initial(2200)
        for day in range(60):
            morning = DAY0.replace(hour=7) + timedelta(days=day)
            state = reconcile(state, morning).state
            assert_invariant(self, state)

            evening = morning + timedelta(hours=rng.randint(1, 16))
            state = register_excess(state, rng.randint(1400, 3400), evening).state
            assert_invariant(self, state)
            for adj in state.active_adjustments:
                self.assertEqual(adj.daily_reduction % 10, 0)
                self.assertGreater(adj.daily_reduction, 0)
                self.assertTrue(0 <= adj.days_remaining <= ADJUSTMENT_PERIOD_DAYS)
            self.assertGreaterEqual(state.current_goal, calculate_minimum_goal(2200))


if __name__ == "__main__":
    unittest.main()
