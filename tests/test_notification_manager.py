"""Tests for NotificationScout - reminder decisions driven by a fake clock.

Covers:
- Starting-soon windows (5 minutes activities, 10 minutes habit slots)
- Advance reminders (weekly 1 day, monthly 7/2/1 days)
- Per-day deduplication and rollover
- Completed occurrences never fire
- Failed dispatch is retried on the next tick
- Starting-soon windows that cross midnight
- Dispatchers that call back into the scout
"""

from __future__ import annotations

from datetime import date, datetime
import threading

import pytest

from tests.conftest import FakeClock
from todoflow import const
from todoflow.engines.completion_engine import CompletionOverlay
from todoflow.managers.notification_manager import NotificationScout, Reminder


def _scout(clock: FakeClock, dispatcher=None) -> NotificationScout:
    return NotificationScout(clock=clock, dispatcher=dispatcher)


# =============================================================================
# Starting soon
# =============================================================================


class TestStartingSoon:
    """Test starting-soon reminders."""

    def test_activity_fires_inside_window(self, make_activity) -> None:
        """Four minutes before 09:00 fires once with the English template."""
        activity = make_activity(anchor="2024-01-10", time_of_day="09:00", title="Standup")
        scout = _scout(FakeClock(datetime(2024, 1, 10, 8, 56)))

        fired = scout.evaluate([activity])

        assert len(fired) == 1
        assert fired[0].kind == const.REMINDER_ACTIVITY_STARTING_SOON
        assert fired[0].entity_id == "activity:1"
        assert fired[0].occurrence_date == date(2024, 1, 10)
        assert fired[0].title == "Activity Starting Soon!"
        assert fired[0].body == '"Standup" is scheduled for 09:00.'

    @pytest.mark.parametrize(
        ("hour", "minute", "expected"),
        [(8, 50, 0), (8, 55, 1), (9, 0, 1), (9, 1, 0)],
    )
    def test_activity_window_edges(self, make_activity, hour, minute, expected) -> None:
        """The window is [0, 5] minutes before the scheduled time."""
        activity = make_activity(anchor="2024-01-10", time_of_day="09:00")
        scout = _scout(FakeClock(datetime(2024, 1, 10, hour, minute)))
        assert len(scout.evaluate([activity])) == expected

    def test_habit_uses_ten_minute_window(self, make_habit) -> None:
        """Habit slots fire ten minutes ahead."""
        habit = make_habit(anchor="2024-01-01", default_time="09:00")
        scout = _scout(FakeClock(datetime(2024, 1, 10, 8, 50)))

        fired = scout.evaluate(habits=[habit])

        assert [r.kind for r in fired] == [const.REMINDER_HABIT_STARTING_SOON]
        assert fired[0].entity_id == "habit:h1:s1"
        assert fired[0].body == '"Stretch" (Morning) is scheduled for 09:00.'

    def test_untimed_activity_never_starts_soon(self, make_activity) -> None:
        """Occurrences without a time of day have no starting-soon reminder."""
        activity = make_activity(anchor="2024-01-10")
        scout = _scout(FakeClock(datetime(2024, 1, 10, 0, 0)))
        assert scout.evaluate([activity]) == []

    def test_completed_never_fires(self, make_activity, make_habit) -> None:
        """Occurrences completed at evaluation time are skipped."""
        activity = make_activity(anchor="2024-01-10", time_of_day="09:00")
        habit = make_habit(anchor="2024-01-01", default_time="09:00")
        overlay = CompletionOverlay()
        overlay.set("activity:1", date(2024, 1, 10), True)
        overlay.set("habit:h1:s1", date(2024, 1, 10), True)
        scout = _scout(FakeClock(datetime(2024, 1, 10, 8, 56)))

        assert scout.evaluate([activity], [habit], overlay) == []

    def test_window_crosses_midnight(self, make_activity) -> None:
        """An occurrence just after midnight fires late the evening before, once."""
        activity = make_activity(anchor="2024-01-11", time_of_day="00:03")
        clock = FakeClock(datetime(2024, 1, 10, 23, 58))
        scout = _scout(clock)

        fired = scout.evaluate([activity])
        clock.now = datetime(2024, 1, 11, 0, 1)
        after_midnight = scout.evaluate([activity])

        assert [(r.kind, r.occurrence_date) for r in fired] == [
            (const.REMINDER_ACTIVITY_STARTING_SOON, date(2024, 1, 11))
        ]
        assert after_midnight == []
        assert scout.notified_keys == frozenset(
            {("activity:1", "2024-01-11", const.REMINDER_ACTIVITY_STARTING_SOON)}
        )

    def test_habit_window_crosses_midnight(self, make_habit) -> None:
        """A 00:05 slot is reminded at 23:57 for the next day."""
        habit = make_habit(anchor="2024-01-01", default_time="00:05")
        scout = _scout(FakeClock(datetime(2024, 1, 10, 23, 57)))

        fired = scout.evaluate(habits=[habit])

        assert [(r.kind, r.occurrence_date) for r in fired] == [
            (const.REMINDER_HABIT_STARTING_SOON, date(2024, 1, 11))
        ]


# =============================================================================
# Advance reminders
# =============================================================================


class TestAdvanceReminders:
    """Test days-ahead reminders for weekly and monthly activities."""

    def test_weekly_one_day_before(self, make_activity) -> None:
        """Wednesday activity reminded on Tuesday."""
        activity = make_activity(
            anchor="2024-01-01", rule_type=const.RECURRENCE_WEEKLY, days_of_week=[3]
        )
        scout = _scout(FakeClock(datetime(2024, 1, 9, 12, 0)))

        fired = scout.evaluate([activity])

        assert [(r.kind, r.occurrence_date) for r in fired] == [
            (const.REMINDER_WEEKLY_1_DAY, date(2024, 1, 10))
        ]
        assert fired[0].title == "Activity Reminder: Tomorrow"

    @pytest.mark.parametrize(
        ("today", "kind"),
        [
            (date(2024, 1, 10), const.REMINDER_MONTHLY_1_WEEK),
            (date(2024, 1, 15), const.REMINDER_MONTHLY_2_DAYS),
            (date(2024, 1, 16), const.REMINDER_MONTHLY_1_DAY),
        ],
    )
    def test_monthly_offsets(self, make_activity, today, kind) -> None:
        """Monthly activities are reminded 7, 2 and 1 days ahead."""
        activity = make_activity(
            anchor="2024-01-01", rule_type=const.RECURRENCE_MONTHLY, day_of_month=17
        )
        scout = _scout(FakeClock(datetime.combine(today, datetime.min.time())))

        fired = scout.evaluate([activity])

        assert [(r.kind, r.occurrence_date) for r in fired] == [(kind, date(2024, 1, 17))]

    def test_monthly_off_days_silent(self, make_activity) -> None:
        """No reminder three days ahead."""
        activity = make_activity(
            anchor="2024-01-01", rule_type=const.RECURRENCE_MONTHLY, day_of_month=17
        )
        scout = _scout(FakeClock(datetime(2024, 1, 14, 9, 0)))
        assert scout.evaluate([activity]) == []

    def test_completed_future_occurrence_skipped(self, make_activity) -> None:
        """An occurrence already completed ahead of time is not reminded."""
        activity = make_activity(
            anchor="2024-01-01", rule_type=const.RECURRENCE_WEEKLY, days_of_week=[3]
        )
        overlay = CompletionOverlay()
        overlay.set("activity:1", date(2024, 1, 10), True)
        scout = _scout(FakeClock(datetime(2024, 1, 9, 12, 0)))
        assert scout.evaluate([activity], overlay=overlay) == []


# =============================================================================
# Deduplication
# =============================================================================


class TestDeduplication:
    """Test per-day dedup and rollover."""

    def test_two_ticks_fire_once(self, make_activity) -> None:
        """The second tick inside the window fires nothing."""
        sent: list[Reminder] = []
        activity = make_activity(anchor="2024-01-10", time_of_day="09:00")
        clock = FakeClock(datetime(2024, 1, 10, 8, 56))
        scout = _scout(clock, dispatcher=sent.append)

        first = scout.evaluate([activity])
        clock.now = datetime(2024, 1, 10, 8, 57)
        second = scout.evaluate([activity])

        assert len(first) == 1
        assert second == []
        assert len(sent) == 1
        assert scout.notified_keys == frozenset(
            {("activity:1", "2024-01-10", const.REMINDER_ACTIVITY_STARTING_SOON)}
        )

    def test_rollover_drops_past_keys(self, make_activity) -> None:
        """A new local day drops keys dated before it."""
        activity = make_activity(
            anchor="2024-01-01", rule_type=const.RECURRENCE_DAILY, time_of_day="09:00"
        )
        clock = FakeClock(datetime(2024, 1, 10, 8, 56))
        scout = _scout(clock)

        assert len(scout.evaluate([activity])) == 1
        clock.now = datetime(2024, 1, 11, 8, 56)
        assert len(scout.evaluate([activity])) == 1

        assert scout.last_checked_day == date(2024, 1, 11)
        assert scout.notified_keys == frozenset(
            {("activity:1", "2024-01-11", const.REMINDER_ACTIVITY_STARTING_SOON)}
        )

    def test_reset(self, make_activity) -> None:
        """reset() forgets fired keys."""
        activity = make_activity(anchor="2024-01-10", time_of_day="09:00")
        scout = _scout(FakeClock(datetime(2024, 1, 10, 8, 56)))
        scout.evaluate([activity])

        scout.reset()

        assert scout.notified_keys == frozenset()
        assert scout.last_checked_day is None
        assert len(scout.evaluate([activity])) == 1

    def test_failed_dispatch_retried(self, make_activity) -> None:
        """A dispatcher error leaves the key unrecorded."""
        attempts: list[Reminder] = []

        def flaky(reminder: Reminder) -> None:
            attempts.append(reminder)
            if len(attempts) == 1:
                raise ConnectionError("push service down")

        activity = make_activity(anchor="2024-01-10", time_of_day="09:00")
        clock = FakeClock(datetime(2024, 1, 10, 8, 56))
        scout = _scout(clock, dispatcher=flaky)

        assert scout.evaluate([activity]) == []
        assert scout.notified_keys == frozenset()

        clock.now = datetime(2024, 1, 10, 8, 58)
        assert len(scout.evaluate([activity])) == 1
        assert len(attempts) == 2

    def test_poll_interval_from_options(self) -> None:
        """The polling interval is exposed for the host loop."""
        scout = NotificationScout(options={const.CONF_POLL_INTERVAL_SECONDS: 30})
        assert scout.poll_interval.total_seconds() == 30


# =============================================================================
# Dispatcher callbacks
# =============================================================================


class TestDispatcherCallbacks:
    """Test dispatchers that call back into the scout."""

    @staticmethod
    def _evaluate_in_thread(scout: NotificationScout, activity) -> list[Reminder]:
        result: list[Reminder] = []
        worker = threading.Thread(
            target=lambda: result.extend(scout.evaluate([activity])), daemon=True
        )
        worker.start()
        worker.join(timeout=5)
        assert not worker.is_alive(), "evaluate() blocked inside the dispatcher"
        return result

    def test_dispatcher_reads_state(self, make_activity) -> None:
        """Reading notified_keys from the dispatcher does not block the tick."""
        seen: list[frozenset] = []
        activity = make_activity(anchor="2024-01-10", time_of_day="09:00")
        scout = NotificationScout(
            clock=FakeClock(datetime(2024, 1, 10, 8, 56)),
            dispatcher=lambda reminder: seen.append(scout.notified_keys),
        )

        fired = self._evaluate_in_thread(scout, activity)

        assert len(fired) == 1
        assert seen == [frozenset()]
        assert scout.notified_keys == frozenset({fired[0].key})

    def test_dispatcher_resets_scout(self, make_activity) -> None:
        """A reset during dispatch wins: the key is not recorded."""
        activity = make_activity(anchor="2024-01-10", time_of_day="09:00")
        scout = NotificationScout(
            clock=FakeClock(datetime(2024, 1, 10, 8, 56)),
            dispatcher=lambda reminder: scout.reset(),
        )

        fired = self._evaluate_in_thread(scout, activity)

        assert len(fired) == 1
        assert scout.notified_keys == frozenset()
        assert scout.last_checked_day is None
        assert len(self._evaluate_in_thread(scout, activity)) == 1
