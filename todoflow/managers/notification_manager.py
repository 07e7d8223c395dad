# File: notification_manager.py
"""Notification Manager for ToDoFlow.

The NotificationScout decides when reminders fire; delivery belongs to the
host application (an injected dispatcher).

Reminder types:
- Starting soon: timed occurrences inside a short window before the
  scheduled time (5 minutes for activities, 10 for habit slots); the window
  may reach past midnight into tomorrow
- Advance: weekly activities 1 day ahead, monthly activities 7, 2 and 1
  days ahead

Deduplication:
- Each fired reminder is keyed by (entity_id, occurrence_date, kind)
- Keys live in an instance-owned set. At local day rollover it is replaced
  by a new set holding only keys dated today or later, so a reminder fired
  just before midnight for a tomorrow occurrence is not repeated after it
- A key is recorded only after the dispatcher returned without raising, so
  a failed delivery is retried on the next tick
- The dispatcher runs outside the lock and may call back into the scout
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
import threading
from typing import TYPE_CHECKING, Any

from .. import const
from ..engines.schedule_engine import OccurrenceExpander, RecurrenceRule
from ..utils.dt_utils import as_local, dt_now_local

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from ..engines.completion_engine import CompletionOverlay
    from ..engines.schedule_engine import OccurrenceInstance
    from ..type_defs import ActivityData, EngineOptions, HabitData

    MessageBuilder = Callable[[str, OccurrenceInstance], tuple[str, str]]
    Dispatcher = Callable[["Reminder"], Any]

ReminderKey = tuple[str, str, str]


@dataclass(frozen=True)
class Reminder:
    """A reminder that fired during an evaluation tick."""

    entity_id: str
    occurrence_date: date
    kind: str
    title: str
    body: str

    @property
    def key(self) -> ReminderKey:
        """Deduplication key (entity_id, ISO date, kind)."""
        return (self.entity_id, self.occurrence_date.isoformat(), self.kind)


def default_message_builder(kind: str, instance: OccurrenceInstance) -> tuple[str, str]:
    """Build the (title, body) pair from the English templates in const.py."""
    title_tmpl, body_tmpl = const.REMINDER_TEMPLATES[kind]
    time_text = (
        instance.time_of_day.strftime("%H:%M") if instance.time_of_day else ""
    )
    params = {
        "title": instance.title,
        "time": time_text,
        "slot": instance.slot_name or "",
    }
    return title_tmpl.format(**params), body_tmpl.format(**params)


class NotificationScout:
    """Decide which reminders fire on each polling tick.

    Constructed once per process with an injected clock, so tests can drive
    it with a fake clock. The mutable state is the dedup set, the keys
    claimed by a running tick and the last checked local day. All three are
    guarded by a lock that is never held while the dispatcher runs. The
    dedup set is swapped for a new one at day rollover, never cleared in
    place.

    Example:
        scout = NotificationScout(clock=lambda: fake_now, dispatcher=send)
        fired = scout.evaluate(activities, habits, overlay)
    """

    def __init__(
        self,
        expander: OccurrenceExpander | None = None,
        clock: Callable[[], datetime] = dt_now_local,
        dispatcher: Dispatcher | None = None,
        message_builder: MessageBuilder = default_message_builder,
        options: EngineOptions | None = None,
    ) -> None:
        """Initialize the scout.

        Args:
            expander: Shared expander; a default one is created if omitted.
            clock: Returns the current datetime. Naive values are taken as
                local wall-clock time.
            dispatcher: Called with each Reminder; delivery is external.
            message_builder: Maps (kind, instance) to (title, body).
            options: Engine options (reminder windows, horizon, interval).
        """
        opts = options or {}
        self._expander = expander or OccurrenceExpander()
        self._clock = clock
        self._dispatcher = dispatcher
        self._message_builder = message_builder
        self._activity_window = timedelta(
            minutes=opts.get(
                const.CONF_ACTIVITY_REMINDER_MINUTES,
                const.DEFAULT_ACTIVITY_REMINDER_MINUTES,
            )
        )
        self._habit_window = timedelta(
            minutes=opts.get(
                const.CONF_HABIT_REMINDER_MINUTES,
                const.DEFAULT_HABIT_REMINDER_MINUTES,
            )
        )
        self._horizon_days = opts.get(
            const.CONF_REMINDER_HORIZON_DAYS, const.DEFAULT_REMINDER_HORIZON_DAYS
        )
        self.poll_interval = timedelta(
            seconds=opts.get(
                const.CONF_POLL_INTERVAL_SECONDS, const.DEFAULT_POLL_INTERVAL_SECONDS
            )
        )

        self._lock = threading.Lock()
        self._notified: set[ReminderKey] = set()
        self._in_flight: set[ReminderKey] = set()
        self._last_checked_day: date | None = None

    # =========================================================================
    # State
    # =========================================================================

    @property
    def notified_keys(self) -> frozenset[ReminderKey]:
        """Recorded keys; a rollover keeps only those dated today or later."""
        with self._lock:
            return frozenset(self._notified)

    @property
    def last_checked_day(self) -> date | None:
        """Local day of the last evaluation."""
        return self._last_checked_day

    def reset(self) -> None:
        """Forget every fired key and the last checked day."""
        with self._lock:
            self._notified = set()
            self._last_checked_day = None

    def _roll_over(self, today: date) -> None:
        """Drop keys dated before today when the local day changed. Lock held."""
        if self._last_checked_day is not None and self._last_checked_day != today:
            cutoff = today.isoformat()
            kept = {key for key in self._notified if key[1] >= cutoff}
            const.LOGGER.debug(
                "NotificationScout: Day rollover %s -> %s, dropping %d keys",
                self._last_checked_day,
                today,
                len(self._notified) - len(kept),
            )
            self._notified = kept
        self._last_checked_day = today

    # =========================================================================
    # Evaluation
    # =========================================================================

    def evaluate(
        self,
        activities: Iterable[ActivityData] = (),
        habits: Iterable[HabitData] = (),
        overlay: CompletionOverlay | None = None,
    ) -> list[Reminder]:
        """Run one polling tick and return the reminders that fired.

        Candidates are collected under the lock, dispatched without it, and
        recorded under the lock again. The dispatcher may therefore call
        back into the scout (notified_keys, reset) without deadlocking.

        Args:
            activities: Snapshot of master activities.
            habits: Snapshot of habits with their slots.
            overlay: Current completion overlay.

        Returns:
            Reminders fired (and successfully dispatched) in this tick.
        """
        now = as_local(self._clock()).replace(tzinfo=None)
        today = now.date()
        pending: list[tuple[OccurrenceInstance, str]] = []

        with self._lock:
            self._roll_over(today)

            for activity in activities:
                self._scan_activity_starting_soon(activity, now, overlay, pending)
                self._scan_activity_advance(activity, today, overlay, pending)

            habit_window_end = (now + self._habit_window).date()
            for habit in habits:
                for slot in habit.get(const.DATA_HABIT_SLOTS, []):
                    for instance in self._expander.expand_habit_slot(
                        habit, slot, today, habit_window_end, overlay
                    ):
                        if self._is_starting_soon(instance, now, self._habit_window):
                            self._queue(
                                instance, const.REMINDER_HABIT_STARTING_SOON, pending
                            )

        claimed = [_reminder_key(instance, kind) for instance, kind in pending]
        fired: list[Reminder] = []
        try:
            for instance, kind in pending:
                reminder = self._dispatch(instance, kind)
                if reminder is not None:
                    fired.append(reminder)
        finally:
            with self._lock:
                self._in_flight.difference_update(claimed)
                if self._last_checked_day == today:
                    self._notified.update(reminder.key for reminder in fired)
                elif fired:
                    const.LOGGER.debug(
                        "NotificationScout: State changed during dispatch, "
                        "not recording %d keys",
                        len(fired),
                    )

        return fired

    def _scan_activity_starting_soon(
        self,
        activity: ActivityData,
        now: datetime,
        overlay: CompletionOverlay | None,
        pending: list[tuple[OccurrenceInstance, str]],
    ) -> None:
        """Queue starting-soon reminders for timed occurrences inside the window.

        The window may cross midnight, so expansion runs through the day
        that now + window falls on.
        """
        if not activity.get(const.DATA_ACTIVITY_TIME):
            return
        window_end = (now + self._activity_window).date()
        for instance in self._expander.expand(
            activity, now.date(), window_end, overlay
        ):
            if self._is_starting_soon(instance, now, self._activity_window):
                self._queue(instance, const.REMINDER_ACTIVITY_STARTING_SOON, pending)

    def _scan_activity_advance(
        self,
        activity: ActivityData,
        today: date,
        overlay: CompletionOverlay | None,
        pending: list[tuple[OccurrenceInstance, str]],
    ) -> None:
        """Queue days-ahead reminders for weekly and monthly activities."""
        rule = RecurrenceRule.from_config(activity.get(const.DATA_ACTIVITY_RECURRENCE))
        offsets = const.ADVANCE_REMINDER_OFFSETS.get(rule.type)
        if not offsets:
            return

        horizon_start = today + timedelta(days=1)
        horizon_end = today + timedelta(days=self._horizon_days)
        for instance in self._expander.expand(
            activity, horizon_start, horizon_end, overlay
        ):
            if instance.completed:
                continue
            days_before = (instance.occurrence_date - today).days
            for offset, kind in offsets:
                if days_before == offset:
                    self._queue(instance, kind, pending)

    @staticmethod
    def _is_starting_soon(
        instance: OccurrenceInstance, now: datetime, window: timedelta
    ) -> bool:
        """Return True if an open timed occurrence starts within [0, window]."""
        if instance.completed or instance.time_of_day is None:
            return False
        scheduled = datetime.combine(instance.occurrence_date, instance.time_of_day)
        remaining = scheduled - now
        return timedelta(0) <= remaining <= window

    def _queue(
        self,
        instance: OccurrenceInstance,
        kind: str,
        pending: list[tuple[OccurrenceInstance, str]],
    ) -> None:
        """Claim a reminder for dispatch unless fired or in flight. Lock held."""
        key = _reminder_key(instance, kind)
        if key in self._notified or key in self._in_flight:
            return
        self._in_flight.add(key)
        pending.append((instance, kind))

    def _dispatch(self, instance: OccurrenceInstance, kind: str) -> Reminder | None:
        """Build and deliver one reminder. Lock not held.

        Returns:
            The reminder, or None if the dispatcher raised.
        """
        title, body = self._message_builder(kind, instance)
        reminder = Reminder(
            entity_id=instance.source_id,
            occurrence_date=instance.occurrence_date,
            kind=kind,
            title=title,
            body=body,
        )

        if self._dispatcher is not None:
            try:
                self._dispatcher(reminder)
            except Exception as err:  # noqa: BLE001
                const.LOGGER.warning(
                    "NotificationScout: Dispatch failed for %s (%s), will retry: %s",
                    instance.source_id,
                    kind,
                    err,
                )
                return None

        const.LOGGER.debug(
            "NotificationScout: Fired %s for %s on %s",
            kind,
            instance.source_id,
            instance.iso_date,
        )
        return reminder


def _reminder_key(instance: OccurrenceInstance, kind: str) -> ReminderKey:
    return (instance.source_id, instance.iso_date, kind)
