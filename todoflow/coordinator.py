# File: coordinator.py
"""Coordinator for ToDoFlow.

Single facade over the engines: holds the current snapshot of master
records and the completion overlay, and serves the calendar view, the
dashboard charts, streaks and reminder ticks from one shared expander.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import TYPE_CHECKING, Any

from . import const
from .data_builders import (
    EntityValidationError,
    build_activity,
    build_habit,
    build_options,
    map_backend_activity,
    map_backend_habit,
)
from .engines.completion_engine import CompletionOverlay
from .engines.schedule_engine import (
    OccurrenceExpander,
    activity_source_id,
    habit_source_id,
)
from .engines.statistics_engine import (
    CompletionSummary,
    FailureDaysResult,
    PeakDaysResult,
    StatisticsEngine,
    StreakResult,
)
from .managers.notification_manager import NotificationScout
from .utils.dt_utils import (
    dt_add_months,
    dt_now_local,
    dt_today_local,
    set_default_timezone,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from .engines.completion_engine import PersistCallback
    from .engines.schedule_engine import OccurrenceInstance
    from .managers.notification_manager import Dispatcher, Reminder
    from .type_defs import (
        ActivityData,
        BucketStats,
        HabitCompletionRow,
        HabitData,
        HabitSlotData,
        OccurrenceRow,
        SourceId,
    )


@dataclass(frozen=True)
class ProductivitySummary:
    """Dashboard insights for one window."""

    summary: CompletionSummary
    peak_days: PeakDaysResult
    failure_days: FailureDaysResult
    categories: dict[str, int]


class TodoFlowCoordinator:
    """Facade over expansion, overlay, statistics and reminders.

    The CRUD layer stays outside: it hands in snapshots through
    load_snapshot() and receives completion writes through the injected
    persist callback.
    """

    def __init__(
        self,
        options: dict[str, Any] | None = None,
        persist: PersistCallback | None = None,
        clock: Callable[[], Any] | None = None,
        dispatcher: Dispatcher | None = None,
        category_lookup: Callable[[int | str], str | None] | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            options: Raw options, validated with build_options().
            persist: Callback (source_id, day, completed) to the CRUD layer.
            clock: Clock for the reminder scout (defaults to local now).
            dispatcher: Reminder delivery callback.
            category_lookup: Maps category ids to display names.

        Raises:
            EntityValidationError: options are invalid.
        """
        self.options = build_options(options)
        set_default_timezone(self.options[const.CONF_TIME_ZONE])

        self._persist = persist
        self._category_lookup = category_lookup

        self.expander = OccurrenceExpander()
        self.stats = StatisticsEngine()
        self.overlay = CompletionOverlay()
        self.scout = NotificationScout(
            expander=self.expander,
            clock=clock or dt_now_local,
            dispatcher=dispatcher,
            options=self.options,
        )

        self._activities: dict[SourceId, ActivityData] = {}
        self._habits: dict[int | str, HabitData] = {}
        self._habit_slots: dict[SourceId, tuple[HabitData, HabitSlotData]] = {}

    # -------------------------------------------------------------------------------------
    # Snapshot Loading
    # -------------------------------------------------------------------------------------

    def load_snapshot(
        self,
        activities: Iterable[dict[str, Any]] = (),
        habits: Iterable[dict[str, Any]] = (),
        occurrence_rows: Iterable[OccurrenceRow] = (),
        habit_rows: Iterable[HabitCompletionRow] = (),
        backend_format: bool = False,
    ) -> None:
        """Replace the master records and rebuild the overlay.

        Records that fail validation are skipped with a warning so one bad
        row cannot hide the rest of the calendar.

        Args:
            activities: Activity records (DATA_* keys, or backend shape).
            habits: Habit records with slots (DATA_* keys, or backend shape).
            occurrence_rows: Activity occurrence rows from the CRUD layer.
            habit_rows: Habit completion rows from the CRUD layer.
            backend_format: Map records with map_backend_*() first.
        """
        self._activities = {}
        for raw in activities:
            data = map_backend_activity(raw) if backend_format else raw
            try:
                activity = build_activity(data)
            except EntityValidationError as err:
                const.LOGGER.warning(
                    "Load Snapshot - Skipping activity %s: %s",
                    data.get(const.DATA_ACTIVITY_ID),
                    err,
                )
                continue
            self._activities[activity_source_id(activity[const.DATA_ACTIVITY_ID])] = (
                activity
            )

        self._habits = {}
        self._habit_slots = {}
        for raw in habits:
            data = map_backend_habit(raw) if backend_format else raw
            try:
                habit = build_habit(data)
            except EntityValidationError as err:
                const.LOGGER.warning(
                    "Load Snapshot - Skipping habit %s: %s",
                    data.get(const.DATA_HABIT_ID),
                    err,
                )
                continue
            habit_id = habit[const.DATA_HABIT_ID]
            self._habits[habit_id] = habit
            for slot in habit[const.DATA_HABIT_SLOTS]:
                source_id = habit_source_id(habit_id, slot[const.DATA_HABIT_SLOT_ID])
                self._habit_slots[source_id] = (habit, slot)

        self.overlay = CompletionOverlay.from_snapshot(
            occurrence_rows, habit_rows, self._activities.values()
        )
        const.LOGGER.debug(
            "Load Snapshot - %d activities, %d habits, %d overlay entries",
            len(self._activities),
            len(self._habits),
            len(self.overlay),
        )

    @property
    def activities(self) -> list[ActivityData]:
        """Normalized master activities."""
        return list(self._activities.values())

    @property
    def habits(self) -> list[HabitData]:
        """Normalized habits."""
        return list(self._habits.values())

    def get_activity(self, source_id: SourceId) -> ActivityData | None:
        """Return the master activity of a source id, if loaded."""
        return self._activities.get(source_id)

    # -------------------------------------------------------------------------------------
    # Calendar
    # -------------------------------------------------------------------------------------

    def get_instances(
        self,
        range_start: date,
        range_end: date,
        newest_first: bool = False,
        include_habits: bool = True,
    ) -> list[OccurrenceInstance]:
        """Return every occurrence in the window with its completion state.

        Dashboard charts and summaries pass include_habits=False; they count
        activities only.
        """
        instances = self.expander.expand_many(
            self._activities.values(),
            self._habits.values() if include_habits else (),
            range_start,
            range_end,
            self.overlay,
        )
        if newest_first:
            instances.reverse()
        return instances

    def set_occurrence_completion(
        self, source_id: SourceId, day: date, completed: bool
    ) -> bool:
        """Toggle one occurrence and persist it through the CRUD layer.

        Raises:
            KeyError: source_id is not a loaded activity or habit slot.
            OverlayWriteError: persisting failed; the toggle was rolled back.
        """
        master: ActivityData | None = None
        if source_id in self._activities:
            master = self._activities[source_id]
            scheduled = self.expander.occurs_on(master, day)
        elif source_id in self._habit_slots:
            habit, slot = self._habit_slots[source_id]
            scheduled = bool(self.expander.expand_habit_slot(habit, slot, day, day))
        else:
            raise KeyError(source_id)

        if not scheduled:
            const.LOGGER.warning(
                "Set Completion - %s has no occurrence on %s, writing anyway",
                source_id,
                day,
            )

        return self.overlay.set_occurrence_completion(
            source_id, day, completed, persist=self._persist, master=master
        )

    # -------------------------------------------------------------------------------------
    # Dashboard
    # -------------------------------------------------------------------------------------

    def weekly_chart(self, today: date | None = None) -> dict[str, BucketStats]:
        """Day buckets for the last 7 days ending today."""
        if today is None:
            today = dt_today_local()
        start = today - timedelta(days=6)
        instances = self.get_instances(start, today, include_habits=False)
        return self.stats.bucket_by_day(instances, start, today)

    def month_week_chart(
        self, reference: date | None = None, month_offset: int = 0
    ) -> dict[str, BucketStats]:
        """Week-of-month buckets ("W1".."Wn") for the reference month.

        Args:
            reference: Any day of the month; defaults to local today.
            month_offset: Months to move from the reference (-1 = previous).
        """
        if reference is None:
            reference = dt_today_local()
        if month_offset:
            reference = dt_add_months(reference, month_offset)

        week_starts_on = self.options[const.CONF_WEEK_STARTS_ON]
        ranges = self.stats.month_week_ranges(reference, week_starts_on)
        instances = self.get_instances(
            ranges[0][0], ranges[-1][1], include_habits=False
        )
        return self.stats.bucket_by_month_week(instances, reference, week_starts_on)

    def productivity_summary(
        self, range_start: date, range_end: date
    ) -> ProductivitySummary:
        """Completion rate, peak/failure days and categories for a window."""
        instances = self.get_instances(range_start, range_end, include_habits=False)
        return ProductivitySummary(
            summary=self.stats.completion_summary(instances),
            peak_days=self.stats.peak_days(instances),
            failure_days=self.stats.failure_days(instances),
            categories=self.stats.category_breakdown(
                instances, self._category_lookup
            ),
        )

    def streaks(self, today: date | None = None) -> StreakResult:
        """Current and longest streak over the configured lookback window.

        Habit slots count here, unlike the charts: a day qualifies only when
        every activity and habit slot on it is completed.
        """
        if today is None:
            today = dt_today_local()
        lookback = self.options[const.CONF_STREAK_LOOKBACK_DAYS]
        start = today - timedelta(days=lookback - 1)
        return self.stats.streaks(
            self.get_instances(start, today), today=today, lookback_days=lookback
        )

    # -------------------------------------------------------------------------------------
    # Reminders
    # -------------------------------------------------------------------------------------

    def check_reminders(self) -> list[Reminder]:
        """Run one reminder tick over the current snapshot."""
        return self.scout.evaluate(
            self._activities.values(), self._habits.values(), self.overlay
        )
