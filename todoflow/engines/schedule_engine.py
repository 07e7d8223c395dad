"""Schedule Engine for ToDoFlow.

Single occurrence expander shared by the calendar view, the dashboard
statistics and the reminder scout. Expansion uses `dateutil.rrule`:
- DAILY for daily activities and habit slots
- WEEKLY + byweekday for weekly activities
- MONTHLY + bymonthday for monthly activities (months lacking the day are
  skipped, never clamped or rolled into the next month)

All functions work in local calendar days (`datetime.date`) and never read
the clock, so the same arguments always give the same output.

IMPORTANT: This module must NOT import from coordinator.py or managers/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import TYPE_CHECKING, ClassVar

from dateutil.rrule import DAILY, FR, MO, MONTHLY, SA, SU, TH, TU, WE, WEEKLY, rrule

from .. import const
from ..utils.dt_utils import dt_parse_date, dt_parse_time

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from ..type_defs import (
        ActivityData,
        HabitData,
        HabitSlotData,
        RecurrenceConfig,
        SourceId,
    )
    from .completion_engine import CompletionOverlay


# =============================================================================
# Source Identifiers
# =============================================================================


def activity_source_id(activity_id: int | str) -> SourceId:
    """Build the overlay source id of an activity series."""
    return f"{const.SOURCE_KIND_ACTIVITY}{const.SOURCE_ID_SEPARATOR}{activity_id}"


def habit_source_id(habit_id: int | str, slot_id: int | str) -> SourceId:
    """Build the overlay source id of one habit slot."""
    sep = const.SOURCE_ID_SEPARATOR
    return f"{const.SOURCE_KIND_HABIT}{sep}{habit_id}{sep}{slot_id}"


# =============================================================================
# Value Types
# =============================================================================


@dataclass(frozen=True)
class RecurrenceRule:
    """Recurrence of a master activity.

    Attributes:
        type: One of const.RECURRENCE_* (none/daily/weekly/monthly)
        end_date: Inclusive last day of the series, or None (unbounded)
        days_of_week: Sunday-first weekday numbers, weekly rules only
        day_of_month: 1..31, monthly rules only
    """

    type: str = const.RECURRENCE_NONE
    end_date: date | None = None
    days_of_week: frozenset[int] = field(default_factory=frozenset)
    day_of_month: int | None = None

    @classmethod
    def from_config(cls, config: RecurrenceConfig | Mapping | None) -> RecurrenceRule:
        """Build a rule from a RecurrenceConfig dict.

        Note:
            Missing config or type means "none".
            Weekday entries outside 0-6 are filtered out.
            An unparseable end_date is treated as unbounded.
        """
        if not config:
            return cls()

        rule_type = config.get(const.DATA_RECURRENCE_TYPE) or const.RECURRENCE_NONE
        if rule_type == const.RECURRENCE_NONE:
            return cls()

        raw_days = config.get(const.DATA_RECURRENCE_DAYS_OF_WEEK) or []
        days = frozenset(
            d for d in raw_days if isinstance(d, int) and 0 <= d <= 6
        )

        raw_end = config.get(const.DATA_RECURRENCE_END_DATE)
        end_date = dt_parse_date(raw_end)
        if raw_end and end_date is None:
            const.LOGGER.warning(
                "RecurrenceRule: Ignoring unparseable end_date %s", raw_end
            )

        return cls(
            type=rule_type,
            end_date=end_date,
            days_of_week=days,
            day_of_month=config.get(const.DATA_RECURRENCE_DAY_OF_MONTH),
        )

    @property
    def is_recurring(self) -> bool:
        """Return True for every type except "none"."""
        return self.type != const.RECURRENCE_NONE


@dataclass(frozen=True)
class OccurrenceInstance:
    """A concrete calendar-day occurrence of a master record.

    Read-only projection; never persisted. `completed` is taken from the
    completion overlay at expansion time.
    """

    source_id: SourceId
    occurrence_date: date
    is_singular: bool
    completed: bool = False
    master_id: int | str | None = None
    kind: str = const.SOURCE_KIND_ACTIVITY
    title: str = ""
    time_of_day: time | None = None
    category_id: int | str | None = None
    slot_name: str | None = None

    @property
    def iso_date(self) -> str:
        """Occurrence day as an ISO string (overlay key format)."""
        return self.occurrence_date.isoformat()


# =============================================================================
# Expander
# =============================================================================


class OccurrenceExpander:
    """Expand master records into ordered calendar-day occurrences.

    Handles all recurrence types:
    - none: the anchor day, if it is inside the window
    - daily: every day from the anchor
    - weekly: every day whose weekday is in days_of_week
    - monthly: day_of_month in every month that has that day

    Expansion is capped at `max_days` days from the effective start of the
    window. A window past the cap is truncated (with a warning), never
    rejected.
    """

    # Sunday-first weekday numbers mapped to rrule weekday constants
    WEEKDAY_TO_RRULE: ClassVar[tuple] = (SU, MO, TU, WE, TH, FR, SA)

    def __init__(self, max_days: int = const.MAX_EXPANSION_DAYS) -> None:
        """Initialize the expander.

        Args:
            max_days: Maximum number of days walked by a single expansion.
        """
        self._max_days = max(1, max_days)

    # -------------------------------------------------------------------------
    # Date-level expansion
    # -------------------------------------------------------------------------

    def expand_dates(
        self,
        rule: RecurrenceRule,
        anchor_date: date | None,
        range_start: date,
        range_end: date,
    ) -> list[date]:
        """Return the ascending occurrence days of a rule inside a window.

        Args:
            rule: Recurrence rule of the master record.
            anchor_date: First day of the series; None yields no occurrences.
            range_start: Window start (inclusive).
            range_end: Window end (inclusive).

        Returns:
            Ascending list of days, possibly empty. Never raises on
            malformed rules.
        """
        if anchor_date is None:
            const.LOGGER.warning(
                "OccurrenceExpander: No valid anchor date, no occurrences"
            )
            return []

        if rule.type == const.RECURRENCE_NONE:
            if range_start <= anchor_date <= range_end:
                return [anchor_date]
            return []

        start = max(anchor_date, range_start)
        end = range_end if rule.end_date is None else min(range_end, rule.end_date)
        if start > end:
            return []

        cap_end = start + timedelta(days=self._max_days - 1)
        if end > cap_end:
            const.LOGGER.warning(
                "OccurrenceExpander: Window %s..%s exceeds %d days, truncating at %s",
                start,
                end,
                self._max_days,
                cap_end,
            )
            end = cap_end

        rule_set = self._build_rrule(rule, start, end)
        if rule_set is None:
            return []
        return [occurrence.date() for occurrence in rule_set]

    def _build_rrule(
        self, rule: RecurrenceRule, start: date, end: date
    ) -> rrule | None:
        """Build the rrule for a recurring rule, or None when it yields nothing.

        Args:
            rule: Recurring rule (type is not "none").
            start: Effective first day (already >= anchor and range start).
            end: Effective last day (already capped).
        """
        dtstart = datetime.combine(start, time.min)
        until = datetime.combine(end, time.min)

        if rule.type == const.RECURRENCE_DAILY:
            return rrule(DAILY, dtstart=dtstart, until=until)

        if rule.type == const.RECURRENCE_WEEKLY:
            if not rule.days_of_week:
                const.LOGGER.debug(
                    "OccurrenceExpander: Weekly rule without days, no occurrences"
                )
                return None
            weekdays = [self.WEEKDAY_TO_RRULE[d] for d in sorted(rule.days_of_week)]
            return rrule(WEEKLY, dtstart=dtstart, until=until, byweekday=weekdays)

        if rule.type == const.RECURRENCE_MONTHLY:
            day_of_month = rule.day_of_month
            if (
                not isinstance(day_of_month, int)
                or not const.DAY_OF_MONTH_MIN <= day_of_month <= const.DAY_OF_MONTH_MAX
            ):
                const.LOGGER.warning(
                    "OccurrenceExpander: Monthly rule with invalid day_of_month %s",
                    day_of_month,
                )
                return None
            return rrule(MONTHLY, dtstart=dtstart, until=until, bymonthday=day_of_month)

        const.LOGGER.warning(
            "OccurrenceExpander: Unknown recurrence type %s, no occurrences", rule.type
        )
        return None

    # -------------------------------------------------------------------------
    # Master-record expansion
    # -------------------------------------------------------------------------

    def expand(
        self,
        master: ActivityData,
        range_start: date,
        range_end: date,
        overlay: CompletionOverlay | None = None,
    ) -> list[OccurrenceInstance]:
        """Materialize the occurrences of a master activity inside a window.

        Args:
            master: Normalized activity record.
            range_start: Window start (inclusive).
            range_end: Window end (inclusive).
            overlay: Completion overlay to read per-occurrence state from.
                Without one, only the legacy flag of a non-recurring
                activity is used.

        Returns:
            Ascending list of OccurrenceInstance.
        """
        rule = RecurrenceRule.from_config(master.get(const.DATA_ACTIVITY_RECURRENCE))
        anchor = dt_parse_date(master.get(const.DATA_ACTIVITY_ANCHOR_DATE))
        source_id = activity_source_id(master[const.DATA_ACTIVITY_ID])
        is_singular = not rule.is_recurring
        time_of_day = dt_parse_time(master.get(const.DATA_ACTIVITY_TIME))

        instances: list[OccurrenceInstance] = []
        for day in self.expand_dates(rule, anchor, range_start, range_end):
            if overlay is not None:
                completed = overlay.get(source_id, day)
            else:
                completed = is_singular and bool(
                    master.get(const.DATA_ACTIVITY_COMPLETED)
                )
            instances.append(
                OccurrenceInstance(
                    source_id=source_id,
                    occurrence_date=day,
                    is_singular=is_singular,
                    completed=completed,
                    master_id=master[const.DATA_ACTIVITY_ID],
                    kind=const.SOURCE_KIND_ACTIVITY,
                    title=master.get(const.DATA_ACTIVITY_TITLE, ""),
                    time_of_day=time_of_day,
                    category_id=master.get(const.DATA_ACTIVITY_CATEGORY_ID),
                )
            )
        return instances

    def expand_habit_slot(
        self,
        habit: HabitData,
        slot: HabitSlotData,
        range_start: date,
        range_end: date,
        overlay: CompletionOverlay | None = None,
    ) -> list[OccurrenceInstance]:
        """Materialize a habit slot: one occurrence per day from the anchor."""
        anchor = dt_parse_date(habit.get(const.DATA_HABIT_ANCHOR_DATE))
        habit_id = habit[const.DATA_HABIT_ID]
        slot_id = slot[const.DATA_HABIT_SLOT_ID]
        source_id = habit_source_id(habit_id, slot_id)
        time_of_day = dt_parse_time(slot.get(const.DATA_HABIT_SLOT_DEFAULT_TIME))
        daily = RecurrenceRule(type=const.RECURRENCE_DAILY)

        return [
            OccurrenceInstance(
                source_id=source_id,
                occurrence_date=day,
                is_singular=False,
                completed=overlay.get(source_id, day) if overlay is not None else False,
                master_id=habit_id,
                kind=const.SOURCE_KIND_HABIT,
                title=habit.get(const.DATA_HABIT_NAME, ""),
                time_of_day=time_of_day,
                slot_name=slot.get(const.DATA_HABIT_SLOT_NAME),
            )
            for day in self.expand_dates(daily, anchor, range_start, range_end)
        ]

    def expand_many(
        self,
        activities: Iterable[ActivityData],
        habits: Iterable[HabitData],
        range_start: date,
        range_end: date,
        overlay: CompletionOverlay | None = None,
    ) -> list[OccurrenceInstance]:
        """Expand every activity and habit slot and merge the results.

        Returns:
            Instances sorted by (occurrence_date, time_of_day, source_id);
            occurrences without a time sort after timed ones on the same day.
        """
        instances: list[OccurrenceInstance] = []
        for activity in activities:
            instances.extend(self.expand(activity, range_start, range_end, overlay))
        for habit in habits:
            for slot in habit.get(const.DATA_HABIT_SLOTS, []):
                instances.extend(
                    self.expand_habit_slot(habit, slot, range_start, range_end, overlay)
                )

        instances.sort(
            key=lambda inst: (
                inst.occurrence_date,
                inst.time_of_day or time.max,
                inst.source_id,
            )
        )
        return instances

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def occurs_on(self, master: ActivityData, day: date) -> bool:
        """Return True if the activity has an occurrence on `day`."""
        rule = RecurrenceRule.from_config(master.get(const.DATA_ACTIVITY_RECURRENCE))
        anchor = dt_parse_date(master.get(const.DATA_ACTIVITY_ANCHOR_DATE))
        return bool(self.expand_dates(rule, anchor, day, day))

    def next_occurrence(self, master: ActivityData, after: date) -> date | None:
        """Return the first occurrence strictly after `after`, within the cap."""
        rule = RecurrenceRule.from_config(master.get(const.DATA_ACTIVITY_RECURRENCE))
        anchor = dt_parse_date(master.get(const.DATA_ACTIVITY_ANCHOR_DATE))
        start = after + timedelta(days=1)
        end = start + timedelta(days=self._max_days - 1)
        days = self.expand_dates(rule, anchor, start, end)
        return days[0] if days else None
