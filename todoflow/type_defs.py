"""Type definitions for ToDoFlow data structures.

Records supplied by the CRUD layer are plain dicts with fixed keys, so they
are described with TypedDict. Engine outputs that are created and consumed
inside the package (instances, reminders, statistics results) are frozen
dataclasses defined next to the engine that builds them.

NOTE: TypedDict is STATIC ANALYSIS ONLY. Runtime normalization of CRUD input
happens in data_builders.py.
"""

from typing import NotRequired, TypedDict

# =============================================================================
# Type Aliases (for readability)
# =============================================================================

SourceId = str  # "activity:<id>" or "habit:<habit_id>:<slot_id>"
ISODate = str  # ISO 8601 date string (no time) "2024-03-10"
ISODatetime = str  # ISO 8601 datetime string "2024-03-10T09:30:00+00:00"
TimeOfDay = str  # "HH:MM"


# =============================================================================
# Recurrence
# =============================================================================


class RecurrenceConfig(TypedDict, total=False):
    """Recurrence rule of a master activity.

    All fields are optional (total=False); a missing `type` means "none".
    """

    type: str  # RECURRENCE_* constant from const.py
    end_date: ISODate | None  # Inclusive last day of the series
    days_of_week: list[int]  # Sunday-first weekday numbers (weekly only)
    day_of_month: int | None  # 1..31 (monthly only)


# =============================================================================
# Master Records
# =============================================================================


class ActivityData(TypedDict):
    """Master activity as normalized by data_builders.build_activity()."""

    id: int | str
    title: str
    anchor_date: ISODate
    recurrence: RecurrenceConfig
    time: NotRequired[TimeOfDay | None]
    category_id: NotRequired[int | str | None]
    # Legacy completion mirror, only meaningful for non-recurring activities
    completed: bool
    completed_at: ISODate | None


class HabitSlotData(TypedDict):
    """A named daily slot of a habit (e.g. "Morning")."""

    id: int | str
    name: str
    default_time: NotRequired[TimeOfDay | None]
    order: NotRequired[int]


class HabitData(TypedDict):
    """Habit with its slots; every slot recurs daily from anchor_date."""

    id: int | str
    name: str
    anchor_date: ISODate
    slots: list[HabitSlotData]


# =============================================================================
# Overlay Snapshot Rows
# =============================================================================


class OccurrenceRow(TypedDict):
    """Activity occurrence row as returned by the CRUD layer."""

    activity_id: int | str
    date: ISODatetime
    complete: bool


class HabitCompletionRow(TypedDict):
    """Habit completion row as returned by the CRUD layer."""

    habit_id: int | str
    slot_id: int | str
    completion_date: ISODatetime
    is_completed: bool


# =============================================================================
# Options
# =============================================================================


class EngineOptions(TypedDict, total=False):
    """Runtime options validated by data_builders.build_options()."""

    week_starts_on: int
    streak_lookback_days: int
    activity_reminder_minutes: int
    habit_reminder_minutes: int
    reminder_horizon_days: int
    poll_interval_seconds: int
    time_zone: str


# =============================================================================
# Statistics Buckets
# =============================================================================


class BucketStats(TypedDict):
    """Totals for one day/week bucket."""

    total: int
    completed: int
    ratio: float


class DayOfWeekStats(TypedDict):
    """Totals for one weekday across a window."""

    total: int
    completed: int
    incomplete: int
