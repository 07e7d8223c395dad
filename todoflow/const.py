# File: const.py
"""Constants for the ToDoFlow occurrence engine.

This file centralizes data keys, recurrence identifiers, defaults, reminder
kinds and message templates for consistency across the engines, managers
and coordinator.
"""

import logging
from typing import Final

# ------------------------------------------------------------------------------------------------
# General
# ------------------------------------------------------------------------------------------------
# Logger
LOGGER = logging.getLogger(__package__)

# ------------------------------------------------------------------------------------------------
# Recurrence Types
# ------------------------------------------------------------------------------------------------
RECURRENCE_NONE: Final = "none"
RECURRENCE_DAILY: Final = "daily"
RECURRENCE_WEEKLY: Final = "weekly"
RECURRENCE_MONTHLY: Final = "monthly"

RECURRENCE_TYPES: Final = (
    RECURRENCE_NONE,
    RECURRENCE_DAILY,
    RECURRENCE_WEEKLY,
    RECURRENCE_MONTHLY,
)

# ------------------------------------------------------------------------------------------------
# Weekdays (Sunday-first numbering, 0=Sunday .. 6=Saturday)
# ------------------------------------------------------------------------------------------------
WEEKDAY_SUNDAY: Final = 0

WEEKDAY_NAMES: Final = (
    "sunday",
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
)

# Short labels used for chart rows
WEEKDAY_LABELS: Final = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")

DAY_OF_MONTH_MIN: Final = 1
DAY_OF_MONTH_MAX: Final = 31

# ------------------------------------------------------------------------------------------------
# Source Identifiers
# ------------------------------------------------------------------------------------------------
SOURCE_KIND_ACTIVITY: Final = "activity"
SOURCE_KIND_HABIT: Final = "habit"

SOURCE_ID_SEPARATOR: Final = ":"

# ------------------------------------------------------------------------------------------------
# Data Keys - Activities
# ------------------------------------------------------------------------------------------------
DATA_ACTIVITY_ID: Final = "id"
DATA_ACTIVITY_TITLE: Final = "title"
DATA_ACTIVITY_ANCHOR_DATE: Final = "anchor_date"
DATA_ACTIVITY_TIME: Final = "time"
DATA_ACTIVITY_CATEGORY_ID: Final = "category_id"
DATA_ACTIVITY_RECURRENCE: Final = "recurrence"
DATA_ACTIVITY_COMPLETED: Final = "completed"
DATA_ACTIVITY_COMPLETED_AT: Final = "completed_at"

DATA_RECURRENCE_TYPE: Final = "type"
DATA_RECURRENCE_END_DATE: Final = "end_date"
DATA_RECURRENCE_DAYS_OF_WEEK: Final = "days_of_week"
DATA_RECURRENCE_DAY_OF_MONTH: Final = "day_of_month"

# ------------------------------------------------------------------------------------------------
# Data Keys - Habits
# ------------------------------------------------------------------------------------------------
DATA_HABIT_ID: Final = "id"
DATA_HABIT_NAME: Final = "name"
DATA_HABIT_ANCHOR_DATE: Final = "anchor_date"
DATA_HABIT_SLOTS: Final = "slots"

DATA_HABIT_SLOT_ID: Final = "id"
DATA_HABIT_SLOT_NAME: Final = "name"
DATA_HABIT_SLOT_DEFAULT_TIME: Final = "default_time"
DATA_HABIT_SLOT_ORDER: Final = "order"

# ------------------------------------------------------------------------------------------------
# Backend (CRUD layer) Keys
# ------------------------------------------------------------------------------------------------
BACKEND_ACTIVITY_ID: Final = "id"
BACKEND_ACTIVITY_TITLE: Final = "title"
BACKEND_ACTIVITY_START_DATE: Final = "start_date"
BACKEND_ACTIVITY_TIME: Final = "time"
BACKEND_ACTIVITY_CATEGORY_ID: Final = "category_id"
BACKEND_ACTIVITY_REPEAT_MODE: Final = "repeat_mode"
BACKEND_ACTIVITY_END_DATE: Final = "end_date"
BACKEND_ACTIVITY_DAYS_OF_WEEK: Final = "days_of_week"
BACKEND_ACTIVITY_DAY_OF_MONTH: Final = "day_of_month"

BACKEND_OCCURRENCE_ACTIVITY_ID: Final = "activity_id"
BACKEND_OCCURRENCE_DATE: Final = "date"
BACKEND_OCCURRENCE_COMPLETE: Final = "complete"

BACKEND_HABIT_ID: Final = "id"
BACKEND_HABIT_NAME: Final = "name"
BACKEND_HABIT_CREATED_AT: Final = "created_at"
BACKEND_HABIT_SLOTS: Final = "slots"

BACKEND_HABIT_COMPLETION_HABIT_ID: Final = "habit_id"
BACKEND_HABIT_COMPLETION_SLOT_ID: Final = "slot_id"
BACKEND_HABIT_COMPLETION_DATE: Final = "completion_date"
BACKEND_HABIT_COMPLETION_IS_COMPLETED: Final = "is_completed"

# ------------------------------------------------------------------------------------------------
# Options (Configuration)
# ------------------------------------------------------------------------------------------------
CONF_WEEK_STARTS_ON: Final = "week_starts_on"
CONF_STREAK_LOOKBACK_DAYS: Final = "streak_lookback_days"
CONF_ACTIVITY_REMINDER_MINUTES: Final = "activity_reminder_minutes"
CONF_HABIT_REMINDER_MINUTES: Final = "habit_reminder_minutes"
CONF_REMINDER_HORIZON_DAYS: Final = "reminder_horizon_days"
CONF_POLL_INTERVAL_SECONDS: Final = "poll_interval_seconds"
CONF_TIME_ZONE: Final = "time_zone"

DEFAULT_WEEK_STARTS_ON: Final = WEEKDAY_SUNDAY
DEFAULT_STREAK_LOOKBACK_DAYS: Final = 365
DEFAULT_ACTIVITY_REMINDER_MINUTES: Final = 5
DEFAULT_HABIT_REMINDER_MINUTES: Final = 10
DEFAULT_REMINDER_HORIZON_DAYS: Final = 8
DEFAULT_POLL_INTERVAL_SECONDS: Final = 60
DEFAULT_TIME_ZONE: Final = "UTC"

# Safety limit for a single expansion (two leap years of days)
MAX_EXPANSION_DAYS: Final = 2 * 366

# ------------------------------------------------------------------------------------------------
# Statistics
# ------------------------------------------------------------------------------------------------
PERIOD_FORMAT_DAILY: Final = "%Y-%m-%d"
PERIOD_FORMAT_WEEKLY: Final = "%G-W%V"
PERIOD_LABEL_MONTH_WEEK: Final = "W{index}"

STAT_TOTAL: Final = "total"
STAT_COMPLETED: Final = "completed"
STAT_INCOMPLETE: Final = "incomplete"
STAT_RATIO: Final = "ratio"

# Peak/failure day result states
PEAK_STATE_PEAK: Final = "peak"
PEAK_STATE_NO_PEAK_DAY: Final = "no_peak_day"
FAILURE_STATE_FAILURES: Final = "failures"
FAILURE_STATE_ALL_COMPLETE: Final = "all_complete"
FAILURE_STATE_NO_DATA: Final = "no_data"

CATEGORY_UNCATEGORIZED: Final = "Uncategorized"

DATA_FLOAT_PRECISION: Final = 2

# ------------------------------------------------------------------------------------------------
# Reminders
# ------------------------------------------------------------------------------------------------
REMINDER_ACTIVITY_STARTING_SOON: Final = "5min_soon"
REMINDER_HABIT_STARTING_SOON: Final = "10min_soon"
REMINDER_WEEKLY_1_DAY: Final = "1day_weekly"
REMINDER_MONTHLY_1_WEEK: Final = "1week_monthly"
REMINDER_MONTHLY_2_DAYS: Final = "2days_monthly"
REMINDER_MONTHLY_1_DAY: Final = "1day_monthly"

# Days-before offsets for advance reminders, per recurrence type
ADVANCE_REMINDER_OFFSETS: Final[dict[str, tuple[tuple[int, str], ...]]] = {
    RECURRENCE_WEEKLY: ((1, REMINDER_WEEKLY_1_DAY),),
    RECURRENCE_MONTHLY: (
        (7, REMINDER_MONTHLY_1_WEEK),
        (2, REMINDER_MONTHLY_2_DAYS),
        (1, REMINDER_MONTHLY_1_DAY),
    ),
}

# Default English message templates: (title, body)
REMINDER_TEMPLATES: Final[dict[str, tuple[str, str]]] = {
    REMINDER_ACTIVITY_STARTING_SOON: (
        "Activity Starting Soon!",
        '"{title}" is scheduled for {time}.',
    ),
    REMINDER_HABIT_STARTING_SOON: (
        "Habit Starting Soon!",
        '"{title}" ({slot}) is scheduled for {time}.',
    ),
    REMINDER_WEEKLY_1_DAY: (
        "Activity Reminder: Tomorrow",
        '"{title}" is scheduled for tomorrow.',
    ),
    REMINDER_MONTHLY_1_DAY: (
        "Activity Reminder: Tomorrow",
        '"{title}" is scheduled for tomorrow.',
    ),
    REMINDER_MONTHLY_2_DAYS: (
        "Activity Reminder: In 2 Days",
        '"{title}" is scheduled in 2 days.',
    ),
    REMINDER_MONTHLY_1_WEEK: (
        "Activity Reminder: In 1 Week",
        '"{title}" is scheduled in one week.',
    ),
}

# ------------------------------------------------------------------------------------------------
# Validation Translation Keys
# ------------------------------------------------------------------------------------------------
TRANS_KEY_INVALID_ACTIVITY: Final = "invalid_activity"
TRANS_KEY_INVALID_HABIT: Final = "invalid_habit"
TRANS_KEY_INVALID_ANCHOR_DATE: Final = "invalid_anchor_date"
TRANS_KEY_INVALID_RECURRENCE: Final = "invalid_recurrence"
TRANS_KEY_INVALID_OPTIONS: Final = "invalid_options"
