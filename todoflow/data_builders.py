"""Boundary builders: CRUD-layer payloads → normalized engine records.

This module is the SINGLE SOURCE OF TRUTH for:
- Field defaults of activities, habits and options
- Structural validation of snapshots handed to the engines
- Backend-shape translation (repeat_mode, start_date, day names, ...)

### Build Functions
Each record type has a `build_<record>()` function that:
- Takes data with DATA_* keys
- Validates it with a voluptuous schema
- Applies field defaults
- Returns the normalized dict the engines consume

### Mapping Functions
`map_backend_activity()` and `map_backend_habit()` translate the backend
response shapes into DATA_* keys before building.

Business-rule oddities (an empty weekly day set, day_of_month 31) are NOT
rejected here: the expander degrades them to "no occurrences".
"""

from __future__ import annotations

from typing import Any, cast
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import voluptuous as vol

from . import const
from .type_defs import ActivityData, EngineOptions, HabitData
from .utils.dt_utils import dt_parse_date, dt_parse_time

# ==============================================================================
# EXCEPTIONS
# ==============================================================================


class EntityValidationError(Exception):
    """Validation error with field-specific information.

    Raised when a CRUD-layer record cannot be normalized. `field` names the
    offending key so the caller can report it.

    Attributes:
        field: Data key that failed validation (None for whole-record errors)
        translation_key: TRANS_KEY_* constant for the error message
        placeholders: Optional dict for translation string placeholders
    """

    def __init__(
        self,
        field: str | None,
        translation_key: str,
        placeholders: dict[str, str] | None = None,
    ) -> None:
        """Initialize EntityValidationError."""
        self.field = field
        self.translation_key = translation_key
        self.placeholders = placeholders or {}
        super().__init__(f"{translation_key}: {field}")


# ==============================================================================
# FIELD VALIDATORS
# ==============================================================================


def iso_date(value: Any) -> str:
    """Voluptuous validator: any parseable date → ISO date string."""
    parsed = dt_parse_date(value)
    if parsed is None:
        raise vol.Invalid(f"invalid date: {value!r}")
    return parsed.isoformat()


def optional_iso_date(value: Any) -> str | None:
    """Voluptuous validator: empty → None, otherwise iso_date()."""
    if value in (None, ""):
        return None
    return iso_date(value)


def time_of_day(value: Any) -> str | None:
    """Voluptuous validator: "HH:MM" (or empty) → normalized "HH:MM" or None."""
    if value in (None, ""):
        return None
    parsed = dt_parse_time(value)
    if parsed is None:
        raise vol.Invalid(f"invalid time: {value!r}")
    return parsed.strftime("%H:%M")


def parse_days_of_week(value: Any) -> list[int]:
    """Normalize a weekday selection to sorted Sunday-first numbers.

    Accepts a comma-separated string ("monday,wednesday" or "1,3") or a list
    of day names / numbers. Unknown entries are dropped.

    Examples:
        parse_days_of_week("Monday, friday") → [1, 5]
        parse_days_of_week([0, "6", "tuesday", 9]) → [0, 2, 6]
        parse_days_of_week(None) → []
    """
    if value in (None, ""):
        return []
    items = value.split(",") if isinstance(value, str) else list(value)

    days: set[int] = set()
    for item in items:
        if isinstance(item, int) and not isinstance(item, bool):
            number = item
        else:
            text = str(item).strip().lower()
            if text in const.WEEKDAY_NAMES:
                days.add(const.WEEKDAY_NAMES.index(text))
                continue
            try:
                number = int(text)
            except ValueError:
                const.LOGGER.debug("parse_days_of_week: Dropping %r", item)
                continue
        if 0 <= number <= 6:
            days.add(number)
        else:
            const.LOGGER.debug("parse_days_of_week: Dropping %r", item)
    return sorted(days)


def time_zone_name(value: Any) -> str:
    """Voluptuous validator: IANA zone name that zoneinfo can load."""
    try:
        ZoneInfo(str(value))
    except (ZoneInfoNotFoundError, ValueError) as err:
        raise vol.Invalid(f"unknown time zone: {value!r}") from err
    return str(value)


# ==============================================================================
# SCHEMAS
# ==============================================================================

RECURRENCE_SCHEMA = vol.Schema(
    {
        vol.Optional(
            const.DATA_RECURRENCE_TYPE, default=const.RECURRENCE_NONE
        ): vol.In(const.RECURRENCE_TYPES),
        vol.Optional(const.DATA_RECURRENCE_END_DATE, default=None): optional_iso_date,
        vol.Optional(const.DATA_RECURRENCE_DAYS_OF_WEEK, default=list): parse_days_of_week,
        vol.Optional(const.DATA_RECURRENCE_DAY_OF_MONTH, default=None): vol.Any(
            None, vol.Coerce(int)
        ),
    },
    extra=vol.REMOVE_EXTRA,
)

ACTIVITY_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_ACTIVITY_ID): vol.Any(int, str),
        vol.Optional(const.DATA_ACTIVITY_TITLE, default=""): vol.Any(None, str),
        vol.Required(const.DATA_ACTIVITY_ANCHOR_DATE): iso_date,
        vol.Optional(const.DATA_ACTIVITY_TIME, default=None): time_of_day,
        vol.Optional(const.DATA_ACTIVITY_CATEGORY_ID, default=None): vol.Any(
            None, int, str
        ),
        vol.Optional(const.DATA_ACTIVITY_RECURRENCE, default=dict): vol.Any(
            None, RECURRENCE_SCHEMA
        ),
        vol.Optional(const.DATA_ACTIVITY_COMPLETED, default=False): vol.Coerce(bool),
        vol.Optional(
            const.DATA_ACTIVITY_COMPLETED_AT, default=None
        ): optional_iso_date,
    },
    extra=vol.REMOVE_EXTRA,
)

HABIT_SLOT_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_HABIT_SLOT_ID): vol.Any(int, str),
        vol.Optional(const.DATA_HABIT_SLOT_NAME, default=""): vol.Any(None, str),
        vol.Optional(const.DATA_HABIT_SLOT_DEFAULT_TIME, default=None): time_of_day,
        vol.Optional(const.DATA_HABIT_SLOT_ORDER, default=0): vol.Coerce(int),
    },
    extra=vol.REMOVE_EXTRA,
)

HABIT_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_HABIT_ID): vol.Any(int, str),
        vol.Optional(const.DATA_HABIT_NAME, default=""): vol.Any(None, str),
        vol.Required(const.DATA_HABIT_ANCHOR_DATE): iso_date,
        vol.Optional(const.DATA_HABIT_SLOTS, default=list): [HABIT_SLOT_SCHEMA],
    },
    extra=vol.REMOVE_EXTRA,
)

OPTIONS_SCHEMA = vol.Schema(
    {
        vol.Optional(
            const.CONF_WEEK_STARTS_ON, default=const.DEFAULT_WEEK_STARTS_ON
        ): vol.All(vol.Coerce(int), vol.Range(min=0, max=6)),
        vol.Optional(
            const.CONF_STREAK_LOOKBACK_DAYS, default=const.DEFAULT_STREAK_LOOKBACK_DAYS
        ): vol.All(vol.Coerce(int), vol.Range(min=1, max=const.MAX_EXPANSION_DAYS)),
        vol.Optional(
            const.CONF_ACTIVITY_REMINDER_MINUTES,
            default=const.DEFAULT_ACTIVITY_REMINDER_MINUTES,
        ): vol.All(vol.Coerce(int), vol.Range(min=0)),
        vol.Optional(
            const.CONF_HABIT_REMINDER_MINUTES,
            default=const.DEFAULT_HABIT_REMINDER_MINUTES,
        ): vol.All(vol.Coerce(int), vol.Range(min=0)),
        vol.Optional(
            const.CONF_REMINDER_HORIZON_DAYS,
            default=const.DEFAULT_REMINDER_HORIZON_DAYS,
        ): vol.All(vol.Coerce(int), vol.Range(min=1, max=31)),
        vol.Optional(
            const.CONF_POLL_INTERVAL_SECONDS,
            default=const.DEFAULT_POLL_INTERVAL_SECONDS,
        ): vol.All(vol.Coerce(int), vol.Range(min=1)),
        vol.Optional(const.CONF_TIME_ZONE, default=const.DEFAULT_TIME_ZONE): time_zone_name,
    }
)


# Field-specific translation keys; other fields use the record-level key
_FIELD_TRANSLATION_KEYS: dict[str, str] = {
    const.DATA_ACTIVITY_ANCHOR_DATE: const.TRANS_KEY_INVALID_ANCHOR_DATE,
    const.DATA_ACTIVITY_RECURRENCE: const.TRANS_KEY_INVALID_RECURRENCE,
}


def _validate(schema: vol.Schema, data: Any, translation_key: str) -> dict[str, Any]:
    """Run a schema and translate voluptuous errors to EntityValidationError."""
    try:
        return schema(data)
    except vol.Invalid as err:
        field = str(err.path[0]) if err.path else None
        raise EntityValidationError(
            field=field,
            translation_key=_FIELD_TRANSLATION_KEYS.get(field or "", translation_key),
            placeholders={"error": err.msg},
        ) from err


# ==============================================================================
# ACTIVITIES
# ==============================================================================


def map_backend_activity(payload: dict[str, Any]) -> dict[str, Any]:
    """Translate a backend activity response into DATA_* keys.

    Backend fields: start_date, repeat_mode, end_date, days_of_week (comma
    separated day names), day_of_month, time, category_id, title.
    """
    return {
        const.DATA_ACTIVITY_ID: payload.get(const.BACKEND_ACTIVITY_ID),
        const.DATA_ACTIVITY_TITLE: payload.get(const.BACKEND_ACTIVITY_TITLE) or "",
        const.DATA_ACTIVITY_ANCHOR_DATE: payload.get(const.BACKEND_ACTIVITY_START_DATE),
        const.DATA_ACTIVITY_TIME: payload.get(const.BACKEND_ACTIVITY_TIME),
        const.DATA_ACTIVITY_CATEGORY_ID: payload.get(const.BACKEND_ACTIVITY_CATEGORY_ID),
        const.DATA_ACTIVITY_RECURRENCE: {
            const.DATA_RECURRENCE_TYPE: payload.get(const.BACKEND_ACTIVITY_REPEAT_MODE)
            or const.RECURRENCE_NONE,
            const.DATA_RECURRENCE_END_DATE: payload.get(const.BACKEND_ACTIVITY_END_DATE),
            const.DATA_RECURRENCE_DAYS_OF_WEEK: payload.get(
                const.BACKEND_ACTIVITY_DAYS_OF_WEEK
            ),
            const.DATA_RECURRENCE_DAY_OF_MONTH: payload.get(
                const.BACKEND_ACTIVITY_DAY_OF_MONTH
            ),
        },
    }


def build_activity(data: dict[str, Any]) -> ActivityData:
    """Validate and normalize an activity record.

    Args:
        data: Activity with DATA_* keys (see map_backend_activity()).

    Returns:
        ActivityData ready for the engines.

    Raises:
        EntityValidationError: id or anchor date missing/invalid, bad time,
            unknown recurrence type.
    """
    activity = _validate(ACTIVITY_SCHEMA, data, const.TRANS_KEY_INVALID_ACTIVITY)
    if activity[const.DATA_ACTIVITY_RECURRENCE] is None:
        activity[const.DATA_ACTIVITY_RECURRENCE] = RECURRENCE_SCHEMA({})
    if activity[const.DATA_ACTIVITY_TITLE] is None:
        activity[const.DATA_ACTIVITY_TITLE] = ""
    return cast("ActivityData", activity)


# ==============================================================================
# HABITS
# ==============================================================================


def map_backend_habit(payload: dict[str, Any]) -> dict[str, Any]:
    """Translate a backend habit response into DATA_* keys.

    The habit's `created_at` becomes the anchor date of all its slots.
    """
    return {
        const.DATA_HABIT_ID: payload.get(const.BACKEND_HABIT_ID),
        const.DATA_HABIT_NAME: payload.get(const.BACKEND_HABIT_NAME) or "",
        const.DATA_HABIT_ANCHOR_DATE: payload.get(const.BACKEND_HABIT_CREATED_AT),
        const.DATA_HABIT_SLOTS: list(payload.get(const.BACKEND_HABIT_SLOTS) or []),
    }


def build_habit(data: dict[str, Any]) -> HabitData:
    """Validate and normalize a habit; slots are sorted by their order."""
    habit = _validate(HABIT_SCHEMA, data, const.TRANS_KEY_INVALID_HABIT)
    if habit[const.DATA_HABIT_NAME] is None:
        habit[const.DATA_HABIT_NAME] = ""
    habit[const.DATA_HABIT_SLOTS] = sorted(
        habit[const.DATA_HABIT_SLOTS],
        key=lambda slot: slot[const.DATA_HABIT_SLOT_ORDER],
    )
    return cast("HabitData", habit)


# ==============================================================================
# OPTIONS
# ==============================================================================


def build_options(user_input: dict[str, Any] | None = None) -> EngineOptions:
    """Validate engine options, filling defaults for missing keys."""
    options = _validate(OPTIONS_SCHEMA, user_input or {}, const.TRANS_KEY_INVALID_OPTIONS)
    return cast("EngineOptions", options)
