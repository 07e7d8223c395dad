"""Shared fixtures for ToDoFlow tests."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import date, datetime
from typing import Any

import pytest

from todoflow import const
from todoflow.engines.schedule_engine import OccurrenceExpander, OccurrenceInstance
from todoflow.engines.statistics_engine import StatisticsEngine
from todoflow.utils.dt_utils import set_default_timezone


@pytest.fixture(autouse=True)
def reset_default_timezone() -> Iterator[None]:
    """Run every test in UTC and restore it afterwards."""
    set_default_timezone("UTC")
    yield
    set_default_timezone("UTC")


@pytest.fixture
def expander() -> OccurrenceExpander:
    """Return a default expander."""
    return OccurrenceExpander()


@pytest.fixture
def stats() -> StatisticsEngine:
    """Return a statistics engine."""
    return StatisticsEngine()


@pytest.fixture
def make_activity() -> Callable[..., dict[str, Any]]:
    """Factory for normalized activity records."""

    def _make(
        activity_id: int | str = 1,
        anchor: str = "2024-01-01",
        rule_type: str = const.RECURRENCE_NONE,
        days_of_week: list[int] | None = None,
        day_of_month: int | None = None,
        end_date: str | None = None,
        time_of_day: str | None = None,
        title: str = "Activity",
        category_id: int | str | None = None,
        completed: bool = False,
    ) -> dict[str, Any]:
        return {
            const.DATA_ACTIVITY_ID: activity_id,
            const.DATA_ACTIVITY_TITLE: title,
            const.DATA_ACTIVITY_ANCHOR_DATE: anchor,
            const.DATA_ACTIVITY_TIME: time_of_day,
            const.DATA_ACTIVITY_CATEGORY_ID: category_id,
            const.DATA_ACTIVITY_RECURRENCE: {
                const.DATA_RECURRENCE_TYPE: rule_type,
                const.DATA_RECURRENCE_END_DATE: end_date,
                const.DATA_RECURRENCE_DAYS_OF_WEEK: days_of_week or [],
                const.DATA_RECURRENCE_DAY_OF_MONTH: day_of_month,
            },
            const.DATA_ACTIVITY_COMPLETED: completed,
            const.DATA_ACTIVITY_COMPLETED_AT: None,
        }

    return _make


@pytest.fixture
def make_habit() -> Callable[..., dict[str, Any]]:
    """Factory for normalized habit records with one slot."""

    def _make(
        habit_id: int | str = "h1",
        anchor: str = "2024-01-01",
        slot_id: int | str = "s1",
        slot_name: str = "Morning",
        default_time: str | None = None,
        name: str = "Stretch",
    ) -> dict[str, Any]:
        return {
            const.DATA_HABIT_ID: habit_id,
            const.DATA_HABIT_NAME: name,
            const.DATA_HABIT_ANCHOR_DATE: anchor,
            const.DATA_HABIT_SLOTS: [
                {
                    const.DATA_HABIT_SLOT_ID: slot_id,
                    const.DATA_HABIT_SLOT_NAME: slot_name,
                    const.DATA_HABIT_SLOT_DEFAULT_TIME: default_time,
                    const.DATA_HABIT_SLOT_ORDER: 0,
                }
            ],
        }

    return _make


def make_instance(
    day: date,
    completed: bool,
    source_id: str = "activity:1",
    category_id: int | str | None = None,
) -> OccurrenceInstance:
    """Create an OccurrenceInstance for statistics tests."""
    return OccurrenceInstance(
        source_id=source_id,
        occurrence_date=day,
        is_singular=False,
        completed=completed,
        category_id=category_id,
    )


class FakeClock:
    """Mutable clock for the reminder scout."""

    def __init__(self, now: datetime) -> None:
        """Initialize with a naive local datetime."""
        self.now = now

    def __call__(self) -> datetime:
        """Return the current fake time."""
        return self.now
