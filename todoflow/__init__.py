# File: __init__.py
"""ToDoFlow occurrence expansion and analytics engine.

Turns master activities (one-off, daily, weekly, monthly) and daily habit
slots into concrete calendar-day occurrences, merges them with a sparse
per-occurrence completion overlay, and derives dashboard statistics,
streaks and reminder triggers.

Persistence, networking and notification delivery stay with the host
application; it passes in snapshots and callbacks.
"""

from .coordinator import ProductivitySummary, TodoFlowCoordinator
from .data_builders import EntityValidationError, build_activity, build_habit, build_options
from .engines import (
    CompletionOverlay,
    OccurrenceExpander,
    OccurrenceInstance,
    OverlayWriteError,
    RecurrenceRule,
    StatisticsEngine,
)
from .managers import NotificationScout, Reminder

__version__ = "0.1.0"

__all__ = [
    "CompletionOverlay",
    "EntityValidationError",
    "NotificationScout",
    "OccurrenceExpander",
    "OccurrenceInstance",
    "OverlayWriteError",
    "ProductivitySummary",
    "RecurrenceRule",
    "Reminder",
    "StatisticsEngine",
    "TodoFlowCoordinator",
    "build_activity",
    "build_habit",
    "build_options",
]
