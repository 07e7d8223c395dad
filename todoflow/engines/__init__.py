"""Engine modules for ToDoFlow.

Contains the pure computation engines:
- schedule_engine: Recurrence rules and occurrence expansion
- completion_engine: Per-occurrence completion overlay
- statistics_engine: Buckets, weekday insights and streaks
"""

# Use relative imports within package to avoid mypy module resolution issues
from .completion_engine import CompletionOverlay, OverlayWriteError
from .schedule_engine import (
    OccurrenceExpander,
    OccurrenceInstance,
    RecurrenceRule,
    activity_source_id,
    habit_source_id,
)
from .statistics_engine import (
    CompletionSummary,
    FailureDaysResult,
    PeakDaysResult,
    StatisticsEngine,
    StreakResult,
)

__all__ = [
    "CompletionOverlay",
    "CompletionSummary",
    "FailureDaysResult",
    "OccurrenceExpander",
    "OccurrenceInstance",
    "OverlayWriteError",
    "PeakDaysResult",
    "RecurrenceRule",
    "StatisticsEngine",
    "StreakResult",
    "activity_source_id",
    "habit_source_id",
]
