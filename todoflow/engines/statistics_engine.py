"""Statistics Engine - Analytics over expanded occurrences.

This engine derives every chart and insight of the dashboard from a list of
OccurrenceInstance (expansion output merged with the completion overlay):
- Bucketed totals per day, ISO week, or week of the current month
- Day-of-week breakdown, peak days and days with most failures
- Overall completion rate and per-category completions
- Current and longest streaks

Design Principles:
    - Stateless: operates only on the instances passed in
    - Total: empty input gives zeroed results, never an exception
    - Clock-free unless `today` is omitted, in which case local today is used
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from typing import TYPE_CHECKING

from .. import const
from ..utils.dt_utils import (
    dt_date_range,
    dt_iso_week_key,
    dt_month_bounds,
    dt_start_of_week,
    dt_today_local,
    dt_weekday,
)
from ..utils.math_utils import calculate_percentage, round_ratio, safe_ratio

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from ..type_defs import BucketStats, DayOfWeekStats
    from .schedule_engine import OccurrenceInstance


# =============================================================================
# Result Types
# =============================================================================


@dataclass(frozen=True)
class PeakDaysResult:
    """Weekday(s) with the most completions.

    `state` is const.PEAK_STATE_PEAK when at least one completion exists,
    otherwise const.PEAK_STATE_NO_PEAK_DAY with empty `days`.
    """

    state: str
    days: tuple[int, ...] = ()
    count: int = 0

    @property
    def labels(self) -> list[str]:
        """Short weekday labels of the peak days."""
        return [const.WEEKDAY_LABELS[d] for d in self.days]


@dataclass(frozen=True)
class FailureDaysResult:
    """Weekday(s) with the most incomplete occurrences.

    States:
        FAILURE_STATE_FAILURES: `days` holds the worst weekday(s)
        FAILURE_STATE_ALL_COMPLETE: items were scheduled, none incomplete
        FAILURE_STATE_NO_DATA: nothing was scheduled at all
    """

    state: str
    days: tuple[int, ...] = ()
    count: int = 0

    @property
    def labels(self) -> list[str]:
        """Short weekday labels of the failure days."""
        return [const.WEEKDAY_LABELS[d] for d in self.days]


@dataclass(frozen=True)
class CompletionSummary:
    """Overall totals of a window."""

    total: int = 0
    completed: int = 0
    rate: float = 0.0  # Percentage 0-100


@dataclass(frozen=True)
class StreakResult:
    """Current and longest streak, in days."""

    current: int = 0
    longest: int = 0


# =============================================================================
# Engine
# =============================================================================


def _empty_bucket() -> BucketStats:
    return {const.STAT_TOTAL: 0, const.STAT_COMPLETED: 0, const.STAT_RATIO: 0.0}


def _finalize(bucket: BucketStats) -> BucketStats:
    bucket[const.STAT_RATIO] = round_ratio(
        safe_ratio(bucket[const.STAT_COMPLETED], bucket[const.STAT_TOTAL])
    )
    return bucket


class StatisticsEngine:
    """Stateless analytics over OccurrenceInstance sequences.

    Example:
        stats = StatisticsEngine()
        instances = expander.expand_many(activities, habits, start, end, overlay)

        stats.bucket_by_day(instances, start, end)
        stats.peak_days(instances)
        stats.streaks(instances, today=date(2024, 1, 14))
    """

    # ────────────────────────────────────────────────────────────────
    # Grouping
    # ────────────────────────────────────────────────────────────────

    @staticmethod
    def group_by_day(
        instances: Iterable[OccurrenceInstance],
    ) -> dict[date, list[OccurrenceInstance]]:
        """Group instances by occurrence day, days in ascending order."""
        grouped: dict[date, list[OccurrenceInstance]] = defaultdict(list)
        for instance in instances:
            grouped[instance.occurrence_date].append(instance)
        return dict(sorted(grouped.items()))

    # ────────────────────────────────────────────────────────────────
    # Bucketing
    # ────────────────────────────────────────────────────────────────

    def bucket_by_day(
        self,
        instances: Iterable[OccurrenceInstance],
        range_start: date,
        range_end: date,
    ) -> dict[str, BucketStats]:
        """Totals per calendar day, with every day of the window present.

        Returns:
            {"2024-01-01": {"total": 2, "completed": 1, "ratio": 0.5}, ...}
            Days without occurrences report 0/0 with ratio 0.0.
        """
        buckets: dict[str, BucketStats] = {
            day.strftime(const.PERIOD_FORMAT_DAILY): _empty_bucket()
            for day in dt_date_range(range_start, range_end)
        }
        for instance in instances:
            key = instance.occurrence_date.strftime(const.PERIOD_FORMAT_DAILY)
            bucket = buckets.get(key)
            if bucket is None:
                continue
            bucket[const.STAT_TOTAL] += 1
            if instance.completed:
                bucket[const.STAT_COMPLETED] += 1
        return {key: _finalize(bucket) for key, bucket in buckets.items()}

    def bucket_by_week(
        self,
        instances: Iterable[OccurrenceInstance],
        range_start: date,
        range_end: date,
    ) -> dict[str, BucketStats]:
        """Totals per ISO week (keys like "2024-W01") overlapping the window.

        Only occurrences inside the window are counted.
        """
        buckets: dict[str, BucketStats] = {}
        for day in dt_date_range(range_start, range_end):
            buckets.setdefault(dt_iso_week_key(day), _empty_bucket())

        for instance in instances:
            if not range_start <= instance.occurrence_date <= range_end:
                continue
            bucket = buckets[dt_iso_week_key(instance.occurrence_date)]
            bucket[const.STAT_TOTAL] += 1
            if instance.completed:
                bucket[const.STAT_COMPLETED] += 1
        return {key: _finalize(bucket) for key, bucket in buckets.items()}

    def month_week_ranges(
        self, reference: date, week_starts_on: int = const.DEFAULT_WEEK_STARTS_ON
    ) -> list[tuple[date, date]]:
        """Return the (start, end) of every week touching the reference month.

        Weeks are whole weeks, so the first and last may spill into the
        neighbouring months.
        """
        first, last = dt_month_bounds(reference)
        week_start = dt_start_of_week(first, week_starts_on)
        ranges: list[tuple[date, date]] = []
        while week_start <= last:
            ranges.append((week_start, week_start + timedelta(days=6)))
            week_start += timedelta(days=7)
        return ranges

    def bucket_by_month_week(
        self,
        instances: Iterable[OccurrenceInstance],
        reference: date,
        week_starts_on: int = const.DEFAULT_WEEK_STARTS_ON,
    ) -> dict[str, BucketStats]:
        """Totals per week of the reference month, labelled "W1".."Wn".

        Callers should expand the full span of month_week_ranges() so that
        spill-over days are counted.
        """
        ranges = self.month_week_ranges(reference, week_starts_on)
        buckets: dict[str, BucketStats] = {
            const.PERIOD_LABEL_MONTH_WEEK.format(index=index): _empty_bucket()
            for index in range(1, len(ranges) + 1)
        }
        if not ranges:
            return buckets

        span_start = ranges[0][0]
        span_end = ranges[-1][1]
        for instance in instances:
            day = instance.occurrence_date
            if not span_start <= day <= span_end:
                continue
            index = (day - span_start).days // 7 + 1
            bucket = buckets[const.PERIOD_LABEL_MONTH_WEEK.format(index=index)]
            bucket[const.STAT_TOTAL] += 1
            if instance.completed:
                bucket[const.STAT_COMPLETED] += 1
        return {key: _finalize(bucket) for key, bucket in buckets.items()}

    # ────────────────────────────────────────────────────────────────
    # Totals
    # ────────────────────────────────────────────────────────────────

    def completion_summary(
        self, instances: Iterable[OccurrenceInstance]
    ) -> CompletionSummary:
        """Total, completed and overall completion rate (percent)."""
        total = 0
        completed = 0
        for instance in instances:
            total += 1
            if instance.completed:
                completed += 1
        return CompletionSummary(
            total=total,
            completed=completed,
            rate=calculate_percentage(completed, total, const.DATA_FLOAT_PRECISION),
        )

    def category_breakdown(
        self,
        instances: Iterable[OccurrenceInstance],
        category_lookup: Callable[[int | str], str | None] | None = None,
    ) -> dict[str, int]:
        """Completed occurrences per category name.

        Args:
            instances: Occurrences to count (only completed ones are used).
            category_lookup: Maps a category id to its display name. Unknown
                or missing categories are counted as "Uncategorized".
        """
        counts: dict[str, int] = {}
        for instance in instances:
            if not instance.completed:
                continue
            name = None
            if instance.category_id is not None and category_lookup is not None:
                name = category_lookup(instance.category_id)
            key = name or const.CATEGORY_UNCATEGORIZED
            counts[key] = counts.get(key, 0) + 1
        return counts

    # ────────────────────────────────────────────────────────────────
    # Day-of-Week Aggregation
    # ────────────────────────────────────────────────────────────────

    def day_of_week_breakdown(
        self, instances: Iterable[OccurrenceInstance]
    ) -> dict[int, DayOfWeekStats]:
        """Totals per Sunday-first weekday; all seven weekdays are present."""
        breakdown: dict[int, DayOfWeekStats] = {
            weekday: {
                const.STAT_TOTAL: 0,
                const.STAT_COMPLETED: 0,
                const.STAT_INCOMPLETE: 0,
            }
            for weekday in range(7)
        }
        for instance in instances:
            row = breakdown[dt_weekday(instance.occurrence_date)]
            row[const.STAT_TOTAL] += 1
            if instance.completed:
                row[const.STAT_COMPLETED] += 1
            else:
                row[const.STAT_INCOMPLETE] += 1
        return breakdown

    def peak_days(self, instances: Iterable[OccurrenceInstance]) -> PeakDaysResult:
        """Weekday(s) with the maximum number of completions.

        Ties return every tied weekday in Sunday-first order. When no
        weekday has a completion the result is "no peak day".
        """
        breakdown = self.day_of_week_breakdown(instances)
        best = max(row[const.STAT_COMPLETED] for row in breakdown.values())
        if best <= 0:
            return PeakDaysResult(state=const.PEAK_STATE_NO_PEAK_DAY)
        days = tuple(
            weekday
            for weekday, row in breakdown.items()
            if row[const.STAT_COMPLETED] == best
        )
        return PeakDaysResult(state=const.PEAK_STATE_PEAK, days=days, count=best)

    def failure_days(
        self, instances: Iterable[OccurrenceInstance]
    ) -> FailureDaysResult:
        """Weekday(s) with the maximum number of incomplete occurrences."""
        breakdown = self.day_of_week_breakdown(instances)
        if not any(row[const.STAT_TOTAL] for row in breakdown.values()):
            return FailureDaysResult(state=const.FAILURE_STATE_NO_DATA)

        worst = max(row[const.STAT_INCOMPLETE] for row in breakdown.values())
        if worst <= 0:
            return FailureDaysResult(state=const.FAILURE_STATE_ALL_COMPLETE)

        days = tuple(
            weekday
            for weekday, row in breakdown.items()
            if row[const.STAT_INCOMPLETE] == worst
        )
        return FailureDaysResult(
            state=const.FAILURE_STATE_FAILURES, days=days, count=worst
        )

    # ────────────────────────────────────────────────────────────────
    # Streaks
    # ────────────────────────────────────────────────────────────────

    def qualifying_days(self, instances: Iterable[OccurrenceInstance]) -> set[date]:
        """Days with at least one occurrence, all of them completed.

        Days with nothing scheduled are never in the set.
        """
        grouped = self.group_by_day(instances)
        return {
            day
            for day, day_instances in grouped.items()
            if all(instance.completed for instance in day_instances)
        }

    def streaks(
        self,
        instances: Iterable[OccurrenceInstance],
        today: date | None = None,
        lookback_days: int = const.DEFAULT_STREAK_LOOKBACK_DAYS,
    ) -> StreakResult:
        """Current and longest streak of qualifying days.

        Current streak: consecutive qualifying days walking back from today
        when today already qualifies, otherwise from yesterday, so an
        unfinished today does not zero the streak.

        Longest streak: longest run of calendar-adjacent qualifying days
        within the lookback window ending today. A day with nothing
        scheduled is absent from the qualifying set and breaks a run the
        same way a missed day does.

        Args:
            instances: Occurrences covering at least the lookback window.
            today: Local today. Defaults to the current local date.
            lookback_days: Number of days (ending today) considered.
        """
        if today is None:
            today = dt_today_local()
        window_start = today - timedelta(days=max(1, lookback_days) - 1)

        qualifying = {
            day
            for day in self.qualifying_days(instances)
            if window_start <= day <= today
        }
        if not qualifying:
            return StreakResult()

        candidate = today if today in qualifying else today - timedelta(days=1)
        current = 0
        while candidate in qualifying:
            current += 1
            candidate -= timedelta(days=1)

        longest = 0
        run = 0
        previous: date | None = None
        for day in sorted(qualifying):
            if previous is not None and (day - previous).days == 1:
                run += 1
            else:
                run = 1
            longest = max(longest, run)
            previous = day

        return StreakResult(current=current, longest=longest)
