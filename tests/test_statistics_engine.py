"""Tests for StatisticsEngine - bucketing, weekday insights and streaks."""

from __future__ import annotations

from datetime import date

from freezegun import freeze_time

from tests.conftest import make_instance
from todoflow import const
from todoflow.engines.statistics_engine import StatisticsEngine, StreakResult

# 2024-01-08 is a Monday
MON = date(2024, 1, 8)
TUE = date(2024, 1, 9)
WED = date(2024, 1, 10)
THU = date(2024, 1, 11)
FRI = date(2024, 1, 12)


# =============================================================================
# Bucketing
# =============================================================================


class TestBucketing:
    """Test day, week and week-of-month buckets."""

    def test_empty_days_are_zero(self, stats: StatisticsEngine) -> None:
        """Days with nothing scheduled report 0/0 and ratio 0.0."""
        buckets = stats.bucket_by_day([], MON, WED)
        assert list(buckets) == ["2024-01-08", "2024-01-09", "2024-01-10"]
        for bucket in buckets.values():
            assert bucket == {
                const.STAT_TOTAL: 0,
                const.STAT_COMPLETED: 0,
                const.STAT_RATIO: 0.0,
            }

    def test_day_counts(self, stats: StatisticsEngine) -> None:
        """Totals, completions and ratio per day."""
        instances = [
            make_instance(MON, True),
            make_instance(MON, False, source_id="activity:2"),
            make_instance(TUE, True),
            make_instance(date(2024, 2, 1), True),  # outside window
        ]
        buckets = stats.bucket_by_day(instances, MON, TUE)
        assert buckets["2024-01-08"][const.STAT_TOTAL] == 2
        assert buckets["2024-01-08"][const.STAT_COMPLETED] == 1
        assert buckets["2024-01-08"][const.STAT_RATIO] == 0.5
        assert buckets["2024-01-09"][const.STAT_RATIO] == 1.0
        assert len(buckets) == 2

    def test_iso_weeks(self, stats: StatisticsEngine) -> None:
        """ISO week keys cover every week touching the window."""
        instances = [make_instance(date(2024, 1, 2), True), make_instance(MON, False)]
        buckets = stats.bucket_by_week(instances, date(2024, 1, 1), date(2024, 1, 14))
        assert list(buckets) == ["2024-W01", "2024-W02"]
        assert buckets["2024-W01"][const.STAT_COMPLETED] == 1
        assert buckets["2024-W02"][const.STAT_TOTAL] == 1
        assert buckets["2024-W02"][const.STAT_RATIO] == 0.0

    def test_month_week_ranges_sunday_start(self, stats: StatisticsEngine) -> None:
        """January 2024 spans five Sunday-first weeks starting Dec 31."""
        ranges = stats.month_week_ranges(date(2024, 1, 15), week_starts_on=0)
        assert len(ranges) == 5
        assert ranges[0] == (date(2023, 12, 31), date(2024, 1, 6))
        assert ranges[-1] == (date(2024, 1, 28), date(2024, 2, 3))

    def test_month_week_ranges_monday_start(self, stats: StatisticsEngine) -> None:
        """Monday-first weeks of January 2024 start on Jan 1."""
        ranges = stats.month_week_ranges(date(2024, 1, 15), week_starts_on=1)
        assert ranges[0] == (date(2024, 1, 1), date(2024, 1, 7))
        assert len(ranges) == 5

    def test_month_week_buckets(self, stats: StatisticsEngine) -> None:
        """Spill-over days count toward the first and last week."""
        instances = [
            make_instance(date(2023, 12, 31), True),
            make_instance(date(2024, 1, 3), False),
            make_instance(date(2024, 2, 2), True),
        ]
        buckets = stats.bucket_by_month_week(instances, date(2024, 1, 15))
        assert list(buckets) == ["W1", "W2", "W3", "W4", "W5"]
        assert buckets["W1"][const.STAT_TOTAL] == 2
        assert buckets["W1"][const.STAT_RATIO] == 0.5
        assert buckets["W5"][const.STAT_COMPLETED] == 1
        assert buckets["W3"][const.STAT_TOTAL] == 0


# =============================================================================
# Totals
# =============================================================================


class TestTotals:
    """Test completion summary and category breakdown."""

    def test_completion_summary(self, stats: StatisticsEngine) -> None:
        """Rate is a percentage rounded to two decimals."""
        summary = stats.completion_summary(
            [make_instance(MON, True), make_instance(TUE, False), make_instance(WED, False)]
        )
        assert summary.total == 3
        assert summary.completed == 1
        assert summary.rate == 33.33

    def test_empty_summary(self, stats: StatisticsEngine) -> None:
        """No instances gives a zero rate."""
        summary = stats.completion_summary([])
        assert (summary.total, summary.completed, summary.rate) == (0, 0, 0.0)

    def test_category_breakdown(self, stats: StatisticsEngine) -> None:
        """Completed items are counted per category name."""
        names = {1: "Work"}
        instances = [
            make_instance(MON, True, category_id=1),
            make_instance(TUE, True, category_id=1),
            make_instance(TUE, False, category_id=1),
            make_instance(WED, True),
            make_instance(THU, True, category_id=99),
        ]
        assert stats.category_breakdown(instances, names.get) == {
            "Work": 2,
            const.CATEGORY_UNCATEGORIZED: 2,
        }


# =============================================================================
# Peak and failure days
# =============================================================================


class TestPeakDays:
    """Test day-of-week peaks."""

    def test_tie_returns_all_days(self, stats: StatisticsEngine) -> None:
        """Tuesday and Wednesday tied at 3 completions."""
        instances = [
            make_instance(date(2024, 1, 1), True),  # Mon
            make_instance(date(2024, 1, 2), True),
            make_instance(date(2024, 1, 9), True),
            make_instance(date(2024, 1, 16), True),
            make_instance(date(2024, 1, 3), True),
            make_instance(date(2024, 1, 10), True),
            make_instance(date(2024, 1, 17), True),
        ]
        result = stats.peak_days(instances)
        assert result.state == const.PEAK_STATE_PEAK
        assert result.days == (2, 3)
        assert result.count == 3
        assert result.labels == ["Tue", "Wed"]

    def test_no_completions(self, stats: StatisticsEngine) -> None:
        """Zero completions everywhere gives "no peak day"."""
        result = stats.peak_days([make_instance(MON, False)])
        assert result.state == const.PEAK_STATE_NO_PEAK_DAY
        assert result.days == ()

    def test_day_of_week_breakdown_has_all_days(self, stats: StatisticsEngine) -> None:
        """All seven weekdays are reported."""
        breakdown = stats.day_of_week_breakdown([make_instance(MON, False)])
        assert sorted(breakdown) == list(range(7))
        assert breakdown[1][const.STAT_INCOMPLETE] == 1


class TestFailureDays:
    """Test failure-day states."""

    def test_no_data(self, stats: StatisticsEngine) -> None:
        """Nothing scheduled."""
        assert stats.failure_days([]).state == const.FAILURE_STATE_NO_DATA

    def test_all_complete(self, stats: StatisticsEngine) -> None:
        """Items exist, none incomplete."""
        result = stats.failure_days([make_instance(MON, True)])
        assert result.state == const.FAILURE_STATE_ALL_COMPLETE

    def test_failures(self, stats: StatisticsEngine) -> None:
        """Worst weekday is reported."""
        result = stats.failure_days(
            [
                make_instance(MON, False),
                make_instance(date(2024, 1, 15), False),
                make_instance(FRI, False),
            ]
        )
        assert result.state == const.FAILURE_STATE_FAILURES
        assert result.days == (1,)
        assert result.count == 2


# =============================================================================
# Streaks
# =============================================================================


class TestStreaks:
    """Test current and longest streaks."""

    def test_gap_day_breaks_streak(self, stats: StatisticsEngine) -> None:
        """Mon-Wed done, Thu nothing scheduled, Fri done: current 1, longest 3."""
        instances = [
            make_instance(MON, True),
            make_instance(TUE, True),
            make_instance(WED, True),
            make_instance(FRI, True),
        ]
        assert stats.streaks(instances, today=FRI) == StreakResult(current=1, longest=3)

    def test_unfinished_today_keeps_streak(self, stats: StatisticsEngine) -> None:
        """An open item today does not reset the current streak."""
        instances = [
            make_instance(MON, True),
            make_instance(TUE, True),
            make_instance(WED, True),
            make_instance(THU, False),
        ]
        assert stats.streaks(instances, today=THU) == StreakResult(current=3, longest=3)

    def test_partial_day_does_not_qualify(self, stats: StatisticsEngine) -> None:
        """A day qualifies only if every item is completed."""
        instances = [
            make_instance(MON, True),
            make_instance(TUE, True),
            make_instance(TUE, False, source_id="activity:2"),
            make_instance(WED, True),
        ]
        assert stats.streaks(instances, today=WED) == StreakResult(current=1, longest=1)

    def test_lookback_limits_longest(self, stats: StatisticsEngine) -> None:
        """Days before the lookback window are ignored."""
        instances = [make_instance(d, True) for d in (MON, TUE, WED)]
        result = stats.streaks(instances, today=WED, lookback_days=2)
        assert result == StreakResult(current=2, longest=2)

    def test_empty(self, stats: StatisticsEngine) -> None:
        """No data gives zero streaks."""
        assert stats.streaks([], today=FRI) == StreakResult()

    @freeze_time("2024-01-10 12:00:00")
    def test_today_defaults_to_local_date(self, stats: StatisticsEngine) -> None:
        """Omitting today uses the local calendar day."""
        instances = [make_instance(d, True) for d in (MON, TUE, WED)]
        assert stats.streaks(instances).current == 3
