"""Completion Engine - Sparse per-occurrence completion overlay.

The overlay maps (source_id, ISO date) to a completion flag. It sits on top
of expansion output: an occurrence without an entry is not completed.

Writes follow an optimistic-update-then-reconcile pattern:
1. The entry is written in memory immediately.
2. The injected persist callback hands it to the CRUD layer.
3. If the callback raises, the entry is rolled back to its prior value
   (including the legacy `completed` mirror of a non-recurring activity)
   and OverlayWriteError is raised.

The overlay never owns long-term storage and never rejects a date; callers
decide whether a write for an unscheduled date is anomalous.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Any

from .. import const
from ..utils.dt_utils import dt_parse_date
from .schedule_engine import RecurrenceRule, activity_source_id, habit_source_id

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from ..type_defs import ActivityData, HabitCompletionRow, OccurrenceRow, SourceId

    PersistCallback = Callable[[SourceId, date, bool], Any]


class OverlayWriteError(Exception):
    """Raised when persisting a completion toggle fails.

    The overlay has already been rolled back when this is raised.

    Attributes:
        source_id: Series the write targeted
        occurrence_date: Day the write targeted
        attempted: Value that could not be persisted
        restored: Value the overlay was rolled back to
    """

    def __init__(
        self,
        source_id: str,
        occurrence_date: date,
        attempted: bool,
        restored: bool,
    ) -> None:
        """Initialize OverlayWriteError.

        Args:
            source_id: Series the write targeted
            occurrence_date: Day the write targeted
            attempted: Value that could not be persisted
            restored: Value the overlay was rolled back to
        """
        self.source_id = source_id
        self.occurrence_date = occurrence_date
        self.attempted = attempted
        self.restored = restored
        super().__init__(
            f"Failed to persist completion for {source_id} on "
            f"{occurrence_date.isoformat()}: attempted={attempted}, "
            f"restored={restored}"
        )


def _is_singular_anchor(master: Mapping[str, Any] | None, day: date) -> bool:
    """Return True if `day` is the sole occurrence of a non-recurring master."""
    if not master:
        return False
    rule = RecurrenceRule.from_config(master.get(const.DATA_ACTIVITY_RECURRENCE))
    if rule.is_recurring:
        return False
    return dt_parse_date(master.get(const.DATA_ACTIVITY_ANCHOR_DATE)) == day


class CompletionOverlay:
    """In-memory completion state keyed by (source_id, ISO date).

    Entries are independent: writing one occurrence never touches another
    occurrence of the same series.

    Example:
        overlay = CompletionOverlay()
        overlay.set("activity:7", date(2024, 1, 3), True)
        overlay.get("activity:7", date(2024, 1, 3))  # True
        overlay.get("activity:7", date(2024, 1, 5))  # False (absent)
    """

    def __init__(self, entries: Mapping[tuple[str, str], bool] | None = None) -> None:
        """Initialize the overlay.

        Args:
            entries: Optional initial entries keyed by (source_id, ISO date).
        """
        self._entries: dict[tuple[str, str], bool] = dict(entries or {})

    # ────────────────────────────────────────────────────────────────
    # Snapshot Loading
    # ────────────────────────────────────────────────────────────────

    @classmethod
    def from_snapshot(
        cls,
        occurrence_rows: Iterable[OccurrenceRow] = (),
        habit_rows: Iterable[HabitCompletionRow] = (),
        activities: Iterable[ActivityData] = (),
    ) -> CompletionOverlay:
        """Build an overlay from CRUD-layer rows.

        Rows with an unparseable date are skipped. The legacy `completed`
        flag of each non-recurring activity is reconciled with its overlay
        entry so the two agree from the start; an explicit row wins.

        Args:
            occurrence_rows: Activity occurrence rows.
            habit_rows: Habit completion rows.
            activities: Normalized activities, used to mirror legacy flags.
        """
        overlay = cls()

        for row in occurrence_rows:
            day = dt_parse_date(row.get(const.BACKEND_OCCURRENCE_DATE))
            if day is None:
                const.LOGGER.warning(
                    "CompletionOverlay: Skipping occurrence row with bad date %s",
                    row.get(const.BACKEND_OCCURRENCE_DATE),
                )
                continue
            source_id = activity_source_id(row[const.BACKEND_OCCURRENCE_ACTIVITY_ID])
            overlay._entries[(source_id, day.isoformat())] = bool(
                row.get(const.BACKEND_OCCURRENCE_COMPLETE)
            )

        for row in habit_rows:
            day = dt_parse_date(row.get(const.BACKEND_HABIT_COMPLETION_DATE))
            if day is None:
                const.LOGGER.warning(
                    "CompletionOverlay: Skipping habit row with bad date %s",
                    row.get(const.BACKEND_HABIT_COMPLETION_DATE),
                )
                continue
            source_id = habit_source_id(
                row[const.BACKEND_HABIT_COMPLETION_HABIT_ID],
                row[const.BACKEND_HABIT_COMPLETION_SLOT_ID],
            )
            overlay._entries[(source_id, day.isoformat())] = bool(
                row.get(const.BACKEND_HABIT_COMPLETION_IS_COMPLETED)
            )

        for activity in activities:
            anchor = dt_parse_date(activity.get(const.DATA_ACTIVITY_ANCHOR_DATE))
            if anchor is None or not _is_singular_anchor(activity, anchor):
                continue
            key = (activity_source_id(activity[const.DATA_ACTIVITY_ID]), anchor.isoformat())
            if key in overlay._entries:
                overlay._mirror_legacy(activity, anchor, overlay._entries[key])
            elif activity.get(const.DATA_ACTIVITY_COMPLETED):
                overlay._entries[key] = True

        return overlay

    # ────────────────────────────────────────────────────────────────
    # Reads
    # ────────────────────────────────────────────────────────────────

    def get(self, source_id: SourceId, day: date) -> bool:
        """Return the completion of one occurrence (absent ⇒ False)."""
        return self._entries.get((source_id, day.isoformat()), False)

    def has_entry(self, source_id: SourceId, day: date) -> bool:
        """Return True if an explicit entry exists for the occurrence."""
        return (source_id, day.isoformat()) in self._entries

    def completed_dates(self, source_id: SourceId) -> list[date]:
        """Return the ascending days marked completed for a series."""
        return sorted(
            date.fromisoformat(iso)
            for (sid, iso), completed in self._entries.items()
            if sid == source_id and completed
        )

    def snapshot(self) -> dict[tuple[str, str], bool]:
        """Return a copy of all entries."""
        return dict(self._entries)

    def __len__(self) -> int:
        """Return the number of explicit entries."""
        return len(self._entries)

    # ────────────────────────────────────────────────────────────────
    # Writes
    # ────────────────────────────────────────────────────────────────

    def set(
        self,
        source_id: SourceId,
        day: date,
        completed: bool,
        master: ActivityData | None = None,
    ) -> bool:
        """Write the completion of one occurrence and return the stored value.

        When `master` is a non-recurring activity and `day` is its anchor,
        the legacy `completed`/`completed_at` fields are updated in the same
        call.

        Args:
            source_id: Series source id.
            day: Occurrence day.
            completed: New completion state.
            master: Master record, needed only for the legacy mirror.
        """
        value = bool(completed)
        self._entries[(source_id, day.isoformat())] = value
        if _is_singular_anchor(master, day):
            self._mirror_legacy(master, day, value)
        return value

    def revert(
        self,
        source_id: SourceId,
        day: date,
        previous: bool | None,
        master: ActivityData | None = None,
    ) -> None:
        """Restore an entry to its last confirmed value.

        Args:
            source_id: Series source id.
            day: Occurrence day.
            previous: Last confirmed value; None removes the entry.
            master: Master record, needed only for the legacy mirror.
        """
        key = (source_id, day.isoformat())
        if previous is None:
            self._entries.pop(key, None)
        else:
            self._entries[key] = previous
        if _is_singular_anchor(master, day):
            self._mirror_legacy(master, day, bool(previous))

    def set_occurrence_completion(
        self,
        source_id: SourceId,
        day: date,
        completed: bool,
        persist: PersistCallback | None = None,
        master: ActivityData | None = None,
    ) -> bool:
        """Optimistically write a completion toggle and persist it.

        Args:
            source_id: Series source id.
            day: Occurrence day.
            completed: New completion state.
            persist: Callback handing the write to the CRUD layer. Any
                exception it raises triggers a rollback.
            master: Master record, needed only for the legacy mirror.

        Returns:
            The persisted value.

        Raises:
            OverlayWriteError: persist failed; the overlay was rolled back.
        """
        key = (source_id, day.isoformat())
        previous = self._entries.get(key)
        value = self.set(source_id, day, completed, master)

        if persist is None:
            return value

        try:
            persist(source_id, day, value)
        except Exception as err:
            self.revert(source_id, day, previous, master)
            const.LOGGER.warning(
                "CompletionOverlay: Persist failed for %s on %s, rolled back: %s",
                source_id,
                day,
                err,
            )
            raise OverlayWriteError(
                source_id, day, attempted=value, restored=bool(previous)
            ) from err

        const.LOGGER.debug(
            "CompletionOverlay: Persisted %s on %s = %s", source_id, day, value
        )
        return value

    @staticmethod
    def _mirror_legacy(master: Any, day: date, completed: bool) -> None:
        """Copy an overlay value onto a non-recurring master's legacy fields."""
        master[const.DATA_ACTIVITY_COMPLETED] = completed
        master[const.DATA_ACTIVITY_COMPLETED_AT] = day.isoformat() if completed else None
