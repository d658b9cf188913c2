"""In-memory Dive Store — the canonical collection of dive records.

Design notes:
    - Every record gets an integer index on insertion.  Indices are never
      reused, so an index identifies the same dive for the whole session
      even after other dives are removed.
    - Iteration order is newest-first by timestamp; ties go to the higher
      index (the later insertion).
    - The store is the only component that mutates record content.  Other
      components read records, or ask for derived fields to be recomputed.
    - Every mutation is announced to subscribers with a StoreChange.  The
      session reacts with a full rebuild; the store itself knows nothing
      about trips, rows or selection.
    - Declared trips (TripAnchor) live here too, since they are user data
      like the dives themselves.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from divesync.domain.dive import DiveRecord
from divesync.domain.enums import StoreChangeKind
from divesync.domain.trip import TripAnchor

logger = logging.getLogger(__name__)


class UnknownDiveError(Exception):
    """Raised when an edit or removal names an index the store does not hold."""

    def __init__(self, index: int) -> None:
        self.index = index
        super().__init__(f"No dive with index {index}")


@dataclass(frozen=True)
class StoreChange:
    """A mutation notification."""

    kind: StoreChangeKind
    indices: tuple[int, ...] = field(default_factory=tuple)


StoreListener = Callable[[StoreChange], None]


class DiveStore:
    """Owns the dive records and the declared trips.

    Usage:
        store = DiveStore()
        idx = store.add(DiveRecord(when=1767268800, location="Blue Hole"))
        store.get_dive(idx)
    """

    def __init__(self, dives: Iterable[DiveRecord] = ()) -> None:
        self._dives: dict[int, DiveRecord] = {}
        self._next_index = 0
        self._anchors: list[TripAnchor] = []
        self._listeners: list[StoreListener] = []
        for dive in dives:
            self._insert(dive)

    # ── Notifications ────────────────────────────────────────────────────

    def subscribe(self, listener: StoreListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: StoreListener) -> None:
        self._listeners.remove(listener)

    def _notify(self, change: StoreChange) -> None:
        for listener in list(self._listeners):
            listener(change)

    # ── Mutation ─────────────────────────────────────────────────────────

    def add(self, dive: DiveRecord) -> int:
        """Insert a dive and return its session-stable index."""
        index = self._insert(dive)
        logger.debug("Added dive %d (when=%d)", index, dive.when)
        self._notify(StoreChange(StoreChangeKind.ADDED, (index,)))
        return index

    def add_many(self, dives: Iterable[DiveRecord]) -> list[int]:
        """Insert several dives with a single notification (e.g. a log import)."""
        indices = [self._insert(dive) for dive in dives]
        if indices:
            logger.info("Added %d dive(s)", len(indices))
            self._notify(StoreChange(StoreChangeKind.ADDED, tuple(indices)))
        return indices

    def edit(self, index: int, changes: dict[str, Any]) -> DiveRecord:
        """Apply *changes* to a dive, validating the result as a whole.

        Raises:
            UnknownDiveError: If *index* is not in the store.
            pydantic.ValidationError: If the edited record is invalid; the
                stored record is left untouched.
        """
        current = self._dives.get(index)
        if current is None:
            raise UnknownDiveError(index)
        updated = DiveRecord.model_validate({**current.model_dump(), **changes})
        self._dives[index] = updated
        logger.debug("Edited dive %d: %s", index, sorted(changes))
        self._notify(StoreChange(StoreChangeKind.EDITED, (index,)))
        return updated

    def remove(self, index: int) -> DiveRecord:
        """Remove a dive.  Its index is retired, never handed out again.

        Raises:
            UnknownDiveError: If *index* is not in the store.
        """
        dive = self._dives.pop(index, None)
        if dive is None:
            raise UnknownDiveError(index)
        logger.debug("Removed dive %d", index)
        self._notify(StoreChange(StoreChangeKind.REMOVED, (index,)))
        return dive

    def add_trip(self, anchor: TripAnchor) -> None:
        """Declare an explicit trip that dives may be assigned to."""
        self._anchors.append(anchor)
        logger.debug("Declared trip at %d (%s)", anchor.when, anchor.location or "no location")
        self._notify(StoreChange(StoreChangeKind.TRIPS_CHANGED))

    # ── Queries ──────────────────────────────────────────────────────────

    def get_dive(self, index: int) -> DiveRecord | None:
        return self._dives.get(index)

    def record_count(self) -> int:
        return len(self._dives)

    def __contains__(self, index: object) -> bool:
        return index in self._dives

    def indices(self) -> list[int]:
        return [index for index, _ in self.newest_first()]

    def newest_first(self) -> list[tuple[int, DiveRecord]]:
        """(index, record) pairs ordered newest-first."""
        return sorted(
            self._dives.items(),
            key=lambda item: (item[1].when, item[0]),
            reverse=True,
        )

    @property
    def anchors(self) -> list[TripAnchor]:
        return list(self._anchors)

    # ── Internals ────────────────────────────────────────────────────────

    def _insert(self, dive: DiveRecord) -> int:
        index = self._next_index
        self._next_index += 1
        self._dives[index] = dive
        return index
