"""TripGroupingEngine — partitions the Dive Store into trips in one pass.

The pass walks the dives newest-first, carrying two cursors:

    - the *open trip*: the trip the previous dive joined, closed by a dive
      that is forced to the top level;
    - the *trip cursor*: a position in the Trip List.  It only moves toward
      older trips, so the search for an explicit trip never revisits trips
      newer than the last match.

Per dive, by trip flag:

    NO_TRIP                    → top level, closes the open trip
    NONE with autogroup        → join the open trip if it fits, else open a
                                 new trip at the dive's time
    IN_TRIP, or autogroup off  → search from the cursor toward older trips
                                 for the nearest one that fits; if none,
                                 synthesize one (autogroup) or leave the
                                 dive at the top level

The grouped projection is emitted during the same pass: each trip gets
one group row, created when its first member is appended; dives outside
any trip become top-level rows.

Trips are seeded from the store's declared trips on every pass and thrown
away with the previous result; trips nobody joined are dropped.
"""

from __future__ import annotations

import logging
from uuid import UUID

from divesync.core.trip_window import TripWindow
from divesync.domain.enums import ProjectionKind, TripFlag
from divesync.domain.rows import GroupRow, Projection
from divesync.domain.trip import TripGroup
from divesync.store.dive_store import DiveStore

logger = logging.getLogger(__name__)


class GroupingResult:
    """Outcome of one grouping pass: the Trip List and the grouped rows."""

    __slots__ = ("trips", "grouped")

    def __init__(self, trips: list[TripGroup], grouped: Projection) -> None:
        self.trips = trips
        self.grouped = grouped

    def boundaries(self) -> list[tuple[int, ...]]:
        """Member indices per trip, newest trip first."""
        return [tuple(trip.members) for trip in self.trips]


class TripGroupingEngine:
    """Builds the Trip List and the grouped projection from a Dive Store.

    Args:
        window: Acceptance rule deciding whether a dive fits a trip.
    """

    def __init__(self, window: TripWindow) -> None:
        self._window = window

    @property
    def window(self) -> TripWindow:
        return self._window

    def rebuild(self, store: DiveStore, autogroup: bool) -> GroupingResult:
        trips = sorted(
            (TripGroup.from_anchor(anchor) for anchor in store.anchors),
            key=lambda t: t.when,
            reverse=True,
        )
        grouped = Projection(ProjectionKind.GROUPED)
        group_rows: dict[UUID, GroupRow] = {}

        cursor = 0
        open_trip: TripGroup | None = trips[0] if trips else None
        last_trip: TripGroup | None = None

        for index, dive in store.newest_first():
            if dive.trip_flag is TripFlag.NO_TRIP:
                open_trip = None
            elif autogroup and dive.trip_flag is not TripFlag.IN_TRIP:
                if open_trip is None or not self._window.fits(dive.when, open_trip.when):
                    open_trip, cursor = self._open_trip(trips, dive.when)
            else:
                found = self._search_back(trips, cursor, dive.when)
                if found is not None:
                    cursor = found
                    open_trip = trips[found]
                elif autogroup:
                    open_trip, cursor = self._open_trip(trips, dive.when)
                else:
                    # keep the last valid cursor; the dive stays at top level
                    open_trip = None

            dive.assign_trip(open_trip)
            if open_trip is None:
                grouped.append_dive(index)
                last_trip = None
                continue

            open_trip.attach(index, dive.when, dive.location)
            if open_trip is not last_trip:
                last_trip = open_trip
                if open_trip.trip_id not in group_rows:
                    group_rows[open_trip.trip_id] = grouped.append_group(open_trip)
            grouped.append_dive(index, parent=group_rows[open_trip.trip_id])

        trips = [trip for trip in trips if trip.member_count]
        trips.sort(key=lambda t: t.when, reverse=True)
        logger.info(
            "Grouped %d dive(s) into %d trip(s) (autogroup=%s)",
            store.record_count(),
            len(trips),
            autogroup,
        )
        return GroupingResult(trips, grouped)

    # ── Internals ────────────────────────────────────────────────────────

    def _search_back(self, trips: list[TripGroup], cursor: int, when: int) -> int | None:
        """Position of the nearest trip at or after *cursor* that accepts *when*."""
        for pos in range(cursor, len(trips)):
            if self._window.fits(when, trips[pos].when):
                return pos
        return None

    @staticmethod
    def _open_trip(trips: list[TripGroup], when: int) -> tuple[TripGroup, int]:
        """Create a trip at *when* and insert it in newest-first order."""
        trip = TripGroup(when=when)
        pos = 0
        while pos < len(trips) and trips[pos].when >= when:
            pos += 1
        trips.insert(pos, trip)
        logger.debug("Opened trip %s at %d", trip.trip_id, when)
        return trip, pos
