"""ProjectionCoordinator — keeps the flat and grouped projections in step.

Exactly one projection is active at a time:

    - sort key DATE        → grouped projection (trips with their dives)
    - any other sort key   → flat projection (every dive at the top level)

Sort state:
    Each sort key remembers its own direction (descending until told
    otherwise).  Re-selecting the active key only records and applies a new
    direction.  Selecting a key that needs the other projection switches
    projections, carries that key's direction over, and re-applies the
    Selection Set to the new rows by dive index.

Ordering is stable and total: ties on the sort value fall back to the
dive's timestamp, then to its index.  A group row sorts where its earliest
member would.

Re-entrancy:
    Rebuilds and switches notify listeners while still in progress.  The
    state machine (IDLE → REBUILDING / SWITCHING_PROJECTION → IDLE) turns
    calls made from inside such a notification into non-recursive ones:
    set_sort_key() is rejected, rebuild() is deferred until the running
    operation has finished.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from divesync.core.selection import SelectionSynchronizer
from divesync.core.statistics import gas_sort_key, total_weight
from divesync.core.trip_grouping import GroupingResult
from divesync.domain.dive import DiveRecord
from divesync.domain.enums import CoordinatorState, ProjectionKind, SortDirection, SortKey
from divesync.domain.rows import GroupRow, Projection, Row, RowSortKey
from divesync.store.dive_store import DiveStore

logger = logging.getLogger(__name__)

ProjectionListener = Callable[[Projection], None]
GroupingBuilder = Callable[[], GroupingResult]


def _first_cylinder(record: DiveRecord) -> str:
    return record.cylinders[0].description if record.cylinders else ""


_SORT_VALUES: dict[SortKey, Callable[[DiveRecord], Any]] = {
    SortKey.NR: lambda d: d.number,
    SortKey.DATE: lambda d: d.when,
    SortKey.RATING: lambda d: d.rating,
    SortKey.DEPTH: lambda d: d.max_depth_mm,
    SortKey.DURATION: lambda d: d.duration_s,
    SortKey.TEMPERATURE: lambda d: d.water_temp_mkelvin,
    SortKey.TOTAL_WEIGHT: total_weight,
    SortKey.SUIT: lambda d: d.suit,
    SortKey.CYLINDER: _first_cylinder,
    SortKey.NITROX: gas_sort_key,
    SortKey.SAC: lambda d: d.sac_ml_min,
    SortKey.OTU: lambda d: d.otu,
    SortKey.LOCATION: lambda d: d.location,
}


def projection_for(key: SortKey) -> ProjectionKind:
    return ProjectionKind.GROUPED if key is SortKey.DATE else ProjectionKind.FLAT


class ProjectionCoordinator:
    """Owns both projections, the sort state and the switching state machine."""

    def __init__(
        self,
        store: DiveStore,
        selection: SelectionSynchronizer,
        default_direction: SortDirection = SortDirection.DESCENDING,
    ) -> None:
        self._store = store
        self._selection = selection
        self._directions: dict[SortKey, SortDirection] = {
            key: default_direction for key in SortKey
        }
        self._active_key = SortKey.DATE
        self._active_kind = ProjectionKind.GROUPED
        self._projections: dict[ProjectionKind, Projection] = {
            ProjectionKind.GROUPED: Projection(ProjectionKind.GROUPED, SortKey.DATE, default_direction),
            ProjectionKind.FLAT: Projection(ProjectionKind.FLAT, SortKey.DATE, default_direction),
        }
        self._state = CoordinatorState.IDLE
        self._listeners: list[ProjectionListener] = []
        self._pending_build: GroupingBuilder | None = None

    # ── Queries ──────────────────────────────────────────────────────────

    @property
    def state(self) -> CoordinatorState:
        return self._state

    @property
    def active_key(self) -> SortKey:
        return self._active_key

    @property
    def active_kind(self) -> ProjectionKind:
        return self._active_kind

    def direction_for(self, key: SortKey) -> SortDirection:
        return self._directions[key]

    def active_projection(self) -> Projection:
        return self._projections[self._active_kind]

    def projection(self, kind: ProjectionKind) -> Projection:
        return self._projections[kind]

    def subscribe(self, listener: ProjectionListener) -> None:
        self._listeners.append(listener)

    # ── Operations ───────────────────────────────────────────────────────

    def rebuild(self, build: GroupingBuilder) -> bool:
        """Regroup via *build*, replace both projections and reconcile.

        A rebuild requested while another operation is in progress is
        deferred and runs once that operation has finished; only the latest
        deferred request is kept.  Returns False if the call was deferred.
        """
        if self._state is not CoordinatorState.IDLE:
            self._pending_build = build
            logger.info("Deferred rebuild requested while %s", self._state.value)
            return False

        self._state = CoordinatorState.REBUILDING
        try:
            result = build()
            flat_key = self._projections[ProjectionKind.FLAT].sort_key
            flat = Projection(ProjectionKind.FLAT, flat_key)
            for index, _ in self._store.newest_first():
                flat.append_dive(index)
            flat.sort(self._row_key(flat_key), self._directions[flat_key])

            grouped = result.grouped
            grouped.sort_key = SortKey.DATE
            grouped.sort(self._row_key(SortKey.DATE), self._directions[SortKey.DATE])

            self._projections = {ProjectionKind.GROUPED: grouped, ProjectionKind.FLAT: flat}
            self._selection.reconcile(self.active_projection())
            logger.info(
                "Rebuilt projections: %d flat row(s), %d grouped row(s), active=%s",
                len(flat),
                len(grouped),
                self._active_kind.value,
            )
            self._notify()
        finally:
            self._state = CoordinatorState.IDLE
        self._run_deferred()
        return True

    def set_sort_key(self, key: SortKey, direction: SortDirection | None = None) -> bool:
        """Make *key* the active sort key, switching projections if needed.

        *direction* None keeps the direction remembered for *key*.  Returns
        False if the call was rejected as re-entrant.
        """
        if self._state is not CoordinatorState.IDLE:
            self._reject("set_sort_key")
            return False

        if key is self._active_key:
            if direction is not None and direction is not self._directions[key]:
                self._directions[key] = direction
                self.active_projection().sort(self._row_key(key), direction)
                logger.debug("Sort direction for %s is now %s", key.value, direction.value)
            return True

        self._state = CoordinatorState.SWITCHING_PROJECTION
        try:
            previous_kind = self._active_kind
            self._active_key = key
            if direction is not None:
                self._directions[key] = direction

            target_kind = projection_for(key)
            target = self._projections[target_kind]
            target.sort_key = key
            target.sort(self._row_key(key), self._directions[key])

            if target_kind is not previous_kind:
                self._active_kind = target_kind
                self._selection.reconcile(target)
                logger.info(
                    "Switched to %s projection (sort=%s/%s)",
                    target_kind.value,
                    key.value,
                    self._directions[key].value,
                )
            self._notify()
        finally:
            self._state = CoordinatorState.IDLE
        self._run_deferred()
        return True

    def resort(self) -> None:
        """Re-apply the active sort, e.g. after derived values changed."""
        projection = self.active_projection()
        projection.sort(self._row_key(self._active_key), self._directions[self._active_key])

    # ── Internals ────────────────────────────────────────────────────────

    def _run_deferred(self) -> None:
        build, self._pending_build = self._pending_build, None
        if build is not None:
            self.rebuild(build)

    def _reject(self, operation: str) -> None:
        logger.warning(
            "Rejected re-entrant %s while %s",
            operation,
            self._state.value,
        )

    def _notify(self) -> None:
        projection = self.active_projection()
        for listener in list(self._listeners):
            listener(projection)

    def _row_key(self, key: SortKey) -> RowSortKey:
        value_of = _SORT_VALUES[key]
        store = self._store

        def dive_key(index: int) -> tuple:
            record = store.get_dive(index)
            if record is None:
                return (False,)
            return (True, value_of(record), record.when, index)

        def row_key(row: Row) -> tuple:
            if isinstance(row, GroupRow):
                members = row.trip.members
                return dive_key(members[-1]) if members else (False,)
            return dive_key(row.dive_index)

        return row_key
