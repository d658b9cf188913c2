"""DiveListSession — the single context object of a dive list.

The session owns every piece of dive list state: Dive Store, Trip List,
Selection Set and the projection/sort state.  There is no module-level
mutable state; two sessions never share anything.

Pipeline, run to completion on every store notification:

    store change → statistics recompute → trip grouping rebuild
                 → projection rebuild → selection reconciliation

Every public operation is synchronous and finishes before the next one
starts.  The HTTP layer calls these from async handlers without awaiting
in between, which keeps each operation atomic.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable
from uuid import UUID

from divesync.core.projection import ProjectionCoordinator, ProjectionListener
from divesync.core.selection import SelectionSynchronizer
from divesync.core.statistics import update_cylinder_related_info
from divesync.core.trip_grouping import GroupingResult, TripGroupingEngine
from divesync.core.trip_window import TripWindow, WithinWindow
from divesync.domain.dive import DiveRecord
from divesync.domain.enums import SortDirection, SortKey, StoreChangeKind
from divesync.domain.rows import Projection
from divesync.domain.snapshots import ProjectionSnapshot
from divesync.domain.trip import TripAnchor, TripGroup
from divesync.domain.units import UnitSystem
from divesync.render.columns import snapshot_projection
from divesync.store.dive_store import DiveStore, StoreChange

logger = logging.getLogger(__name__)


class DiveListSession:
    """Dive list engine bound to one Dive Store.

    Args:
        store: The Dive Store to project.  The session subscribes to it.
        window: Trip acceptance rule.  Defaults to a 72 hour window.
        autogroup: Whether trips are synthesized from timestamp proximity.
        default_direction: Initial sort direction of every column.
        select_first_on_load: Select the first dive of the active
            projection whenever dives are loaded and nothing is selected.
    """

    def __init__(
        self,
        store: DiveStore | None = None,
        window: TripWindow | None = None,
        autogroup: bool = False,
        default_direction: SortDirection = SortDirection.DESCENDING,
        select_first_on_load: bool = False,
    ) -> None:
        self._store = store if store is not None else DiveStore()
        self._grouping = TripGroupingEngine(window or WithinWindow.hours(72))
        self._selection = SelectionSynchronizer(self._store)
        self._coordinator = ProjectionCoordinator(
            self._store, self._selection, default_direction
        )
        self._autogroup = autogroup
        self._select_first_on_load = select_first_on_load
        self._trips: list[TripGroup] = []

        for index in self._store.indices():
            update_cylinder_related_info(self._store.get_dive(index))
        self._rebuild()
        self._select_first_if_empty()

        self._store.subscribe(self._on_store_change)

    # ── Components ───────────────────────────────────────────────────────

    @property
    def store(self) -> DiveStore:
        return self._store

    @property
    def selection(self) -> SelectionSynchronizer:
        return self._selection

    @property
    def coordinator(self) -> ProjectionCoordinator:
        return self._coordinator

    # ── Read side ────────────────────────────────────────────────────────

    def active_projection(self) -> Projection:
        return self._coordinator.active_projection()

    def trips(self) -> list[TripGroup]:
        """The current Trip List, newest-first."""
        return list(self._trips)

    @property
    def autogroup(self) -> bool:
        return self._autogroup

    def selected_indices(self) -> set[int]:
        return self._selection.selected_indices()

    @property
    def current_dive(self) -> int | None:
        return self._selection.current_dive

    @property
    def amount_selected(self) -> int:
        return self._selection.amount_selected

    def snapshot(self, units: UnitSystem | None = None) -> ProjectionSnapshot:
        """Rendered, immutable view of the active projection."""
        return snapshot_projection(
            self.active_projection(),
            self._store,
            units or UnitSystem(),
            autogroup=self._autogroup,
            amount_selected=self._selection.amount_selected,
            current_dive=self._selection.current_dive,
        )

    def subscribe(self, listener: ProjectionListener) -> None:
        """Be told whenever the active projection is rebuilt or switched."""
        self._coordinator.subscribe(listener)

    # ── Selection ────────────────────────────────────────────────────────

    def toggle_row_selection(self, row_id: UUID, desired_state: bool | None = None) -> bool:
        return self._selection.toggle_row(self.active_projection(), row_id, desired_state)

    def expand_row(self, row_id: UUID) -> bool:
        return self._selection.expand(self.active_projection(), row_id)

    def collapse_row(self, row_id: UUID) -> bool:
        return self._selection.collapse(self.active_projection(), row_id)

    def expand_all(self) -> None:
        self._selection.expand_all(self.active_projection())

    def collapse_all(self) -> None:
        self._selection.collapse_all(self.active_projection())

    # ── Sorting and grouping ─────────────────────────────────────────────

    def set_sort_key(self, key: SortKey, direction: SortDirection | None = None) -> bool:
        return self._coordinator.set_sort_key(key, direction)

    def set_autogroup(self, enabled: bool) -> None:
        if enabled == self._autogroup:
            return
        self._autogroup = enabled
        logger.info("Autogrouping %s", "enabled" if enabled else "disabled")
        self._rebuild()

    # ── Edits ────────────────────────────────────────────────────────────

    def recompute_statistics(self, dive_index: int) -> bool:
        """Refresh a dive's derived values after its raw data was changed in place."""
        record = self._store.get_dive(dive_index)
        if record is None:
            logger.debug("Ignoring recompute of missing dive %d", dive_index)
            return False
        update_cylinder_related_info(record)
        self._coordinator.resort()
        return True

    def add_dive(self, dive: DiveRecord) -> int:
        return self._store.add(dive)

    def add_dives(self, dives: Iterable[DiveRecord]) -> list[int]:
        return self._store.add_many(dives)

    def edit_dive(self, dive_index: int, changes: dict[str, Any]) -> DiveRecord:
        return self._store.edit(dive_index, changes)

    def remove_dive(self, dive_index: int) -> DiveRecord:
        return self._store.remove(dive_index)

    def add_trip(self, anchor: TripAnchor) -> None:
        self._store.add_trip(anchor)

    # ── Internals ────────────────────────────────────────────────────────

    def _on_store_change(self, change: StoreChange) -> None:
        if change.kind in (StoreChangeKind.ADDED, StoreChangeKind.EDITED):
            for index in change.indices:
                update_cylinder_related_info(self._store.get_dive(index))
        self._rebuild()
        if change.kind is StoreChangeKind.ADDED:
            self._select_first_if_empty()

    def _select_first_if_empty(self) -> None:
        if self._select_first_on_load and not self._selection.amount_selected:
            self._selection.select_first_leaf(self.active_projection())

    def _rebuild(self) -> None:
        self._coordinator.rebuild(self._regroup)

    def _regroup(self) -> GroupingResult:
        result = self._grouping.rebuild(self._store, self._autogroup)
        self._trips = result.trips
        return result
