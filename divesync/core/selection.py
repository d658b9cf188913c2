"""SelectionSynchronizer — keeps the Selection Set and row indicators consistent.

The Selection Set (dive indices) is the single source of truth.  Row-level
``selected`` indicators are presentation state derived from it:

    - A dive row is selected iff its dive index is in the set (after
      reconciliation, or immediately after a toggle through this class).
    - A group's selection is never stored: it is selected iff at least one
      member is.  The group row's indicator shows that aggregate while the
      group is collapsed.

Selection changes arrive either as row toggles from the presentation layer
or as a rebuild/projection switch, where row ids change and the set is
re-applied by dive index.  Leaf rows are always settled before group rows
are evaluated, because the group state is derived from the leaves.

Indices that are not (or no longer) in the Dive Store are ignored.
"""

from __future__ import annotations

import logging
from uuid import UUID

from divesync.domain.rows import DiveRow, GroupRow, Projection
from divesync.store.dive_store import DiveStore

logger = logging.getLogger(__name__)


class SelectionSynchronizer:
    """Owns the Selection Set and reconciles projections against it."""

    def __init__(self, store: DiveStore) -> None:
        self._store = store
        self._selected: set[int] = set()
        self._current_dive: int | None = None

    # ── Queries ──────────────────────────────────────────────────────────

    def selected_indices(self) -> set[int]:
        return set(self._selected)

    def is_selected(self, index: int) -> bool:
        return index in self._selected

    @property
    def amount_selected(self) -> int:
        return len(self._selected)

    @property
    def current_dive(self) -> int | None:
        """The most recently selected dive, if it is still selected."""
        if self._current_dive in self._selected:
            return self._current_dive
        return None

    def group_selected(self, group: GroupRow) -> bool:
        """Derived group state: True iff any member is selected."""
        return any(child.dive_index in self._selected for child in group.children)

    # ── Selection Set mutation ───────────────────────────────────────────

    def select_dive(self, index: int, selected: bool) -> bool:
        """Set one dive's membership.  Returns True if the set changed."""
        if index not in self._store:
            logger.debug("Ignoring selection of missing dive %d", index)
            return False
        if selected:
            self._current_dive = index
            if index in self._selected:
                return False
            self._selected.add(index)
            return True
        if index not in self._selected:
            return False
        self._selected.discard(index)
        return True

    def prune(self) -> list[int]:
        """Drop indices that are no longer in the store."""
        gone = sorted(i for i in self._selected if i not in self._store)
        self._selected.difference_update(gone)
        if gone:
            logger.debug("Pruned %d vanished dive(s) from the selection", len(gone))
        return gone

    # ── Row operations ───────────────────────────────────────────────────

    def toggle_row(
        self,
        projection: Projection,
        row_id: UUID,
        desired: bool | None = None,
    ) -> bool:
        """Apply a selection request to a row.

        *desired* None flips the row's current state.  Returns False if the
        row is not part of *projection*.
        """
        row = projection.find(row_id)
        if row is None:
            logger.debug("Ignoring toggle of unknown row %s", row_id)
            return False
        if isinstance(row, GroupRow):
            self._toggle_group(row, desired)
        else:
            self._toggle_dive(row, desired)
        return True

    def expand(self, projection: Projection, row_id: UUID) -> bool:
        """Show a group's children, re-asserting their indicators from the set.

        While the group was collapsed only the aggregate was visible, so the
        children's indicators may have drifted from the set.
        """
        group = projection.find(row_id)
        if not isinstance(group, GroupRow):
            return False
        group.expanded = True
        for child in group.children:
            child.selected = child.dive_index in self._selected
        return True

    def collapse(self, projection: Projection, row_id: UUID) -> bool:
        """Hide a group's children; the group row then shows the aggregate."""
        group = projection.find(row_id)
        if not isinstance(group, GroupRow):
            return False
        group.expanded = False
        group.selected = self.group_selected(group)
        return True

    def expand_all(self, projection: Projection) -> None:
        for group in projection.group_rows():
            self.expand(projection, group.row_id)

    def collapse_all(self, projection: Projection) -> None:
        for group in projection.group_rows():
            self.collapse(projection, group.row_id)

    def select_first_leaf(self, projection: Projection) -> int | None:
        """Select the first dive in display order, opening its group."""
        leaf = projection.first_leaf()
        if leaf is None:
            return None
        self.select_dive(leaf.dive_index, True)
        leaf.selected = True
        if leaf.parent is not None:
            self.expand(projection, leaf.parent.row_id)
        return leaf.dive_index

    # ── Batch reconciliation ─────────────────────────────────────────────

    def reconcile(self, projection: Projection) -> None:
        """Re-apply the Selection Set to every row of a freshly built projection.

        All dive rows are settled first; group rows are derived afterwards.
        A group holding a selected dive is expanded so the dive is visible.
        """
        self.prune()

        for row in projection.dive_rows():
            row.selected = row.dive_index in self._selected
            if row.selected and row.parent is not None:
                row.parent.expanded = True

        for group in projection.group_rows():
            group.selected = self.group_selected(group)

        logger.debug(
            "Reconciled %s projection: %d dive(s) selected",
            projection.kind.value,
            len(self._selected),
        )

    # ── Internals ────────────────────────────────────────────────────────

    def _toggle_dive(self, row: DiveRow, desired: bool | None) -> None:
        state = (row.dive_index not in self._selected) if desired is None else desired
        self.select_dive(row.dive_index, state)
        row.selected = row.dive_index in self._selected
        if row.parent is not None:
            self._refresh_group(row.parent)

    def _toggle_group(self, group: GroupRow, desired: bool | None) -> None:
        current = self.group_selected(group)
        state = (not current) if desired is None else desired
        if state == current:
            return

        for child in group.children:
            self.select_dive(child.dive_index, state)
            child.selected = child.dive_index in self._selected
        if state and group.children:
            self._current_dive = group.children[0].dive_index
        group.selected = state
        logger.debug(
            "%s %d dive(s) of trip %s",
            "Selected" if state else "Deselected",
            len(group.children),
            group.trip.trip_id,
        )

    def _refresh_group(self, group: GroupRow) -> None:
        derived = self.group_selected(group)
        if not derived:
            group.selected = False
        elif not group.expanded:
            group.selected = True
