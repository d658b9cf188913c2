"""Projection rows — the read-only row sequences shown to the presentation layer.

A Projection is rebuilt from the Dive Store and Trip List, never edited
into shape.  The only mutable state on a row is presentation state:

    - ``selected``: the row-level selection indicator.  For dive rows it
      mirrors the Selection Set after reconciliation; for group rows it is
      an aggregate hint (see SelectionSynchronizer).
    - ``expanded``: whether a group row currently shows its children.

Row ids are fresh UUIDs per build, so the same dive has a different row id
in the flat and grouped projections and after every rebuild.  Selection is
carried by dive index, never by row id.
"""

from __future__ import annotations

from typing import Callable, Iterator, Union
from uuid import UUID

from divesync.domain.enums import ProjectionKind, RowKind, SortDirection, SortKey
from divesync.domain.trip import TripGroup
from divesync.foundation.identifiers import new_id


class DiveRow:
    """A leaf row standing for one dive."""

    __slots__ = ("row_id", "dive_index", "parent", "selected")

    kind = RowKind.DIVE

    def __init__(self, dive_index: int, parent: GroupRow | None = None) -> None:
        self.row_id: UUID = new_id()
        self.dive_index = dive_index
        self.parent = parent
        self.selected = False

    def __repr__(self) -> str:
        return f"DiveRow(dive={self.dive_index}, selected={self.selected})"


class GroupRow:
    """A summary row standing for one trip; its children are the trip's dives."""

    __slots__ = ("row_id", "trip", "children", "selected", "expanded")

    kind = RowKind.GROUP

    def __init__(self, trip: TripGroup) -> None:
        self.row_id: UUID = new_id()
        self.trip = trip
        self.children: list[DiveRow] = []
        self.selected = False
        self.expanded = False

    @property
    def member_indices(self) -> list[int]:
        return [child.dive_index for child in self.children]

    def __repr__(self) -> str:
        return (
            f"GroupRow(trip={self.trip.trip_id!s}, children={len(self.children)}, "
            f"selected={self.selected}, expanded={self.expanded})"
        )


Row = Union[DiveRow, GroupRow]
RowSortKey = Callable[[Row], tuple]


class Projection:
    """An ordered row tree of one kind (flat or grouped).

    Top-level rows are either group rows or dive rows; group rows hold dive
    rows as children.  A flat projection has no group rows.
    """

    def __init__(
        self,
        kind: ProjectionKind,
        sort_key: SortKey = SortKey.DATE,
        direction: SortDirection = SortDirection.DESCENDING,
    ) -> None:
        self.kind = kind
        self.sort_key = sort_key
        self.direction = direction
        self._rows: list[Row] = []
        self._by_id: dict[UUID, Row] = {}
        self._by_dive: dict[int, DiveRow] = {}

    # ── Building ─────────────────────────────────────────────────────────

    def append_dive(self, dive_index: int, parent: GroupRow | None = None) -> DiveRow:
        row = DiveRow(dive_index, parent)
        if parent is None:
            self._rows.append(row)
        else:
            parent.children.append(row)
        self._by_id[row.row_id] = row
        self._by_dive[dive_index] = row
        return row

    def append_group(self, trip: TripGroup) -> GroupRow:
        if self.kind is not ProjectionKind.GROUPED:
            raise ValueError("group rows only exist in the grouped projection")
        row = GroupRow(trip)
        self._rows.append(row)
        self._by_id[row.row_id] = row
        return row

    def sort(self, key: RowSortKey, direction: SortDirection) -> None:
        """Reorder top-level rows, and the children of every group, in place."""
        reverse = direction is SortDirection.DESCENDING
        self._rows.sort(key=key, reverse=reverse)
        for group in self.group_rows():
            group.children.sort(key=key, reverse=reverse)
        self.direction = direction

    # ── Queries ──────────────────────────────────────────────────────────

    @property
    def rows(self) -> list[Row]:
        """Top-level rows in display order."""
        return list(self._rows)

    def iter_rows(self) -> Iterator[Row]:
        """Every row, depth-first: each group row is followed by its children."""
        for row in self._rows:
            yield row
            if isinstance(row, GroupRow):
                yield from row.children

    def visible_rows(self) -> list[Row]:
        """Rows the presentation layer shows; children of collapsed groups are hidden."""
        visible: list[Row] = []
        for row in self._rows:
            visible.append(row)
            if isinstance(row, GroupRow) and row.expanded:
                visible.extend(row.children)
        return visible

    def dive_rows(self) -> list[DiveRow]:
        return [row for row in self.iter_rows() if isinstance(row, DiveRow)]

    def group_rows(self) -> list[GroupRow]:
        return [row for row in self._rows if isinstance(row, GroupRow)]

    def find(self, row_id: UUID) -> Row | None:
        return self._by_id.get(row_id)

    def row_for_dive(self, dive_index: int) -> DiveRow | None:
        return self._by_dive.get(dive_index)

    def first_leaf(self) -> DiveRow | None:
        """The first dive row in display order, looking inside groups."""
        for row in self._rows:
            if isinstance(row, DiveRow):
                return row
            if row.children:
                return row.children[0]
        return None

    def __len__(self) -> int:
        return len(self._by_id)

    def __repr__(self) -> str:
        return (
            f"Projection(kind={self.kind.value}, rows={len(self._by_id)}, "
            f"sort={self.sort_key.value}/{self.direction.value})"
        )
