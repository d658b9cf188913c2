"""Presentation snapshots — immutable, rendered views of a projection.

These are pure data structures handed to the presentation layer.  They
carry already-formatted column strings, so a client never needs the raw
dive records or the unit conversions.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from divesync.domain.enums import ProjectionKind, RowKind, SortDirection, SortKey


class RowView(BaseModel):
    """One row of the projection as the presentation layer sees it."""

    row_id: str
    kind: RowKind
    dive_index: int | None = Field(None, description="None for group rows")
    parent_id: str | None = Field(None, description="Group row id for dives inside a trip")
    selected: bool
    expanded: bool | None = Field(None, description="None for dive rows")
    visible: bool = Field(..., description="False for dives inside a collapsed group")
    columns: dict[SortKey, str]

    model_config = {"frozen": True}


class TripView(BaseModel):
    trip_id: str
    when: int
    location: str
    member_count: int
    members: list[int]

    model_config = {"frozen": True}


class ProjectionSnapshot(BaseModel):
    """Immutable rendering of the active projection at a point in time."""

    kind: ProjectionKind
    sort_key: SortKey
    direction: SortDirection
    autogroup: bool
    headers: dict[SortKey, str]
    rows: list[RowView] = Field(..., description="Every row, depth-first")
    trips: list[TripView] = Field(default_factory=list)
    amount_selected: int
    current_dive: int | None = None

    model_config = {"frozen": True}
