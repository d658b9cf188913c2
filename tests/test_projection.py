"""Tests for the ProjectionCoordinator — sorting, switching and re-entrancy."""

from __future__ import annotations

from divesync.core.session import DiveListSession
from divesync.core.trip_window import WithinWindow
from divesync.domain.enums import CoordinatorState, ProjectionKind, SortDirection, SortKey
from divesync.domain.rows import DiveRow, GroupRow, Projection
from divesync.store.dive_store import DiveStore

from tests.test_statistics import _cylinder
from tests.test_trip_grouping import _at


def _session(*dives, autogroup: bool = True) -> DiveListSession:
    if not dives:
        # trip A = dives 0, 1; trip B = dive 2
        dives = (
            _at(100, max_depth_mm=10000, rating=1),
            _at(95, max_depth_mm=30000, rating=5),
            _at(50, max_depth_mm=20000, rating=3),
        )
    return DiveListSession(DiveStore(dives), window=WithinWindow.hours(24), autogroup=autogroup)


def _order(projection: Projection) -> list[int]:
    return [row.dive_index for row in projection.rows if isinstance(row, DiveRow)]


class TestDateProjection:
    def test_starts_grouped_by_date(self) -> None:
        session = _session()
        coordinator = session.coordinator
        assert coordinator.active_key is SortKey.DATE
        assert coordinator.active_kind is ProjectionKind.GROUPED
        assert coordinator.state is CoordinatorState.IDLE

    def test_groups_sorted_newest_first(self) -> None:
        grouped = _session().active_projection()
        groups = grouped.group_rows()
        assert [g.member_indices for g in groups] == [[0, 1], [2]]

    def test_ascending_reverses_groups_and_children(self) -> None:
        session = _session()
        session.set_sort_key(SortKey.DATE, SortDirection.ASCENDING)
        groups = session.active_projection().group_rows()
        assert [g.member_indices for g in groups] == [[2], [1, 0]]

    def test_without_trips_every_dive_is_top_level(self) -> None:
        session = _session(_at(100), _at(60), _at(20), autogroup=False)
        rows = session.active_projection().rows
        assert all(isinstance(row, DiveRow) for row in rows)
        assert [row.dive_index for row in rows] == [0, 1, 2]


class TestSortSwitching:
    def test_non_date_key_switches_to_flat(self) -> None:
        session = _session()
        assert session.set_sort_key(SortKey.DEPTH)
        projection = session.active_projection()
        assert projection.kind is ProjectionKind.FLAT
        assert _order(projection) == [1, 2, 0]

    def test_flat_to_flat_keeps_projection(self) -> None:
        session = _session()
        session.set_sort_key(SortKey.DEPTH)
        flat = session.active_projection()
        session.set_sort_key(SortKey.RATING, SortDirection.ASCENDING)
        assert session.active_projection() is flat
        assert _order(flat) == [0, 2, 1]

    def test_each_key_remembers_direction(self) -> None:
        session = _session()
        session.set_sort_key(SortKey.DEPTH, SortDirection.ASCENDING)
        session.set_sort_key(SortKey.DATE)
        assert session.coordinator.direction_for(SortKey.DATE) is SortDirection.DESCENDING

        session.set_sort_key(SortKey.DEPTH)
        assert _order(session.active_projection()) == [0, 2, 1]

    def test_ties_fall_back_to_date_then_index(self) -> None:
        session = _session(_at(10, rating=2), _at(20, rating=2), _at(20, rating=2))
        session.set_sort_key(SortKey.RATING)
        assert _order(session.active_projection()) == [2, 1, 0]

    def test_nitrox_sort(self) -> None:
        session = _session(
            _at(30, cylinders=[_cylinder(o2=210, he=350)]),
            _at(20, cylinders=[_cylinder()]),
            _at(10, cylinders=[_cylinder(o2=320)]),
        )
        session.set_sort_key(SortKey.NITROX, SortDirection.ASCENDING)
        assert _order(session.active_projection()) == [1, 2, 0]

    def test_rebuild_keeps_active_sort(self) -> None:
        session = _session()
        session.set_sort_key(SortKey.DEPTH)
        deepest = session.add_dive(_at(10, max_depth_mm=50000))
        assert session.active_projection().kind is ProjectionKind.FLAT
        assert _order(session.active_projection())[0] == deepest


class TestSelectionAcrossSwitches:
    def test_round_trip_restores_selection(self) -> None:
        session = _session()
        group_a = session.active_projection().group_rows()[0]
        session.toggle_row_selection(group_a.row_id)

        session.set_sort_key(SortKey.DEPTH)
        flat = session.active_projection()
        assert sorted(r.dive_index for r in flat.dive_rows() if r.selected) == [0, 1]

        session.set_sort_key(SortKey.DATE)
        grouped = session.active_projection()
        restored = grouped.group_rows()[0]
        assert restored.selected
        assert restored.expanded
        assert all(child.selected for child in restored.children)
        assert session.selected_indices() == {0, 1}

    def test_dive_selected_in_flat_opens_its_group(self) -> None:
        session = _session()
        session.set_sort_key(SortKey.DEPTH)
        flat = session.active_projection()
        session.toggle_row_selection(flat.row_for_dive(2).row_id)

        session.set_sort_key(SortKey.DATE)
        group_a, group_b = session.active_projection().group_rows()
        assert group_b.expanded and group_b.selected
        assert not group_a.expanded and not group_a.selected


class TestReentrancy:
    def test_sort_change_from_listener_rejected(self) -> None:
        session = _session()
        outcomes: list[bool] = []

        def listener(projection: Projection) -> None:
            if not outcomes:
                outcomes.append(session.set_sort_key(SortKey.RATING))

        session.subscribe(listener)
        assert session.set_sort_key(SortKey.DEPTH)
        assert outcomes == [False]
        assert session.coordinator.active_key is SortKey.DEPTH
        assert session.coordinator.state is CoordinatorState.IDLE

    def test_rebuild_from_listener_deferred(self) -> None:
        session = _session()
        seen: list[tuple[ProjectionKind, CoordinatorState]] = []

        def listener(projection: Projection) -> None:
            seen.append((projection.kind, session.coordinator.state))
            session.set_autogroup(False)

        session.subscribe(listener)
        session.set_sort_key(SortKey.DEPTH)

        assert seen == [
            (ProjectionKind.FLAT, CoordinatorState.SWITCHING_PROJECTION),
            (ProjectionKind.FLAT, CoordinatorState.REBUILDING),
        ]
        assert not session.autogroup
        assert session.trips() == []
        assert session.coordinator.state is CoordinatorState.IDLE

    def test_group_rows_only_in_grouped_projection(self) -> None:
        session = _session()
        session.set_sort_key(SortKey.OTU)
        flat = session.active_projection()
        assert not any(isinstance(row, GroupRow) for row in flat.iter_rows())
        assert len(flat) == 3
