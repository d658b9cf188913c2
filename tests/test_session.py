"""Tests for DiveListSession — the store → statistics → grouping → selection pipeline."""

from __future__ import annotations

import pytest

from divesync.core.session import DiveListSession
from divesync.core.trip_window import WithinWindow
from divesync.domain.enums import ProjectionKind, RowKind, SortKey, TripFlag
from divesync.domain.trip import TripAnchor
from divesync.domain.units import UnitSystem
from divesync.store.dive_store import DiveStore, UnknownDiveError

from tests.test_statistics import _cylinder
from tests.test_trip_grouping import HOUR, _BASE, _at


def _session(autogroup: bool = True, **kw) -> DiveListSession:
    store = DiveStore([_at(100), _at(95), _at(50)])
    return DiveListSession(store, window=WithinWindow.hours(24), autogroup=autogroup, **kw)


class TestSessionLoad:
    def test_initial_trips(self) -> None:
        session = _session()
        assert [t.members for t in session.trips()] == [[0, 1], [2]]

    def test_select_first_on_load(self) -> None:
        session = _session(select_first_on_load=True)
        assert session.selected_indices() == {0}
        assert session.current_dive == 0
        assert session.active_projection().group_rows()[0].expanded

    def test_select_first_when_dives_arrive_later(self) -> None:
        session = DiveListSession(
            DiveStore(), window=WithinWindow.hours(24), autogroup=True, select_first_on_load=True
        )
        assert session.amount_selected == 0
        session.add_dives([_at(100), _at(95), _at(50)])
        assert session.amount_selected == 1
        assert session.selected_indices() == {0}
        assert session.active_projection().group_rows()[0].expanded

    def test_select_first_keeps_user_deselection_on_edit(self) -> None:
        session = _session(select_first_on_load=True)
        group = session.active_projection().group_rows()[0]
        session.toggle_row_selection(group.row_id, False)
        session.edit_dive(2, {"rating": 1})
        assert session.amount_selected == 0

    def test_nothing_selected_by_default(self) -> None:
        assert _session().amount_selected == 0

    def test_statistics_computed_on_load(self) -> None:
        store = DiveStore([_at(1, duration_s=3000, mean_depth_mm=10000,
                                cylinders=[_cylinder(start_mbar=200000, end_mbar=50000)])])
        session = DiveListSession(store)
        assert session.store.get_dive(0).sac_ml_min == 17764

    def test_empty_session(self) -> None:
        session = DiveListSession()
        assert session.trips() == []
        assert len(session.active_projection()) == 0

    def test_sessions_are_independent(self) -> None:
        a = _session()
        b = _session()
        a.toggle_row_selection(a.active_projection().group_rows()[0].row_id)
        assert b.amount_selected == 0


class TestSessionEdits:
    def test_add_dive_regroups(self) -> None:
        session = _session()
        idx = session.add_dive(_at(49))
        assert [t.members for t in session.trips()] == [[0, 1], [2, idx]]

    def test_add_dives_batch(self) -> None:
        session = _session()
        indices = session.add_dives([_at(10), _at(9)])
        assert [t.members for t in session.trips()][-1] == indices

    def test_added_dive_gets_statistics(self) -> None:
        session = _session()
        idx = session.add_dive(_at(10, samples=[
            {"time_s": 0, "depth_mm": 20000},
            {"time_s": 900, "depth_mm": 20000},
        ], cylinders=[_cylinder(o2=320)]))
        assert session.store.get_dive(idx).otu == 16

    def test_edit_trip_flag_splits_trip(self) -> None:
        session = _session()
        session.edit_dive(1, {"trip_flag": TripFlag.NO_TRIP})
        assert [t.members for t in session.trips()] == [[0], [2]]

    def test_edit_keeps_selection(self) -> None:
        session = _session()
        session.toggle_row_selection(session.active_projection().group_rows()[1].row_id)
        session.edit_dive(2, {"rating": 4})
        assert session.selected_indices() == {2}
        assert session.active_projection().row_for_dive(2).selected

    def test_remove_selected_dive(self) -> None:
        session = _session()
        session.toggle_row_selection(session.active_projection().group_rows()[0].row_id)
        session.remove_dive(0)
        assert session.selected_indices() == {1}
        assert session.active_projection().row_for_dive(0) is None

    def test_edit_unknown_dive(self) -> None:
        with pytest.raises(UnknownDiveError):
            _session().edit_dive(99, {"rating": 1})

    def test_add_trip_without_autogroup(self) -> None:
        session = _session(autogroup=False)
        assert session.trips() == []
        session.add_trip(TripAnchor(when=_BASE + 96 * HOUR, location="Dahab"))
        trips = session.trips()
        assert len(trips) == 1
        assert trips[0].location == "Dahab"
        assert 1 in trips[0].members


class TestSessionControls:
    def test_toggle_autogroup(self) -> None:
        session = _session(autogroup=False)
        assert session.trips() == []
        session.set_autogroup(True)
        assert len(session.trips()) == 2
        session.set_autogroup(False)
        assert session.trips() == []

    def test_recompute_after_in_place_change(self) -> None:
        store = DiveStore([_at(1, duration_s=3000, mean_depth_mm=10000,
                                cylinders=[_cylinder(start_mbar=200000, end_mbar=50000)])])
        session = DiveListSession(store)
        record = store.get_dive(0)
        record.duration_s = 6000
        assert session.recompute_statistics(0)
        assert record.sac_ml_min == 8882

    def test_recompute_missing_dive(self) -> None:
        assert not _session().recompute_statistics(42)

    def test_expand_collapse_all(self) -> None:
        session = _session()
        session.expand_all()
        assert all(g.expanded for g in session.active_projection().group_rows())
        session.collapse_all()
        assert not any(g.expanded for g in session.active_projection().group_rows())

    def test_listener_sees_rebuilds(self) -> None:
        session = _session()
        kinds: list[ProjectionKind] = []
        session.subscribe(lambda projection: kinds.append(projection.kind))
        session.add_dive(_at(1))
        session.set_sort_key(SortKey.RATING)
        assert kinds == [ProjectionKind.GROUPED, ProjectionKind.FLAT]


class TestSnapshot:
    def test_grouped_snapshot(self) -> None:
        session = _session(select_first_on_load=True)
        snapshot = session.snapshot()
        assert snapshot.kind is ProjectionKind.GROUPED
        assert snapshot.sort_key is SortKey.DATE
        assert snapshot.amount_selected == 1
        assert snapshot.current_dive == 0
        assert [r.kind for r in snapshot.rows].count(RowKind.GROUP) == 2
        assert len(snapshot.trips) == 2
        assert snapshot.trips[0].model_dump() == session.trips()[0].summary()

    def test_imperial_snapshot(self) -> None:
        session = _session()
        snapshot = session.snapshot(UnitSystem.imperial())
        assert snapshot.headers[SortKey.DEPTH] == "ft"
