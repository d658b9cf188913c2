"""Tests for the dive list REST + WebSocket endpoints."""

from __future__ import annotations

from uuid import uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from divesync.api.divelist import create_divelist_router
from divesync.core.session import DiveListSession
from divesync.core.trip_window import WithinWindow
from divesync.services.connection_manager import ConnectionManager
from divesync.store.dive_store import DiveStore

from tests.test_trip_grouping import HOUR, _BASE, _at


@pytest.fixture
def session() -> DiveListSession:
    store = DiveStore([_at(100, max_depth_mm=10000), _at(95, max_depth_mm=30000), _at(50)])
    return DiveListSession(store, window=WithinWindow.hours(24), autogroup=True)


@pytest.fixture
def manager() -> ConnectionManager:
    return ConnectionManager()


@pytest.fixture
def client(session: DiveListSession, manager: ConnectionManager) -> TestClient:
    app = FastAPI()
    app.include_router(create_divelist_router(session, manager))
    return TestClient(app)


def _group_ids(snapshot: dict) -> list[str]:
    return [row["row_id"] for row in snapshot["rows"] if row["kind"] == "group"]


class TestReadEndpoints:
    def test_projection(self, client: TestClient) -> None:
        resp = client.get("/api/projection")
        assert resp.status_code == 200
        data = resp.json()
        assert data["kind"] == "grouped"
        assert data["sort_key"] == "date"
        assert len(data["rows"]) == 5
        assert len(data["trips"]) == 2
        assert data["headers"]["depth"] == "m"

    def test_projection_units_override(self, client: TestClient) -> None:
        data = client.get("/api/projection", params={"length": "feet"}).json()
        assert data["headers"]["depth"] == "ft"
        assert data["headers"]["temperature"] == "°C"

    def test_projection_bad_unit(self, client: TestClient) -> None:
        assert client.get("/api/projection", params={"length": "cubits"}).status_code == 422

    def test_empty_selection(self, client: TestClient) -> None:
        data = client.get("/api/selection").json()
        assert data == {"selected": [], "amount_selected": 0, "current_dive": None}


class TestDiveEndpoints:
    def test_add_dive(self, client: TestClient, session: DiveListSession) -> None:
        resp = client.post("/api/dives", json={"when": _BASE + 49 * HOUR, "location": "Dahab"})
        assert resp.status_code == 201
        body = resp.json()
        assert body["index"] == 3
        assert session.store.get_dive(3).location == "Dahab"
        assert [t["members"] for t in body["projection"]["trips"]] == [[0, 1], [2, 3]]

    def test_add_invalid_dive(self, client: TestClient) -> None:
        resp = client.post("/api/dives", json={"when": _BASE, "rating": 8})
        assert resp.status_code == 422

    def test_edit_dive(self, client: TestClient, session: DiveListSession) -> None:
        resp = client.patch("/api/dives/2", json={"rating": 4})
        assert resp.status_code == 200
        assert session.store.get_dive(2).rating == 4

    def test_edit_invalid(self, client: TestClient, session: DiveListSession) -> None:
        resp = client.patch("/api/dives/2", json={"rating": 9})
        assert resp.status_code == 422
        assert session.store.get_dive(2).rating == 3

    def test_edit_when_iso_string(self, client: TestClient, session: DiveListSession) -> None:
        resp = client.patch("/api/dives/2", json={"when": "2026-01-05T03:00:00Z"})
        assert resp.status_code == 200
        assert session.store.get_dive(2).when == _BASE + 99 * HOUR
        assert len(resp.json()["projection"]["trips"]) == 1

    def test_edit_when_garbage_string(self, client: TestClient, session: DiveListSession) -> None:
        resp = client.patch("/api/dives/2", json={"when": "yesterday-ish"})
        assert resp.status_code == 422
        assert session.store.get_dive(2).when == _BASE + 50 * HOUR

    def test_edit_unknown(self, client: TestClient) -> None:
        assert client.patch("/api/dives/99", json={"rating": 1}).status_code == 404

    def test_remove_dive(self, client: TestClient, session: DiveListSession) -> None:
        resp = client.delete("/api/dives/0")
        assert resp.status_code == 200
        assert 0 not in session.store
        assert client.delete("/api/dives/0").status_code == 404

    def test_recompute(self, client: TestClient) -> None:
        assert client.post("/api/dives/1/recompute").status_code == 200
        assert client.post("/api/dives/42/recompute").status_code == 404

    def test_add_trip(self, client: TestClient, session: DiveListSession) -> None:
        client.put("/api/autogroup", json={"enabled": False})
        resp = client.post("/api/trips", json={"when": _BASE + 96 * HOUR, "location": "Dahab"})
        assert resp.status_code == 201
        assert [t.location for t in session.trips()] == ["Dahab"]


class TestRowEndpoints:
    def test_select_group(self, client: TestClient) -> None:
        group_a = _group_ids(client.get("/api/projection").json())[0]
        resp = client.post(f"/api/rows/{group_a}/selection", json={})
        assert resp.status_code == 200
        assert resp.json()["amount_selected"] == 2
        assert client.get("/api/selection").json()["selected"] == [0, 1]

    def test_explicit_deselect(self, client: TestClient) -> None:
        group_a = _group_ids(client.get("/api/projection").json())[0]
        client.post(f"/api/rows/{group_a}/selection", json={"selected": True})
        resp = client.post(f"/api/rows/{group_a}/selection", json={"selected": False})
        assert resp.json()["amount_selected"] == 0

    def test_unknown_row(self, client: TestClient) -> None:
        assert client.post(f"/api/rows/{uuid4()}/selection", json={}).status_code == 404
        assert client.post(f"/api/rows/{uuid4()}/expand").status_code == 404

    def test_malformed_row_id(self, client: TestClient) -> None:
        assert client.post("/api/rows/not-a-uuid/expand").status_code == 422

    def test_expand_and_collapse(self, client: TestClient) -> None:
        group_a = _group_ids(client.get("/api/projection").json())[0]
        expanded = client.post(f"/api/rows/{group_a}/expand").json()
        assert sum(row["visible"] for row in expanded["rows"]) == 4
        collapsed = client.post(f"/api/rows/{group_a}/collapse").json()
        assert sum(row["visible"] for row in collapsed["rows"]) == 2


class TestSortEndpoints:
    def test_sort_by_depth(self, client: TestClient) -> None:
        data = client.put("/api/sort", json={"key": "depth"}).json()
        assert data["kind"] == "flat"
        assert [row["dive_index"] for row in data["rows"]] == [1, 2, 0]

    def test_sort_direction(self, client: TestClient) -> None:
        data = client.put("/api/sort", json={"key": "depth", "direction": "ascending"}).json()
        assert data["direction"] == "ascending"
        assert [row["dive_index"] for row in data["rows"]] == [0, 2, 1]

    def test_unknown_sort_key(self, client: TestClient) -> None:
        assert client.put("/api/sort", json={"key": "colour"}).status_code == 422

    def test_autogroup_off(self, client: TestClient) -> None:
        data = client.put("/api/autogroup", json={"enabled": False}).json()
        assert data["autogroup"] is False
        assert data["trips"] == []


class TestPresentationStream:
    def test_snapshot_on_connect(self, client: TestClient, manager: ConnectionManager) -> None:
        with client.websocket_connect("/ws/divelist") as ws:
            data = ws.receive_json()
            assert data["kind"] == "grouped"
            assert manager.active_count == 1


class TestApp:
    def test_health(self) -> None:
        from divesync.main import app

        data = TestClient(app).get("/health").json()
        assert data["status"] == "ok"
        assert data["active_projection"] == "grouped"
        assert data["sort_key"] == "date"
