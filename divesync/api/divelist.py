"""REST + WebSocket endpoints for the dive list engine.

Paths (REST, prefix /api):
    GET    /projection                  rendered active projection
    GET    /selection                   selected dive indices
    POST   /dives                       add a dive
    PATCH  /dives/{index}               edit a dive
    DELETE /dives/{index}               remove a dive
    POST   /dives/{index}/recompute     refresh derived statistics
    POST   /trips                       declare a trip
    POST   /rows/{row_id}/selection     toggle a row's selection
    POST   /rows/{row_id}/expand        expand a group row
    POST   /rows/{row_id}/collapse      collapse a group row
    PUT    /sort                        change sort key / direction
    PUT    /autogroup                   enable or disable autogrouping

Path (WebSocket):
    /ws/divelist    pushes a snapshot on connect and after every mutation

Handlers are thin: each one calls a single synchronous session operation
and never awaits before it has finished, so operations never interleave.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, ValidationError

from divesync.core.session import DiveListSession
from divesync.domain.dive import DiveRecord
from divesync.domain.enums import (
    LengthUnit,
    SortDirection,
    SortKey,
    TemperatureUnit,
    VolumeUnit,
    WeightUnit,
)
from divesync.domain.trip import TripAnchor
from divesync.domain.units import UnitSystem
from divesync.services.connection_manager import ConnectionManager
from divesync.store.dive_store import UnknownDiveError

logger = logging.getLogger(__name__)


# ── Request bodies ───────────────────────────────────────────────────────────

class SelectionRequest(BaseModel):
    selected: bool | None = None


class SortRequest(BaseModel):
    key: SortKey
    direction: SortDirection | None = None


class AutogroupRequest(BaseModel):
    enabled: bool


# ── Router factory ───────────────────────────────────────────────────────────

def create_divelist_router(
    session: DiveListSession,
    manager: ConnectionManager | None = None,
    units: UnitSystem | None = None,
) -> APIRouter:
    """Factory that wires the dive list endpoints to a concrete session.

    Args:
        session: The session every endpoint operates on.
        manager: Optional ConnectionManager; when given, every mutation is
            followed by a snapshot broadcast to presentation clients.
        units: Default display units for rendered snapshots.
    """
    default_units = units or UnitSystem()
    router = APIRouter()

    def _snapshot(view_units: UnitSystem | None = None) -> dict[str, Any]:
        return session.snapshot(view_units or default_units).model_dump(mode="json")

    async def _changed() -> dict[str, Any]:
        snapshot = session.snapshot(default_units)
        if manager is not None:
            await manager.broadcast_snapshot(snapshot)
        return snapshot.model_dump(mode="json")

    # ── Read ─────────────────────────────────────────────────────────

    @router.get("/api/projection")
    async def get_projection(
        length: LengthUnit | None = None,
        temperature: TemperatureUnit | None = None,
        volume: VolumeUnit | None = None,
        weight: WeightUnit | None = None,
    ) -> dict[str, Any]:
        overrides = {
            name: value
            for name, value in (
                ("length", length),
                ("temperature", temperature),
                ("volume", volume),
                ("weight", weight),
            )
            if value is not None
        }
        return _snapshot(default_units.model_copy(update=overrides))

    @router.get("/api/selection")
    async def get_selection() -> dict[str, Any]:
        return {
            "selected": sorted(session.selected_indices()),
            "amount_selected": session.amount_selected,
            "current_dive": session.current_dive,
        }

    # ── Dives ────────────────────────────────────────────────────────

    @router.post("/api/dives", status_code=201)
    async def add_dive(dive: DiveRecord) -> dict[str, Any]:
        index = session.add_dive(dive)
        return {"status": "accepted", "index": index, "projection": await _changed()}

    @router.patch("/api/dives/{index}")
    async def edit_dive(index: int, changes: dict[str, Any]) -> dict[str, Any]:
        try:
            session.edit_dive(index, changes)
        except UnknownDiveError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except ValidationError as exc:
            raise HTTPException(
                status_code=422,
                detail=exc.errors(include_url=False, include_context=False),
            ) from exc
        return {"status": "accepted", "index": index, "projection": await _changed()}

    @router.delete("/api/dives/{index}")
    async def remove_dive(index: int) -> dict[str, Any]:
        try:
            session.remove_dive(index)
        except UnknownDiveError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return {"status": "removed", "index": index, "projection": await _changed()}

    @router.post("/api/dives/{index}/recompute")
    async def recompute(index: int) -> dict[str, Any]:
        if not session.recompute_statistics(index):
            raise HTTPException(status_code=404, detail=f"No dive with index {index}")
        return {"status": "recomputed", "index": index, "projection": await _changed()}

    @router.post("/api/trips", status_code=201)
    async def add_trip(anchor: TripAnchor) -> dict[str, Any]:
        session.add_trip(anchor)
        return {"status": "accepted", "projection": await _changed()}

    # ── Rows ─────────────────────────────────────────────────────────

    @router.post("/api/rows/{row_id}/selection")
    async def toggle_selection(row_id: UUID, request: SelectionRequest) -> dict[str, Any]:
        if not session.toggle_row_selection(row_id, request.selected):
            raise HTTPException(status_code=404, detail=f"Row {row_id} not in the active projection")
        return await _changed()

    @router.post("/api/rows/{row_id}/expand")
    async def expand_row(row_id: UUID) -> dict[str, Any]:
        if not session.expand_row(row_id):
            raise HTTPException(status_code=404, detail=f"Group row {row_id} not in the active projection")
        return await _changed()

    @router.post("/api/rows/{row_id}/collapse")
    async def collapse_row(row_id: UUID) -> dict[str, Any]:
        if not session.collapse_row(row_id):
            raise HTTPException(status_code=404, detail=f"Group row {row_id} not in the active projection")
        return await _changed()

    # ── Sorting and grouping ─────────────────────────────────────────

    @router.put("/api/sort")
    async def set_sort(request: SortRequest) -> dict[str, Any]:
        if not session.set_sort_key(request.key, request.direction):
            raise HTTPException(status_code=409, detail="Projection switch already in progress")
        return await _changed()

    @router.put("/api/autogroup")
    async def set_autogroup(request: AutogroupRequest) -> dict[str, Any]:
        session.set_autogroup(request.enabled)
        return await _changed()

    # ── Presentation clients ─────────────────────────────────────────

    @router.websocket("/ws/divelist")
    async def stream_divelist(websocket: WebSocket) -> None:
        if manager is None:
            await websocket.close(code=1011)
            return
        await manager.connect(websocket)
        logger.info("Presentation client connected — total: %d", manager.active_count)
        await manager.send_snapshot(websocket, session.snapshot(default_units))

        try:
            while True:
                # Keep the connection alive; snapshots are pushed server-side
                await websocket.receive_text()
        except WebSocketDisconnect:
            manager.disconnect(websocket)
            logger.info("Presentation client disconnected — total: %d", manager.active_count)

    return router
