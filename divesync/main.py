"""divesync — dive list projection, trip grouping and selection engine.

This is the application entry point.  It wires the DiveStore, the
DiveListSession and the HTTP / WebSocket endpoints together.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from divesync.api.divelist import create_divelist_router
from divesync.config import settings
from divesync.core.session import DiveListSession
from divesync.core.trip_window import WithinWindow
from divesync.domain.units import UnitSystem
from divesync.services.connection_manager import ConnectionManager
from divesync.store.dive_store import DiveStore

# ── Logging ──────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)

# ── State ────────────────────────────────────────────────────────────────────

store = DiveStore()

session = DiveListSession(
    store,
    window=WithinWindow.hours(settings.trip_window_hours),
    autogroup=settings.autogroup,
    default_direction=settings.default_sort_direction,
    select_first_on_load=settings.select_first_on_load,
)

units = UnitSystem(
    length=settings.length_unit,
    temperature=settings.temperature_unit,
    volume=settings.volume_unit,
    weight=settings.weight_unit,
)

ui_manager = ConnectionManager()

# ── App ──────────────────────────────────────────────────────────────────────

app = FastAPI(
    title=settings.app_name,
    description="Dive list projections, trip grouping and selection sync",
    version="0.1.0",
)

# ── Routes ───────────────────────────────────────────────────────────────────

app.include_router(create_divelist_router(session, ui_manager, units))


# ── Health ───────────────────────────────────────────────────────────────────

@app.get("/health")
async def health() -> dict:
    coordinator = session.coordinator
    return {
        "status": "ok",
        "dives": store.record_count(),
        "trips": len(session.trips()),
        "autogroup": session.autogroup,
        "active_projection": coordinator.active_kind.value,
        "sort_key": coordinator.active_key.value,
        "sort_direction": coordinator.direction_for(coordinator.active_key).value,
        "selected": session.amount_selected,
        "presentation_clients": ui_manager.active_count,
    }
