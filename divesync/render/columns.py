"""Column rendering — fixed-format strings for every dive list column.

Each column has one data function ``(row, record, units) -> str``.  For a
group row *record* is None and most columns render as an empty string; the
date and location columns describe the trip instead.

Rendering rules per column:
    nr           dive number
    date         "Sat, Jan 3, 2026 09:30" / "Trip Sat, Jan 3, 2026 (4 dives)"
    rating       five stars, filled ones first
    depth        metres with one decimal below 20 m, whole metres from
                 20 m; whole feet
    duration     "m:ss"
    temperature  one decimal in °C or °F, empty when not recorded
    total_weight one decimal in kg, whole lbs, empty when no weight
    nitrox       "air", "32", "21…50" (range) or "18/45" (trimix)
    sac          "%4.1f" l/min or "%4.2f" cuft/min, empty when unknown
    otu          integer, empty when zero
    location, suit, cylinder  at most 60 characters
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional

from divesync.core.statistics import classify_gas, total_weight
from divesync.domain.dive import DiveRecord
from divesync.domain.enums import (
    LengthUnit,
    RowKind,
    SortKey,
    TemperatureUnit,
    VolumeUnit,
    WeightUnit,
)
from divesync.domain.rows import DiveRow, GroupRow, Projection, Row
from divesync.domain.snapshots import ProjectionSnapshot, RowView, TripView
from divesync.domain.units import (
    UnitSystem,
    grams_to_lbs,
    mkelvin_to_c,
    mkelvin_to_f,
    ml_to_cuft,
    mm_to_feet,
)
from divesync.store.dive_store import DiveStore

MAX_TEXT = 60

UTF8_BLACKSTAR = "★"
UTF8_WHITESTAR = "☆"
UTF8_ELLIPSIS = "…"

_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

DataFunc = Callable[[Row, Optional[DiveRecord], UnitSystem], str]


# ── Data functions ───────────────────────────────────────────────────────────

def _day(ts: int) -> tuple[datetime, str]:
    tm = datetime.fromtimestamp(ts, tz=timezone.utc)
    return tm, f"{_WEEKDAYS[tm.weekday()]}, {_MONTHS[tm.month - 1]} {tm.day}, {tm.year}"


def render_nr(row: Row, record: DiveRecord | None, units: UnitSystem) -> str:
    if record is None:
        return ""
    return str(record.number)


def render_date(row: Row, record: DiveRecord | None, units: UnitSystem) -> str:
    if isinstance(row, GroupRow):
        n = row.trip.member_count
        _, day = _day(row.trip.when)
        return f"Trip {day} ({n} dive{'s' if n > 1 else ''})"
    if record is None:
        return ""
    tm, day = _day(record.when)
    return f"{day} {tm.hour:02d}:{tm.minute:02d}"


def render_rating(row: Row, record: DiveRecord | None, units: UnitSystem) -> str:
    if record is None:
        return ""
    return UTF8_BLACKSTAR * record.rating + UTF8_WHITESTAR * (5 - record.rating)


def render_depth(row: Row, record: DiveRecord | None, units: UnitSystem) -> str:
    if record is None:
        return ""
    if units.length is LengthUnit.FEET:
        return str(int(mm_to_feet(record.max_depth_mm) + 0.5))

    # To tenths of metres
    tenths = (record.max_depth_mm + 49) // 100
    integer, frac = divmod(tenths, 10)
    if integer < 20:
        return f"{integer}.{frac}"
    if frac >= 5:
        integer += 1
    return str(integer)


def render_duration(row: Row, record: DiveRecord | None, units: UnitSystem) -> str:
    if record is None:
        return ""
    minutes, seconds = divmod(record.duration_s, 60)
    return f"{minutes}:{seconds:02d}"


def render_temperature(row: Row, record: DiveRecord | None, units: UnitSystem) -> str:
    if record is None or not record.water_temp_mkelvin:
        return ""
    if units.temperature is TemperatureUnit.FAHRENHEIT:
        return f"{mkelvin_to_f(record.water_temp_mkelvin):.1f}"
    return f"{mkelvin_to_c(record.water_temp_mkelvin):.1f}"


def render_total_weight(row: Row, record: DiveRecord | None, units: UnitSystem) -> str:
    grams = total_weight(record)
    if not grams:
        return ""
    if units.weight is WeightUnit.LBS:
        return f"{grams_to_lbs(grams):.0f}"
    return f"{grams / 1000.0:.1f}"


def render_nitrox(row: Row, record: DiveRecord | None, units: UnitSystem) -> str:
    if record is None:
        return ""
    o2, he, o2_low = ((value + 5) // 10 for value in classify_gas(record))
    if he:
        return f"{o2}/{he}"
    if not o2:
        return "air"
    if o2 == o2_low:
        return str(o2)
    return f"{o2_low}{UTF8_ELLIPSIS}{o2}"


def render_sac(row: Row, record: DiveRecord | None, units: UnitSystem) -> str:
    if record is None or not record.sac_ml_min:
        return ""
    if units.volume is VolumeUnit.CUFT:
        return f"{ml_to_cuft(record.sac_ml_min):4.2f}"
    return f"{record.sac_ml_min / 1000.0:4.1f}"


def render_otu(row: Row, record: DiveRecord | None, units: UnitSystem) -> str:
    if record is None or not record.otu:
        return ""
    return str(record.otu)


def render_location(row: Row, record: DiveRecord | None, units: UnitSystem) -> str:
    if isinstance(row, GroupRow):
        return row.trip.location[:MAX_TEXT]
    if record is None:
        return ""
    return record.location[:MAX_TEXT]


def render_suit(row: Row, record: DiveRecord | None, units: UnitSystem) -> str:
    if record is None:
        return ""
    return record.suit[:MAX_TEXT]


def render_cylinder(row: Row, record: DiveRecord | None, units: UnitSystem) -> str:
    if record is None or not record.cylinders:
        return ""
    return record.cylinders[0].description[:MAX_TEXT]


DATA_FUNCS: dict[SortKey, DataFunc] = {
    SortKey.NR: render_nr,
    SortKey.DATE: render_date,
    SortKey.RATING: render_rating,
    SortKey.DEPTH: render_depth,
    SortKey.DURATION: render_duration,
    SortKey.TEMPERATURE: render_temperature,
    SortKey.TOTAL_WEIGHT: render_total_weight,
    SortKey.SUIT: render_suit,
    SortKey.CYLINDER: render_cylinder,
    SortKey.NITROX: render_nitrox,
    SortKey.SAC: render_sac,
    SortKey.OTU: render_otu,
    SortKey.LOCATION: render_location,
}


# ── Public API ───────────────────────────────────────────────────────────────

def render(row: Row, column: SortKey, units: UnitSystem, store: DiveStore) -> str:
    """Render one cell.  Rows whose dive has vanished render empty."""
    record = store.get_dive(row.dive_index) if isinstance(row, DiveRow) else None
    if isinstance(row, DiveRow) and record is None:
        return ""
    return DATA_FUNCS[column](row, record, units)


def headers(units: UnitSystem) -> dict[SortKey, str]:
    """Column titles; the unit-bearing ones follow *units*."""
    return {
        SortKey.NR: "#",
        SortKey.DATE: "Date",
        SortKey.RATING: UTF8_BLACKSTAR,
        SortKey.DEPTH: "ft" if units.length is LengthUnit.FEET else "m",
        SortKey.DURATION: "min",
        SortKey.TEMPERATURE: "°F" if units.temperature is TemperatureUnit.FAHRENHEIT else "°C",
        SortKey.TOTAL_WEIGHT: "lbs" if units.weight is WeightUnit.LBS else "kg",
        SortKey.SUIT: "Suit",
        SortKey.CYLINDER: "Cyl",
        SortKey.NITROX: "O₂%",
        SortKey.SAC: "SAC",
        SortKey.OTU: "OTU",
        SortKey.LOCATION: "Location",
    }


def snapshot_projection(
    projection: Projection,
    store: DiveStore,
    units: UnitSystem,
    autogroup: bool = False,
    amount_selected: int = 0,
    current_dive: int | None = None,
) -> ProjectionSnapshot:
    """Render every row of *projection* into an immutable snapshot."""
    visible = {row.row_id for row in projection.visible_rows()}
    rows: list[RowView] = []
    trips: list[TripView] = []

    for row in projection.iter_rows():
        columns = {column: render(row, column, units, store) for column in SortKey}
        if isinstance(row, GroupRow):
            trips.append(TripView.model_validate(row.trip.summary()))
            rows.append(RowView(
                row_id=str(row.row_id),
                kind=RowKind.GROUP,
                selected=row.selected,
                expanded=row.expanded,
                visible=True,
                columns=columns,
            ))
        else:
            rows.append(RowView(
                row_id=str(row.row_id),
                kind=RowKind.DIVE,
                dive_index=row.dive_index,
                parent_id=str(row.parent.row_id) if row.parent is not None else None,
                selected=row.selected,
                visible=row.row_id in visible,
                columns=columns,
            ))

    return ProjectionSnapshot(
        kind=projection.kind,
        sort_key=projection.sort_key,
        direction=projection.direction,
        autogroup=autogroup,
        headers=headers(units),
        rows=rows,
        trips=trips,
        amount_selected=amount_selected,
        current_dive=current_dive,
    )
