"""Statistics Engine — derived per-dive values from raw cylinder and sample data.

Design principles:
    1. Pure functions of a DiveRecord's stored fields.  No I/O, no logging.
    2. Degenerate input (no samples, zero duration, no usable cylinders)
       yields 0 or a neutral value, never an exception.
    3. update_cylinder_related_info() is the single writer of the derived
       fields ``sac_ml_min`` and ``otu``.

Gas classification:
    The "maximal" gas of a dive is chosen with the same rules the gas column
    sorts by:
    - Trimix trumps nitrox: the highest helium wins, oxygen breaks ties.
    - Nitrox trumps air, even when hypoxic.
    A dive breathing nothing but air reports (0, 0, 0).

SAC:
    sac = air_use / (1 + mean_depth_m / 10) * 60 / bottom_duration_s
    where bottom_duration_s is the dive duration minus surface intervals
    (depth < 10 cm) that are followed by more diving.  Reported in ml/min.

OTU:
    otu = sum over sample intervals with ppO2 >= 0.5 of
          (ppO2 - 0.5) ** 0.83 * dt / 30
"""

from __future__ import annotations

from divesync.domain.dive import AIR_PERMILLE, DiveRecord
from divesync.domain.units import mbar_to_atm

SURFACE_DEPTH_MM = 100
OTU_PPO2_THRESHOLD = 0.5


# ── Gas ──────────────────────────────────────────────────────────────────────

def classify_gas(record: DiveRecord) -> tuple[int, int, int]:
    """Return ``(o2_max, he_max, o2_min)`` in permille.

    A dive without any usable cylinder reports ``(-1, -1, 1000)``.
    """
    max_o2, max_he, min_o2 = -1, -1, 1000

    for cyl in record.cylinders:
        if cyl.is_empty:
            continue
        o2 = cyl.gasmix.effective_o2_permille
        he = cyl.gasmix.he_permille
        if o2 < min_o2:
            min_o2 = o2
        if he > max_he or (he == max_he and o2 > max_o2):
            max_he, max_o2 = he, o2

    # All air? Show and sort as "air"
    if not max_he and max_o2 == AIR_PERMILLE and min_o2 == max_o2:
        max_o2 = min_o2 = 0
    return max_o2, max_he, min_o2


def gas_sort_key(record: DiveRecord) -> tuple[int, int, int]:
    """Helium first, then maximal oxygen, then minimal oxygen."""
    o2, he, o2_low = classify_gas(record)
    return he, o2, o2_low


# ── Air consumption ──────────────────────────────────────────────────────────

def compute_air_use(record: DiveRecord) -> float:
    """Litres of gas (at 1 atm) consumed across all cylinders with a known size.

    Manually recorded pressures win over the ones taken from samples.
    """
    air_use = 0.0
    for cyl in record.cylinders:
        if not cyl.size_ml:
            continue
        atm = mbar_to_atm(cyl.effective_start_mbar) - mbar_to_atm(cyl.effective_end_mbar)
        air_use += atm * cyl.size_ml / 1000.0
    return air_use


def mean_depth_mm(record: DiveRecord) -> float:
    """The stored mean depth, or a time-weighted mean over the samples."""
    if record.mean_depth_mm:
        return float(record.mean_depth_mm)

    samples = record.samples
    area = 0.0
    elapsed = 0
    for prev, cur in zip(samples, samples[1:]):
        dt = cur.time_s - prev.time_s
        area += (prev.depth_mm + cur.depth_mm) / 2.0 * dt
        elapsed += dt
    if not elapsed:
        return 0.0
    return area / elapsed


def bottom_duration_s(record: DiveRecord) -> int:
    """Dive duration with interior surface intervals cut out.

    Surface time at the very end of the profile is kept: only intervals
    that are followed by more diving count as surface intervals.
    """
    duration = record.duration_s
    samples = record.samples
    n = len(samples)

    i = 0
    while i < n:
        if samples[i].depth_mm < SURFACE_DEPTH_MM:
            end = i + 1
            while end < n and samples[end].depth_mm < SURFACE_DEPTH_MM:
                end += 1
            if end < n:
                end -= 1
                duration -= samples[end].time_s - samples[i].time_s
                i = end + 1
        i += 1
    return duration


def compute_sac(record: DiveRecord) -> int:
    """Surface air consumption in ml/min, or 0 when it cannot be computed."""
    air_use = compute_air_use(record)
    if not air_use:
        return 0
    if not record.duration_s:
        return 0

    duration = bottom_duration_s(record)
    if duration <= 0:
        return 0

    # Mean pressure in atm: 1 atm per 10 m
    pressure = 1 + mean_depth_mm(record) / 10000.0
    sac = air_use / pressure * 60 / duration
    return max(int(sac * 1000), 0)


# ── Oxygen toxicity ──────────────────────────────────────────────────────────

def compute_otu(record: DiveRecord) -> int:
    """Oxygen toxicity units accumulated over the sampled profile."""
    otu = 0.0
    cylinders = record.cylinders

    for prev, cur in zip(record.samples, record.samples[1:]):
        dt = cur.time_s - prev.time_s
        if cur.cylinder_index < len(cylinders):
            o2 = cylinders[cur.cylinder_index].gasmix.effective_o2_permille
        else:
            o2 = AIR_PERMILLE
        po2 = o2 / 1000.0 * (cur.depth_mm + 10000) / 10000.0
        if po2 >= OTU_PPO2_THRESHOLD:
            otu += (po2 - OTU_PPO2_THRESHOLD) ** 0.83 * dt / 30.0
    return int(otu + 0.5)


# ── Weights ──────────────────────────────────────────────────────────────────

def total_weight(record: DiveRecord | None) -> int:
    """Total ballast in grams."""
    if record is None:
        return 0
    return sum(ws.weight_grams for ws in record.weights)


# ── Writer ───────────────────────────────────────────────────────────────────

def update_cylinder_related_info(record: DiveRecord | None) -> None:
    """Refresh the derived fields after cylinder or sample data changed."""
    if record is None:
        return
    record.sac_ml_min = compute_sac(record)
    record.otu = compute_otu(record)
