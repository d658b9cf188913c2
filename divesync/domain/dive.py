"""Canonical dive record model — the unit the whole dive list is built from.

Raw quantities are stored as integers in the sub-units a dive computer
log uses: millimetres, seconds, millikelvin, millibar, millilitres, grams
and permille.  Nothing here is formatted for display; the render layer
converts on the way out.

Two fields are derived (``sac_ml_min`` and ``otu``).  They are written only
by :func:`divesync.core.statistics.update_cylinder_related_info` and must be
refreshed after any change to cylinders or samples.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field, PrivateAttr, field_validator

from divesync.domain.enums import TripFlag
from divesync.foundation.clock import to_epoch_seconds

if TYPE_CHECKING:
    from divesync.domain.trip import TripGroup

AIR_PERMILLE = 209
MAX_CYLINDERS = 8
MAX_WEIGHTSYSTEMS = 6


# ── Equipment ────────────────────────────────────────────────────────────────

class GasMix(BaseModel):
    """Breathing gas composition.  ``o2_permille == 0`` means "unset" (air)."""

    o2_permille: int = Field(0, ge=0, le=1000)
    he_permille: int = Field(0, ge=0, le=1000)

    @property
    def effective_o2_permille(self) -> int:
        return self.o2_permille or AIR_PERMILLE


class Cylinder(BaseModel):
    """A tank carried on the dive, with manual and sampled pressure readings."""

    gasmix: GasMix = Field(default_factory=GasMix)
    size_ml: int = Field(0, ge=0, description="Water capacity of the cylinder")
    working_pressure_mbar: int = Field(0, ge=0)
    description: str = ""
    start_mbar: int = Field(0, ge=0, description="Manually recorded start pressure")
    end_mbar: int = Field(0, ge=0, description="Manually recorded end pressure")
    sample_start_mbar: int = Field(0, ge=0, description="First pressure seen in samples")
    sample_end_mbar: int = Field(0, ge=0, description="Last pressure seen in samples")

    @property
    def is_empty(self) -> bool:
        """True for a placeholder slot that carries no information at all."""
        return not (
            self.size_ml
            or self.working_pressure_mbar
            or self.description
            or self.gasmix.o2_permille
            or self.gasmix.he_permille
            or self.start_mbar
            or self.end_mbar
            or self.sample_start_mbar
            or self.sample_end_mbar
        )

    @property
    def effective_start_mbar(self) -> int:
        return self.start_mbar or self.sample_start_mbar

    @property
    def effective_end_mbar(self) -> int:
        return self.end_mbar or self.sample_end_mbar


class Sample(BaseModel):
    """One depth reading from the dive profile."""

    time_s: int = Field(..., ge=0)
    depth_mm: int = Field(..., ge=0)
    cylinder_index: int = Field(0, ge=0, description="Cylinder breathed from at this point")


class WeightSystem(BaseModel):
    weight_grams: int = Field(0, ge=0)
    description: str = ""


# ── Dive ─────────────────────────────────────────────────────────────────────

class DiveRecord(BaseModel):
    """A single logged dive.

    Records are mutable so the store can apply edits in place; assignments
    are validated.  Trip membership is engine-owned state and is kept out of
    the validated payload.
    """

    number: int = Field(0, ge=0, description="User-facing dive number")
    when: int = Field(..., description="Start of the dive, seconds since the epoch (UTC)")
    rating: int = Field(0, ge=0, le=5)
    max_depth_mm: int = Field(0, ge=0)
    mean_depth_mm: int = Field(0, ge=0)
    duration_s: int = Field(0, ge=0)
    water_temp_mkelvin: int = Field(0, ge=0, description="0 means not recorded")
    cylinders: list[Cylinder] = Field(default_factory=list, max_length=MAX_CYLINDERS)
    samples: list[Sample] = Field(default_factory=list)
    weights: list[WeightSystem] = Field(default_factory=list, max_length=MAX_WEIGHTSYSTEMS)
    location: str = ""
    suit: str = ""
    trip_flag: TripFlag = TripFlag.NONE

    # Derived; see divesync.core.statistics
    sac_ml_min: int = Field(0, ge=0)
    otu: int = Field(0, ge=0)

    model_config = {"validate_assignment": True}

    _trip: Any = PrivateAttr(default=None)

    # ── Validators ───────────────────────────────────────────────────────

    @field_validator("when", mode="before")
    @classmethod
    def when_to_epoch_seconds(cls, v: Any) -> Any:
        return to_epoch_seconds(v)

    @field_validator("samples")
    @classmethod
    def samples_must_be_time_ordered(cls, v: list[Sample]) -> list[Sample]:
        for prev, cur in zip(v, v[1:]):
            if cur.time_s < prev.time_s:
                raise ValueError(
                    f"samples must be time-ordered ({cur.time_s}s follows {prev.time_s}s)"
                )
        return v

    # ── Trip membership ──────────────────────────────────────────────────

    @property
    def trip(self) -> TripGroup | None:
        """The trip this dive was placed in by the last rebuild, if any."""
        return self._trip

    def assign_trip(self, trip: TripGroup | None) -> None:
        self._trip = trip
