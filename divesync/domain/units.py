"""Display unit preferences and the conversions they drive."""

from __future__ import annotations

from pydantic import BaseModel

from divesync.domain.enums import LengthUnit, TemperatureUnit, VolumeUnit, WeightUnit


class UnitSystem(BaseModel):
    """Which units the presentation layer wants values rendered in."""

    length: LengthUnit = LengthUnit.METERS
    temperature: TemperatureUnit = TemperatureUnit.CELSIUS
    volume: VolumeUnit = VolumeUnit.LITER
    weight: WeightUnit = WeightUnit.KG

    model_config = {"frozen": True}

    @classmethod
    def metric(cls) -> UnitSystem:
        return cls()

    @classmethod
    def imperial(cls) -> UnitSystem:
        return cls(
            length=LengthUnit.FEET,
            temperature=TemperatureUnit.FAHRENHEIT,
            volume=VolumeUnit.CUFT,
            weight=WeightUnit.LBS,
        )


# ── Conversions ──────────────────────────────────────────────────────────────

def mm_to_feet(mm: int) -> float:
    return mm * 0.00328084


def mkelvin_to_c(mkelvin: int) -> float:
    return (mkelvin - 273150) / 1000.0


def mkelvin_to_f(mkelvin: int) -> float:
    return mkelvin * 9 / 5000.0 - 459.67


def ml_to_cuft(ml: float) -> float:
    return ml / 28316.8466


def grams_to_lbs(grams: int) -> float:
    return grams / 453.6


def mbar_to_atm(mbar: int) -> float:
    return mbar / 1013.25
