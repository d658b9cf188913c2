"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings

from divesync.domain.enums import (
    LengthUnit,
    SortDirection,
    TemperatureUnit,
    VolumeUnit,
    WeightUnit,
)


class Settings(BaseSettings):
    app_name: str = "divesync"
    debug: bool = False
    log_level: str = "INFO"

    # Trip grouping
    autogroup: bool = False
    trip_window_hours: float = 72.0

    # Projection / selection
    default_sort_direction: SortDirection = SortDirection.DESCENDING
    select_first_on_load: bool = True

    # Display units
    length_unit: LengthUnit = LengthUnit.METERS
    temperature_unit: TemperatureUnit = TemperatureUnit.CELSIUS
    volume_unit: VolumeUnit = VolumeUnit.LITER
    weight_unit: WeightUnit = WeightUnit.KG

    model_config = {"env_prefix": "DIVESYNC_"}


settings = Settings()
