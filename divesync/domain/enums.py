"""Controlled enumerations for the divesync domain.

Every categorical field in the domain MUST reference an enum defined here.
"""

from __future__ import annotations

from enum import Enum


class TripFlag(str, Enum):
    """How a dive participates in trip grouping."""

    NONE = "none"  # not handled yet; autogrouping may place it
    NO_TRIP = "no_trip"  # forced to the top level
    IN_TRIP = "in_trip"  # joins the nearest existing trip that accepts it


class SortKey(str, Enum):
    """Sortable dive list columns."""

    NR = "nr"
    DATE = "date"
    RATING = "rating"
    DEPTH = "depth"
    DURATION = "duration"
    TEMPERATURE = "temperature"
    TOTAL_WEIGHT = "total_weight"
    SUIT = "suit"
    CYLINDER = "cylinder"
    NITROX = "nitrox"
    SAC = "sac"
    OTU = "otu"
    LOCATION = "location"


class SortDirection(str, Enum):
    ASCENDING = "ascending"
    DESCENDING = "descending"


class ProjectionKind(str, Enum):
    """The two row projections of the dive list."""

    FLAT = "flat"
    GROUPED = "grouped"


class CoordinatorState(str, Enum):
    """Explicit states of the projection coordinator."""

    IDLE = "idle"
    REBUILDING = "rebuilding"
    SWITCHING_PROJECTION = "switching_projection"


class RowKind(str, Enum):
    DIVE = "dive"
    GROUP = "group"


class LengthUnit(str, Enum):
    METERS = "meters"
    FEET = "feet"


class TemperatureUnit(str, Enum):
    CELSIUS = "celsius"
    FAHRENHEIT = "fahrenheit"


class VolumeUnit(str, Enum):
    LITER = "liter"
    CUFT = "cuft"


class WeightUnit(str, Enum):
    KG = "kg"
    LBS = "lbs"


class StoreChangeKind(str, Enum):
    """What kind of mutation the Dive Store is announcing."""

    ADDED = "added"
    EDITED = "edited"
    REMOVED = "removed"
    TRIPS_CHANGED = "trips_changed"
