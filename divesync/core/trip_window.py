"""Trip window rules — decide whether a dive may join a trip.

A TripWindow answers one question: given a candidate dive's timestamp and a
trip's current representative timestamp, does the dive belong to the trip?
The grouping engine depends on this protocol only, so the acceptance rule
can be swapped without touching the grouping pass.

Dives are offered newest-first, and a trip's timestamp follows its most
recently attached (i.e. earliest) member, so the candidate is normally at
or before the trip's timestamp.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Protocol


class TripWindow(Protocol):
    """Protocol for the trip acceptance predicate."""

    def fits(self, candidate_when: int, trip_when: int) -> bool:
        """Return True if a dive at *candidate_when* may join a trip at *trip_when*."""
        ...


class WithinWindow:
    """Accepts dives that start no more than *window* before the trip's time.

    Dives later than the trip's time are always accepted; during a
    newest-first pass they can only be met for explicitly declared trips.
    """

    def __init__(self, window: timedelta) -> None:
        if window < timedelta(0):
            raise ValueError("trip window must not be negative")
        self._window_s = int(window.total_seconds())

    @classmethod
    def hours(cls, hours: float) -> WithinWindow:
        return cls(timedelta(hours=hours))

    @property
    def window(self) -> timedelta:
        return timedelta(seconds=self._window_s)

    def fits(self, candidate_when: int, trip_when: int) -> bool:
        return trip_when - self._window_s <= candidate_when

    def __repr__(self) -> str:
        return f"WithinWindow({self.window})"

