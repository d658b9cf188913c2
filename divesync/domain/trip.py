"""TripGroup — a synthetic aggregate of temporally adjacent dives.

A TripGroup is NOT a dive.  It exists only as the result of a trip
grouping pass and is thrown away on the next one.  Its representative
values are written while dives are attached:

    - ``when`` follows the most recently attached dive.  Dives are attached
      newest-first, so after the pass it holds the earliest member's time.
    - ``location`` is the first non-empty member location and never changes
      afterwards.

TripAnchor is the persistent counterpart: an explicit trip the user
declared, which seeds a fresh TripGroup on every rebuild.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from divesync.foundation.clock import to_epoch_seconds
from divesync.foundation.identifiers import new_id


class TripAnchor(BaseModel):
    """A user-declared trip that dives can be explicitly assigned to."""

    when: int = Field(..., description="Reference time of the trip, seconds since the epoch")
    location: str = ""

    model_config = {"frozen": True}

    @field_validator("when", mode="before")
    @classmethod
    def when_to_epoch_seconds(cls, v: Any) -> Any:
        return to_epoch_seconds(v)


class TripGroup:
    """Mutable during a grouping pass, read-only afterwards."""

    __slots__ = ("trip_id", "when", "location", "_members")

    def __init__(self, when: int = 0, location: str = "") -> None:
        self.trip_id: UUID = new_id()
        self.when: int = when
        self.location: str = location
        self._members: list[int] = []

    @classmethod
    def from_anchor(cls, anchor: TripAnchor) -> TripGroup:
        return cls(when=anchor.when, location=anchor.location)

    # ── Mutation ─────────────────────────────────────────────────────────

    def attach(self, index: int, when: int, location: str) -> None:
        """Add a dive to this trip and update the representative values."""
        self._members.append(index)
        self.when = when
        if not self.location and location:
            self.location = location

    # ── Queries ──────────────────────────────────────────────────────────

    @property
    def members(self) -> list[int]:
        """Member dive indices in attachment (newest-first) order."""
        return list(self._members)

    @property
    def member_count(self) -> int:
        return len(self._members)

    def summary(self) -> dict:
        return {
            "trip_id": str(self.trip_id),
            "when": self.when,
            "location": self.location,
            "member_count": self.member_count,
            "members": self.members,
        }

    def __repr__(self) -> str:
        return (
            f"TripGroup(id={self.trip_id!s}, when={self.when}, "
            f"members={self.member_count}, location={self.location!r})"
        )
