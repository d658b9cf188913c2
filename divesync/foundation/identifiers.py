"""Identifier generation for synthetic rows and trips."""

from __future__ import annotations

from uuid import UUID, uuid4


def new_id() -> UUID:
    """Generate a new random UUID v4.

    Trips and projection rows are recreated on every rebuild, so their ids
    are only meaningful until the next rebuild.
    """
    return uuid4()
