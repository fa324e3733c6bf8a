"""
Dispatch error taxonomy.

Rejected intake is the only failure a dispatch center surfaces.
Unmatched emergencies are backlog and unreachable routes count as
arrival, so neither is an error. Locations are never rejected for being
off the road network: the router snaps every point to an intersection.
"""

from typing import Any


class DispatchError(Exception):
    """Base class for dispatch failures."""


class IntakeRejected(DispatchError):
    """An emergency report was refused and not enqueued."""

    def __init__(self, message: str, request: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.request = request or {}


class CapacityExceeded(IntakeRejected):
    """The center's bounded queue is full."""


class InvalidEmergency(IntakeRejected, ValueError):
    """The report is malformed (bad priority or non-finite location)."""
