"""
Emergency data model.

An emergency is created once at intake, stamped with an id and the
dispatch center's simulation time, and never mutated afterwards. The
patient payload is opaque to the scheduler; it is only echoed back to
display collaborators.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ambulance_sim.core.geometry import Point


class Severity(Enum):
    """Severity labels offered at intake, mapped to priority classes."""
    NORMAL = "Normal"
    HIGH = "High"
    CRITICAL = "Critical"

    @property
    def priority(self) -> int:
        """Priority class (1 = most urgent)."""
        return _SEVERITY_PRIORITY[self]

    @classmethod
    def from_priority(cls, priority: int) -> "Severity":
        """Label for a priority class. Classes above 3 read as NORMAL."""
        for severity, value in _SEVERITY_PRIORITY.items():
            if value == priority:
                return severity
        return cls.NORMAL


_SEVERITY_PRIORITY = {
    Severity.CRITICAL: 1,
    Severity.HIGH: 2,
    Severity.NORMAL: 3,
}


@dataclass(frozen=True)
class PatientInfo:
    """Caller-supplied payload attached to an emergency."""
    name: str = ""
    age: int | None = None
    severity: str = Severity.NORMAL.value
    description: str = ""
    site_id: int | None = None  # originating house number

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "age": self.age,
            "severity": self.severity,
            "description": self.description,
            "site_id": self.site_id,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "PatientInfo":
        return cls(
            name=d.get("name", ""),
            age=d.get("age"),
            severity=d.get("severity", Severity.NORMAL.value),
            description=d.get("description", ""),
            site_id=d.get("site_id"),
        )


@dataclass(frozen=True)
class Emergency:
    """A request for service, as accepted by a dispatch center."""
    emergency_id: int
    priority: int
    created_at: float
    location: Point
    patient: PatientInfo = field(default_factory=PatientInfo)

    @property
    def sort_key(self) -> tuple[int, float, int]:
        """Best-first ordering: priority, then age, then arrival order."""
        return (self.priority, self.created_at, self.emergency_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "emergency_id": self.emergency_id,
            "priority": self.priority,
            "created_at": self.created_at,
            "location": self.location.to_dict(),
            "patient": self.patient.to_dict(),
        }
