"""
Planar world geometry shared by the router, vehicles and dispatch.

World coordinates are plain screen-style units: x grows to the right,
y grows downward. Distances are Euclidean.
"""

import math
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Point:
    """A position in world space."""
    x: float
    y: float

    def distance_to(self, other: "Point") -> float:
        return math.hypot(other.x - self.x, other.y - self.y)

    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Point":
        return cls(x=float(d["x"]), y=float(d["y"]))


def step_towards(position: Point, target: Point, max_distance: float) -> Point:
    """Move from position toward target by at most max_distance.

    Lands exactly on target when it is within reach.
    """
    dist = position.distance_to(target)
    if dist <= max_distance or dist == 0.0:
        return target
    fraction = max_distance / dist
    return Point(
        position.x + (target.x - position.x) * fraction,
        position.y + (target.y - position.y) * fraction,
    )
