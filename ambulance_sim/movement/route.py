"""
Route followed by a moving vehicle: fixed waypoints plus a cursor.
"""

from dataclasses import dataclass

from ambulance_sim.core.geometry import Point


@dataclass
class Route:
    """Ordered waypoints and the index of the next unvisited one."""
    waypoints: tuple[Point, ...] = ()
    cursor: int = 0

    @classmethod
    def of(cls, waypoints: list[Point]) -> "Route":
        return cls(waypoints=tuple(waypoints))

    @property
    def current(self) -> Point | None:
        """Next unvisited waypoint, or None once exhausted."""
        if self.is_exhausted:
            return None
        return self.waypoints[self.cursor]

    @property
    def final(self) -> Point | None:
        return self.waypoints[-1] if self.waypoints else None

    @property
    def is_exhausted(self) -> bool:
        return self.cursor >= len(self.waypoints)

    def advance(self) -> None:
        if not self.is_exhausted:
            self.cursor += 1

    def finish(self) -> None:
        """Mark every waypoint as consumed."""
        self.cursor = len(self.waypoints)

    def __len__(self) -> int:
        return len(self.waypoints)
