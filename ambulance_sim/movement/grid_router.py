"""
Rectilinear road-grid router.

The road network is a bounded lattice of horizontal and vertical lines.
A route snaps both endpoints to their nearest intersection, walks one
cell at a time along X until aligned, then along Y, and finishes at the
raw requested end point so the last leg reaches the exact address.

The router makes no attempt at optimality beyond the Manhattan X-then-Y
policy. Every point in the plane snaps to some intersection, so there
is no unreachable destination.
"""

from dataclasses import dataclass

from ambulance_sim.core.geometry import Point


@dataclass(frozen=True)
class GridGeometry:
    """Road lattice: origin intersection, cell size, and cell counts."""
    origin: Point
    cell_size: float
    cells_x: int
    cells_y: int

    def __post_init__(self) -> None:
        if self.cell_size <= 0:
            raise ValueError(f"cell_size must be positive, got {self.cell_size}")
        if self.cells_x < 0 or self.cells_y < 0:
            raise ValueError(
                f"Cell counts must be non-negative, got {self.cells_x}x{self.cells_y}"
            )

    def intersection(self, ix: int, iy: int) -> Point:
        """World position of lattice index (ix, iy)."""
        return Point(
            self.origin.x + ix * self.cell_size,
            self.origin.y + iy * self.cell_size,
        )

    @property
    def width(self) -> float:
        return self.cells_x * self.cell_size

    @property
    def height(self) -> float:
        return self.cells_y * self.cell_size


def _nearest_index(point: Point, grid: GridGeometry) -> tuple[int, int]:
    """Lattice index of the intersection nearest to point.

    Exhaustive row-major scan; the first strictly-nearest candidate wins,
    so ties resolve to the lowest y, then the lowest x.
    """
    best = (0, 0)
    best_dist = float("inf")
    for iy in range(grid.cells_y + 1):
        for ix in range(grid.cells_x + 1):
            d = point.distance_to(grid.intersection(ix, iy))
            if d < best_dist:
                best_dist = d
                best = (ix, iy)
    return best


def nearest_intersection(point: Point, grid: GridGeometry) -> Point:
    """Snap point to the nearest road intersection."""
    return grid.intersection(*_nearest_index(point, grid))


def route(start: Point, end: Point, grid: GridGeometry) -> list[Point]:
    """Waypoints from start to end along the road grid.

    The first waypoint is the snapped start, the last is end itself.
    Always at least two waypoints, even when both ends snap to the
    same intersection.
    """
    ix, iy = _nearest_index(start, grid)
    ex, ey = _nearest_index(end, grid)

    path = [grid.intersection(ix, iy)]
    while ix != ex:
        ix += 1 if ix < ex else -1
        path.append(grid.intersection(ix, iy))
    while iy != ey:
        iy += 1 if iy < ey else -1
        path.append(grid.intersection(ix, iy))
    path.append(end)
    return path
