"""
Numbered building sites laid out inside the road grid's blocks.

Every block between roads is split into lots_x × lots_y lots, and each
lot holds one building. Sites are numbered row-major across the whole
map starting at 1, which gives callers a house number to report an
emergency against. The emergency point of a site is the middle of its
street-facing (bottom) edge.
"""

from dataclasses import dataclass

from ambulance_sim.core.geometry import Point
from ambulance_sim.movement.grid_router import GridGeometry

# Building footprint as a fraction of its lot (after padding)
FOOTPRINT_WIDTH = 0.85
FOOTPRINT_HEIGHT = 0.70
FOOTPRINT_SETBACK = 0.08


@dataclass(frozen=True)
class Site:
    """A building footprint with its house number."""
    site_id: int
    x: float
    y: float
    width: float
    height: float

    @property
    def curb(self) -> Point:
        """Where an ambulance attends this site."""
        return Point(self.x + self.width / 2.0, self.y + self.height)

    def contains(self, point: Point) -> bool:
        return (self.x <= point.x <= self.x + self.width
                and self.y <= point.y <= self.y + self.height)


def build_sites(
    grid: GridGeometry,
    lots_x: int = 3,
    lots_y: int = 2,
    road_width: float = 44.0,
    padding: float = 8.0,
) -> dict[int, Site]:
    """Lay out sites for every block of the grid, keyed by house number."""
    usable = grid.cell_size - road_width
    if usable <= 0 or lots_x < 1 or lots_y < 1:
        raise ValueError(
            f"Cannot fit {lots_x}x{lots_y} lots in a {grid.cell_size} block "
            f"with {road_width} roads"
        )
    lot_w = usable / lots_x
    lot_h = usable / lots_y
    w = lot_w - padding
    h = lot_h - padding
    vw = w * FOOTPRINT_WIDTH
    vh = h * FOOTPRINT_HEIGHT

    sites: dict[int, Site] = {}
    site_id = 1
    for py in range(grid.cells_y * lots_y):
        for px in range(grid.cells_x * lots_x):
            by, ly = divmod(py, lots_y)
            bx, lx = divmod(px, lots_x)
            block_x = grid.origin.x + bx * grid.cell_size + road_width / 2.0
            block_y = grid.origin.y + by * grid.cell_size + road_width / 2.0
            x = block_x + lx * lot_w + padding / 2.0
            y = block_y + ly * lot_h + padding / 2.0
            sites[site_id] = Site(
                site_id=site_id,
                x=x + (w - vw) / 2.0,
                y=y + (h - vh) / 2.0 + vh * FOOTPRINT_SETBACK,
                width=vw,
                height=vh,
            )
            site_id += 1
    return sites


def find_site(sites: dict[int, Site], site_id: int) -> Site:
    """Look up a site by house number. Raises KeyError if absent."""
    try:
        return sites[site_id]
    except KeyError:
        raise KeyError(f"Site {site_id} not found") from None


def site_at(sites: dict[int, Site], point: Point) -> Site | None:
    """The site whose footprint contains point, if any."""
    for site in sites.values():
        if site.contains(point):
            return site
    return None
