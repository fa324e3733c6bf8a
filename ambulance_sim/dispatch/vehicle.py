"""
Ambulance model and its lifecycle state machine.

A vehicle cycles Idle -> EnRoute -> OnScene -> Returning -> Idle. Each
state is its own small dataclass carrying only the fields that matter
in that state, so an idle vehicle cannot hold a route or an assignment
and only an on-scene vehicle has a scene timer.

Motion integration (move) and transition evaluation (update) are
separate steps; the dispatch center calls move for the whole fleet,
then matches the backlog, then calls update.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ambulance_sim.core.emergency import Emergency
from ambulance_sim.core.geometry import Point, step_towards
from ambulance_sim.movement.grid_router import GridGeometry, route
from ambulance_sim.movement.route import Route

logger = logging.getLogger(__name__)


class VehicleStatus(Enum):
    """Operational status shown to display collaborators."""
    IDLE = "IDLE"
    EN_ROUTE = "EN ROUTE"
    ON_SCENE = "ON SCENE"
    RETURNING = "RETURNING"


@dataclass(frozen=True)
class Idle:
    """Parked (or settling) at home base, available for dispatch."""


@dataclass
class EnRoute:
    """Driving to an emergency."""
    emergency: Emergency
    route: Route


@dataclass
class OnScene:
    """Serving the patient; leaves when the timer runs out."""
    emergency: Emergency
    scene_timer: float


@dataclass
class Returning:
    """Driving back to home base after a completed call."""
    route: Route
    completed: Emergency


VehicleState = Idle | EnRoute | OnScene | Returning

_STATUS_BY_STATE = {
    Idle: VehicleStatus.IDLE,
    EnRoute: VehicleStatus.EN_ROUTE,
    OnScene: VehicleStatus.ON_SCENE,
    Returning: VehicleStatus.RETURNING,
}


@dataclass(frozen=True)
class VehicleProfile:
    """Kinematics and timing shared by a fleet."""
    speed: float = 150.0                # world units per second
    return_speed_factor: float = 0.8    # non-urgent return trip
    idle_drift_factor: float = 0.4      # settling back onto the parking spot
    snap_threshold: float = 3.0         # waypoint reached
    arrival_threshold: float = 4.0      # destination reached
    settle_distance: float = 1.0        # idle vehicle considered parked
    service_duration_s: float = 4.0

    def __post_init__(self) -> None:
        if self.speed <= 0:
            raise ValueError(f"Vehicle speed must be positive, got {self.speed}")
        if self.service_duration_s < 0:
            raise ValueError(
                f"Service duration must be >= 0, got {self.service_duration_s}"
            )


@dataclass(frozen=True)
class VehicleSnapshot:
    """Read-only view of a vehicle for display and introspection."""
    vehicle_id: int
    position: Point
    home_base: Point
    status: VehicleStatus
    assignment: Emergency | None
    scene_timer: float | None
    route: tuple[Point, ...]
    route_cursor: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "vehicle_id": self.vehicle_id,
            "position": self.position.to_dict(),
            "home_base": self.home_base.to_dict(),
            "status": self.status.value,
            "assignment": self.assignment.to_dict() if self.assignment else None,
            "scene_timer": self.scene_timer,
            "route": [p.to_dict() for p in self.route],
            "route_cursor": self.route_cursor,
        }


@dataclass
class Vehicle:
    """A dispatchable ambulance with a fixed home base."""
    vehicle_id: int
    home_base: Point
    profile: VehicleProfile = field(default_factory=VehicleProfile)
    position: Point | None = None
    state: VehicleState = field(default_factory=Idle)

    def __post_init__(self) -> None:
        if self.position is None:
            self.position = self.home_base

    @property
    def status(self) -> VehicleStatus:
        return _STATUS_BY_STATE[type(self.state)]

    @property
    def is_idle(self) -> bool:
        return isinstance(self.state, Idle)

    @property
    def assignment(self) -> Emergency | None:
        """Emergency currently being served (EnRoute or OnScene)."""
        if isinstance(self.state, (EnRoute, OnScene)):
            return self.state.emergency
        return None

    @property
    def active_route(self) -> Route | None:
        if isinstance(self.state, (EnRoute, Returning)):
            return self.state.route
        return None

    @property
    def route(self) -> tuple[Point, ...]:
        active = self.active_route
        return active.waypoints if active else ()

    @property
    def route_cursor(self) -> int:
        active = self.active_route
        return active.cursor if active else 0

    @property
    def scene_timer(self) -> float | None:
        if isinstance(self.state, OnScene):
            return self.state.scene_timer
        return None

    @property
    def is_parked(self) -> bool:
        return self.is_idle and self.position == self.home_base

    def assign(self, emergency: Emergency, waypoints: list[Point]) -> None:
        """Idle -> EnRoute toward emergency along waypoints."""
        if not self.is_idle:
            raise ValueError(
                f"Vehicle {self.vehicle_id} is {self.status.value}, cannot assign "
                f"emergency {emergency.emergency_id}"
            )
        self.state = EnRoute(emergency=emergency, route=Route.of(waypoints))
        logger.debug(
            f"Vehicle {self.vehicle_id} route to emergency {emergency.emergency_id}: "
            f"{len(waypoints)} waypoints"
        )

    def move(self, dt: float) -> None:
        """Integrate motion over dt seconds.

        Following a route: either step toward the current waypoint
        (never past it) or, when within snap_threshold, advance the
        cursor. Idle and displaced: drift back onto the parking spot.
        """
        p = self.profile
        active = self.active_route
        if active is not None and not active.is_exhausted:
            target = active.current
            if self.position.distance_to(target) > p.snap_threshold:
                speed = p.speed
                if isinstance(self.state, Returning):
                    speed *= p.return_speed_factor
                self.position = step_towards(self.position, target, speed * dt)
            else:
                active.advance()
        elif self.is_idle:
            if self.position.distance_to(self.home_base) > p.settle_distance:
                self.position = step_towards(
                    self.position, self.home_base, p.speed * p.idle_drift_factor * dt,
                )

    def update(self, dt: float, grid: GridGeometry) -> VehicleStatus | None:
        """Evaluate state transitions after dt seconds.

        Returns the new status if a transition fired, else None.
        """
        p = self.profile
        state = self.state

        if isinstance(state, EnRoute):
            arrived = state.route.is_exhausted or (
                self.position.distance_to(state.route.final) < p.arrival_threshold
            )
            if arrived:
                state.route.finish()
                self.state = OnScene(
                    emergency=state.emergency, scene_timer=p.service_duration_s,
                )
                return VehicleStatus.ON_SCENE

        elif isinstance(state, OnScene):
            state.scene_timer -= dt
            if state.scene_timer <= 0.0:
                waypoints = route(self.position, self.home_base, grid)
                self.state = Returning(
                    route=Route.of(waypoints), completed=state.emergency,
                )
                return VehicleStatus.RETURNING

        elif isinstance(state, Returning):
            home_dist = self.position.distance_to(self.home_base)
            if home_dist < p.arrival_threshold or state.route.is_exhausted:
                self.position = self.home_base
                self.state = Idle()
                return VehicleStatus.IDLE

        return None

    def snapshot(self) -> VehicleSnapshot:
        return VehicleSnapshot(
            vehicle_id=self.vehicle_id,
            position=self.position,
            home_base=self.home_base,
            status=self.status,
            assignment=self.assignment,
            scene_timer=self.scene_timer,
            route=self.route,
            route_cursor=self.route_cursor,
        )
