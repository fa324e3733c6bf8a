"""
Dispatch center: owns a fleet and an emergency backlog.

Each tick runs three steps in a fixed order:

1. motion integration for every vehicle,
2. dispatch: drain the backlog best-first and give each emergency the
   nearest idle vehicle, putting unmatched ones back,
3. advance: evaluate every vehicle's state transitions.

Everything runs synchronously on the caller's thread. Several centers
can coexist; each owns a disjoint fleet and queue.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable

from ambulance_sim.core.emergency import Emergency, PatientInfo
from ambulance_sim.core.geometry import Point
from ambulance_sim.dispatch.emergency_queue import EmergencyQueue
from ambulance_sim.dispatch.errors import CapacityExceeded, InvalidEmergency
from ambulance_sim.dispatch.vehicle import (
    Returning, Vehicle, VehicleProfile, VehicleSnapshot, VehicleStatus,
)
from ambulance_sim.movement.grid_router import GridGeometry, route

logger = logging.getLogger(__name__)

_TRANSITION_EVENTS = {
    VehicleStatus.ON_SCENE: "VEHICLE_ON_SCENE",
    VehicleStatus.RETURNING: "VEHICLE_RETURNING",
    VehicleStatus.IDLE: "VEHICLE_AVAILABLE",
}


@dataclass
class DispatchConfig:
    """Plain-value construction parameters for a dispatch center."""
    home_bases: list[Point]
    grid: GridGeometry
    name: str = "Hospital"
    location: Point = field(default_factory=lambda: Point(0.0, 0.0))
    profile: VehicleProfile = field(default_factory=VehicleProfile)
    queue_capacity: int | None = None
    first_vehicle_id: int = 1


class DispatchCenter:
    """Matches emergencies to ambulances and drives their lifecycle."""

    def __init__(self, config: DispatchConfig) -> None:
        self._config = config
        self._grid = config.grid
        self._queue = EmergencyQueue(capacity=config.queue_capacity)
        self._vehicles = [
            Vehicle(vehicle_id=config.first_vehicle_id + i, home_base=base,
                    profile=config.profile)
            for i, base in enumerate(config.home_bases)
        ]
        self._next_emergency_id = 1
        self._handled_count = 0
        self._sim_time = 0.0
        self._event_callbacks: list[Callable[[dict], None]] = []

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def location(self) -> Point:
        return self._config.location

    @property
    def grid(self) -> GridGeometry:
        return self._grid

    @property
    def sim_time(self) -> float:
        """Seconds of simulated time advanced through tick()."""
        return self._sim_time

    @property
    def handled_count(self) -> int:
        """Cumulative completed services."""
        return self._handled_count

    @property
    def pending_count(self) -> int:
        return len(self._queue)

    @property
    def is_quiescent(self) -> bool:
        """No backlog and every vehicle parked at home."""
        return not self._queue and all(v.is_parked for v in self._vehicles)

    # -- intake ------------------------------------------------------------

    def receive(
        self, patient: PatientInfo, location: Point, priority: int,
    ) -> int:
        """Accept an emergency report and return its assigned id.

        Raises InvalidEmergency for a malformed report and
        CapacityExceeded when a bounded queue is full. A rejected report
        consumes no id and leaves the queue untouched.
        """
        request = {
            "patient": patient.to_dict(),
            "location": location.to_dict() if isinstance(location, Point) else location,
            "priority": priority,
        }
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise InvalidEmergency(f"Invalid priority class: {priority!r}", request)
        if not isinstance(location, Point) or not location.is_finite():
            raise InvalidEmergency(f"Invalid emergency location: {location!r}", request)
        if self._queue.is_full:
            logger.warning(
                f"[{self.name}] Queue full ({self._queue.capacity}), "
                f"rejecting report for {patient.name or 'unknown patient'}"
            )
            self._emit("EMERGENCY_REJECTED", "Dispatch queue full", **request)
            raise CapacityExceeded(
                f"{self.name} queue full ({self._queue.capacity} pending)", request,
            )

        emergency = Emergency(
            emergency_id=self._next_emergency_id,
            priority=priority,
            created_at=self._sim_time,
            location=location,
            patient=patient,
        )
        self._next_emergency_id += 1
        self._queue.push(emergency)
        logger.info(
            f"[{self.name}] Emergency {emergency.emergency_id} received: "
            f"{patient.name or 'unknown'} (priority {priority}) "
            f"at ({location.x:.1f}, {location.y:.1f})"
        )
        self._emit(
            "EMERGENCY_RECEIVED",
            f"{patient.name or 'Unknown'} ({patient.severity})",
            emergency_id=emergency.emergency_id,
            priority=priority,
        )
        return emergency.emergency_id

    # -- tick steps --------------------------------------------------------

    def dispatch(self) -> list[tuple[int, int]]:
        """Match the backlog to idle vehicles, most urgent and oldest first.

        Returns (emergency_id, vehicle_id) pairs for this pass. Emergencies
        left without a vehicle go back in the queue with their original
        stamps, so they keep their place for the next tick.
        """
        if not self._queue:
            return []

        idle = [v for v in self._vehicles if v.is_idle]
        matches: list[tuple[int, int]] = []
        backlog: list[Emergency] = []
        dispatched: list[tuple[Vehicle, Emergency]] = []

        for emergency in self._queue.drain():
            vehicle = self._nearest_idle(idle, emergency.location)
            if vehicle is None:
                backlog.append(emergency)
                continue
            idle.remove(vehicle)
            vehicle.assign(emergency, route(vehicle.position, emergency.location, self._grid))
            matches.append((emergency.emergency_id, vehicle.vehicle_id))
            logger.info(
                f"[{self.name}] Vehicle {vehicle.vehicle_id} dispatched to "
                f"emergency {emergency.emergency_id} (priority {emergency.priority})"
            )
            dispatched.append((vehicle, emergency))

        if backlog:
            self._queue.restore(backlog)
            logger.debug(f"[{self.name}] {len(backlog)} emergencies waiting for a vehicle")

        # Listeners run only once the queue is consistent again
        for vehicle, emergency in dispatched:
            self._emit(
                "VEHICLE_DISPATCHED",
                f"Ambulance {vehicle.vehicle_id} -> "
                f"{emergency.patient.name or f'emergency {emergency.emergency_id}'}",
                emergency_id=emergency.emergency_id,
                vehicle_id=vehicle.vehicle_id,
            )
        return matches

    def integrate_motion(self, dt: float) -> None:
        """Move every vehicle along its route for dt seconds."""
        for vehicle in self._vehicles:
            vehicle.move(dt)

    def advance(self, dt: float) -> None:
        """Evaluate every vehicle's state transitions for dt seconds."""
        for vehicle in self._vehicles:
            served = vehicle.assignment
            if isinstance(vehicle.state, Returning):
                served = vehicle.state.completed
            new_status = vehicle.update(dt, self._grid)
            if new_status is None:
                continue
            if new_status == VehicleStatus.RETURNING:
                self._handled_count += 1
            self._log_transition(vehicle, new_status, served)

    def tick(self, dt: float) -> None:
        """Advance motion, dispatch, and state machines by dt seconds."""
        if dt < 0 or math.isnan(dt):
            raise ValueError(f"Tick delta must be >= 0, got {dt}")
        self._sim_time += dt
        self.integrate_motion(dt)
        self.dispatch()
        self.advance(dt)

    # -- read-only views ---------------------------------------------------

    def list_vehicles(self) -> list[VehicleSnapshot]:
        """Snapshots of the fleet in roster order."""
        return [v.snapshot() for v in self._vehicles]

    def list_pending(self) -> list[Emergency]:
        """Pending emergencies best-first."""
        return self._queue.peek_all()

    def on_event(self, callback: Callable[[dict], None]) -> None:
        """Register a listener for operational events."""
        self._event_callbacks.append(callback)

    # -- internals ---------------------------------------------------------

    @staticmethod
    def _nearest_idle(idle: list[Vehicle], target: Point) -> Vehicle | None:
        """Closest idle vehicle by straight-line distance; roster order breaks ties."""
        best = None
        best_dist = float("inf")
        for vehicle in idle:
            d = vehicle.position.distance_to(target)
            if d < best_dist:
                best_dist = d
                best = vehicle
        return best

    def _log_transition(
        self, vehicle: Vehicle, status: VehicleStatus, served: Emergency | None,
    ) -> None:
        extra: dict[str, Any] = {"vehicle_id": vehicle.vehicle_id}
        if served is not None:
            extra["emergency_id"] = served.emergency_id
        if status == VehicleStatus.ON_SCENE:
            description = f"Ambulance {vehicle.vehicle_id} on scene"
        elif status == VehicleStatus.RETURNING:
            description = f"Ambulance {vehicle.vehicle_id} returning to base"
        else:
            description = f"Ambulance {vehicle.vehicle_id} available"
        logger.info(f"[{self.name}] {description}")
        self._emit(_TRANSITION_EVENTS[status], description, **extra)

    def _emit(self, event_type: str, description: str, **fields: Any) -> None:
        event = {
            "event_type": event_type,
            "time": round(self._sim_time, 3),
            "center": self.name,
            "description": description,
            **fields,
        }
        for cb in self._event_callbacks:
            cb(event)
