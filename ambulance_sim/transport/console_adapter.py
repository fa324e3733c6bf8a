"""
Debug transport adapter that prints fleet updates to stdout.

Useful for development and headless runs without any display.
Rate-limited per vehicle to avoid flooding the console.
"""

import time

from ambulance_sim.dispatch.vehicle import VehicleSnapshot, VehicleStatus
from ambulance_sim.transport.base import TransportAdapter


class ConsoleAdapter(TransportAdapter):
    """Prints vehicle snapshots and dispatch events to the console."""

    def __init__(self, min_interval: float = 5.0) -> None:
        """
        Args:
            min_interval: Minimum seconds between prints for the same vehicle.
        """
        self._min_interval = min_interval
        self._last_print: dict[int, float] = {}
        self._last_status: dict[int, VehicleStatus] = {}

    @property
    def name(self) -> str:
        return "console"

    async def connect(self) -> None:
        print("[CONSOLE] Transport adapter connected")

    async def disconnect(self) -> None:
        print("[CONSOLE] Transport adapter disconnected")

    async def push_vehicle_update(self, vehicle: VehicleSnapshot) -> None:
        """Print a snapshot if enough time has passed or the status changed."""
        now = time.monotonic()
        vid = vehicle.vehicle_id
        changed = self._last_status.get(vid) != vehicle.status
        last = self._last_print.get(vid)
        if not changed and last is not None and now - last < self._min_interval:
            return
        self._last_print[vid] = now
        self._last_status[vid] = vehicle.status

        pos = vehicle.position
        line = (
            f"[AMB {vid:>3}] "
            f"@ ({pos.x:7.1f}, {pos.y:7.1f}) "
            f"{vehicle.status.value:<10}"
        )
        if vehicle.assignment is not None:
            patient = vehicle.assignment.patient.name or "unknown"
            line += f" -> #{vehicle.assignment.emergency_id} {patient}"
        if vehicle.scene_timer is not None:
            line += f" ({max(vehicle.scene_timer, 0.0):.1f}s left)"
        print(line)

    async def push_event(self, event: dict) -> None:
        """Print operational event."""
        time_s = event.get("time")
        time_str = f"{time_s:7.1f}s" if isinstance(time_s, (int, float)) else "??"
        desc = event.get("description", "Unknown event")
        event_type = event.get("event_type", "EVENT")
        print(f"[{time_str}] {event_type}: {desc}")
