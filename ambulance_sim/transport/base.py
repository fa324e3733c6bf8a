"""
Display-side output for the run loop.

The loop hands each tick's dispatch events and fleet snapshots to an
AdapterSet, which forwards them to every registered TransportAdapter.
A failing adapter is logged and skipped; it never stops the simulation.
"""

import logging
from abc import ABC, abstractmethod

from ambulance_sim.dispatch.vehicle import VehicleSnapshot

logger = logging.getLogger(__name__)


class TransportAdapter(ABC):
    """One output channel for vehicle snapshots and dispatch events."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    async def connect(self) -> None:
        """Open the channel. No-op unless the adapter needs setup."""

    async def disconnect(self) -> None:
        """Close the channel."""

    @abstractmethod
    async def push_vehicle_update(self, vehicle: VehicleSnapshot) -> None:
        ...

    @abstractmethod
    async def push_event(self, event: dict) -> None:
        ...

    async def push_bulk_update(self, vehicles: list[VehicleSnapshot]) -> None:
        """Fleet snapshot for one center, sent vehicle by vehicle by default."""
        for vehicle in vehicles:
            await self.push_vehicle_update(vehicle)


class AdapterSet:
    """Fans a tick's output out to every registered adapter."""

    def __init__(self, adapters: list[TransportAdapter] | None = None) -> None:
        self._adapters: list[TransportAdapter] = list(adapters or [])

    def register(self, adapter: TransportAdapter) -> None:
        self._adapters.append(adapter)
        logger.info(f"Registered transport: {adapter.name}")

    async def connect_all(self) -> None:
        for adapter in self._adapters:
            try:
                await adapter.connect()
            except Exception as e:
                logger.warning(f"Transport {adapter.name} connect failed: {e}")

    async def disconnect_all(self) -> None:
        for adapter in self._adapters:
            try:
                await adapter.disconnect()
            except Exception as e:
                logger.warning(f"Transport {adapter.name} disconnect failed: {e}")

    async def publish(
        self, events: list[dict], fleets: list[list[VehicleSnapshot]],
    ) -> None:
        """Send this tick's events, then one bulk update per center fleet."""
        for adapter in self._adapters:
            try:
                for event in events:
                    await adapter.push_event(event)
                for snapshots in fleets:
                    await adapter.push_bulk_update(snapshots)
            except Exception as e:
                logger.warning(f"Transport {adapter.name} publish failed: {e}")

    @property
    def names(self) -> list[str]:
        return [a.name for a in self._adapters]

    def __len__(self) -> int:
        return len(self._adapters)
