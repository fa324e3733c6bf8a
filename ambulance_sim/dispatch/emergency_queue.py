"""
Emergency backlog ordered best-first.

Binary heap keyed on (priority, created_at, emergency_id): most urgent
first, then oldest, then earliest arrival. The id component makes the
ordering total, so equal stamps never reorder.
"""

import heapq

from ambulance_sim.core.emergency import Emergency
from ambulance_sim.dispatch.errors import CapacityExceeded


class EmergencyQueue:
    """Priority queue of emergencies awaiting a vehicle."""

    def __init__(self, capacity: int | None = None) -> None:
        if capacity is not None and capacity < 1:
            raise ValueError(f"Queue capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._heap: list[tuple[tuple[int, float, int], Emergency]] = []

    @property
    def capacity(self) -> int | None:
        return self._capacity

    @property
    def is_full(self) -> bool:
        return self._capacity is not None and len(self._heap) >= self._capacity

    def push(self, emergency: Emergency) -> None:
        """Add an emergency. Raises CapacityExceeded if the queue is full."""
        if self.is_full:
            raise CapacityExceeded(
                f"Queue full ({self._capacity} pending), "
                f"emergency {emergency.emergency_id} rejected",
                request=emergency.to_dict(),
            )
        heapq.heappush(self._heap, (emergency.sort_key, emergency))

    def pop_best(self) -> Emergency | None:
        """Remove and return the best-ranked emergency, or None if empty."""
        if not self._heap:
            return None
        return heapq.heappop(self._heap)[1]

    def peek_all(self) -> list[Emergency]:
        """All pending emergencies best-first, without modifying the queue."""
        return [e for _, e in sorted(self._heap)]

    def drain(self) -> list[Emergency]:
        """Remove every pending emergency, returned best-first."""
        drained = self.peek_all()
        self._heap.clear()
        return drained

    def restore(self, emergencies: list[Emergency]) -> None:
        """Re-insert previously admitted emergencies, bypassing capacity."""
        for emergency in emergencies:
            heapq.heappush(self._heap, (emergency.sort_key, emergency))

    def __len__(self) -> int:
        return len(self._heap)

    def __bool__(self) -> bool:
        return bool(self._heap)
