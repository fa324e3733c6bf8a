"""End-to-end dispatch behaviour across many ticks."""

import pytest

from ambulance_sim.core.emergency import PatientInfo
from ambulance_sim.core.geometry import Point
from ambulance_sim.dispatch.center import DispatchCenter, DispatchConfig
from ambulance_sim.dispatch.vehicle import VehicleStatus
from ambulance_sim.movement.grid_router import GridGeometry

GRID = GridGeometry(origin=Point(0, 0), cell_size=100, cells_x=4, cells_y=4)
DT = 0.05


def _center(bases, **kwargs) -> DispatchCenter:
    return DispatchCenter(DispatchConfig(home_bases=list(bases), grid=GRID, **kwargs))


def _check_invariants(center: DispatchCenter) -> None:
    pending_ids = {e.emergency_id for e in center.list_pending()}
    assigned = [v.assignment.emergency_id for v in center.list_vehicles() if v.assignment]
    assert len(assigned) == len(set(assigned))
    assert pending_ids.isdisjoint(assigned)
    for v in center.list_vehicles():
        if v.status == VehicleStatus.IDLE:
            assert v.route == ()
            assert v.assignment is None
        if v.status == VehicleStatus.ON_SCENE:
            assert v.scene_timer is not None
            assert v.scene_timer <= 4.0
        else:
            assert v.scene_timer is None


def _run_until(center, predicate, max_s=120.0):
    elapsed = 0.0
    while not predicate():
        center.tick(DT)
        _check_invariants(center)
        elapsed += DT
        if elapsed > max_s:
            pytest.fail("condition not reached in time")


class TestRoundTrip:
    def test_single_emergency_lifecycle(self):
        home = Point(0, -30)
        center = _center([home])
        events = []
        center.on_event(events.append)

        center.receive(PatientInfo(name="Ana"), Point(240, 190), 1)
        _run_until(center, lambda: center.handled_count == 1 and center.is_quiescent)

        types = [e["event_type"] for e in events]
        assert types == [
            "EMERGENCY_RECEIVED", "VEHICLE_DISPATCHED", "VEHICLE_ON_SCENE",
            "VEHICLE_RETURNING", "VEHICLE_AVAILABLE",
        ]
        on_scene = events[2]["time"]
        returning = events[3]["time"]
        assert returning - on_scene == pytest.approx(4.0, abs=DT + 1e-3)
        assert all(e.get("emergency_id", 1) == 1 for e in events)

        vehicle = center.list_vehicles()[0]
        assert vehicle.position == home
        assert vehicle.status == VehicleStatus.IDLE

    def test_arrives_near_emergency(self):
        center = _center([Point(0, -30)])
        target = Point(240, 190)
        center.receive(PatientInfo(), target, 2)
        _run_until(
            center, lambda: center.list_vehicles()[0].status == VehicleStatus.ON_SCENE,
        )
        vehicle = center.list_vehicles()[0]
        assert vehicle.position.distance_to(target) < 4.0
        assert vehicle.assignment.emergency_id == 1

    def test_travel_follows_roads(self):
        center = _center([Point(0, 0)])
        center.receive(PatientInfo(), Point(200, 200), 2)
        center.tick(DT)
        route = center.list_vehicles()[0].route
        assert route == (
            Point(0, 0), Point(100, 0), Point(200, 0),
            Point(200, 100), Point(200, 200), Point(200, 200),
        )
        _run_until(
            center, lambda: center.list_vehicles()[0].status == VehicleStatus.ON_SCENE,
        )


class TestBacklog:
    def test_priority_then_age(self):
        center = _center([Point(0, 0)])
        center.receive(PatientInfo(name="C"), Point(300, 300), 2)
        center.receive(PatientInfo(name="A"), Point(100, 100), 1)
        center.receive(PatientInfo(name="B"), Point(200, 200), 1)
        center.tick(DT)

        assert center.list_vehicles()[0].assignment.patient.name == "A"
        assert [e.patient.name for e in center.list_pending()] == ["B", "C"]

    def test_head_waits_then_matched_next_tick(self):
        center = _center([Point(0, 0)])
        center.receive(PatientInfo(name="A"), Point(100, 100), 1)
        center.receive(PatientInfo(name="B"), Point(200, 100), 1)
        center.tick(DT)

        vehicle = lambda: center.list_vehicles()[0]
        _run_until(center, lambda: vehicle().status == VehicleStatus.IDLE)
        assert [e.patient.name for e in center.list_pending()] == ["B"]
        assert center.handled_count == 1

        center.tick(DT)
        assert vehicle().status == VehicleStatus.EN_ROUTE
        assert vehicle().assignment.patient.name == "B"
        assert center.pending_count == 0

    def test_nearest_vehicle_wins(self):
        center = _center([Point(0, 0), Point(400, 400)])
        center.receive(PatientInfo(), Point(380, 390), 3)
        center.tick(DT)
        far, near = center.list_vehicles()
        assert far.status == VehicleStatus.IDLE
        assert near.status == VehicleStatus.EN_ROUTE

    def test_all_served_eventually(self):
        center = _center([Point(0, -30), Point(400, -30)])
        for i in range(6):
            center.receive(PatientInfo(name=str(i)), Point(50 + 60 * i, 350), 1 + i % 3)
        _run_until(center, lambda: center.is_quiescent, max_s=400.0)
        assert center.handled_count == 6


class TestMultipleCenters:
    def test_centers_are_independent(self):
        west = _center([Point(0, 0)], name="West")
        east = _center([Point(400, 0)], name="East", first_vehicle_id=2)

        assert west.receive(PatientInfo(), Point(100, 100), 1) == 1
        assert east.receive(PatientInfo(), Point(300, 300), 1) == 1
        assert east.receive(PatientInfo(), Point(300, 100), 2) == 2

        for _ in range(4000):
            west.tick(DT)
            east.tick(DT)
            if west.is_quiescent and east.is_quiescent:
                break

        assert west.handled_count == 1
        assert east.handled_count == 2
        assert [v.vehicle_id for v in east.list_vehicles()] == [2]
