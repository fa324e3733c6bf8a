"""Tests for the DispatchCenter intake, matching and tick steps."""

import math

import pytest

from ambulance_sim.core.emergency import PatientInfo
from ambulance_sim.core.geometry import Point
from ambulance_sim.dispatch.center import DispatchCenter, DispatchConfig
from ambulance_sim.dispatch.errors import CapacityExceeded, IntakeRejected, InvalidEmergency
from ambulance_sim.dispatch.vehicle import VehicleStatus
from ambulance_sim.movement.grid_router import GridGeometry

GRID = GridGeometry(origin=Point(0, 0), cell_size=100, cells_x=4, cells_y=4)


def _make_center(bases=(Point(0, 0),), **kwargs) -> DispatchCenter:
    return DispatchCenter(DispatchConfig(home_bases=list(bases), grid=GRID, **kwargs))


def _patient(name="Patient"):
    return PatientInfo(name=name)


class TestReceive:
    def test_ids_are_sequential(self):
        center = _make_center()
        ids = [center.receive(_patient(), Point(50, 50), 3) for _ in range(3)]
        assert ids == [1, 2, 3]
        assert center.pending_count == 3

    def test_stamps_sim_time(self):
        center = _make_center(bases=[])
        center.tick(0.5)
        center.tick(0.25)
        center.receive(_patient(), Point(50, 50), 2)
        assert center.list_pending()[0].created_at == pytest.approx(0.75)

    def test_payload_copied(self):
        center = _make_center(bases=[])
        patient = PatientInfo(name="Ana", age=40, severity="High", site_id=3)
        center.receive(patient, Point(10, 20), 2)
        pending = center.list_pending()[0]
        assert pending.patient == patient
        assert pending.location == Point(10, 20)
        assert pending.priority == 2

    @pytest.mark.parametrize("priority", [1.5, "1", True, None])
    def test_invalid_priority(self, priority):
        center = _make_center()
        with pytest.raises(InvalidEmergency):
            center.receive(_patient(), Point(50, 50), priority)
        assert center.pending_count == 0

    def test_any_integer_priority_accepted(self):
        center = _make_center(bases=[])
        assert center.receive(_patient("zero"), Point(50, 50), 0) == 1
        assert center.receive(_patient("negative"), Point(50, 50), -1) == 2
        center.receive(_patient("normal"), Point(50, 50), 3)
        assert [e.patient.name for e in center.list_pending()] == [
            "negative", "zero", "normal",
        ]

    def test_non_finite_location(self):
        center = _make_center()
        with pytest.raises(InvalidEmergency, match="location"):
            center.receive(_patient(), Point(math.nan, 10), 1)

    def test_invalid_emergency_is_value_error(self):
        center = _make_center()
        with pytest.raises(ValueError):
            center.receive(_patient(), Point(math.inf, 0), 1)

    def test_rejection_consumes_no_id(self):
        center = _make_center()
        with pytest.raises(InvalidEmergency):
            center.receive(_patient(), Point(0, 0), "2")
        assert center.receive(_patient(), Point(0, 0), 1) == 1

    def test_capacity_exceeded(self):
        center = _make_center(bases=[], queue_capacity=1)
        center.receive(_patient("first"), Point(0, 0), 3)
        with pytest.raises(CapacityExceeded) as exc_info:
            center.receive(_patient("second"), Point(0, 0), 1)
        assert isinstance(exc_info.value, IntakeRejected)
        assert exc_info.value.request["patient"]["name"] == "second"
        assert [e.patient.name for e in center.list_pending()] == ["first"]


class TestDispatch:
    def test_nearest_vehicle_wins(self):
        center = _make_center(bases=[Point(0, 0), Point(400, 0)])
        center.receive(_patient(), Point(350, 50), 2)
        assert center.dispatch() == [(1, 2)]
        v1, v2 = center.list_vehicles()
        assert v1.status == VehicleStatus.IDLE
        assert v2.status == VehicleStatus.EN_ROUTE
        assert v2.assignment.emergency_id == 1
        assert v2.route[-1] == Point(350, 50)
        assert center.pending_count == 0

    def test_distance_tie_goes_to_lowest_id(self):
        center = _make_center(bases=[Point(0, 0), Point(200, 0)])
        center.receive(_patient(), Point(100, 0), 1)
        assert center.dispatch() == [(1, 1)]

    def test_claimed_vehicle_not_reused_in_pass(self):
        center = _make_center()
        center.receive(_patient(), Point(100, 100), 1)
        center.receive(_patient(), Point(120, 100), 1)
        assert center.dispatch() == [(1, 1)]
        assert [e.emergency_id for e in center.list_pending()] == [2]

    def test_most_urgent_matched_first(self):
        center = _make_center()
        center.receive(_patient("normal"), Point(10, 0), 3)
        center.receive(_patient("critical"), Point(400, 400), 1)
        assert center.dispatch() == [(2, 1)]

    def test_each_emergency_gets_its_own_vehicle(self):
        center = _make_center(bases=[Point(0, 0), Point(100, 0), Point(200, 0)])
        for x in (0, 100, 200):
            center.receive(_patient(), Point(x, 300), 2)
        matches = center.dispatch()
        assert len(matches) == 3
        assert len({vid for _, vid in matches}) == 3
        assert center.pending_count == 0

    def test_no_idle_vehicles_keeps_backlog(self):
        center = _make_center(bases=[])
        center.receive(_patient(), Point(0, 0), 2)
        center.receive(_patient(), Point(0, 0), 1)
        assert center.dispatch() == []
        assert [e.emergency_id for e in center.list_pending()] == [2, 1]

    def test_failing_listener_keeps_backlog(self):
        center = _make_center()
        for x in (100, 200, 300):
            center.receive(_patient(), Point(x, 100), 1)

        def listener(event):
            if event["event_type"] == "VEHICLE_DISPATCHED":
                raise RuntimeError("display crashed")

        center.on_event(listener)
        with pytest.raises(RuntimeError):
            center.dispatch()

        assigned = [v.assignment.emergency_id for v in center.list_vehicles() if v.assignment]
        pending = [e.emergency_id for e in center.list_pending()]
        assert assigned == [1]
        assert pending == [2, 3]

    def test_empty_queue(self):
        assert _make_center().dispatch() == []

    def test_first_vehicle_id(self):
        center = _make_center(bases=[Point(0, 0), Point(10, 0)], first_vehicle_id=5)
        assert [v.vehicle_id for v in center.list_vehicles()] == [5, 6]


class TestTick:
    def test_negative_dt_raises(self):
        with pytest.raises(ValueError):
            _make_center().tick(-0.1)

    def test_tick_dispatches(self):
        center = _make_center()
        center.receive(_patient(), Point(300, 300), 1)
        center.tick(0.1)
        assert center.list_vehicles()[0].status == VehicleStatus.EN_ROUTE
        assert center.sim_time == pytest.approx(0.1)

    def test_arrival_on_same_tick_as_dispatch(self):
        center = _make_center()
        center.receive(_patient(), Point(2, 0), 1)
        center.tick(0.1)
        vehicle = center.list_vehicles()[0]
        assert vehicle.status == VehicleStatus.ON_SCENE
        assert vehicle.scene_timer == 4.0

    def test_handled_count_on_return(self):
        center = _make_center()
        center.receive(_patient(), Point(2, 0), 1)
        center.tick(0.1)
        assert center.handled_count == 0
        center.tick(4.0)
        assert center.list_vehicles()[0].status == VehicleStatus.RETURNING
        assert center.handled_count == 1

    def test_quiescent(self):
        center = _make_center()
        assert center.is_quiescent
        center.receive(_patient(), Point(300, 300), 1)
        assert not center.is_quiescent


class TestEvents:
    def test_event_stream(self):
        center = _make_center()
        events = []
        center.on_event(events.append)
        center.receive(_patient("Ana"), Point(2, 0), 1)
        center.tick(0.1)
        center.tick(4.0)
        types = [e["event_type"] for e in events]
        assert types == [
            "EMERGENCY_RECEIVED",
            "VEHICLE_DISPATCHED",
            "VEHICLE_ON_SCENE",
            "VEHICLE_RETURNING",
        ]
        assert all(e["center"] == "Hospital" for e in events)
        assert events[1]["vehicle_id"] == 1
        assert events[3]["emergency_id"] == 1

    def test_rejection_event(self):
        center = _make_center(bases=[], queue_capacity=1)
        events = []
        center.on_event(events.append)
        center.receive(_patient(), Point(0, 0), 1)
        with pytest.raises(CapacityExceeded):
            center.receive(_patient(), Point(0, 0), 1)
        assert events[-1]["event_type"] == "EMERGENCY_REJECTED"
