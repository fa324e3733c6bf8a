"""
YAML scenario file parser.

Reads a scenario YAML file describing the road grid, the building sites,
one or more dispatch centers with their parking spots, and a timeline of
emergency reports. Returns a ScenarioState holding ready-to-use
DispatchConfig objects and the report timeline.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any

import yaml

from ambulance_sim.core.emergency import PatientInfo, Severity
from ambulance_sim.core.geometry import Point
from ambulance_sim.dispatch.center import DispatchCenter, DispatchConfig
from ambulance_sim.dispatch.vehicle import VehicleProfile
from ambulance_sim.movement.grid_router import GridGeometry
from ambulance_sim.scenario.sites import Site, build_sites, find_site, site_at

logger = logging.getLogger(__name__)

DEFAULT_DURATION_S = 120.0

# dispatch_centers[] keys -> VehicleProfile fields
_PROFILE_KEYS = {
    "vehicle_speed": "speed",
    "service_duration_s": "service_duration_s",
    "arrival_threshold": "arrival_threshold",
    "snap_threshold": "snap_threshold",
    "return_speed_factor": "return_speed_factor",
    "idle_drift_factor": "idle_drift_factor",
}


def _parse_time_offset(value: Any) -> float:
    """Parse seconds, 'MM:SS' or 'HH:MM:SS' to seconds."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if value < 0:
            raise ValueError(f"Negative time offset: {value}")
        return float(value)
    parts = str(value).split(":")
    try:
        numbers = [int(p) for p in parts]
    except ValueError:
        raise ValueError(f"Invalid time format: {value}") from None
    if len(numbers) == 2:
        return float(numbers[0] * 60 + numbers[1])
    elif len(numbers) == 3:
        return float(numbers[0] * 3600 + numbers[1] * 60 + numbers[2])
    raise ValueError(f"Invalid time format: {value}")


def _parse_point(d: Any, what: str) -> Point:
    if not isinstance(d, dict) or "x" not in d or "y" not in d:
        raise ValueError(f"{what} must be a mapping with x and y")
    point = Point.from_dict(d)
    if not point.is_finite():
        raise ValueError(f"{what} has non-finite coordinates")
    return point


def _parse_priority(entry: dict) -> tuple[int, str]:
    """Priority class and severity label from a report entry."""
    if "severity" in entry:
        severity = Severity(entry["severity"])
        return severity.priority, severity.value
    priority = int(entry.get("priority", Severity.NORMAL.priority))
    return priority, Severity.from_priority(priority).value


@dataclass
class EmergencyReport:
    """A timed emergency report in the scenario timeline."""
    time_offset: float
    center: str
    priority: int
    location: Point
    patient: PatientInfo = field(default_factory=PatientInfo)

    def to_dict(self) -> dict[str, Any]:
        return {
            "time_offset_s": self.time_offset,
            "center": self.center,
            "priority": self.priority,
            "location": self.location.to_dict(),
            "patient": self.patient.to_dict(),
        }


@dataclass
class ScenarioState:
    """Complete parsed scenario ready for simulation."""
    name: str
    description: str
    duration: float
    grid: GridGeometry
    sites: dict[int, Site]
    centers: dict[str, DispatchConfig]
    reports: list[EmergencyReport]

    def build_centers(self) -> dict[str, DispatchCenter]:
        """Fresh dispatch centers, one per configured center."""
        return {name: DispatchCenter(cfg) for name, cfg in self.centers.items()}


class ScenarioLoader:
    """Loads and parses scenario YAML files."""

    def load(self, scenario_path: str) -> ScenarioState:
        """Parse YAML file and return complete ScenarioState."""
        with open(scenario_path) as f:
            raw = yaml.safe_load(f)
        return self.parse(raw)

    def parse(self, raw: dict) -> ScenarioState:
        """Build a ScenarioState from an already-parsed YAML document."""
        scenario = raw["scenario"]
        name = scenario["name"]
        grid = self._parse_grid(scenario["grid"])
        sites = self._parse_sites(scenario.get("sites", {}), grid)

        centers: dict[str, DispatchConfig] = {}
        next_vehicle_id = 1
        for entry in scenario.get("dispatch_centers", []):
            cfg = self._parse_center(entry, grid, next_vehicle_id)
            if cfg.name in centers:
                raise ValueError(f"Duplicate dispatch center: {cfg.name}")
            centers[cfg.name] = cfg
            next_vehicle_id += len(cfg.home_bases)
        if not centers:
            raise ValueError("Scenario defines no dispatch_centers")

        default_center = next(iter(centers))
        reports = [
            self._parse_report(entry, sites, default_center)
            for entry in scenario.get("emergencies", [])
        ]
        for report in reports:
            if report.center not in centers:
                raise KeyError(f"Dispatch center '{report.center}' not found")
        reports.sort(key=lambda r: r.time_offset)

        logger.info(
            f"Loaded scenario '{name}': {len(centers)} centers, "
            f"{sum(len(c.home_bases) for c in centers.values())} vehicles, "
            f"{len(reports)} emergencies"
        )

        return ScenarioState(
            name=name,
            description=scenario.get("description", ""),
            duration=float(scenario.get("duration_seconds", DEFAULT_DURATION_S)),
            grid=grid,
            sites=sites,
            centers=centers,
            reports=reports,
        )

    def _parse_grid(self, d: dict) -> GridGeometry:
        return GridGeometry(
            origin=_parse_point(d.get("origin", {"x": 0, "y": 0}), "grid origin"),
            cell_size=float(d["cell_size"]),
            cells_x=int(d["cells_x"]),
            cells_y=int(d["cells_y"]),
        )

    def _parse_sites(self, d: dict, grid: GridGeometry) -> dict[int, Site]:
        return build_sites(
            grid,
            lots_x=int(d.get("lots_x", 3)),
            lots_y=int(d.get("lots_y", 2)),
            road_width=float(d.get("road_width", 44.0)),
            padding=float(d.get("padding", 8.0)),
        )

    def _parse_center(
        self, entry: dict, grid: GridGeometry, first_vehicle_id: int,
    ) -> DispatchConfig:
        name = entry["name"]
        parking = [
            _parse_point(p, f"{name} parking spot {i}")
            for i, p in enumerate(entry.get("parking", []))
        ]
        if not parking:
            raise ValueError(f"Dispatch center '{name}' has no parking spots")

        overrides = {
            field_name: float(entry[key])
            for key, field_name in _PROFILE_KEYS.items()
            if key in entry
        }
        capacity = entry.get("queue_capacity")
        return DispatchConfig(
            name=name,
            location=_parse_point(entry.get("location", parking[0].to_dict()),
                                  f"{name} location"),
            home_bases=parking,
            grid=grid,
            profile=VehicleProfile(**overrides),
            queue_capacity=int(capacity) if capacity is not None else None,
            first_vehicle_id=first_vehicle_id,
        )

    def _parse_report(
        self, entry: dict, sites: dict[int, Site], default_center: str,
    ) -> EmergencyReport:
        priority, severity = _parse_priority(entry)
        site_id = entry.get("site")
        if site_id is not None:
            location = find_site(sites, int(site_id)).curb
        else:
            location = _parse_point(entry.get("location"), "emergency location")
            found = site_at(sites, location)
            site_id = found.site_id if found else None

        patient = entry.get("patient", {})
        return EmergencyReport(
            time_offset=_parse_time_offset(entry.get("time", 0)),
            center=entry.get("center", default_center),
            priority=priority,
            location=location,
            patient=PatientInfo(
                name=patient.get("name", ""),
                age=patient.get("age"),
                severity=severity,
                description=patient.get("description", ""),
                site_id=int(site_id) if site_id is not None else None,
            ),
        )

    def validate(self, scenario_path: str) -> list[str]:
        """Validate a scenario file. Returns list of error messages (empty = valid)."""
        errors = []
        try:
            with open(scenario_path) as f:
                raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            return [f"YAML syntax error: {e}"]
        except FileNotFoundError:
            return [f"File not found: {scenario_path}"]

        if not isinstance(raw, dict) or "scenario" not in raw:
            return ["Missing top-level 'scenario' key"]

        scenario = raw["scenario"]

        # Required fields
        for field_name in ["name", "grid", "dispatch_centers"]:
            if field_name not in scenario:
                errors.append(f"Missing required field: {field_name}")

        grid = None
        if "grid" in scenario:
            try:
                grid = self._parse_grid(scenario["grid"])
            except (KeyError, TypeError, ValueError) as e:
                errors.append(f"Invalid grid: {e}")

        sites: dict[int, Site] = {}
        if grid is not None:
            try:
                sites = self._parse_sites(scenario.get("sites", {}), grid)
            except ValueError as e:
                errors.append(f"Invalid sites: {e}")

        # Dispatch centers
        center_names = set()
        for i, entry in enumerate(scenario.get("dispatch_centers") or []):
            cname = entry.get("name")
            if not cname:
                errors.append(f"Dispatch center {i} missing 'name'")
                continue
            if cname in center_names:
                errors.append(f"Duplicate dispatch center: {cname}")
            center_names.add(cname)
            if not entry.get("parking"):
                errors.append(f"Dispatch center '{cname}' has no parking spots")
            for j, p in enumerate(entry.get("parking") or []):
                try:
                    _parse_point(p, f"parking spot {j}")
                except (TypeError, ValueError) as e:
                    errors.append(f"Dispatch center '{cname}': {e}")
            capacity = entry.get("queue_capacity")
            if capacity is not None and (not isinstance(capacity, int) or capacity < 1):
                errors.append(f"Dispatch center '{cname}': queue_capacity must be >= 1")
            for key in _PROFILE_KEYS:
                value = entry.get(key)
                if value is not None and (
                    not isinstance(value, (int, float)) or not math.isfinite(value)
                    or value < 0
                ):
                    errors.append(f"Dispatch center '{cname}': invalid {key} {value!r}")

        # Emergencies
        prev_time = 0.0
        for i, entry in enumerate(scenario.get("emergencies") or []):
            label = f"Emergency {i}"
            try:
                t = _parse_time_offset(entry.get("time", 0))
            except ValueError as e:
                errors.append(f"{label}: {e}")
                continue
            if t < prev_time:
                errors.append(f"{label} at {entry.get('time')} is out of chronological order")
            prev_time = t

            center = entry.get("center")
            if center is not None and center not in center_names:
                errors.append(f"{label} references unknown dispatch center '{center}'")

            raw_priority = entry.get("priority")
            if "severity" not in entry and raw_priority is not None and (
                isinstance(raw_priority, bool) or not isinstance(raw_priority, int)
            ):
                errors.append(f"{label}: priority must be an integer, got {raw_priority!r}")
            severities = [s.value for s in Severity]
            if "severity" in entry and entry["severity"] not in severities:
                errors.append(
                    f"{label}: unknown severity '{entry.get('severity')}' "
                    f"(expected one of {severities})"
                )

            if entry.get("site") is not None:
                site = entry["site"]
                if not isinstance(site, int) or (sites and site not in sites):
                    errors.append(f"{label}: site {site} not found")
            else:
                try:
                    _parse_point(entry.get("location"), "location")
                except (TypeError, ValueError):
                    errors.append(f"{label}: needs a 'site' or a 'location' with x and y")

        return errors
