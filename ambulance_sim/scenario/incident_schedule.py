"""
Timed emergency report processor.

Checks the scenario's report timeline each simulation tick. When a
report's time arrives it is submitted to its dispatch center. A report
the center refuses is logged and recorded as rejected; it never stops
the run.
"""

import logging

from ambulance_sim.dispatch.center import DispatchCenter
from ambulance_sim.dispatch.errors import IntakeRejected
from ambulance_sim.scenario.loader import EmergencyReport

logger = logging.getLogger(__name__)


class IncidentSchedule:
    """Feeds timed emergency reports into dispatch centers."""

    def __init__(
        self,
        reports: list[EmergencyReport],
        centers: dict[str, DispatchCenter],
    ) -> None:
        self._reports = sorted(reports, key=lambda r: r.time_offset)
        self._centers = centers
        self._fired: list[EmergencyReport] = []
        self._fired_set: set[int] = set()  # indices of fired reports
        self._rejected: list[tuple[EmergencyReport, str]] = []
        self._assigned_ids: dict[int, int] = {}  # report index -> emergency id

    def tick(self, elapsed_s: float) -> list[EmergencyReport]:
        """Submit reports whose time has arrived.
        Returns list of newly fired reports."""
        newly_fired = []

        for i, report in enumerate(self._reports):
            if i in self._fired_set:
                continue
            if report.time_offset > elapsed_s:
                break
            self._submit(i, report)
            self._fired.append(report)
            self._fired_set.add(i)
            newly_fired.append(report)

        return newly_fired

    def _submit(self, index: int, report: EmergencyReport) -> None:
        center = self._centers.get(report.center)
        if center is None:
            logger.warning(f"Report target center '{report.center}' not found")
            self._rejected.append((report, "unknown center"))
            return
        try:
            emergency_id = center.receive(report.patient, report.location, report.priority)
        except IntakeRejected as e:
            logger.warning(f"Report at +{report.time_offset:.0f}s rejected: {e}")
            self._rejected.append((report, str(e)))
            return
        self._assigned_ids[index] = emergency_id

    def reset(self) -> None:
        """Reset all fired reports so they can fire again."""
        self._fired.clear()
        self._fired_set.clear()
        self._rejected.clear()
        self._assigned_ids.clear()

    def get_fired(self) -> list[EmergencyReport]:
        """All reports that have fired so far."""
        return list(self._fired)

    def get_rejected(self) -> list[tuple[EmergencyReport, str]]:
        """Fired reports the target center refused, with the reason."""
        return list(self._rejected)

    def get_emergency_ids(self) -> list[int]:
        """Emergency ids assigned to accepted reports, in timeline order."""
        return [self._assigned_ids[i] for i in sorted(self._assigned_ids)]

    def get_upcoming(self, window_s: float | None = None) -> list[EmergencyReport]:
        """Reports not yet fired, optionally within window_s of the last fired one."""
        upcoming = [
            r for i, r in enumerate(self._reports) if i not in self._fired_set
        ]
        if window_s is not None and self._fired:
            last_time = self._fired[-1].time_offset
            upcoming = [r for r in upcoming if r.time_offset <= last_time + window_s]
        return upcoming

    @property
    def is_complete(self) -> bool:
        """True when all reports have fired."""
        return len(self._fired_set) == len(self._reports)

    @property
    def total_reports(self) -> int:
        return len(self._reports)
