"""
Validate a scenario YAML file.

Usage: python scripts/validate_scenario.py config/scenarios/my_scenario.yaml

Checks YAML syntax, required fields, grid geometry, dispatch centers,
site references, severities, and report chronology, then does a trial
load to make sure the scenario builds.
"""

import sys
from pathlib import Path

from ambulance_sim.scenario.loader import ScenarioLoader


def validate(scenario_path: str) -> bool:
    """Validate scenario and print results. Returns True if valid."""
    print(f"Validating: {scenario_path}\n")

    path = Path(scenario_path)
    if not path.exists():
        print(f"  ✗ File not found: {scenario_path}")
        print(f"\nFAIL — File not found")
        return False

    loader = ScenarioLoader()
    errors = loader.validate(scenario_path)
    if errors:
        for err in errors:
            print(f"  ✗ {err}")
        print(f"\nFAIL — {len(errors)} error(s) found")
        return False

    print("  ✓ YAML syntax valid")
    print("  ✓ Required fields present (name, grid, dispatch_centers)")

    try:
        state = loader.load(scenario_path)
    except (KeyError, TypeError, ValueError) as e:
        print(f"  ✗ Scenario failed to build: {e}")
        print(f"\nFAIL — 1 error found")
        return False

    grid = state.grid
    print(f"  ✓ Grid {grid.cells_x}x{grid.cells_y} cells of {grid.cell_size:g} units "
          f"({grid.width:g} x {grid.height:g}), {len(state.sites)} sites")
    vehicles = sum(len(c.home_bases) for c in state.centers.values())
    print(f"  ✓ {len(state.centers)} dispatch centers, {vehicles} ambulances")
    print(f"  ✓ {len(state.reports)} emergency reports in chronological order")

    late = [r for r in state.reports if r.time_offset > state.duration]
    if late:
        print(f"  ⚠ {len(late)} report(s) scheduled after the "
              f"{state.duration:.0f}s scenario duration")

    print(f"\nPASS — Scenario is valid")
    return True


def main():
    if len(sys.argv) < 2:
        print("Usage: python scripts/validate_scenario.py <scenario.yaml>")
        sys.exit(1)

    valid = validate(sys.argv[1])
    sys.exit(0 if valid else 1)


if __name__ == "__main__":
    main()
