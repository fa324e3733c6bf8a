"""
Main entry point for the ambulance dispatch simulator.

Loads a scenario, builds its dispatch centers, and runs the simulation
loop. Each tick: read the frame delta from the clock, submit due
emergency reports, tick every dispatch center (motion, dispatch, state
machines), then push snapshots and events through transport adapters.
"""

import asyncio
import logging
import signal

import click

from ambulance_sim.core.clock import SimulationClock
from ambulance_sim.dispatch.center import DispatchCenter
from ambulance_sim.scenario.incident_schedule import IncidentSchedule
from ambulance_sim.scenario.loader import ScenarioLoader, ScenarioState
from ambulance_sim.transport.base import AdapterSet
from ambulance_sim.transport.console_adapter import ConsoleAdapter

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "0.1.0"


async def simulation_loop(
    scenario_state: ScenarioState,
    centers: dict[str, DispatchCenter],
    schedule: IncidentSchedule,
    clock: SimulationClock,
    adapters: AdapterSet,
    tick_interval_s: float,
    stop_event: asyncio.Event,
    fixed_dt: float | None = None,
    max_seconds: float | None = None,
) -> int:
    """Core simulation loop. Runs until the scenario settles or user stops.

    With fixed_dt set, every tick advances exactly that many simulated
    seconds and the loop does not sleep; otherwise the clock supplies
    the frame delta in (scaled) real time. Returns the tick count.
    """
    pending_events: list[dict] = []
    for center in centers.values():
        center.on_event(pending_events.append)

    limit = max_seconds if max_seconds is not None else scenario_state.duration
    elapsed = 0.0
    tick_count = 0

    while not stop_event.is_set():
        if fixed_dt is None and not clock.is_running:
            await asyncio.sleep(0.1)
            continue

        dt = fixed_dt if fixed_dt is not None else clock.delta()
        elapsed += dt

        schedule.tick(elapsed)
        for center in centers.values():
            center.tick(dt)

        await adapters.publish(
            pending_events, [c.list_vehicles() for c in centers.values()],
        )
        pending_events.clear()

        tick_count += 1

        # Periodic status (every 30 ticks)
        if tick_count % 30 == 0:
            pending = sum(c.pending_count for c in centers.values())
            handled = sum(c.handled_count for c in centers.values())
            logger.info(
                f"Tick {tick_count} | Sim time: +{elapsed:.1f}s | "
                f"Pending: {pending} | Handled: {handled} | "
                f"Reports: {len(schedule.get_fired())}/{schedule.total_reports}"
            )

        if schedule.is_complete and all(c.is_quiescent for c in centers.values()):
            logger.info("Scenario complete — all reports served and fleet parked")
            break
        if elapsed >= limit:
            logger.info(f"Reached time limit ({limit:.0f}s)")
            break

        await asyncio.sleep(0 if fixed_dt is not None else tick_interval_s)

    return tick_count


async def run(
    scenario: str, speed: float, tick_rate: float, transport: str,
    fast: bool, max_seconds: float | None,
) -> None:
    """Run the simulator."""
    print(f"\nAmbulance Dispatch Simulator v{VERSION}")
    print("=" * 40)

    print(f"Loading scenario: {scenario}")
    state = ScenarioLoader().load(scenario)
    centers = state.build_centers()
    schedule = IncidentSchedule(state.reports, centers)
    vehicle_count = sum(len(c.list_vehicles()) for c in centers.values())
    print(f"Loaded {len(centers)} dispatch centers, {vehicle_count} ambulances")
    for center in centers.values():
        print(f"  {center.name} at ({center.location.x:g}, {center.location.y:g})")
    print(f"Loaded {schedule.total_reports} emergency reports over "
          f"{state.duration:.0f} seconds")

    adapters = AdapterSet()
    if transport == "console":
        adapters.register(ConsoleAdapter(min_interval=2.0))
        print("Console output enabled")

    await adapters.connect_all()

    clock = SimulationClock(speed=speed)
    clock.start()
    mode = "fixed-step" if fast else f"real time, {speed}x"
    print(f"\nSimulation starting ({mode})")
    print("Press Ctrl+C to stop\n")

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    tick_interval = 1.0 / tick_rate
    ticks = await simulation_loop(
        scenario_state=state,
        centers=centers,
        schedule=schedule,
        clock=clock,
        adapters=adapters,
        tick_interval_s=tick_interval,
        stop_event=stop,
        fixed_dt=tick_interval if fast else None,
        max_seconds=max_seconds,
    )

    print("\nShutting down...")
    clock.pause()

    print(f"Ticks run: {ticks}")
    print(f"Reports submitted: {len(schedule.get_fired())}/{schedule.total_reports} "
          f"({len(schedule.get_rejected())} rejected)")
    for center in centers.values():
        print(f"{center.name}: {center.handled_count} handled, "
              f"{center.pending_count} still pending")

    await adapters.disconnect_all()
    print("Simulator stopped")


@click.command()
@click.option("--scenario", "-s", required=True, help="Path to scenario YAML file")
@click.option("--speed", default=1.0, help="Simulation speed multiplier (real-time mode)")
@click.option("--tick-rate", default=60.0, help="Ticks per second")
@click.option("--transport", type=click.Choice(["console", "none"]), default="console",
              help="Where to send fleet updates")
@click.option("--fast/--realtime", default=False,
              help="Fixed-step run as fast as possible instead of real time")
@click.option("--max-seconds", type=float, default=None,
              help="Stop after this many simulated seconds (default: scenario duration)")
def main(scenario: str, speed: float, tick_rate: float, transport: str,
         fast: bool, max_seconds: float | None) -> None:
    """Ambulance dispatch simulator, headless tick loop."""
    asyncio.run(run(scenario, speed, tick_rate, transport, fast, max_seconds))


if __name__ == "__main__":
    main()
