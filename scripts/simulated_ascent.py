#!/usr/bin/env python
"""Example: Ascent and circularization against the simulated vehicle.

This script flies the full liftoff command end to end:
1. Gravity-turn ascent to the target apoapsis
2. Handoff to the maneuver planner (circularize at apoapsis)
3. Node execution: orient, warp, burn, cleanup

Time is logical: every scheduler wait steps the simulated vehicle and
returns immediately, so the whole flight runs in a few seconds.

Usage:
    uv run python scripts/simulated_ascent.py
"""

import logging

from autopilot import FlightRecorder, LoggingStatus, Mission, MultiStatus, Scheduler, SimulatedClock
from autopilot.vehicle import SimStage, SimulatedVehicle


def run_ascent():
    """Fly the liftoff command and print the final orbit."""
    print("=" * 60)
    print("SIMULATED ASCENT")
    print("=" * 60)

    # =========================================================================
    # Vehicle Setup
    # =========================================================================
    stages = [
        SimStage(dry_mass=2_000.0, fuel_mass=14_000.0, thrust=420_000.0, isp=290.0),
        SimStage(dry_mass=800.0, fuel_mass=4_000.0, thrust=60_000.0, isp=340.0),
    ]
    vehicle = SimulatedVehicle.on_launch_pad(stages=stages, fairing_count=2)
    body = vehicle.body

    print("\nVehicle:")
    print(f"  Liftoff mass: {vehicle.mass:.0f} kg")
    for i, stage in enumerate(stages):
        print(f"  Stage {i + 1}: {stage.thrust / 1000:.0f} kN, Isp {stage.isp:.0f} s, "
              f"{stage.fuel_mass:.0f} kg propellant")

    # =========================================================================
    # Run
    # =========================================================================
    clock = SimulatedClock()
    clock.add_listener(vehicle.advance)
    recorder = FlightRecorder(clock=clock.now)
    commands = {
        "apoapsis": "80000",
        "heading": "90",
        "roll": "90",
        "curve": "circular",
        "decouple": "true",
        "deploy": "true",
    }
    mission = Mission.from_commands(
        vehicle, commands, Scheduler(clock), MultiStatus([LoggingStatus(), recorder]),
    )
    outcome = mission.run()

    # =========================================================================
    # Results
    # =========================================================================
    print("\nResult:")
    if outcome.is_err:
        print(f"  {outcome.kind.value}: {outcome.message}")
        return

    report = outcome.value
    orbit = vehicle.orbit()
    print(f"  Mission time: {clock.now():.1f} s")
    print(f"  Stages separated: {len(vehicle.staging_events)}")
    print(f"  Circularization: {report.delta_v:.1f} m/s over {report.burn_time:.1f} s "
          f"(residual {report.remaining:.2f} m/s)")
    print(f"  Apoapsis:  {(orbit.apoapsis - body.radius) / 1000:.1f} km")
    print(f"  Periapsis: {(orbit.periapsis - body.radius) / 1000:.1f} km")
    print(f"  Eccentricity: {orbit.eccentricity:.4f}")

    df = recorder.to_dataframe()
    statuses = df.filter(df["kind"] == "status")
    print(f"\nStatus log ({statuses.height} messages, last 10):")
    for row in statuses.tail(10).iter_rows(named=True):
        print(f"  T+{row['time']:7.1f}  {row['message']}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    run_ascent()
