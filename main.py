#!/usr/bin/env python3
"""
═══════════════════════════════════════════════════════════════════════════════
  EXTERIOR BALLISTICS ENGINE — Main Runner
═══════════════════════════════════════════════════════════════════════════════

  Executes the demonstration pipeline:
    1. Atmosphere check
    2. G1 / G7 drag curves
    3. Zeroing a .308 Win 175 gr load at 100 m
    4. 1000 m trajectory
    5. Spin drift (right twist vs left twist vs no spin)
    6. Turbulent wind preset trajectory

  All outputs saved to outputs/ directory.

  Usage:
    python main.py              # Run everything
    python main.py --quick      # Skip the turbulent wind phase (faster)
═══════════════════════════════════════════════════════════════════════════════
"""

import logging
import os
import sys
import time

import numpy as np

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from exterior_ballistics.atmosphere import Atmosphere
from exterior_ballistics.bullet import Bullet
from exterior_ballistics.drag_model import DragFunction, retardation
from exterior_ballistics.random_source import RandomSource
from exterior_ballistics.simulator import Simulator
from exterior_ballistics.units import grains_to_kg, inches_to_meters, mps_to_fps
from exterior_ballistics.wind import create_wind_preset
from exterior_ballistics.visualization import (
    plot_trajectory, plot_drag_curves, plot_wind_field, plot_zero_convergence,
    ensure_output_dir,
)

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt


MUZZLE_VELOCITY = 792.0                       # m/s (2600 ft/s)
TWIST = inches_to_meters(10.0)                # 1:10" right-hand
ZERO_TARGET = (0.0, 0.0, -100.0)              # 100 m zero
LONG_RANGE = 1000.0                           # m


def banner():
    print("""
╔═══════════════════════════════════════════════════════════════════════╗
║                                                                       ║
║     EXTERIOR BALLISTICS ENGINE                                        ║
║     ─────────────────────────────────────────────────────             ║
║     Gravity · G1/G7 Drag · Spin Drift · Crosswind Jump                ║
║     Curl-noise turbulent wind │ RK2 integration │ Zeroing solver      ║
║                                                                       ║
╚═══════════════════════════════════════════════════════════════════════╝
""")


def section(title):
    print(f"\n{'─'*60}")
    print(f"  {title}")
    print(f"{'─'*60}")


def reference_bullet() -> Bullet:
    """.308 Win, 175 gr Sierra MatchKing."""
    return Bullet(
        weight=grains_to_kg(175.0),
        diameter=inches_to_meters(0.308),
        length=inches_to_meters(1.240),
        bc=0.243,
        drag_function=DragFunction.G7,
        name=".308 175gr SMK",
    )


def zeroed_simulator(bullet, atmosphere, spin_rate):
    sim = Simulator(bullet, atmosphere)
    result = sim.compute_zero(MUZZLE_VELOCITY, ZERO_TARGET, spin_rate=spin_rate)
    return sim, result


def main():
    start_time = time.time()
    quick = '--quick' in sys.argv
    logging.basicConfig(level=logging.INFO,
                        format='%(asctime)s %(levelname)-8s %(name)s: %(message)s')

    banner()
    out = ensure_output_dir('outputs')
    atmosphere = Atmosphere.standard()
    bullet = reference_bullet()
    spin_rate = Bullet.spin_rate_from_twist(MUZZLE_VELOCITY, TWIST)

    # ══════════════════════════════════════════════════════════════════════
    #  PHASE 1: Atmosphere
    # ══════════════════════════════════════════════════════════════════════
    section("PHASE 1: Atmosphere")
    print(f"  {'Alt (m)':>8} {'T (K)':>8} {'P (Pa)':>10} {'ρ (kg/m³)':>11} {'a (m/s)':>8}")
    for h in [0, 500, 1000, 2000, 3000]:
        atm = Atmosphere.at_altitude(h)
        print(f"  {h:>8} {atm.temperature:>8.2f} {atm.pressure:>10.0f} "
              f"{atm.air_density():>11.5f} {atm.speed_of_sound():>8.1f}")

    # ══════════════════════════════════════════════════════════════════════
    #  PHASE 2: Drag Curves
    # ══════════════════════════════════════════════════════════════════════
    section("PHASE 2: G1 / G7 Drag Curves")
    fig_drag = plot_drag_curves(save_path=f'{out}/01_drag_curves.png')
    plt.close(fig_drag)
    print(f"  ✓ Saved: {out}/01_drag_curves.png")

    for v in [300.0, 600.0, 900.0]:
        g1 = retardation(v, DragFunction.G1, 1.0, 1.0)
        g7 = retardation(v, DragFunction.G7, 1.0, 1.0)
        print(f"  v = {v:>5.0f} m/s ({mps_to_fps(v):>6.0f} ft/s)   "
              f"G1 {g1:>8.2f} m/s²   G7 {g7:>8.2f} m/s²   (BC = 1)")

    # ══════════════════════════════════════════════════════════════════════
    #  PHASE 3: Zeroing
    # ══════════════════════════════════════════════════════════════════════
    section("PHASE 3: Zero at 100 m")
    print(f"  Bullet: {bullet.name}  ({bullet.drag_function.value} BC {bullet.bc})")
    print(f"  Muzzle velocity: {MUZZLE_VELOCITY:.0f} m/s   Spin: {spin_rate:.0f} rad/s")

    sim, zero = zeroed_simulator(bullet, atmosphere, spin_rate)
    print(f"  Converged: {zero.converged} in {zero.iterations} iteration(s)  "
          f"(miss {zero.error * 1000:.3f} mm)")
    print(f"  Elevation: {np.degrees(zero.elevation_angle) * 60:>8.3f} MOA")
    print(f"  Azimuth:   {np.degrees(zero.azimuth_angle) * 60:>8.3f} MOA")

    fig_zero = plot_zero_convergence(zero, save_path=f'{out}/02_zero_convergence.png')
    plt.close(fig_zero)
    print(f"\n  ✓ Saved: {out}/02_zero_convergence.png")

    # ══════════════════════════════════════════════════════════════════════
    #  PHASE 4: Long-Range Trajectory
    # ══════════════════════════════════════════════════════════════════════
    section(f"PHASE 4: {LONG_RANGE:.0f} m Trajectory")
    trajectory = sim.simulate(LONG_RANGE)
    print(trajectory.summary())

    print(f"\n  {'Range (m)':>10} {'Drop (cm)':>10} {'Drift (cm)':>11} {'v (m/s)':>9} {'ToF (s)':>8}")
    for d in range(100, int(LONG_RANGE) + 1, 100):
        point = trajectory.at_distance(float(d))
        print(f"  {d:>10d} {point.state.height * 100:>10.1f} "
              f"{point.state.crossrange * 100:>11.1f} {point.speed:>9.1f} {point.time:>8.3f}")

    # ══════════════════════════════════════════════════════════════════════
    #  PHASE 5: Spin Drift
    # ══════════════════════════════════════════════════════════════════════
    section("PHASE 5: Spin Drift")
    spin_cases = [
        ("Right twist", spin_rate),
        ("Left twist", -spin_rate),
        ("No spin", 0.0),
    ]
    spin_trajectories = {}
    for label, spin in spin_cases:
        s, _ = zeroed_simulator(bullet, atmosphere, spin)
        traj = s.simulate(LONG_RANGE)
        spin_trajectories[label] = traj
        end = traj.at_distance(LONG_RANGE)
        print(f"  {label:<15s}  Drift @ {LONG_RANGE:.0f} m: {end.state.crossrange * 100:>+8.1f} cm")

    fig_spin = plot_trajectory(spin_trajectories, save_path=f'{out}/03_spin_drift.png')
    plt.close(fig_spin)
    print(f"\n  ✓ Saved: {out}/03_spin_drift.png")

    # ══════════════════════════════════════════════════════════════════════
    #  PHASE 6: Turbulent Wind
    # ══════════════════════════════════════════════════════════════════════
    if not quick:
        section("PHASE 6: Turbulent Wind ('Moderate' preset)")
        field = create_wind_preset('Moderate', rng=RandomSource(2026))
        field.advance_time(0.5)

        still_drift = trajectory.at_distance(LONG_RANGE).state.crossrange
        sim.reset_to_initial()
        gusty = sim.simulate(LONG_RANGE, wind_field=field)
        end = gusty.at_distance(LONG_RANGE)
        print(f"  Drift @ {LONG_RANGE:.0f} m: {end.state.crossrange * 100:>+8.1f} cm "
              f"(still air: {still_drift * 100:+.1f} cm)")
        print(f"  Wind at muzzle: {np.linalg.norm(gusty[0].wind):.2f} m/s   "
              f"at target: {np.linalg.norm(end.wind):.2f} m/s")

        fig_field = plot_wind_field(field, save_path=f'{out}/04_wind_field.png')
        plt.close(fig_field)
        print(f"  ✓ Saved: {out}/04_wind_field.png")
    else:
        section("PHASE 6: Turbulent wind SKIPPED (--quick mode)")

    # ══════════════════════════════════════════════════════════════════════
    #  SUMMARY
    # ══════════════════════════════════════════════════════════════════════
    elapsed = time.time() - start_time
    section("COMPLETE")
    print(f"""
  All outputs saved to: {os.path.abspath(out)}/

  Generated files:
    01_drag_curves.png        — G1 / G7 retardation vs speed
    02_zero_convergence.png   — Zeroing solver iterations
    03_spin_drift.png         — Drop / drift / speed for three twist cases
    {'04_wind_field.png        — Turbulent wind map' if not quick else '(wind phase skipped)'}

  Total runtime: {elapsed:.1f} seconds
""")


if __name__ == "__main__":
    main()
