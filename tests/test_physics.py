"""
Unit Tests for the Exterior Ballistics Engine
=============================================
Tests drag, atmosphere, bullet, trajectory and simulator modules.
Run: python -m pytest tests/ -v
"""

import sys
import os
import logging
import numpy as np
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from exterior_ballistics.atmosphere import Atmosphere, GRAVITY
from exterior_ballistics.bullet import Bullet, BulletState
from exterior_ballistics.drag_model import (
    DragFunction, DragModel, DragTableEntry,
    G1_DRAG_TABLE, G7_DRAG_TABLE, get_drag_model, retardation,
)
from exterior_ballistics.random_source import RandomSource
from exterior_ballistics.simulator import Simulator, launch_velocity
from exterior_ballistics.trajectory import Trajectory
from exterior_ballistics.wind import create_wind_preset
from exterior_ballistics.units import (
    fps_to_mps, mps_to_fps, grains_to_kg, inches_to_meters, yards_to_meters,
)


def make_bullet(bc=0.300, drag_function=DragFunction.G7):
    """.308 175 gr match bullet."""
    return Bullet(
        weight=grains_to_kg(175.0),
        diameter=inches_to_meters(0.308),
        length=inches_to_meters(1.240),
        bc=bc,
        drag_function=drag_function,
        name="test .308",
    )


RIGHT_TWIST_SPIN = Bullet.spin_rate_from_twist(800.0, inches_to_meters(10.0))


class TestUnits:

    def test_fps_round_trip(self):
        assert abs(fps_to_mps(mps_to_fps(800.0)) - 800.0) < 0.01

    def test_yards(self):
        assert abs(yards_to_meters(1000.0) - 914.4) < 1e-9


class TestAtmosphere:
    """Verify density and speed of sound against standard values."""

    def test_dry_sea_level_density(self):
        atm = Atmosphere(humidity=0.0)
        assert abs(atm.air_density() - 1.225) < 0.001

    def test_humid_air_is_lighter(self):
        dry = Atmosphere(humidity=0.0)
        humid = Atmosphere(humidity=1.0)
        assert humid.air_density() < dry.air_density()

    def test_speed_of_sound_sea_level(self):
        """Speed of sound at sea level ~340.3 m/s."""
        assert abs(Atmosphere.standard().speed_of_sound() - 340.3) < 1.0

    def test_density_decreases_with_altitude(self):
        rho_0 = Atmosphere.at_altitude(0).air_density()
        rho_1 = Atmosphere.at_altitude(1000).air_density()
        rho_3 = Atmosphere.at_altitude(3000).air_density()
        assert rho_0 > rho_1 > rho_3

    def test_explicit_pressure_is_used(self):
        atm = Atmosphere(pressure=90000.0)
        assert atm.pressure == 90000.0
        assert atm.air_density() < Atmosphere.standard().air_density()

    def test_humidity_out_of_range(self):
        with pytest.raises(ValueError):
            Atmosphere(humidity=1.5)
        with pytest.raises(ValueError):
            Atmosphere(humidity=-0.1)


class TestDragModel:
    """Verify the piecewise power-law lookup."""

    def test_table_sizes(self):
        assert len(G1_DRAG_TABLE) == 25
        assert len(G7_DRAG_TABLE) == 9

    def test_tables_descending(self):
        for table in (G1_DRAG_TABLE, G7_DRAG_TABLE):
            velocities = [entry.velocity for entry in table]
            assert velocities == sorted(velocities, reverse=True)
            assert len(set(velocities)) == len(velocities)

    def test_breakpoint_belongs_to_faster_segment(self):
        """A speed equal to a breakpoint uses the entry after it."""
        model = DragModel(DragFunction.G7)
        assert model.coefficients(3000.0) == (G7_DRAG_TABLE[2].a, G7_DRAG_TABLE[2].m)
        assert model.coefficients(1470.0) == (G7_DRAG_TABLE[3].a, G7_DRAG_TABLE[3].m)
        assert model.coefficients(2999.0) == (G7_DRAG_TABLE[2].a, G7_DRAG_TABLE[2].m)
        assert model.coefficients(3001.0) == (G7_DRAG_TABLE[1].a, G7_DRAG_TABLE[1].m)

    @pytest.mark.parametrize("drag_function, index", [
        (fn, i)
        for fn, table in ((DragFunction.G1, G1_DRAG_TABLE), (DragFunction.G7, G7_DRAG_TABLE))
        for i in range(len(table))
    ])
    def test_every_breakpoint(self, drag_function, index):
        """At each breakpoint: the first clamps, the rest use the next entry down."""
        model = DragModel(drag_function)
        table = model.table
        expected = table[0] if index == 0 else table[min(index + 1, len(table) - 1)]
        assert model.coefficients(table[index].velocity) == (expected.a, expected.m)

        # Retardation at the same speed in m/s follows its own segment lookup
        v = fps_to_mps(table[index].velocity)
        v_fps = mps_to_fps(v)
        a, m = model.coefficients(v_fps)
        if v > 0:
            expected_r = fps_to_mps(a * v_fps ** m * 0.9 / 0.25)
            assert model.retardation(v, 0.9, 0.25) == pytest.approx(expected_r, rel=1e-12)

    def test_clamps_above_table(self):
        model = DragModel(DragFunction.G1)
        first = G1_DRAG_TABLE[0]
        assert model.coefficients(10000.0) == (first.a, first.m)

    def test_clamps_below_table(self):
        model = DragModel(DragFunction.G1)
        last = G1_DRAG_TABLE[-1]
        assert model.coefficients(500.0) == (last.a, last.m)
        assert model.coefficients(0.0) == (last.a, last.m)
        assert model.coefficients(-10.0) == (last.a, last.m)

    def test_retardation_scaling(self):
        """Retardation is linear in density ratio and inverse in BC."""
        base = retardation(800.0, DragFunction.G7, 1.0, 0.3)
        assert base > 0
        assert abs(retardation(800.0, DragFunction.G7, 0.5, 0.3) - 0.5 * base) < 1e-9
        assert abs(retardation(800.0, DragFunction.G7, 1.0, 0.6) - 0.5 * base) < 1e-9

    def test_retardation_value(self):
        v_fps = mps_to_fps(800.0)
        entry = G7_DRAG_TABLE[2]
        expected = fps_to_mps(entry.a * v_fps ** entry.m)
        assert abs(retardation(800.0, 'G7', 1.0, 1.0) - expected) < 1e-9

    def test_g1_drags_harder_than_g7(self):
        """For equal BC the blunter G1 reference decelerates faster."""
        for v in [400.0, 600.0, 800.0]:
            assert retardation(v, 'G1', 1.0, 0.3) > retardation(v, 'G7', 1.0, 0.3)

    def test_non_positive_coefficients_give_zero(self):
        model = DragModel(DragFunction.G7)
        model.table = (DragTableEntry(4000.0, 0.0, 2.0),
                       DragTableEntry(0.0, 1e-5, -1.0))
        assert model.retardation(800.0, 1.0, 0.3) == 0.0
        assert model.retardation(1500.0, 1.0, 0.3) == 0.0

    def test_unknown_drag_function(self):
        with pytest.raises(ValueError):
            DragModel('G5')
        with pytest.raises(ValueError):
            get_drag_model('nope')

    def test_name_lookup_is_case_insensitive(self):
        assert get_drag_model('g1').drag_function is DragFunction.G1


class TestBullet:

    def test_rejects_non_positive_properties(self):
        with pytest.raises(ValueError):
            Bullet(weight=0.0, diameter=0.00782, length=0.0315, bc=0.3)
        with pytest.raises(ValueError):
            Bullet(weight=0.01, diameter=0.00782, length=0.0315, bc=-0.3)

    def test_drag_function_from_string(self):
        b = Bullet(weight=0.01, diameter=0.00782, length=0.0315, bc=0.3,
                   drag_function='g1')
        assert b.drag_function is DragFunction.G1

    def test_reference_area(self):
        b = make_bullet()
        expected = np.pi * (b.diameter / 2) ** 2
        assert abs(b.reference_area - expected) < 1e-12

    def test_spin_rate_sign_follows_twist(self):
        right = Bullet.spin_rate_from_twist(800.0, 0.254)
        left = Bullet.spin_rate_from_twist(800.0, -0.254)
        assert right > 0
        assert left == -right
        assert abs(right - 2 * np.pi * 800.0 / 0.254) < 1e-6
        assert Bullet.spin_rate_from_twist(800.0, 0.0) == 0.0

    def test_state_is_read_only(self):
        state = BulletState(make_bullet(), velocity=[0.0, 0.0, -800.0])
        with pytest.raises(ValueError):
            state.velocity[2] = 0.0

    def test_state_geometry(self):
        state = BulletState(make_bullet(), position=[1.0, 2.0, -300.0],
                            velocity=[0.0, 0.0, -800.0])
        assert state.downrange == 300.0
        assert state.crossrange == 1.0
        assert state.height == 2.0
        assert state.speed == 800.0
        assert abs(state.azimuth_angle) < 1e-12

    def test_with_motion_keeps_lag(self):
        state = BulletState(make_bullet()).with_lag(0.1, -0.2)
        moved = state.with_motion([0.0, 0.0, -1.0], [0.0, 0.0, -799.0])
        assert moved.beta_eq_right == 0.1
        assert moved.beta_eq_up == -0.2
        assert moved.bullet is state.bullet


def straight_trajectory(n=11, spacing=10.0, dt=0.0125):
    """n samples flying down −z at constant speed, rising 1 cm per sample."""
    traj = Trajectory()
    bullet = make_bullet()
    speed = spacing / dt
    for i in range(n):
        state = BulletState(bullet, position=[0.0, 0.01 * i, -spacing * i],
                            velocity=[0.0, 0.0, -speed])
        traj.add_point(i * dt, state, [1.0, 0.0, 0.0])
    return traj


class TestTrajectory:
    """Verify sample storage and interpolated queries."""

    def test_empty_queries(self):
        traj = Trajectory()
        assert traj.is_empty
        assert traj.at_distance(10.0) is None
        assert traj.at_time(0.1) is None
        assert traj.total_distance == 0.0

    def test_index_out_of_range(self):
        traj = straight_trajectory()
        with pytest.raises(IndexError):
            traj.point(len(traj))
        with pytest.raises(IndexError):
            traj.point(-1)
        with pytest.raises(IndexError):
            Trajectory().point(0)

    def test_time_must_not_go_backwards(self):
        traj = straight_trajectory()
        with pytest.raises(ValueError):
            traj.add_point(0.0, traj[0].state)

    def test_clamps_before_and_after(self):
        traj = straight_trajectory()
        assert traj.at_distance(-50.0) is traj[0]
        assert traj.at_distance(1e6) is traj[len(traj) - 1]
        assert traj.at_time(-1.0) is traj[0]
        assert traj.at_time(100.0) is traj[len(traj) - 1]

    def test_exact_sample_is_returned_unchanged(self):
        traj = straight_trajectory()
        point = traj.at_distance(30.0)
        assert abs(point.distance - 30.0) < 1e-12
        assert abs(point.state.height - 0.03) < 1e-12
        assert abs(point.time - traj[3].time) < 1e-12

    def test_at_distance_is_idempotent(self):
        sim = Simulator(make_bullet())
        sim.initial_state = BulletState(sim.bullet, velocity=launch_velocity(800.0, 0.002, 0.0))
        traj = sim.simulate(300.0)
        first = traj.at_distance(212.345)
        second = traj.at_distance(212.345)
        assert first.time == second.time
        assert np.array_equal(first.position, second.position)
        assert np.array_equal(first.velocity, second.velocity)
        assert np.array_equal(first.wind, second.wind)
        assert abs(first.distance - 212.345) < 1e-9

    def test_interpolates_between_samples(self):
        traj = straight_trajectory()
        point = traj.at_distance(35.0)
        assert abs(point.distance - 35.0) < 1e-9
        assert abs(point.state.height - 0.035) < 1e-9
        assert abs(point.time - 3.5 * 0.0125) < 1e-12

        by_time = traj.at_time(3.5 * 0.0125)
        assert abs(by_time.distance - 35.0) < 1e-9

    def test_wind_is_recorded(self):
        traj = straight_trajectory()
        assert np.allclose(traj.wind_at_distance(42.0), [1.0, 0.0, 0.0])

    def test_summary_quantities(self):
        traj = straight_trajectory()
        assert traj.total_distance == 100.0
        assert abs(traj.maximum_height - 0.10) < 1e-12
        assert abs(traj.impact_velocity - 800.0) < 1e-9
        assert abs(traj.impact_angle) < 1e-12

    def test_as_arrays(self):
        data = straight_trajectory().as_arrays()
        assert len(data['time']) == 11
        assert data['downrange'][-1] == 100.0
        assert np.allclose(data['wind_crossrange'], 1.0)

    def test_clear(self):
        traj = straight_trajectory()
        traj.clear()
        assert len(traj) == 0


class TestSimulator:
    """Verify forces, integration and zeroing."""

    def test_gravity_only_at_rest(self):
        sim = Simulator(make_bullet())
        accel, _ = sim.calculate_acceleration(sim.current_state, 0.001)
        assert np.allclose(accel, [0.0, -GRAVITY, 0.0])

    def test_drag_opposes_motion(self):
        sim = Simulator(make_bullet())
        state = BulletState(sim.bullet, velocity=[0.0, 0.0, -800.0])
        accel, _ = sim.calculate_acceleration(state, 0.001)
        assert accel[2] > 0          # decelerating along −z
        assert accel[1] < 0

    def test_lag_update_returns_new_state(self):
        sim = Simulator(make_bullet(), wind=[5.0, 0.0, 0.0])
        state = BulletState(sim.bullet, velocity=[0.0, 0.0, -800.0],
                            spin_rate=RIGHT_TWIST_SPIN)
        _, updated = sim.calculate_acceleration(state, 0.001)
        assert state.beta_eq_right == 0.0
        assert updated.beta_eq_right != 0.0

    def test_time_step_midpoint_scheme(self):
        """Position uses the half-step velocity; lag carries the midpoint value."""
        dt = 0.001
        sim = Simulator(make_bullet(), wind=[4.0, 0.0, 0.0])
        s0 = BulletState(sim.bullet, position=[0.1, 0.2, -5.0],
                         velocity=launch_velocity(800.0, 0.003, 0.001),
                         spin_rate=3000.0)
        sim.initial_state = s0

        a0, s0_lag = sim.calculate_acceleration(s0, dt)
        v_half = s0.velocity + a0 * (0.5 * dt)
        x_half = s0.position + v_half * (0.5 * dt)
        a_half, s_half = sim.calculate_acceleration(s0_lag.with_motion(x_half, v_half), dt)
        v1 = s0.velocity + a_half * dt

        s1 = sim.time_step(dt)
        assert np.allclose(s1.velocity, v1, rtol=0, atol=1e-12)
        assert np.allclose(s1.position, s0.position + v_half * dt, rtol=0, atol=1e-12)
        assert not np.allclose(s1.position, s0.position + v1 * dt, rtol=0, atol=1e-9)
        assert s1.beta_eq_right == s_half.beta_eq_right
        assert s1.beta_eq_up == s_half.beta_eq_up
        assert s_half.beta_eq_right != s0_lag.beta_eq_right

    def test_simulate_through_wind_field(self):
        field = create_wind_preset('Strong', rng=RandomSource(1))
        field.advance_time(0.5)
        launch = launch_velocity(800.0, 0.002, 0.0)

        sim = Simulator(make_bullet())
        sim.initial_state = BulletState(sim.bullet, velocity=launch)
        traj = sim.simulate(500.0, wind_field=field)

        # Each step flies in the wind sampled where the step began
        assert np.array_equal(traj[0].wind, field.sample_at(traj[0].position))
        for i in range(1, len(traj)):
            assert np.array_equal(traj[i].wind, field.sample_at(traj[i - 1].position))
        assert np.linalg.norm(traj[0].wind) > 0

        still = Simulator(make_bullet())
        still.initial_state = BulletState(still.bullet, velocity=launch)
        still_drift = still.simulate(500.0).at_distance(500.0).state.crossrange
        windy_drift = traj.at_distance(500.0).state.crossrange
        assert abs(windy_drift - still_drift) > 1e-3

    def test_time_step_records_point(self):
        sim = Simulator(make_bullet())
        sim.initial_state = BulletState(sim.bullet, velocity=[0.0, 0.0, -800.0])
        sim.time_step(0.001)
        assert len(sim.trajectory) == 1
        assert abs(sim.current_time - 0.001) < 1e-15
        assert sim.current_state.speed < 800.0

    def test_time_step_rejects_non_positive_dt(self):
        sim = Simulator(make_bullet())
        with pytest.raises(ValueError):
            sim.time_step(0.0)

    def test_simulate_stops_past_max_distance(self):
        sim = Simulator(make_bullet())
        sim.initial_state = BulletState(sim.bullet, velocity=[0.0, 0.0, -800.0])
        traj = sim.simulate(200.0)
        assert traj.total_distance > 200.0
        assert traj[len(traj) - 2].distance <= 200.0
        assert traj[0].time == 0.0

    def test_simulate_respects_time_budget(self):
        sim = Simulator(make_bullet())
        sim.initial_state = BulletState(sim.bullet, velocity=[0.0, 0.0, -800.0])
        traj = sim.simulate(1e6, dt=0.01, max_time=0.1)
        assert 0.1 - 1e-9 <= traj.total_time <= 0.11 + 1e-9

    def test_energy_decreases(self):
        sim = Simulator(make_bullet())
        sim.initial_state = BulletState(sim.bullet, velocity=launch_velocity(800.0, 0.0, 0.0))
        data = sim.simulate(300.0).as_arrays()
        assert np.all(np.diff(data['speed']) < 0)

    def test_reset_to_initial(self):
        sim = Simulator(make_bullet())
        sim.initial_state = BulletState(sim.bullet, velocity=[0.0, 0.0, -800.0])
        sim.simulate(50.0)
        sim.reset_to_initial()
        assert sim.current_time == 0.0
        assert sim.trajectory.is_empty
        assert sim.current_distance == 0.0

    def test_launch_velocity(self):
        v = launch_velocity(800.0, np.radians(10.0), 0.0)
        assert abs(np.linalg.norm(v) - 800.0) < 1e-9
        assert abs(v[1] - 800.0 * np.sin(np.radians(10.0))) < 1e-9
        assert v[2] < 0
        assert launch_velocity(800.0, 0.0, 0.01)[0] > 0

    def test_zero_converges(self):
        """G7 BC 0.300 at 800 m/s zeroed 5 cm high at 100 m."""
        sim = Simulator(make_bullet(bc=0.300))
        result = sim.compute_zero(800.0, (0.0, 0.05, -100.0))
        assert result.converged
        assert result.reachable
        assert result.error < 0.001
        assert result.elevation_angle > 0
        assert abs(result.azimuth_angle) < 1e-6

        # The simulator is left ready to fire the zeroed shot
        assert sim.trajectory.is_empty
        assert sim.current_time == 0.0
        traj = sim.simulate(100.0)
        point = traj.at_distance(100.0)
        assert abs(point.state.height - 0.05) < 0.001
        assert abs(point.state.crossrange) < 0.001

    def test_zero_unreachable_target(self, caplog):
        sim = Simulator(make_bullet())
        with caplog.at_level(logging.WARNING, logger='exterior_ballistics.simulator'):
            result = sim.compute_zero(50.0, (0.0, 0.0, -1000.0), dt=0.01)
        assert not result.converged
        assert not result.reachable
        assert result.iterations == 1
        assert 'did not converge' in caplog.text

    def test_no_lateral_motion_without_spin_or_wind(self):
        sim = Simulator(make_bullet())
        sim.initial_state = BulletState(sim.bullet, velocity=launch_velocity(800.0, 0.002, 0.0))
        traj = sim.simulate(500.0)
        assert abs(traj.at_distance(500.0).state.crossrange) < 1e-6

    def test_right_twist_drifts_right(self):
        drift = {}
        for label, spin in (('right', RIGHT_TWIST_SPIN), ('left', -RIGHT_TWIST_SPIN)):
            sim = Simulator(make_bullet())
            sim.initial_state = BulletState(sim.bullet,
                                            velocity=launch_velocity(800.0, 0.002, 0.0),
                                            spin_rate=spin)
            drift[label] = sim.simulate(800.0).at_distance(800.0).state.crossrange
        assert drift['right'] > 0
        assert drift['left'] < 0
        assert abs(drift['right'] + drift['left']) < 0.1 * abs(drift['right'])

    def test_crosswind_pushes_downwind(self):
        sim = Simulator(make_bullet(), wind=[5.0, 0.0, 0.0])
        sim.initial_state = BulletState(sim.bullet, velocity=launch_velocity(800.0, 0.002, 0.0))
        drift = sim.simulate(300.0).at_distance(300.0).state.crossrange
        assert drift > 0.01

    def test_headwind_increases_drop(self):
        heights = []
        for wind in ([0.0, 0.0, 0.0], [0.0, 0.0, 10.0]):   # +z blows toward the shooter
            sim = Simulator(make_bullet(), wind=wind)
            sim.initial_state = BulletState(sim.bullet,
                                            velocity=launch_velocity(800.0, 0.002, 0.0))
            heights.append(sim.simulate(600.0).at_distance(600.0).state.height)
        assert heights[1] < heights[0]


if __name__ == "__main__":
    pytest.main([__file__, '-v'])
