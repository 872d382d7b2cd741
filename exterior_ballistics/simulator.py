"""
Trajectory Simulator
====================
Integrates a spinning bullet through still or turbulent air and solves for
the launch angles that zero it on a target.

Forces per unit mass:
  - Gravity
  - Drag from the G1/G7 reference curves, on the air-relative velocity
  - Spin drift (yaw of repose under gravity)
  - Crosswind jump (transient response to a change in sideslip)

The two spin effects are modelled as small lateral angles in the plane
normal to the velocity and turned into accelerations with a linear lift
slope. Crosswind jump needs memory: the "equilibrium" sideslip the nose has
trimmed to is carried in the BulletState as two lag scalars and relaxed
toward the instantaneous sideslip at the gyroscopic alignment rate.

Time stepping is a midpoint (RK2) scheme:

    v½ = v₀ + a(s₀)·dt/2          x½ = x₀ + v½·dt/2
    v₁ = v₀ + a(s½)·dt            x₁ = x₀ + v½·dt

The lag state is advanced at both evaluations and the final state carries
the midpoint value.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .atmosphere import GRAVITY, Atmosphere
from .bullet import Bullet, BulletState
from .drag_model import get_drag_model
from .trajectory import Trajectory
from .wind import WindField

logger = logging.getLogger(__name__)


GRAVITY_VECTOR = np.array([0.0, -GRAVITY, 0.0])
WORLD_UP = np.array([0.0, 1.0, 0.0])
FALLBACK_RIGHT = np.array([1.0, 0.0, 0.0])
FALLBACK_UP = np.array([0.0, 1.0, 0.0])

SPIN_EPSILON = 1e-12        # guards the alignment rate against zero spin
MIN_AIRSPEED = 1e-3         # m/s, below this the spin model is skipped

ZERO_INITIAL_PITCH = 0.01   # rad
ZERO_DAMPING = 0.5
ZERO_OVERSHOOT = 1.1        # simulate this far past the target
ZERO_MAX_TIME = 5.0         # s per trial shot


@dataclass
class AeroParameters:
    """Tunable spin-aerodynamics coefficients (fitted, per radian)."""
    lift_slope_per_rad: float = 1.27169
    restoring_moment_slope_per_rad: float = -0.124862
    yaw_of_repose_scale: float = 0.426516
    beta_lag_scale: float = 0.670554


@dataclass
class ZeroingResult:
    """Outcome of ``Simulator.compute_zero``."""
    initial_state: BulletState
    elevation_angle: float          # rad
    azimuth_angle: float            # rad
    converged: bool
    reachable: bool
    iterations: int
    error: float                    # m, miss in the target plane (inf if unreachable)
    history: List[Tuple[float, float, float]] = field(default_factory=list)  # (pitch, yaw, error)


def launch_velocity(muzzle_velocity: float, pitch: float, yaw: float) -> np.ndarray:
    """Muzzle velocity vector for a bore pitched up by ``pitch`` and yawed right by ``yaw``."""
    cos_pitch = np.cos(pitch)
    return np.array([
        muzzle_velocity * cos_pitch * np.sin(yaw),    # crossrange
        muzzle_velocity * np.sin(pitch),              # vertical
        -muzzle_velocity * cos_pitch * np.cos(yaw),   # −downrange
    ])


def _safe_normalize(v: np.ndarray, fallback: np.ndarray) -> np.ndarray:
    n = float(np.linalg.norm(v))
    return v / n if n > 1e-9 else fallback


class Simulator:
    """
    Stateful flight simulator for one bullet.

    Parameters
    ----------
    bullet : Bullet
        Physical properties; the initial state is the bullet at rest at the
        origin until ``initial_state`` is set or ``compute_zero`` runs
    atmosphere : Atmosphere, optional
        Defaults to the standard atmosphere
    wind : sequence of 3 floats, optional
        Constant wind (m/s) used when no WindField is passed to ``simulate``
    aero : AeroParameters, optional
    """

    def __init__(self, bullet: Bullet, atmosphere: Optional[Atmosphere] = None,
                 wind: Optional[Sequence[float]] = None,
                 aero: Optional[AeroParameters] = None):
        self.bullet = bullet
        self.atmosphere = atmosphere if atmosphere is not None else Atmosphere.standard()
        self.wind = wind
        self.aero = aero if aero is not None else AeroParameters()
        self.trajectory = Trajectory()
        self._initial_state = BulletState(bullet)
        self._current_state = self._initial_state
        self.current_time = 0.0

    # ── State ─────────────────────────────────────────────────────────────
    @property
    def wind(self) -> np.ndarray:
        return self._wind

    @wind.setter
    def wind(self, wind: Optional[Sequence[float]]) -> None:
        self._wind = np.zeros(3) if wind is None else np.array(wind, dtype=float)

    @property
    def initial_state(self) -> BulletState:
        return self._initial_state

    @initial_state.setter
    def initial_state(self, state: BulletState) -> None:
        self._initial_state = state
        self.reset_to_initial()

    @property
    def current_state(self) -> BulletState:
        return self._current_state

    @property
    def current_distance(self) -> float:
        return self._current_state.downrange

    def reset_to_initial(self) -> None:
        """Rewind to the initial state, time zero and an empty trajectory."""
        self._current_state = self._initial_state
        self.current_time = 0.0
        self.trajectory.clear()

    # ── Physics ───────────────────────────────────────────────────────────
    def drag_retardation(self, state: BulletState) -> float:
        """Drag deceleration (m/s²) on the air-relative speed."""
        airspeed = float(np.linalg.norm(state.velocity - self._wind))
        model = get_drag_model(state.bullet.drag_function)
        return model.retardation(airspeed, self.atmosphere.density_ratio(),
                                 state.bullet.bc)

    def calculate_acceleration(self, state: BulletState,
                               dt: float) -> Tuple[np.ndarray, BulletState]:
        """
        Total acceleration at ``state``.

        Returns the acceleration and ``state`` with its crosswind lag values
        advanced by ``dt``.
        """
        v_rel = state.velocity - self._wind
        v_rel_mag = float(np.linalg.norm(v_rel))
        if v_rel_mag <= 0.0:
            return GRAVITY_VECTOR.copy(), state

        drag = -self.drag_retardation(state) * (v_rel / v_rel_mag)
        extra, state = self.compute_spin_wind_accel(state, GRAVITY_VECTOR, self._wind, dt)
        return drag + GRAVITY_VECTOR + extra, state

    def compute_spin_wind_accel(self, state: BulletState, gravity: np.ndarray,
                                wind: np.ndarray,
                                dt: float) -> Tuple[np.ndarray, BulletState]:
        """Spin drift (steady) plus crosswind jump (transient) acceleration."""
        bullet = state.bullet
        aero = self.aero

        v = state.velocity
        u = v - wind
        V = float(np.linalg.norm(u))
        if V < MIN_AIRSPEED:
            return np.zeros(3), state
        speed = float(np.linalg.norm(v))
        t_hat = v / speed if speed > 1e-6 else u / V

        # Normal-plane basis
        right = _safe_normalize(np.cross(t_hat, WORLD_UP), FALLBACK_RIGHT)
        up_in_plane = _safe_normalize(np.cross(t_hat, right), FALLBACK_UP)

        rho = self.atmosphere.air_density()
        q_dyn = 0.5 * rho * V * V
        s_ref = bullet.reference_area

        # How fast the nose trims to the local flow
        ref_len = max(bullet.diameter, bullet.length)
        denom = bullet.spin_moment_of_inertia * abs(state.spin_rate) + SPIN_EPSILON
        align_rate = (q_dyn * s_ref * ref_len
                      * abs(aero.restoring_moment_slope_per_rad)) / denom
        a_lp = 1.0 - np.exp(-aero.beta_lag_scale * align_rate * dt)

        hand = 1 if state.spin_rate >= 0.0 else -1

        # Spin drift: yaw of repose from the transverse part of gravity
        g_perp = gravity - t_hat * float(np.dot(gravity, t_hat))
        t_x_g = np.cross(g_perp, t_hat)
        if align_rate > 1e-6:
            yaw_of_repose = (aero.yaw_of_repose_scale
                             * float(np.linalg.norm(t_x_g)) / (V * align_rate))
        else:
            yaw_of_repose = 0.0
        yor_right = hand * float(np.dot(_safe_normalize(t_x_g, right), right)) * yaw_of_repose

        # Crosswind jump: high-pass of the lateral sideslip
        u_perp = u - t_hat * float(np.dot(u, t_hat))
        beta_r = float(np.dot(u_perp, right)) / (V + 1e-12)
        beta_u = float(np.dot(u_perp, up_in_plane)) / (V + 1e-12)

        beta_eq_right = state.beta_eq_right + a_lp * (beta_r - state.beta_eq_right)
        beta_eq_up = state.beta_eq_up + a_lp * (beta_u - state.beta_eq_up)
        state = state.with_lag(beta_eq_right, beta_eq_up)

        hp_r = beta_r - beta_eq_right
        hp_u = beta_u - beta_eq_up

        # 90° about the tangent, direction by twist hand
        jump_r = aero.yaw_of_repose_scale * (hand * -hp_u)
        jump_u = aero.yaw_of_repose_scale * (hand * -hp_r)

        gain = (q_dyn * s_ref * aero.lift_slope_per_rad) / bullet.weight
        extra = right * (gain * (yor_right + jump_r)) + up_in_plane * (gain * jump_u)
        return extra, state

    # ── Integration ───────────────────────────────────────────────────────
    def time_step(self, dt: float) -> BulletState:
        """Advance one RK2 step and record it in the trajectory."""
        if dt <= 0.0:
            raise ValueError(f"Time step must be positive, got {dt}")

        s0 = self._current_state
        a0, s0 = self.calculate_acceleration(s0, dt)
        v_half = s0.velocity + a0 * (0.5 * dt)
        x_half = s0.position + v_half * (0.5 * dt)

        s_half = s0.with_motion(x_half, v_half)
        a_half, s_half = self.calculate_acceleration(s_half, dt)

        v1 = s0.velocity + a_half * dt
        x1 = s0.position + v_half * dt   # midpoint velocity, not v1

        self._current_state = s_half.with_motion(x1, v1)
        self.current_time += dt
        self.trajectory.add_point(self.current_time, self._current_state, self._wind)
        return self._current_state

    def simulate(self, max_distance: float, dt: float = 0.001,
                 max_time: float = 60.0,
                 wind_field: Optional[WindField] = None) -> Trajectory:
        """
        Fly from the current state until past ``max_distance`` downrange or
        ``max_time`` seconds have elapsed.

        With a ``wind_field`` the wind is re-sampled at the bullet's position
        before every step; otherwise the constant ``wind`` is used.
        """
        if wind_field is not None:
            self._wind = wind_field.sample_at(self._current_state.position)
        self.trajectory.add_point(self.current_time, self._current_state, self._wind)

        end_time = self.current_time + max_time
        while self.current_time < end_time:
            if wind_field is not None:
                self._wind = wind_field.sample_at(self._current_state.position)
            self.time_step(dt)
            if self._current_state.downrange > max_distance:
                break
        return self.trajectory

    # ── Zeroing ───────────────────────────────────────────────────────────
    def compute_zero(self, muzzle_velocity: float, target_position: Sequence[float],
                     dt: float = 0.001, max_iterations: int = 20,
                     tolerance: float = 0.001, spin_rate: float = 0.0) -> ZeroingResult:
        """
        Find the bore pitch and yaw that put the trajectory through
        ``target_position`` (x=crossrange, y=vertical, z=−downrange).

        Each round fires a trial shot slightly past the target, measures the
        miss in the target plane and applies half of the angular correction.
        The search stops when the miss is below ``tolerance``, after
        ``max_iterations`` rounds, or as soon as a trial shot falls short of
        the target distance. Either way the simulator is left initialized
        with the final launch state, and the result reports whether the zero
        actually converged.
        """
        target = np.array(target_position, dtype=float)
        target_distance = -target[2]
        origin = np.zeros(3)

        pitch = ZERO_INITIAL_PITCH
        yaw = 0.0
        converged = False
        reachable = True
        error = float('inf')
        iterations = 0
        history = []

        for i in range(max_iterations):
            iterations = i + 1
            trial = self._initial_state.with_motion(
                origin, launch_velocity(muzzle_velocity, pitch, yaw), spin_rate)
            self.initial_state = trial
            self.simulate(target_distance * ZERO_OVERSHOOT, dt, ZERO_MAX_TIME)

            if self.trajectory.total_distance < target_distance:
                reachable = False
                error = float('inf')
                logger.debug("Zero trial %d fell short: %.2f m of %.2f m", iterations,
                             self.trajectory.total_distance, target_distance)
                break

            point = self.trajectory.at_distance(target_distance)
            miss = point.position - target
            lateral_error, vertical_error = miss[0], miss[1]
            error = float(np.hypot(lateral_error, vertical_error))
            history.append((pitch, yaw, error))
            logger.debug("Zero trial %d: pitch=%.6f rad yaw=%.6f rad miss=%.5f m",
                         iterations, pitch, yaw, error)

            if error < tolerance:
                converged = True
                break

            pitch += ZERO_DAMPING * -np.arctan2(vertical_error, target_distance)
            yaw += ZERO_DAMPING * -np.arctan2(lateral_error, target_distance)

        if not converged:
            logger.warning(
                "Zero did not converge after %d iteration(s): %s (miss %.4f m)",
                iterations, "target out of reach" if not reachable else "iteration limit",
                error)

        self.initial_state = self._initial_state.with_motion(
            origin, launch_velocity(muzzle_velocity, pitch, yaw), spin_rate)

        return ZeroingResult(
            initial_state=self._initial_state,
            elevation_angle=float(pitch),
            azimuth_angle=float(yaw),
            converged=converged,
            reachable=reachable,
            iterations=iterations,
            error=error,
            history=history,
        )
