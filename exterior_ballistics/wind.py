"""
Turbulent Wind Field
====================
Procedural, spatially- and temporally-varying horizontal wind built from
one or more curl-noise components.

Each component samples a scalar simplex-noise potential ψ(downrange,
crossrange, t) and returns its 2-D curl

    w = (∂ψ/∂y, −∂ψ/∂x)

which is divergence-free by construction, so the field has no spurious
sources or sinks. The raw curl has an arbitrary amplitude that depends on
the noise generator and the chosen scales, so every component measures its
own RMS once (from 1000 random samples) and normalizes by it. After that,
``strength`` means the RMS wind speed of the component in m/s regardless of
its spatial/temporal scales.

On top of the noise, the whole field is advected: ``advance_time`` estimates
the mean wind over a bounding box and integrates a global offset, which
makes the turbulence drift past a fixed observer as one continuous pattern.

Coordinates follow the rest of the package: x = crossrange, y = vertical,
z = −downrange. The wind has no vertical component.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from scipy.special import expit

from .noise import SimplexNoise
from .random_source import RandomSource
from .units import mph_to_mps, minutes_to_seconds, yards_to_meters

logger = logging.getLogger(__name__)


CURL_EPSILON            = 0.01    # finite-difference step in scaled space
RMS_CALIBRATION_SAMPLES = 1000
RMS_WINDOW              = 1000.0  # calibration window, in units of each scale
RMS_GUARD               = 1e-6
GATE_SLOPE              = 4.0     # logistic slope of the gust gate (1/(m/s))
MAX_STRENGTH_FACTOR     = 2.0     # output ceiling, × strength
ADVECTION_SAMPLES       = 10
MAX_ADVECTION_DT        = 1.0     # s

DEFAULT_MIN_CORNER = (-100.0, 0.0, 0.0)
DEFAULT_MAX_CORNER = (100.0, 100.0, -1000.0)


class WindComponent:
    """
    One octave of curl-noise turbulence.

    Parameters
    ----------
    strength : float
        RMS wind speed of this component (m/s)
    downrange_scale, crossrange_scale : float
        Spatial scales (m); larger means slower spatial variation
    temporal_scale : float
        Temporal scale (s); larger means slower change over time
    exponent : float
        Reshapes the normalized magnitude. < 1 is gustier (bursts near
        ``strength``), > 1 is steadier
    sigmoid_threshold : float
        Gust gate threshold as a fraction of ``strength``; 0 disables it
    rng : RandomSource, optional
        Source for this component's noise tables
    """

    def __init__(self, strength: float, downrange_scale: float,
                 crossrange_scale: float, temporal_scale: float,
                 exponent: float = 1.0, sigmoid_threshold: float = 0.0,
                 rng: Optional[RandomSource] = None):
        if strength < 0.0:
            raise ValueError(f"Wind strength must be non-negative, got {strength}")
        for name, value in (('downrange_scale', downrange_scale),
                            ('crossrange_scale', crossrange_scale),
                            ('temporal_scale', temporal_scale)):
            if not value > 0.0:
                raise ValueError(f"Wind {name} must be positive, got {value}")
        if not exponent > 0.0:
            raise ValueError(f"Wind exponent must be positive, got {exponent}")

        self.strength = strength
        self.downrange_scale = downrange_scale
        self.crossrange_scale = crossrange_scale
        self.temporal_scale = temporal_scale
        self.exponent = exponent
        self.sigmoid_threshold = sigmoid_threshold
        self.magnitude_rms = 0.0
        self.noise = SimplexNoise(rng)

    @property
    def is_calibrated(self) -> bool:
        return self.magnitude_rms > 0.0

    def raw_curl(self, downrange: float, crossrange: float,
                 time: float) -> Tuple[float, float]:
        """
        Un-normalized curl (downrange, crossrange) of the potential at a
        world-space point, in 1/m.
        """
        sx = downrange / self.downrange_scale
        sy = crossrange / self.crossrange_scale
        st = time / self.temporal_scale
        eps = CURL_EPSILON
        noise = self.noise.noise3d

        dpsi_dsx = (noise(sx + eps, sy, st) - noise(sx - eps, sy, st)) / (2.0 * eps)
        dpsi_dsy = (noise(sx, sy + eps, st) - noise(sx, sy - eps, st)) / (2.0 * eps)

        # Chain rule back to world units
        dpsi_dx = dpsi_dsx / self.downrange_scale
        dpsi_dy = dpsi_dsy / self.crossrange_scale
        return dpsi_dy, -dpsi_dx

    def calibrate(self, rng: RandomSource, current_time: float = 0.0,
                  num_samples: int = RMS_CALIBRATION_SAMPLES) -> float:
        """
        Measure the RMS raw curl magnitude over a window spanning
        ±1000 of this component's own scales. No-op once calibrated.
        """
        if self.is_calibrated:
            return self.magnitude_rms

        sum_sq = 0.0
        for _ in range(num_samples):
            downrange = rng.uniform(-RMS_WINDOW, RMS_WINDOW) * self.downrange_scale
            crossrange = rng.uniform(-RMS_WINDOW, RMS_WINDOW) * self.crossrange_scale
            time = current_time + rng.uniform(-RMS_WINDOW, RMS_WINDOW) * self.temporal_scale
            cx, cy = self.raw_curl(downrange, crossrange, time)
            sum_sq += cx * cx + cy * cy

        self.magnitude_rms = float(np.sqrt(sum_sq / num_samples))
        logger.debug("Calibrated wind component (strength %.2f m/s, scales %.0f/%.0f m, "
                     "%.0f s): rms=%.4g", self.strength, self.downrange_scale,
                     self.crossrange_scale, self.temporal_scale, self.magnitude_rms)
        return self.magnitude_rms

    def shape(self, curl_downrange: float, curl_crossrange: float) -> Tuple[float, float]:
        """Turn a raw curl into a (downrange, crossrange) wind in m/s."""
        magnitude = float(np.hypot(curl_downrange, curl_crossrange))
        angle = float(np.arctan2(curl_crossrange, curl_downrange))

        normalized = magnitude / (self.magnitude_rms + RMS_GUARD)
        if self.exponent != 1.0:
            normalized = normalized ** self.exponent
        speed = normalized * self.strength

        if self.sigmoid_threshold > 0.0:
            # Self-gating: weak gusts are suppressed, strong ones pass
            threshold = self.sigmoid_threshold * self.strength
            speed = speed * float(expit(GATE_SLOPE * (speed - threshold)))

        speed = min(speed, MAX_STRENGTH_FACTOR * self.strength)
        return speed * np.cos(angle), speed * np.sin(angle)

    def __repr__(self) -> str:
        return (f"WindComponent(strength={self.strength:.3f}, "
                f"scales=({self.downrange_scale:.0f}, {self.crossrange_scale:.0f}, "
                f"{self.temporal_scale:.0f}), exponent={self.exponent}, "
                f"gate={self.sigmoid_threshold})")


class WindField:
    """
    Sum of curl-noise components with global advection.

    Parameters
    ----------
    rng : RandomSource, optional
        Shared by the component noise tables, RMS calibration and the
        advection sampling
    min_corner, max_corner : sequence of 3 floats
        Box (x, y, z) over which the mean wind is estimated for advection
    advection_gain : float
        Multiplier on the advection speed (clamped to >= 0)
    advection_alpha : float
        EMA smoothing factor for the advection velocity, 0 – 1
    """

    def __init__(self, rng: Optional[RandomSource] = None,
                 min_corner: Sequence[float] = DEFAULT_MIN_CORNER,
                 max_corner: Sequence[float] = DEFAULT_MAX_CORNER,
                 advection_gain: float = 1.0, advection_alpha: float = 0.01):
        self.rng = rng if rng is not None else RandomSource()
        self.components: List[WindComponent] = []
        self.current_time = 0.0
        self.global_advection_offset = np.zeros(3)
        self.global_advection_velocity = np.zeros(3)
        self.set_sample_corners(min_corner, max_corner)
        self.advection_gain = advection_gain
        self.advection_alpha = advection_alpha

    # ── Configuration ─────────────────────────────────────────────────────
    @property
    def advection_gain(self) -> float:
        return self._advection_gain

    @advection_gain.setter
    def advection_gain(self, gain: float) -> None:
        self._advection_gain = max(0.0, float(gain))

    @property
    def advection_alpha(self) -> float:
        return self._advection_alpha

    @advection_alpha.setter
    def advection_alpha(self, alpha: float) -> None:
        self._advection_alpha = float(np.clip(alpha, 0.0, 1.0))

    def set_sample_corners(self, min_corner: Sequence[float],
                           max_corner: Sequence[float]) -> None:
        self.sample_corners = (np.array(min_corner, dtype=float),
                               np.array(max_corner, dtype=float))

    def add_component(self, strength: float, downrange_scale: float,
                      crossrange_scale: float, temporal_scale: float,
                      exponent: float = 1.0,
                      sigmoid_threshold: float = 0.0) -> WindComponent:
        """Create, calibrate and register a component."""
        component = WindComponent(strength, downrange_scale, crossrange_scale,
                                  temporal_scale, exponent, sigmoid_threshold,
                                  rng=self.rng)
        component.calibrate(self.rng, self.current_time)
        self.components.append(component)
        return component

    def remove_components(self) -> None:
        self.components.clear()

    def calibrate(self) -> None:
        """Calibrate any component that has not been calibrated yet."""
        for component in self.components:
            component.calibrate(self.rng, self.current_time)

    def component(self, index: int) -> WindComponent:
        if index < 0 or index >= len(self.components):
            raise IndexError(f"Wind component index {index} out of range "
                             f"(0..{len(self.components) - 1})")
        return self.components[index]

    @property
    def num_components(self) -> int:
        return len(self.components)

    # ── Time evolution ────────────────────────────────────────────────────
    def advance_time(self, current_time: float) -> None:
        """
        Move the field to ``current_time`` (monotonic) and advect it by the
        smoothed mean wind over the sample box.
        """
        dt = float(np.clip(current_time - self.current_time, 0.0, MAX_ADVECTION_DT))
        self.current_time = current_time
        self.calibrate()
        if dt == 0.0:
            return

        lo, hi = self.sample_corners
        avg_wind = np.zeros(3)
        for _ in range(ADVECTION_SAMPLES):
            x = self.rng.uniform(lo[0], hi[0])
            y = self.rng.uniform(lo[1], hi[1])
            z = self.rng.uniform(lo[2], hi[2])
            avg_wind += self.sample(x, y, z)
        avg_wind /= ADVECTION_SAMPLES

        alpha = self.advection_alpha
        self.global_advection_velocity = (self.global_advection_velocity * (1.0 - alpha)
                                          + avg_wind * self.advection_gain * alpha)
        self.global_advection_offset = (self.global_advection_offset
                                        + self.global_advection_velocity * dt)

    # ── Sampling ──────────────────────────────────────────────────────────
    def sample_component(self, index: int, position: Sequence[float],
                         time: Optional[float] = None) -> np.ndarray:
        """Wind (m/s) from a single component at ``position`` (x, y, z)."""
        component = self.component(index)
        return self._sample_component(component, position,
                                      self.current_time if time is None else time)

    def _sample_component(self, component: WindComponent, position,
                          time: float) -> np.ndarray:
        offset = self.global_advection_offset
        downrange = -(position[2] - offset[2])
        crossrange = position[0] - offset[0]

        curl_downrange, curl_crossrange = component.raw_curl(downrange, crossrange, time)
        wind_downrange, wind_crossrange = component.shape(curl_downrange, curl_crossrange)
        return np.array([wind_crossrange, 0.0, -wind_downrange])

    def sample(self, x: float, y: float, z: float,
               time: Optional[float] = None) -> np.ndarray:
        """Composite wind (m/s) at (x, y, z); the field extends beyond the box."""
        time = self.current_time if time is None else time
        position = (x, y, z)
        wind = np.zeros(3)
        for component in self.components:
            wind += self._sample_component(component, position, time)
        return wind

    def sample_at(self, position: Sequence[float],
                  time: Optional[float] = None) -> np.ndarray:
        return self.sample(position[0], position[1], position[2], time)

    def __call__(self, x: float, y: float, z: float) -> np.ndarray:
        return self.sample(x, y, z)

    def __repr__(self) -> str:
        return (f"WindField({len(self.components)} components, "
                f"t={self.current_time:.2f} s, gain={self.advection_gain})")


# ══════════════════════════════════════════════════════════════════════════
#  Presets: (strength mph, downrange yd, crossrange yd, temporal min,
#             exponent, gate as a fraction of strength)
# ══════════════════════════════════════════════════════════════════════════

PRESET_ADVECTION_GAIN = 5.0

WIND_PRESETS: Dict[str, List[Tuple[float, float, float, float, float, float]]] = {
    'Zero': [],
    'Dead': [
        (0.5, 10000.0, 10000.0, 15.0, 0.5, 0.0),        # steady base
        (0.25, 1000.0, 1000.0, 3.0, 0.5, 1.0),          # gated gusts
    ],
    'Calm': [
        (1.0, 10000.0, 10000.0, 15.0, 0.5, 0.0),
        (0.5, 1000.0, 1000.0, 3.0, 0.5, 1.0),
    ],
    'Moderate': [
        (3.0, 10000.0, 10000.0, 15.0, 0.5, 0.0),
        (1.5, 2000.0, 2000.0, 5.0, 0.5, 0.0),           # local variation
        (6.0, 1000.0, 1000.0, 0.5, 0.5, 0.5),
    ],
    'Strong': [
        (7.0, 10000.0, 10000.0, 15.0, 0.5, 0.0),
        (10.0, 1000.0, 1000.0, 3.0, 0.5, 0.8),
    ],
    'Extra Strong': [
        (12.0, 10000.0, 10000.0, 15.0, 0.5, 0.0),
        (15.0, 1000.0, 1000.0, 3.0, 0.5, 10.0 / 15.0),
    ],
}


def list_wind_presets() -> List[str]:
    return sorted(WIND_PRESETS)


def has_wind_preset(name: str) -> bool:
    return name in WIND_PRESETS


def create_wind_preset(name: str,
                       min_corner: Sequence[float] = DEFAULT_MIN_CORNER,
                       max_corner: Sequence[float] = DEFAULT_MAX_CORNER,
                       rng: Optional[RandomSource] = None) -> WindField:
    """Build a calibrated WindField from a named preset."""
    if name not in WIND_PRESETS:
        raise ValueError(
            f"Unknown wind preset '{name}'. Available: {list_wind_presets()}"
        )

    field = WindField(rng, min_corner, max_corner)
    rows = WIND_PRESETS[name]
    if rows:
        field.advection_gain = PRESET_ADVECTION_GAIN
    for mph, dr_yd, cr_yd, minutes, exponent, gate in rows:
        field.add_component(mph_to_mps(mph), yards_to_meters(dr_yd),
                            yards_to_meters(cr_yd), minutes_to_seconds(minutes),
                            exponent, gate)
    logger.debug("Created wind preset %r with %d components", name, len(rows))
    return field


if __name__ == "__main__":
    field = create_wind_preset('Moderate', rng=RandomSource(7))
    print("Wind preset 'Moderate' — crosswind along the range at t = 0")
    print("=" * 50)
    for downrange in range(0, 1001, 100):
        w = field.sample(0.0, 1.0, -float(downrange))
        print(f"{downrange:>6d} m   cross {w[0]:>+7.2f} m/s   head {w[2]:>+7.2f} m/s")
