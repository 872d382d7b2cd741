"""
Trajectory Buffer
=================
Append-only record of one simulated shot: (time, BulletState, wind) samples
in strictly increasing time order. Downrange distance is also monotonic for
any physical shot, which lets both ``at_time`` and ``at_distance`` locate
their bracketing samples by binary search and interpolate linearly.

Queries outside the recorded span clamp to the first/last sample; they never
extrapolate. Index access outside the buffer is a caller error and raises.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

import numpy as np

from .bullet import BulletState


@dataclass(frozen=True, eq=False)
class TrajectoryPoint:
    """One recorded sample."""
    time: float                                   # s
    state: BulletState
    wind: np.ndarray = field(default=None)        # m/s

    def __post_init__(self):
        wind = np.zeros(3) if self.wind is None else np.array(self.wind, dtype=float)
        wind.setflags(write=False)
        object.__setattr__(self, 'wind', wind)

    @property
    def distance(self) -> float:
        """Downrange distance (m)."""
        return self.state.downrange

    @property
    def position(self) -> np.ndarray:
        return self.state.position

    @property
    def velocity(self) -> np.ndarray:
        return self.state.velocity

    @property
    def speed(self) -> float:
        return self.state.speed

    @property
    def kinetic_energy(self) -> float:
        return self.state.kinetic_energy


def _lerp(a, b, t: float):
    return a + t * (b - a)


class Trajectory:
    """Time- and distance-ordered sample buffer with interpolated queries."""

    def __init__(self):
        self._points: List[TrajectoryPoint] = []

    # ── Building ──────────────────────────────────────────────────────────
    def add_point(self, time: float, state: BulletState, wind=None) -> TrajectoryPoint:
        if self._points and time < self._points[-1].time:
            raise ValueError(
                f"Trajectory time must not go backwards "
                f"({time} < {self._points[-1].time})"
            )
        point = TrajectoryPoint(time, state, wind)
        self._points.append(point)
        return point

    def clear(self) -> None:
        self._points.clear()

    # ── Access ────────────────────────────────────────────────────────────
    def point(self, index: int) -> TrajectoryPoint:
        if index < 0 or index >= len(self._points):
            raise IndexError(
                f"Trajectory point index {index} out of range "
                f"(0..{len(self._points) - 1})"
            )
        return self._points[index]

    __getitem__ = point

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[TrajectoryPoint]:
        return iter(self._points)

    @property
    def points(self) -> Tuple[TrajectoryPoint, ...]:
        return tuple(self._points)

    @property
    def is_empty(self) -> bool:
        return not self._points

    # ── Interpolated queries ──────────────────────────────────────────────
    def at_distance(self, distance: float) -> Optional[TrajectoryPoint]:
        """Sample at a downrange distance (m), or None when empty."""
        points = self._points
        if not points:
            return None
        if distance >= points[-1].distance:
            return points[-1]
        if distance <= points[0].distance:
            return points[0]

        left, right = self._bracket(distance, lambda p: p.distance)
        p1, p2 = points[left], points[right]
        t = (distance - p1.distance) / (p2.distance - p1.distance)
        return TrajectoryPoint(
            _lerp(p1.time, p2.time, t),
            self._interpolate_state(p1, p2, t),
            _lerp(p1.wind, p2.wind, t),
        )

    def at_time(self, time: float) -> Optional[TrajectoryPoint]:
        """Sample at a time of flight (s), or None when empty."""
        points = self._points
        if not points:
            return None
        if time <= points[0].time:
            return points[0]
        if time >= points[-1].time:
            return points[-1]

        left, right = self._bracket(time, lambda p: p.time)
        p1, p2 = points[left], points[right]
        t = (time - p1.time) / (p2.time - p1.time)
        return TrajectoryPoint(
            time,
            self._interpolate_state(p1, p2, t),
            _lerp(p1.wind, p2.wind, t),
        )

    def _bracket(self, value: float, key) -> Tuple[int, int]:
        """Indices (left, right) with key(left) <= value < key(right)."""
        points = self._points
        left, right = 0, len(points) - 1
        while left < right - 1:
            mid = left + (right - left) // 2
            if value < key(points[mid]):
                right = mid
            else:
                left = mid
        return left, right

    @staticmethod
    def _interpolate_state(p1: TrajectoryPoint, p2: TrajectoryPoint,
                           t: float) -> BulletState:
        s1, s2 = p1.state, p2.state
        return s1.with_motion(
            _lerp(s1.position, s2.position, t),
            _lerp(s1.velocity, s2.velocity, t),
            _lerp(s1.spin_rate, s2.spin_rate, t),
        )

    def position_at_time(self, time: float) -> Optional[np.ndarray]:
        point = self.at_time(time)
        return None if point is None else point.position

    def position_at_distance(self, distance: float) -> Optional[np.ndarray]:
        point = self.at_distance(distance)
        return None if point is None else point.position

    def wind_at_time(self, time: float) -> Optional[np.ndarray]:
        point = self.at_time(time)
        return None if point is None else point.wind

    def wind_at_distance(self, distance: float) -> Optional[np.ndarray]:
        point = self.at_distance(distance)
        return None if point is None else point.wind

    # ── Summary quantities ────────────────────────────────────────────────
    @property
    def total_distance(self) -> float:
        """Downrange distance of the last sample (m)."""
        return self._points[-1].distance if self._points else 0.0

    @property
    def total_time(self) -> float:
        """Time of flight of the last sample (s)."""
        return self._points[-1].time if self._points else 0.0

    @property
    def maximum_height(self) -> float:
        """Highest point above the bore line (m); never below 0."""
        max_height = 0.0
        for point in self._points:
            max_height = max(max_height, point.state.height)
        return max_height

    @property
    def impact_velocity(self) -> float:
        """Speed at the last sample (m/s)."""
        return self._points[-1].speed if self._points else 0.0

    @property
    def impact_angle(self) -> float:
        """Angle of descent below horizontal at the last sample (rad)."""
        if not self._points:
            return 0.0
        _, vy, vz = self._points[-1].velocity
        return float(np.arctan2(-vy, -vz))

    def as_arrays(self) -> Dict[str, np.ndarray]:
        """Column arrays for plotting and analysis."""
        points = self._points
        positions = np.array([p.position for p in points]).reshape(-1, 3)
        velocities = np.array([p.velocity for p in points]).reshape(-1, 3)
        winds = np.array([p.wind for p in points]).reshape(-1, 3)
        return {
            'time': np.array([p.time for p in points]),
            'downrange': -positions[:, 2],
            'crossrange': positions[:, 0],
            'height': positions[:, 1],
            'speed': np.linalg.norm(velocities, axis=1),
            'energy': np.array([p.kinetic_energy for p in points]),
            'wind_crossrange': winds[:, 0],
            'wind_downrange': -winds[:, 2],
        }

    def summary(self) -> str:
        """Human-readable summary string."""
        if not self._points:
            return "Trajectory: (empty)"
        first, last = self._points[0], self._points[-1]
        lines = [
            f"╔══════════════════════════════════════════════════════╗",
            f"║  TRAJECTORY SUMMARY — {first.state.bullet.name:<30s} ║",
            f"╠══════════════════════════════════════════════════════╣",
            f"║  Drag model   : {first.state.bullet.drag_function.value:<36s} ║",
            f"║  Samples      : {len(self._points):<36d} ║",
            f"║  Muzzle vel   : {first.speed:>10.1f} m/s{'':<22s} ║",
            f"╠══════════════════════════════════════════════════════╣",
            f"║  Distance     : {self.total_distance:>10.1f} m{'':<24s} ║",
            f"║  Flight time  : {self.total_time:>10.3f} s{'':<24s} ║",
            f"║  Max height   : {self.maximum_height:>10.3f} m{'':<24s} ║",
            f"║  Height       : {last.state.height:>10.3f} m{'':<24s} ║",
            f"║  Windage      : {last.state.crossrange:>10.3f} m{'':<24s} ║",
            f"║  Impact vel   : {self.impact_velocity:>10.1f} m/s{'':<22s} ║",
            f"║  Impact energy: {last.kinetic_energy:>10.1f} J{'':<24s} ║",
            f"║  Impact angle : {np.degrees(self.impact_angle):>10.3f} °{'':<24s} ║",
            f"╚══════════════════════════════════════════════════════╝",
        ]
        return '\n'.join(lines)
