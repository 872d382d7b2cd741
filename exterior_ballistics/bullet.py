"""
Bullet & Flight State
=====================
``Bullet`` holds the static physical properties of a projectile for the life
of a shot. ``BulletState`` is the immutable in-flight snapshot the
integrator produces once per step.

Coordinate system:
  x = crossrange (right positive, looking downrange)
  y = vertical   (up positive)
  z = −downrange (the muzzle points down −z)
"""

from dataclasses import dataclass, field, replace
from typing import Optional, Sequence, Union

import numpy as np

from .drag_model import DragFunction, resolve_drag_function


SPIN_RADIUS_OF_GYRATION = 0.30  # × diameter


def _vector(values: Optional[Sequence[float]]) -> np.ndarray:
    arr = np.zeros(3) if values is None else np.array(values, dtype=float)
    if arr.shape != (3,):
        raise ValueError(f"Expected a 3-vector, got shape {arr.shape}")
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True)
class Bullet:
    """
    Physical properties of a bullet.

    A bullet carries either a G1 or a G7 ballistic coefficient; the
    ``drag_function`` says which.
    """
    weight: float                    # kg
    diameter: float                  # m
    length: float                    # m
    bc: float                        # ballistic coefficient
    drag_function: Union[DragFunction, str] = DragFunction.G7
    name: str = "Bullet"

    def __post_init__(self):
        for attr in ('weight', 'diameter', 'length', 'bc'):
            value = getattr(self, attr)
            if not value > 0.0:
                raise ValueError(f"Bullet {attr} must be positive, got {value}")
        object.__setattr__(self, 'drag_function',
                           resolve_drag_function(self.drag_function))

    @property
    def reference_area(self) -> float:
        """Cross-sectional area (m²)."""
        return 0.25 * np.pi * self.diameter ** 2

    @property
    def sectional_density(self) -> float:
        """weight / diameter² (kg/m²)."""
        return self.weight / (self.diameter * self.diameter)

    @property
    def spin_moment_of_inertia(self) -> float:
        """Axial moment of inertia estimated as m·(0.3·d)² (kg·m²)."""
        r_eff = SPIN_RADIUS_OF_GYRATION * self.diameter
        return self.weight * r_eff * r_eff

    @staticmethod
    def spin_rate_from_twist(speed: float, twist: float) -> float:
        """
        Spin rate (rad/s) for a muzzle speed and signed twist pitch.

        ``twist`` is metres per turn; right-hand twist is positive,
        left-hand negative.
        """
        if twist == 0.0:
            return 0.0
        omega = 2.0 * np.pi * speed / abs(twist)
        return omega if twist > 0.0 else -omega


@dataclass(frozen=True, eq=False)
class BulletState:
    """Snapshot of a bullet in flight."""
    bullet: Bullet
    position: np.ndarray = field(default=None)   # m
    velocity: np.ndarray = field(default=None)   # m/s
    spin_rate: float = 0.0                        # rad/s, signed by twist hand
    beta_eq_right: float = 0.0                    # rad, lagged sideslip (right)
    beta_eq_up: float = 0.0                       # rad, lagged sideslip (up-in-plane)

    def __post_init__(self):
        object.__setattr__(self, 'position', _vector(self.position))
        object.__setattr__(self, 'velocity', _vector(self.velocity))
        object.__setattr__(self, 'spin_rate', float(self.spin_rate))

    def with_motion(self, position, velocity,
                    spin_rate: Optional[float] = None) -> "BulletState":
        """New state with the same bullet and lag values."""
        return replace(
            self,
            position=position,
            velocity=velocity,
            spin_rate=self.spin_rate if spin_rate is None else spin_rate,
        )

    def with_lag(self, beta_eq_right: float, beta_eq_up: float) -> "BulletState":
        return replace(self, beta_eq_right=float(beta_eq_right),
                       beta_eq_up=float(beta_eq_up))

    @property
    def speed(self) -> float:
        return float(np.linalg.norm(self.velocity))

    @property
    def downrange(self) -> float:
        return float(-self.position[2])

    @property
    def crossrange(self) -> float:
        return float(self.position[0])

    @property
    def height(self) -> float:
        return float(self.position[1])

    @property
    def elevation_angle(self) -> float:
        """Angle of the velocity above the horizontal plane (rad)."""
        vx, vy, vz = self.velocity
        return float(np.arctan2(vy, np.hypot(vx, vz)))

    @property
    def azimuth_angle(self) -> float:
        """Horizontal angle of the velocity, right of downrange (rad)."""
        vx, _, vz = self.velocity
        return float(np.arctan2(vx, -vz))

    @property
    def kinetic_energy(self) -> float:
        """½·m·v² (J)."""
        v = self.speed
        return 0.5 * self.bullet.weight * v * v
