"""
Exterior Ballistics & Turbulent Wind Engine
===========================================
Small-arms trajectory engine for spinning bullets flown through a
procedurally generated turbulent wind field:
  - Gravity
  - G1 / G7 reference drag curves (piecewise power law)
  - Spin drift and crosswind jump
  - Density from temperature, pressure and humidity
  - Curl-noise wind: divergence-free, RMS-calibrated, advected

Trajectories are integrated with a midpoint RK2 scheme, recorded in a
queryable buffer (by time or by downrange distance) and zeroed on a target
by an iterative angle solver.
"""

from .units import (
    mps_to_fps, fps_to_mps, mph_to_mps, mps_to_mph,
    yards_to_meters, meters_to_yards, inches_to_meters,
    grains_to_kg, minutes_to_seconds,
)
from .random_source import RandomSource
from .noise import SimplexNoise
from .drag_model import (
    DragFunction, DragTableEntry, DragModel,
    G1_DRAG_TABLE, G7_DRAG_TABLE, get_drag_model, retardation,
)
from .atmosphere import Atmosphere
from .bullet import Bullet, BulletState
from .trajectory import Trajectory, TrajectoryPoint
from .wind import (
    WindComponent, WindField,
    list_wind_presets, has_wind_preset, create_wind_preset,
)
from .simulator import AeroParameters, Simulator, ZeroingResult, launch_velocity

__version__ = "1.0.0"
__all__ = [
    'mps_to_fps', 'fps_to_mps', 'mph_to_mps', 'mps_to_mph',
    'yards_to_meters', 'meters_to_yards', 'inches_to_meters',
    'grains_to_kg', 'minutes_to_seconds',
    'RandomSource', 'SimplexNoise',
    'DragFunction', 'DragTableEntry', 'DragModel',
    'G1_DRAG_TABLE', 'G7_DRAG_TABLE', 'get_drag_model', 'retardation',
    'Atmosphere', 'Bullet', 'BulletState',
    'Trajectory', 'TrajectoryPoint',
    'WindComponent', 'WindField',
    'list_wind_presets', 'has_wind_preset', 'create_wind_preset',
    'AeroParameters', 'Simulator', 'ZeroingResult', 'launch_velocity',
]
