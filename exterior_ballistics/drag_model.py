"""
Aerodynamic Drag Model
======================
Retardation from the two standard small-arms reference projectiles:

- G1 (flat-base, Ingalls/Mayevski reference): traditional sporting bullets
- G7 (long boat-tail, VLD reference): modern long-range match bullets

Each curve is published as a piecewise power law in feet per second:

    retardation = A · v^M · (ρ/ρ₀) / BC        (ft/s²)

with (A, M) constant between velocity breakpoints. The tables below are
stored in strictly descending velocity order; entry i applies for
table[i].velocity < v <= table[i-1].velocity.

The callers work in SI: velocities go in as m/s and retardation comes back
as m/s².
"""

from enum import Enum
from typing import Dict, NamedTuple, Tuple, Union

from .units import fps_to_mps, mps_to_fps


class DragFunction(Enum):
    """Standard reference drag curves."""
    G1 = 'G1'
    G7 = 'G7'


class DragTableEntry(NamedTuple):
    velocity: float   # breakpoint (ft/s)
    a: float          # coefficient A
    m: float          # exponent M


# ══════════════════════════════════════════════════════════════════════════
#  Piecewise power-law tables: (velocity_fps, A, M)
# ══════════════════════════════════════════════════════════════════════════

G7_DRAG_TABLE: Tuple[DragTableEntry, ...] = tuple(DragTableEntry(*row) for row in (
    (4200.0, 1.29081656775919e-09, 3.24121295355962),
    (3000.0, 0.0171422231434847, 1.27907168025204),
    (1470.0, 2.33355948302505e-03, 1.52693913274526),
    (1260.0, 7.97592111627665e-04, 1.67688974440324),
    (1110.0, 5.71086414289273e-12, 4.3212826264889),
    (960.0, 3.02865108244904e-17, 5.99074203776707),
    (670.0, 7.52285155782565e-06, 2.1738019851075),
    (540.0, 1.31766281225189e-05, 2.08774690257991),
    (0.0, 1.34504843776525e-05, 2.08702306738884),
))

G1_DRAG_TABLE: Tuple[DragTableEntry, ...] = tuple(DragTableEntry(*row) for row in (
    (4230.0, 1.477404177730177e-04, 1.9565),
    (3680.0, 1.920339268755614e-04, 1.925),
    (3450.0, 2.894751026819746e-04, 1.875),
    (3295.0, 4.349905111115636e-04, 1.825),
    (3130.0, 6.520421871892662e-04, 1.775),
    (2960.0, 9.748073694078696e-04, 1.725),
    (2830.0, 1.453721560187286e-03, 1.675),
    (2680.0, 2.162887202930376e-03, 1.625),
    (2460.0, 3.209559783129881e-03, 1.575),
    (2225.0, 3.904368218691249e-03, 1.55),
    (2015.0, 3.222942271262336e-03, 1.575),
    (1890.0, 2.203329542297809e-03, 1.625),
    (1810.0, 1.511001028891904e-03, 1.675),
    (1730.0, 8.609957592468259e-04, 1.75),
    (1595.0, 4.086146797305117e-04, 1.85),
    (1520.0, 1.954473210037398e-04, 1.95),
    (1420.0, 5.431896266462351e-05, 2.125),
    (1360.0, 8.847742581674416e-06, 2.375),
    (1315.0, 1.456922328720298e-06, 2.625),
    (1280.0, 2.419485191895565e-07, 2.875),
    (1220.0, 1.657956321067612e-08, 3.25),
    (1185.0, 4.745469537157371e-10, 3.75),
    (1150.0, 1.379746590025088e-11, 4.25),
    (1100.0, 4.070157961147882e-13, 4.75),
    (1060.0, 2.938236954847331e-14, 5.125),
))

DRAG_TABLES: Dict[DragFunction, Tuple[DragTableEntry, ...]] = {
    DragFunction.G1: G1_DRAG_TABLE,
    DragFunction.G7: G7_DRAG_TABLE,
}


def resolve_drag_function(key: Union[DragFunction, str]) -> DragFunction:
    """Accept a DragFunction or its name ('G7', 'g1', ...)."""
    if isinstance(key, DragFunction):
        return key
    try:
        return DragFunction(str(key).strip().upper())
    except ValueError:
        raise ValueError(
            f"Unknown drag function '{key}'. "
            f"Available: {[f.value for f in DragFunction]}"
        ) from None


# ══════════════════════════════════════════════════════════════════════════
#  Breakpoint lookup
# ══════════════════════════════════════════════════════════════════════════

class DragModel:
    """
    Retardation lookup for one reference drag function.

    Uses a binary search over the descending breakpoint table and clamps to
    the first/last entry outside the tabulated range.
    """

    def __init__(self, drag_function: Union[DragFunction, str] = DragFunction.G7):
        """
        Parameters
        ----------
        drag_function : DragFunction or str
            One of DragFunction.G1 / DragFunction.G7, or 'G1' / 'G7'
        """
        self.drag_function = resolve_drag_function(drag_function)
        self.name = self.drag_function.value
        self.table = DRAG_TABLES[self.drag_function]

    def coefficients(self, velocity_fps: float) -> Tuple[float, float]:
        """Return (A, M) for the segment containing ``velocity_fps``."""
        table = self.table
        first, last = table[0], table[-1]

        if velocity_fps <= 0.0 or velocity_fps <= last.velocity:
            return last.a, last.m
        if velocity_fps >= first.velocity:
            return first.a, first.m

        # table[lo].velocity >= v > table[hi].velocity
        lo, hi = 0, len(table) - 1
        while hi - lo > 1:
            mid = (lo + hi) // 2
            if table[mid].velocity < velocity_fps:
                hi = mid
            else:
                lo = mid
        entry = table[hi]
        return entry.a, entry.m

    def retardation(self, velocity: float, density_ratio: float,
                    bc: float) -> float:
        """
        Drag deceleration magnitude (m/s²).

        Parameters
        ----------
        velocity : float
            Air-relative speed (m/s)
        density_ratio : float
            Local air density over the 1.225 kg/m³ standard
        bc : float
            Ballistic coefficient referenced to this drag function

        Non-positive tabulated coefficients degrade to zero drag.
        """
        v_fps = mps_to_fps(velocity)
        a, m = self.coefficients(v_fps)
        if a <= 0.0 or m <= 0.0:
            return 0.0
        return fps_to_mps(a * v_fps ** m * density_ratio / bc)

    def __repr__(self) -> str:
        return f"DragModel({self.name})"


# Built once at import; shared read-only
_MODELS: Dict[DragFunction, DragModel] = {f: DragModel(f) for f in DragFunction}


def get_drag_model(drag_function: Union[DragFunction, str]) -> DragModel:
    return _MODELS[resolve_drag_function(drag_function)]


def retardation(velocity: float, drag_function: Union[DragFunction, str],
                density_ratio: float, bc: float) -> float:
    """Drag deceleration (m/s²) for ``velocity`` (m/s) on the given curve."""
    return get_drag_model(drag_function).retardation(velocity, density_ratio, bc)


if __name__ == "__main__":
    print("Drag Model — Retardation at standard density, BC = 1.0")
    print("=" * 50)
    print(f"{'v (m/s)':>10} {'G1 (m/s²)':>14} {'G7 (m/s²)':>14}")
    for v in [100, 200, 300, 340, 400, 600, 800, 1000, 1200]:
        g1 = retardation(v, DragFunction.G1, 1.0, 1.0)
        g7 = retardation(v, DragFunction.G7, 1.0, 1.0)
        print(f"{v:>10.0f} {g1:>14.3f} {g7:>14.3f}")
