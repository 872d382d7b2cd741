"""
Simplex Noise
=============
Three-input gradient noise used as the scalar potential ψ(x, y, t) of the
wind field: two spatial inputs (downrange, crossrange) and one temporal.

Simplex noise is preferred over classic Perlin noise here because its radial
kernel (0.6 - r²)⁴ has continuous first derivatives everywhere, so the
finite-difference curl taken by the wind field is smooth in space and time.

Each instance owns its own permutation table and coordinate offsets, drawn
from the RandomSource it is built with.
"""

import math
from typing import Optional

from .random_source import RandomSource


# 12 gradients pointing to the midpoints of the cube edges
GRAD3 = (
    (1, 1, 0), (-1, 1, 0), (1, -1, 0), (-1, -1, 0),
    (1, 0, 1), (-1, 0, 1), (1, 0, -1), (-1, 0, -1),
    (0, 1, 1), (0, -1, 1), (0, 1, -1), (0, -1, -1),
)

F3 = 1.0 / 3.0
G3 = 1.0 / 6.0
KERNEL_RADIUS_SQ = 0.6
OUTPUT_SCALE = 32.0
OFFSET_RANGE = 1000.0


class SimplexNoise:
    """
    3-D simplex noise returning values in roughly [-1, 1].

    Parameters
    ----------
    rng : RandomSource, optional
        Source for the permutation table and coordinate offsets. A fresh,
        unseeded source is used when omitted.
    """

    def __init__(self, rng: Optional[RandomSource] = None):
        rng = rng if rng is not None else RandomSource()

        p = list(range(256))
        rng.shuffle(p)
        self._perm = p + p

        # Offsets keep the lattice points (where noise is exactly zero)
        # away from the integer coordinates callers tend to sample.
        self.offset_x = rng.uniform(0.0, OFFSET_RANGE)
        self.offset_y = rng.uniform(0.0, OFFSET_RANGE)
        self.offset_z = rng.uniform(0.0, OFFSET_RANGE)

    def noise3d(self, x: float, y: float, z: float) -> float:
        x += self.offset_x
        y += self.offset_y
        z += self.offset_z

        # Skew into simplex space to find the containing cell
        s = (x + y + z) * F3
        i = math.floor(x + s)
        j = math.floor(y + s)
        k = math.floor(z + s)

        t = (i + j + k) * G3
        x0 = x - (i - t)
        y0 = y - (j - t)
        z0 = z - (k - t)

        # Which of the six tetrahedra are we in?
        if x0 >= y0:
            if y0 >= z0:
                i1, j1, k1, i2, j2, k2 = 1, 0, 0, 1, 1, 0
            elif x0 >= z0:
                i1, j1, k1, i2, j2, k2 = 1, 0, 0, 1, 0, 1
            else:
                i1, j1, k1, i2, j2, k2 = 0, 0, 1, 1, 0, 1
        else:
            if y0 < z0:
                i1, j1, k1, i2, j2, k2 = 0, 0, 1, 0, 1, 1
            elif x0 < z0:
                i1, j1, k1, i2, j2, k2 = 0, 1, 0, 0, 1, 1
            else:
                i1, j1, k1, i2, j2, k2 = 0, 1, 0, 1, 1, 0

        x1 = x0 - i1 + G3
        y1 = y0 - j1 + G3
        z1 = z0 - k1 + G3
        x2 = x0 - i2 + 2.0 * G3
        y2 = y0 - j2 + 2.0 * G3
        z2 = z0 - k2 + 2.0 * G3
        x3 = x0 - 1.0 + 3.0 * G3
        y3 = y0 - 1.0 + 3.0 * G3
        z3 = z0 - 1.0 + 3.0 * G3

        ii = i & 255
        jj = j & 255
        kk = k & 255
        perm = self._perm

        gi0 = perm[ii + perm[jj + perm[kk]]] % 12
        gi1 = perm[ii + i1 + perm[jj + j1 + perm[kk + k1]]] % 12
        gi2 = perm[ii + i2 + perm[jj + j2 + perm[kk + k2]]] % 12
        gi3 = perm[ii + 1 + perm[jj + 1 + perm[kk + 1]]] % 12

        total = (
            _corner(GRAD3[gi0], x0, y0, z0)
            + _corner(GRAD3[gi1], x1, y1, z1)
            + _corner(GRAD3[gi2], x2, y2, z2)
            + _corner(GRAD3[gi3], x3, y3, z3)
        )
        return OUTPUT_SCALE * total

    __call__ = noise3d


def _corner(grad, x: float, y: float, z: float) -> float:
    """Contribution of one simplex corner."""
    t = KERNEL_RADIUS_SQ - x * x - y * y - z * z
    if t < 0.0:
        return 0.0
    t *= t
    return t * t * (grad[0] * x + grad[1] * y + grad[2] * z)
