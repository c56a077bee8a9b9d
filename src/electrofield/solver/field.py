"""
Point-charge superposition solver.

For every query point p the contributions of all charges are summed in scene
order:

    V_i = k q_i / r_i
    E_i = k q_i (p - p_i) / r_i^3
    r_i = max(|p - p_i|, SOFTENING_RADIUS)

The softening radius is a numerical-stability constant, not a physical
parameter: it keeps V and E bounded at a charge's center.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence

import numba as nb
import numpy as np

from electrofield.config import COULOMB_CONSTANT, MICRO, SOFTENING_RADIUS

if TYPE_CHECKING:
    import numpy.typing as npt

    from electrofield.model.charges import Charge


@dataclass(frozen=True)
class FieldSample:
    potential: float  # V
    ex: float  # V/m
    ey: float  # V/m

    @property
    def magnitude(self) -> float:
        return math.hypot(self.ex, self.ey)


def charge_arrays(
    charges: Sequence[Charge],
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """Split charges into (x, y, q[C]) arrays, keeping scene order."""
    n = len(charges)
    cx = np.empty(n, dtype=np.float64)
    cy = np.empty(n, dtype=np.float64)
    cq = np.empty(n, dtype=np.float64)
    for i, charge in enumerate(charges):
        cx[i] = charge.x
        cy[i] = charge.y
        cq[i] = charge.q * MICRO
    return cx, cy, cq


# ---- JIT'd superposition kernels ----
# fastmath stays off: summation must run in charge order.

@nb.njit(cache=True)
def _superpose_points(
    px: npt.NDArray[np.float64],
    py: npt.NDArray[np.float64],
    cx: npt.NDArray[np.float64],
    cy: npt.NDArray[np.float64],
    cq: npt.NDArray[np.float64],
    k: float,
    softening: float,
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    n_pts = px.shape[0]
    potential = np.zeros(n_pts)
    ex = np.zeros(n_pts)
    ey = np.zeros(n_pts)
    for j in range(n_pts):
        v = 0.0
        fx = 0.0
        fy = 0.0
        for i in range(cx.shape[0]):
            dx = px[j] - cx[i]
            dy = py[j] - cy[i]
            r = math.sqrt(dx * dx + dy * dy)
            if r < softening:
                r = softening
            kq = k * cq[i]
            v += kq / r
            inv_r3 = 1.0 / (r * r * r)
            fx += kq * dx * inv_r3
            fy += kq * dy * inv_r3
        potential[j] = v
        ex[j] = fx
        ey[j] = fy
    return potential, ex, ey


@nb.njit(cache=True)
def _superpose_grid(
    xs: npt.NDArray[np.float64],
    ys: npt.NDArray[np.float64],
    cx: npt.NDArray[np.float64],
    cy: npt.NDArray[np.float64],
    cq: npt.NDArray[np.float64],
    k: float,
    softening: float,
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    ny = ys.shape[0]
    nx = xs.shape[0]
    potential = np.zeros((ny, nx))
    ex = np.zeros((ny, nx))
    ey = np.zeros((ny, nx))
    for row in range(ny):
        for col in range(nx):
            v = 0.0
            fx = 0.0
            fy = 0.0
            for i in range(cx.shape[0]):
                dx = xs[col] - cx[i]
                dy = ys[row] - cy[i]
                r = math.sqrt(dx * dx + dy * dy)
                if r < softening:
                    r = softening
                kq = k * cq[i]
                v += kq / r
                inv_r3 = 1.0 / (r * r * r)
                fx += kq * dx * inv_r3
                fy += kq * dy * inv_r3
            potential[row, col] = v
            ex[row, col] = fx
            ey[row, col] = fy
    return potential, ex, ey


# ---- Public API ----

def field_at(charges: Sequence[Charge], x: float, y: float) -> FieldSample:
    """Potential and field vector at a single point."""
    v, ex, ey = field_at_points(charges, np.array([x], dtype=np.float64), np.array([y], dtype=np.float64))
    return FieldSample(potential=float(v[0]), ex=float(ex[0]), ey=float(ey[0]))


def field_at_points(
    charges: Sequence[Charge],
    xs: npt.ArrayLike,
    ys: npt.ArrayLike,
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """
    Potential and field components at a batch of points.

    Args:
        charges: Charges in scene order.
        xs: (N,) x coordinates in meters.
        ys: (N,) y coordinates in meters.

    Returns:
        (V, Ex, Ey), each of shape (N,).

    Raises:
        ValueError: If xs and ys differ in shape.
    """
    px = np.ascontiguousarray(xs, dtype=np.float64).ravel()
    py = np.ascontiguousarray(ys, dtype=np.float64).ravel()
    if px.shape != py.shape:
        raise ValueError(f"xs and ys must match, got {px.shape} and {py.shape}.")
    cx, cy, cq = charge_arrays(charges)
    return _superpose_points(px, py, cx, cy, cq, COULOMB_CONSTANT, SOFTENING_RADIUS)


def grid_axes(nx: int, ny: int, width: float, height: float) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """Cell-center coordinates of an (ny, nx) grid covering [0, width] x [0, height]."""
    xs = (np.arange(nx, dtype=np.float64) + 0.5) * (width / nx)
    ys = (np.arange(ny, dtype=np.float64) + 0.5) * (height / ny)
    return xs, ys


def sample_grid(
    charges: Sequence[Charge],
    nx: int,
    ny: int,
    width: float,
    height: float,
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """
    Evaluate the solver at every cell center of a regular grid.

    Returns:
        (V, Ex, Ey), each of shape (ny, nx); row index follows y.
    """
    if nx <= 0 or ny <= 0:
        raise ValueError(f"Grid resolution must be positive, got {nx}x{ny}.")
    xs, ys = grid_axes(nx, ny, width, height)
    cx, cy, cq = charge_arrays(charges)
    return _superpose_grid(xs, ys, cx, cy, cq, COULOMB_CONSTANT, SOFTENING_RADIUS)
