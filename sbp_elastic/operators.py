"""
operators.py — Collocated SBP First-Derivative Stencils
========================================================

Diagonal-norm SBP first-derivative operators on a collocated grid with
``N`` points.  An operator of "sbp order" p has

    interior stencil: 2p-1 points, centered, accuracy 2(p-1)
    boundary closure: 2(p-1) rows acting on the first 3(p-1) points

and the right closure is the left one mirrored with a sign flip:

    D[N-1-r, N-1-c] = -D[r, c]

SBP Property:
    H D + (H D)^T = diag(-1, 0, ..., 0, 1)

Supported orders:
    2 — 2nd order interior / 1st order boundary (H = diag(1/2, 1, ..., 1/2))
    3 — 4th order interior / 2nd order boundary (Strand 1994 / Mattsson 2004)

The same three-region traversal (left closure, interior, right closure) is
used for coordinate derivatives in grid construction and for the elastic
right-hand side, through :func:`sbp_diff`.
"""

import jax
import jax.numpy as jnp
import numpy as np
from typing import NamedTuple

from .errors import PreconditionError


class SBPCoefficients(NamedTuple):
    """Coefficient tables for one SBP first-derivative operator."""
    order: int             # sbp order p
    interior: np.ndarray   # (2p-1,) interior stencil, offsets -(p-1)..(p-1)
    closure: np.ndarray    # (2(p-1), 3(p-1)) left boundary rows
    norm: np.ndarray       # (2(p-1),) diagonal norm weights of the closure rows
    h0: float              # first norm weight, used for SAT scaling


class StencilBounds(NamedTuple):
    """Process-array index regions for one dimension: [lo,mc) [mc,mrb) [mrb,hi)."""
    lo: int
    mc: int
    mrb: int
    hi: int


SUPPORTED_ORDERS = (2, 3)


def sbp_coefficients(order: int) -> SBPCoefficients:
    """
    Coefficient tables for the SBP operator of the given order.

    Args:
        order: sbp order (2 or 3)

    Returns:
        SBPCoefficients
    """
    if order == 2:
        interior = np.array([-0.5, 0.0, 0.5])
        closure = np.array([
            [-1.0, 1.0, 0.0],
            [-0.5, 0.0, 0.5],
        ])
        norm = np.array([0.5, 1.0])
    elif order == 3:
        interior = np.array([1/12, -2/3, 0.0, 2/3, -1/12])
        closure = np.array([
            [-24/17, 59/34, -4/17, -3/34, 0.0, 0.0],
            [-1/2, 0.0, 1/2, 0.0, 0.0, 0.0],
            [4/43, -59/86, 0.0, 59/86, -4/43, 0.0],
            [3/98, 0.0, -59/98, 0.0, 32/49, -4/49],
        ])
        norm = np.array([17/48, 59/48, 43/48, 49/48])
    else:
        raise PreconditionError(
            f"unsupported sbp order {order}, expected one of {SUPPORTED_ORDERS}")
    return SBPCoefficients(order=order, interior=interior, closure=closure,
                           norm=norm, h0=float(norm[0]))


def closure_width(fd: SBPCoefficients) -> int:
    """Number of boundary closure rows."""
    return fd.closure.shape[0]


def derivative_matrix(fd: SBPCoefficients, N: int, dx: float = 1.0) -> jnp.ndarray:
    """
    Dense (N, N) derivative matrix with closures at both ends.

    Args:
        fd: coefficient tables
        N:  number of grid points, at least 2 * closure rows
        dx: grid spacing

    Returns:
        D: (N, N)
    """
    nb, nc = fd.closure.shape
    if N < 2 * nb:
        raise PreconditionError(f"need at least {2*nb} points, got {N}")
    w = fd.order - 1
    D = np.zeros((N, N))
    for i in range(nb, N - nb):
        D[i, i - w:i + w + 1] = fd.interior
    for r in range(nb):
        for c in range(nc):
            D[r, c] = fd.closure[r, c]
            D[N - 1 - r, N - 1 - c] = -fd.closure[r, c]
    return jnp.array(D / dx)


def norm_matrix(fd: SBPCoefficients, N: int, dx: float = 1.0) -> jnp.ndarray:
    """Diagonal of the SBP norm H for N points."""
    nb = fd.norm.size
    h = np.ones(N)
    h[:nb] = fd.norm
    h[N - nb:] = fd.norm[::-1]
    return jnp.array(h * dx)


# ============================================================
# Three-region traversal
# ============================================================

def sbp_diff(u, axis, fd, bounds, dx):
    """
    Apply the SBP first derivative along one axis over an index window.

    Rows in [lo, mc) use the left closure, rows in [mc, mrb) the interior
    stencil, rows in [mrb, hi) the mirrored right closure.  Interior rows
    read up to p-1 points beyond the window, which must be ghosts when the
    window edge is a process cut.

    Args:
        u:      array, differentiated along ``axis``
        axis:   axis index
        fd:     SBPCoefficients
        bounds: StencilBounds for this axis
        dx:     reference grid spacing

    Returns:
        du: same shape as u except ``hi - lo`` points along ``axis``
    """
    lo, mc, mrb, hi = bounds
    w = fd.order - 1
    v = jnp.moveaxis(u, axis, 0)
    parts = []

    for i in range(lo, mc):
        row = fd.closure[i - lo]
        parts.append(sum(float(c) * v[lo + n] for n, c in enumerate(row) if c != 0.0)[None])

    if mrb > mc:
        parts.append(sum(float(c) * v[mc - w + n:mrb - w + n]
                         for n, c in enumerate(fd.interior) if c != 0.0))

    for i in range(mrb, hi):
        row = fd.closure[hi - 1 - i]
        parts.append(-sum(float(c) * v[hi - 1 - n] for n, c in enumerate(row) if c != 0.0)[None])

    du = jnp.concatenate(parts, axis=0) / dx
    return jnp.moveaxis(du, 0, axis)
