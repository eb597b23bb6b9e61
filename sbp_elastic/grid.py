"""
grid.py — Transfinite Grid, Jacobian and Metric
================================================

A block is the image of the unit reference cube (p, q, r) in [0,1]^3.  The
physical coordinates are blended from the six face surfaces (transfinite
interpolation, Gordon & Hall 1973):

    x = faces - edges + corners

with the z contributions dropped entirely in 2D.  The coordinate-derivative
tensor xp[l, m] = dx_l/dxi_m is computed with the SBP operator, so the
discrete metric identities hold to round-off on linear maps.

    jac       = det(xp)
    metric    = xp^{-T},  metric[l, m] = dxi_l/dx_m
              = (xp[m+1, l+1] xp[m+2, l+2] - xp[m+1, l+2] xp[m+2, l+1]) / jac

(indices mod 3).  Directions m >= ndim are never differentiated: their column
of xp is the identity column, which reduces det/cofactors to the 2D case.
"""

import logging

import jax.numpy as jnp
import numpy as np

from .operators import sbp_diff

log = logging.getLogger(__name__)


def reference_spacing(nx):
    """Reference-cube grid spacing per dimension (1 for a single point)."""
    return tuple(1.0 / (n - 1) if n > 1 else 1.0 for n in nx)


# ============================================================
# Transfinite interpolation
# ============================================================

def transfinite_interpolation(surfaces, nx, ndim, jj, kk, ll):
    """
    Physical coordinates at block indices jj x kk x ll.

    Args:
        surfaces: list of 2*ndim Surface, face i of shape (3, n_a, n_b)
        nx:       (3,) block point counts
        ndim:     2 or 3
        jj, kk, ll: integer index arrays along x, y, z (block-relative)

    Returns:
        x: (3, len(jj), len(kk), len(ll))
    """
    dx = reference_spacing(nx)
    jj, kk, ll = (np.asarray(a) for a in (jj, kk, ll))
    p = jnp.asarray(jj * dx[0])[:, None, None]
    q = jnp.asarray(kk * dx[1])[None, :, None]
    r = jnp.asarray(ll * dx[2])[None, None, :]
    jc = np.clip(jj, 0, nx[0] - 1)
    kc = np.clip(kk, 0, nx[1] - 1)
    lc = np.clip(ll, 0, nx[2] - 1)
    ny1, nz1 = nx[1] - 1, nx[2] - 1
    s = [surf.x for surf in surfaces]

    # faces x = 0, 1 indexed (y, z); faces y = 0, 1 indexed (x, z)
    S0 = s[0][:, kc[:, None], lc[None, :]][:, None, :, :]
    S1 = s[1][:, kc[:, None], lc[None, :]][:, None, :, :]
    S2 = s[2][:, jc[:, None], lc[None, :]][:, :, None, :]
    S3 = s[3][:, jc[:, None], lc[None, :]][:, :, None, :]

    x = (1 - p) * S0 + p * S1 + (1 - q) * S2 + q * S3

    # edges parallel to z
    x = x - ((1 - q) * (1 - p) * s[0][:, 0, lc][:, None, None, :]
             + (1 - q) * p * s[1][:, 0, lc][:, None, None, :]
             + q * (1 - p) * s[0][:, ny1, lc][:, None, None, :]
             + q * p * s[1][:, ny1, lc][:, None, None, :])

    if ndim == 3:
        # faces z = 0, 1 indexed (x, y)
        S4 = s[4][:, jc[:, None], kc[None, :]][:, :, :, None]
        S5 = s[5][:, jc[:, None], kc[None, :]][:, :, :, None]
        x = x + (1 - r) * S4 + r * S5

        # edges parallel to y and to x
        x = x - ((1 - p) * (1 - r) * s[0][:, kc, 0][:, None, :, None]
                 + p * (1 - r) * s[1][:, kc, 0][:, None, :, None]
                 + (1 - p) * r * s[0][:, kc, nz1][:, None, :, None]
                 + p * r * s[1][:, kc, nz1][:, None, :, None])
        x = x - ((1 - q) * (1 - r) * s[2][:, jc, 0][:, :, None, None]
                 + q * (1 - r) * s[3][:, jc, 0][:, :, None, None]
                 + (1 - q) * r * s[2][:, jc, nz1][:, :, None, None]
                 + q * r * s[3][:, jc, nz1][:, :, None, None])

        # corners
        def corner(face, a, b):
            return s[face][:, a, b][:, None, None, None]

        x = x + ((1 - p) * (1 - q) * (1 - r) * corner(0, 0, 0)
                 + p * (1 - q) * (1 - r) * corner(1, 0, 0)
                 + (1 - p) * q * (1 - r) * corner(0, ny1, 0)
                 + p * q * (1 - r) * corner(1, ny1, 0)
                 + (1 - p) * (1 - q) * r * corner(0, 0, nz1)
                 + p * (1 - q) * r * corner(1, 0, nz1)
                 + (1 - p) * q * r * corner(0, ny1, nz1)
                 + p * q * r * corner(1, ny1, nz1))

    return x


# ============================================================
# Coordinate derivatives, Jacobian, metric
# ============================================================

def coordinate_derivatives(x, ndim, fd, bounds, dx):
    """
    xp[l, m] = dx_l/dxi_m on the window described by ``bounds``.

    Args:
        x:      (3, n0, n1, n2) coordinates on the process array (ghosts filled)
        ndim:   number of differentiated directions
        fd:     SBPCoefficients
        bounds: 3 StencilBounds
        dx:     (3,) reference spacing

    Returns:
        xp: (3, 3, w0, w1, w2)
    """
    window = tuple(b.hi - b.lo for b in bounds)
    xp = jnp.broadcast_to(jnp.eye(3)[:, :, None, None, None], (3, 3) + window)
    for m in range(ndim):
        index = [slice(None)] + [slice(b.lo, b.hi) for b in bounds]
        index[1 + m] = slice(None)
        dxdm = sbp_diff(x[tuple(index)], 1 + m, fd, bounds[m], dx[m])
        xp = xp.at[:, m].set(dxdm)
    return xp


def jacobian(xp):
    """Determinant of the (3, 3, ...) coordinate-derivative tensor."""
    return (xp[0, 0] * (xp[1, 1] * xp[2, 2] - xp[1, 2] * xp[2, 1])
            - xp[1, 0] * (xp[0, 1] * xp[2, 2] - xp[0, 2] * xp[2, 1])
            + xp[2, 0] * (xp[0, 1] * xp[1, 2] - xp[0, 2] * xp[1, 1]))


def metric_tensor(xp, jac, tol=1e-12):
    """
    Inverse transpose of xp by cofactors.

    Points with jac <= tol get a zero metric instead of inf/NaN.

    Returns:
        metric: (3, 3, ...)
        bad:    boolean mask of degenerate points
    """
    bad = jac <= tol
    safe = jnp.where(bad, 1.0, jac)
    rows = []
    for l in range(3):
        row = []
        for m in range(3):
            cof = (xp[(m+1) % 3, (l+1) % 3] * xp[(m+2) % 3, (l+2) % 3]
                   - xp[(m+1) % 3, (l+2) % 3] * xp[(m+2) % 3, (l+1) % 3])
            row.append(jnp.where(bad, 0.0, cof / safe))
        rows.append(jnp.stack(row))
    return jnp.stack(rows), bad


def report_degenerate(bad, x, origin):
    """
    Log degenerate Jacobian points.

    Args:
        bad:    boolean mask on the owned window
        x:      (3, ...) coordinates on the same window
        origin: (3,) global index of the window's first point

    Returns:
        number of degenerate points
    """
    count = int(jnp.sum(bad))
    if count:
        first = np.argwhere(np.asarray(bad))[0]
        index = tuple(int(origin[d] + first[d]) for d in range(3))
        coord = tuple(float(c) for c in np.asarray(x)[(slice(None),) + tuple(first)])
        log.warning("non-positive Jacobian at %d points; first at index %s, x = %s",
                    count, index, coord)
    return count


def build_grid_metric(fields, surfaces, coords, bounds, ndim, fd, tol=1e-12):
    """
    Fill coordinates, Jacobian and metric of one block, then exchange ghosts.

    Coordinates are evaluated on the owned window plus the block's ghost
    layers, so derivatives next to a process cut need no communication.

    Args:
        fields:   Fields
        surfaces: 2*ndim global Surface of the block
        coords:   3 Coord of the block on this process
        bounds:   3 StencilBounds (process-array indices)
        ndim:     2 or 3
        fd:       SBPCoefficients
        tol:      Jacobian threshold for degeneracy

    Returns:
        number of degenerate points on this process
    """
    nx = tuple(c.nx for c in coords)
    dx = reference_spacing(nx)

    # window with ghosts, in process and block-relative indices
    glo = [b.lo - c.xm_ghost for b, c in zip(bounds, coords)]
    ghi = [b.hi + c.xp_ghost for b, c in zip(bounds, coords)]
    rel = [np.arange(glo[d], ghi[d]) - bounds[d].lo + coords[d].xm_loc - coords[d].xm
           for d in range(3)]
    x_local = transfinite_interpolation(surfaces, nx, ndim, *rel)
    gwin = tuple(slice(glo[d], ghi[d]) for d in range(3))
    fields.x = fields.x.at[(slice(None),) + gwin].set(x_local)

    xp = coordinate_derivatives(fields.x, ndim, fd, bounds, dx)
    jac = jacobian(xp)
    metric, bad = metric_tensor(xp, jac, tol)

    win = tuple(slice(b.lo, b.hi) for b in bounds)
    origin = tuple(c.xm_loc for c in coords)
    count = report_degenerate(bad, fields.x[(slice(None),) + win], origin)

    fields.jac = fields.jac.at[win].set(jac)
    fields.metric = fields.metric.at[(slice(None), slice(None)) + win].set(metric)
    fields.exchange_grid()
    return count
