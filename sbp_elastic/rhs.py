"""
rhs.py — Curvilinear Elastic Right-Hand Side
=============================================

Velocity-stress elastodynamics in reference coordinates xi with metric
M[d, m] = dxi_d/dx_m and Jacobian J:

    rho dv_k/dt     = (1/J) sum_d D_d( J sum_m M[d,m] sigma_km )
    dsigma_kl/dt    = lam delta_kl sum_{d,m} M[d,m] D_d v_m
                      + g sum_d ( M[d,l] D_d v_k + M[d,k] D_d v_l )

The velocity rows are in conservative form (the flux is differentiated), the
stress rows use the metric at the point.  Every direction d < ndim is
processed with the same three-region SBP traversal (sbp_diff); only the
per-row algebra differs between the three problem types.

Kernels take ``(dt, f, df, jac, metric)`` and return ``df`` with
``dt * rhs`` added on the block window: they accumulate, never overwrite,
so the caller scales or clears ``df`` according to its time integrator.
"""

from functools import partial

import jax
import jax.numpy as jnp

from .fields import Mode
from .operators import sbp_diff


def block_window(bounds):
    return tuple(slice(b.lo, b.hi) for b in bounds)


def directional_window(bounds, d, lead):
    """Block window in all axes except ``d``, which is taken whole."""
    index = [slice(None)] * lead + [slice(b.lo, b.hi) for b in bounds]
    index[lead + d] = slice(None)
    return tuple(index)


def _direction_terms(f, jac, metric, d, fd, bounds, dx):
    """
    Quantities shared by all kernels for one direction.

    Returns:
        F:  state on the directional window (nf, ...)
        Jd: Jacobian on the directional window
        Md: metric row d on the directional window, (3, ...)
        Mw: metric row d at the block window points, (3, ...)
        Jw: Jacobian at the block window points
        D:  derivative along d of an array with one leading component axis
    """
    F = f[directional_window(bounds, d, 1)]
    Jd = jac[directional_window(bounds, d, 0)]
    Md = metric[directional_window(bounds, d, 2)][d]
    win = block_window(bounds)
    Mw = metric[(d, slice(None)) + win]
    Jw = jac[win]

    def D(u):
        return sbp_diff(u, 1 + d, fd, bounds[d], dx[d])

    return F, Jd, Md, Mw, Jw, D


# ============================================================
# Mode II: vx, vy, sxx, sxy, syy
# ============================================================

def calc_df_mode2(dt, f, df, jac, metric, mat, fd, bounds, dx):
    win = (slice(None),) + block_window(bounds)
    lam2g = mat.lam + 2.0 * mat.g
    for d in range(2):
        F, Jd, Md, Mw, Jw, D = _direction_terms(f, jac, metric, d, fd, bounds, dx)
        vx, vy, sxx, sxy, syy = F
        flux = jnp.stack([Jd * (Md[0] * sxx + Md[1] * sxy),
                          Jd * (Md[0] * sxy + Md[1] * syy)])
        Dflux = D(flux)
        Dv = D(jnp.stack([vx, vy]))
        m0, m1 = Mw[0], Mw[1]
        scale = dt / (mat.rho * Jw)
        df = df.at[win].add(jnp.stack([
            scale * Dflux[0],
            scale * Dflux[1],
            dt * (lam2g * m0 * Dv[0] + mat.lam * m1 * Dv[1]),
            dt * mat.g * (m1 * Dv[0] + m0 * Dv[1]),
            dt * (lam2g * m1 * Dv[1] + mat.lam * m0 * Dv[0]),
        ]))
    return df


# ============================================================
# Mode III: vz, sxz, syz
# ============================================================

def calc_df_mode3(dt, f, df, jac, metric, mat, fd, bounds, dx):
    win = (slice(None),) + block_window(bounds)
    for d in range(2):
        F, Jd, Md, Mw, Jw, D = _direction_terms(f, jac, metric, d, fd, bounds, dx)
        vz, sxz, syz = F
        Dflux = D((Jd * (Md[0] * sxz + Md[1] * syz))[None])[0]
        Dvz = D(vz[None])[0]
        df = df.at[win].add(jnp.stack([
            dt / (mat.rho * Jw) * Dflux,
            dt * mat.g * Mw[0] * Dvz,
            dt * mat.g * Mw[1] * Dvz,
        ]))
    return df


# ============================================================
# 3D: vx, vy, vz, sxx, sxy, sxz, syy, syz, szz
# ============================================================

def calc_df_3d(dt, f, df, jac, metric, mat, fd, bounds, dx):
    win = (slice(None),) + block_window(bounds)
    lam2g = mat.lam + 2.0 * mat.g
    lam, g = mat.lam, mat.g
    for d in range(3):
        F, Jd, Md, Mw, Jw, D = _direction_terms(f, jac, metric, d, fd, bounds, dx)
        vx, vy, vz, sxx, sxy, sxz, syy, syz, szz = F
        flux = jnp.stack([Jd * (Md[0] * sxx + Md[1] * sxy + Md[2] * sxz),
                          Jd * (Md[0] * sxy + Md[1] * syy + Md[2] * syz),
                          Jd * (Md[0] * sxz + Md[1] * syz + Md[2] * szz)])
        Dflux = D(flux)
        Dvx, Dvy, Dvz = D(jnp.stack([vx, vy, vz]))
        m0, m1, m2 = Mw
        scale = dt / (mat.rho * Jw)
        df = df.at[win].add(jnp.stack([
            scale * Dflux[0],
            scale * Dflux[1],
            scale * Dflux[2],
            dt * (lam2g * m0 * Dvx + lam * (m1 * Dvy + m2 * Dvz)),
            dt * g * (m1 * Dvx + m0 * Dvy),
            dt * g * (m2 * Dvx + m0 * Dvz),
            dt * (lam2g * m1 * Dvy + lam * (m0 * Dvx + m2 * Dvz)),
            dt * g * (m2 * Dvy + m1 * Dvz),
            dt * (lam2g * m2 * Dvz + lam * (m0 * Dvx + m1 * Dvy)),
        ]))
    return df


KERNELS = {
    Mode.MODE2: calc_df_mode2,
    Mode.MODE3: calc_df_mode3,
    Mode.THREE_D: calc_df_3d,
}


def make_df_kernel(mode, mat, fd, bounds, dx):
    """
    JIT-compiled right-hand-side kernel of one block.

    Block constants (material, stencil tables, index regions, spacing) are
    frozen with functools.partial, so the kernel compiles once.

    Returns:
        kernel(dt, f, df, jac, metric) -> df
    """
    return jax.jit(partial(KERNELS[mode], mat=mat, fd=fd, bounds=tuple(bounds),
                           dx=tuple(dx)))
