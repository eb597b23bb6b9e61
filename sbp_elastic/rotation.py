"""
rotation.py — Normal/Tangential Frames and State Rotation
==========================================================

At a face the state is expressed in the orthonormal frame (n, t1, t2):

    R = [n; t1; t2]          (rows)
    v'     = R v
    sigma' = R sigma R^T

so v'[0] is the normal velocity, sigma'[0, 0] the normal traction and
sigma'[0, 1], sigma'[0, 2] the shear tractions.  The inverse is R^T (.) R.

Tangents come from a largest-component pivot, so an axis-aligned normal
never produces a degenerate tangent:

    |n0| largest:       t1 = (-n1,  n0,   0) / |(n0, n1)|
    else |n1| > |n2|:   t1 = ( n1, -n0,   0) / |(n0, n1)|
    else:               t1 = ( n2,   0, -n0) / |(n0, n2)|
    t2 = n x t1

Every mode is carried through the full 9-component tuple (3 velocities, 6
independent stresses); components that do not exist in a 2D mode are zero.
"""

import jax.numpy as jnp

from .fields import Mode


def tangent_vectors(n):
    """
    Unit tangents for unit normals.

    Args:
        n: (3, ...) unit normals

    Returns:
        t1, t2: (3, ...) each
    """
    n0, n1, n2 = n[0], n[1], n[2]
    a0, a1, a2 = jnp.abs(n0), jnp.abs(n1), jnp.abs(n2)
    r01 = jnp.sqrt(n0**2 + n1**2)
    r02 = jnp.sqrt(n0**2 + n2**2)
    r01 = jnp.where(r01 > 0.0, r01, 1.0)
    r02 = jnp.where(r02 > 0.0, r02, 1.0)
    zero = jnp.zeros_like(n0)

    c1 = (a0 > a1) & (a0 > a2)
    c2 = ~c1 & (a1 > a2)
    t1 = jnp.where(c1, jnp.stack([-n1, n0, zero]) / r01,
                   jnp.where(c2, jnp.stack([n1, -n0, zero]) / r01,
                             jnp.stack([n2, zero, -n0]) / r02))
    t2 = jnp.cross(n, t1, axis=0)
    return t1, t2


def rotation_matrix(n, t1, t2):
    """R[a, i, ...] with rows n, t1, t2."""
    return jnp.stack([n, t1, t2])


def rotate_xy_nt(v, s, R):
    """Physical frame -> (n, t1, t2) frame."""
    v_rot = jnp.einsum('ai...,i...->a...', R, v)
    s_rot = jnp.einsum('ai...,ij...,bj...->ab...', R, s, R)
    return v_rot, s_rot


def rotate_nt_xy(v_rot, s_rot, R):
    """(n, t1, t2) frame -> physical frame."""
    v = jnp.einsum('ai...,a...->i...', R, v_rot)
    s = jnp.einsum('ai...,ab...,bj...->ij...', R, s_rot, R)
    return v, s


# ============================================================
# State <-> (velocity vector, stress tensor)
# ============================================================

_STRESS = {"sxx": (0, 0), "sxy": (0, 1), "sxz": (0, 2),
           "syy": (1, 1), "syz": (1, 2), "szz": (2, 2)}
_VELOCITY = {"vx": 0, "vy": 1, "vz": 2}


def to_full(state, mode: Mode):
    """
    Expand a mode's state into a velocity vector and symmetric stress tensor.

    Args:
        state: (nfields, ...) components in the mode's layout
        mode:  Mode

    Returns:
        v: (3, ...), s: (3, 3, ...)
    """
    zero = jnp.zeros_like(state[0])
    v = [zero, zero, zero]
    s = [[zero] * 3 for _ in range(3)]
    for k, name in enumerate(mode.components):
        if name in _VELOCITY:
            v[_VELOCITY[name]] = state[k]
        else:
            i, j = _STRESS[name]
            s[i][j] = state[k]
            s[j][i] = state[k]
    return jnp.stack(v), jnp.stack([jnp.stack(row) for row in s])


def from_full(v, s, mode: Mode):
    """Inverse of :func:`to_full`; components absent from the mode are dropped."""
    out = []
    for name in mode.components:
        if name in _VELOCITY:
            out.append(v[_VELOCITY[name]])
        else:
            i, j = _STRESS[name]
            out.append(s[i, j])
    return jnp.stack(out)


def face_traction(s_rot):
    """Traction components (s_nn, s_nt1, s_nt2) in the rotated frame."""
    return s_rot[0]


def normal_correction(dv, dtr):
    """
    Rotated-frame state carrying only the normal characteristic.

    Args:
        dv:  (3, ...) velocity in the rotated frame
        dtr: (3, ...) traction in the rotated frame

    Returns:
        v_rot (3, ...), s_rot (3, 3, ...)
    """
    zero = jnp.zeros_like(dv[0])
    v = jnp.stack([dv[0], zero, zero])
    s = jnp.zeros((3, 3) + dv.shape[1:], dtype=dv.dtype).at[0, 0].set(dtr[0])
    return v, s


def tangential_correction(dv, dtr):
    """Rotated-frame state carrying only the two tangential characteristics."""
    zero = jnp.zeros_like(dv[0])
    v = jnp.stack([zero, dv[1], dv[2]])
    s = jnp.zeros((3, 3) + dv.shape[1:], dtype=dv.dtype)
    s = s.at[0, 1].set(dtr[1]).at[1, 0].set(dtr[1])
    s = s.at[0, 2].set(dtr[2]).at[2, 0].set(dtr[2])
    return v, s
