"""
boundary.py — Boundary Conditions as SAT Penalties
===================================================

At an external face with outward unit normal n the state is rotated into
(n, t1, t2) and split into characteristics, one per direction a in the
frame, with impedance Z = zp for the normal direction and zs for the two
tangential ones:

    w_out = tau_a - Z v_a        (leaves the block)
    w_in  = tau_a + Z v_a        (enters the block)

where tau_a = (R sigma R^T)[0, a] is the traction.  A boundary law fixes the
incoming characteristic from the outgoing one, w_in_hat = r w_out, which
defines the target ("hat") values

    v_hat   = (w_in_hat - w_out) / (2 Z)
    tau_hat = (w_in_hat + w_out) / 2

    absorbing: r =  0
    free:      r = -1   (tau_hat = 0)
    rigid:     r =  1   (v_hat = 0)

The SAT penalty pulls the face state towards the targets:

    df -= dt cp h R^T(normal part of (q - q_hat))
    df -= dt cs h R^T(tangential part of (q - q_hat))

with h = |grad xi_d| / (h0 dx_d), h0 the first SBP norm weight.  An
outgoing wave has q == q_hat, so it leaves without a penalty.
"""

import logging

import jax
import jax.numpy as jnp

from .rotation import (tangent_vectors, rotation_matrix, rotate_xy_nt, rotate_nt_xy,
                       to_full, from_full, face_traction,
                       normal_correction, tangential_correction)

log = logging.getLogger(__name__)

REFLECTION = {"absorbing": 0.0, "free": -1.0, "rigid": 1.0}
BOUNDARY_TYPES = tuple(REFLECTION) + ("none",)

IMPEDANCE_TOL = 1e-12


def face_window(bounds, d, index):
    """Block window with direction ``d`` reduced to the single plane ``index``."""
    win = [slice(b.lo, b.hi) for b in bounds]
    win[d] = slice(index, index + 1)
    return tuple(win)


def face_geometry(metric, win, d, sign, h0, dx):
    """
    Outward normals and penalty scale on a face.

    Args:
        metric: (3, 3, ...) on the process array
        win:    face window
        d:      face direction
        sign:   -1 low face, +1 high face
        h0:     first SBP norm weight
        dx:     reference spacing along d

    Returns:
        n: (3, ...) outward unit normals
        h: (...) penalty scale |metric[d]| / (h0 dx); no Jacobian factor, so
           h is 1 / (h0 times the physical spacing normal to the face)
    """
    row = metric[(d, slice(None)) + win]
    norm = jnp.sqrt(jnp.sum(row**2, axis=0))
    safe = jnp.where(norm > 0.0, norm, 1.0)
    return sign * row / safe, norm / (h0 * dx)


def rotated_face_state(f, win, R, mode):
    """Face state in the (n, t1, t2) frame: velocity and traction, (3, ...) each."""
    v, s = to_full(f[(slice(None),) + win], mode)
    v_rot, s_rot = rotate_xy_nt(v, s, R)
    return v_rot, face_traction(s_rot)


def sat_forcing(dv, dtr, R, mode, cp, cs, h, tangential=True):
    """
    Penalty forcing in the mode's state layout from rotated-frame mismatches.

    Args:
        dv, dtr:    (3, ...) velocity and traction mismatch (current - target)
        R:          (3, 3, ...) rotation with rows n, t1, t2
        mode:       Mode
        cp, cs, h:  wave speeds and penalty scale
        tangential: include the tangential characteristics

    Returns:
        (nfields, ...) forcing, to be subtracted times dt
    """
    v, s = rotate_nt_xy(*normal_correction(dv, dtr), R)
    out = cp * h * from_full(v, s, mode)
    if tangential:
        v, s = rotate_nt_xy(*tangential_correction(dv, dtr), R)
        out = out + cs * h * from_full(v, s, mode)
    return out


class Boundary:
    """
    One external face of a block.

    Args:
        location:  face index in [0, 2*ndim)
        boundtype: 'absorbing', 'free', 'rigid' or 'none'
        mode:      Mode
        coords:    3 Coord of the block
        bounds:    3 StencilBounds of the block
        dx:        (3,) reference spacing
        mat:       Material
        fd:        SBPCoefficients
        fields:    Fields (metric must be built)
        no_data:   True if the block owns no points on this process
    """

    def __init__(self, location, boundtype, mode, coords, bounds, dx, mat, fd, fields,
                 no_data=False):
        self.location = location
        self.boundtype = boundtype
        self.mode = mode
        self.direction = location // 2
        self.sign = 1 if location % 2 else -1
        self.mat = mat
        self.degenerate_impedance = False

        d = self.direction
        c = coords[d]
        owns_edge = c.xm_loc == c.xm if self.sign < 0 else c.xp_loc == c.xp
        self.no_data = no_data or boundtype == "none" or not owns_edge
        if self.no_data:
            return

        self.r = REFLECTION[boundtype]
        index = bounds[d].lo if self.sign < 0 else bounds[d].hi - 1
        self.win = face_window(bounds, d, index)
        n, self.h = face_geometry(fields.metric, self.win, d, self.sign, fd.h0, dx[d])
        t1, t2 = tangent_vectors(n)
        self.R = rotation_matrix(n, t1, t2)

        if mat.zs < IMPEDANCE_TOL:
            self.degenerate_impedance = True
            log.warning("face %d: shear impedance %.3e below tolerance, "
                        "tangential characteristics not penalized", location, mat.zs)

        self._apply = jax.jit(self._forcing)

    def hat(self, v_rot, tr):
        """Target velocity and traction in the rotated frame."""
        z = jnp.array([self.mat.zp, self.mat.zs, self.mat.zs])
        z = z.reshape((3,) + (1,) * (v_rot.ndim - 1))
        zsafe = jnp.where(z > IMPEDANCE_TOL, z, 1.0)
        w_out = tr - z * v_rot
        w_in = self.r * w_out
        v_hat = jnp.where(z > IMPEDANCE_TOL, (w_in - w_out) / (2.0 * zsafe), v_rot)
        tr_hat = jnp.where(z > IMPEDANCE_TOL, 0.5 * (w_in + w_out), tr)
        return v_hat, tr_hat

    def _forcing(self, dt, f, df):
        v_rot, tr = rotated_face_state(f, self.win, self.R, self.mode)
        v_hat, tr_hat = self.hat(v_rot, tr)
        forcing = sat_forcing(v_rot - v_hat, tr - tr_hat, self.R, self.mode,
                              self.mat.cp, self.mat.cs, self.h,
                              tangential=not self.degenerate_impedance)
        return df.at[(slice(None),) + self.win].add(-dt * forcing)

    def apply_bcs(self, dt, fields):
        """Add the boundary penalty of the current state to fields.df."""
        if self.no_data:
            return
        fields.df = self._apply(dt, fields.f, fields.df)
