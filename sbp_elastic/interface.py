"""
interface.py — Locked Interface Between Two Blocks
===================================================

Block 2 follows block 1 along ``direction``; the last plane of block 1 and
the first plane of block 2 are one grid index apart and coincide physically.

Side 1 uses the frame (n, t1, t2) with n the outward normal of block 1;
side 2 uses (-n, -t1, -t2), so on both sides a positive rotated velocity
points out of the block and the rotated tractions are equal when the
physical tractions are.  With w_i = tau_i - Z_i v_i (outgoing characteristic
of side i) the locked (welded) contact gives, per frame direction,

    V     = (w2 - w1) / (Z1 + Z2)
    T     = (Z2 w1 + Z1 w2) / (Z1 + Z2)

    v1_hat = V,  v2_hat = -V,  tau1_hat = tau2_hat = T

i.e. continuous velocity and traction, weighted towards the stiffer side.
Z is zp for the normal direction and zs for the tangential ones.  Each side
is penalized towards its targets exactly like a boundary (see boundary.py),
with its own wave speeds and penalty scale.

The interface references its blocks by id only; everything needed per stage
is copied at construction.
"""

import logging

import jax
import jax.numpy as jnp

from .boundary import (IMPEDANCE_TOL, face_window, face_geometry, rotated_face_state,
                       sat_forcing)
from .errors import InterfaceMismatchError, PreconditionError
from .rotation import tangent_vectors, rotation_matrix

log = logging.getLogger(__name__)


def locked_solve(v1, tr1, v2, tr2, z1, z2):
    """
    Targets of a locked interface in the two rotated frames.

    Args:
        v1, tr1: (3, ...) side-1 velocity and traction
        v2, tr2: (3, ...) side-2 velocity and traction
        z1, z2:  (3,) impedances per frame direction

    Returns:
        v1_hat, tr1_hat, v2_hat, tr2_hat
    """
    shape = (3,) + (1,) * (v1.ndim - 1)
    z1 = jnp.asarray(z1).reshape(shape)
    z2 = jnp.asarray(z2).reshape(shape)
    zsum = z1 + z2
    ok = zsum > IMPEDANCE_TOL
    zsum = jnp.where(ok, zsum, 1.0)
    w1 = tr1 - z1 * v1
    w2 = tr2 - z2 * v2
    V = (w2 - w1) / zsum
    T = (z2 * w1 + z1 * w2) / zsum
    return (jnp.where(ok, V, v1), jnp.where(ok, T, tr1),
            jnp.where(ok, -V, v2), jnp.where(ok, T, tr2))


class Interface:
    """
    Locked interface across the high face of block 1 in ``direction``.

    Args:
        id1, id2:   block ids (block 2 follows block 1 along ``direction``)
        direction:  0, 1 or 2
        b1, b2:     the two Block objects (only read during construction)
        fields:     Fields with the metric built and exchanged
        fd:         SBPCoefficients
    """

    def __init__(self, id1, id2, direction, b1, b2, fields, fd):
        self.id1, self.id2 = id1, id2
        self.face1, self.face2 = 2 * direction + 1, 2 * direction
        self.direction = d = direction
        self.mode = b1.mode
        self.mat1, self.mat2 = b1.mat, b2.mat
        self.degenerate_impedance = False

        c1, c2 = b1.coords, b2.coords
        if c2[d].xm != c1[d].xp + 1:
            raise PreconditionError(
                f"blocks {id1} and {id2} are not adjacent in direction {d}")
        for e in range(3):
            if e == d:
                continue
            if c1[e].nx != c2[e].nx or c1[e].xm != c2[e].xm:
                raise InterfaceMismatchError(
                    f"blocks {id1} and {id2}: face points differ in direction {e} "
                    f"({c1[e].nx} from {c1[e].xm} vs {c2[e].nx} from {c2[e].xm})")

        has1 = not b1.no_data and c1[d].xp_loc == c1[d].xp
        has2 = not b2.no_data and c2[d].xm_loc == c2[d].xm
        self.no_data = not (has1 or has2)
        if self.no_data:
            return

        if has1 and has2:
            for e in range(3):
                if e != d and (c1[e].nx_loc != c2[e].nx_loc or c1[e].xm_loc != c2[e].xm_loc):
                    raise InterfaceMismatchError(
                        f"blocks {id1} and {id2}: local face points differ in direction {e}")

        if has1:
            bounds = b1.bounds
            i1 = bounds[d].hi - 1
        else:
            bounds = b2.bounds
            i1 = bounds[d].lo - 1
        self.delta = 1
        self.win1 = face_window(bounds, d, i1)
        self.win2 = face_window(bounds, d, i1 + self.delta)

        n, self.h1 = face_geometry(fields.metric, self.win1, d, 1, fd.h0, b1.dx[d])
        _, self.h2 = face_geometry(fields.metric, self.win2, d, -1, fd.h0, b2.dx[d])
        t1, t2 = tangent_vectors(n)
        self.R1 = rotation_matrix(n, t1, t2)
        self.R2 = -self.R1

        if self.mat1.zs + self.mat2.zs < IMPEDANCE_TOL:
            self.degenerate_impedance = True
            log.warning("interface %d|%d: shear impedance vanishes on both sides, "
                        "tangential characteristics not penalized", id1, id2)

        self._apply = jax.jit(self._forcing)

    def _forcing(self, dt, f, df):
        m1, m2 = self.mat1, self.mat2
        v1, tr1 = rotated_face_state(f, self.win1, self.R1, self.mode)
        v2, tr2 = rotated_face_state(f, self.win2, self.R2, self.mode)
        v1_hat, tr1_hat, v2_hat, tr2_hat = locked_solve(
            v1, tr1, v2, tr2, (m1.zp, m1.zs, m1.zs), (m2.zp, m2.zs, m2.zs))
        tangential = not self.degenerate_impedance
        forcing1 = sat_forcing(v1 - v1_hat, tr1 - tr1_hat, self.R1, self.mode,
                               m1.cp, m1.cs, self.h1, tangential)
        forcing2 = sat_forcing(v2 - v2_hat, tr2 - tr2_hat, self.R2, self.mode,
                               m2.cp, m2.cs, self.h2, tangential)
        df = df.at[(slice(None),) + self.win1].add(-dt * forcing1)
        return df.at[(slice(None),) + self.win2].add(-dt * forcing2)

    def apply_bcs(self, dt, fields):
        """Add both sides' interface penalties to fields.df."""
        if self.no_data:
            return
        fields.df = self._apply(dt, fields.f, fields.df)
