"""
surface.py — Block Face Descriptors
====================================

A Surface is the (3, na, nb) array of physical points on one face of a block.
Face ``location`` in [0, 2*ndim) sits at the low (even) or high (odd) end of
direction ``location // 2``; its two index axes are the remaining directions
in increasing order:

    direction 0: (y, z)     direction 1: (x, z)     direction 2: (x, y)

Edges of a surface, used to check that adjoining faces meet:

    0: first index at 0     1: first index at na-1
    2: second index at 0    3: second index at nb-1
"""

import jax.numpy as jnp
import numpy as np

FACE_AXES = ((1, 2), (0, 2), (0, 1))

# (surface i, surface j, edge on i, edge on j) for faces sharing a block edge
SHARED_EDGES = (
    (0, 2, 0, 0), (0, 3, 1, 0), (1, 2, 0, 1), (1, 3, 1, 1),
    (0, 4, 2, 0), (0, 5, 3, 0), (1, 4, 2, 1), (1, 5, 3, 1),
    (2, 4, 2, 2), (2, 5, 3, 2), (3, 4, 2, 3), (3, 5, 3, 3),
)


class Surface:
    """
    Physical points of one block face.

    Args:
        x:         (3, na, nb) coordinates
        direction: normal direction of the face (0, 1, 2)
        sign:      -1 for the low face, +1 for the high face
    """

    def __init__(self, x, direction, sign):
        self.x = jnp.asarray(x, dtype=jnp.float64)
        self.direction = direction
        self.sign = sign

    @classmethod
    def planar(cls, nx, location, x0=(0.0, 0.0, 0.0), l=(1.0, 1.0, 1.0)):
        """
        Face of the box [x0, x0 + l] sampled with the block's point counts.

        Args:
            nx:       (3,) block point counts
            location: face index
            x0:       (3,) lower corner
            l:        (3,) edge lengths
        """
        d = location // 2
        sign = 1 if location % 2 else -1
        a, b = FACE_AXES[d]
        sa = np.linspace(0.0, 1.0, nx[a]) if nx[a] > 1 else np.zeros(1)
        sb = np.linspace(0.0, 1.0, nx[b]) if nx[b] > 1 else np.zeros(1)
        x = np.zeros((3, sa.size, sb.size))
        x[:] = np.asarray(x0, dtype=float)[:, None, None]
        if sign > 0:
            x[d] += l[d]
        x[a] += l[a] * sa[:, None]
        x[b] += l[b] * sb[None, :]
        return cls(x, d, sign)

    @property
    def shape(self):
        return self.x.shape[1:]

    def normals(self):
        """
        Outward unit normals, (3, na, nb).

        Tangents are centered differences of the face points; a face with a
        single point along its second axis (2D) uses e_z there.
        """
        na, nb = self.shape
        if na > 1:
            ta = jnp.gradient(self.x, axis=1)
        else:
            ta = jnp.zeros_like(self.x).at[FACE_AXES[self.direction][0]].set(1.0)
        if nb > 1:
            tb = jnp.gradient(self.x, axis=2)
        else:
            tb = jnp.zeros_like(self.x).at[2].set(1.0)
        n = jnp.cross(ta, tb, axis=0)
        n = n / jnp.linalg.norm(n, axis=0, keepdims=True)
        return self.sign * (-1) ** self.direction * n

    def edge(self, index):
        if index == 0:
            return self.x[:, 0, :]
        if index == 1:
            return self.x[:, -1, :]
        if index == 2:
            return self.x[:, :, 0]
        return self.x[:, :, -1]

    def has_same_edge(self, edge, other_edge, other, tol=1e-12):
        """True if edge ``edge`` of this surface coincides with ``other_edge`` of ``other``."""
        e1 = self.edge(edge)
        e2 = other.edge(other_edge)
        if e1.shape != e2.shape:
            return False
        return bool(jnp.max(jnp.abs(e1 - e2)) <= tol * max(1.0, float(jnp.max(jnp.abs(e1)))))
