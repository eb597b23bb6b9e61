"""
fields.py — Problem Modes and the Shared Field Buffer
======================================================

Mode is the closed set of problem types; it fixes the dimensionality and the
layout of the state vector:

    MODE2 (2D in-plane):   vx, vy, sxx, sxy, syy
    MODE3 (2D anti-plane): vz, sxz, syz
    THREE_D:               vx, vy, vz, sxx, sxy, sxz, syy, syz, szz

Fields holds every array on the process index space (owned points plus
ghosts).  Blocks compute into their own windows of it; the arrays are
immutable JAX arrays, so writers return new arrays and the attribute is
reassigned.
"""

import enum

import jax.numpy as jnp

from .errors import PreconditionError


class Mode(enum.Enum):
    MODE2 = "mode2"
    MODE3 = "mode3"
    THREE_D = "3d"

    @classmethod
    def from_ndim(cls, ndim, mode=2):
        """Select the problem type from dimensionality and 2D mode number."""
        if ndim == 3:
            return cls.THREE_D
        if ndim == 2 and mode == 2:
            return cls.MODE2
        if ndim == 2 and mode == 3:
            return cls.MODE3
        raise PreconditionError(f"invalid problem: ndim={ndim}, mode={mode}")

    @property
    def ndim(self):
        return 3 if self is Mode.THREE_D else 2

    @property
    def components(self):
        return STATE_COMPONENTS[self]

    @property
    def nfields(self):
        return len(STATE_COMPONENTS[self])

    def index(self, name):
        return STATE_COMPONENTS[self].index(name)


STATE_COMPONENTS = {
    Mode.MODE2: ("vx", "vy", "sxx", "sxy", "syy"),
    Mode.MODE3: ("vz", "sxz", "syz"),
    Mode.THREE_D: ("vx", "vy", "vz", "sxx", "sxy", "sxz", "syy", "syz", "szz"),
}


class Fields:
    """
    Arrays on the process index space.

    Attributes:
        x:      (3, n0, n1, n2)     physical coordinates
        jac:    (n0, n1, n2)        Jacobian
        metric: (3, 3, n0, n1, n2)  metric[l, m] = d xi_l / d x_m
        f:      (nfields, n0, n1, n2) state
        df:     (nfields, n0, n1, n2) stage accumulator
    """

    def __init__(self, mode, topology):
        self.mode = mode
        self.topology = topology
        shape = topology.nx_tot
        self.x = jnp.zeros((3,) + shape)
        self.jac = jnp.zeros(shape)
        self.metric = jnp.zeros((3, 3) + shape)
        self.f = jnp.zeros((mode.nfields,) + shape)
        self.df = jnp.zeros((mode.nfields,) + shape)

    @property
    def nfields(self):
        return self.mode.nfields

    def exchange_grid(self):
        topo = self.topology
        shape = self.metric.shape
        self.x = topo.exchange(self.x)
        self.jac = topo.exchange(self.jac)
        self.metric = topo.exchange(self.metric.reshape((9,) + shape[2:])).reshape(shape)

    def exchange_fields(self):
        self.f = self.topology.exchange(self.f)

    def scale_df(self, A):
        self.df = A * self.df

    def update(self, B):
        self.f = self.f + B * self.df
