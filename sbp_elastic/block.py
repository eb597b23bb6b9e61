"""
block.py — One Logically Rectangular Block
===========================================

A block covers the global index box [xm, xm+nx-1] and maps the unit
reference cube onto the region bounded by its 2*ndim surfaces.  Construction
partitions it against the process, builds coordinates / Jacobian / metric
into the shared Fields, and creates one Boundary per face.  The surfaces are
only needed for the grid and are not kept.

Face numbering: 0/1 = low/high x, 2/3 = low/high y, 4/5 = low/high z.
"""

import logging

import jax.numpy as jnp

from .boundary import Boundary, BOUNDARY_TYPES
from .errors import PreconditionError
from .grid import build_grid_metric, reference_spacing
from .material import Material, check_material
from .partition import calc_process_info, stencil_bounds
from .rhs import block_window, make_df_kernel
from .surface import Surface, FACE_AXES, SHARED_EDGES

log = logging.getLogger(__name__)

DEFAULT_PULSE_COMPONENTS = {
    "mode2": ("sxx", "syy"),
    "mode3": ("vz",),
    "3d": ("sxx", "syy", "szz"),
}


def check_surfaces(surfaces, nx, ndim):
    """Surfaces must have the block's point counts and meet along shared edges."""
    if len(surfaces) != 2 * ndim:
        raise PreconditionError(f"expected {2*ndim} surfaces, got {len(surfaces)}")
    for loc, surf in enumerate(surfaces):
        a, b = FACE_AXES[loc // 2]
        if tuple(surf.shape) != (nx[a], nx[b]):
            raise PreconditionError(
                f"surface {loc} has {tuple(surf.shape)} points, block face needs {(nx[a], nx[b])}")
    pairs = SHARED_EDGES if ndim == 3 else SHARED_EDGES[:4]
    for i, j, ei, ej in pairs:
        if not surfaces[i].has_same_edge(ei, ej, surfaces[j]):
            raise PreconditionError(f"surfaces {i} and {j} do not share an edge")


class Block:
    """
    Args:
        mode:       Mode
        nx:         (3,) global point counts (nx[2] == 1 in 2D)
        xm:         (3,) first global index
        topology:   CartesianTopology
        fields:     Fields
        fd:         SBPCoefficients
        material:   Material (defaults to rho = lam = g = 1)
        x0, l:      lower corner and edge lengths of a box-shaped block
        boundtypes: 2*ndim boundary types (default all 'absorbing')
        surfaces:   optional 2*ndim Surface for a curvilinear block
    """

    def __init__(self, mode, nx, xm, topology, fields, fd, material=None,
                 x0=(0.0, 0.0, 0.0), l=(1.0, 1.0, 1.0), boundtypes=None, surfaces=None):
        self.mode = mode
        self.ndim = ndim = mode.ndim
        self.fd = fd
        nx = tuple(int(n) for n in nx)
        xm = tuple(int(i) for i in xm)
        if len(nx) != 3 or len(xm) != 3:
            raise PreconditionError("nx and xm need three entries")
        if ndim == 2 and nx[2] != 1:
            raise PreconditionError(f"2D blocks need nx[2] == 1, got {nx[2]}")
        if any(n < 2 for n in nx[:ndim]):
            raise PreconditionError(f"block needs at least 2 points per direction, got {nx}")

        self.mat = check_material(material if material is not None else Material())
        boundtypes = tuple(boundtypes) if boundtypes is not None else ("absorbing",) * (2 * ndim)
        if len(boundtypes) != 2 * ndim:
            raise PreconditionError(f"expected {2*ndim} boundary types, got {len(boundtypes)}")
        for bt in boundtypes:
            if bt not in BOUNDARY_TYPES:
                raise PreconditionError(f"unknown boundary type '{bt}'")
        self.boundtypes = boundtypes

        if surfaces is None:
            surfaces = [Surface.planar(nx, loc, x0, l) for loc in range(2 * ndim)]
        check_surfaces(surfaces, nx, ndim)
        points = jnp.concatenate([s.x.reshape(3, -1) for s in surfaces], axis=1)
        self.center = tuple(0.5 * (float(lo) + float(hi))
                            for lo, hi in zip(jnp.min(points, axis=1), jnp.max(points, axis=1)))

        self.coords, self.no_data = calc_process_info(
            nx, xm, topology.nx_loc, topology.xm_loc, fd.order)
        self.dx = reference_spacing(nx)
        self.degenerate_points = 0

        if self.no_data:
            self.bounds = None
            # the grid exchange is collective: take part without data
            fields.exchange_grid()
        else:
            self.bounds = tuple(
                stencil_bounds(self.coords[d], topology.xm_loc[d], topology.xm_ghost[d], fd,
                               active=d < ndim)
                for d in range(3))
            self.degenerate_points = build_grid_metric(
                fields, surfaces, self.coords, self.bounds, ndim, fd)
            if self.degenerate_points:
                log.warning("block at %s: %d degenerate grid points",
                            xm, self.degenerate_points)
            self._kernel = make_df_kernel(mode, self.mat, fd, self.bounds, self.dx)

        self.boundaries = [
            Boundary(loc, boundtypes[loc], mode, self.coords, self.bounds, self.dx,
                     self.mat, fd, fields, no_data=self.no_data)
            for loc in range(2 * ndim)]

    @property
    def nx(self):
        return tuple(c.nx for c in self.coords)

    @property
    def xm(self):
        return tuple(c.xm for c in self.coords)

    @property
    def xp(self):
        return tuple(c.xp for c in self.coords)

    def window(self):
        """Slices of the block's owned points in the process array."""
        return block_window(self.bounds)

    def calc_df(self, dt, fields):
        """Accumulate dt * rhs of this block into fields.df."""
        if self.no_data:
            return
        fields.df = self._kernel(dt, fields.f, fields.df, fields.jac, fields.metric)

    def set_boundaries(self, dt, fields):
        for boundary in self.boundaries:
            boundary.apply_bcs(dt, fields)

    def init_fields(self, fields, center=None, width=0.005, amplitude=-1.0, components=None):
        """
        Add a Gaussian pulse amplitude * exp(-|x - center|^2 / width).

        Args:
            fields:     Fields
            center:     (3,) pulse center (default: center of the block)
            width:      pulse width
            amplitude:  pulse amplitude
            components: state component names (default depends on the mode)
        """
        if self.no_data:
            return
        if components is None:
            components = DEFAULT_PULSE_COMPONENTS[self.mode.value]
        win = self.window()
        x = fields.x[(slice(None),) + win]
        if center is None:
            center = self.center
        r2 = sum((x[i] - center[i])**2 for i in range(self.ndim))
        pulse = amplitude * jnp.exp(-r2 / width)
        for name in components:
            k = self.mode.index(name)
            fields.f = fields.f.at[(k,) + win].add(pulse)
