"""
partition.py — Block / Process Index Intersection
==================================================

Every block occupies a box [xm, xm+nx-1] (per dimension) of the global index
space; every process owns a box [xm_loc, xm_loc+nx_loc-1] of the same space.
This module intersects the two and works out the ghost layers a block needs
on this process and the three stencil regions of each dimension.

Ghost layers (per dimension):
    process edge is a cut strictly inside the block  -> order-1 ghosts
    process starts at xp+1 / ends at xm-1            -> 1 safety ghost
"""

import logging
from typing import NamedTuple

from .errors import PreconditionError
from .operators import StencilBounds, SUPPORTED_ORDERS

log = logging.getLogger(__name__)


class Coord(NamedTuple):
    """Global and local extent of a block in one dimension."""
    nx: int
    xm: int
    nx_loc: int
    xm_loc: int
    xm_ghost: int = 0
    xp_ghost: int = 0

    @property
    def xp(self):
        return self.xm + self.nx - 1

    @property
    def xp_loc(self):
        return self.xm_loc + self.nx_loc - 1


def _intersect(nx, xm, nx_proc, xm_proc, order):
    """Intersect one dimension; returns Coord with nx_loc == 0 when disjoint."""
    xp = xm + nx - 1
    lo = xm_proc
    hi = xm_proc + nx_proc - 1

    if lo >= xm and hi <= xp:
        # block contains the process range
        xm_loc, nx_loc = lo, nx_proc
    elif xm <= lo <= xp:
        # process range clipped on the right
        xm_loc, nx_loc = lo, xp - lo + 1
    elif xm <= hi <= xp:
        # process range clipped on the left
        xm_loc, nx_loc = xm, hi - xm + 1
    elif lo < xm and hi > xp:
        # process range contains the block
        xm_loc, nx_loc = xm, nx
    else:
        xm_loc, nx_loc = xm, 0

    xm_ghost = 0
    xp_ghost = 0
    if xm < lo <= xp:
        xm_ghost = order - 1
    elif lo == xp + 1:
        xp_ghost = 1
    if xm <= hi < xp:
        xp_ghost = order - 1
    elif hi == xm - 1:
        xm_ghost = 1

    return Coord(nx=nx, xm=xm, nx_loc=nx_loc, xm_loc=xm_loc,
                 xm_ghost=xm_ghost, xp_ghost=xp_ghost)


def calc_process_info(nx, xm, nx_proc, xm_proc, order):
    """
    Intersect a block with the locally owned index box.

    Args:
        nx:      (3,) global point counts of the block
        xm:      (3,) global minimum indices of the block
        nx_proc: (3,) point counts owned by this process
        xm_proc: (3,) minimum indices owned by this process
        order:   sbp order

    Returns:
        coords:  tuple of 3 Coord
        no_data: True if the process owns no point of the block
    """
    if order not in SUPPORTED_ORDERS:
        raise PreconditionError(f"unsupported sbp order {order}")
    for d in range(3):
        if nx[d] <= 0:
            raise PreconditionError(f"block extent must be positive, got nx[{d}]={nx[d]}")
        if xm[d] < 0:
            raise PreconditionError(f"block origin must be non-negative, got xm[{d}]={xm[d]}")
        if nx_proc[d] <= 0:
            raise PreconditionError(
                f"process extent must be positive, got nx_loc[{d}]={nx_proc[d]}")

    coords = tuple(_intersect(nx[d], xm[d], nx_proc[d], xm_proc[d], order) for d in range(3))
    no_data = any(c.nx_loc == 0 for c in coords)
    if no_data:
        log.debug("block at %s owns no points on this process", tuple(xm))
        coords = tuple(c._replace(nx_loc=0, xm_loc=c.xm) for c in coords)
    return coords, no_data


def stencil_bounds(coord, xm_proc, xm_ghost_proc, fd, active=True):
    """
    Stencil regions of one dimension in process-array indices.

    Args:
        coord:         Coord of the block in this dimension
        xm_proc:       first index owned by the process
        xm_ghost_proc: ghost depth of the process array on its low side
        fd:            SBPCoefficients
        active:        False for dimensions that are never differentiated
                       (z in 2D); those get a single interior region

    Returns:
        StencilBounds(lo, mc, mrb, hi)
    """
    nb, nc = fd.closure.shape
    w = fd.order - 1
    mlb = coord.xm_loc - xm_proc + xm_ghost_proc
    if not active:
        return StencilBounds(mlb, mlb, mlb + coord.nx_loc, mlb + coord.nx_loc)

    if coord.xm_loc == coord.xm and coord.nx > 1:
        mc = mlb + nb
    else:
        mc = mlb
    if coord.xp_loc == coord.xp and coord.nx > 1:
        mrb = mlb + coord.nx_loc - nb
        prb = mrb + nb
    else:
        mrb = mlb + coord.nx_loc
        prb = mrb

    if mc > mrb:
        raise PreconditionError(
            f"{coord.nx_loc} local points cannot hold both boundary closures "
            f"({nb} rows each)")

    # every read must stay inside the owned points plus ghosts
    first = mlb - coord.xm_ghost
    last = prb + coord.xp_ghost
    reads = []
    if mc > mlb:
        reads.append((mlb, mlb + nc))
    if mrb > mc:
        reads.append((mc - w, mrb + w))
    if prb > mrb:
        reads.append((prb - nc, prb))
    for r0, r1 in reads:
        if r0 < first or r1 > last:
            raise PreconditionError(
                f"stencil reads [{r0}, {r1}) outside available points [{first}, {last}); "
                f"block has too few local points ({coord.nx_loc}) for sbp order {fd.order}")
    return StencilBounds(mlb, mc, mrb, prb)
