"""
topology.py — Cartesian Process Topology and Ghost Exchange
============================================================

The global index space (all blocks laid side by side) is split into a
Cartesian grid of processes.  Each process owns a box of points and keeps
``order - 1`` ghost layers on every side that has a neighbor; there are no
ghosts at the global domain edges.

Exchange is synchronous: blocking ``Sendrecv`` of contiguous slabs, one
dimension after another, so edge and corner ghosts are filled by the later
dimensions.  With ``comm=None`` the topology is a single serial process and
exchange returns its input.

Local array layout: (..., n0, n1, n2) with ni = xm_ghost + nx_loc + xp_ghost.
"""

import logging

import jax.numpy as jnp
import numpy as np

from .errors import PreconditionError

log = logging.getLogger(__name__)


def decompose(n, nprocs, coord):
    """
    Split n points over nprocs, the remainder going to the lowest coordinates.

    Returns:
        (count, offset) of process ``coord``
    """
    counts = [n // nprocs] * nprocs
    for r in range(n % nprocs):
        counts[r] += 1
    offsets = [0] * nprocs
    for r in range(1, nprocs):
        offsets[r] = offsets[r-1] + counts[r-1]
    return counts[coord], offsets[coord]


class CartesianTopology:
    """
    Process grid over the global index space.

    Args:
        nx:    (3,) global point counts (use 1 for z in 2D)
        order: sbp order; ghost depth is order - 1
        comm:  mpi4py communicator, or None for a serial run
        dims:  optional (3,) process counts; computed by MPI otherwise
        mpi:   namespace providing Compute_dims, PROC_NULL, SUM and MAX
               (mpi4py.MPI unless given)
    """

    def __init__(self, nx, order, comm=None, dims=None, mpi=None):
        self.nx = tuple(int(n) for n in nx)
        if len(self.nx) != 3 or any(n <= 0 for n in self.nx):
            raise PreconditionError(f"global extents must be 3 positive counts, got {nx}")
        self.order = order
        self.comm = comm

        if comm is None:
            self._mpi = None
            self.cart = None
            self.rank, self.size = 0, 1
            self.dims = (1, 1, 1)
            self.coords = (0, 0, 0)
            self.neighbors = ((None, None),) * 3
        else:
            if mpi is None:
                from mpi4py import MPI as mpi
            self._mpi = mpi
            self.size = comm.Get_size()
            if dims is None:
                dims = mpi.Compute_dims(self.size, [0 if n > 1 else 1 for n in self.nx])
            self.dims = tuple(dims)
            self.cart = comm.Create_cart(dims=list(self.dims), periods=[False]*3, reorder=True)
            self.rank = self.cart.Get_rank()
            self.coords = tuple(self.cart.Get_coords(self.rank))
            neighbors = []
            for d in range(3):
                lo, hi = self.cart.Shift(d, 1)
                neighbors.append((None if lo == mpi.PROC_NULL else lo,
                                  None if hi == mpi.PROC_NULL else hi))
            self.neighbors = tuple(neighbors)

        ghost = order - 1
        nx_loc, xm_loc, xm_ghost, xp_ghost = [], [], [], []
        for d in range(3):
            count, offset = self.partition(d)
            if self.dims[d] > 1 and count < ghost:
                raise PreconditionError(
                    f"dimension {d}: {count} points per process is less than ghost depth {ghost}")
            nx_loc.append(count)
            xm_loc.append(offset)
            xm_ghost.append(ghost if self.neighbors[d][0] is not None else 0)
            xp_ghost.append(ghost if self.neighbors[d][1] is not None else 0)
        self.nx_loc = tuple(nx_loc)
        self.xm_loc = tuple(xm_loc)
        self.xm_ghost = tuple(xm_ghost)
        self.xp_ghost = tuple(xp_ghost)
        self.nx_tot = tuple(self.xm_ghost[d] + self.nx_loc[d] + self.xp_ghost[d]
                            for d in range(3))

        log.debug("rank %d coords %s owns %s points from %s (array %s)",
                  self.rank, self.coords, self.nx_loc, self.xm_loc, self.nx_tot)

    def partition(self, d, coord=None):
        """(count, offset) owned along dimension d by process ``coord`` (default: this one)."""
        if coord is None:
            coord = self.coords[d]
        return decompose(self.nx[d], self.dims[d], coord)

    @property
    def parallel(self):
        return self.comm is not None

    def owned(self):
        """Slices of the locally owned points in the process array."""
        return tuple(slice(self.xm_ghost[d], self.xm_ghost[d] + self.nx_loc[d])
                     for d in range(3))

    # ============================================================
    # Collective operations
    # ============================================================

    def exchange(self, arr):
        """
        Fill ghost layers of ``arr`` from the neighboring processes.

        Args:
            arr: (..., n0, n1, n2) array on the process index space

        Returns:
            array of the same shape with refreshed ghosts
        """
        if self.cart is None:
            return arr
        a = np.array(arr)
        lead = a.ndim - 3
        for d in range(3):
            lo_rank, hi_rank = self.neighbors[d]
            gm, gp = self.xm_ghost[d], self.xp_ghost[d]
            n = self.nx_loc[d]
            axis = lead + d

            def slab(start, stop):
                index = [slice(None)] * a.ndim
                index[axis] = slice(start, stop)
                return tuple(index)

            if lo_rank is not None:
                send = np.ascontiguousarray(a[slab(gm, 2*gm)])
                recv = np.empty_like(send)
                self.cart.Sendrecv(sendbuf=send, dest=lo_rank, sendtag=2*d,
                                   recvbuf=recv, source=lo_rank, recvtag=2*d + 1)
                a[slab(0, gm)] = recv
            if hi_rank is not None:
                send = np.ascontiguousarray(a[slab(gm + n - gp, gm + n)])
                recv = np.empty_like(send)
                self.cart.Sendrecv(sendbuf=send, dest=hi_rank, sendtag=2*d + 1,
                                   recvbuf=recv, source=hi_rank, recvtag=2*d)
                a[slab(gm + n, gm + n + gp)] = recv
        return jnp.asarray(a)

    def allreduce_sum(self, value):
        if self.cart is None:
            return value
        return self.cart.allreduce(value, op=self._mpi.SUM)

    def allreduce_max(self, value):
        if self.cart is None:
            return value
        return self.cart.allreduce(value, op=self._mpi.MAX)
