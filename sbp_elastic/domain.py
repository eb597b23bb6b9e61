"""
domain.py — Multi-Block Domain and Stage Driver
================================================

Blocks are laid out as an nbx x nby x nbz grid in one global index space:
block (i, j, k) starts at the sum of the point counts of the blocks before
it in each direction.  Neighboring blocks are coupled by locked interfaces;
their shared faces carry no boundary condition.  Blocks and interfaces live
in flat lists and refer to each other by index.

One Runge-Kutta stage:

    df <- A df
    exchange ghosts of f
    df += dt rhs          (every block)
    df += dt SAT          (every boundary, then every interface)
    f  <- f + B df
"""

import logging

from .block import Block
from .config import SimulationConfig
from .errors import ConfigError, PreconditionError
from .fields import Fields, Mode
from .interface import Interface
from .operators import closure_width, sbp_coefficients
from .timestepping import get_scheme, make_low_storage_step
from .topology import CartesianTopology

log = logging.getLogger(__name__)


class Domain:
    """
    Args:
        config: SimulationConfig
        comm:   mpi4py communicator, or None for a serial run
    """

    def __init__(self, config: SimulationConfig, comm=None):
        self.config = config.validate()
        self.mode = Mode.from_ndim(config.ndim, config.mode)
        self.ndim = self.mode.ndim
        self.fd = sbp_coefficients(config.sbporder)

        nb = tuple(config.nblocks)
        nx_block = [list(config.nx_block[d]) for d in range(3)]
        offsets = [[sum(nx_block[d][:i]) for i in range(nb[d])] for d in range(3)]
        nx = tuple(sum(nx_block[d]) for d in range(3))

        self.topology = CartesianTopology(nx, config.sbporder, comm=comm, dims=config.dims)
        self._check_cuts(nx_block, offsets)
        self.fields = Fields(self.mode, self.topology)

        self.blocks = []
        self.block_index = {}
        for k in range(nb[2]):
            for j in range(nb[1]):
                for i in range(nb[0]):
                    ijk = (i, j, k)
                    bid = len(self.blocks)
                    bconf = config.block(bid)
                    boundtypes = list(bconf.boundaries or ["absorbing"] * (2 * self.ndim))
                    if len(boundtypes) != 2 * self.ndim:
                        raise ConfigError(
                            f"block {bid}: expected {2*self.ndim} boundary types")
                    for d in range(self.ndim):
                        if ijk[d] > 0:
                            boundtypes[2*d] = "none"
                        if ijk[d] < nb[d] - 1:
                            boundtypes[2*d + 1] = "none"
                    block = Block(
                        self.mode,
                        nx=[nx_block[d][ijk[d]] for d in range(3)],
                        xm=[offsets[d][ijk[d]] for d in range(3)],
                        topology=self.topology, fields=self.fields, fd=self.fd,
                        material=bconf.material(), x0=bconf.x0, l=bconf.l,
                        boundtypes=boundtypes)
                    self.blocks.append(block)
                    self.block_index[ijk] = bid

        self.interfaces = []
        for ijk, bid in self.block_index.items():
            for d in range(self.ndim):
                nbr = list(ijk)
                nbr[d] += 1
                nid = self.block_index.get(tuple(nbr))
                if nid is not None:
                    self.interfaces.append(Interface(
                        bid, nid, d, self.blocks[bid], self.blocks[nid], self.fields, self.fd))

        self.scheme = get_scheme(config.rk)
        self._step = make_low_storage_step(self.do_rk_stage, self.scheme)
        self.t = 0.0
        self.nsteps = 0

        degenerate = self.topology.allreduce_sum(sum(b.degenerate_points for b in self.blocks))
        if degenerate:
            log.warning("%d degenerate grid points in the domain", degenerate)
        log.info("%s domain: %d blocks, %d interfaces, %s points, sbp order %d, %s",
                 self.mode.value, len(self.blocks), len(self.interfaces), nx,
                 config.sbporder, self.scheme.name)

    def _check_cuts(self, nx_block, offsets):
        """
        Every process must own none of a block, all of it, or enough of it to
        hold the boundary closure at the block edge it contains.

        Every cut is checked on every process, so all processes raise together.
        """
        need = closure_width(self.fd)
        topo = self.topology
        for d in range(self.ndim):
            for c in range(topo.dims[d]):
                count, offset = topo.partition(d, c)
                for i, (n, xm) in enumerate(zip(nx_block[d], offsets[d])):
                    lo, hi = max(offset, xm), min(offset + count, xm + n)
                    owned = hi - lo
                    if owned <= 0 or owned == n or owned >= need:
                        continue
                    if lo == xm or hi == xm + n:
                        raise PreconditionError(
                            f"process {c} along dimension {d} owns {owned} point(s) "
                            f"[{lo}, {hi}) of block {i} (points [{xm}, {xm + n})), "
                            f"fewer than the {need} its boundary closure needs; "
                            f"change dims or the block sizes")

    def init_fields(self):
        """Zero state plus the configured Gaussian pulse."""
        self.fields.f = self.fields.f * 0.0
        self.fields.df = self.fields.df * 0.0
        pulse = self.config.pulse
        if not pulse.enabled:
            return
        for block in self.blocks:
            block.init_fields(self.fields, center=pulse.center, width=pulse.width,
                              amplitude=pulse.amplitude, components=pulse.components)

    def stable_dt(self, cfl=None):
        """cfl times the smallest physical grid spacing over the largest P-wave speed."""
        cfl = self.config.cfl if cfl is None else cfl
        hmin = min(self.config.block(bid).l[d] * block.dx[d]
                   for bid, block in enumerate(self.blocks) for d in range(self.ndim))
        cmax = max(block.mat.cp for block in self.blocks)
        return cfl * hmin / cmax

    def do_rk_stage(self, dt, A, B):
        fields = self.fields
        fields.scale_df(A)
        fields.exchange_fields()
        for block in self.blocks:
            block.calc_df(dt, fields)
        for block in self.blocks:
            block.set_boundaries(dt, fields)
        for interface in self.interfaces:
            interface.apply_bcs(dt, fields)
        fields.update(B)

    def do_timestep(self, dt):
        self._step(dt)
        self.t += dt
        self.nsteps += 1
