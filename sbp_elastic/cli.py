"""
cli.py — Command-Line Driver
=============================

Usage:
    python -m sbp_elastic                               # built-in 2D mode II pulse
    python -m sbp_elastic problem.json --nt 400 --rk rk4
    mpirun -n 4 python -m sbp_elastic problem.json --mpi --output run.npz
"""

import argparse
import logging
import time

import numpy as np

from .config import SimulationConfig, load_config
from .diagnostics import compute_energy, max_velocity
from .domain import Domain
from .errors import ElasticSolverError

log = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="sbp_elastic", description="SBP-SAT elastic wave propagation on multi-block grids")
    parser.add_argument("config", nargs="?", default=None,
                        help="JSON configuration file (default: built-in 2D pulse)")
    parser.add_argument("--nt", type=int, default=None, help="number of time steps")
    parser.add_argument("--dt", type=float, default=None, help="time step (overrides --cfl)")
    parser.add_argument("--cfl", type=float, default=None, help="CFL number")
    parser.add_argument("--order", type=int, choices=[2, 3], default=None,
                        help="sbp order")
    parser.add_argument("--rk", choices=["euler", "rk3", "rk4"], default=None,
                        help="low-storage Runge-Kutta scheme")
    parser.add_argument("--output", default=None,
                        help="write the final state to this .npz file")
    parser.add_argument("--mpi", action="store_true", help="run on MPI.COMM_WORLD")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser.parse_args(argv)


def apply_overrides(config, args):
    if args.nt is not None:
        config.nt = args.nt
    if args.dt is not None:
        config.dt = args.dt
    if args.cfl is not None:
        config.cfl = args.cfl
    if args.order is not None:
        config.sbporder = args.order
    if args.rk is not None:
        config.rk = args.rk
    return config.validate()


def save_state(domain, path):
    """Owned points of every block; one file per rank when running in parallel."""
    topo = domain.topology
    if topo.parallel:
        path = path.replace(".npz", "") + f".rank{topo.rank}.npz"
    arrays = {}
    for bid, block in enumerate(domain.blocks):
        if block.no_data:
            continue
        win = block.window()
        arrays[f"x{bid}"] = np.asarray(domain.fields.x[(slice(None),) + win])
        arrays[f"f{bid}"] = np.asarray(domain.fields.f[(slice(None),) + win])
    np.savez(path, t=domain.t, components=np.array(domain.mode.components), **arrays)
    log.info("wrote %s", path)


def run(config, comm=None, output=None):
    """Build the domain, run ``config.nt`` steps and return the domain."""
    domain = Domain(config, comm=comm)
    domain.init_fields()
    dt = config.dt if config.dt is not None else domain.stable_dt()
    log.info("dt = %.4e, %d steps", dt, config.nt)

    e0 = compute_energy(domain)
    t0 = time.perf_counter()
    for n in range(1, config.nt + 1):
        domain.do_timestep(dt)
        if n % config.log_every == 0 or n == config.nt:
            energy = compute_energy(domain)
            log.info("step %5d  t = %.4f  E/E0 = %.6f  max|v| = %.4e",
                     n, domain.t, energy / e0 if e0 else 0.0, max_velocity(domain))
    log.info("%d steps in %.2f s", config.nt, time.perf_counter() - t0)

    if output:
        save_state(domain, output)
    return domain


def main(argv=None):
    args = parse_args(argv)
    comm = None
    if args.mpi:
        from mpi4py import MPI
        comm = MPI.COMM_WORLD
    rank = comm.Get_rank() if comm is not None else 0
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=f"[rank {rank}] %(asctime)s %(name)s %(levelname)s: %(message)s")

    try:
        config = load_config(args.config) if args.config else SimulationConfig()
        apply_overrides(config, args)
        run(config, comm=comm, output=args.output)
    except (ElasticSolverError, OSError) as exc:
        log.critical("%s", exc)
        if comm is not None:
            comm.Abort(1)
        return 1
    return 0
