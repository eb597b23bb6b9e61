"""
sbp_elastic — SBP-SAT Elastic Waves on Multi-Block Curvilinear Grids
=====================================================================

Velocity-stress elastodynamics discretized with summation-by-parts finite
differences.  Boundary conditions and block-to-block coupling are imposed
weakly with characteristic SAT penalties, following Kozdon, Dunham &
Nordström (2012) and Duru & Dunham (2016).

Modules:
    operators    — SBP first-derivative tables and the three-region traversal
    material     — Isotropic material constants, wave speeds and impedances
    partition    — Block/process index intersection and stencil regions
    topology     — Cartesian process topology and ghost exchange (serial or MPI)
    fields       — Problem modes and the shared field buffer
    surface      — Block face descriptors for transfinite interpolation
    grid         — Transfinite grid, coordinate derivatives, Jacobian, metric
    rhs          — Curvilinear elastic right-hand side (mode II, mode III, 3D)
    rotation     — Normal/tangential frames and state rotation
    boundary     — Absorbing, free-surface and rigid boundary SATs
    interface    — Locked interface SAT between two blocks
    block        — Block assembly
    domain       — Multi-block domain and Runge-Kutta stage driver
    timestepping — Low-storage (2N) Runge-Kutta schemes
    diagnostics  — Energy and velocity diagnostics
    config       — Dataclass configuration loaded from JSON
    cli          — Command-line driver
"""

import jax
jax.config.update("jax_enable_x64", True)

from .errors import (ElasticSolverError, PreconditionError,
                     InterfaceMismatchError, ConfigError)
from .fields import Mode, Fields
from .material import Material
from .operators import sbp_coefficients
from .topology import CartesianTopology
from .block import Block
from .domain import Domain
from .config import SimulationConfig, BlockConfig, PulseConfig, load_config

__version__ = "0.1.0"
