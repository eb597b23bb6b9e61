"""
timestepping.py — Low-Storage Runge-Kutta Schemes
==================================================

2N-storage schemes (Williamson 1980) keep only the state f and one
accumulator df.  Stage s does

    df = A_s df + dt rhs(f)
    f  = f + B_s df

The right-hand-side kernels add ``dt * rhs`` into df, so a stage is
"scale df by A_s, accumulate, update f with B_s".

Schemes:
    euler — forward Euler (1 stage)
    rk3   — Williamson 3rd order (3 stages)
    rk4   — Carpenter & Kennedy (1994) 4th order (5 stages)
"""

from typing import NamedTuple, Tuple

from .errors import ConfigError


class LowStorageRK(NamedTuple):
    name: str
    A: Tuple[float, ...]
    B: Tuple[float, ...]

    @property
    def stages(self):
        return len(self.A)


SCHEMES = {
    "euler": LowStorageRK("euler", (0.0,), (1.0,)),
    "rk3": LowStorageRK(
        "rk3",
        (0.0, -5/9, -153/128),
        (1/3, 15/16, 8/15)),
    "rk4": LowStorageRK(
        "rk4",
        (0.0,
         -567301805773/1357537059087,
         -2404267990393/2016746695238,
         -3550918686646/2091501179385,
         -1275806237668/842570457699),
        (1432997174477/9575080441755,
         5161836677717/13612068292357,
         1720146321549/2090206949498,
         3134564353537/4481467310338,
         2277821191437/14882151754819)),
}


def get_scheme(name):
    try:
        return SCHEMES[name]
    except KeyError:
        raise ConfigError(f"unknown time stepping scheme '{name}', "
                          f"expected one of {sorted(SCHEMES)}") from None


def make_low_storage_step(stage_fn, scheme):
    """
    Build a time step from a stage function.

    Args:
        stage_fn: stage_fn(dt, A, B) performing one 2N stage
        scheme:   LowStorageRK

    Returns:
        step(dt)
    """
    def step(dt):
        for A, B in zip(scheme.A, scheme.B):
            stage_fn(dt, A, B)
    return step
