"""
config.py — Simulation Configuration
=====================================

Plain dataclasses, read from and written to JSON.  A problem is a grid of
``nblocks`` box-shaped blocks; ``nx_block[d][i]`` is the number of points of
the i-th block row along direction d, and ``blocks`` lists one BlockConfig
per block (x fastest, then y, then z) or a single entry used for all.

Example:

    {
        "ndim": 2, "mode": 2, "sbporder": 3,
        "nblocks": [2, 1, 1],
        "nx_block": [[51, 51], [101], [1]],
        "blocks": [
            {"x0": [0.0, 0.0, 0.0], "l": [0.5, 1.0, 1.0]},
            {"x0": [0.5, 0.0, 0.0], "l": [0.5, 1.0, 1.0], "rho": 2.0}
        ],
        "nt": 200, "cfl": 0.5, "rk": "rk4"
    }
"""

import dataclasses
import json
from dataclasses import dataclass, field
from typing import List, Optional

from .errors import ConfigError
from .material import Material


@dataclass
class PulseConfig:
    """Gaussian initial condition amplitude * exp(-|x - center|^2 / width)."""
    enabled: bool = True
    center: Optional[List[float]] = None
    width: float = 0.005
    amplitude: float = -1.0
    components: Optional[List[str]] = None


@dataclass
class BlockConfig:
    x0: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    l: List[float] = field(default_factory=lambda: [1.0, 1.0, 1.0])
    rho: float = 1.0
    lam: float = 1.0
    g: float = 1.0
    boundaries: Optional[List[str]] = None

    def material(self):
        return Material(rho=self.rho, lam=self.lam, g=self.g)


@dataclass
class SimulationConfig:
    ndim: int = 2
    mode: int = 2
    sbporder: int = 2
    nblocks: List[int] = field(default_factory=lambda: [1, 1, 1])
    nx_block: List[List[int]] = field(default_factory=lambda: [[101], [101], [1]])
    blocks: List[BlockConfig] = field(default_factory=lambda: [BlockConfig()])
    dims: Optional[List[int]] = None
    nt: int = 100
    dt: Optional[float] = None
    cfl: float = 0.5
    rk: str = "rk3"
    log_every: int = 10
    pulse: PulseConfig = field(default_factory=PulseConfig)

    @property
    def nblocks_total(self):
        return self.nblocks[0] * self.nblocks[1] * self.nblocks[2]

    def block(self, index):
        """BlockConfig of flat block ``index``."""
        if len(self.blocks) == 1:
            return self.blocks[0]
        return self.blocks[index]

    def validate(self):
        if self.ndim not in (2, 3):
            raise ConfigError(f"ndim must be 2 or 3, got {self.ndim}")
        if len(self.nblocks) != 3 or any(n < 1 for n in self.nblocks):
            raise ConfigError(f"nblocks must be three positive counts, got {self.nblocks}")
        if len(self.nx_block) != 3:
            raise ConfigError("nx_block needs one list per direction")
        for d in range(3):
            if len(self.nx_block[d]) != self.nblocks[d]:
                raise ConfigError(
                    f"nx_block[{d}] has {len(self.nx_block[d])} entries, "
                    f"nblocks[{d}] = {self.nblocks[d]}")
        if self.ndim == 2 and (self.nblocks[2] != 1 or self.nx_block[2] != [1]):
            raise ConfigError("2D problems need nblocks[2] == 1 and nx_block[2] == [1]")
        if len(self.blocks) not in (1, self.nblocks_total):
            raise ConfigError(
                f"expected 1 or {self.nblocks_total} block entries, got {len(self.blocks)}")
        if self.dt is None and self.cfl <= 0.0:
            raise ConfigError("either dt or a positive cfl is required")
        if self.nt < 0:
            raise ConfigError(f"nt must be non-negative, got {self.nt}")
        return self

    # ============================================================
    # Serialization
    # ============================================================

    @classmethod
    def from_dict(cls, data):
        data = dict(data)
        try:
            if "blocks" in data:
                data["blocks"] = [BlockConfig(**b) for b in data["blocks"]]
            if "pulse" in data:
                data["pulse"] = PulseConfig(**data["pulse"])
            return cls(**data).validate()
        except TypeError as exc:
            raise ConfigError(f"invalid configuration: {exc}") from exc

    def to_dict(self):
        return dataclasses.asdict(self)


def load_config(path):
    """Read a SimulationConfig from a JSON file."""
    try:
        with open(path) as fh:
            data = json.load(fh)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{path}: {exc}") from exc
    return SimulationConfig.from_dict(data)


def save_config(config, path):
    with open(path, "w") as fh:
        json.dump(config.to_dict(), fh, indent=2)
