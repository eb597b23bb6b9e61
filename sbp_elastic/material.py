"""
material.py — Isotropic Elastic Material
=========================================

Constant per block.  ``g`` is the shear modulus (mu).

    cp = sqrt((lam + 2 g) / rho)     P-wave speed
    cs = sqrt(g / rho)               S-wave speed
    zp = rho cp, zs = rho cs         impedances
"""

import math
from typing import NamedTuple

from .errors import PreconditionError


class Material(NamedTuple):
    rho: float = 1.0
    lam: float = 1.0
    g: float = 1.0

    @property
    def cp(self):
        return math.sqrt((self.lam + 2.0 * self.g) / self.rho)

    @property
    def cs(self):
        return math.sqrt(self.g / self.rho)

    @property
    def zp(self):
        return self.rho * self.cp

    @property
    def zs(self):
        return self.rho * self.cs


def check_material(mat: Material) -> Material:
    """Reject unphysical constants; returns the material unchanged."""
    if mat.rho <= 0.0:
        raise PreconditionError(f"density must be positive, got {mat.rho}")
    if mat.g < 0.0:
        raise PreconditionError(f"shear modulus must be non-negative, got {mat.g}")
    if mat.lam + 2.0 * mat.g <= 0.0:
        raise PreconditionError(
            f"P-wave modulus lam + 2g must be positive, got {mat.lam + 2.0*mat.g}")
    return mat
