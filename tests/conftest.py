"""
conftest.py — Shared pytest fixtures for the SBP elastic test suite
"""

import pytest
import jax
jax.config.update("jax_enable_x64", True)
import jax.numpy as jnp
import numpy as np

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from sbp_elastic.block import Block
from sbp_elastic.fields import Fields, Mode
from sbp_elastic.material import Material
from sbp_elastic.operators import sbp_coefficients
from sbp_elastic.topology import CartesianTopology


@pytest.fixture(params=[2, 3])
def order(request):
    """SBP order."""
    return request.param


@pytest.fixture
def fd(order):
    return sbp_coefficients(order)


@pytest.fixture
def make_block():
    """
    Factory for a single serial block.

    Returns (block, fields) for the given mode and point counts; remaining
    keyword arguments go to Block.
    """
    def _make(mode, nx, order=2, **kwargs):
        fd = sbp_coefficients(order)
        topo = CartesianTopology(nx, order)
        fields = Fields(mode, topo)
        block = Block(mode, nx, (0, 0, 0), topo, fields, fd, **kwargs)
        return block, fields
    return _make


@pytest.fixture
def unit_square_mode2(make_block):
    """21 x 21 unit square, mode II, order 2, absorbing faces."""
    return make_block(Mode.MODE2, (21, 21, 1))


@pytest.fixture
def random_state():
    """Factory for a random state of a given shape (fixed seed)."""
    def _make(shape, seed=0):
        return jnp.asarray(np.random.default_rng(seed).standard_normal(shape))
    return _make
