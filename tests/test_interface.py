"""
test_interface.py — Locked Block Interfaces
============================================

Verifies:
  - locked_solve leaves a continuous state unchanged
  - targets are continuous and keep each side's outgoing characteristic
  - a velocity jump is penalized towards the common value, on the two face planes only
  - adjacency and face-shape preconditions
"""

import pytest
import jax
jax.config.update("jax_enable_x64", True)
import jax.numpy as jnp
import numpy as np

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from sbp_elastic.block import Block
from sbp_elastic.config import BlockConfig, PulseConfig, SimulationConfig
from sbp_elastic.domain import Domain
from sbp_elastic.errors import InterfaceMismatchError, PreconditionError
from sbp_elastic.fields import Fields, Mode
from sbp_elastic.interface import Interface, locked_solve
from sbp_elastic.operators import sbp_coefficients
from sbp_elastic.topology import CartesianTopology

Z1 = jnp.array([3.0, 1.5, 1.5])
Z2 = jnp.array([1.0, 0.5, 0.5])


def _two_block_config(mode=2, order=2, rho2=1.0, ndim=2):
    nz = [[1]] if ndim == 2 else [[7]]
    return SimulationConfig(
        ndim=ndim, mode=mode, sbporder=order,
        nblocks=[2, 1, 1], nx_block=[[11, 11], [9], nz[0]],
        blocks=[BlockConfig(x0=[0.0, 0.0, 0.0], l=[0.5, 1.0, 1.0]),
                BlockConfig(x0=[0.5, 0.0, 0.0], l=[0.5, 1.0, 1.0], rho=rho2)],
        nt=1, pulse=PulseConfig(enabled=False))


class TestLockedSolve:

    def test_continuous_state_is_fixed_point(self, random_state):
        v1 = random_state((3, 8), seed=1)
        tr = random_state((3, 8), seed=2)
        v1_hat, tr1_hat, v2_hat, tr2_hat = locked_solve(v1, tr, -v1, tr, Z1, Z2)
        for got, want in ((v1_hat, v1), (tr1_hat, tr), (v2_hat, -v1), (tr2_hat, tr)):
            assert float(jnp.max(jnp.abs(got - want))) < 1e-14

    def test_targets_continuous_and_characteristic(self, random_state):
        v1, tr1 = random_state((3, 8), seed=3), random_state((3, 8), seed=4)
        v2, tr2 = random_state((3, 8), seed=5), random_state((3, 8), seed=6)
        v1_hat, tr1_hat, v2_hat, tr2_hat = locked_solve(v1, tr1, v2, tr2, Z1, Z2)
        assert float(jnp.max(jnp.abs(v1_hat + v2_hat))) < 1e-14
        assert float(jnp.max(jnp.abs(tr1_hat - tr2_hat))) < 1e-14
        z1, z2 = Z1[:, None], Z2[:, None]
        assert float(jnp.max(jnp.abs((tr1_hat - z1 * v1_hat) - (tr1 - z1 * v1)))) < 1e-13
        assert float(jnp.max(jnp.abs((tr2_hat - z2 * v2_hat) - (tr2 - z2 * v2)))) < 1e-13

    def test_equal_impedance_averages(self):
        z = jnp.array([2.0, 1.0, 1.0])
        v1 = jnp.array([[1.0], [0.0], [0.0]])
        zero = jnp.zeros((3, 1))
        v1_hat, tr1_hat, _, _ = locked_solve(v1, zero, zero, zero, z, z)
        assert float(v1_hat[0, 0]) == pytest.approx(0.5)
        assert float(tr1_hat[0, 0]) == pytest.approx(-1.0)


class TestInterfacePenalty:

    @pytest.mark.parametrize("order", [2, 3])
    def test_continuous_state_unpenalized(self, order):
        domain = Domain(_two_block_config(order=order, rho2=3.0))
        assert len(domain.interfaces) == 1
        fields = domain.fields
        values = jnp.array([0.4, -0.2, 1.1, 0.3, -0.6])
        fields.f = jnp.broadcast_to(values[:, None, None, None], fields.f.shape)
        fields.df = jnp.zeros_like(fields.df)
        domain.interfaces[0].apply_bcs(0.1, fields)
        assert float(jnp.max(jnp.abs(fields.df))) < 1e-12

    def test_velocity_jump(self):
        domain = Domain(_two_block_config())
        fields = domain.fields
        fields.f = fields.f.at[0, :11].set(1.0)
        fields.df = jnp.zeros_like(fields.df)
        domain.interfaces[0].apply_bcs(0.1, fields)
        df = np.asarray(fields.df)
        assert np.all(df[0, 10] < 0.0), "side 1 should slow down"
        assert np.all(df[0, 11] > 0.0), "side 2 should speed up"
        touched = np.nonzero(np.max(np.abs(df), axis=(0, 2, 3)))[0]
        assert list(touched) == [10, 11]

    def test_antiplane_jump(self):
        domain = Domain(_two_block_config(mode=3))
        fields = domain.fields
        fields.f = fields.f.at[0, 11:].set(1.0)
        fields.df = jnp.zeros_like(fields.df)
        domain.interfaces[0].apply_bcs(0.1, fields)
        df = np.asarray(fields.df)
        assert np.all(df[0, 10] > 0.0) and np.all(df[0, 11] < 0.0)

    def test_3d_interface(self):
        domain = Domain(_two_block_config(ndim=3, mode=2))
        fields = domain.fields
        assert domain.interfaces[0].R1.shape == (3, 3, 1, 9, 7)
        fields.f = fields.f.at[1].set(1.0)
        fields.df = jnp.zeros_like(fields.df)
        domain.interfaces[0].apply_bcs(0.1, fields)
        assert float(jnp.max(jnp.abs(fields.df))) < 1e-12


class TestInterfacePreconditions:

    def _blocks(self, nx_total, right_nx, right_xm):
        fd = sbp_coefficients(2)
        mode = Mode.MODE2
        topo = CartesianTopology(nx_total, 2)
        fields = Fields(mode, topo)
        left = Block(mode, (11, 11, 1), (0, 0, 0), topo, fields, fd)
        right = Block(mode, right_nx, right_xm, topo, fields, fd, x0=(1.0, 0.0, 0.0))
        return left, right, fields, fd

    def test_face_mismatch(self):
        left, right, fields, fd = self._blocks((22, 11, 1), (11, 9, 1), (11, 0, 0))
        with pytest.raises(InterfaceMismatchError):
            Interface(0, 1, 0, left, right, fields, fd)

    def test_not_adjacent(self):
        left, right, fields, fd = self._blocks((23, 11, 1), (11, 11, 1), (12, 0, 0))
        with pytest.raises(PreconditionError) as excinfo:
            Interface(0, 1, 0, left, right, fields, fd)
        assert excinfo.type is PreconditionError

    def test_shared_faces_carry_no_boundary(self):
        domain = Domain(_two_block_config())
        assert domain.blocks[0].boundtypes[1] == "none"
        assert domain.blocks[1].boundtypes[0] == "none"
        assert domain.blocks[0].boundaries[1].no_data
        assert not domain.blocks[0].boundaries[0].no_data
