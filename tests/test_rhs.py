"""
test_rhs.py — Curvilinear Elastic Right-Hand Side
==================================================

Verifies:
  - Uniform states are steady (all modes)
  - Linear fields give the exact constitutive / momentum rates, through the metric
  - Accumulation semantics: the kernel adds into df
  - Locality: a point disturbance only reaches the interior stencil width
  - A block never reads or writes another block's points
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

MAT = Material(rho=2.0, lam=3.0, g=1.5)

SHAPES = {Mode.MODE2: (13, 11, 1), Mode.MODE3: (13, 11, 1), Mode.THREE_D: (9, 9, 9)}


def _df(block, fields, dt=1.0):
    fields.df = jnp.zeros_like(fields.df)
    block.calc_df(dt, fields)
    return fields.df[(slice(None),) + block.window()]


class TestSteadyStates:

    @pytest.mark.parametrize("mode", list(Mode))
    @pytest.mark.parametrize("order", [2, 3])
    def test_uniform_state(self, make_block, mode, order):
        block, fields = make_block(mode, SHAPES[mode], order=order, material=MAT,
                                   l=(2.0, 0.5, 1.5))
        values = jnp.arange(1.0, mode.nfields + 1.0)
        fields.f = jnp.broadcast_to(values[:, None, None, None], fields.f.shape)
        err = float(jnp.max(jnp.abs(_df(block, fields))))
        assert err < 1e-12, f"uniform state rate {err:.2e}"


class TestLinearFields:
    """Linear data is differentiated exactly by every stencil region."""

    @pytest.mark.parametrize("order", [2, 3])
    def test_mode2_velocity_gradient(self, make_block, order):
        block, fields = make_block(Mode.MODE2, (11, 13, 1), order=order, material=MAT,
                                   x0=(1.0, -1.0, 0.0), l=(2.0, 3.0, 1.0))
        x, y = fields.x[0], fields.x[1]
        a, b = 0.7, -0.4
        # vx = a x, vy = b x: dvx/dx = a, dvy/dx = b
        fields.f = fields.f.at[0].set(a * x).at[1].set(b * x)
        df = _df(block, fields, dt=0.1)
        lam, g = MAT.lam, MAT.g
        expected = {2: 0.1 * (lam + 2 * g) * a, 3: 0.1 * g * b, 4: 0.1 * lam * a}
        for k, val in expected.items():
            err = float(jnp.max(jnp.abs(df[k] - val)))
            assert err < 1e-12, f"component {k}: error {err:.2e}"
        assert float(jnp.max(jnp.abs(df[:2]))) < 1e-12

    @pytest.mark.parametrize("order", [2, 3])
    def test_mode2_stress_divergence(self, make_block, order):
        block, fields = make_block(Mode.MODE2, (11, 13, 1), order=order, material=MAT,
                                   l=(2.0, 3.0, 1.0))
        x, y = fields.x[0], fields.x[1]
        # sxx = x, sxy = 2y, syy = -y  ->  div = (1 + 2, -1)
        fields.f = fields.f.at[2].set(x).at[3].set(2.0 * y).at[4].set(-y)
        df = _df(block, fields)
        assert float(jnp.max(jnp.abs(df[0] - 3.0 / MAT.rho))) < 1e-12
        assert float(jnp.max(jnp.abs(df[1] + 1.0 / MAT.rho))) < 1e-12
        assert float(jnp.max(jnp.abs(df[2:]))) < 1e-12

    def test_mode3(self, make_block):
        block, fields = make_block(Mode.MODE3, (12, 10, 1), material=MAT, l=(1.0, 2.0, 1.0))
        x, y = fields.x[0], fields.x[1]
        # vz = x + 2y, sxz = 3x, syz = y
        fields.f = fields.f.at[0].set(x + 2 * y).at[1].set(3 * x).at[2].set(y)
        df = _df(block, fields)
        assert float(jnp.max(jnp.abs(df[0] - 4.0 / MAT.rho))) < 1e-12
        assert float(jnp.max(jnp.abs(df[1] - MAT.g))) < 1e-12
        assert float(jnp.max(jnp.abs(df[2] - 2 * MAT.g))) < 1e-12

    @pytest.mark.parametrize("order", [2, 3])
    def test_3d_velocity_gradient(self, make_block, order):
        block, fields = make_block(Mode.THREE_D, (9, 9, 9), order=order, material=MAT,
                                   l=(1.0, 2.0, 0.5))
        x, y, z = fields.x
        # v = (y, z, x): only off-diagonal gradients
        fields.f = fields.f.at[0].set(y).at[1].set(z).at[2].set(x)
        df = _df(block, fields)
        g = MAT.g
        # sxy: g(dvx/dy + dvy/dx) = g; sxz: g(dvx/dz + dvz/dx) = g; syz: g(dvy/dz + dvz/dy) = g
        for k in (4, 5, 7):
            assert float(jnp.max(jnp.abs(df[k] - g))) < 1e-12, f"component {k}"
        for k in (0, 1, 2, 3, 6, 8):
            assert float(jnp.max(jnp.abs(df[k]))) < 1e-12, f"component {k}"

    def test_3d_volumetric(self, make_block):
        block, fields = make_block(Mode.THREE_D, (9, 9, 9), material=MAT)
        x, y, z = fields.x
        fields.f = fields.f.at[0].set(x).at[1].set(y).at[2].set(z)
        df = _df(block, fields)
        diag = 3 * MAT.lam + 2 * MAT.g
        for k in (3, 6, 8):
            assert float(jnp.max(jnp.abs(df[k] - diag))) < 1e-12


class TestAccumulation:

    def test_adds_into_df(self, unit_square_mode2, random_state):
        block, fields = unit_square_mode2
        fields.f = random_state(fields.f.shape)
        once = _df(block, fields, dt=0.3)
        block.calc_df(0.3, fields)
        twice = fields.df[(slice(None),) + block.window()]
        err = float(jnp.max(jnp.abs(twice - 2 * once)))
        assert err < 1e-12, f"accumulation error {err:.2e}"

    def test_linear_in_dt(self, unit_square_mode2, random_state):
        block, fields = unit_square_mode2
        fields.f = random_state(fields.f.shape, seed=2)
        d1 = _df(block, fields, dt=1.0)
        d2 = _df(block, fields, dt=0.25)
        assert float(jnp.max(jnp.abs(d2 - 0.25 * d1))) < 1e-12


class TestLocality:

    @pytest.mark.parametrize("order", [2, 3])
    def test_point_disturbance(self, make_block, order):
        """A single stressed point only moves its interior-stencil neighbors."""
        block, fields = make_block(Mode.MODE2, (21, 21, 1), order=order)
        fields.f = fields.f.at[2, 10, 10, 0].set(1.0).at[4, 10, 10, 0].set(1.0)
        df = _df(block, fields)
        v = np.asarray(jnp.abs(df[0]) + jnp.abs(df[1]))[:, :, 0]
        i, j = np.nonzero(v)
        assert i.size > 0
        reach = max(np.max(np.abs(i - 10)), np.max(np.abs(j - 10)))
        assert reach == order - 1, f"disturbance reached {reach} points"

    def test_blocks_do_not_share_points(self):
        """Two blocks side by side in one process array stay independent."""
        fd = sbp_coefficients(2)
        mode = Mode.MODE2
        topo = CartesianTopology((22, 11, 1), 2)
        fields = Fields(mode, topo)
        left = Block(mode, (11, 11, 1), (0, 0, 0), topo, fields, fd)
        right = Block(mode, (11, 11, 1), (11, 0, 0), topo, fields, fd, x0=(1.0, 0.0, 0.0))

        rng = np.random.default_rng(0)
        fields.f = jnp.asarray(rng.standard_normal(fields.f.shape))
        d1 = _df(left, fields)
        full = fields.df
        assert float(jnp.max(jnp.abs(full[:, 11:]))) == 0.0

        fields.f = fields.f.at[:, 11:].set(jnp.asarray(rng.standard_normal((5, 11, 11, 1))))
        d2 = _df(left, fields)
        assert float(jnp.max(jnp.abs(d1 - d2))) == 0.0
        assert right.window()[0] == slice(11, 22)
