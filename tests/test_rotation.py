"""
test_rotation.py — Normal/Tangential Frames
============================================

Verifies:
  - Tangents are orthonormal to the normal for every pivot branch
  - xy -> nt -> xy round trip reproduces an arbitrary 9-component state
  - Rotated components have their physical meaning (normal velocity, traction)
  - Mode layouts survive the 9-component packing
"""

import pytest
import jax
jax.config.update("jax_enable_x64", True)
import jax.numpy as jnp
import numpy as np

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from sbp_elastic.fields import Mode
from sbp_elastic.rotation import (tangent_vectors, rotation_matrix, rotate_xy_nt,
                                  rotate_nt_xy, to_full, from_full)


def _random_normals(n, seed=0):
    v = np.random.default_rng(seed).standard_normal((3, n))
    return jnp.asarray(v / np.linalg.norm(v, axis=0))


AXIS_NORMALS = jnp.array([[1.0, 0.0, 0.0], [-1.0, 0.0, 0.0], [0.0, 1.0, 0.0],
                          [0.0, -1.0, 0.0], [0.0, 0.0, 1.0], [0.0, 0.0, -1.0],
                          [np.sqrt(0.5), np.sqrt(0.5), 0.0]]).T


def _random_stress(n, seed=1):
    a = np.random.default_rng(seed).standard_normal((3, 3, n))
    return jnp.asarray(0.5 * (a + a.transpose(1, 0, 2)))


class TestTangents:

    @pytest.mark.parametrize("normals", [_random_normals(200), AXIS_NORMALS],
                             ids=["random", "axis-aligned"])
    def test_orthonormal_frame(self, normals):
        t1, t2 = tangent_vectors(normals)
        R = rotation_matrix(normals, t1, t2)
        RRt = jnp.einsum('ai...,bi...->ab...', R, R)
        err = float(jnp.max(jnp.abs(RRt - jnp.eye(3)[:, :, None])))
        assert err < 1e-14, f"frame not orthonormal: {err:.2e}"
        det = jnp.linalg.det(jnp.moveaxis(R, -1, 0))
        assert float(jnp.max(jnp.abs(det - 1.0))) < 1e-14, "frame not right-handed"

    def test_in_plane_normal_keeps_z_tangent(self):
        """2D normals give t1 in the plane and t2 = +-e_z."""
        theta = jnp.linspace(0.0, 2 * jnp.pi, 37)
        n = jnp.stack([jnp.cos(theta), jnp.sin(theta), jnp.zeros_like(theta)])
        t1, t2 = tangent_vectors(n)
        assert float(jnp.max(jnp.abs(t1[2]))) == 0.0
        assert float(jnp.max(jnp.abs(jnp.abs(t2[2]) - 1.0))) < 1e-14


class TestRoundTrip:

    def test_xy_nt_xy(self):
        n = _random_normals(100, seed=3)
        R = rotation_matrix(n, *tangent_vectors(n))
        v = jnp.asarray(np.random.default_rng(4).standard_normal((3, 100)))
        s = _random_stress(100, seed=5)
        v_rot, s_rot = rotate_xy_nt(v, s, R)
        v_back, s_back = rotate_nt_xy(v_rot, s_rot, R)
        err = max(float(jnp.max(jnp.abs(v_back - v))), float(jnp.max(jnp.abs(s_back - s))))
        assert err < 1e-13, f"round trip error {err:.2e}"

    def test_rotated_components(self):
        """v'_0 = v.n, s'_00 = n.s.n, s'_01 = n.s.t1."""
        n = _random_normals(50, seed=6)
        t1, t2 = tangent_vectors(n)
        R = rotation_matrix(n, t1, t2)
        v = jnp.asarray(np.random.default_rng(7).standard_normal((3, 50)))
        s = _random_stress(50, seed=8)
        v_rot, s_rot = rotate_xy_nt(v, s, R)
        sn = jnp.einsum('ij...,j...->i...', s, n)
        assert float(jnp.max(jnp.abs(v_rot[0] - jnp.sum(v * n, axis=0)))) < 1e-14
        assert float(jnp.max(jnp.abs(s_rot[0, 0] - jnp.sum(n * sn, axis=0)))) < 1e-13
        assert float(jnp.max(jnp.abs(s_rot[0, 1] - jnp.sum(t1 * sn, axis=0)))) < 1e-13
        assert float(jnp.max(jnp.abs(s_rot[0, 2] - jnp.sum(t2 * sn, axis=0)))) < 1e-13

    def test_negated_frame_keeps_traction(self):
        """The side-2 frame (-n, -t1, -t2) flips velocities but not tractions."""
        n = _random_normals(20, seed=9)
        R = rotation_matrix(n, *tangent_vectors(n))
        v = jnp.asarray(np.random.default_rng(10).standard_normal((3, 20)))
        s = _random_stress(20, seed=11)
        v1, s1 = rotate_xy_nt(v, s, R)
        v2, s2 = rotate_xy_nt(v, s, -R)
        assert float(jnp.max(jnp.abs(v1 + v2))) < 1e-14
        assert float(jnp.max(jnp.abs(s1 - s2))) < 1e-14


class TestPacking:

    @pytest.mark.parametrize("mode", list(Mode))
    def test_pack_round_trip(self, mode, random_state):
        state = random_state((mode.nfields, 4, 3))
        v, s = to_full(state, mode)
        assert v.shape == (3, 4, 3) and s.shape == (3, 3, 4, 3)
        assert float(jnp.max(jnp.abs(s - jnp.swapaxes(s, 0, 1)))) == 0.0
        back = from_full(v, s, mode)
        assert float(jnp.max(jnp.abs(back - state))) == 0.0

    def test_mode3_rotation_stays_antiplane(self, random_state):
        """An in-plane normal maps mode III onto the t2 characteristic only."""
        mode = Mode.MODE3
        state = random_state((3, 10))
        theta = jnp.linspace(0.1, 6.0, 10)
        n = jnp.stack([jnp.cos(theta), jnp.sin(theta), jnp.zeros_like(theta)])
        R = rotation_matrix(n, *tangent_vectors(n))
        v_rot, s_rot = rotate_xy_nt(*to_full(state, mode), R)
        assert float(jnp.max(jnp.abs(v_rot[:2]))) < 1e-15
        assert float(jnp.max(jnp.abs(s_rot[0, :2]))) < 1e-15
        assert float(jnp.max(jnp.abs(jnp.abs(v_rot[2]) - jnp.abs(state[0])))) < 1e-14
