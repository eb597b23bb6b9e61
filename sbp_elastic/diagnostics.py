"""
diagnostics.py — Energy and Velocity Diagnostics
=================================================

Discrete energy in the SBP norm,

    E = sum_blocks sum_i H_i J_i ( rho/2 |v_i|^2 + W(sigma_i) )

with H the tensor product of 1D norm weights (times the reference spacing)
and W the isotropic strain energy density written in stresses,

    W = 1/(4 g) ( sigma:sigma - lam/(3 lam + 2 g) tr(sigma)^2 )

Mode II is plane strain, so szz = lam / (2 (lam + g)) (sxx + syy) is filled
in before W is evaluated.  With absorbing boundaries and locked interfaces
the semi-discrete energy is non-increasing.
"""

import jax.numpy as jnp

from .fields import Mode
from .operators import norm_matrix
from .rotation import to_full


def norm_weights(block):
    """(w0, w1, w2) tensor-product SBP norm on the block's owned window."""
    w = None
    for d in range(3):
        c = block.coords[d]
        if d < block.ndim:
            h = norm_matrix(block.fd, c.nx, block.dx[d])
            h = h[c.xm_loc - c.xm:c.xm_loc - c.xm + c.nx_loc]
        else:
            h = jnp.ones(c.nx_loc)
        shape = [1, 1, 1]
        shape[d] = c.nx_loc
        h = h.reshape(shape)
        w = h if w is None else w * h
    return w


def strain_energy_density(s, mat):
    """W(sigma) for a (3, 3, ...) stress tensor."""
    tr = s[0, 0] + s[1, 1] + s[2, 2]
    ss = jnp.sum(s**2, axis=(0, 1))
    if mat.g > 0.0:
        return (ss - mat.lam / (3.0 * mat.lam + 2.0 * mat.g) * tr**2) / (4.0 * mat.g)
    return tr**2 / (18.0 * mat.lam)


def block_energy(block, fields):
    if block.no_data:
        return 0.0
    win = block.window()
    v, s = to_full(fields.f[(slice(None),) + win], block.mode)
    mat = block.mat
    if block.mode is Mode.MODE2:
        szz = mat.lam / (2.0 * (mat.lam + mat.g)) * (s[0, 0] + s[1, 1])
        s = s.at[2, 2].set(szz)
    density = 0.5 * mat.rho * jnp.sum(v**2, axis=0) + strain_energy_density(s, mat)
    return float(jnp.sum(norm_weights(block) * fields.jac[win] * density))


def compute_energy(domain):
    """Total energy over all blocks and processes."""
    local = sum(block_energy(block, domain.fields) for block in domain.blocks)
    return domain.topology.allreduce_sum(local)


def max_velocity(domain):
    """Largest velocity magnitude over all blocks and processes."""
    vmax = 0.0
    for block in domain.blocks:
        if block.no_data:
            continue
        v, _ = to_full(domain.fields.f[(slice(None),) + block.window()], block.mode)
        vmax = max(vmax, float(jnp.max(jnp.sqrt(jnp.sum(v**2, axis=0)))))
    return domain.topology.allreduce_max(vmax)
