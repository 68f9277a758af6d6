# Copyright (c) 2025.
# This file is part of smooth-jit, released under the MIT License.
"""
Small 3D linear-algebra helpers shared by the Lie-group modules.

Utilities
---------
hat(w)
    Converts a 3-vector to its skew-symmetric matrix.

vee(W)
    Converts a 3×3 skew matrix back into a 3-vector.

quat_multiply(p, q)
    Hamilton product of quaternions stored as ``[x, y, z, w]``.

quat_to_matrix(q)
    Rotation matrix of a unit quaternion ``[x, y, z, w]``.

matrix_to_quat(R)
    Unit quaternion ``[x, y, z, w]`` with ``w >= 0`` from a rotation matrix.

block_diag(*blocks)
    Dense block-diagonal matrix (used for product-group Jacobians).

All functions are written with ``jax.numpy`` so they can be traced by
``jax.jit`` and differentiated with ``jax.jacfwd``.
"""

from __future__ import annotations

import jax.numpy as jnp


def hat(v: jnp.ndarray) -> jnp.ndarray:
    """so(3) hat operator: R^3 -> 3x3 skew-symmetric matrix."""
    x, y, z = v[0], v[1], v[2]
    zero = jnp.zeros_like(x)
    return jnp.array(
        [
            [zero, -z, y],
            [z, zero, -x],
            [-y, x, zero],
        ]
    )


def vee(W: jnp.ndarray) -> jnp.ndarray:
    """
    vee: so(3) -> R^3, inverse of hat.
    Uses the antisymmetric part, so near-skew inputs are tolerated.
    """
    return jnp.array(
        [
            W[2, 1] - W[1, 2],
            W[0, 2] - W[2, 0],
            W[1, 0] - W[0, 1],
        ]
    ) / 2.0


def quat_multiply(p: jnp.ndarray, q: jnp.ndarray) -> jnp.ndarray:
    px, py, pz, pw = p[0], p[1], p[2], p[3]
    qx, qy, qz, qw = q[0], q[1], q[2], q[3]
    return jnp.array(
        [
            pw * qx + px * qw + py * qz - pz * qy,
            pw * qy - px * qz + py * qw + pz * qx,
            pw * qz + px * qy - py * qx + pz * qw,
            pw * qw - px * qx - py * qy - pz * qz,
        ]
    )


def quat_canonical(q: jnp.ndarray) -> jnp.ndarray:
    """Fix the double cover: flip sign so that ``w >= 0``."""
    return jnp.where(q[3] < 0.0, -q, q)


def quat_to_matrix(q: jnp.ndarray) -> jnp.ndarray:
    x, y, z, w = q[0], q[1], q[2], q[3]
    return jnp.array(
        [
            [1 - 2 * (y * y + z * z), 2 * (x * y - z * w), 2 * (x * z + y * w)],
            [2 * (x * y + z * w), 1 - 2 * (x * x + z * z), 2 * (y * z - x * w)],
            [2 * (x * z - y * w), 2 * (y * z + x * w), 1 - 2 * (x * x + y * y)],
        ]
    )


def matrix_to_quat(R: jnp.ndarray) -> jnp.ndarray:
    """
    Shepperd's method: pick the largest of the four squared-component
    estimates to divide by, then canonicalize the sign.
    """
    R = jnp.asarray(R)
    trace = jnp.trace(R)
    candidates = jnp.array(
        [
            1.0 + R[0, 0] - R[1, 1] - R[2, 2],
            1.0 - R[0, 0] + R[1, 1] - R[2, 2],
            1.0 - R[0, 0] - R[1, 1] + R[2, 2],
            1.0 + trace,
        ]
    )
    # Rows are 4 * q_k * q for each choice of pivot component k.
    rows = jnp.array(
        [
            [candidates[0], R[0, 1] + R[1, 0], R[0, 2] + R[2, 0], R[2, 1] - R[1, 2]],
            [R[0, 1] + R[1, 0], candidates[1], R[1, 2] + R[2, 1], R[0, 2] - R[2, 0]],
            [R[0, 2] + R[2, 0], R[1, 2] + R[2, 1], candidates[2], R[1, 0] - R[0, 1]],
            [R[2, 1] - R[1, 2], R[0, 2] - R[2, 0], R[1, 0] - R[0, 1], candidates[3]],
        ]
    )
    k = jnp.argmax(candidates)
    q = rows[k] / (2.0 * jnp.sqrt(candidates[k]))
    return quat_canonical(q / jnp.linalg.norm(q))


def block_diag(*blocks: jnp.ndarray) -> jnp.ndarray:
    n = sum(b.shape[0] for b in blocks)
    out = jnp.zeros((n, n), dtype=jnp.result_type(*blocks))
    offset = 0
    for b in blocks:
        k = b.shape[0]
        out = out.at[offset:offset + k, offset:offset + k].set(b)
        offset += k
    return out
