# Copyright (c) 2025.
# This file is part of smooth-jit, released under the MIT License.
"""
SE_2(3): extended poses (rotation, velocity and position).

Used for inertial navigation states, where position and velocity are both
transported by the body rotation.

Memory layout
-------------
- Group:    ``[px, py, pz, vx, vy, vz, qx, qy, qz, qw]``
- Tangent:  ``[rho_p (3), rho_v (3), w (3)]``

Lie group matrix form (5×5)

    [ R  v  p ]
    [ 0  1  0 ]
    [ 0  0  1 ]

Each translation-like block behaves as the SE(3) translation does, so the
Jacobians reuse ``se3.coupling_block``.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp

from smooth_jit.core import math3d
from smooth_jit.lie.base import LieGroup
from smooth_jit.lie.se3 import SE3, coupling_block
from smooth_jit.lie.so3 import SO3


class SE2_3(LieGroup, rep_size=10, dof=9, matrix_dim=5):
    """Extended pose group: SO(3) acting on a position and a velocity."""

    @classmethod
    def from_parts(cls, rotation: SO3, velocity, position) -> "SE2_3":
        return cls(jnp.concatenate([jnp.asarray(position), jnp.asarray(velocity), rotation.coeffs]))

    def rotation(self) -> SO3:
        return SO3._wrap(self.coeffs[6:])

    def position(self) -> jnp.ndarray:
        return self.coeffs[:3]

    def velocity(self) -> jnp.ndarray:
        return self.coeffs[3:6]

    def pose(self) -> SE3:
        return SE3.from_rotation_and_translation(self.rotation(), self.position())

    @classmethod
    def identity(cls, dtype=None) -> "SE2_3":
        return cls(jnp.zeros(10, dtype=dtype).at[9].set(1.0))

    @classmethod
    def random(cls, key: jax.Array) -> "SE2_3":
        k_rot, k_trans = jax.random.split(key)
        pv = jax.random.uniform(k_trans, (6,), minval=-1.0, maxval=1.0)
        return cls(jnp.concatenate([pv, SO3.random(k_rot).coeffs]))

    def compose(self, other: "SE2_3") -> "SE2_3":
        R = self.rotation()
        return SE2_3._wrap(
            jnp.concatenate(
                [
                    R.apply(other.position()) + self.position(),
                    R.apply(other.velocity()) + self.velocity(),
                    R.compose(other.rotation()).coeffs,
                ]
            )
        )

    def inverse(self) -> "SE2_3":
        R_inv = self.rotation().inverse()
        return SE2_3._wrap(
            jnp.concatenate(
                [
                    -R_inv.apply(self.position()),
                    -R_inv.apply(self.velocity()),
                    R_inv.coeffs,
                ]
            )
        )

    @classmethod
    def exp(cls, v) -> "SE2_3":
        v = cls.check_tangent(v)
        phi = v[6:]
        Jl = SO3.dl_exp(phi)
        return cls._wrap(jnp.concatenate([Jl @ v[:3], Jl @ v[3:6], SO3.exp(phi).coeffs]))

    def log(self) -> jnp.ndarray:
        phi = self.rotation().log()
        Jl_inv = SO3.dl_expinv(phi)
        return jnp.concatenate([Jl_inv @ self.position(), Jl_inv @ self.velocity(), phi])

    def Ad(self) -> jnp.ndarray:
        R = self.rotation().matrix()
        out = jnp.zeros((9, 9), dtype=R.dtype)
        out = out.at[:3, :3].set(R)
        out = out.at[3:6, 3:6].set(R)
        out = out.at[6:, 6:].set(R)
        out = out.at[:3, 6:].set(math3d.hat(self.position()) @ R)
        out = out.at[3:6, 6:].set(math3d.hat(self.velocity()) @ R)
        return out

    @classmethod
    def ad(cls, v) -> jnp.ndarray:
        v = cls.check_tangent(v)
        W = math3d.hat(v[6:])
        out = jnp.zeros((9, 9), dtype=W.dtype)
        out = out.at[:3, :3].set(W)
        out = out.at[3:6, 3:6].set(W)
        out = out.at[6:, 6:].set(W)
        out = out.at[:3, 6:].set(math3d.hat(v[:3]))
        out = out.at[3:6, 6:].set(math3d.hat(v[3:6]))
        return out

    @classmethod
    def dr_exp(cls, v) -> jnp.ndarray:
        v = cls.check_tangent(v)
        phi = v[6:]
        Jr = SO3.dr_exp(phi)
        out = jnp.zeros((9, 9), dtype=Jr.dtype)
        out = out.at[:3, :3].set(Jr)
        out = out.at[3:6, 3:6].set(Jr)
        out = out.at[6:, 6:].set(Jr)
        out = out.at[:3, 6:].set(coupling_block(-v[:3], -phi))
        out = out.at[3:6, 6:].set(coupling_block(-v[3:6], -phi))
        return out

    @classmethod
    def dr_expinv(cls, v) -> jnp.ndarray:
        v = cls.check_tangent(v)
        phi = v[6:]
        Jr_inv = SO3.dr_expinv(phi)
        out = jnp.zeros((9, 9), dtype=Jr_inv.dtype)
        out = out.at[:3, :3].set(Jr_inv)
        out = out.at[3:6, 3:6].set(Jr_inv)
        out = out.at[6:, 6:].set(Jr_inv)
        out = out.at[:3, 6:].set(-Jr_inv @ coupling_block(-v[:3], -phi) @ Jr_inv)
        out = out.at[3:6, 6:].set(-Jr_inv @ coupling_block(-v[3:6], -phi) @ Jr_inv)
        return out

    @classmethod
    def hat(cls, v) -> jnp.ndarray:
        v = jnp.asarray(v)
        out = jnp.zeros((5, 5), dtype=v.dtype)
        out = out.at[:3, :3].set(math3d.hat(v[6:]))
        out = out.at[:3, 3].set(v[3:6])
        out = out.at[:3, 4].set(v[:3])
        return out

    @classmethod
    def vee(cls, X) -> jnp.ndarray:
        return jnp.concatenate([X[:3, 4], X[:3, 3], math3d.vee(X[:3, :3])])

    def matrix(self) -> jnp.ndarray:
        out = jnp.eye(5, dtype=self.coeffs.dtype)
        out = out.at[:3, :3].set(self.rotation().matrix())
        out = out.at[:3, 3].set(self.velocity())
        out = out.at[:3, 4].set(self.position())
        return out

    def apply(self, point) -> jnp.ndarray:
        return self.rotation().apply(point) + self.position()
