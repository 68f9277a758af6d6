# Copyright (c) 2025.
# This file is part of smooth-jit, released under the MIT License.
"""
SE(3): rigid-body transforms.

Memory layout
-------------
- Group:    ``[x, y, z, qx, qy, qz, qw]`` (translation, then SO(3) quaternion)
- Tangent:  ``[vx, vy, vz, wx, wy, wz]`` (translational part first)

Lie group matrix form is the 4×4 homogeneous transform

    T = [ R  t ]
        [ 0  1 ]

The exponential map is ``R = Exp(w)``, ``t = Jl(w) v`` where ``Jl`` is the
left Jacobian of SO(3). The right Jacobian of SE(3) has the block form

    dr_exp([v, w]) = [ Jr(w)  Q(-v, -w) ]
                     [ 0      Jr(w)     ]

with ``Q`` the coupling block of Barfoot, "State Estimation for Robotics"
(2017), eq. 7.86, written here in terms of the Taylor tails of
``core.trig``.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp

from smooth_jit.core import math3d, trig
from smooth_jit.lie.base import LieGroup
from smooth_jit.lie.so3 import SO3


def coupling_block(rho: jnp.ndarray, phi: jnp.ndarray) -> jnp.ndarray:
    """
    Barfoot's ``Q(rho, phi)``: upper-right block of the SE(3) *left*
    Jacobian. Reused by every group whose translation-like parts are
    transported by an SO(3) rotation.
    """
    th2 = jnp.dot(phi, phi)
    P = math3d.hat(phi)
    V = math3d.hat(rho)
    PV = P @ V
    VP = V @ P
    PVP = PV @ P
    a = -trig.sin_3(th2)
    b = trig.cos_4(th2)
    c = 0.5 * (trig.cos_4(th2) - 3.0 * trig.sin_5(th2))
    return (
        0.5 * V
        + a * (PV + VP + PVP)
        + b * (P @ PV + VP @ P - 3.0 * PVP)
        + c * (PVP @ P + P @ PVP)
    )


class SE3(LieGroup, rep_size=7, dof=6, matrix_dim=4):
    """Special Euclidean group for proper rigid transforms in 3D."""

    @classmethod
    def from_rotation_and_translation(cls, rotation: SO3, translation) -> "SE3":
        return cls(jnp.concatenate([jnp.asarray(translation), rotation.coeffs]))

    @classmethod
    def from_rotation(cls, rotation: SO3) -> "SE3":
        return cls.from_rotation_and_translation(rotation, jnp.zeros(3, dtype=rotation.coeffs.dtype))

    @classmethod
    def from_translation(cls, translation) -> "SE3":
        translation = jnp.asarray(translation)
        return cls.from_rotation_and_translation(SO3.identity(translation.dtype), translation)

    def rotation(self) -> SO3:
        return SO3._wrap(self.coeffs[3:])

    def translation(self) -> jnp.ndarray:
        return self.coeffs[:3]

    @classmethod
    def identity(cls, dtype=None) -> "SE3":
        return cls(jnp.array([0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 1.0], dtype=dtype))

    @classmethod
    def random(cls, key: jax.Array) -> "SE3":
        k_rot, k_trans = jax.random.split(key)
        return cls.from_rotation_and_translation(
            SO3.random(k_rot), jax.random.uniform(k_trans, (3,), minval=-1.0, maxval=1.0)
        )

    def compose(self, other: "SE3") -> "SE3":
        R = self.rotation()
        return SE3._wrap(
            jnp.concatenate(
                [
                    R.apply(other.translation()) + self.translation(),
                    R.compose(other.rotation()).coeffs,
                ]
            )
        )

    def inverse(self) -> "SE3":
        R_inv = self.rotation().inverse()
        return SE3._wrap(jnp.concatenate([-R_inv.apply(self.translation()), R_inv.coeffs]))

    @classmethod
    def exp(cls, v) -> "SE3":
        v = cls.check_tangent(v)
        rho, phi = v[:3], v[3:]
        R = SO3.exp(phi)
        t = SO3.dl_exp(phi) @ rho
        return cls._wrap(jnp.concatenate([t, R.coeffs]))

    def log(self) -> jnp.ndarray:
        phi = self.rotation().log()
        rho = SO3.dl_expinv(phi) @ self.translation()
        return jnp.concatenate([rho, phi])

    def Ad(self) -> jnp.ndarray:
        R = self.rotation().matrix()
        out = jnp.zeros((6, 6), dtype=R.dtype)
        out = out.at[:3, :3].set(R)
        out = out.at[:3, 3:].set(math3d.hat(self.translation()) @ R)
        out = out.at[3:, 3:].set(R)
        return out

    @classmethod
    def ad(cls, v) -> jnp.ndarray:
        v = cls.check_tangent(v)
        V = math3d.hat(v[:3])
        W = math3d.hat(v[3:])
        out = jnp.zeros((6, 6), dtype=W.dtype)
        out = out.at[:3, :3].set(W)
        out = out.at[:3, 3:].set(V)
        out = out.at[3:, 3:].set(W)
        return out

    @classmethod
    def dr_exp(cls, v) -> jnp.ndarray:
        v = cls.check_tangent(v)
        rho, phi = v[:3], v[3:]
        Jr = SO3.dr_exp(phi)
        out = jnp.zeros((6, 6), dtype=Jr.dtype)
        out = out.at[:3, :3].set(Jr)
        out = out.at[:3, 3:].set(coupling_block(-rho, -phi))
        out = out.at[3:, 3:].set(Jr)
        return out

    @classmethod
    def dr_expinv(cls, v) -> jnp.ndarray:
        v = cls.check_tangent(v)
        rho, phi = v[:3], v[3:]
        Jr_inv = SO3.dr_expinv(phi)
        Q = coupling_block(-rho, -phi)
        out = jnp.zeros((6, 6), dtype=Jr_inv.dtype)
        out = out.at[:3, :3].set(Jr_inv)
        out = out.at[:3, 3:].set(-Jr_inv @ Q @ Jr_inv)
        out = out.at[3:, 3:].set(Jr_inv)
        return out

    @classmethod
    def hat(cls, v) -> jnp.ndarray:
        v = jnp.asarray(v)
        out = jnp.zeros((4, 4), dtype=v.dtype)
        out = out.at[:3, :3].set(math3d.hat(v[3:]))
        out = out.at[:3, 3].set(v[:3])
        return out

    @classmethod
    def vee(cls, X) -> jnp.ndarray:
        return jnp.concatenate([X[:3, 3], math3d.vee(X[:3, :3])])

    def matrix(self) -> jnp.ndarray:
        out = jnp.eye(4, dtype=self.coeffs.dtype)
        out = out.at[:3, :3].set(self.rotation().matrix())
        out = out.at[:3, 3].set(self.translation())
        return out

    def apply(self, point) -> jnp.ndarray:
        return self.rotation().apply(point) + self.translation()

    def project_se2(self):
        """Drop z, roll and pitch."""
        from smooth_jit.lie.se2 import SE2

        return SE2.from_rotation_and_translation(self.rotation().project_so2(), self.translation()[:2])
