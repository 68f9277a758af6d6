# Copyright (c) 2025.
# This file is part of smooth-jit, released under the MIT License.
"""
SE(2): planar rigid transforms.

Memory layout
-------------
- Group:    ``[x, y, cos, sin]``
- Tangent:  ``[vx, vy, w]``

Closed forms follow Sola, Deray & Atchuthan, "A micro Lie theory for
state estimation in robotics" (2018), section on SE(2).
"""

from __future__ import annotations

import jax
import jax.numpy as jnp

from smooth_jit.core import trig
from smooth_jit.lie.base import LieGroup
from smooth_jit.lie.so2 import SO2


def _v_coeffs(w) -> tuple:
    """``(sin w / w, (1 - cos w) / w)`` from the Taylor tails."""
    w2 = w * w
    return trig.sinc(w2), -w * trig.cos_2(w2)


def _v_inverse_coeff(w) -> jnp.ndarray:
    """``(w / 2) cot(w / 2)``; the diagonal of ``V(w)^-1``."""
    w2 = w * w
    return -trig.sinc(w2) / (2.0 * trig.cos_2(w2))


class SE2(LieGroup, rep_size=4, dof=3, matrix_dim=3):
    """Special Euclidean group for proper rigid transforms in 2D."""

    @classmethod
    def from_rotation_and_translation(cls, rotation: SO2, translation) -> "SE2":
        return cls(jnp.concatenate([jnp.asarray(translation), rotation.coeffs]))

    @classmethod
    def from_xy_theta(cls, x, y, theta) -> "SE2":
        return cls(jnp.stack([x, y, jnp.cos(theta), jnp.sin(theta)]))

    def rotation(self) -> SO2:
        return SO2._wrap(self.coeffs[2:])

    def translation(self) -> jnp.ndarray:
        return self.coeffs[:2]

    @classmethod
    def identity(cls, dtype=None) -> "SE2":
        return cls(jnp.array([0.0, 0.0, 1.0, 0.0], dtype=dtype))

    @classmethod
    def random(cls, key: jax.Array) -> "SE2":
        k_rot, k_trans = jax.random.split(key)
        return cls.from_rotation_and_translation(
            SO2.random(k_rot), jax.random.uniform(k_trans, (2,), minval=-1.0, maxval=1.0)
        )

    def compose(self, other: "SE2") -> "SE2":
        R = self.rotation()
        return SE2._wrap(
            jnp.concatenate(
                [
                    R.apply(other.translation()) + self.translation(),
                    R.compose(other.rotation()).coeffs,
                ]
            )
        )

    def inverse(self) -> "SE2":
        R_inv = self.rotation().inverse()
        return SE2._wrap(jnp.concatenate([-R_inv.apply(self.translation()), R_inv.coeffs]))

    @classmethod
    def exp(cls, v) -> "SE2":
        v = cls.check_tangent(v)
        w = v[2]
        a, b = _v_coeffs(w)
        t = jnp.stack([a * v[0] - b * v[1], b * v[0] + a * v[1]])
        return cls._wrap(jnp.concatenate([t, jnp.stack([jnp.cos(w), jnp.sin(w)])]))

    def log(self) -> jnp.ndarray:
        w = self.rotation().angle()
        alpha = _v_inverse_coeff(w)
        half = w / 2.0
        x, y = self.coeffs[0], self.coeffs[1]
        return jnp.stack([alpha * x + half * y, -half * x + alpha * y, w])

    def Ad(self) -> jnp.ndarray:
        out = jnp.eye(3, dtype=self.coeffs.dtype)
        out = out.at[:2, :2].set(self.rotation().matrix())
        out = out.at[0, 2].set(self.coeffs[1])
        out = out.at[1, 2].set(-self.coeffs[0])
        return out

    @classmethod
    def ad(cls, v) -> jnp.ndarray:
        v = cls.check_tangent(v)
        zero = jnp.zeros_like(v[0])
        return jnp.array(
            [
                [zero, -v[2], v[1]],
                [v[2], zero, -v[0]],
                [zero, zero, zero],
            ]
        )

    @classmethod
    def _dr_exp_parts(cls, v):
        w = v[2]
        w2 = w * w
        a, b = _v_coeffs(w)
        s3 = trig.sin_3(w2)
        c2 = trig.cos_2(w2)
        c = jnp.stack(
            [
                -w * s3 * v[0] + c2 * v[1],
                -c2 * v[0] - w * s3 * v[1],
            ]
        )
        return a, b, c

    @classmethod
    def dr_exp(cls, v) -> jnp.ndarray:
        v = cls.check_tangent(v)
        a, b, c = cls._dr_exp_parts(v)
        out = jnp.eye(3, dtype=v.dtype)
        out = out.at[:2, :2].set(jnp.array([[a, b], [-b, a]]))
        out = out.at[:2, 2].set(c)
        return out

    @classmethod
    def dr_expinv(cls, v) -> jnp.ndarray:
        v = cls.check_tangent(v)
        _, _, c = cls._dr_exp_parts(v)
        alpha = _v_inverse_coeff(v[2])
        half = v[2] / 2.0
        M_inv = jnp.array([[alpha, -half], [half, alpha]])
        out = jnp.eye(3, dtype=v.dtype)
        out = out.at[:2, :2].set(M_inv)
        out = out.at[:2, 2].set(-M_inv @ c)
        return out

    @classmethod
    def hat(cls, v) -> jnp.ndarray:
        v = jnp.asarray(v)
        out = jnp.zeros((3, 3), dtype=v.dtype)
        out = out.at[:2, :2].set(SO2.hat(v[2:]))
        out = out.at[:2, 2].set(v[:2])
        return out

    @classmethod
    def vee(cls, X) -> jnp.ndarray:
        return jnp.concatenate([X[:2, 2], SO2.vee(X[:2, :2])])

    def matrix(self) -> jnp.ndarray:
        out = jnp.eye(3, dtype=self.coeffs.dtype)
        out = out.at[:2, :2].set(self.rotation().matrix())
        out = out.at[:2, 2].set(self.translation())
        return out

    def apply(self, point) -> jnp.ndarray:
        return self.rotation().apply(point) + self.translation()
