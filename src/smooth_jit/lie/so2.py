# Copyright (c) 2025.
# This file is part of smooth-jit, released under the MIT License.
"""
SO(2): planar rotations.

Internal parameterization is the unit complex number ``(cos, sin)``.
Tangent parameterization is ``(omega,)``; the canonical chart covers
``omega`` in ``(-pi, pi]``.

SO(2) is abelian, so ``Ad``, ``dr_exp`` and ``dr_expinv`` are all the
1×1 identity and ``ad`` is zero.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp

from smooth_jit.lie.base import LieGroup


class SO2(LieGroup, rep_size=2, dof=1, matrix_dim=2):
    """Special orthogonal group for 2D rotations."""

    @classmethod
    def from_angle(cls, theta) -> "SO2":
        return cls(jnp.stack([jnp.cos(theta), jnp.sin(theta)]))

    def angle(self) -> jnp.ndarray:
        return jnp.arctan2(self.coeffs[1], self.coeffs[0])

    @classmethod
    def identity(cls, dtype=None) -> "SO2":
        return cls(jnp.array([1.0, 0.0], dtype=dtype))

    @classmethod
    def random(cls, key: jax.Array) -> "SO2":
        return cls.from_angle(jax.random.uniform(key, minval=-jnp.pi, maxval=jnp.pi))

    def compose(self, other: "SO2") -> "SO2":
        c1, s1 = self.coeffs[0], self.coeffs[1]
        c2, s2 = other.coeffs[0], other.coeffs[1]
        return SO2._wrap(jnp.stack([c1 * c2 - s1 * s2, s1 * c2 + c1 * s2]))

    def inverse(self) -> "SO2":
        return SO2._wrap(self.coeffs * jnp.array([1.0, -1.0]))

    @classmethod
    def exp(cls, v) -> "SO2":
        v = cls.check_tangent(v)
        return cls._wrap(jnp.stack([jnp.cos(v[0]), jnp.sin(v[0])]))

    def log(self) -> jnp.ndarray:
        return self.angle()[None]

    def Ad(self) -> jnp.ndarray:
        return jnp.ones((1, 1), dtype=self.coeffs.dtype)

    @classmethod
    def ad(cls, v) -> jnp.ndarray:
        v = cls.check_tangent(v)
        return jnp.zeros((1, 1), dtype=v.dtype)

    @classmethod
    def dr_exp(cls, v) -> jnp.ndarray:
        v = cls.check_tangent(v)
        return jnp.ones((1, 1), dtype=v.dtype)

    @classmethod
    def dr_expinv(cls, v) -> jnp.ndarray:
        v = cls.check_tangent(v)
        return jnp.ones((1, 1), dtype=v.dtype)

    @classmethod
    def hat(cls, v) -> jnp.ndarray:
        w = jnp.asarray(v)[0]
        return jnp.array([[0.0, -w], [w, 0.0]])

    @classmethod
    def vee(cls, X) -> jnp.ndarray:
        return jnp.array([(X[1, 0] - X[0, 1]) / 2.0])

    def matrix(self) -> jnp.ndarray:
        c, s = self.coeffs[0], self.coeffs[1]
        return jnp.array([[c, -s], [s, c]])

    def apply(self, point) -> jnp.ndarray:
        return self.matrix() @ jnp.asarray(point)

    def normalize(self) -> "SO2":
        return SO2(self.coeffs / jnp.linalg.norm(self.coeffs))
