# Copyright (c) 2025.
# This file is part of smooth-jit, released under the MIT License.
"""
C1: rotations and scalings of the plane.

The group of non-zero complex numbers ``z = s * exp(i * theta)`` under
multiplication.

Memory layout
-------------
- Group:    ``[a, b]`` with ``z = a + i b``, ``a^2 + b^2 > 0``
- Tangent:  ``[sigma, theta]`` with ``s = exp(sigma)``

C1 is abelian: ``Ad`` and both exponential Jacobians are the identity and
``ad`` vanishes.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp

from smooth_jit.lie.base import LieGroup


class C1(LieGroup, rep_size=2, dof=2, matrix_dim=2):
    """Scale-and-rotation group, isomorphic to the non-zero complex numbers."""

    @classmethod
    def from_scale_and_angle(cls, scale, angle) -> "C1":
        return cls(scale * jnp.stack([jnp.cos(angle), jnp.sin(angle)]))

    def scale(self) -> jnp.ndarray:
        return jnp.linalg.norm(self.coeffs)

    def angle(self) -> jnp.ndarray:
        return jnp.arctan2(self.coeffs[1], self.coeffs[0])

    @classmethod
    def identity(cls, dtype=None) -> "C1":
        return cls(jnp.array([1.0, 0.0], dtype=dtype))

    @classmethod
    def random(cls, key: jax.Array) -> "C1":
        k_scale, k_angle = jax.random.split(key)
        return cls.exp(
            jnp.stack(
                [
                    jax.random.uniform(k_scale, minval=-1.0, maxval=1.0),
                    jax.random.uniform(k_angle, minval=-jnp.pi, maxval=jnp.pi),
                ]
            )
        )

    def compose(self, other: "C1") -> "C1":
        a1, b1 = self.coeffs[0], self.coeffs[1]
        a2, b2 = other.coeffs[0], other.coeffs[1]
        return C1._wrap(jnp.stack([a1 * a2 - b1 * b2, a1 * b2 + b1 * a2]))

    def inverse(self) -> "C1":
        n2 = jnp.dot(self.coeffs, self.coeffs)
        return C1._wrap(self.coeffs * jnp.array([1.0, -1.0]) / n2)

    @classmethod
    def exp(cls, v) -> "C1":
        v = cls.check_tangent(v)
        s = jnp.exp(v[0])
        return cls._wrap(s * jnp.stack([jnp.cos(v[1]), jnp.sin(v[1])]))

    def log(self) -> jnp.ndarray:
        n2 = jnp.dot(self.coeffs, self.coeffs)
        return jnp.stack([0.5 * jnp.log(n2), self.angle()])

    def Ad(self) -> jnp.ndarray:
        return jnp.eye(2, dtype=self.coeffs.dtype)

    @classmethod
    def ad(cls, v) -> jnp.ndarray:
        v = cls.check_tangent(v)
        return jnp.zeros((2, 2), dtype=v.dtype)

    @classmethod
    def dr_exp(cls, v) -> jnp.ndarray:
        v = cls.check_tangent(v)
        return jnp.eye(2, dtype=v.dtype)

    @classmethod
    def dr_expinv(cls, v) -> jnp.ndarray:
        v = cls.check_tangent(v)
        return jnp.eye(2, dtype=v.dtype)

    @classmethod
    def hat(cls, v) -> jnp.ndarray:
        v = jnp.asarray(v)
        return jnp.array([[v[0], -v[1]], [v[1], v[0]]])

    @classmethod
    def vee(cls, X) -> jnp.ndarray:
        return jnp.array([(X[0, 0] + X[1, 1]) / 2.0, (X[1, 0] - X[0, 1]) / 2.0])

    def matrix(self) -> jnp.ndarray:
        a, b = self.coeffs[0], self.coeffs[1]
        return jnp.array([[a, -b], [b, a]])

    def apply(self, point) -> jnp.ndarray:
        return self.matrix() @ jnp.asarray(point)
