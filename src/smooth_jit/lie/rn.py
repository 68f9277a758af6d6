# Copyright (c) 2025.
# This file is part of smooth-jit, released under the MIT License.
"""
R^n as a Lie group under addition.

Mostly useful as a building block of ``Bundle`` (e.g. SO(3) × R^3 for a
rotation plus a bias). Concrete types are created on demand and cached,
so ``Rn.of(3) is Rn.of(3)``:

    R3 = Rn.of(3)
    x = R3(jnp.array([1.0, 2.0, 3.0]))

Composition is vector addition, ``exp``/``log`` are the identity map and
all differential operators are trivial.
"""

from __future__ import annotations

import functools
from typing import Type

import jax
import jax.numpy as jnp

from smooth_jit.lie.base import LieGroup


class Rn(LieGroup):
    """Euclidean vector group. Use ``Rn.of(n)`` for a concrete dimension."""

    @staticmethod
    def of(n: int) -> Type["Rn"]:
        return _rn_type(int(n))

    @classmethod
    def identity(cls, dtype=None) -> "Rn":
        return cls(jnp.zeros(cls.rep_size, dtype=dtype))

    @classmethod
    def random(cls, key: jax.Array) -> "Rn":
        return cls(jax.random.uniform(key, (cls.rep_size,), minval=-1.0, maxval=1.0))

    def compose(self, other: "Rn") -> "Rn":
        return type(self)._wrap(self.coeffs + other.coeffs)

    def inverse(self) -> "Rn":
        return type(self)._wrap(-self.coeffs)

    @classmethod
    def exp(cls, v) -> "Rn":
        return cls._wrap(cls.check_tangent(v))

    def log(self) -> jnp.ndarray:
        return self.coeffs

    def Ad(self) -> jnp.ndarray:
        return jnp.eye(self.dof, dtype=self.coeffs.dtype)

    @classmethod
    def ad(cls, v) -> jnp.ndarray:
        v = cls.check_tangent(v)
        return jnp.zeros((cls.dof, cls.dof), dtype=v.dtype)

    @classmethod
    def dr_exp(cls, v) -> jnp.ndarray:
        v = cls.check_tangent(v)
        return jnp.eye(cls.dof, dtype=v.dtype)

    @classmethod
    def dr_expinv(cls, v) -> jnp.ndarray:
        v = cls.check_tangent(v)
        return jnp.eye(cls.dof, dtype=v.dtype)

    @classmethod
    def hat(cls, v) -> jnp.ndarray:
        v = jnp.asarray(v)
        out = jnp.zeros((cls.dof + 1, cls.dof + 1), dtype=v.dtype)
        return out.at[:-1, -1].set(v)

    @classmethod
    def vee(cls, X) -> jnp.ndarray:
        return X[:-1, -1]

    def matrix(self) -> jnp.ndarray:
        out = jnp.eye(self.dof + 1, dtype=self.coeffs.dtype)
        return out.at[:-1, -1].set(self.coeffs)

    def apply(self, point) -> jnp.ndarray:
        return jnp.asarray(point) + self.coeffs


@functools.lru_cache(maxsize=None)
def _rn_type(n: int) -> Type[Rn]:
    if n <= 0:
        raise ValueError(f"Rn dimension must be positive, got {n}")
    return type(f"R{n}", (Rn,), {"__module__": __name__}, rep_size=n, dof=n, matrix_dim=n + 1)
