# Copyright (c) 2025.
# This file is part of smooth-jit, released under the MIT License.
"""
Interface shared by every Lie group in smooth-jit.

A group element is an immutable value object wrapping one coefficient
vector ``coeffs`` of length ``rep_size``. Every concrete subclass is
registered as a JAX pytree, so elements can be passed through
``jax.jit``, ``jax.jacfwd`` and ``jax.vmap`` like plain arrays; this is
what lets the automatic-differentiation Jacobians in
``optimization.diff`` run the exact same group code on tracers.

Class properties
----------------
rep_size
    Length of the coefficient vector (e.g. 4 for an SO(3) quaternion).
dof
    Dimension of the tangent space / Lie algebra.
matrix_dim
    Size of the square matrix returned by ``matrix()``.

Operators
---------
``g1 @ g2``     composition ``g1 * g2``
``g @ p``       group action on a point (where the group has one)
``g + v``       right retraction ``g * exp(v)``
``g1 - g2``     right difference ``log(g2^-1 * g1)``

Differential operators
----------------------
``Ad()``, ``ad(v)``, ``dr_exp(v)``, ``dr_expinv(v)``, ``dl_exp(v)``,
``dl_expinv(v)``. With the right-trivialized convention used throughout

    exp(v + dv) ≈ exp(v) * exp(dr_exp(v) @ dv)
    log(g * exp(dv)) ≈ log(g) + dr_expinv(log(g)) @ dv
"""

from __future__ import annotations

import abc
import enum
from typing import ClassVar, Tuple, Type, TypeVar

import jax
import jax.numpy as jnp
import numpy as np

from smooth_jit.core.errors import SizeMismatchError

GroupT = TypeVar("GroupT", bound="LieGroup")


class Ownership(enum.Enum):
    """Whether a value owns its coefficients or views someone else's buffer."""

    OWNED = "owned"
    VIEW = "view"


class LieGroup(abc.ABC):
    """Interface definition for Lie groups with fixed-size coefficient storage."""

    rep_size: ClassVar[int]
    dof: ClassVar[int]
    matrix_dim: ClassVar[int]
    ownership: ClassVar[Ownership] = Ownership.OWNED

    __slots__ = ("coeffs",)

    def __init_subclass__(
        cls,
        rep_size: int = 0,
        dof: int = 0,
        matrix_dim: int = 0,
        **kwargs,
    ) -> None:
        super().__init_subclass__(**kwargs)
        cls.rep_size = rep_size
        cls.dof = dof
        cls.matrix_dim = matrix_dim
        jax.tree_util.register_pytree_node(
            cls,
            lambda g: ((g.coeffs,), None),
            lambda _, children: cls._wrap(children[0]),
        )

    def __init__(self, coeffs) -> None:
        coeffs = jnp.asarray(coeffs)
        if coeffs.shape != (self.rep_size,):
            raise SizeMismatchError(
                f"{type(self).__name__} coefficients", (self.rep_size,), tuple(coeffs.shape)
            )
        self.coeffs = coeffs

    @classmethod
    def _wrap(cls: Type[GroupT], coeffs) -> GroupT:
        # Bypasses validation: pytree unflattening may hand us placeholders.
        out = object.__new__(cls)
        out.coeffs = coeffs
        return out

    def __repr__(self) -> str:
        coeffs = np.round(np.asarray(self.coeffs), 5)
        return f"{type(self).__name__}(coeffs={coeffs})"

    # Factory.

    @classmethod
    @abc.abstractmethod
    def identity(cls: Type[GroupT], dtype=None) -> GroupT:
        """Returns the identity element."""

    @classmethod
    @abc.abstractmethod
    def random(cls: Type[GroupT], key: jax.Array) -> GroupT:
        """Draw a random element. Translations (if any) are uniform in [-1, 1]."""

    # Group operations.

    @abc.abstractmethod
    def compose(self: GroupT, other: GroupT) -> GroupT:
        """Returns ``self * other``."""

    @abc.abstractmethod
    def inverse(self: GroupT) -> GroupT:
        """Returns ``self^-1``."""

    @classmethod
    @abc.abstractmethod
    def exp(cls: Type[GroupT], v: jnp.ndarray) -> GroupT:
        """Exponential map from tangent coordinates to the group."""

    @abc.abstractmethod
    def log(self) -> jnp.ndarray:
        """Logarithm map; inverse of ``exp`` inside the canonical chart."""

    @abc.abstractmethod
    def Ad(self) -> jnp.ndarray:
        """
        Adjoint matrix, transporting tangent vectors between frames:

            self * exp(v) * self^-1 = exp(Ad() @ v)
        """

    @classmethod
    @abc.abstractmethod
    def ad(cls, v: jnp.ndarray) -> jnp.ndarray:
        """Lie bracket matrix ``[v, .]``; the derivative of ``Ad`` at identity."""

    @classmethod
    @abc.abstractmethod
    def dr_exp(cls, v: jnp.ndarray) -> jnp.ndarray:
        """Right Jacobian of the exponential map."""

    @classmethod
    @abc.abstractmethod
    def dr_expinv(cls, v: jnp.ndarray) -> jnp.ndarray:
        """Inverse of ``dr_exp(v)``."""

    @classmethod
    @abc.abstractmethod
    def hat(cls, v: jnp.ndarray) -> jnp.ndarray:
        """Tangent coordinates to Lie-algebra matrix."""

    @classmethod
    @abc.abstractmethod
    def vee(cls, X: jnp.ndarray) -> jnp.ndarray:
        """Lie-algebra matrix to tangent coordinates."""

    @abc.abstractmethod
    def matrix(self) -> jnp.ndarray:
        """Matrix representation (homogeneous for pose groups)."""

    # Shared implementations.

    def apply(self, point: jnp.ndarray) -> jnp.ndarray:
        raise TypeError(f"{type(self).__name__} has no action on points")

    @classmethod
    def dl_exp(cls, v: jnp.ndarray) -> jnp.ndarray:
        """Left Jacobian of the exponential map, ``dr_exp(-v)``."""
        return cls.dr_exp(-jnp.asarray(v))

    @classmethod
    def dl_expinv(cls, v: jnp.ndarray) -> jnp.ndarray:
        return cls.dr_expinv(-jnp.asarray(v))

    @classmethod
    def check_tangent(cls, v) -> jnp.ndarray:
        v = jnp.asarray(v)
        if v.shape != (cls.dof,):
            raise SizeMismatchError(f"{cls.__name__} tangent", (cls.dof,), tuple(v.shape))
        return v

    def rplus(self: GroupT, v: jnp.ndarray) -> GroupT:
        """Right retraction ``self * exp(v)``."""
        return self.compose(type(self).exp(self.check_tangent(v)))

    def rminus(self: GroupT, other: GroupT) -> jnp.ndarray:
        """Right difference ``log(other^-1 * self)``, so ``other + (self - other) == self``."""
        if type(other) is not type(self):
            raise TypeError(f"cannot subtract {type(other).__name__} from {type(self).__name__}")
        return other.inverse().compose(self).log()

    def __add__(self: GroupT, v) -> GroupT:
        return self.rplus(v)

    def __sub__(self, other):
        return self.rminus(other)

    def __matmul__(self, other):
        if isinstance(other, LieGroup):
            if type(other) is not type(self):
                raise TypeError(f"cannot compose {type(self).__name__} with {type(other).__name__}")
            return self.compose(other)
        return self.apply(jnp.asarray(other))

    def set_identity(self):
        raise TypeError(
            f"{type(self).__name__} values are immutable; use {type(self).__name__}.identity()"
            " or a GroupMap view over a mutable buffer"
        )

    def cast(self: GroupT, dtype) -> GroupT:
        return type(self)._wrap(self.coeffs.astype(dtype))

    def is_approx(self, other: "LieGroup", tol: float = 1e-8) -> bool:
        """Relative coefficient comparison, ``|a - b| <= tol * min(|a|, |b|)``."""
        if type(other) is not type(self):
            return False
        a = np.asarray(self.coeffs)
        b = np.asarray(other.coeffs)
        scale = min(np.linalg.norm(a), np.linalg.norm(b))
        return bool(np.linalg.norm(a - b) <= tol * scale)

    @classmethod
    def map(cls, buffer: np.ndarray, offset: int = 0):
        """View ``buffer[offset:offset + rep_size]`` in place as a group element."""
        from smooth_jit.lie.map import GroupMap

        return GroupMap(cls, buffer, offset)


def tangent_split(v: jnp.ndarray, sizes: Tuple[int, ...]) -> Tuple[jnp.ndarray, ...]:
    """Split a flat vector into consecutive blocks of the given sizes."""
    out = []
    offset = 0
    for n in sizes:
        out.append(v[offset:offset + n])
        offset += n
    return tuple(out)
