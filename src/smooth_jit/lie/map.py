# Copyright (c) 2025.
# This file is part of smooth-jit, released under the MIT License.
"""
Group views over externally owned memory.

Group values (``SO3``, ``SE3``, ...) are immutable and own their
coefficients. A ``GroupMap`` instead interprets a slice of a mutable numpy
buffer as a group element, e.g. one pose inside a large state vector:

    state = np.zeros(14)
    T0 = SE3.map(state, 0)
    T1 = SE3.map(state, 7)
    T0.set_identity()
    T1.assign(SE3.exp(xi))          # writes state[7:14]

Reads always reflect the current buffer contents. Read-only buffers give
read-only views; writes then raise numpy's ``ValueError``.

All group operations are available on a map and return owned values.
"""

from __future__ import annotations

from typing import Type

import jax
import jax.numpy as jnp
import numpy as np

from smooth_jit.core.errors import SizeMismatchError
from smooth_jit.lie.base import LieGroup, Ownership


class GroupMap:
    """Mutable view of ``buffer[offset:offset + rep_size]`` as a ``group_type`` element."""

    ownership = Ownership.VIEW

    __slots__ = ("group_type", "_view")

    def __init__(self, group_type: Type[LieGroup], buffer: np.ndarray, offset: int = 0):
        if not isinstance(buffer, np.ndarray):
            raise TypeError(f"GroupMap needs a numpy buffer, got {type(buffer).__name__}")
        if buffer.ndim != 1:
            raise SizeMismatchError("GroupMap buffer rank", 1, buffer.ndim)
        end = offset + group_type.rep_size
        if offset < 0 or end > buffer.shape[0]:
            raise SizeMismatchError(f"{group_type.__name__} map buffer", end, buffer.shape[0])
        self.group_type = group_type
        self._view = buffer[offset:end]

    def __repr__(self) -> str:
        return f"GroupMap[{self.group_type.__name__}](coeffs={np.round(self._view, 5)})"

    @property
    def rep_size(self) -> int:
        return self.group_type.rep_size

    @property
    def dof(self) -> int:
        return self.group_type.dof

    @property
    def coeffs(self) -> jnp.ndarray:
        return jnp.asarray(self._view)

    @property
    def writeable(self) -> bool:
        return bool(self._view.flags.writeable)

    def value(self) -> LieGroup:
        """Owned copy of the current contents."""
        return self.group_type(self._view.copy())

    # In-place writes.

    def assign(self, g) -> "GroupMap":
        if isinstance(g, GroupMap):
            g = g.value()
        if type(g) is not self.group_type:
            raise TypeError(f"cannot assign {type(g).__name__} to a {self.group_type.__name__} map")
        self._view[:] = np.asarray(g.coeffs)
        return self

    def set_identity(self) -> "GroupMap":
        return self.assign(self.group_type.identity(self._view.dtype))

    def set_random(self, key: jax.Array) -> "GroupMap":
        return self.assign(self.group_type.random(key))

    def rplus_(self, v) -> "GroupMap":
        """In-place retraction ``self <- self * exp(v)``."""
        return self.assign(self.value().rplus(v))

    # Delegated operations, returning owned values.

    def compose(self, other) -> LieGroup:
        return self.value().compose(_owned(other))

    def inverse(self) -> LieGroup:
        return self.value().inverse()

    def log(self) -> jnp.ndarray:
        return self.value().log()

    def Ad(self) -> jnp.ndarray:
        return self.value().Ad()

    def matrix(self) -> jnp.ndarray:
        return self.value().matrix()

    def apply(self, point) -> jnp.ndarray:
        return self.value().apply(point)

    def rplus(self, v) -> LieGroup:
        return self.value().rplus(v)

    def rminus(self, other) -> jnp.ndarray:
        return self.value().rminus(_owned(other))

    def is_approx(self, other, tol: float = 1e-8) -> bool:
        return self.value().is_approx(_owned(other), tol)

    def __add__(self, v) -> LieGroup:
        return self.rplus(v)

    def __sub__(self, other) -> jnp.ndarray:
        return self.rminus(other)

    def __matmul__(self, other):
        return self.value() @ _owned(other)


def _owned(x):
    return x.value() if isinstance(x, GroupMap) else x
