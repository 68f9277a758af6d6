# Copyright (c) 2025.
# This file is part of smooth-jit, released under the MIT License.
"""
Manifold operations over every value the solver accepts as a variable.

An *optimization variable* is anything with an intrinsic dimension, a
retraction and a difference. This module gives one set of free functions
that dispatch over the supported kinds:

    • Lie-group elements (``LieGroup`` subclasses and ``GroupMap`` views)
        - retraction ``g * exp(a)``, difference ``log(y^-1 * x)``
    • Euclidean values (1-D arrays, 0-d arrays, Python floats)
        - plain addition and subtraction
    • Tuples and lists of the above, recursively
        - tangent vectors are the concatenation of the members' tangents

The solver and the differentiation adapter only ever talk to variables
through these functions, so a residual can take e.g. ``(SO3, jnp.ndarray)``
or ``[SE3, SE3, SE3]`` without any registration step.

Key Functions
-------------
dof(m)
    Total tangent dimension.

rplus(m, a)
    Retraction ``m ⊕ a``. ``a`` must have length ``dof(m)``.

rminus(x, y)
    Difference ``x ⊖ y`` with ``rplus(y, rminus(x, y)) == x``.

default(m)
    Neutral element of the same structure (identity / zeros).

cast(m, dtype)
    Same structure with coefficients converted to ``dtype``.

wrt(*args)
    Group arguments into one variable tuple after validating each.

Notes
-----
All functions are pure and trace cleanly under ``jax.jit`` and
``jax.jacfwd``: the structure of a variable (types, lengths) is static
Python data, only coefficients are traced.
"""

from __future__ import annotations

from typing import Tuple

import jax.numpy as jnp
import numpy as np

from smooth_jit.core.errors import SizeMismatchError
from smooth_jit.core.types import ManifoldValue, Tangent
from smooth_jit.lie.base import LieGroup, tangent_split
from smooth_jit.lie.map import GroupMap


def _owned(m):
    return m.value() if isinstance(m, GroupMap) else m


def _is_container(m) -> bool:
    return isinstance(m, (tuple, list))


def _euclidean_dof(m) -> int:
    shape = np.shape(m)
    if len(shape) == 0:
        return 1
    if len(shape) == 1:
        return shape[0]
    raise TypeError(f"Euclidean variables must be scalars or 1-D arrays, got shape {shape}")


def dof(m: ManifoldValue) -> int:
    """Tangent dimension of ``m``."""
    if isinstance(m, (LieGroup, GroupMap)):
        return m.dof
    if _is_container(m):
        return sum(dof(x) for x in m)
    return _euclidean_dof(m)


def _check_tangent(m, a) -> jnp.ndarray:
    a = jnp.asarray(a)
    n = dof(m)
    if a.shape != (n,):
        raise SizeMismatchError(f"tangent for {type(m).__name__}", (n,), tuple(a.shape))
    return a


def rplus(m: ManifoldValue, a: Tangent) -> ManifoldValue:
    """Retraction ``m ⊕ a``; containers keep their type (tuple or list)."""
    a = _check_tangent(m, a)
    if isinstance(m, (LieGroup, GroupMap)):
        return _owned(m).rplus(a)
    if _is_container(m):
        parts = tangent_split(a, tuple(dof(x) for x in m))
        return type(m)(rplus(x, ai) for x, ai in zip(m, parts))
    if np.ndim(m) == 0:
        return jnp.asarray(m) + a[0]
    return jnp.asarray(m) + a


def rminus(x: ManifoldValue, y: ManifoldValue) -> Tangent:
    """Difference ``x ⊖ y``, a tangent vector at ``y`` of length ``dof(y)``."""
    if isinstance(x, (LieGroup, GroupMap)):
        if not isinstance(y, (LieGroup, GroupMap)):
            raise TypeError(f"cannot subtract {type(y).__name__} from a group element")
        return _owned(x).rminus(_owned(y))
    if _is_container(x):
        if not _is_container(y) or len(x) != len(y):
            raise SizeMismatchError("container rminus", len(x), len(y) if _is_container(y) else 1)
        return jnp.concatenate([jnp.atleast_1d(rminus(xi, yi)) for xi, yi in zip(x, y)])
    nx, ny = dof(x), dof(y)
    if nx != ny:
        raise SizeMismatchError("Euclidean rminus", ny, nx)
    return jnp.reshape(jnp.asarray(x) - jnp.asarray(y), (nx,))


def default(m: ManifoldValue) -> ManifoldValue:
    """Identity for groups, zeros for Euclidean values, recursively for containers."""
    if isinstance(m, (LieGroup, GroupMap)):
        owned = _owned(m)
        return type(owned).identity(owned.coeffs.dtype)
    if _is_container(m):
        return type(m)(default(x) for x in m)
    return jnp.zeros_like(jnp.asarray(m))


def cast(m: ManifoldValue, dtype) -> ManifoldValue:
    if isinstance(m, (LieGroup, GroupMap)):
        return _owned(m).cast(dtype)
    if _is_container(m):
        return type(m)(cast(x, dtype) for x in m)
    return jnp.asarray(m, dtype=dtype)


def to_owned(m: ManifoldValue) -> ManifoldValue:
    """Replace ``GroupMap`` views by owned copies; arrays become JAX arrays."""
    if isinstance(m, (LieGroup, GroupMap)):
        return _owned(m)
    if _is_container(m):
        return type(m)(to_owned(x) for x in m)
    return jnp.asarray(m)


def wrt(*args: ManifoldValue) -> Tuple[ManifoldValue, ...]:
    """Group variables for ``jacobian`` and ``minimize``; validates each argument."""
    for a in args:
        dof(a)
    return tuple(args)
