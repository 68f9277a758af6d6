# Copyright (c) 2025.
# This file is part of smooth-jit, released under the MIT License.
"""
Residual Jacobians in tangent coordinates.

Given a residual function ``f(*args)`` whose arguments are manifold
values (group elements, Euclidean arrays, tuples/lists of those), this
module returns the residual ``r`` together with the Jacobian

    J = d f(*(args ⊕ e)) / d e   at e = 0

where ``e`` stacks one tangent vector per argument. ``J`` therefore has
one row per residual component and ``dof(args)`` columns, one column
block per argument in argument order; never the size of the coefficient
storage.

Modes
-----
DiffType.NUMERICAL
    Forward differences along each tangent basis vector, step
    ``sqrt(eps)``. Works for any Python residual, JAX-traceable or not.

DiffType.AUTODIFF
    ``jax.jacfwd`` through the retraction. The group code is plain
    ``jax.numpy`` so the derivative is exact up to rounding. The residual
    must be JAX-traceable.

DiffType.ANALYTIC
    ``f`` returns ``(r, J)`` itself; only the shape of ``J`` is checked.

DiffType.DEFAULT
    Resolves to AUTODIFF.

Errors
------
``SizeMismatchError`` when the residual length differs between
evaluations, when the residual is not a vector, or when an analytic
Jacobian has the wrong shape.
"""

from __future__ import annotations

import enum
from typing import Tuple

import jax
import jax.numpy as jnp
import numpy as np

from smooth_jit.core.errors import SizeMismatchError
from smooth_jit.core.manifold import dof, rplus
from smooth_jit.core.types import Jacobian, Residual, ResidualFn


class DiffType(enum.Enum):
    NUMERICAL = "numerical"
    AUTODIFF = "autodiff"
    ANALYTIC = "analytic"
    DEFAULT = "default"

    def resolve(self) -> "DiffType":
        return DiffType.AUTODIFF if self is DiffType.DEFAULT else self


def as_residual(value) -> Residual:
    """Coerce a residual to a 1-D array; scalars become length 1."""
    r = jnp.asarray(value)
    if r.ndim == 0:
        return r.reshape(1)
    if r.ndim != 1:
        raise SizeMismatchError("residual rank", 1, r.ndim)
    return r


def check_residual_size(r: Residual, expected: int) -> None:
    if r.shape[0] != expected:
        raise SizeMismatchError("residual", expected, r.shape[0])


def autodiff_jacobian(f: ResidualFn, args: tuple) -> Tuple[Residual, Jacobian]:
    """Forward-mode Jacobian of ``e -> f(*(args ⊕ e))`` at ``e = 0``."""
    n = dof(args)

    def lifted(e):
        r = as_residual(f(*rplus(args, e)))
        return r, r

    J, r = jax.jacfwd(lifted, has_aux=True)(jnp.zeros(n))
    return r, J


def numerical_jacobian(f: ResidualFn, args: tuple) -> Tuple[Residual, Jacobian]:
    """Forward differences along each tangent basis vector."""
    r0 = as_residual(f(*args))
    n = dof(args)
    m = r0.shape[0]
    dtype = r0.dtype if jnp.issubdtype(r0.dtype, jnp.floating) else jnp.float64
    h = float(np.sqrt(jnp.finfo(dtype).eps))

    basis = np.eye(n)
    columns = []
    for i in range(n):
        ri = as_residual(f(*rplus(args, h * basis[i])))
        check_residual_size(ri, m)
        columns.append((ri - r0) / h)

    if not columns:
        return r0, jnp.zeros((m, 0), dtype=r0.dtype)
    return r0, jnp.stack(columns, axis=1)


def analytic_jacobian(f, args: tuple) -> Tuple[Residual, Jacobian]:
    """Call ``f`` for ``(r, J)`` and validate the Jacobian shape."""
    r, J = f(*args)
    r = as_residual(r)
    J = jnp.asarray(J)
    expected = (r.shape[0], dof(args))
    if J.shape != expected:
        raise SizeMismatchError("analytic Jacobian", expected, tuple(J.shape))
    return r, J


_JACOBIANS = {
    DiffType.NUMERICAL: numerical_jacobian,
    DiffType.AUTODIFF: autodiff_jacobian,
    DiffType.ANALYTIC: analytic_jacobian,
}


def jacobian(f, args, method: DiffType = DiffType.DEFAULT) -> Tuple[Residual, Jacobian]:
    """
    Residual and tangent-space Jacobian of ``f`` at ``args``.

    Args:
        f: residual function taking one value per entry of ``args``.
        args: tuple of manifold values (see ``core.manifold.wrt``).
        method: differentiation mode.

    Returns:
        ``(r, J)`` with ``r.shape == (m,)`` and ``J.shape == (m, dof(args))``.
    """
    return _JACOBIANS[method.resolve()](f, tuple(args))


def residual(f, args, method: DiffType = DiffType.DEFAULT) -> Residual:
    """Residual only; unpacks ``(r, J)`` for analytic residual functions."""
    out = f(*args)
    if method.resolve() is DiffType.ANALYTIC:
        out = out[0]
    return as_residual(out)
