# Copyright (c) 2025.
# This file is part of smooth-jit, released under the MIT License.
"""
JIT-compiled residual and Jacobian evaluators for a fixed residual function.

``minimize`` evaluates the same residual function at many points with the
same variable structure. This module wraps ``optimization.diff`` so that
the automatic-differentiation path is traced and compiled once per problem
and then reused for every iteration:

    ev = JittedJacobian.from_residual(f, DiffType.AUTODIFF)
    r, J = ev.jacobian((g1, g2))
    r_trial = ev.residual((g1 + a, g2 + b))

Only AUTODIFF is compiled. NUMERICAL and ANALYTIC residuals are plain
Python callables that need not be JAX-traceable, so they are called as is.

Notes
-----
The variable tuple is passed to the compiled function as one pytree
argument. Group elements are pytrees, so a change in their coefficients
never triggers a retrace; a change in structure (types, lengths) does.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import partial
from typing import Callable, Tuple

import jax

from smooth_jit.core.types import Jacobian, Residual
from smooth_jit.optimization import diff
from smooth_jit.optimization.diff import DiffType


@dataclass
class JittedJacobian:
    """
    Residual and Jacobian evaluators bound to one residual function.

    Usage:
        ev = JittedJacobian.from_residual(f, DiffType.DEFAULT)
        r, J = ev(args)
    """
    jacobian_fn: Callable[[tuple], Tuple[Residual, Jacobian]]
    residual_fn: Callable[[tuple], Residual]
    method: DiffType
    jitted: bool

    def __call__(self, args: tuple) -> Tuple[Residual, Jacobian]:
        return self.jacobian_fn(tuple(args))

    def jacobian(self, args: tuple) -> Tuple[Residual, Jacobian]:
        return self.jacobian_fn(tuple(args))

    def residual(self, args: tuple) -> Residual:
        return self.residual_fn(tuple(args))

    @staticmethod
    def from_residual(
        f: Callable,
        method: DiffType = DiffType.DEFAULT,
        jit: bool = True,
    ) -> "JittedJacobian":
        method = method.resolve()
        jacobian_fn = partial(diff.jacobian, f, method=method)
        residual_fn = partial(diff.residual, f, method=method)

        compile_it = jit and method is DiffType.AUTODIFF
        if compile_it:
            jacobian_fn = jax.jit(jacobian_fn)
            residual_fn = jax.jit(residual_fn)

        return JittedJacobian(
            jacobian_fn=jacobian_fn,
            residual_fn=residual_fn,
            method=method,
            jitted=compile_it,
        )
