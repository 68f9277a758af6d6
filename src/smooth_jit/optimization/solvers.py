# Copyright (c) 2025.
# This file is part of smooth-jit, released under the MIT License.
"""
Levenberg–Marquardt minimization over manifold-valued variables.

This module implements ``minimize``, the iterative driver that ties the
rest of the package together:

    • ``optimization.diff`` / ``jit_wrappers`` give the residual and its
      Jacobian in tangent coordinates,
    • ``optimization.trust_region`` computes the damped step,
    • ``core.manifold.rplus`` retracts the step onto the variables.

The loop follows MINPACK's ``lmder``, with the Euclidean update
``x + p`` replaced by the retraction ``x ⊕ p`` and ``||D x||`` measured
as ``||D (x ⊖ default(x))||``.

Key Concepts
------------
MinimizeOptions
    Dataclass holding the solver configuration:
    - max_iterations: cap on outer iterations (Jacobian evaluations)
    - ptol: relative step-size tolerance
    - ftol: relative cost-reduction tolerance. The reduction is quadratic in
      the distance to a non-zero-residual optimum, so it sits well below
      ptol to stop at the same accuracy
    - gtol: scaled-gradient tolerance
    - initial_trust_radius: starting Delta
    - verbose: log one INFO line per iteration
    - jit: compile the automatic-differentiation Jacobian

minimize(f, *variables, options, diff)
    Minimize ``0.5 * ||f(*variables)||^2``. Returns a ``SolveSummary``
    holding the status, the iteration count, the final residual norm and
    the optimized values.

Step acceptance
---------------
The gain ratio is

    rho = (||r||^2 - ||r_trial||^2) / (||r||^2 - ||r + J p||^2)

where the denominator equals ``||J p||^2 + 2 lambda ||D p||^2`` for the
damped step. A step is accepted when ``rho > 1e-4``.

Variables
---------
Values are immutable, so the result is returned in ``SolveSummary.values``.
Mutable inputs are also updated in place: writeable ``GroupMap`` views
write through to their buffers, writeable numpy arrays are overwritten and
list variables have their items replaced. Read-only views and arrays are
left as they are.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Tuple

import numpy as np

from smooth_jit.core.errors import SizeMismatchError
from smooth_jit.core.manifold import default, dof, rminus, rplus, to_owned
from smooth_jit.lie.map import GroupMap
from smooth_jit.optimization.diff import DiffType, check_residual_size
from smooth_jit.optimization.jit_wrappers import JittedJacobian
from smooth_jit.optimization.trust_region import lmpar, qr_factorize

logger = logging.getLogger(__name__)

ACCEPT_RATIO = 1e-4
_EPS = np.finfo(np.float64).eps


class MinimizeStatus(enum.Enum):
    GTOL = "gtol"
    PTOL = "ptol"
    FTOL = "ftol"
    MAX_ITERATIONS = "max_iterations"
    DEGENERATE = "degenerate"

    @property
    def converged(self) -> bool:
        return self in (MinimizeStatus.GTOL, MinimizeStatus.PTOL, MinimizeStatus.FTOL)


@dataclass(frozen=True)
class MinimizeOptions:
    max_iterations: int = 100
    ptol: float = 1e-8
    ftol: float = 1e-12
    gtol: float = 1e-8
    initial_trust_radius: float = 100.0
    verbose: bool = False
    jit: bool = True


@dataclass(frozen=True)
class SolveSummary:
    status: MinimizeStatus
    iterations: int
    f_norm: float
    values: Tuple[Any, ...]

    @property
    def converged(self) -> bool:
        return self.status.converged


def _host(a) -> np.ndarray:
    return np.asarray(a, dtype=np.float64)


def _scaled_gradient_norm(J: np.ndarray, r: np.ndarray, col_norms: np.ndarray, f_norm: float) -> float:
    """``max_j |J_j . r| / (||J_j|| ||r||)`` over non-zero columns."""
    if f_norm == 0.0:
        return 0.0
    g = np.abs(J.T @ r)
    mask = col_norms > 0.0
    if not np.any(mask):
        return 0.0
    return float(np.max(g[mask] / (col_norms[mask] * f_norm)))


def _write_back(original, final) -> None:
    if isinstance(original, GroupMap):
        if original.writeable:
            original.assign(final)
    elif isinstance(original, np.ndarray) and original.flags.writeable:
        original[...] = np.asarray(final).reshape(original.shape)
    elif isinstance(original, list):
        for i, (o, v) in enumerate(zip(original, final)):
            if isinstance(o, (GroupMap, np.ndarray, list)):
                _write_back(o, v)
            else:
                original[i] = v
    elif isinstance(original, tuple):
        for o, v in zip(original, final):
            _write_back(o, v)


def minimize(
    f,
    *variables,
    options: MinimizeOptions = MinimizeOptions(),
    diff: DiffType = DiffType.DEFAULT,
) -> SolveSummary:
    """
    Minimize ``0.5 * ||f(*variables)||^2`` with a trust-region Levenberg–Marquardt loop.

    Args:
        f: residual function, one argument per variable. With
            ``DiffType.ANALYTIC`` it returns ``(r, J)``.
        *variables: initial values; group elements, ``GroupMap`` views,
            Euclidean arrays or floats, or tuples/lists of those.
        options: solver configuration.
        diff: how Jacobians are obtained.

    Returns:
        SolveSummary with the optimized values in argument order.

    Raises:
        SizeMismatchError: the residual length changes between evaluations,
            or an analytic Jacobian has the wrong shape.
        ValueError: no variables, zero total dof, or an empty residual.
    """
    if not variables:
        raise ValueError("minimize needs at least one variable")
    x = tuple(to_owned(v) for v in variables)
    n = dof(x)
    if n == 0:
        raise ValueError("variables have zero degrees of freedom")

    evaluator = JittedJacobian.from_residual(f, diff, jit=options.jit)

    r_dev, J_dev = evaluator.jacobian(x)
    r, J = _host(r_dev), _host(J_dev)
    m = r.shape[0]
    if m == 0:
        raise ValueError("residual is empty")
    if J.shape != (m, n):
        raise SizeMismatchError("Jacobian", (m, n), J.shape)

    x_ref = default(x)
    f_norm = float(np.linalg.norm(r))
    Delta = float(options.initial_trust_radius)
    par = 0.0
    d = np.zeros(n)
    status = MinimizeStatus.MAX_ITERATIONS
    iterations = 0

    if options.verbose:
        logger.info("minimize: %d variables, dof %d, residual size %d, cost %.6e", len(x), n, m, 0.5 * f_norm**2)

    done = False
    while not done and iterations < options.max_iterations:
        iterations += 1
        if iterations > 1:
            r_dev, J_dev = evaluator.jacobian(x)
            check_residual_size(r_dev, m)
            r, J = _host(r_dev), _host(J_dev)

        col_norms = np.linalg.norm(J, axis=0)
        d = np.maximum(d, col_norms)
        d[d == 0.0] = 1.0
        xnorm = float(np.linalg.norm(d * _host(rminus(x, x_ref))))

        J_qr = qr_factorize(J)

        if _scaled_gradient_norm(J, r, col_norms, f_norm) <= options.gtol:
            status = MinimizeStatus.GTOL
            break

        # Inner loop: shrink the region until a step is accepted or a test fires.
        while True:
            par, p = lmpar(J, d, r, Delta, par0=par, J_qr=J_qr)
            pnorm = float(np.linalg.norm(d * p))

            if iterations == 1:
                Delta = min(Delta, pnorm)

            x_trial = rplus(x, p)
            r_trial_dev = evaluator.residual(x_trial)
            check_residual_size(r_trial_dev, m)
            r_trial = _host(r_trial_dev)
            f_norm_trial = float(np.linalg.norm(r_trial))

            actred = -1.0
            if np.isfinite(f_norm_trial) and 0.1 * f_norm_trial < f_norm:
                actred = 1.0 - (f_norm_trial / f_norm) ** 2

            temp1 = float(np.linalg.norm(J @ p)) / f_norm
            temp2 = np.sqrt(par) * pnorm / f_norm
            prered = temp1**2 + 2.0 * temp2**2
            dirder = -(temp1**2 + temp2**2)
            ratio = actred / prered if prered != 0.0 else 0.0

            if ratio <= 0.25:
                if actred >= 0.0:
                    shrink = 0.5
                else:
                    shrink = 0.5 * dirder / (dirder + 0.5 * actred)
                if 0.1 * f_norm_trial >= f_norm or not np.isfinite(f_norm_trial) or shrink < 0.1:
                    shrink = 0.1
                Delta = shrink * min(Delta, pnorm / 0.1)
                par = par / shrink
            elif par == 0.0 or ratio >= 0.75:
                Delta = pnorm / 0.5
                par = 0.5 * par

            accepted = ratio > ACCEPT_RATIO
            if accepted:
                x = x_trial
                r = r_trial
                f_norm = f_norm_trial
                xnorm = float(np.linalg.norm(d * _host(rminus(x, x_ref))))

            if options.verbose:
                logger.info(
                    "iter %3d  cost %.6e  lambda %.3e  Delta %.3e  rho %+.3e  |Dp| %.3e%s",
                    iterations,
                    0.5 * f_norm**2,
                    par,
                    Delta,
                    ratio,
                    pnorm,
                    "" if accepted else "  (rejected)",
                )

            if abs(actred) <= options.ftol and prered <= options.ftol and 0.5 * ratio <= 1.0:
                status = MinimizeStatus.FTOL
                done = True
            elif pnorm <= options.ptol * (xnorm + options.ptol):
                status = MinimizeStatus.PTOL
                done = True
            elif not accepted and (not np.isfinite(Delta) or Delta <= _EPS * (xnorm + _EPS)):
                status = MinimizeStatus.DEGENERATE
                done = True

            if done or accepted:
                break

    if options.verbose:
        logger.info(
            "minimize finished: %s after %d iterations, cost %.6e",
            status.value,
            iterations,
            0.5 * f_norm**2,
        )

    for original, final in zip(variables, x):
        _write_back(original, final)

    return SolveSummary(status=status, iterations=iterations, f_norm=f_norm, values=x)
