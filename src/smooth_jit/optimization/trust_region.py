# Copyright (c) 2025.
# This file is part of smooth-jit, released under the MIT License.
"""
Trust-region subproblem for Levenberg–Marquardt.

This module holds the dense linear algebra behind ``optimization.solvers``:

    minimize over x   || [J; diag(d)] x - [-r; 0] ||_2

for a Jacobian ``J`` (m×n), a scaling diagonal ``d`` (n) and a residual
``r`` (m), and the search for the damping parameter ``lambda`` that puts
the damped step on the trust-region boundary ``||diag(d) x|| = Delta``.

The normal equations ``J^T J`` are never formed. ``J`` is factored once
per outer iteration with a column-pivoted (rank-revealing) QR,

    J[:, perm] = Q R,

and every damped solve works on the small stacked system ``[R; D_P]``
that ``lmpar`` needs for many values of ``lambda``.

Key Functions
-------------
qr_factorize(J)
    Column-pivoted QR plus numerical rank.

solve_ls(J_qr, d, r)
    Least-squares solution of the stacked system above. Where the stacked
    triangular factor is rank deficient (e.g. ``d = 0`` and singular J)
    the solution is restricted to the non-null columns.

lmpar(J, d, r, Delta)
    Safeguarded Newton iteration for ``lambda``, after Moré, "The
    Levenberg-Marquardt algorithm: implementation and theory" (1978) and
    MINPACK's ``lmpar``. A rank-deficient J is handled on its leading
    ``rank`` pivoted columns only, undamped and damped alike.

Notes
-----
Everything here runs on the host with numpy / scipy and runtime-sized
arrays. JAX arrays produced by jitted residual code are converted on
entry, so statically shaped and dynamically shaped inputs of the same
values go through the exact same arithmetic.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import scipy.linalg

from smooth_jit.core.errors import SizeMismatchError
from smooth_jit.core.types import HostMatrix, HostVector

logger = logging.getLogger(__name__)

_EPS = np.finfo(np.float64).eps
_DWARF = np.finfo(np.float64).tiny

LMPAR_MAX_ITERATIONS = 10
LMPAR_TOLERANCE = 0.1


@dataclass(frozen=True)
class PivotedQR:
    """
    Economic column-pivoted QR ``J[:, perm] = Q @ R``.

    Attributes:
        Q: (m, k) orthonormal columns, ``k = min(m, n)``.
        R: (k, n) upper trapezoidal, ``|R[i, i]|`` non-increasing.
        perm: (n,) column permutation.
        rank: number of diagonal entries of R above the rank tolerance.
    """
    Q: HostMatrix
    R: HostMatrix
    perm: np.ndarray
    rank: int

    @property
    def shape(self) -> Tuple[int, int]:
        return self.Q.shape[0], self.R.shape[1]


def _rank(diag: np.ndarray, rows: int, cols: int) -> int:
    """Leading diagonal entries above ``max(rows, cols) * eps * |diag[0]|``."""
    diag = np.abs(diag)
    if diag.size == 0 or diag[0] == 0.0:
        return 0
    tol = max(rows, cols) * _EPS * diag[0]
    below = np.nonzero(diag <= tol)[0]
    return int(below[0]) if below.size else int(diag.size)


def qr_factorize(J) -> PivotedQR:
    J = np.asarray(J, dtype=np.float64)
    if J.ndim != 2:
        raise SizeMismatchError("Jacobian rank", 2, J.ndim)
    m, n = J.shape
    Q, R, perm = scipy.linalg.qr(J, mode="economic", pivoting=True)
    rank = _rank(np.diag(R), m, n)
    if rank < min(m, n):
        logger.debug("rank deficient Jacobian: rank %d of %d columns", rank, n)
    return PivotedQR(Q=Q, R=R, perm=perm, rank=rank)


def _check_sizes(J_qr: PivotedQR, d, r) -> Tuple[HostVector, HostVector]:
    m, n = J_qr.shape
    d = np.asarray(d, dtype=np.float64)
    r = np.asarray(r, dtype=np.float64)
    if d.shape != (n,):
        raise SizeMismatchError("scaling diagonal", n, d.shape[0] if d.ndim == 1 else d.shape)
    if r.shape != (m,):
        raise SizeMismatchError("residual", m, r.shape[0] if r.ndim == 1 else r.shape)
    return d, r


def _solve_stacked(
    R: HostMatrix, cols: np.ndarray, d: HostVector, qtb: HostVector, n: int
) -> Tuple[HostVector, HostMatrix]:
    """
    Solve ``[R; diag(d[cols])] z = [qtb; 0]`` and scatter ``z`` into ``x[cols]``.

    ``R`` holds the columns ``cols`` of the pivoted factor. Returns ``(x, S)``
    where ``S`` is the triangular factor of the stacked system, so that
    ``S^T S = R^T R + diag(d[cols])^2``; ``lmpar`` reuses it for the Newton
    correction. Columns beyond the first zero pivot of ``S`` get a zero
    step, as do all columns of ``x`` outside ``cols``.
    """
    k, p = R.shape
    stacked = np.vstack([R, np.diag(d[cols])])
    rhs = np.concatenate([qtb, np.zeros(p)])

    Q2, S = scipy.linalg.qr(stacked, mode="economic")
    c = Q2.T @ rhs

    nsing = _rank(np.diag(S), k + p, p)
    z = np.zeros(p)
    if nsing > 0:
        z[:nsing] = scipy.linalg.solve_triangular(S[:nsing, :nsing], c[:nsing])

    x = np.zeros(n)
    x[cols] = z
    return x, S


def solve_ls(J_qr: PivotedQR, d, r) -> HostVector:
    """
    Least-squares step ``argmin || J x + r ||^2 + || diag(d) x ||^2``.

    Args:
        J_qr: factorization of J from ``qr_factorize``.
        d: (n,) non-negative scaling.
        r: (m,) residual.

    Returns:
        x: (n,) step.
    """
    d, r = _check_sizes(J_qr, d, r)
    qtb = -(J_qr.Q.T @ r)
    x, _ = _solve_stacked(J_qr.R, J_qr.perm, d, qtb, J_qr.R.shape[1])
    return x


def lmpar(
    J,
    d,
    r,
    Delta: float,
    par0: float = 0.0,
    J_qr: Optional[PivotedQR] = None,
) -> Tuple[float, HostVector]:
    """
    Levenberg–Marquardt parameter for trust-region radius ``Delta``.

    Returns ``(lambda, x)`` where either

        lambda == 0 and ||diag(d) x|| <= 1.1 * Delta, or
        lambda > 0 and | ||diag(d) x|| - Delta | <= 0.1 * Delta.

    ``x`` solves the damped problem over the leading ``J_qr.rank`` pivoted
    columns of ``J`` and is zero on the others. With full column rank that
    is ``solve_ls(J_qr, sqrt(lambda) * d, r)``. Restricting a rank-deficient
    ``J`` (e.g. any ``m < n``) keeps the undamped step and the damped steps
    on one continuous curve, so the boundary condition above is reachable.

    Args:
        J: (m, n) Jacobian.
        d: (n,) strictly positive scaling.
        r: (m,) residual.
        Delta: trust-region radius, > 0.
        par0: initial guess for lambda (e.g. the previous iteration's value).
        J_qr: factorization of ``J``, computed here when not given.
    """
    if J_qr is None:
        J_qr = qr_factorize(J)
    d, r = _check_sizes(J_qr, d, r)
    n = J_qr.R.shape[1]
    rank = J_qr.rank
    R = J_qr.R[:rank, :rank]
    cols = J_qr.perm[:rank]
    qtb = -(J_qr.Q.T @ r)[:rank]

    # Gauss-Newton step; accepted if it lies within the region.
    x = np.zeros(n)
    if rank > 0:
        x[cols] = scipy.linalg.solve_triangular(R, qtb)
    dx = d * x
    dxnorm = np.linalg.norm(dx)
    fp = dxnorm - Delta
    if fp <= LMPAR_TOLERANCE * Delta:
        return 0.0, x

    # Lower bound from the Newton step at lambda = 0.
    wa1 = d[cols] * (dx[cols] / dxnorm)
    wa1 = scipy.linalg.solve_triangular(R, wa1, trans="T")
    temp = np.linalg.norm(wa1)
    parl = ((fp / Delta) / temp) / temp

    # Upper bound from the scaled gradient.
    gnorm = np.linalg.norm((R.T @ qtb) / d[cols])
    paru = gnorm / Delta
    if paru == 0.0:
        paru = _DWARF / min(Delta, 0.1)

    par = min(max(par0, parl), paru)
    if par == 0.0:
        par = gnorm / dxnorm

    for iteration in range(1, LMPAR_MAX_ITERATIONS + 1):
        if par == 0.0:
            par = max(_DWARF, 0.001 * paru)

        x, S = _solve_stacked(R, cols, np.sqrt(par) * d, qtb, n)
        dx = d * x
        dxnorm = np.linalg.norm(dx)
        fp = dxnorm - Delta

        if abs(fp) <= LMPAR_TOLERANCE * Delta or iteration == LMPAR_MAX_ITERATIONS:
            break

        # Newton correction: S^T w = D_P (D x) / ||D x||.
        wa1 = d[cols] * (dx[cols] / dxnorm)
        wa1 = scipy.linalg.solve_triangular(S, wa1, trans="T")
        temp = np.linalg.norm(wa1)
        parc = ((fp / Delta) / temp) / temp

        if fp > 0.0:
            parl = max(parl, par)
        elif fp < 0.0:
            paru = min(paru, par)
        par = max(parl, par + parc)

    return float(par), x
