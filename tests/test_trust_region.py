"""
Trust-region subproblem: damped least squares and the LM parameter search.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp
import numpy as np
import pytest

from smooth_jit.optimization.trust_region import lmpar, qr_factorize, solve_ls

SHAPES = [(1, 1), (5, 1), (5, 10), (8, 16)]  # (n columns, m rows)


def _problem(rng, n, m, zero_d=False, sing=False):
    J = rng.uniform(-1.0, 1.0, (m, n))
    if sing:
        J[:, n // 2] = 0.0
        J[m // 2, :] = 0.0
    d = np.maximum(rng.uniform(-1.0, 1.0, n) + 1.0, 0.0)
    if zero_d:
        d = np.zeros(n)
    r = rng.uniform(-1.0, 1.0, m)
    return J, d, r


def _stacked(J, d, r):
    n = J.shape[1]
    A = np.vstack([J, np.diag(d)])
    b = np.concatenate([-r, np.zeros(n)])
    return A, b


def _via_jit(*arrays):
    """The same values as statically shaped device arrays out of jitted code."""
    return jax.jit(lambda *xs: tuple(x * 1.0 for x in xs))(*[jnp.asarray(a) for a in arrays])


@pytest.mark.parametrize("n, m", SHAPES)
@pytest.mark.parametrize("zero_d", [False, True])
@pytest.mark.parametrize("sing", [False, True])
def test_solve_ls_matches_reference(n, m, zero_d, sing):
    rng = np.random.default_rng(1000 * n + m + 10 * zero_d + 100 * sing)
    for _ in range(10):
        J, d, r = _problem(rng, n, m, zero_d, sing)
        x = solve_ls(qr_factorize(J), d, r)

        A, b = _stacked(J, d, r)
        x_ref = np.linalg.lstsq(A, b, rcond=None)[0]

        # Same optimal residual in every case.
        assert np.linalg.norm(A @ x - b) == pytest.approx(
            np.linalg.norm(A @ x_ref - b), rel=1e-8, abs=1e-10
        )

        # Same solution whenever it is unique.
        if np.linalg.matrix_rank(A) == n:
            assert np.allclose(x, x_ref, rtol=1e-8, atol=1e-9)

        # A zero column gets no step when nothing else constrains it.
        if sing and zero_d:
            assert x[n // 2] == 0.0


@pytest.mark.parametrize("n, m", SHAPES)
def test_solve_ls_jit_and_runtime_inputs_agree(n, m):
    rng = np.random.default_rng(7 + n + m)
    for _ in range(10):
        J, d, r = _problem(rng, n, m)
        Jj, dj, rj = _via_jit(J, d, r)

        x_runtime = solve_ls(qr_factorize(J), d, r)
        x_jit = solve_ls(qr_factorize(Jj), dj, rj)
        assert np.allclose(x_runtime, x_jit, atol=1e-10, rtol=0.0)


def test_qr_rank_detection():
    J = np.array([[1.0, 2.0, 0.0], [2.0, 4.0, 0.0], [0.0, 0.0, 0.0], [1.0, 2.0, 0.0]])
    qr = qr_factorize(J)
    assert qr.rank == 1
    assert np.allclose(J[:, qr.perm], qr.Q @ qr.R)

    assert qr_factorize(np.zeros((3, 2))).rank == 0


def _damped_on_kept_columns(J, d, r, par):
    """Damped solution over the leading ``rank`` pivoted columns, zero elsewhere."""
    qr = qr_factorize(J)
    cols = qr.perm[: qr.rank]
    x = np.zeros(J.shape[1])
    if cols.size:
        x[cols] = solve_ls(qr_factorize(J[:, cols]), np.sqrt(par) * d[cols], r)
    return x


def _check_lmpar(J, d, r, Delta):
    par, x = lmpar(J, d, r, Delta)

    Jj, dj, rj = _via_jit(J, d, r)
    par_jit, x_jit = lmpar(Jj, dj, rj, Delta)
    assert par == pytest.approx(par_jit, abs=1e-10)
    assert np.allclose(x, x_jit, atol=1e-10)

    # x solves the damped problem for the returned parameter.
    assert np.allclose(_damped_on_kept_columns(J, d, r, par), x, atol=1e-10)

    dxnorm = np.linalg.norm(d * x)
    cond_gauss_newton = par == 0.0 and dxnorm <= 1.1 * Delta
    cond_boundary = par > 0.0 and abs(dxnorm - Delta) <= 0.1 * Delta
    assert cond_gauss_newton or cond_boundary, (par, dxnorm)


@pytest.mark.parametrize("Delta", [1.0, 0.1])
def test_lmpar_conditions(Delta):
    rng = np.random.default_rng(int(Delta * 100))
    for _ in range(10):
        J = rng.uniform(-1.0, 1.0, (4, 4))
        d = rng.uniform(-1.0, 1.0, 4) + 1.0
        r = rng.uniform(-1.0, 1.0, 4)
        _check_lmpar(J, d, r, Delta)


def test_lmpar_singular_jacobian():
    rng = np.random.default_rng(3)
    for _ in range(10):
        J = rng.uniform(-1.0, 1.0, (4, 4))
        J[:, 3] = 0.0
        d = rng.uniform(-1.0, 1.0, 4) + 1.0
        r = rng.uniform(-1.0, 1.0, 4)
        _check_lmpar(J, d, r, 1.0)


def test_lmpar_returns_zero_inside_region():
    J = np.eye(3)
    d = np.ones(3)
    r = np.array([0.1, 0.0, -0.1])
    par, x = lmpar(J, d, r, 10.0)
    assert par == 0.0
    assert np.allclose(x, -r)


def test_lmpar_lands_on_boundary_for_small_radius():
    J = np.eye(3)
    d = np.ones(3)
    r = np.array([3.0, 0.0, -4.0])
    par, x = lmpar(J, d, r, 1.0)
    assert par > 0.0
    assert np.linalg.norm(x) == pytest.approx(1.0, rel=0.1)
    # For J = I the damped step is -r / (1 + par).
    assert np.allclose(x, -r / (1.0 + par))


@pytest.mark.parametrize("Delta", [1.0, 0.1])
def test_lmpar_underdetermined_jacobian(Delta):
    """More columns than rows: J is always rank deficient, the contract still holds."""
    rng = np.random.default_rng(31 + int(10 * Delta))
    for _ in range(100):
        J = rng.uniform(-1.0, 1.0, (3, 6))
        d = rng.uniform(-1.0, 1.0, 6) + 1.5
        r = rng.uniform(-1.0, 1.0, 3)
        _check_lmpar(J, d, r, Delta)


def test_lmpar_underdetermined_steps_only_on_kept_columns():
    rng = np.random.default_rng(5)
    J = rng.uniform(-1.0, 1.0, (2, 5))
    d = np.ones(5)
    r = np.array([3.0, -2.0])
    qr = qr_factorize(J)
    assert qr.rank == 2

    par, x = lmpar(J, d, r, 0.5)
    assert par > 0.0
    dropped = qr.perm[qr.rank:]
    assert np.all(x[dropped] == 0.0)
