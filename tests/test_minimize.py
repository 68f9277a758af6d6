from __future__ import annotations

import logging

import jax
import jax.numpy as jnp
import numpy as np
import pytest

from smooth_jit import (
    DiffType,
    MinimizeOptions,
    MinimizeStatus,
    SizeMismatchError,
    minimize,
)
from smooth_jit.lie import SE3, SO3

TIGHT = MinimizeOptions(max_iterations=200, ptol=1e-12, ftol=1e-12, gtol=1e-12)


def _two_rotations_residual(v1, v2):
    return jnp.concatenate([v1.log(), v2.log(), (v1 - v2) - jnp.ones(3)])


@pytest.mark.parametrize("seed", [0, 100, 101, 102])
def test_two_rotations_nonzero_residual(seed):
    """
    f(v1, v2) = [log v1; log v2; (v1 - v2) - 1]. The optimum is symmetric,
    v1 == v2^-1, with a non-zero final residual; default options reach it.
    """
    g1 = SO3.random(jax.random.PRNGKey(seed))
    g2 = SO3.random(jax.random.PRNGKey(seed + 100))

    summary = minimize(_two_rotations_residual, g1, g2)
    v1, v2 = summary.values

    assert summary.converged
    assert jnp.allclose(v1.inverse().matrix(), v2.matrix(), atol=1e-6)
    assert summary.f_norm == pytest.approx(1.0, rel=1e-6)


@pytest.mark.parametrize("seed", [2, 40, 41, 42])
def test_mixed_group_and_vector(seed):
    """Residual [(g + v[:3]) - target; v - 1] over a (SO3, R^3) pair."""
    k_target, k_g, k_v = jax.random.split(jax.random.PRNGKey(seed), 3)
    target = SO3.random(k_target)
    g = SO3.random(k_g)
    v = jax.random.uniform(k_v, (3,), minval=-1.0, maxval=1.0)

    def f(var_g, var_v):
        return jnp.concatenate([(var_g + var_v[:3]) - target, var_v - jnp.ones(3)])

    summary = minimize(f, g, v)
    g_opt, v_opt = summary.values

    assert summary.converged
    assert jnp.allclose((g_opt + v_opt[:3]).matrix(), target.matrix(), atol=1e-6)
    assert jnp.allclose(v_opt, jnp.ones(3), atol=1e-6)


def test_mixed_group_and_vector_numerical():
    target = SO3.random(jax.random.PRNGKey(5))

    def f(var_g, var_v):
        return jnp.concatenate([(var_g + var_v[:3]) - target, var_v - jnp.ones(3)])

    summary = minimize(f, SO3.identity(), jnp.zeros(3), diff=DiffType.NUMERICAL)
    g_opt, v_opt = summary.values
    assert jnp.allclose((g_opt + v_opt[:3]).matrix(), target.matrix(), atol=1e-6)
    assert jnp.allclose(v_opt, jnp.ones(3), atol=1e-6)


def test_list_of_poses_is_updated_in_place():
    targets = [SE3.random(jax.random.PRNGKey(10 + i)) for i in range(4)]
    poses = [SE3.identity() for _ in targets]

    def f(ps):
        return jnp.concatenate([p - t for p, t in zip(ps, targets)])

    summary = minimize(f, poses)
    assert summary.converged
    for p, t in zip(poses, targets):
        assert isinstance(p, SE3)
        assert jnp.allclose(p.matrix(), t.matrix(), atol=1e-7)


def test_group_map_variable_writes_through():
    state = np.array([0.0, 0.0, 0.0, 1.0])
    target = SO3.rot_y(0.8)

    summary = minimize(lambda g: g - target, SO3.map(state))
    assert summary.converged
    assert jnp.allclose(SO3(jnp.asarray(state)).matrix(), target.matrix(), atol=1e-7)


def test_read_only_view_is_solved_but_not_written():
    state = np.array([0.0, 0.0, 0.0, 1.0])
    state.flags.writeable = False
    target = SO3.rot_x(-0.4)

    summary = minimize(lambda g: g - target, SO3.map(state))
    assert summary.converged
    assert summary.values[0].is_approx(target, 1e-7)
    assert np.array_equal(state, [0.0, 0.0, 0.0, 1.0])


def test_rosenbrock_analytic_jacobian():
    """Classic MINPACK test, with the Jacobian supplied by hand."""
    x0 = np.array([-1.2, 1.0])

    def f(x):
        r = jnp.array([10.0 * (x[1] - x[0] ** 2), 1.0 - x[0]])
        J = jnp.array([[-20.0 * x[0], 10.0], [-1.0, 0.0]])
        return r, J

    summary = minimize(f, x0, diff=DiffType.ANALYTIC, options=TIGHT)
    assert summary.converged
    assert np.allclose(x0, [1.0, 1.0], atol=1e-8)
    assert summary.f_norm < 1e-8


def test_zero_residual_at_start_converges_immediately():
    summary = minimize(lambda g: g.log(), SO3.identity())
    assert summary.status is MinimizeStatus.GTOL
    assert summary.iterations == 1


def test_wrong_jacobian_degenerates():
    """A Jacobian of the wrong sign makes every step uphill until the radius underflows."""

    def f(x):
        return x, -jnp.eye(1)

    options = MinimizeOptions(ptol=0.0, ftol=0.0, gtol=0.0)
    summary = minimize(f, jnp.array([1.0]), diff=DiffType.ANALYTIC, options=options)
    assert summary.status is MinimizeStatus.DEGENERATE
    assert not summary.converged
    assert jnp.allclose(summary.values[0], 1.0)


def test_iteration_budget():
    g = SO3.random(jax.random.PRNGKey(20))
    options = MinimizeOptions(max_iterations=1, ptol=0.0, ftol=0.0, gtol=0.0)

    summary = minimize(_two_rotations_residual, g, g.inverse(), options=options)
    assert summary.status is MinimizeStatus.MAX_ITERATIONS
    assert summary.iterations == 1


def test_residual_size_change_raises():
    def f(x):
        if float(x[0]) < 0.5:
            return jnp.array([x[0] - 1.0])
        return jnp.array([x[0] - 1.0, 0.0])

    with pytest.raises(SizeMismatchError):
        minimize(f, jnp.array([0.0]), diff=DiffType.NUMERICAL)


def test_invalid_inputs():
    with pytest.raises(ValueError):
        minimize(lambda: jnp.zeros(1))
    with pytest.raises(ValueError):
        minimize(lambda x: jnp.zeros(0), jnp.ones(2))


def test_verbose_logs_each_iteration(caplog):
    g = SO3.random(jax.random.PRNGKey(30))
    with caplog.at_level(logging.INFO, logger="smooth_jit.optimization.solvers"):
        summary = minimize(lambda v: v.log() - jnp.ones(3), g, options=MinimizeOptions(verbose=True))
    messages = [rec.getMessage() for rec in caplog.records]
    assert any(m.startswith("iter") for m in messages)
    assert any("minimize finished" in m for m in messages)
    assert summary.converged
