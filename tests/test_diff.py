from __future__ import annotations

import jax
import jax.numpy as jnp
import pytest

from smooth_jit import DiffType, SizeMismatchError, jacobian
from smooth_jit.lie import SE3, SO3
from smooth_jit.optimization.jit_wrappers import JittedJacobian


def _point_residual(T, p):
    target = jnp.array([0.5, -1.0, 2.0])
    return T.apply(p) - target


def _args():
    T = SE3.random(jax.random.PRNGKey(0))
    p = jnp.array([0.2, 0.4, -0.3])
    return (T, p)


def test_jacobian_shape_is_tangent_sized():
    """Columns follow the tangent dimension (6 + 3), not the storage size (7 + 3)."""
    r, J = jacobian(_point_residual, _args())
    assert r.shape == (3,)
    assert J.shape == (3, 9)


def test_autodiff_matches_numerical():
    args = _args()
    r_ad, J_ad = jacobian(_point_residual, args, DiffType.AUTODIFF)
    r_nd, J_nd = jacobian(_point_residual, args, DiffType.NUMERICAL)
    assert jnp.allclose(r_ad, r_nd)
    assert jnp.allclose(J_ad, J_nd, atol=1e-6)


def test_autodiff_known_blocks():
    """
    For r = T * p: d r / d (right twist) = [R, -R hat(p)] and d r / d p = R.
    """
    T, p = _args()
    _, J = jacobian(_point_residual, (T, p))
    R = T.rotation().matrix()
    assert jnp.allclose(J[:, :3], R, atol=1e-12)
    assert jnp.allclose(J[:, 3:6], T.rotation().dr_action(p), atol=1e-12)
    assert jnp.allclose(J[:, 6:], R, atol=1e-12)


def test_log_jacobian_is_dr_expinv():
    g = SO3.random(jax.random.PRNGKey(4))
    _, J = jacobian(lambda x: x.log(), (g,))
    assert jnp.allclose(J, SO3.dr_expinv(g.log()), atol=1e-10)


def test_default_is_autodiff():
    args = _args()
    _, J1 = jacobian(_point_residual, args)
    _, J2 = jacobian(_point_residual, args, DiffType.AUTODIFF)
    assert jnp.array_equal(J1, J2)


def test_analytic_jacobian_is_validated():
    def good(x):
        return x * 2.0, 2.0 * jnp.eye(2)

    def bad(x):
        return x * 2.0, jnp.eye(3)

    x = jnp.array([1.0, 2.0])
    r, J = jacobian(good, (x,), DiffType.ANALYTIC)
    assert jnp.allclose(r, jnp.array([2.0, 4.0]))
    assert jnp.allclose(J, 2.0 * jnp.eye(2))

    with pytest.raises(SizeMismatchError):
        jacobian(bad, (x,), DiffType.ANALYTIC)


def test_numerical_detects_residual_size_change():
    def unstable(x):
        return jnp.zeros(2) if float(x[0]) == 0.0 else jnp.zeros(3)

    with pytest.raises(SizeMismatchError):
        jacobian(unstable, (jnp.zeros(1),), DiffType.NUMERICAL)


def test_matrix_residual_is_rejected():
    with pytest.raises(SizeMismatchError):
        jacobian(lambda x: jnp.outer(x, x), (jnp.ones(2),))


def test_scalar_residual_becomes_vector():
    r, J = jacobian(lambda x: jnp.sum(x**2), (jnp.array([1.0, 2.0]),))
    assert r.shape == (1,)
    assert jnp.allclose(J, jnp.array([[2.0, 4.0]]))


def test_jitted_evaluator_matches_eager():
    args = _args()
    ev = JittedJacobian.from_residual(_point_residual, DiffType.DEFAULT)
    assert ev.jitted
    assert ev.method is DiffType.AUTODIFF

    r, J = ev(args)
    r_ref, J_ref = jacobian(_point_residual, args)
    assert jnp.allclose(r, r_ref)
    assert jnp.allclose(J, J_ref)
    assert jnp.allclose(ev.residual(args), r_ref)

    numeric = JittedJacobian.from_residual(_point_residual, DiffType.NUMERICAL)
    assert not numeric.jitted
