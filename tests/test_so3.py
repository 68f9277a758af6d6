from __future__ import annotations

import jax
import jax.numpy as jnp
import numpy as np
import pytest

from smooth_jit.lie import SE3, SO3


def _closed_form_exp_quat(w: np.ndarray) -> np.ndarray:
    th = np.linalg.norm(w)
    return np.concatenate([np.sin(th / 2.0) * w / th, [np.cos(th / 2.0)]])


def _closed_form_dr_exp(w: np.ndarray) -> np.ndarray:
    th = np.linalg.norm(w)
    W = np.array(SO3.hat(jnp.asarray(w)))
    return np.eye(3) - (1.0 - np.cos(th)) / th**2 * W + (th - np.sin(th)) / th**3 * W @ W


def _closed_form_dr_expinv(w: np.ndarray) -> np.ndarray:
    th = np.linalg.norm(w)
    W = np.array(SO3.hat(jnp.asarray(w)))
    coeff = 1.0 / th**2 - (1.0 + np.cos(th)) / (2.0 * th * np.sin(th))
    return np.eye(3) + 0.5 * W + coeff * W @ W


@pytest.mark.parametrize("axis", [np.array([1.0, 0.0, 0.0]), np.array([0.3, -0.5, 0.8])])
def test_near_zero_angle_matches_closed_form(axis):
    """
    At an angle of 1e-6 the Taylor branches are active; they must agree with
    the plain closed-form expressions evaluated in double precision.
    """
    w = 1e-6 * axis / np.linalg.norm(axis)

    q = SO3.exp(jnp.asarray(w)).coeffs
    assert np.allclose(np.asarray(q), _closed_form_exp_quat(w), atol=1e-6)

    g = SO3(jnp.asarray(_closed_form_exp_quat(w)))
    assert np.allclose(np.asarray(g.log()), w, atol=1e-6)

    assert np.allclose(np.asarray(SO3.dr_exp(jnp.asarray(w))), _closed_form_dr_exp(w), atol=1e-6)
    assert np.allclose(np.asarray(SO3.dr_expinv(jnp.asarray(w))), _closed_form_dr_expinv(w), atol=1e-6)


def test_near_zero_angle_se3():
    xi = jnp.array([0.1, -0.2, 0.3, 1e-6, 0.0, -1e-6])
    T = SE3.exp(xi)
    assert jnp.allclose(T.log(), xi, atol=1e-12)
    assert jnp.allclose(SE3.dr_exp(xi) @ SE3.dr_expinv(xi), jnp.eye(6), atol=1e-12)


def test_quaternion_is_canonical():
    for seed in range(10):
        g = SO3.random(jax.random.PRNGKey(seed))
        assert float(g.coeffs[3]) >= 0.0
        assert jnp.allclose(jnp.linalg.norm(g.coeffs), 1.0)

    flipped = SO3.from_quat(jnp.array([0.1, 0.2, 0.3, -0.9]))
    assert float(flipped.coeffs[3]) > 0.0


def test_matrix_roundtrip_and_orthogonality():
    for seed in range(5):
        g = SO3.random(jax.random.PRNGKey(seed))
        R = g.matrix()
        assert jnp.allclose(R @ R.T, jnp.eye(3), atol=1e-12)
        assert jnp.allclose(jnp.linalg.det(R), 1.0)
        assert jnp.allclose(SO3.from_matrix(R).coeffs, g.coeffs, atol=1e-10)


def test_elementary_rotations():
    p = jnp.array([1.0, 0.0, 0.0])
    assert jnp.allclose(SO3.rot_z(jnp.pi / 2) @ p, jnp.array([0.0, 1.0, 0.0]), atol=1e-12)
    assert jnp.allclose(SO3.rot_y(jnp.pi / 2) @ p, jnp.array([0.0, 0.0, -1.0]), atol=1e-12)
    assert jnp.allclose(SO3.rot_x(0.3).log(), jnp.array([0.3, 0.0, 0.0]))


def test_log_at_rotation_by_pi():
    g = SO3.rot_x(jnp.pi)
    assert jnp.allclose(jnp.abs(g.log()), jnp.array([jnp.pi, 0.0, 0.0]), atol=1e-12)


def test_dr_action_is_derivative_of_apply():
    g = SO3.random(jax.random.PRNGKey(3))
    p = jnp.array([0.4, -1.0, 2.0])
    J = jax.jacfwd(lambda e: (g + e) @ p)(jnp.zeros(3))
    assert jnp.allclose(J, g.dr_action(p), atol=1e-12)


def test_projections():
    yaw = 0.7
    T = SE3.from_rotation_and_translation(SO3.rot_z(yaw), jnp.array([1.0, 2.0, 3.0]))
    T2 = T.project_se2()
    assert jnp.allclose(T2.translation(), jnp.array([1.0, 2.0]))
    assert jnp.allclose(T2.rotation().angle(), yaw)


def _axis(i, angle):
    return [SO3.rot_x, SO3.rot_y, SO3.rot_z][i](angle)


@pytest.mark.parametrize("axes", [(2, 1, 0), (0, 1, 2), (1, 0, 2), (2, 0, 2), (2, 1, 2), (0, 1, 0)])
def test_euler_angles_reconstruct_rotation(axes):
    for seed in range(5):
        g = SO3.random(jax.random.PRNGKey(seed))
        a = g.euler_angles(*axes)
        rebuilt = _axis(axes[0], a[0]) @ _axis(axes[1], a[1]) @ _axis(axes[2], a[2])
        assert jnp.allclose(rebuilt.matrix(), g.matrix(), atol=1e-10), (axes, seed)
        if axes[0] == axes[2]:
            assert 0.0 <= float(a[1]) <= jnp.pi
        else:
            assert abs(float(a[1])) <= jnp.pi / 2


def test_euler_angles_default_is_yaw_pitch_roll():
    g = SO3.rot_z(0.3) @ SO3.rot_y(-0.2) @ SO3.rot_x(1.1)
    assert jnp.allclose(g.euler_angles(), jnp.array([0.3, -0.2, 1.1]), atol=1e-12)
    assert jnp.allclose(SO3.rot_z(0.3).euler_angles(), jnp.array([0.3, 0.0, 0.0]), atol=1e-12)


@pytest.mark.parametrize("axes", [(2, 2, 0), (0, 1, 1), (3, 1, 0)])
def test_euler_angles_rejects_bad_axes(axes):
    with pytest.raises(ValueError):
        SO3.identity().euler_angles(*axes)


def test_constructor_normalizes_and_canonicalizes():
    g = SO3.random(jax.random.PRNGKey(11))
    scaled = SO3(-2.0 * g.coeffs)
    assert jnp.allclose(jnp.linalg.norm(scaled.coeffs), 1.0)
    assert float(scaled.coeffs[3]) >= 0.0
    assert scaled.is_approx(g)
    assert jnp.allclose(scaled.log(), g.log(), atol=1e-12)

    w = SO3(jnp.array([0.1, 0.2, 0.3, -0.9])).log()
    assert float(jnp.linalg.norm(w)) <= jnp.pi
