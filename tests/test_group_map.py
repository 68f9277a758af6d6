from __future__ import annotations

import jax.numpy as jnp
import numpy as np
import pytest

from smooth_jit import SizeMismatchError
from smooth_jit.lie import SE3, SO3, GroupMap, Ownership


def test_views_write_through_to_buffer():
    """
    Two SE(3) views over one state vector: writes land in the right slice
    and reads reflect later changes to the buffer.
    """
    state = np.zeros(14)
    T0 = SE3.map(state, 0)
    T1 = SE3.map(state, 7)

    T0.set_identity()
    assert state[6] == 1.0

    xi = jnp.array([1.0, 0.0, 0.0, 0.0, 0.0, 0.3])
    T1.assign(SE3.exp(xi))
    assert np.allclose(state[7:14], np.asarray(SE3.exp(xi).coeffs))

    state[7] = 5.0
    assert float(T1.value().translation()[0]) == 5.0
    assert float(T1.coeffs[0]) == 5.0


def test_ownership_tags():
    buf = np.array([0.0, 0.0, 0.0, 1.0])
    view = SO3.map(buf)
    assert view.ownership is Ownership.VIEW
    assert SO3.ownership is Ownership.OWNED
    assert SO3.identity().ownership is Ownership.OWNED
    assert isinstance(view.value(), SO3)


def test_view_operations_return_owned_values():
    buf = np.concatenate([np.asarray(SO3.rot_z(0.5).coeffs), np.asarray(SO3.rot_z(0.2).coeffs)])
    a = SO3.map(buf, 0)
    b = SO3.map(buf, 4)

    c = a @ b
    assert isinstance(c, SO3)
    assert jnp.allclose(c.log(), jnp.array([0.0, 0.0, 0.7]))
    assert jnp.allclose(a - b, jnp.array([0.0, 0.0, 0.3]))
    assert jnp.allclose(a.inverse().log(), jnp.array([0.0, 0.0, -0.5]))
    assert jnp.allclose(a.Ad(), a.matrix())
    assert isinstance(a + jnp.zeros(3), SO3)
    assert a.is_approx(SO3.rot_z(0.5))


def test_in_place_retraction():
    buf = np.array([0.0, 0.0, 0.0, 1.0])
    g = SO3.map(buf)
    g.rplus_(jnp.array([0.0, 0.1, 0.0]))
    assert jnp.allclose(SO3(jnp.asarray(buf)).log(), jnp.array([0.0, 0.1, 0.0]))


def test_read_only_buffer():
    buf = np.array([0.0, 0.0, 0.0, 1.0])
    buf.flags.writeable = False
    view = SO3.map(buf)
    assert not view.writeable
    assert jnp.allclose(view.log(), jnp.zeros(3))
    with pytest.raises(ValueError):
        view.set_identity()


def test_bad_buffers():
    with pytest.raises(SizeMismatchError):
        SE3.map(np.zeros(10), 4)
    with pytest.raises(SizeMismatchError):
        SO3.map(np.zeros((2, 4)))
    with pytest.raises(TypeError):
        GroupMap(SO3, [0.0, 0.0, 0.0, 1.0])
    with pytest.raises(TypeError):
        SO3.map(np.zeros(4)).assign(SE3.identity())
