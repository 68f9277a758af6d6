# Copyright (c) 2025.
# This file is part of smooth-jit, released under the MIT License.
"""
SO(3): 3D rotations stored as unit quaternions.

Memory layout
-------------
- Group:    ``[qx, qy, qz, qw]``
- Tangent:  ``[wx, wy, wz]`` (rotation vector)

Constraints
-----------
- Group:    ``qx^2 + qy^2 + qz^2 + qw^2 = 1`` and ``qw >= 0``. The sign
  convention fixes the double cover of SO(3) by S^3, so that ``log`` is
  single valued; every constructor of new elements enforces it.
- Tangent:  rotation angle ``|w|`` in ``[0, pi]``.

Lie group matrix form is the 3×3 rotation matrix; Lie algebra matrix form
is ``hat(w)``.

All closed-form ratios (``sin(th/2)/th``, ``(cos th - 1)/th^2``, ...) go
through ``core.trig`` so ``exp``/``log`` and their Jacobians are exact to
double precision near the identity and differentiable there.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp

from smooth_jit.config import EPS2
from smooth_jit.core import math3d, trig
from smooth_jit.lie.base import LieGroup


def _dr_expinv_coeff(th2) -> jnp.ndarray:
    """1/th^2 - (1 + cos th) / (2 th sin th), the W^2 weight of dr_expinv."""

    def closed(y2):
        y = jnp.sqrt(y2)
        return 1.0 / y2 - (1.0 + jnp.cos(y)) / (2.0 * y * jnp.sin(y))

    def series(y2):
        return 1.0 / 12.0 + y2 / 720.0 + y2 * y2 / 30240.0

    return trig.taylor_select(th2, closed, series, trig.EPS2_4)


def _axis_rotation(axis: int, angle) -> jnp.ndarray:
    return math3d.quat_to_matrix(SO3.exp(jnp.zeros(3).at[axis].set(angle)).coeffs)


class SO3(LieGroup, rep_size=4, dof=3, matrix_dim=3):
    """Special orthogonal group for 3D rotations."""

    def __init__(self, coeffs) -> None:
        # Any non-zero quaternion is accepted and stored unit-norm with w >= 0.
        super().__init__(coeffs)
        self.coeffs = math3d.quat_canonical(self.coeffs / jnp.linalg.norm(self.coeffs))

    # Construction.

    @classmethod
    def from_quat(cls, quat) -> "SO3":
        """From ``[qx, qy, qz, qw]``; normalized and sign-canonicalized."""
        return cls(quat)

    @classmethod
    def from_matrix(cls, R) -> "SO3":
        return cls(math3d.matrix_to_quat(R))

    @classmethod
    def rot_x(cls, angle) -> "SO3":
        """Rotation of ``angle`` radians around the x axis."""
        return cls.exp(jnp.array([angle, 0.0, 0.0]))

    @classmethod
    def rot_y(cls, angle) -> "SO3":
        return cls.exp(jnp.array([0.0, angle, 0.0]))

    @classmethod
    def rot_z(cls, angle) -> "SO3":
        return cls.exp(jnp.array([0.0, 0.0, angle]))

    @classmethod
    def identity(cls, dtype=None) -> "SO3":
        return cls(jnp.array([0.0, 0.0, 0.0, 1.0], dtype=dtype))

    @classmethod
    def random(cls, key: jax.Array) -> "SO3":
        # Normalized Gaussian 4-vectors are uniform on S^3.
        return cls.from_quat(jax.random.normal(key, (4,)))

    # Accessors.

    def quat(self) -> jnp.ndarray:
        return self.coeffs

    def matrix(self) -> jnp.ndarray:
        return math3d.quat_to_matrix(self.coeffs)

    # Operations.

    def compose(self, other: "SO3") -> "SO3":
        return SO3._wrap(math3d.quat_canonical(math3d.quat_multiply(self.coeffs, other.coeffs)))

    def inverse(self) -> "SO3":
        return SO3._wrap(self.coeffs * jnp.array([-1.0, -1.0, -1.0, 1.0]))

    @classmethod
    def exp(cls, v) -> "SO3":
        w = cls.check_tangent(v)
        th2 = jnp.dot(w, w)
        # q = [sin(th/2)/th * w, cos(th/2)], written in terms of (th/2)^2.
        half2 = th2 / 4.0
        xyz = 0.5 * trig.sinc(half2) * w
        qw = trig.cos_sq(half2)
        return cls._wrap(math3d.quat_canonical(jnp.concatenate([xyz, qw[None]])))

    def log(self) -> jnp.ndarray:
        q = math3d.quat_canonical(self.coeffs)
        xyz = q[:3]
        w = q[3]
        n2 = jnp.dot(xyz, xyz)
        use_closed = n2 > EPS2
        w_safe = jnp.where(use_closed, jnp.ones_like(w), w)

        def closed(y2):
            n = jnp.sqrt(y2)
            return 2.0 * jnp.arctan2(n, w) / n

        def series(y2):
            return 2.0 / w_safe - 2.0 / 3.0 * y2 / (w_safe * w_safe * w_safe)

        return trig.taylor_select(n2, closed, series) * xyz

    def Ad(self) -> jnp.ndarray:
        return self.matrix()

    @classmethod
    def ad(cls, v) -> jnp.ndarray:
        return math3d.hat(cls.check_tangent(v))

    @classmethod
    def dr_exp(cls, v) -> jnp.ndarray:
        w = cls.check_tangent(v)
        th2 = jnp.dot(w, w)
        W = math3d.hat(w)
        return jnp.eye(3) + trig.cos_2(th2) * W - trig.sin_3(th2) * (W @ W)

    @classmethod
    def dr_expinv(cls, v) -> jnp.ndarray:
        w = cls.check_tangent(v)
        th2 = jnp.dot(w, w)
        W = math3d.hat(w)
        return jnp.eye(3) + 0.5 * W + _dr_expinv_coeff(th2) * (W @ W)

    @classmethod
    def hat(cls, v) -> jnp.ndarray:
        return math3d.hat(jnp.asarray(v))

    @classmethod
    def vee(cls, X) -> jnp.ndarray:
        return math3d.vee(X)

    # SO3-specific.

    def apply(self, point) -> jnp.ndarray:
        return self.matrix() @ jnp.asarray(point)

    def dr_action(self, point) -> jnp.ndarray:
        """Jacobian of ``self @ point`` w.r.t. a right perturbation of ``self``."""
        return -self.matrix() @ math3d.hat(jnp.asarray(point))

    def project_so2(self):
        """Keep the yaw (z axis) component of the rotation."""
        from smooth_jit.lie.so2 import SO2

        x, y, z, w = self.coeffs[0], self.coeffs[1], self.coeffs[2], self.coeffs[3]
        yaw = jnp.arctan2(2.0 * (w * z + x * y), 1.0 - 2.0 * (y * y + z * z))
        return SO2.from_angle(yaw)

    def euler_angles(self, i1: int = 2, i2: int = 1, i3: int = 0) -> jnp.ndarray:
        """
        Angles ``[a1, a2, a3]`` with ``R = Rot_i1(a1) @ Rot_i2(a2) @ Rot_i3(a3)``.

        Axes are numbered ``0 = x, 1 = y, 2 = z``; the default is ZYX
        (yaw, pitch, roll). Both Tait-Bryan (``i1 != i3``) and proper Euler
        (``i1 == i3``) conventions are supported. ``a2`` lies in
        ``[-pi/2, pi/2]`` for Tait-Bryan and in ``[0, pi]`` for proper Euler
        angles. At gimbal lock ``a3`` absorbs the undetermined part.
        """
        if {i1, i2, i3} - {0, 1, 2} or i1 == i2 or i2 == i3:
            raise ValueError(f"invalid Euler axis sequence ({i1}, {i2}, {i3})")
        R = self.matrix()
        # +1 when (i1, i2) is a cyclic pair such as (x, y).
        s = 1.0 if i2 == (i1 + 1) % 3 else -1.0
        if i1 == i3:
            m = 3 - i1 - i2
            a1 = jnp.arctan2(R[i2, i1], -s * R[m, i1])
            a2 = jnp.arccos(jnp.clip(R[i1, i1], -1.0, 1.0))
        else:
            a1 = jnp.arctan2(-s * R[i2, i3], R[i3, i3])
            a2 = s * jnp.arcsin(jnp.clip(R[i1, i3], -1.0, 1.0))

        # Whatever the first two rotations leave is a rotation about i3.
        rest = (_axis_rotation(i1, a1) @ _axis_rotation(i2, a2)).T @ R
        p, q = (i3 + 1) % 3, (i3 + 2) % 3
        a3 = jnp.arctan2(rest[q, p], rest[p, p])
        return jnp.stack([a1, a2, a3])

    def normalize(self) -> "SO3":
        return SO3.from_quat(self.coeffs)
