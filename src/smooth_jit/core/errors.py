# Copyright (c) 2025.
# This file is part of smooth-jit, released under the MIT License.
"""
Error taxonomy for smooth-jit.

Only contract violations are raised. Numerical difficulties inside the
solver are either handled locally (rank-deficient Jacobians are solved in
the non-null column space) or reported through
``optimization.solvers.MinimizeStatus``.
"""

from __future__ import annotations


class SmoothError(Exception):
    """Base class for errors raised by smooth-jit."""


class SizeMismatchError(SmoothError, ValueError):
    """An array length disagrees with the size declared for it.

    Raised at the call boundary: a tangent vector of the wrong length, a
    coefficient vector that does not match a group's storage size, a
    residual whose length changes between evaluations, or an explicit
    Jacobian of the wrong shape.
    """

    def __init__(self, what: str, expected: int | tuple, actual: int | tuple):
        self.what = what
        self.expected = expected
        self.actual = actual
        super().__init__(f"{what}: expected size {expected}, got {actual}")
