# Copyright (c) 2025.
# This file is part of smooth-jit, released under the MIT License.
"""
Shared type aliases for smooth-jit.

These are annotations only; no runtime checks hang off them. Arrays are
JAX arrays wherever values may flow through ``jax.jit`` or
``jax.jacfwd``, and numpy arrays on the host side of the solver (the
trust-region workspace).

Aliases
-------
Tangent
    1-D array of length ``dof``; an element of a Lie algebra or of the
    tangent space of a Euclidean variable.

Residual
    1-D array returned by a residual function.

ResidualFn
    ``f(*variables) -> Residual``.

AnalyticResidualFn
    ``f(*variables) -> (Residual, Jacobian)`` for explicitly supplied
    Jacobians.
"""

from __future__ import annotations

from typing import Any, Callable, Tuple

import jax.numpy as jnp
import numpy as np

Tangent = jnp.ndarray
Residual = jnp.ndarray
Jacobian = jnp.ndarray
HostMatrix = np.ndarray
HostVector = np.ndarray

# Group element, 1-D array, float, or a tuple/list of those.
ManifoldValue = Any

ResidualFn = Callable[..., Residual]
AnalyticResidualFn = Callable[..., Tuple[Residual, Jacobian]]
