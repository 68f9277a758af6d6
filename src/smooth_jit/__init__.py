# Copyright (c) 2025.
# This file is part of smooth-jit, released under the MIT License.
"""
smooth-jit: Lie groups and manifold least squares in JAX.

Top-level re-exports of the most used types; see the subpackages for the
full API:

    • ``smooth_jit.lie``           group types (SO2, SO3, SE2, SE3, ...)
    • ``smooth_jit.core``          Taylor tails, manifold operations, errors
    • ``smooth_jit.optimization``  Jacobians, trust-region core, ``minimize``
"""

from smooth_jit.config import enable_x64

enable_x64()

from smooth_jit.core.errors import SizeMismatchError, SmoothError  # noqa: E402
from smooth_jit.core.manifold import cast, default, dof, rminus, rplus, wrt  # noqa: E402
from smooth_jit.lie import (  # noqa: E402
    C1,
    SE2,
    SE2_3,
    SE3,
    SO2,
    SO3,
    Bundle,
    GroupMap,
    LieGroup,
    Ownership,
    Rn,
)
from smooth_jit.optimization.diff import DiffType, jacobian  # noqa: E402
from smooth_jit.optimization.solvers import (  # noqa: E402
    MinimizeOptions,
    MinimizeStatus,
    SolveSummary,
    minimize,
)

__version__ = "0.1.0"
