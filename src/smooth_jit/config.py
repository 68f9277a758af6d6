# Copyright (c) 2025.
# This file is part of smooth-jit, released under the MIT License.
"""
Package-wide configuration for smooth-jit.

The Lie-group algebra and the least-squares solver are tuned for double
precision: the Taylor-tail threshold, the trust-region tolerances and the
finite-difference step all assume a 64-bit mantissa. JAX defaults to
32-bit floats, so 64-bit mode is switched on when the package is imported.

Set the environment variable ``SMOOTH_JIT_DISABLE_X64=1`` to keep JAX in
its default single-precision mode (e.g. when smooth-jit is embedded in a
larger float32 pipeline). Expect the solver tolerances to be unreachable
in that mode.

Constants
---------
EPS2
    Default squared-argument switch of ``core.trig.taylor_select``, used
    for ratios without cancellation. Tails whose closed forms cancel
    leading terms switch higher; see ``core.trig``.
"""

from __future__ import annotations

import logging
import os

import jax

logger = logging.getLogger(__name__)

EPS2: float = 1e-8

_DISABLE_X64_ENV = "SMOOTH_JIT_DISABLE_X64"


def x64_requested() -> bool:
    value = os.environ.get(_DISABLE_X64_ENV, "")
    return value.strip().lower() not in ("1", "true", "yes", "on")


def enable_x64() -> None:
    """Switch JAX to 64-bit floats unless disabled through the environment."""
    if not x64_requested():
        logger.debug("%s set; leaving JAX in 32-bit mode", _DISABLE_X64_ENV)
        return
    jax.config.update("jax_enable_x64", True)
