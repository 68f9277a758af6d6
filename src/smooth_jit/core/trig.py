# Copyright (c) 2025.
# This file is part of smooth-jit, released under the MIT License.
"""
Taylor tails of sin and cos for numerically safe Lie-group calculus.

Closed-form expressions for the exponential map and its derivatives are
ratios such as ``sin(x)/x`` or ``(cos(x) - 1)/x**2`` that are singular (or
suffer catastrophic cancellation) as ``x -> 0``. Each function here

    • takes the *squared* argument ``x2``, so callers never need ``sqrt``
      of a quantity that may be zero (``d sqrt(x)/dx`` is infinite at 0),
    • selects by magnitude only (``x2 > threshold``), never by sign,
    • evaluates the unselected branch on a safe dummy input, so that
      forward- and reverse-mode derivatives through ``jnp.where`` stay
      finite ("double where").

Thresholds
----------
Every closed form cancels the leading terms of a Taylor expansion, so its
relative error grows like ``eps / x**(2k)`` near zero. Each tail switches
where that error is small again and carries enough series terms to stay
exact up to its switch:

    cos_2, sin_3    ``EPS2_2``
    cos_4, sin_5    ``EPS2_4``
    cos_6           ``EPS2_6``

``taylor_select`` itself defaults to ``EPS2``, the switch used for ratios
without cancellation such as the SO(3) log.

Key Functions
-------------
cos_2(x2)   (cos x - 1) / x^2
sin_3(x2)   (sin x - x) / x^3
cos_4(x2)   (cos x - 1 + x^2/2) / x^4
sin_5(x2)   (sin x - x + x^3/6) / x^5
cos_6(x2)   (cos x - 1 + x^2/2 - x^4/24) / x^6

taylor_select(x2, closed, series, eps2)
    Generic selector used by group modules for ratios not covered above.
"""

from __future__ import annotations

from typing import Callable

import jax.numpy as jnp

from smooth_jit.config import EPS2

ArrayFn = Callable[[jnp.ndarray], jnp.ndarray]

EPS2_2: float = 1e-3
EPS2_4: float = 1e-2
EPS2_6: float = 1e-1


def taylor_select(x2, closed: ArrayFn, series: ArrayFn, eps2: float = EPS2) -> jnp.ndarray:
    """
    Evaluate ``closed(x2)`` when ``x2 > eps2`` and ``series(x2)`` otherwise.

    ``closed`` only ever sees arguments above the threshold; below it is fed
    a constant ``1.0`` whose result is discarded.
    """
    x2 = jnp.asarray(x2)
    use_closed = x2 > eps2
    x2_safe = jnp.where(use_closed, x2, jnp.ones_like(x2))
    return jnp.where(use_closed, closed(x2_safe), series(x2))


def cos_2(x2) -> jnp.ndarray:
    def closed(y2):
        return (jnp.cos(jnp.sqrt(y2)) - 1.0) / y2

    def series(y2):
        return -1.0 / 2.0 + y2 / 24.0 - y2 * y2 / 720.0 + y2 * y2 * y2 / 40320.0

    return taylor_select(x2, closed, series, EPS2_2)


def sin_3(x2) -> jnp.ndarray:
    def closed(y2):
        y = jnp.sqrt(y2)
        return (jnp.sin(y) - y) / (y2 * y)

    def series(y2):
        return -1.0 / 6.0 + y2 / 120.0 - y2 * y2 / 5040.0 + y2 * y2 * y2 / 362880.0

    return taylor_select(x2, closed, series, EPS2_2)


def cos_4(x2) -> jnp.ndarray:
    def closed(y2):
        return (jnp.cos(jnp.sqrt(y2)) - 1.0 + y2 / 2.0) / (y2 * y2)

    def series(y2):
        return 1.0 / 24.0 - y2 / 720.0 + y2 * y2 / 40320.0 - y2 * y2 * y2 / 3628800.0

    return taylor_select(x2, closed, series, EPS2_4)


def sin_5(x2) -> jnp.ndarray:
    def closed(y2):
        y = jnp.sqrt(y2)
        return (jnp.sin(y) - y + y2 * y / 6.0) / (y2 * y2 * y)

    def series(y2):
        return 1.0 / 120.0 - y2 / 5040.0 + y2 * y2 / 362880.0 - y2 * y2 * y2 / 39916800.0

    return taylor_select(x2, closed, series, EPS2_4)


def cos_6(x2) -> jnp.ndarray:
    def closed(y2):
        y4 = y2 * y2
        return (jnp.cos(jnp.sqrt(y2)) - 1.0 + y2 / 2.0 - y4 / 24.0) / (y4 * y2)

    def series(y2):
        y4 = y2 * y2
        return -1.0 / 720.0 + y2 / 40320.0 - y4 / 3628800.0 + y4 * y2 / 479001600.0

    return taylor_select(x2, closed, series, EPS2_6)


def sinc(x2) -> jnp.ndarray:
    """``sin(x) / x`` as a function of ``x**2``."""
    return 1.0 + x2 * sin_3(x2)


def cos_sq(x2) -> jnp.ndarray:
    """``cos(x)`` as a function of ``x**2``, differentiable at ``x2 = 0``."""
    return 1.0 + x2 * cos_2(x2)
