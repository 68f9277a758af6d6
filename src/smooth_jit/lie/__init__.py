# Copyright (c) 2025.
# This file is part of smooth-jit, released under the MIT License.
"""Lie group types."""

from smooth_jit.lie.base import LieGroup, Ownership, tangent_split
from smooth_jit.lie.bundle import Bundle
from smooth_jit.lie.c1 import C1
from smooth_jit.lie.map import GroupMap
from smooth_jit.lie.rn import Rn
from smooth_jit.lie.se2 import SE2
from smooth_jit.lie.se2_3 import SE2_3
from smooth_jit.lie.se3 import SE3
from smooth_jit.lie.so2 import SO2
from smooth_jit.lie.so3 import SO3

__all__ = [
    "LieGroup",
    "Ownership",
    "tangent_split",
    "Bundle",
    "C1",
    "GroupMap",
    "Rn",
    "SE2",
    "SE2_3",
    "SE3",
    "SO2",
    "SO3",
]
