# Copyright (c) 2025.
# This file is part of smooth-jit, released under the MIT License.
"""Jacobians, the trust-region subproblem and the ``minimize`` driver."""
