# Copyright (c) 2025.
# This file is part of smooth-jit, released under the MIT License.
"""Numerical primitives, manifold operations and the error taxonomy."""
