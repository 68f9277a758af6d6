# Copyright (c) 2025.
# This file is part of smooth-jit, released under the MIT License.
"""
Bundles: direct products of Lie groups.

A bundle type is built from its part types; integers stand for Euclidean
parts of that dimension:

    PoseBias = Bundle.of(SE3, 3)          # SE(3) × R^3
    x = PoseBias.from_parts(SE3.identity(), R3(jnp.zeros(3)))

Coefficients and tangent vectors are the concatenations of those of the
parts, in order. All differential operators are block diagonal.
"""

from __future__ import annotations

import functools
from typing import ClassVar, Tuple, Type, Union

import jax
import jax.numpy as jnp

from smooth_jit.core.math3d import block_diag
from smooth_jit.lie.base import LieGroup, tangent_split
from smooth_jit.lie.rn import Rn

PartSpec = Union[Type[LieGroup], int]


class Bundle(LieGroup):
    """Product group. Use ``Bundle.of(*parts)`` for a concrete bundle type."""

    parts: ClassVar[Tuple[Type[LieGroup], ...]] = ()

    @staticmethod
    def of(*parts: PartSpec) -> Type["Bundle"]:
        resolved = tuple(Rn.of(p) if isinstance(p, int) else p for p in parts)
        if not resolved:
            raise ValueError("a bundle needs at least one part")
        for p in resolved:
            if not (isinstance(p, type) and issubclass(p, LieGroup)):
                raise TypeError(f"bundle parts must be LieGroup types or ints, got {p!r}")
        return _bundle_type(resolved)

    @classmethod
    def _rep_sizes(cls) -> Tuple[int, ...]:
        return tuple(p.rep_size for p in cls.parts)

    @classmethod
    def _dofs(cls) -> Tuple[int, ...]:
        return tuple(p.dof for p in cls.parts)

    @classmethod
    def from_parts(cls, *elements: LieGroup) -> "Bundle":
        if len(elements) != len(cls.parts):
            raise TypeError(f"{cls.__name__} takes {len(cls.parts)} parts, got {len(elements)}")
        for p, e in zip(cls.parts, elements):
            if not isinstance(e, p):
                raise TypeError(f"expected {p.__name__}, got {type(e).__name__}")
        return cls(jnp.concatenate([e.coeffs for e in elements]))

    def part(self, i: int) -> LieGroup:
        chunks = tangent_split(self.coeffs, self._rep_sizes())
        return self.parts[i]._wrap(chunks[i])

    def split(self) -> Tuple[LieGroup, ...]:
        chunks = tangent_split(self.coeffs, self._rep_sizes())
        return tuple(p._wrap(c) for p, c in zip(self.parts, chunks))

    @classmethod
    def _join(cls, elements) -> "Bundle":
        return cls._wrap(jnp.concatenate([e.coeffs for e in elements]))

    @classmethod
    def identity(cls, dtype=None) -> "Bundle":
        return cls._join([p.identity(dtype) for p in cls.parts])

    @classmethod
    def random(cls, key: jax.Array) -> "Bundle":
        keys = jax.random.split(key, len(cls.parts))
        return cls._join([p.random(k) for p, k in zip(cls.parts, keys)])

    def compose(self, other: "Bundle") -> "Bundle":
        return self._join([a.compose(b) for a, b in zip(self.split(), other.split())])

    def inverse(self) -> "Bundle":
        return self._join([a.inverse() for a in self.split()])

    @classmethod
    def exp(cls, v) -> "Bundle":
        v = cls.check_tangent(v)
        return cls._join([p.exp(vi) for p, vi in zip(cls.parts, tangent_split(v, cls._dofs()))])

    def log(self) -> jnp.ndarray:
        return jnp.concatenate([a.log() for a in self.split()])

    def Ad(self) -> jnp.ndarray:
        return block_diag(*[a.Ad() for a in self.split()])

    @classmethod
    def _blockwise(cls, name: str, v) -> jnp.ndarray:
        v = cls.check_tangent(v)
        return block_diag(
            *[getattr(p, name)(vi) for p, vi in zip(cls.parts, tangent_split(v, cls._dofs()))]
        )

    @classmethod
    def ad(cls, v) -> jnp.ndarray:
        return cls._blockwise("ad", v)

    @classmethod
    def dr_exp(cls, v) -> jnp.ndarray:
        return cls._blockwise("dr_exp", v)

    @classmethod
    def dr_expinv(cls, v) -> jnp.ndarray:
        return cls._blockwise("dr_expinv", v)

    @classmethod
    def hat(cls, v) -> jnp.ndarray:
        v = jnp.asarray(v)
        return block_diag(*[p.hat(vi) for p, vi in zip(cls.parts, tangent_split(v, cls._dofs()))])

    @classmethod
    def vee(cls, X) -> jnp.ndarray:
        out = []
        offset = 0
        for p in cls.parts:
            k = p.matrix_dim
            out.append(p.vee(X[offset:offset + k, offset:offset + k]))
            offset += k
        return jnp.concatenate(out)

    def matrix(self) -> jnp.ndarray:
        return block_diag(*[a.matrix() for a in self.split()])


@functools.lru_cache(maxsize=None)
def _bundle_type(parts: Tuple[Type[LieGroup], ...]) -> Type[Bundle]:
    name = "Bundle[" + ",".join(p.__name__ for p in parts) + "]"
    return type(
        name,
        (Bundle,),
        {"parts": parts, "__module__": __name__},
        rep_size=sum(p.rep_size for p in parts),
        dof=sum(p.dof for p in parts),
        matrix_dim=sum(p.matrix_dim for p in parts),
    )
