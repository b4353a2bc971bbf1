"""Constant-or-function value specifications.

Prescribed displacements, traction vectors and temperature changes may be
given either as constants or as functions of the nodal coordinates.  They
are normalised once into one of two tagged variants so the solvers never
inspect raw types:

* :class:`Constant` -- the same value everywhere.
* :class:`FunctionOf` -- ``func(x)`` evaluated at a point ``x``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Union

import numpy as np
from numpy.typing import NDArray


@dataclass(frozen=True)
class Constant:
    """A value independent of position."""
    value: Any

    def evaluate(self, x: NDArray[np.float64]) -> NDArray[np.float64]:
        return np.atleast_1d(np.asarray(self.value, dtype=np.float64)).ravel()

    def scalar_at(self, x: NDArray[np.float64]) -> float:
        return float(self.evaluate(x)[0])

    @property
    def is_zero(self) -> bool:
        return not np.any(np.asarray(self.value, dtype=np.float64))


@dataclass(frozen=True)
class FunctionOf:
    """A value computed from the coordinates of a point."""
    func: Callable[[NDArray[np.float64]], Any]

    def evaluate(self, x: NDArray[np.float64]) -> NDArray[np.float64]:
        return np.atleast_1d(np.asarray(self.func(x), dtype=np.float64)).ravel()

    def scalar_at(self, x: NDArray[np.float64]) -> float:
        return float(self.evaluate(x)[0])

    @property
    def is_zero(self) -> bool:
        return False


ValueSpec = Union[Constant, FunctionOf]


def value_spec(obj: Any, default: Any = 0.0) -> ValueSpec:
    """Convert a raw record value into a :data:`ValueSpec`.

    ``None`` becomes ``Constant(default)``, callables become
    :class:`FunctionOf`, existing specs pass through unchanged and anything
    else is wrapped in :class:`Constant`.
    """
    if isinstance(obj, (Constant, FunctionOf)):
        return obj
    if obj is None:
        return Constant(default)
    if callable(obj):
        return FunctionOf(obj)
    return Constant(obj)
