"""Node sets and nodal fields with fixed/free degree-of-freedom bookkeeping.

A :class:`NodalField` holds one row of values per node and one column per
component.  Each (node, component) entry is either FREE or FIXED.  After
:meth:`NodalField.number_dofs` every FREE entry carries an equation number
in ``[0, nfreedofs)`` and every FIXED entry carries :data:`FIXED_DOF`.

Numbering order is node-major, component-minor::

    (node 0, comp 0), (node 0, comp 1), ..., (node 1, comp 0), ...
"""
from __future__ import annotations

import logging
from typing import Any, Sequence, Union

import numpy as np
from numpy.typing import ArrayLike, NDArray

logger = logging.getLogger(__name__)

FIXED_DOF = -1
ALL_COMPONENTS = "all"

Component = Union[int, str, None]


class NodeSet:
    """Ordered collection of node coordinates.

    Parameters
    ----------
    xyz : array_like
        ``(n_nodes, n_dim)`` coordinates.  A flat sequence is read as a
        one-dimensional node set ``(n_nodes, 1)``.
    """

    def __init__(self, xyz: ArrayLike) -> None:
        arr = np.asarray(xyz, dtype=np.float64)
        if arr.ndim == 1:
            arr = arr.reshape(-1, 1)
        if arr.ndim != 2:
            raise ValueError(
                f"Node coordinates must be a 2-D array, got shape {arr.shape}"
            )
        self.xyz: NDArray[np.float64] = arr

    @property
    def count(self) -> int:
        return self.xyz.shape[0]

    @property
    def ndim(self) -> int:
        return self.xyz.shape[1]

    def __repr__(self) -> str:
        return f"NodeSet(count={self.count}, ndim={self.ndim})"


def as_node_set(fens: Any) -> NodeSet:
    """Accept a :class:`NodeSet` or a raw coordinate array."""
    if isinstance(fens, NodeSet):
        return fens
    return NodeSet(fens)


class NodalField:
    """Per-node unknowns with fixed/free status and a free-DOF numbering.

    Parameters
    ----------
    values : array_like
        ``(n_nodes, n_dofs)`` initial values.  A flat array becomes a
        single-component field.
    copy : bool
        When False, a float64 2-D input array is referenced rather than
        copied (used for the geometry field, which must track the node set).
    """

    def __init__(self, values: ArrayLike, copy: bool = True) -> None:
        arr = np.array(values, dtype=np.float64, copy=True) if copy else (
            np.asarray(values, dtype=np.float64)
        )
        if arr.ndim == 1:
            arr = arr.reshape(-1, 1)
        self.values: NDArray[np.float64] = arr
        self.is_fixed: NDArray[np.bool_] = np.zeros(arr.shape, dtype=bool)
        self.fixed_values: NDArray[np.float64] = np.zeros(arr.shape, dtype=np.float64)
        self.dofnums: NDArray[np.int64] = np.full(arr.shape, FIXED_DOF, dtype=np.int64)
        self.nfreedofs: int = 0
        self._numbered = False

    @classmethod
    def zeros(cls, n_nodes: int, n_dofs: int) -> "NodalField":
        return cls(np.zeros((n_nodes, n_dofs), dtype=np.float64))

    @classmethod
    def geometry(cls, fens: NodeSet) -> "NodalField":
        """Geometry field referencing the node coordinates of ``fens``."""
        return cls(fens.xyz, copy=False)

    # ------------------------------------------------------------------
    # Shape
    # ------------------------------------------------------------------
    @property
    def nnodes(self) -> int:
        return self.values.shape[0]

    @property
    def ndofs(self) -> int:
        return self.values.shape[1]

    @property
    def is_numbered(self) -> bool:
        return self._numbered

    # ------------------------------------------------------------------
    # Essential boundary conditions
    # ------------------------------------------------------------------
    def set_ebc(
        self,
        node_ids: Sequence[int],
        component: Component = ALL_COMPONENTS,
        values: Union[float, ArrayLike] = 0.0,
        is_fixed: bool = True,
    ) -> None:
        """Mark entries fixed (or free) and record their prescribed values.

        Changing the fixed/free pattern invalidates the numbering; call
        :meth:`number_dofs` again afterwards.

        Parameters
        ----------
        node_ids : sequence of int
            Nodes the condition applies to.
        component : int, ``"all"`` or None
            Component index (0-based) or :data:`ALL_COMPONENTS` / None for
            every component of the listed nodes.
        values : float or array_like
            A scalar broadcast to every listed node, or one value per node.
        is_fixed : bool
            False releases the entries again (their prescribed value is
            reset to zero).
        """
        nodes = np.asarray(node_ids, dtype=np.int64).ravel()
        if nodes.size and (nodes.min() < 0 or nodes.max() >= self.nnodes):
            raise IndexError(
                f"Node index out of range for a field of {self.nnodes} nodes"
            )
        vals = np.asarray(values, dtype=np.float64)
        if vals.ndim == 0:
            vals = np.full(nodes.shape, float(vals))
        else:
            vals = vals.ravel()
            if vals.shape != nodes.shape:
                raise ValueError(
                    f"Got {vals.size} prescribed values for {nodes.size} nodes"
                )
        if component is None or component == ALL_COMPONENTS:
            comps = np.arange(self.ndofs)
        else:
            comp = int(component)
            if not 0 <= comp < self.ndofs:
                raise IndexError(
                    f"Component {comp} out of range for a field with "
                    f"{self.ndofs} components"
                )
            comps = np.array([comp])

        for c in comps:
            self.is_fixed[nodes, c] = is_fixed
            self.fixed_values[nodes, c] = vals if is_fixed else 0.0
        self._numbered = False

    def apply_ebc(self) -> None:
        """Copy the prescribed values of fixed entries into ``values``."""
        self.values[self.is_fixed] = self.fixed_values[self.is_fixed]

    # ------------------------------------------------------------------
    # Numbering
    # ------------------------------------------------------------------
    def number_dofs(self) -> int:
        """Number the free entries consecutively; return the free count."""
        free = ~self.is_fixed.ravel()
        numbers = np.full(free.shape, FIXED_DOF, dtype=np.int64)
        numbers[free] = np.arange(int(free.sum()), dtype=np.int64)
        self.dofnums = numbers.reshape(self.values.shape)
        self.nfreedofs = int(free.sum())
        self._numbered = True
        logger.debug(
            "Numbered %d free of %d total DOFs", self.nfreedofs, self.values.size
        )
        return self.nfreedofs

    def _require_numbering(self) -> None:
        if not self._numbered:
            raise RuntimeError(
                "Field has not been numbered; call number_dofs() after "
                "applying boundary conditions."
            )

    # ------------------------------------------------------------------
    # System vectors
    # ------------------------------------------------------------------
    def gather_sysvec(self) -> NDArray[np.float64]:
        """Free-DOF vector of the current values."""
        self._require_numbering()
        vec = np.zeros(self.nfreedofs, dtype=np.float64)
        free = ~self.is_fixed
        vec[self.dofnums[free]] = self.values[free]
        return vec

    def scatter_sysvec(self, vec: ArrayLike) -> None:
        """Write a free-DOF vector into the free entries; fixed ones stay."""
        self._require_numbering()
        vec = np.asarray(vec)
        if vec.shape != (self.nfreedofs,):
            raise ValueError(
                f"System vector of shape {vec.shape} does not match "
                f"{self.nfreedofs} free DOFs"
            )
        free = ~self.is_fixed
        self.values[free] = np.real(vec[self.dofnums[free]])

    # ------------------------------------------------------------------
    # Element-level gathers
    # ------------------------------------------------------------------
    def element_dofnums(self, conn: ArrayLike) -> NDArray[np.int64]:
        """Equation numbers of an element's nodes, node-major, flattened."""
        self._require_numbering()
        return self.dofnums[np.asarray(conn, dtype=np.int64)].ravel()

    def element_fixed_values(self, conn: ArrayLike) -> NDArray[np.float64]:
        """Prescribed values of an element's fixed entries (zero if free)."""
        idx = np.asarray(conn, dtype=np.int64)
        return np.where(self.is_fixed[idx], self.fixed_values[idx], 0.0).ravel()

    def __repr__(self) -> str:
        return (
            f"NodalField(nnodes={self.nnodes}, ndofs={self.ndofs}, "
            f"nfreedofs={self.nfreedofs if self._numbered else None})"
        )

