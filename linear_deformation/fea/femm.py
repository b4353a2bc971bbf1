"""Region model machines: the per-region source of global contributions.

A region model machine ("femm") owns the element connectivity of one
geometrically and materially homogeneous piece of the domain.  Concrete
subclasses supply element kernels (stiffness, mass and, where meaningful,
traction and thermal loads); this base class turns them into operators
sized for the free-DOF numbering of a :class:`NodalField`.

Scatter algorithm
-----------------
For each element:

1. Gather the element node coordinates from the geometry field.
2. Evaluate the element kernel (``n_e x n_e`` matrix or ``n_e`` vector,
   ``n_e = nodes_per_element * ndofs``).
3. Look up the element equation numbers; fixed entries carry
   ``FIXED_DOF`` and are dropped.
4. Append the surviving entries to COO arrays.

The COO arrays become a ``scipy.sparse.csr_matrix`` (duplicates summed).
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable, Iterable, Iterator

import numpy as np
import scipy.sparse as sp
from numpy.typing import ArrayLike, NDArray

from linear_deformation.fea.fields import NodalField
from linear_deformation.fea.values import ValueSpec

logger = logging.getLogger(__name__)

ElementContribution = tuple[NDArray[np.int64], NDArray[np.float64]]


def assemble_sysmat(
    nfree: int, contributions: Iterable[ElementContribution]
) -> sp.csr_matrix:
    """Scatter element matrices into an ``nfree x nfree`` CSR matrix."""
    rows: list[NDArray[np.int64]] = []
    cols: list[NDArray[np.int64]] = []
    vals: list[NDArray[np.float64]] = []
    for dofs, ke in contributions:
        n = dofs.size
        if ke.shape != (n, n):
            raise ValueError(
                f"Element matrix shape {ke.shape} doesn't match {n} element DOFs"
            )
        keep = dofs >= 0
        if not keep.any():
            continue
        d = dofs[keep]
        rows.append(np.repeat(d, d.size))
        cols.append(np.tile(d, d.size))
        vals.append(ke[np.ix_(keep, keep)].ravel())

    if rows:
        r = np.concatenate(rows)
        c = np.concatenate(cols)
        v = np.concatenate(vals)
    else:
        r = np.empty(0, dtype=np.int64)
        c = np.empty(0, dtype=np.int64)
        v = np.empty(0, dtype=np.float64)
    return sp.coo_matrix((v, (r, c)), shape=(nfree, nfree)).tocsr()


def assemble_sysvec(
    nfree: int, contributions: Iterable[ElementContribution]
) -> NDArray[np.float64]:
    """Scatter element vectors into a dense vector of length ``nfree``."""
    F = np.zeros(nfree, dtype=np.float64)
    for dofs, fe in contributions:
        if fe.shape != dofs.shape:
            raise ValueError(
                f"Element vector shape {fe.shape} doesn't match "
                f"{dofs.size} element DOFs"
            )
        keep = dofs >= 0
        np.add.at(F, dofs[keep], fe[keep])
    return F


class RegionModel(ABC):
    """Interface every region contribution source implements.

    Parameters
    ----------
    connectivity : array_like
        ``(n_elements, nodes_per_element)`` node indices (0-based).
    label : str
        Free-form name used in log messages.
    """

    nodes_per_element: int = 2

    def __init__(self, connectivity: ArrayLike, label: str = "") -> None:
        conn = np.asarray(connectivity, dtype=np.int64)
        if conn.ndim == 1:
            conn = conn.reshape(-1, self.nodes_per_element)
        if conn.ndim != 2 or conn.shape[1] != self.nodes_per_element:
            raise ValueError(
                f"{type(self).__name__} expects connectivity of shape "
                f"(n, {self.nodes_per_element}), got {conn.shape}"
            )
        if conn.size and conn.min() < 0:
            raise ValueError("Connectivity contains negative node indices")
        self.connectivity: NDArray[np.int64] = conn
        self.label = label

    @property
    def n_elements(self) -> int:
        return self.connectivity.shape[0]

    # ------------------------------------------------------------------
    # Element kernels
    # ------------------------------------------------------------------
    @abstractmethod
    def element_stiffness(
        self, coords: NDArray[np.float64], ndofs: int
    ) -> NDArray[np.float64]:
        """Element stiffness matrix for nodes at ``coords``."""
        ...

    @abstractmethod
    def element_mass(
        self, coords: NDArray[np.float64], ndofs: int, lumped: bool = False
    ) -> NDArray[np.float64]:
        """Element mass matrix (consistent, or lumped when requested)."""
        ...

    def element_traction_load(
        self, coords: NDArray[np.float64], traction: ValueSpec, ndofs: int
    ) -> NDArray[np.float64]:
        raise NotImplementedError(
            f"{type(self).__name__} does not support traction loads"
        )

    def element_thermal_load(
        self, coords: NDArray[np.float64], dT: NDArray[np.float64], ndofs: int
    ) -> NDArray[np.float64]:
        raise NotImplementedError(
            f"{type(self).__name__} does not support thermal loads"
        )

    # ------------------------------------------------------------------
    # Region-level operations
    # ------------------------------------------------------------------
    def associate_geometry(self, geom: NodalField) -> "RegionModel":
        """Precompute geometry-dependent data.  Safe to call repeatedly."""
        self._check_nodes(geom)
        logger.debug("Associated geometry with %r", self)
        return self

    def stiffness(self, geom: NodalField, u: NodalField) -> sp.csr_matrix:
        return assemble_sysmat(
            u.nfreedofs,
            self._element_matrices(geom, u, self.element_stiffness),
        )

    def mass(
        self, geom: NodalField, u: NodalField, lumped: bool = False
    ) -> sp.csr_matrix:
        return assemble_sysmat(
            u.nfreedofs,
            self._element_matrices(
                geom, u, lambda x, n: self.element_mass(x, n, lumped=lumped)
            ),
        )

    def nzebc_loads(self, geom: NodalField, u: NodalField) -> NDArray[np.float64]:
        """Loads equivalent to the non-zero prescribed displacements.

        For each element with a non-zero prescribed entry the contribution
        is ``-k_e @ u_e`` where ``u_e`` holds the prescribed values of the
        fixed entries and zeros elsewhere.
        """
        def contributions() -> Iterator[ElementContribution]:
            for conn, coords in self._elements(geom):
                pe = u.element_fixed_values(conn)
                if not np.any(pe):
                    continue
                ke = self.element_stiffness(coords, u.ndofs)
                yield u.element_dofnums(conn), -ke @ pe

        return assemble_sysvec(u.nfreedofs, contributions())

    def traction_loads(
        self, geom: NodalField, u: NodalField, traction: ValueSpec
    ) -> NDArray[np.float64]:
        return assemble_sysvec(
            u.nfreedofs,
            (
                (u.element_dofnums(conn),
                 self.element_traction_load(coords, traction, u.ndofs))
                for conn, coords in self._elements(geom)
            ),
        )

    def thermal_loads(
        self, geom: NodalField, u: NodalField, dT: NodalField
    ) -> NDArray[np.float64]:
        return assemble_sysvec(
            u.nfreedofs,
            (
                (u.element_dofnums(conn),
                 self.element_thermal_load(coords, dT.values[conn, 0], u.ndofs))
                for conn, coords in self._elements(geom)
            ),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _elements(
        self, geom: NodalField
    ) -> Iterator[tuple[NDArray[np.int64], NDArray[np.float64]]]:
        for conn in self.connectivity:
            yield conn, geom.values[conn]

    def _element_matrices(
        self,
        geom: NodalField,
        u: NodalField,
        kernel: Callable[[NDArray[np.float64], int], NDArray[np.float64]],
    ) -> Iterator[ElementContribution]:
        for conn, coords in self._elements(geom):
            yield u.element_dofnums(conn), kernel(coords, u.ndofs)

    def _check_nodes(self, geom: NodalField) -> None:
        n = geom.nnodes
        if self.connectivity.size and self.connectivity.max() >= n:
            raise IndexError(
                f"{type(self).__name__} {self.label!r} references node "
                f"{int(self.connectivity.max())} but the geometry has {n} nodes"
            )

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(label={self.label!r}, "
            f"n_elements={self.n_elements})"
        )
