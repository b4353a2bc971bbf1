"""Concrete region model machines: axial bars and point facets.

``BarFEMM``
    Two-node axial (truss) bar in 1-, 2- or 3-D.  With direction cosines
    ``c`` and length ``L``::

        k_e = (E A / L) [[ c c^T, -c c^T],
                         [-c c^T,  c c^T]]

        m_e = (rho A L / 6) [[2 I, I],        consistent
                             [I, 2 I]]
        m_e = (rho A L / 2) I                 lumped

    Thermal load from a uniform free strain ``alpha * dT_mean``::

        f_e = E A alpha dT_mean [-c, c]

    Line tractions (force per unit length) are integrated with 2-point
    Gauss quadrature, so linear-in-``x`` load functions are exact.

``PointFEMM``
    Set of single-node facets, e.g. the boundary of a 1-D domain or loaded
    joints of a truss.  It contributes no stiffness or mass; its traction
    load is ``t(x) * area`` at each node.
"""
from __future__ import annotations

import logging

import numpy as np
from numpy.typing import ArrayLike, NDArray

from linear_deformation.fea.femm import RegionModel
from linear_deformation.fea.fields import NodalField
from linear_deformation.fea.values import ValueSpec

logger = logging.getLogger(__name__)

_GAUSS_2PT = np.array([-1.0, 1.0]) / np.sqrt(3.0)


def _bar_geometry(coords: NDArray[np.float64]) -> tuple[float, NDArray[np.float64]]:
    """Length and unit direction of a two-node bar."""
    d = coords[1] - coords[0]
    length = float(np.linalg.norm(d))
    if length <= 0.0:
        raise ValueError(f"Zero-length bar between points {coords[0]} and {coords[1]}")
    return length, d / length


def _traction_vector(q: NDArray[np.float64], ndofs: int) -> NDArray[np.float64]:
    if q.size != ndofs:
        raise ValueError(
            f"Traction vector has {q.size} components, expected {ndofs}"
        )
    return q


class BarFEMM(RegionModel):
    """Two-node axial bar elements.

    Parameters
    ----------
    connectivity : array_like
        ``(n_elements, 2)`` node indices.
    area : float
        Cross-sectional area.
    youngs_modulus : float
        Young's modulus E.
    density : float
        Mass density rho (needed only for modal analysis).
    thermal_expansion : float
        Coefficient of linear thermal expansion alpha.
    label : str
        Name used in log messages.
    """

    nodes_per_element = 2

    def __init__(
        self,
        connectivity: ArrayLike,
        area: float,
        youngs_modulus: float,
        density: float = 0.0,
        thermal_expansion: float = 0.0,
        label: str = "",
    ) -> None:
        super().__init__(connectivity, label=label)
        if area <= 0.0:
            raise ValueError(f"Bar area must be positive, got {area}")
        if youngs_modulus <= 0.0:
            raise ValueError(f"Young's modulus must be positive, got {youngs_modulus}")
        if density < 0.0:
            raise ValueError(f"Density must be non-negative, got {density}")
        self.area = float(area)
        self.youngs_modulus = float(youngs_modulus)
        self.density = float(density)
        self.thermal_expansion = float(thermal_expansion)

    def associate_geometry(self, geom: NodalField) -> "BarFEMM":
        """Check node indices and reject degenerate (zero-length) bars."""
        self._check_nodes(geom)
        total = sum(_bar_geometry(coords)[0] for _, coords in self._elements(geom))
        logger.debug(
            "Bar region %r: %d elements, total length %.6g",
            self.label,
            self.n_elements,
            total,
        )
        return self

    def element_stiffness(
        self, coords: NDArray[np.float64], ndofs: int
    ) -> NDArray[np.float64]:
        self._check_dimension(coords, ndofs)
        length, c = _bar_geometry(coords)
        cc = np.outer(c, c)
        k = self.youngs_modulus * self.area / length
        return k * np.block([[cc, -cc], [-cc, cc]])

    def element_mass(
        self, coords: NDArray[np.float64], ndofs: int, lumped: bool = False
    ) -> NDArray[np.float64]:
        self._check_dimension(coords, ndofs)
        length, _ = _bar_geometry(coords)
        m = self.density * self.area * length
        if lumped:
            return (m / 2.0) * np.eye(2 * ndofs)
        eye = np.eye(ndofs)
        return (m / 6.0) * np.block([[2.0 * eye, eye], [eye, 2.0 * eye]])

    def element_thermal_load(
        self, coords: NDArray[np.float64], dT: NDArray[np.float64], ndofs: int
    ) -> NDArray[np.float64]:
        self._check_dimension(coords, ndofs)
        _, c = _bar_geometry(coords)
        axial = (
            self.youngs_modulus * self.area * self.thermal_expansion
            * float(np.mean(dT))
        )
        return axial * np.concatenate([-c, c])

    def element_traction_load(
        self, coords: NDArray[np.float64], traction: ValueSpec, ndofs: int
    ) -> NDArray[np.float64]:
        self._check_dimension(coords, ndofs)
        length, _ = _bar_geometry(coords)
        jac = length / 2.0
        fe = np.zeros(2 * ndofs, dtype=np.float64)
        for xi in _GAUSS_2PT:
            n0 = (1.0 - xi) / 2.0
            n1 = (1.0 + xi) / 2.0
            x = n0 * coords[0] + n1 * coords[1]
            q = _traction_vector(traction.evaluate(x), ndofs)
            fe[:ndofs] += n0 * q * jac
            fe[ndofs:] += n1 * q * jac
        return fe

    @staticmethod
    def _check_dimension(coords: NDArray[np.float64], ndofs: int) -> None:
        if coords.shape[1] != ndofs:
            raise ValueError(
                f"Bar elements need one displacement component per spatial "
                f"dimension: geometry is {coords.shape[1]}-D, field has "
                f"{ndofs} components"
            )


class PointFEMM(RegionModel):
    """Single-node facets carrying concentrated tractions.

    Parameters
    ----------
    node_list : array_like
        Nodes forming the facet set.
    area : float
        Facet measure multiplying the traction (cross-section area of the
        bar end, or 1.0 for plain nodal forces).
    """

    nodes_per_element = 1

    def __init__(self, node_list: ArrayLike, area: float = 1.0, label: str = "") -> None:
        super().__init__(np.asarray(node_list, dtype=np.int64).reshape(-1, 1), label=label)
        self.area = float(area)

    def element_stiffness(
        self, coords: NDArray[np.float64], ndofs: int
    ) -> NDArray[np.float64]:
        return np.zeros((ndofs, ndofs), dtype=np.float64)

    def element_mass(
        self, coords: NDArray[np.float64], ndofs: int, lumped: bool = False
    ) -> NDArray[np.float64]:
        return np.zeros((ndofs, ndofs), dtype=np.float64)

    def element_thermal_load(
        self, coords: NDArray[np.float64], dT: NDArray[np.float64], ndofs: int
    ) -> NDArray[np.float64]:
        return np.zeros(ndofs, dtype=np.float64)

    def element_traction_load(
        self, coords: NDArray[np.float64], traction: ValueSpec, ndofs: int
    ) -> NDArray[np.float64]:
        return self.area * _traction_vector(traction.evaluate(coords[0]), ndofs)
