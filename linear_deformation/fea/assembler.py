"""Global sparse operator assembly from per-region contributions.

The assembler sums the contributions of every region model machine into
global operators indexed by the free-DOF numbering of the displacement
field.  Each region returns an ``nfree x nfree`` sparse matrix (or a
length-``nfree`` vector) already restricted to free DOFs, so the global
accumulation is a plain sum.

Algorithm
---------
1. Invoke ``associate_geometry`` once per distinct region model.
2. Sum region stiffness (and, for modal analysis, mass) matrices.
3. Symmetrize via ``(A + A.T) / 2`` and drop explicit zeros.
4. For static analysis accumulate the load vector:
   a. loads equivalent to non-zero prescribed displacements,
   b. traction loads over boundary facet sets,
   c. thermal strain loads from the temperature change field.

Accumulation is additive: visiting the regions in a different order
changes the result only through floating-point summation order.
"""
from __future__ import annotations

import logging
import time
from typing import Iterable, Optional, Sequence

import numpy as np
import scipy.sparse as sp
from numpy.typing import NDArray

from linear_deformation.fea.config import ModalConfig, StaticConfig, TractionBC
from linear_deformation.fea.femm import RegionModel
from linear_deformation.fea.fields import NodalField

logger = logging.getLogger(__name__)


def _symmetrize(A: sp.spmatrix) -> sp.csr_matrix:
    A = sp.csr_matrix((A + A.T) / 2.0)
    A.eliminate_zeros()
    return A


class GlobalAssembler:
    """Assemble global stiffness, mass and load operators.

    Parameters
    ----------
    geom : NodalField
        Geometry field (node coordinates).
    u : NodalField
        Displacement field with essential BCs applied and numbered.

    Raises
    ------
    RuntimeError
        If ``u`` has not been numbered.
    ValueError
        If ``geom`` and ``u`` disagree on the number of nodes.
    """

    def __init__(self, geom: NodalField, u: NodalField) -> None:
        if not u.is_numbered:
            raise RuntimeError(
                "GlobalAssembler requires a numbered displacement field; "
                "call number_dofs() first."
            )
        if geom.nnodes != u.nnodes:
            raise ValueError(
                f"Geometry has {geom.nnodes} nodes but the displacement "
                f"field has {u.nnodes}"
            )
        self._geom = geom
        self._u = u

    @property
    def nfree(self) -> int:
        return self._u.nfreedofs

    # ------------------------------------------------------------------
    # Geometry association
    # ------------------------------------------------------------------
    def associate(self, models: Iterable[RegionModel]) -> int:
        """Call ``associate_geometry`` once on each distinct model.

        Models are compared by identity, so a machine shared between the
        stiffness and mass roles is associated once.  Returns the number
        of models associated.
        """
        seen: set[int] = set()
        for model in models:
            if id(model) in seen:
                continue
            seen.add(id(model))
            model.associate_geometry(self._geom)
        return len(seen)

    # ------------------------------------------------------------------
    # Operators
    # ------------------------------------------------------------------
    def stiffness(self, models: Iterable[RegionModel]) -> sp.csr_matrix:
        """Global stiffness matrix K."""
        K = sp.csr_matrix((self.nfree, self.nfree), dtype=np.float64)
        for model in models:
            K = K + self._checked_matrix(model.stiffness(self._geom, self._u), model)
        return _symmetrize(K)

    def mass(
        self, models: Iterable[RegionModel], lumped: bool = False
    ) -> sp.csr_matrix:
        """Global mass matrix M (consistent, or lumped when requested)."""
        M = sp.csr_matrix((self.nfree, self.nfree), dtype=np.float64)
        for model in models:
            M = M + self._checked_matrix(
                model.mass(self._geom, self._u, lumped=lumped), model
            )
        return _symmetrize(M)

    def nzebc_loads(self, models: Iterable[RegionModel]) -> NDArray[np.float64]:
        """Loads induced by non-zero prescribed displacements."""
        F = np.zeros(self.nfree, dtype=np.float64)
        for model in models:
            F += self._checked_vector(model.nzebc_loads(self._geom, self._u), model)
        return F

    def traction_loads(
        self, traction_bcs: Sequence[TractionBC]
    ) -> NDArray[np.float64]:
        """Loads from tractions applied over boundary facet sets."""
        F = np.zeros(self.nfree, dtype=np.float64)
        for bc in traction_bcs:
            F += self._checked_vector(
                bc.femm.traction_loads(self._geom, self._u, bc.traction_vector),
                bc.femm,
            )
        return F

    def thermal_loads(
        self, models: Iterable[RegionModel], dT: Optional[NodalField] = None
    ) -> NDArray[np.float64]:
        """Thermal strain loads; ``dT`` defaults to a zero temperature change."""
        if dT is None:
            dT = NodalField.zeros(self._geom.nnodes, 1)
        F = np.zeros(self.nfree, dtype=np.float64)
        for model in models:
            F += self._checked_vector(
                model.thermal_loads(self._geom, self._u, dT), model
            )
        return F

    # ------------------------------------------------------------------
    # Analysis-level assembly
    # ------------------------------------------------------------------
    def assemble_static(
        self, config: StaticConfig
    ) -> tuple[sp.csr_matrix, NDArray[np.float64]]:
        """Assemble K and F for linear static analysis.

        Returns
        -------
        K : scipy.sparse.csr_matrix, shape (nfree, nfree)
        F : numpy.ndarray, shape (nfree,)
        """
        t0 = time.perf_counter()
        models = [region.femm for region in config.regions]
        self.associate(models + [bc.femm for bc in config.traction_bcs])

        K = self.stiffness(models)
        F = np.zeros(self.nfree, dtype=np.float64)
        if config.essential_bcs:
            F += self.nzebc_loads(models)
        if config.traction_bcs:
            F += self.traction_loads(config.traction_bcs)
        if config.temperature_change is not None:
            dT = config.temperature_change.nodal_field(self._geom)
            F += self.thermal_loads(models, dT)

        logger.info(
            "Assembled static system: %d free DOFs, %d region(s), "
            "K nnz=%d, |F|=%.6e, time=%.3fs",
            self.nfree,
            len(models),
            K.nnz,
            float(np.linalg.norm(F)),
            time.perf_counter() - t0,
        )
        return K, F

    def assemble_modal(
        self, config: ModalConfig
    ) -> tuple[sp.csr_matrix, sp.csr_matrix]:
        """Assemble K and M for modal analysis.

        Stiffness comes from each region's ``femm_stiffness`` (falling back
        to ``femm``) and mass from ``femm_mass`` (falling back to ``femm``).
        """
        t0 = time.perf_counter()
        k_models = [region.stiffness_model for region in config.regions]
        m_models = [region.mass_model for region in config.regions]
        self.associate(k_models + m_models)

        K = self.stiffness(k_models)
        M = self.mass(m_models, lumped=config.use_lumped_mass)

        logger.info(
            "Assembled modal system: %d free DOFs, %d region(s), "
            "K nnz=%d, M nnz=%d (%s mass), time=%.3fs",
            self.nfree,
            len(config.regions),
            K.nnz,
            M.nnz,
            "lumped" if config.use_lumped_mass else "consistent",
            time.perf_counter() - t0,
        )
        return K, M

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _checked_matrix(self, A: sp.spmatrix, model: RegionModel) -> sp.spmatrix:
        if A.shape != (self.nfree, self.nfree):
            raise ValueError(
                f"{model!r} returned a matrix of shape {A.shape}, "
                f"expected ({self.nfree}, {self.nfree})"
            )
        return A

    def _checked_vector(
        self, f: NDArray[np.float64], model: RegionModel
    ) -> NDArray[np.float64]:
        f = np.asarray(f, dtype=np.float64)
        if f.shape != (self.nfree,):
            raise ValueError(
                f"{model!r} returned a vector of shape {f.shape}, "
                f"expected ({self.nfree},)"
            )
        return f

    def __repr__(self) -> str:
        return (
            f"GlobalAssembler(n_nodes={self._geom.nnodes}, "
            f"n_dofs={self._u.ndofs}, nfree={self.nfree})"
        )
