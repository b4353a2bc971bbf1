"""Linear deformation solver using numpy/scipy.

Implements linear static and modal analysis of structures described by
region model machines.

Algorithm overview
------------------
1. Build the geometry field from the node set and a zero displacement
   field with one component per spatial dimension.
2. Apply essential boundary conditions and number the free DOFs.
3. Assemble global operators with ``GlobalAssembler``.
4. Static: factorize K and solve ``K U = F``; scatter U into the field and
   compute the elastic work ``0.5 F^T U``.
   Modal: solve ``(K + sigma M) w = lambda M w`` for the smallest-magnitude
   eigenvalues and post-process them into sorted angular frequencies.
5. Return a ``StaticResult`` / ``ModalResult`` dataclass.
"""
from __future__ import annotations

import logging
import time
from typing import Optional, Sequence

from linear_deformation.core.config import AppConfig
from linear_deformation.fea.assembler import GlobalAssembler
from linear_deformation.fea.boundary_conditions import apply_essential_bcs
from linear_deformation.fea.config import EssentialBC, ModalConfig, StaticConfig
from linear_deformation.fea.fields import NodalField, NodeSet
from linear_deformation.fea.modal_solver import (
    postprocess_eigenpairs,
    solve_eigenproblem,
)
from linear_deformation.fea.results import ModalResult, StaticResult
from linear_deformation.fea.solver_interface import SolverInterface
from linear_deformation.fea.static_solver import LinearStaticSolver

logger = logging.getLogger(__name__)

_SOLVER_NAME = "LinearDeformationSolver"


def build_fields(
    fens: NodeSet, essential_bcs: Sequence[EssentialBC]
) -> tuple[NodalField, NodalField]:
    """Geometry field and numbered displacement field for ``fens``."""
    geom = NodalField.geometry(fens)
    u = NodalField.zeros(geom.nnodes, geom.ndofs)
    apply_essential_bcs(u, geom, essential_bcs)
    u.number_dofs()
    return geom, u


class LinearDeformationSolver(SolverInterface):
    """Static and modal analysis on scipy sparse operators.

    Parameters
    ----------
    app_config : AppConfig, optional
        Source of numerical settings (``static.pivot_tolerance``,
        ``modal.dense_threshold``, ``modal.tol``, ``modal.maxiter``).
        Defaults are used when omitted.

    Examples
    --------
    >>> solver = LinearDeformationSolver()
    >>> result = solver.static_analysis(config)
    >>> result.work
    """

    def __init__(self, app_config: Optional[AppConfig] = None) -> None:
        self._config = app_config if app_config is not None else AppConfig()

    @property
    def pivot_tolerance(self) -> float:
        return float(self._config.get("static.pivot_tolerance", 1e-12))

    @property
    def dense_threshold(self) -> int:
        return int(self._config.get("modal.dense_threshold", 200))

    # ------------------------------------------------------------------
    # SolverInterface: static_analysis
    # ------------------------------------------------------------------
    def static_analysis(self, config: StaticConfig) -> StaticResult:
        """Run linear static analysis.

        Raises
        ------
        FactorizationError
            If the stiffness matrix is not positive definite (for example a
            structure with unconstrained rigid-body modes).
        """
        t_start = time.perf_counter()
        geom, u = build_fields(config.fens, config.essential_bcs)
        logger.info(
            "Static analysis: %d nodes, %d components, %d free DOFs",
            geom.nnodes,
            u.ndofs,
            u.nfreedofs,
        )

        K, F = GlobalAssembler(geom, u).assemble_static(config)
        solver = LinearStaticSolver(K, F, pivot_tolerance=self.pivot_tolerance)
        solver.factorize()
        U = solver.solve()
        u.scatter_sysvec(U)
        work = solver.elastic_work(U)

        t_elapsed = time.perf_counter() - t_start
        logger.info(
            "Static analysis complete: work=%.6e, time=%.3fs", work, t_elapsed
        )
        return StaticResult(
            geom=geom,
            u=u,
            displacement=U,
            load=F,
            work=work,
            n_free=u.nfreedofs,
            solve_time_s=t_elapsed,
            solver_name=_SOLVER_NAME,
        )

    # ------------------------------------------------------------------
    # SolverInterface: modal_analysis
    # ------------------------------------------------------------------
    def modal_analysis(self, config: ModalConfig) -> ModalResult:
        """Run free-vibration eigenvalue analysis.

        Fewer converged pairs than requested is not an error: the result
        carries ``n_converged`` and an ``EigensolveNonConvergence`` warning
        is issued.

        Raises
        ------
        FactorizationError
            If the shifted operator cannot be factorized or the mass matrix
            is not positive definite.
        """
        t_start = time.perf_counter()
        geom, u = build_fields(config.fens, config.essential_bcs)
        logger.info(
            "Modal analysis: %d nodes, %d free DOFs, neigvs=%d, omega_shift=%g",
            geom.nnodes,
            u.nfreedofs,
            config.neigvs,
            config.omega_shift,
        )

        K, M = GlobalAssembler(geom, u).assemble_modal(config)
        solution = solve_eigenproblem(
            K,
            M,
            config.neigvs,
            omega_shift=config.omega_shift,
            dense_threshold=self.dense_threshold,
            tol=float(self._config.get("modal.tol", 0.0)),
            maxiter=self._config.get("modal.maxiter"),
        )
        omega, W, raw = postprocess_eigenpairs(
            solution.eigenvalues, solution.eigenvectors, config.omega_shift
        )

        t_elapsed = time.perf_counter() - t_start
        logger.info(
            "Modal analysis complete: %d modes in %.3f s. "
            "Angular frequency range: %.6g - %.6g rad/s",
            solution.n_converged,
            t_elapsed,
            omega[0] if omega.size else 0.0,
            omega[-1] if omega.size else 0.0,
        )
        return ModalResult(
            geom=geom,
            u=u,
            eigenvectors=W,
            omega=omega,
            raw_eigenvalues=raw,
            n_requested=solution.n_requested,
            n_converged=solution.n_converged,
            solve_time_s=t_elapsed,
            solver_name=_SOLVER_NAME,
        )

    def __repr__(self) -> str:
        return (
            f"LinearDeformationSolver(pivot_tolerance={self.pivot_tolerance:g}, "
            f"dense_threshold={self.dense_threshold})"
        )
