"""Linear static solve of ``K U = F`` on the free DOFs.

The solver is a small state machine::

    ASSEMBLED --factorize()--> FACTORIZED --solve()--> SOLVED

``factorize`` computes a sparse LDL^T-equivalent factorization with SuperLU
in symmetric mode (diagonal pivots only, symmetric fill-reducing
ordering).  In that mode the diagonal of ``U`` is the ``D`` of ``LDL^T``,
so positive definiteness is checked by requiring every pivot to exceed
``pivot_tolerance`` times the diagonal entry of K it was eliminated from.
The ratio is 1 for a diagonal matrix and drops to round-off for a
rigid-body mode, whatever the stiffness contrast between regions.  A
stiffness matrix with unconstrained rigid-body modes fails here with
:class:`FactorizationError`; the factorization is never retried.
"""
from __future__ import annotations

import enum
import logging
import time
from typing import Optional

import numpy as np
import scipy.sparse as sp
import scipy.sparse.linalg as spla
from numpy.typing import ArrayLike, NDArray

from linear_deformation.fea.errors import FactorizationError

logger = logging.getLogger(__name__)

_DEFAULT_PIVOT_TOLERANCE = 1e-12


class SolverState(enum.Enum):
    ASSEMBLED = "assembled"
    FACTORIZED = "factorized"
    SOLVED = "solved"


class LinearStaticSolver:
    """Factorize a symmetric positive-definite K once and solve for U.

    Parameters
    ----------
    K : scipy.sparse matrix, shape (n, n)
        Assembled free-DOF stiffness matrix.
    F : array_like, shape (n,)
        Assembled free-DOF load vector.
    pivot_tolerance : float
        Relative threshold below which a pivot is treated as zero.
    """

    def __init__(
        self,
        K: sp.spmatrix,
        F: ArrayLike,
        pivot_tolerance: float = _DEFAULT_PIVOT_TOLERANCE,
    ) -> None:
        F = np.asarray(F, dtype=np.float64)
        if K.shape[0] != K.shape[1]:
            raise ValueError(f"Stiffness matrix must be square, got {K.shape}")
        if F.shape != (K.shape[0],):
            raise ValueError(
                f"Load vector of shape {F.shape} does not match "
                f"stiffness matrix of shape {K.shape}"
            )
        self._K = sp.csc_matrix(K, dtype=np.float64)
        self._F = F.copy()
        self._pivot_tolerance = float(pivot_tolerance)
        self._lu: Optional[spla.SuperLU] = None
        self._U: Optional[NDArray[np.float64]] = None
        self._state = SolverState.ASSEMBLED

    @property
    def state(self) -> SolverState:
        return self._state

    @property
    def n(self) -> int:
        return self._K.shape[0]

    @property
    def load(self) -> NDArray[np.float64]:
        return self._F

    def factorize(self) -> "LinearStaticSolver":
        """ASSEMBLED -> FACTORIZED.  Does nothing if already factorized.

        Raises
        ------
        FactorizationError
            If K is singular or not positive definite.
        """
        if self._state is not SolverState.ASSEMBLED:
            return self
        if self.n == 0:
            logger.info("Empty system (no free DOFs); nothing to factorize")
            self._state = SolverState.FACTORIZED
            return self

        t0 = time.perf_counter()
        diag = self._K.diagonal()
        scale = float(np.max(np.abs(diag)))
        if scale == 0.0:
            raise FactorizationError(
                "Stiffness matrix has a zero diagonal; the structure carries "
                "no stiffness on the free DOFs."
            )
        try:
            lu = spla.splu(
                self._K,
                permc_spec="MMD_AT_PLUS_A",
                diag_pivot_thresh=0.0,
                options=dict(SymmetricMode=True),
            )
        except RuntimeError as exc:
            raise FactorizationError(
                f"Stiffness matrix is singular ({exc}); check for "
                "unconstrained rigid-body modes."
            ) from exc

        pivots = lu.U.diagonal()
        # symmetric mode: perm_r == perm_c, row k of U eliminates diag[i]
        # for perm_c[i] == k
        eliminated = np.empty_like(diag)
        eliminated[lu.perm_c] = diag
        bad = np.flatnonzero(
            (eliminated <= 0.0) | (pivots <= self._pivot_tolerance * eliminated)
        )
        if bad.size:
            ratio = pivots[bad] / np.where(eliminated[bad] > 0.0, eliminated[bad], 1.0)
            raise FactorizationError(
                f"Stiffness matrix is not positive definite: {bad.size} of "
                f"{self.n} pivots <= {self._pivot_tolerance:.1e} x their "
                f"diagonal entry (smallest ratio {float(ratio.min()):.3e}); "
                "check for unconstrained rigid-body modes."
            )

        self._lu = lu
        self._state = SolverState.FACTORIZED
        logger.info(
            "Factorized %d x %d stiffness matrix: nnz(L+U)=%d, "
            "pivot range [%.3e, %.3e], time=%.3fs",
            self.n,
            self.n,
            lu.L.nnz + lu.U.nnz,
            float(pivots.min()),
            float(pivots.max()),
            time.perf_counter() - t0,
        )
        return self

    def solve(self) -> NDArray[np.float64]:
        """FACTORIZED -> SOLVED.  Returns the free-DOF displacement vector.

        Solving again without reassembly reuses the factorization and
        returns a bitwise-identical vector.
        """
        if self._state is SolverState.ASSEMBLED:
            raise RuntimeError("solve() called before factorize()")
        if self._lu is None:
            U = np.zeros(0, dtype=np.float64)
        else:
            U = np.asarray(self._lu.solve(self._F), dtype=np.float64)
        self._U = U
        self._state = SolverState.SOLVED
        return U.copy()

    def elastic_work(self, U: Optional[ArrayLike] = None) -> float:
        """``0.5 * F^T U`` for the given (or last computed) displacements."""
        if U is None:
            if self._U is None:
                raise RuntimeError("elastic_work() needs a solved system")
            U = self._U
        return 0.5 * float(np.dot(self._F, np.asarray(U, dtype=np.float64)))

    def __repr__(self) -> str:
        return f"LinearStaticSolver(n={self.n}, state={self._state.value})"
