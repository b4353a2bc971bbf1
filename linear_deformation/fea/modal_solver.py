"""Shifted generalized eigenproblem and eigenvalue post-processing.

Free vibration of the undamped structure leads to::

    K w = omega^2 M w

When K is only semi-definite (rigid-body modes left free) the problem is
solved in mass-shifted form::

    (K + sigma M) w = lambda M w,      omega^2 = lambda - sigma

for the ``neigvs`` eigenvalues of smallest magnitude.

Solution paths
--------------
* Small systems (``nfree <= dense_threshold``) or requests ARPACK cannot
  serve (``k >= n - 1``) use dense ``scipy.linalg.eigh``.
* Larger systems use ARPACK ``scipy.sparse.linalg.eigsh`` in shift-invert
  mode around zero.  Partially converged runs keep the converged pairs.

Post-processing
---------------
1. Undo the shift (``lambda - sigma``); this is the raw eigenvalue.
2. Drop imaginary parts (numerical artifacts of a real symmetric problem).
3. Replace negative values by their absolute value.  Near-zero negative
   eigenvalues are round-off around rigid-body modes; this is a numerical
   clean-up rule and not a physical correction.
4. Sort ascending; ``omega = sqrt(lambda)``.
"""
from __future__ import annotations

import logging
import time
import warnings
from dataclasses import dataclass
from typing import Optional

import numpy as np
import scipy.linalg
import scipy.sparse as sp
import scipy.sparse.linalg as spla
from numpy.typing import ArrayLike, NDArray

from linear_deformation.fea.errors import (
    EigensolveNonConvergence,
    FactorizationError,
)

logger = logging.getLogger(__name__)

_DEFAULT_DENSE_THRESHOLD = 200


@dataclass
class EigenSolution:
    """Eigenpairs of the shifted problem, in solver order."""
    eigenvalues: np.ndarray      # (n_converged,) of K + sigma M
    eigenvectors: np.ndarray     # (nfree, n_converged)
    n_requested: int
    n_converged: int
    method: str


def _warn_nonconvergence(message: str) -> None:
    logger.warning(message)
    warnings.warn(message, EigensolveNonConvergence, stacklevel=3)


def _empty_solution(n: int, n_requested: int, method: str) -> EigenSolution:
    return EigenSolution(
        eigenvalues=np.zeros(0, dtype=np.float64),
        eigenvectors=np.zeros((n, 0), dtype=np.float64),
        n_requested=n_requested,
        n_converged=0,
        method=method,
    )


def _dense_smallest(
    A: sp.spmatrix, M: sp.spmatrix, k: int
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    try:
        w, v = scipy.linalg.eigh(A.toarray(), M.toarray())
    except np.linalg.LinAlgError as exc:
        raise FactorizationError(
            f"Dense generalized eigensolve failed ({exc}); the mass matrix "
            "must be positive definite on the free DOFs."
        ) from exc
    idx = np.argsort(np.abs(w), kind="stable")[:k]
    return w[idx], v[:, idx]


def solve_eigenproblem(
    K: sp.spmatrix,
    M: sp.spmatrix,
    neigvs: int,
    omega_shift: float = 0.0,
    dense_threshold: int = _DEFAULT_DENSE_THRESHOLD,
    tol: float = 0.0,
    maxiter: Optional[int] = None,
) -> EigenSolution:
    """Smallest-magnitude eigenpairs of ``(K + sigma M) w = lambda M w``.

    Parameters
    ----------
    K, M : scipy.sparse matrix, shape (n, n)
        Free-DOF stiffness and mass matrices.
    neigvs : int
        Number of eigenpairs requested.  More than ``n`` is capped at ``n``
        with an :class:`EigensolveNonConvergence` warning.  Zero returns an
        empty solution.
    omega_shift : float
        Mass shift ``sigma``.
    dense_threshold : int
        Largest ``n`` solved with the dense solver.
    tol, maxiter
        ARPACK controls (``tol=0`` means machine precision).

    Returns
    -------
    EigenSolution
        Eigenvalues of the *shifted* problem and their eigenvectors.

    Raises
    ------
    FactorizationError
        If ``K + sigma M`` is singular (sparse path) or M is not positive
        definite (dense path).
    """
    t0 = time.perf_counter()
    n = K.shape[0]
    if M.shape != K.shape:
        raise ValueError(
            f"Mass matrix shape {M.shape} does not match stiffness {K.shape}"
        )
    n_requested = int(neigvs)
    k = n_requested
    if k > n:
        _warn_nonconvergence(
            f"Requested {n_requested} eigenpairs but the system has only "
            f"{n} free DOFs; computing {n}."
        )
        k = n
    if k == 0:
        return _empty_solution(n, n_requested, "none")

    A = sp.csr_matrix(K + omega_shift * M)

    if n <= dense_threshold or k >= n - 1:
        method = "dense"
        eigenvalues, eigenvectors = _dense_smallest(A, M, k)
    else:
        method = "arpack"
        try:
            eigenvalues, eigenvectors = spla.eigsh(
                sp.csc_matrix(A),
                k=k,
                M=sp.csc_matrix(M),
                sigma=0.0,
                which="LM",
                tol=tol,
                maxiter=maxiter,
            )
        except spla.ArpackNoConvergence as exc:
            eigenvalues = np.asarray(exc.eigenvalues)
            eigenvectors = np.asarray(exc.eigenvectors)
            _warn_nonconvergence(
                f"ARPACK did not fully converge: got {eigenvalues.size} of "
                f"{k} eigenpairs. Using partial results."
            )
            if eigenvalues.size == 0:
                return _empty_solution(n, n_requested, method)
        except RuntimeError as exc:
            raise FactorizationError(
                f"Shift-invert factorization of K + {omega_shift:g} M failed "
                f"({exc}); use a non-zero omega_shift for unconstrained "
                "structures."
            ) from exc

    logger.info(
        "Eigensolve (%s): %d of %d requested pairs, n=%d, shift=%.6e, "
        "time=%.3fs",
        method,
        eigenvalues.size,
        n_requested,
        n,
        omega_shift,
        time.perf_counter() - t0,
    )
    return EigenSolution(
        eigenvalues=np.asarray(eigenvalues),
        eigenvectors=np.asarray(eigenvectors),
        n_requested=n_requested,
        n_converged=int(np.asarray(eigenvalues).size),
        method=method,
    )


def clean_eigenvalues(eigenvalues: ArrayLike) -> NDArray[np.float64]:
    """Real, non-negative eigenvalues (imaginary parts dropped, negatives flipped)."""
    d = np.asarray(eigenvalues)
    if np.iscomplexobj(d):
        if np.any(d.imag != 0.0):
            logger.warning(
                "Discarding imaginary parts of %d eigenvalue(s) (max |imag| %.3e)",
                int(np.count_nonzero(d.imag)),
                float(np.max(np.abs(d.imag))),
            )
        d = d.real
    d = np.asarray(d, dtype=np.float64)
    negative = d < 0.0
    if np.any(negative):
        logger.warning(
            "Taking absolute value of %d negative eigenvalue(s) (min %.3e)",
            int(negative.sum()),
            float(d.min()),
        )
        d = np.abs(d)
    return d


def postprocess_eigenpairs(
    eigenvalues: ArrayLike,
    eigenvectors: ArrayLike,
    omega_shift: float = 0.0,
) -> tuple[NDArray[np.float64], NDArray[np.float64], np.ndarray]:
    """Turn shifted eigenpairs into sorted angular frequencies and modes.

    Parameters
    ----------
    eigenvalues : array_like, shape (k,)
        Eigenvalues of ``K + sigma M`` in solver order.
    eigenvectors : array_like, shape (n, k)
        Matching eigenvectors (columns).
    omega_shift : float
        The shift ``sigma`` used in the solve.

    Returns
    -------
    omega : numpy.ndarray, shape (k,)
        Angular frequencies, ascending.
    W : numpy.ndarray, shape (n, k)
        Real parts of the eigenvectors, columns in the order of ``omega``.
    raw_eigenvalues : numpy.ndarray, shape (k,)
        ``eigenvalues - sigma`` before clean-up, in solver order.
    """
    raw = np.asarray(eigenvalues) - omega_shift
    vecs = np.asarray(eigenvectors)
    if vecs.ndim != 2 or vecs.shape[1] != raw.size:
        raise ValueError(
            f"Got {raw.size} eigenvalues but eigenvectors of shape {vecs.shape}"
        )
    d = clean_eigenvalues(raw)
    ix = np.argsort(d, kind="stable")
    omega = np.sqrt(d[ix])
    W = np.real(vecs[:, ix]).astype(np.float64)
    return omega, W, raw
