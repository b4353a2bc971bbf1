"""FEA result container dataclasses."""
from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from linear_deformation.fea.fields import NodalField


@dataclass
class StaticResult:
    """Linear static analysis result."""
    geom: NodalField
    u: NodalField                # solved displacement field
    displacement: np.ndarray     # (nfree,) free-DOF solution vector
    load: np.ndarray             # (nfree,) assembled load vector
    work: float                  # 0.5 * F^T U
    n_free: int
    solve_time_s: float
    solver_name: str


@dataclass
class ModalResult:
    """Modal (free-vibration) analysis result."""
    geom: NodalField
    u: NodalField                # scratch field for mode scatter
    eigenvectors: np.ndarray     # (nfree, n_converged), columns follow omega
    omega: np.ndarray            # (n_converged,) angular frequencies, ascending
    raw_eigenvalues: np.ndarray  # (n_converged,) before clean-up, solver order
    n_requested: int
    n_converged: int
    solve_time_s: float
    solver_name: str

    @property
    def frequencies_hz(self) -> np.ndarray:
        return self.omega / (2.0 * np.pi)
