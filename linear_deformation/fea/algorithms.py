"""Dictionary-driven analysis algorithms.

Each algorithm takes a model data record (``dict``), checks it, runs the
analysis and returns the same record augmented with its outputs.  On any
error the record is left as it was.

Static outputs: ``geom``, ``u``, ``work``.
Modal outputs: ``geom``, ``u``, ``neigvs`` (converged count), ``W``,
``omega``, ``raw_eigenvalues``.
"""
from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from linear_deformation.fea.errors import MissingRequiredInput
from linear_deformation.fea.fields import NodalField
from linear_deformation.fea.model_data import (
    modal_config_from_dict,
    publish_modal,
    publish_static,
    static_config_from_dict,
)
from linear_deformation.fea.solver import LinearDeformationSolver
from linear_deformation.fea.solver_interface import SolverInterface

logger = logging.getLogger(__name__)


def linearstatics(
    modeldata: dict, solver: Optional[SolverInterface] = None
) -> dict:
    """Linear static analysis of the structure described by ``modeldata``."""
    config = static_config_from_dict(modeldata)
    result = (solver or LinearDeformationSolver()).static_analysis(config)
    return publish_static(modeldata, result)


def modal(modeldata: dict, solver: Optional[SolverInterface] = None) -> dict:
    """Free-vibration analysis of the structure described by ``modeldata``."""
    config = modal_config_from_dict(modeldata)
    result = (solver or LinearDeformationSolver()).modal_analysis(config)
    return publish_modal(modeldata, result)


def select_mode(modeldata: dict, mode: int) -> NodalField:
    """Scatter mode shape ``mode`` (0-based) into the displacement field.

    Requires the outputs of :func:`modal`.  Returns ``modeldata["u"]``.

    Raises
    ------
    ValueError
        If ``mode`` is not the index of a computed mode.
    """
    for key in ("u", "W", "omega"):
        if key not in modeldata:
            raise MissingRequiredInput(key, "modal model data")
    W = np.asarray(modeldata["W"])
    n_modes = len(modeldata["omega"])
    if not 0 <= mode < n_modes:
        raise ValueError(f"Invalid mode number {mode}; {n_modes} modes available")
    u: NodalField = modeldata["u"]
    u.scatter_sysvec(W[:, mode])
    logger.debug(
        "Selected mode %d (omega=%.6g rad/s)", mode, float(modeldata["omega"][mode])
    )
    return u
