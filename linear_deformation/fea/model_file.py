"""YAML model files for bar/truss structures.

A model file describes one analysis::

    analysis: static            # or modal
    nodes: [[0.0], [1.0], [2.0]]
    regions:
      - type: bar
        connectivity: [[0, 1], [1, 2]]
        area: 1.0
        youngs_modulus: 1.0
        density: 1.0
    essential_bcs:
      - node_list: [0]
        component: all          # or a 0-based index
        displacement: 0.0
    traction_bcs:               # static only
      - nodes: [2]
        area: 1.0
        traction_vector: [1.0]
    temperature_change:         # static only
      temperature: 10.0
    neigvs: 3                   # modal only
    omega_shift: 0.0
    use_lumped_mass: false

:func:`load_model` turns it into ``(analysis, modeldata)`` where
``modeldata`` is ready for :func:`~linear_deformation.fea.algorithms.linearstatics`
or :func:`~linear_deformation.fea.algorithms.modal`.
"""
from __future__ import annotations

import logging
import os
from collections.abc import Mapping, Sequence
from typing import Any

import numpy as np
import yaml

from linear_deformation.fea.elements import BarFEMM, PointFEMM
from linear_deformation.fea.errors import ModelDataError
from linear_deformation.fea.femm import RegionModel
from linear_deformation.fea.fields import NodeSet
from linear_deformation.fea.model_data import (
    ESSENTIAL_BC_KEYS,
    TEMPERATURE_CHANGE_KEYS,
    check_keys,
    require,
)

logger = logging.getLogger(__name__)

ANALYSES = ("static", "modal")
FILE_KEYS = (
    "analysis", "nodes", "regions", "essential_bcs", "traction_bcs",
    "temperature_change", "neigvs", "omega_shift", "use_lumped_mass",
)
BAR_REGION_KEYS = (
    "type", "connectivity", "area", "youngs_modulus", "density",
    "thermal_expansion", "label",
)
POINT_REGION_KEYS = ("type", "node_list", "area", "label")
FILE_TRACTION_KEYS = ("nodes", "area", "traction_vector")


def _record_list(data: Mapping, key: str) -> Sequence[Any]:
    value = data.get(key)
    if value is None:
        return []
    if isinstance(value, (Mapping, str)) or not isinstance(value, Sequence):
        raise ModelDataError(f"{key} must be a list of records")
    return value


def _region_model(record: Any, index: int) -> RegionModel:
    kind = f"regions[{index}]"
    if not isinstance(record, Mapping):
        raise ModelDataError(
            f"The {kind} record must be a mapping, got {type(record).__name__}"
        )
    region_type = require(record, "type", kind)
    label = str(record.get("label", f"region{index}"))
    if region_type == "bar":
        check_keys(record, BAR_REGION_KEYS, kind)
        return BarFEMM(
            require(record, "connectivity", kind),
            area=float(require(record, "area", kind)),
            youngs_modulus=float(require(record, "youngs_modulus", kind)),
            density=float(record.get("density", 0.0)),
            thermal_expansion=float(record.get("thermal_expansion", 0.0)),
            label=label,
        )
    if region_type == "point":
        check_keys(record, POINT_REGION_KEYS, kind)
        return PointFEMM(
            require(record, "node_list", kind),
            area=float(record.get("area", 1.0)),
            label=label,
        )
    raise ModelDataError(
        f"Unknown region type {region_type!r} in {kind}; expected 'bar' or 'point'"
    )


def _traction_bc(record: Mapping, index: int) -> dict:
    kind = f"traction_bcs[{index}]"
    check_keys(record, FILE_TRACTION_KEYS, kind)
    femm = PointFEMM(
        require(record, "nodes", kind),
        area=float(record.get("area", 1.0)),
        label=kind,
    )
    return {
        "femm": femm,
        "traction_vector": np.asarray(
            require(record, "traction_vector", kind), dtype=np.float64
        ),
    }


def model_from_dict(data: Any) -> tuple[str, dict]:
    """Build ``(analysis, modeldata)`` from a parsed model file."""
    check_keys(data, FILE_KEYS, "model file")
    analysis = str(data.get("analysis", "static")).lower()
    if analysis not in ANALYSES:
        raise ModelDataError(
            f"Unknown analysis {analysis!r}; expected one of {list(ANALYSES)}"
        )

    require(data, "regions", "model file")
    modeldata: dict = {
        "fens": NodeSet(require(data, "nodes", "model file")),
        "regions": [
            {"femm": _region_model(r, i)}
            for i, r in enumerate(_record_list(data, "regions"))
        ],
    }
    essential_bcs = _record_list(data, "essential_bcs")
    if essential_bcs:
        modeldata["essential_bcs"] = [
            dict(check_keys(r, ESSENTIAL_BC_KEYS, f"essential_bcs[{i}]"))
            for i, r in enumerate(essential_bcs)
        ]
    traction_bcs = _record_list(data, "traction_bcs")
    if traction_bcs:
        modeldata["traction_bcs"] = [
            _traction_bc(r, i) for i, r in enumerate(traction_bcs)
        ]
    if data.get("temperature_change") is not None:
        modeldata["temperature_change"] = dict(
            check_keys(
                data["temperature_change"], TEMPERATURE_CHANGE_KEYS, "temperature_change"
            )
        )
    for key in ("neigvs", "omega_shift", "use_lumped_mass"):
        if key in data:
            modeldata[key] = data[key]

    logger.info(
        "Loaded %s model: %d nodes, %d region(s)",
        analysis,
        modeldata["fens"].count,
        len(modeldata["regions"]),
    )
    return analysis, modeldata


def load_model(path: str) -> tuple[str, dict]:
    """Read a YAML model file.

    Raises
    ------
    FileNotFoundError
        If ``path`` does not exist.
    ModelDataError
        If the file is not a valid model description.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Model file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        raise ModelDataError(f"Model file {path!r} is empty")
    return model_from_dict(data)


def summarize(analysis: str, modeldata: Mapping) -> dict:
    """JSON-serializable summary of an analysed model data record."""
    u = modeldata["u"]
    summary: dict = {
        "analysis": analysis,
        "n_nodes": int(u.nnodes),
        "n_free_dofs": int(u.nfreedofs),
    }
    if analysis == "static":
        summary["work"] = float(modeldata["work"])
        summary["displacement"] = u.values.tolist()
    else:
        omega = np.asarray(modeldata["omega"])
        summary["neigvs"] = int(modeldata["neigvs"])
        summary["omega"] = omega.tolist()
        summary["frequencies_hz"] = (omega / (2.0 * np.pi)).tolist()
        summary["raw_eigenvalues"] = np.real(modeldata["raw_eigenvalues"]).tolist()
        summary["mode_shapes"] = np.asarray(modeldata["W"]).T.tolist()
    return summary
