"""Model data exchange: dictionary records in, typed configurations out.

An analysis can be driven from a plain ``dict`` (the model data record)
whose nested records (regions, boundary conditions, temperature change)
are themselves dicts.  Every record is checked against the keys
recognized for its kind *before* any field or matrix exists; an unknown
key raises :class:`UnrecognizedOption` and a missing required key raises
:class:`MissingRequiredInput` (or :class:`MissingCollaborator` for a
region model machine).

The recognized sets include the output keys the analyses publish, so a
record augmented by one run can be passed to another.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Iterable, Optional, Sequence

from linear_deformation.fea.config import (
    EssentialBC,
    ModalConfig,
    Region,
    StaticConfig,
    TemperatureChange,
    TractionBC,
)
from linear_deformation.fea.errors import (
    MissingCollaborator,
    MissingRequiredInput,
    ModelDataError,
    UnrecognizedOption,
)
from linear_deformation.fea.fields import ALL_COMPONENTS
from linear_deformation.fea.results import ModalResult, StaticResult
from linear_deformation.fea.values import value_spec

STATIC_KEYS = (
    "fens", "regions", "essential_bcs", "traction_bcs", "temperature_change",
    "geom", "u", "work",
)
MODAL_KEYS = (
    "fens", "regions", "essential_bcs", "neigvs", "omega_shift",
    "use_lumped_mass", "geom", "u", "W", "omega", "raw_eigenvalues",
)
ESSENTIAL_BC_KEYS = ("node_list", "displacement", "component")
TRACTION_BC_KEYS = ("femm", "traction_vector")
STATIC_REGION_KEYS = ("femm", "body_load")
MODAL_REGION_KEYS = ("femm", "femm_stiffness", "femm_mass", "body_load")
TEMPERATURE_CHANGE_KEYS = ("temperature",)


def check_keys(record: Any, recognized: Iterable[str], kind: str) -> Mapping:
    """Reject ``record`` unless it is a mapping with only recognized keys."""
    if not isinstance(record, Mapping):
        raise ModelDataError(
            f"The {kind} record must be a mapping, got {type(record).__name__}"
        )
    recognized = tuple(recognized)
    unknown = [k for k in record if k not in recognized]
    if unknown:
        raise UnrecognizedOption(unknown, kind, recognized)
    return record


def require(record: Mapping, key: str, kind: str) -> Any:
    if key not in record or record[key] is None:
        raise MissingRequiredInput(key, kind)
    return record[key]


def _records(value: Any, kind: str) -> Sequence[Any]:
    if value is None:
        return []
    if isinstance(value, Mapping) or not isinstance(value, Sequence):
        raise ModelDataError(f"{kind} must be a list of records")
    return value


# ----------------------------------------------------------------------
# Nested records
# ----------------------------------------------------------------------
def parse_essential_bcs(value: Any) -> list[EssentialBC]:
    bcs = []
    for record in _records(value, "essential_bcs"):
        check_keys(record, ESSENTIAL_BC_KEYS, "essential_bcs")
        bcs.append(
            EssentialBC(
                node_list=require(record, "node_list", "essential_bcs"),
                displacement=value_spec(record.get("displacement")),
                component=record.get("component", ALL_COMPONENTS),
            )
        )
    return bcs


def parse_traction_bcs(value: Any) -> list[TractionBC]:
    bcs = []
    for record in _records(value, "traction_bcs"):
        check_keys(record, TRACTION_BC_KEYS, "traction_bcs")
        if record.get("femm") is None:
            raise MissingCollaborator("femm", "traction_bcs")
        bcs.append(
            TractionBC(
                femm=record["femm"],
                traction_vector=require(record, "traction_vector", "traction_bcs"),
            )
        )
    return bcs


def parse_temperature_change(value: Any) -> Optional[TemperatureChange]:
    if value is None:
        return None
    check_keys(value, TEMPERATURE_CHANGE_KEYS, "temperature_change")
    return TemperatureChange(temperature=value_spec(value.get("temperature")))


def parse_regions(value: Any, recognized: Sequence[str]) -> list[Region]:
    regions = []
    for record in _records(value, "regions"):
        check_keys(record, recognized, "regions")
        regions.append(Region(**{k: record[k] for k in record}))
    return regions


# ----------------------------------------------------------------------
# Analysis records
# ----------------------------------------------------------------------
def static_config_from_dict(modeldata: Mapping) -> StaticConfig:
    """Check a static model data record and build a :class:`StaticConfig`."""
    check_keys(modeldata, STATIC_KEYS, "static model data")
    fens = require(modeldata, "fens", "static model data")
    regions = parse_regions(
        require(modeldata, "regions", "static model data"), STATIC_REGION_KEYS
    )
    for region in regions:
        if region.femm is None:
            raise MissingCollaborator("femm", "regions")
    return StaticConfig(
        fens=fens,
        regions=regions,
        essential_bcs=parse_essential_bcs(modeldata.get("essential_bcs")),
        traction_bcs=parse_traction_bcs(modeldata.get("traction_bcs")),
        temperature_change=parse_temperature_change(
            modeldata.get("temperature_change")
        ),
    )


def modal_config_from_dict(modeldata: Mapping) -> ModalConfig:
    """Check a modal model data record and build a :class:`ModalConfig`.

    A ``neigvs`` left over from a previous run (the converged count) is
    read like any other request.
    """
    check_keys(modeldata, MODAL_KEYS, "modal model data")
    fens = require(modeldata, "fens", "modal model data")
    regions = parse_regions(
        require(modeldata, "regions", "modal model data"), MODAL_REGION_KEYS
    )
    return ModalConfig(
        fens=fens,
        regions=regions,
        essential_bcs=parse_essential_bcs(modeldata.get("essential_bcs")),
        neigvs=modeldata.get("neigvs", 7),
        omega_shift=modeldata.get("omega_shift", 0.0),
        use_lumped_mass=modeldata.get("use_lumped_mass", False),
    )


# ----------------------------------------------------------------------
# Outputs
# ----------------------------------------------------------------------
def publish_static(modeldata: dict, result: StaticResult) -> dict:
    modeldata["geom"] = result.geom
    modeldata["u"] = result.u
    modeldata["work"] = result.work
    return modeldata


def publish_modal(modeldata: dict, result: ModalResult) -> dict:
    modeldata["geom"] = result.geom
    modeldata["u"] = result.u
    modeldata["neigvs"] = result.n_converged
    modeldata["W"] = result.eigenvectors
    modeldata["omega"] = result.omega
    modeldata["raw_eigenvalues"] = result.raw_eigenvalues
    return modeldata
