"""Analysis configuration dataclasses."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Union

import numpy as np

from linear_deformation.fea.errors import MissingCollaborator
from linear_deformation.fea.femm import RegionModel
from linear_deformation.fea.fields import (
    ALL_COMPONENTS,
    NodalField,
    NodeSet,
    as_node_set,
)
from linear_deformation.fea.values import Constant, ValueSpec, value_spec


@dataclass
class EssentialBC:
    """Prescribed displacement on a list of nodes."""
    node_list: np.ndarray
    displacement: ValueSpec = field(default_factory=lambda: Constant(0.0))
    component: Union[int, str] = ALL_COMPONENTS   # 0-based index or "all"

    def __post_init__(self) -> None:
        self.node_list = np.asarray(self.node_list, dtype=np.int64).ravel()
        self.displacement = value_spec(self.displacement)
        if self.component is None:
            self.component = ALL_COMPONENTS

    def prescribed_values(self, geom: NodalField) -> np.ndarray:
        """One prescribed value per listed node.

        A constant is broadcast; a function is evaluated at each node's
        coordinates and its first component taken.
        """
        if isinstance(self.displacement, Constant):
            return np.full(self.node_list.shape, self.displacement.scalar_at(None))
        return np.array(
            [self.displacement.scalar_at(geom.values[n]) for n in self.node_list],
            dtype=np.float64,
        )


@dataclass
class TractionBC:
    """Traction applied over the facets of a boundary region model."""
    femm: RegionModel
    traction_vector: ValueSpec

    def __post_init__(self) -> None:
        if self.femm is None:
            raise MissingCollaborator("femm", "traction_bcs")
        self.traction_vector = value_spec(self.traction_vector)


@dataclass
class TemperatureChange:
    """Nodal temperature increment driving thermal strain loads."""
    temperature: ValueSpec = field(default_factory=lambda: Constant(0.0))

    def __post_init__(self) -> None:
        self.temperature = value_spec(self.temperature)

    def nodal_field(self, geom: NodalField) -> NodalField:
        """Single-component field of temperature increments at every node."""
        dT = NodalField.zeros(geom.nnodes, 1)
        if isinstance(self.temperature, Constant):
            dT.values[:, 0] = self.temperature.scalar_at(None)
        else:
            for k in range(geom.nnodes):
                dT.values[k, 0] = self.temperature.scalar_at(geom.values[k])
        return dT


@dataclass
class Region:
    """A homogeneous piece of the domain and its contribution sources."""
    femm: Optional[RegionModel] = None
    femm_stiffness: Optional[RegionModel] = None   # modal only
    femm_mass: Optional[RegionModel] = None        # modal only
    body_load: Any = None                          # accepted, not applied

    @property
    def stiffness_model(self) -> RegionModel:
        model = self.femm_stiffness if self.femm_stiffness is not None else self.femm
        if model is None:
            raise MissingCollaborator("femm or femm_stiffness", "regions")
        return model

    @property
    def mass_model(self) -> RegionModel:
        model = self.femm_mass if self.femm_mass is not None else self.femm
        if model is None:
            raise MissingCollaborator("femm or femm_mass", "regions")
        return model


@dataclass
class StaticConfig:
    """Configuration for linear static analysis."""
    fens: NodeSet
    regions: list[Region]
    essential_bcs: list[EssentialBC] = field(default_factory=list)
    traction_bcs: list[TractionBC] = field(default_factory=list)
    temperature_change: Optional[TemperatureChange] = None

    def __post_init__(self) -> None:
        self.fens = as_node_set(self.fens)
        self.regions = list(self.regions)
        for region in self.regions:
            if region.femm is None:
                raise MissingCollaborator("femm", "regions")


@dataclass
class ModalConfig:
    """Configuration for modal (free-vibration) analysis."""
    fens: NodeSet
    regions: list[Region]
    essential_bcs: list[EssentialBC] = field(default_factory=list)
    neigvs: int = 7
    omega_shift: float = 0.0
    use_lumped_mass: bool = False

    def __post_init__(self) -> None:
        self.fens = as_node_set(self.fens)
        self.regions = list(self.regions)
        self.neigvs = int(self.neigvs)
        if self.neigvs < 0:
            raise ValueError(f"neigvs must be non-negative, got {self.neigvs}")
        self.omega_shift = float(self.omega_shift)
        self.use_lumped_mass = bool(self.use_lumped_mass)
        for region in self.regions:
            # MissingCollaborator for regions without a usable source
            region.stiffness_model
            region.mass_model
