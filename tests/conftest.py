"""Shared fixtures and region model doubles."""
from __future__ import annotations

import numpy as np
import pytest

from linear_deformation.fea.elements import BarFEMM, PointFEMM
from linear_deformation.fea.femm import RegionModel
from linear_deformation.fea.fields import NodeSet


class RecordingFEMM(RegionModel):
    """Unit-stiffness bar machine that records every call it receives."""

    nodes_per_element = 2

    def __init__(self, connectivity, label: str = "spy") -> None:
        super().__init__(connectivity, label=label)
        self.calls: list[str] = []

    def associate_geometry(self, geom):
        self.calls.append("associate_geometry")
        return super().associate_geometry(geom)

    def element_stiffness(self, coords, ndofs):
        return np.array([[1.0, -1.0], [-1.0, 1.0]])

    def element_mass(self, coords, ndofs, lumped=False):
        return np.eye(2)

    def stiffness(self, geom, u):
        self.calls.append("stiffness")
        return super().stiffness(geom, u)

    def mass(self, geom, u, lumped=False):
        self.calls.append("mass")
        return super().mass(geom, u, lumped=lumped)

    def nzebc_loads(self, geom, u):
        self.calls.append("nzebc_loads")
        return super().nzebc_loads(geom, u)


@pytest.fixture
def recording_femm() -> RecordingFEMM:
    return RecordingFEMM([[0, 1], [1, 2]])


@pytest.fixture
def three_node_line() -> NodeSet:
    """Nodes at x = 0, 0.5, 1."""
    return NodeSet([0.0, 0.5, 1.0])


@pytest.fixture
def unit_bar(three_node_line: NodeSet) -> BarFEMM:
    """Two unit bars (E = A = 1) spanning [0, 1]: series stiffness 1."""
    return BarFEMM([[0, 1], [1, 2]], area=1.0, youngs_modulus=1.0, density=1.0)


@pytest.fixture
def chain_nodes() -> NodeSet:
    """Nodes at x = 0, 1, 2 (two elements of unit length)."""
    return NodeSet([0.0, 1.0, 2.0])


@pytest.fixture
def chain_bar() -> BarFEMM:
    return BarFEMM([[0, 1], [1, 2]], area=1.0, youngs_modulus=1.0, density=1.0)


@pytest.fixture
def end_load() -> PointFEMM:
    return PointFEMM([2], area=1.0, label="end")
