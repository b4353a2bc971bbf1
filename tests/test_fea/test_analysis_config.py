"""Tests for the typed analysis configuration records."""
from __future__ import annotations

import numpy as np
import pytest

from linear_deformation.fea.config import (
    EssentialBC,
    ModalConfig,
    Region,
    StaticConfig,
    TemperatureChange,
    TractionBC,
)
from linear_deformation.fea.elements import BarFEMM, PointFEMM
from linear_deformation.fea.errors import MissingCollaborator
from linear_deformation.fea.fields import NodalField, NodeSet
from linear_deformation.fea.values import Constant, FunctionOf


@pytest.fixture
def bar() -> BarFEMM:
    return BarFEMM([[0, 1]], area=1.0, youngs_modulus=1.0, density=1.0)


class TestEssentialBC:
    def test_defaults(self):
        bc = EssentialBC([3, 4])
        assert bc.component == "all"
        assert bc.displacement == Constant(0.0)
        assert bc.node_list.dtype == np.int64

    def test_none_component_normalised(self):
        assert EssentialBC([0], component=None).component == "all"

    def test_prescribed_values_constant(self):
        geom = NodalField.geometry(NodeSet([0.0, 1.0, 2.0]))
        np.testing.assert_array_equal(
            EssentialBC([0, 2], displacement=0.5).prescribed_values(geom), [0.5, 0.5]
        )

    def test_prescribed_values_function(self):
        geom = NodalField.geometry(NodeSet([0.0, 1.0, 2.0]))
        bc = EssentialBC([1, 2], displacement=lambda x: 3.0 * x)
        assert isinstance(bc.displacement, FunctionOf)
        np.testing.assert_array_equal(bc.prescribed_values(geom), [3.0, 6.0])


class TestTractionBC:
    def test_requires_femm(self):
        with pytest.raises(MissingCollaborator):
            TractionBC(femm=None, traction_vector=[1.0])

    def test_traction_wrapped(self):
        bc = TractionBC(femm=PointFEMM([0]), traction_vector=[1.0, 0.0])
        assert isinstance(bc.traction_vector, Constant)


class TestTemperatureChange:
    def test_default_zero(self):
        geom = NodalField.geometry(NodeSet([0.0, 1.0]))
        dT = TemperatureChange().nodal_field(geom)
        assert dT.values.shape == (2, 1)
        assert not dT.values.any()

    def test_function_of_position(self):
        geom = NodalField.geometry(NodeSet([0.0, 1.0, 2.0]))
        dT = TemperatureChange(temperature=lambda x: 10.0 * x[0]).nodal_field(geom)
        np.testing.assert_array_equal(dT.values[:, 0], [0.0, 10.0, 20.0])


class TestRegion:
    def test_fallback_to_femm(self, bar):
        region = Region(femm=bar)
        assert region.stiffness_model is bar
        assert region.mass_model is bar

    def test_overrides(self, bar):
        other = BarFEMM([[0, 1]], area=2.0, youngs_modulus=1.0)
        region = Region(femm=bar, femm_mass=other)
        assert region.stiffness_model is bar
        assert region.mass_model is other

    def test_missing_sources(self):
        with pytest.raises(MissingCollaborator):
            Region().stiffness_model
        with pytest.raises(MissingCollaborator):
            Region(femm_stiffness=PointFEMM([0])).mass_model


class TestAnalysisConfigs:
    def test_static_requires_region_femm(self):
        with pytest.raises(MissingCollaborator):
            StaticConfig(fens=NodeSet([0.0, 1.0]), regions=[Region()])

    def test_static_accepts_raw_coordinates(self, bar):
        config = StaticConfig(fens=[0.0, 1.0], regions=[Region(femm=bar)])
        assert isinstance(config.fens, NodeSet)
        assert config.essential_bcs == []
        assert config.temperature_change is None

    def test_modal_defaults(self, bar):
        config = ModalConfig(fens=[0.0, 1.0], regions=[Region(femm=bar)])
        assert config.neigvs == 7
        assert config.omega_shift == 0.0
        assert config.use_lumped_mass is False

    def test_modal_rejects_negative_neigvs(self, bar):
        with pytest.raises(ValueError):
            ModalConfig(fens=[0.0, 1.0], regions=[Region(femm=bar)], neigvs=-1)

    def test_modal_accepts_empty_request(self, bar):
        config = ModalConfig(fens=[0.0, 1.0], regions=[Region(femm=bar)], neigvs=0)
        assert config.neigvs == 0

    def test_modal_split_sources(self, bar):
        config = ModalConfig(
            fens=[0.0, 1.0],
            regions=[Region(femm_stiffness=bar, femm_mass=bar)],
        )
        assert config.regions[0].femm is None

    def test_modal_missing_mass_source(self, bar):
        with pytest.raises(MissingCollaborator):
            ModalConfig(fens=[0.0, 1.0], regions=[Region(femm_stiffness=bar)])
