"""Tests for model data record checks and parsing."""
from __future__ import annotations

import numpy as np
import pytest

from linear_deformation.fea.algorithms import linearstatics, modal
from linear_deformation.fea.values import Constant, FunctionOf
from linear_deformation.fea.elements import PointFEMM
from linear_deformation.fea.errors import (
    MissingCollaborator,
    MissingRequiredInput,
    ModelDataError,
    UnrecognizedOption,
)
from linear_deformation.fea.model_data import (
    check_keys,
    modal_config_from_dict,
    static_config_from_dict,
)


class TestCheckKeys:
    def test_accepts_recognized(self):
        record = {"a": 1}
        assert check_keys(record, ("a", "b"), "thing") is record

    def test_rejects_unknown(self):
        with pytest.raises(UnrecognizedOption) as info:
            check_keys({"a": 1, "zz": 2, "yy": 3}, ("a",), "thing")
        assert info.value.keys == ["yy", "zz"]
        assert info.value.record == "thing"
        assert "a" in info.value.recognized

    def test_rejects_non_mapping(self):
        with pytest.raises(ModelDataError):
            check_keys([1, 2], ("a",), "thing")


class TestStaticRecord:
    def test_minimal(self, three_node_line, unit_bar):
        config = static_config_from_dict({"fens": three_node_line, "regions": [{"femm": unit_bar}]})
        assert config.regions[0].femm is unit_bar
        assert config.essential_bcs == []
        assert config.traction_bcs == []
        assert config.temperature_change is None

    def test_missing_fens(self, unit_bar):
        with pytest.raises(MissingRequiredInput) as info:
            static_config_from_dict({"regions": [{"femm": unit_bar}]})
        assert info.value.key == "fens"

    def test_missing_regions(self, three_node_line):
        with pytest.raises(MissingRequiredInput):
            static_config_from_dict({"fens": three_node_line})

    def test_region_without_femm(self, three_node_line):
        with pytest.raises(MissingCollaborator):
            static_config_from_dict({"fens": three_node_line, "regions": [{"body_load": None}]})

    def test_modal_only_region_key_rejected(self, three_node_line, unit_bar):
        with pytest.raises(UnrecognizedOption):
            static_config_from_dict(
                {"fens": three_node_line, "regions": [{"femm": unit_bar, "femm_mass": unit_bar}]}
            )

    def test_essential_bc_defaults(self, three_node_line, unit_bar):
        config = static_config_from_dict({
            "fens": three_node_line,
            "regions": [{"femm": unit_bar}],
            "essential_bcs": [{"node_list": [0]}],
        })
        bc = config.essential_bcs[0]
        assert bc.component == "all"
        assert bc.displacement == Constant(0.0)

    def test_essential_bc_requires_node_list(self, three_node_line, unit_bar):
        with pytest.raises(MissingRequiredInput):
            static_config_from_dict({
                "fens": three_node_line,
                "regions": [{"femm": unit_bar}],
                "essential_bcs": [{"component": 0}],
            })

    def test_traction_requires_femm_and_vector(self, three_node_line, unit_bar):
        base = {"fens": three_node_line, "regions": [{"femm": unit_bar}]}
        with pytest.raises(MissingCollaborator):
            static_config_from_dict({**base, "traction_bcs": [{"traction_vector": [1.0]}]})
        with pytest.raises(MissingRequiredInput):
            static_config_from_dict({**base, "traction_bcs": [{"femm": PointFEMM([2])}]})

    def test_temperature_change_parsed(self, three_node_line, unit_bar):
        config = static_config_from_dict({
            "fens": three_node_line,
            "regions": [{"femm": unit_bar}],
            "temperature_change": {"temperature": lambda x: x[0]},
        })
        assert isinstance(config.temperature_change.temperature, FunctionOf)

    def test_temperature_change_unknown_key(self, three_node_line, unit_bar):
        with pytest.raises(UnrecognizedOption):
            static_config_from_dict({
                "fens": three_node_line,
                "regions": [{"femm": unit_bar}],
                "temperature_change": {"dT": 1.0},
            })

    def test_bc_list_must_be_a_list(self, three_node_line, unit_bar):
        with pytest.raises(ModelDataError):
            static_config_from_dict({
                "fens": three_node_line,
                "regions": [{"femm": unit_bar}],
                "essential_bcs": {"node_list": [0]},
            })


class TestModalRecord:
    def test_defaults(self, three_node_line, unit_bar):
        config = modal_config_from_dict({"fens": three_node_line, "regions": [{"femm": unit_bar}]})
        assert config.neigvs == 7
        assert config.omega_shift == 0.0
        assert config.use_lumped_mass is False

    def test_split_sources(self, three_node_line, unit_bar):
        config = modal_config_from_dict({
            "fens": three_node_line,
            "regions": [{"femm_stiffness": unit_bar, "femm_mass": unit_bar}],
        })
        assert config.regions[0].mass_model is unit_bar

    def test_missing_stiffness_source(self, three_node_line, unit_bar):
        with pytest.raises(MissingCollaborator):
            modal_config_from_dict({"fens": three_node_line, "regions": [{"femm_mass": unit_bar}]})

    def test_static_only_key_rejected(self, three_node_line, unit_bar):
        with pytest.raises(UnrecognizedOption):
            modal_config_from_dict({
                "fens": three_node_line,
                "regions": [{"femm": unit_bar}],
                "traction_bcs": [],
            })


class TestRejectionBeforeAssembly:
    """Schema failures must happen before any operator is built."""

    def test_unknown_region_key(self, three_node_line, recording_femm):
        modeldata = {"fens": three_node_line, "regions": [{"femm": recording_femm, "material": "steel"}]}
        with pytest.raises(UnrecognizedOption):
            linearstatics(modeldata)
        assert recording_femm.calls == []
        assert "u" not in modeldata and "work" not in modeldata

    def test_unknown_bc_key_after_valid_regions(self, three_node_line, recording_femm):
        modeldata = {
            "fens": three_node_line,
            "regions": [{"femm": recording_femm}],
            "essential_bcs": [{"node_list": [0], "value": 1.0}],
        }
        with pytest.raises(UnrecognizedOption):
            modal(modeldata)
        assert recording_femm.calls == []
        assert "omega" not in modeldata

    def test_unknown_top_level_key(self, three_node_line, recording_femm):
        with pytest.raises(UnrecognizedOption):
            linearstatics({"fens": three_node_line, "regions": [{"femm": recording_femm}], "mpc": []})
        assert recording_femm.calls == []
