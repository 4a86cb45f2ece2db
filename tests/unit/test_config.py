"""
Unit tests for CoreConfig.

These tests verify:
1. Default values and computed properties
2. Validation of inconsistent parameters
3. parameters.json round trip
"""

import json

import pytest

from osarray.config import (
    DEFAULT_CONFIG,
    REFERENCE_CONFIG,
    SMALL_CONFIG,
    ConfigurationError,
    CoreConfig,
    load_parameters,
)


class TestCoreConfig:
    """Test suite for CoreConfig defaults and properties."""

    def test_defaults(self):
        config = CoreConfig()
        assert config.num_cores == 4
        assert config.grid_size == 4
        assert config.pe_count == 16
        assert config.load_burst_length == 3

    def test_computed_properties(self):
        config = CoreConfig(grid_size=3, mem_depth=16, glb_depth=40, burst_width=4)
        assert config.pe_count == 9
        assert config.num_groups == 5
        assert config.distribute_cycles == 5
        assert config.max_burst_length == 15
        assert config.mem_addr_bits == 4
        assert config.glb_addr_bits == 6

    def test_counter_limit_covers_every_phase(self):
        config = CoreConfig(
            burst_width=2, unload_burst_length=3, grid_size=4, compute_cycles=9, mem_depth=8
        )
        assert config.counter_limit == 9

    def test_controller_mask(self):
        assert CoreConfig(controller_core=2).controller_mask == 0b0100

    def test_presets_are_valid(self):
        for preset in (DEFAULT_CONFIG, SMALL_CONFIG, REFERENCE_CONFIG):
            assert preset.pe_count == preset.grid_size**2


class TestCoreConfigValidation:
    """Inconsistent configurations are rejected at construction."""

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"num_cores": 0},
            {"grid_size": 0},
            {"compute_cycles": 0},
            {"mem_depth": 0},
        ],
    )
    def test_non_positive(self, kwargs):
        with pytest.raises(ConfigurationError):
            CoreConfig(**kwargs)

    def test_pe_count_mismatch(self):
        with pytest.raises(ConfigurationError, match="implies 16 PEs"):
            CoreConfig(grid_size=4, num_pes=15)

    def test_pe_count_match(self):
        assert CoreConfig(grid_size=4, num_pes=16).num_pes == 16

    def test_burst_does_not_fit_width(self):
        with pytest.raises(ConfigurationError):
            CoreConfig(burst_width=2, load_burst_length=4)

    def test_zero_burst_length(self):
        with pytest.raises(ConfigurationError):
            CoreConfig(unload_burst_length=0)

    def test_burst_exceeds_depth(self):
        with pytest.raises(ConfigurationError, match="mem_depth"):
            CoreConfig(load_burst_length=20, mem_depth=16)
        with pytest.raises(ConfigurationError, match="glb_depth"):
            CoreConfig(unload_burst_length=20, glb_depth=16)

    def test_controller_core_out_of_range(self):
        with pytest.raises(ConfigurationError):
            CoreConfig(num_cores=2, controller_core=2)

    def test_is_value_error(self):
        with pytest.raises(ValueError):
            CoreConfig(num_cores=-1)


class TestParameters:
    """parameters.json loading."""

    def test_from_parameters(self):
        params = {
            "OUT_CTL_NUM_MEMS": 2,
            "OUT_CTL_NUM_PES": 4,
            "OUT_ARB_NUM_CORES": 3,
            "OUT_ARB_FIXED_BURST_WRITE": 2,
            "OUT_MEM_NUM_ROWS": 8,
            "WS_UNRELATED_KEY": 123,
        }
        config = CoreConfig.from_parameters(params)
        assert config.grid_size == 2
        assert config.num_pes == 4
        assert config.num_cores == 3
        assert config.load_burst_length == 2
        assert config.mem_depth == 8

    def test_overrides_win(self):
        config = CoreConfig.from_parameters({"OUT_ARB_NUM_CORES": 3}, num_cores=5)
        assert config.num_cores == 5

    def test_round_trip(self):
        config = CoreConfig(grid_size=2, num_cores=2, compute_cycles=7)
        assert CoreConfig.from_parameters(config.to_parameters()) == config

    def test_load_parameters(self, tmp_path):
        path = tmp_path / "parameters.json"
        path.write_text(json.dumps({"OUT_CTL_NUM_MEMS": 3, "COCOTB_CLOCK_NS": 20}))
        config = load_parameters(path)
        assert config.grid_size == 3
        assert config.clock_period_ns == 20

    def test_load_parameters_rejects_non_object(self, tmp_path):
        path = tmp_path / "parameters.json"
        path.write_text("[1, 2, 3]")
        with pytest.raises(ConfigurationError):
            load_parameters(path)

    def test_inconsistent_file(self, tmp_path):
        path = tmp_path / "parameters.json"
        path.write_text(json.dumps({"OUT_CTL_NUM_MEMS": 4, "OUT_CTL_NUM_PES": 8}))
        with pytest.raises(ConfigurationError):
            load_parameters(path)
