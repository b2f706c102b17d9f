"""
Tests for pytwave.config module.

Tests TWaveDelineatorConfig dataclass including:
- Default instantiation
- Presets (millivolt input, derivative finder)
- Validation logic
- Legacy key table and threshold strings
"""

import pytest
from dataclasses import replace

from pytwave.config import (
    LEGACY_KEYS,
    TWaveDelineatorConfig,
    parse_feature_thresholds,
    serialize_feature_thresholds,
)


class TestTWaveDelineatorConfigDefaults:
    """Test default TWaveDelineatorConfig instantiation."""

    def test_default_values(self):
        """Rule thresholds default to the published values."""
        cfg = TWaveDelineatorConfig()

        assert cfg.candidate_finder == 1
        assert cfg.delta_step_slope == 10.0
        assert cfg.loose_window == 10
        assert cfg.min_points == 10
        assert cfg.delta_amplitude == 5.0
        assert cfg.min_voltage_main_peak == 150.0
        assert cfg.percent_main_peak == 0.8
        assert cfg.min_voltage == 100.0
        assert cfg.percent_peak == 0.3
        assert cfg.max_delta_amplitude_notches == 50.0
        assert cfg.min_amplitude_flatness == 7.0
        assert cfg.min_valid_amplitude_peak == 7.0
        assert cfg.measurable == 100.0
        assert cfg.feature_thresholds == "20,0,0_10,10,1.5_0,0,1.7"
        assert cfg.approximate_range_of_tsegment == 0.4
        assert cfg.approximate_boundary_of_toff == 0.75
        assert cfg.j_point_offset == 25
        assert cfg.required_sampling_rate == 1000.0
        assert cfg.lead == "VCGMAG"
        assert cfg.apply_filter is False
        assert cfg.version == "v1"

    def test_frozen_dataclass(self):
        """Config should be frozen (immutable)."""
        cfg = TWaveDelineatorConfig()
        with pytest.raises(AttributeError):
            cfg.min_points = 5

    def test_threshold_table(self):
        cfg = TWaveDelineatorConfig()
        assert cfg.threshold_table == [[20.0, 0.0, 0.0], [10.0, 10.0, 1.5], [0.0, 0.0, 1.7]]

    def test_amplitude_scale_default(self):
        assert TWaveDelineatorConfig().amplitude_scale == 1.0


class TestTWaveDelineatorConfigPresets:
    """Test presets."""

    def test_millivolt_preset(self):
        cfg = TWaveDelineatorConfig.for_millivolt_input()
        assert cfg.input_units == "mV"
        assert cfg.amplitude_scale == 1000.0

    def test_derivative_finder_preset(self):
        cfg = TWaveDelineatorConfig.for_derivative_finder()
        assert cfg.candidate_finder == 2
        # everything else stays default
        assert cfg.min_points == TWaveDelineatorConfig().min_points


class TestTWaveDelineatorConfigValidation:
    """Test __post_init__ validation."""

    def test_invalid_candidate_finder(self):
        with pytest.raises(ValueError, match="candidate_finder"):
            TWaveDelineatorConfig(candidate_finder=3)

    def test_invalid_delta_step_slope(self):
        with pytest.raises(ValueError, match="delta_step_slope"):
            TWaveDelineatorConfig(delta_step_slope=0.0)

    def test_invalid_loose_window(self):
        with pytest.raises(ValueError, match="loose_window"):
            TWaveDelineatorConfig(loose_window=0)

    def test_invalid_percent_peak(self):
        with pytest.raises(ValueError, match="percent_peak"):
            TWaveDelineatorConfig(percent_peak=1.5)

    def test_invalid_input_units(self):
        with pytest.raises(ValueError, match="input_units"):
            TWaveDelineatorConfig(input_units="V")

    def test_invalid_filter_cutoff(self):
        """Cutoff must stay below Nyquist."""
        with pytest.raises(ValueError, match="filter_high_cutoff"):
            TWaveDelineatorConfig(filter_high_cutoff=600.0)

    def test_small_threshold_table_rejected(self):
        with pytest.raises(ValueError, match="3x3"):
            TWaveDelineatorConfig(feature_thresholds="1,2_3,4")

    def test_malformed_thresholds_rejected(self):
        with pytest.raises(ValueError, match="feature_thresholds"):
            TWaveDelineatorConfig(feature_thresholds="20,a,0_10,10,1.5_0,0,1.7")

    def test_replace_revalidates(self):
        cfg = TWaveDelineatorConfig()
        with pytest.raises(ValueError, match="min_points"):
            replace(cfg, min_points=-1)


class TestLegacyKeys:
    """Test legacy camelCase key handling."""

    def test_from_mapping_legacy_and_field_names(self):
        cfg = TWaveDelineatorConfig.from_mapping({"minPoints": 12, "percent_peak": 0.25})
        assert cfg.min_points == 12
        assert cfg.percent_peak == 0.25

    def test_from_mapping_thresholds(self):
        cfg = TWaveDelineatorConfig.from_mapping({"featursThreshold": "15,0,0_10,10,1.5_0,0,2.0"})
        assert cfg.threshold_table[0][0] == 15.0
        assert cfg.threshold_table[2][2] == 2.0

    def test_from_mapping_unknown_key(self):
        with pytest.raises(TypeError, match="Unknown config key"):
            TWaveDelineatorConfig.from_mapping({"minPointz": 12})

    def test_describe_lists_every_legacy_key(self):
        table = TWaveDelineatorConfig().describe()
        assert set(table) == set(LEGACY_KEYS)
        assert table["minPoints"][:2] == ("int", 10)
        assert table["percentMainePeak"][:2] == ("float", 0.8)
        assert table["featursThreshold"][0] == "str"

    def test_legacy_keys_point_to_fields(self):
        cfg = TWaveDelineatorConfig()
        for key, (name, _) in LEGACY_KEYS.items():
            assert hasattr(cfg, name), key


class TestFeatureThresholds:
    """Test threshold string parsing and serialization."""

    def test_parse_default(self):
        table = parse_feature_thresholds("20,0,0_10,10,1.5_0,0,1.7")
        assert table == [[20.0, 0.0, 0.0], [10.0, 10.0, 1.5], [0.0, 0.0, 1.7]]

    def test_parse_empty(self):
        with pytest.raises(ValueError):
            parse_feature_thresholds("")

    def test_parse_ragged(self):
        with pytest.raises(ValueError, match="same length"):
            parse_feature_thresholds("1,2_3")

    def test_parse_non_numeric(self):
        with pytest.raises(ValueError, match="malformed"):
            parse_feature_thresholds("1,x_2,3")

    @pytest.mark.parametrize("table", [
        [[20.0, 0.0, 0.0], [10.0, 10.0, 1.5], [0.0, 0.0, 1.7]],
        [[1.5, -2.0], [3.25, 1e-7]],
    ])
    def test_serialize_parse_exact(self, table):
        assert parse_feature_thresholds(serialize_feature_thresholds(table)) == table

    def test_serialize_rejects_ragged(self):
        with pytest.raises(ValueError, match="rectangular"):
            serialize_feature_thresholds([[1.0, 2.0], [3.0]])

    def test_serialize_rejects_empty(self):
        with pytest.raises(ValueError):
            serialize_feature_thresholds([])
