"""
Tests for pipeline configuration loading.
"""

import logging

import pytest

from unified_data.config import CONFIG_ENV_VAR, PipelineConfig, load_pipeline_config
from unified_data.models import ConfigError


def write_yaml(path, text):
    path.write_text(text, encoding="utf-8")
    return path


class TestPipelineConfigDefaults:
    """Tests for in-code defaults."""

    def test_defaults(self):
        """Defaults should match the documented values."""
        config = PipelineConfig()

        assert config.baseline_date == "2023-10-07"
        assert config.active_phase_end == "2024-01-01"
        assert config.partition_threshold == 1000
        assert config.recent_days == 90
        assert config.quality_threshold == 0.8
        assert config.link_spatial_radius_m == 1000.0
        assert config.link_temporal_window_days == 7

    def test_to_dict_round_trip(self):
        """to_dict output should rebuild an equal config."""
        config = PipelineConfig(recent_days=30)
        assert PipelineConfig.from_dict(config.to_dict()) == config


class TestFromDict:
    """Tests for PipelineConfig.from_dict()."""

    def test_flattens_sections(self):
        """linking/analysis sections should map onto flat fields."""
        config = PipelineConfig.from_dict({
            "linking": {"spatial_radius_m": 500, "temporal_window_days": 3},
            "analysis": {"change_point_window": 10},
        })

        assert config.link_spatial_radius_m == 500
        assert config.link_temporal_window_days == 3
        assert config.change_point_window == 10

    def test_unknown_keys_warn(self, caplog):
        """Unknown keys should be ignored with a warning."""
        with caplog.at_level(logging.WARNING, logger="unified_data.config"):
            config = PipelineConfig.from_dict({"mystery": 1, "linking": {"nope": 2}})

        assert config == PipelineConfig()
        assert "mystery" in caplog.text
        assert "linking.nope" in caplog.text

    @pytest.mark.parametrize("raw", [
        {"baseline_date": "07/10/2023"},
        {"partition_threshold": 0},
        {"recent_days": -5},
        {"quality_threshold": 1.5},
        {"seasonality_threshold": -0.1},
        {"link_spatial_radius_m": 0},
        {"partition_threshold": True},
        {"linking": "not-a-mapping"},
    ])
    def test_invalid_values_raise(self, raw):
        """Out-of-range or mistyped values should raise ConfigError."""
        with pytest.raises(ConfigError):
            PipelineConfig.from_dict(raw)

    def test_non_mapping_raises(self):
        """A non-mapping document should raise ConfigError."""
        with pytest.raises(ConfigError):
            PipelineConfig.from_dict(["a", "b"])


class TestLoadPipelineConfig:
    """Tests for load_pipeline_config()."""

    def test_explicit_path(self, tmp_path):
        """An explicit file should be loaded."""
        path = write_yaml(tmp_path / "pipeline.yaml", "recent_days: 30\npartition_threshold: 50\n")

        config = load_pipeline_config(str(path))

        assert config.recent_days == 30
        assert config.partition_threshold == 50

    def test_explicit_missing_path_raises(self, tmp_path):
        """A missing explicit file should raise ConfigError."""
        with pytest.raises(ConfigError):
            load_pipeline_config(str(tmp_path / "missing.yaml"))

    def test_env_var(self, tmp_path, monkeypatch):
        """The environment variable should be honoured when no path is given."""
        path = write_yaml(tmp_path / "env.yaml", "quality_threshold: 0.5\n")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))

        assert load_pipeline_config().quality_threshold == 0.5

    def test_invalid_yaml_raises(self, tmp_path):
        """Unparseable YAML should raise ConfigError."""
        path = write_yaml(tmp_path / "bad.yaml", "recent_days: [unclosed\n")

        with pytest.raises(ConfigError):
            load_pipeline_config(str(path))

    def test_empty_file_gives_defaults(self, tmp_path):
        """An empty file should yield the defaults."""
        path = write_yaml(tmp_path / "empty.yaml", "")

        assert load_pipeline_config(str(path)) == PipelineConfig()

    def test_repo_default_file_loads(self, monkeypatch, tmp_path):
        """The shipped config/pipeline.yaml should load and validate."""
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        monkeypatch.chdir(tmp_path)

        config = load_pipeline_config()

        assert config.partition_threshold == 1000
        assert config.change_point_threshold == 2.0
