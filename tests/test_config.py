"""Tests for configuration loading."""

import pytest

from arbwatch.config import (
    DEFAULT_THRESHOLDS, DEFAULT_VOLUME_CONFIG, load_config,
    thresholds_from_config, volume_config_from_config,
)

ENV_VARS = (
    "ARBWATCH_DB_PATH", "ARBWATCH_STALE_MINUTES",
    "ARBWATCH_MIN_NET_SPREAD", "ARBWATCH_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(str(tmp_path / "nope.yaml"))

        assert config["database"]["path"] == "arbwatch.db"
        assert config["tracking"]["stale_minutes"] == 10
        assert thresholds_from_config(config) == DEFAULT_THRESHOLDS
        assert volume_config_from_config(config) == DEFAULT_VOLUME_CONFIG

    def test_yaml_overrides_merge_with_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "detection:\n"
            "  min_net_spread: 0.03\n"
            "volume:\n"
            "  spike_multiplier: 3\n"
        )

        config = load_config(str(path))

        thresholds = thresholds_from_config(config)
        assert thresholds.min_net_spread == 0.03
        assert thresholds.min_gross_spread == DEFAULT_THRESHOLDS.min_gross_spread
        assert volume_config_from_config(config).spike_multiplier == 3.0
        assert config["logging"]["level"] == "INFO"

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")

        assert load_config(str(path))["tracking"]["stale_minutes"] == 10

    def test_environment_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ARBWATCH_DB_PATH", ":memory:")
        monkeypatch.setenv("ARBWATCH_STALE_MINUTES", "5")
        monkeypatch.setenv("ARBWATCH_MIN_NET_SPREAD", "0.025")
        monkeypatch.setenv("ARBWATCH_LOG_LEVEL", "DEBUG")

        config = load_config(str(tmp_path / "nope.yaml"))

        assert config["database"]["path"] == ":memory:"
        assert config["tracking"]["stale_minutes"] == 5
        assert thresholds_from_config(config).min_net_spread == 0.025
        assert config["logging"]["level"] == "DEBUG"

    def test_defaults_not_mutated(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ARBWATCH_STALE_MINUTES", "1")
        load_config(str(tmp_path / "nope.yaml"))
        monkeypatch.delenv("ARBWATCH_STALE_MINUTES")

        assert load_config(str(tmp_path / "nope.yaml"))["tracking"]["stale_minutes"] == 10
