"""Tests for engine configuration."""

import pytest
from pydantic import ValidationError

from aerotest.core.config import (
    EngineConfig,
    TierConfig,
    default_config,
    load_config,
    merge_config,
    save_config,
)


def test_defaults():
    config = default_config()
    assert config.standard.monte_carlo_samples == 5000
    assert config.premium.monte_carlo_samples == 100_000
    assert config.standard.flow_field_points < config.premium.flow_field_points
    assert config.standard.narrative_epochs == 6
    assert config.premium.narrative_epochs == 12
    assert config.convergence_threshold == 1e-5
    assert config.audit_every == 5


def test_tier_lookup():
    config = default_config()
    assert config.tier("standard") is config.standard
    assert config.tier("premium") is config.premium
    with pytest.raises(ValueError):
        config.tier("gold")


def test_yaml_roundtrip(tmp_path):
    config = merge_config(default_config(), {"standard": {"monte_carlo_samples": 1234}})
    path = tmp_path / "cfg" / "engine.yaml"
    save_config(config, path)
    loaded = load_config(path)
    assert loaded == config
    assert loaded.standard.monte_carlo_samples == 1234


def test_load_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yaml")


def test_load_empty_file(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_config(path) == EngineConfig()


def test_merge_keeps_unrelated_fields():
    merged = merge_config(default_config(), {"premium": {"narrative_epochs": 15}})
    assert merged.premium.narrative_epochs == 15
    assert merged.premium.monte_carlo_samples == 100_000
    assert merged.standard == TierConfig()


def test_validation():
    with pytest.raises(ValidationError):
        TierConfig(monte_carlo_samples=0)
    with pytest.raises(ValidationError):
        merge_config(default_config(), {"convergence_threshold": -1.0})


def test_relaxed_threshold_not_below_strict():
    with pytest.raises(ValidationError, match="relaxed_threshold"):
        EngineConfig(convergence_threshold=1e-3, relaxed_threshold=1e-4)
    with pytest.raises(ValidationError):
        merge_config(default_config(), {"relaxed_threshold": 1e-9})
    cfg = EngineConfig(convergence_threshold=1e-3, relaxed_threshold=1e-3)
    assert cfg.relaxed_threshold == cfg.convergence_threshold


def test_load_rejects_inverted_thresholds(tmp_path):
    path = tmp_path / "inverted.yaml"
    path.write_text("convergence_threshold: 0.01\nrelaxed_threshold: 0.001\n")
    with pytest.raises(ValidationError):
        load_config(path)
