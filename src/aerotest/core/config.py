"""Configuration management with pydantic and YAML support.

Tier settings control sample counts only. Nothing here feeds the design
parameter or coefficient stages, so switching tiers never changes them.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator

from .constants import CONVERGENCE_THRESHOLD, RELAXED_THRESHOLD


class TierConfig(BaseModel):
    """Sample counts and solver labels for one tier."""

    monte_carlo_samples: int = Field(default=5000, ge=10, le=1_000_000)
    flow_field_points: int = Field(default=2000, ge=10, le=100_000)
    convergence_iterations: int = Field(default=200, ge=10, le=10_000)
    narrative_epochs: int = Field(default=6, ge=2, le=50)
    visualization_points: int = Field(default=250, ge=2, le=5000)
    mesh_cell_count: int = Field(default=3_000_000, ge=1)
    turbulence_model: str = "k-omega SST"
    momentum_scheme: str = "Second Order Upwind"


def _premium_tier() -> TierConfig:
    return TierConfig(
        monte_carlo_samples=100_000,
        flow_field_points=6000,
        convergence_iterations=500,
        narrative_epochs=12,
        visualization_points=400,
        mesh_cell_count=25_000_000,
        turbulence_model="Detached Eddy Simulation (DES)",
        momentum_scheme="Third Order MUSCL",
    )


class EngineConfig(BaseModel):
    """Root configuration object."""

    standard: TierConfig = Field(default_factory=TierConfig)
    premium: TierConfig = Field(default_factory=_premium_tier)
    convergence_threshold: float = Field(default=CONVERGENCE_THRESHOLD, gt=0.0, lt=1.0)
    relaxed_threshold: float = Field(default=RELAXED_THRESHOLD, gt=0.0, lt=1.0)
    max_coordinate_matches: int = Field(default=200_000, ge=1)
    max_keyword_matches: int = Field(default=500_000, ge=1)
    audit_every: int = Field(default=5, ge=0)
    free_stream_speed: float = Field(default=20.0, gt=0.0, le=100.0)

    @model_validator(mode="after")
    def _check_thresholds(self) -> EngineConfig:
        if self.relaxed_threshold < self.convergence_threshold:
            raise ValueError(
                f"relaxed_threshold ({self.relaxed_threshold}) must be >= "
                f"convergence_threshold ({self.convergence_threshold})"
            )
        return self

    def tier(self, name: str) -> TierConfig:
        """Return the settings block for ``name``."""
        if name == "standard":
            return self.standard
        if name == "premium":
            return self.premium
        raise ValueError(f"Unknown tier: {name!r}")


def load_config(path: str | Path) -> EngineConfig:
    """Load configuration from YAML file.

    Args:
        path: Path to YAML config file.

    Returns:
        Parsed EngineConfig object.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f)

    return EngineConfig.model_validate(data or {})


def save_config(config: EngineConfig, path: str | Path) -> None:
    """Save configuration to YAML file.

    Args:
        config: Configuration to save.
        path: Output path.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        yaml.safe_dump(config.model_dump(), f, default_flow_style=False)


def default_config() -> EngineConfig:
    """Return default configuration."""
    return EngineConfig()


def merge_config(base: EngineConfig, overrides: dict[str, Any]) -> EngineConfig:
    """Merge overrides into base configuration.

    Args:
        base: Base configuration.
        overrides: Dictionary of override values.

    Returns:
        New configuration with overrides applied.
    """
    base_dict = base.model_dump()

    def deep_merge(d1: dict, d2: dict) -> dict:
        result = d1.copy()
        for k, v in d2.items():
            if k in result and isinstance(result[k], dict) and isinstance(v, dict):
                result[k] = deep_merge(result[k], v)
            else:
                result[k] = v
        return result

    merged = deep_merge(base_dict, overrides)
    return EngineConfig.model_validate(merged)
