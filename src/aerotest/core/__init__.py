"""Core module: types, rules, stream and configuration.

The engine entry point lives in :mod:`aerotest.core.engine`; it is not
imported here because it depends on the synthesis and analysis packages,
which themselves import from core.
"""

from .config import EngineConfig, TierConfig, default_config, load_config
from .design import DesignParameters, bounds
from .rules import DESIGN_RULES, DesignRule
from .stream import DeterministicStream
from .types import AeroResult, SimulationContext

__all__ = [
    "AeroResult",
    "DESIGN_RULES",
    "DesignParameters",
    "DesignRule",
    "DeterministicStream",
    "EngineConfig",
    "SimulationContext",
    "TierConfig",
    "bounds",
    "default_config",
    "load_config",
]
