"""Core constants and configuration for Aerotest.

This module defines system-wide invariants such as:
- Stream generator modulus/multiplier
- Model version strings (bump when synthesis logic changes)
- Physical constants used by the race and flow models
"""

from __future__ import annotations

# Model Versioning
# Update these when the underlying synthesis logic changes
ENGINE_VERSION = "2.9.0"
MODEL_VERSION_SYNTHESIS = "v1.2_20261002_forked_streams"
MODEL_VERSION_RACE = "v1.1_20260914_closed_form"
CORRECTION_MODEL_VERSION = "heuristic-v1"

# Deterministic stream (Park-Miller minimal standard)
STREAM_MODULUS = 2_147_483_647  # 2^31 - 1
STREAM_MULTIPLIER = 16_807
FORK_STRIDE = 1_000_003

# Fork salts, one per downstream consumer
SALT_CONVERGENCE = 1
SALT_FLOW_FIELD = 2
SALT_MONTE_CARLO = 3
SALT_NARRATIVE = 4
SALT_SOLVER_META = 5

# Physical constants (universal)
AIR_DENSITY = 1.225  # kg/m^3

# Track model
TRACK_DISTANCE_M = 20.0
START_GATE_M = 5.0
FRONTAL_HEIGHT_MM = 42.0

# Convergence thresholds
CONVERGENCE_THRESHOLD = 1e-5
RELAXED_THRESHOLD = 1e-4

# Nominal vehicle envelope (mm) used when geometry yields no coordinates
FALLBACK_BOX = (0.0, 210.0, -32.5, 32.5, 0.0, 65.0)

TIERS = ("standard", "premium")
CAR_CLASSES = ("Entry", "Development", "Professional")
THRUST_MODELS = ("standard", "competition", "pro-competition")
