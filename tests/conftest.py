"""Pytest configuration for aerotest.

Geometry fixtures are written once per session so every test sees the same
bytes. The scenario file is padded to exactly 512 bytes and contains three
CARTESIAN_POINT entries and no other table keyword.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from aerotest.core.config import EngineConfig, TierConfig

SCENARIO_SIZE = 512

_STEP_HEAD = (
    "ISO-10303-21;\n"
    "HEADER;\n"
    "FILE_NAME('scenario.step');\n"
    "ENDSEC;\n"
    "DATA;\n"
    "#1=CARTESIAN_POINT('',(0.,0.,0.));\n"
    "#2=CARTESIAN_POINT('',(210.,32.5,0.));\n"
    "#3=CARTESIAN_POINT('',(105.,-32.5,65.));\n"
)
_STEP_TAIL = "ENDSEC;\nEND-ISO-10303-21;\n"


def make_scenario_bytes() -> bytes:
    pad = SCENARIO_SIZE - len(_STEP_HEAD) - len(_STEP_TAIL)
    text = _STEP_HEAD + " " * (pad - 1) + "\n" + _STEP_TAIL
    data = text.encode("ascii")
    assert len(data) == SCENARIO_SIZE
    return data


@pytest.fixture(scope="session")
def scenario_bytes() -> bytes:
    return make_scenario_bytes()


@pytest.fixture(scope="session")
def scenario_file(tmp_path_factory) -> Path:
    path = tmp_path_factory.mktemp("geometry") / "scenario.step"
    path.write_bytes(make_scenario_bytes())
    return path


@pytest.fixture(scope="session")
def empty_file(tmp_path_factory) -> Path:
    path = tmp_path_factory.mktemp("geometry") / "empty.step"
    path.write_bytes(b"")
    return path


@pytest.fixture
def stl_bytes() -> bytes:
    return (
        b"solid car\n"
        b"  facet normal 0 0 1\n"
        b"    outer loop\n"
        b"      vertex -5.0 -30.0 2.0\n"
        b"      vertex 200.0 30.0 2.0\n"
        b"      vertex 100.0 0.0 60.5\n"
        b"    endloop\n"
        b"  endfacet\n"
        b"endsolid car\n"
    )


@pytest.fixture
def small_config() -> EngineConfig:
    """Reduced sample counts for tests that run the engine many times."""
    small = TierConfig(
        monte_carlo_samples=400,
        flow_field_points=200,
        convergence_iterations=50,
        narrative_epochs=5,
        visualization_points=40,
    )
    big = TierConfig(
        monte_carlo_samples=2000,
        flow_field_points=600,
        convergence_iterations=120,
        narrative_epochs=10,
        visualization_points=80,
    )
    return EngineConfig(standard=small, premium=big)
