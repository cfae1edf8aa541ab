"""Aerotest: deterministic geometry-seeded aerodynamic simulation engine."""

__version__ = "0.3.0"
