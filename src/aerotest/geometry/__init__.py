"""Geometry feature extraction and seeding."""

from .features import KEYWORD_TABLE, extract_features, extract_features_from_path
from .seed import build_seed

__all__ = ["KEYWORD_TABLE", "extract_features", "extract_features_from_path", "build_seed"]
