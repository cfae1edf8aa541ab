"""Seed construction from geometry features.

    seed = byte_length + sum(keyword_count * keyword_weight)

The sum is an exact Python int, so there is no overflow here. Reduction into
the generator's range happens in DeterministicStream (seed mod M).
"""

from __future__ import annotations

import hashlib

from ..core.types import GeometryFeatures
from .features import KEYWORD_TABLE

_WEIGHTS = {kw.keyword: kw.weight for kw in KEYWORD_TABLE}


def build_seed(features: GeometryFeatures) -> int:
    """Combine file size and weighted keyword counts into one integer seed."""
    total = int(features.byte_length)
    for keyword, count in features.keyword_counts:
        total += int(count) * _WEIGHTS.get(keyword, 0)
    return total


def features_digest(features: GeometryFeatures) -> str:
    """Short stable digest of the seed-relevant features (for logs/diagnostics)."""
    payload = f"{features.byte_length}|" + ",".join(
        f"{k}={c}" for k, c in features.keyword_counts
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]
