"""Geometry feature extraction.

Scans the text of an uploaded geometry description (STEP AP203/AP214 or
ASCII STL) for a fixed keyword table and for coordinate triplets. Binary STL
is recognised by its header (uint32 triangle count at byte 80, 50-byte
records) and its vertices are read directly. There is no parsing beyond
that: the features only need to be cheap, deterministic and stable for
identical bytes.

Malformed or empty content is not an error. When no coordinates are found
the nominal vehicle envelope (FALLBACK_BOX) is returned with
``fallback=True``. Only I/O failures while reading a path raise.
"""

from __future__ import annotations

import itertools
import math
import re
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from ..core.constants import FALLBACK_BOX
from ..core.logging import get_logger
from ..core.types import GeometryFeatures

logger = get_logger(__name__)

_NUM = r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?"

DEFAULT_MAX_COORDINATE_MATCHES = 200_000
DEFAULT_MAX_KEYWORD_MATCHES = 500_000


@dataclass(frozen=True)
class KeywordPattern:
    """One entry of the extraction table."""

    keyword: str
    category: str  # points | faces | shells | curves
    weight: int

    @property
    def regex(self) -> re.Pattern[str]:
        return re.compile(r"\b" + self.keyword + r"\s*\(")


KEYWORD_TABLE: tuple[KeywordPattern, ...] = (
    KeywordPattern("CARTESIAN_POINT", "points", 3),
    KeywordPattern("VERTEX_POINT", "points", 2),
    KeywordPattern("ADVANCED_FACE", "faces", 11),
    KeywordPattern("FACE_SURFACE", "faces", 7),
    KeywordPattern("CLOSED_SHELL", "shells", 101),
    KeywordPattern("OPEN_SHELL", "shells", 97),
    KeywordPattern("B_SPLINE_CURVE_WITH_KNOTS", "curves", 17),
    KeywordPattern("LINE", "curves", 5),
    KeywordPattern("CIRCLE", "curves", 5),
)

_COMPILED = tuple((kw, kw.regex) for kw in KEYWORD_TABLE)

# CARTESIAN_POINT('name',(x,y,z)) in STEP, "vertex x y z" in ASCII STL
_STEP_POINT = re.compile(
    r"CARTESIAN_POINT\s*\(\s*'[^']*'\s*,\s*\(\s*("
    + _NUM
    + r")\s*,\s*("
    + _NUM
    + r")\s*,\s*("
    + _NUM
    + r")\s*\)"
)
_STL_VERTEX = re.compile(r"\bvertex\s+(" + _NUM + r")\s+(" + _NUM + r")\s+(" + _NUM + r")")

STL_HEADER_BYTES = 80
STL_RECORD = np.dtype([("normal", "<f4", (3,)), ("v", "<f4", (3, 3)), ("attr", "<u2")])


def _decode(data: bytes | str) -> str:
    if isinstance(data, str):
        return data
    return data.decode("utf-8", errors="replace")


def binary_stl_triangles(data: bytes | str) -> int:
    """Triangle count if ``data`` is a binary STL, else 0."""
    if not isinstance(data, (bytes, bytearray, memoryview)):
        return 0
    start = STL_HEADER_BYTES + 4
    if len(data) <= start:
        return 0
    n = int.from_bytes(bytes(data[STL_HEADER_BYTES:start]), "little")
    if n <= 0 or start + STL_RECORD.itemsize * n > len(data):
        return 0
    return n


def scan_binary_stl(
    data: bytes, n_triangles: int, max_matches: int = DEFAULT_MAX_COORDINATE_MATCHES
) -> tuple[int, tuple[float, float, float, float, float, float] | None]:
    """Bounding box over the vertices of a binary STL.

    Same return contract as :func:`scan_coordinates`.
    """
    records = np.frombuffer(
        data, dtype=STL_RECORD, count=n_triangles, offset=STL_HEADER_BYTES + 4
    )
    vertices = records["v"].reshape(-1, 3).astype(np.float64)[:max_matches]
    vertices = vertices[np.all(np.isfinite(vertices), axis=1)]
    if len(vertices) == 0:
        return 0, None
    lo = vertices.min(axis=0)
    hi = vertices.max(axis=0)
    return len(vertices), (
        float(lo[0]),
        float(hi[0]),
        float(lo[1]),
        float(hi[1]),
        float(lo[2]),
        float(hi[2]),
    )


def count_keywords(text: str, max_matches: int = DEFAULT_MAX_KEYWORD_MATCHES) -> dict[str, int]:
    """Count occurrences of each table keyword, capped per keyword."""
    counts: dict[str, int] = {}
    for kw, regex in _COMPILED:
        counts[kw.keyword] = sum(1 for _ in itertools.islice(regex.finditer(text), max_matches))
    return counts


def scan_coordinates(
    text: str, max_matches: int = DEFAULT_MAX_COORDINATE_MATCHES
) -> tuple[int, tuple[float, float, float, float, float, float] | None]:
    """Running min/max over coordinate triplets.

    Returns:
        (n_coordinates, box) where box is (min_x, max_x, min_y, max_y, min_z,
        max_z), or None when nothing usable was found.
    """
    matches = itertools.chain(_STEP_POINT.finditer(text), _STL_VERTEX.finditer(text))
    n = 0
    lo = [float("inf")] * 3
    hi = [float("-inf")] * 3
    for m in itertools.islice(matches, max_matches):
        xyz = [float(m.group(i)) for i in (1, 2, 3)]
        if not all(math.isfinite(v) for v in xyz):
            continue
        for axis, v in enumerate(xyz):
            if v < lo[axis]:
                lo[axis] = v
            if v > hi[axis]:
                hi[axis] = v
        n += 1

    if n == 0:
        return 0, None
    return n, (lo[0], hi[0], lo[1], hi[1], lo[2], hi[2])


def extract_features(
    data: bytes | str,
    byte_length: int | None = None,
    max_coordinate_matches: int = DEFAULT_MAX_COORDINATE_MATCHES,
    max_keyword_matches: int = DEFAULT_MAX_KEYWORD_MATCHES,
) -> GeometryFeatures:
    """Extract GeometryFeatures from raw file content.

    Args:
        data: File bytes (or already-decoded text).
        byte_length: File size in bytes; defaults to the length of ``data``.
        max_coordinate_matches: Cap on coordinate triplets scanned.
        max_keyword_matches: Cap on matches counted per keyword.

    Returns:
        GeometryFeatures. Identical input always gives an identical record.
    """
    if byte_length is None:
        byte_length = len(data.encode("utf-8")) if isinstance(data, str) else len(data)
    text = _decode(data)

    counts = count_keywords(text, max_keyword_matches)
    per_category = {"points": 0, "faces": 0, "shells": 0, "curves": 0}
    for kw in KEYWORD_TABLE:
        per_category[kw.category] += counts[kw.keyword]

    n_triangles = binary_stl_triangles(data)
    if n_triangles:
        n_coords, box = scan_binary_stl(bytes(data), n_triangles, max_coordinate_matches)
    else:
        n_coords, box = scan_coordinates(text, max_coordinate_matches)
    fallback = box is None
    if fallback:
        logger.warn("No coordinates found; using nominal envelope", byte_length=byte_length)
        box = FALLBACK_BOX

    min_x, max_x, min_y, max_y, min_z, max_z = box
    return GeometryFeatures(
        min_x=min_x,
        max_x=max_x,
        min_y=min_y,
        max_y=max_y,
        min_z=min_z,
        max_z=max_z,
        points=per_category["points"],
        faces=per_category["faces"],
        shells=per_category["shells"],
        curves=per_category["curves"],
        byte_length=int(byte_length),
        keyword_counts=tuple((kw.keyword, counts[kw.keyword]) for kw in KEYWORD_TABLE),
        coordinate_count=n_coords,
        fallback=fallback,
    )


def extract_features_from_path(path: str | Path, **kwargs) -> GeometryFeatures:
    """Read a geometry file and extract its features.

    I/O errors propagate; content problems degrade to the fallback box.
    """
    data = Path(path).read_bytes()
    return extract_features(data, byte_length=len(data), **kwargs)
