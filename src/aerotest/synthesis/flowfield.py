"""Flow-field point cloud.

Points are scattered through a box around the car and shaded with the
potential-flow solution for an ellipsoid-mapped sphere, plus a smooth wake
deficit behind the body. Pressure follows from the (noisy) velocity through
Bernoulli, so neighbouring points always agree.

Columns: x, y, z (mm), gauge pressure (Pa), velocity magnitude (m/s).

Draw order (fork SALT_FLOW_FIELD): 4 draws per point, point-major:
    x, y, z position fractions, then the velocity noise draw.

Generation is lazy. The array is produced on first access, then frozen.
Two fields are equal when they would generate the same points, whether or
not either has generated them yet.
"""

from __future__ import annotations

import hashlib
import threading

import numpy as np

from ..core.constants import AIR_DENSITY
from ..core.design import DesignParameters
from ..core.stream import DeterministicStream

DOMAIN_X = (-0.3, 1.6)  # multiples of total length
DOMAIN_Y = (-1.0, 1.0)  # multiples of total width
DOMAIN_Z = (0.0, 2.0)  # multiples of body height
VELOCITY_NOISE = 0.02
WAKE_STRENGTH = 0.35
WAKE_DECAY = 3.0


def _synthesize(
    params: DesignParameters,
    stream: DeterministicStream,
    n_points: int,
    free_stream_speed: float,
) -> np.ndarray:
    length = params.total_length
    width = params.total_width
    height = params.body_height

    u = stream.draw_array(4 * n_points).reshape(n_points, 4)
    x = length * (DOMAIN_X[0] + (DOMAIN_X[1] - DOMAIN_X[0]) * u[:, 0])
    y = width * (DOMAIN_Y[0] + (DOMAIN_Y[1] - DOMAIN_Y[0]) * u[:, 1])
    z = height * (DOMAIN_Z[0] + (DOMAIN_Z[1] - DOMAIN_Z[0]) * u[:, 2])

    # Normalized ellipsoid coordinates; the body is the unit sphere
    a, b, c = length / 2.0, width / 2.0, height / 2.0
    xi = (x - a) / a
    eta = y / b
    zeta = (z - c) / c
    r = np.sqrt(xi**2 + eta**2 + zeta**2)

    # Reflect interior points through the surface
    degenerate = r < 1e-9
    xi = np.where(degenerate, 1.5, xi)
    r = np.where(degenerate, 1.5, r)
    inside = r < 1.0
    scale = np.where(inside, (2.0 - r) / r, 1.0)
    xi, eta, zeta = xi * scale, eta * scale, zeta * scale
    r = np.where(inside, 2.0 - r, r)
    x, y, z = a + a * xi, b * eta, c + c * zeta

    cos_t = xi / r
    sin_t = np.sqrt(np.clip(1.0 - cos_t**2, 0.0, 1.0))
    inv_r3 = 1.0 / r**3
    u_r = cos_t * (1.0 - inv_r3)
    u_t = -sin_t * (1.0 + 0.5 * inv_r3)
    speed_ratio = np.sqrt(u_r**2 + u_t**2)

    behind = 0.5 * (1.0 + np.tanh(4.0 * (xi - 0.8)))
    deficit = (
        WAKE_STRENGTH
        * np.exp(-(eta**2 + zeta**2))
        * np.exp(-np.clip(xi - 1.0, 0.0, None) / WAKE_DECAY)
    )
    speed_ratio = speed_ratio * (1.0 - deficit * behind)

    velocity = free_stream_speed * speed_ratio * (1.0 + VELOCITY_NOISE * (2.0 * u[:, 3] - 1.0))
    pressure = 0.5 * AIR_DENSITY * (free_stream_speed**2 - velocity**2)

    return np.column_stack([x, y, z, pressure, velocity])


class FlowField:
    """Lazily generated, read-only flow-field point cloud."""

    def __init__(
        self,
        params: DesignParameters,
        stream: DeterministicStream,
        n_points: int,
        free_stream_speed: float = 20.0,
    ) -> None:
        if n_points < 1:
            raise ValueError(f"n_points must be positive, got {n_points}")
        self._params = params
        self._seed = stream.seed
        self._n_points = int(n_points)
        self._free_stream_speed = float(free_stream_speed)
        self._points: np.ndarray | None = None
        self._lock = threading.Lock()

    @property
    def point_count(self) -> int:
        return self._n_points

    @property
    def is_generated(self) -> bool:
        return self._points is not None

    @property
    def points(self) -> np.ndarray:
        """(n, 5) array of x, y, z, pressure, velocity."""
        if self._points is None:
            with self._lock:
                if self._points is None:
                    arr = _synthesize(
                        self._params,
                        DeterministicStream(self._seed),
                        self._n_points,
                        self._free_stream_speed,
                    )
                    arr.flags.writeable = False
                    self._points = arr
        return self._points

    def as_tuples(self) -> list[tuple[float, float, float, float, float]]:
        return [tuple(float(v) for v in row) for row in self.points]

    def digest(self) -> str:
        """Stable hash of the point cloud."""
        return hashlib.sha256(np.ascontiguousarray(self.points).tobytes()).hexdigest()[:16]

    def _key(self) -> tuple:
        return (self._seed, self._n_points, self._free_stream_speed, self._params)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FlowField):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash((self._seed, self._n_points, self._free_stream_speed))

    def __getstate__(self) -> dict:
        state = self.__dict__.copy()
        del state["_lock"]
        return state

    def __setstate__(self, state: dict) -> None:
        self.__dict__.update(state)
        self._lock = threading.Lock()
        if self._points is not None:
            self._points.flags.writeable = False

    def __len__(self) -> int:
        return self._n_points

    def __repr__(self) -> str:
        state = "generated" if self.is_generated else "pending"
        return f"FlowField(points={self._n_points}, seed={self._seed}, {state})"
