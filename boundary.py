# boundary.py
"""
Geometric domains that keep bodies in place.

Three representations are supported: a half-space floor (min_y), an
axis-aligned box, and a spherical shell. An entity has exactly one
active domain, chosen at construction or preset time.

The half-space and the box clamp the position and reflect only the
velocity component that points outward, scaled by bounce_damping. The
shell is a hard clamp on the position alone; velocity is left as is so a
wandering camera is pushed back softly rather than bounced.

All apply functions work in place on either a single (3,) vector or an
(N, 3) block.
"""
import logging
import math
import numpy as np
from dataclasses import dataclass
from typing import Dict, Any, Sequence, Tuple, Union

from constants import (
    DEFAULT_BOUNCE_DAMPING, CAMERA_MIN_DISTANCE, CAMERA_MAX_DISTANCE, CAMERA_RESET_DISTANCE
)
from utils import (
    config_error, require_finite, require_non_negative, require_ordered, require_unit_interval
)

# --- Data Contracts ---
#
# apply_half_space(positions, velocities, min_y, damping) -> None
# apply_box(positions, velocities, box_min, box_max, damping) -> None
# apply_spherical_shell(positions, max_distance) -> None
#   - Side Effects: Modify the given arrays in place.
#   - Invariants: afterwards every position satisfies the constraint.
#
# domain_from_spec(spec: Dict[str, Any]) -> Domain
#   - Inputs: {"kind": "half_space" | "box" | "spherical_shell", ...}
#   - Raises: ValueError for unknown kinds or invalid parameters.

def _as_rows(array: np.ndarray) -> np.ndarray:
    """Returns a (N, 3) view of a (3,) or (N, 3) array."""
    return array.reshape(-1, 3)

def _clamp_axis(positions: np.ndarray, velocities: np.ndarray, axis: int,
                low: float, high: float, damping: float) -> None:
    below = positions[:, axis] < low
    if np.any(below):
        positions[below, axis] = low
        outward = below & (velocities[:, axis] < 0)
        velocities[outward, axis] *= -damping
    above = positions[:, axis] > high
    if np.any(above):
        positions[above, axis] = high
        outward = above & (velocities[:, axis] > 0)
        velocities[outward, axis] *= -damping

def apply_half_space(positions: np.ndarray, velocities: np.ndarray,
                     min_y: float, damping: float) -> None:
    """Keeps y >= min_y, bouncing downward velocity back up."""
    _clamp_axis(_as_rows(positions), _as_rows(velocities), 1, min_y, math.inf, damping)

def apply_box(positions: np.ndarray, velocities: np.ndarray,
              box_min: Sequence[float], box_max: Sequence[float], damping: float) -> None:
    """Clamps and reflects each axis independently."""
    rows = _as_rows(positions)
    vel_rows = _as_rows(velocities)
    for axis in range(3):
        _clamp_axis(rows, vel_rows, axis, box_min[axis], box_max[axis], damping)

def apply_spherical_shell(positions: np.ndarray, max_distance: float) -> None:
    """Pulls positions beyond max_distance back onto the sphere."""
    rows = _as_rows(positions)
    distances = np.sqrt(np.einsum('ij,ij->i', rows, rows))
    outside = distances > max_distance
    if np.any(outside):
        rows[outside] *= (max_distance / distances[outside])[:, np.newaxis]


def _random_direction(rng: np.random.Generator) -> np.ndarray:
    angle1 = rng.uniform(0.0, 2.0 * math.pi)
    angle2 = rng.uniform(0.0, math.pi)
    return np.array([
        math.cos(angle1) * math.sin(angle2),
        math.sin(angle1) * math.sin(angle2),
        math.cos(angle2),
    ])


@dataclass(frozen=True)
class HalfSpace:
    min_y: float
    bounce_damping: float = DEFAULT_BOUNCE_DAMPING
    # Placement range used by sample(); the constraint itself is only min_y.
    spawn_distance: Tuple[float, float] = (CAMERA_MIN_DISTANCE, CAMERA_RESET_DISTANCE)

    kind = 'half_space'

    def __post_init__(self):
        object.__setattr__(self, 'min_y', require_finite("min_y", self.min_y))
        object.__setattr__(self, 'bounce_damping',
                           require_unit_interval("bounce_damping", self.bounce_damping))
        object.__setattr__(self, 'spawn_distance',
                           require_ordered("spawn_distance", *self.spawn_distance))

    def apply(self, positions: np.ndarray, velocities: np.ndarray) -> None:
        apply_half_space(positions, velocities, self.min_y, self.bounce_damping)

    def contains(self, position: Sequence[float], eps: float = 1e-9) -> bool:
        return bool(position[1] >= self.min_y - eps)

    def sample(self, rng: np.random.Generator) -> np.ndarray:
        low, high = self.spawn_distance
        point = _random_direction(rng) * rng.uniform(low, high)
        point[1] = max(point[1], self.min_y)
        return point


@dataclass(frozen=True)
class Box:
    box_min: Tuple[float, float, float]
    box_max: Tuple[float, float, float]
    bounce_damping: float = DEFAULT_BOUNCE_DAMPING

    kind = 'box'

    def __post_init__(self):
        if len(self.box_min) != 3 or len(self.box_max) != 3:
            raise config_error("Box bounds must have exactly three components.")
        pairs = [require_ordered(f"box axis {axis}", self.box_min[axis], self.box_max[axis])
                 for axis in range(3)]
        object.__setattr__(self, 'box_min', tuple(p[0] for p in pairs))
        object.__setattr__(self, 'box_max', tuple(p[1] for p in pairs))
        object.__setattr__(self, 'bounce_damping',
                           require_unit_interval("bounce_damping", self.bounce_damping))

    def apply(self, positions: np.ndarray, velocities: np.ndarray) -> None:
        apply_box(positions, velocities, self.box_min, self.box_max, self.bounce_damping)

    def contains(self, position: Sequence[float], eps: float = 1e-9) -> bool:
        return all(self.box_min[a] - eps <= position[a] <= self.box_max[a] + eps for a in range(3))

    def sample(self, rng: np.random.Generator) -> np.ndarray:
        return rng.uniform(self.box_min, self.box_max)


@dataclass(frozen=True)
class SphericalShell:
    min_distance: float = CAMERA_MIN_DISTANCE
    max_distance: float = CAMERA_MAX_DISTANCE
    # Upper bound used when placing an entity; kept inside max_distance.
    reset_distance: float = CAMERA_RESET_DISTANCE

    kind = 'spherical_shell'

    def __post_init__(self):
        low, high = require_ordered("shell distance", self.min_distance, self.max_distance)
        require_non_negative("min_distance", low)
        reset = require_finite("reset_distance", self.reset_distance)
        object.__setattr__(self, 'min_distance', low)
        object.__setattr__(self, 'max_distance', high)
        object.__setattr__(self, 'reset_distance', min(max(reset, low), high))

    def apply(self, positions: np.ndarray, velocities: np.ndarray) -> None:
        apply_spherical_shell(positions, self.max_distance)

    def contains(self, position: Sequence[float], eps: float = 1e-9) -> bool:
        return bool(np.linalg.norm(position) <= self.max_distance + eps)

    def sample(self, rng: np.random.Generator) -> np.ndarray:
        return _random_direction(rng) * rng.uniform(self.min_distance, self.reset_distance)


Domain = Union[HalfSpace, Box, SphericalShell]

def domain_from_spec(spec: Union[Dict[str, Any], Domain]) -> Domain:
    """
    Builds a domain from its configuration dictionary.

    Already constructed domains are returned unchanged.
    """
    if isinstance(spec, (HalfSpace, Box, SphericalShell)):
        return spec
    if not isinstance(spec, dict):
        raise config_error(f"Domain spec must be a dict, got {type(spec).__name__}.")

    kind = spec.get('kind')
    if kind == 'half_space':
        domain = HalfSpace(
            min_y=spec.get('min_y', 0.0),
            bounce_damping=spec.get('bounce_damping', DEFAULT_BOUNCE_DAMPING),
        )
    elif kind == 'box':
        domain = Box(
            box_min=tuple(spec.get('min', ())),
            box_max=tuple(spec.get('max', ())),
            bounce_damping=spec.get('bounce_damping', DEFAULT_BOUNCE_DAMPING),
        )
    elif kind == 'spherical_shell':
        domain = SphericalShell(
            min_distance=spec.get('min_distance', CAMERA_MIN_DISTANCE),
            max_distance=spec.get('max_distance', CAMERA_MAX_DISTANCE),
            reset_distance=spec.get('reset_distance', CAMERA_RESET_DISTANCE),
        )
    else:
        raise config_error(
            f"Unknown domain kind {kind!r}; expected 'half_space', 'box' or 'spherical_shell'."
        )
    logging.debug(f"Domain created from spec: {domain}.")
    return domain
