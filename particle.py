# particle.py
"""
Point-mass state and force integration.

This module defines the single-body Particle used by composed entities
such as camera rigs, and the ParticleSystem class, which stores a whole
swarm of bodies in contiguous NumPy arrays (struct-of-arrays) addressed
by stable integer handles.

Both integrate in the same fixed order:
force clamp -> acceleration = force -> velocity += acceleration ->
speed clamp -> position += velocity -> friction -> force reset.
Swapping the speed clamp and the friction step changes the terminal
velocity, so the order must not be rearranged.
"""
import logging
import math
import numpy as np
from typing import Dict, Any, Optional, Sequence, Tuple

from constants import (
    DEFAULT_MAX_SPEED, DEFAULT_MAX_FORCE, DEFAULT_FRICTION, DEFAULT_MASS,
    DEFAULT_RADIUS, ROTATION_FRAME_RATE
)
from utils import (
    config_error, require_non_negative, require_positive, require_unit_interval
)

# --- Data Contracts ---
#
# class Particle:
#   - __init__(self, x=0, y=0, z=0, max_speed, max_force, friction, mass)
#     - Invariants:
#       - position, velocity, acceleration, force are float64 arrays of shape (3,).
#       - max_speed >= 0, max_force >= 0, 0 <= friction < 1, mass > 0.
#   - integrate(self) -> None:
#     - Invariants: afterwards |velocity| <= max_speed and force == 0.
#
# class ParticleSystem:
#   - spawn(self, position, radius, ...) -> int:
#     - Outputs: a handle that stays valid for the lifetime of the system.
#   - integrate(self) -> None:
#     - Side Effects: the Particle.integrate step applied to every row.
#     - Invariants: the force accumulator of every row is zero afterwards.

def limit_vector(vector: np.ndarray, limit: float) -> None:
    """
    Rescales a 3-vector in place so that its length does not exceed limit.

    The direction is preserved. A zero vector is left untouched.
    """
    length_sq = float(vector[0] * vector[0] + vector[1] * vector[1] + vector[2] * vector[2])
    if length_sq > limit * limit and length_sq > 0.0:
        vector *= limit / math.sqrt(length_sq)

def limit_rows(vectors: np.ndarray, limits: np.ndarray, scratch: Optional[np.ndarray] = None) -> None:
    """
    Row-wise version of limit_vector for an (N, 3) block.

    Args:
        vectors (np.ndarray): (N, 3) array, modified in place.
        limits (np.ndarray): (N,) array of non-negative limits.
        scratch (Optional[np.ndarray]): (N,) buffer reused for the lengths.
    """
    if vectors.shape[0] == 0:
        return
    lengths = np.einsum('ij,ij->i', vectors, vectors, out=scratch)
    np.sqrt(lengths, out=lengths)
    # lengths > limits >= 0 also rules out zero-length rows.
    over = lengths > limits
    if np.any(over):
        vectors[over] *= (limits[over] / lengths[over])[:, np.newaxis]


class Particle:
    """
    A single point mass with a per-tick force accumulator.

    The stored mass is not divided out during integration (the effective
    integration mass is 1). It is there for callers that scale their own
    forces by it.
    """
    def __init__(
        self,
        x: float = 0.0,
        y: float = 0.0,
        z: float = 0.0,
        max_speed: float = DEFAULT_MAX_SPEED,
        max_force: float = DEFAULT_MAX_FORCE,
        friction: float = DEFAULT_FRICTION,
        mass: float = DEFAULT_MASS,
    ):
        self.position = np.array([x, y, z], dtype=np.float64)
        self.velocity = np.zeros(3, dtype=np.float64)
        self.acceleration = np.zeros(3, dtype=np.float64)
        self.force = np.zeros(3, dtype=np.float64)

        self.max_speed = max_speed
        self.max_force = max_force
        self.friction = friction
        self.mass = mass

    @property
    def max_speed(self) -> float:
        return self._max_speed

    @max_speed.setter
    def max_speed(self, value: float) -> None:
        self._max_speed = require_non_negative("max_speed", value)

    @property
    def max_force(self) -> float:
        return self._max_force

    @max_force.setter
    def max_force(self, value: float) -> None:
        self._max_force = require_non_negative("max_force", value)

    @property
    def friction(self) -> float:
        return self._friction

    @friction.setter
    def friction(self, value: float) -> None:
        self._friction = require_unit_interval("friction", value, closed=False)

    @property
    def mass(self) -> float:
        return self._mass

    @mass.setter
    def mass(self, value: float) -> None:
        self._mass = require_positive("mass", value)

    @property
    def speed(self) -> float:
        return float(np.linalg.norm(self.velocity))

    def add_force(self, force: Sequence[float]) -> None:
        """Accumulates a force for the current tick."""
        self.force += force

    def integrate(self) -> None:
        """Advances the particle by one tick and clears the force accumulator."""
        limit_vector(self.force, self._max_force)
        self.acceleration[:] = self.force
        self.velocity += self.acceleration
        limit_vector(self.velocity, self._max_speed)
        self.position += self.velocity
        self.velocity *= (1.0 - self._friction)
        self.force[:] = 0.0

    def reset(self) -> None:
        """Zeroes position, velocity, acceleration and force."""
        self.position[:] = 0.0
        self.velocity[:] = 0.0
        self.acceleration[:] = 0.0
        self.force[:] = 0.0


class ParticleSystem:
    """
    A container for all swarm bodies, managing their state via NumPy arrays.

    Rows are addressed by integer handles returned from spawn(). The
    array properties are views on the live prefix of the backing storage;
    they are invalidated when spawn() grows the storage, so do not keep
    them across a spawn.
    """
    _VECTOR_FIELDS = (
        '_positions', '_velocities', '_accelerations', '_forces',
        '_rotations', '_angular_velocities', '_scales',
    )
    _SCALAR_FIELDS = (
        '_radii', '_masses', '_max_speeds', '_max_forces', '_frictions', '_scratch',
    )

    def __init__(self, capacity: int = 64):
        """
        Initializes an empty particle system.

        Args:
            capacity (int): Initial number of rows to allocate.
        """
        if capacity < 1:
            raise config_error(f"ParticleSystem capacity must be >= 1, got {capacity}.")
        self.count = 0
        self.capacity = int(capacity)
        for name in self._VECTOR_FIELDS:
            setattr(self, name, np.zeros((self.capacity, 3), dtype=np.float64))
        for name in self._SCALAR_FIELDS:
            setattr(self, name, np.zeros(self.capacity, dtype=np.float64))
        self._alive = np.zeros(self.capacity, dtype=np.bool_)

        logging.debug(f"ParticleSystem allocated with capacity {self.capacity}.")

    # --- Array views on the live prefix ---

    @property
    def positions(self) -> np.ndarray:
        return self._positions[:self.count]

    @property
    def velocities(self) -> np.ndarray:
        return self._velocities[:self.count]

    @property
    def accelerations(self) -> np.ndarray:
        return self._accelerations[:self.count]

    @property
    def forces(self) -> np.ndarray:
        return self._forces[:self.count]

    @property
    def rotations(self) -> np.ndarray:
        return self._rotations[:self.count]

    @property
    def angular_velocities(self) -> np.ndarray:
        return self._angular_velocities[:self.count]

    @property
    def scales(self) -> np.ndarray:
        return self._scales[:self.count]

    @property
    def radii(self) -> np.ndarray:
        return self._radii[:self.count]

    @property
    def masses(self) -> np.ndarray:
        return self._masses[:self.count]

    @property
    def max_speeds(self) -> np.ndarray:
        return self._max_speeds[:self.count]

    @property
    def max_forces(self) -> np.ndarray:
        return self._max_forces[:self.count]

    @property
    def frictions(self) -> np.ndarray:
        return self._frictions[:self.count]

    @property
    def alive(self) -> np.ndarray:
        return self._alive[:self.count]

    def live_indices(self) -> np.ndarray:
        """Returns the handles of all live rows in ascending order."""
        return np.flatnonzero(self.alive).astype(np.int64)

    def __len__(self) -> int:
        return int(np.count_nonzero(self.alive))

    # --- Lifecycle ---

    def _grow(self) -> None:
        new_capacity = self.capacity * 2
        for name in self._VECTOR_FIELDS:
            old = getattr(self, name)
            grown = np.zeros((new_capacity, 3), dtype=np.float64)
            grown[:self.capacity] = old
            setattr(self, name, grown)
        for name in self._SCALAR_FIELDS:
            old = getattr(self, name)
            grown = np.zeros(new_capacity, dtype=np.float64)
            grown[:self.capacity] = old
            setattr(self, name, grown)
        alive = np.zeros(new_capacity, dtype=np.bool_)
        alive[:self.capacity] = self._alive
        self._alive = alive
        logging.debug(f"ParticleSystem grown from {self.capacity} to {new_capacity} rows.")
        self.capacity = new_capacity

    def spawn(
        self,
        position: Sequence[float],
        radius: float = DEFAULT_RADIUS,
        velocity: Optional[Sequence[float]] = None,
        max_speed: float = DEFAULT_MAX_SPEED,
        max_force: float = DEFAULT_MAX_FORCE,
        friction: float = DEFAULT_FRICTION,
        mass: float = DEFAULT_MASS,
        angular_velocity: Optional[Sequence[float]] = None,
    ) -> int:
        """
        Adds a body and returns its handle.

        Raises:
            ValueError: If any of the physical limits is out of range.
        """
        radius = require_positive("radius", radius)
        max_speed = require_non_negative("max_speed", max_speed)
        max_force = require_non_negative("max_force", max_force)
        friction = require_unit_interval("friction", friction, closed=False)
        mass = require_positive("mass", mass)

        if self.count == self.capacity:
            self._grow()
        handle = self.count
        self.count += 1

        self._positions[handle] = position
        self._velocities[handle] = 0.0 if velocity is None else velocity
        self._accelerations[handle] = 0.0
        self._forces[handle] = 0.0
        self._rotations[handle] = 0.0
        self._angular_velocities[handle] = 0.0 if angular_velocity is None else angular_velocity
        self._scales[handle] = radius
        self._radii[handle] = radius
        self._masses[handle] = mass
        self._max_speeds[handle] = max_speed
        self._max_forces[handle] = max_force
        self._frictions[handle] = friction
        self._alive[handle] = True
        return handle

    def populate(
        self,
        count: int,
        rng: np.random.Generator,
        spawn_radius: float,
        radius_range: Tuple[float, float] = (DEFAULT_RADIUS, DEFAULT_RADIUS),
        **limits: Any,
    ) -> np.ndarray:
        """
        Spawns count bodies uniformly inside a cube of half-size spawn_radius.

        Returns:
            np.ndarray: The handles of the new bodies.
        """
        if count < 0:
            raise config_error(f"particle_count must be >= 0, got {count}.")
        low, high = radius_range
        positions = rng.uniform(-spawn_radius, spawn_radius, size=(count, 3))
        radii = rng.uniform(low, high, size=count)
        spins = rng.uniform(-0.005, 0.005, size=(count, 3))
        handles = np.empty(count, dtype=np.int64)
        for i in range(count):
            handles[i] = self.spawn(positions[i], radius=radii[i], angular_velocity=spins[i], **limits)

        logging.info(f"ParticleSystem populated with {count} bodies (total {len(self)}).")
        return handles

    def _check_handle(self, handle: int) -> int:
        handle = int(handle)
        if handle < 0 or handle >= self.count or not self._alive[handle]:
            logging.error(f"Unknown or removed particle handle {handle}.")
            raise ValueError(f"Unknown or removed particle handle {handle}.")
        return handle

    def remove(self, handle: int) -> None:
        """Marks a body as removed. Its handle is never reused."""
        handle = self._check_handle(handle)
        self._alive[handle] = False
        self._velocities[handle] = 0.0
        self._forces[handle] = 0.0
        self._accelerations[handle] = 0.0

    def reset(self, handle: int) -> None:
        handle = self._check_handle(handle)
        self._positions[handle] = 0.0
        self._velocities[handle] = 0.0
        self._accelerations[handle] = 0.0
        self._forces[handle] = 0.0

    # --- Forces and integration ---

    def add_force(self, handle: int, force: Sequence[float]) -> None:
        handle = self._check_handle(handle)
        self._forces[handle] += force

    def add_forces(self, forces: np.ndarray) -> None:
        """Accumulates an (N, 3) block of forces, one row per body."""
        self.forces[self.alive] += forces[self.alive]

    def integrate(self) -> None:
        """
        Advances every body by one tick.

        Removed rows carry zero force and velocity, so they stay put.
        """
        if self.count == 0:
            return
        forces = self.forces
        velocities = self.velocities
        scratch = self._scratch[:self.count]

        limit_rows(forces, self.max_forces, scratch)
        self.accelerations[:] = forces
        velocities += self.accelerations
        limit_rows(velocities, self.max_speeds, scratch)
        self._positions[:self.count] += velocities
        velocities *= (1.0 - self.frictions)[:, np.newaxis]
        forces[:] = 0.0

    def update_rotations(self, dt: float) -> None:
        """Advances Euler rotations by angular velocity (per 60 fps frame)."""
        if self.count == 0 or dt <= 0:
            return
        self._rotations[:self.count] += self.angular_velocities * (dt * ROTATION_FRAME_RATE)

    def snapshot(self) -> Dict[str, np.ndarray]:
        """Copies the renderable state of the live bodies."""
        live = self.alive
        return {
            'handles': self.live_indices(),
            'positions': self.positions[live].copy(),
            'rotations': self.rotations[live].copy(),
            'scales': self.scales[live].copy(),
        }
