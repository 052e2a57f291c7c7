# behaviors.py
"""
Continuous force strategies for swarms.

Each behavior adds forces to a ParticleSystem once per sub-step. A
behavior can name a modulator; its strength is then multiplied by that
modulator's current value, which is how LFOs steer the swarm.
"""
import logging
import numpy as np
from typing import Dict, Any, Optional, Sequence

from particle import ParticleSystem
from utils import config_error, require_finite, require_non_negative, require_positive

# --- Data Contracts ---
#
# Behavior.apply(self, system: ParticleSystem, modulation: Dict[str, float]) -> None:
#   - Inputs:
#     - system: the bodies to push.
#     - modulation: current modulator values by name.
#   - Side Effects: Adds to the force accumulator of every live body.
#
# explosion(system, center, radius, strength) -> int:
#   - Outputs: number of bodies inside the blast radius.


class Behavior:
    """Base class: strength scaling by an optional modulator."""
    def __init__(self, modulator: Optional[str] = None):
        self.modulator = modulator

    def gain(self, modulation: Dict[str, float]) -> float:
        if self.modulator is None:
            return 1.0
        if self.modulator not in modulation:
            raise config_error(f"Behavior refers to unknown modulator {self.modulator!r}.")
        return float(modulation[self.modulator])

    def apply(self, system: ParticleSystem, modulation: Dict[str, float]) -> None:
        raise NotImplementedError


class Gravity(Behavior):
    """Constant force on every body, e.g. (0, -g, 0)."""
    def __init__(self, vector: Sequence[float], modulator: Optional[str] = None):
        super().__init__(modulator)
        self.vector = np.array([require_finite("gravity", v) for v in vector], dtype=np.float64)
        if self.vector.shape != (3,):
            raise config_error("Gravity vector must have exactly three components.")

    def apply(self, system: ParticleSystem, modulation: Dict[str, float]) -> None:
        system.forces[system.alive] += self.vector * self.gain(modulation)


class CenterAttraction(Behavior):
    """Linear pull towards the origin: force = -strength * position."""
    def __init__(self, strength: float, modulator: Optional[str] = None):
        super().__init__(modulator)
        self.strength = require_non_negative("center attraction strength", strength)

    def apply(self, system: ParticleSystem, modulation: Dict[str, float]) -> None:
        live = system.alive
        system.forces[live] -= system.positions[live] * (self.strength * self.gain(modulation))


class SpringToTarget(Behavior):
    """
    Pulls each body towards its own target point.

    Velocity damping is applied directly (velocity *= damping) before the
    spring force, which settles bodies onto formations without ringing.
    """
    def __init__(
        self,
        targets: np.ndarray,
        stiffness: float,
        damping: float = 1.0,
        modulator: Optional[str] = None,
    ):
        super().__init__(modulator)
        self.targets = np.asarray(targets, dtype=np.float64)
        if self.targets.ndim != 2 or self.targets.shape[1] != 3:
            raise config_error(f"Spring targets must be an (N, 3) array, got shape {self.targets.shape}.")
        self.stiffness = require_non_negative("spring stiffness", stiffness)
        self.damping = require_finite("spring damping", damping)
        if not 0.0 <= self.damping <= 1.0:
            raise config_error(f"spring damping must lie in [0, 1], got {self.damping}.")

    def set_targets(self, targets: np.ndarray) -> None:
        targets = np.asarray(targets, dtype=np.float64)
        if targets.shape != self.targets.shape:
            raise config_error(
                f"Spring targets shape changed from {self.targets.shape} to {targets.shape}."
            )
        self.targets = targets

    def apply(self, system: ParticleSystem, modulation: Dict[str, float]) -> None:
        n = min(system.count, self.targets.shape[0])
        if n == 0:
            return
        live = system.alive[:n]
        velocities = system.velocities[:n]
        velocities[live] *= self.damping
        pull = (self.targets[:n] - system.positions[:n]) * (self.stiffness * self.gain(modulation))
        system.forces[:n][live] += pull[live]


def explosion(system: ParticleSystem, center: Sequence[float], radius: float, strength: float) -> int:
    """
    Pushes bodies away from center with a quadratic falloff.

    A body at distance d < radius receives (1 - d/radius)^2 * strength
    along the outward direction. Bodies exactly at the center have no
    direction and are skipped.
    """
    radius = require_positive("explosion radius", radius)
    strength = require_finite("explosion strength", strength)
    if system.count == 0:
        return 0
    offsets = system.positions - np.asarray(center, dtype=np.float64)
    distances = np.sqrt(np.einsum('ij,ij->i', offsets, offsets))
    hit = system.alive & (distances < radius) & (distances > 0.0)
    if not np.any(hit):
        return 0
    falloff = (1.0 - distances[hit] / radius) ** 2 * strength
    system.forces[hit] += offsets[hit] / distances[hit][:, np.newaxis] * falloff[:, np.newaxis]
    count = int(np.count_nonzero(hit))
    logging.debug(f"Explosion at {center}: {count} bodies pushed.")
    return count


def behavior_from_spec(spec: Dict[str, Any], particle_count: int = 0) -> Behavior:
    """
    Builds a behavior from its configuration dictionary.

    Spring targets can be given explicitly ("targets") or as a named
    formation ("formation": "sphere" with a "radius") for particle_count
    bodies.
    """
    kind = spec.get('kind')
    modulator = spec.get('modulator')
    if kind == 'gravity':
        return Gravity(spec.get('vector', (0.0, -0.1, 0.0)), modulator)
    if kind == 'center_attraction':
        return CenterAttraction(spec.get('strength', 0.001), modulator)
    if kind == 'spring_to_target':
        if 'targets' in spec:
            targets = np.asarray(spec['targets'], dtype=np.float64)
        elif spec.get('formation') == 'sphere':
            targets = sphere_formation(particle_count, spec.get('radius', 500.0))
        else:
            raise config_error("spring_to_target needs 'targets' or a 'formation'.")
        return SpringToTarget(targets, spec.get('stiffness', 0.02), spec.get('damping', 1.0), modulator)
    raise config_error(
        f"Unknown behavior kind {kind!r}; expected 'gravity', 'center_attraction' or 'spring_to_target'."
    )


def sphere_formation(count: int, radius: float) -> np.ndarray:
    """Evenly spread points on a sphere (golden-angle spiral)."""
    radius = require_positive("formation radius", radius)
    if count <= 0:
        return np.zeros((0, 3))
    i = np.arange(count, dtype=np.float64) + 0.5
    y = 1.0 - 2.0 * i / count
    ring = np.sqrt(np.maximum(0.0, 1.0 - y * y))
    theta = np.pi * (3.0 - np.sqrt(5.0)) * i
    return np.column_stack((np.cos(theta) * ring, y, np.sin(theta) * ring)) * radius
