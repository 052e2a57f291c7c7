# camera_rig.py
"""
Autonomous wandering camera rigs.

A CameraRig is a Particle plus a bounded domain plus impulse behaviour.
It never stops moving on its own: whenever it slows below an idle speed
it receives a weak random steering force. External triggers kick it with
one-shot impulses, and a higher-level control can freeze it, in which
case forces are dropped and its velocity decays towards zero.

The rig produces numbers only (position, a yaw/pitch hint for an
external look-at, unit scale). What a renderer does with them is not
its concern.
"""
import enum
import logging
import math
import numpy as np
from typing import Dict, Any, Optional

from constants import (
    CAMERA_MAX_SPEED, CAMERA_MAX_FORCE, CAMERA_FRICTION, CAMERA_IDLE_SPEED,
    CAMERA_IDLE_FORCE, CAMERA_FREEZE_DECAY, CAMERA_ROTATION_GAIN, CAMERA_ROTATION_JITTER,
    CAMERA_MIN_DISTANCE
)
from boundary import Domain, SphericalShell, domain_from_spec
from particle import Particle, limit_vector
from utils import config_error

# --- Data Contracts ---
#
# class CameraRig:
#   - __init__(self, domain, rng, max_speed, max_force, friction):
#     - Side Effects: places the rig at a random point of its domain.
#   - tick(self) -> None:
#     - Side Effects: integrates (or decays when frozen), applies the
#       domain, then queues the idle steering force for the next tick.
#     - Invariants: after tick() the position satisfies the domain.
#   - apply_impulse(self) -> str:
#     - Outputs: the name of the impulse that was applied.


class CameraState(enum.Enum):
    WANDERING = 'wandering'
    IMPULSED = 'impulsed'
    FROZEN = 'frozen'


# Impulse table: (name, cumulative probability, strength low, strength high).
# 'attract' pulls towards the origin, the others push in a random direction.
IMPULSES = (
    ('attract', 0.2, 1.5, 3.0),
    ('dash', 0.4, 3.0, 6.0),
    ('sharp', 0.7, 2.0, 4.5),
    ('gentle', 1.0, 1.0, 2.5),
)

PRESETS = (
    'LOOK_UP', 'SKY_HIGH', 'WIDE_VIEW', 'FRONT_SIDE', 'DRONE_SURFACE',
    'CORE_JET', 'PILLAR_WALK', 'CHAOTIC', 'DEFAULT',
)


def random_unit_vector(rng: np.random.Generator) -> np.ndarray:
    """Random direction from two uniform angles, as used for impulses."""
    angle1 = rng.uniform(0.0, 2.0 * math.pi)
    angle2 = rng.uniform(0.0, math.pi)
    return np.array([
        math.cos(angle1) * math.sin(angle2),
        math.sin(angle1) * math.sin(angle2),
        math.cos(angle2),
    ])


class CameraRig:
    """
    A wandering point with an orientation hint and a bounded domain.
    """
    def __init__(
        self,
        domain: Optional[Domain] = None,
        rng: Optional[np.random.Generator] = None,
        max_speed: float = CAMERA_MAX_SPEED,
        max_force: float = CAMERA_MAX_FORCE,
        friction: float = CAMERA_FRICTION,
    ):
        self.rng = rng if rng is not None else np.random.default_rng()
        self.body = Particle(max_speed=max_speed, max_force=max_force, friction=friction)
        self.domain = domain if domain is not None else SphericalShell()
        self.enable_movement = True
        self._impulse_pending = False
        self.rotation_x = 0.0
        self.rotation_y = 0.0
        self.reset()

    # --- State ---

    @property
    def position(self) -> np.ndarray:
        return self.body.position

    @property
    def velocity(self) -> np.ndarray:
        return self.body.velocity

    @property
    def state(self) -> CameraState:
        if not self.enable_movement:
            return CameraState.FROZEN
        if self._impulse_pending:
            return CameraState.IMPULSED
        return CameraState.WANDERING

    def set_enabled(self, enabled: bool) -> None:
        """Switches between wandering and frozen."""
        self.enable_movement = bool(enabled)

    def set_domain(self, domain: Any) -> None:
        """Replaces the active domain. Takes effect on the next tick."""
        self.domain = domain_from_spec(domain)

    def reset(self) -> None:
        """Re-places the rig in its domain and randomizes its orientation."""
        self.body.reset()
        self.body.position[:] = self.domain.sample(self.rng)
        self.rotation_x = self.rng.uniform(-0.5, 0.5) * math.pi * 2.0
        self.rotation_y = self.rng.uniform(-0.5, 0.5) * math.pi * 2.0
        self._impulse_pending = False

    # --- Per-tick update ---

    def tick(self) -> None:
        if not self.enable_movement:
            self.body.force[:] = 0.0
        self._impulse_pending = False

        self.body.integrate()
        self.domain.apply(self.body.position, self.body.velocity)

        if self.enable_movement:
            # Keep drifting even at equilibrium; the force lands next tick.
            if self.body.speed < CAMERA_IDLE_SPEED:
                self.body.add_force(random_unit_vector(self.rng) * CAMERA_IDLE_FORCE)
            self.rotation_x += self.body.velocity[1] * CAMERA_ROTATION_GAIN
            self.rotation_y += self.body.velocity[0] * CAMERA_ROTATION_GAIN
        else:
            self.body.velocity *= CAMERA_FREEZE_DECAY

    # --- Triggers ---

    def apply_impulse(self) -> str:
        """
        Replaces the pending force with a randomly chosen one-shot kick.

        Returns:
            str: The name of the chosen impulse ('attract', 'dash',
            'sharp' or 'gentle').
        """
        action = self.rng.random()
        for name, threshold, low, high in IMPULSES:
            if action < threshold:
                break
        strength = self.rng.uniform(low, high)

        if name == 'attract':
            to_centre = -self.body.position
            length = float(np.linalg.norm(to_centre))
            if length > 0.0:
                self.body.force[:] = to_centre / length * strength
        else:
            self.body.force[:] = random_unit_vector(self.rng) * strength

        self.rotation_x += self.rng.uniform(-0.5, 0.5) * CAMERA_ROTATION_JITTER
        self.rotation_y += self.rng.uniform(-0.5, 0.5) * CAMERA_ROTATION_JITTER
        self._impulse_pending = self.enable_movement

        logging.debug(f"Camera impulse '{name}' with strength {strength:.2f}.")
        return name

    def apply_preset(self, name: str, **options: Any) -> None:
        """
        Gives the rig a personality: starting point, speed and shell size.

        Every preset uses a spherical shell domain.

        Raises:
            ValueError: If the preset name is unknown.
        """
        if name not in PRESETS:
            raise config_error(f"Unknown camera preset {name!r}; expected one of {PRESETS}.")
        rng = self.rng
        min_distance = CAMERA_MIN_DISTANCE
        max_distance = 2000.0
        self.body.max_speed = CAMERA_MAX_SPEED
        self.body.friction = CAMERA_FRICTION
        position = self.body.position

        if name == 'LOOK_UP':
            position[:] = (rng.uniform(-500, 500), -400.0, rng.uniform(-500, 500))
            self.body.velocity[:] = (0.0, 5.0, 0.0)
        elif name == 'SKY_HIGH':
            position[:] = (rng.uniform(-750, 750), 3000.0, rng.uniform(-750, 750))
            self.body.velocity[:] = (0.0, -2.0, 0.0)
        elif name == 'WIDE_VIEW':
            angle = rng.uniform(0.0, 2.0 * math.pi)
            dist = float(options.get('distance', 3000.0))
            position[:] = (math.cos(angle) * dist, 1000.0, math.sin(angle) * dist)
            min_distance = dist * 0.5
            max_distance = dist * 1.5
        elif name == 'FRONT_SIDE':
            if rng.random() > 0.5:
                position[:] = (rng.uniform(-1000, 1000), 500.0, float(options.get('z', 1500.0)))
            else:
                position[:] = (float(options.get('x', 3000.0)), 500.0, rng.uniform(-500, 500))
        elif name == 'DRONE_SURFACE':
            position[:] = (rng.uniform(-1500, 1500), float(options.get('y', -300.0)),
                           rng.uniform(-1500, 1500))
            self.body.max_speed = 15.0
        elif name == 'CORE_JET':
            if rng.random() > 0.5:
                position[:] = (rng.uniform(-100, 100), 200.0, rng.uniform(-100, 100))
            else:
                position[:] = (rng.uniform(-250, 250), float(options.get('height', 4000.0)),
                               rng.uniform(-250, 250))
        elif name == 'PILLAR_WALK':
            position[:] = (rng.uniform(-1000, 1000), rng.uniform(-750, 750) + 800.0,
                           rng.uniform(-1000, 1000))
            self.body.max_speed = 10.0
            min_distance = 1000.0
            max_distance = 4000.0
        elif name == 'CHAOTIC':
            self.apply_impulse()
            self.body.velocity *= 5.0
            self.body.max_speed = 30.0
        else:
            self.apply_impulse()

        self.domain = SphericalShell(
            min_distance=min_distance,
            max_distance=max_distance,
            reset_distance=(min_distance + max_distance) / 2.0,
        )
        # Presets may start outside the shell; pull back immediately.
        self.domain.apply(self.body.position, self.body.velocity)
        limit_vector(self.body.velocity, self.body.max_speed)
        logging.debug(f"Camera preset {name} applied at {np.round(position, 1)}.")

    def transform(self) -> Dict[str, np.ndarray]:
        """Renderable state: position, rotation (x, y, 0) and unit scale."""
        return {
            'position': self.body.position.copy(),
            'rotation': np.array([self.rotation_x, self.rotation_y, 0.0]),
            'scale': np.ones(3),
        }
