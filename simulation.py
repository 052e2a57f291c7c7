# simulation.py
"""
Drives the motion core one frame at a time.

This module defines the SimulationWorld class, which owns every simulated
entity (the swarm in a ParticleSystem, the camera rigs) together with the
modulators, behaviors, boundary and collision resolver that act on them.
An external driver calls tick(dt) once per rendered frame and then reads
the transforms back.
"""
import logging
import math
import numpy as np
from typing import Dict, Any, List, Optional, Sequence

from constants import (
    DEFAULT_SUB_STEPS, MAX_DELTA_TIME, DEFAULT_MAX_SPEED, DEFAULT_MAX_FORCE,
    DEFAULT_FRICTION, DEFAULT_MASS, DEFAULT_RADIUS, DEFAULT_CORRECTION_FACTOR,
    DEFAULT_RESTITUTION, DEFAULT_CAMERA_COUNT, CAMERA_MAX_SPEED, CAMERA_MAX_FORCE,
    CAMERA_FRICTION
)
from behaviors import Behavior, behavior_from_spec, explosion
from boundary import Domain, domain_from_spec
from camera_rig import CameraRig
from collision import CollisionResolver
from lfo import RandomLFO
from particle import ParticleSystem
from utils import config_error, require_positive

# --- Data Contracts ---
#
# class SimulationWorld:
#   - __init__(self, params: Dict[str, Any], rng: Optional[np.random.Generator]):
#     - Inputs:
#       - params: Configuration dictionary with the optional sections
#         "simulation_parameters", "camera" and "modulators".
#         - "seed": int (used when rng is not given)
#         - "sub_steps": int >= 1
#         - "max_delta_time": float > 0
#         - "particle_count", "spawn_radius", "radius_range", limits
#         - "correction_factor", "restitution", "cell_size"
#         - "domain": domain spec or null
#         - "behaviors": list of behavior specs
#     - Side Effects: Spawns the swarm and the camera rigs.
#
#   - tick(self, dt: float) -> float:
#     - Outputs: the dt that was actually simulated (after clamping).
#     - Side Effects: Modulators -> per sub-step (behaviors -> integrate ->
#       rotations -> collisions -> domain) -> camera rigs.
#     - Invariants: a dt of 0 (pause) changes nothing. Order of work is
#       identical on every call.

class SimulationWorld:
    """
    Owns all simulated entities and advances them in a fixed order.
    """
    def __init__(self, params: Dict[str, Any], rng: Optional[np.random.Generator] = None):
        """
        Initializes the world from a configuration dictionary.

        Args:
            params (Dict[str, Any]): The full configuration (see Data Contracts).
            rng (Optional[np.random.Generator]): Source of all randomness.
                Defaults to a generator seeded from "seed".
        """
        sim_params = params.get('simulation_parameters', {})
        camera_params = params.get('camera', {})
        modulator_params = params.get('modulators', {})

        # All randomness flows from a single seeded generator.
        self.seed = sim_params.get('seed')
        self.rng = rng if rng is not None else np.random.default_rng(self.seed)

        self.sub_steps = int(sim_params.get('sub_steps', DEFAULT_SUB_STEPS))
        if self.sub_steps < 1:
            raise config_error(f"sub_steps must be >= 1, got {self.sub_steps}.")
        self.max_delta_time = require_positive(
            "max_delta_time", sim_params.get('max_delta_time', MAX_DELTA_TIME)
        )
        self.time = 0.0
        self.tick_count = 0

        # --- Swarm ---
        self.spawn_radius = float(sim_params.get('spawn_radius', 500.0))
        self.radius_range = tuple(sim_params.get('radius_range', (DEFAULT_RADIUS, DEFAULT_RADIUS)))
        self.body_limits = {
            'max_speed': sim_params.get('max_speed', DEFAULT_MAX_SPEED),
            'max_force': sim_params.get('max_force', DEFAULT_MAX_FORCE),
            'friction': sim_params.get('friction', DEFAULT_FRICTION),
            'mass': sim_params.get('mass', DEFAULT_MASS),
        }
        particle_count = int(sim_params.get('particle_count', 0))
        self.particles = ParticleSystem(capacity=max(particle_count, 1))
        self.particles.populate(
            particle_count, self.rng, self.spawn_radius, self.radius_range, **self.body_limits
        )

        domain_spec = sim_params.get('domain')
        self.swarm_domain: Optional[Domain] = (
            None if domain_spec is None else domain_from_spec(domain_spec)
        )
        self.collisions_enabled = bool(sim_params.get('collisions', True))
        self.resolver = CollisionResolver(
            correction_factor=sim_params.get('correction_factor', DEFAULT_CORRECTION_FACTOR),
            restitution=sim_params.get('restitution', DEFAULT_RESTITUTION),
            cell_size=sim_params.get('cell_size'),
        )

        # --- Modulators ---
        self.modulators: Dict[str, RandomLFO] = {}
        for name, spec in modulator_params.items():
            self.add_modulator(name, spec)

        self.behaviors: List[Behavior] = [
            behavior_from_spec(spec, particle_count) for spec in sim_params.get('behaviors', [])
        ]
        self._check_behavior_modulators()

        # --- Cameras ---
        self.camera_defaults = {
            'max_speed': camera_params.get('max_speed', CAMERA_MAX_SPEED),
            'max_force': camera_params.get('max_force', CAMERA_MAX_FORCE),
            'friction': camera_params.get('friction', CAMERA_FRICTION),
        }
        self.cameras: List[CameraRig] = []
        camera_domain = camera_params.get('domain')
        camera_preset = camera_params.get('preset')
        for _ in range(int(camera_params.get('count', DEFAULT_CAMERA_COUNT))):
            handle = self.add_camera(camera_domain)
            if camera_preset:
                self.cameras[handle].apply_preset(camera_preset)

        logging.info(
            f"SimulationWorld initialized: {len(self.particles)} bodies, "
            f"{len(self.cameras)} cameras, {len(self.modulators)} modulators, "
            f"{len(self.behaviors)} behaviors, {self.sub_steps} sub-steps."
        )

    # --- Construction helpers ---

    def _check_behavior_modulators(self) -> None:
        for behavior in self.behaviors:
            if behavior.modulator is not None and behavior.modulator not in self.modulators:
                raise config_error(f"Behavior refers to unknown modulator {behavior.modulator!r}.")

    def add_modulator(self, name: str, spec: Any) -> RandomLFO:
        """Registers a RandomLFO under name, from an instance or a spec dict."""
        if isinstance(spec, RandomLFO):
            modulator = spec
        else:
            min_rate, max_rate = spec.get('rate_range', (0.05, 0.5))
            min_value, max_value = spec.get('value_range', (0.0, 1.0))
            modulator = RandomLFO(min_rate, max_rate, min_value, max_value, rng=self.rng)
            if 'rate_lfo_rate_range' in spec:
                modulator.set_rate_lfo_rate_range(*spec['rate_lfo_rate_range'])
            if 'value_lfo_rate_range' in spec:
                modulator.set_value_lfo_rate_range(*spec['value_lfo_rate_range'])
        self.modulators[name] = modulator
        return modulator

    def add_behavior(self, behavior: Behavior) -> None:
        self.behaviors.append(behavior)
        self._check_behavior_modulators()

    def add_camera(self, domain: Any = None) -> int:
        """Creates a camera rig and returns its handle."""
        rig = CameraRig(
            domain=None if domain is None else domain_from_spec(domain),
            rng=self.rng,
            **self.camera_defaults,
        )
        self.cameras.append(rig)
        return len(self.cameras) - 1

    def spawn(self, position: Sequence[float], radius: float = DEFAULT_RADIUS, **overrides: Any) -> int:
        """Adds a swarm body with the world's default limits; returns its handle."""
        limits = dict(self.body_limits)
        limits.update(overrides)
        return self.particles.spawn(position, radius=radius, **limits)

    def _camera(self, handle: int) -> CameraRig:
        if not 0 <= handle < len(self.cameras):
            logging.error(f"Unknown camera handle {handle}.")
            raise ValueError(f"Unknown camera handle {handle}.")
        return self.cameras[handle]

    # --- Frame step ---

    def sanitize_dt(self, dt: float) -> float:
        """Maps NaN and negative dt to 0 and clamps frame hitches."""
        dt = float(dt)
        if not math.isfinite(dt):
            return self.max_delta_time if dt == math.inf else 0.0
        return min(max(dt, 0.0), self.max_delta_time)

    def modulation(self) -> Dict[str, float]:
        return {name: modulator.value for name, modulator in self.modulators.items()}

    def tick(self, dt: float) -> float:
        """
        Executes one frame of the simulation.

        Returns:
            float: The dt that was simulated; 0 means nothing moved.
        """
        dt = self.sanitize_dt(dt)
        if dt == 0.0:
            return 0.0

        for modulator in self.modulators.values():
            modulator.update(dt)
        modulation = self.modulation()

        sub_dt = dt / self.sub_steps
        for _ in range(self.sub_steps):
            self._sub_step(sub_dt, modulation)

        for rig in self.cameras:
            rig.tick()

        self.time += dt
        self.tick_count += 1
        return dt

    def _sub_step(self, sub_dt: float, modulation: Dict[str, float]) -> None:
        particles = self.particles
        if particles.count == 0:
            return
        for behavior in self.behaviors:
            behavior.apply(particles, modulation)
        particles.integrate()
        particles.update_rotations(sub_dt)
        if self.collisions_enabled:
            self.resolver.resolve(particles)
        # Domain last: it wins over collision pushes.
        if self.swarm_domain is not None:
            live = particles.alive
            positions = particles.positions[live]
            velocities = particles.velocities[live]
            self.swarm_domain.apply(positions, velocities)
            particles.positions[live] = positions
            particles.velocities[live] = velocities

    # --- External triggers ---

    def apply_impulse(self, handle: int) -> str:
        return self._camera(handle).apply_impulse()

    def set_enabled(self, handle: int, enabled: bool) -> None:
        self._camera(handle).set_enabled(enabled)
        logging.info(f"Camera {handle} movement {'enabled' if enabled else 'disabled'}.")

    def set_bounds(self, handle: int, domain_spec: Any) -> None:
        self._camera(handle).set_domain(domain_spec)

    def apply_preset(self, handle: int, name: str, **options: Any) -> None:
        self._camera(handle).apply_preset(name, **options)

    def set_swarm_bounds(self, domain_spec: Any) -> None:
        self.swarm_domain = None if domain_spec is None else domain_from_spec(domain_spec)

    def trigger_explosion(self, center: Sequence[float], radius: float, strength: float) -> int:
        return explosion(self.particles, center, radius, strength)

    def set_modulator_ranges(self, name: str, rate_range: Optional[Sequence[float]] = None,
                             value_range: Optional[Sequence[float]] = None) -> None:
        if name not in self.modulators:
            raise config_error(f"Unknown modulator {name!r}.")
        modulator = self.modulators[name]
        if rate_range is not None:
            modulator.set_rate_range(*rate_range)
        if value_range is not None:
            modulator.set_value_range(*value_range)

    def modulator_value(self, name: str) -> float:
        if name not in self.modulators:
            raise config_error(f"Unknown modulator {name!r}.")
        return self.modulators[name].value

    # --- Output ---

    def transforms(self) -> Dict[str, np.ndarray]:
        """Positions, rotations and scales of the live swarm bodies (copies)."""
        return self.particles.snapshot()

    def camera_transforms(self) -> List[Dict[str, np.ndarray]]:
        return [rig.transform() for rig in self.cameras]

    def reset(self) -> None:
        """Scatters the swarm again and re-places every camera."""
        live = self.particles.live_indices()
        self.particles.positions[live] = self.rng.uniform(
            -self.spawn_radius, self.spawn_radius, size=(live.shape[0], 3)
        )
        self.particles.velocities[live] = 0.0
        self.particles.forces[live] = 0.0
        self.particles.accelerations[live] = 0.0
        for rig in self.cameras:
            rig.reset()
        for modulator in self.modulators.values():
            modulator.reset()
        self.time = 0.0
        self.tick_count = 0
        logging.info("SimulationWorld reset.")
