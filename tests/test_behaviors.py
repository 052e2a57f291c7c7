import numpy as np
import pytest

from behaviors import (
    CenterAttraction, Gravity, SpringToTarget, behavior_from_spec, explosion, sphere_formation
)
from particle import ParticleSystem


def _system(points):
    system = ParticleSystem()
    for p in points:
        system.spawn(p, radius=1.0)
    return system


def test_gravity_adds_a_constant_force_scaled_by_its_modulator():
    system = _system([[0, 0, 0], [5, 5, 5]])
    Gravity([0.0, -1.0, 0.0]).apply(system, {})
    np.testing.assert_allclose(system.forces, [[0, -1, 0], [0, -1, 0]])

    Gravity([0.0, -1.0, 0.0], modulator="g").apply(system, {"g": 0.5})
    np.testing.assert_allclose(system.forces, [[0, -1.5, 0], [0, -1.5, 0]])


def test_center_attraction_pulls_towards_origin():
    system = _system([[10, 0, 0], [0, -20, 0]])
    CenterAttraction(0.1).apply(system, {})
    np.testing.assert_allclose(system.forces, [[-1, 0, 0], [0, 2, 0]])


def test_spring_damps_then_pulls():
    system = _system([[0, 0, 0], [1, 1, 1]])
    system.velocities[:] = 2.0
    spring = SpringToTarget(np.array([[10, 0, 0], [1, 1, 1]]), stiffness=0.5, damping=0.9)
    spring.apply(system, {})
    np.testing.assert_allclose(system.velocities, np.full((2, 3), 1.8))
    np.testing.assert_allclose(system.forces, [[5, 0, 0], [0, 0, 0]])


def test_spring_with_fewer_targets_than_bodies_only_moves_targeted_ones():
    system = _system([[0, 0, 0], [1, 1, 1], [2, 2, 2]])
    SpringToTarget(np.zeros((1, 3)) + 4.0, stiffness=1.0).apply(system, {})
    np.testing.assert_allclose(system.forces[0], [4, 4, 4])
    np.testing.assert_allclose(system.forces[1:], 0.0)


def test_explosion_falls_off_quadratically():
    system = _system([[50, 0, 0], [0, 0, 0], [0, 200, 0]])
    pushed = explosion(system, center=[0, 0, 0], radius=100.0, strength=40.0)
    assert pushed == 1
    np.testing.assert_allclose(system.forces[0], [10.0, 0.0, 0.0])
    np.testing.assert_allclose(system.forces[1], 0.0)
    np.testing.assert_allclose(system.forces[2], 0.0)


def test_explosion_skips_removed_bodies():
    system = _system([[10, 0, 0], [-10, 0, 0]])
    system.remove(1)
    assert explosion(system, [0, 0, 0], 100.0, 1.0) == 1
    np.testing.assert_allclose(system.forces[1], 0.0)


def test_unknown_modulator_is_an_error():
    system = _system([[1, 1, 1]])
    with pytest.raises(ValueError):
        Gravity([0, -1, 0], modulator="missing").apply(system, {})


def test_behavior_from_spec():
    assert isinstance(behavior_from_spec({"kind": "gravity", "vector": [0, -2, 0]}), Gravity)
    attraction = behavior_from_spec({"kind": "center_attraction", "strength": 0.2, "modulator": "m"})
    assert attraction.strength == 0.2
    assert attraction.modulator == "m"
    spring = behavior_from_spec({"kind": "spring_to_target", "formation": "sphere", "radius": 10.0}, 12)
    assert spring.targets.shape == (12, 3)
    with pytest.raises(ValueError):
        behavior_from_spec({"kind": "vortex"})
    with pytest.raises(ValueError):
        behavior_from_spec({"kind": "spring_to_target"})
    with pytest.raises(ValueError):
        behavior_from_spec({"kind": "gravity", "vector": [0, 1]})


def test_sphere_formation_lies_on_the_sphere():
    points = sphere_formation(100, 25.0)
    np.testing.assert_allclose(np.linalg.norm(points, axis=1), 25.0)
    assert sphere_formation(0, 1.0).shape == (0, 3)
