import numpy as np
import pytest

from boundary import (
    Box, HalfSpace, SphericalShell, apply_box, apply_half_space,
    apply_spherical_shell, domain_from_spec
)


def test_half_space_rebounds_with_damped_velocity():
    p = np.array([1.0, -2.0, 3.0])
    v = np.array([0.5, -3.0, 0.0])
    apply_half_space(p, v, min_y=0.0, damping=0.8)
    assert p[1] == 0.0
    assert v[1] == pytest.approx(2.4)
    np.testing.assert_allclose(p[[0, 2]], [1.0, 3.0])
    assert v[0] == 0.5


def test_half_space_leaves_upward_velocity_alone():
    p = np.array([0.0, -1.0, 0.0])
    v = np.array([0.0, 2.0, 0.0])
    apply_half_space(p, v, min_y=0.0, damping=0.5)
    assert p[1] == 0.0
    assert v[1] == 2.0


def test_box_reflects_each_axis_independently():
    p = np.array([[-11.0, 5.0, 12.0], [0.0, 0.0, 0.0]])
    v = np.array([[-1.0, 1.0, 2.0], [1.0, 1.0, 1.0]])
    apply_box(p, v, (-10.0, -10.0, -10.0), (10.0, 10.0, 10.0), 0.5)
    np.testing.assert_allclose(p[0], [-10.0, 5.0, 10.0])
    np.testing.assert_allclose(v[0], [0.5, 1.0, -1.0])
    np.testing.assert_allclose(p[1], [0.0, 0.0, 0.0])
    np.testing.assert_allclose(v[1], [1.0, 1.0, 1.0])


def test_spherical_shell_is_a_hard_clamp():
    p = np.array([300.0, 400.0, 0.0])
    v = np.array([3.0, 4.0, 0.0])
    apply_spherical_shell(p, 100.0)
    np.testing.assert_allclose(p, [60.0, 80.0, 0.0])
    np.testing.assert_allclose(v, [3.0, 4.0, 0.0])


def test_spherical_shell_ignores_origin_and_inner_points():
    p = np.array([[0.0, 0.0, 0.0], [1.0, 2.0, 2.0]])
    apply_spherical_shell(p, 10.0)
    np.testing.assert_allclose(p, [[0.0, 0.0, 0.0], [1.0, 2.0, 2.0]])


def test_domain_objects_apply_and_contain():
    rng = np.random.default_rng(0)
    domains = [
        HalfSpace(min_y=-5.0, bounce_damping=0.3),
        Box((-1.0, -2.0, -3.0), (1.0, 2.0, 3.0)),
        SphericalShell(10.0, 50.0, 30.0),
    ]
    for domain in domains:
        positions = rng.uniform(-200, 200, size=(50, 3))
        velocities = rng.normal(size=(50, 3))
        domain.apply(positions, velocities)
        assert all(domain.contains(p) for p in positions)
        for _ in range(20):
            assert domain.contains(domain.sample(rng))


def test_shell_samples_between_min_and_reset_distance():
    rng = np.random.default_rng(1)
    shell = SphericalShell(min_distance=400.0, max_distance=1500.0, reset_distance=1000.0)
    for _ in range(100):
        d = np.linalg.norm(shell.sample(rng))
        assert 400.0 - 1e-9 <= d <= 1000.0 + 1e-9


def test_domain_from_spec_builds_each_kind():
    assert isinstance(domain_from_spec({"kind": "half_space", "min_y": -1.0}), HalfSpace)
    box = domain_from_spec({"kind": "box", "min": [0, 0, 0], "max": [1, 2, 3], "bounce_damping": 0.2})
    assert box.box_max == (1.0, 2.0, 3.0)
    assert box.bounce_damping == 0.2
    shell = domain_from_spec({"kind": "spherical_shell", "min_distance": 1.0, "max_distance": 2.0})
    assert shell.max_distance == 2.0
    assert domain_from_spec(shell) is shell


@pytest.mark.parametrize("spec", [
    {"kind": "torus"},
    {"kind": "box", "min": [0, 0, 0], "max": [1, -1, 1]},
    {"kind": "box", "min": [0, 0], "max": [1, 1]},
    {"kind": "half_space", "min_y": 0.0, "bounce_damping": 1.5},
    {"kind": "spherical_shell", "min_distance": 5.0, "max_distance": 1.0},
    "box",
])
def test_invalid_domain_specs_are_rejected(spec):
    with pytest.raises(ValueError):
        domain_from_spec(spec)
