from collections import Counter

import numpy as np
import pytest

from boundary import Box, SphericalShell
from camera_rig import PRESETS, CameraRig, CameraState


def _rig(seed=0, **kwargs):
    return CameraRig(rng=np.random.default_rng(seed), **kwargs)


def test_rig_starts_wandering_inside_its_shell():
    rig = _rig(domain=SphericalShell(400.0, 1500.0, 1000.0))
    assert rig.state is CameraState.WANDERING
    distance = np.linalg.norm(rig.position)
    assert 400.0 - 1e-9 <= distance <= 1000.0 + 1e-9
    assert np.all(rig.velocity == 0.0)


def test_rig_keeps_moving_at_rest():
    rig = _rig()
    rig.tick()
    # Idle steering is queued for the next tick.
    assert np.linalg.norm(rig.body.force) == pytest.approx(0.3)
    start = rig.position.copy()
    for _ in range(60):
        rig.tick()
    assert np.linalg.norm(rig.position - start) > 0.0
    assert rig.body.speed > 0.0


def test_rig_stays_inside_its_domain_under_impulses():
    rig = _rig(seed=4, domain=SphericalShell(100.0, 300.0, 200.0))
    for step in range(2000):
        if step % 25 == 0:
            rig.apply_impulse()
        rig.tick()
        assert np.linalg.norm(rig.position) <= 300.0 + 1e-9
        assert rig.body.speed <= rig.body.max_speed + 1e-9


def test_box_domain_reflects_the_rig():
    rig = _rig(seed=5)
    rig.set_domain({"kind": "box", "min": [-50, -50, -50], "max": [50, 50, 50], "bounce_damping": 0.8})
    rig.reset()
    assert isinstance(rig.domain, Box)
    for step in range(1000):
        if step % 10 == 0:
            rig.apply_impulse()
        rig.tick()
        assert rig.domain.contains(rig.position)


def test_impulse_is_transient():
    rig = _rig()
    rig.apply_impulse()
    assert rig.state is CameraState.IMPULSED
    assert np.linalg.norm(rig.body.force) > 0.0
    rig.tick()
    assert rig.state is CameraState.WANDERING


def test_impulse_mix_follows_the_weights():
    rig = _rig(seed=7)
    counts = Counter(rig.apply_impulse() for _ in range(4000))
    assert counts["attract"] / 4000 == pytest.approx(0.2, abs=0.03)
    assert counts["dash"] / 4000 == pytest.approx(0.2, abs=0.03)
    assert counts["sharp"] / 4000 == pytest.approx(0.3, abs=0.03)
    assert counts["gentle"] / 4000 == pytest.approx(0.3, abs=0.03)


def test_attract_impulse_points_at_the_origin():
    rig = _rig(seed=8)
    for _ in range(100):
        rig.body.force[:] = 0.0
        if rig.apply_impulse() == "attract":
            break
    else:
        pytest.fail("no attract impulse drawn")
    direction = rig.body.force / np.linalg.norm(rig.body.force)
    expected = -rig.position / np.linalg.norm(rig.position)
    np.testing.assert_allclose(direction, expected, atol=1e-12)
    assert 1.5 <= np.linalg.norm(rig.body.force) <= 3.0


def test_frozen_rig_ignores_forces_and_decays():
    rig = _rig()
    rig.body.velocity[:] = (4.0, 0.0, 0.0)
    rig.set_enabled(False)
    assert rig.state is CameraState.FROZEN

    rig.apply_impulse()
    assert rig.state is CameraState.FROZEN
    previous = rig.body.speed
    for _ in range(200):
        rig.tick()
        assert rig.body.speed < previous
        previous = rig.body.speed
    assert previous < 1e-3

    rig.set_enabled(True)
    assert rig.state is CameraState.WANDERING


def test_rotation_follows_velocity():
    rig = _rig(friction=0.0)
    rig.body.velocity[:] = (2.0, 1.0, 0.0)
    rx, ry = rig.rotation_x, rig.rotation_y
    rig.tick()
    assert rig.rotation_x == pytest.approx(rx + 1.0 * 0.01)
    assert rig.rotation_y == pytest.approx(ry + 2.0 * 0.01)


def test_reset_replaces_without_destroying():
    rig = _rig(seed=3)
    rig.apply_impulse()
    for _ in range(10):
        rig.tick()
    body = rig.body
    rig.reset()
    assert rig.body is body
    assert np.all(rig.velocity == 0.0)
    assert np.all(rig.body.force == 0.0)
    assert rig.state is CameraState.WANDERING


@pytest.mark.parametrize("name", PRESETS)
def test_every_preset_leaves_the_rig_in_its_shell(name):
    rig = _rig(seed=11)
    rig.apply_preset(name)
    assert isinstance(rig.domain, SphericalShell)
    assert rig.domain.contains(rig.position)
    assert rig.body.speed <= rig.body.max_speed + 1e-9
    for _ in range(50):
        rig.tick()
        assert rig.domain.contains(rig.position)


def test_preset_options_and_personality():
    rig = _rig(seed=12)
    rig.apply_preset("WIDE_VIEW", distance=1000.0)
    assert rig.domain.min_distance == 500.0
    assert rig.domain.max_distance == 1500.0
    rig.apply_preset("DRONE_SURFACE")
    assert rig.body.max_speed == 15.0
    rig.apply_preset("CHAOTIC")
    assert rig.body.max_speed == 30.0


def test_unknown_preset_is_rejected():
    with pytest.raises(ValueError):
        _rig().apply_preset("BARREL_ROLL")


def test_transform_exposes_numbers_only():
    rig = _rig()
    out = rig.transform()
    np.testing.assert_allclose(out["position"], rig.position)
    np.testing.assert_allclose(out["rotation"], [rig.rotation_x, rig.rotation_y, 0.0])
    np.testing.assert_allclose(out["scale"], [1.0, 1.0, 1.0])
