import math

import numpy as np
import pytest

from openrm.yawpnp import ArmorElevation, ArmorId, YawPnP

OBJECT_POINTS = [(-67.5, -27.5, 0.0), (-67.5, 27.5, 0.0), (67.5, -27.5, 0.0), (67.5, 27.5, 0.0)]


def _camera_transform():
    transform = np.eye(4)
    transform[:3, :3] = [[0, 0, 1], [-1, 0, 0], [0, -1, 0]]
    return transform


def _solver(true_yaw=0.6):
    solver = YawPnP(
        transform=_camera_transform(),
        intrinsic=[[600, 0, 320], [0, 600, 240], [0, 0, 1]],
        pose=[2.0, 0.0, 0.0, 1.0],
        elevation=ArmorElevation.UP_15,
    )
    solver.set_world_points(OBJECT_POINTS)
    solver.set_image_points(solver.project(solver.mapping(true_yaw)))
    return solver


def test_world_points_are_scaled_and_axis_swapped():
    solver = YawPnP()
    solver.set_world_points([(100.0, 50.0, 0.0)])
    assert np.allclose(solver.world_points, [[0.0, -0.1, -0.05, 1.0]])


def test_mapping_without_rotation_is_translation():
    solver = YawPnP(pose=[1.0, 2.0, 3.0, 1.0])
    solver.set_world_points(OBJECT_POINTS)
    mapped = solver.mapping(0.0)
    expected = solver.world_points.copy()
    expected[:, :3] += [1.0, 2.0, 3.0]
    assert np.allclose(mapped, expected)


def test_costs_vanish_at_true_yaw():
    solver = _solver(0.6)
    assert solver.pixel_cost(0.6) == pytest.approx(0.0, abs=1e-6)
    assert solver.angle_cost(0.6) == pytest.approx(0.0, abs=1e-5)
    assert solver.cost(0.6) == pytest.approx(0.0, abs=1e-5)
    assert solver.pixel_cost(0.9) > solver.pixel_cost(0.6)


def test_call_matches_cost():
    solver = _solver(0.4)
    assert solver(0.1) == pytest.approx(solver.cost(0.1))


def test_pixel_search_recovers_yaw():
    solver = _solver(0.6)
    found = solver.yaw_by_pixel_cost(0.0, 1.0, 0.001)
    assert abs(found - 0.6) < 0.01


def test_angle_search_recovers_yaw():
    solver = _solver(0.6)
    found = solver.yaw_by_angle_cost(0.3, 0.9, 0.001)
    assert abs(found - 0.6) < 0.02


def test_search_stays_in_bounds():
    solver = _solver(0.6)
    found = solver.yaw_by_pixel_cost(-0.2, 0.1, 0.01)
    assert -0.2 <= found <= 0.1


def test_cost_is_zero_without_enough_points():
    solver = _solver(0.2)
    solver.set_image_points([(1.0, 2.0), (3.0, 4.0)])
    assert solver.cost(0.2) == 0.0
    assert solver.pixel_cost(0.2) == 0.0
    assert solver.angle_cost(0.2) == 0.0


@pytest.mark.parametrize(
    "armor_id, expected",
    [
        (ArmorId.TOWER, ArmorElevation.DOWN_15),
        (ArmorId.HERO, ArmorElevation.UP_15),
        (ArmorId.SENTRY, ArmorElevation.UP_15),
        (ArmorId.UNKNOWN, ArmorElevation.UP_15),
    ],
)
def test_elevation_by_id(armor_id, expected):
    solver = YawPnP()
    assert solver.set_elevation_by_id(armor_id) is expected
    assert solver.elevation is expected


@pytest.mark.parametrize(
    "pitch, expected",
    [(1.5, ArmorElevation.UP_75), (-1.0, ArmorElevation.DOWN_15), (0.1, ArmorElevation.UP_15)],
)
def test_elevation_by_pitch(pitch, expected):
    solver = YawPnP()
    assert solver.set_elevation_by_pitch(pitch) is expected


def test_mix_picks_angle_near_zero_and_pixel_far_out():
    solver = YawPnP()
    assert solver.yaw_by_mix(0.1, 0.05) == 0.05
    assert solver.yaw_by_mix(0.5, 0.05) == 0.5
    assert solver.yaw_by_mix(0.3, 0.1) == pytest.approx(0.2)


def test_solve_adds_system_yaw():
    solver = _solver(0.6)
    solver.sys_yaw = 0.0
    base = solver.solve()
    angle = solver.yaw_by_angle_cost(-math.pi / 2, math.pi / 2, 0.03)
    pixel = solver.yaw_by_pixel_cost(-math.pi / 2, math.pi / 2, 0.03)
    assert base == pytest.approx(solver.yaw_by_mix(pixel, angle))
    assert -math.pi / 2 <= base <= math.pi / 2