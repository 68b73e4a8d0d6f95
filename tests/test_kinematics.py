import math

import numpy as np
import pytest

from stewart_platform.kinematics import (
    Pose,
    StewartPlatform,
    horn_endpoint,
    joint_positions,
    rotation_matrix,
    transform_points,
)


def test_joint_positions_on_circle():
    pts = joint_positions(76.0, [0.0, 90.0, -50.0])

    assert pts.shape == (3, 3)
    assert pts[0] == pytest.approx(np.array([76.0, 0.0, 0.0]))
    assert pts[1] == pytest.approx(np.array([0.0, 76.0, 0.0]), abs=1e-12)
    assert np.linalg.norm(pts[2]) == pytest.approx(76.0)
    assert np.all(pts[:, 2] == 0.0)


def test_static_geometry_matches_config(config):
    platform = StewartPlatform(config)

    assert platform.base_points.shape == (6, 3)
    for i in range(6):
        theta = math.radians(config.base_angles_deg[i])
        assert platform.base_points[i] == pytest.approx(
            np.array([config.base_radius * math.cos(theta), config.base_radius * math.sin(theta), 0.0])
        )
        assert np.linalg.norm(platform.platform_points_body[i]) == pytest.approx(config.platform_radius)


def test_static_geometry_is_read_only(config):
    platform = StewartPlatform(config)

    with pytest.raises(ValueError):
        platform.base_points[0, 0] = 1.0


def test_rotation_matrix_is_orthonormal():
    R = rotation_matrix(0.1, -0.2, 0.3)

    assert R @ R.T == pytest.approx(np.eye(3))
    assert np.linalg.det(R) == pytest.approx(1.0)


def test_rotation_matrix_is_zyx_composition():
    roll, pitch, yaw = 0.1, -0.2, 0.3
    cx, sx = math.cos(roll), math.sin(roll)
    cy, sy = math.cos(pitch), math.sin(pitch)
    cz, sz = math.cos(yaw), math.sin(yaw)
    Rx = np.array([[1, 0, 0], [0, cx, -sx], [0, sx, cx]])
    Ry = np.array([[cy, 0, sy], [0, 1, 0], [-sy, 0, cy]])
    Rz = np.array([[cz, -sz, 0], [sz, cz, 0], [0, 0, 1]])

    assert rotation_matrix(roll, pitch, yaw) == pytest.approx(Rz @ Ry @ Rx)


def test_transform_adds_translation_and_home_height():
    pts = joint_positions(60.0, [0, 60, 120, 180, 240, 300])
    q = transform_points(pts, Pose(1.0, -2.0, 3.0), initial_height=120.0)

    assert q[:, 0] == pytest.approx(pts[:, 0] + 1.0)
    assert q[:, 1] == pytest.approx(pts[:, 1] - 2.0)
    assert q[:, 2] == pytest.approx(np.full(6, 123.0))


def test_transform_yaw_rotates_about_z():
    pts = joint_positions(60.0, [0.0])
    q = transform_points(pts, Pose(yaw=math.pi / 2), initial_height=0.0)

    assert q[0] == pytest.approx(np.array([0.0, 60.0, 0.0]), abs=1e-12)


def test_neutral_pose_is_finite_and_symmetric(config):
    platform = StewartPlatform(config)
    platform.apply_pose(Pose())
    alpha = platform.alpha

    assert platform.is_valid()
    assert np.all(np.isfinite(alpha))
    assert np.all(np.abs(np.degrees(alpha)) <= 90.0)
    for i in range(6):
        assert alpha[i] == pytest.approx(alpha[(i + 3) % 6], abs=1e-9)


def test_solved_legs_close_the_loop(config):
    platform = StewartPlatform(config)
    platform.apply_pose(Pose.from_degrees(5.0, -3.0, 8.0, 2.0, -1.5, 3.0))

    horns = platform.horn_points
    q = platform.platform_points
    b = platform.base_points
    for i in range(6):
        assert np.linalg.norm(horns[i] - b[i]) == pytest.approx(config.horn_length)
        assert np.linalg.norm(q[i] - horns[i]) == pytest.approx(config.rod_length)


def test_apply_same_pose_is_bit_identical(config):
    platform = StewartPlatform(config)
    pose = Pose.from_degrees(3.0, 4.0, -5.0, 1.0, 2.0, -3.0)

    first = platform.apply_pose(pose)
    second = platform.apply_pose(pose)

    assert first.tobytes() == second.tobytes()


def test_apply_pose_values_matches_pose(config):
    platform = StewartPlatform(config)
    a = platform.apply_pose_values(1, 2, 3, 0.01, 0.02, 0.03)
    b = platform.apply_pose(Pose(1.0, 2.0, 3.0, 0.01, 0.02, 0.03))

    assert a.tobytes() == b.tobytes()
    assert platform.pose == Pose(1.0, 2.0, 3.0, 0.01, 0.02, 0.03)


def test_apply_pose_without_argument_goes_home(config):
    platform = StewartPlatform(config)
    platform.apply_pose(Pose(z=5.0))

    assert platform.apply_pose().tobytes() == StewartPlatform(config).alpha.tobytes()
    assert platform.pose.is_home()


def test_alpha_is_a_copy(config):
    platform = StewartPlatform(config)
    alpha = platform.alpha
    alpha[:] = 123.0

    assert not np.any(platform.alpha == 123.0)


def test_degree_accessor(config):
    platform = StewartPlatform(config)
    platform.apply_pose(Pose(z=10.0, roll=0.05))

    for i in range(6):
        assert platform.alpha_degree(i) == platform.alpha[i] / (math.pi / 180.0)
    assert platform.alpha_degrees() == [platform.alpha_degree(i) for i in range(6)]


@pytest.mark.parametrize("z, bound", [(200.0, 1.0), (-95.0, -1.0)])
def test_out_of_reach_pose_saturates(config, z, bound):
    platform = StewartPlatform(config)
    platform.apply_pose(Pose(z=z))
    alpha = platform.alpha

    assert platform.is_valid()
    for i, (L, M, N) in enumerate(platform.leg_terms()):
        val = L / math.sqrt(M * M + N * N)
        assert (val > 1.0) if bound > 0 else (val < -1.0)
        assert alpha[i] == math.asin(bound) - math.atan2(N, M)


def test_zero_denominator_gives_nan_for_that_leg_only(degenerate_config):
    platform = StewartPlatform(degenerate_config)
    platform.apply_pose(Pose(z=-degenerate_config.initial_height))
    alpha = platform.alpha

    L, M, N = platform.leg_terms()[2]
    assert M == 0.0 and N == 0.0
    assert math.isnan(alpha[2])
    assert not platform.is_valid()
    for i in (0, 1, 3, 4, 5):
        assert math.isfinite(alpha[i])
    assert np.all(np.isnan(platform.horn_points[2]))


def test_invalid_solve_recovers_on_next_pose(degenerate_config):
    platform = StewartPlatform(degenerate_config)
    platform.apply_pose(Pose(z=-degenerate_config.initial_height))
    assert not platform.is_valid()

    platform.apply_pose(Pose())

    assert platform.is_valid()


def test_horn_endpoint_formula():
    b = np.array([10.0, -5.0, 0.0])
    tip = horn_endpoint(0.0, math.pi / 2, b, 40.0)

    assert tip == pytest.approx(np.array([10.0, 35.0, 0.0]), abs=1e-12)
    assert np.all(np.isnan(horn_endpoint(math.nan, 0.0, b, 40.0)))


def test_pose_from_degrees_and_clamp():
    pose = Pose.from_degrees(50.0, -10.0, -40.0, 10.0, -2.0, -7.0)
    clamped = pose.clamped(35.0, math.radians(5.0))

    assert pose.roll == pytest.approx(math.radians(10.0))
    assert clamped.as_tuple() == pytest.approx(
        (35.0, -10.0, -35.0, math.radians(5.0), math.radians(-2.0), math.radians(-5.0))
    )
    assert Pose().is_home()
    assert not clamped.is_home()
