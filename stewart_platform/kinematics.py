"""Stewart Platform Kinematics

This module implements the inverse kinematics for a 6-DOF rotary Stewart
Platform, mapping a desired platform pose (translation + roll/pitch/yaw)
to the six servo horn angles.

Coordinate System:
- Origin at base center
- Z-axis vertical up
- Base and platform joints lie in z=0 of their own frames
- The platform rests INITIAL_HEIGHT above the base at the home pose

Physical Setup:
- Six servos on the base, each swinging a horn of fixed length
- Horn swing plane of leg i is fixed by its beta angle
- A rod of fixed length connects each horn tip to a platform joint

Angle Convention:
- alpha is measured in the horn's swing plane, 0 = horizontal
- All angles are radians internally, degrees only for display/wire
- An alpha of NaN marks a leg with no geometric solution

Domain safety:
- The asin argument is clamped into [-1, 1], so poses outside the
  workspace come out as saturated (fully extended/retracted) angles
- A zero M/N denominator yields NaN for that leg and nothing else
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .dimensions import LEG_COUNT, PlatformConfig


@dataclass(frozen=True)
class Pose:
    """Commanded platform pose. Translation in mm, rotation in radians."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    roll: float = 0.0
    pitch: float = 0.0
    yaw: float = 0.0

    @classmethod
    def from_degrees(cls, x, y, z, roll_deg, pitch_deg, yaw_deg) -> "Pose":
        return cls(
            float(x),
            float(y),
            float(z),
            math.radians(roll_deg),
            math.radians(pitch_deg),
            math.radians(yaw_deg),
        )

    @property
    def translation(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=float)

    @property
    def rotation(self) -> np.ndarray:
        return np.array([self.roll, self.pitch, self.yaw], dtype=float)

    def as_tuple(self) -> Tuple[float, float, float, float, float, float]:
        return (self.x, self.y, self.z, self.roll, self.pitch, self.yaw)

    def is_home(self) -> bool:
        return all(v == 0.0 for v in self.as_tuple())

    def clamped(self, max_translation: float, max_rotation: float) -> "Pose":
        """Limit every axis to the configured input range.

        Args:
            max_translation: Limit for x, y, z (mm)
            max_rotation: Limit for roll, pitch, yaw (radians)
        """
        t = np.clip(self.translation, -max_translation, max_translation)
        r = np.clip(self.rotation, -max_rotation, max_rotation)
        return Pose(*(float(v) for v in t), *(float(v) for v in r))


def joint_positions(radius: float, angles_deg: Sequence[float]) -> np.ndarray:
    """Place joints on a circle in the z=0 plane.

    Args:
        radius: Circle radius (mm)
        angles_deg: Angular position of each joint (degrees)

    Returns:
        (N, 3) array of joint positions
    """
    points = []
    for angle in angles_deg:
        theta = float(angle) * (math.pi / 180.0)
        points.append((radius * math.cos(theta), radius * math.sin(theta), 0.0))
    return np.array(points, dtype=float)


def rotation_matrix(roll: float, pitch: float, yaw: float) -> np.ndarray:
    """Roll-Pitch-Yaw rotation, R = Rz(yaw) @ Ry(pitch) @ Rx(roll)."""
    cx, sx = math.cos(roll), math.sin(roll)
    cy, sy = math.cos(pitch), math.sin(pitch)
    cz, sz = math.cos(yaw), math.sin(yaw)
    return np.array([
        [cz * cy, -sz * cx + cz * sy * sx, sz * sx + cz * sy * cx],
        [sz * cy, cz * cx + sz * sy * sx, -cz * sx + sz * sy * cx],
        [-sy, cy * sx, cy * cx],
    ])


def transform_points(points: np.ndarray, pose: Pose, initial_height: float) -> np.ndarray:
    """Move body-frame platform joints to world space for a pose.

    The product is written out per component so the summation order is
    fixed; q = R p + T + (0, 0, initial_height).

    Args:
        points: (N, 3) body-frame platform joints
        pose: Commanded pose
        initial_height: Resting height of the platform (mm)

    Returns:
        (N, 3) world-space platform joints
    """
    R = rotation_matrix(pose.roll, pose.pitch, pose.yaw)
    px, py, pz = points[:, 0], points[:, 1], points[:, 2]

    qx = R[0, 0] * px + R[0, 1] * py + R[0, 2] * pz
    qy = R[1, 0] * px + R[1, 1] * py + R[1, 2] * pz
    qz = R[2, 0] * px + R[2, 1] * py + R[2, 2] * pz

    q = np.column_stack([qx, qy, qz])
    q = q + pose.translation
    q = q + np.array([0.0, 0.0, initial_height])
    return q


def solve_leg(q: np.ndarray, b: np.ndarray, beta: float,
              horn_length: float, rod_length: float) -> Tuple[float, Tuple[float, float, float]]:
    """Solve the horn angle for one leg.

    Args:
        q: World-space platform joint [x, y, z]
        b: Base joint [x, y, z]
        beta: Horn swing plane angle (radians)
        horn_length: Horn length (mm)
        rod_length: Rod length (mm)

    Returns:
        tuple of:
            alpha: Horn angle in radians, NaN if M and N are both zero
            (L, M, N): Intermediate terms of the solve
    """
    qx, qy, qz = float(q[0]), float(q[1]), float(q[2])
    bx, by, bz = float(b[0]), float(b[1]), float(b[2])

    lx, ly, lz = qx - bx, qy - by, qz - bz
    L = (lx * lx + ly * ly + lz * lz) - rod_length * rod_length + horn_length * horn_length
    M = 2 * horn_length * (qz - bz)
    N = 2 * horn_length * (math.cos(beta) * (qx - bx) + math.sin(beta) * (qy - by))

    denom = math.sqrt(M * M + N * N)
    if denom == 0.0:
        return math.nan, (L, M, N)

    val = L / denom
    if val < -1.0:
        val = -1.0
    if val > 1.0:
        val = 1.0

    alpha = math.asin(val) - math.atan2(N, M)
    return alpha, (L, M, N)


def horn_endpoint(alpha: float, beta: float, b: np.ndarray, horn_length: float) -> np.ndarray:
    """Horn tip position for a solved angle (NaN in, NaN out)."""
    return np.array([
        horn_length * math.cos(alpha) * math.cos(beta) + b[0],
        horn_length * math.cos(alpha) * math.sin(beta) + b[1],
        horn_length * math.sin(alpha) + b[2],
    ])


class StewartPlatform:
    """Inverse kinematics engine for the six-leg platform.

    The base and body-frame platform joints are computed once from the
    configuration. `apply_pose` is the only way the commanded pose and the
    solved angles change; every call re-solves all six legs.
    """

    def __init__(self, config: PlatformConfig | None = None):
        self.config = config if config is not None else PlatformConfig()

        self.horn_length = float(self.config.horn_length)
        self.rod_length = float(self.config.rod_length)
        self.initial_height = float(self.config.initial_height)
        self.beta = np.array(self.config.beta_angles, dtype=float)

        # Static geometry
        self._b = joint_positions(self.config.base_radius, self.config.base_angles_deg)
        self._p = joint_positions(self.config.platform_radius, self.config.platform_angles_deg)
        self._b.flags.writeable = False
        self._p.flags.writeable = False

        self._pose = Pose()
        self._q = np.zeros((LEG_COUNT, 3))
        self._alpha = np.zeros(LEG_COUNT)
        self._horns = np.zeros((LEG_COUNT, 3))
        self._terms: List[Tuple[float, float, float]] = [(0.0, 0.0, 0.0)] * LEG_COUNT

        self.apply_pose(self._pose)

    # ---------------- pose ----------------
    def apply_pose(self, pose: Optional[Pose] = None) -> np.ndarray:
        """Set the commanded pose and re-solve every leg.

        Returns:
            Copy of the six solved angles (radians)
        """
        self._pose = pose if pose is not None else Pose()
        self._solve()
        return self.alpha

    def apply_pose_values(self, x: float, y: float, z: float,
                          roll: float, pitch: float, yaw: float) -> np.ndarray:
        """Same as `apply_pose` from raw values (mm and radians)."""
        return self.apply_pose(Pose(float(x), float(y), float(z), float(roll), float(pitch), float(yaw)))

    def _solve(self):
        q = transform_points(self._p, self._pose, self.initial_height)
        alpha = np.empty(LEG_COUNT)
        horns = np.empty((LEG_COUNT, 3))
        terms = []
        for i in range(LEG_COUNT):
            a, lmn = solve_leg(q[i], self._b[i], self.beta[i], self.horn_length, self.rod_length)
            alpha[i] = a
            horns[i] = horn_endpoint(a, self.beta[i], self._b[i], self.horn_length)
            terms.append(lmn)

        self._q = q
        self._alpha = alpha
        self._horns = horns
        self._terms = terms

    @property
    def pose(self) -> Pose:
        return self._pose

    # ---------------- outputs ----------------
    @property
    def alpha(self) -> np.ndarray:
        """Solved horn angles in radians (copy)."""
        return self._alpha.copy()

    def alpha_degree(self, index: int) -> float:
        return float(self._alpha[index]) / (math.pi / 180.0)

    def alpha_degrees(self) -> List[float]:
        return [self.alpha_degree(i) for i in range(LEG_COUNT)]

    def is_valid(self) -> bool:
        """True when no leg carries the NaN sentinel."""
        return not bool(np.isnan(self._alpha).any())

    def leg_terms(self) -> List[Tuple[float, float, float]]:
        """(L, M, N) per leg from the last solve."""
        return list(self._terms)

    @property
    def base_points(self) -> np.ndarray:
        return self._b

    @property
    def platform_points_body(self) -> np.ndarray:
        return self._p

    @property
    def platform_points(self) -> np.ndarray:
        """World-space platform joints for the current pose."""
        return self._q.copy()

    @property
    def horn_points(self) -> np.ndarray:
        return self._horns.copy()
