"""Armour yaw refinement by reprojecting a fixed-pitch armour model onto the image."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Sequence

import numpy as np

ANGLE_COST_RATIO = 4.0

# Corner order walked around the armour outline.
_EDGE_ORDER = (0, 1, 3, 2)

_MIX_MID = 0.3
_MIX_LEN = 0.1


class ArmorElevation(Enum):
    """Known mounting pitch of an armour plate."""

    UP_15 = "up15"
    UP_75 = "up75"
    DOWN_15 = "down15"


class ArmorId(Enum):
    """Robot identity carried by an armour plate."""

    SENTRY = 0
    HERO = 1
    ENGINEER = 2
    INFANTRY_3 = 3
    INFANTRY_4 = 4
    INFANTRY_5 = 5
    TOWER = 6
    UNKNOWN = 7


def _float_array(value, columns: int) -> np.ndarray:
    array = np.asarray(value, dtype=float)
    if array.size == 0:
        return np.empty((0, columns))
    return array.reshape(-1, columns)


@dataclass
class YawPnP:
    """Search for the armour yaw whose reprojection best matches the detected corners.

    ``transform`` maps solvePnP camera coordinates to world coordinates,
    ``intrinsic`` is the 3x3 camera matrix and ``pose`` the armour centre in
    world coordinates (homogeneous).
    """

    sys_yaw: float = 0.0
    transform: np.ndarray = field(default_factory=lambda: np.eye(4))
    intrinsic: np.ndarray = field(default_factory=lambda: np.eye(3))
    pose: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0, 0.0, 1.0]))
    elevation: ArmorElevation | None = None
    world_points: np.ndarray = field(default_factory=lambda: np.empty((0, 4)))
    image_points: np.ndarray = field(default_factory=lambda: np.empty((0, 2)))
    pitch_up_15: float = math.radians(15.0)
    pitch_up_75: float = math.radians(75.0)
    pitch_down_15: float = math.radians(-15.0)
    boundary_up: float = math.radians(45.0)
    boundary_down: float = 0.0

    def __post_init__(self) -> None:
        self.transform = np.asarray(self.transform, dtype=float).reshape(4, 4)
        self.intrinsic = np.asarray(self.intrinsic, dtype=float).reshape(3, 3)
        self.pose = np.asarray(self.pose, dtype=float).reshape(4)
        self.world_points = _float_array(self.world_points, 4)
        self.image_points = _float_array(self.image_points, 2)

    @property
    def transform_inv(self) -> np.ndarray:
        return np.linalg.inv(self.transform)

    def set_world_points(self, object_points: Iterable[Sequence[float]]) -> None:
        """Store armour model corners given in millimetres on the plate plane."""
        self.world_points = _float_array(
            [(0.0, -p[0] * 1e-3, -p[1] * 1e-3, 1.0) for p in object_points], 4
        )

    def set_image_points(self, image_points: Iterable[Sequence[float]]) -> None:
        """Store detected pixel corners."""
        self.image_points = _float_array([(p[0], p[1]) for p in image_points], 2)

    def set_elevation_by_id(self, armor_id: ArmorId) -> ArmorElevation:
        elevation = ArmorElevation.DOWN_15 if armor_id is ArmorId.TOWER else ArmorElevation.UP_15
        self.elevation = elevation
        return elevation

    def set_elevation_by_pitch(self, pitch: float) -> ArmorElevation:
        if pitch > self.boundary_up:
            elevation = ArmorElevation.UP_75
        elif pitch < self.boundary_down:
            elevation = ArmorElevation.DOWN_15
        else:
            elevation = ArmorElevation.UP_15
        self.elevation = elevation
        return elevation

    def _pitch(self) -> float:
        return {
            ArmorElevation.UP_15: self.pitch_up_15,
            ArmorElevation.UP_75: self.pitch_up_75,
            ArmorElevation.DOWN_15: self.pitch_down_15,
        }.get(self.elevation, 0.0)

    def mapping(self, append_yaw: float) -> np.ndarray:
        """World coordinates of the model corners for the given yaw offset."""
        yaw = self.sys_yaw + append_yaw
        pitch = -self._pitch()
        cy, sy = math.cos(yaw), math.sin(yaw)
        cp, sp = math.cos(pitch), math.sin(pitch)
        matrix = np.array([
            [cy * cp, -sy, -sp * cy, self.pose[0]],
            [sy * cp, cy, -sp * sy, self.pose[1]],
            [sp, 0.0, cp, self.pose[2]],
            [0.0, 0.0, 0.0, 1.0],
        ])
        return self.world_points @ matrix.T

    def project(self, points) -> np.ndarray:
        """Pixel coordinates of homogeneous world points."""
        points = _float_array(points, 4)
        camera = (points @ self.transform_inv.T)[:, :3]
        projected = camera @ self.intrinsic.T
        return projected[:, :2] / camera[:, 2:3]

    def _edges(self, projected: np.ndarray):
        if len(self.image_points) != len(projected) or len(projected) < 4:
            return None
        edges = []
        for k, this in enumerate(_EDGE_ORDER):
            nxt = _EDGE_ORDER[(k + 1) % 4]
            pixel_line = self.image_points[nxt] - self.image_points[this]
            project_line = projected[nxt] - projected[this]
            this_dist = np.linalg.norm(self.image_points[this] - projected[this])
            next_dist = np.linalg.norm(self.image_points[nxt] - projected[nxt])
            edges.append((pixel_line, project_line, this_dist, next_dist))
        return edges

    @staticmethod
    def _pixel_term(pixel_line, project_line, this_dist, next_dist) -> float:
        pixel_norm = np.linalg.norm(pixel_line)
        line_dist = abs(pixel_norm - np.linalg.norm(project_line))
        return float((0.5 * (this_dist + next_dist) + line_dist) / pixel_norm)

    @staticmethod
    def _angle_term(pixel_line, project_line) -> float:
        denom = np.linalg.norm(pixel_line) * np.linalg.norm(project_line)
        cos_angle = float(np.dot(pixel_line, project_line) / denom)
        return abs(math.acos(min(1.0, max(-1.0, cos_angle))))

    def _pixel_cost_of(self, projected: np.ndarray) -> float:
        edges = self._edges(projected)
        if edges is None:
            return 0.0
        return sum(self._pixel_term(*edge) for edge in edges)

    def _angle_cost_of(self, projected: np.ndarray) -> float:
        edges = self._edges(projected)
        if edges is None:
            return 0.0
        return sum(self._angle_term(edge[0], edge[1]) for edge in edges)

    def _cost_of(self, projected: np.ndarray, append_yaw: float) -> float:
        edges = self._edges(projected)
        if edges is None:
            return 0.0
        ratio = abs((1 - math.exp(-append_yaw)) / (1 + math.exp(-append_yaw)))
        cost = 0.0
        for pixel_line, project_line, this_dist, next_dist in edges:
            pixel_dist = self._pixel_term(pixel_line, project_line, this_dist, next_dist)
            angle_dist = self._angle_term(pixel_line, project_line) * ANGLE_COST_RATIO
            cost += math.sqrt((pixel_dist * ratio) ** 2 + (angle_dist * (1 - ratio)) ** 2)
        return cost

    def cost(self, append_yaw: float) -> float:
        """Blend of pixel and angle costs, weighted by the size of the yaw offset."""
        return self._cost_of(self.project(self.mapping(append_yaw)), append_yaw)

    def pixel_cost(self, append_yaw: float) -> float:
        return self._pixel_cost_of(self.project(self.mapping(append_yaw)))

    def angle_cost(self, append_yaw: float) -> float:
        return self._angle_cost_of(self.project(self.mapping(append_yaw)))

    def __call__(self, append_yaw: float) -> float:
        return self.cost(append_yaw)

    @staticmethod
    def _ternary(function, left: float, right: float, epsilon: float) -> float:
        while right - left > epsilon:
            mid1 = left + (right - left) / 3
            mid2 = right - (right - left) / 3
            if function(mid1) < function(mid2):
                right = mid2
            else:
                left = mid1
        return (left + right) / 2

    def yaw_by_pixel_cost(self, left: float, right: float, epsilon: float) -> float:
        return self._ternary(self.pixel_cost, left, right, epsilon)

    def yaw_by_angle_cost(self, left: float, right: float, epsilon: float) -> float:
        return self._ternary(self.angle_cost, left, right, epsilon)

    def yaw_by_mix(self, pixel_yaw: float, angle_yaw: float) -> float:
        """Trust the angle cost near zero, the pixel cost further out, blend in between."""
        size = abs(pixel_yaw)
        ratio = 0.5 + 0.5 * math.sin(math.pi * (size - _MIX_MID) / _MIX_LEN)
        if _MIX_MID - _MIX_LEN / 2 < size < _MIX_MID + _MIX_LEN / 2:
            return ratio * pixel_yaw + (1 - ratio) * angle_yaw
        if size <= _MIX_MID - _MIX_LEN / 2:
            return angle_yaw
        return pixel_yaw

    def solve(self) -> float:
        """Absolute armour yaw: system yaw plus the best offset in (-pi/2, pi/2)."""
        angle_yaw = self.yaw_by_angle_cost(-math.pi / 2, math.pi / 2, 0.03)
        pixel_yaw = self.yaw_by_pixel_cost(-math.pi / 2, math.pi / 2, 0.03)
        return self.yaw_by_mix(pixel_yaw, angle_yaw) + self.sys_yaw