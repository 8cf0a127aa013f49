"""
Spatial projection: maps hand landmarks from camera space onto the AR surface plane.

Quaternions are stored as numpy arrays in (x, y, z, w) order. Cameras look
down their local -Z axis with +Y up.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from .config import PROJECTION_CONFIG
from .hand_pose import HandLandmark, HandPose, INDEX_TIP, WRIST

logger = logging.getLogger(__name__)

IDENTITY_QUATERNION = np.array([0.0, 0.0, 0.0, 1.0])


def _normalize(vector: np.ndarray) -> np.ndarray:
    length = np.linalg.norm(vector)
    if length == 0:
        return vector
    return vector / length


def quaternion_to_matrix(quaternion: Sequence[float]) -> np.ndarray:
    """Rotation matrix (3x3) for a unit quaternion."""
    x, y, z, w = _normalize(np.asarray(quaternion, dtype=np.float64))
    return np.array([
        [1 - 2 * (y * y + z * z), 2 * (x * y - z * w), 2 * (x * z + y * w)],
        [2 * (x * y + z * w), 1 - 2 * (x * x + z * z), 2 * (y * z - x * w)],
        [2 * (x * z - y * w), 2 * (y * z + x * w), 1 - 2 * (x * x + y * y)],
    ])


def quaternion_from_matrix(matrix: np.ndarray) -> np.ndarray:
    """Unit quaternion for a pure rotation matrix (upper-left 3x3 is used)."""
    m = np.asarray(matrix, dtype=np.float64)[:3, :3]
    trace = m[0, 0] + m[1, 1] + m[2, 2]
    if trace > 0:
        s = 0.5 / math.sqrt(trace + 1.0)
        w = 0.25 / s
        x = (m[2, 1] - m[1, 2]) * s
        y = (m[0, 2] - m[2, 0]) * s
        z = (m[1, 0] - m[0, 1]) * s
    elif m[0, 0] > m[1, 1] and m[0, 0] > m[2, 2]:
        s = 2.0 * math.sqrt(1.0 + m[0, 0] - m[1, 1] - m[2, 2])
        w = (m[2, 1] - m[1, 2]) / s
        x = 0.25 * s
        y = (m[0, 1] + m[1, 0]) / s
        z = (m[0, 2] + m[2, 0]) / s
    elif m[1, 1] > m[2, 2]:
        s = 2.0 * math.sqrt(1.0 + m[1, 1] - m[0, 0] - m[2, 2])
        w = (m[0, 2] - m[2, 0]) / s
        x = (m[0, 1] + m[1, 0]) / s
        y = 0.25 * s
        z = (m[1, 2] + m[2, 1]) / s
    else:
        s = 2.0 * math.sqrt(1.0 + m[2, 2] - m[0, 0] - m[1, 1])
        w = (m[1, 0] - m[0, 1]) / s
        x = (m[0, 2] + m[2, 0]) / s
        y = (m[1, 2] + m[2, 1]) / s
        z = 0.25 * s
    return _normalize(np.array([x, y, z, w]))


def look_rotation(z_axis: Sequence[float], up: Sequence[float] = (0.0, 1.0, 0.0)) -> np.ndarray:
    """
    Quaternion whose local +Z axis points along ``z_axis``.

    Args:
        z_axis: Desired local Z direction
        up: World up hint

    Returns:
        Unit quaternion (x, y, z, w)
    """
    up = np.asarray(up, dtype=np.float64)
    z = np.array(z_axis, dtype=np.float64)
    if np.linalg.norm(z) == 0:
        z = np.array([0.0, 0.0, 1.0])
    z = _normalize(z)

    x = np.cross(up, z)
    if np.linalg.norm(x) == 0:
        # up and z are parallel; nudge z off the up axis
        if abs(up[2]) == 1:
            z[0] += 0.0001
        else:
            z[2] += 0.0001
        z = _normalize(z)
        x = np.cross(up, z)
    x = _normalize(x)
    y = np.cross(z, x)
    return quaternion_from_matrix(np.column_stack([x, y, z]))


def slerp(start: Sequence[float], end: Sequence[float], t: float) -> np.ndarray:
    """Spherical interpolation between two unit quaternions along the shortest arc."""
    q0 = _normalize(np.asarray(start, dtype=np.float64))
    q1 = _normalize(np.asarray(end, dtype=np.float64))
    cos_half = float(np.dot(q0, q1))
    if cos_half < 0:
        q1 = -q1
        cos_half = -cos_half
    if cos_half > 0.9995:
        return _normalize(q0 + (q1 - q0) * t)
    half = math.acos(min(cos_half, 1.0))
    sin_half = math.sin(half)
    return (math.sin((1 - t) * half) * q0 + math.sin(t * half) * q1) / sin_half


def lerp(start: Sequence[float], end: Sequence[float], t: float) -> np.ndarray:
    start = np.asarray(start, dtype=np.float64)
    return start + (np.asarray(end, dtype=np.float64) - start) * t


class PerspectiveCamera:
    """Minimal perspective camera: pose plus projection, enough to unproject points."""

    def __init__(self,
                 fov: float = PROJECTION_CONFIG['camera_fov'],
                 aspect: float = 1.0,
                 near: float = PROJECTION_CONFIG['camera_near'],
                 far: float = PROJECTION_CONFIG['camera_far'],
                 position: Sequence[float] = (0.0, 0.0, 0.0),
                 orientation: Sequence[float] = IDENTITY_QUATERNION):
        """
        Initialize the camera.

        Args:
            fov: Vertical field of view in degrees
            aspect: Viewport width / height
            near: Near clipping distance
            far: Far clipping distance
            position: World position
            orientation: World orientation quaternion (x, y, z, w)
        """
        self.fov = fov
        self.aspect = aspect
        self.near = near
        self.far = far
        self.position = np.array(position, dtype=np.float64)
        self.orientation = _normalize(np.array(orientation, dtype=np.float64))
        self._projection_override = None

    @classmethod
    def from_matrices(cls, projection_matrix: np.ndarray, world_matrix: np.ndarray) -> "PerspectiveCamera":
        """Build a camera from an AR view's projection and camera-to-world matrices."""
        world = np.asarray(world_matrix, dtype=np.float64).reshape(4, 4)
        camera = cls(position=world[:3, 3], orientation=quaternion_from_matrix(world))
        camera._projection_override = np.asarray(projection_matrix, dtype=np.float64).reshape(4, 4)
        return camera

    @property
    def projection_matrix(self) -> np.ndarray:
        if self._projection_override is not None:
            return self._projection_override
        f = 1.0 / math.tan(math.radians(self.fov) / 2.0)
        near, far = self.near, self.far
        return np.array([
            [f / self.aspect, 0.0, 0.0, 0.0],
            [0.0, f, 0.0, 0.0],
            [0.0, 0.0, (far + near) / (near - far), 2.0 * far * near / (near - far)],
            [0.0, 0.0, -1.0, 0.0],
        ])

    @property
    def world_matrix(self) -> np.ndarray:
        matrix = np.eye(4)
        matrix[:3, :3] = quaternion_to_matrix(self.orientation)
        matrix[:3, 3] = self.position
        return matrix

    def look_at(self, target: Sequence[float], up: Sequence[float] = (0.0, 1.0, 0.0)) -> "PerspectiveCamera":
        # Cameras face -Z, so local +Z points from the target back to the eye.
        self.orientation = look_rotation(self.position - np.asarray(target, dtype=np.float64), up)
        return self

    def unproject(self, ndc: Sequence[float]) -> np.ndarray:
        """Map a normalized-device-coordinate point into world space."""
        point = np.append(np.asarray(ndc, dtype=np.float64), 1.0)
        world = self.world_matrix @ np.linalg.inv(self.projection_matrix) @ point
        return world[:3] / world[3]


@dataclass
class WorldPoint:
    position: np.ndarray


@dataclass
class ReticlePose:
    """Pose of the detected AR surface, used to place new blocks."""
    position: np.ndarray
    orientation: np.ndarray


def pose_from_reticle(position: Sequence[float], orientation: Sequence[float]) -> ReticlePose:
    return ReticlePose(
        position=np.array(position, dtype=np.float64),
        orientation=np.array(orientation, dtype=np.float64),
    )


def _fallback_point(fallback: Optional[Sequence[float]]) -> Optional[WorldPoint]:
    if fallback is None:
        return None
    return WorldPoint(position=np.array(fallback, dtype=np.float64))


def landmark_to_world(landmark: HandLandmark,
                      camera: PerspectiveCamera,
                      plane_height: float,
                      fallback: Optional[Sequence[float]] = None) -> Optional[WorldPoint]:
    """
    Cast a ray from the camera through a landmark onto the plane y = plane_height.

    Args:
        landmark: Landmark with x/y in normalized image space
        camera: Camera the landmark was observed from
        plane_height: Height of the detected AR surface
        fallback: Position returned when the ray misses the plane

    Returns:
        WorldPoint, the fallback wrapped as a WorldPoint, or None
    """
    ndc = (landmark.x * 2 - 1, 1 - landmark.y * 2, PROJECTION_CONFIG['ndc_depth'])
    origin = camera.position.copy()
    direction = _normalize(camera.unproject(ndc) - origin)

    if abs(direction[1]) < PROJECTION_CONFIG['parallel_epsilon']:
        logger.debug("Ray parallel to plane at height %.3f", plane_height)
        return _fallback_point(fallback)

    distance = (plane_height - origin[1]) / direction[1]
    if not math.isfinite(distance) or distance < 0:
        logger.debug("Plane at height %.3f is behind the ray origin", plane_height)
        return _fallback_point(fallback)

    return WorldPoint(position=origin + direction * distance)


def hand_direction(hand: HandPose,
                   camera: PerspectiveCamera,
                   plane_height: float) -> Optional[np.ndarray]:
    """
    Wrist-to-index-tip direction on the surface plane.

    Returns:
        Unit vector, or None if either landmark misses the plane or they coincide
    """
    wrist_point = landmark_to_world(hand.landmarks[WRIST], camera, plane_height)
    tip_point = landmark_to_world(hand.landmarks[INDEX_TIP], camera, plane_height)
    if wrist_point is None or tip_point is None:
        return None

    direction = tip_point.position - wrist_point.position
    if float(np.dot(direction, direction)) == 0:
        return None
    return direction / np.linalg.norm(direction)
