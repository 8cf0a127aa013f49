"""
Pose normalization: turns either tracking source into a canonical HandPose.

Camera-estimator landmarks are already in normalized image space and pass
through unchanged. Skeletal joints arrive in world space and are
re-expressed in a wrist-anchored, right-handed orthonormal frame so that
gesture thresholds do not depend on where the hand is or how it is turned.
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from .hand_pose import (
    HandLandmark, HandPose, Handedness, LANDMARK_COUNT,
    WRIST, INDEX_MCP, MIDDLE_TIP, now_ms,
)

logger = logging.getLogger(__name__)

# Skeletal joint names in landmark order. Finger metacarpals carry no
# counterpart in the 21-landmark layout and are not read.
SKELETAL_JOINT_ORDER = (
    'wrist',
    'thumb-metacarpal',
    'thumb-phalanx-proximal',
    'thumb-phalanx-distal',
    'thumb-tip',
    'index-finger-phalanx-proximal',
    'index-finger-phalanx-intermediate',
    'index-finger-phalanx-distal',
    'index-finger-tip',
    'middle-finger-phalanx-proximal',
    'middle-finger-phalanx-intermediate',
    'middle-finger-phalanx-distal',
    'middle-finger-tip',
    'ring-finger-phalanx-proximal',
    'ring-finger-phalanx-intermediate',
    'ring-finger-phalanx-distal',
    'ring-finger-tip',
    'pinky-finger-phalanx-proximal',
    'pinky-finger-phalanx-intermediate',
    'pinky-finger-phalanx-distal',
    'pinky-finger-tip',
)

WORLD_UP = np.array([0.0, 1.0, 0.0])
WORLD_X = np.array([1.0, 0.0, 0.0])
WORLD_BACK = np.array([0.0, 0.0, -1.0])

_MIN_LENGTH = 1e-9


@dataclass(frozen=True)
class RelativeLandmarkSource:
    """Landmarks already normalized to image space (camera estimator)."""
    landmarks: Sequence[Any]
    handedness: Any = Handedness.RIGHT
    timestamp: Optional[float] = None
    image_width: int = 0
    image_height: int = 0


@dataclass(frozen=True)
class SkeletalJointSource:
    """
    World-space joints from a native hand-skeleton API.

    ``joints`` maps joint names to world positions, or is None when the
    frame cannot report per-joint poses.
    """
    joints: Optional[Mapping[str, Sequence[float]]]
    handedness: Any = Handedness.LEFT
    timestamp: Optional[float] = None


PoseSource = Union[RelativeLandmarkSource, SkeletalJointSource]


def _is_degenerate(vector: np.ndarray) -> bool:
    return (not np.all(np.isfinite(vector))) or float(np.linalg.norm(vector)) < _MIN_LENGTH


def _ensure_normal(vector: np.ndarray, fallback: np.ndarray) -> np.ndarray:
    """Normalize ``vector``, substituting ``fallback`` when it is degenerate."""
    if _is_degenerate(vector):
        vector = fallback
    return vector / np.linalg.norm(vector)


def _perpendicular_fallback(axis: np.ndarray) -> np.ndarray:
    # The fixed fallback can be parallel to the axis it must be orthogonal to.
    for candidate in (WORLD_BACK, WORLD_X, WORLD_UP):
        projected = candidate - np.dot(candidate, axis) * axis
        if not _is_degenerate(projected):
            return projected / np.linalg.norm(projected)
    return WORLD_BACK.copy()


def build_local_frame(wrist: Sequence[float],
                      index_base: Sequence[float],
                      middle_tip: Sequence[float]) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Build the hand-local basis anchored at the wrist.

    Args:
        wrist: Wrist world position
        index_base: Index finger knuckle world position
        middle_tip: Middle finger tip world position

    Returns:
        Tuple of unit axes (x_axis, y_axis, z_axis), mutually perpendicular
        and right-handed
    """
    wrist = np.asarray(wrist, dtype=np.float64)
    index_base = np.asarray(index_base, dtype=np.float64)
    middle_tip = np.asarray(middle_tip, dtype=np.float64)

    y_axis = _ensure_normal(middle_tip - wrist, WORLD_UP)
    x_axis = _ensure_normal(index_base - wrist, WORLD_X)

    z_axis = np.cross(x_axis, y_axis)
    if _is_degenerate(z_axis):
        z_axis = _perpendicular_fallback(y_axis)
    else:
        z_axis = z_axis / np.linalg.norm(z_axis)

    # Re-orthogonalize: the provisional x axis need not be perpendicular to y.
    x_axis = _ensure_normal(np.cross(y_axis, z_axis), WORLD_X)
    return x_axis, y_axis, z_axis


def build_hand_pose_from_joints(joints: Optional[Mapping[str, Sequence[float]]],
                                handedness: Any,
                                timestamp: Optional[float] = None) -> Optional[HandPose]:
    """
    Convert skeletal world-space joints into a hand-local HandPose.

    Args:
        joints: Joint name -> world position mapping, or None
        handedness: Handedness tag from the tracking source
        timestamp: Frame timestamp in milliseconds (defaults to now)

    Returns:
        HandPose, or None when any required joint is missing or malformed
    """
    if joints is None:
        logger.debug("Frame does not report joint poses")
        return None

    positions = []
    for joint_name in SKELETAL_JOINT_ORDER:
        position = joints.get(joint_name)
        if position is None:
            logger.debug("Missing skeletal joint %s, dropping pose", joint_name)
            return None
        try:
            coords = np.asarray(position, dtype=np.float64).reshape(-1)
        except (TypeError, ValueError):
            coords = None
        if coords is None or coords.size < 3:
            logger.debug("Malformed skeletal joint %s, dropping pose", joint_name)
            return None
        positions.append(coords[:3])

    world = np.vstack(positions)
    wrist = world[WRIST]
    x_axis, y_axis, z_axis = build_local_frame(wrist, world[INDEX_MCP], world[MIDDLE_TIP])

    basis = np.vstack([x_axis, y_axis, z_axis])
    local = (world - wrist) @ basis.T

    return HandPose(
        handedness=Handedness.parse(handedness),
        landmarks=tuple(HandLandmark.from_array(row) for row in local),
        timestamp=now_ms() if timestamp is None else float(timestamp),
        image_width=1,
        image_height=1,
    )


def _coerce_landmark(landmark: Any) -> HandLandmark:
    if isinstance(landmark, HandLandmark):
        return landmark
    if isinstance(landmark, Mapping):
        return HandLandmark(float(landmark['x']), float(landmark['y']), float(landmark.get('z', 0.0)))
    if hasattr(landmark, 'x') and hasattr(landmark, 'y'):
        return HandLandmark(float(landmark.x), float(landmark.y), float(getattr(landmark, 'z', 0.0)))
    return HandLandmark.from_array(landmark)


def build_hand_pose_from_landmarks(landmarks: Sequence[Any],
                                   handedness: Any,
                                   timestamp: Optional[float] = None,
                                   image_width: int = 0,
                                   image_height: int = 0) -> Optional[HandPose]:
    """
    Wrap image-space landmarks into a HandPose without changing them.

    Landmarks may be HandLandmark instances, ``{'x', 'y', 'z'}`` dicts,
    MediaPipe landmark objects or plain ``(x, y, z)`` sequences.
    """
    if landmarks is None or len(landmarks) < LANDMARK_COUNT:
        return None

    return HandPose(
        handedness=Handedness.parse(handedness),
        landmarks=tuple(_coerce_landmark(lm) for lm in list(landmarks)[:LANDMARK_COUNT]),
        timestamp=now_ms() if timestamp is None else float(timestamp),
        image_width=int(image_width),
        image_height=int(image_height),
    )


def normalize_pose(source: Optional[PoseSource]) -> Optional[HandPose]:
    """Single conversion boundary from any tracking source to a HandPose."""
    if source is None:
        return None
    if isinstance(source, SkeletalJointSource):
        return build_hand_pose_from_joints(source.joints, source.handedness, source.timestamp)
    if isinstance(source, RelativeLandmarkSource):
        return build_hand_pose_from_landmarks(
            source.landmarks,
            source.handedness,
            source.timestamp,
            source.image_width,
            source.image_height,
        )
    raise TypeError(f"Unsupported pose source: {type(source).__name__}")
