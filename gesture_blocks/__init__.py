"""
Gesture Blocks AR
Hand pose normalization, gesture events and surface projection for building blocks in AR.
"""

from .hand_pose import HandLandmark, HandPose, Handedness, PinchHistoryEntry
from .pose_normalizer import RelativeLandmarkSource, SkeletalJointSource, normalize_pose
from .gesture_classifier import GestureClassifier, GestureMetrics, is_tap_gesture
from .gesture_engine import GestureEngine, GestureEvent, GestureEventType, GestureFrameState
from .spatial_projector import PerspectiveCamera, hand_direction, landmark_to_world
from .block_manager import BlockManager, BlockMaterial, ScaleSession, compute_scale
from .hand_tracker import HandTracker
from .ar_interface import ARInterface

__version__ = "1.0.0"
__all__ = [
    "HandLandmark", "HandPose", "Handedness", "PinchHistoryEntry",
    "RelativeLandmarkSource", "SkeletalJointSource", "normalize_pose",
    "GestureClassifier", "GestureMetrics", "is_tap_gesture",
    "GestureEngine", "GestureEvent", "GestureEventType", "GestureFrameState",
    "PerspectiveCamera", "hand_direction", "landmark_to_world",
    "BlockManager", "BlockMaterial", "ScaleSession", "compute_scale",
    "HandTracker", "ARInterface",
]
