"""
Canonical hand frame model shared by every tracking source.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Sequence, Tuple

import numpy as np


LANDMARK_COUNT = 21

# Landmark indices (MediaPipe order)
WRIST = 0
THUMB_CMC = 1
THUMB_MCP = 2
THUMB_IP = 3
THUMB_TIP = 4
INDEX_MCP = 5
INDEX_PIP = 6
INDEX_DIP = 7
INDEX_TIP = 8
MIDDLE_MCP = 9
MIDDLE_PIP = 10
MIDDLE_DIP = 11
MIDDLE_TIP = 12
RING_MCP = 13
RING_PIP = 14
RING_DIP = 15
RING_TIP = 16
PINKY_MCP = 17
PINKY_PIP = 18
PINKY_DIP = 19
PINKY_TIP = 20

# mcp, pip, dip, tip for each finger
FINGER_JOINTS = {
    'thumb': (THUMB_CMC, THUMB_MCP, THUMB_IP, THUMB_TIP),
    'index': (INDEX_MCP, INDEX_PIP, INDEX_DIP, INDEX_TIP),
    'middle': (MIDDLE_MCP, MIDDLE_PIP, MIDDLE_DIP, MIDDLE_TIP),
    'ring': (RING_MCP, RING_PIP, RING_DIP, RING_TIP),
    'pinky': (PINKY_MCP, PINKY_PIP, PINKY_DIP, PINKY_TIP),
}


def now_ms() -> float:
    """Monotonic clock in milliseconds, used for all gesture timestamps."""
    return time.perf_counter() * 1000.0


class Handedness(Enum):
    """Which hand a pose belongs to."""
    LEFT = "Left"
    RIGHT = "Right"

    @classmethod
    def parse(cls, value) -> "Handedness":
        """
        Map a tracking-source handedness tag onto a Handedness value.

        Both the skeletal API ("left"/"right"/"none") and MediaPipe
        ("Left"/"Right") tags are accepted. Anything unrecognised is
        treated as a left hand.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and value.strip().lower() == "right":
            return cls.RIGHT
        return cls.LEFT


@dataclass(frozen=True)
class HandLandmark:
    """A single hand joint position."""
    x: float
    y: float
    z: float

    @classmethod
    def from_array(cls, values: Sequence[float]) -> "HandLandmark":
        return cls(float(values[0]), float(values[1]), float(values[2]))

    def to_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float64)


@dataclass(frozen=True)
class HandPose:
    """
    One tracked hand for one frame.

    Attributes:
        handedness: Left or right hand
        landmarks: Exactly 21 landmarks in anatomical order
        timestamp: Capture time in milliseconds
        image_width: Source image width (1 for skeletal poses)
        image_height: Source image height (1 for skeletal poses)
    """
    handedness: Handedness
    landmarks: Tuple[HandLandmark, ...]
    timestamp: float
    image_width: int = 1
    image_height: int = 1

    def __post_init__(self):
        landmarks = tuple(self.landmarks)
        if len(landmarks) != LANDMARK_COUNT:
            raise ValueError(
                f"HandPose requires {LANDMARK_COUNT} landmarks, got {len(landmarks)}"
            )
        object.__setattr__(self, 'landmarks', landmarks)

    def landmark_array(self) -> np.ndarray:
        """Return the landmarks as a (21, 3) array."""
        return np.array([[lm.x, lm.y, lm.z] for lm in self.landmarks], dtype=np.float64)

    def point(self, index: int) -> np.ndarray:
        return self.landmarks[index].to_array()


@dataclass(frozen=True)
class PinchHistoryEntry:
    """Pinch state sampled for one frame, used for tap detection."""
    state: bool
    timestamp: float
