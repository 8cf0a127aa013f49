"""
Shared fixtures: synthetic hand poses for classifier, engine and interface tests.

The default hand has a scale of exactly 5 (wrist to index and middle
knuckles), so normalized distances such as 0.35 map onto exactly
representable offsets (1.75).
"""

import numpy as np
import pytest

from gesture_blocks.hand_pose import HandLandmark, HandPose, Handedness

HAND_SCALE = 5.0

_KNUCKLES = {
    'index': (-3.0, -4.0),
    'middle': (0.0, -5.0),
    'ring': (3.0, -4.0),
    'pinky': (5.0, -3.0),
}


def _finger_chain(finger, extended):
    mx, my = _KNUCKLES[finger]
    if extended:
        offsets = (0.0, -2.0, -3.5, -4.5)
    else:
        offsets = (0.0, -1.5, -0.5, 0.5)
    return [np.array([mx, my + dy, 0.0]) for dy in offsets]


def build_hand(extended=('index', 'middle', 'ring', 'pinky'),
               thumb_out=True,
               pinch=None,
               two_finger=None,
               handedness=Handedness.RIGHT,
               timestamp=0.0,
               scale=1.0,
               origin=(0.0, 0.0, 0.0)):
    """
    Build a synthetic HandPose.

    Args:
        extended: Fingers (index/middle/ring/pinky) to extend
        thumb_out: Whether the thumb points away from the palm
        pinch: Normalized thumb-to-index tip distance, or None for a relaxed thumb
        two_finger: Normalized index-to-middle tip distance, or None
        handedness: Hand side; left hands are mirrored in x
        timestamp: Pose timestamp in milliseconds
        scale: Uniform scale applied to every landmark
        origin: Translation applied after scaling
    """
    points = [np.zeros(3)]
    if thumb_out:
        points += [np.array(p) for p in ([-2.0, -1.0, 0.0], [-4.0, -2.0, 0.0],
                                         [-5.5, -3.0, 0.0], [-7.0, -4.0, 0.0])]
    else:
        points += [np.array(p) for p in ([-1.0, -1.0, 0.0], [-0.5, -2.0, 0.0],
                                         [0.0, -2.5, 0.0], [0.5, -3.0, 0.0])]
    for finger in ('index', 'middle', 'ring', 'pinky'):
        points += _finger_chain(finger, finger in extended)

    if two_finger is not None:
        points[12] = points[8] + np.array([two_finger * HAND_SCALE, 0.0, 0.0])
    if pinch is not None:
        points[4] = points[8] + np.array([pinch * HAND_SCALE, 0.0, 0.0])

    if handedness == Handedness.LEFT:
        points = [p * np.array([-1.0, 1.0, 1.0]) for p in points]

    origin = np.asarray(origin, dtype=np.float64)
    landmarks = tuple(HandLandmark.from_array(p * scale + origin) for p in points)
    return HandPose(handedness=handedness, landmarks=landmarks, timestamp=timestamp)


def build_flat_hand(points=None, handedness=Handedness.RIGHT):
    """HandPose with every landmark at the image centre, overridden by ``points``."""
    landmarks = [HandLandmark(0.5, 0.5, 0.0)] * 21
    for index, (x, y) in (points or {}).items():
        landmarks[index] = HandLandmark(x, y, 0.0)
    return HandPose(handedness=handedness, landmarks=tuple(landmarks), timestamp=0.0)


@pytest.fixture
def make_hand():
    return build_hand


@pytest.fixture
def make_flat_hand():
    return build_flat_hand
