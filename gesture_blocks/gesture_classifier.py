"""
Gesture classification module: per-frame metrics and predicates for one hand.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

import numpy as np

from .config import GESTURE_CONFIG
from .hand_pose import (
    FINGER_JOINTS, HandPose, Handedness, PinchHistoryEntry,
    WRIST, THUMB_TIP, INDEX_MCP, INDEX_TIP, MIDDLE_MCP, MIDDLE_TIP,
)


@dataclass(frozen=True)
class GestureMetrics:
    """Everything the classifier derives from a single hand frame."""
    hand_scale: float
    pinch_distance: float
    pinch_normalized: float
    pinch_strength: float
    two_finger_distance: float
    two_finger_normalized: float
    is_pinching: bool
    is_two_finger_pinch: bool
    is_open_palm: bool
    is_pointing: bool
    finger_states: Dict[str, bool]


def _distance(hand: HandPose, a: int, b: int) -> float:
    return float(np.linalg.norm(hand.point(a) - hand.point(b)))


def is_tap_gesture(history: Sequence[PinchHistoryEntry],
                   max_interval_ms: float = GESTURE_CONFIG['tap_max_interval_ms']) -> bool:
    """
    Detect a rapid pinch-and-release from the two most recent history entries.

    Args:
        history: Pinch history, oldest first
        max_interval_ms: Longest allowed gap between pinch and release

    Returns:
        True if the last two entries are (pinched, released) within the interval
    """
    if len(history) < 2:
        return False
    last = history[-1]
    previous = history[-2]
    return previous.state and not last.state and last.timestamp - previous.timestamp <= max_interval_ms


class GestureClassifier:
    """Stateless classifier for the pinch, point and open palm gestures."""

    def __init__(self, config: Optional[Dict[str, float]] = None):
        """
        Initialize the gesture classifier.

        Args:
            config: Overrides for GESTURE_CONFIG thresholds
        """
        settings = dict(GESTURE_CONFIG)
        if config:
            unknown = set(config) - set(settings)
            if unknown:
                raise ValueError(f"Unknown gesture settings: {sorted(unknown)}")
            settings.update(config)

        self.min_hand_scale = settings['min_hand_scale']
        self.pinch_threshold = settings['pinch_threshold']
        self.pinch_strength_range = settings['pinch_strength_range']
        self.two_finger_threshold = settings['two_finger_threshold']
        self.open_palm_min_digits = settings['open_palm_min_digits']
        self.tap_max_interval_ms = settings['tap_max_interval_ms']

    def hand_scale(self, hand: HandPose) -> float:
        """Mean wrist-to-knuckle span, used to make distances size invariant."""
        span = (_distance(hand, WRIST, INDEX_MCP) + _distance(hand, WRIST, MIDDLE_MCP)) * 0.5
        return max(span, self.min_hand_scale)

    def pinch_metrics(self, hand: HandPose) -> Tuple[float, float, float]:
        """
        Thumb to index tip pinch metrics.

        Returns:
            Tuple of (pinch_distance, normalized_pinch, pinch_strength)
        """
        pinch_distance = _distance(hand, THUMB_TIP, INDEX_TIP)
        normalized = pinch_distance / self.hand_scale(hand)
        strength = float(np.clip(1.0 - normalized / self.pinch_strength_range, 0.0, 1.0))
        return pinch_distance, normalized, strength

    def two_finger_metrics(self, hand: HandPose) -> Tuple[float, float]:
        """
        Index to middle tip distance.

        Returns:
            Tuple of (absolute_distance, normalized_distance)
        """
        absolute = _distance(hand, INDEX_TIP, MIDDLE_TIP)
        return absolute, absolute / self.hand_scale(hand)

    def is_pinching(self, hand: HandPose) -> bool:
        _, normalized, _ = self.pinch_metrics(hand)
        return normalized < self.pinch_threshold

    def is_two_finger_pinch(self, hand: HandPose) -> bool:
        _, normalized = self.two_finger_metrics(hand)
        return normalized < self.two_finger_threshold

    def is_finger_extended(self, hand: HandPose, finger: str) -> bool:
        """
        Check if a finger is extended.

        Each joint must sit higher (smaller y) than its parent, going
        mcp -> pip -> dip/tip.
        """
        mcp, pip, dip, tip = (hand.landmarks[i] for i in FINGER_JOINTS[finger])
        return tip.y < pip.y and dip.y < pip.y and pip.y < mcp.y

    def _is_thumb_extended(self, hand: HandPose) -> bool:
        # Sideways test: a right thumb points to smaller x than the wrist.
        thumb_tip = hand.landmarks[THUMB_TIP]
        wrist = hand.landmarks[WRIST]
        if thumb_tip.x < wrist.x:
            return hand.handedness == Handedness.RIGHT
        return hand.handedness == Handedness.LEFT

    def _get_finger_states(self, hand: HandPose) -> Dict[str, bool]:
        finger_states = {'thumb': self._is_thumb_extended(hand)}
        for finger in ('index', 'middle', 'ring', 'pinky'):
            finger_states[finger] = self.is_finger_extended(hand, finger)
        return finger_states

    def _is_open_palm(self, finger_states: Dict[str, bool]) -> bool:
        """At least four of the five digits extended."""
        return sum(finger_states.values()) >= self.open_palm_min_digits

    def _is_pointing_gesture(self, finger_states: Dict[str, bool]) -> bool:
        """Only the index finger raised; the thumb is ignored."""
        return (finger_states['index'] and
                not finger_states['middle'] and
                not finger_states['ring'] and
                not finger_states['pinky'])

    def is_open_palm(self, hand: HandPose) -> bool:
        return self._is_open_palm(self._get_finger_states(hand))

    def is_pointing(self, hand: HandPose) -> bool:
        return self._is_pointing_gesture(self._get_finger_states(hand))

    def is_tap(self, history: Sequence[PinchHistoryEntry]) -> bool:
        return is_tap_gesture(history, self.tap_max_interval_ms)

    def classify(self, hand: HandPose) -> GestureMetrics:
        """
        Compute every metric and predicate for one hand frame.

        Args:
            hand: Normalized hand pose

        Returns:
            GestureMetrics snapshot
        """
        scale = self.hand_scale(hand)
        pinch_distance, pinch_normalized, pinch_strength = self.pinch_metrics(hand)
        two_finger_distance, two_finger_normalized = self.two_finger_metrics(hand)
        finger_states = self._get_finger_states(hand)

        return GestureMetrics(
            hand_scale=scale,
            pinch_distance=pinch_distance,
            pinch_normalized=pinch_normalized,
            pinch_strength=pinch_strength,
            two_finger_distance=two_finger_distance,
            two_finger_normalized=two_finger_normalized,
            is_pinching=pinch_normalized < self.pinch_threshold,
            is_two_finger_pinch=two_finger_normalized < self.two_finger_threshold,
            is_open_palm=self._is_open_palm(finger_states),
            is_pointing=self._is_pointing_gesture(finger_states),
            finger_states=finger_states,
        )
