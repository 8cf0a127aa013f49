"""
Gesture event engine: turns per-frame classifier output into edge-triggered events.
"""

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from .config import ENGINE_CONFIG
from .gesture_classifier import GestureClassifier
from .hand_pose import HandPose, PinchHistoryEntry, now_ms

logger = logging.getLogger(__name__)


class GestureEventType(Enum):
    """Discrete gesture events."""
    PINCH_START = "pinch-start"
    PINCH_END = "pinch-end"
    POINT_START = "point-start"
    POINT_END = "point-end"
    TWO_FINGER_PINCH_START = "two-finger-pinch-start"
    TWO_FINGER_PINCH_END = "two-finger-pinch-end"
    OPEN_PALM = "open-palm"
    TAP = "tap"


@dataclass(frozen=True)
class GestureEvent:
    type: GestureEventType
    hand: HandPose
    timestamp: float


@dataclass(frozen=True)
class GestureFrameState:
    """Classifier and engine output for one frame. Events cover this frame only."""
    hand: Optional[HandPose] = None
    is_pinching: bool = False
    is_open_palm: bool = False
    is_pointing: bool = False
    is_two_finger_pinch: bool = False
    pinch_strength: float = 0.0
    pinch_distance: float = 0.0
    pinch_normalized: float = 0.0
    two_finger_distance: float = 0.0
    two_finger_normalized: float = 0.0
    events: Tuple[GestureEvent, ...] = ()
    updated_at: float = 0.0

    def event_types(self) -> Tuple[GestureEventType, ...]:
        return tuple(event.type for event in self.events)

    def has_event(self, event_type: GestureEventType) -> bool:
        return event_type in self.event_types()


@dataclass
class PreviousGestureState:
    is_pinching: bool = False
    is_pointing: bool = False
    is_two_finger_pinch: bool = False
    is_open_palm: bool = False


# (snapshot attribute, start event, end event), in emission order
_EDGE_GESTURES = (
    ('is_pinching', GestureEventType.PINCH_START, GestureEventType.PINCH_END),
    ('is_pointing', GestureEventType.POINT_START, GestureEventType.POINT_END),
    ('is_two_finger_pinch', GestureEventType.TWO_FINGER_PINCH_START,
     GestureEventType.TWO_FINGER_PINCH_END),
)


class GestureEngine:
    """
    Per-frame gesture state machine.

    Carries the previous gesture snapshot, a bounded pinch history and the
    time of the last tap. Feed it one hand pose (or None) per frame through
    ``advance``; each call returns a fresh GestureFrameState.
    """

    def __init__(self,
                 classifier: Optional[GestureClassifier] = None,
                 config: Optional[Dict[str, float]] = None):
        """
        Initialize the gesture engine.

        Args:
            classifier: Classifier to use (defaults to GestureClassifier())
            config: Overrides for ENGINE_CONFIG
        """
        settings = dict(ENGINE_CONFIG)
        if config:
            unknown = set(config) - set(settings)
            if unknown:
                raise ValueError(f"Unknown engine settings: {sorted(unknown)}")
            settings.update(config)

        self.classifier = classifier or GestureClassifier()
        self.tap_cooldown_ms = settings['tap_cooldown_ms']
        self.pinch_history = deque(maxlen=int(settings['pinch_history_size']))
        self.previous = PreviousGestureState()
        self.last_tap_timestamp: Optional[float] = None
        self.frame_state = GestureFrameState()

    def reset(self, timestamp: Optional[float] = None) -> GestureFrameState:
        """
        Drop all carried gesture state.

        Active gestures end silently; consumers treat a missing hand as the
        end of every gesture.
        """
        self.pinch_history.clear()
        self.previous = PreviousGestureState()
        self.frame_state = GestureFrameState(updated_at=now_ms() if timestamp is None else timestamp)
        return self.frame_state

    def advance(self,
                hand: Optional[HandPose],
                enabled: bool = True,
                timestamp: Optional[float] = None) -> GestureFrameState:
        """
        Process one frame.

        Args:
            hand: Current hand pose, or None when tracking is lost
            enabled: Whether gesture tracking is active
            timestamp: Frame time in milliseconds (defaults to now)

        Returns:
            GestureFrameState for this frame
        """
        timestamp = now_ms() if timestamp is None else float(timestamp)
        if not enabled or hand is None:
            return self.reset(timestamp)

        try:
            metrics = self.classifier.classify(hand)
        except (ValueError, IndexError, TypeError, AttributeError):
            logger.exception("Could not classify hand pose, treating hand as lost")
            return self.reset(timestamp)

        self.pinch_history.append(PinchHistoryEntry(state=metrics.is_pinching, timestamp=timestamp))

        events = []
        for attribute, start_type, end_type in _EDGE_GESTURES:
            current = getattr(metrics, attribute)
            previous = getattr(self.previous, attribute)
            if current and not previous:
                events.append(GestureEvent(start_type, hand, timestamp))
            elif previous and not current:
                events.append(GestureEvent(end_type, hand, timestamp))

        if metrics.is_open_palm and not self.previous.is_open_palm:
            events.append(GestureEvent(GestureEventType.OPEN_PALM, hand, timestamp))

        tap_ready = (self.last_tap_timestamp is None or
                     timestamp - self.last_tap_timestamp > self.tap_cooldown_ms)
        if tap_ready and self.classifier.is_tap(self.pinch_history):
            events.append(GestureEvent(GestureEventType.TAP, hand, timestamp))
            self.last_tap_timestamp = timestamp

        if events:
            logger.debug("Gesture events at %.1f ms: %s", timestamp,
                         ", ".join(event.type.value for event in events))

        self.previous = PreviousGestureState(
            is_pinching=metrics.is_pinching,
            is_pointing=metrics.is_pointing,
            is_two_finger_pinch=metrics.is_two_finger_pinch,
            is_open_palm=metrics.is_open_palm,
        )

        self.frame_state = GestureFrameState(
            hand=hand,
            is_pinching=metrics.is_pinching,
            is_open_palm=metrics.is_open_palm,
            is_pointing=metrics.is_pointing,
            is_two_finger_pinch=metrics.is_two_finger_pinch,
            pinch_strength=metrics.pinch_strength,
            pinch_distance=metrics.pinch_distance,
            pinch_normalized=metrics.pinch_normalized,
            two_finger_distance=metrics.two_finger_distance,
            two_finger_normalized=metrics.two_finger_normalized,
            events=tuple(events),
            updated_at=timestamp,
        )
        return self.frame_state
