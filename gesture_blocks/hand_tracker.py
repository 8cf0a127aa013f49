"""
Hand tracking module using MediaPipe as the camera-based landmark source.
"""

import logging
from typing import Optional, Tuple

import cv2
import mediapipe as mp
import numpy as np

from .config import HAND_TRACKING_CONFIG
from .hand_pose import HandPose, now_ms
from .pose_normalizer import RelativeLandmarkSource, normalize_pose

logger = logging.getLogger(__name__)


class HandTracker:
    """Real-time single hand tracking using MediaPipe."""

    def __init__(self,
                 static_image_mode: bool = HAND_TRACKING_CONFIG['static_image_mode'],
                 max_num_hands: int = HAND_TRACKING_CONFIG['max_num_hands'],
                 model_complexity: int = HAND_TRACKING_CONFIG['model_complexity'],
                 min_detection_confidence: float = HAND_TRACKING_CONFIG['min_detection_confidence'],
                 min_tracking_confidence: float = HAND_TRACKING_CONFIG['min_tracking_confidence']):
        """
        Initialize the hand tracker.

        Args:
            static_image_mode: Whether to treat input as static images
            max_num_hands: Maximum number of hands to detect
            model_complexity: Complexity of the hand landmark model (0-1)
            min_detection_confidence: Minimum confidence for hand detection
            min_tracking_confidence: Minimum confidence for hand tracking
        """
        self.mp_hands = mp.solutions.hands
        self.mp_drawing = mp.solutions.drawing_utils
        self.mp_drawing_styles = mp.solutions.drawing_styles

        self.hands = self.mp_hands.Hands(
            static_image_mode=static_image_mode,
            max_num_hands=max_num_hands,
            model_complexity=model_complexity,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence
        )
        logger.info("Initialized MediaPipe hand tracker")

    def detect_hand(self, image: np.ndarray,
                    draw_landmarks: bool = True) -> Tuple[np.ndarray, Optional[HandPose]]:
        """
        Detect the first hand in the input image.

        Args:
            image: Input image as numpy array (BGR format)
            draw_landmarks: Whether to draw the hand skeleton on the output

        Returns:
            Tuple of (annotated_image, hand_pose or None)
        """
        timestamp = now_ms()
        height, width = image.shape[:2]

        # Convert BGR to RGB
        rgb_image = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
        rgb_image.flags.writeable = False

        results = self.hands.process(rgb_image)

        rgb_image.flags.writeable = True
        annotated_image = cv2.cvtColor(rgb_image, cv2.COLOR_RGB2BGR)

        if not results.multi_hand_landmarks or not results.multi_handedness:
            return annotated_image, None

        hand_landmarks = results.multi_hand_landmarks[0]
        handedness = results.multi_handedness[0].classification[0].label

        if draw_landmarks:
            self.mp_drawing.draw_landmarks(
                annotated_image,
                hand_landmarks,
                self.mp_hands.HAND_CONNECTIONS,
                self.mp_drawing_styles.get_default_hand_landmarks_style(),
                self.mp_drawing_styles.get_default_hand_connections_style()
            )

        pose = normalize_pose(RelativeLandmarkSource(
            landmarks=hand_landmarks.landmark,
            handedness=handedness,
            timestamp=timestamp,
            image_width=width,
            image_height=height,
        ))
        return annotated_image, pose

    def close(self):
        """Clean up resources."""
        if self.hands:
            self.hands.close()
            self.hands = None
