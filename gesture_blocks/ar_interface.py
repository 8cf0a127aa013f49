"""
AR Interface module: drives the gesture pipeline once per frame and applies it to blocks.
"""

import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from .block_manager import Block, BlockManager, BlockMaterial, ScaleSession, compute_scale, cycle_material
from .config import CAMERA_CONFIG, DISPLAY_CONFIG, MANIPULATION_CONFIG
from .gesture_engine import GestureEngine, GestureEvent, GestureEventType, GestureFrameState
from .hand_pose import HandPose, INDEX_TIP
from .hand_tracker import HandTracker
from .pose_normalizer import SkeletalJointSource, normalize_pose
from .spatial_projector import (
    IDENTITY_QUATERNION, PerspectiveCamera, ReticlePose,
    hand_direction, landmark_to_world, pose_from_reticle,
)

logger = logging.getLogger(__name__)


class ARInterface:
    """Connects hand tracking, gesture events and block manipulation for an AR session."""

    def __init__(self,
                 camera_index: int = CAMERA_CONFIG['default_camera_index'],
                 frame_width: int = CAMERA_CONFIG['default_frame_width'],
                 frame_height: int = CAMERA_CONFIG['default_frame_height'],
                 engine: Optional[GestureEngine] = None,
                 block_manager: Optional[BlockManager] = None):
        """
        Initialize the AR interface.

        Args:
            camera_index: Camera device index
            frame_width: Camera frame width
            frame_height: Camera frame height
            engine: Gesture engine (defaults to GestureEngine())
            block_manager: Block manager (defaults to BlockManager())
        """
        self.camera_index = camera_index
        self.frame_width = frame_width
        self.frame_height = frame_height

        # Initialize components
        self.engine = engine or GestureEngine()
        self.block_manager = block_manager or BlockManager()
        self.hand_tracker = None

        # Camera setup
        self.cap = None
        self.is_running = False

        # Session and surface state
        self.session_active = False
        self.reticle_pose: Optional[ReticlePose] = None
        self.plane_height = 0.0

        # Manipulation state
        self.active_block: Optional[Block] = None
        self.scale_session = ScaleSession()
        self.material = BlockMaterial(MANIPULATION_CONFIG['default_material'])
        self.frame_state = GestureFrameState()

        # Gesture callbacks
        self.event_callbacks: Dict[GestureEventType, List[Callable]] = {}

        # AR overlay settings
        self.show_landmarks = DISPLAY_CONFIG['show_landmarks']
        self.show_gesture_info = DISPLAY_CONFIG['show_gesture_info']

        # Webcam mode has no device pose: a fixed camera looks down at the surface.
        self.view_camera = PerspectiveCamera(aspect=frame_width / float(frame_height),
                                             position=(0.0, 1.2, 0.8))
        self.view_camera.look_at((0.0, 0.0, 0.0))

    def start_camera(self) -> bool:
        """
        Start the camera capture and the MediaPipe hand tracker.

        Returns:
            True if camera started successfully
        """
        try:
            if self.hand_tracker is None:
                self.hand_tracker = HandTracker()

            self.cap = cv2.VideoCapture(self.camera_index)
            self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.frame_width)
            self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.frame_height)

            if not self.cap.isOpened():
                logger.error("Could not open camera %s", self.camera_index)
                return False

            self.is_running = True
            logger.info("Camera %s started", self.camera_index)
            return True
        except Exception as e:
            logger.error("Error starting camera: %s", e)
            return False

    def stop_camera(self):
        """Stop the camera capture."""
        self.is_running = False
        if self.cap:
            self.cap.release()
            self.cap = None
        cv2.destroyAllWindows()

    def start_session(self):
        """Enable gesture processing."""
        self.session_active = True
        self.engine.reset()
        logger.info("AR session started")

    def end_session(self):
        """Disable gestures and clear blocks and manipulation state."""
        self.session_active = False
        self.engine.reset()
        self.block_manager.reset()
        self.active_block = None
        self.scale_session = ScaleSession()
        self.frame_state = GestureFrameState()
        logger.info("AR session ended")

    def update_reticle(self, position: Sequence[float], orientation: Sequence[float] = IDENTITY_QUATERNION):
        """
        Record the most recently detected surface pose.

        Args:
            position: Reticle world position; its y is the plane height
            orientation: Reticle world orientation quaternion (x, y, z, w)
        """
        self.reticle_pose = pose_from_reticle(position, orientation)
        self.plane_height = float(self.reticle_pose.position[1])

    def register_event_callback(self, event_type: GestureEventType, callback: Callable):
        """
        Register a callback function for a gesture event.

        Args:
            event_type: The event type to respond to
            callback: Function called with the GestureEvent and the frame state
        """
        self.event_callbacks.setdefault(event_type, []).append(callback)

    def spawn_at_reticle(self) -> Optional[Block]:
        if self.reticle_pose is None:
            return None
        block = self.block_manager.spawn_block(self.reticle_pose, self.material)
        self.active_block = block
        return block

    def select_next_block(self) -> Optional[Block]:
        next_block = self.block_manager.select_next_block()
        if next_block is not None:
            self.active_block = next_block
        return next_block

    def delete_selected(self):
        self.block_manager.delete_selected()
        self.active_block = None

    def cycle_material(self) -> BlockMaterial:
        """Cycle the selected block's material, or the material for the next spawn."""
        next_material = self.block_manager.cycle_selected_material()
        self.material = next_material or cycle_material(self.material)
        return self.material

    def process_frame(self,
                      camera: PerspectiveCamera,
                      camera_pose: Optional[HandPose] = None,
                      skeletal_source: Optional[SkeletalJointSource] = None,
                      timestamp: Optional[float] = None) -> GestureFrameState:
        """
        Run one frame of the gesture pipeline.

        Args:
            camera: Camera for this frame
            camera_pose: Latest pose from the camera estimator, if any
            skeletal_source: Skeletal joints from the AR frame, if any
            timestamp: Frame time in milliseconds

        Returns:
            GestureFrameState for this frame
        """
        hand = normalize_pose(skeletal_source) if skeletal_source is not None else None
        if hand is None:
            hand = camera_pose

        state = self.engine.advance(hand if self.session_active else None,
                                    self.session_active, timestamp)
        self.frame_state = state
        if not self.session_active:
            return state

        for event in state.events:
            self._handle_event(event, state)
        self._apply_continuous(state, camera)

        for event in state.events:
            for callback in self.event_callbacks.get(event.type, []):
                try:
                    callback(event, state)
                except Exception:
                    logger.exception("Gesture callback for %s failed", event.type.value)

        return state

    def _handle_event(self, event: GestureEvent, state: GestureFrameState):
        event_type = event.type
        if event_type == GestureEventType.PINCH_START:
            current = self.block_manager.selected or self.active_block
            if current is not None:
                self.block_manager.select_block(current)
                self.active_block = current
            elif self.reticle_pose is not None:
                self.spawn_at_reticle()
        elif event_type == GestureEventType.PINCH_END:
            self.active_block = None
        elif event_type == GestureEventType.OPEN_PALM:
            self.delete_selected()
        elif event_type == GestureEventType.TAP:
            self.cycle_material()
        elif event_type == GestureEventType.TWO_FINGER_PINCH_START:
            target = self.active_block or self.block_manager.selected
            if target is not None:
                self.scale_session = ScaleSession(
                    base_scale=target.scale,
                    base_normalized=max(state.two_finger_normalized,
                                        MANIPULATION_CONFIG['min_normalized_distance']),
                )
        elif event_type == GestureEventType.TWO_FINGER_PINCH_END:
            self.scale_session = ScaleSession()

    def _apply_continuous(self, state: GestureFrameState, camera: PerspectiveCamera):
        hand = state.hand
        if hand is None:
            return

        if state.is_pinching and self.active_block is not None:
            world = landmark_to_world(hand.landmarks[INDEX_TIP], camera, self.plane_height,
                                      fallback=self.active_block.position)
            if world is not None:
                if self.reticle_pose is not None:
                    orientation = self.reticle_pose.orientation
                else:
                    orientation = self.active_block.orientation
                self.block_manager.move_block(self.active_block, world.position, orientation)

        if state.is_pointing:
            selected = self.block_manager.selected
            direction = hand_direction(hand, camera, self.plane_height)
            if direction is not None and selected is not None:
                self.block_manager.rotate_block_to_direction(selected, direction)

        if state.is_two_finger_pinch and self.active_block is not None:
            scale = compute_scale(self.scale_session, state.two_finger_normalized)
            self.block_manager.scale_block(self.active_block, scale)

    def process_image(self, image: np.ndarray) -> Tuple[np.ndarray, GestureFrameState]:
        """
        Process a single webcam image.

        Args:
            image: Input frame from camera (BGR)

        Returns:
            Tuple of (processed_frame, frame_state)
        """
        if self.hand_tracker is None:
            self.hand_tracker = HandTracker()

        annotated_frame, pose = self.hand_tracker.detect_hand(image, draw_landmarks=self.show_landmarks)
        state = self.process_frame(self.view_camera, camera_pose=pose)

        if self.show_gesture_info:
            annotated_frame = self._add_gesture_overlay(annotated_frame, state)
        return annotated_frame, state

    def run_realtime(self, window_name: str = "Gesture Blocks AR"):
        """
        Run real-time gesture manipulation with a webcam feed.

        Args:
            window_name: Name of the display window
        """
        if not self.start_camera():
            logger.error("Failed to start camera")
            return

        if self.reticle_pose is None:
            self.update_reticle((0.0, 0.0, 0.0))
        self.start_session()

        try:
            while self.is_running:
                ret, frame = self.cap.read()
                if not ret:
                    logger.warning("Camera frame read failed, stopping")
                    break

                if CAMERA_CONFIG['flip_horizontal']:
                    frame = cv2.flip(frame, 1)

                processed_frame, _ = self.process_image(frame)
                cv2.imshow(window_name, processed_frame)

                key = cv2.waitKey(1) & 0xFF
                if key == ord('q'):
                    break
                elif key == ord('b'):
                    self.spawn_at_reticle()
                elif key == ord('n'):
                    self.select_next_block()
                elif key == ord('d'):
                    self.delete_selected()
                elif key == ord('m'):
                    self.cycle_material()
                elif key == ord('r'):
                    self.block_manager.reset()
                    self.active_block = None

        except KeyboardInterrupt:
            logger.info("Interrupted by user")
        finally:
            self.end_session()
            self.stop_camera()

    def _add_gesture_overlay(self, frame: np.ndarray, state: GestureFrameState) -> np.ndarray:
        """
        Add gesture information overlay to the frame.

        Args:
            frame: Input frame
            state: Current gesture frame state

        Returns:
            Frame with overlay
        """
        overlay_frame = frame.copy()
        color = DISPLAY_CONFIG['overlay_color']
        scale = DISPLAY_CONFIG['text_scale']
        thickness = DISPLAY_CONFIG['text_thickness']

        cv2.rectangle(overlay_frame, (10, 10), (400, 140), DISPLAY_CONFIG['overlay_background'], -1)
        cv2.rectangle(overlay_frame, (10, 10), (400, 140), color, 2)

        flags = [name for name, active in (
            ('pinch', state.is_pinching),
            ('point', state.is_pointing),
            ('two-finger', state.is_two_finger_pinch),
            ('open-palm', state.is_open_palm),
        ) if active]
        selected = self.block_manager.selected

        text_lines = [
            f"Hand: {state.hand.handedness.value if state.hand else 'None'}",
            f"Gestures: {', '.join(flags) or 'none'}",
            f"Blocks: {self.block_manager.block_count}",
            f"Material: {(selected.material if selected else self.material).value}",
            f"Events: {', '.join(t.value for t in state.event_types()) or '-'}",
        ]

        for i, line in enumerate(text_lines):
            y_pos = 30 + i * 20
            cv2.putText(overlay_frame, line, (15, y_pos),
                        cv2.FONT_HERSHEY_SIMPLEX, scale, color, thickness)

        # Pinch strength bar
        strength = state.pinch_strength
        if strength > 0:
            bar_width = int(300 * strength)
            bar_color = (0, 255, 0) if state.is_pinching else (0, 255, 255)
            cv2.rectangle(overlay_frame, (15, 125), (15 + bar_width, 133), bar_color, -1)
        cv2.rectangle(overlay_frame, (15, 125), (315, 133), color, 1)

        return overlay_frame

    def get_current_state(self) -> GestureFrameState:
        return self.frame_state

    def set_display_options(self, show_landmarks: bool = True, show_gesture_info: bool = True):
        """
        Configure display options.

        Args:
            show_landmarks: Whether to show hand landmarks
            show_gesture_info: Whether to show gesture information
        """
        self.show_landmarks = show_landmarks
        self.show_gesture_info = show_gesture_info

    def cleanup(self):
        """Clean up resources."""
        self.stop_camera()
        if self.hand_tracker:
            self.hand_tracker.close()
            self.hand_tracker = None
