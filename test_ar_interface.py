"""
Frame-level tests for the AR interface: gestures in, block changes out.
"""

import numpy as np
import pytest

from gesture_blocks.ar_interface import ARInterface
from gesture_blocks.block_manager import BlockMaterial
from gesture_blocks.gesture_engine import GestureEventType
from gesture_blocks.hand_pose import Handedness
from gesture_blocks.pose_normalizer import SKELETAL_JOINT_ORDER, SkeletalJointSource
from gesture_blocks.spatial_projector import IDENTITY_QUATERNION, PerspectiveCamera


@pytest.fixture
def camera():
    return PerspectiveCamera(position=(0.0, 1.0, 0.0)).look_at((0.0, 0.0, 0.0))


@pytest.fixture
def ar():
    interface = ARInterface()
    interface.update_reticle((0.0, 0.0, 0.0))
    interface.start_session()
    return interface


@pytest.fixture
def image_hand(make_hand):
    """Synthetic hands in normalized image space."""
    def build(**kwargs):
        return make_hand(scale=0.02, origin=(0.5, 0.7, 0.0), **kwargs)
    return build


def test_inactive_session_ignores_hands(camera, image_hand):
    interface = ARInterface()
    state = interface.process_frame(camera, camera_pose=image_hand(extended=(), pinch=0.1), timestamp=1000)
    assert state.hand is None
    assert interface.block_manager.block_count == 0


def test_reticle_sets_plane_height():
    interface = ARInterface()
    interface.update_reticle((0.1, -0.4, 0.2))
    assert interface.plane_height == pytest.approx(-0.4)


def test_pinch_spawns_and_drags_block(ar, camera, image_hand):
    state = ar.process_frame(camera, camera_pose=image_hand(extended=(), pinch=0.1), timestamp=1000)
    assert state.has_event(GestureEventType.PINCH_START)
    assert ar.block_manager.block_count == 1
    block = ar.active_block
    assert block is ar.block_manager.selected

    # The index tip sits left of and below the image centre.
    assert block.position[0] < 0
    assert block.position[2] > 0
    assert block.position[1] == pytest.approx(0.0, abs=1e-9)

    ar.process_frame(camera, camera_pose=image_hand(extended=(), pinch=0.1), timestamp=1020)
    ar.process_frame(camera, camera_pose=image_hand(extended=()), timestamp=1400)
    assert ar.active_block is None
    assert ar.block_manager.block_count == 1


def test_pinch_reselects_existing_block(ar, camera, image_hand):
    block = ar.spawn_at_reticle()
    ar.active_block = None
    ar.process_frame(camera, camera_pose=image_hand(extended=(), pinch=0.1), timestamp=1000)
    assert ar.block_manager.block_count == 1
    assert ar.active_block is block


def test_pinch_without_reticle_does_nothing(camera, image_hand):
    interface = ARInterface()
    interface.start_session()
    interface.process_frame(camera, camera_pose=image_hand(extended=(), pinch=0.1), timestamp=1000)
    assert interface.block_manager.block_count == 0


def test_tap_cycles_material(ar, camera, image_hand):
    ar.process_frame(camera, camera_pose=image_hand(extended=(), pinch=0.1), timestamp=1000)
    state = ar.process_frame(camera, camera_pose=image_hand(extended=()), timestamp=1100)
    assert state.has_event(GestureEventType.TAP)
    assert ar.block_manager.selected.material == BlockMaterial.WOOD
    assert ar.material == BlockMaterial.WOOD


def test_tap_without_selection_cycles_spawn_material(ar):
    assert ar.cycle_material() == BlockMaterial.WOOD
    assert ar.spawn_at_reticle().material == BlockMaterial.WOOD


def test_open_palm_deletes_selected(ar, camera, image_hand):
    ar.spawn_at_reticle()
    state = ar.process_frame(camera, camera_pose=image_hand(), timestamp=1000)
    assert state.has_event(GestureEventType.OPEN_PALM)
    assert ar.block_manager.block_count == 0
    assert ar.active_block is None


def test_two_finger_pinch_scales_active_block(ar, camera, image_hand):
    block = ar.spawn_at_reticle()
    two_fingers = ('index', 'middle')

    ar.process_frame(camera, camera_pose=image_hand(extended=two_fingers, two_finger=0.2), timestamp=1000)
    assert ar.scale_session.base_normalized == pytest.approx(0.2)
    assert block.scale == pytest.approx(1.0)

    ar.process_frame(camera, camera_pose=image_hand(extended=two_fingers, two_finger=0.1), timestamp=1020)
    assert block.scale == pytest.approx(0.5)

    ar.process_frame(camera, camera_pose=image_hand(extended=two_fingers, two_finger=0.25), timestamp=1040)
    assert block.scale == pytest.approx(1.25)

    ar.process_frame(camera, camera_pose=image_hand(extended=two_fingers), timestamp=1060)
    assert block.scale == pytest.approx(1.25)
    assert ar.scale_session.base_normalized == 1.0


def test_pointing_rotates_selected_block(ar, camera, image_hand):
    block = ar.spawn_at_reticle()
    state = ar.process_frame(camera, camera_pose=image_hand(extended=('index',)), timestamp=1000)
    assert state.is_pointing
    assert not np.allclose(block.orientation, IDENTITY_QUATERNION)


def test_skeletal_pose_takes_priority(ar, camera, image_hand):
    rng = np.random.default_rng(3)
    joints = {name: rng.normal(size=3) for name in SKELETAL_JOINT_ORDER}
    camera_pose = image_hand()

    state = ar.process_frame(camera, camera_pose=camera_pose,
                             skeletal_source=SkeletalJointSource(joints, "left"), timestamp=1000)
    assert state.hand.handedness == Handedness.LEFT
    assert state.hand is not camera_pose

    del joints['wrist']
    state = ar.process_frame(camera, camera_pose=camera_pose,
                             skeletal_source=SkeletalJointSource(joints, "left"), timestamp=1020)
    assert state.hand is camera_pose


def test_event_callbacks(ar, camera, image_hand):
    received = []

    def broken(event, state):
        raise RuntimeError("callback failure")

    ar.register_event_callback(GestureEventType.PINCH_START, broken)
    ar.register_event_callback(GestureEventType.PINCH_START,
                               lambda event, state: received.append((event.type, state.is_pinching)))

    ar.process_frame(camera, camera_pose=image_hand(extended=(), pinch=0.1), timestamp=1000)
    assert received == [(GestureEventType.PINCH_START, True)]
    assert ar.get_current_state().is_pinching


def test_end_session_resets(ar, camera, image_hand):
    ar.process_frame(camera, camera_pose=image_hand(extended=(), pinch=0.1), timestamp=1000)
    ar.end_session()
    assert ar.block_manager.block_count == 0
    assert ar.active_block is None
    assert len(ar.engine.pinch_history) == 0
    assert ar.get_current_state().hand is None


def test_process_image_creates_tracker_on_demand(monkeypatch, image_hand):
    class FakeTracker:
        def detect_hand(self, image, draw_landmarks=True):
            return image, image_hand(extended=(), pinch=0.1)

    monkeypatch.setattr("gesture_blocks.ar_interface.HandTracker", FakeTracker)
    interface = ARInterface()
    interface.update_reticle((0.0, 0.0, 0.0))
    interface.start_session()
    interface.set_display_options(show_gesture_info=False)

    frame = np.zeros((48, 64, 3), dtype=np.uint8)
    processed, state = interface.process_image(frame)

    assert isinstance(interface.hand_tracker, FakeTracker)
    assert processed is frame
    assert state.has_event(GestureEventType.PINCH_START)
    assert interface.block_manager.block_count == 1
