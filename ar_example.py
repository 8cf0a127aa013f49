#!/usr/bin/env python3
"""
Feeding skeletal hand joints from an AR runtime into the gesture pipeline
"""

import logging
import math

import numpy as np

from gesture_blocks import ARInterface, GestureEventType, PerspectiveCamera
from gesture_blocks.pose_normalizer import SKELETAL_JOINT_ORDER, SkeletalJointSource


def synthetic_joints(pinch_gap: float, wrist=(0.0, 1.0, -0.4)):
    """A flat right hand lying palm-down in world space, thumb tip ``pinch_gap`` from the index tip."""
    wrist = np.array(wrist)
    joints = {'wrist': wrist}
    fingers = ('index', 'middle', 'ring', 'pinky')
    for i, finger in enumerate(fingers):
        offset_x = -0.03 + 0.02 * i
        names = [n for n in SKELETAL_JOINT_ORDER if n.startswith(f"{finger}-")]
        for j, name in enumerate(names):
            joints[name] = wrist + np.array([offset_x, 0.0, -0.08 - 0.025 * j])
    index_tip = joints['index-finger-tip']
    for j, name in enumerate(n for n in SKELETAL_JOINT_ORDER if n.startswith("thumb-")):
        joints[name] = wrist + np.array([-0.05 - 0.01 * j, 0.0, -0.03 - 0.02 * j])
    joints['thumb-tip'] = index_tip + np.array([-pinch_gap, 0.0, 0.0])
    return joints


def skeletal_ar_example():
    """Replay a short pinch-and-release through the interface, as an AR frame loop would."""
    logging.basicConfig(level=logging.INFO)
    print("Skeletal Hand Tracking Example")
    print("==============================")

    ar_interface = ARInterface()
    camera = PerspectiveCamera(position=(0.0, 1.4, 0.0)).look_at((0.0, 0.0, -0.5))

    def on_event(event, state):
        print(f"  {event.timestamp:7.1f} ms  {event.type.value}")

    for event_type in GestureEventType:
        ar_interface.register_event_callback(event_type, on_event)

    ar_interface.update_reticle((0.0, 0.0, -0.5))
    ar_interface.start_session()

    # 60 Hz frames: open, pinch, release quickly
    gaps = [0.06] * 5 + [0.005] * 6 + [0.06] * 5
    for frame_index, gap in enumerate(gaps):
        timestamp = 1000.0 + frame_index * 1000.0 / 60.0
        source = SkeletalJointSource(synthetic_joints(gap), "right", timestamp=timestamp)
        state = ar_interface.process_frame(camera, skeletal_source=source, timestamp=timestamp)
        if state.is_pinching and frame_index % 2 == 0:
            print(f"  pinch strength {state.pinch_strength:.2f}")

    print(f"\nBlocks placed: {ar_interface.block_manager.block_count}")
    selected = ar_interface.block_manager.selected
    if selected is not None:
        x, y, z = selected.position
        print(f"Selected block: {selected.material.value} at ({x:.2f}, {y:.2f}, {z:.2f}), "
              f"yaw {math.degrees(2 * math.atan2(selected.orientation[1], selected.orientation[3])):.0f} deg")

    ar_interface.end_session()


if __name__ == "__main__":
    skeletal_ar_example()
