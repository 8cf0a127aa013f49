#!/usr/bin/env python3
"""
Gesture Blocks AR Demo
Build blocks on a virtual surface with bare-hand gestures in front of a webcam.
"""

import logging

from gesture_blocks import ARInterface, GestureEventType


def on_pinch_start(event, state):
    """Callback for pinch start."""
    print(f"🤏 Pinch - grab or place a block (strength {state.pinch_strength:.2f})")


def on_tap(event, state):
    """Callback for tap."""
    print("👆 Tap - material changed")


def on_open_palm(event, state):
    """Callback for open palm."""
    print("✋ Open palm - selected block deleted")


def on_two_finger_pinch(event, state):
    """Callback for two-finger pinch start."""
    print(f"✌️ Two-finger pinch - scaling (spread {state.two_finger_normalized:.2f})")


def on_point(event, state):
    """Callback for point start."""
    print("👉 Point - rotating selected block")


def main():
    """Main demonstration function."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s: %(message)s")

    print("=" * 60)
    print("GESTURE BLOCKS AR")
    print("=" * 60)
    print()
    print("Gestures:")
    print("  🤏 Pinch - Spawn a block, or grab and drag the selected one")
    print("  👆 Quick pinch and release - Cycle material")
    print("  👉 Point - Rotate the selected block")
    print("  ✌️ Two-finger pinch - Scale the block being held")
    print("  ✋ Open palm - Delete the selected block")
    print()
    print("Keys: b spawn, n select next, d delete, m material, r reset, q quit")
    print()
    input("Press Enter to start the demo...")

    ar_interface = ARInterface()

    ar_interface.register_event_callback(GestureEventType.PINCH_START, on_pinch_start)
    ar_interface.register_event_callback(GestureEventType.TAP, on_tap)
    ar_interface.register_event_callback(GestureEventType.OPEN_PALM, on_open_palm)
    ar_interface.register_event_callback(GestureEventType.TWO_FINGER_PINCH_START, on_two_finger_pinch)
    ar_interface.register_event_callback(GestureEventType.POINT_START, on_point)

    try:
        ar_interface.run_realtime("Gesture Blocks AR - Demo")

    except Exception as e:
        print(f"Error running demo: {e}")

    finally:
        ar_interface.cleanup()
        print("\nDemo finished.")


if __name__ == "__main__":
    main()
