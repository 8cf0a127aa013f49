"""
Tests for the per-frame gesture classifier.
"""

import pytest

from gesture_blocks.gesture_classifier import GestureClassifier, is_tap_gesture
from gesture_blocks.hand_pose import Handedness, PinchHistoryEntry


@pytest.fixture
def classifier():
    return GestureClassifier()


def test_hand_scale_uses_knuckle_span(classifier, make_hand):
    assert classifier.hand_scale(make_hand()) == pytest.approx(5.0)
    assert classifier.hand_scale(make_hand(scale=0.02)) == pytest.approx(0.1)


def test_hand_scale_is_floored(classifier, make_hand):
    collapsed = make_hand(scale=0.0)
    assert classifier.hand_scale(collapsed) == pytest.approx(0.001)


def test_pinch_boundary(classifier, make_hand):
    assert not classifier.is_pinching(make_hand(pinch=0.35))
    assert classifier.is_pinching(make_hand(pinch=0.34))
    assert not classifier.is_pinching(make_hand(pinch=0.36))


def test_pinch_metrics_are_scale_invariant(classifier, make_hand):
    small = classifier.pinch_metrics(make_hand(pinch=0.2, scale=0.01))
    large = classifier.pinch_metrics(make_hand(pinch=0.2, scale=3.0))
    assert small[1] == pytest.approx(0.2)
    assert large[1] == pytest.approx(0.2)
    assert small[0] == pytest.approx(0.01)
    assert large[0] == pytest.approx(3.0)


def test_pinch_strength(classifier, make_hand):
    assert classifier.pinch_metrics(make_hand(pinch=0.0))[2] == pytest.approx(1.0)
    assert classifier.pinch_metrics(make_hand(pinch=0.2))[2] == pytest.approx(0.5)
    assert classifier.pinch_metrics(make_hand(pinch=0.4))[2] == pytest.approx(0.0)
    assert classifier.pinch_metrics(make_hand())[2] == 0.0


def test_two_finger_boundary(classifier, make_hand):
    assert not classifier.is_two_finger_pinch(make_hand(two_finger=0.3))
    assert classifier.is_two_finger_pinch(make_hand(two_finger=0.29))
    absolute, normalized = classifier.two_finger_metrics(make_hand(two_finger=0.5))
    assert absolute == pytest.approx(2.5)
    assert normalized == pytest.approx(0.5)


def test_finger_extension(classifier, make_hand):
    hand = make_hand(extended=('index', 'ring'))
    assert classifier.is_finger_extended(hand, 'index')
    assert not classifier.is_finger_extended(hand, 'middle')
    assert classifier.is_finger_extended(hand, 'ring')
    assert not classifier.is_finger_extended(hand, 'pinky')


def test_open_palm_needs_four_digits(classifier, make_hand):
    assert classifier.is_open_palm(make_hand())
    assert classifier.is_open_palm(make_hand(thumb_out=False))
    assert classifier.is_open_palm(make_hand(extended=('index', 'middle', 'ring')))
    assert not classifier.is_open_palm(make_hand(extended=('index', 'middle', 'ring'), thumb_out=False))
    assert not classifier.is_open_palm(make_hand(extended=()))


def test_thumb_heuristic_follows_handedness(classifier, make_hand):
    three_fingers = ('index', 'middle', 'ring')
    assert classifier.is_open_palm(make_hand(extended=three_fingers, handedness=Handedness.LEFT))

    # A right-hand thumb layout labelled as a left hand does not count.
    right_layout = make_hand(extended=three_fingers)
    mislabelled = type(right_layout)(
        handedness=Handedness.LEFT,
        landmarks=right_layout.landmarks,
        timestamp=0.0,
    )
    assert not classifier.is_open_palm(mislabelled)


def test_pointing(classifier, make_hand):
    assert classifier.is_pointing(make_hand(extended=('index',)))
    assert classifier.is_pointing(make_hand(extended=('index',), thumb_out=False))
    assert not classifier.is_pointing(make_hand(extended=('index', 'middle')))
    assert not classifier.is_pointing(make_hand(extended=()))


def test_classify_collects_everything(classifier, make_hand):
    metrics = classifier.classify(make_hand(extended=(), pinch=0.1))
    assert metrics.is_pinching
    assert not metrics.is_open_palm
    assert not metrics.is_pointing
    assert metrics.pinch_normalized == pytest.approx(0.1)
    assert metrics.pinch_strength == pytest.approx(0.75)
    assert metrics.finger_states['thumb']
    assert not metrics.finger_states['index']


def test_tap_detection():
    assert not is_tap_gesture([])
    assert not is_tap_gesture([PinchHistoryEntry(False, 0.0)])
    assert is_tap_gesture([PinchHistoryEntry(True, 100.0), PinchHistoryEntry(False, 320.0)])
    assert not is_tap_gesture([PinchHistoryEntry(True, 100.0), PinchHistoryEntry(False, 321.0)])
    assert not is_tap_gesture([PinchHistoryEntry(False, 100.0), PinchHistoryEntry(False, 150.0)])
    assert not is_tap_gesture([PinchHistoryEntry(True, 100.0), PinchHistoryEntry(True, 150.0)])
    # Only the last two entries matter.
    assert is_tap_gesture([PinchHistoryEntry(False, 0.0),
                           PinchHistoryEntry(True, 100.0),
                           PinchHistoryEntry(False, 150.0)])


def test_custom_thresholds(make_hand):
    strict = GestureClassifier({'pinch_threshold': 0.1})
    assert not strict.is_pinching(make_hand(pinch=0.2))
    with pytest.raises(ValueError):
        GestureClassifier({'pinch_treshold': 0.1})
