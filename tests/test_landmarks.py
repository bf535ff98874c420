import pytest

from airtrace.landmarks import HandLandmarks, Landmark, LandmarkFrame, distance_2d


def test_from_dict_lists_and_objects():
    frame = LandmarkFrame.from_dict({
        "timestampMs": 125,
        "hands": [{
            "handedness": "Left",
            "score": 0.8,
            "landmarks": [[0.1, 0.2], [0.3, 0.4, -0.05, 0.6], {"x": 0.5, "y": 0.6}],
        }],
    })

    assert frame.timestamp_ms == 125.0
    hand = frame.hands[0]
    assert hand.handedness == "Left"
    assert hand.landmarks[0] == Landmark(0.1, 0.2, 0.0, 0.8)
    assert hand.landmarks[1] == Landmark(0.3, 0.4, -0.05, 0.6)
    assert hand.landmarks[2].confidence == 0.8


def test_from_dict_without_hands():
    frame = LandmarkFrame.from_dict({"timestampMs": 0, "hands": None})
    assert frame.hands == ()
    assert frame.primary_hand is None


def test_from_dict_requires_timestamp():
    with pytest.raises(KeyError):
        LandmarkFrame.from_dict({"hands": []})


def test_primary_hand_has_highest_score(make_hand):
    low = make_hand(score=0.5)
    high = make_hand(score=0.95)
    frame = LandmarkFrame(hands=(low, high), timestamp_ms=0.0)

    assert frame.primary_hand is high


def test_partial_hand_has_no_tips():
    hand = HandLandmarks(landmarks=(Landmark(0.5, 0.5),))
    assert hand.wrist is not None
    assert hand.index_tip is None
    assert hand.get_landmark(-1) is None


def test_distance_2d():
    assert distance_2d((0.0, 0.0), (3.0, 4.0)) == pytest.approx(5.0)
