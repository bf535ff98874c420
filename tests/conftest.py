import pytest

from airtrace.landmarks import HandLandmarks, Landmark, LandmarkIndex

# Thumb offsets relative to the index tip for a hand scale of 0.1
PINCHED = 0.01
OPEN = 0.1


@pytest.fixture
def make_hand():
    """Factory for a 21-point hand with a wrist-to-MCP scale of 0.1."""
    def _make(
        index=(0.5, 0.5),
        thumb=None,
        wrist=(0.5, 0.8),
        confidence=0.9,
        thumb_confidence=None,
        score=0.9,
        handedness="Right",
    ):
        if thumb is None:
            thumb = (index[0] + OPEN, index[1])
        points = [Landmark(wrist[0], wrist[1], confidence=confidence)] * 21
        points[LandmarkIndex.MIDDLE_MCP] = Landmark(wrist[0], wrist[1] - 0.1, confidence=confidence)
        points[LandmarkIndex.INDEX_TIP] = Landmark(index[0], index[1], confidence=confidence)
        points[LandmarkIndex.THUMB_TIP] = Landmark(
            thumb[0],
            thumb[1],
            confidence=confidence if thumb_confidence is None else thumb_confidence,
        )
        return HandLandmarks(landmarks=tuple(points), handedness=handedness, score=score)

    return _make
