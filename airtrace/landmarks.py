"""
Hand landmark data model.

Frames arrive from an external detector (see hand_detector) or from a
recorded replay and are treated as immutable snapshots.
"""

import math
from dataclasses import dataclass
from typing import Any, Optional


# MediaPipe landmark indices
class LandmarkIndex:
    """MediaPipe hand landmark indices."""
    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_MCP = 5
    INDEX_PIP = 6
    INDEX_DIP = 7
    INDEX_TIP = 8
    MIDDLE_MCP = 9
    MIDDLE_PIP = 10
    MIDDLE_DIP = 11
    MIDDLE_TIP = 12
    RING_MCP = 13
    RING_PIP = 14
    RING_DIP = 15
    RING_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


@dataclass(frozen=True)
class Landmark:
    """Single hand landmark with normalized coordinates and confidence."""
    x: float  # Normalized x [0, 1]
    y: float  # Normalized y [0, 1]
    z: float = 0.0  # Relative depth, unused by the 2D core
    confidence: float = 1.0

    @property
    def point(self) -> tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True)
class HandLandmarks:
    """
    Complete hand landmark data.

    Attributes:
        landmarks: Hand landmarks in MediaPipe order (21 for a full hand).
        handedness: 'Left' or 'Right' as reported by the detector.
        score: Detection confidence score.
    """
    landmarks: tuple[Landmark, ...]
    handedness: str = "Right"
    score: float = 1.0

    def get_landmark(self, index: int) -> Optional[Landmark]:
        """Get landmark by index."""
        if 0 <= index < len(self.landmarks):
            return self.landmarks[index]
        return None

    @property
    def wrist(self) -> Optional[Landmark]:
        return self.get_landmark(LandmarkIndex.WRIST)

    @property
    def thumb_tip(self) -> Optional[Landmark]:
        return self.get_landmark(LandmarkIndex.THUMB_TIP)

    @property
    def index_tip(self) -> Optional[Landmark]:
        return self.get_landmark(LandmarkIndex.INDEX_TIP)

    @property
    def middle_mcp(self) -> Optional[Landmark]:
        return self.get_landmark(LandmarkIndex.MIDDLE_MCP)


@dataclass(frozen=True)
class LandmarkFrame:
    """
    All hands detected in one camera frame.

    An empty ``hands`` tuple is a valid frame meaning "no detection".
    """
    hands: tuple[HandLandmarks, ...]
    timestamp_ms: float

    @property
    def primary_hand(self) -> Optional[HandLandmarks]:
        """Hand used for drawing (highest detection score)."""
        if not self.hands:
            return None
        return max(self.hands, key=lambda hand: hand.score)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LandmarkFrame":
        """
        Create from a recorded JSON object with camelCase keys.

        Expected shape::

            {"timestampMs": 1234.5,
             "hands": [{"handedness": "Right", "score": 0.9,
                        "landmarks": [[x, y], [x, y, z, confidence], ...]}]}

        Landmark entries may also be objects with x/y/z/confidence keys.
        """
        hands = []
        for hand_data in data.get("hands", []) or []:
            landmarks = tuple(
                _landmark_from_json(entry, hand_data.get("score", 1.0))
                for entry in hand_data.get("landmarks", [])
            )
            hands.append(HandLandmarks(
                landmarks=landmarks,
                handedness=hand_data.get("handedness", "Right"),
                score=float(hand_data.get("score", 1.0))
            ))
        return cls(hands=tuple(hands), timestamp_ms=float(data["timestampMs"]))


def _landmark_from_json(entry: Any, default_confidence: float) -> Landmark:
    if isinstance(entry, dict):
        return Landmark(
            x=float(entry["x"]),
            y=float(entry["y"]),
            z=float(entry.get("z", 0.0)),
            confidence=float(entry.get("confidence", default_confidence))
        )
    values = list(entry)
    z = float(values[2]) if len(values) > 2 else 0.0
    confidence = float(values[3]) if len(values) > 3 else float(default_confidence)
    return Landmark(x=float(values[0]), y=float(values[1]), z=z, confidence=confidence)


def distance_2d(a: tuple[float, float], b: tuple[float, float]) -> float:
    """
    Calculate 2D distance between two points.

    Args:
        a: First point (x, y).
        b: Second point (x, y).

    Returns:
        Euclidean distance in the points' units.
    """
    return math.hypot(a[0] - b[0], a[1] - b[1])
