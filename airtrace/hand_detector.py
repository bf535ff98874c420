"""
Hand detector using MediaPipe Hands.

Converts MediaPipe results into LandmarkFrame snapshots for the tracking
core. Supports both the Solutions API and the Tasks API; MediaPipe is
imported on first use so the rest of the package works without it.
"""

from pathlib import Path
from typing import Any, Optional

import numpy as np

from .config import (
    MEDIAPIPE_MAX_NUM_HANDS,
    MEDIAPIPE_MIN_DETECTION_CONFIDENCE,
    MEDIAPIPE_MIN_TRACKING_CONFIDENCE,
    MEDIAPIPE_MODEL_COMPLEXITY,
)
from .landmarks import HandLandmarks, Landmark, LandmarkFrame
from .logger import get_logger

logger = get_logger("HandDetector")


class DetectorError(Exception):
    """Raised when the hand detector cannot be initialized."""
    pass


def _landmark_confidence(lm: Any, hand_score: float) -> float:
    visibility = getattr(lm, "visibility", None)
    if visibility:
        return float(visibility)
    return hand_score


def _convert_hand(points: Any, handedness: str, score: float) -> HandLandmarks:
    landmarks = tuple(
        Landmark(
            x=float(lm.x),
            y=float(lm.y),
            z=float(getattr(lm, "z", 0.0)),
            confidence=_landmark_confidence(lm, score)
        )
        for lm in points
    )
    return HandLandmarks(landmarks=landmarks, handedness=handedness, score=score)


class HandDetector:
    """
    Hand detector using MediaPipe Hands.

    Uses the Solutions API when the installed MediaPipe provides it,
    otherwise the Tasks API, which needs a ``hand_landmarker.task`` model
    file.

    Usage:
        detector = HandDetector()
        detector.initialize()
        frame = detector.detect(rgb_image, timestamp_ms)
        detector.close()
    """

    def __init__(
        self,
        model_complexity: int = MEDIAPIPE_MODEL_COMPLEXITY,
        max_num_hands: int = MEDIAPIPE_MAX_NUM_HANDS,
        min_detection_confidence: float = MEDIAPIPE_MIN_DETECTION_CONFIDENCE,
        min_tracking_confidence: float = MEDIAPIPE_MIN_TRACKING_CONFIDENCE,
        model_path: Optional[str | Path] = None
    ):
        """
        Initialize hand detector.

        Args:
            model_complexity: Model complexity (0=Lite, 1=Full), Solutions API only.
            max_num_hands: Maximum number of hands to detect.
            min_detection_confidence: Minimum detection confidence.
            min_tracking_confidence: Minimum tracking confidence.
            model_path: Hand landmarker model file, Tasks API only.
        """
        self.model_complexity = model_complexity
        self.max_num_hands = max_num_hands
        self.min_detection_confidence = min_detection_confidence
        self.min_tracking_confidence = min_tracking_confidence
        self.model_path = Path(model_path) if model_path else None

        self._mp = None
        self._hands = None  # Solutions API Hands object
        self._landmarker = None  # Tasks API HandLandmarker object
        self._last_timestamp_ms = -1
        self._frame_count = 0

    @property
    def is_initialized(self) -> bool:
        return self._hands is not None or self._landmarker is not None

    @property
    def using_tasks_api(self) -> bool:
        return self._landmarker is not None

    def initialize(self) -> None:
        """
        Load MediaPipe and create the hand model.

        Raises:
            DetectorError: If MediaPipe is missing or the model cannot be created.
        """
        if self.is_initialized:
            return

        try:
            import mediapipe as mp
        except ImportError as e:
            raise DetectorError(
                "MediaPipe is required for live tracking. "
                "Install with: pip install 'airtrace[camera]'"
            ) from e
        self._mp = mp
        logger.debug(f"MediaPipe version: {getattr(mp, '__version__', 'unknown')}")

        if hasattr(mp, "solutions") and hasattr(mp.solutions, "hands"):
            self._initialize_solutions_api(mp)
        elif hasattr(mp, "tasks"):
            self._initialize_tasks_api()
        else:
            raise DetectorError("MediaPipe installation incomplete: no hands API found")

    def _initialize_solutions_api(self, mp: Any) -> None:
        self._hands = mp.solutions.hands.Hands(
            static_image_mode=False,
            model_complexity=self.model_complexity,
            max_num_hands=self.max_num_hands,
            min_detection_confidence=self.min_detection_confidence,
            min_tracking_confidence=self.min_tracking_confidence
        )
        logger.info(
            f"MediaPipe Hands initialized (Solutions API, complexity={self.model_complexity}, "
            f"max_hands={self.max_num_hands})"
        )

    def _initialize_tasks_api(self) -> None:
        if self.model_path is None or not self.model_path.is_file():
            raise DetectorError(
                f"Tasks API needs a hand landmarker model file, got: {self.model_path}"
            )

        from mediapipe.tasks import python as mp_python
        from mediapipe.tasks.python import vision as mp_vision

        options = mp_vision.HandLandmarkerOptions(
            base_options=mp_python.BaseOptions(model_asset_path=str(self.model_path)),
            running_mode=mp_vision.RunningMode.VIDEO,
            num_hands=self.max_num_hands,
            min_hand_detection_confidence=self.min_detection_confidence,
            min_hand_presence_confidence=self.min_detection_confidence,
            min_tracking_confidence=self.min_tracking_confidence
        )
        try:
            self._landmarker = mp_vision.HandLandmarker.create_from_options(options)
        except (RuntimeError, ValueError) as e:
            raise DetectorError(f"Failed to create HandLandmarker: {e}") from e
        logger.info(f"MediaPipe Hands initialized (Tasks API, model={self.model_path.name})")

    def close(self) -> None:
        """Release MediaPipe resources."""
        if self._hands:
            self._hands.close()
            self._hands = None
        if self._landmarker:
            self._landmarker.close()
            self._landmarker = None
        logger.debug("HandDetector closed")

    def detect(self, rgb_image: np.ndarray, timestamp_ms: float) -> LandmarkFrame:
        """
        Detect hand landmarks in an RGB image.

        Args:
            rgb_image: RGB image as numpy array (H, W, 3).
            timestamp_ms: Capture time of the image.

        Returns:
            LandmarkFrame with every detected hand (possibly none).
        """
        if not self.is_initialized:
            self.initialize()

        self._frame_count += 1

        if self._landmarker is not None:
            hands = self._detect_tasks_api(rgb_image, timestamp_ms)
        else:
            hands = self._detect_solutions_api(rgb_image)
        return LandmarkFrame(hands=hands, timestamp_ms=timestamp_ms)

    def _detect_solutions_api(self, rgb_image: np.ndarray) -> tuple[HandLandmarks, ...]:
        results = self._hands.process(rgb_image)
        if not results.multi_hand_landmarks:
            return ()

        hands = []
        for i, hand_landmarks in enumerate(results.multi_hand_landmarks):
            handedness, score = "Right", 1.0
            if results.multi_handedness and i < len(results.multi_handedness):
                classification = results.multi_handedness[i].classification[0]
                handedness, score = classification.label, float(classification.score)
            hands.append(_convert_hand(hand_landmarks.landmark, handedness, score))
        return tuple(hands)

    def _detect_tasks_api(self, rgb_image: np.ndarray, timestamp_ms: float) -> tuple[HandLandmarks, ...]:
        if not rgb_image.flags["C_CONTIGUOUS"]:
            rgb_image = np.ascontiguousarray(rgb_image)
        mp_image = self._mp.Image(image_format=self._mp.ImageFormat.SRGB, data=rgb_image)

        # VIDEO mode requires strictly increasing integer timestamps
        ts = max(int(timestamp_ms), self._last_timestamp_ms + 1)
        self._last_timestamp_ms = ts
        result = self._landmarker.detect_for_video(mp_image, ts)

        if not result.hand_landmarks:
            return ()

        hands = []
        for i, hand_landmarks in enumerate(result.hand_landmarks):
            handedness, score = "Right", 1.0
            if result.handedness and i < len(result.handedness):
                category = result.handedness[i][0]
                handedness, score = category.category_name, float(category.score)
            hands.append(_convert_hand(hand_landmarks, handedness, score))
        return tuple(hands)

    def __enter__(self) -> "HandDetector":
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
