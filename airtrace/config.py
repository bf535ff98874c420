"""
Configuration constants for AirTrace.

This module contains all tunable parameters for fingertip filtering,
occlusion recovery, pen detection, two-hand gating, detection resolution
and path tracing. Algorithm code reads these through the config
dataclasses at the bottom of the module, never directly.
"""

from dataclasses import dataclass, field
from typing import Final


# Camera configuration
CAMERA_WIDTH: Final[int] = 1280
CAMERA_HEIGHT: Final[int] = 720
CAMERA_FPS: Final[int] = 30
DEFAULT_CAMERA_INDEX: Final[int] = 0
CAMERA_MAX_FAILED_READS: Final[int] = 30  # Consecutive failures before giving up

# MediaPipe configuration
MEDIAPIPE_MODEL_COMPLEXITY: Final[int] = 0  # Lite model for performance
MEDIAPIPE_MAX_NUM_HANDS: Final[int] = 2
MEDIAPIPE_MIN_DETECTION_CONFIDENCE: Final[float] = 0.5
MEDIAPIPE_MIN_TRACKING_CONFIDENCE: Final[float] = 0.5

# =============================================================================
# Two-Stage Filter: One Euro (stage A)
# =============================================================================
ONE_EURO_MIN_CUTOFF: Final[float] = 2.0  # Hz, lower = smoother but more lag
ONE_EURO_BETA: Final[float] = 0.01  # Speed coefficient
ONE_EURO_D_CUTOFF: Final[float] = 1.0  # Derivative cutoff (Hz)
MIN_FILTER_DT_S: Final[float] = 0.001  # Clamp for duplicate timestamps

# Per-mode (min_cutoff, beta, d_cutoff)
FILTER_PROFILE_VALUES: Final[dict[str, tuple[float, float, float]]] = {
    "bubble-pop": (2.5, 0.015, 1.2),
    "tracing": (2.8, 0.025, 1.2),
    "free-paint": (2.0, 0.01, 1.0),
    "sort-and-place": (2.2, 0.012, 1.1),
    "word-search": (1.9, 0.009, 0.9),
    "menu": (2.5, 0.02, 1.5),
    "default": (2.0, 0.01, 1.0),
}

# =============================================================================
# Two-Stage Filter: Kalman predictor (stage B)
# =============================================================================
PREDICTOR_PROCESS_NOISE: Final[float] = 0.01
PREDICTOR_MEASUREMENT_NOISE: Final[float] = 0.1
PREDICTOR_INITIAL_VARIANCE: Final[float] = 1.0
PREDICTION_MS: Final[float] = 16.0  # One frame at 60 FPS
MAX_PREDICTION_DISTANCE_PX: Final[float] = 50.0

# =============================================================================
# Occlusion Recovery
# =============================================================================
OCCLUSION_GRACE_WINDOW_MS: Final[float] = 200.0
OCCLUSION_MIN_LANDMARK_CONFIDENCE: Final[float] = 0.5
OCCLUSION_MAX_INFERENCE_DISTANCE: Final[float] = 0.1  # Normalized
OCCLUSION_MIN_STABLE_FRAMES: Final[int] = 2  # Frames to confirm thumb offset

# =============================================================================
# Pen State Machine
# =============================================================================
PEN_MIN_CONFIDENCE: Final[float] = 0.6
PEN_DROPOUT_FRAME_THRESHOLD: Final[int] = 3
PEN_JUMP_THRESHOLD: Final[float] = 0.08  # Normalized, before hand-scale boost
PEN_MIN_MOVEMENT: Final[float] = 0.001  # Normalized
PEN_DEBOUNCE_FRAMES: Final[int] = 2
PINCH_DOWN_THRESHOLD: Final[float] = 0.35  # x hand scale, to start a pinch
PINCH_UP_THRESHOLD: Final[float] = 0.45  # x hand scale, to end a pinch

# Velocity-based pinch tolerance
PINCH_SLOW_VELOCITY: Final[float] = 1.0  # Normalized units/sec
PINCH_FAST_VELOCITY: Final[float] = 5.0
PINCH_MAX_VELOCITY_BOOST: Final[float] = 0.15  # +15% at most

# Hand scale (wrist -> middle MCP)
HAND_SCALE_MIN: Final[float] = 0.05
HAND_SCALE_MAX: Final[float] = 0.2
HAND_SCALE_DEFAULT: Final[float] = 0.1

# =============================================================================
# Two-Hand Detector
# =============================================================================
TWO_HAND_DETECTION_DURATION_MS: Final[float] = 500.0
TWO_HAND_STABILITY_THRESHOLD: Final[float] = 0.7
TWO_HAND_FRAME_INTERVAL_MS: Final[float] = 16.67  # Expected ~60 FPS
TWO_HAND_LEFT_BOUNDARY: Final[float] = 0.5  # Wrist x below this is "left"

# =============================================================================
# Dynamic Resolution
# =============================================================================
RESOLUTION_LEVELS: Final[tuple[tuple[int, int], ...]] = (
    (1280, 720),  # Finest
    (960, 540),
    (640, 360),  # Coarsest
)
RESOLUTION_FPS_THRESHOLD: Final[float] = 50.0
RESOLUTION_LATENCY_THRESHOLD_MS: Final[float] = 60.0
RESOLUTION_SUSTAIN_DURATION_MS: Final[float] = 500.0
RESOLUTION_FPS_HYSTERESIS: Final[float] = 55.0
RESOLUTION_COOLDOWN_MS: Final[float] = 2000.0
RESOLUTION_HISTORY_WINDOW_MS: Final[float] = 2000.0
RESOLUTION_MIN_SAMPLES: Final[int] = 10
RESOLUTION_LATENCY_HEADROOM: Final[float] = 0.8  # Scale-up needs latency below 80%

# =============================================================================
# Path Tracing
# =============================================================================
TRACING_BASE_MIN_MOVEMENT_PX: Final[float] = 8.0
TRACING_ADAPTIVE_MIN_MOVEMENT_PX: Final[float] = 5.0  # Low confidence / slow
TRACING_FAST_MOVEMENT_PX: Final[float] = 30.0
TRACING_FAST_MOVEMENT_FLOOR_BONUS_PX: Final[float] = 2.0
TRACING_SLOW_MOVEMENT_PX: Final[float] = 6.0
TRACING_SLOW_WINDOW_MS: Final[float] = 300.0
TRACING_SLOW_WINDOW_TOTAL_PX: Final[float] = 5.0
TRACING_LOW_CONFIDENCE: Final[float] = 0.75
TRACING_MAX_PROGRESS_PER_FRAME: Final[float] = 0.005
TRACING_MIN_FORWARD_MOVEMENT: Final[float] = 0.0025
TRACING_MIN_UPDATE_INTERVAL_MS: Final[float] = 80.0
TRACING_PINCH_GRACE_MS: Final[float] = 200.0
TRACING_OFF_PATH_DECAY_AFTER_MS: Final[float] = 700.0
TRACING_DECAY_RATE: Final[float] = 0.0005  # Per tick
TRACING_MAX_DECAY_FRACTION: Final[float] = 0.25  # Of progress at episode start
TRACING_DECAY_PROTECT_RATIO: Final[float] = 0.95  # No decay near completion
TRACING_EARLY_PACK_TOLERANCE_BONUS: Final[float] = 1.15  # Packs 1-2
TRACING_EARLY_PACK_MAX: Final[int] = 2
TRACING_COMPLETION_EPSILON: Final[float] = 0.001
TRACING_NEAR_END_T: Final[float] = 0.95
TRACING_NEAR_END_MARGIN: Final[float] = 0.05
TRACING_NEAR_END_TOLERANCE_SCALE: Final[float] = 1.5
TRACING_STREAK_INTERVAL_MS: Final[float] = 100.0
TRACING_STREAK_GAIN: Final[float] = 0.01
TRACING_STREAK_DECAY: Final[float] = 0.005
TRACING_OFF_PATH_HINT_COOLDOWN_MS: Final[float] = 2000.0
TRACING_IDLE_HINT_MS: Final[float] = 6000.0
TRACING_IDLE_MOVEMENT_PX: Final[float] = 10.0
TRACING_MOVEMENT_HISTORY_MS: Final[float] = 1000.0
DEFAULT_VIEWPORT_WIDTH: Final[int] = 1280
DEFAULT_VIEWPORT_HEIGHT: Final[int] = 720

# Magnetic assist
MAGNETIC_ASSIST_RADIUS_PX: Final[float] = 50.0
MAGNETIC_MAX_ASSIST_STRENGTH: Final[float] = 0.3
MAGNETIC_SPEED_SCALING: Final[float] = 0.8
MAGNETIC_SPEED_REFERENCE_PX: Final[float] = 50.0  # Speed at which assist bottoms out
MAGNETIC_FORGIVENESS_MULTIPLIER: Final[float] = 1.5

# =============================================================================
# Dynamic Difficulty
# =============================================================================
DIFFICULTY_TIGHTEN_THRESHOLD: Final[float] = 0.85
DIFFICULTY_FAILURE_THRESHOLD: Final[int] = 2
DIFFICULTY_OFF_PATH_SPIKE_LIMIT: Final[int] = 3
DIFFICULTY_LOW_CONFIDENCE: Final[float] = 0.6
DIFFICULTY_HIGH_CONFIDENCE: Final[float] = 0.75
DIFFICULTY_ADJUSTMENT_RATE: Final[float] = 0.01
DIFFICULTY_UPDATE_INTERVAL_MS: Final[float] = 1000.0
DIFFICULTY_TOLERANCE_RANGE: Final[tuple[float, float]] = (0.7, 1.5)
DIFFICULTY_ASSIST_RANGE: Final[tuple[float, float]] = (0.1, 0.5)

# =============================================================================
# Persistence
# =============================================================================
PROGRESS_STORAGE_KEY: Final[str] = "airtrace:tracing-progress"
PACK_UNLOCK_REQUIREMENTS: Final[dict[int, int]] = {
    2: 4,  # Pack 2 after 4 completions in pack 1
    3: 5,
    4: 6,
}

# Logging configuration
LOG_FILENAME: Final[str] = "airtrace.log"
LOG_MAX_BYTES: Final[int] = 10 * 1024 * 1024  # 10 MB
LOG_BACKUP_COUNT: Final[int] = 3

# Exit codes
EXIT_SUCCESS: Final[int] = 0
EXIT_SETTINGS_ERROR: Final[int] = 1
EXIT_CAMERA_ERROR: Final[int] = 2
EXIT_RUNTIME_ERROR: Final[int] = 3


@dataclass
class OneEuroConfig:
    """Stage A smoothing parameters."""
    min_cutoff: float = ONE_EURO_MIN_CUTOFF
    beta: float = ONE_EURO_BETA
    d_cutoff: float = ONE_EURO_D_CUTOFF


@dataclass
class PredictorConfig:
    """Stage B predictor parameters."""
    process_noise: float = PREDICTOR_PROCESS_NOISE
    measurement_noise: float = PREDICTOR_MEASUREMENT_NOISE
    initial_variance: float = PREDICTOR_INITIAL_VARIANCE
    prediction_ms: float = PREDICTION_MS
    max_prediction_distance_px: float = MAX_PREDICTION_DISTANCE_PX


@dataclass
class OcclusionConfig:
    """Thumb occlusion inference parameters."""
    grace_window_ms: float = OCCLUSION_GRACE_WINDOW_MS
    min_landmark_confidence: float = OCCLUSION_MIN_LANDMARK_CONFIDENCE
    max_inference_distance: float = OCCLUSION_MAX_INFERENCE_DISTANCE
    min_stable_frames: int = OCCLUSION_MIN_STABLE_FRAMES


@dataclass
class PenConfig:
    """Pinch-to-draw thresholds."""
    min_confidence: float = PEN_MIN_CONFIDENCE
    dropout_frame_threshold: int = PEN_DROPOUT_FRAME_THRESHOLD
    jump_threshold: float = PEN_JUMP_THRESHOLD
    min_movement: float = PEN_MIN_MOVEMENT
    debounce_frames: int = PEN_DEBOUNCE_FRAMES
    pinch_down_threshold: float = PINCH_DOWN_THRESHOLD
    pinch_up_threshold: float = PINCH_UP_THRESHOLD
    slow_velocity: float = PINCH_SLOW_VELOCITY
    fast_velocity: float = PINCH_FAST_VELOCITY
    max_velocity_boost: float = PINCH_MAX_VELOCITY_BOOST


@dataclass
class TwoHandConfig:
    """Two-hand presence gate."""
    enabled: bool = False
    detection_duration_ms: float = TWO_HAND_DETECTION_DURATION_MS
    stability_threshold: float = TWO_HAND_STABILITY_THRESHOLD
    frame_interval_ms: float = TWO_HAND_FRAME_INTERVAL_MS
    left_boundary: float = TWO_HAND_LEFT_BOUNDARY


@dataclass
class ResolutionConfig:
    """Detection resolution scaling."""
    levels: tuple[tuple[int, int], ...] = RESOLUTION_LEVELS
    fps_threshold: float = RESOLUTION_FPS_THRESHOLD
    latency_threshold_ms: float = RESOLUTION_LATENCY_THRESHOLD_MS
    sustain_duration_ms: float = RESOLUTION_SUSTAIN_DURATION_MS
    fps_hysteresis: float = RESOLUTION_FPS_HYSTERESIS
    cooldown_ms: float = RESOLUTION_COOLDOWN_MS
    history_window_ms: float = RESOLUTION_HISTORY_WINDOW_MS
    min_samples: int = RESOLUTION_MIN_SAMPLES
    latency_headroom: float = RESOLUTION_LATENCY_HEADROOM


@dataclass
class MagneticAssistConfig:
    """Pull toward the path near the finger."""
    enabled: bool = False
    assist_radius_px: float = MAGNETIC_ASSIST_RADIUS_PX
    max_assist_strength: float = MAGNETIC_MAX_ASSIST_STRENGTH
    speed_scaling_factor: float = MAGNETIC_SPEED_SCALING
    speed_reference_px: float = MAGNETIC_SPEED_REFERENCE_PX
    forgiveness_multiplier: float = MAGNETIC_FORGIVENESS_MULTIPLIER


@dataclass
class TracingConfig:
    """Progress gating for the path-progress engine."""
    base_min_movement_px: float = TRACING_BASE_MIN_MOVEMENT_PX
    adaptive_min_movement_px: float = TRACING_ADAPTIVE_MIN_MOVEMENT_PX
    fast_movement_px: float = TRACING_FAST_MOVEMENT_PX
    fast_movement_floor_bonus_px: float = TRACING_FAST_MOVEMENT_FLOOR_BONUS_PX
    slow_movement_px: float = TRACING_SLOW_MOVEMENT_PX
    slow_window_ms: float = TRACING_SLOW_WINDOW_MS
    slow_window_total_px: float = TRACING_SLOW_WINDOW_TOTAL_PX
    low_confidence: float = TRACING_LOW_CONFIDENCE
    max_progress_per_frame: float = TRACING_MAX_PROGRESS_PER_FRAME
    min_forward_movement: float = TRACING_MIN_FORWARD_MOVEMENT
    min_update_interval_ms: float = TRACING_MIN_UPDATE_INTERVAL_MS
    pinch_grace_ms: float = TRACING_PINCH_GRACE_MS
    off_path_decay_after_ms: float = TRACING_OFF_PATH_DECAY_AFTER_MS
    decay_rate: float = TRACING_DECAY_RATE
    max_decay_fraction: float = TRACING_MAX_DECAY_FRACTION
    decay_protect_ratio: float = TRACING_DECAY_PROTECT_RATIO
    early_pack_tolerance_bonus: float = TRACING_EARLY_PACK_TOLERANCE_BONUS
    early_pack_max: int = TRACING_EARLY_PACK_MAX
    completion_epsilon: float = TRACING_COMPLETION_EPSILON
    near_end_t: float = TRACING_NEAR_END_T
    near_end_margin: float = TRACING_NEAR_END_MARGIN
    near_end_tolerance_scale: float = TRACING_NEAR_END_TOLERANCE_SCALE
    streak_interval_ms: float = TRACING_STREAK_INTERVAL_MS
    streak_gain: float = TRACING_STREAK_GAIN
    streak_decay: float = TRACING_STREAK_DECAY
    off_path_hint_cooldown_ms: float = TRACING_OFF_PATH_HINT_COOLDOWN_MS
    idle_hint_ms: float = TRACING_IDLE_HINT_MS
    idle_movement_px: float = TRACING_IDLE_MOVEMENT_PX
    movement_history_ms: float = TRACING_MOVEMENT_HISTORY_MS
    magnetic: MagneticAssistConfig = field(default_factory=MagneticAssistConfig)


@dataclass
class DifficultyConfig:
    """Adaptive tolerance and assist tuning."""
    enabled: bool = False
    tighten_threshold: float = DIFFICULTY_TIGHTEN_THRESHOLD
    failure_threshold: int = DIFFICULTY_FAILURE_THRESHOLD
    off_path_spike_limit: int = DIFFICULTY_OFF_PATH_SPIKE_LIMIT
    low_confidence: float = DIFFICULTY_LOW_CONFIDENCE
    high_confidence: float = DIFFICULTY_HIGH_CONFIDENCE
    adjustment_rate: float = DIFFICULTY_ADJUSTMENT_RATE
    update_interval_ms: float = DIFFICULTY_UPDATE_INTERVAL_MS
    tolerance_range: tuple[float, float] = DIFFICULTY_TOLERANCE_RANGE
    assist_range: tuple[float, float] = DIFFICULTY_ASSIST_RANGE


@dataclass
class FeatureFlags:
    """Optional behaviours, all off unless noted."""
    two_hand_mode: bool = False
    magnetic_assist: bool = False
    dynamic_difficulty: bool = False
    dynamic_resolution: bool = True
    occlusion_recovery: bool = True


@dataclass
class TrackerSettings:
    """Aggregate settings for one tracking session."""
    filter_mode: str = "tracing"
    predictor: PredictorConfig = field(default_factory=PredictorConfig)
    occlusion: OcclusionConfig = field(default_factory=OcclusionConfig)
    pen: PenConfig = field(default_factory=PenConfig)
    two_hand: TwoHandConfig = field(default_factory=TwoHandConfig)
    resolution: ResolutionConfig = field(default_factory=ResolutionConfig)
    tracing: TracingConfig = field(default_factory=TracingConfig)
    difficulty: DifficultyConfig = field(default_factory=DifficultyConfig)
    features: FeatureFlags = field(default_factory=FeatureFlags)
