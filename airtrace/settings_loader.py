"""
Settings loader for AirTrace.

Loads tracker settings from a JSON file. Keys use camelCase; each top-level
section maps onto one config dataclass from ``config``. Unknown keys are
ignored, invalid values are logged and replaced by their defaults.

Example file:
    {
        "filterMode": "tracing",
        "pen": {"debounceFrames": 3, "pinchDownThreshold": 0.3},
        "features": {"magneticAssist": true}
    }
"""

import json
import re
from dataclasses import fields, is_dataclass, replace
from pathlib import Path
from typing import Any

from .config import (
    FILTER_PROFILE_VALUES,
    DifficultyConfig,
    FeatureFlags,
    OcclusionConfig,
    PenConfig,
    PredictorConfig,
    ResolutionConfig,
    TracingConfig,
    TrackerSettings,
    TwoHandConfig,
)
from .logger import get_logger

logger = get_logger("SettingsLoader")

# Section key -> (TrackerSettings attribute, config class)
_SECTIONS: dict[str, tuple[str, type]] = {
    "predictor": ("predictor", PredictorConfig),
    "occlusion": ("occlusion", OcclusionConfig),
    "pen": ("pen", PenConfig),
    "twoHand": ("two_hand", TwoHandConfig),
    "resolution": ("resolution", ResolutionConfig),
    "tracing": ("tracing", TracingConfig),
    "difficulty": ("difficulty", DifficultyConfig),
    "features": ("features", FeatureFlags),
}

# Values that must lie in [0, 1]
_UNIT_FIELDS = {
    "min_landmark_confidence",
    "min_confidence",
    "stability_threshold",
    "low_confidence",
    "high_confidence",
    "tighten_threshold",
    "max_assist_strength",
    "speed_scaling_factor",
    "max_decay_fraction",
    "decay_protect_ratio",
    "near_end_t",
    "latency_headroom",
    "left_boundary",
}


class SettingsLoadError(Exception):
    """Raised when a settings file cannot be read or parsed."""
    pass


def _snake_to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _camel_to_snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def _coerce(name: str, value: Any, default: Any) -> Any:
    """
    Validate one value against the type of its default.

    Returns:
        The validated value, or the default if it is invalid.
    """
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
    elif isinstance(default, int):
        if isinstance(value, int) and not isinstance(value, bool):
            if value < 0:
                logger.warning(f"Negative value for {name}, clamping to 0")
                return 0
            return value
    elif isinstance(default, float):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = float(value)
            if value < 0:
                logger.warning(f"Negative value for {name}, clamping to 0")
                return 0.0
            if name in _UNIT_FIELDS and value > 1.0:
                logger.warning(f"{name} must be at most 1.0, clamping")
                return 1.0
            return value
    elif isinstance(default, tuple):
        return _coerce_tuple(name, value, default)

    logger.warning(f"Invalid value for {name}: {value!r}, using default: {default!r}")
    return default


def _coerce_tuple(name: str, value: Any, default: tuple) -> tuple:
    if not isinstance(value, list) or not value:
        logger.warning(f"Invalid value for {name}: {value!r}, using default")
        return default

    # Resolution levels: list of [width, height]
    if isinstance(default[0], tuple):
        levels = []
        for item in value:
            if (
                isinstance(item, list) and len(item) == 2
                and all(isinstance(v, int) and v > 0 for v in item)
            ):
                levels.append((item[0], item[1]))
            else:
                logger.warning(f"Skipping invalid entry in {name}: {item!r}")
        return tuple(levels) if levels else default

    # Ranges: [low, high]
    if (
        len(value) == 2
        and all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in value)
        and 0 < value[0] <= value[1]
    ):
        return (float(value[0]), float(value[1]))
    logger.warning(f"Invalid range for {name}: {value!r}, using default")
    return default


def config_from_dict(config_cls: type, data: dict[str, Any]) -> Any:
    """
    Build a config dataclass from a camelCase dictionary.

    Nested dataclass fields (``TracingConfig.magnetic``) are parsed
    recursively. Missing keys keep their defaults.

    Args:
        config_cls: Config dataclass to build.
        data: Dictionary with camelCase keys.

    Returns:
        Instance of ``config_cls``.
    """
    instance = config_cls()
    known = {f.name for f in fields(instance)}
    for key in data:
        if _camel_to_snake(key) not in known:
            logger.debug(f"Ignoring unknown setting {config_cls.__name__}.{key}")

    values = {}
    for f in fields(instance):
        key = _snake_to_camel(f.name)
        if key not in data:
            continue
        default = getattr(instance, f.name)
        if is_dataclass(default):
            if isinstance(data[key], dict):
                values[f.name] = config_from_dict(type(default), data[key])
            else:
                logger.warning(f"Section {key} must be an object, using defaults")
            continue
        values[f.name] = _coerce(f.name, data[key], default)
    return replace(instance, **values)


def settings_from_dict(data: dict[str, Any]) -> TrackerSettings:
    """
    Parse and validate settings from a dictionary.

    Args:
        data: Dictionary with camelCase settings sections.

    Returns:
        Validated TrackerSettings instance.

    Raises:
        SettingsLoadError: If the document is not a JSON object.
    """
    if not isinstance(data, dict):
        raise SettingsLoadError("Settings must be a JSON object")

    settings = TrackerSettings()

    filter_mode = data.get("filterMode", settings.filter_mode)
    if not isinstance(filter_mode, str) or filter_mode not in FILTER_PROFILE_VALUES:
        logger.warning(f"Unknown filterMode {filter_mode!r}, using default profile")
        filter_mode = "default"
    settings.filter_mode = filter_mode

    for key, (attr, config_cls) in _SECTIONS.items():
        section = data.get(key)
        if section is None:
            continue
        if not isinstance(section, dict):
            logger.warning(f"Section {key} must be an object, using defaults")
            continue
        setattr(settings, attr, config_from_dict(config_cls, section))

    pen = settings.pen
    if pen.pinch_up_threshold < pen.pinch_down_threshold:
        logger.warning(
            f"pinchUpThreshold ({pen.pinch_up_threshold}) below pinchDownThreshold "
            f"({pen.pinch_down_threshold}), using defaults"
        )
        defaults = PenConfig()
        pen.pinch_down_threshold = defaults.pinch_down_threshold
        pen.pinch_up_threshold = defaults.pinch_up_threshold

    if pen.debounce_frames < 1:
        logger.warning("debounceFrames must be at least 1, clamping")
        pen.debounce_frames = 1

    # Feature flags drive the per-module enable switches
    settings.two_hand.enabled = settings.two_hand.enabled or settings.features.two_hand_mode
    settings.tracing.magnetic.enabled = (
        settings.tracing.magnetic.enabled or settings.features.magnetic_assist
    )
    settings.difficulty.enabled = settings.difficulty.enabled or settings.features.dynamic_difficulty

    return settings


def load_settings(settings_path: str | Path) -> TrackerSettings:
    """
    Load and validate settings from a JSON file.

    Args:
        settings_path: Path to the JSON settings file.

    Returns:
        Validated TrackerSettings instance.

    Raises:
        SettingsLoadError: If the file cannot be read or is not valid JSON.
    """
    path = Path(settings_path)
    logger.info(f"Loading settings from: {path}")

    if not path.exists():
        raise SettingsLoadError(f"Settings file not found: {path}")

    if not path.is_file():
        raise SettingsLoadError(f"Settings path is not a file: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise SettingsLoadError(f"Invalid JSON in settings: {e}")
    except OSError as e:
        raise SettingsLoadError(f"Cannot read settings file: {e}")

    return settings_from_dict(data)
