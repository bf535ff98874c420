"""
AirTrace command-line runner.

Drives fingertip tracking and a tracing session either from a recorded
JSONL replay or from a live camera, then prints a summary.

Usage:
    airtrace --replay session.jsonl --path warmup-h1
    airtrace --camera 0 --progress ~/.airtrace/progress.json --advance
"""

import argparse
import json
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, Optional

from .camera_manager import CameraError, CameraManager
from .config import (
    DEFAULT_CAMERA_INDEX,
    DEFAULT_VIEWPORT_HEIGHT,
    DEFAULT_VIEWPORT_WIDTH,
    EXIT_CAMERA_ERROR,
    EXIT_RUNTIME_ERROR,
    EXIT_SETTINGS_ERROR,
    EXIT_SUCCESS,
    TrackerSettings,
)
from .difficulty_controller import DifficultyController
from .dynamic_resolution import DynamicResolutionController
from .fingertip_tracker import FingertipTracker
from .hand_detector import DetectorError, HandDetector
from .landmarks import LandmarkFrame
from .logger import get_logger, setup_logging
from .pen_state_machine import PenEventType
from .progress_store import JsonFileStore, ProgressStore
from .settings_loader import SettingsLoadError, load_settings
from .tracing_paths import get_path
from .tracing_session import TracingSession, TracingTick

logger = get_logger("TraceRunner")


@dataclass
class RunSummary:
    """What happened during one run."""
    path_id: str
    frames: int = 0
    strokes: int = 0
    completed_paths: list[str] = field(default_factory=list)
    last_tick: Optional[TracingTick] = None

    def describe(self) -> str:
        progress = self.last_tick.progress if self.last_tick else 0.0
        accuracy = self.last_tick.accuracy if self.last_tick else 0.0
        completed = ", ".join(self.completed_paths) or "none"
        return (
            f"Path: {self.path_id}\n"
            f"Frames: {self.frames}\n"
            f"Strokes: {self.strokes}\n"
            f"Progress: {progress:.1%}\n"
            f"Accuracy: {accuracy:.1%}\n"
            f"Completed: {completed}"
        )


def parse_viewport(value: str) -> tuple[int, int]:
    """Parse a WIDTHxHEIGHT argument."""
    try:
        width, height = (int(part) for part in value.lower().split("x"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Viewport must look like 1280x720, got: {value}")
    if width <= 0 or height <= 0:
        raise argparse.ArgumentTypeError(f"Viewport dimensions must be positive, got: {value}")
    return width, height


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="airtrace",
        description="Trace paths in the air with a pinched index finger.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  airtrace --replay recording.jsonl --path letter-A
  airtrace --camera 0 --progress progress.json --advance
        """
    )

    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--replay",
        type=Path,
        help="JSONL file of recorded landmark frames (timestampMs, hands)"
    )
    source.add_argument(
        "--camera",
        type=int,
        nargs="?",
        const=DEFAULT_CAMERA_INDEX,
        help="Run live from the camera with this index"
    )
    parser.add_argument(
        "--path",
        help="Path id to trace (default: current level from progress)"
    )
    parser.add_argument(
        "--settings",
        type=Path,
        help="JSON settings file"
    )
    parser.add_argument(
        "--viewport",
        type=parse_viewport,
        default=(DEFAULT_VIEWPORT_WIDTH, DEFAULT_VIEWPORT_HEIGHT),
        help="Viewport size as WIDTHxHEIGHT (default: %(default)s)"
    )
    parser.add_argument(
        "--progress",
        type=Path,
        help="Progress file (default: in-memory, not saved)"
    )
    parser.add_argument(
        "--advance",
        action="store_true",
        help="Move on to the next level after each completion"
    )
    parser.add_argument(
        "--model",
        type=Path,
        help="MediaPipe hand landmarker model (Tasks API only)"
    )
    parser.add_argument(
        "--no-mirror",
        action="store_true",
        help="Do not flip camera frames horizontally"
    )
    parser.add_argument(
        "--max-frames",
        type=int,
        default=0,
        help="Stop after this many camera frames (0 = until completion)"
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        help="Directory for the rotating log file (default: ~/.airtrace/logs)"
    )
    parser.add_argument(
        "--no-log-file",
        action="store_true",
        help="Log to the console only"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    return parser.parse_args(argv)


def read_replay(replay_path: Path) -> Iterator[Optional[LandmarkFrame]]:
    """
    Read recorded frames, one JSON object per line.

    Malformed lines are logged and yielded as None so they count as
    dropouts instead of aborting the replay.
    """
    with open(replay_path, "r", encoding="utf-8") as f:
        for line_number, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                yield LandmarkFrame.from_dict(json.loads(line))
            except (ValueError, KeyError, TypeError) as e:
                logger.warning(f"Skipping malformed frame on line {line_number}: {e}")
                yield None


def run_frames(
    frames: Iterable[Optional[LandmarkFrame]],
    tracker: FingertipTracker,
    session: TracingSession,
    store: ProgressStore,
    advance: bool = False
) -> RunSummary:
    """
    Feed frames through tracking and tracing.

    Args:
        frames: Landmark frames; None entries are dropouts.
        tracker: Fingertip tracker.
        session: Tracing session for the starting path.
        store: Progress store that records completions.
        advance: Continue with the next level after a completion.

    Returns:
        RunSummary for the run.
    """
    summary = RunSummary(path_id=session.path.id)

    for frame in frames:
        result = tracker.process(frame)
        summary.frames += 1
        summary.strokes += sum(
            1 for event in result.pen_events if event.event_type is PenEventType.STROKE_START
        )

        point = result.filtered_index if result.hand_present else None
        confidence = result.confidence if result.hand_present else None
        tick = session.process(point, result.pen_down, result.timestamp_ms, confidence)
        summary.last_tick = tick

        if not tick.completed_now:
            continue

        summary.completed_paths.append(session.path.id)
        if not advance:
            break

        # Advance from the level just traced, not the stored position
        current = store.get_current_path()
        if current is None or current.id != session.path.id:
            store.set_current_level(session.path.pack, session.path.level - 1)
        next_path = store.advance_to_next_level()
        if next_path is None:
            logger.info("No further levels unlocked")
            break
        logger.info(f"Advancing to {next_path.id}")
        session.reset(next_path)
        summary.path_id = next_path.id

    return summary


def camera_frames(
    camera: CameraManager,
    detector: HandDetector,
    resolution: Optional[DynamicResolutionController],
    max_frames: int = 0
) -> Iterator[Optional[LandmarkFrame]]:
    """Capture, downscale and detect frames until interrupted."""
    count = 0
    last_frame_ms: Optional[float] = None
    fps = 0.0

    while max_frames <= 0 or count < max_frames:
        count += 1
        captured = camera.read()
        if captured is None:
            yield None
            continue

        timestamp_ms = captured.timestamp_ms
        rgb = captured.rgb
        if resolution is not None:
            rgb = resolution.scale_frame(rgb)

        started = time.perf_counter()
        frame = detector.detect(rgb, timestamp_ms)
        latency_ms = (time.perf_counter() - started) * 1000.0

        if last_frame_ms is not None and timestamp_ms > last_frame_ms:
            instant_fps = 1000.0 / (timestamp_ms - last_frame_ms)
            fps = instant_fps if fps == 0.0 else fps * 0.9 + instant_fps * 0.1
        last_frame_ms = timestamp_ms

        if resolution is not None and fps > 0:
            resolution.add_sample(fps, fps, latency_ms, timestamp_ms)

        yield frame


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code.
    """
    args = parse_args(argv)

    logger = setup_logging(
        debug=args.debug,
        log_to_file=not args.no_log_file,
        log_dir=args.log_dir
    )
    logger.info("AirTrace starting...")

    # Load settings
    settings = TrackerSettings()
    if args.settings is not None:
        try:
            settings = load_settings(args.settings)
        except SettingsLoadError as e:
            logger.error(f"Failed to load settings: {e}")
            return EXIT_SETTINGS_ERROR

    store = ProgressStore(JsonFileStore(args.progress) if args.progress else None)

    if args.path:
        path = get_path(args.path)
        if path is None:
            logger.error(f"Unknown path id: {args.path}")
            return EXIT_SETTINGS_ERROR
    else:
        path = store.get_current_path()
        if path is None:
            logger.error("Progress points at a level that does not exist")
            return EXIT_SETTINGS_ERROR

    viewport_w, viewport_h = args.viewport
    difficulty = DifficultyController(settings.difficulty) if settings.difficulty.enabled else None
    tracker = FingertipTracker(settings, viewport_w, viewport_h)
    session = TracingSession(
        path,
        settings.tracing,
        viewport_w,
        viewport_h,
        progress_store=store,
        difficulty=difficulty
    )
    logger.info(f"Tracing {path.id} ({path.name})")

    try:
        if args.replay is not None:
            summary = run_frames(read_replay(args.replay), tracker, session, store, args.advance)
        else:
            summary = _run_camera(args, settings, tracker, session, store)
    except (CameraError, DetectorError) as e:
        logger.error(f"Camera error: {e}")
        return EXIT_CAMERA_ERROR
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return EXIT_SUCCESS
    except Exception as e:
        logger.exception(f"Runtime error: {e}")
        return EXIT_RUNTIME_ERROR

    print(summary.describe())
    logger.info("AirTrace finished")
    return EXIT_SUCCESS


def _run_camera(
    args: argparse.Namespace,
    settings: TrackerSettings,
    tracker: FingertipTracker,
    session: TracingSession,
    store: ProgressStore
) -> RunSummary:
    resolution = (
        DynamicResolutionController(settings.resolution)
        if settings.features.dynamic_resolution else None
    )
    camera = CameraManager(camera_index=args.camera, mirror=not args.no_mirror)
    with camera, HandDetector(model_path=args.model) as detector:
        frames = camera_frames(camera, detector, resolution, args.max_frames)
        return run_frames(frames, tracker, session, store, args.advance)


if __name__ == "__main__":
    sys.exit(main())
