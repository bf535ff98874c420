"""
Built-in tracing paths, grouped into packs.

Pack 1: Warm-up Lines (6 paths)
Pack 2: Shapes (6 paths)
Pack 3: Letters A-Z (26 paths)
Pack 4: Numbers 1-9 (9 paths)

Letter and number outlines are simplified single-stroke approximations
drawn in a unit box and then centered on screen.
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence

from .logger import get_logger

logger = get_logger("TracingPaths")

Point = tuple[float, float]

PACK_NAMES: dict[int, str] = {
    1: "Warm-up Lines",
    2: "Shapes",
    3: "Letters",
    4: "Numbers",
}


@dataclass(frozen=True)
class TracingPath:
    """
    One traceable path.

    Attributes:
        id: Stable identifier, also the persistence key.
        name: Display name.
        pack: Pack number (1-4).
        level: 1-based position inside the pack.
        points: Normalized path points in drawing order.
        tolerance_px: On-path corridor half-width in pixels.
        completion_percent: Progress fraction required to complete.
        assist_strength: Magnetic assist strength in [0, 1].
    """
    id: str
    name: str
    pack: int
    level: int
    points: tuple[Point, ...]
    tolerance_px: float
    completion_percent: float
    assist_strength: float


def center(points: Sequence[Point], width: float = 0.18, height: float = 0.18) -> tuple[Point, ...]:
    """Scale unit-box points into a box of the given size centered on screen."""
    offset_x = 0.5 - width / 2
    offset_y = 0.5 - height / 2
    return tuple((offset_x + x * width, offset_y + y * height) for x, y in points)


def circle(cx: float, cy: float, r: float, segments: int = 40) -> list[Point]:
    """Closed circle in unit-box coordinates."""
    return [
        (cx + math.cos(i / segments * math.pi * 2) * r,
         cy + math.sin(i / segments * math.pi * 2) * r)
        for i in range(segments + 1)
    ]


def _gentle_curve() -> list[Point]:
    return [(i / 20, 0.5 + math.sin(i / 20 * math.pi) * 0.15) for i in range(21)]


def _spiral() -> list[Point]:
    points = []
    for i in range(61):
        t = i / 60
        angle = t * math.pi * 4
        radius = t * 0.4
        points.append((0.5 + math.cos(angle) * radius, 0.5 + math.sin(angle) * radius))
    return points


def _figure_eight() -> list[Point]:
    points = []
    for i in range(41):
        angle = i / 40 * math.pi * 4
        radius = 0.2 * (1 + math.sin(angle))
        points.append((0.5 + math.cos(angle) * radius, 0.5 + math.sin(angle * 2) * radius))
    return points


# (id, name, points) per pack
_WARMUP: list[tuple[str, str, list[Point]]] = [
    ("warmup-h1", "Horizontal Line", [(0, 0.5), (1, 0.5)]),
    ("warmup-v1", "Vertical Line", [(0.5, 0), (0.5, 1)]),
    ("warmup-dl1", "Diagonal Left", [(0, 0), (1, 1)]),
    ("warmup-dr1", "Diagonal Right", [(1, 0), (0, 1)]),
    ("warmup-zigzag1", "Zigzag", [(0, 0.5), (0.3, 0.3), (0.5, 0.5), (0.7, 0.3), (1, 0.5)]),
    ("warmup-curve1", "Gentle Curve", _gentle_curve()),
]

_SHAPES: list[tuple[str, str, list[Point]]] = [
    ("shape-circle", "Circle", circle(0.5, 0.5, 0.5)),
    ("shape-square", "Square", [(0, 0), (1, 0), (1, 1), (0, 1), (0, 0)]),
    ("shape-triangle", "Triangle", [(0.5, 0), (1, 1), (0, 1), (0.5, 0)]),
    ("shape-rectangle", "Rectangle", [(0, 0), (1, 0), (1, 0.7), (0, 0.7), (0, 0)]),
    ("shape-spiral", "Spiral", _spiral()),
    ("shape-figure8", "Figure 8", _figure_eight()),
]

_LETTERS: dict[str, list[Point]] = {
    "A": [(0.2, 1.0), (0.5, 0.0), (0.8, 1.0), (0.3, 0.5), (0.7, 0.5)],
    "B": [(0.0, 0.0), (0.0, 1.0), (0.6, 1.0), (0.8, 0.8), (0.8, 0.6), (0.6, 0.5),
          (0.8, 0.4), (0.8, 0.2), (0.6, 0.0), (0.0, 0.0)],
    "C": [(0.8, 0.2), (0.6, 0.0), (0.2, 0.0), (0.0, 0.2), (0.0, 0.8), (0.2, 1.0),
          (0.6, 1.0), (0.8, 0.8)],
    "D": [(0.0, 0.0), (0.0, 1.0), (0.6, 1.0), (0.9, 0.7), (0.9, 0.3), (0.6, 0.0), (0.0, 0.0)],
    "E": [(0.8, 0.0), (0.0, 0.0), (0.0, 1.0), (0.8, 1.0), (0.0, 0.5), (0.6, 0.5)],
    "F": [(0.0, 0.0), (0.0, 1.0), (0.0, 0.5), (0.6, 0.5), (0.0, 0.0), (0.8, 0.0)],
    "G": [(0.8, 0.2), (0.6, 0.0), (0.2, 0.0), (0.0, 0.2), (0.0, 0.8), (0.2, 1.0),
          (0.6, 1.0), (0.8, 0.8), (0.8, 0.5), (0.5, 0.5)],
    "H": [(0.0, 0.0), (0.0, 1.0), (0.0, 0.5), (1.0, 0.5), (1.0, 0.0), (1.0, 1.0)],
    "I": [(0.0, 0.0), (1.0, 0.0), (0.5, 0.0), (0.5, 1.0), (0.0, 1.0), (1.0, 1.0)],
    "J": [(0.5, 0.0), (0.5, 0.9), (0.2, 1.0), (0.0, 0.8)],
    "K": [(0.0, 0.0), (0.0, 1.0), (0.0, 0.5), (1.0, 0.0), (0.0, 0.5), (1.0, 1.0)],
    "L": [(0.0, 0.0), (0.0, 1.0), (0.8, 1.0)],
    "M": [(0.0, 1.0), (0.0, 0.0), (0.5, 0.5), (1.0, 0.0), (1.0, 1.0)],
    "N": [(0.0, 1.0), (0.0, 0.0), (1.0, 1.0), (1.0, 0.0)],
    "O": circle(0.5, 0.5, 0.5),
    "P": [(0.0, 1.0), (0.0, 0.0), (0.6, 0.0), (0.8, 0.2), (0.8, 0.4), (0.6, 0.5), (0.0, 0.5)],
    "Q": circle(0.5, 0.5, 0.5) + [(0.6, 0.6), (0.9, 0.9)],
    "R": [(0.0, 1.0), (0.0, 0.0), (0.6, 0.0), (0.8, 0.2), (0.8, 0.4), (0.6, 0.5),
          (0.0, 0.5), (0.7, 1.0)],
    "S": [(0.8, 0.2), (0.6, 0.0), (0.2, 0.0), (0.0, 0.2), (0.0, 0.4), (0.2, 0.5),
          (0.8, 0.5), (1.0, 0.6), (1.0, 0.8), (0.8, 1.0), (0.2, 1.0), (0.0, 0.8)],
    "T": [(0.0, 0.0), (1.0, 0.0), (0.5, 0.0), (0.5, 1.0)],
    "U": [(0.0, 0.0), (0.0, 0.8), (0.2, 1.0), (0.8, 1.0), (1.0, 0.8), (1.0, 0.0)],
    "V": [(0.0, 0.0), (0.5, 1.0), (1.0, 0.0)],
    "W": [(0.0, 0.0), (0.25, 1.0), (0.5, 0.5), (0.75, 1.0), (1.0, 0.0)],
    "X": [(0.0, 0.0), (1.0, 1.0), (0.0, 1.0), (1.0, 0.0)],
    "Y": [(0.0, 0.0), (0.5, 0.5), (1.0, 0.0), (0.5, 0.5), (0.5, 1.0)],
    "Z": [(0.0, 0.0), (1.0, 0.0), (0.0, 1.0), (1.0, 1.0)],
}

_NUMBERS: dict[int, list[Point]] = {
    1: [(0.5, 0.0), (0.5, 1.0)],
    2: [(0.0, 0.2), (0.3, 0.0), (0.8, 0.0), (1.0, 0.2), (1.0, 0.4), (0.0, 1.0), (1.0, 1.0)],
    3: [(0.0, 0.2), (0.3, 0.0), (0.7, 0.0), (1.0, 0.2), (1.0, 0.4), (0.7, 0.5),
        (1.0, 0.6), (1.0, 0.8), (0.7, 1.0), (0.3, 1.0), (0.0, 0.8)],
    4: [(0.0, 0.0), (0.0, 0.5), (1.0, 0.5), (1.0, 0.0), (1.0, 1.0)],
    5: [(1.0, 0.0), (0.0, 0.0), (0.0, 0.5), (0.8, 0.5), (1.0, 0.6), (1.0, 0.8),
        (0.8, 1.0), (0.2, 1.0), (0.0, 0.8)],
    6: [(0.8, 0.2), (0.6, 0.0), (0.2, 0.0), (0.0, 0.2), (0.0, 1.0), (0.8, 1.0),
        (1.0, 0.8), (1.0, 0.6), (0.8, 0.5), (0.2, 0.5)],
    7: [(0.0, 0.0), (1.0, 0.0), (0.5, 1.0)],
    8: [(0.3, 0.2), (0.0, 0.4), (0.0, 0.6), (0.3, 0.8), (0.7, 0.8), (1.0, 0.6),
        (1.0, 0.4), (0.7, 0.2), (0.3, 0.2), (0.0, 0.4), (0.3, 0.5), (0.7, 0.5),
        (1.0, 0.6), (0.7, 0.8)],
    9: [(1.0, 0.2), (0.8, 0.0), (0.2, 0.0), (0.0, 0.2), (0.0, 0.8), (0.2, 1.0),
        (0.8, 1.0), (1.0, 0.8), (1.0, 0.6), (0.8, 0.5), (0.2, 0.5), (0.0, 0.2)],
}


def _build_paths() -> tuple[TracingPath, ...]:
    paths: list[TracingPath] = []

    for level, (path_id, name, points) in enumerate(_WARMUP, start=1):
        paths.append(TracingPath(path_id, name, 1, level, center(points), 24, 0.82, 0.65))

    for level, (path_id, name, points) in enumerate(_SHAPES, start=1):
        # Spiral and figure 8 are the harder shapes
        if level <= 4:
            tolerance, completion, assist = 18, 0.85, 0.55
        else:
            tolerance, completion, assist = 18, 0.90, 0.4
        paths.append(TracingPath(path_id, name, 2, level, center(points), tolerance, completion, assist))

    for level, (letter, points) in enumerate(_LETTERS.items(), start=1):
        if level < 10:
            tolerance, completion, assist = 18, 0.88, 0.5
        else:
            tolerance, completion, assist = 16, 0.90, 0.4
        paths.append(TracingPath(
            f"letter-{letter}", letter, 3, level, center(points), tolerance, completion, assist
        ))

    for level, (number, points) in enumerate(_NUMBERS.items(), start=1):
        paths.append(TracingPath(
            f"number-{number}", str(number), 4, level, center(points), 18, 0.90, 0.4
        ))

    return tuple(paths)


ALL_TRACING_PATHS: tuple[TracingPath, ...] = _build_paths()
_PATHS_BY_ID: dict[str, TracingPath] = {path.id: path for path in ALL_TRACING_PATHS}


def all_paths() -> tuple[TracingPath, ...]:
    return ALL_TRACING_PATHS


def get_pack(pack: int) -> list[TracingPath]:
    """Paths of one pack in level order (empty for unknown packs)."""
    return [path for path in ALL_TRACING_PATHS if path.pack == pack]


def get_path(path_id: str) -> Optional[TracingPath]:
    """Look up a path by id."""
    path = _PATHS_BY_ID.get(path_id)
    if path is None:
        logger.warning(f"Unknown tracing path: {path_id}")
    return path


def get_pack_name(pack: int) -> str:
    return PACK_NAMES.get(pack, f"Pack {pack}")


def pack_numbers() -> list[int]:
    return sorted(PACK_NAMES)
