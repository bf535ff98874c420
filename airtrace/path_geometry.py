"""
Polyline geometry for path tracing.

All distances are measured in viewport pixels so that tolerances stay
meaningful on non-square viewports.
"""

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .logger import get_logger

logger = get_logger("PathGeometry")

Point = tuple[float, float]


@dataclass(frozen=True)
class NearestPoint:
    """
    Projection of a point onto a path.

    Attributes:
        point: Closest point on the path (normalized).
        distance_px: Distance from the query point in pixels.
        overall_t: Arc-length fraction of the closest point in [0, 1].
        segment_index: Index of the segment containing the closest point.
    """
    point: Point
    distance_px: float
    overall_t: float
    segment_index: int


def _to_pixels(points: Sequence[Point], width: float, height: float) -> np.ndarray:
    pts = np.asarray(points, dtype=float).reshape(-1, 2)
    return pts * np.array([width, height])


def path_length_px(points: Sequence[Point], width: float, height: float) -> float:
    """Total polyline length in pixels."""
    if len(points) < 2:
        return 0.0
    pts = _to_pixels(points, width, height)
    return float(np.linalg.norm(np.diff(pts, axis=0), axis=1).sum())


def find_nearest_point(
    point: Point,
    path: Sequence[Point],
    width: float,
    height: float
) -> NearestPoint:
    """
    Project a point onto a polyline.

    Each segment's perpendicular foot is clamped to the segment; the
    globally nearest foot is converted to an arc-length fraction.
    Malformed paths degrade instead of raising: an empty path gives an
    infinite distance, a single point or a zero-length path gives t = 0.

    Args:
        point: Query point (normalized).
        path: Path points (normalized).
        width: Viewport width in pixels.
        height: Viewport height in pixels.

    Returns:
        NearestPoint describing the projection.
    """
    if len(path) == 0:
        logger.warning("Nearest point requested on an empty path")
        return NearestPoint(point, math.inf, 0.0, 0)

    scale = np.array([width, height], dtype=float)
    query = np.asarray(point, dtype=float) * scale
    pts = _to_pixels(path, width, height)

    if len(pts) == 1:
        return NearestPoint(tuple(path[0]), float(np.linalg.norm(query - pts[0])), 0.0, 0)

    starts = pts[:-1]
    deltas = np.diff(pts, axis=0)
    lengths = np.linalg.norm(deltas, axis=1)
    total = float(lengths.sum())

    if total == 0.0:
        logger.warning("Path has zero total length")
        return NearestPoint(tuple(path[0]), 0.0, 0.0, 0)

    valid = lengths > 0.0
    sq_lengths = np.where(valid, lengths ** 2, 1.0)
    t = np.clip(np.einsum("ij,ij->i", query - starts, deltas) / sq_lengths, 0.0, 1.0)
    feet = starts + deltas * t[:, None]
    distances = np.linalg.norm(feet - query, axis=1)
    distances[~valid] = np.inf

    best = int(np.argmin(distances))
    accumulated = float(lengths[:best].sum())
    overall_t = (accumulated + float(t[best]) * float(lengths[best])) / total

    nearest = feet[best] / scale
    return NearestPoint(
        point=(float(nearest[0]), float(nearest[1])),
        distance_px=float(distances[best]),
        overall_t=min(1.0, max(0.0, overall_t)),
        segment_index=best
    )
