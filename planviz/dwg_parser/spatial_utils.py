"""Spatial utility functions for geometry processing.

Uses Shapely for polygon measurements.
"""

import math
from typing import List, Optional, Tuple

from shapely.geometry import Polygon as ShapelyPolygon

from .elements import BoundingBox, Point2D


def rectangle_extent(vertices: List[Point2D]) -> Optional[Tuple[float, float, Point2D]]:
    """Axis-aligned extent of a closed outline.

    Args:
        vertices: Outline vertices

    Returns:
        (width, height, center) of the bounding rectangle, or None when the
        outline has fewer than three vertices
    """
    if len(vertices) < 3:
        return None
    min_x, min_y, max_x, max_y = ShapelyPolygon(vertices).bounds
    return (
        max_x - min_x,
        max_y - min_y,
        ((min_x + max_x) / 2, (min_y + max_y) / 2),
    )


def arc_points(
    center: Point2D,
    radius: float,
    start_angle: float,
    end_angle: float,
    segments: int = 8,
) -> List[Point2D]:
    """Sample a counter-clockwise arc as a polyline (angles in radians)."""
    sweep = end_angle - start_angle
    if sweep <= 0:
        sweep += 2 * math.pi
    segments = max(1, segments)
    cx, cy = center
    return [
        (
            cx + radius * math.cos(start_angle + sweep * i / segments),
            cy + radius * math.sin(start_angle + sweep * i / segments),
        )
        for i in range(segments + 1)
    ]


def fraction_inside(points: List[Point2D], bbox: BoundingBox) -> float:
    """Share of points that fall inside the box (edges included)."""
    if not points:
        return 1.0
    inside = sum(1 for p in points if bbox.contains(p))
    return inside / len(points)


def distance(p1: Point2D, p2: Point2D) -> float:
    """Calculate Euclidean distance between two points."""
    return ((p2[0] - p1[0]) ** 2 + (p2[1] - p1[1]) ** 2) ** 0.5
