"""Arc classification by angular span."""

import logging
import math
from dataclasses import dataclass
from typing import Sequence, Tuple

from ..dwg_parser.elements import Arc, Entity

logger = logging.getLogger(__name__)


@dataclass
class ArcAnalysis:
    """Arc counts bucketed by span. Diagnostic only."""

    arc_count: int = 0
    near_right_angle: int = 0
    other: int = 0

    def to_dict(self) -> dict:
        return {
            "arc_count": self.arc_count,
            "near_right_angle": self.near_right_angle,
            "other": self.other,
        }


def arc_span_degrees(start_angle: float, end_angle: float) -> float:
    """Angular span between two angles in radians, as degrees in [0, 180].

    The difference is reduced modulo 360 first, so either argument order
    and angles past 2*pi give the same result.
    """
    span = math.degrees(abs(end_angle - start_angle)) % 360.0
    if span > 180.0:
        span = 360.0 - span
    return span


def analyze_arcs(
    entities: Sequence[Entity],
    near_right_angle_window: Tuple[float, float] = (80.0, 100.0),
) -> ArcAnalysis:
    """Count arcs and how many of them span roughly a right angle."""
    low, high = near_right_angle_window
    result = ArcAnalysis()

    for entity in entities:
        if not isinstance(entity, Arc):
            continue
        span = arc_span_degrees(entity.start_angle, entity.end_angle)
        result.arc_count += 1
        if low <= span <= high:
            result.near_right_angle += 1
        else:
            result.other += 1

    logger.info(
        f"Arcs: {result.arc_count} total, {result.near_right_angle} near 90 degrees"
    )
    return result
