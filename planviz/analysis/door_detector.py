"""Door detection heuristics.

Four classifiers propose door candidates: arc swings, door-named block
references, entities on door-named layers and door-leaf sized closed
rectangles. Candidates are resolved to world coordinates through the
transform engine and deduplicated by proximity, earliest first.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from rtree import index

from ..config import DoorDetectionConfig
from ..dwg_parser.elements import (
    Arc,
    Circle,
    DoorCandidate,
    DoorKind,
    Entity,
    Insert,
    Line,
    Point,
    Point2D,
    Polyline,
    Text,
)
from ..dwg_parser.spatial_utils import rectangle_extent
from ..dwg_parser.transforms import apply_angle, apply_point, apply_points, explode, normalize_angle
from .arcs import arc_span_degrees
from .texts import resolve_position

logger = logging.getLogger(__name__)


@dataclass
class DoorDetection:
    """Deduplicated doors plus every raw candidate, in discovery order."""

    doors: List[DoorCandidate] = field(default_factory=list)
    raw_candidates: List[DoorCandidate] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.doors)

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "candidates": len(self.raw_candidates),
            "doors": [door.to_dict() for door in self.doors],
        }


def mid_angle(start_angle: float, end_angle: float) -> float:
    """Direction halfway along an arc, in [0, 2*pi).

    The plain average points the wrong way when the raw difference
    exceeds pi, so it is turned around in that case.
    """
    mid = (start_angle + end_angle) / 2
    if abs(end_angle - start_angle) > math.pi:
        mid += math.pi
    return normalize_angle(mid)


def deduplicate(candidates: Iterable[DoorCandidate], tolerance: float) -> List[DoorCandidate]:
    """Drop candidates within tolerance on both axes of an accepted one.

    The earliest candidate wins.
    """
    accepted: List[DoorCandidate] = []
    spatial_index = index.Index()

    for candidate in candidates:
        x, y = candidate.center
        nearby = spatial_index.intersection(
            (x - tolerance, y - tolerance, x + tolerance, y + tolerance)
        )
        duplicate = any(
            abs(accepted[i].center[0] - x) < tolerance
            and abs(accepted[i].center[1] - y) < tolerance
            for i in nearby
        )
        if duplicate:
            continue

        spatial_index.insert(len(accepted), (x, y, x, y))
        accepted.append(candidate)

    return accepted


class DoorDetector:
    """Runs the door classifiers over an entity list."""

    def __init__(self, config: Optional[DoorDetectionConfig] = None):
        self.config = config or DoorDetectionConfig()

    def _has_keyword(self, name: Optional[str]) -> bool:
        if not name:
            return False
        lowered = name.lower()
        return any(keyword.lower() in lowered for keyword in self.config.keywords)

    def is_swing_arc(self, arc: Arc) -> bool:
        min_radius, max_radius = self.config.arc_radius_window()
        min_angle, max_angle = self.config.arc_angle_window()
        span = arc_span_degrees(arc.start_angle, arc.end_angle)
        return min_radius <= arc.radius <= max_radius and min_angle <= span <= max_angle

    def arc_candidate(self, arc: Arc) -> Optional[DoorCandidate]:
        """Swing-arc classifier."""
        if not self.is_swing_arc(arc):
            return None

        center = apply_point(arc.center, arc.transforms)
        direction = apply_angle(mid_angle(arc.start_angle, arc.end_angle), arc.transforms)
        offset = arc.radius * self.config.marker_offset_ratio
        marker = (
            center[0] + math.cos(direction) * offset,
            center[1] + math.sin(direction) * offset,
        )

        return DoorCandidate(
            kind=DoorKind.ARC,
            center=center,
            confidence=self.config.arc_confidence,
            layer=arc.layer,
            source_ref=arc.handle,
            radius=arc.radius,
            angle_span_degrees=arc_span_degrees(arc.start_angle, arc.end_angle),
            mid_angle=direction,
            marker_position=marker,
        )

    def _block_has_swing(self, insert: Insert, block_table: Optional[Dict[str, List[Entity]]]) -> bool:
        nested = explode(
            insert.block_entities(block_table),
            block_table,
            self.config.max_block_depth,
            include_inserts=False,
        )
        return any(isinstance(entity, Arc) and self.is_swing_arc(entity) for entity in nested)

    def insert_candidate(
        self,
        insert: Insert,
        block_table: Optional[Dict[str, List[Entity]]] = None,
    ) -> Optional[DoorCandidate]:
        """Named-block classifier."""
        if not self._has_keyword(insert.block_name):
            return None

        confidence = self.config.insert_confidence
        if self._block_has_swing(insert, block_table):
            confidence = self.config.insert_with_swing_confidence

        return DoorCandidate(
            kind=DoorKind.INSERT,
            center=apply_point(insert.position, insert.transforms),
            confidence=confidence,
            layer=insert.layer,
            source_ref=insert.handle,
            block_name=insert.block_name,
        )

    def layer_candidate(self, entity: Entity) -> Optional[DoorCandidate]:
        """Named-layer classifier.

        Inserts, arcs, circles, texts and points report their anchor. Lines
        and polylines report the lower-left corner of their world bounds.
        """
        if not self._has_keyword(entity.layer):
            return None

        if isinstance(entity, (Line, Polyline)):
            ends = [entity.start, entity.end] if isinstance(entity, Line) else entity.vertices
            world = apply_points(ends, entity.transforms)
            if not world:
                return None
            return DoorCandidate(
                kind=DoorKind.LAYER,
                center=(min(x for x, _ in world), min(y for _, y in world)),
                confidence=self.config.layer_confidence,
                layer=entity.layer,
                source_ref=entity.handle,
            )

        if isinstance(entity, Insert):
            local: Optional[Point2D] = entity.position
        elif isinstance(entity, (Arc, Circle)):
            local = entity.center
        elif isinstance(entity, Text):
            local, _ = resolve_position(entity)
        elif isinstance(entity, Point):
            local = entity.location
        else:
            local = None
        if local is None:
            return None

        return DoorCandidate(
            kind=DoorKind.LAYER,
            center=apply_point(local, entity.transforms),
            confidence=self.config.layer_confidence,
            layer=entity.layer,
            source_ref=entity.handle,
            radius=getattr(entity, "radius", None),
        )

    def pattern_candidate(self, polyline: Polyline) -> Optional[DoorCandidate]:
        """Rectangular door-leaf classifier."""
        vertices = polyline.vertices
        closed = polyline.closed or (len(vertices) > 3 and vertices[0] == vertices[-1])
        if not closed:
            return None

        extent = rectangle_extent(apply_points(vertices, polyline.transforms))
        if extent is None:
            return None
        width, height, center = extent

        cfg = self.config
        short_side, long_side = sorted((width, height))
        if not (cfg.leaf_short_min <= short_side <= cfg.leaf_short_max):
            return None
        if not (cfg.leaf_long_min <= long_side <= cfg.leaf_long_max):
            return None

        return DoorCandidate(
            kind=DoorKind.PATTERN,
            center=center,
            confidence=cfg.pattern_confidence,
            layer=polyline.layer,
            source_ref=polyline.handle,
        )

    def candidates(
        self,
        entities: Sequence[Entity],
        block_table: Optional[Dict[str, List[Entity]]] = None,
    ) -> List[DoorCandidate]:
        """All raw candidates: arcs, then blocks, then layers, then patterns."""
        view = list(explode(entities, block_table, self.config.max_block_depth))
        found: List[DoorCandidate] = []

        for entity in view:
            if isinstance(entity, Arc):
                candidate = self.arc_candidate(entity)
                if candidate:
                    found.append(candidate)

        for entity in view:
            if isinstance(entity, Insert):
                candidate = self.insert_candidate(entity, block_table)
                if candidate:
                    found.append(candidate)

        for entity in view:
            candidate = self.layer_candidate(entity)
            if candidate:
                found.append(candidate)

        for entity in view:
            if isinstance(entity, Polyline):
                candidate = self.pattern_candidate(entity)
                if candidate:
                    found.append(candidate)

        return found

    def detect(
        self,
        entities: Sequence[Entity],
        block_table: Optional[Dict[str, List[Entity]]] = None,
    ) -> DoorDetection:
        """Detect doors. The entity list is not modified.

        Args:
            entities: Entities to scan (nested block content is included)
            block_table: Block name -> entities for inserts without inline content

        Returns:
            DoorDetection with deduplicated doors and the raw candidates
        """
        raw = self.candidates(entities, block_table)
        doors = deduplicate(raw, self.config.dedup_tolerance)

        by_kind: Dict[str, int] = {}
        for door in doors:
            by_kind[door.kind.value] = by_kind.get(door.kind.value, 0) + 1
        logger.info(f"Doors: {len(doors)} detected from {len(raw)} candidates {by_kind}")

        return DoorDetection(doors=doors, raw_candidates=raw)
