"""Structural analysis of an entity list.

Computes the drawing bounding box from the entities' own coordinates,
groups entities by layer and counts them by type.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from ..dwg_parser.elements import (
    Arc,
    BoundingBox,
    Circle,
    Dimension,
    Entity,
    Hatch,
    Insert,
    Line,
    Point,
    Point2D,
    Polyline,
    Text,
)
from ..dwg_parser.spatial_utils import arc_points
from ..dwg_parser.transforms import apply_points
from ..errors import AnalysisError

logger = logging.getLogger(__name__)


@dataclass
class StructureAnalysis:
    """Result of structural analysis."""

    bbox: BoundingBox
    layer_groups: Dict[str, List[Entity]] = field(default_factory=dict)
    entity_count: int = 0
    type_counts: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "bounding_box": self.bbox.to_dict(),
            "layers": {name: len(group) for name, group in self.layer_groups.items()},
            "entity_count": self.entity_count,
            "type_counts": dict(self.type_counts),
        }


def _local_points(entity: Entity) -> List[Point2D]:
    if isinstance(entity, Line):
        return [entity.start, entity.end]
    if isinstance(entity, Polyline):
        return list(entity.vertices)
    if isinstance(entity, (Arc, Circle)):
        return [entity.center]
    if isinstance(entity, Text):
        # local import, texts depends on this module
        from .texts import resolve_position
        position, _ = resolve_position(entity)
        return [position] if position is not None else []
    if isinstance(entity, Insert):
        return [entity.position]
    if isinstance(entity, Hatch):
        points: List[Point2D] = []
        for path in entity.boundary_paths:
            points.extend(path.points)
        return points
    if isinstance(entity, Dimension):
        return [entity.definition_point, entity.text_midpoint]
    if isinstance(entity, Point):
        return [entity.location]
    return []


def sample_points(entity: Entity) -> List[Point2D]:
    """Coordinates an entity carries, in world space.

    Arcs and circles contribute their centre.
    """
    return apply_points(_local_points(entity), entity.transforms)


def extent_points(entity: Entity) -> List[Point2D]:
    """Like sample_points, with arcs and circles inflated by their radius."""
    if isinstance(entity, (Arc, Circle)):
        cx, cy = entity.center
        r = entity.radius
        local = [(cx - r, cy - r), (cx + r, cy + r), (cx - r, cy + r), (cx + r, cy - r)]
        return apply_points(local, entity.transforms)
    return sample_points(entity)


def polyline_projection(entity: Entity, arc_segments: int = 8) -> List[Point2D]:
    """Vertices of the entity drawn as polylines, in world space."""
    if isinstance(entity, Arc):
        local = arc_points(entity.center, entity.radius, entity.start_angle,
                           entity.end_angle, arc_segments)
    elif isinstance(entity, Circle):
        local = arc_points(entity.center, entity.radius, 0.0, 0.0, arc_segments)[:-1]
    else:
        return sample_points(entity)
    return apply_points(local, entity.transforms)


def compute_bbox(entities: Sequence[Entity]) -> BoundingBox:
    """Bounding box over every coordinate-bearing entity.

    Raises:
        AnalysisError: If no entity carries coordinates
    """
    points: List[Point2D] = []
    for entity in entities:
        points.extend(extent_points(entity))

    bbox = BoundingBox.from_points(points)
    if bbox is None:
        raise AnalysisError(
            "Cannot derive a bounding box: no entity carries coordinates",
            {"entity_count": len(entities)},
        )
    return bbox


def analyze_structure(entities: Sequence[Entity]) -> StructureAnalysis:
    """Compute bounding box, layer groups and type counts.

    Args:
        entities: Entity list (not modified)

    Returns:
        StructureAnalysis

    Raises:
        AnalysisError: If the list is empty or carries no coordinates
    """
    if not entities:
        raise AnalysisError("Entity list is empty", {"entity_count": 0})

    bbox = compute_bbox(entities)

    layer_groups: Dict[str, List[Entity]] = {}
    for entity in entities:
        layer_groups.setdefault(entity.layer, []).append(entity)

    type_counts = Counter(entity.kind.value for entity in entities)

    logger.info(
        f"Structure: {len(entities)} entities on {len(layer_groups)} layers, "
        f"bbox X({bbox.min_x:.1f} ~ {bbox.max_x:.1f}) Y({bbox.min_y:.1f} ~ {bbox.max_y:.1f})"
    )

    return StructureAnalysis(
        bbox=bbox,
        layer_groups=layer_groups,
        entity_count=len(entities),
        type_counts=dict(type_counts),
    )
