"""Importance filter.

Scores every non-text entity on four criteria and removes entities that
score below the keep threshold, plus far outliers. Text-like entities
are never removed.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional

import numpy as np

from ..config import FilterConfig
from ..dwg_parser.elements import BoundingBox, Entity, LayerImportance, Point2D
from ..dwg_parser.spatial_utils import distance, fraction_inside
from .structure import StructureAnalysis, polyline_projection, sample_points

if TYPE_CHECKING:
    from ..pipeline import ProcessingContext

logger = logging.getLogger(__name__)


@dataclass
class FilterResult:
    """Outcome of one filter pass."""

    original_count: int = 0
    kept_count: int = 0
    removed_outliers: int = 0
    removed_low_score: int = 0
    layer_importance: Dict[str, LayerImportance] = field(default_factory=dict)
    enabled: bool = True

    @property
    def removed_count(self) -> int:
        return self.original_count - self.kept_count

    def to_dict(self) -> dict:
        return {
            "enabled": self.enabled,
            "original_count": self.original_count,
            "kept_count": self.kept_count,
            "removed_outliers": self.removed_outliers,
            "removed_low_score": self.removed_low_score,
            "layer_importance": {
                name: info.to_dict() for name, info in self.layer_importance.items()
            },
        }


class DensityGrid:
    """Vertex counts over an N x N partition of the bounding box."""

    def __init__(self, bbox: BoundingBox, points: List[Point2D], size: int = 25):
        self.size = size
        self.min_x = bbox.min_x
        self.min_y = bbox.min_y
        # a flat drawing still gets cells of non-zero size
        self.max_x = bbox.max_x if bbox.width > 0 else bbox.min_x + 1.0
        self.max_y = bbox.max_y if bbox.height > 0 else bbox.min_y + 1.0

        x_edges = np.linspace(self.min_x, self.max_x, size + 1)
        y_edges = np.linspace(self.min_y, self.max_y, size + 1)

        if points:
            coords = np.asarray(points, dtype=float)
            counts, _, _ = np.histogram2d(coords[:, 0], coords[:, 1], bins=[x_edges, y_edges])
        else:
            counts = np.zeros((size, size))
        self.counts = counts

        occupied = counts[counts > 0]
        self.mean = float(occupied.mean()) if occupied.size else 0.0

    def _index(self, value: float, low: float, high: float) -> Optional[int]:
        if value < low or value > high:
            return None
        index = int(math.floor((value - low) / (high - low) * self.size))
        # right edge belongs to the last cell
        return min(index, self.size - 1)

    def cell_count(self, point: Point2D) -> Optional[float]:
        """Count of the cell holding the point, or None outside the grid."""
        ix = self._index(point[0], self.min_x, self.max_x)
        iy = self._index(point[1], self.min_y, self.max_y)
        if ix is None or iy is None:
            return None
        return float(self.counts[ix, iy])


def trimmed_bbox(points: List[Point2D], trim: float = 0.02) -> Optional[BoundingBox]:
    """Bounding box with the extreme ``trim`` share of coordinates cut per axis.

    Falls back to the full extent when trimming leaves a degenerate box.
    """
    if not points:
        return None
    coords = np.asarray(points, dtype=float)
    xs = np.sort(coords[:, 0])
    ys = np.sort(coords[:, 1])
    n = len(xs)
    start = int(math.floor(n * trim))
    end = int(math.ceil(n * (1 - trim)))

    bbox = BoundingBox(float(xs[start]), float(ys[start]), float(xs[end - 1]), float(ys[end - 1]))
    if bbox.width <= 0 or bbox.height <= 0:
        return BoundingBox(float(xs[0]), float(ys[0]), float(xs[-1]), float(ys[-1]))
    return bbox


class ImportanceFilter:
    """Multi-criterion entity filter.

    The outlier guard measures distance from the main drawing area: the
    extent of the drawn geometry with the most extreme coordinates
    trimmed. Scoring uses the full structural bounding box.
    """

    def __init__(self, config: Optional[FilterConfig] = None):
        self.config = config or FilterConfig()

    def layer_name_score(self, layer: str) -> float:
        name = layer.lower()
        for keywords, score in self.config.layer_name_scores:
            if any(keyword in name for keyword in keywords):
                return score
        if name in self.config.low_importance_layers:
            return self.config.low_name_score
        return self.config.default_name_score

    def layer_importance(self, structure: StructureAnalysis) -> Dict[str, LayerImportance]:
        """Blend the name keyword score with the layer's share of entities."""
        cfg = self.config
        total = sum(len(group) for group in structure.layer_groups.values())
        importance = {}

        for layer, group in structure.layer_groups.items():
            name_score = self.layer_name_score(layer)
            ratio = len(group) / total if total else 0.0
            count_score = min(ratio * cfg.count_share_factor, 1.0)
            final = cfg.name_blend * name_score + (1 - cfg.name_blend) * count_score
            importance[layer] = LayerImportance(
                layer=layer,
                name_score=name_score,
                count_score=count_score,
                final_score=final,
                entity_count=len(group),
            )
            logger.debug(
                f"Layer '{layer}': importance={final:.2f} "
                f"(name={name_score}, count={count_score:.2f}, entities={len(group)})"
            )

        return importance

    def type_score(self, entity: Entity) -> float:
        return self.config.type_scores.get(entity.kind.value, self.config.unknown_type_score)

    def spatial_score(self, points: List[Point2D], grid: DensityGrid) -> float:
        """Mean normalized local density over the entity's sample points."""
        if grid.mean <= 0:
            return 0.5

        cap = self.config.density_cap
        total = 0.0
        valid = 0
        for point in points:
            count = grid.cell_count(point)
            if count is None:
                continue
            total += min(count / grid.mean, cap) / cap
            valid += 1

        return total / valid if valid else 0.5

    def is_outlier(self, points: List[Point2D], bbox: BoundingBox) -> bool:
        limit = bbox.largest_dimension * self.config.outlier_factor
        center = bbox.center
        return any(distance(point, center) > limit for point in points)

    def score(
        self,
        entity: Entity,
        points: List[Point2D],
        bbox: BoundingBox,
        importance: Dict[str, LayerImportance],
        grid: DensityGrid,
    ) -> float:
        cfg = self.config
        layer_info = importance.get(entity.layer)
        layer_score = layer_info.final_score if layer_info else cfg.unknown_layer_score

        return (
            cfg.layer_weight * layer_score
            + cfg.type_weight * self.type_score(entity)
            + cfg.spatial_weight * self.spatial_score(points, grid)
            + cfg.bbox_weight * fraction_inside(points, bbox)
        )

    def apply(
        self,
        entities: List[Entity],
        structure: StructureAnalysis,
        context: Optional["ProcessingContext"] = None,
    ) -> FilterResult:
        """Filter the entity list in place.

        Args:
            entities: Working entity list; removed entities are dropped from it
            structure: Structural analysis of the same list
            context: Per-run context used to log each entity once

        Returns:
            FilterResult with counts and layer importances
        """
        original_count = len(entities)
        if not self.config.enabled:
            logger.info("Importance filter disabled")
            return FilterResult(
                original_count=original_count,
                kept_count=original_count,
                enabled=False,
            )

        bbox = structure.bbox
        importance = self.layer_importance(structure)

        projection: List[Point2D] = []
        for entity in entities:
            projection.extend(polyline_projection(entity, self.config.arc_segments))
        grid = DensityGrid(bbox, projection, self.config.grid_size)
        main_area = trimmed_bbox(projection, self.config.outlier_trim) or bbox

        kept: List[Entity] = []
        removed_outliers = 0
        removed_low_score = 0

        for entity in entities:
            if entity.is_text:
                kept.append(entity)
                continue

            points = sample_points(entity)
            if points and self.is_outlier(points, main_area):
                removed_outliers += 1
                self._log_removal(context, entity, "outlier")
                continue

            value = self.score(entity, points, bbox, importance, grid)
            if value >= self.config.keep_threshold:
                kept.append(entity)
            else:
                removed_low_score += 1
                self._log_removal(context, entity, f"score {value:.2f}")

        entities[:] = kept

        result = FilterResult(
            original_count=original_count,
            kept_count=len(kept),
            removed_outliers=removed_outliers,
            removed_low_score=removed_low_score,
            layer_importance=importance,
        )
        percent = (result.removed_count / original_count * 100) if original_count else 0.0
        logger.info(
            f"Filter: removed {result.removed_count} of {original_count} ({percent:.1f}%), "
            f"{removed_outliers} outliers, {len(kept)} remaining"
        )
        return result

    @staticmethod
    def _log_removal(context: Optional["ProcessingContext"], entity: Entity, reason: str) -> None:
        message = f"Removed {entity.kind.value} on '{entity.layer}' ({reason})"
        if context is not None:
            context.log_once(entity.handle, message)
        else:
            logger.debug(message)


def filter_entities(
    entities: List[Entity],
    structure: StructureAnalysis,
    config: Optional[FilterConfig] = None,
) -> FilterResult:
    """Convenience wrapper around ImportanceFilter.apply."""
    return ImportanceFilter(config).apply(entities, structure)
