"""Entity analysis: structure, arcs, texts, importance filtering, doors."""

from .arcs import ArcAnalysis, analyze_arcs, arc_span_degrees
from .door_detector import DoorDetection, DoorDetector, deduplicate, mid_angle
from .importance_filter import FilterResult, ImportanceFilter, filter_entities, trimmed_bbox
from .structure import (
    StructureAnalysis,
    analyze_structure,
    extent_points,
    polyline_projection,
    sample_points,
)
from .texts import TextAnalysis, analyze_texts, clean_mtext, is_room_name, resolve_text

__all__ = [
    "ArcAnalysis",
    "analyze_arcs",
    "arc_span_degrees",
    "DoorDetection",
    "DoorDetector",
    "deduplicate",
    "mid_angle",
    "FilterResult",
    "ImportanceFilter",
    "filter_entities",
    "trimmed_bbox",
    "StructureAnalysis",
    "analyze_structure",
    "extent_points",
    "polyline_projection",
    "sample_points",
    "TextAnalysis",
    "analyze_texts",
    "clean_mtext",
    "is_room_name",
    "resolve_text",
]
