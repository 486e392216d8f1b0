"""DWG/DXF Parser Module

Drawing entity model, coordinate transforms and the adapters that load
DWG and DXF files into entity lists.
"""

from .converter import convert_dwg_to_dxf, find_oda_converter
from .elements import (
    Arc,
    AttDef,
    Attrib,
    BoundingBox,
    Circle,
    Dimension,
    DoorCandidate,
    DoorKind,
    Entity,
    EntityKind,
    Hatch,
    HatchEdge,
    HatchPath,
    Insert,
    LayerImportance,
    Line,
    MText,
    Point,
    Polyline,
    Text,
    TextLabel,
    TransformStep,
)
from .parser import ParsedDrawing, entities_from_document, load_drawing, load_entities
from .transforms import apply_angle, apply_point, explode, normalize_angle

__all__ = [
    "convert_dwg_to_dxf",
    "find_oda_converter",
    "Arc",
    "AttDef",
    "Attrib",
    "BoundingBox",
    "Circle",
    "Dimension",
    "DoorCandidate",
    "DoorKind",
    "Entity",
    "EntityKind",
    "Hatch",
    "HatchEdge",
    "HatchPath",
    "Insert",
    "LayerImportance",
    "Line",
    "MText",
    "Point",
    "Polyline",
    "Text",
    "TextLabel",
    "TransformStep",
    "ParsedDrawing",
    "entities_from_document",
    "load_drawing",
    "load_entities",
    "apply_angle",
    "apply_point",
    "explode",
    "normalize_angle",
]
