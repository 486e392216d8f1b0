"""Drawing element data classes for floor plan annotation.

Entities form a tagged union: every subclass of ``Entity`` declares its
``kind`` and the kind-specific geometry it carries. Coordinates are in
drawing units (usually millimeters) and angles of arcs are in radians.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Dict, List, Optional, Tuple


Point2D = Tuple[float, float]


def _short_id() -> str:
    return str(uuid.uuid4())[:8]


class EntityKind(Enum):
    """Entity type tag."""
    LINE = "LINE"
    POLYLINE = "POLYLINE"
    ARC = "ARC"
    CIRCLE = "CIRCLE"
    TEXT = "TEXT"
    MTEXT = "MTEXT"
    ATTDEF = "ATTDEF"
    ATTRIB = "ATTRIB"
    INSERT = "INSERT"
    HATCH = "HATCH"
    DIMENSION = "DIMENSION"
    POINT = "POINT"


TEXT_KINDS = frozenset({
    EntityKind.TEXT,
    EntityKind.MTEXT,
    EntityKind.ATTDEF,
    EntityKind.ATTRIB,
})


class DoorKind(Enum):
    """Heuristic that proposed a door candidate."""
    ARC = "ARC_DOOR"
    INSERT = "INSERT_DOOR"
    LAYER = "LAYER_DOOR"
    PATTERN = "PATTERN_DOOR"


@dataclass
class TransformStep:
    """One placement step: scale, then rotate, then translate."""

    scale_x: float = 1.0
    scale_y: Optional[float] = None  # defaults to scale_x
    rotation: float = 0.0  # degrees
    translate_x: float = 0.0
    translate_y: float = 0.0

    @property
    def effective_scale_y(self) -> float:
        return self.scale_x if self.scale_y is None else self.scale_y

    def to_dict(self) -> dict:
        return {
            "scale_x": self.scale_x,
            "scale_y": self.effective_scale_y,
            "rotation": self.rotation,
            "translate_x": self.translate_x,
            "translate_y": self.translate_y,
        }


@dataclass
class BoundingBox:
    """Axis-aligned bounding box."""

    min_x: float = 0.0
    min_y: float = 0.0
    max_x: float = 0.0
    max_y: float = 0.0

    @classmethod
    def from_points(cls, points: List[Point2D]) -> Optional["BoundingBox"]:
        if not points:
            return None
        xs = [p[0] for p in points]
        ys = [p[1] for p in points]
        return cls(min(xs), min(ys), max(xs), max(ys))

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def center(self) -> Point2D:
        return ((self.min_x + self.max_x) / 2, (self.min_y + self.max_y) / 2)

    @property
    def largest_dimension(self) -> float:
        return max(self.width, self.height)

    def contains(self, point: Point2D) -> bool:
        x, y = point
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y

    def to_dict(self) -> dict:
        return {
            "min": {"x": self.min_x, "y": self.min_y},
            "max": {"x": self.max_x, "y": self.max_y},
        }


@dataclass
class Entity:
    """Base class for drawing entities."""

    kind: ClassVar[EntityKind]

    layer: str = "0"
    color: Optional[int] = None  # AutoCAD Color Index
    transforms: List[TransformStep] = field(default_factory=list)
    handle: str = field(default_factory=_short_id)

    @property
    def is_text(self) -> bool:
        return self.kind in TEXT_KINDS


@dataclass
class Line(Entity):
    kind: ClassVar[EntityKind] = EntityKind.LINE

    start: Point2D = (0.0, 0.0)
    end: Point2D = (0.0, 0.0)


@dataclass
class Polyline(Entity):
    kind: ClassVar[EntityKind] = EntityKind.POLYLINE

    vertices: List[Point2D] = field(default_factory=list)
    closed: bool = False


@dataclass
class Arc(Entity):
    """Circular arc, counter-clockwise from start_angle to end_angle (radians)."""

    kind: ClassVar[EntityKind] = EntityKind.ARC

    center: Point2D = (0.0, 0.0)
    radius: float = 0.0
    start_angle: float = 0.0
    end_angle: float = 0.0


@dataclass
class Circle(Entity):
    kind: ClassVar[EntityKind] = EntityKind.CIRCLE

    center: Point2D = (0.0, 0.0)
    radius: float = 0.0


@dataclass
class Text(Entity):
    """Single-line text.

    Parsers fill whichever content and position fields the source format
    provides; ``analysis.texts.resolve_text`` decides which one wins.
    """

    kind: ClassVar[EntityKind] = EntityKind.TEXT

    # content candidates, in priority order
    text: Optional[str] = None
    value: Optional[str] = None
    contents: Optional[str] = None
    string: Optional[str] = None

    # position candidates, in priority order
    matrix_point: Optional[Point2D] = None
    insertion_point: Optional[Point2D] = None
    position: Optional[Point2D] = None
    start_point: Optional[Point2D] = None
    direct_point: Optional[Point2D] = None

    height: float = 0.0
    rotation: float = 0.0  # degrees


@dataclass
class MText(Text):
    kind: ClassVar[EntityKind] = EntityKind.MTEXT

    attachment_point: int = 1  # 1-9, top-left to bottom-right


@dataclass
class AttDef(Text):
    kind: ClassVar[EntityKind] = EntityKind.ATTDEF

    tag: str = ""


@dataclass
class Attrib(Text):
    kind: ClassVar[EntityKind] = EntityKind.ATTRIB

    tag: str = ""


@dataclass
class Insert(Entity):
    """Placed instance of a block definition."""

    kind: ClassVar[EntityKind] = EntityKind.INSERT

    block_name: str = ""
    position: Point2D = (0.0, 0.0)
    scale_x: float = 1.0
    scale_y: float = 1.0
    rotation: float = 0.0  # degrees
    entities: List[Entity] = field(default_factory=list)

    def placement(self) -> TransformStep:
        """Transform step mapping block coordinates into the parent space."""
        return TransformStep(
            scale_x=self.scale_x,
            scale_y=self.scale_y,
            rotation=self.rotation,
            translate_x=self.position[0],
            translate_y=self.position[1],
        )

    def block_entities(self, block_table: Optional[Dict[str, List[Entity]]] = None) -> List[Entity]:
        """Entities of the referenced block, falling back to the block table."""
        if self.entities:
            return self.entities
        if block_table:
            return block_table.get(self.block_name, [])
        return []


@dataclass
class HatchEdge:
    """Boundary edge of a hatch path: a line or a counter-clockwise arc."""

    type: str = "line"  # "line" or "arc"
    start: Point2D = (0.0, 0.0)
    end: Point2D = (0.0, 0.0)
    center: Optional[Point2D] = None
    radius: float = 0.0
    start_angle: float = 0.0  # radians
    end_angle: float = 0.0


@dataclass
class HatchPath:
    edges: List[HatchEdge] = field(default_factory=list)

    @classmethod
    def from_vertices(cls, vertices: List[Point2D]) -> "HatchPath":
        """Closed line loop through the given vertices."""
        n = len(vertices)
        edges = [
            HatchEdge(start=vertices[i], end=vertices[(i + 1) % n])
            for i in range(n)
        ] if n >= 2 else []
        return cls(edges=edges)

    @property
    def points(self) -> List[Point2D]:
        pts: List[Point2D] = []
        for edge in self.edges:
            pts.append(edge.start)
            pts.append(edge.end)
        return pts


@dataclass
class Hatch(Entity):
    kind: ClassVar[EntityKind] = EntityKind.HATCH

    boundary_paths: List[HatchPath] = field(default_factory=list)
    pattern_name: str = ""


@dataclass
class Dimension(Entity):
    kind: ClassVar[EntityKind] = EntityKind.DIMENSION

    definition_point: Point2D = (0.0, 0.0)
    text_midpoint: Point2D = (0.0, 0.0)
    measurement: Optional[float] = None
    text: str = ""
    dimension_line_point: Optional[Point2D] = None

    @property
    def label(self) -> str:
        """Override text, or the rounded measurement."""
        if self.text and self.text.strip() and self.text.strip() != "<>":
            return self.text.strip()
        if self.measurement is not None:
            return f"{self.measurement:.0f}"
        return ""


@dataclass
class Point(Entity):
    kind: ClassVar[EntityKind] = EntityKind.POINT

    location: Point2D = (0.0, 0.0)


@dataclass
class TextLabel:
    """Text discovered in the drawing, with its resolved world position."""

    text: str
    position: Optional[Point2D] = None
    layer: str = "0"
    source_ref: str = ""
    coordinate_source: str = "unresolved"
    kind: EntityKind = EntityKind.TEXT
    height: float = 0.0
    is_room_candidate: bool = False

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "position": list(self.position) if self.position is not None else None,
            "layer": self.layer,
            "source_ref": self.source_ref,
            "coordinate_source": self.coordinate_source,
            "kind": self.kind.value,
            "is_room_candidate": self.is_room_candidate,
        }


@dataclass
class DoorCandidate:
    """Door proposed by one of the detection heuristics."""

    kind: DoorKind
    center: Point2D
    confidence: float
    layer: str = "0"
    source_ref: str = ""
    radius: Optional[float] = None
    angle_span_degrees: Optional[float] = None
    mid_angle: Optional[float] = None  # radians, world space
    block_name: Optional[str] = None
    marker_position: Optional[Point2D] = None

    @property
    def marker(self) -> Point2D:
        return self.marker_position if self.marker_position is not None else self.center

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "center": {"x": self.center[0], "y": self.center[1]},
            "marker": {"x": self.marker[0], "y": self.marker[1]},
            "confidence": self.confidence,
            "layer": self.layer,
            "source_ref": self.source_ref,
            "radius": self.radius,
            "angle_span_degrees": (
                round(self.angle_span_degrees, 2)
                if self.angle_span_degrees is not None else None
            ),
            "block_name": self.block_name,
        }


@dataclass
class LayerImportance:
    """Derived importance of a layer for filtering."""

    layer: str
    name_score: float
    count_score: float
    final_score: float
    entity_count: int = 0

    def to_dict(self) -> dict:
        return {
            "layer": self.layer,
            "name_score": self.name_score,
            "count_score": round(self.count_score, 3),
            "final_score": round(self.final_score, 3),
            "entity_count": self.entity_count,
        }
