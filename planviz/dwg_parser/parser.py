"""DXF drawing parser.

Turns an ezdxf document into the entity list and block table the
processing pipeline consumes. DWG files are converted to DXF first.
"""

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import ezdxf
from ezdxf.document import Drawing
from ezdxf.entities import DXFEntity
from ezdxf.entities.boundary_paths import ArcEdge, EdgePath, LineEdge, PolylinePath

from ..config import ProcessingConfig
from ..errors import FileError, ParsingError
from .converter import convert_dwg_to_dxf, is_dwg_file
from .elements import (
    Arc,
    AttDef,
    Attrib,
    Circle,
    Dimension,
    Entity,
    Hatch,
    HatchEdge,
    HatchPath,
    Insert,
    Line,
    MText,
    Point,
    Point2D,
    Polyline,
    Text,
)

logger = logging.getLogger(__name__)

BlockTable = Dict[str, List[Entity]]

UNIT_NAMES = {
    0: "unitless",
    1: "inches",
    2: "feet",
    4: "millimeters",
    5: "centimeters",
    6: "meters",
}


@dataclass
class DrawingMetadata:
    """Metadata about the loaded drawing."""

    filename: str = ""
    units: str = "unitless"
    dxf_version: str = ""
    skipped_types: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "filename": self.filename,
            "units": self.units,
            "dxf_version": self.dxf_version,
            "skipped_types": dict(self.skipped_types),
        }


@dataclass
class ParsedDrawing:
    """Entities, block definitions and metadata of one drawing."""

    entities: List[Entity] = field(default_factory=list)
    block_table: BlockTable = field(default_factory=dict)
    metadata: DrawingMetadata = field(default_factory=DrawingMetadata)


def _xy(vec) -> Point2D:
    return (float(vec[0]), float(vec[1]))


class DXFEntityConverter:
    """Converts ezdxf entities into drawing entities.

    Block definitions are converted once, on first reference.
    """

    def __init__(self, doc: Drawing):
        self.doc = doc
        self.block_table: BlockTable = {}
        self.skipped: Counter = Counter()
        self._pending: set = set()

    def convert_layout(self, layout) -> List[Entity]:
        entities: List[Entity] = []
        for dxf_entity in layout:
            entities.extend(self.convert(dxf_entity))
        return entities

    def convert(self, e: DXFEntity) -> List[Entity]:
        """Convert one DXF entity; returns an empty list for unsupported types."""
        dxftype = e.dxftype()
        handler = getattr(self, f"_convert_{dxftype.lower()}", None)
        if handler is None:
            self.skipped[dxftype] += 1
            return []
        return handler(e)

    def _common(self, e: DXFEntity) -> dict:
        color = e.dxf.get("color", 256)
        common = {
            "layer": e.dxf.get("layer", "0"),
            # 256 is BYLAYER, 0 is BYBLOCK
            "color": color if 0 < color < 256 else None,
        }
        if e.dxf.handle:
            common["handle"] = e.dxf.handle
        return common

    def _convert_line(self, e) -> List[Entity]:
        return [Line(start=_xy(e.dxf.start), end=_xy(e.dxf.end), **self._common(e))]

    def _convert_lwpolyline(self, e) -> List[Entity]:
        vertices = [(float(x), float(y)) for x, y in e.get_points("xy")]
        return [Polyline(vertices=vertices, closed=bool(e.closed), **self._common(e))]

    def _convert_polyline(self, e) -> List[Entity]:
        if not e.is_2d_polyline:
            self.skipped["POLYLINE"] += 1
            return []
        vertices = [_xy(v.dxf.location) for v in e.vertices]
        return [Polyline(vertices=vertices, closed=bool(e.is_closed), **self._common(e))]

    def _convert_arc(self, e) -> List[Entity]:
        return [Arc(
            center=_xy(e.dxf.center),
            radius=float(e.dxf.radius),
            start_angle=math.radians(e.dxf.start_angle),
            end_angle=math.radians(e.dxf.end_angle),
            **self._common(e),
        )]

    def _convert_circle(self, e) -> List[Entity]:
        return [Circle(center=_xy(e.dxf.center), radius=float(e.dxf.radius), **self._common(e))]

    def _matrix_point(self, e, point) -> Optional[Point2D]:
        """World position of an OCS point, for entities off the XY plane."""
        ocs = e.ocs()
        if not ocs.transform:
            return None
        return _xy(ocs.to_wcs(point))

    def _text_fields(self, e) -> dict:
        insert = e.dxf.get("insert")
        align = e.dxf.get("align_point")
        fields = {
            "text": e.dxf.get("text"),
            "insertion_point": _xy(insert) if insert is not None else None,
            "position": _xy(align) if align is not None else None,
            "height": float(e.dxf.get("height", 0.0)),
            "rotation": float(e.dxf.get("rotation", 0.0)),
        }
        if insert is not None:
            fields["matrix_point"] = self._matrix_point(e, insert)
        return fields

    def _convert_text(self, e) -> List[Entity]:
        return [Text(**self._text_fields(e), **self._common(e))]

    def _convert_attdef(self, e) -> List[Entity]:
        return [AttDef(tag=e.dxf.get("tag", ""), **self._text_fields(e), **self._common(e))]

    def _convert_attrib(self, e) -> List[Entity]:
        return [Attrib(tag=e.dxf.get("tag", ""), **self._text_fields(e), **self._common(e))]

    def _convert_mtext(self, e) -> List[Entity]:
        insert = e.dxf.get("insert")
        return [MText(
            text=e.text,
            insertion_point=_xy(insert) if insert is not None else None,
            height=float(e.dxf.get("char_height", 0.0)),
            rotation=float(e.get_rotation()),
            attachment_point=int(e.dxf.get("attachment_point", 1)),
            **self._common(e),
        )]

    def _convert_insert(self, e) -> List[Entity]:
        name = e.dxf.name
        self._load_block(name)
        insert = Insert(
            block_name=name,
            position=_xy(e.dxf.insert),
            scale_x=float(e.dxf.get("xscale", 1.0)),
            scale_y=float(e.dxf.get("yscale", 1.0)),
            rotation=float(e.dxf.get("rotation", 0.0)),
            **self._common(e),
        )
        # attributes are stored in world coordinates already
        result: List[Entity] = [insert]
        for attrib in e.attribs:
            result.extend(self._convert_attrib(attrib))
        return result

    def _convert_hatch(self, e) -> List[Entity]:
        paths: List[HatchPath] = []
        for path in e.paths:
            if isinstance(path, PolylinePath):
                paths.append(HatchPath.from_vertices([(float(v[0]), float(v[1])) for v in path.vertices]))
            elif isinstance(path, EdgePath):
                paths.append(HatchPath(edges=[
                    edge for edge in (self._hatch_edge(item) for item in path.edges) if edge
                ]))
        return [Hatch(
            boundary_paths=paths,
            pattern_name=e.dxf.get("pattern_name", ""),
            **self._common(e),
        )]

    @staticmethod
    def _hatch_edge(edge) -> Optional[HatchEdge]:
        if isinstance(edge, LineEdge):
            return HatchEdge(type="line", start=_xy(edge.start), end=_xy(edge.end))
        if isinstance(edge, ArcEdge):
            start, end = edge.start_angle, edge.end_angle
            if not edge.ccw:
                # clockwise edges store mirrored angles
                start, end = -end, -start
            center = _xy(edge.center)
            start_rad, end_rad = math.radians(start), math.radians(end)
            return HatchEdge(
                type="arc",
                start=(center[0] + edge.radius * math.cos(start_rad),
                       center[1] + edge.radius * math.sin(start_rad)),
                end=(center[0] + edge.radius * math.cos(end_rad),
                     center[1] + edge.radius * math.sin(end_rad)),
                center=center,
                radius=float(edge.radius),
                start_angle=start_rad,
                end_angle=end_rad,
            )
        return None

    def _convert_dimension(self, e) -> List[Entity]:
        try:
            measurement = float(e.get_measurement())
        except (TypeError, ValueError, AttributeError):
            measurement = None
        defpoint2 = e.dxf.get("defpoint2")
        return [Dimension(
            definition_point=_xy(e.dxf.defpoint),
            text_midpoint=_xy(e.dxf.get("text_midpoint", e.dxf.defpoint)),
            measurement=measurement,
            text=e.dxf.get("text", ""),
            dimension_line_point=_xy(defpoint2) if defpoint2 is not None else None,
            **self._common(e),
        )]

    def _convert_point(self, e) -> List[Entity]:
        return [Point(location=_xy(e.dxf.location), **self._common(e))]

    def _load_block(self, name: str) -> None:
        if name in self.block_table or name in self._pending:
            return
        block = self.doc.blocks.get(name)
        if block is None:
            logger.warning(f"Insert references missing block '{name}'")
            self.block_table[name] = []
            return

        self._pending.add(name)
        try:
            self.block_table[name] = self.convert_layout(block)
        finally:
            self._pending.discard(name)


def entities_from_document(doc: Drawing) -> ParsedDrawing:
    """Convert the modelspace of an ezdxf document.

    Args:
        doc: Loaded ezdxf document

    Returns:
        ParsedDrawing with modelspace entities and referenced block definitions
    """
    converter = DXFEntityConverter(doc)
    entities = converter.convert_layout(doc.modelspace())

    metadata = DrawingMetadata(
        units=UNIT_NAMES.get(doc.header.get("$INSUNITS", 0), "unitless"),
        dxf_version=doc.dxfversion,
        skipped_types=dict(converter.skipped),
    )
    if converter.skipped:
        logger.info(f"Skipped unsupported entity types: {dict(converter.skipped)}")
    logger.info(f"Parsed {len(entities)} entities, {len(converter.block_table)} blocks")

    return ParsedDrawing(entities=entities, block_table=converter.block_table, metadata=metadata)


def load_drawing(file_path: str | Path, config: Optional[ProcessingConfig] = None) -> ParsedDrawing:
    """Load a DWG or DXF file.

    Raises:
        FileError: If the file does not exist or cannot be read
        ConversionError: If DWG conversion fails
        ParsingError: If the DXF structure is invalid
    """
    config = config or ProcessingConfig()
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileError(f"File not found: {file_path}", {"path": str(file_path)})

    if is_dwg_file(file_path):
        logger.info(f"Converting DWG to DXF: {file_path}")
        file_path = convert_dwg_to_dxf(
            file_path,
            timeout=config.limits.conversion_timeout,
            converter_path=config.oda_converter_path,
        )

    logger.info(f"Loading DXF file: {file_path}")
    try:
        doc = ezdxf.readfile(str(file_path))
    except IOError as e:
        raise FileError(f"Cannot read DXF file: {e}", {"path": str(file_path)}) from e
    except ezdxf.DXFStructureError as e:
        raise ParsingError(f"Invalid DXF structure: {e}", {"path": str(file_path)}) from e

    drawing = entities_from_document(doc)
    drawing.metadata.filename = file_path.name
    return drawing


def load_entities(
    file_path: str | Path,
    config: Optional[ProcessingConfig] = None,
) -> Tuple[List[Entity], BlockTable]:
    """Load a drawing and return ``(entities, block_table)``."""
    drawing = load_drawing(file_path, config)
    return drawing.entities, drawing.block_table
