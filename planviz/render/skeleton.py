"""Base vector skeleton renderer.

Draws the rectilinear geometry of an entity list (lines, polylines, arcs
and circles) as an SVG document. Text, hatches, dimensions and block
instances are left to the composer's custom markup.
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Sequence

import svgwrite
from ezdxf.colors import aci2rgb

from ..dwg_parser.elements import Arc, BoundingBox, Circle, Entity, Line, Point2D, Polyline
from ..dwg_parser.transforms import apply_point, apply_points

logger = logging.getLogger(__name__)

DEFAULT_STROKE = "rgb(0,0,0)"

SKELETON_CSS = """
path, circle { fill: none; stroke-width: 1; vector-effect: non-scaling-stroke; }
.door-marker { stroke-width: 12; }
.door-label { font-family: Arial, sans-serif; font-weight: bold; }
.room-label { font-family: Arial, sans-serif; }
.text-label { font-family: Arial, sans-serif; }
"""

_VIEW_BOX = re.compile(r'viewBox="([^"]+)"')


@dataclass
class ViewBox:
    """SVG view window."""

    x: float = 0.0
    y: float = 0.0
    width: float = 1000.0
    height: float = 1000.0

    @classmethod
    def from_document(cls, document: str) -> "ViewBox":
        """Read the view window of a document, or the 1000 x 1000 default."""
        match = _VIEW_BOX.search(document)
        if not match:
            return cls()
        values = [float(v) for v in match.group(1).replace(",", " ").split()]
        if len(values) != 4:
            return cls()
        return cls(*values)

    @property
    def area(self) -> float:
        return self.width * self.height

    def __str__(self) -> str:
        return " ".join(fmt(v) for v in (self.x, self.y, self.width, self.height))

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


class SkeletonRenderer(Protocol):
    """Anything that turns entities into a base SVG document."""

    def render(self, entities: Sequence[Entity]) -> str:
        ...


def to_svg(point: Point2D) -> Point2D:
    """World coordinates to SVG coordinates (Y axis flipped)."""
    return (point[0], -point[1])


def fmt(value: float) -> str:
    text = f"{value:.3f}".rstrip("0").rstrip(".")
    if text in ("", "-", "-0"):
        return "0"
    return text


def aci_to_css(color: Optional[int]) -> str:
    """CSS color for an AutoCAD Color Index; white (7) draws black."""
    if color is None or color == 7 or not 0 < color < 256:
        return DEFAULT_STROKE
    r, g, b = aci2rgb(color)
    return f"rgb({r},{g},{b})"


def path_data(points: List[Point2D], closed: bool = False) -> str:
    """``M x y L x y ...`` path data for world points."""
    svg_points = [to_svg(p) for p in points]
    commands = [f"M {fmt(svg_points[0][0])} {fmt(svg_points[0][1])}"]
    commands.extend(f"L {fmt(x)} {fmt(y)}" for x, y in svg_points[1:])
    if closed:
        commands.append("Z")
    return " ".join(commands)


def arc_path_data(center: Point2D, radius: float, start_angle: float, end_angle: float) -> str:
    """Path data for a counter-clockwise world arc (angles in radians)."""
    sweep = end_angle - start_angle
    if sweep <= 0:
        sweep += 2 * math.pi
    start = (center[0] + radius * math.cos(start_angle), center[1] + radius * math.sin(start_angle))
    end = (center[0] + radius * math.cos(start_angle + sweep),
           center[1] + radius * math.sin(start_angle + sweep))
    sx, sy = to_svg(start)
    ex, ey = to_svg(end)
    large = 1 if sweep > math.pi else 0
    # counter-clockwise in world space is clockwise on screen
    return (
        f"M {fmt(sx)} {fmt(sy)} "
        f"A {fmt(radius)} {fmt(radius)} 0 {large} 0 {fmt(ex)} {fmt(ey)}"
    )


def placed_arc_angles(arc: Arc, world_center: Point2D):
    """Start and end angles of an arc after its placement transforms.

    Mirroring placements reverse the sweep, so the endpoints swap.
    """
    cx, cy = arc.center
    ends = [
        apply_point((cx + arc.radius * math.cos(a), cy + arc.radius * math.sin(a)), arc.transforms)
        for a in (arc.start_angle, arc.end_angle)
    ]
    start, end = (math.atan2(y - world_center[1], x - world_center[0]) for x, y in ends)

    mirrored = False
    for step in arc.transforms:
        if (step.scale_x < 0) != (step.effective_scale_y < 0):
            mirrored = not mirrored
    return (end, start) if mirrored else (start, end)


class SvgSkeletonRenderer:
    """Default skeleton renderer built on svgwrite."""

    def __init__(self, css: str = SKELETON_CSS):
        self.css = css

    def _scale(self, entity: Entity) -> float:
        scale = 1.0
        for step in entity.transforms:
            scale *= abs(step.scale_x)
        return scale

    def element(self, dwg: svgwrite.Drawing, entity: Entity, extent: Optional[List[Point2D]] = None):
        """svgwrite element for a geometry entity, or None for other kinds."""
        if extent is None:
            extent = []
        stroke = aci_to_css(entity.color)

        if isinstance(entity, Line):
            points = apply_points([entity.start, entity.end], entity.transforms)
            extent.extend(points)
            return dwg.path(d=path_data(points), stroke=stroke)

        if isinstance(entity, Polyline):
            if len(entity.vertices) < 2:
                return None
            points = apply_points(entity.vertices, entity.transforms)
            extent.extend(points)
            return dwg.path(d=path_data(points, entity.closed), stroke=stroke)

        if isinstance(entity, Arc):
            center = apply_point(entity.center, entity.transforms)
            radius = entity.radius * self._scale(entity)
            extent.extend([(center[0] - radius, center[1] - radius),
                           (center[0] + radius, center[1] + radius)])
            start, end = placed_arc_angles(entity, center)
            return dwg.path(d=arc_path_data(center, radius, start, end), stroke=stroke)

        if isinstance(entity, Circle):
            center = apply_point(entity.center, entity.transforms)
            radius = entity.radius * self._scale(entity)
            extent.extend([(center[0] - radius, center[1] - radius),
                           (center[0] + radius, center[1] + radius)])
            cx, cy = to_svg(center)
            return dwg.circle(center=(cx, cy), r=radius, stroke=stroke)

        return None

    def render(self, entities: Sequence[Entity]) -> str:
        """Render entities into an SVG document string.

        Paths are grouped by layer in first-seen order.
        """
        dwg = svgwrite.Drawing(size=("100%", "100%"), debug=False)
        dwg.embed_stylesheet(self.css)

        groups: Dict[str, svgwrite.container.Group] = {}
        extent: List[Point2D] = []
        drawn = 0

        for entity in entities:
            element = self.element(dwg, entity, extent)
            if element is None:
                continue
            group = groups.get(entity.layer)
            if group is None:
                group = dwg.g(class_="layer")
                group["data-layer"] = entity.layer
                groups[entity.layer] = group
            group.add(element)
            drawn += 1

        for group in groups.values():
            dwg.add(group)

        bbox = BoundingBox.from_points(extent) or BoundingBox(0.0, 0.0, 1.0, 1.0)
        dwg["viewBox"] = str(ViewBox(bbox.min_x, -bbox.max_y, max(bbox.width, 1.0), max(bbox.height, 1.0)))

        logger.info(f"Skeleton: {drawn} elements on {len(groups)} layers")
        return dwg.tostring()
