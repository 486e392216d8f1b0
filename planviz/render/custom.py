"""Custom markup for entities the skeleton renderer does not draw.

MText paragraphs, hatch fills, dimension annotations and block
instances are synthesized here as svgwrite elements. Text drawn here,
top-level MText and any text replayed from a block, is recorded by
handle so the label overlay does not draw it a second time.
"""

import logging
import math
from typing import Dict, List, Optional, Set

import svgwrite

from ..config import ComposerConfig
from ..dwg_parser.elements import (
    Dimension,
    Entity,
    Hatch,
    HatchPath,
    Insert,
    MText,
    Text,
)
from ..dwg_parser.transforms import apply_point, explode
from ..analysis.texts import clean_mtext, resolve_content, resolve_position, resolve_text
from .skeleton import SvgSkeletonRenderer, ViewBox, fmt, to_svg

logger = logging.getLogger(__name__)

SOLID_FILL = "rgba(180,180,180,0.5)"
DEFAULT_FILL = "rgba(200,200,200,0.3)"
PATTERN_FILLS = ("ansi31", "ansi32")

# attachment column -> text-anchor
ANCHORS = ("start", "middle", "end")


def _scale(entity: Entity) -> float:
    scale = 1.0
    for step in entity.transforms:
        scale *= abs(step.scale_x)
    return scale


class CustomRenderer:
    """Builds markup for MText, Hatch, Dimension and Insert entities.

    Args:
        dwg: svgwrite drawing used as the element factory
        view_box: Current view window, used for minimum font sizes
        config: Composer settings
    """

    def __init__(
        self,
        dwg: svgwrite.Drawing,
        view_box: ViewBox,
        config: Optional[ComposerConfig] = None,
        skeleton: Optional[SvgSkeletonRenderer] = None,
    ):
        self.dwg = dwg
        self.view_box = view_box
        self.config = config or ComposerConfig()
        self.skeleton = skeleton or SvgSkeletonRenderer()
        self.counts: Dict[str, int] = {"mtext": 0, "text": 0, "hatch": 0, "dimension": 0, "insert": 0}
        self.drawn_text: Set[str] = set()

    @property
    def min_font_size(self) -> float:
        return min(self.view_box.width, self.view_box.height) * self.config.mtext_min_font_ratio

    def pattern_defs(self):
        """``<defs>`` with the hatch fill patterns."""
        defs = svgwrite.container.Defs(factory=self.dwg)
        for name, angles in (("ansi31", (45,)), ("ansi32", (45, -45))):
            pattern = self.dwg.pattern(
                id=name, size=(20, 20), patternUnits="userSpaceOnUse",
            )
            for angle in angles:
                line = self.dwg.line(start=(0, 10), end=(20, 10), stroke="#808080", stroke_width=1)
                line.rotate(angle, center=(10, 10))
                pattern.add(line)
            defs.add(pattern)
        return defs

    def mtext(self, entity: MText):
        """Multi-line text, one ``<text>`` per paragraph."""
        content = resolve_content(entity)
        if not content:
            return None
        lines = clean_mtext(content)
        if not lines:
            return None

        position, _ = resolve_position(entity)
        if position is None:
            return None
        x, y = to_svg(apply_point(position, entity.transforms))

        height = entity.height or self.config.mtext_default_height
        font_size = max(height * self.config.mtext_height_factor, self.min_font_size)
        line_offset = font_size * self.config.line_spacing

        # attachment 1-3 top, 4-6 middle, 7-9 bottom; left, center, right
        row, column = divmod(min(max(entity.attachment_point, 1), 9) - 1, 3)
        if row == 0:
            first = y + font_size
        elif row == 1:
            first = y + font_size / 2 - (len(lines) - 1) * line_offset / 2
        else:
            first = y - (len(lines) - 1) * line_offset

        group = self.dwg.g(class_="mtext")
        group["data-layer"] = entity.layer
        for i, line in enumerate(lines):
            group.add(self.dwg.text(
                line,
                insert=(x, first + i * line_offset),
                font_size=fmt(font_size),
                text_anchor=ANCHORS[column],
                fill=self.config.label_color,
            ))
        if entity.rotation:
            group.rotate(-entity.rotation, center=(x, y))

        self.counts["mtext"] += 1
        self.drawn_text.add(entity.handle)
        return group

    def text(self, entity: Text):
        """Single-line text replayed from a block."""
        label = resolve_text(entity)
        if label is None or label.position is None:
            return None

        x, y = to_svg(label.position)
        element = self.dwg.text(
            label.text,
            insert=(x, y),
            font_size=fmt(label.height or self.config.label_font_size),
            fill=self.config.label_color,
            class_="text-label",
        )
        self.counts["text"] += 1
        self.drawn_text.add(entity.handle)
        return element

    def _hatch_path_data(self, path: HatchPath, entity: Entity) -> Optional[str]:
        if not path.edges:
            return None
        scale = _scale(entity)
        first = to_svg(apply_point(path.edges[0].start, entity.transforms))
        commands = [f"M {fmt(first[0])} {fmt(first[1])}"]

        for edge in path.edges:
            end = to_svg(apply_point(edge.end, entity.transforms))
            if edge.type == "arc" and edge.radius > 0:
                sweep = edge.end_angle - edge.start_angle
                if sweep <= 0:
                    sweep += 2 * math.pi
                large = 1 if sweep > math.pi else 0
                r = fmt(edge.radius * scale)
                commands.append(f"A {r} {r} 0 {large} 0 {fmt(end[0])} {fmt(end[1])}")
            else:
                commands.append(f"L {fmt(end[0])} {fmt(end[1])}")

        commands.append("Z")
        return " ".join(commands)

    def fill_for(self, pattern_name: str) -> str:
        name = (pattern_name or "").lower()
        if name in PATTERN_FILLS:
            return f"url(#{name})"
        if name == "solid":
            return SOLID_FILL
        return DEFAULT_FILL

    def hatch(self, entity: Hatch):
        """Filled shape per boundary path."""
        fill = self.fill_for(entity.pattern_name)
        group = self.dwg.g(class_="hatch")
        group["data-layer"] = entity.layer

        for path in entity.boundary_paths:
            d = self._hatch_path_data(path, entity)
            if d:
                group.add(self.dwg.path(d=d, fill=fill, stroke="none"))

        if not group.elements:
            return None
        self.counts["hatch"] += 1
        return group

    def dimension(self, entity: Dimension):
        """Dimension line and centered label."""
        label = entity.label
        if not label:
            return None

        color = self.config.dimension_color
        group = self.dwg.g(class_="dimension")
        group["data-layer"] = entity.layer

        if entity.dimension_line_point is not None:
            start = to_svg(apply_point(entity.definition_point, entity.transforms))
            end = to_svg(apply_point(entity.dimension_line_point, entity.transforms))
            group.add(self.dwg.line(start=start, end=end, stroke=color, stroke_width=1))

        x, y = to_svg(apply_point(entity.text_midpoint, entity.transforms))
        group.add(self.dwg.text(
            label,
            insert=(x, y),
            font_size=fmt(self.min_font_size),
            text_anchor="middle",
            fill=color,
        ))

        self.counts["dimension"] += 1
        return group

    def insert(self, entity: Insert, block_table: Optional[Dict[str, List[Entity]]] = None):
        """Replay a block's entities at the instance placement.

        Nested instances are followed up to the configured depth. Texts,
        attribute definitions and attributes inside the block are drawn
        as plain text.
        """
        group = self.dwg.g(class_="insert")
        group["data-block"] = entity.block_name

        for child in explode([entity], block_table, self.config.max_block_depth, include_inserts=False):
            element = self.skeleton.element(self.dwg, child)
            if element is None and isinstance(child, Text) and not isinstance(child, MText):
                element = self.text(child)
            elif element is None:
                element = self.markup(child, block_table, replay_inserts=False)
            if element is not None:
                group.add(element)

        if not group.elements:
            return None
        self.counts["insert"] += 1
        return group

    def markup(
        self,
        entity: Entity,
        block_table: Optional[Dict[str, List[Entity]]] = None,
        replay_inserts: bool = True,
    ):
        """Dispatch by kind; None for kinds without custom markup."""
        if isinstance(entity, MText):
            return self.mtext(entity)
        if isinstance(entity, Hatch):
            return self.hatch(entity)
        if isinstance(entity, Dimension):
            return self.dimension(entity)
        if isinstance(entity, Insert) and replay_inserts:
            return self.insert(entity, block_table)
        return None
