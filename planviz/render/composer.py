"""Composer: base skeleton plus overlays into the final SVG document.

Steps, in order: render the base skeleton, recolor legacy wall colors,
add custom markup, door markers and text labels, tighten the view
window and clean up the markup. A failing overlay is logged and skipped;
the remaining overlays still run.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

import svgwrite

from ..config import ComposerConfig
from ..dwg_parser.elements import DoorCandidate, DoorKind, Entity, TextLabel
from ..errors import PlanVizError, RenderingError
from .custom import CustomRenderer
from .skeleton import SkeletonRenderer, SvgSkeletonRenderer, ViewBox, fmt, to_svg

logger = logging.getLogger(__name__)

_PATH_DATA = re.compile(r'\sd="([^"]+)"')
_MOVE_LINE = re.compile(r"[ML]\s*(-?[\d.]+(?:[eE][-+]?\d+)?)[\s,]+(-?[\d.]+(?:[eE][-+]?\d+)?)")
_STYLE_BLOCK = re.compile(r"<style\b[^>]*>.*?</style>", re.DOTALL)
_EMPTY_GROUP = re.compile(r"<g\b[^>]*>\s*</g>|<g\b[^>]*/>")
_BLANK_LINES = re.compile(r"\n\s*\n+")
_DEFS = re.compile(r"<defs\b.*?</defs>", re.DOTALL)
_DRAWABLE = re.compile(r"<(path|line|polyline|polygon|circle|ellipse|rect|text)\b")

CUSTOM_KINDS = ("MTEXT", "HATCH", "DIMENSION", "INSERT")


@dataclass
class CompositionResult:
    """Final document and what went into it."""

    document: str
    view_box: ViewBox
    counts: Dict[str, int] = field(default_factory=dict)
    skipped: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "view_box": self.view_box.to_dict(),
            "counts": dict(self.counts),
            "skipped": list(self.skipped),
        }


def insert_before_close(document: str, markup: str) -> str:
    """Insert markup just before the closing ``</svg>``."""
    end = document.rfind("</svg>")
    if end == -1:
        raise RenderingError("Document has no closing </svg> tag")
    return document[:end] + markup + document[end:]


def recolor(document: str, palette: Sequence[str], color: str) -> str:
    """Replace stroke and fill values in the palette with one color."""
    for legacy in palette:
        # rgb() values may carry spaces after the commas
        pattern = re.escape(legacy).replace(",", r",\s*")
        document = re.sub(rf'(stroke|fill)="{pattern}"', rf'\1="{color}"', document)
    return document


def postprocess(document: str) -> str:
    """Keep the first style block, drop empty groups, collapse blank lines."""
    seen_style = False

    def keep_first(match):
        nonlocal seen_style
        if seen_style:
            return ""
        seen_style = True
        return match.group(0)

    document = _STYLE_BLOCK.sub(keep_first, document)

    previous = None
    while previous != document:
        previous = document
        document = _EMPTY_GROUP.sub("", document)

    return _BLANK_LINES.sub("\n", document)


class Composer:
    """Builds the annotated document.

    Args:
        config: Composer settings
        renderer: Base skeleton renderer; defaults to SvgSkeletonRenderer
    """

    def __init__(
        self,
        config: Optional[ComposerConfig] = None,
        renderer: Optional[SkeletonRenderer] = None,
    ):
        self.config = config or ComposerConfig()
        self.renderer = renderer or SvgSkeletonRenderer()
        # element factory for overlay markup
        self.dwg = svgwrite.Drawing(debug=False)

    def _markup(self, elements) -> str:
        return "\n" + "\n".join(element.tostring() for element in elements) + "\n"

    def custom_overlay(
        self,
        document: str,
        entities: Sequence[Entity],
        block_table: Optional[Dict[str, List[Entity]]],
        view_box: ViewBox,
        counts: Dict[str, int],
        skipped: List[str],
    ) -> Tuple[str, Set[str]]:
        """Markup for MText, Hatch, Dimension and Insert entities.

        Returns:
            (document, handles of text entities drawn, MText and block text)
        """
        custom = CustomRenderer(
            self.dwg,
            view_box,
            self.config,
            self.renderer if isinstance(self.renderer, SvgSkeletonRenderer) else None,
        )
        elements = []
        if any(entity.kind.value == "HATCH" for entity in entities):
            elements.append(custom.pattern_defs())
        for entity in entities:
            if entity.kind.value not in CUSTOM_KINDS:
                continue
            drawn = set(custom.drawn_text)
            try:
                element = custom.markup(entity, block_table)
            except Exception as e:
                custom.drawn_text = drawn
                logger.warning(f"Skipped {entity.kind.value} {entity.handle}: {e}")
                skipped.append(f"{entity.kind.value.lower()}:{entity.handle}")
                continue
            if element is None:
                continue
            elements.append(element)

        counts.update(custom.counts)
        logger.info(f"Custom markup: {custom.counts}")
        return insert_before_close(document, self._markup(elements)), custom.drawn_text

    def door_overlay(self, document: str, doors: Sequence[DoorCandidate]) -> str:
        """Red square plus numbered label per door."""
        if not doors:
            return document

        cfg = self.config
        group = self.dwg.g(id="door-markers")
        for number, door in enumerate(doors, start=1):
            if door.kind == DoorKind.ARC and door.radius:
                size = door.radius * cfg.marker_size_ratio
            else:
                size = cfg.fixed_marker_size
            x, y = to_svg(door.marker)

            rect = self.dwg.rect(
                insert=(fmt(x - size / 2), fmt(y - size / 2)),
                size=(fmt(size), fmt(size)),
                stroke=cfg.door_color,
                fill="rgba(255,0,0,0.15)",
                opacity=0.95,
                class_="door-marker",
            )
            rect["data-confidence"] = fmt(door.confidence)
            group.add(rect)
            group.add(self.dwg.text(
                f"{cfg.door_label_prefix}{number}",
                insert=(x, y),
                text_anchor="middle",
                dominant_baseline="middle",
                font_size=fmt(cfg.door_label_font_size),
                fill=cfg.door_color,
                class_="door-label",
            ))

        logger.info(f"Door markers: {len(doors)}")
        return insert_before_close(document, self._markup([group]))

    def label_overlay(
        self,
        document: str,
        labels: Sequence[TextLabel],
        view_box: ViewBox,
        exclude: Set[str],
    ) -> str:
        """Text labels at their resolved positions.

        Room candidates are drawn bold in the room label color. Labels
        without a position are laid out on a grid inside the view window.
        """
        labels = [label for label in labels if label.source_ref not in exclude]
        if not labels:
            return document

        cfg = self.config
        unplaced = [label for label in labels if label.position is None]
        cols = max(1, math.ceil(math.sqrt(len(unplaced))))
        rows = max(1, math.ceil(len(unplaced) / cols))

        group = self.dwg.g(id="text-labels", fill=cfg.label_color)
        grid_index = 0
        for label in labels:
            if label.position is not None:
                x, y = to_svg(label.position)
            else:
                row, col = divmod(grid_index, cols)
                x = view_box.x + view_box.width * 0.1 + col * view_box.width * 0.8 / cols
                y = view_box.y + view_box.height * 0.1 + row * view_box.height * 0.8 / rows
                grid_index += 1

            font_size = label.height if label.height > 0 else cfg.label_font_size
            text = self.dwg.text(
                label.text,
                insert=(x, y),
                font_size=fmt(font_size),
                text_anchor="middle",
                dominant_baseline="middle",
                class_="room-label" if label.is_room_candidate else "text-label",
            )
            if label.is_room_candidate:
                text["fill"] = cfg.room_label_color
                text["font-weight"] = "bold"
            group.add(text)

        logger.info(f"Text labels: {len(labels)} ({len(unplaced)} on fallback grid)")
        return insert_before_close(document, self._markup([group]))

    def fit_view_box(self, document: str) -> str:
        """Tighten the view window to the drawn path coordinates.

        Kept unchanged with too few samples or when the sampled extent is
        much larger than the current window.
        """
        cfg = self.config
        current = ViewBox.from_document(document)

        xs: List[float] = []
        ys: List[float] = []
        for data in _PATH_DATA.findall(document):
            for x, y in _MOVE_LINE.findall(data):
                px, py = float(x), float(y)
                if math.isfinite(px) and math.isfinite(py):
                    xs.append(px)
                    ys.append(py)

        if len(xs) < cfg.min_view_samples:
            logger.debug(f"View window kept: only {len(xs)} coordinates sampled")
            return document

        width = max(xs) - min(xs)
        height = max(ys) - min(ys)
        if width * height > current.area * cfg.view_growth_limit:
            logger.warning("View window kept: sampled extent far exceeds the current window")
            return document

        margin = max(width * cfg.view_margin_ratio, height * cfg.view_margin_ratio, cfg.view_min_margin)
        fitted = ViewBox(min(xs) - margin, min(ys) - margin, width + 2 * margin, height + 2 * margin)
        logger.info(f"View window: {current} -> {fitted}")
        return re.sub(r'viewBox="[^"]*"', f'viewBox="{fitted}"', document, count=1)

    def compose(
        self,
        entities: Sequence[Entity],
        block_table: Optional[Dict[str, List[Entity]]] = None,
        labels: Sequence[TextLabel] = (),
        doors: Sequence[DoorCandidate] = (),
    ) -> CompositionResult:
        """Compose the final document.

        Args:
            entities: Working (filtered) entity list
            block_table: Block name -> entities for insert replay
            labels: Discovered text labels
            doors: Deduplicated doors

        Returns:
            CompositionResult

        Raises:
            RenderingError: If the base render fails or nothing drawable remains
        """
        try:
            document = self.renderer.render(entities)
        except PlanVizError:
            raise
        except Exception as e:
            raise RenderingError(f"Base renderer failed: {e}") from e
        if "</svg>" not in document:
            raise RenderingError("Base renderer returned an incomplete document")

        counts: Dict[str, int] = {}
        skipped: List[str] = []

        document = recolor(document, self.config.recolor_palette, self.config.wall_color)

        view_box = ViewBox.from_document(document)
        drawn_text: Set[str] = set()
        try:
            document, drawn_text = self.custom_overlay(
                document, entities, block_table, view_box, counts, skipped
            )
        except Exception as e:
            logger.warning(f"Custom markup skipped: {e}")
            skipped.append("custom")

        try:
            document = self.door_overlay(document, doors)
            counts["door_markers"] = len(doors)
        except Exception as e:
            logger.warning(f"Door markers skipped: {e}")
            skipped.append("doors")

        try:
            document = self.label_overlay(document, labels, view_box, drawn_text)
            placed = [label for label in labels if label.source_ref not in drawn_text]
            counts["labels"] = len(placed)
            counts["room_labels"] = sum(1 for label in placed if label.is_room_candidate)
        except Exception as e:
            logger.warning(f"Text labels skipped: {e}")
            skipped.append("labels")

        try:
            document = self.fit_view_box(document)
        except Exception as e:
            logger.warning(f"View window fit skipped: {e}")
            skipped.append("view_box")

        document = postprocess(document)

        if not _DRAWABLE.search(_DEFS.sub("", document)):
            raise RenderingError(
                "Composed document has no drawable elements",
                {"entity_count": len(entities), "skipped": skipped},
            )

        return CompositionResult(
            document=document,
            view_box=ViewBox.from_document(document),
            counts=counts,
            skipped=skipped,
        )
