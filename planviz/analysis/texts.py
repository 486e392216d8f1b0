"""Text discovery.

Every text-like entity (TEXT, MTEXT, ATTDEF, ATTRIB) goes through
``resolve_text``, which picks the content and anchor position from the
candidate fields in a fixed priority order. Texts nested in block
references are found through the exploded view, and texts or block
names that read like a room name are flagged as room candidates.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from ..config import TextConfig
from ..dwg_parser.elements import Entity, EntityKind, Insert, MText, Point2D, Text, TextLabel
from ..dwg_parser.transforms import apply_point, explode

logger = logging.getLogger(__name__)

CONTENT_FIELDS = ("text", "value", "contents", "string")

POSITION_FIELDS = (
    ("matrix_point", "matrix"),
    ("insertion_point", "insertion_point"),
    ("position", "position"),
    ("start_point", "start_point"),
    ("direct_point", "direct"),
)

_ALIGNMENT_CODE = re.compile(r"\\pxqc;")
_FORMAT_CODE = re.compile(r"\\[A-Za-z][^\\;]*;")
_TOGGLE_CODE = re.compile(r"\\[LlOoKk]")
_BRACES = re.compile(r"[{}]")
_WORD = re.compile(r"[a-z]+")


@dataclass
class TextAnalysis:
    """Discovered texts."""

    labels: List[TextLabel] = field(default_factory=list)
    entity_types: Dict[str, int] = field(default_factory=dict)

    @property
    def count(self) -> int:
        return len(self.labels)

    @property
    def room_candidates(self) -> int:
        return sum(1 for label in self.labels if label.is_room_candidate)

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "entity_types": dict(self.entity_types),
            "room_candidates": self.room_candidates,
            "texts": [label.to_dict() for label in self.labels],
        }


def _is_origin(point: Point2D) -> bool:
    return point[0] == 0 and point[1] == 0


def resolve_content(entity: Text) -> Optional[str]:
    """First non-blank content field, stripped."""
    for name in CONTENT_FIELDS:
        value = getattr(entity, name, None)
        if value is None:
            continue
        value = str(value).strip()
        if value:
            return value
    return None


def resolve_position(entity: Text) -> Tuple[Optional[Point2D], str]:
    """Local anchor position of a text entity and the field it came from.

    The first candidate that is set and not (0, 0) wins. When every
    candidate is unset or at the origin, a set matrix position is used
    anyway; otherwise the position is unresolved.
    """
    for name, tag in POSITION_FIELDS:
        point = getattr(entity, name, None)
        if point is not None and not _is_origin(point):
            return (float(point[0]), float(point[1])), tag

    if entity.matrix_point is not None:
        return (float(entity.matrix_point[0]), float(entity.matrix_point[1])), "matrix_fallback"
    return None, "unresolved"


def clean_mtext(raw: str) -> List[str]:
    """Split MText on paragraph breaks and strip formatting codes.

    Returns the non-empty lines.
    """
    text = _ALIGNMENT_CODE.sub("", raw)
    lines = []
    for part in text.split("\\P"):
        part = _FORMAT_CODE.sub("", part)
        part = _TOGGLE_CODE.sub("", part)
        part = _BRACES.sub("", part).strip()
        if part:
            lines.append(part)
    return lines


def is_room_name(
    text: Optional[str],
    keywords: Sequence[str],
    abbreviations: Sequence[str] = (),
) -> bool:
    """True when the text contains a room keyword or is/has a room abbreviation."""
    if not text:
        return False
    lowered = text.lower()
    if any(keyword.lower() in lowered for keyword in keywords):
        return True
    words = set(_WORD.findall(lowered))
    return any(abbreviation.lower() in words for abbreviation in abbreviations)


def resolve_text(entity: Entity) -> Optional[TextLabel]:
    """Build the TextLabel for a text-like entity.

    Returns None for non-text entities and for blank content. A label is
    returned even when no position could be resolved.
    """
    if not isinstance(entity, Text):
        return None

    content = resolve_content(entity)
    if content is None:
        return None
    if isinstance(entity, MText):
        content = " ".join(clean_mtext(content)) or content

    position, source = resolve_position(entity)
    if position is not None:
        position = apply_point(position, entity.transforms)

    return TextLabel(
        text=content,
        position=position,
        layer=entity.layer,
        source_ref=entity.handle,
        coordinate_source=source,
        kind=entity.kind,
        height=entity.height,
    )


def block_name_label(insert: Insert) -> TextLabel:
    """Label for a block reference whose name reads like a room name."""
    return TextLabel(
        text=insert.block_name,
        position=apply_point(insert.position, insert.transforms),
        layer=insert.layer,
        source_ref=insert.handle,
        coordinate_source="block_name",
        kind=EntityKind.INSERT,
        is_room_candidate=True,
    )


def analyze_texts(
    entities: Sequence[Entity],
    block_table: Optional[Dict[str, List[Entity]]] = None,
    config: Optional[TextConfig] = None,
) -> TextAnalysis:
    """Collect every non-blank text in entity order, block content included.

    Args:
        entities: Working entity list
        block_table: Block name -> entities for inserts without inline content
        config: Room keywords and block depth

    Returns:
        TextAnalysis with one label per text plus one per room-named insert
    """
    config = config or TextConfig()
    result = TextAnalysis()

    for entity in explode(entities, block_table, config.max_block_depth):
        if isinstance(entity, Insert):
            if is_room_name(entity.block_name, config.room_keywords, config.room_abbreviations):
                result.labels.append(block_name_label(entity))
            continue
        if not entity.is_text:
            continue
        kind = entity.kind.value
        result.entity_types[kind] = result.entity_types.get(kind, 0) + 1

        label = resolve_text(entity)
        if label is None:
            continue
        label.is_room_candidate = is_room_name(
            label.text, config.room_keywords, config.room_abbreviations
        )
        result.labels.append(label)
        logger.debug(
            f"Text '{label.text}' on {label.layer} at {label.position} ({label.coordinate_source})"
        )

    unresolved = sum(1 for label in result.labels if label.position is None)
    logger.info(
        f"Texts: {result.count} discovered, {result.room_candidates} room candidates, "
        f"{unresolved} without position"
    )
    return result
