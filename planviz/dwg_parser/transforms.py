"""Coordinate transforms for nested block placement.

A transform list is ordered innermost first: each step scales, rotates
(degrees, counter-clockwise) and then translates the result of the
previous step.
"""

import math
from dataclasses import replace
from typing import Dict, Iterator, List, Optional, Sequence

from .elements import Entity, Insert, Point2D, TransformStep

TWO_PI = 2 * math.pi


def normalize_angle(angle: float) -> float:
    """Wrap an angle in radians into [0, 2*pi)."""
    wrapped = math.fmod(angle, TWO_PI)
    if wrapped < 0:
        wrapped += TWO_PI
    # fmod of a tiny negative can round up to exactly 2*pi
    if wrapped >= TWO_PI:
        wrapped = 0.0
    return wrapped


def apply_point(point: Point2D, transforms: Optional[Sequence[TransformStep]]) -> Point2D:
    """Apply transform steps to a point, in order."""
    x, y = float(point[0]), float(point[1])
    if not transforms:
        return (x, y)

    for step in transforms:
        x *= step.scale_x
        y *= step.effective_scale_y

        if step.rotation:
            rad = math.radians(step.rotation)
            cos_r, sin_r = math.cos(rad), math.sin(rad)
            x, y = x * cos_r - y * sin_r, x * sin_r + y * cos_r

        x += step.translate_x
        y += step.translate_y

    return (x, y)


def apply_angle(angle: float, transforms: Optional[Sequence[TransformStep]]) -> float:
    """Apply transform steps to a direction angle (radians).

    A mirrored step (scale_x == -1) reflects the angle about the Y axis
    before the step's rotation is added. The result is in [0, 2*pi).
    """
    theta = angle
    for step in transforms or ():
        if step.scale_x == -1:
            theta = math.pi - theta
        if step.rotation:
            theta += math.radians(step.rotation)
    return normalize_angle(theta)


def apply_points(points: Sequence[Point2D], transforms: Optional[Sequence[TransformStep]]) -> List[Point2D]:
    return [apply_point(p, transforms) for p in points]


def explode(
    entities: Sequence[Entity],
    block_table: Optional[Dict[str, List[Entity]]] = None,
    max_depth: int = 8,
    include_inserts: bool = True,
) -> Iterator[Entity]:
    """Yield entities with block contents expanded into world placement.

    Entities nested in an insert are yielded as copies whose transform list
    ends with the insert's placement (and whatever placed the insert).
    Nested entities on layer "0" take the insert's layer.

    Args:
        entities: Top-level entities
        block_table: Block name -> entities, for inserts without inline content
        max_depth: Maximum block nesting followed
        include_inserts: Also yield the insert entities themselves
    """
    yield from _explode(entities, block_table, max_depth, include_inserts, ())


def _explode(
    entities: Sequence[Entity],
    block_table: Optional[Dict[str, List[Entity]]],
    depth_left: int,
    include_inserts: bool,
    active_blocks: tuple,
) -> Iterator[Entity]:
    for entity in entities:
        if isinstance(entity, Insert):
            if include_inserts:
                yield entity
            if depth_left <= 0 or entity.block_name in active_blocks:
                continue

            chain = [entity.placement()] + list(entity.transforms)
            children = []
            for child in entity.block_entities(block_table):
                layer = entity.layer if child.layer == "0" else child.layer
                children.append(replace(
                    child,
                    layer=layer,
                    transforms=list(child.transforms) + chain,
                ))
            yield from _explode(
                children,
                block_table,
                depth_left - 1,
                include_inserts,
                active_blocks + (entity.block_name,),
            )
        else:
            yield entity
