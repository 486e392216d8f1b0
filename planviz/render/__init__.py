"""SVG rendering of analyzed drawings.

This module provides:
- SvgSkeletonRenderer: base geometry renderer (svgwrite)
- CustomRenderer: MText, hatch, dimension and block instance markup
- Composer: skeleton plus overlays into the final document

Example usage:
    from planviz.render import Composer

    result = Composer().compose(entities, block_table, labels, doors)
    print(result.view_box, result.counts)
"""

from .composer import CompositionResult, Composer, postprocess, recolor
from .custom import CustomRenderer
from .skeleton import SkeletonRenderer, SvgSkeletonRenderer, ViewBox

__all__ = [
    "CompositionResult",
    "Composer",
    "postprocess",
    "recolor",
    "CustomRenderer",
    "SkeletonRenderer",
    "SvgSkeletonRenderer",
    "ViewBox",
]
