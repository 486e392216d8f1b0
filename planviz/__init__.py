"""planviz: floor plan analysis and annotated SVG rendering.

Example usage:
    from planviz import load_drawing, process

    drawing = load_drawing("plan.dxf")
    result = process(drawing.entities, drawing.block_table)
"""

from .config import ProcessingConfig
from .dwg_parser.parser import load_drawing, load_entities
from .errors import (
    AnalysisError,
    ConversionError,
    FileError,
    MemoryLimitError,
    ParsingError,
    PerformanceError,
    PlanVizError,
    RenderingError,
)
from .pipeline import ProcessingContext, ProcessingResult, process

__version__ = "0.1.0"

__all__ = [
    "ProcessingConfig",
    "load_drawing",
    "load_entities",
    "AnalysisError",
    "ConversionError",
    "FileError",
    "MemoryLimitError",
    "ParsingError",
    "PerformanceError",
    "PlanVizError",
    "RenderingError",
    "ProcessingContext",
    "ProcessingResult",
    "process",
]
