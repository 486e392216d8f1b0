"""Error taxonomy for the floor plan processing pipeline.

Every error carries a machine-readable ``code``, free-form ``details`` and
the ISO timestamp at which it was raised. Pipeline stages attach the stage
name, elapsed time and a memory snapshot to ``details`` before re-raising.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from .resources import memory_snapshot


class PlanVizError(Exception):
    """Base class for all processing errors."""

    code = "PROCESS_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})
        self.timestamp = datetime.now().isoformat()

    def to_dict(self) -> dict:
        return {
            "error": type(self).__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp,
        }


class FileError(PlanVizError):
    """Input file missing or unreadable."""

    code = "FILE_ERROR"


class ConversionError(PlanVizError):
    """External DWG -> DXF conversion failed or timed out."""

    code = "CONVERSION_ERROR"


class ParsingError(PlanVizError):
    """Entity list or raw drawing text is structurally invalid."""

    code = "PARSING_ERROR"


class AnalysisError(PlanVizError):
    """No usable bounding box or layer grouping could be derived."""

    code = "ANALYSIS_ERROR"


class RenderingError(PlanVizError):
    """Composition did not produce a valid document."""

    code = "RENDERING_ERROR"


class MemoryLimitError(PlanVizError):
    """Process memory crossed the configured high-water mark."""

    code = "MEMORY_ERROR"


class PerformanceError(PlanVizError):
    """Processing exceeded the configured wall-clock ceiling."""

    code = "PERFORMANCE_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        merged = {"memory": memory_snapshot()}
        merged.update(details or {})
        super().__init__(message, merged)
