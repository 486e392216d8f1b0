"""Tests for the error taxonomy."""

import pytest

from planviz.errors import (
    AnalysisError,
    ConversionError,
    FileError,
    MemoryLimitError,
    ParsingError,
    PerformanceError,
    PlanVizError,
    RenderingError,
)


@pytest.mark.parametrize("error_class, code", [
    (FileError, "FILE_ERROR"),
    (ConversionError, "CONVERSION_ERROR"),
    (ParsingError, "PARSING_ERROR"),
    (AnalysisError, "ANALYSIS_ERROR"),
    (RenderingError, "RENDERING_ERROR"),
    (MemoryLimitError, "MEMORY_ERROR"),
    (PerformanceError, "PERFORMANCE_ERROR"),
])
def test_codes(error_class, code):
    error = error_class("failed")
    assert isinstance(error, PlanVizError)
    assert error.code == code


def test_to_dict():
    error = AnalysisError("no bounding box", {"entity_count": 0})
    data = error.to_dict()

    assert data["error"] == "AnalysisError"
    assert data["code"] == "ANALYSIS_ERROR"
    assert data["message"] == "no bounding box"
    assert data["details"] == {"entity_count": 0}
    assert data["timestamp"] == error.timestamp
    assert str(error) == "no bounding box"


def test_details_copied():
    details = {"path": "a.dxf"}
    error = FileError("missing", details)
    error.details["stage"] = "load"
    assert details == {"path": "a.dxf"}


def test_performance_error_carries_memory():
    error = PerformanceError("too slow", {"elapsed_ms": 31000.0})
    assert "memory" in error.details
    assert error.details["elapsed_ms"] == 31000.0
