"""Floor plan processing pipeline.

Runs analysis, importance filtering, door detection and composition over
one entity list and returns the annotated SVG document plus metadata.

Example usage:
    from planviz.pipeline import process

    result = process(entities, block_table, progress_callback=print)
    Path("plan.svg").write_text(result.document)
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Set, Type

from .analysis.arcs import analyze_arcs
from .analysis.door_detector import DoorDetector
from .analysis.importance_filter import ImportanceFilter
from .analysis.structure import analyze_structure
from .analysis.texts import analyze_texts
from .config import ProcessingConfig
from .dwg_parser.elements import Entity
from .errors import (
    AnalysisError,
    MemoryLimitError,
    PerformanceError,
    PlanVizError,
    RenderingError,
)
from .render.composer import Composer
from .render.skeleton import SkeletonRenderer
from .resources import memory_snapshot

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, str], None]
BlockTable = Dict[str, List[Entity]]


@dataclass
class ProcessingResult:
    """Final document and run metadata."""

    document: str
    metadata: Dict[str, Any] = field(default_factory=dict)


class ProcessingContext:
    """State for a single processing run.

    Created per call to ``process`` and passed to the stages that need it.
    Nothing here outlives the run.
    """

    def __init__(
        self,
        config: ProcessingConfig,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        self.config = config
        self.progress_callback = progress_callback
        self.started = time.monotonic()
        self.stage = "init"
        self.logged_handles: Set[str] = set()
        self.warnings: List[str] = []

    @property
    def elapsed_ms(self) -> float:
        return round((time.monotonic() - self.started) * 1000, 1)

    def log_once(self, handle: Optional[str], message: str) -> None:
        """Debug-log a per-entity message the first time a handle is seen."""
        if handle is not None:
            if handle in self.logged_handles:
                return
            self.logged_handles.add(handle)
        logger.debug(message)

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    def progress(self, percent: int, message: str) -> None:
        logger.info(f"[{percent:3d}%] {message}")
        if self.progress_callback is not None:
            self.progress_callback(percent, message)

    def check_memory(self) -> None:
        """Raise MemoryLimitError above the configured high-water mark."""
        limits = self.config.limits
        snapshot = memory_snapshot()
        used = snapshot.get("max_rss_mb")
        if used is None:
            return
        high_water = limits.memory_ceiling_mb * limits.memory_high_water_ratio
        if used > high_water:
            raise MemoryLimitError(
                f"Memory usage {used:.0f} MB exceeds {high_water:.0f} MB during {self.stage}",
                {"memory": snapshot, "high_water_mb": high_water},
            )

    def check_time(self) -> None:
        """Report a run that has gone past the configured time limit."""
        limits = self.config.limits
        elapsed = self.elapsed_ms / 1000
        if elapsed <= limits.time_limit_seconds:
            return
        message = (
            f"Processing took {elapsed:.1f}s after {self.stage}, "
            f"limit is {limits.time_limit_seconds:.0f}s"
        )
        if limits.strict_time_limit:
            raise PerformanceError(message, {"elapsed_ms": self.elapsed_ms})
        self.warn(message)

    @contextmanager
    def run_stage(self, name: str, error_class: Type[PlanVizError]):
        """Run one stage with resource guards and error wrapping.

        Taxonomy errors get the stage name, elapsed time and a memory
        snapshot attached; any other exception is wrapped in ``error_class``.
        """
        self.stage = name
        try:
            self.check_memory()
            yield
            self.check_memory()
            self.check_time()
        except PlanVizError as e:
            e.details.setdefault("stage", name)
            e.details.setdefault("elapsed_ms", self.elapsed_ms)
            e.details.setdefault("memory", memory_snapshot())
            raise
        except Exception as e:
            logger.error(f"Stage {name} failed: {e}")
            raise error_class(
                f"{name} failed: {e}",
                {"stage": name, "elapsed_ms": self.elapsed_ms, "memory": memory_snapshot()},
            ) from e


def process(
    entities: Sequence[Entity],
    block_table: Optional[BlockTable] = None,
    progress_callback: Optional[ProgressCallback] = None,
    config: Optional[ProcessingConfig] = None,
    renderer: Optional[SkeletonRenderer] = None,
) -> ProcessingResult:
    """Turn an entity list into an annotated SVG document.

    Args:
        entities: Drawing entities; the caller's list is not modified
        block_table: Block name -> entities for inserts without inline content
        progress_callback: Called with (percent, message) at each milestone
        config: Processing configuration; defaults to ProcessingConfig()
        renderer: Base skeleton renderer for the composer

    Returns:
        ProcessingResult with the document and metadata

    Raises:
        AnalysisError: Empty entity list or no usable bounding box
        RenderingError: Composition produced no drawable document
        MemoryLimitError: Memory high-water mark crossed
        PerformanceError: Time limit exceeded with strict_time_limit set
    """
    config = config or ProcessingConfig()
    ctx = ProcessingContext(config, progress_callback)
    working: List[Entity] = list(entities)
    logger.info(f"Processing {len(working)} entities")

    ctx.progress(10, "Analyzing drawing structure")
    with ctx.run_stage("analysis", AnalysisError):
        structure = analyze_structure(working)
        arcs = analyze_arcs(working, config.near_right_angle_window)
        texts = analyze_texts(working, block_table, config.texts)

    ctx.progress(30, "Filtering low-importance entities")
    with ctx.run_stage("filtering", AnalysisError):
        filter_result = ImportanceFilter(config.filter).apply(working, structure, ctx)

    ctx.progress(50, "Detecting doors")
    with ctx.run_stage("doors", AnalysisError):
        detection = DoorDetector(config.doors).detect(working, block_table)

    ctx.progress(70, "Composing document")
    with ctx.run_stage("composition", RenderingError):
        composition = Composer(config.composer, renderer).compose(
            working, block_table, texts.labels, detection.doors
        )

    ctx.progress(85, "Finalizing document")
    for name in composition.skipped:
        ctx.warnings.append(f"Overlay skipped: {name}")

    ctx.progress(95, "Collecting metadata")
    metadata = {
        "entity_count_before": len(entities),
        "entity_count_after": len(working),
        "filter": filter_result.to_dict(),
        "layer_count": len(structure.layer_groups),
        "type_counts": dict(structure.type_counts),
        "text_count": texts.count,
        "room_candidates": texts.room_candidates,
        "texts": [label.to_dict() for label in texts.labels],
        "arc_analysis": arcs.to_dict(),
        "door_count": detection.count,
        "doors": [door.to_dict() for door in detection.doors],
        "bounding_box": structure.bbox.to_dict(),
        "view_box": composition.view_box.to_dict(),
        "custom_counts": dict(composition.counts),
        "skipped_overlays": list(composition.skipped),
        "warnings": list(ctx.warnings),
        "processing_time_ms": ctx.elapsed_ms,
        "processed_at": datetime.now().isoformat(),
    }

    ctx.progress(100, "Done")
    logger.info(
        f"Processed {len(entities)} -> {len(working)} entities, "
        f"{detection.count} doors, {texts.count} texts in {metadata['processing_time_ms']:.0f}ms"
    )
    return ProcessingResult(document=composition.document, metadata=metadata)
