"""Command line entry point.

    planviz plan.dxf -o plan.svg --metadata plan.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv

from .config import ProcessingConfig
from .dwg_parser.parser import load_drawing
from .errors import PlanVizError
from .pipeline import process

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="planviz",
        description="Analyze a DWG/DXF floor plan and render an annotated SVG.",
    )
    parser.add_argument("input_path", help="Path to DWG or DXF file.")
    parser.add_argument(
        "-o",
        "--output",
        dest="output_path",
        help="Output SVG path (default: input path with .svg suffix).",
    )
    parser.add_argument(
        "--metadata",
        dest="metadata_path",
        help="Write run metadata as JSON to this path.",
    )
    parser.add_argument(
        "--no-filter",
        action="store_true",
        help="Keep every entity (disable the importance filter).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log per-entity detail.",
    )
    return parser


def _report_progress(percent: int, message: str) -> None:
    print(f"[{percent:3d}%] {message}", file=sys.stderr)


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv()
    args = _build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    config = ProcessingConfig.from_env()
    if args.no_filter:
        config.filter.enabled = False

    input_path = Path(args.input_path)
    output_path = Path(args.output_path) if args.output_path else input_path.with_suffix(".svg")

    try:
        drawing = load_drawing(input_path, config)
        result = process(
            drawing.entities,
            drawing.block_table,
            progress_callback=_report_progress,
            config=config,
        )
    except PlanVizError as e:
        logger.error(f"{e.code}: {e.message}")
        print(f"error: {e.code}: {e.message}", file=sys.stderr)
        return 1

    output_path.write_text(result.document, encoding="utf-8")
    print(f"output: {output_path}")
    print(f"entities: {result.metadata['entity_count_before']} -> {result.metadata['entity_count_after']}")
    print(f"doors: {result.metadata['door_count']}")
    print(f"texts: {result.metadata['text_count']}")

    if args.metadata_path:
        metadata = dict(result.metadata)
        metadata["drawing"] = drawing.metadata.to_dict()
        Path(args.metadata_path).write_text(
            json.dumps(metadata, indent=2, ensure_ascii=False), encoding="utf-8"
        )
        print(f"metadata: {args.metadata_path}")

    return 0
