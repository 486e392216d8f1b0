"""Tests for structural analysis."""

import random

import pytest

from planviz.analysis.structure import (
    analyze_structure,
    compute_bbox,
    extent_points,
    polyline_projection,
    sample_points,
)
from planviz.dwg_parser.elements import (
    Arc,
    Circle,
    Insert,
    Line,
    Polyline,
    Text,
    TransformStep,
)
from planviz.errors import AnalysisError


class TestAnalyzeStructure:
    """Tests for analyze_structure."""

    def test_single_wall_line(self):
        result = analyze_structure([Line(start=(0, 0), end=(100, 0), layer="WALL")])

        assert result.bbox.to_dict() == {"min": {"x": 0.0, "y": 0.0}, "max": {"x": 100.0, "y": 0.0}}
        assert list(result.layer_groups) == ["WALL"]
        assert len(result.layer_groups["WALL"]) == 1
        assert result.entity_count == 1
        assert result.type_counts == {"LINE": 1}

    def test_layer_groups_keep_insertion_order(self):
        entities = [
            Line(layer="B", end=(1, 1)),
            Line(layer="A", end=(2, 2)),
            Circle(layer="B", center=(5, 5), radius=1),
        ]
        groups = analyze_structure(entities).layer_groups
        assert list(groups) == ["B", "A"]
        assert groups["B"] == [entities[0], entities[2]]

    def test_arc_extent_inflated_by_radius(self):
        arc = Arc(center=(100, 100), radius=50, start_angle=0, end_angle=1)
        bbox = analyze_structure([arc]).bbox
        assert (bbox.min_x, bbox.min_y, bbox.max_x, bbox.max_y) == (50, 50, 150, 150)

    def test_text_anchor_included(self):
        entities = [Line(start=(0, 0), end=(10, 0)), Text(text="A", insertion_point=(5, 40))]
        assert analyze_structure(entities).bbox.max_y == 40

    def test_transforms_applied(self):
        line = Line(start=(0, 0), end=(10, 0), transforms=[TransformStep(translate_x=1000)])
        bbox = analyze_structure([line]).bbox
        assert bbox.min_x == pytest.approx(1000)
        assert bbox.max_x == pytest.approx(1010)

    def test_empty_list_raises(self):
        with pytest.raises(AnalysisError) as exc_info:
            analyze_structure([])
        assert exc_info.value.code == "ANALYSIS_ERROR"

    def test_no_coordinates_raises(self):
        with pytest.raises(AnalysisError):
            compute_bbox([Text(text="floating")])

    def test_bbox_ordered_for_random_sets(self):
        rng = random.Random(7)
        for _ in range(20):
            entities = [
                Line(start=(rng.uniform(-1e4, 1e4), rng.uniform(-1e4, 1e4)),
                     end=(rng.uniform(-1e4, 1e4), rng.uniform(-1e4, 1e4)))
                for _ in range(rng.randint(1, 15))
            ]
            bbox = analyze_structure(entities).bbox
            assert bbox.min_x <= bbox.max_x
            assert bbox.min_y <= bbox.max_y

    def test_repeatable(self, floor_plan):
        first = analyze_structure(floor_plan)
        second = analyze_structure(floor_plan)
        assert first.to_dict() == second.to_dict()


class TestCoordinateSampling:
    """Tests for sample_points, extent_points and polyline_projection."""

    def test_arc_samples_center(self):
        arc = Arc(center=(3, 4), radius=2)
        assert sample_points(arc) == [(3.0, 4.0)]
        assert len(extent_points(arc)) == 4

    def test_insert_samples_position(self):
        assert sample_points(Insert(block_name="B", position=(7, 8))) == [(7.0, 8.0)]

    def test_polyline_vertices(self):
        poly = Polyline(vertices=[(0, 0), (1, 0), (1, 1)])
        assert sample_points(poly) == [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0)]

    def test_arc_projection_segments(self):
        arc = Arc(center=(0, 0), radius=10, start_angle=0, end_angle=3.14159 / 2)
        points = polyline_projection(arc, arc_segments=4)
        assert len(points) == 5
        assert points[0] == pytest.approx((10.0, 0.0))
        assert points[-1][1] == pytest.approx(10.0, abs=1e-3)

    def test_circle_projection_closed_ring(self):
        points = polyline_projection(Circle(center=(0, 0), radius=1), arc_segments=8)
        assert len(points) == 8
