"""Tests for door detection."""

import math
import random

import pytest

from planviz.analysis.door_detector import DoorDetector, deduplicate, mid_angle
from planviz.config import DoorDetectionConfig
from planviz.dwg_parser.elements import (
    Arc,
    DoorCandidate,
    DoorKind,
    Insert,
    Line,
    Point,
    Polyline,
    Text,
    TransformStep,
)


def swing_arc(**kwargs) -> Arc:
    params = dict(center=(0, 0), radius=900, start_angle=0.0, end_angle=math.pi / 2)
    params.update(kwargs)
    return Arc(**params)


class TestMidAngle:
    """Tests for mid_angle."""

    def test_plain_average(self):
        assert mid_angle(0.0, math.pi / 2) == pytest.approx(math.pi / 4)

    def test_wraparound(self):
        mid = mid_angle(math.radians(350), math.radians(10))
        assert math.cos(mid) == pytest.approx(1.0)
        assert math.sin(mid) == pytest.approx(0.0, abs=1e-9)
        assert 0 <= mid < 2 * math.pi


class TestArcClassifier:
    """Tests for the swing-arc classifier."""

    def test_quarter_arc_on_door_layer(self):
        arc = swing_arc(center=(1000, 1000), end_angle=1.5708, layer="DOOR")
        detection = DoorDetector().detect([arc])

        assert detection.count == 1
        door = detection.doors[0]
        assert door.kind == DoorKind.ARC
        assert door.confidence == 0.9
        assert door.angle_span_degrees == pytest.approx(90.0, abs=0.01)
        assert door.center == (1000.0, 1000.0)
        assert door.source_ref == arc.handle

    def test_marker_offset_along_mid_angle(self):
        door = DoorDetector().arc_candidate(swing_arc(center=(1000, 1000)))
        offset = 900 * 0.8 / math.sqrt(2)
        assert door.marker == pytest.approx((1000 + offset, 1000 + offset))

    @pytest.mark.parametrize("arc", [
        swing_arc(radius=200),
        swing_arc(radius=5000),
        swing_arc(end_angle=math.radians(45)),
        swing_arc(end_angle=math.radians(180)),
    ])
    def test_outside_windows(self, arc):
        assert DoorDetector().arc_candidate(arc) is None

    def test_windows_configurable(self):
        config = DoorDetectionConfig(min_arc_radius=100, max_arc_radius=5000,
                                     min_arc_angle=60, max_arc_angle=120)
        assert DoorDetector(config).arc_candidate(swing_arc(radius=200)) is not None

    def test_nested_arc_resolved_to_world(self):
        insert = Insert(block_name="D1", position=(5000, 2000), rotation=90,
                        entities=[swing_arc()])
        detection = DoorDetector().detect([insert])

        assert detection.count == 1
        door = detection.doors[0]
        assert door.center == pytest.approx((5000.0, 2000.0))
        assert door.mid_angle == pytest.approx(3 * math.pi / 4)
        offset = 720 / math.sqrt(2)
        assert door.marker == pytest.approx((5000 - offset, 2000 + offset))

    def test_mirrored_arc(self):
        arc = swing_arc(transforms=[TransformStep(scale_x=-1)])
        door = DoorDetector().arc_candidate(arc)
        assert door.mid_angle == pytest.approx(3 * math.pi / 4)


class TestInsertClassifier:
    """Tests for the named-block classifier."""

    def test_block_with_swing_arc(self):
        insert = Insert(block_name="DOOR_900", position=(10, 20), entities=[swing_arc()])
        door = DoorDetector().insert_candidate(insert)
        assert door.kind == DoorKind.INSERT
        assert door.confidence == 0.9
        assert door.center == (10.0, 20.0)
        assert door.block_name == "DOOR_900"

    def test_block_without_swing(self):
        block_table = {"Entrance-A": [Line(end=(900, 0))]}
        insert = Insert(block_name="Entrance-A", position=(10, 20))
        assert DoorDetector().insert_candidate(insert, block_table).confidence == 0.8

    def test_localized_keyword(self):
        assert DoorDetector().insert_candidate(Insert(block_name="현관문")) is not None

    def test_unrelated_block(self):
        assert DoorDetector().insert_candidate(Insert(block_name="TABLE")) is None


class TestLayerClassifier:
    """Tests for the named-layer classifier."""

    def test_point_on_door_layer(self):
        door = DoorDetector().layer_candidate(Point(location=(3, 4), layer="A-DOOR"))
        assert door.kind == DoorKind.LAYER
        assert door.confidence == 0.7
        assert door.center == (3.0, 4.0)

    def test_text_on_door_layer(self):
        door = DoorDetector().layer_candidate(Text(text="D1", insertion_point=(5, 6), layer="DOORS"))
        assert door.center == (5.0, 6.0)

    def test_line_reports_lower_left_corner(self):
        door = DoorDetector().layer_candidate(Line(start=(5900, 2000), end=(5000, 2100), layer="A-DOOR"))
        assert door.kind == DoorKind.LAYER
        assert door.center == (5000.0, 2000.0)

    def test_polyline_reports_lower_left_corner(self):
        outline = Polyline(vertices=[(8050, 900), (8000, 0), (8050, 0)], layer="DOOR")
        assert DoorDetector().layer_candidate(outline).center == (8000.0, 0.0)

    def test_line_corner_is_world_placed(self):
        line = Line(start=(0, 0), end=(100, 0), layer="DOOR", transforms=[TransformStep(translate_x=50, translate_y=70)])
        assert DoorDetector().layer_candidate(line).center == pytest.approx((50.0, 70.0))

    def test_lines_and_outlines_detected(self):
        entities = [
            Line(start=(5000, 2000), end=(5900, 2000), layer="A-DOOR"),
            Polyline(vertices=[(8000, 0), (8050, 0), (8050, 900)], layer="DOOR"),
        ]
        detection = DoorDetector().detect(entities)
        assert [door.kind for door in detection.doors] == [DoorKind.LAYER, DoorKind.LAYER]
        assert [door.center for door in detection.doors] == [(5000.0, 2000.0), (8000.0, 0.0)]

    def test_other_layer(self):
        assert DoorDetector().layer_candidate(Point(location=(3, 4), layer="A-WALL")) is None


class TestPatternClassifier:
    """Tests for the rectangular leaf classifier."""

    def leaf(self, width, height, **kwargs):
        return Polyline(vertices=[(0, 0), (width, 0), (width, height), (0, height)], **kwargs)

    def test_portrait_leaf(self):
        door = DoorDetector().pattern_candidate(self.leaf(900, 2100, closed=True))
        assert door.kind == DoorKind.PATTERN
        assert door.confidence == 0.6
        assert door.center == pytest.approx((450.0, 1050.0))

    def test_landscape_leaf(self):
        assert DoorDetector().pattern_candidate(self.leaf(2100, 900, closed=True)) is not None

    def test_repeated_first_vertex_counts_as_closed(self):
        poly = Polyline(vertices=[(0, 0), (900, 0), (900, 2100), (0, 2100), (0, 0)])
        assert DoorDetector().pattern_candidate(poly) is not None

    def test_open_outline(self):
        assert DoorDetector().pattern_candidate(self.leaf(900, 2100)) is None

    def test_wrong_size(self):
        assert DoorDetector().pattern_candidate(self.leaf(3000, 4000, closed=True)) is None
        assert DoorDetector().pattern_candidate(self.leaf(500, 2000, closed=True)) is None


class TestDeduplicate:
    """Tests for proximity deduplication."""

    def candidate(self, x, y, kind=DoorKind.ARC, confidence=0.9):
        return DoorCandidate(kind=kind, center=(x, y), confidence=confidence)

    def test_close_pair_collapses(self):
        first = self.candidate(0, 0)
        doors = deduplicate([first, self.candidate(50, 50)], 100)
        assert doors == [first]

    def test_earliest_wins_over_confidence(self):
        low = self.candidate(0, 0, DoorKind.PATTERN, 0.6)
        high = self.candidate(10, 10, DoorKind.ARC, 0.9)
        assert deduplicate([low, high], 100) == [low]

    def test_one_axis_apart(self):
        assert len(deduplicate([self.candidate(0, 0), self.candidate(150, 0)], 100)) == 2

    def test_tolerance_is_strict(self):
        assert len(deduplicate([self.candidate(0, 0), self.candidate(100, 0)], 100)) == 2

    def test_survivors_pairwise_apart(self):
        rng = random.Random(3)
        raw = [self.candidate(rng.uniform(0, 2000), rng.uniform(0, 2000)) for _ in range(300)]
        doors = deduplicate(raw, 100)
        for i, a in enumerate(doors):
            for b in doors[i + 1:]:
                assert abs(a.center[0] - b.center[0]) >= 100 or abs(a.center[1] - b.center[1]) >= 100


class TestDetect:
    """Tests for the combined detector."""

    def test_discovery_order(self):
        arc = swing_arc(center=(0, 0), layer="A-DOOR")
        insert = Insert(block_name="DOOR", position=(5000, 0))
        pattern = Polyline(vertices=[(9000, 0), (9900, 0), (9900, 2100), (9000, 2100)], closed=True)

        detection = DoorDetector().detect([pattern, insert, arc])

        kinds = [c.kind for c in detection.raw_candidates]
        assert kinds == [DoorKind.ARC, DoorKind.INSERT, DoorKind.LAYER, DoorKind.PATTERN]
        assert [d.kind for d in detection.doors] == [DoorKind.ARC, DoorKind.INSERT, DoorKind.PATTERN]

    def test_entities_not_modified(self, floor_plan):
        before = list(floor_plan)
        DoorDetector().detect(floor_plan)
        assert floor_plan == before

    def test_plain_wall_has_no_doors(self):
        detection = DoorDetector().detect([Line(start=(0, 0), end=(100, 0), layer="WALL")])
        assert detection.count == 0
        assert detection.to_dict()["doors"] == []
