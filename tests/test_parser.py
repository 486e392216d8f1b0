"""Tests for the DXF parser."""

import math
from unittest.mock import patch

import pytest

from planviz.dwg_parser.elements import (
    Arc,
    AttDef,
    Attrib,
    Circle,
    Dimension,
    Hatch,
    Insert,
    Line,
    MText,
    Point,
    Polyline,
    Text,
)
from planviz.dwg_parser.parser import load_drawing, load_entities
from planviz.errors import FileError, ParsingError


def of_type(entities, cls):
    return [e for e in entities if type(e) is cls]


def build_plan(doc, msp):
    doc.header["$INSUNITS"] = 4
    msp.add_line((0, 0), (10000, 0), dxfattribs={"layer": "A-WALL", "color": 1})
    msp.add_lwpolyline([(0, 0), (900, 0), (900, 2100), (0, 2100)], close=True,
                       dxfattribs={"layer": "A-DOOR"})
    msp.add_arc((5000, 3000), 900, 0, 90, dxfattribs={"layer": "A-DOOR"})
    msp.add_circle((100, 100), 50)
    msp.add_text("KITCHEN", dxfattribs={"insert": (2500, 4000), "height": 200, "layer": "A-TEXT"})
    msp.add_mtext("LIVING\\PROOM", dxfattribs={"insert": (7500, 4000), "char_height": 250})
    msp.add_point((10, 20))

    block = doc.blocks.new("DOOR")
    block.add_arc((0, 0), 900, 0, 90)
    block.add_attdef("TAG", (0, 0), dxfattribs={"height": 100})
    ref = msp.add_blockref("DOOR", (3000, 0), dxfattribs={"rotation": 90})
    ref.add_attrib("TAG", "D1", (3000, 0))

    hatch = msp.add_hatch(color=2)
    hatch.paths.add_polyline_path([(0, 0), (100, 0), (100, 100), (0, 100)], is_closed=True)

    msp.add_linear_dim(base=(0, 500), p1=(0, 0), p2=(1500, 0)).render()
    msp.add_ellipse((0, 0), major_axis=(100, 0), ratio=0.5)


class TestLoadDrawing:
    """Tests for load_drawing."""

    @pytest.fixture
    def drawing(self, make_dxf):
        return load_drawing(make_dxf(build_plan))

    def test_metadata(self, drawing):
        meta = drawing.metadata
        assert meta.filename == "plan.dxf"
        assert meta.units == "millimeters"
        assert meta.dxf_version == "AC1024"
        assert meta.skipped_types == {"ELLIPSE": 1}
        assert meta.to_dict()["skipped_types"] == {"ELLIPSE": 1}

    def test_line(self, drawing):
        line = of_type(drawing.entities, Line)[0]
        assert line.start == (0.0, 0.0)
        assert line.end == (10000.0, 0.0)
        assert line.layer == "A-WALL"
        assert line.color == 1
        assert line.handle

    def test_bylayer_color_is_none(self, drawing):
        assert of_type(drawing.entities, Circle)[0].color is None

    def test_closed_polyline(self, drawing):
        poly = of_type(drawing.entities, Polyline)[0]
        assert poly.closed
        assert poly.vertices == [(0.0, 0.0), (900.0, 0.0), (900.0, 2100.0), (0.0, 2100.0)]

    def test_arc_angles_in_radians(self, drawing):
        arc = of_type(drawing.entities, Arc)[0]
        assert arc.center == (5000.0, 3000.0)
        assert arc.radius == 900.0
        assert arc.start_angle == pytest.approx(0.0)
        assert arc.end_angle == pytest.approx(math.pi / 2)

    def test_texts(self, drawing):
        text = of_type(drawing.entities, Text)[0]
        assert text.text == "KITCHEN"
        assert text.insertion_point == (2500.0, 4000.0)
        assert text.height == 200.0

        mtext = of_type(drawing.entities, MText)[0]
        assert mtext.text == "LIVING\\PROOM"
        assert mtext.insertion_point == (7500.0, 4000.0)
        assert mtext.height == 250.0

    def test_point(self, drawing):
        assert of_type(drawing.entities, Point)[0].location == (10.0, 20.0)

    def test_insert_and_block_table(self, drawing):
        insert = of_type(drawing.entities, Insert)[0]
        assert insert.block_name == "DOOR"
        assert insert.position == (3000.0, 0.0)
        assert insert.rotation == 90.0

        block = drawing.block_table["DOOR"]
        assert [type(e) for e in block] == [Arc, AttDef]
        assert block[0].end_angle == pytest.approx(math.pi / 2)
        assert block[1].tag == "TAG"

    def test_attrib_follows_insert(self, drawing):
        index = next(i for i, e in enumerate(drawing.entities) if isinstance(e, Insert))
        attrib = drawing.entities[index + 1]
        assert isinstance(attrib, Attrib)
        assert attrib.text == "D1"
        assert attrib.tag == "TAG"

    def test_hatch(self, drawing):
        hatch = of_type(drawing.entities, Hatch)[0]
        assert hatch.color == 2
        assert len(hatch.boundary_paths) == 1
        assert len(hatch.boundary_paths[0].edges) == 4

    def test_dimension(self, drawing):
        dimension = of_type(drawing.entities, Dimension)[0]
        assert dimension.measurement == pytest.approx(1500.0)
        assert dimension.label == "1500"

    def test_load_entities(self, make_dxf):
        entities, block_table = load_entities(make_dxf(build_plan))
        assert any(isinstance(e, Insert) for e in entities)
        assert "DOOR" in block_table


class TestLoadErrors:
    """Tests for load_drawing failure modes."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileError) as exc_info:
            load_drawing(tmp_path / "missing.dxf")
        assert exc_info.value.code == "FILE_ERROR"

    def test_garbage_file(self, tmp_path):
        path = tmp_path / "garbage.dxf"
        path.write_text("this is not a drawing\n")
        with pytest.raises((FileError, ParsingError)):
            load_drawing(path)

    def test_dwg_converted_first(self, make_dxf, tmp_path):
        dxf_path = make_dxf(lambda doc, msp: msp.add_line((0, 0), (1, 0)))
        dwg_path = tmp_path / "plan.dwg"
        dwg_path.write_bytes(b"AC1032")

        with patch("planviz.dwg_parser.parser.convert_dwg_to_dxf", return_value=dxf_path) as convert:
            drawing = load_drawing(dwg_path)

        convert.assert_called_once()
        assert convert.call_args.kwargs["timeout"] == 30.0
        assert len(drawing.entities) == 1
