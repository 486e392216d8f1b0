"""Tests for the command line entry point."""

import json

from planviz.cli import main


def build_room(doc, msp):
    for start, end in [((0, 0), (6000, 0)), ((6000, 0), (6000, 4000)),
                       ((6000, 4000), (0, 4000)), ((0, 4000), (0, 0))]:
        msp.add_line(start, end, dxfattribs={"layer": "A-WALL"})
    msp.add_arc((3000, 0), 900, 0, 90, dxfattribs={"layer": "A-DOOR"})
    msp.add_text("BEDROOM", dxfattribs={"insert": (3000, 2000), "height": 200})


def test_writes_svg_and_metadata(make_dxf, tmp_path, capsys):
    path = make_dxf(build_room)
    output = tmp_path / "out.svg"
    metadata = tmp_path / "out.json"

    code = main([str(path), "-o", str(output), "--metadata", str(metadata)])

    assert code == 0
    assert output.read_text(encoding="utf-8").startswith("<svg")
    data = json.loads(metadata.read_text(encoding="utf-8"))
    assert data["door_count"] == 1
    assert data["texts"][0]["text"] == "BEDROOM"
    assert data["drawing"]["filename"] == "plan.dxf"

    captured = capsys.readouterr()
    assert "doors: 1" in captured.out
    assert "[100%]" in captured.err


def test_default_output_path(make_dxf):
    path = make_dxf(build_room)
    assert main([str(path), "--no-filter"]) == 0
    assert path.with_suffix(".svg").exists()


def test_missing_file(tmp_path, capsys):
    code = main([str(tmp_path / "missing.dxf")])

    assert code == 1
    assert "FILE_ERROR" in capsys.readouterr().err
