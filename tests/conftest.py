"""Shared fixtures for the planviz test suite."""

import math

import ezdxf
import pytest

from planviz.dwg_parser.elements import Arc, Line, MText, Point, Text


def rectangle_lines(width: float, height: float, layer: str = "A-WALL", color=None) -> list:
    """Four lines outlining a width x height rectangle at the origin."""
    corners = [(0, 0), (width, 0), (width, height), (0, height)]
    return [
        Line(start=corners[i], end=corners[(i + 1) % 4], layer=layer, color=color)
        for i in range(4)
    ]


@pytest.fixture
def floor_plan():
    """Small plan: outer walls, one swing door, a room name and an MText note."""
    entities = rectangle_lines(10000, 8000)
    entities.append(Line(start=(5000, 0), end=(5000, 8000), layer="A-WALL"))
    entities.append(Arc(
        center=(5000, 3000), radius=900,
        start_angle=0.0, end_angle=math.pi / 2,
        layer="A-DOOR",
    ))
    entities.append(Text(text="KITCHEN", insertion_point=(2500, 4000), layer="A-TEXT", height=200))
    entities.append(MText(
        text="LIVING\\PROOM",
        insertion_point=(7500, 4000),
        layer="A-TEXT",
        height=250,
    ))
    return entities


@pytest.fixture
def noisy_plan():
    """Dense walls plus one stray annotation point on layer 0."""
    walls = [line for _ in range(5) for line in rectangle_lines(1000, 1000)]
    stray = Point(location=(500, 500), layer="0")
    label = Text(text="OFFICE", insertion_point=(500, 500), layer="0")
    return walls + [stray, label]


@pytest.fixture
def make_dxf(tmp_path):
    """Build a DXF file with ezdxf and return its path.

    Usage:
        path = make_dxf(lambda doc, msp: msp.add_line((0, 0), (1, 0)))
    """

    def _make(build, name: str = "plan.dxf"):
        doc = ezdxf.new("R2010")
        msp = doc.modelspace()
        build(doc, msp)
        path = tmp_path / name
        doc.saveas(path)
        return path

    return _make
