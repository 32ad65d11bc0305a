"""
Shared test fixtures for notch and cut-out planning tests.
"""
import sys
from pathlib import Path

import numpy as np
import pytest

# Add src/ to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from notch_sequencer.contracts import SynthesisConfig
from notch_sequencer.geometry import Bounds, make_arc_segment, make_line_segment

WEB = (0.0, 0.0, 1.0)
TOP = (0.0, 1.0, 0.0)


@pytest.fixture
def config():
    """Default synthesis config (2 mm wire joints, 5 mm approach)."""
    return SynthesisConfig()


@pytest.fixture
def u_notch():
    """A 560 mm U-shaped notch lying entirely on the web.

    Down the left side, across the top, back down the right side:
    (300,0) -> (300,80) -> (700,80) -> (700,0).
    """
    return [
        make_line_segment((300, 0, 0), (300, 80, 0), WEB),
        make_line_segment((300, 80, 0), (700, 80, 0), WEB),
        make_line_segment((700, 80, 0), (700, 0, 0), WEB),
    ]


@pytest.fixture
def part_bounds():
    """Bounds of a 1000 mm channel, 210 mm deep flanges."""
    return Bounds(np.array([0.0, 0.0, -210.0]), np.array([1000.0, 210.0, 0.0]))


@pytest.fixture
def flex_notch():
    """A notch crossing from the web over a 10 mm bend onto the top flange."""
    return [
        make_line_segment((100, 0, 0), (100, 200, 0), WEB),
        make_arc_segment(
            (100, 200, 0), (100, 210, -10), (100, 200, -10), (-1, 0, 0), WEB, TOP,
        ),
        make_line_segment((100, 210, -10), (100, 210, -210), TOP),
    ]


@pytest.fixture
def web_rectangle():
    """A small 100x50 closed web cut-out."""
    corners = [(0, 0, 0), (100, 0, 0), (100, 50, 0), (0, 50, 0)]
    return [
        make_line_segment(corners[i], corners[(i + 1) % 4], WEB)
        for i in range(4)
    ]


@pytest.fixture
def tall_web_rectangle():
    """A 100x500 closed web cut-out, tall enough to need web wire joints."""
    corners = [(0, 0, 0), (100, 0, 0), (100, 500, 0), (0, 500, 0)]
    return [
        make_line_segment(corners[i], corners[(i + 1) % 4], WEB)
        for i in range(4)
    ]


@pytest.fixture
def flex_loop():
    """A closed cut-out running web -> bend -> top flange -> bend -> web."""
    return [
        make_line_segment((0, 50, 0), (0, 100, 0), WEB),
        make_arc_segment((0, 100, 0), (0, 110, -10), (0, 100, -10), (-1, 0, 0), WEB, TOP),
        make_line_segment((0, 110, -10), (0, 110, -60), TOP),
        make_line_segment((0, 110, -60), (100, 110, -60), TOP),
        make_line_segment((100, 110, -60), (100, 110, -10), TOP),
        make_arc_segment((100, 110, -10), (100, 100, 0), (100, 100, -10), (1, 0, 0), TOP, WEB),
        make_line_segment((100, 100, 0), (100, 50, 0), WEB),
        make_line_segment((100, 50, 0), (0, 50, 0), WEB),
    ]


@pytest.fixture
def short_lead_flex_notch():
    """A straight notch whose last web segment before the bend is 1 mm long.

    The 2 mm flex wire joint has to reach back into the segment before it.
    """
    return [
        make_line_segment((0, 0, 0), (100, 0, 0), WEB),
        make_line_segment((100, 0, 0), (101, 0, 0), WEB),
        make_line_segment((101, 0, 0), (111, 0, 0), WEB, TOP),
        make_line_segment((111, 0, 0), (300, 0, 0), TOP),
    ]


@pytest.fixture
def two_flex_notch():
    """Top flange, bend, 280 mm of web, bend, bottom flange."""
    bottom = (0.0, -1.0, 0.0)
    return [
        make_line_segment((0, 0, 0), (100, 0, 0), TOP),
        make_line_segment((100, 0, 0), (110, 0, 0), TOP, WEB),
        make_line_segment((110, 0, 0), (390, 0, 0), WEB),
        make_line_segment((390, 0, 0), (400, 0, 0), WEB, bottom),
        make_line_segment((400, 0, 0), (500, 0, 0), bottom),
    ]
