"""Tests for approach geometry and tooling-length estimation."""
import numpy as np
import pytest

from notch_sequencer.approach import (
    compute_approach,
    is_forward_first,
    nearest_boundary_point,
    total_tooling_length,
)
from notch_sequencer.contracts import SynthesisConfig
from notch_sequencer.errors import UnsupportedTopologyError
from notch_sequencer.geometry import Flange, make_line_segment

WEB = (0, 0, 1)
TOP = (0, 1, 0)


@pytest.fixture
def split_u_notch():
    """The web U-notch with a boundary at its mid point (500, 80)."""
    return [
        make_line_segment((300, 0, 0), (300, 80, 0), WEB),
        make_line_segment((300, 80, 0), (500, 80, 0), WEB),
        make_line_segment((500, 80, 0), (700, 80, 0), WEB),
        make_line_segment((700, 80, 0), (700, 0, 0), WEB),
    ]


class TestNearestBoundaryPoint:
    """Test the in-plane part-boundary query."""

    def test_web_plane(self, part_bounds):
        point = nearest_boundary_point(np.array([500.0, 80.0, 0.0]), Flange.WEB, part_bounds)
        np.testing.assert_allclose(point, [500, 0, 0])

    def test_top_plane(self, part_bounds):
        point = nearest_boundary_point(np.array([100.0, 210.0, -50.0]), Flange.TOP, part_bounds)
        np.testing.assert_allclose(point, [100, 210, 0])


class TestComputeApproach:
    """Test approach and gambit point placement."""

    def test_web_approach(self, split_u_notch, part_bounds, config):
        approach = compute_approach(split_u_notch, 1, part_bounds, config)
        assert approach.flange == Flange.WEB
        np.testing.assert_allclose(approach.approach_point, [500, 80, 0])
        np.testing.assert_allclose(approach.flange_end, [500, 0, 0])
        np.testing.assert_allclose(approach.outward_direction, [0, -1, 0])
        np.testing.assert_allclose(approach.n_mid1, [500, 40, 0])
        np.testing.assert_allclose(approach.n_mid2, [500, 42, 0])
        assert approach.stroke_length() == pytest.approx(116.0)

    def test_top_flange_approach(self, part_bounds, config):
        segments = [
            make_line_segment((100, 210, -10), (100, 210, -50), TOP),
            make_line_segment((100, 210, -50), (100, 210, -90), TOP),
        ]
        approach = compute_approach(segments, 0, part_bounds, config)
        assert approach.flange == Flange.TOP
        np.testing.assert_allclose(approach.flange_end, [100, 210, 0])
        np.testing.assert_allclose(approach.n_mid1, [100, 210, -25])
        # Sideways points move along X on a flange.
        assert abs(approach.n1[0] - 100.0) == pytest.approx(config.effective_wire_joint_length)

    def test_approach_on_flex_rejected(self, part_bounds, config):
        segments = [make_line_segment((10, 10, 0), (20, 10, 0), WEB, (0, 0.7071, 0.7071))]
        with pytest.raises(UnsupportedTopologyError):
            compute_approach(segments, 0, part_bounds, config)

    def test_approach_on_boundary_rejected(self, part_bounds, config):
        segments = [make_line_segment((500, 50, 0), (500, 0, 0), WEB)]
        with pytest.raises(UnsupportedTopologyError):
            compute_approach(segments, 0, part_bounds, config)

    def test_to_dict(self, split_u_notch, part_bounds, config):
        data = compute_approach(split_u_notch, 1, part_bounds, config).to_dict()
        assert data["flange"] == "web"
        assert data["flange_end"] == [500.0, 0.0, 0.0]


class TestDirection:
    """Test the forward-first rule."""

    def test_profile_running_away_from_near_edge(self, u_notch, part_bounds):
        assert is_forward_first(u_notch, part_bounds) is False

    def test_profile_running_toward_near_edge(self, part_bounds):
        segments = [
            make_line_segment((300, 0, 0), (300, 80, 0), WEB),
            make_line_segment((300, 80, 0), (100, 80, 0), WEB),
            make_line_segment((100, 80, 0), (100, 0, 0), WEB),
        ]
        assert is_forward_first(segments, part_bounds) is True


class TestTotalToolingLength:
    """Test the tooling-length estimate."""

    def test_without_approach(self, u_notch, config):
        assert total_tooling_length(u_notch, 0, None, config) == pytest.approx(560.0)

    def test_with_landmark_wire_joints(self, split_u_notch, part_bounds, config):
        approach = compute_approach(split_u_notch, 1, part_bounds, config)
        assert total_tooling_length(split_u_notch, 0, approach, config) == pytest.approx(696.0)

    def test_each_flex_adds_a_re_entry(self, split_u_notch, part_bounds, config):
        approach = compute_approach(split_u_notch, 1, part_bounds, config)
        assert total_tooling_length(split_u_notch, 1, approach, config) == pytest.approx(702.0)

    def test_wire_joints_disabled(self, split_u_notch, part_bounds):
        config = SynthesisConfig(wire_joint_distance=0.0)
        approach = compute_approach(split_u_notch, 1, part_bounds, config)
        assert total_tooling_length(split_u_notch, 0, approach, config) == pytest.approx(690.0)
