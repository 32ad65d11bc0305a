"""Tests for fractional-length landmark computation."""
import numpy as np
import pytest

from notch_sequencer.contracts import SynthesisConfig
from notch_sequencer.errors import LandmarkNotFoundError
from notch_sequencer.flex import locate_flex_ranges
from notch_sequencer.geometry import make_line_segment
from notch_sequencer.landmarks import compute_landmarks, group_by_segment
from notch_sequencer.segments import split_extreme_segments

WEB = (0, 0, 1)
TOP = (0, 1, 0)


def _web_flex_top(flex_start, flex_end, total):
    """Straight profile along X: web, a flex run, then the top flange."""
    return [
        make_line_segment((0, 0, 0), (flex_start, 0, 0), WEB),
        make_line_segment((flex_start, 0, 0), (flex_end, 0, 0), WEB, TOP),
        make_line_segment((flex_end, 0, 0), (total, 0, 0), TOP),
    ]


class TestComputeLandmarks:
    """Test landmark placement and flex avoidance."""

    def test_landmarks_off_flex_are_kept(self, u_notch, config):
        landmarks = compute_landmarks(u_notch, [], config)
        assert [lm.nominal for lm in landmarks] == [0.25, 0.5, 0.75]
        assert not any(lm.relocated for lm in landmarks)
        np.testing.assert_allclose(landmarks[0].point, [360, 80, 0])
        np.testing.assert_allclose(landmarks[1].point, [500, 80, 0])
        np.testing.assert_allclose(landmarks[2].point, [640, 80, 0])
        assert {lm.segment_index for lm in landmarks} == {1}

    def test_only_mid_when_wire_joints_disabled(self, u_notch):
        landmarks = compute_landmarks(u_notch, [], SynthesisConfig(wire_joint_distance=0.0))
        assert len(landmarks) == 1
        assert landmarks[0].nominal == 0.5

    def test_edge_landmark_dropped_on_short_flange(self, config):
        segments = _web_flex_top(2, 8, 20)
        landmarks = compute_landmarks(segments, locate_flex_ranges(segments), config, percents=[0.25])
        assert landmarks == [None]

    def test_edge_landmark_relocated(self, config):
        segments = _web_flex_top(240, 255, 1000)
        landmarks = compute_landmarks(
            segments, locate_flex_ranges(segments), config, percents=(0.25, 0.75),
        )
        low, high = landmarks
        assert low.relocated
        assert low.fraction == pytest.approx(0.125)
        assert low.segment_index == 0
        np.testing.assert_allclose(low.point, [125, 0, 0])
        assert not high.relocated
        np.testing.assert_allclose(high.point, [750, 0, 0])

    def test_edge_landmark_dropped_below_approach_threshold(self, config):
        segments = _web_flex_top(150, 300, 1000)
        landmarks = compute_landmarks(segments, locate_flex_ranges(segments), config, percents=[0.25])
        assert landmarks == [None]
        relaxed = SynthesisConfig(notch_approach_threshold=100.0)
        (low,) = compute_landmarks(segments, locate_flex_ranges(segments), relaxed, percents=[0.25])
        assert low.relocated
        np.testing.assert_allclose(low.point, [125, 0, 0])

    def test_mid_landmark_relocated(self, config):
        segments = _web_flex_top(52, 62, 100)
        (mid,) = compute_landmarks(segments, locate_flex_ranges(segments), config, percents=[0.5])
        assert mid.relocated
        assert mid.nominal == 0.5
        assert mid.fraction == pytest.approx(0.4)
        assert mid.segment_index == 0
        np.testing.assert_allclose(mid.point, [40, 0, 0])

    def test_mid_landmark_on_flex_twice_raises(self, config):
        segments = _web_flex_top(35, 55, 100)
        with pytest.raises(LandmarkNotFoundError):
            compute_landmarks(segments, locate_flex_ranges(segments), config, percents=[0.5])

    def test_flex_notch_landmarks(self, flex_notch, config):
        segments = split_extreme_segments(flex_notch, config)
        low, mid, high = compute_landmarks(segments, locate_flex_ranges(segments), config)
        assert not low.relocated
        assert mid.relocated and mid.segment_index == 0
        assert not high.relocated and high.segment_index == 4


class TestGroupBySegment:
    """Test merging of landmarks that share a segment."""

    def test_group(self, u_notch, config):
        landmarks = compute_landmarks(u_notch, [], config) + [None]
        records = group_by_segment(landmarks)
        assert len(records) == 1
        assert records[0].segment_index == 1
        assert records[0].nominals == [0.25, 0.5, 0.75]
        assert len(records[0].points) == 3
