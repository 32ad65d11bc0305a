"""Tests for profile JSON conversion."""
import json

import numpy as np
import pytest

from notch_sequencer.contracts import SynthesisConfig
from notch_sequencer.errors import ConfigurationError
from notch_sequencer.serialization import (
    load_profile,
    profile_from_dict,
    profile_to_dict,
    segment_from_dict,
    segment_to_dict,
)


class TestSegmentDicts:
    """Test per-segment conversion."""

    def test_arc_fields(self, flex_notch):
        data = segment_to_dict(flex_notch[1])
        assert data["type"] == "arc"
        assert data["center"] == [100.0, 200.0, -10.0]
        assert data["axis"] == [-1.0, 0.0, 0.0]
        seg = segment_from_dict(data)
        assert seg.length == pytest.approx(5.0 * np.pi)

    def test_end_normal_defaults_to_start_normal(self):
        seg = segment_from_dict({"start": [0, 0, 0], "end": [1, 0, 0], "start_normal": [0, 0, 1]})
        np.testing.assert_allclose(seg.end_normal, [0, 0, 1])

    def test_missing_field(self):
        with pytest.raises(ConfigurationError):
            segment_from_dict({"type": "arc", "start": [0, 0, 0], "end": [1, 0, 0], "start_normal": [0, 0, 1]})

    def test_unknown_type(self):
        with pytest.raises(ConfigurationError):
            segment_from_dict({"type": "spline", "start": [0, 0, 0]})

    def test_malformed_point(self):
        with pytest.raises(ConfigurationError):
            segment_from_dict({"start": [0, 0], "end": [1, 0, 0], "start_normal": [0, 0, 1]})


class TestProfileDicts:
    """Test whole-profile documents."""

    def test_profile_with_bounds(self, u_notch, part_bounds, tmp_path):
        path = tmp_path / "profile.json"
        path.write_text(json.dumps(profile_to_dict(u_notch, part_bounds)), encoding="utf-8")
        segments, bounds = load_profile(path)
        assert len(segments) == 3
        np.testing.assert_allclose(segments[1].end, [700, 80, 0])
        assert bounds.xmax == 1000.0

    def test_profile_without_bounds(self, u_notch):
        segments, bounds = profile_from_dict(profile_to_dict(u_notch))
        assert bounds is None
        assert len(segments) == 3

    def test_empty_profile(self):
        with pytest.raises(ConfigurationError):
            profile_from_dict({"segments": []})

    def test_incomplete_bounds(self, u_notch):
        data = profile_to_dict(u_notch)
        data["bounds"] = {"xmin": 0}
        with pytest.raises(ConfigurationError):
            profile_from_dict(data)


class TestConfigMapping:
    """Test SynthesisConfig loading."""

    def test_overrides(self):
        config = SynthesisConfig.from_mapping({"wire_joint_distance": 3, "cutout_wire_joint_fractions": [0.5]})
        assert config.wire_joint_distance == 3.0
        assert config.cutout_wire_joint_fractions == (0.5,)
        assert config.to_dict()["cutout_wire_joint_fractions"] == [0.5]

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError):
            SynthesisConfig.from_mapping({"wire_joint": 2})

    def test_negative_wire_joint(self):
        with pytest.raises(ConfigurationError):
            SynthesisConfig.from_mapping({"wire_joint_distance": -1})

    def test_derived_lengths(self):
        assert SynthesisConfig(wire_joint_distance=0.3).effective_wire_joint_length == 2.0
        assert SynthesisConfig(wire_joint_distance=3.0).effective_wire_joint_length == 3.0
        disabled = SynthesisConfig(wire_joint_distance=0.0)
        assert not disabled.wire_joints_enabled
        assert disabled.landmark_fractions == (0.5,)
