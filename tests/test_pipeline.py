"""End-to-end tests for plan_notch, plan_cutout and plan_profile."""
import numpy as np
import pytest

from notch_sequencer import (
    SequencerError,
    SynthesisConfig,
    UnsupportedTopologyError,
    plan_cutout,
    plan_notch,
    plan_profile,
)
from notch_sequencer.geometry import Flange, make_line_segment
from notch_sequencer.sanity import covered_indices

WEB = (0, 0, 1)


def _reprs(blocks):
    return [repr(b) for b in blocks]


class TestPlanNotch:
    """Test notch planning on a web-only and a flex-crossing profile."""

    def test_web_notch_reverse_first(self, u_notch, part_bounds):
        plan = plan_notch(u_notch, bounds=part_bounds)
        assert plan.kind == "notch"
        assert plan.forward_first is False
        assert _reprs(plan.blocks) == [
            "ApproachMachining",
            "GambitPostApproach(5,5)",
            "MachineReverse(5,3)",
            "WireJointJumpReverse(2,2)",
            "MachineReverse(1,0)",
            "MoveToMidApproach",
            "ApproachOnReEntry",
            "GambitPreApproach(4,4)",
            "MachineForward(4,6)",
            "WireJointJumpForward(7,7)",
            "MachineForward(8,9)",
        ]
        assert covered_indices(plan.blocks) == set(range(10))
        assert plan.emitted_length() == pytest.approx(568.0)
        assert plan.total_length == pytest.approx(696.0)
        assert plan.most_recent_segment() is plan.segments[9]
        np.testing.assert_allclose(plan.approach.flange_end, [500, 0, 0])
        assert all(b.flange == Flange.WEB for b in plan.blocks if b.start_index is not None)

    def test_forward_first_override(self, u_notch, part_bounds):
        plan = plan_notch(u_notch, bounds=part_bounds, forward_first=True)
        assert repr(plan.blocks[1]) == "GambitPreApproach(4,4)"
        assert repr(plan.blocks[-1]) == "MachineReverse(1,0)"
        assert plan.most_recent_segment() is plan.segments[0]

    def test_without_bounds(self, u_notch):
        plan = plan_notch(u_notch)
        assert plan.approach is None
        assert plan.forward_first is True
        assert plan.total_length == pytest.approx(560.0)

    def test_wire_joints_disabled(self, u_notch):
        plan = plan_notch(u_notch, SynthesisConfig(wire_joint_distance=0.0))
        assert len(plan.segments) == 6
        assert _reprs(plan.blocks) == [
            "ApproachMachining",
            "GambitPreApproach(2,2)",
            "MachineForward(2,5)",
            "MoveToMidApproach",
            "ApproachOnReEntry",
            "GambitPostApproach(3,3)",
            "MachineReverse(3,0)",
        ]

    def test_flex_notch(self, flex_notch):
        plan = plan_notch(flex_notch)
        assert len(plan.segments) == 12
        assert [(r.start_index, r.end_index) for r in plan.flex_ranges] == [(7, 7)]
        assert _reprs(plan.blocks) == [
            "ApproachMachining",
            "GambitPreApproach(3,3)",
            "MachineForward(3,5)",
            "WireJointJumpForwardOnFlex(6,6)",
            "MachineFlexForward(7,7)",
            "WireJointJumpForwardOnFlex(8,8)",
            "MachineForward(9,9)",
            "WireJointJumpForward(10,10)",
            "MachineForward(11,11)",
            "MoveToMidApproach",
            "ApproachOnReEntry",
            "GambitPostApproach(4,4)",
            "MachineReverse(4,2)",
            "WireJointJumpReverse(1,1)",
            "MachineReverse(0,0)",
        ]
        flanges = {repr(b): b.flange for b in plan.blocks}
        assert flanges["MachineFlexForward(7,7)"] == Flange.FLEX
        assert flanges["WireJointJumpForwardOnFlex(8,8)"] == Flange.TOP
        assert plan.landmarks[1].relocated
        assert covered_indices(plan.blocks) == set(range(12))

    def test_flex_wire_joint_over_short_segment_is_left_uncut(self, short_lead_flex_notch):
        plan = plan_notch(short_lead_flex_notch)
        assert len(plan.segments) == 13
        assert _reprs(plan.blocks) == [
            "ApproachMachining",
            "GambitPreApproach(8,8)",
            "MachineForward(8,10)",
            "WireJointJumpForward(11,11)",
            "MachineForward(12,12)",
            "MoveToMidApproach",
            "ApproachOnReEntry",
            "GambitPostApproach(9,9)",
            "MachineReverse(9,7)",
            "WireJointJumpReverseOnFlex(6,6)",
            "MachineFlexReverse(5,5)",
            "WireJointJumpReverseOnFlex(4,4)",
            "MachineReverse(2,2)",
            "WireJointJumpReverse(1,1)",
            "MachineReverse(0,0)",
        ]
        np.testing.assert_allclose(plan.segments[2].end, [99, 0, 0])
        machined = covered_indices(b for b in plan.blocks if b.section_type.is_machining)
        assert not machined & {3, 4}
        # Segment 3 is the uncut head of the two-segment wire joint.
        assert covered_indices(plan.blocks) == set(range(13)) - {3}

    def test_two_flex_notch(self, two_flex_notch):
        plan = plan_notch(two_flex_notch)
        assert len(plan.segments) == 16
        assert [(r.start_index, r.end_index) for r in plan.flex_ranges] == [(2, 2), (13, 13)]
        assert _reprs(plan.blocks) == [
            "ApproachMachining",
            "GambitPreApproach(7,7)",
            "MachineForward(7,9)",
            "WireJointJumpForward(10,10)",
            "MachineForward(11,11)",
            "WireJointJumpForwardOnFlex(12,12)",
            "MachineFlexForward(13,13)",
            "WireJointJumpForwardOnFlex(14,14)",
            "MachineForward(15,15)",
            "MoveToMidApproach",
            "ApproachOnReEntry",
            "GambitPostApproach(8,8)",
            "MachineReverse(8,6)",
            "WireJointJumpReverse(5,5)",
            "MachineReverse(4,4)",
            "WireJointJumpReverseOnFlex(3,3)",
            "MachineFlexReverse(2,2)",
            "WireJointJumpReverseOnFlex(1,1)",
            "MachineReverse(0,0)",
        ]
        flanges = [b.flange for b in plan.blocks if b.start_index is not None]
        assert flanges[-1] == Flange.TOP
        assert Flange.BOTTOM in flanges
        assert covered_indices(plan.blocks) == set(range(16))

    def test_inserts_connector_for_gap(self, u_notch):
        gapped = [
            u_notch[0],
            make_line_segment((310, 80, 0), (700, 80, 0), WEB),
            u_notch[2],
        ]
        plan = plan_notch(gapped)
        assert plan.segments[0].end[0] == pytest.approx(300.0)
        assert any(np.allclose(seg.end, [310, 80, 0]) for seg in plan.segments)

    def test_empty_profile(self):
        with pytest.raises(UnsupportedTopologyError):
            plan_notch([])

    def test_to_dict(self, u_notch, part_bounds):
        data = plan_notch(u_notch, bounds=part_bounds).to_dict()
        assert data["kind"] == "notch"
        assert data["segment_count"] == 10
        assert data["markers"]["approach"] == 4
        assert data["blocks"][0] == {
            "type": "ApproachMachining", "start_index": None, "end_index": None, "flange": None,
        }
        assert data["approach"]["flange"] == "web"
        assert data["emitted_length"] == pytest.approx(568.0)


class TestPlanCutout:
    """Test cut-out planning."""

    def test_flex_loop(self, flex_loop):
        plan = plan_cutout(flex_loop)
        assert plan.kind == "cutout"
        assert len(plan.blocks) == 9
        assert [(r.start_index, r.end_index) for r in plan.flex_ranges] == [(2, 2), (8, 8)]
        assert plan.markers is None
        assert plan.most_recent_segment() is plan.segments[11]

    def test_open_profile_rejected(self, u_notch):
        with pytest.raises(UnsupportedTopologyError):
            plan_cutout(u_notch)


class TestPlanProfile:
    """Test open/closed dispatch."""

    def test_closed_goes_to_cutout(self, web_rectangle):
        assert plan_profile(web_rectangle).kind == "cutout"

    def test_open_goes_to_notch(self, u_notch):
        assert plan_profile(u_notch).kind == "notch"

    def test_notch_starting_on_flex(self):
        top = (0, 1, 0)
        segments = [
            make_line_segment((0, 0, 0), (2, 0, 0), WEB, top),
            make_line_segment((2, 0, 0), (100, 0, 0), top),
        ]
        with pytest.raises(UnsupportedTopologyError):
            plan_profile(segments)

    def test_mid_landmark_on_flex(self):
        top = (0, 1, 0)
        segments = [
            make_line_segment((0, 0, 0), (10, 0, 0), WEB, top),
            make_line_segment((10, 0, 0), (20, 0, 0), top),
        ]
        with pytest.raises(SequencerError):
            plan_profile(segments)
