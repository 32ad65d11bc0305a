"""End-to-end planning of one notch or cut-out profile."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from notch_sequencer.approach import (
    ApproachGeometry,
    compute_approach,
    is_forward_first,
    total_tooling_length,
)
from notch_sequencer.audit import DecisionLog
from notch_sequencer.contracts import (
    Block,
    FlexRange,
    Landmark,
    LandmarkRecord,
    NotchMarkers,
    SynthesisConfig,
)
from notch_sequencer.cutout import build_cutout_blocks
from notch_sequencer.errors import UnsupportedTopologyError
from notch_sequencer.flex import locate_flex_ranges
from notch_sequencer.geometry import Bounds, ToolingSegment, total_length
from notch_sequencer.landmarks import compute_landmarks, group_by_segment
from notch_sequencer.notch import place_notch_markers
from notch_sequencer.sanity import check_block_invariants, check_continuity, emitted_length
from notch_sequencer.segments import (
    is_closed,
    repair_continuity,
    rotate_to_flange,
    split_extreme_segments,
)
from notch_sequencer.serialization import segments_to_dicts
from notch_sequencer.synthesizer import compose_notch_blocks, tag_flanges

logger = logging.getLogger(__name__)


@dataclass
class ProfilePlan:
    """Segmented profile and its validated block sequence."""
    kind: str                                   # "notch" or "cutout"
    segments: List[ToolingSegment]
    blocks: List[Block]
    flex_ranges: List[FlexRange]
    config: SynthesisConfig
    total_length: float
    landmarks: List[Optional[Landmark]] = field(default_factory=list)
    landmark_records: List[LandmarkRecord] = field(default_factory=list)
    markers: Optional[NotchMarkers] = None
    approach: Optional[ApproachGeometry] = None
    forward_first: Optional[bool] = None
    bounds: Optional[Bounds] = None

    def most_recent_segment(self) -> Optional[ToolingSegment]:
        """Segment at the end of the last machining block, for chaining the next feature."""
        for block in reversed(self.blocks):
            if block.section_type.is_machining and block.end_index is not None:
                return self.segments[block.end_index]
        return None

    def emitted_length(self) -> float:
        return emitted_length(self.blocks, self.segments)

    def to_dict(self) -> Dict[str, object]:
        return {
            "kind": self.kind,
            "segment_count": len(self.segments),
            "segments": segments_to_dicts(self.segments),
            "blocks": [b.to_dict() for b in self.blocks],
            "flex_ranges": [[r.start_index, r.end_index] for r in self.flex_ranges],
            "landmarks": [lm.to_dict() if lm is not None else None for lm in self.landmarks],
            "markers": self.markers.to_dict() if self.markers is not None else None,
            "approach": self.approach.to_dict() if self.approach is not None else None,
            "forward_first": self.forward_first,
            "bounds": self.bounds.to_dict() if self.bounds is not None else None,
            "total_length": self.total_length,
            "emitted_length": self.emitted_length(),
            "config": self.config.to_dict(),
        }


def _prepare(
    segments: Sequence[ToolingSegment],
    config: SynthesisConfig,
    audit: Optional[DecisionLog],
) -> List[ToolingSegment]:
    if not segments:
        raise UnsupportedTopologyError("Profile has no segments")
    repaired = repair_continuity(segments, config.continuity_tolerance)
    check_continuity(repaired, config.continuity_tolerance)
    if audit is not None and len(repaired) != len(segments):
        audit.record(
            "repair", "inserted_connectors",
            numeric_evidence={"inserted": float(len(repaired) - len(segments))},
        )
    return repaired


def plan_notch(
    segments: Sequence[ToolingSegment],
    config: Optional[SynthesisConfig] = None,
    *,
    bounds: Optional[Bounds] = None,
    forward_first: Optional[bool] = None,
    audit: Optional[DecisionLog] = None,
) -> ProfilePlan:
    """Plan an open notch profile.

    Args:
        segments: Raw ordered tooling segments.
        config: Lengths and tolerances; defaults to ``SynthesisConfig()``.
        bounds: Part bounds. Needed for the approach geometry and the
            direction choice; without them no approach is computed and the
            forward run goes first.
        forward_first: Overrides the direction choice.
        audit: Optional decision log.

    Returns:
        ProfilePlan with markers and approach geometry filled in.
    """
    config = config or SynthesisConfig()
    tol = config.point_tolerance
    segments = _prepare(segments, config, audit)
    segments = split_extreme_segments(segments, config)
    flex_ranges = locate_flex_ranges(segments, tol)
    if audit is not None:
        audit.record(
            "flex", "located",
            indices=[i for r in flex_ranges for i in (r.start_index, r.end_index)],
        )

    landmarks = compute_landmarks(segments, flex_ranges, config)
    if audit is not None:
        for nominal, lm in zip(config.landmark_fractions, landmarks):
            decision = "dropped" if lm is None else ("relocated" if lm.relocated else "kept")
            audit.record(
                "landmark", decision,
                indices=[] if lm is None else [lm.segment_index],
                numeric_evidence={"nominal": nominal, "fraction": lm.fraction if lm else 0.0},
            )
    records = group_by_segment(landmarks)

    segments, markers, flex_ranges = place_notch_markers(segments, flex_ranges, records, config)
    check_continuity(segments, config.continuity_tolerance)
    if audit is not None:
        audit.record("split", "markers_placed", metadata=markers.to_dict())

    if forward_first is None:
        forward_first = is_forward_first(segments, bounds) if bounds is not None else True
    blocks = tag_flanges(compose_notch_blocks(markers, forward_first), segments, tol)
    check_block_invariants(
        blocks, segments, config.effective_wire_joint_length, config.wire_joint_length_tolerance,
    )

    approach = compute_approach(segments, markers.approach, bounds, config) if bounds is not None else None
    length = total_tooling_length(segments, len(flex_ranges), approach, config)
    if audit is not None:
        audit.record(
            "sequence", "blocks_emitted",
            numeric_evidence={"total_length": length},
            metadata={"blocks": [repr(b) for b in blocks]},
        )
    logger.info(
        "Notch: %d segments, %d flex run(s), %d blocks, tooling length %.3f",
        len(segments), len(flex_ranges), len(blocks), length,
    )
    return ProfilePlan(
        kind="notch",
        segments=segments,
        blocks=blocks,
        flex_ranges=flex_ranges,
        config=config,
        total_length=length,
        landmarks=landmarks,
        landmark_records=records,
        markers=markers,
        approach=approach,
        forward_first=forward_first,
        bounds=bounds,
    )


def plan_cutout(
    segments: Sequence[ToolingSegment],
    config: Optional[SynthesisConfig] = None,
    *,
    bounds: Optional[Bounds] = None,
    audit: Optional[DecisionLog] = None,
) -> ProfilePlan:
    """Plan a closed cut-out profile.

    Raises:
        UnsupportedTopologyError: if the profile is not closed or never
            touches a flange.
    """
    config = config or SynthesisConfig()
    tol = config.point_tolerance
    segments = _prepare(segments, config, audit)
    if not is_closed(segments, config.continuity_tolerance):
        raise UnsupportedTopologyError("Cut-out profile does not close on itself")
    segments = rotate_to_flange(segments, tol=tol)

    segments, blocks = build_cutout_blocks(segments, config)
    flex_ranges = locate_flex_ranges(segments, tol)
    if audit is not None:
        audit.record(
            "sequence", "blocks_emitted",
            indices=[i for r in flex_ranges for i in (r.start_index, r.end_index)],
            metadata={"blocks": [repr(b) for b in blocks]},
        )
    return ProfilePlan(
        kind="cutout",
        segments=segments,
        blocks=blocks,
        flex_ranges=flex_ranges,
        config=config,
        total_length=total_length(segments),
        bounds=bounds,
    )


def plan_profile(
    segments: Sequence[ToolingSegment],
    config: Optional[SynthesisConfig] = None,
    *,
    bounds: Optional[Bounds] = None,
    forward_first: Optional[bool] = None,
    audit: Optional[DecisionLog] = None,
) -> ProfilePlan:
    """Plan a closed profile as a cut-out and an open one as a notch."""
    config = config or SynthesisConfig()
    if is_closed(segments, config.continuity_tolerance):
        return plan_cutout(segments, config, bounds=bounds, audit=audit)
    return plan_notch(segments, config, bounds=bounds, forward_first=forward_first, audit=audit)
