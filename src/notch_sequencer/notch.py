"""
Marker placement for open notch profiles.

Every point the synthesizer needs (landmarks, wire-joint ends, flex
wire-joint ends) is turned into a segment boundary by splitting the profile,
so that each marker is the END point of the segment it indexes. All indices
live in one dictionary that is remapped after every split.
"""
import logging
from typing import Dict, List, Sequence, Tuple

from notch_sequencer.contracts import (
    FlexMarkers,
    FlexRange,
    LandmarkRecord,
    NotchMarkers,
    SynthesisConfig,
)
from notch_sequencer.errors import LandmarkNotFoundError, UnsupportedTopologyError
from notch_sequencer.geometry import ToolingSegment, locate_point, points_close, total_length
from notch_sequencer.landmarks import MID
from notch_sequencer.splitter import place_wire_joint_point, remap_all, split_and_remap

logger = logging.getLogger(__name__)

APPROACH = "approach"
PRE_APPROACH = "pre_approach"
POST_APPROACH = "post_approach"


def _flex_key(i: int, part: str) -> str:
    return f"flex{i}:{part}"


def is_short_notch(segments: Sequence[ToolingSegment], config: SynthesisConfig) -> bool:
    """A notch shorter than the threshold, or whose ends close to within it."""
    threshold = config.min_notch_length_threshold
    if total_length(segments) < threshold:
        return True
    return points_close(segments[-1].end, segments[0].start, threshold)


def check_notch_ends(segments: Sequence[ToolingSegment], flex_ranges: Sequence[FlexRange]) -> None:
    """Reject a notch whose first or last segment is on a flex."""
    last = len(segments) - 1
    for flex in flex_ranges:
        if flex.start_index == 0 or flex.end_index == last:
            raise UnsupportedTopologyError(
                f"Notch begins or ends on flex run {flex.start_index}..{flex.end_index}"
            )


class _MarkerBook:
    """Named segment indices kept valid across splits."""

    def __init__(self, segments: Sequence[ToolingSegment], tol: float):
        self.segments: List[ToolingSegment] = list(segments)
        self.tol = tol
        self.marks: Dict[str, int] = {}
        self.start_anchored: set = set()

    def split_at_point(self, name: str, point) -> int:
        index, _ = locate_point(self.segments, point, self.tol)
        self.segments, remap, end_index = split_and_remap(self.segments, index, point, self.tol)
        self.marks = remap_all(self.marks, remap, self.start_anchored)
        self.marks[name] = end_index
        return end_index

    def split_at_distance(self, name: str, from_name: str, distance: float, reverse: bool = False) -> int:
        return self.split_from_index(name, self.marks[from_name], distance, reverse)

    def split_from_index(self, name: str, index: int, distance: float, reverse: bool = False) -> int:
        self.segments, remap, end_index = place_wire_joint_point(
            self.segments, index, distance, reverse=reverse, tol=self.tol,
        )
        self.marks = remap_all(self.marks, remap, self.start_anchored)
        self.marks[name] = end_index
        return end_index


def place_notch_markers(
    segments: Sequence[ToolingSegment],
    flex_ranges: Sequence[FlexRange],
    records: Sequence[LandmarkRecord],
    config: SynthesisConfig,
) -> Tuple[List[ToolingSegment], NotchMarkers, List[FlexRange]]:
    """Split the profile at every marker point and collect the marker indices.

    Args:
        segments: Continuous, flex-located notch segments.
        flex_ranges: Flex runs of ``segments``.
        records: Output of ``group_by_segment``, one record per segment index
            holding the landmark points that fall on it.
        config: Wire-joint length and tolerances.

    Returns:
        (segments, markers, flex_ranges) in the split numbering.

    Raises:
        LandmarkNotFoundError: if there is no mid-profile landmark.
        UnsupportedTopologyError: if a wire-joint walk runs off the profile.
    """
    check_notch_ends(segments, flex_ranges)
    if not any(MID in record.nominals for record in records):
        raise LandmarkNotFoundError("No mid-profile landmark to anchor the approach", MID)

    book = _MarkerBook(segments, config.point_tolerance)
    for i, flex in enumerate(flex_ranges):
        book.marks[_flex_key(i, "start")] = flex.start_index
        book.marks[_flex_key(i, "end")] = flex.end_index
        book.start_anchored.add(_flex_key(i, "start"))

    short = is_short_notch(segments, config)
    edge_nominals: List[float] = []
    skipped = 0
    for record in records:
        for nominal, point in zip(record.nominals, record.points):
            if nominal == MID:
                book.split_at_point(APPROACH, point)
            elif short:
                skipped += 1
            else:
                book.split_at_point(f"at:{nominal}", point)
                edge_nominals.append(nominal)
    if skipped:
        logger.info("Short notch: skipping %d edge wire joint(s)", skipped)
    edge_nominals.sort()

    wire_joint = config.effective_wire_joint_length
    book.split_at_distance(PRE_APPROACH, APPROACH, wire_joint, reverse=True)
    book.split_at_distance(POST_APPROACH, APPROACH, wire_joint)
    for nominal in edge_nominals:
        book.split_at_distance(f"post:{nominal}", f"at:{nominal}", wire_joint)

    for i in range(len(flex_ranges)):
        # The walk back starts at the end of the segment before the flex.
        book.split_from_index(_flex_key(i, "before"), book.marks[_flex_key(i, "start")] - 1, wire_joint, reverse=True)
        book.split_at_distance(_flex_key(i, "after_end"), _flex_key(i, "end"), wire_joint)

    marks = book.marks
    flexes = []
    new_ranges = []
    for i in range(len(flex_ranges)):
        start = marks[_flex_key(i, "start")]
        end = marks[_flex_key(i, "end")]
        flexes.append(FlexMarkers(
            start - 1, start, end, marks[_flex_key(i, "after_end")],
            wire_joint_head=marks[_flex_key(i, "before")],
        ))
        new_ranges.append(FlexRange(start, end))

    markers = NotchMarkers(
        pre_approach=marks[PRE_APPROACH],
        approach=marks[APPROACH],
        post_approach=marks[POST_APPROACH],
        segment_count=len(book.segments),
        at={MID: marks[APPROACH]},
        post={MID: marks[POST_APPROACH]},
        flexes=flexes,
    )
    for nominal in edge_nominals:
        markers.at[nominal] = marks[f"at:{nominal}"]
        markers.post[nominal] = marks[f"post:{nominal}"]
    logger.debug("Notch markers: %s", markers.to_dict())
    return book.segments, markers, new_ranges
