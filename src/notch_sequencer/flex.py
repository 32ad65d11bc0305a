"""Flange/flex classification of tooling segments."""
import logging
from typing import List, Sequence

from notch_sequencer.contracts import FlexRange
from notch_sequencer.errors import UnsupportedTopologyError
from notch_sequencer.geometry import Flange, ToolingSegment

logger = logging.getLogger(__name__)

MAX_FLEX_RANGES = 2


def segment_flange(segment: ToolingSegment, tol: float = 1e-6) -> Flange:
    """Flange a segment lies on, or FLEX when its normals disagree or bend."""
    start = segment.start_flange(tol)
    end = segment.end_flange(tol)
    if start == Flange.FLEX or end == Flange.FLEX or start != end:
        return Flange.FLEX
    return start


def is_on_flex(segment: ToolingSegment, tol: float = 1e-6) -> bool:
    return segment_flange(segment, tol) == Flange.FLEX


def locate_flex_ranges(
    segments: Sequence[ToolingSegment],
    tol: float = 1e-6,
    max_ranges: int = MAX_FLEX_RANGES,
) -> List[FlexRange]:
    """Group consecutive flex-resident segments into inclusive index ranges.

    Raises:
        UnsupportedTopologyError: if more than ``max_ranges`` runs are found.
    """
    ranges: List[FlexRange] = []
    run_start = -1
    for i, seg in enumerate(segments):
        if is_on_flex(seg, tol):
            if run_start == -1:
                run_start = i
        elif run_start != -1:
            ranges.append(FlexRange(run_start, i - 1))
            run_start = -1
    if run_start != -1:
        ranges.append(FlexRange(run_start, len(segments) - 1))

    if len(ranges) > max_ranges:
        raise UnsupportedTopologyError(
            f"Profile crosses {len(ranges)} flex runs; at most {max_ranges} are supported"
        )
    logger.debug("Flex ranges: %s", [(r.start_index, r.end_index) for r in ranges])
    return ranges
