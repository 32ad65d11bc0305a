"""
Tooling-segment list preparation: continuity repair, rotation and
extreme-segment splitting.
"""
import logging
from typing import List, Optional, Sequence

import numpy as np

from notch_sequencer.contracts import SynthesisConfig
from notch_sequencer.errors import UnsupportedTopologyError
from notch_sequencer.flex import is_on_flex, segment_flange
from notch_sequencer.geometry import Flange, Line, ToolingSegment, points_close
from notch_sequencer.splitter import merge, split_at

logger = logging.getLogger(__name__)


def connecting_segment(before: ToolingSegment, after: ToolingSegment) -> ToolingSegment:
    """Line bridging the end of ``before`` to the start of ``after``."""
    return ToolingSegment(
        Line(before.end.copy(), after.start.copy()),
        before.end_normal.copy(),
        after.start_normal.copy(),
    )


def repair_continuity(segments: Sequence[ToolingSegment], tol: float = 1e-3) -> List[ToolingSegment]:
    """Insert connecting lines wherever consecutive segments do not meet.

    Scanning resumes after each inserted connector, so a repaired list passes
    through unchanged on a second call.
    """
    repaired: List[ToolingSegment] = list(segments)
    i = 0
    while i < len(repaired) - 1:
        current, following = repaired[i], repaired[i + 1]
        if not points_close(current.end, following.start, tol):
            gap = float(np.linalg.norm(current.end - following.start))
            logger.warning(
                "Inserting connector of length %.4f between segments %d and %d",
                gap, i, i + 1,
            )
            repaired.insert(i + 1, connecting_segment(current, following))
            i += 1
        i += 1
    return repaired


def is_closed(segments: Sequence[ToolingSegment], tol: float = 1e-3) -> bool:
    """Whether the profile returns to its own start point."""
    return len(segments) > 1 and points_close(segments[-1].end, segments[0].start, tol)


def rotate_to_flange(
    segments: Sequence[ToolingSegment],
    preferred: Optional[Flange] = Flange.WEB,
    tol: float = 1e-6,
) -> List[ToolingSegment]:
    """Cyclically shift a closed profile until segment 0 lies on a flange.

    The last segment moves to the front one step at a time. Segments on the
    ``preferred`` flange win when the profile has any.

    Raises:
        UnsupportedTopologyError: if no segment lies on a flange.
    """
    rotated = list(segments)
    flanges = [segment_flange(seg, tol) for seg in rotated]
    if preferred is not None and preferred in flanges:
        targets = {preferred}
    elif any(f != Flange.FLEX for f in flanges):
        targets = {Flange.WEB, Flange.TOP, Flange.BOTTOM}
    else:
        raise UnsupportedTopologyError("Closed profile has no flange-resident segment")

    shifts = 0
    while flanges[0] not in targets:
        rotated.insert(0, rotated.pop())
        flanges.insert(0, flanges.pop())
        shifts += 1
    if shifts:
        logger.debug("Rotated closed profile by %d segment(s)", shifts)
    return rotated


def split_extreme_segments(
    segments: Sequence[ToolingSegment],
    config: SynthesisConfig,
) -> List[ToolingSegment]:
    """Split a long flange segment that meets a flex at either profile end.

    The cut lands ``extreme_segment_split_offset`` from the flex-adjacent end
    so a wire joint can sit between the flange cut and the flex.
    """
    result = list(segments)
    if len(result) < 2:
        return result
    tol = config.point_tolerance
    offset = config.extreme_segment_split_offset

    first = result[0]
    if (not is_on_flex(first) and is_on_flex(result[1])
            and first.length > config.extreme_segment_split_length):
        point = first.curve.point_at_length(first.length - offset)
        result, _ = merge(split_at(result, 0, point, tol), result, 0)
        logger.debug("Split first segment %.3f before the flex", offset)

    last_index = len(result) - 1
    last = result[last_index]
    if (not is_on_flex(last) and is_on_flex(result[last_index - 1])
            and last.length > config.extreme_segment_split_length):
        point = last.curve.point_at_length(offset)
        result, _ = merge(split_at(result, last_index, point, tol), result, last_index)
        logger.debug("Split last segment %.3f after the flex", offset)
    return result
