"""
Splitting tooling segments at points, with atomic index renumbering.

Every structural edit returns a fresh segment list together with an
IndexRemap describing how old indices map to new ones. Callers apply the
remap to their markers and blocks in the same step as they adopt the new
list, so no index is ever left pointing into the old numbering.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

import numpy as np

from notch_sequencer.contracts import Block
from notch_sequencer.errors import LandmarkNotFoundError
from notch_sequencer.geometry import (
    ToolingSegment,
    evaluate_point_and_index_at_length,
    points_close,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexRemap:
    """Old-to-new index mapping for one replacement of ``removed`` segments.

    Segments ``[index, index + removed)`` were replaced by ``inserted`` new
    ones. End-anchored indices (a segment whose END point carries meaning)
    follow the last replacement segment; start-anchored indices follow the
    first.
    """
    index: int
    removed: int = 1
    inserted: int = 1

    @property
    def delta(self) -> int:
        return self.inserted - self.removed

    def __call__(self, k: int) -> int:
        """Remap an end-anchored index."""
        if k < self.index:
            return k
        if k >= self.index + self.removed:
            return k + self.delta
        return self.index + self.inserted - 1

    def start(self, k: int) -> int:
        """Remap a start-anchored index."""
        if k <= self.index:
            return k
        if k >= self.index + self.removed:
            return k + self.delta
        return self.index

    def block(self, block: Block) -> Block:
        if not block.section_type.is_indexed or block.start_index is None:
            return block
        lo, hi = sorted((block.start_index, block.end_index))
        new_lo, new_hi = self.start(lo), self(hi)
        if block.start_index <= block.end_index:
            start, end = new_lo, new_hi
        else:
            start, end = new_hi, new_lo
        return Block(block.section_type, start, end, block.flange)

    def blocks(self, blocks: Sequence[Block]) -> List[Block]:
        return [self.block(b) for b in blocks]


def split_at(
    segments: Sequence[ToolingSegment],
    index: int,
    point: np.ndarray,
    tol: float = 1e-6,
) -> List[ToolingSegment]:
    """Split ``segments[index]`` at ``point`` into one or two segments.

    A point on an existing end of the segment returns the segment unchanged.
    Line halves get linearly interpolated normals at the cut; arc halves keep
    the parent's normals since an arc lies in one plane.

    Raises:
        LandmarkNotFoundError: if the point is not on the segment.
    """
    seg = segments[index]
    if not seg.curve.contains_point(point, tol):
        raise LandmarkNotFoundError(
            f"Split point {np.round(point, 6).tolist()} is not on segment {index}"
        )
    s = seg.curve.length_at_point(point)
    length = seg.length
    if s <= tol or length - s <= tol:
        return [seg]

    head_curve, tail_curve = seg.curve.split_at_length(s)
    if seg.is_arc:
        return [
            ToolingSegment(head_curve, seg.start_normal, seg.end_normal),
            ToolingSegment(tail_curve, seg.start_normal, seg.end_normal),
        ]
    mid_normal = seg.normal_at_length(s)
    return [
        ToolingSegment(head_curve, seg.start_normal, mid_normal),
        ToolingSegment(tail_curve, mid_normal, seg.end_normal),
    ]


def merge(
    split_result: Sequence[ToolingSegment],
    segments: Sequence[ToolingSegment],
    index: int,
) -> Tuple[List[ToolingSegment], IndexRemap]:
    """Replace ``segments[index]`` with ``split_result`` in a new list."""
    merged = list(segments[:index]) + list(split_result) + list(segments[index + 1:])
    return merged, IndexRemap(index, 1, len(split_result))


def split_and_remap(
    segments: Sequence[ToolingSegment],
    index: int,
    point: np.ndarray,
    tol: float = 1e-6,
) -> Tuple[List[ToolingSegment], IndexRemap, int]:
    """Split at ``point`` and report the index of the segment now ending there.

    A point on the start of ``segments[index]`` resolves to the end of the
    previous segment.
    """
    if index > 0 and points_close(segments[index].start, point, tol):
        return list(segments), IndexRemap(index, 1, 1), index - 1
    pieces = split_at(segments, index, point, tol)
    new_segments, remap = merge(pieces, segments, index)
    if len(pieces) > 1:
        logger.debug("Split segment %d at %s", index, np.round(point, 4).tolist())
    return new_segments, remap, index


def split_with_blocks(
    segments: Sequence[ToolingSegment],
    blocks: Sequence[Block],
    index: int,
    point: np.ndarray,
    tol: float = 1e-6,
) -> Tuple[List[ToolingSegment], List[Block], int]:
    """Split a segment and renumber the blocks over it in one step."""
    new_segments, remap, end_index = split_and_remap(segments, index, point, tol)
    return new_segments, remap.blocks(blocks), end_index


def place_wire_joint_point(
    segments: Sequence[ToolingSegment],
    index: int,
    distance: float,
    reverse: bool = False,
    tol: float = 1e-6,
) -> Tuple[List[ToolingSegment], IndexRemap, int]:
    """Split the profile ``distance`` away from the end point of ``segments[index]``.

    The new point always ends up as the END point of the returned index.
    """
    point, split_index = evaluate_point_and_index_at_length(
        segments, index, distance, reverse=reverse, least_length=tol,
    )
    return split_and_remap(segments, split_index, point, tol)


def remap_all(marks: Dict[str, int], remap: IndexRemap, start_anchored: Sequence[str] = ()) -> Dict[str, int]:
    """Apply a remap to a dictionary of named indices."""
    out = {}
    for name, k in marks.items():
        out[name] = remap.start(k) if name in start_anchored else remap(k)
    return out
