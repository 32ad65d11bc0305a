"""
Block planning for closed profiles (cut-outs).

A cut-out is machined forward in one pass. Its blocks alternate between
flange stretches and flex runs; a flex-on wire joint is left on the flange
side of every flange/flex boundary. Long web-only cut-outs also get plain
wire joints spread along the web so the slug stays attached.
"""
import logging
from typing import List, Sequence, Tuple

from notch_sequencer.contracts import Block, SectionType, SynthesisConfig
from notch_sequencer.errors import UnsupportedTopologyError
from notch_sequencer.flex import segment_flange
from notch_sequencer.geometry import (
    Flange,
    ToolingSegment,
    cumulative_lengths,
    profile_bounds,
    total_length,
)
from notch_sequencer.sanity import check_block_invariants
from notch_sequencer.splitter import place_wire_joint_point, split_and_remap

logger = logging.getLogger(__name__)

MF = SectionType.MACHINE_FORWARD
MFF = SectionType.MACHINE_FLEX_FORWARD
WJTF = SectionType.WIRE_JOINT_JUMP_FORWARD
WJTF_FLEX = SectionType.WIRE_JOINT_JUMP_FORWARD_ON_FLEX


def treat_as_cutout(segments: Sequence[ToolingSegment], config: SynthesisConfig) -> bool:
    """Whether a closed contour needs wire joints on its web stretches.

    True only for contours lying entirely on the web whose Y span is at
    least twice ``min_cutout_length_threshold``.
    """
    lo, hi = profile_bounds(segments)
    if hi[1] - lo[1] < 2.0 * config.min_cutout_length_threshold:
        return False
    return all(seg.start_flange(config.point_tolerance) == Flange.WEB for seg in segments)


def initial_blocks(segments: Sequence[ToolingSegment], tol: float = 1e-6) -> List[Block]:
    """One block per maximal run of segments sharing a flange (or flex)."""
    blocks: List[Block] = []
    for i, seg in enumerate(segments):
        flange = segment_flange(seg, tol)
        if blocks and blocks[-1].flange == flange:
            blocks[-1].end_index = i
            continue
        stype = MFF if flange == Flange.FLEX else MF
        blocks.append(Block(stype, i, i, flange))
    return blocks


def insert_flex_wire_joints(
    segments: Sequence[ToolingSegment],
    blocks: Sequence[Block],
    config: SynthesisConfig,
) -> Tuple[List[ToolingSegment], List[Block]]:
    """Leave a flex-on wire joint on the flange side of each flange/flex boundary.

    Raises:
        UnsupportedTopologyError: if a flange stretch is too short to give up
            a wire joint.
    """
    segments = list(segments)
    blocks = list(blocks)
    tol = config.point_tolerance
    wire_joint = config.effective_wire_joint_length

    pos = 0
    while pos < len(blocks) - 1:
        cur, nxt = blocks[pos], blocks[pos + 1]
        if cur.section_type == MF and nxt.section_type == MFF:
            segments, remap, head_end = place_wire_joint_point(
                segments, cur.end_index, wire_joint, reverse=True, tol=tol,
            )
            blocks = remap.blocks(blocks)
            cur = blocks[pos]
            if head_end < cur.start_index:
                raise UnsupportedTopologyError(
                    f"Flange stretch {cur.start_index}..{cur.end_index} is shorter than a wire joint"
                )
            joint = cur.end_index
            blocks[pos] = Block(MF, cur.start_index, head_end, cur.flange)
            blocks.insert(pos + 1, Block(WJTF_FLEX, joint, joint, cur.flange))
            logger.debug("Flex wire joint before flex at segment %d", joint)
        elif cur.section_type == MFF and nxt.section_type == MF:
            segments, remap, joint = place_wire_joint_point(
                segments, cur.end_index, wire_joint, tol=tol,
            )
            blocks = remap.blocks(blocks)
            nxt = blocks[pos + 1]
            if joint > nxt.end_index:
                raise UnsupportedTopologyError(
                    f"Flange stretch {nxt.start_index}..{nxt.end_index} is shorter than a wire joint"
                )
            blocks.insert(pos + 1, Block(WJTF_FLEX, joint, joint, nxt.flange))
            if joint == nxt.end_index:
                del blocks[pos + 2]
            else:
                blocks[pos + 2] = Block(MF, joint + 1, nxt.end_index, nxt.flange)
            logger.debug("Flex wire joint after flex at segment %d", joint)
        else:
            pos += 1
            continue
        check_block_invariants(
            blocks, segments, wire_joint, config.wire_joint_length_tolerance, require_bracketing=False,
        )
        pos += 2
    return segments, blocks


def insert_web_wire_joints(
    segments: Sequence[ToolingSegment],
    blocks: Sequence[Block],
    config: SynthesisConfig,
) -> Tuple[List[ToolingSegment], List[Block]]:
    """Insert forward wire joints at fractions of every web machining block."""
    segments = list(segments)
    blocks = list(blocks)
    tol = config.point_tolerance
    wire_joint = config.effective_wire_joint_length

    cum = cumulative_lengths(segments)
    targets = []
    for block in blocks:
        if block.section_type != MF or block.flange != Flange.WEB:
            continue
        base = cum[block.start_index]
        span = cum[block.end_index + 1] - base
        targets.extend(base + f * span for f in config.cutout_wire_joint_fractions)

    for target in sorted(targets):
        index, offset = _segment_at_length(segments, target)
        point = segments[index].curve.point_at_length(offset)
        segments, remap, head_end = split_and_remap(segments, index, point, tol)
        blocks = remap.blocks(blocks)
        segments, remap, joint = place_wire_joint_point(segments, head_end, wire_joint, tol=tol)
        blocks = remap.blocks(blocks)
        head_end = remap(head_end)

        pos = next(
            p for p, b in enumerate(blocks)
            if b.section_type == MF and b.start_index <= joint <= b.end_index
        )
        block = blocks[pos]
        pieces = []
        if head_end >= block.start_index:
            pieces.append(Block(MF, block.start_index, head_end, block.flange))
        pieces.append(Block(WJTF, joint, joint, block.flange))
        if joint < block.end_index:
            pieces.append(Block(MF, joint + 1, block.end_index, block.flange))
        blocks[pos:pos + 1] = pieces
        check_block_invariants(
            blocks, segments, wire_joint, config.wire_joint_length_tolerance, require_bracketing=False,
        )
        logger.debug("Web wire joint at segment %d (arc length %.3f)", joint, target)
    return segments, blocks


def _segment_at_length(segments: Sequence[ToolingSegment], length: float) -> Tuple[int, float]:
    cum = cumulative_lengths(segments)
    for i in range(len(segments)):
        if length <= cum[i + 1]:
            return i, length - cum[i]
    return len(segments) - 1, segments[-1].length


def build_cutout_blocks(
    segments: Sequence[ToolingSegment],
    config: SynthesisConfig,
) -> Tuple[List[ToolingSegment], List[Block]]:
    """Forward block sequence for a rotated, continuous closed profile."""
    tol = config.point_tolerance
    blocks = initial_blocks(segments, tol)
    if blocks[0].section_type == MFF:
        raise UnsupportedTopologyError("Cut-out must start on a flange")
    segments, blocks = insert_flex_wire_joints(segments, blocks, config)
    if config.wire_joints_enabled and treat_as_cutout(segments, config):
        segments, blocks = insert_web_wire_joints(segments, blocks, config)
    check_block_invariants(blocks, segments, config.effective_wire_joint_length, config.wire_joint_length_tolerance)
    logger.info(
        "Cut-out: %d segments, %d blocks, length %.3f",
        len(segments), len(blocks), total_length(segments),
    )
    return segments, blocks
