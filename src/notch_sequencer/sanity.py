"""
Invariant checks over tooling segments and block sequences.

Each check raises on the first broken rule. They are cheap enough to run
after every structural edit, and the planners do exactly that.
"""
from typing import Dict, Iterable, List, Sequence, Set

from notch_sequencer.contracts import Block, SectionType
from notch_sequencer.errors import DiscontinuityError, SequenceInvariantViolation
from notch_sequencer.geometry import ToolingSegment, points_close

_GAMBIT_TYPES = (SectionType.GAMBIT_PRE_APPROACH, SectionType.GAMBIT_POST_APPROACH)


def check_continuity(segments: Sequence[ToolingSegment], tol: float) -> None:
    """Raise DiscontinuityError on the first gap wider than ``tol``."""
    for i in range(len(segments) - 1):
        if not points_close(segments[i].end, segments[i + 1].start, tol):
            gap = float(((segments[i].end - segments[i + 1].start) ** 2).sum() ** 0.5)
            raise DiscontinuityError(i, gap)


def _check_wire_joint_length(
    block_pos: int,
    block: Block,
    segments: Sequence[ToolingSegment],
    wire_joint_length: float,
    tol: float,
) -> range:
    """Check one wire-joint block and return the segment span it leaves uncut."""
    index = block.start_index
    length = segments[index].length
    if abs(length - wire_joint_length) <= tol:
        return range(index, index + 1)
    if length > wire_joint_length:
        raise SequenceInvariantViolation(
            "wire-joint-length", (block_pos, index),
            f"segment length {length:.4f} exceeds wire-joint length {wire_joint_length:.4f}",
        )
    # Wire joints that straddle a segment boundary are reconciled backwards.
    cumulative = length
    k = index - 1
    while k >= 0 and cumulative < wire_joint_length - tol:
        cumulative += segments[k].length
        k -= 1
    if abs(cumulative - wire_joint_length) > tol:
        raise SequenceInvariantViolation(
            "wire-joint-length", (block_pos, index),
            f"cumulative length {cumulative:.4f} != wire-joint length {wire_joint_length:.4f}",
        )
    return range(k + 1, index + 1)


def _check_wire_joints_uncut(blocks: Sequence[Block], spans: Dict[int, range]) -> None:
    for pos, block in enumerate(blocks):
        if not block.section_type.is_machining:
            continue
        cut = block.indices()
        if not cut:
            continue
        for joint_pos, span in spans.items():
            if cut.start <= span[-1] and span[0] <= cut[-1]:
                raise SequenceInvariantViolation(
                    "wire-joint-machined", (pos, joint_pos),
                    f"{block!r} cuts into the wire joint at {span[0]}..{span[-1]}",
                )


def _runs(blocks: Sequence[Block]) -> List[List[int]]:
    """Positions of maximal stretches of directional blocks."""
    runs: List[List[int]] = []
    current: List[int] = []
    for pos, block in enumerate(blocks):
        if block.section_type.is_forward or block.section_type.is_reverse:
            current.append(pos)
        else:
            if current:
                runs.append(current)
            current = []
    if current:
        runs.append(current)
    return runs


def check_block_invariants(
    blocks: Sequence[Block],
    segments: Sequence[ToolingSegment],
    wire_joint_length: float,
    tol: float = 0.1,
    require_bracketing: bool = True,
) -> None:
    """Validate indices, directions, wire-joint lengths, order and flex bracketing.

    Args:
        blocks: The block sequence as emitted.
        segments: The tooling segments the blocks index into.
        wire_joint_length: Expected length of every wire-joint segment.
        tol: Wire-joint length tolerance.
        require_bracketing: Skip the flex-bracketing rule when False, for
            sequences still being assembled.

    Raises:
        SequenceInvariantViolation: naming the rule and the offending positions.
    """
    count = len(segments)
    joint_spans: Dict[int, range] = {}
    for pos, block in enumerate(blocks):
        stype = block.section_type
        if not stype.is_indexed:
            if block.start_index is not None or block.end_index is not None:
                raise SequenceInvariantViolation(
                    "block-range", (pos,), f"{stype.value} must not carry indices",
                )
            continue
        if block.start_index is None or block.end_index is None:
            raise SequenceInvariantViolation("block-range", (pos,), f"{stype.value} needs indices")
        for idx in (block.start_index, block.end_index):
            if not 0 <= idx < count:
                raise SequenceInvariantViolation(
                    "block-range", (pos, idx), f"index outside 0..{count - 1}",
                )
        if stype.is_forward and block.start_index > block.end_index:
            raise SequenceInvariantViolation(
                "direction", (pos, block.start_index, block.end_index),
                "forward block runs backwards",
            )
        if stype.is_reverse and block.start_index < block.end_index:
            raise SequenceInvariantViolation(
                "direction", (pos, block.start_index, block.end_index),
                "reverse block runs forwards",
            )
        if stype.is_wire_joint or stype in _GAMBIT_TYPES:
            if block.start_index != block.end_index:
                raise SequenceInvariantViolation(
                    "wire-joint-single-index", (pos, block.start_index, block.end_index),
                )
            span = _check_wire_joint_length(pos, block, segments, wire_joint_length, tol)
            if stype.is_wire_joint:
                joint_spans[pos] = span
    _check_wire_joints_uncut(blocks, joint_spans)

    for run in _runs(blocks):
        for a, b in zip(run, run[1:]):
            first, second = blocks[a], blocks[b]
            if first.section_type.is_forward != second.section_type.is_forward:
                raise SequenceInvariantViolation(
                    "direction", (a, b), "forward and reverse blocks are interleaved",
                )
            if first.section_type.is_forward:
                ok = first.end_index < second.start_index
            else:
                ok = first.end_index > second.start_index
            if not ok:
                rule = "block-overlap" if second.start_index in first.indices() else "block-order"
                raise SequenceInvariantViolation(
                    rule, (a, b),
                    f"{first!r} does not strictly precede {second!r}",
                )
        for pos in run:
            if not require_bracketing or not blocks[pos].section_type.is_flex_machining:
                continue
            before = blocks[pos - 1].section_type if pos - 1 in run else None
            after = blocks[pos + 1].section_type if pos + 1 in run else None
            if before is not None and not _is_flex_wire_joint(before):
                raise SequenceInvariantViolation("flex-bracketing", (pos - 1, pos))
            if after is not None and not _is_flex_wire_joint(after):
                raise SequenceInvariantViolation("flex-bracketing", (pos, pos + 1))


def _is_flex_wire_joint(stype: SectionType) -> bool:
    return stype in (
        SectionType.WIRE_JOINT_JUMP_FORWARD_ON_FLEX,
        SectionType.WIRE_JOINT_JUMP_REVERSE_ON_FLEX,
    )


def covered_indices(blocks: Iterable[Block]) -> Set[int]:
    """Union of all indexed block ranges."""
    covered: Set[int] = set()
    for block in blocks:
        covered.update(block.indices())
    return covered


def emitted_length(blocks: Iterable[Block], segments: Sequence[ToolingSegment]) -> float:
    """Sum of segment lengths referenced by every indexed block."""
    return float(sum(segments[i].length for block in blocks for i in block.indices()))
