"""
Block-sequence synthesis for notches.

The synthesizer turns the marker indices of a split profile into an ordered
block list. Markers become ``(index, role)`` events; a forward walk visits
them in ascending order from the pre-approach point to the profile end, a
reverse walk in descending order from the post-approach point to index 0.
Each walk is a small state machine: a role may only follow the roles listed
for it, and every transition emits zero, one or two blocks.

Nothing before the approach point is sequenced by the forward walk, and
nothing after it by the reverse walk. The profile is always entered through
the approach maneuver, and the two walks meet there.
"""
import logging
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple

from notch_sequencer.contracts import Block, EventRole, FlexMarkers, NotchMarkers, SectionType
from notch_sequencer.errors import SequenceInvariantViolation
from notch_sequencer.flex import segment_flange
from notch_sequencer.geometry import ToolingSegment

logger = logging.getLogger(__name__)


class Event(NamedTuple):
    index: int
    role: EventRole


AT_ROLES: Dict[float, EventRole] = {
    0.25: EventRole.AT_25,
    0.5: EventRole.AT_50,
    0.75: EventRole.AT_75,
}
POST_ROLES: Dict[float, EventRole] = {
    0.25: EventRole.POST_25,
    0.5: EventRole.POST_50,
    0.75: EventRole.POST_75,
}
FLEX_ROLES: Tuple[Tuple[EventRole, EventRole, EventRole, EventRole], ...] = (
    (EventRole.FLEX1_BEFORE_START, EventRole.FLEX1_START,
     EventRole.FLEX1_END, EventRole.FLEX1_AFTER_END),
    (EventRole.FLEX2_BEFORE_START, EventRole.FLEX2_START,
     EventRole.FLEX2_END, EventRole.FLEX2_AFTER_END),
)

_BEFORE_START = frozenset(group[0] for group in FLEX_ROLES)
_START = frozenset(group[1] for group in FLEX_ROLES)
_END = frozenset(group[2] for group in FLEX_ROLES)
_AFTER_END = frozenset(group[3] for group in FLEX_ROLES)
_AT = frozenset(AT_ROLES.values())
_POST = frozenset(POST_ROLES.values())

# Tie order for events sharing an index (only legal at the profile ends).
_RANK = {
    EventRole.ZERO: 0,
    EventRole.PRE_APPROACH: 1,
    EventRole.APPROACH: 2,
    EventRole.POST_APPROACH: 3,
    **{role: 4 for role in _AT},
    **{role: 5 for role in _POST},
    **{role: 6 for role in _BEFORE_START},
    **{role: 7 for role in _START},
    **{role: 8 for role in _END},
    **{role: 9 for role in _AFTER_END},
    EventRole.MAX: 10,
}

# Pairs that may share an index: the 50% landmark is the approach landmark,
# and a flex run may be a single segment.
_COINCIDENT = (
    frozenset({EventRole.APPROACH, EventRole.AT_50}),
    frozenset({EventRole.POST_APPROACH, EventRole.POST_50}),
    *(frozenset({group[1], group[2]}) for group in FLEX_ROLES),
)


def _flex_partner(role: EventRole, offset: int) -> EventRole:
    for group in FLEX_ROLES:
        if role in group:
            return group[group.index(role) + offset]
    raise ValueError(f"{role} is not a flex role")


def _flex_markers(markers: NotchMarkers, role: EventRole) -> FlexMarkers:
    for flex, group in zip(markers.flexes, FLEX_ROLES):
        if role in group:
            return flex
    raise ValueError(f"{role} has no flex run")


def build_events(markers: NotchMarkers) -> List[Event]:
    """Unsorted events for every marker of a notch."""
    events = [
        Event(0, EventRole.ZERO),
        Event(markers.pre_approach, EventRole.PRE_APPROACH),
        Event(markers.approach, EventRole.APPROACH),
        Event(markers.post_approach, EventRole.POST_APPROACH),
        Event(markers.segment_count - 1, EventRole.MAX),
    ]
    for nominal, index in markers.at.items():
        events.append(Event(index, AT_ROLES[nominal]))
    for nominal, index in markers.post.items():
        events.append(Event(index, POST_ROLES[nominal]))
    if len(markers.flexes) > len(FLEX_ROLES):
        raise SequenceInvariantViolation(
            "event-order", (), f"{len(markers.flexes)} flex runs; at most {len(FLEX_ROLES)} supported",
        )
    for flex, roles in zip(markers.flexes, FLEX_ROLES):
        before, start, end, after = roles
        events.extend([
            Event(flex.before_start, before),
            Event(flex.start, start),
            Event(flex.end, end),
            Event(flex.after_end, after),
        ])
    return events


def sort_events(events: Sequence[Event], segment_count: int, reverse: bool = False) -> List[Event]:
    """Order events for a walk and reject two events resolving to one index.

    Index 0 and the last index are exempt: the profile ends naturally carry
    a boundary event alongside Zero or Max.
    """
    if reverse:
        ordered = sorted(events, key=lambda e: (-e.index, -_RANK[e.role]))
    else:
        ordered = sorted(events, key=lambda e: (e.index, _RANK[e.role]))
    for a, b in zip(ordered, ordered[1:]):
        if a.index != b.index or a.index in (0, segment_count - 1):
            continue
        if frozenset({a.role, b.role}) in _COINCIDENT:
            continue
        raise SequenceInvariantViolation(
            "duplicate-index", (a.index,), f"{a.role.value} and {b.role.value} share an index",
        )
    return ordered


def _require(role: EventRole, prev_role: Optional[EventRole], allowed, index: int) -> None:
    if prev_role not in allowed:
        prev_name = prev_role.value if prev_role is not None else "nothing"
        raise SequenceInvariantViolation(
            "event-order", (index,), f"{role.value} cannot follow {prev_name}",
        )


def synthesize_forward(markers: NotchMarkers) -> List[Block]:
    """Forward run from just past the pre-approach point to the profile end.

    Raises:
        SequenceInvariantViolation: on an illegal role sequence or duplicate index.
    """
    count = markers.segment_count
    events = sort_events(build_events(markers), count)
    blocks: List[Block] = []
    started = False
    closed = False
    prev = -1
    prev_role: Optional[EventRole] = None

    for index, role in events:
        if closed:
            raise SequenceInvariantViolation("max-repeated", (index,), f"{role.value} after Max")
        if not started:
            if role == EventRole.PRE_APPROACH:
                started = True
                prev, prev_role = index, role
            continue
        if role in (EventRole.ZERO, EventRole.APPROACH, EventRole.POST_APPROACH):
            continue

        if role in _BEFORE_START:
            _require(role, prev_role, (EventRole.PRE_APPROACH, *_AT, *_POST, *_AFTER_END), index)
            # Segments between the head and the flex belong to the wire joint.
            head = _flex_markers(markers, role).head_end
            if prev + 1 <= head:
                blocks.append(Block(SectionType.MACHINE_FORWARD, prev + 1, head))
            blocks.append(Block(SectionType.WIRE_JOINT_JUMP_FORWARD_ON_FLEX, index, index))
        elif role in _START:
            _require(role, prev_role, (_flex_partner(role, -1),), index)
        elif role in _END:
            _require(role, prev_role, (_flex_partner(role, -1),), index)
            blocks.append(Block(SectionType.MACHINE_FLEX_FORWARD, prev, index))
        elif role in _AFTER_END:
            _require(role, prev_role, (_flex_partner(role, -1),), index)
            blocks.append(Block(SectionType.WIRE_JOINT_JUMP_FORWARD_ON_FLEX, index, index))
        elif role in _AT:
            if index == markers.approach:
                continue
            _require(role, prev_role, (EventRole.PRE_APPROACH, *_POST, *_AFTER_END), index)
            if prev + 1 <= index:
                blocks.append(Block(SectionType.MACHINE_FORWARD, prev + 1, index))
        elif role in _POST:
            if index == markers.post_approach:
                continue
            _require(role, prev_role, tuple(_AT), index)
            blocks.append(Block(SectionType.WIRE_JOINT_JUMP_FORWARD, index, index))
        elif role == EventRole.MAX:
            if prev_role in _BEFORE_START or prev_role in _START or prev_role in _END:
                raise SequenceInvariantViolation("event-order", (index,), "profile ends inside a flex run")
            if prev + 1 <= count - 1:
                blocks.append(Block(SectionType.MACHINE_FORWARD, prev + 1, count - 1))
            closed = True
            continue
        prev, prev_role = index, role
        logger.debug("forward %s at %d -> %d block(s)", role.value, index, len(blocks))
    return blocks


def synthesize_reverse(markers: NotchMarkers) -> List[Block]:
    """Reverse run from the post-approach segment down to index 0.

    Mirror of :func:`synthesize_forward`: events are visited in descending
    order and a flex run is entered through its AfterEnd marker.
    """
    count = markers.segment_count
    events = sort_events(build_events(markers), count, reverse=True)
    blocks: List[Block] = []
    started = False
    closed = False
    prev = count
    prev_role: Optional[EventRole] = None

    def next_start() -> int:
        if prev_role == EventRole.POST_APPROACH or prev_role in _AT:
            return prev
        if prev_role in _BEFORE_START:
            return _flex_markers(markers, prev_role).head_end
        return prev - 1

    for index, role in events:
        if closed:
            raise SequenceInvariantViolation("max-repeated", (index,), f"{role.value} after Zero")
        if not started:
            if role == EventRole.POST_APPROACH:
                started = True
                prev, prev_role = index, role
            continue
        if role in (EventRole.PRE_APPROACH, EventRole.APPROACH, EventRole.MAX):
            continue

        if role in _AFTER_END:
            _require(role, prev_role, (EventRole.POST_APPROACH, *_AT, *_BEFORE_START), index)
            start = next_start()
            if start >= index + 1:
                blocks.append(Block(SectionType.MACHINE_REVERSE, start, index + 1))
            blocks.append(Block(SectionType.WIRE_JOINT_JUMP_REVERSE_ON_FLEX, index, index))
        elif role in _END:
            _require(role, prev_role, (_flex_partner(role, 1),), index)
        elif role in _START:
            _require(role, prev_role, (_flex_partner(role, 1),), index)
            blocks.append(Block(SectionType.MACHINE_FLEX_REVERSE, prev, index))
        elif role in _BEFORE_START:
            _require(role, prev_role, (_flex_partner(role, 1),), index)
            blocks.append(Block(SectionType.WIRE_JOINT_JUMP_REVERSE_ON_FLEX, index, index))
        elif role in _POST:
            if index == markers.post_approach:
                continue
            _require(role, prev_role, (EventRole.POST_APPROACH, *_AT, *_BEFORE_START), index)
            start = next_start()
            if start >= index + 1:
                blocks.append(Block(SectionType.MACHINE_REVERSE, start, index + 1))
            blocks.append(Block(SectionType.WIRE_JOINT_JUMP_REVERSE, index, index))
        elif role in _AT:
            if index == markers.approach:
                continue
            _require(role, prev_role, tuple(_POST), index)
        elif role == EventRole.ZERO:
            if prev_role in _AFTER_END or prev_role in _END or prev_role in _START:
                raise SequenceInvariantViolation("event-order", (index,), "profile starts inside a flex run")
            start = next_start()
            if start >= 0:
                blocks.append(Block(SectionType.MACHINE_REVERSE, start, 0))
            closed = True
            continue
        prev, prev_role = index, role
        logger.debug("reverse %s at %d -> %d block(s)", role.value, index, len(blocks))
    return blocks


def tag_flanges(
    blocks: Sequence[Block],
    segments: Sequence[ToolingSegment],
    tol: float = 1e-6,
) -> List[Block]:
    """Tag each indexed block with the flange of its first segment."""
    tagged = []
    for block in blocks:
        if block.start_index is None:
            tagged.append(block)
            continue
        flange = segment_flange(segments[block.start_index], tol)
        tagged.append(Block(block.section_type, block.start_index, block.end_index, flange))
    return tagged


def compose_notch_blocks(markers: NotchMarkers, forward_first: bool = True) -> List[Block]:
    """Full notch sequence: approach, gambit, both runs and the re-entry between them."""
    forward = synthesize_forward(markers)
    reverse = synthesize_reverse(markers)
    gambit_pre = Block(SectionType.GAMBIT_PRE_APPROACH, markers.approach, markers.approach)
    gambit_post = Block(SectionType.GAMBIT_POST_APPROACH, markers.post_approach, markers.post_approach)
    if forward_first:
        first, first_run, second, second_run = gambit_pre, forward, gambit_post, reverse
    else:
        first, first_run, second, second_run = gambit_post, reverse, gambit_pre, forward

    blocks = [Block(SectionType.APPROACH_MACHINING), first]
    blocks.extend(first_run)
    blocks.append(Block(SectionType.MOVE_TO_MID_APPROACH))
    blocks.append(Block(SectionType.APPROACH_ON_RE_ENTRY))
    blocks.append(second)
    blocks.extend(second_run)
    logger.info(
        "Composed %d blocks (%d forward, %d reverse, %s first)",
        len(blocks), len(forward), len(reverse), "forward" if forward_first else "reverse",
    )
    return blocks
