"""Contracts shared by the notch and cut-out planning stages."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple

import numpy as np

from notch_sequencer.errors import ConfigurationError
from notch_sequencer.geometry import Flange


@dataclass(frozen=True)
class SynthesisConfig:
    """Tunable lengths and tolerances for segmentation and sequencing."""

    wire_joint_distance: float = 2.0          # 0 disables landmark wire joints
    approach_length: float = 5.0
    notch_approach_threshold: float = 200.0   # flange beyond a flex needed to relocate a 25%/75% landmark
    min_notch_length_threshold: float = 210.0
    min_cutout_length_threshold: float = 210.0
    flex_proximity_threshold: float = 10.0    # landmark this close to a flex counts as on it
    mid_landmark_fallback_fraction: float = 0.4
    edge_landmark_fallback_fractions: Tuple[float, float] = (0.125, 0.875)
    min_wire_joint_length: float = 2.0
    least_curve_length: float = 0.5
    wire_joint_length_tolerance: float = 0.1
    continuity_tolerance: float = 1e-3
    point_tolerance: float = 1e-6
    extreme_segment_split_length: float = 10.0
    extreme_segment_split_offset: float = 2.0
    cutout_wire_joint_fractions: Tuple[float, ...] = (0.25, 0.5, 0.75)

    @property
    def wire_joints_enabled(self) -> bool:
        return self.wire_joint_distance != 0.0

    @property
    def effective_wire_joint_length(self) -> float:
        if self.wire_joint_distance < self.least_curve_length:
            return self.min_wire_joint_length
        return self.wire_joint_distance

    @property
    def landmark_fractions(self) -> Tuple[float, ...]:
        if self.wire_joints_enabled:
            return (0.25, 0.5, 0.75)
        return (0.5,)

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "SynthesisConfig":
        """Build a config from a loaded JSON object, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {unknown}")
        values: Dict[str, object] = {}
        for key, value in data.items():
            if isinstance(value, list):
                value = tuple(float(v) for v in value)
            elif isinstance(value, (int, float)) and not isinstance(value, bool):
                value = float(value)
            else:
                raise ConfigurationError(f"Configuration value for {key!r} must be numeric")
            values[key] = value
        config = replace(cls(), **values)
        if config.wire_joint_distance < 0 or config.approach_length <= 0:
            raise ConfigurationError("Wire-joint distance must be >= 0 and approach length > 0")
        return config

    def to_dict(self) -> Dict[str, object]:
        out: Dict[str, object] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            out[f.name] = list(value) if isinstance(value, tuple) else value
        return out


class SectionType(Enum):
    """Physical maneuver a block stands for."""
    MACHINE_FORWARD = "MachineForward"
    MACHINE_REVERSE = "MachineReverse"
    MACHINE_FLEX_FORWARD = "MachineFlexForward"
    MACHINE_FLEX_REVERSE = "MachineFlexReverse"
    WIRE_JOINT_JUMP_FORWARD = "WireJointJumpForward"
    WIRE_JOINT_JUMP_REVERSE = "WireJointJumpReverse"
    WIRE_JOINT_JUMP_FORWARD_ON_FLEX = "WireJointJumpForwardOnFlex"
    WIRE_JOINT_JUMP_REVERSE_ON_FLEX = "WireJointJumpReverseOnFlex"
    APPROACH_MACHINING = "ApproachMachining"
    APPROACH_ON_RE_ENTRY = "ApproachOnReEntry"
    GAMBIT_PRE_APPROACH = "GambitPreApproach"
    GAMBIT_POST_APPROACH = "GambitPostApproach"
    MOVE_TO_MID_APPROACH = "MoveToMidApproach"

    @property
    def is_wire_joint(self) -> bool:
        return self in _WIRE_JOINT_TYPES

    @property
    def is_flex_machining(self) -> bool:
        return self in (SectionType.MACHINE_FLEX_FORWARD, SectionType.MACHINE_FLEX_REVERSE)

    @property
    def is_machining(self) -> bool:
        return self in _MACHINING_TYPES

    @property
    def is_forward(self) -> bool:
        return self in _FORWARD_TYPES

    @property
    def is_reverse(self) -> bool:
        return self in _REVERSE_TYPES

    @property
    def is_indexed(self) -> bool:
        """Whether the block references tooling-segment indices."""
        return self not in _UNINDEXED_TYPES


_WIRE_JOINT_TYPES = frozenset({
    SectionType.WIRE_JOINT_JUMP_FORWARD,
    SectionType.WIRE_JOINT_JUMP_REVERSE,
    SectionType.WIRE_JOINT_JUMP_FORWARD_ON_FLEX,
    SectionType.WIRE_JOINT_JUMP_REVERSE_ON_FLEX,
})
_MACHINING_TYPES = frozenset({
    SectionType.MACHINE_FORWARD,
    SectionType.MACHINE_REVERSE,
    SectionType.MACHINE_FLEX_FORWARD,
    SectionType.MACHINE_FLEX_REVERSE,
})
_FORWARD_TYPES = frozenset({
    SectionType.MACHINE_FORWARD,
    SectionType.MACHINE_FLEX_FORWARD,
    SectionType.WIRE_JOINT_JUMP_FORWARD,
    SectionType.WIRE_JOINT_JUMP_FORWARD_ON_FLEX,
})
_REVERSE_TYPES = frozenset({
    SectionType.MACHINE_REVERSE,
    SectionType.MACHINE_FLEX_REVERSE,
    SectionType.WIRE_JOINT_JUMP_REVERSE,
    SectionType.WIRE_JOINT_JUMP_REVERSE_ON_FLEX,
})
_UNINDEXED_TYPES = frozenset({
    SectionType.APPROACH_MACHINING,
    SectionType.APPROACH_ON_RE_ENTRY,
    SectionType.MOVE_TO_MID_APPROACH,
})


@dataclass
class Block:
    """A typed, contiguous sub-range of the tooling-segment list.

    Reverse blocks store ``start_index >= end_index``. Approach and
    move-to-mid blocks carry no indices.
    """

    section_type: SectionType
    start_index: Optional[int] = None
    end_index: Optional[int] = None
    flange: Optional[Flange] = None

    def indices(self) -> range:
        if self.start_index is None or self.end_index is None:
            return range(0)
        lo, hi = sorted((self.start_index, self.end_index))
        return range(lo, hi + 1)

    def to_dict(self) -> Dict[str, object]:
        return {
            "type": self.section_type.value,
            "start_index": self.start_index,
            "end_index": self.end_index,
            "flange": self.flange.value if self.flange is not None else None,
        }

    def __repr__(self) -> str:
        if self.start_index is None:
            return self.section_type.value
        return f"{self.section_type.value}({self.start_index},{self.end_index})"


@dataclass(frozen=True)
class FlexRange:
    """Inclusive index range of a contiguous flex-resident run."""
    start_index: int
    end_index: int

    def contains(self, index: int) -> bool:
        return self.start_index <= index <= self.end_index


@dataclass
class Landmark:
    """A fractional-length point on the profile.

    ``fraction`` is the fraction the point was finally computed at (0.125 or
    0.4 after relocation); ``nominal`` is the slot it fills (0.25, 0.5, 0.75).
    """

    nominal: float
    fraction: float
    point: np.ndarray        # (3,)
    segment_index: int
    relocated: bool = False

    def to_dict(self) -> Dict[str, object]:
        return {
            "nominal": self.nominal,
            "fraction": self.fraction,
            "point": [float(v) for v in self.point],
            "segment_index": self.segment_index,
            "relocated": self.relocated,
        }


@dataclass
class LandmarkRecord:
    """Landmarks grouped by the unique segment index they fall on."""
    segment_index: int
    points: List[np.ndarray] = field(default_factory=list)
    nominals: List[float] = field(default_factory=list)


class EventRole(Enum):
    """Role of an index in the sequence-synthesis event walk."""
    ZERO = "Zero"
    PRE_APPROACH = "PreApproach"
    APPROACH = "Approach"
    POST_APPROACH = "PostApproach"
    AT_25 = "At25"
    AT_50 = "At50"
    AT_75 = "At75"
    POST_25 = "Post25"
    POST_50 = "Post50"
    POST_75 = "Post75"
    FLEX1_BEFORE_START = "Flex1BeforeStart"
    FLEX1_START = "Flex1Start"
    FLEX1_END = "Flex1End"
    FLEX1_AFTER_END = "Flex1AfterEnd"
    FLEX2_BEFORE_START = "Flex2BeforeStart"
    FLEX2_START = "Flex2Start"
    FLEX2_END = "Flex2End"
    FLEX2_AFTER_END = "Flex2AfterEnd"
    MAX = "Max"


@dataclass
class FlexMarkers:
    """Segment indices bracketing one flex run after wire-joint splitting.

    ``before_start`` is the wire-joint segment ending at the flex start,
    ``start``/``end`` the first and last flex segments and ``after_end`` the
    wire-joint segment leaving the flex end.

    A wire joint longer than the segment before the flex spans several
    segments; ``wire_joint_head`` is then the last segment still machined
    ahead of it. Defaults to ``before_start - 1``.
    """
    before_start: int
    start: int
    end: int
    after_end: int
    wire_joint_head: Optional[int] = None

    @property
    def head_end(self) -> int:
        if self.wire_joint_head is None:
            return self.before_start - 1
        return self.wire_joint_head


@dataclass
class NotchMarkers:
    """Every segment index the synthesizer walks over.

    Each index names the segment whose END point is the marker point, except
    ``FlexMarkers.start`` which names the first flex segment.
    """

    pre_approach: int
    approach: int
    post_approach: int
    segment_count: int
    at: Dict[float, int] = field(default_factory=dict)     # nominal -> index
    post: Dict[float, int] = field(default_factory=dict)   # nominal -> index
    flexes: List[FlexMarkers] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "pre_approach": self.pre_approach,
            "approach": self.approach,
            "post_approach": self.post_approach,
            "segment_count": self.segment_count,
            "at": {str(k): v for k, v in sorted(self.at.items())},
            "post": {str(k): v for k, v in sorted(self.post.items())},
            "flexes": [vars(f).copy() for f in self.flexes],
        }
