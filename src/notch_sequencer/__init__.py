"""Public API for notch and cut-out profile sequencing."""

from notch_sequencer.audit import DecisionLog
from notch_sequencer.contracts import Block, SectionType, SynthesisConfig
from notch_sequencer.errors import (
    ConfigurationError,
    DiscontinuityError,
    LandmarkNotFoundError,
    SequenceInvariantViolation,
    SequencerError,
    UnsupportedTopologyError,
)
from notch_sequencer.pipeline import ProfilePlan, plan_cutout, plan_notch, plan_profile

__all__ = [
    "Block",
    "ConfigurationError",
    "DecisionLog",
    "DiscontinuityError",
    "LandmarkNotFoundError",
    "ProfilePlan",
    "SectionType",
    "SequenceInvariantViolation",
    "SequencerError",
    "SynthesisConfig",
    "UnsupportedTopologyError",
    "plan_cutout",
    "plan_notch",
    "plan_profile",
]
