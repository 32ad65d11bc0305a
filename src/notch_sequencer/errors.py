"""Error taxonomy for profile segmentation and sequence synthesis.

Every error is fatal to the profile being processed. The package never
catches its own errors; the caller decides whether to skip the feature or
abort the run.
"""
from typing import Optional, Sequence, Tuple


class SequencerError(Exception):
    """Base exception for notch/cut-out planning failures."""
    pass


class ConfigurationError(SequencerError):
    """Configuration or profile input is malformed."""
    pass


class DiscontinuityError(SequencerError):
    """Unrepairable gap between two consecutive tooling segments."""

    def __init__(self, index: int, gap: float, message: Optional[str] = None):
        self.index = index
        self.gap = gap
        super().__init__(
            message
            or f"Gap of {gap:.6f} between segments {index} and {index + 1}"
        )


class SequenceInvariantViolation(SequencerError):
    """A block ordering, index, wire-joint length or direction rule broke.

    Attributes:
        rule: Identifier of the broken rule (e.g. ``"block-order"``).
        indices: Offending block or segment indices.
    """

    def __init__(self, rule: str, indices: Sequence[int] = (), message: str = ""):
        self.rule = rule
        self.indices: Tuple[int, ...] = tuple(indices)
        detail = f" at {list(self.indices)}" if self.indices else ""
        super().__init__(f"[{rule}]{detail} {message}".rstrip())


class LandmarkNotFoundError(SequencerError):
    """A required fractional-length point could not be located."""

    def __init__(self, message: str, fraction: Optional[float] = None):
        self.fraction = fraction
        super().__init__(message)


class UnsupportedTopologyError(SequencerError):
    """Profile shape the synthesizer cannot sequence."""
    pass
