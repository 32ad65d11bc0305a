"""
Fractional-length landmarks (25%, 50%, 75% of profile length).

Wire joints hang off these landmarks, and a wire joint cannot sit on the bend
itself. Any landmark that lands on a flex run, or within
``flex_proximity_threshold`` of one, is moved or dropped:

- 25% / 75%: recomputed at 12.5% / 87.5% when the flange between the flex
  and that end of the profile is longer than ``notch_approach_threshold``;
  dropped otherwise, or when the recomputed point is still on a flex.
- 50%: recomputed at 40%. The 50% landmark anchors the approach maneuver, so
  a relocated point that is still on a flex is an error.
"""
import logging
from typing import Dict, List, Optional, Sequence

from notch_sequencer.contracts import FlexRange, Landmark, LandmarkRecord, SynthesisConfig
from notch_sequencer.errors import LandmarkNotFoundError
from notch_sequencer.geometry import (
    ToolingSegment,
    length_between,
    length_to_end,
    length_to_start,
    point_at_fraction,
)

logger = logging.getLogger(__name__)

MID = 0.5


def flex_near_landmark(
    segments: Sequence[ToolingSegment],
    flex_ranges: Sequence[FlexRange],
    landmark: Landmark,
    threshold: float,
    tol: float = 1e-6,
) -> Optional[FlexRange]:
    """The flex run a landmark lies on or within ``threshold`` of, if any."""
    for flex in flex_ranges:
        if flex.contains(landmark.segment_index):
            return flex
    for flex in flex_ranges:
        flex_start = segments[flex.start_index].start
        flex_end = segments[flex.end_index].end
        if (length_between(segments, landmark.point, flex_start, tol) < threshold
                or length_between(segments, landmark.point, flex_end, tol) < threshold):
            return flex
    return None


def _landmark_at(segments, nominal: float, fraction: float, config: SynthesisConfig) -> Landmark:
    index, point = point_at_fraction(segments, fraction, config.least_curve_length)
    return Landmark(
        nominal=nominal,
        fraction=fraction,
        point=point,
        segment_index=index,
        relocated=fraction != nominal,
    )


def _edge_flange_length(
    segments: Sequence[ToolingSegment],
    flex: FlexRange,
    nominal: float,
    tol: float,
) -> float:
    """Flange length between the flex run and the profile end nearest ``nominal``."""
    if nominal < MID:
        return length_to_start(segments, segments[flex.start_index].start, tol)
    return length_to_end(segments, segments[flex.end_index].end, tol)


def compute_landmarks(
    segments: Sequence[ToolingSegment],
    flex_ranges: Sequence[FlexRange],
    config: SynthesisConfig,
    percents: Optional[Sequence[float]] = None,
) -> List[Optional[Landmark]]:
    """Landmarks for each requested percent, relocated or dropped off flex.

    Args:
        segments: Continuous tooling segments.
        flex_ranges: Flex runs of ``segments``.
        config: Thresholds and fallback fractions.
        percents: Nominal fractions; defaults to ``config.landmark_fractions``.

    Returns:
        One entry per percent: a Landmark, or None when it was dropped.

    Raises:
        LandmarkNotFoundError: if the 50% landmark cannot be kept off a flex.
    """
    if percents is None:
        percents = config.landmark_fractions
    tol = config.point_tolerance
    threshold = config.flex_proximity_threshold
    low_fallback, high_fallback = config.edge_landmark_fallback_fractions

    landmarks: List[Optional[Landmark]] = []
    for nominal in percents:
        landmark = _landmark_at(segments, nominal, nominal, config)
        flex = flex_near_landmark(segments, flex_ranges, landmark, threshold, tol)
        if flex is None:
            landmarks.append(landmark)
            continue

        if nominal == MID:
            landmark = _landmark_at(segments, nominal, config.mid_landmark_fallback_fraction, config)
            if flex_near_landmark(segments, flex_ranges, landmark, threshold, tol) is not None:
                raise LandmarkNotFoundError(
                    "Mid-profile landmark lies on a flex at both "
                    f"{nominal:.0%} and {landmark.fraction:.0%} of length",
                    nominal,
                )
            logger.info("Moved %.0f%% landmark to %.0f%% off the flex", nominal * 100, landmark.fraction * 100)
            landmarks.append(landmark)
            continue

        edge_length = _edge_flange_length(segments, flex, nominal, tol)
        if edge_length <= config.notch_approach_threshold:
            logger.warning(
                "Dropped %.0f%% landmark: %.3f of flange beyond the flex is within %.3f",
                nominal * 100, edge_length, config.notch_approach_threshold,
            )
            landmarks.append(None)
            continue

        fallback = low_fallback if nominal < MID else high_fallback
        landmark = _landmark_at(segments, nominal, fallback, config)
        if flex_near_landmark(segments, flex_ranges, landmark, threshold, tol) is not None:
            logger.warning(
                "Dropped %.0f%% landmark: %.1f%% fallback is also on a flex",
                nominal * 100, fallback * 100,
            )
            landmarks.append(None)
            continue
        logger.info("Moved %.0f%% landmark to %.1f%% off the flex", nominal * 100, fallback * 100)
        landmarks.append(landmark)
    return landmarks


def group_by_segment(landmarks: Sequence[Optional[Landmark]]) -> List[LandmarkRecord]:
    """Merge landmarks sharing a segment index into one record per index."""
    records: Dict[int, LandmarkRecord] = {}
    for landmark in landmarks:
        if landmark is None:
            continue
        record = records.setdefault(landmark.segment_index, LandmarkRecord(landmark.segment_index))
        record.points.append(landmark.point)
        record.nominals.append(landmark.nominal)
    return [records[k] for k in sorted(records)]
