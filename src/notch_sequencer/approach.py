"""
Approach and gambit maneuver geometry for notch entry.

A notch away from the part edge cannot be cut starting on the profile: the
scrap is still fully attached. Entry happens from the nearest part boundary
on the approach point's flange, through two inset points:

    flange_end -- n_mid1 -- approach point        (outward line)
                   n_mid2 = n_mid1 stepped back toward the profile
    n1 / n2      = n_mid1 / n_mid2 offset sideways, away from the boundary

The boundary query runs in the flange plane with shapely.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

import numpy as np
from shapely.geometry import Point, box
from shapely.ops import nearest_points

from notch_sequencer.contracts import SynthesisConfig
from notch_sequencer.errors import UnsupportedTopologyError
from notch_sequencer.geometry import (
    Bounds,
    Flange,
    ToolingSegment,
    X_AXIS,
    Y_AXIS,
    classify_normal,
    total_length,
)

logger = logging.getLogger(__name__)

# In-plane coordinate axes for each flange.
_PLANE_AXES = {
    Flange.WEB: (0, 1),     # XY
    Flange.TOP: (0, 2),     # XZ
    Flange.BOTTOM: (0, 2),
}


@dataclass
class ApproachGeometry:
    """Entry points of the approach maneuver for one notch."""
    flange: Flange
    approach_point: np.ndarray   # (3,) end of the approach segment
    flange_end: np.ndarray       # (3,) nearest part boundary point
    outward: np.ndarray          # (3,) approach_point -> flange_end
    n_mid1: np.ndarray
    n_mid2: np.ndarray
    n1: np.ndarray
    n2: np.ndarray

    @property
    def outward_direction(self) -> np.ndarray:
        return self.outward / np.linalg.norm(self.outward)

    def stroke_length(self) -> float:
        """Cut length of the entry strokes: n_mid1 to the boundary, and twice n_mid2 to the profile."""
        return (
            float(np.linalg.norm(self.n_mid1 - (self.approach_point + self.outward)))
            + 2.0 * float(np.linalg.norm(self.n_mid2 - self.approach_point))
        )

    def to_dict(self) -> Dict[str, object]:
        out: Dict[str, object] = {"flange": self.flange.value}
        for name in ("approach_point", "flange_end", "outward", "n_mid1", "n_mid2", "n1", "n2"):
            out[name] = [float(v) for v in getattr(self, name)]
        return out


def nearest_boundary_point(point: np.ndarray, flange: Flange, bounds: Bounds) -> np.ndarray:
    """Closest point on the part's bounding rectangle in the flange plane."""
    i, j = _PLANE_AXES[flange]
    lo, hi = bounds.min_corner, bounds.max_corner
    outline = box(lo[i], lo[j], hi[i], hi[j]).exterior
    on_boundary, _ = nearest_points(outline, Point(point[i], point[j]))
    result = point.astype(float).copy()
    result[i] = on_boundary.x
    result[j] = on_boundary.y
    return result


def _side_offset(mid: np.ndarray, axis: np.ndarray, gap: float, outward_dir: np.ndarray) -> np.ndarray:
    candidate = mid + axis * gap
    if float((candidate - mid) @ outward_dir) < 0.0:
        candidate = mid - axis * gap
    return candidate


def compute_approach(
    segments: Sequence[ToolingSegment],
    approach_index: int,
    bounds: Bounds,
    config: SynthesisConfig,
) -> ApproachGeometry:
    """Approach geometry anchored at the end of ``segments[approach_index]``.

    Raises:
        UnsupportedTopologyError: if the approach point is on a flex or
            already on the part boundary.
    """
    seg = segments[approach_index]
    flange = classify_normal(seg.end_normal, config.point_tolerance)
    if flange == Flange.FLEX:
        raise UnsupportedTopologyError(f"Approach point at segment {approach_index} lies on a flex")

    approach_point = seg.end.astype(float)
    flange_end = nearest_boundary_point(approach_point, flange, bounds)
    outward = flange_end - approach_point
    distance = float(np.linalg.norm(outward))
    if distance < config.point_tolerance:
        raise UnsupportedTopologyError("Approach point lies on the part boundary; edge notches need no approach")
    outward_dir = outward / distance

    gap = config.effective_wire_joint_length
    n_mid1 = approach_point + outward * 0.5
    n_mid2 = n_mid1 - outward_dir * gap
    side_axis = Y_AXIS if flange == Flange.WEB else X_AXIS
    n1 = _side_offset(n_mid1, side_axis, gap, outward_dir)
    n2 = _side_offset(n_mid2, side_axis, gap, outward_dir)
    logger.debug(
        "Approach on %s flange: boundary %.3f away at %s",
        flange.value, distance, np.round(flange_end, 3).tolist(),
    )
    return ApproachGeometry(flange, approach_point, flange_end, outward, n_mid1, n_mid2, n1, n2)


def is_forward_first(segments: Sequence[ToolingSegment], bounds: Bounds) -> bool:
    """Whether the first entry machines the notch forward.

    Forward goes first when the profile runs back toward the part edge its
    start point is nearer to.
    """
    start_x = float(segments[0].start[0])
    end_x = float(segments[-1].end[0])
    if start_x - bounds.xmin < bounds.xmax - start_x:
        return end_x < start_x
    return end_x > start_x


def total_tooling_length(
    segments: Sequence[ToolingSegment],
    flex_count: int,
    approach: Optional[ApproachGeometry],
    config: SynthesisConfig,
) -> float:
    """Estimated cut length of a notch including approach and gambit strokes.

    Wire-joint gaps are deducted; each flex run and each landmark wire joint
    adds an approach stroke on re-entry.
    """
    profile_length = total_length(segments)
    if approach is None:
        return profile_length

    wire_joint = config.effective_wire_joint_length
    length = 2.0 * wire_joint
    approach_count = 2
    wire_joint_count = 0
    for _ in range(flex_count):
        approach_count += 2
        if config.wire_joint_distance > config.least_curve_length:
            wire_joint_count -= 2
    if config.wire_joints_enabled:
        approach_count += 2
        wire_joint_count -= 2

    length += approach_count * config.approach_length
    length += wire_joint_count * config.wire_joint_distance
    length += approach.stroke_length()
    return length + profile_length
