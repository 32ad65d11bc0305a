"""
3-D curve primitives and profile-level length queries.

Lines and circular arcs carry the tooling path. A ToolingSegment pairs a
curve with the outward surface normals at its start and end. All arc-length
walks used by landmark and wire-joint placement live here so the rest of the
package never does length arithmetic on raw points.
"""
from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence, Tuple, Union

import numpy as np

from notch_sequencer.errors import LandmarkNotFoundError, UnsupportedTopologyError

X_AXIS = np.array([1.0, 0.0, 0.0])
Y_AXIS = np.array([0.0, 1.0, 0.0])
Z_AXIS = np.array([0.0, 0.0, 1.0])

TWO_PI = 2.0 * np.pi


def as_point(value) -> np.ndarray:
    """Coerce a 3-sequence to a float (3,) array."""
    arr = np.asarray(value, dtype=float).reshape(-1)
    if arr.shape != (3,):
        raise ValueError(f"Expected a 3-D point, got shape {arr.shape}")
    return arr


def _unit(v: np.ndarray) -> np.ndarray:
    n = np.linalg.norm(v)
    if n < 1e-12:
        raise ValueError("Cannot normalise a zero-length vector")
    return v / n


# ─── Curves ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True, eq=False)
class Line:
    """Straight 3-D segment from start to end."""
    start: np.ndarray   # (3,)
    end: np.ndarray     # (3,)

    @property
    def length(self) -> float:
        return float(np.linalg.norm(self.end - self.start))

    def point_at_length(self, s: float) -> np.ndarray:
        length = self.length
        if length < 1e-12:
            return self.start.copy()
        t = min(max(s / length, 0.0), 1.0)
        return self.start + (self.end - self.start) * t

    def length_at_point(self, point: np.ndarray) -> float:
        length = self.length
        if length < 1e-12:
            return 0.0
        direction = (self.end - self.start) / length
        return float(np.clip((point - self.start) @ direction, 0.0, length))

    def contains_point(self, point: np.ndarray, tol: float) -> bool:
        s = self.length_at_point(point)
        return float(np.linalg.norm(self.point_at_length(s) - point)) <= tol

    def split_at_length(self, s: float) -> Tuple["Line", "Line"]:
        mid = self.point_at_length(s)
        return Line(self.start, mid), Line(mid, self.end)

    def sample_points(self) -> List[np.ndarray]:
        return [self.start, self.end]


@dataclass(frozen=True, eq=False)
class Arc:
    """Circular arc swept counter-clockwise about ``axis`` from start to end.

    A coincident start and end describes a full circle.
    """
    start: np.ndarray   # (3,)
    end: np.ndarray     # (3,)
    center: np.ndarray  # (3,)
    axis: np.ndarray    # (3,) unit rotation axis

    @property
    def radius(self) -> float:
        return float(np.linalg.norm(self.start - self.center))

    def _basis(self) -> Tuple[np.ndarray, np.ndarray]:
        u = _unit(self.start - self.center)
        v = np.cross(_unit(self.axis), u)
        return u, v

    def _angle_of(self, point: np.ndarray) -> float:
        u, v = self._basis()
        d = point - self.center
        angle = float(np.arctan2(d @ v, d @ u))
        if angle < 0.0:
            angle += TWO_PI
        return angle

    @property
    def sweep(self) -> float:
        angle = self._angle_of(self.end)
        if angle * self.radius < 1e-9:
            return TWO_PI
        return angle

    @property
    def length(self) -> float:
        return self.radius * self.sweep

    def _point_at_angle(self, angle: float) -> np.ndarray:
        u, v = self._basis()
        return self.center + self.radius * (np.cos(angle) * u + np.sin(angle) * v)

    def point_at_length(self, s: float) -> np.ndarray:
        s = min(max(s, 0.0), self.length)
        return self._point_at_angle(s / self.radius)

    def length_at_point(self, point: np.ndarray) -> float:
        angle = self._angle_of(point)
        sweep = self.sweep
        if angle > sweep:
            # Outside the swept range: clamp to the nearer end.
            angle = sweep if angle - sweep < TWO_PI - angle else 0.0
        return angle * self.radius

    def contains_point(self, point: np.ndarray, tol: float) -> bool:
        s = self.length_at_point(point)
        return float(np.linalg.norm(self.point_at_length(s) - point)) <= tol

    def split_at_length(self, s: float) -> Tuple["Arc", "Arc"]:
        mid = self.point_at_length(s)
        return (
            Arc(self.start, mid, self.center, self.axis),
            Arc(mid, self.end, self.center, self.axis),
        )

    def sample_points(self, count: int = 8) -> List[np.ndarray]:
        length = self.length
        return [self.point_at_length(length * i / count) for i in range(count + 1)]


Curve = Union[Line, Arc]


# ─── Flange classification ───────────────────────────────────────────────────

class Flange(Enum):
    """Face of the sheet-metal part a normal belongs to."""
    WEB = "web"
    TOP = "top"
    BOTTOM = "bottom"
    FLEX = "flex"


def classify_normal(normal: np.ndarray, tol: float = 1e-6) -> Flange:
    """Classify an outward normal as web (+Z), top (+Y), bottom (-Y) or flex.

    Raises:
        UnsupportedTopologyError: for a normal aligned with -Z; no flange of
            the part faces that way.
    """
    n = _unit(np.asarray(normal, dtype=float))
    if np.allclose(n, Z_AXIS, atol=tol):
        return Flange.WEB
    if np.allclose(n, Y_AXIS, atol=tol):
        return Flange.TOP
    if np.allclose(n, -Y_AXIS, atol=tol):
        return Flange.BOTTOM
    if np.allclose(n, -Z_AXIS, atol=tol):
        raise UnsupportedTopologyError(f"Normal {n.tolist()} faces -Z; no flange lies there")
    return Flange.FLEX


# ─── Tooling segments ────────────────────────────────────────────────────────

@dataclass(frozen=True, eq=False)
class ToolingSegment:
    """One curve of the profile plus its outward normals at start and end."""
    curve: Curve
    start_normal: np.ndarray  # (3,)
    end_normal: np.ndarray    # (3,)

    @property
    def start(self) -> np.ndarray:
        return self.curve.start

    @property
    def end(self) -> np.ndarray:
        return self.curve.end

    @property
    def length(self) -> float:
        return self.curve.length

    @property
    def is_arc(self) -> bool:
        return isinstance(self.curve, Arc)

    def start_flange(self, tol: float = 1e-6) -> Flange:
        return classify_normal(self.start_normal, tol)

    def end_flange(self, tol: float = 1e-6) -> Flange:
        return classify_normal(self.end_normal, tol)

    def normal_at_length(self, s: float) -> np.ndarray:
        """Linearly interpolated normal for lines; arcs keep the start normal."""
        if self.is_arc:
            return self.start_normal
        length = self.length
        t = 0.0 if length < 1e-12 else min(max(s / length, 0.0), 1.0)
        return self.start_normal * (1.0 - t) + self.end_normal * t


def make_line_segment(start, end, start_normal, end_normal=None) -> ToolingSegment:
    """Build a line tooling segment from raw coordinates."""
    n0 = as_point(start_normal)
    n1 = n0 if end_normal is None else as_point(end_normal)
    return ToolingSegment(Line(as_point(start), as_point(end)), n0, n1)


def make_arc_segment(start, end, center, axis, start_normal, end_normal=None) -> ToolingSegment:
    """Build an arc tooling segment from raw coordinates."""
    n0 = as_point(start_normal)
    n1 = n0 if end_normal is None else as_point(end_normal)
    return ToolingSegment(
        Arc(as_point(start), as_point(end), as_point(center), _unit(as_point(axis))),
        n0, n1,
    )


# ─── Profile length queries ──────────────────────────────────────────────────

def total_length(segments: Sequence[ToolingSegment]) -> float:
    return float(sum(seg.length for seg in segments))


def cumulative_lengths(segments: Sequence[ToolingSegment]) -> np.ndarray:
    """Arc length at the start of each segment, plus the total at the end."""
    lengths = np.array([seg.length for seg in segments], dtype=float)
    return np.concatenate([[0.0], np.cumsum(lengths)])


def points_close(a: np.ndarray, b: np.ndarray, tol: float) -> bool:
    return float(np.linalg.norm(a - b)) <= tol


def point_at_fraction(
    segments: Sequence[ToolingSegment],
    fraction: float,
    least_length: float = 0.5,
) -> Tuple[int, np.ndarray]:
    """Point at ``fraction`` of total arc length and its segment index.

    A point that would land within ``least_length`` of a segment boundary is
    snapped onto that boundary, reported as the end point of the earlier
    segment.

    Raises:
        LandmarkNotFoundError: if the fraction is outside (0, 1) or the
            profile is empty.
    """
    if not segments:
        raise LandmarkNotFoundError("Profile has no segments", fraction)
    if fraction <= 1e-6 or fraction >= 1.0 - 1e-6:
        raise LandmarkNotFoundError(
            f"Landmark fraction {fraction} must lie strictly inside (0, 1)", fraction,
        )
    cum = cumulative_lengths(segments)
    target = fraction * cum[-1]
    index = int(np.searchsorted(cum, target, side="left")) - 1
    index = min(max(index, 0), len(segments) - 1)
    offset = target - cum[index]
    seg = segments[index]
    if offset < least_length and index > 0:
        return index - 1, segments[index - 1].end
    if seg.length - offset < least_length:
        return index, seg.end
    return index, seg.curve.point_at_length(offset)


def locate_point(
    segments: Sequence[ToolingSegment],
    point: np.ndarray,
    tol: float = 1e-6,
) -> Tuple[int, float]:
    """Index of the first segment containing ``point`` and the arc length along it."""
    for i, seg in enumerate(segments):
        if seg.curve.contains_point(point, tol):
            return i, seg.curve.length_at_point(point)
    raise LandmarkNotFoundError(f"Point {np.round(point, 6).tolist()} is not on the profile")


def length_to_start(segments: Sequence[ToolingSegment], point: np.ndarray, tol: float = 1e-6) -> float:
    """Arc length from the profile start to an on-profile point."""
    index, offset = locate_point(segments, point, tol)
    return float(cumulative_lengths(segments)[index] + offset)


def length_to_end(segments: Sequence[ToolingSegment], point: np.ndarray, tol: float = 1e-6) -> float:
    """Arc length from an on-profile point to the profile end."""
    return total_length(segments) - length_to_start(segments, point, tol)


def length_between(
    segments: Sequence[ToolingSegment],
    first: np.ndarray,
    second: np.ndarray,
    tol: float = 1e-6,
) -> float:
    """Arc length along the profile between two on-profile points."""
    return abs(length_to_start(segments, second, tol) - length_to_start(segments, first, tol))


def evaluate_point_and_index_at_length(
    segments: Sequence[ToolingSegment],
    index: int,
    length: float,
    reverse: bool = False,
    least_length: float = 1e-6,
) -> Tuple[np.ndarray, int]:
    """Walk ``length`` along the profile from the end point of ``segments[index]``.

    The forward walk consumes ``index + 1``, ``index + 2``, ...; the reverse
    walk consumes ``index``, ``index - 1``, ... from their ends. Landing within
    ``least_length`` of a segment boundary snaps onto it.

    Returns:
        (point, segment_index) where ``point`` lies on ``segments[segment_index]``,
        at its end point whenever the walk lands on a boundary. Landing
        exactly on the profile start returns ``(segments[0].start, 0)``.

    Raises:
        UnsupportedTopologyError: if the walk runs off either end of the profile.
    """
    if reverse:
        remaining = length
        k = index
        while k >= 0:
            seg_len = segments[k].length
            if remaining <= seg_len + least_length:
                from_start = seg_len - remaining
                if remaining < least_length:
                    return segments[k].end, k
                if from_start < least_length:
                    if k == 0:
                        # Landed on the profile start: nothing ends there.
                        return segments[0].start, 0
                    return segments[k - 1].end, k - 1
                return segments[k].curve.point_at_length(from_start), k
            remaining -= seg_len
            k -= 1
        raise UnsupportedTopologyError(
            f"Walking {length:.3f} back from segment {index} runs off the profile start"
        )

    remaining = length
    k = index + 1
    while k < len(segments):
        seg_len = segments[k].length
        if remaining <= seg_len + least_length:
            if remaining < least_length:
                return segments[k - 1].end, k - 1
            if seg_len - remaining < least_length:
                return segments[k].end, k
            return segments[k].curve.point_at_length(remaining), k
        remaining -= seg_len
        k += 1
    if remaining < least_length and index < len(segments):
        return segments[-1].end, len(segments) - 1
    raise UnsupportedTopologyError(
        f"Walking {length:.3f} forward from segment {index} runs off the profile end"
    )


def profile_bounds(segments: Sequence[ToolingSegment]) -> Tuple[np.ndarray, np.ndarray]:
    """Axis-aligned (min, max) corners over sampled profile points."""
    pts = np.array([p for seg in segments for p in seg.curve.sample_points()])
    return pts.min(axis=0), pts.max(axis=0)


@dataclass
class Bounds:
    """Axis-aligned 3-D bounding box of a part or profile."""
    min_corner: np.ndarray  # (3,)
    max_corner: np.ndarray  # (3,)

    @classmethod
    def from_dict(cls, data: dict) -> "Bounds":
        return cls(
            np.array([data["xmin"], data["ymin"], data["zmin"]], dtype=float),
            np.array([data["xmax"], data["ymax"], data["zmax"]], dtype=float),
        )

    @property
    def xmin(self) -> float:
        return float(self.min_corner[0])

    @property
    def xmax(self) -> float:
        return float(self.max_corner[0])

    @property
    def ymin(self) -> float:
        return float(self.min_corner[1])

    @property
    def ymax(self) -> float:
        return float(self.max_corner[1])

    def to_dict(self) -> dict:
        lo, hi = self.min_corner, self.max_corner
        return {
            "xmin": float(lo[0]), "ymin": float(lo[1]), "zmin": float(lo[2]),
            "xmax": float(hi[0]), "ymax": float(hi[1]), "zmax": float(hi[2]),
        }
