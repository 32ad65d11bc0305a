"""JSON conversion for profiles and tooling segments."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from notch_sequencer.errors import ConfigurationError
from notch_sequencer.geometry import (
    Bounds,
    ToolingSegment,
    make_arc_segment,
    make_line_segment,
)


def _vec(values) -> List[float]:
    return [float(v) for v in values]


def segment_to_dict(segment: ToolingSegment) -> Dict[str, object]:
    out: Dict[str, object] = {
        "type": "arc" if segment.is_arc else "line",
        "start": _vec(segment.start),
        "end": _vec(segment.end),
        "start_normal": _vec(segment.start_normal),
        "end_normal": _vec(segment.end_normal),
    }
    if segment.is_arc:
        out["center"] = _vec(segment.curve.center)
        out["axis"] = _vec(segment.curve.axis)
    return out


def segment_from_dict(data: Mapping[str, object]) -> ToolingSegment:
    kind = data.get("type", "line")
    try:
        if kind == "line":
            return make_line_segment(
                data["start"], data["end"], data["start_normal"], data.get("end_normal"),
            )
        if kind == "arc":
            return make_arc_segment(
                data["start"], data["end"], data["center"], data["axis"],
                data["start_normal"], data.get("end_normal"),
            )
    except KeyError as exc:
        raise ConfigurationError(f"{kind} segment is missing field {exc}") from exc
    except ValueError as exc:
        raise ConfigurationError(f"Malformed {kind} segment: {exc}") from exc
    raise ConfigurationError(f"Unknown segment type {kind!r}")


def segments_to_dicts(segments: Sequence[ToolingSegment]) -> List[Dict[str, object]]:
    return [segment_to_dict(seg) for seg in segments]


def profile_from_dict(data: Mapping[str, object]) -> Tuple[List[ToolingSegment], Optional[Bounds]]:
    """Segments and optional part bounds from a loaded profile document."""
    raw_segments = data.get("segments")
    if not isinstance(raw_segments, list) or not raw_segments:
        raise ConfigurationError("Profile needs a non-empty 'segments' list")
    segments = [segment_from_dict(item) for item in raw_segments]
    bounds = None
    if data.get("bounds") is not None:
        try:
            bounds = Bounds.from_dict(data["bounds"])
        except KeyError as exc:
            raise ConfigurationError(f"Bounds are missing field {exc}") from exc
    return segments, bounds


def load_profile(path: Path) -> Tuple[List[ToolingSegment], Optional[Bounds]]:
    with Path(path).open("r", encoding="utf-8") as handle:
        return profile_from_dict(json.load(handle))


def profile_to_dict(segments: Sequence[ToolingSegment], bounds: Optional[Bounds] = None) -> Dict[str, object]:
    out: Dict[str, object] = {"segments": segments_to_dicts(segments)}
    if bounds is not None:
        out["bounds"] = bounds.to_dict()
    return out
