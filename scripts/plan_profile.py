#!/usr/bin/env python3
"""Plan the machining block sequence of one notch or cut-out profile."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from notch_sequencer import DecisionLog, SequencerError, SynthesisConfig, plan_profile
from notch_sequencer.serialization import load_profile

logger = logging.getLogger("plan_profile")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Segment a notch/cut-out profile and synthesize its block sequence"
    )
    parser.add_argument(
        "--profile", required=True, help="Path to profile JSON (segments + optional bounds)"
    )
    parser.add_argument(
        "--config", default=None, help="Path to JSON with SynthesisConfig overrides"
    )
    parser.add_argument(
        "--output", default=None, help="Write the plan JSON here (default: stdout)"
    )
    parser.add_argument(
        "--decision-log", default=None, help="Append decisions to this JSONL file"
    )
    parser.add_argument(
        "--reverse-first",
        action="store_true",
        help="Machine the reverse run first instead of choosing from the part bounds",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logs"
    )
    return parser


def _load_config(path: str | None) -> SynthesisConfig:
    if path is None:
        return SynthesisConfig()
    with open(path, "r", encoding="utf-8") as handle:
        return SynthesisConfig.from_mapping(json.load(handle))


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    started = time.perf_counter()
    profile_path = Path(args.profile)
    audit = None
    if args.decision_log:
        audit = DecisionLog(profile_id=profile_path.stem, path=Path(args.decision_log))

    try:
        config = _load_config(args.config)
        segments, bounds = load_profile(profile_path)
        plan = plan_profile(
            segments,
            config,
            bounds=bounds,
            forward_first=False if args.reverse_first else None,
            audit=audit,
        )
    except SequencerError as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        return 1
    elapsed = time.perf_counter() - started

    payload = json.dumps(plan.to_dict(), indent=2)
    if args.output:
        out_path = Path(args.output)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(payload, encoding="utf-8")
    else:
        print(payload)

    print(
        f"{plan.kind}: {len(plan.segments)} segments, {len(plan.blocks)} blocks, "
        f"tooling length {plan.total_length:.3f} ({elapsed:.2f}s)",
        file=sys.stderr if not args.output else sys.stdout,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
