"""Append-only decision log for profile planning runs."""

from __future__ import annotations

import hashlib
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional

GENESIS_HASH = "0" * 64


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def _canonical_json(payload: Dict[str, object]) -> str:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=True)


def sha256_text(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class DecisionLog:
    """JSONL decision writer with per-record hash chaining.

    Each record carries the hash of its predecessor, so editing or dropping a
    line breaks every hash after it. ``path=None`` keeps records in memory only.
    """

    def __init__(self, profile_id: str, path: Optional[Path] = None):
        self.profile_id = profile_id
        self.path = Path(path) if path is not None else None
        if self.path is not None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        self._sequence = 0
        self._prev_hash = GENESIS_HASH
        self._records: List[Dict[str, object]] = []

    @property
    def records(self) -> List[Dict[str, object]]:
        return list(self._records)

    @property
    def final_hash(self) -> str:
        return self._prev_hash

    def record(
        self,
        stage: str,
        decision: str,
        *,
        indices: Iterable[int] = (),
        numeric_evidence: Optional[Dict[str, float]] = None,
        metadata: Optional[Dict[str, object]] = None,
    ) -> Dict[str, object]:
        self._sequence += 1
        payload: Dict[str, object] = {
            "schema_version": "notch_sequencer.decision.v1",
            "profile_id": self.profile_id,
            "seq": self._sequence,
            "timestamp_utc": _utc_now_iso(),
            "stage": stage,
            "decision": decision,
            "indices": [int(i) for i in indices],
            "numeric_evidence": numeric_evidence or {},
            "metadata": metadata or {},
            "previous_hash": self._prev_hash,
        }
        digest = sha256_text(_canonical_json(payload))
        payload["hash"] = digest

        if self.path is not None:
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(payload, sort_keys=True) + "\n")

        self._records.append(payload)
        self._prev_hash = digest
        return payload


def verify_chain(records: Iterable[Dict[str, object]]) -> bool:
    """Recompute every hash and check each record links to the one before."""
    prev = GENESIS_HASH
    for record in records:
        body = {k: v for k, v in record.items() if k != "hash"}
        if body.get("previous_hash") != prev:
            return False
        if sha256_text(_canonical_json(body)) != record.get("hash"):
            return False
        prev = record["hash"]
    return True


def read_log(path: Path) -> List[Dict[str, object]]:
    with Path(path).open("r", encoding="utf-8") as handle:
        return [json.loads(line) for line in handle if line.strip()]
