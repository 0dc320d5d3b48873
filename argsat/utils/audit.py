"""
utils/audit.py — Query Audit Trail

Append-only answer log with hash chaining for tamper detection.
Each entry links to the previous via SHA-256, so the sequence of
answers a session gave can be replayed and checked afterwards.

Logs are written to both the ``argsat.audit`` logger and an append-only
JSONL file.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path

log = logging.getLogger("argsat.audit")

AUDIT_LOG_PATH = os.environ.get("ARGSAT_AUDIT_LOG", "audit.jsonl")
_previous_hash: str = "genesis"


def log_query(
    session_id: str,
    revision: int,
    problem: str,
    status: str,
    answer: str,
    argument: str | None = None,
    elapsed_ms: float = 0.0,
    oracle_calls: int = 0,
    path: str | None = None,
) -> dict:
    """
    Log an answered query to the audit trail.
    Returns the log entry dict.
    """
    global _previous_hash

    entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "session_id": session_id,
        "revision": revision,
        "problem": problem,
        "argument": argument,
        "status": status,
        "answer": answer,
        "elapsed_ms": elapsed_ms,
        "oracle_calls": oracle_calls,
        "hash_chain_previous": _previous_hash,
    }

    # Compute this entry's hash for chain continuity
    entry_bytes = json.dumps(entry, sort_keys=True).encode()
    entry_hash = hashlib.sha256(entry_bytes).hexdigest()[:16]
    entry["entry_hash"] = entry_hash
    _previous_hash = entry_hash

    try:
        with open(path or AUDIT_LOG_PATH, "a") as f:
            f.write(json.dumps(entry) + "\n")
    except OSError as e:
        log.error(f"Failed to write audit log: {e}")

    log.info(
        f"QUERY | {session_id}@{revision} | {problem}"
        f"{f'({argument})' if argument else ''} | {status} | {answer[:80]}"
    )

    return entry


def get_recent_queries(limit: int = 50, path: str | None = None) -> list[dict]:
    """Read recent audit entries, newest first."""
    try:
        p = Path(path or AUDIT_LOG_PATH)
        if not p.exists():
            return []

        lines = p.read_text().strip().split("\n")
        entries = []
        for line in lines[-limit:]:
            try:
                entries.append(json.loads(line))
            except json.JSONDecodeError:
                continue
        return list(reversed(entries))
    except OSError:
        return []


def verify_chain(entries: list[dict]) -> bool:
    """Check that oldest-first ``entries`` link to each other by hash."""
    previous = None
    for entry in entries:
        body = {k: v for k, v in entry.items() if k != "entry_hash"}
        digest = hashlib.sha256(json.dumps(body, sort_keys=True).encode()).hexdigest()[:16]
        if digest != entry.get("entry_hash"):
            return False
        if previous is not None and entry["hash_chain_previous"] != previous:
            return False
        previous = entry["entry_hash"]
    return True
