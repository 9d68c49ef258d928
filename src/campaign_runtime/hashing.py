"""
Content hashing for compiled campaign artifacts.

Provides deterministic blake3 fingerprints so a recompile can tell whether
the compiled step list actually changed.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

import orjson
from blake3 import blake3


def canonicalize(obj: Any) -> Any:
    """Convert records into JSON-friendly, deterministic structures."""
    if isinstance(obj, dict):
        return {str(k): canonicalize(obj[k]) for k in sorted(obj, key=str)}
    if isinstance(obj, (list, tuple)):
        return [canonicalize(v) for v in obj]
    if isinstance(obj, (set, frozenset)):
        return sorted(canonicalize(v) for v in obj)
    if isinstance(obj, Enum):
        return obj.value
    if hasattr(obj, "to_dict") and callable(obj.to_dict):
        return canonicalize(obj.to_dict())
    return obj


def stable_json_dumps(obj: Any) -> str:
    """Dump an object to JSON with stable key ordering."""
    return orjson.dumps(canonicalize(obj), option=orjson.OPT_SORT_KEYS).decode("utf-8")


def content_hash(obj: Any) -> str:
    """
    Generate a deterministic content hash for any JSON-serializable object.

    Returns:
        64-character hexadecimal hash
    """
    return blake3(stable_json_dumps(obj).encode("utf-8")).hexdigest()


_VOLATILE_STEP_FIELDS = ("step_id", "campaign_id", "created_at")


def steps_fingerprint(steps: list[Any]) -> str:
    """Fingerprint a compiled step list, ignoring ids and timestamps.

    Two compilations of the same workflow produce the same fingerprint even
    though every compile mints fresh step ids.
    """
    payload = []
    for step in steps:
        data = step.to_dict() if hasattr(step, "to_dict") else dict(step)
        payload.append({k: v for k, v in data.items() if k not in _VOLATILE_STEP_FIELDS})
    return content_hash(payload)


__all__ = [
    "canonicalize",
    "stable_json_dumps",
    "content_hash",
    "steps_fingerprint",
]
