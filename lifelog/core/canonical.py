"""
Canonical serialization for determinism checks.

Folding the same events twice must serialize to identical bytes; every
comparison of derived state (tests, `lifelog replay --verify`, state hashes)
goes through these functions.
"""

import dataclasses
import json
from typing import Any


def canonicalize(obj: Any) -> Any:
    """
    Reduce entity states and containers to plain JSON-ready values.

    - dataclass instances become dicts of their fields
    - dict keys are stringified and sorted
    - tuples become lists, element order kept
    """
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return canonicalize({f.name: getattr(obj, f.name) for f in dataclasses.fields(obj)})
    if isinstance(obj, dict):
        return {str(k): canonicalize(obj[k]) for k in sorted(obj.keys(), key=str)}
    if isinstance(obj, (list, tuple)):
        return [canonicalize(x) for x in obj]
    return obj


def canonical_json_bytes(obj: Any) -> bytes:
    """Compact, key-sorted UTF-8 JSON of canonicalize(obj)."""
    text = json.dumps(canonicalize(obj), sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return text.encode("utf-8")


def canonical_json_str(obj: Any) -> str:
    return canonical_json_bytes(obj).decode("utf-8")
