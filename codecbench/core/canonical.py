"""
Canonical serialization for schema payloads and state hashing.

Every JSON document written by the schema codec goes through these functions,
so the same component state always yields the same bytes.
"""

import hashlib
import json
from typing import Any

import numpy as np


def canonicalize(obj: Any) -> Any:
    """
    Convert nested dict/list/numpy values to canonical form.

    Rules:
    - dict keys sorted alphabetically
    - tuples converted to lists
    - numpy scalars converted to Python int/float/bool
    - recursive normalization

    Arrays must be packed by the caller before canonicalization.
    """
    if isinstance(obj, dict):
        return {k: canonicalize(obj[k]) for k in sorted(obj.keys())}
    if isinstance(obj, (list, tuple)):
        return [canonicalize(x) for x in obj]
    if isinstance(obj, np.generic):
        return obj.item()
    if isinstance(obj, np.ndarray):
        raise TypeError("ndarray must be packed before canonicalization")
    return obj


def canonical_json_bytes(obj: Any) -> bytes:
    """
    Deterministic JSON bytes.

    Guarantees:
    - sort_keys=True (secondary safety)
    - separators remove whitespace
    - allow_nan=False rejects values that do not round-trip through JSON
    """
    canon = canonicalize(obj)
    s = json.dumps(canon, sort_keys=True, separators=(",", ":"), allow_nan=False)
    return s.encode("utf-8")


def canonical_json_str(obj: Any) -> str:
    """Same as canonical_json_bytes but returns a string."""
    return canonical_json_bytes(obj).decode("utf-8")


def canonical_hash(obj: Any) -> str:
    """SHA-256 hex digest of the canonical bytes of obj."""
    return hashlib.sha256(canonical_json_bytes(obj)).hexdigest()
