"""
Core deterministic primitives.

This module provides the foundations the harness depends on:
- RandomSource: Reproducible draw sequence with serializable state
- SparseBinaryVector: Bounds-checked fixed-length binary vector
- Persistable: Component registry consumed by codecs
- Canonical: Deterministic JSON serialization
- Errors: ValidationError, FormatError, ShapeError, StoreIOError
"""

from .errors import CodecBenchError, ValidationError, FormatError, ShapeError, StoreIOError
from .canonical import canonicalize, canonical_json_bytes, canonical_json_str, canonical_hash
from .persist import Persistable, persistable, component_class, kind_of, registered_kinds
from .rng import RandomSource
from .vector import SparseBinaryVector, fixed_weight

__all__ = [
    "CodecBenchError",
    "ValidationError",
    "FormatError",
    "ShapeError",
    "StoreIOError",
    "canonicalize",
    "canonical_json_bytes",
    "canonical_json_str",
    "canonical_hash",
    "Persistable",
    "persistable",
    "component_class",
    "kind_of",
    "registered_kinds",
    "RandomSource",
    "SparseBinaryVector",
    "fixed_weight",
]
