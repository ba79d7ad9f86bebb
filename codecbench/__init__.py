"""
Codec Equivalence Benchmark

Round-trip verification and timing for serializable, deterministic components.
"""

__version__ = "0.1.0"

# Importing the component modules registers their persistable kinds, so any
# codec import can decode every kind.
from . import core, encoder  # noqa: E402,F401
