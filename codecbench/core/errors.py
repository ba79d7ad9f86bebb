"""
Exception types for the codec benchmark.
"""

from typing import Optional, Sequence


class CodecBenchError(Exception):
    """Base class for all benchmark errors."""
    pass


class ValidationError(CodecBenchError):
    """
    Raised when output after a round trip differs from the baseline.

    Carries enough context to locate the defect: trial index, codec name,
    differing positions, and expected vs. actual active indices.
    """

    def __init__(
        self,
        message: str,
        trial: Optional[int] = None,
        codec: Optional[str] = None,
        positions: Sequence[int] = (),
        expected: Sequence[int] = (),
        actual: Sequence[int] = (),
    ) -> None:
        super().__init__(message)
        self.trial = trial
        self.codec = codec
        self.positions = list(positions)
        self.expected = list(expected)
        self.actual = list(actual)

    def to_dict(self) -> dict:
        return {
            "error": str(self),
            "trial": self.trial,
            "codec": self.codec,
            "positions": self.positions,
            "expected": self.expected,
            "actual": self.actual,
        }


class FormatError(CodecBenchError):
    """Raised when a codec cannot parse bytes (tag, version, truncation, schema)."""
    pass


class ShapeError(CodecBenchError, ValueError):
    """Raised when a vector length or dimension does not match."""
    pass


class StoreIOError(CodecBenchError, OSError):
    """Raised when the persistence medium fails."""
    pass
