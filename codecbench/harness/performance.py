"""
Round-trip timing.

Timers are explicit values: the harness threads a TimingAccumulator through
its trial loop and returns it. Nothing here decides pass/fail.
"""

import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple


@dataclass(frozen=True)
class TimingSample:
    """
    One timed interval.

    Fields:
        codec_name: Codec whose work was measured
        elapsed_us: Monotonic elapsed time in microseconds
    """
    codec_name: str
    elapsed_us: int


class TimingAccumulator:
    """
    Per-codec totals over a run.

    Usage:
        acc = TimingAccumulator()
        with timed(acc, "schema"):
            ...
        acc.mean_us("schema")
    """

    def __init__(self) -> None:
        self._samples: List[TimingSample] = []
        self._totals: Dict[str, int] = {}
        self._counts: Dict[str, int] = {}

    def record(self, codec_name: str, elapsed_us: int) -> TimingSample:
        sample = TimingSample(codec_name=codec_name, elapsed_us=int(elapsed_us))
        self._samples.append(sample)
        self._totals[codec_name] = self._totals.get(codec_name, 0) + sample.elapsed_us
        self._counts[codec_name] = self._counts.get(codec_name, 0) + 1
        return sample

    def codecs(self) -> List[str]:
        return list(self._totals)

    def samples(self, codec_name: Optional[str] = None) -> Tuple[TimingSample, ...]:
        if codec_name is None:
            return tuple(self._samples)
        return tuple(s for s in self._samples if s.codec_name == codec_name)

    def total_us(self, codec_name: str) -> int:
        return self._totals.get(codec_name, 0)

    def count(self, codec_name: str) -> int:
        return self._counts.get(codec_name, 0)

    def mean_us(self, codec_name: str) -> float:
        n = self.count(codec_name)
        return self.total_us(codec_name) / n if n else 0.0

    def summary(self) -> Dict[str, Dict[str, float]]:
        return {
            name: {
                "total_ms": self.total_us(name) / 1000.0,
                "mean_us": self.mean_us(name),
                "trials": float(self.count(name)),
            }
            for name in self._totals
        }


@contextmanager
def timed(accumulator: TimingAccumulator, codec_name: str) -> Iterator[None]:
    """
    Time the enclosed block into accumulator.

    Only completed blocks are recorded; a block that raises leaves the
    accumulator untouched.
    """
    start = time.perf_counter_ns()
    yield
    accumulator.record(codec_name, (time.perf_counter_ns() - start) // 1000)


class Stopwatch:
    """Elapsed wall time for a whole scenario, monotonic clock."""

    def __init__(self) -> None:
        self._start = time.perf_counter_ns()
        self._stop: Optional[int] = None

    def stop(self) -> float:
        self._stop = time.perf_counter_ns()
        return self.elapsed_ms

    @property
    def elapsed_ms(self) -> float:
        end = self._stop if self._stop is not None else time.perf_counter_ns()
        return (end - self._start) / 1_000_000.0
