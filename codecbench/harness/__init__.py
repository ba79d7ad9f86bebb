"""
Equivalence and performance harness.

- EquivalenceHarness: Round trip -> recompute -> compare, fail fast
- TimingAccumulator / timed: Explicit per-codec timing
- Scenarios: The three benchmark runs driven by the CLI
"""

from .performance import TimingSample, TimingAccumulator, timed, Stopwatch
from .equivalence import EquivalenceHarness, EquivalenceReport
from .scenarios import (
    ScenarioResult,
    random_stream_scenario,
    sparse_encoder_scenario,
    run_all,
)

__all__ = [
    "TimingSample",
    "TimingAccumulator",
    "timed",
    "Stopwatch",
    "EquivalenceHarness",
    "EquivalenceReport",
    "ScenarioResult",
    "random_stream_scenario",
    "sparse_encoder_scenario",
    "run_all",
]
