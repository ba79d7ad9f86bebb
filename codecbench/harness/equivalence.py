"""
Equivalence harness: round trip, recompute, compare.

Trial loop for a stateful component:

    Init -> {GenerateInput -> ComputeBaseline -> RoundTripAndVerify(codec)...
             -> RecordTiming -> NextTrial}* -> Cleanup -> Done

Each codec keeps its own persisted copy in the store. A trial decodes that
copy into a fresh instance, computes on the trial input, checks the output
against the baseline bit for bit, and writes the instance back so the next
trial continues from it. The first mismatch raises ValidationError; Cleanup
runs on every exit path.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from ..codec.base import Codec
from ..core.errors import ValidationError
from ..core.rng import RandomSource
from ..core.vector import SparseBinaryVector
from ..encoder.sparse_encoder import SparseEncoder
from ..logging_config import get_logger
from ..store.base import BlobStore
from .performance import TimingAccumulator, timed


@dataclass(frozen=True)
class EquivalenceReport:
    """
    Outcome of a completed run.

    Fields:
        trials: Trials completed (all passed)
        codecs: Codec names verified each trial
        timings: Per-codec summary from the TimingAccumulator
    """
    trials: int
    codecs: Tuple[str, ...]
    timings: Dict[str, Dict[str, float]] = field(default_factory=dict)
    success: bool = True


class EquivalenceHarness:
    """
    Drives round trips against a live baseline and asserts equal behavior.

    Usage:
        with MemoryBlobStore() as store:
            harness = EquivalenceHarness([SchemaCodec(), LegacyCodec()], store)
            report = harness.run_encoder(encoder, driver, input_vec, trials=100)
    """

    def __init__(
        self,
        codecs: Sequence[Codec],
        store: BlobStore,
        accumulator: Optional[TimingAccumulator] = None,
        trace_id: str = "equivalence",
    ) -> None:
        if not codecs:
            raise ValueError("at least one codec is required")
        names = [c.name for c in codecs]
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate codec names: {names}")
        self.codecs = list(codecs)
        self.store = store
        self.accumulator = accumulator if accumulator is not None else TimingAccumulator()
        self.logger = get_logger(__name__, trace_id=trace_id)

    def _key(self, prefix: str, codec: Codec) -> str:
        return f"{prefix}-{codec.name}"

    def _cleanup(self, keys: List[str]) -> None:
        for key in keys:
            self.store.delete(key)

    def _report(self, trials: int) -> EquivalenceReport:
        return EquivalenceReport(
            trials=trials,
            codecs=tuple(c.name for c in self.codecs),
            timings=self.accumulator.summary(),
        )

    def _mismatch(self, trial: int, codec: Codec, message: str, **context) -> ValidationError:
        err = ValidationError(
            f"trial {trial}: {codec.name} codec {message}", trial=trial, codec=codec.name, **context
        )
        self.logger.error(
            "Round trip mismatch",
            extra={"trial": trial, "codec": codec.name, "positions": err.positions[:20]},
        )
        return err

    def run_encoder(
        self,
        baseline: SparseEncoder,
        driver: RandomSource,
        input_vector: SparseBinaryVector,
        trials: int,
        learn: bool = False,
    ) -> EquivalenceReport:
        """
        Run `trials` round-trip trials of a sparse encoder.

        Args:
            baseline: Live encoder; its state at call time is the pre-trial state
            driver: RandomSource that shuffles input_vector each trial
            input_vector: Fixed-weight input, shuffled in place
            trials: Number of trials (M)
            learn: Baseline and decoded copies learn in lock step each trial

        Returns:
            EquivalenceReport on success

        Raises:
            ValidationError: On the first output mismatch (later trials do not run)
            FormatError: If a codec cannot read its own bytes
        """
        keys = [self._key("encoder", c) for c in self.codecs]
        try:
            for codec, key in zip(self.codecs, keys):
                self.store.put(key, baseline.encode(codec))

            for trial in range(trials):
                driver.shuffle(input_vector)
                expected = baseline.compute(input_vector, learn)

                for codec, key in zip(self.codecs, keys):
                    with timed(self.accumulator, codec.name):
                        restored = SparseEncoder.decode(codec, self.store.get(key))
                        actual = restored.compute(input_vector, learn)
                        self.store.put(key, restored.encode(codec))

                    positions = expected.diff(actual)
                    if positions:
                        raise self._mismatch(
                            trial,
                            codec,
                            f"output differs at {len(positions)} position(s)",
                            positions=positions,
                            expected=expected.active(),
                            actual=actual.active(),
                        )

                self.logger.debug("Trial passed", extra={"trial": trial})
        finally:
            self._cleanup(keys)

        self.logger.info("Encoder equivalence held", extra={"trials": trials})
        return self._report(trials)

    def run_stream(
        self,
        source: RandomSource,
        iterations: int,
        follow_draws: int = 5,
    ) -> EquivalenceReport:
        """
        Round-trip a RandomSource `iterations` times.

        Each iteration draws once from source, persists and restores it with
        every codec, then compares the next `follow_draws` draws of source
        against each restored copy.

        Raises:
            ValidationError: On the first differing draw
        """
        keys = [self._key("random", c) for c in self.codecs]
        try:
            for iteration in range(iterations):
                source.next_uint32()

                restored: Dict[str, RandomSource] = {}
                for codec, key in zip(self.codecs, keys):
                    with timed(self.accumulator, codec.name):
                        self.store.put(key, source.encode(codec))
                        restored[codec.name] = RandomSource.decode(codec, self.store.get(key))

                expected = [source.next_uint32() for _ in range(follow_draws)]
                for codec in self.codecs:
                    actual = [restored[codec.name].next_uint32() for _ in range(follow_draws)]
                    positions = [i for i, (a, b) in enumerate(zip(expected, actual)) if a != b]
                    if positions:
                        raise self._mismatch(
                            iteration,
                            codec,
                            f"draws differ at {len(positions)} of {follow_draws} position(s)",
                            positions=positions,
                            expected=expected,
                            actual=actual,
                        )
        finally:
            self._cleanup(keys)

        self.logger.info("Stream equivalence held", extra={"iterations": iterations})
        return self._report(iterations)
