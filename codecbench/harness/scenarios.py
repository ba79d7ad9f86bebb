"""
Benchmark scenarios.

The driver runs, in order:
  (a) random-stream round trip through the schema codec
  (b) random-stream round trip through the legacy codec
  (c) sparse-encoder equivalence + performance through both codecs

Each scenario gets its own store, closed on success and on failure.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from ..codec.registry import get_codec
from ..config import BenchConfig
from ..core.rng import RandomSource
from ..core.vector import fixed_weight
from ..encoder.sparse_encoder import SparseEncoder
from ..logging_config import get_logger
from ..store import BlobStore, open_store
from .equivalence import EquivalenceHarness
from .performance import Stopwatch, TimingAccumulator

StoreFactory = Callable[[str], BlobStore]

ENCODER_CODECS = ("schema", "legacy")


@dataclass(frozen=True)
class ScenarioResult:
    """
    Timing report for one scenario.

    Fields:
        name: Scenario name
        elapsed_ms: Wall time for the whole scenario
        iterations: Trials or iterations completed
        codec_ms: Total timed round-trip cost per codec
        codec_mean_us: Mean per-trial round-trip cost per codec
    """
    name: str
    elapsed_ms: float
    iterations: int
    codec_ms: Dict[str, float] = field(default_factory=dict)
    codec_mean_us: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "elapsed_ms": self.elapsed_ms,
            "iterations": self.iterations,
            "codec_ms": dict(self.codec_ms),
            "codec_mean_us": dict(self.codec_mean_us),
        }


def _result(name: str, watch: Stopwatch, iterations: int, acc: TimingAccumulator) -> ScenarioResult:
    return ScenarioResult(
        name=name,
        elapsed_ms=watch.stop(),
        iterations=iterations,
        codec_ms={c: acc.total_us(c) / 1000.0 for c in acc.codecs()},
        codec_mean_us={c: acc.mean_us(c) for c in acc.codecs()},
    )


def random_stream_scenario(
    codec_name: str,
    config: BenchConfig,
    store_factory: StoreFactory = open_store,
) -> ScenarioResult:
    """
    Seeded RandomSource round-tripped once per iteration.

    Raises:
        ValidationError: On the first differing follow-up draw
    """
    name = f"random-{codec_name}"
    logger = get_logger(__name__, trace_id=name)
    logger.info("Starting scenario", extra={"iterations": config.random_iterations})

    acc = TimingAccumulator()
    watch = Stopwatch()
    with store_factory(config.store) as store:
        harness = EquivalenceHarness([get_codec(codec_name)], store, acc, trace_id=name)
        report = harness.run_stream(
            RandomSource(config.random_seed),
            iterations=config.random_iterations,
            follow_draws=config.follow_draws,
        )
    return _result(name, watch, report.trials, acc)


def sparse_encoder_scenario(
    config: BenchConfig,
    store_factory: StoreFactory = open_store,
    codec_names: Optional[List[str]] = None,
) -> ScenarioResult:
    """
    Warm up a SparseEncoder with learning, then verify both codecs per trial.

    Raises:
        ValidationError: On the first output mismatch
    """
    name = "sparse-encoder"
    logger = get_logger(__name__, trace_id=name)

    driver = RandomSource(config.driver_seed)
    encoder = SparseEncoder().initialize(
        [config.input_size], [config.output_size], config.k, seed=config.encoder_seed
    )
    input_vector = fixed_weight(config.input_size, config.input_weight)

    watch = Stopwatch()
    logger.info("Warming up", extra={"warmup": config.warmup})
    for _ in range(config.warmup):
        driver.shuffle(input_vector)
        encoder.compute(input_vector, True)

    acc = TimingAccumulator()
    codecs = [get_codec(n) for n in (codec_names or ENCODER_CODECS)]
    with store_factory(config.store) as store:
        harness = EquivalenceHarness(codecs, store, acc, trace_id=name)
        report = harness.run_encoder(
            encoder,
            driver,
            input_vector,
            trials=config.trials,
            learn=config.learn_during_trials,
        )
    return _result(name, watch, report.trials, acc)


def run_all(
    config: BenchConfig,
    store_factory: StoreFactory = open_store,
) -> List[ScenarioResult]:
    """Run scenarios (a), (b), (c) in order; the first failure propagates."""
    return [
        random_stream_scenario("schema", config, store_factory),
        random_stream_scenario("legacy", config, store_factory),
        sparse_encoder_scenario(config, store_factory),
    ]
