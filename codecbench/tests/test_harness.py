"""
Tests for the equivalence harness.

Critical tests:
1. Success report with per-codec timing
2. Fail fast on the first mismatch, with trial/codec/positions context
3. Cleanup of persisted blobs on success and failure
"""

import tempfile
import os

import numpy as np
import pytest

from codecbench.codec import LegacyCodec, SchemaCodec
from codecbench.core.errors import ValidationError
from codecbench.core.rng import RandomSource
from codecbench.core.vector import fixed_weight
from codecbench.encoder import SparseEncoder
from codecbench.harness import EquivalenceHarness, TimingAccumulator, timed
from codecbench.store import FileBlobStore, MemoryBlobStore


class CorruptingCodec(SchemaCodec):
    """Schema codec that rewires the decoded encoder so the last k outputs always win."""

    name = "corrupting"
    format_tag = b"CRPT"

    def decode(self, data):
        enc = super().decode(data)
        enc._potential[:] = True
        enc._permanences[:] = 0.0
        enc._permanences[-enc.k:] = 1.0
        return enc


class SkippingCodec(SchemaCodec):
    """Schema codec whose decoded random source is one draw ahead."""

    name = "skipping"
    format_tag = b"SKIP"

    def decode(self, data):
        source = super().decode(data)
        source.next_uint32()
        return source


def make_setup():
    enc = SparseEncoder().initialize([64], [64], 8, seed=2)
    driver = RandomSource(10)
    vec = fixed_weight(64, 16)
    for _ in range(30):
        driver.shuffle(vec)
        enc.compute(vec, True)
    return enc, driver, vec


@pytest.mark.parametrize("learn", [False, True])
def test_run_encoder_success(learn):
    enc, driver, vec = make_setup()

    with MemoryBlobStore() as store:
        harness = EquivalenceHarness([SchemaCodec(), LegacyCodec()], store)
        report = harness.run_encoder(enc, driver, vec, trials=12, learn=learn)

        assert store.keys() == []

    assert report.success
    assert report.trials == 12
    assert report.codecs == ("schema", "legacy")
    assert harness.accumulator.count("schema") == 12
    assert harness.accumulator.count("legacy") == 12
    assert enc.iteration_learn_num == (30 + 12 if learn else 30)


def test_run_encoder_learning_keeps_copies_in_step():
    """With learning, persisted copies track the baseline across trials."""
    enc, driver, vec = make_setup()

    with MemoryBlobStore() as store:
        harness = EquivalenceHarness([SchemaCodec()], store)
        harness.run_encoder(enc, driver, vec, trials=5, learn=True)

    reference, ref_driver, ref_vec = make_setup()
    for _ in range(5):
        ref_driver.shuffle(ref_vec)
        reference.compute(ref_vec, True)
    assert enc.same_state(reference)


def test_run_encoder_fails_fast_with_context():
    enc, driver, vec = make_setup()
    acc = TimingAccumulator()

    with MemoryBlobStore() as store:
        harness = EquivalenceHarness([CorruptingCodec(), SchemaCodec()], store, acc)
        with pytest.raises(ValidationError) as exc_info:
            harness.run_encoder(enc, driver, vec, trials=10)

        assert store.keys() == []

    err = exc_info.value
    assert err.trial == 0
    assert err.codec == "corrupting"
    assert err.positions
    assert err.actual == list(range(56, 64))
    assert err.expected != err.actual
    # later codec and later trials never ran
    assert acc.count("schema") == 0
    assert enc.iteration_num == 30


def test_file_store_cleanup_after_failure():
    enc, driver, vec = make_setup()

    with tempfile.TemporaryDirectory() as tmpdir:
        with pytest.raises(ValidationError):
            with FileBlobStore(base_dir=tmpdir) as store:
                EquivalenceHarness([CorruptingCodec()], store).run_encoder(
                    enc, driver, vec, trials=3
                )

        assert os.listdir(tmpdir) == []


def test_run_stream_success():
    with MemoryBlobStore() as store:
        harness = EquivalenceHarness([SchemaCodec(), LegacyCodec()], store)
        report = harness.run_stream(RandomSource(7), iterations=50, follow_draws=5)

    assert report.trials == 50
    assert harness.accumulator.count("legacy") == 50


def test_run_stream_fails_fast():
    source = RandomSource(7)

    with MemoryBlobStore() as store:
        harness = EquivalenceHarness([SkippingCodec()], store)
        with pytest.raises(ValidationError) as exc_info:
            harness.run_stream(source, iterations=20)

        assert store.keys() == []

    err = exc_info.value
    assert err.trial == 0
    assert err.codec == "skipping"
    assert len(err.expected) == 5
    assert err.actual[:4] == err.expected[1:]
    assert source.draw_count == 6


def test_harness_requires_unique_codecs():
    with pytest.raises(ValueError):
        EquivalenceHarness([], MemoryBlobStore())
    with pytest.raises(ValueError):
        EquivalenceHarness([SchemaCodec(), SchemaCodec()], MemoryBlobStore())


def test_timing_accumulator():
    acc = TimingAccumulator()
    acc.record("a", 10)
    acc.record("a", 30)
    acc.record("b", 5)

    assert acc.total_us("a") == 40
    assert acc.mean_us("a") == 20.0
    assert acc.mean_us("missing") == 0.0
    assert [s.codec_name for s in acc.samples()] == ["a", "a", "b"]
    assert len(acc.samples("b")) == 1
    assert acc.summary()["a"]["trials"] == 2.0


def test_timed_records_only_completed_blocks():
    acc = TimingAccumulator()
    with timed(acc, "ok"):
        np.zeros(10).sum()
    with pytest.raises(RuntimeError):
        with timed(acc, "bad"):
            raise RuntimeError("boom")

    assert acc.count("ok") == 1
    assert acc.samples("ok")[0].elapsed_us >= 0
    assert acc.count("bad") == 0
