"""
Tests for codec fidelity and format rejection.

Critical tests:
1. Cross-codec equivalence of compute output
2. Exact field fidelity after round trip
3. Truncated / mis-tagged / wrong-version blobs raise FormatError
4. Corrupted payloads never decode silently
5. Legacy bytes readable through the registry
"""

import base64
import json

import numpy as np
import pytest

from codecbench.codec import (
    HEADER,
    LegacyCodec,
    SchemaCodec,
    SerializedBlob,
    codec_for_blob,
    decode_any,
    get_codec,
    inspect_blob,
)
from codecbench.core.canonical import canonical_hash, canonical_json_bytes
from codecbench.core.errors import FormatError
from codecbench.core.rng import RandomSource
from codecbench.core.vector import fixed_weight
from codecbench.encoder import SparseEncoder

CODECS = [SchemaCodec(), LegacyCodec()]


def trained_encoder(steps: int = 40, boost: float = 1.5) -> SparseEncoder:
    enc = SparseEncoder().initialize([64], [64], 8, boost_strength=boost, seed=3)
    driver = RandomSource(10)
    vec = fixed_weight(64, 16)
    for _ in range(steps):
        driver.shuffle(vec)
        enc.compute(vec, True)
    return enc


def test_cross_codec_equivalence():
    """decode(encodeA(x)).compute(v) == decode(encodeB(x)).compute(v) == x.compute(v)."""
    enc = trained_encoder()
    decoded = [SparseEncoder.decode(c, enc.encode(c)) for c in CODECS]
    driver = RandomSource(77)
    vec = fixed_weight(64, 16)

    for _ in range(25):
        driver.shuffle(vec)
        expected = enc.compute(vec, False)
        for copy in decoded:
            assert copy.compute(vec, False) == expected


@pytest.mark.parametrize("codec", CODECS, ids=lambda c: c.name)
def test_exact_field_fidelity(codec):
    """Every field, floats included, survives the round trip bit for bit."""
    enc = trained_encoder()
    copy = SparseEncoder.decode(codec, enc.encode(codec))

    assert copy.same_state(enc)
    assert copy.permanences.dtype == np.float32


@pytest.mark.parametrize("codec", CODECS, ids=lambda c: c.name)
def test_round_trip_idempotence_with_learning(codec):
    """Re-encode/re-decode each step; the trajectory matches the live encoder."""
    live = trained_encoder(steps=10)
    chained = SparseEncoder.decode(codec, live.encode(codec))
    driver = RandomSource(5)
    vec = fixed_weight(64, 16)

    for _ in range(15):
        driver.shuffle(vec)
        chained = SparseEncoder.decode(codec, chained.encode(codec))
        assert chained.compute(vec, True) == live.compute(vec, True)

    assert chained.same_state(live)


@pytest.mark.parametrize("codec", CODECS, ids=lambda c: c.name)
def test_encoding_is_deterministic(codec):
    enc = trained_encoder(steps=5)
    assert enc.encode(codec) == enc.encode(codec)
    r = RandomSource(7)
    assert r.encode(codec) == r.encode(codec)


@pytest.mark.parametrize("codec", CODECS, ids=lambda c: c.name)
def test_untrained_encoder_round_trip(codec):
    """Empty last_active survives too."""
    enc = SparseEncoder().initialize([32], [16], 4)
    copy = SparseEncoder.decode(codec, enc.encode(codec))

    assert copy.same_state(enc)
    assert copy.active_indices() == []


@pytest.mark.parametrize("codec", CODECS, ids=lambda c: c.name)
@pytest.mark.parametrize("cut", [1, 10, 100])
def test_truncated_payload_rejected(codec, cut):
    data = trained_encoder(steps=2).encode(codec)

    with pytest.raises(FormatError, match="truncated"):
        codec.decode(data[:-cut])


@pytest.mark.parametrize("codec", CODECS, ids=lambda c: c.name)
def test_truncated_header_rejected(codec):
    data = RandomSource(1).encode(codec)

    with pytest.raises(FormatError):
        codec.decode(data[: HEADER.size - 1])
    with pytest.raises(FormatError):
        codec.decode(b"")


@pytest.mark.parametrize("codec", CODECS, ids=lambda c: c.name)
def test_trailing_bytes_rejected(codec):
    data = RandomSource(1).encode(codec)

    with pytest.raises(FormatError):
        codec.decode(data + b"\x00")


def test_foreign_tag_rejected():
    """Each codec refuses bytes written by the other."""
    r = RandomSource(1)

    with pytest.raises(FormatError, match="tag"):
        LegacyCodec().decode(r.encode(SchemaCodec()))
    with pytest.raises(FormatError, match="tag"):
        SchemaCodec().decode(r.encode(LegacyCodec()))


@pytest.mark.parametrize("codec", CODECS, ids=lambda c: c.name)
def test_wrong_version_rejected(codec):
    blob = codec.encode(RandomSource(1))
    bumped = SerializedBlob(blob.format_tag, blob.version + 1, blob.payload)

    with pytest.raises(FormatError, match="version"):
        codec.decode(bumped.to_bytes())


def test_schema_hash_mismatch_rejected():
    """Edited state with a stale hash must not decode."""
    codec = SchemaCodec()
    blob = codec.encode(RandomSource(1))
    doc = json.loads(blob.payload)
    doc["state"]["draw_count"] += 1
    tampered = SerializedBlob(blob.format_tag, blob.version, canonical_json_bytes(doc))

    with pytest.raises(FormatError, match="state_hash"):
        codec.decode(tampered)


def test_schema_validation_failure_rejected():
    """Consistent hash but out-of-range field still fails validation."""
    codec = SchemaCodec()
    blob = codec.encode(RandomSource(1))
    doc = json.loads(blob.payload)
    doc["state"]["state"] = doc["state"]["state"][:5]
    doc["state_hash"] = canonical_hash(doc["state"])
    tampered = SerializedBlob(blob.format_tag, blob.version, canonical_json_bytes(doc))

    with pytest.raises(FormatError):
        codec.decode(tampered)


def test_schema_unknown_kind_rejected():
    codec = SchemaCodec()
    state = {"x": 1}
    doc = {"kind": "mystery", "state": state, "state_hash": canonical_hash(state)}
    blob = SerializedBlob(codec.format_tag, codec.version, canonical_json_bytes(doc))

    with pytest.raises(FormatError, match="unknown component kind"):
        codec.decode(blob)


def test_schema_garbage_payload_rejected():
    codec = SchemaCodec()
    blob = SerializedBlob(codec.format_tag, codec.version, b"\xff\xfenot json")

    with pytest.raises(FormatError):
        codec.decode(blob)


def test_schema_bad_array_length_rejected():
    codec = SchemaCodec()
    blob = codec.encode(SparseEncoder().initialize([8], [8], 2))
    doc = json.loads(blob.payload)
    doc["state"]["boost_factors"]["shape"] = [9]
    doc["state_hash"] = canonical_hash(doc["state"])
    tampered = SerializedBlob(blob.format_tag, blob.version, canonical_json_bytes(doc))

    with pytest.raises(FormatError):
        codec.decode(tampered)


def test_legacy_missing_end_marker_rejected():
    codec = LegacyCodec()
    blob = codec.encode(RandomSource(1))
    payload = blob.payload.replace(b"endRandomSource", b"")

    with pytest.raises(FormatError):
        codec.decode(SerializedBlob(blob.format_tag, blob.version, payload))


def test_legacy_non_numeric_token_rejected():
    codec = LegacyCodec()
    blob = codec.encode(RandomSource(1))
    lines = blob.payload.split(b"\n")
    lines[1] = b"seven " + lines[1].split(b" ", 1)[1]

    with pytest.raises(FormatError, match="integer"):
        codec.decode(SerializedBlob(blob.format_tag, blob.version, b"\n".join(lines)))


def test_legacy_unknown_marker_rejected():
    codec = LegacyCodec()
    blob = SerializedBlob(codec.format_tag, codec.version, b"Mystery-v1 1 2 3\n")

    with pytest.raises(FormatError, match="marker"):
        codec.decode(blob)


def test_wrong_kind_for_class_rejected():
    codec = SchemaCodec()

    with pytest.raises(FormatError):
        SparseEncoder.decode(codec, RandomSource(1).encode(codec))


def test_registry_lookup():
    assert get_codec("schema").format_tag == b"SCHM"
    assert get_codec("legacy").format_tag == b"LGCY"
    with pytest.raises(ValueError):
        get_codec("capnp")


def test_decode_any_reads_legacy_bytes():
    """Legacy-format state stays readable next to the schema default."""
    enc = trained_encoder(steps=5)
    legacy_bytes = enc.encode(LegacyCodec())

    assert codec_for_blob(legacy_bytes).name == "legacy"
    restored = decode_any(legacy_bytes)
    assert isinstance(restored, SparseEncoder)
    assert restored.same_state(enc)

    migrated = restored.encode(SchemaCodec())
    assert decode_any(migrated).same_state(enc)


def test_codec_for_blob_unknown_tag():
    blob = SerializedBlob(b"XXXX", 1, b"")

    with pytest.raises(FormatError):
        codec_for_blob(blob.to_bytes())


def test_inspect_blob_reports_truncation():
    data = RandomSource(1).encode(SchemaCodec())
    info = inspect_blob(data[:-4])

    assert info.codec == "schema"
    assert info.format_tag == "SCHM"
    assert info.truncated
    assert info.version_supported
    assert not inspect_blob(data).truncated


def _retagged(blob: SerializedBlob, doc: dict) -> SerializedBlob:
    doc["state_hash"] = canonical_hash(doc["state"])
    return SerializedBlob(blob.format_tag, blob.version, canonical_json_bytes(doc))


@pytest.mark.parametrize("shape", [[2 ** 70], [2 ** 32, 2 ** 32, 0], [-1, -8]])
def test_schema_oversized_shape_rejected(shape):
    """A hash-consistent but impossible shape is a format error, not an overflow."""
    codec = SchemaCodec()
    blob = codec.encode(SparseEncoder().initialize([8], [8], 2))
    doc = json.loads(blob.payload)
    doc["state"]["boost_factors"]["shape"] = shape

    with pytest.raises(FormatError):
        codec.decode(_retagged(blob, doc))


@pytest.mark.parametrize("bad", [float("nan"), float("inf"), 1.5, -0.25])
def test_schema_bad_permanence_rejected(bad):
    codec = SchemaCodec()
    blob = codec.encode(SparseEncoder().initialize([8], [8], 2))
    doc = json.loads(blob.payload)
    packed = doc["state"]["permanences"]
    perms = np.frombuffer(base64.b64decode(packed["data"]), dtype="<f4").copy()
    perms[int(np.flatnonzero(perms)[0])] = bad
    packed["data"] = base64.b64encode(perms.tobytes()).decode("ascii")

    with pytest.raises(FormatError):
        codec.decode(_retagged(blob, doc))


def test_schema_non_finite_parameter_rejected():
    codec = SchemaCodec()
    blob = codec.encode(SparseEncoder().initialize([8], [8], 2))
    doc = json.loads(blob.payload)
    doc["state"]["boost_strength"] = float("inf")
    payload = json.dumps(doc).encode("utf-8")

    with pytest.raises(FormatError):
        codec.decode(SerializedBlob(blob.format_tag, blob.version, payload))


def _legacy_lines(enc: SparseEncoder):
    codec = LegacyCodec()
    blob = codec.encode(enc)
    return codec, blob, blob.payload.split(b"\n")


@pytest.mark.parametrize(
    "line, dims",
    [
        (1, b"1 100000000000000000000"),
        (2, b"1 100000000000000000000"),
        (1, b"1 20000000"),
        (1, b"2 -4 -2"),
        (2, b"0"),
    ],
)
def test_legacy_bad_dimensions_rejected(line, dims):
    """Oversized or non-positive dimensions fail before any table is allocated."""
    codec, blob, lines = _legacy_lines(SparseEncoder().initialize([8], [8], 2))
    lines[line] = dims

    with pytest.raises(FormatError):
        codec.decode(SerializedBlob(blob.format_tag, blob.version, b"\n".join(lines)))


@pytest.mark.parametrize("bad", [b"nan", b"inf", b"-inf", b"1.5", b"-0.25"])
def test_legacy_bad_permanence_rejected(bad):
    codec, blob, lines = _legacy_lines(SparseEncoder().initialize([8], [8], 2))
    assert lines[4].startswith(b"potentialPools")
    tokens = lines[6].split(b" ")
    tokens[1] = bad
    lines[6] = b" ".join(tokens)

    with pytest.raises(FormatError):
        codec.decode(SerializedBlob(blob.format_tag, blob.version, b"\n".join(lines)))


@pytest.mark.parametrize("offset", [1, 2, 3])
def test_legacy_non_finite_duty_cycle_rejected(offset):
    codec, blob, lines = _legacy_lines(trained_encoder(steps=3))
    row = lines.index(b"dutyCycles") + offset
    tokens = lines[row].split(b" ")
    tokens[1] = b"nan"
    lines[row] = b" ".join(tokens)

    with pytest.raises(FormatError, match="non-finite"):
        codec.decode(SerializedBlob(blob.format_tag, blob.version, b"\n".join(lines)))
