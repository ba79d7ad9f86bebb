"""
Tests for the codecbench CLI.
"""

import json
import os
import tempfile

from typer.testing import CliRunner

from codecbench.cli.commands import bench
from codecbench.cli.main import app
from codecbench.codec import LegacyCodec, SchemaCodec, decode_any
from codecbench.core.errors import ValidationError
from codecbench.core.rng import RandomSource

runner = CliRunner()

SMALL_ENV = {
    "CODECBENCH_INPUT_SIZE": "64",
    "CODECBENCH_OUTPUT_SIZE": "64",
    "CODECBENCH_INPUT_WEIGHT": "16",
    "CODECBENCH_K": "8",
    "CODECBENCH_LOG_LEVEL": "ERROR",
}


def test_run_prints_each_benchmark():
    result = runner.invoke(
        app,
        ["run", "--store", "memory", "-n", "5", "--warmup", "10", "--trials", "3"],
        env=SMALL_ENV,
    )

    assert result.exit_code == 0, result.output
    assert "Stream time (random-schema)" in result.output
    assert "Stream time (random-legacy)" in result.output
    assert "Time for schema codec" in result.output
    assert "Time for legacy codec" in result.output


def test_run_json_output():
    result = runner.invoke(
        app,
        ["run", "--store", "file", "-n", "3", "--warmup", "5", "--trials", "2", "--json"],
        env=SMALL_ENV,
    )

    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["success"] is True
    assert [r["name"] for r in data["results"]] == [
        "random-schema",
        "random-legacy",
        "sparse-encoder",
    ]


def test_run_exits_nonzero_on_validation_failure(monkeypatch):
    def failing(codec_name, config):
        raise ValidationError("draws differ", trial=3, codec=codec_name, positions=[0])

    monkeypatch.setattr(bench, "random_stream_scenario", failing)
    result = runner.invoke(app, ["run", "--store", "memory", "--json"], env=SMALL_ENV)

    assert result.exit_code == 1
    data = json.loads(result.stdout)
    assert data["success"] is False
    assert data["trial"] == 3
    assert data["codec"] == "schema"


def test_invalid_config_exits_2():
    result = runner.invoke(app, ["run", "--store", "s3"], env=SMALL_ENV)
    assert result.exit_code == 2


def test_random_unknown_codec():
    result = runner.invoke(app, ["random", "--codec", "capnp"], env=SMALL_ENV)
    assert result.exit_code == 2


def test_random_single_codec():
    result = runner.invoke(
        app, ["random", "--codec", "legacy", "-n", "4", "--store", "memory"], env=SMALL_ENV
    )

    assert result.exit_code == 0, result.output
    assert "random-legacy" in result.output


def test_inspect_and_convert():
    with tempfile.TemporaryDirectory() as tmpdir:
        legacy_path = os.path.join(tmpdir, "random.blob")
        schema_path = os.path.join(tmpdir, "random-schema.blob")
        source = RandomSource(7)
        with open(legacy_path, "wb") as f:
            f.write(source.encode(LegacyCodec()))

        result = runner.invoke(app, ["inspect", legacy_path, "--json", "--decode"], env=SMALL_ENV)
        assert result.exit_code == 0, result.output
        info = json.loads(result.stdout)
        assert info["codec"] == "legacy"
        assert info["declared_length"] == info["actual_length"]

        result = runner.invoke(app, ["convert", legacy_path, schema_path], env=SMALL_ENV)
        assert result.exit_code == 0, result.output
        with open(schema_path, "rb") as f:
            converted = f.read()
        assert converted == source.encode(SchemaCodec())
        assert decode_any(converted) == source


def test_inspect_truncated_blob():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = os.path.join(tmpdir, "bad.blob")
        with open(path, "wb") as f:
            f.write(RandomSource(1).encode(SchemaCodec())[:-3])

        result = runner.invoke(app, ["inspect", path, "--decode"], env=SMALL_ENV)
        assert result.exit_code == 2


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert "codecbench" in result.output
