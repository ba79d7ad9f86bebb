"""
Benchmark commands: run, random, encoder
"""

import json
from typing import Callable, List, Optional

import typer
from pydantic import ValidationError as ConfigError
from rich.console import Console
from rich.table import Table

from codecbench.codec import available_codecs
from codecbench.config import BenchConfig
from codecbench.core.errors import CodecBenchError, ValidationError
from codecbench.harness.scenarios import (
    ScenarioResult,
    random_stream_scenario,
    sparse_encoder_scenario,
)

console = Console()

Scenario = Callable[[BenchConfig], ScenarioResult]

STORE_OPTION = typer.Option(None, "--store", help="Persistence medium: file or memory")
JSON_OPTION = typer.Option(False, "--json", help="Output as JSON")


def _load_config(**overrides) -> BenchConfig:
    try:
        return BenchConfig.from_env(**overrides)
    except ConfigError as e:
        console.print(f"[red]Invalid configuration:[/red] {e}")
        raise typer.Exit(2)


def _print_result(result: ScenarioResult) -> None:
    if result.name.startswith("random-"):
        console.print(f"Stream time ({result.name}): {result.elapsed_ms:.3f} ms")
        return
    for codec, ms in result.codec_ms.items():
        console.print(
            f"Time for {codec} codec: {ms:.3f} ms "
            f"(mean {result.codec_mean_us[codec]:.1f} us/trial)"
        )
    console.print(f"Total time ({result.name}): {result.elapsed_ms:.3f} ms")


def _summary_table(results: List[ScenarioResult]) -> Table:
    table = Table(title="Benchmark Summary")
    table.add_column("Scenario", style="green")
    table.add_column("Iterations", style="cyan", justify="right")
    table.add_column("Elapsed (ms)", style="yellow", justify="right")
    for r in results:
        table.add_row(r.name, str(r.iterations), f"{r.elapsed_ms:.3f}")
    return table


def _run(scenarios: List[Scenario], config: BenchConfig, json_output: bool) -> None:
    """
    Run scenarios in order, stopping at the first failure.

    Exit codes: 0 success, 1 correctness failure, 2 any other error.
    """
    results: List[ScenarioResult] = []
    try:
        for scenario in scenarios:
            result = scenario(config)
            results.append(result)
            if not json_output:
                _print_result(result)
    except ValidationError as e:
        if json_output:
            print(json.dumps({"success": False, **e.to_dict()}))
        else:
            console.print(f"[red]✗ Equivalence failed:[/red] {e}")
            console.print(f"  Trial: [cyan]{e.trial}[/cyan]  Codec: [cyan]{e.codec}[/cyan]")
            console.print(f"  Differing positions: {e.positions[:20]}")
            console.print(f"  Expected: {e.expected[:20]}")
            console.print(f"  Actual:   {e.actual[:20]}")
        raise typer.Exit(1)
    except CodecBenchError as e:
        if json_output:
            print(json.dumps({"success": False, "error": str(e)}))
        else:
            console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2)

    if json_output:
        print(json.dumps({"success": True, "results": [r.to_dict() for r in results]}, indent=2))
    else:
        console.print(_summary_table(results))
        console.print("[green]✓ All round trips equivalent[/green]")


def run_command(
    store: Optional[str] = STORE_OPTION,
    iterations: Optional[int] = typer.Option(
        None, "--iterations", "-n", help="Random-stream iterations (default 1000)"
    ),
    warmup: Optional[int] = typer.Option(None, "--warmup", help="Encoder learning warmup steps"),
    trials: Optional[int] = typer.Option(None, "--trials", "-t", help="Encoder trials"),
    learn: Optional[bool] = typer.Option(
        None, "--learn/--no-learn", help="Learn during encoder trials"
    ),
    json_output: bool = JSON_OPTION,
):
    """
    Run all three benchmarks in order.

    (a) random stream / schema codec, (b) random stream / legacy codec,
    (c) sparse encoder equivalence + performance.

    Examples:
        codecbench run
        codecbench run --store memory --trials 10
        codecbench run --json
    """
    config = _load_config(
        store=store,
        random_iterations=iterations,
        warmup=warmup,
        trials=trials,
        learn_during_trials=learn,
    )
    _run(
        [
            lambda c: random_stream_scenario("schema", c),
            lambda c: random_stream_scenario("legacy", c),
            sparse_encoder_scenario,
        ],
        config,
        json_output,
    )


def random_command(
    codec: str = typer.Option("schema", "--codec", "-c", help="Codec: schema or legacy"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Random seed (default 7)"),
    iterations: Optional[int] = typer.Option(None, "--iterations", "-n", help="Iterations"),
    store: Optional[str] = STORE_OPTION,
    json_output: bool = JSON_OPTION,
):
    """
    Random-stream round-trip benchmark for a single codec.

    Examples:
        codecbench random --codec legacy
    """
    if codec not in available_codecs():
        console.print(f"[red]Unknown codec:[/red] {codec} (choose from {available_codecs()})")
        raise typer.Exit(2)
    config = _load_config(store=store, random_seed=seed, random_iterations=iterations)
    _run([lambda c: random_stream_scenario(codec, c)], config, json_output)


def encoder_command(
    warmup: Optional[int] = typer.Option(None, "--warmup", help="Learning warmup steps"),
    trials: Optional[int] = typer.Option(None, "--trials", "-t", help="Trials"),
    size: Optional[int] = typer.Option(None, "--size", help="Input and output size"),
    k: Optional[int] = typer.Option(None, "--k", help="Active outputs per compute"),
    learn: Optional[bool] = typer.Option(None, "--learn/--no-learn", help="Learn during trials"),
    store: Optional[str] = STORE_OPTION,
    json_output: bool = JSON_OPTION,
):
    """
    Sparse-encoder equivalence + performance benchmark.

    Examples:
        codecbench encoder --warmup 1000 --trials 20
    """
    config = _load_config(
        store=store,
        warmup=warmup,
        trials=trials,
        input_size=size,
        output_size=size,
        k=k,
        learn_during_trials=learn,
    )
    _run([sparse_encoder_scenario], config, json_output)
