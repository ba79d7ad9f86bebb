#!/usr/bin/env python3
"""
codecbench CLI - Codec Equivalence Benchmark

Main entrypoint for the codecbench command-line tool.
"""

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from codecbench.cli.commands import bench, blob
from codecbench.logging_config import setup_logging

# Initialize Typer app
app = typer.Typer(
    name="codecbench",
    help="Codec equivalence and performance benchmark",
    add_completion=False,
)

# Console for rich output
console = Console()


@app.callback()
def configure(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="DEBUG, INFO, WARNING, ERROR (env: CODECBENCH_LOG_LEVEL)"
    ),
    log_format: Optional[str] = typer.Option(
        None, "--log-format", help="json or text (env: CODECBENCH_LOG_FORMAT)"
    ),
):
    """Codec equivalence and performance benchmark."""
    setup_logging(level=log_level, fmt=log_format)


# Benchmarks
app.command("run")(bench.run_command)
app.command("random")(bench.random_command)
app.command("encoder")(bench.encoder_command)

# Blob tools
app.command("inspect")(blob.inspect_command)
app.command("convert")(blob.convert_command)


@app.command()
def version():
    """Show version information."""
    from codecbench import __version__
    from codecbench.codec import available_codecs, get_codec

    table = Table(show_header=False, box=None)
    table.add_row("[bold]codecbench[/bold]", f"v{__version__}")
    for name in available_codecs():
        codec = get_codec(name)
        table.add_row(f"Codec {name}", f"{codec.format_tag.decode('ascii')} v{codec.version}")

    console.print(table)


def main():
    """Main entrypoint."""
    app()


if __name__ == "__main__":
    main()
