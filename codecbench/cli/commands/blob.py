"""
Blob commands: inspect, convert
"""

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from codecbench.codec import available_codecs, decode_any, get_codec, inspect_blob
from codecbench.core.errors import FormatError

console = Console()


def _read(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except FileNotFoundError:
        console.print(f"[red]Error: Blob file not found:[/red] {path}")
        raise typer.Exit(2)


def inspect_command(
    path: Path = typer.Argument(..., help="Encoded blob file"),
    decode: bool = typer.Option(False, "--decode", "-d", help="Also decode the payload"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Show the header of an encoded blob and optionally decode it.

    Examples:
        codecbench inspect state.blob
        codecbench inspect state.blob --decode
    """
    data = _read(path)
    try:
        info = inspect_blob(data)
        component = decode_any(data) if decode else None
    except FormatError as e:
        if json_output:
            print(json.dumps({"valid": False, "error": str(e)}))
        else:
            console.print(f"[red]✗ Invalid blob:[/red] {e}")
        raise typer.Exit(2)

    if json_output:
        output = {
            "valid": True,
            "format_tag": info.format_tag,
            "version": info.version,
            "declared_length": info.declared_length,
            "actual_length": info.actual_length,
            "codec": info.codec,
        }
        if component is not None:
            output["component"] = repr(component)
        print(json.dumps(output, indent=2))
        return

    table = Table(title=str(path), show_header=False)
    table.add_row("Format tag", info.format_tag)
    table.add_row("Version", str(info.version))
    table.add_row("Codec", info.codec or "[red]unknown[/red]")
    table.add_row("Payload", f"{info.actual_length} / {info.declared_length} bytes")
    console.print(table)
    if component is not None:
        console.print(f"[green]✓ Decoded:[/green] {component!r}")


def convert_command(
    source: Path = typer.Argument(..., help="Blob written by any codec"),
    dest: Path = typer.Argument(..., help="Output blob file"),
    to: str = typer.Option("schema", "--to", help="Target codec"),
):
    """
    Re-encode a blob with another codec (e.g. migrate legacy state to schema).

    Examples:
        codecbench convert old.blob new.blob --to schema
    """
    if to not in available_codecs():
        console.print(f"[red]Unknown codec:[/red] {to} (choose from {available_codecs()})")
        raise typer.Exit(2)
    data = _read(source)
    try:
        component = decode_any(data)
    except FormatError as e:
        console.print(f"[red]✗ Invalid blob:[/red] {e}")
        raise typer.Exit(2)

    dest.write_bytes(component.encode(get_codec(to)))
    console.print(f"[green]✓ Wrote {to} blob:[/green] {dest}")
