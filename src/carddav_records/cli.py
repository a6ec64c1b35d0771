from __future__ import annotations

import base64
import binascii
import json
import logging
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .config import load_settings, resolve_db_path
from .convert import DataConverter
from .exporter import export_vcards, serialize_cards
from .io import collect_vcf_files, read_vcards, read_vcards_from_files
from .labels import LabelRegistry
from .model import Record
from .photo import DelayedPhotoLoader
from .store import SQLiteRowStore, StoreError

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="carddav-records: convert vCards to address book records and back.",
)
console = Console()


# ── Shared setup ───────────────────────────────────────────────────────────────

def _setup_logging(level: str) -> None:
    logger = logging.getLogger("carddav_records")
    logger.handlers.clear()
    logger.addHandler(RichHandler(console=Console(stderr=True), show_path=False))
    logger.setLevel(getattr(logging, level.upper(), logging.WARNING))


def _open_converter(abook: str | None, db: Path | None, verbose: bool) -> tuple[DataConverter, SQLiteRowStore]:
    settings = load_settings()
    _setup_logging("DEBUG" if verbose else settings.log_level)
    store = SQLiteRowStore(db or resolve_db_path(settings))
    try:
        converter = DataConverter(abook or settings.abook_id, store)
    except StoreError as e:
        console.print(f"[bold red]Cannot read custom labels:[/bold red] {e}")
        raise typer.Exit(code=2)
    return converter, store


def _jsonable(record: Record) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in record.items():
        if isinstance(value, DelayedPhotoLoader):
            value = "<deferred photo>"
        elif isinstance(value, bytes):
            value = base64.b64encode(value).decode("ascii")
        out[key] = value
    return out


def _format_value(value: Any) -> str:
    if isinstance(value, list):
        return "\n".join(_format_value(v) for v in value)
    if isinstance(value, dict):
        return ", ".join(f"{k}={v}" for k, v in value.items())
    if isinstance(value, DelayedPhotoLoader):
        return "[dim]<deferred photo>[/dim]"
    return str(value)


# ── `records` command ──────────────────────────────────────────────────────────

@app.command()
def records(
    files: list[Path] = typer.Argument(..., help=".vcf files or folders containing them"),
    abook: str | None = typer.Option(None, "--abook", "-a", help="Address book id. Falls back to local/carddav.conf."),
    db: Path | None = typer.Option(None, "--db", help="Custom label database. Falls back to local/carddav.conf."),
    json_out: Path | None = typer.Option(None, "--json", help="Write the records as JSON to this file"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Convert vCards into address book records."""
    paths = collect_vcf_files(files)
    if not paths:
        console.print("[bold red]No .vcf files found.[/bold red]")
        raise typer.Exit(code=2)

    converter, store = _open_converter(abook, db, verbose)
    try:
        pairs = read_vcards_from_files(paths)
        results = [(converter.to_record(vc), label) for vc, label in pairs]
    except StoreError as e:
        console.print(f"[bold red]Failed to store a custom label:[/bold red] {e}")
        raise typer.Exit(code=2)
    finally:
        store.close()

    if json_out is not None:
        json_out.parent.mkdir(parents=True, exist_ok=True)
        json_out.write_text(
            json.dumps([_jsonable(r) for r, _ in results], indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
        console.print(f"[bold green]✓ Wrote {len(results)} record(s) → {json_out}[/bold green]")
        return

    for record, label in results:
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column("Field", style="bold")
        table.add_column("Value")
        for key in sorted(record):
            table.add_row(key, _format_value(record[key]))
        console.print(Panel(table, title=record.get("name", ""), subtitle=label, border_style="cyan"))


# ── `card` command ─────────────────────────────────────────────────────────────

@app.command()
def card(
    record_file: Path = typer.Argument(..., help="JSON file holding one record"),
    base: Path | None = typer.Option(None, "--base", "-b", help="Existing .vcf to update (first card is used)"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the vCard here instead of stdout"),
    abook: str | None = typer.Option(None, "--abook", "-a"),
    db: Path | None = typer.Option(None, "--db"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Build a vCard from a JSON record, optionally updating an existing card."""
    try:
        record = json.loads(record_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[bold red]Cannot read record:[/bold red] {e}")
        raise typer.Exit(code=2)
    if not isinstance(record, dict):
        console.print("[bold red]The record must be a JSON object.[/bold red]")
        raise typer.Exit(code=2)

    if isinstance(record.get("photo"), str) and record["photo"]:
        try:
            record["photo"] = base64.b64decode(record["photo"], validate=True)
        except binascii.Error:
            console.print("[bold red]photo must be base64 encoded.[/bold red]")
            raise typer.Exit(code=2)

    existing = None
    if base is not None:
        found = read_vcards(base.read_text(encoding="utf-8", errors="replace"), base.stem)
        if not found:
            console.print(f"[bold red]No vCard found in {base}[/bold red]")
            raise typer.Exit(code=2)
        existing = found[0]

    converter, store = _open_converter(abook, db, verbose)
    try:
        vc = converter.from_record(record, existing)
    except StoreError as e:
        console.print(f"[bold red]Failed to store a custom label:[/bold red] {e}")
        raise typer.Exit(code=2)
    finally:
        store.close()

    if output is None:
        typer.echo(serialize_cards([vc]), nl=False)
    else:
        export_vcards([vc], output)
        console.print(f"[bold green]✓ Wrote vCard → {output}[/bold green]")


# ── `labels` command ───────────────────────────────────────────────────────────

@app.command()
def labels(
    abook: str | None = typer.Option(None, "--abook", "-a"),
    db: Path | None = typer.Option(None, "--db"),
    purge: bool = typer.Option(False, "--purge", help="Forget all custom labels of the address book"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """List the custom labels known for an address book."""
    converter, store = _open_converter(abook, db, verbose)
    registry: LabelRegistry = converter.labels
    try:
        if purge:
            n = registry.purge()
            console.print(f"[yellow]Removed {n} custom label(s) of {registry.abook_id}.[/yellow]")
            return

        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
        table.add_column("Field")
        table.add_column("Custom labels")
        for field, spec in converter.coltypes().items():
            custom = converter.catalog.custom_subtypes(field) if "subtypes" in spec else []
            if custom:
                table.add_row(field, ", ".join(custom))
        if table.row_count:
            console.print(table)
        else:
            console.print(f"[dim]No custom labels for {registry.abook_id}.[/dim]")
    finally:
        store.close()


if __name__ == "__main__":
    app()
