"""CLI entry point for diagrammatic."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table

from diagrammatic.config import (
    DOT_FORMATS,
    LAYOUT_ENGINES,
    MERMAID_FORMATS,
    MERMAID_THEMES,
    DiagrammaticConfig,
    load_config,
)
from diagrammatic.config.loader import DEFAULT_CONFIG_TEMPLATE, PROJECT_CONFIG
from diagrammatic.errors import DocumentIOError
from diagrammatic.extract import DiagramKind
from diagrammatic.processor import (
    DocumentProcessor,
    ProcessOptions,
    ProcessResult,
    expand_documents,
    find_missing_assets,
)

app = typer.Typer(
    name="diagrammatic",
    help="Render DOT and Mermaid diagrams embedded in documents, keeping their source editable.",
    no_args_is_help=True,
)

config_app = typer.Typer(help="Manage diagrammatic configuration.")
app.add_typer(config_app, name="config")

console = Console()
err_console = Console(stderr=True)

_LOG_LEVELS = {"debug": logging.DEBUG, "info": logging.INFO, "warn": logging.WARNING, "error": logging.ERROR}

# Global state
_config: DiagrammaticConfig | None = None


def _get_config() -> DiagrammaticConfig:
    if _config is None:
        return load_config()
    return _config


def _fail(message: str) -> typer.Exit:
    err_console.print(f"[red]Error:[/red] {message}", soft_wrap=True)
    return typer.Exit(1)


@app.callback()
def main(
    config: Annotated[
        str | None, typer.Option("--config", "-c", help="Path to diagrammatic.yaml")
    ] = None,
) -> None:
    """Global options."""
    global _config
    try:
        _config = load_config(config)
    except ValueError as e:
        raise _fail(str(e))


def _setup_logging(level: str, verbose: bool) -> None:
    """Send diagrammatic's log records to stderr through Rich."""
    logger = logging.getLogger("diagrammatic")
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)
    handler = RichHandler(console=err_console, show_path=False, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else _LOG_LEVELS[level])


def _check_choice(label: str, value: str | None, allowed: tuple[str, ...]) -> None:
    if value is not None and value not in allowed:
        raise _fail(f"Invalid {label} '{value}'. Valid options: {', '.join(allowed)}")


def _is_pattern(document: str) -> bool:
    return any(c in document for c in "*?[")


def _emit(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2))


def _run(
    kind: DiagramKind,
    document: str,
    option: str | None,
    fmt: str | None,
    output: str | None,
    dry_run: bool,
    verbose: bool,
) -> None:
    cfg = _get_config()
    _setup_logging(cfg.log_level, verbose)

    options = ProcessOptions(kind=kind, option=option, format=fmt, output_dir=output, dry_run=dry_run)
    processor = DocumentProcessor(cfg)

    if not _is_pattern(document):
        try:
            result = asyncio.run(processor.process(document, options))
        except DocumentIOError as e:
            raise _fail(str(e))
        _emit(result.to_json_dict())
        return

    paths = expand_documents(document)
    if not paths:
        raise _fail(f"No documents match {document!r}")
    results: list[ProcessResult] = asyncio.run(processor.process_many(paths, options))
    _emit([r.to_json_dict() for r in results])
    failed = [r for r in results if r.failed]
    if failed:
        err_console.print(f"[red]{len(failed)} of {len(results)} document(s) failed[/red]")
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Render commands
# ---------------------------------------------------------------------------


@app.command()
def dot(
    document: str = typer.Argument(..., help="Document path or glob pattern (quote globs)"),
    layout: str | None = typer.Option(
        None, "--layout", help=f"Override layout engine: {' | '.join(LAYOUT_ENGINES)}"
    ),
    fmt: str | None = typer.Option(None, "--format", help=f"Output format: {' | '.join(DOT_FORMATS)}"),
    output: str | None = typer.Option(None, "--output", help="Directory for rendered images"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be rendered, write nothing"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging on stderr"),
) -> None:
    """Render DOT/Graphviz diagrams in a document."""
    _check_choice("layout engine", layout, LAYOUT_ENGINES)
    _check_choice("format", fmt, DOT_FORMATS)
    _run(DiagramKind.dot, document, layout, fmt, output, dry_run, verbose)


@app.command()
def mermaid(
    document: str = typer.Argument(..., help="Document path or glob pattern (quote globs)"),
    theme: str | None = typer.Option(
        None, "--theme", help=f"Mermaid theme: {' | '.join(MERMAID_THEMES)}"
    ),
    fmt: str | None = typer.Option(None, "--format", help=f"Output format: {' | '.join(MERMAID_FORMATS)}"),
    output: str | None = typer.Option(None, "--output", help="Directory for rendered images"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be rendered, write nothing"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging on stderr"),
) -> None:
    """Render Mermaid diagrams in a document."""
    _check_choice("theme", theme, MERMAID_THEMES)
    _check_choice("format", fmt, MERMAID_FORMATS)
    _run(DiagramKind.mermaid, document, theme, fmt, output, dry_run, verbose)


@app.command()
def status(
    document: str = typer.Argument(..., help="Document path"),
) -> None:
    """Show fresh and already-rendered diagrams in a document."""
    cfg = _get_config()
    _setup_logging(cfg.log_level, verbose=False)
    processor = DocumentProcessor(cfg)

    table = Table(title=f"Diagrams in {Path(document).name}")
    table.add_column("Kind", style="cyan")
    table.add_column("State")
    table.add_column("Name", style="green")
    table.add_column("Image")
    table.add_column("Option", style="yellow")

    missing_total = 0
    for kind in DiagramKind:
        try:
            doc = processor.load(document, kind)
        except DocumentIOError as e:
            raise _fail(str(e))
        missing = {r.image_path for r in find_missing_assets(doc)}
        missing_total += len(missing)
        for job in processor.plan_jobs(doc, ProcessOptions(kind=kind)):
            if job.fresh:
                state = "[blue]fresh[/blue]"
            elif job.relative_path in missing:
                state = "[red]missing image[/red]"
            else:
                state = "rendered"
            table.add_row(kind.value, state, job.name, job.relative_path, job.request.option)

    if table.row_count == 0:
        console.print("[yellow]No diagrams found.[/yellow]")
        return
    console.print(table)
    if missing_total:
        err_console.print(f"[yellow]{missing_total} rendered diagram(s) reference a missing image[/yellow]")


# ---------------------------------------------------------------------------
# Config commands
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show() -> None:
    """Show current resolved configuration."""
    cfg = _get_config()
    console.print(Syntax(yaml.dump(cfg.model_dump(), default_flow_style=False), "yaml"))


@config_app.command("init")
def config_init(
    force: bool = typer.Option(False, "--force", help="Overwrite existing config"),
) -> None:
    """Create default diagrammatic.yaml in current directory."""
    target = PROJECT_CONFIG
    if target.exists() and not force:
        err_console.print("[yellow]diagrammatic.yaml already exists.[/yellow] Use --force to overwrite.")
        raise typer.Exit(1)
    target.write_text(DEFAULT_CONFIG_TEMPLATE)
    console.print(f"[green]Created[/green] {target}")


if __name__ == "__main__":
    app()
