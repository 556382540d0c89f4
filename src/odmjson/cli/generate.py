from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from odmjson.cli.renderers import (
    GenerateJsonRenderer,
    GeneratePlainRenderer,
    GenerateRichRenderer,
    run_events,
)
from odmjson.core.generate import generate_events

console = Console()


def generate(
    config: Path = typer.Option(
        Path("odmjson.yaml"),
        "--config",
        "-c",
        help="Path to odmjson.yaml.",
    ),
    project: Path = typer.Option(
        Path("."),
        "--project",
        "-p",
        help="Base directory for relative paths.",
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Override the definitions output file.",
    ),
    by_reference: bool | None = typer.Option(
        None,
        "--by-reference/--inline",
        help="Hoist embedded documents into named definitions instead of inlining them.",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Project models without writing the definitions file.",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Show stack traces for unexpected errors.",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Emit machine-readable JSON report.",
    ),
) -> None:
    """Project every configured model into a Swagger definitions document."""
    events = generate_events(
        project_dir=project,
        config_path=config,
        output_path=output,
        by_reference=by_reference,
        dry_run=dry_run,
    )
    if json_output:
        renderer = GenerateJsonRenderer(console)
    else:
        renderer = GenerateRichRenderer(console) if console.is_terminal else GeneratePlainRenderer(console)
    try:
        exit_code = run_events(events, renderer)
    except Exception as exc:  # noqa: BLE001
        if debug:
            raise
        console.print(f"[red]Unexpected error:[/red] {exc}")
        raise typer.Exit(code=2)
    raise typer.Exit(code=exit_code)
