from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Annotated

import click
import typer
from rich.console import Console

from smellscope import __version__
from smellscope.audit import AuditResult, audit_path
from smellscope.config import ConfigError
from smellscope.engine.types import SmellWarning
from smellscope.logging_utils import configure_logging
from smellscope.reporters.json_reporter import render_json
from smellscope.reporters.terminal import render_terminal

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="smellscope: code smell detection for Python sources.",
)
console = Console()
err_console = Console(stderr=True)
logger = logging.getLogger(__name__)

EXIT_SMELLS_FOUND = 2


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def _main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Verbose logs (printed to stderr)."),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Only print the summary."),
    ] = False,
) -> None:
    """smellscope CLI."""

    if verbose and quiet:
        raise typer.BadParameter("Choose at most one: --verbose or --quiet.")
    configure_logging(verbose=verbose, quiet=quiet)
    ctx.obj = {"verbose": verbose, "quiet": quiet}


def _cli_settings(ctx: click.Context) -> dict[str, bool]:
    # The root callback stores the global flags on the outermost context.
    obj = ctx.find_root().obj
    if not isinstance(obj, dict):
        return {"verbose": False, "quiet": False}
    return {"verbose": bool(obj.get("verbose", False)), "quiet": bool(obj.get("quiet", False))}


def _emit_output(fmt: str, *, warnings: tuple[SmellWarning, ...], files_analyzed: int, show_details: bool) -> None:
    normalized = fmt.strip().lower()
    if normalized == "terminal":
        render_terminal(warnings, files_analyzed=files_analyzed, console=console, show_details=show_details)
        return
    if normalized == "json":
        typer.echo(render_json(warnings, files_analyzed=files_analyzed))
        return
    raise typer.BadParameter("Unsupported format. Use: terminal, json.")


def _run_audit(path: Path) -> AuditResult:
    try:
        return audit_path(path)
    except ConfigError as exc:
        err_console.print(f"Invalid configuration: {exc}")
        raise typer.Exit(code=1) from exc
    except RuntimeError as exc:
        err_console.print(str(exc))
        raise typer.Exit(code=1) from exc


@app.command()
def scan(
    ctx: typer.Context,
    path: Annotated[
        Path,
        typer.Argument(
            exists=True,
            file_okay=True,
            dir_okay=True,
            resolve_path=True,
            help="File or directory to analyze (default: current directory).",
        ),
    ] = Path("."),
    output_format: Annotated[
        str,
        typer.Option("--format", help="Output format: terminal, json.", show_default=True),
    ] = "terminal",
    fail: Annotated[
        bool,
        typer.Option("--fail/--no-fail", help=f"Exit with status {EXIT_SMELLS_FOUND} when smells are found."),
    ] = True,
) -> None:
    """Analyze Python sources and report code smells."""

    if output_format.strip().lower() not in {"terminal", "json"}:
        raise typer.BadParameter("Unsupported format. Use: terminal, json.")

    settings = _cli_settings(ctx)
    result = _run_audit(path)
    warnings = result.sessions.warnings()

    _emit_output(
        output_format,
        warnings=warnings,
        files_analyzed=result.files_analyzed,
        show_details=not settings["quiet"],
    )

    if fail and result.sessions.has_smells():
        raise typer.Exit(code=EXIT_SMELLS_FOUND)


@app.command()
def detectors(
    path: Annotated[
        Path,
        typer.Argument(
            exists=True,
            file_okay=False,
            dir_okay=True,
            resolve_path=True,
            help="Project directory whose plugins to load (default: current directory).",
        ),
    ] = Path("."),
    output_format: Annotated[
        str,
        typer.Option("--format", help="Output format: terminal, json.", show_default=True),
    ] = "terminal",
) -> None:
    """
    List available detectors (built-in + plugin detectors) with their defaults.
    """

    from rich.table import Table

    from smellscope.detectors.plugins import PluginLoadError, load_plugin_detectors
    from smellscope.detectors.registry import all_detectors, set_extra_detectors
    from smellscope.scanner import prepare_target

    target = prepare_target(path)
    try:
        plugin_detectors = load_plugin_detectors(target.config.plugins)
    except PluginLoadError as exc:
        err_console.print(f"Failed to load plugins: {exc}")
        raise typer.Exit(code=1) from exc
    set_extra_detectors(plugin_detectors)

    rows = []
    for cls in all_detectors():
        meta = cls.meta
        rows.append(
            {
                "detector_id": meta.detector_id,
                "category": meta.category,
                "contexts": list(meta.contexts),
                "description": meta.description,
                "options": {k: list(v) if isinstance(v, tuple) else v for k, v in meta.options.items()},
            }
        )

    normalized = output_format.strip().lower()
    if normalized == "json":
        typer.echo(json.dumps(rows, indent=2, sort_keys=True))
        return
    if normalized != "terminal":
        raise typer.BadParameter("Unsupported format. Use: terminal, json.")

    table = Table(title="smellscope detectors")
    table.add_column("ID", style="bold")
    table.add_column("Category")
    table.add_column("Contexts")
    table.add_column("Options")
    table.add_column("Description")
    for row in rows:
        options = ", ".join(f"{k}={v}" for k, v in row["options"].items()) or "-"
        table.add_row(
            str(row["detector_id"]),
            str(row["category"]),
            ", ".join(row["contexts"]),
            options,
            str(row["description"]),
        )
    console.print(table)
