#!/usr/bin/env python3
"""
Variable Map Engine CLI

Rich-based CLI for checking a variable map file: which configurations load,
what they show, the order their equations and modules run in, and the
declared bindings.
"""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from varmap_engine.engine import ResolutionEngine
from varmap_engine.exceptions import VarmapError
from varmap_engine.loader import StaticData
from varmap_engine.logger import get_logger
from varmap_engine.settings import VarmapSettings

from .utils.config_helpers import load_data, resolve_settings

# Initialize Rich console
console = Console()

# Main app
app = typer.Typer(
    name="varmap",
    help="Variable Map Engine CLI - inspect and resolve configuration variable bindings",
    rich_markup_mode="rich",
    no_args_is_help=True,
    add_completion=False,
)


def version_callback(value: bool):
    if value:
        from varmap_cli import __version__
        console.print(f"Variable Map Engine v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version information"
    ),
):
    """
    [bold blue]Variable Map Engine CLI[/bold blue]

    Loads the declarative variable map and reports on its configurations.

    [dim]Examples:[/dim]
        varmap validate                                # Check every configuration loads
        varmap configs                                 # List configurations
        varmap plan "Biopower-LCOE Calculator"         # Show evaluation order
        varmap export --output bindings.txt            # Dump all bindings
    """
    pass


def _setup(data: Optional[str], settings_file: Optional[str], verbose: bool) -> tuple[VarmapSettings, StaticData]:
    """Load settings and data, exiting with a message when either fails."""
    try:
        settings = resolve_settings(settings_file)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"❌ [red]Invalid settings:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    if verbose or settings.json_logs:
        get_logger(
            log_level="DEBUG" if verbose else settings.log_level,
            log_dir=settings.log_dir,
            json_logs=settings.json_logs,
        )

    try:
        static_data = load_data(data, settings)
    except FileNotFoundError as e:
        console.print(f"❌ [red]{escape(str(e))}[/red]")
        raise typer.Exit(1)
    except VarmapError as e:
        console.print("❌ [red]Variable map could not be loaded[/red]")
        typer.echo(e.format_diagnostic_message())
        raise typer.Exit(1)
    return settings, static_data


DATA_OPTION = typer.Option(None, "--data", "-d", help="Path to the variable map YAML")
SETTINGS_OPTION = typer.Option(None, "--settings", "-s", help="Path to engine settings YAML")
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Show debug logging")


@app.command("validate")
def validate(
    data: Optional[str] = DATA_OPTION,
    settings_file: Optional[str] = SETTINGS_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """✅ Load the variable map and report rejected configurations."""
    _, static_data = _setup(data, settings_file, verbose)
    report = static_data.report

    table = Table(show_header=True, header_style="bold blue")
    table.add_column("Configuration")
    table.add_column("Status", justify="center")
    table.add_column("Detail", style="dim")

    for name in report.loaded:
        uncovered = report.uncovered_inputs.get(name)
        detail = f"no source for: {', '.join(uncovered)}" if uncovered else ""
        table.add_row(escape(name), "✅ Loaded", escape(detail))
    for name, error in sorted(report.rejected.items()):
        table.add_row(escape(name), "❌ Rejected", escape(error.message))

    console.print(table)
    console.print(
        f"📊 {len(report.loaded)} loaded, {len(report.rejected)} rejected, "
        f"{report.variables} variables"
    )

    if not report.ok:
        raise typer.Exit(1)
    console.print("✅ [green]All configurations loaded[/green]")


@app.command("configs")
def configs(
    data: Optional[str] = DATA_OPTION,
    settings_file: Optional[str] = SETTINGS_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """📋 List configurations with their forms and modules."""
    _, static_data = _setup(data, settings_file, verbose)
    store = static_data.store

    if not len(store):
        console.print("❌ [yellow]No configurations loaded[/yellow]")
        return

    table = Table(show_header=True, header_style="bold blue")
    table.add_column("Configuration")
    table.add_column("Forms", justify="right")
    table.add_column("Primary")
    table.add_column("Secondary")
    table.add_column("Equations", justify="right")

    for configuration in store:
        bindings = configuration.bindings
        table.add_row(
            escape(configuration.name),
            str(len(configuration.ui_forms())),
            escape(", ".join(configuration.primary_modules)),
            escape(", ".join(configuration.secondary_modules)),
            str(len(bindings.equations)),
        )

    console.print(table)


@app.command("plan")
def plan(
    config_name: str = typer.Argument(..., help="Configuration name"),
    data: Optional[str] = DATA_OPTION,
    settings_file: Optional[str] = SETTINGS_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """🔗 Show the evaluation order of a configuration."""
    settings, static_data = _setup(data, settings_file, verbose)
    engine = ResolutionEngine(static_data.catalog, static_data.store, settings=settings)

    try:
        resolution = engine.plan(config_name)
    except VarmapError as e:
        console.print(f"❌ [red]{escape(config_name)} cannot be resolved[/red]")
        typer.echo(e.format_diagnostic_message())
        raise typer.Exit(1)

    console.print(f"🔗 [bold blue]{escape(config_name)}[/bold blue]: {len(resolution.order)} invocations")

    table = Table(show_header=True, header_style="bold blue")
    table.add_column("#", justify="right")
    table.add_column("Invocation")
    table.add_column("Inputs", style="dim")
    table.add_column("Outputs")

    for position, inv in enumerate(resolution.order, 1):
        table.add_row(
            str(position),
            escape(inv.id),
            escape(", ".join(inv.inputs)),
            escape(", ".join(inv.outputs)),
        )

    console.print(table)
    console.print(f"Primary inputs: {escape(', '.join(resolution.sinks))}")


@app.command("export")
def export(
    config_name: Optional[str] = typer.Argument(None, help="Configuration name; all when omitted"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Write to a file instead of stdout"),
    data: Optional[str] = DATA_OPTION,
    settings_file: Optional[str] = SETTINGS_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """📤 Export declared bindings as text."""
    settings, static_data = _setup(data, settings_file, verbose)
    engine = ResolutionEngine(static_data.catalog, static_data.store, settings=settings)

    try:
        text = engine.export_bindings(config_name)
    except VarmapError as e:
        console.print(f"❌ [red]{escape(e.message)}[/red]")
        raise typer.Exit(1)

    if output:
        with open(output, "w") as fh:
            fh.write(text)
        console.print(f"✅ [green]Bindings written to {escape(output)}[/green]")
    else:
        typer.echo(text, nl=False)


if __name__ == "__main__":
    app()
