"""Thin CLI wrapper for ligrust_build.

This module provides the command-line interface using Typer.
All build logic is delegated to the orchestrator.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Annotated, Any

import typer
from pydantic import ValidationError
from rich.console import Console

from ligrust_build import __version__
from ligrust_build.artifacts import InstallError
from ligrust_build.config import Settings, get_settings, print_settings_json
from ligrust_build.orchestrator import Orchestrator, UnknownTargetError
from ligrust_build.signals import interrupt_on_sigterm
from ligrust_build.toolchain import ToolchainError

app = typer.Typer(
    name="ligrust-build",
    help="ligrust build orchestrator - build, test and install the ligrust binary",
    no_args_is_help=True,
)
console = Console()

EXIT_INTERRUPTED = 130


def toolchain_exit_code(exit_code: int | None) -> int:
    """Map a toolchain return code to this process's exit status.

    A child killed by signal N reports -N; the shell convention is 128+N.
    """
    if exit_code is None or exit_code == 0:
        return 1
    if exit_code < 0:
        return 128 - exit_code
    return exit_code


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"ligrust-build version {__version__}")
        raise typer.Exit()


def configure_logging(level: str) -> None:
    """Configure root logging to stderr."""
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    project_dir: Annotated[
        Path | None,
        typer.Option("--project-dir", "-C", help="Crate root (default: .)"),
    ] = None,
    destdir: Annotated[
        str | None,
        typer.Option("--destdir", help="Staging root prepended to the install path"),
    ] = None,
    prefix: Annotated[
        str | None,
        typer.Option("--prefix", help="Installation prefix (default: /usr/local)"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """ligrust build orchestrator - build, test and install the ligrust binary."""
    overrides: dict[str, Any] = {}
    if project_dir is not None:
        overrides["project_dir"] = project_dir
    if destdir is not None:
        overrides["destdir"] = destdir
    if prefix is not None:
        overrides["prefix"] = prefix
    if verbose:
        overrides["log_level"] = "DEBUG"
    ctx.obj = overrides

    try:
        settings = _settings(ctx)
    except ValidationError as e:
        console.print("[red]Invalid configuration:[/red]")
        console.print(str(e), markup=False)
        raise typer.Exit(code=1) from None
    configure_logging(settings.log_level)


def _settings(ctx: typer.Context) -> Settings:
    """Return settings with CLI overrides applied."""
    settings = get_settings()
    overrides = ctx.obj or {}
    if overrides:
        settings = settings.model_copy(update=overrides)
    return settings


def _execute(ctx: typer.Context, targets: list[str]) -> None:
    """Run targets in sequence and map failures to exit codes."""
    orchestrator = Orchestrator.from_settings(_settings(ctx))

    try:
        with interrupt_on_sigterm():
            results = orchestrator.run_many(targets)
    except ToolchainError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=toolchain_exit_code(e.exit_code)) from None
    except InstallError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from None
    except UnknownTargetError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from None
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted[/yellow]")
        raise typer.Exit(code=EXIT_INTERRUPTED) from None

    for result in results:
        console.print(f"[green]✓[/green] {result.message}")


@app.command("all")
def all_(ctx: typer.Context) -> None:
    """Build the release binary (same as build)."""
    _execute(ctx, ["all"])


@app.command()
def build(ctx: typer.Context) -> None:
    """Build the release binary if any input changed."""
    _execute(ctx, ["build"])


@app.command()
def check(ctx: typer.Context) -> None:
    """Build the debug binary if any input changed."""
    _execute(ctx, ["check"])


@app.command()
def install(ctx: typer.Context) -> None:
    """Build, then install the release binary to DESTDIR/PREFIX/bin."""
    _execute(ctx, ["install"])


@app.command()
def uninstall(ctx: typer.Context) -> None:
    """Remove the installed binary. Succeeds if it is already gone."""
    _execute(ctx, ["uninstall"])


@app.command("test")
def run_tests(ctx: typer.Context) -> None:
    """Run the test suite across all workspace members, targets and features."""
    _execute(ctx, ["test"])


@app.command()
def clean(ctx: typer.Context) -> None:
    """Remove build output via cargo clean."""
    _execute(ctx, ["clean"])


@app.command("run")
def run_targets(
    ctx: typer.Context,
    targets: Annotated[
        list[str],
        typer.Argument(help="Targets to run in order (all, build, check, ...)"),
    ],
) -> None:
    """Run several targets in order, stopping at the first failure."""
    _execute(ctx, targets)


@app.command()
def status(
    ctx: typer.Context,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show whether the debug and release binaries are up to date."""
    orchestrator = Orchestrator.from_settings(_settings(ctx))
    report = orchestrator.status()

    if json_output:
        typer.echo(json.dumps(report, indent=2))
        return

    console.print("[bold]Artifacts:[/bold]")
    for profile in ("debug", "release"):
        entry = report[profile]
        color = "green" if entry["state"] == "current" else "yellow"
        console.print(f"  {profile:<8} [{color}]{entry['state']}[/{color}]  {entry['path']}")
    installed = report["installed"]
    marker = "present" if installed["present"] else "absent"
    console.print(f"  {'install':<8} {marker}  {installed['path']}")
    console.print(f"Inputs tracked: {report['inputs']}")


@app.command()
def config(
    ctx: typer.Context,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = _settings(ctx)
    if json_output:
        typer.echo(print_settings_json(settings))
        return

    install_config = settings.install_config()
    console.print("[bold]Effective Configuration:[/bold]")
    console.print()
    console.print("[bold]Install:[/bold]")
    console.print(f"  DESTDIR:             {settings.destdir or '(empty)'}")
    console.print(f"  PREFIX:              {settings.prefix}")
    console.print(f"  Install path:        {install_config.path}")
    console.print(f"  Install mode:        {oct(settings.install_mode)}")
    console.print()
    console.print("[bold]Project:[/bold]")
    console.print(f"  Project directory:   {settings.project_dir}")
    console.print(f"  Binary name:         {settings.app_name}")
    console.print(f"  Source directory:    {settings.source_dir}")
    console.print(f"  Manifest:            {settings.manifest_name}")
    console.print(f"  Lock file:           {settings.lock_name}")
    console.print(f"  Target directory:    {settings.target_dir}")
    console.print()
    console.print("[bold]Toolchain:[/bold]")
    console.print(f"  Cargo:               {settings.cargo}")
    console.print(f"  Release RUSTFLAGS:   {settings.release_rustflags}")
    console.print(f"  Log level:           {settings.log_level}")


__all__ = ["app"]
