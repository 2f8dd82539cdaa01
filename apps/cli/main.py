"""CLI application for Upkeep."""

import asyncio
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, NoReturn

import typer
from rich.console import Console

from upkeep.audit import AuditAnalyzer
from upkeep.config import Settings
from upkeep.dependabot import DependabotAnalyzer
from upkeep.deps import DepsAnalyzer
from upkeep.detect import detect_project
from upkeep.exec import CommandRunner
from upkeep.imports import ImportScanner
from upkeep.log import LogContext, resolve_level
from upkeep.models import DependabotError, DepsAnalysis, to_json
from upkeep.quality import QualityScorer
from upkeep.registry import RegistryClient
from upkeep.risk import RiskScorer

VERSION = "0.1.4"

console = Console(stderr=True)

app = typer.Typer(
    name="upkeep",
    help="Upkeep - A JS/TS repository maintenance toolkit",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)


@dataclass
class AppState:
    settings: Settings
    logs: LogContext

    def runner(self) -> CommandRunner:
        return CommandRunner(timeout=self.settings.command_timeout, logs=self.logs)


def emit(payload: Any) -> None:
    """Print one JSON document to stdout."""
    typer.echo(json.dumps(to_json(payload), indent=2))


def fail(state: AppState, command: str, exc: Exception, **extra: Any) -> NoReturn:
    """Report a failed command as JSON and exit with status 1."""
    state.logs.child("cli").error("Command {command} failed: {error}", command=command, error=str(exc))
    if state.settings.debug:
        console.print_exception()
    emit({"error": str(exc), **extra})
    raise typer.Exit(1)


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"upkeep v{VERSION}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose output (info level logging)"),
    log_level: str | None = typer.Option(
        None, "--log-level", help="Set log level (trace, debug, info, warn, error)"
    ),
    version: bool = typer.Option(
        False, "--version", "-v", callback=version_callback, is_eager=True, help="Show version"
    ),
) -> None:
    """Upkeep - Inspect JS/TS repositories for dependency health and quality."""
    settings = Settings.from_env()
    if verbose:
        settings.log_level = "info"
    if log_level is not None:
        try:
            resolve_level(log_level)
        except ValueError as exc:
            emit({"error": str(exc)})
            raise typer.Exit(1) from None
        settings.log_level = log_level.lower()

    logs = LogContext.from_settings(settings)
    ctx.obj = AppState(settings=settings, logs=logs)
    logs.child("cli").debug("CLI started", command=ctx.invoked_subcommand)

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@app.command()
def detect(ctx: typer.Context) -> None:
    """Detect project configuration."""
    state: AppState = ctx.obj
    try:
        result = detect_project(Path.cwd(), state.logs)
    except Exception as exc:
        fail(state, "detect", exc)
    emit(result)


def _outdated_view(result: DepsAnalysis) -> dict:
    return {
        "outdated": result.outdated,
        "major": result.major,
        "minor": result.minor,
        "patch": result.patch,
        "packages": result.packages,
    }


@app.command()
def deps(
    ctx: typer.Context,
    outdated: bool = typer.Option(False, "--outdated", help="Only show outdated packages"),
    security: bool = typer.Option(False, "--security", help="Include security audit"),
    _json_output: bool = typer.Option(True, "--json", help="Output as JSON (always on)"),
) -> None:
    """Analyze dependency health."""
    state: AppState = ctx.obj
    analyzer = DepsAnalyzer(state.runner(), state.logs)
    try:
        result = asyncio.run(analyzer.analyze(Path.cwd(), include_security=security))
    except Exception as exc:
        fail(state, "deps", exc)
    emit(_outdated_view(result) if outdated else result)


@app.command()
def audit(ctx: typer.Context) -> None:
    """Security-focused audit."""
    state: AppState = ctx.obj
    analyzer = AuditAnalyzer(state.runner(), state.logs)
    try:
        result = asyncio.run(analyzer.analyze(Path.cwd()))
    except Exception as exc:
        fail(state, "audit", exc)
    emit(result)


@app.command()
def quality(ctx: typer.Context) -> None:
    """Generate quality score."""
    state: AppState = ctx.obj
    scorer = QualityScorer(state.runner(), state.logs)
    try:
        report = asyncio.run(scorer.assess(Path.cwd()))
    except Exception as exc:
        fail(state, "quality", exc)
    emit(report)


@app.command()
def imports(
    ctx: typer.Context,
    package: str = typer.Argument(help="Name of the package to analyze"),
) -> None:
    """Analyze where a package is used."""
    state: AppState = ctx.obj
    try:
        analysis = ImportScanner(state.logs).scan(package, Path.cwd())
    except Exception as exc:
        fail(state, "imports", exc)
    emit(analysis)


@app.command()
def dependabot(ctx: typer.Context) -> None:
    """Fetch and analyze Dependabot PRs (requires an authenticated gh CLI)."""
    state: AppState = ctx.obj
    analyzer = DependabotAnalyzer(state.runner(), state.logs)
    try:
        result = asyncio.run(analyzer.analyze(Path.cwd()))
    except Exception as exc:
        fail(state, "dependabot", exc)

    if isinstance(result, DependabotError):
        emit({"error": result.message, "type": result.type})
        raise typer.Exit(1)
    emit(result)


@app.command()
def risk(
    ctx: typer.Context,
    package: str = typer.Argument(help="Name of the package to assess"),
    from_version: str | None = typer.Option(
        None, "--from", help="Current version (auto-detected if not specified)"
    ),
    to_version: str | None = typer.Option(
        None, "--to", help="Target version (latest if not specified)"
    ),
) -> None:
    """Assess upgrade risk for a package."""
    state: AppState = ctx.obj
    runner = state.runner()
    registry = RegistryClient(
        runner,
        registry_url=state.settings.registry_url,
        timeout=state.settings.command_timeout,
        logs=state.logs,
    )
    scorer = RiskScorer(registry, ImportScanner(state.logs), state.logs)
    try:
        assessment = asyncio.run(
            scorer.assess(package, Path.cwd(), from_version=from_version, to_version=to_version)
        )
    except Exception as exc:
        fail(state, "risk", exc)
    emit(assessment)


if __name__ == "__main__":
    app()
