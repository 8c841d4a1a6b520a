# src/chainedgraphs/cli.py
"""chainedgraphs Command Line Interface.

Entry point for the chainedgraphs CLI tool. Every error ends the process
with exit code 1; a successful run exits 0.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Literal

import typer
from dynaconf.vendor.ruamel.yaml.parser import ParserError as YamlParserError
from dynaconf.vendor.ruamel.yaml.scanner import ScannerError as YamlScannerError
from pydantic import ValidationError

from chainedgraphs import __version__
from chainedgraphs.contracts.enums import FailurePolicy
from chainedgraphs.contracts.errors import CancelledError, ChainValidationError, RunFailedError
from chainedgraphs.core.config import ChainSettings, ExecutorSettings, load_settings

if TYPE_CHECKING:
    from chainedgraphs.core.events import EventBusProtocol
    from chainedgraphs.core.plan import ExecutionPlan
    from chainedgraphs.engine.orchestrator import ChainApp
    from chainedgraphs.plugins.manager import PluginManager

__all__ = [
    "app",
    "load_settings",  # Re-exported from config for convenience
]

# Module-level singleton for plugin manager
_plugin_manager_cache: PluginManager | None = None


def _get_plugin_manager() -> PluginManager:
    """Get initialized plugin manager (singleton).

    Returns:
        PluginManager with built-in and entry point plugins registered
    """
    global _plugin_manager_cache

    from chainedgraphs.plugins.manager import PluginManager

    if _plugin_manager_cache is None:
        manager = PluginManager()
        manager.register_builtin_plugins()
        manager.load_entrypoints()
        _plugin_manager_cache = manager
    return _plugin_manager_cache


app = typer.Typer(
    name="chainedgraphs",
    help="chainedgraphs: resolve and run chains of linked graphs.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"chainedgraphs version {__version__}")
        raise typer.Exit()


def _load_dotenv(env_file: Path | None = None) -> bool:
    """Load environment variables from .env file.

    Args:
        env_file: Explicit path to .env file. If None, searches for .env
                 in current directory and parent directories.

    Returns:
        True if .env was found and loaded, False otherwise.

    Raises:
        typer.Exit: If explicit env_file path doesn't exist.
    """
    from dotenv import load_dotenv

    if env_file is not None:
        if not env_file.exists():
            typer.secho(
                f"Error: .env file not found: {env_file}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(1)
        return load_dotenv(env_file, override=False)

    return load_dotenv(override=False)  # Don't override existing env vars


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    no_dotenv: bool = typer.Option(
        False,
        "--no-dotenv",
        help="Skip loading .env file.",
    ),
    env_file: Path | None = typer.Option(
        None,
        "--env-file",
        help="Path to .env file (skips automatic search).",
        exists=False,  # We handle existence check ourselves for better error message
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose/debug logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs (for machine processing).",
    ),
) -> None:
    """chainedgraphs: resolve and run chains of linked graphs."""
    # Configure logging before any subcommand runs
    from chainedgraphs.core.logging import configure_logging

    log_level = "DEBUG" if verbose else "INFO"
    configure_logging(json_output=json_logs, level=log_level)

    if not no_dotenv:
        _load_dotenv(env_file=env_file)
    elif env_file is not None:
        typer.secho(
            "Warning: --env-file ignored because --no-dotenv is set.",
            fg=typer.colors.YELLOW,
            err=True,
        )


def _format_validation_error(
    title: str,
    message: str,
    hint: str | None = None,
    details: list[str] | None = None,
) -> None:
    """Display a formatted validation error with optional hint and details."""
    from rich.console import Console
    from rich.panel import Panel
    from rich.text import Text

    console = Console(stderr=True)

    content = Text()
    content.append(message, style="white")

    if details:
        content.append("\n\n")
        for detail in details:
            content.append(f"  • {detail}\n", style="dim")

    if hint:
        content.append("\n")
        content.append("Hint: ", style="yellow bold")
        content.append(hint, style="yellow")

    panel = Panel(
        content,
        title=f"[red bold]❌ {title}[/]",
        border_style="red",
        padding=(0, 1),
    )
    console.print(panel)


def _load_chain_settings(settings: str) -> ChainSettings:
    """Load the chain definition, reporting any problem and exiting 1."""
    settings_path = Path(settings).expanduser()

    try:
        return load_settings(settings_path)
    except (YamlParserError, YamlScannerError) as e:
        _format_validation_error(
            title="YAML Syntax Error",
            message=f"Failed to parse {settings_path.name}",
            details=[str(e.problem)] if e.problem else None,
            hint="Check for unclosed brackets, incorrect indentation, or invalid characters.",
        )
        raise typer.Exit(1) from None
    except FileNotFoundError:
        _format_validation_error(
            title="File Not Found",
            message=f"Settings file does not exist: {settings}",
            hint="Check the path and ensure the file exists.",
        )
        raise typer.Exit(1) from None
    except ValidationError as e:
        details = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            details.append(f"{loc}: {error['msg']}")
        _format_validation_error(
            title="Configuration Validation Failed",
            message=f"Invalid settings in {settings_path.name}",
            details=details,
            hint="Check field names, types, and required values.",
        )
        raise typer.Exit(1) from None


def _build_app(config: ChainSettings, *, verbose: bool, event_bus: EventBusProtocol | None = None) -> tuple[ChainApp, ExecutionPlan]:
    """Instantiate actions, build the chain, and resolve it; exit 1 on any error."""
    from chainedgraphs.engine.orchestrator import ChainApp
    from chainedgraphs.plugins.base import PluginConfigError
    from chainedgraphs.plugins.manager import UnknownActionError

    try:
        chain_app = ChainApp.from_settings(
            config,
            plugin_manager=_get_plugin_manager(),
            event_bus=event_bus,
            verbose=verbose,
        )
    except UnknownActionError as e:
        _format_validation_error(
            title="Unknown Action",
            message=str(e),
            hint="Run 'chainedgraphs actions' to list the registered actions.",
        )
        raise typer.Exit(1) from None
    except PluginConfigError as e:
        _format_validation_error(
            title="Action Configuration Error",
            message=str(e),
            hint="Check node options match the action's requirements.",
        )
        raise typer.Exit(1) from None
    except ChainValidationError as e:
        _format_validation_error(
            title="Chain Link Error",
            message=str(e),
            hint="Links use 'graph.node' references and must connect nodes of different graphs.",
        )
        raise typer.Exit(1) from None

    try:
        plan = chain_app.plan()
    except ChainValidationError as e:
        _format_validation_error(
            title="Chain Graph Error",
            message=str(e),
            hint="Check for cycles and predecessors that name no node.",
        )
        raise typer.Exit(1) from None

    return chain_app, plan


def _echo_plan(plan: ExecutionPlan) -> None:
    for index, level in enumerate(plan.levels):
        typer.echo(f"  Level {index}: {', '.join(str(ref) for ref in level)}")


@app.command()
def run(
    settings: str = typer.Option(
        ...,
        "--settings",
        "-s",
        help="Path to chain definition YAML file.",
    ),
    workers: int | None = typer.Option(
        None,
        "--workers",
        "-w",
        min=1,
        help="Maximum concurrent node actions (overrides executor.max_workers).",
    ),
    policy: FailurePolicy | None = typer.Option(
        None,
        "--policy",
        "-p",
        help="Failure policy (overrides executor.failure_policy).",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        "-n",
        help="Resolve and show the execution plan without running it.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show detailed output.",
    ),
    output_format: Literal["console", "json"] = typer.Option(
        "console",
        "--format",
        "-f",
        help="Output format: 'console' (human-readable) or 'json' (structured JSON).",
    ),
) -> None:
    """Execute a chain run.

    Ctrl-C cancels the run: running nodes finish, nothing new starts.
    """
    from chainedgraphs.cli_formatters import create_console_formatters, create_json_formatters
    from chainedgraphs.core.events import EventBus

    config = _load_chain_settings(settings)

    overrides: dict[str, object] = {}
    if workers is not None:
        overrides["max_workers"] = workers
    if policy is not None:
        overrides["failure_policy"] = policy
    if overrides:
        executor = ExecutorSettings(**{**config.executor.model_dump(), **overrides})
        config = config.model_copy(update={"executor": executor})

    event_bus = EventBus()
    chain_app, plan = _build_app(config, verbose=verbose, event_bus=event_bus)

    # Console-only messages (don't emit in JSON mode to keep stream clean)
    if output_format == "console":
        if verbose:
            typer.echo(f"Chain resolved: {plan.node_count} nodes, {plan.level_count} levels")

        if dry_run:
            typer.echo("Dry run mode - would execute:")
            _echo_plan(plan)
            return
    elif dry_run:
        return

    if output_format == "json":
        event_bus.subscribe_all(create_json_formatters())
    else:
        event_bus.subscribe_all(create_console_formatters(verbose=verbose))

    try:
        chain_app.run(plan=plan, install_signal_handlers=True)
    except (RunFailedError, CancelledError) as e:
        # Emit structured error for JSON mode, human-readable for console
        if output_format == "json":
            typer.echo(
                json.dumps(
                    {
                        "event": "error",
                        "error": str(e),
                        "error_type": type(e).__name__,
                    }
                ),
                err=True,
            )
        else:
            typer.echo(f"Error during chain execution: {e}", err=True)
        raise typer.Exit(1) from None


@app.command()
def validate(
    settings: str = typer.Option(
        ...,
        "--settings",
        "-s",
        help="Path to chain definition YAML file.",
    ),
) -> None:
    """Validate a chain definition and show its execution plan."""
    config = _load_chain_settings(settings)
    chain_app, plan = _build_app(config, verbose=False)

    typer.echo("✅ Chain configuration valid!")
    typer.echo(f"  Graphs: {', '.join(graph.id for graph in config.graphs)}")
    typer.echo(f"  Links: {len(chain_app.links)}")
    typer.echo(f"  Plan: {plan.node_count} nodes in {plan.level_count} levels")
    _echo_plan(plan)


def _action_description(action_cls: type) -> str:
    """First non-empty docstring line of an action class."""
    if action_cls.__doc__:
        for line in action_cls.__doc__.strip().split("\n"):
            cleaned = line.strip()
            if cleaned:
                return cleaned

    name = getattr(action_cls, "name", action_cls.__name__)
    return f"{name} action"


@app.command()
def actions() -> None:
    """List available node actions."""
    registered = _get_plugin_manager().get_actions()

    typer.echo("\nACTIONS:")
    if not registered:
        typer.echo("  (none available)")
    for action_cls in registered:
        typer.echo(f"  {action_cls.name:20} - {_action_description(action_cls)}")

    typer.echo()  # Final newline


if __name__ == "__main__":
    app()
