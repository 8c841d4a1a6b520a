# src/chainedgraphs/cli_formatters.py
"""CLI event formatter factories for chain run output.

Provides factory functions that return event handler maps for console
(human-readable) and JSON (structured) output formats. Each factory
returns a dict mapping event types to handler callables, suitable for
EventBus.subscribe_all().
"""

from __future__ import annotations

import json
from collections.abc import Callable

import typer

from chainedgraphs.contracts.enums import NodePhase
from chainedgraphs.contracts.events import NodeEvent, RunStarted, RunSummary


def _format_duration(seconds: float) -> str:
    return f"{seconds:.2f}s" if seconds < 60 else f"{seconds / 60:.1f}m"


def create_console_formatters(verbose: bool = False) -> dict[type, Callable[..., None]]:
    """Create console formatters for human-readable CLI output.

    Args:
        verbose: Also print a line when a node starts.
    """

    def _format_run_started(event: RunStarted) -> None:
        typer.echo(
            f"Running {event.node_count} node(s) in {event.level_count} level(s) "
            f"[{event.policy.value}, {event.max_workers} worker(s)]"
        )

    def _format_node_event(event: NodeEvent) -> None:
        if event.phase is NodePhase.STARTED:
            if verbose:
                typer.echo(f"[L{event.level}] → {event.node} started")
            return
        if event.phase is NodePhase.SUCCEEDED:
            duration = f" ({event.duration_ms:.0f}ms)" if event.duration_ms is not None else ""
            typer.echo(f"[L{event.level}] ✓ {event.node}{duration}")
        elif event.phase is NodePhase.FAILED:
            typer.echo(f"[L{event.level}] ✗ {event.node}: {event.detail}", err=True)
        else:
            typer.echo(f"[L{event.level}] ⚠ {event.node} {event.detail}")

    def _format_run_summary(event: RunSummary) -> None:
        status_symbols = {
            "completed": "✓",
            "failed": "✗",
            "cancelled": "⚠",
        }
        symbol = status_symbols[event.status.value]
        typer.echo(
            f"\n{symbol} Run {event.status.value.upper()}: "
            f"{event.total_nodes} nodes | "
            f"✓{event.succeeded} succeeded | "
            f"✗{event.failed} failed | "
            f"⚠{event.skipped} skipped | "
            f"{_format_duration(event.duration_seconds)} total"
        )

    return {
        RunStarted: _format_run_started,
        NodeEvent: _format_node_event,
        RunSummary: _format_run_summary,
    }


def create_json_formatters() -> dict[type, Callable[..., None]]:
    """Create JSON formatters for structured CLI output (one object per line)."""

    def _format_run_started_json(event: RunStarted) -> None:
        typer.echo(
            json.dumps(
                {
                    "event": "run_started",
                    "run_id": event.run_id,
                    "timestamp": event.timestamp.isoformat(),
                    "node_count": event.node_count,
                    "level_count": event.level_count,
                    "policy": event.policy.value,
                    "max_workers": event.max_workers,
                }
            )
        )

    def _format_node_event_json(event: NodeEvent) -> None:
        typer.echo(
            json.dumps(
                {
                    "event": "node",
                    "run_id": event.run_id,
                    "timestamp": event.timestamp.isoformat(),
                    "node": str(event.node),
                    "phase": event.phase.value,
                    "level": event.level,
                    "detail": event.detail,
                    "duration_ms": event.duration_ms,
                }
            )
        )

    def _format_run_summary_json(event: RunSummary) -> None:
        typer.echo(
            json.dumps(
                {
                    "event": "run_completed",
                    "run_id": event.run_id,
                    "status": event.status.value,
                    "total_nodes": event.total_nodes,
                    "succeeded": event.succeeded,
                    "failed": event.failed,
                    "skipped": event.skipped,
                    "duration_seconds": event.duration_seconds,
                    "exit_code": event.exit_code,
                }
            )
        )

    return {
        RunStarted: _format_run_started_json,
        NodeEvent: _format_node_event_json,
        RunSummary: _format_run_summary_json,
    }
