"""Lifecycle events emitted by the coordinator, and the sinks that consume them.

Events arrive in the order the corresponding state transitions happen. Every
``component-started`` is paired with a ``component-finished`` (also when the
run rolls back), and ``run-finished`` is always the last event of a run.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Protocol, runtime_checkable

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from projgen.models import ComponentKind, GenerationResult, RunStatus, Strategy, utc_now
from projgen.utils import console as default_console
from projgen.utils import format_duration


class EventType(str, Enum):
    PLAN_BUILT = "plan-built"
    DISCOVERY_COMPLETE = "discovery-complete"
    COMPONENT_STARTED = "component-started"
    COMPONENT_FINISHED = "component-finished"
    ROLLBACK_STARTED = "rollback-started"
    RUN_FINISHED = "run-finished"


@dataclass
class ProgressEvent:
    type: EventType
    kind: Optional[ComponentKind] = None
    strategy: Optional[Strategy] = None
    success: Optional[bool] = None
    status: Optional[RunStatus] = None
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utc_now)


@runtime_checkable
class ProgressReporter(Protocol):
    def emit(self, event: ProgressEvent) -> None: ...


class NullReporter:
    """Discards every event."""

    def emit(self, event: ProgressEvent) -> None:
        return None


class RecordingReporter:
    """Keeps every event in memory, in emission order."""

    def __init__(self) -> None:
        self.events: list[ProgressEvent] = []
        self._lock = threading.Lock()

    def emit(self, event: ProgressEvent) -> None:
        with self._lock:
            self.events.append(event)

    def types(self) -> list[EventType]:
        return [e.type for e in self.events]

    def for_kind(self, kind: ComponentKind) -> list[ProgressEvent]:
        return [e for e in self.events if e.kind == kind]

    def last(self) -> Optional[ProgressEvent]:
        return self.events[-1] if self.events else None


class ConsoleReporter:
    """Renders events with Rich: a line per transition and a final summary panel."""

    def __init__(self, console: Optional[Console] = None, verbose: bool = False) -> None:
        self.console = console or default_console
        self.verbose = verbose

    def emit(self, event: ProgressEvent) -> None:
        handler = getattr(self, f"_on_{event.type.name.lower()}", None)
        if handler is not None:
            handler(event)

    def _on_plan_built(self, event: ProgressEvent) -> None:
        kinds = event.data.get("kinds", [])
        self.console.print(
            Panel(
                "\n".join(f"  {i + 1}. {k}" for i, k in enumerate(kinds)) or "  (empty plan)",
                title=f"[bold]Plan: {len(kinds)} component(s)[/bold]",
                border_style="cyan",
            )
        )

    def _on_discovery_complete(self, event: ProgressEvent) -> None:
        tools: dict[str, dict[str, Any]] = event.data.get("tools", {})
        if not tools:
            return
        table = Table(title="Tools", show_header=True, header_style="bold cyan")
        table.add_column("Tool", no_wrap=True)
        table.add_column("Version")
        table.add_column("Status")
        for name, info in tools.items():
            status = info.get("availability", "")
            colour = "green" if status == "available" else "yellow"
            table.add_row(name, info.get("version") or "-", f"[{colour}]{status}[/{colour}]")
        self.console.print(table)

    def _on_component_started(self, event: ProgressEvent) -> None:
        self.console.print(f"    [cyan]Generating:[/cyan] {event.kind.value if event.kind else '?'}")

    def _on_component_finished(self, event: ProgressEvent) -> None:
        kind = event.kind.value if event.kind else "?"
        strategy = event.strategy.value if event.strategy else "none"
        if event.success:
            self.console.print(f"    [green]+[/green] {kind} via {strategy}")
        else:
            error = event.data.get("error") or "failed"
            self.console.print(f"    [red]x[/red] {kind} ({strategy}): {error}")

    def _on_rollback_started(self, event: ProgressEvent) -> None:
        reason = event.data.get("reason", "")
        self.console.print(f"  [bold yellow]Rolling back[/bold yellow] {reason}")

    def _on_run_finished(self, event: ProgressEvent) -> None:
        result: Optional[GenerationResult] = event.data.get("result")
        status = event.status or RunStatus.ROLLED_BACK
        if status == RunStatus.COMMITTED and result and all(o.succeeded for o in result.outcomes):
            border_style, status_text = "bold green", "[bold green]COMMITTED[/bold green]"
        elif status == RunStatus.COMMITTED:
            border_style, status_text = "bold yellow", "[bold yellow]COMMITTED WITH FAILURES[/bold yellow]"
        else:
            border_style, status_text = "bold red", f"[bold red]{status.value.upper()}[/bold red]"

        lines = [status_text, ""]
        if result is not None:
            lines.append(f"Duration  : {format_duration(result.duration_seconds)}")
            lines.append(f"Output    : {result.output_root}")
            for outcome in result.outcomes:
                mark = "[green]ok[/green]" if outcome.succeeded else "[red]failed[/red]"
                lines.append(f"  {outcome.kind.value:<16} {mark} via {outcome.strategy.value}")
            steps = [s for o in result.outcomes if o.succeeded for s in o.manual_steps]
            if steps and self.verbose:
                lines.append("")
                lines.append("Next steps:")
                lines.extend(f"  - {s}" for s in steps)
            if result.rollback_errors:
                lines.append("")
                lines.append(f"[red]Rollback errors: {len(result.rollback_errors)}[/red]")
        self.console.print()
        self.console.print(Panel("\n".join(lines), title="[bold]Generation Complete[/bold]", border_style=border_style))
