"""
hireflow CLI entry point.

Commands:
    hireflow create FILE          — Create an automation from a JSON definition
    hireflow list                 — List automations
    hireflow test ID PAYLOAD      — Dry-run an automation against a sample payload
    hireflow event TYPE PAYLOAD   — Feed a recruiting event to the engine
    hireflow worker               — Run the delayed-action scheduler
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from hireflow.core.errors import HireflowError

app = typer.Typer(
    name="hireflow",
    help="hireflow — WHEN/IF/THEN automations for recruiting pipelines.",
    add_completion=False,
)

console = Console()

_state: dict[str, Any] = {"verbose": False}


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug output"),
) -> None:
    _state["verbose"] = verbose


# ━━━ Helpers ━━━


def _load_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        console.print(f"[red]File not found: {path}[/red]")
        raise typer.Exit(1)
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON in {path}: {e}[/red]")
        raise typer.Exit(1)


def _print_json(data: Any) -> None:
    console.print_json(json.dumps(data, default=str))


def _run(fn: Callable[[Any], Awaitable[Any]]) -> Any:
    """Build a service from config, run fn(service), always close it."""
    from hireflow.core.config import HireflowConfig
    from hireflow.core.logging import setup_logging
    from hireflow.service import AutomationService

    async def runner() -> Any:
        config = HireflowConfig.load()
        if _state["verbose"]:
            console_level = logging.DEBUG
        else:
            console_level = getattr(logging, config.logging.level.upper(), logging.WARNING)
        setup_logging(log_dir=config.log_dir(), console_level=console_level)

        service = await AutomationService.from_config(config)
        try:
            return await fn(service)
        finally:
            await service.close()

    try:
        return asyncio.run(runner())
    except HireflowError as e:
        console.print(f"[red]{e.message}[/red]")
        errors = getattr(e, "errors", None)
        if errors and len(errors) > 1:
            for error in errors:
                console.print(f"  [red]•[/red] {error}")
        raise typer.Exit(1)


def _format_ts(ts: float | None) -> str:
    if ts is None:
        return "—"
    from datetime import datetime

    return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M")


_STATUS_STYLE = {
    "executed": "green",
    "scheduled": "cyan",
    "cancelled": "yellow",
    "failed": "red",
    "scheduling_failed": "red",
    "success": "green",
    "dispatched": "green",
    "skipped": "dim",
    "error": "red",
}


def _styled(status: str) -> str:
    style = _STATUS_STYLE.get(status, "white")
    return f"[{style}]{status}[/{style}]"


# ━━━ Commands ━━━


@app.command()
def version() -> None:
    """Show hireflow version."""
    from hireflow import __version__

    console.print(f"hireflow v{__version__}")


@app.command()
def validate(
    file: Path = typer.Argument(..., help="JSON automation definition"),
) -> None:
    """Check a definition without saving it."""
    from hireflow.automation.validation import validate_automation
    from hireflow.core.errors import AutomationValidationError

    data = _load_json(file)
    try:
        automation = validate_automation(data)
    except AutomationValidationError as e:
        console.print(f"[red]Invalid automation ({len(e.errors)} problem(s)):[/red]")
        for error in e.errors:
            console.print(f"  [red]•[/red] {error}")
        raise typer.Exit(1)
    console.print(
        f"[green]✓[/green] {automation.name}: {len(automation.conditions)} condition(s), "
        f"{len(automation.actions)} action(s)"
    )


@app.command()
def create(
    file: Path = typer.Argument(..., help="JSON automation definition"),
    activate: bool = typer.Option(False, "--activate", "-a", help="Activate right away"),
) -> None:
    """Create an automation (inactive unless --activate)."""
    data = _load_json(file)
    if activate:
        data["is_active"] = True

    async def go(service):
        return await service.create(data)

    automation = _run(go)
    state = "active" if automation.is_active else "inactive"
    console.print(f"[green]✓[/green] Created {automation.name!r} ({automation.id}, {state})")


@app.command("list")
def list_automations(
    active: Optional[bool] = typer.Option(
        None, "--active/--inactive", help="Filter by status"
    ),
    trigger: Optional[str] = typer.Option(None, "--trigger", "-t", help="Filter by trigger type"),
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Search name/description"),
    page: int = typer.Option(1, "--page", min=1),
    page_size: int = typer.Option(20, "--page-size", min=1),
) -> None:
    """List automations."""
    from hireflow.core.types import TriggerType
    from hireflow.store.base import AutomationFilter

    try:
        trigger_type = TriggerType(trigger) if trigger else None
    except ValueError:
        console.print(f"[red]Unknown trigger type: {trigger}[/red]")
        raise typer.Exit(1)

    filters = AutomationFilter(
        is_active=active,
        trigger_type=trigger_type,
        search=search,
        page=page,
        page_size=page_size,
    )

    async def go(service):
        return await service.list(filters)

    result = _run(go)
    if not result.items:
        console.print("[dim]No automations found.[/dim]")
        return

    table = Table(title=f"Automations ({result.total} total, page {result.page})")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Trigger")
    table.add_column("Active")
    table.add_column("Runs", justify="right")
    table.add_column("Last run")
    for a in result.items:
        table.add_row(
            a.id,
            a.name,
            a.trigger.type.value,
            "[green]yes[/green]" if a.is_active else "[dim]no[/dim]",
            str(a.run_count),
            _format_ts(a.last_run_at),
        )
    console.print(table)


@app.command()
def show(automation_id: str = typer.Argument(...)) -> None:
    """Show an automation as JSON."""

    async def go(service):
        return await service.get(automation_id)

    _print_json(_run(go).to_dict())


@app.command()
def toggle(automation_id: str = typer.Argument(...)) -> None:
    """Activate or deactivate an automation."""

    async def go(service):
        return await service.toggle(automation_id)

    automation = _run(go)
    if automation.is_active:
        console.print(f"[green]✓[/green] {automation.name!r} is now active")
    else:
        console.print(f"[yellow]■[/yellow] {automation.name!r} is now inactive")


@app.command()
def delete(
    automation_id: str = typer.Argument(...),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete an automation and cancel its pending delayed actions."""
    if not yes:
        typer.confirm(f"Delete automation {automation_id}?", abort=True)

    async def go(service):
        return await service.delete(automation_id)

    if _run(go):
        console.print(f"[green]✓[/green] Deleted {automation_id}")
    else:
        console.print(f"[red]Automation not found: {automation_id}[/red]")
        raise typer.Exit(1)


@app.command()
def test(
    automation_id: str = typer.Argument(...),
    payload: Path = typer.Argument(..., help="JSON sample payload"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw trace"),
) -> None:
    """Dry-run an automation. Nothing is executed."""
    sample = _load_json(payload)

    async def go(service):
        return await service.test(automation_id, sample)

    trace = _run(go)
    if as_json:
        _print_json(trace.to_dict())
        return

    table = Table(title="Conditions")
    table.add_column("Field")
    table.add_column("Operator")
    table.add_column("Expected")
    table.add_column("Actual")
    table.add_column("Result")
    for c in trace.conditions_evaluation:
        d = c.to_dict()
        table.add_row(
            d["field"],
            d["operator"],
            json.dumps(d["expected_value"], default=str),
            json.dumps(d["actual_value"], default=str),
            "[green]pass[/green]" if c.passed else "[red]fail[/red]",
        )
    if trace.conditions_evaluation:
        console.print(table)

    for a in trace.actions_preview:
        delay = f" after {a.delay_minutes} min" if a.delay_minutes else ""
        mark = "[green]would run[/green]" if a.would_execute else "[dim]would not run[/dim]"
        console.print(f"  {a.type}{delay}: {mark}")

    verdict = "[green]PASS[/green]" if trace.all_conditions_passed else "[red]NO MATCH[/red]"
    trigger = {True: "compatible", False: "incompatible", None: "unknown"}[
        trace.trigger_compatible
    ]
    console.print(
        Panel(
            f"{verdict}   [dim]trigger: {trace.trigger_description} ({trigger})[/dim]",
            border_style="cyan",
        )
    )


@app.command()
def templates() -> None:
    """List built-in templates."""
    from hireflow.automation.templates import list_templates

    table = Table(title="Templates")
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Category")
    table.add_column("Trigger")
    table.add_column("Description", style="dim")
    for t in list_templates():
        table.add_row(
            t.id, t.name, t.category, t.definition["trigger"]["type"], t.description
        )
    console.print(table)


@app.command()
def clone(template_id: str = typer.Argument(...)) -> None:
    """Create an inactive automation from a template."""

    async def go(service):
        return await service.clone_template(template_id)

    automation = _run(go)
    console.print(
        f"[green]✓[/green] Created {automation.name!r} ({automation.id}, inactive)\n"
        f"[dim]Activate with: hireflow toggle {automation.id}[/dim]"
    )


@app.command()
def event(
    trigger_type: str = typer.Argument(..., help="e.g. application_received"),
    payload: Path = typer.Argument(..., help="JSON event payload"),
    source: str = typer.Option("cli", "--source", help="Event source label"),
) -> None:
    """Feed one recruiting event to the rule engine."""
    from hireflow.core.types import TriggerType
    from hireflow.engine.rules import TriggerEvent

    try:
        event_type = TriggerType(trigger_type)
    except ValueError:
        console.print(f"[red]Unknown trigger type: {trigger_type}[/red]")
        raise typer.Exit(1)
    trigger_event = TriggerEvent(event_type, _load_json(payload), source=source)

    async def go(service):
        return await service.handle_event(trigger_event)

    results = _run(go)
    if not results:
        console.print("[dim]No active automations for this event.[/dim]")
        return
    for r in results:
        detail = r.skip_reason.value if r.skip_reason else r.error or ""
        console.print(f"{_styled(r.status.value)} {r.automation_name} [dim]{detail}[/dim]")
        for o in r.outcomes:
            console.print(f"    {o.action_type.value}: {_styled(o.status.value)}")


@app.command()
def runs(
    automation_id: str = typer.Argument(...),
    limit: int = typer.Option(20, "--limit", "-n", help="Number of runs to show"),
) -> None:
    """Show recent runs of an automation."""

    async def go(service):
        return await service.list_runs(automation_id, limit=limit)

    history = _run(go)
    if not history:
        console.print("[dim]No runs yet.[/dim]")
        return

    table = Table(title=f"Runs of {automation_id}")
    table.add_column("Run", style="dim")
    table.add_column("When")
    table.add_column("Trigger")
    table.add_column("Status")
    table.add_column("Actions")
    table.add_column("ms", justify="right")
    for run in history:
        table.add_row(
            run.id,
            _format_ts(run.executed_at),
            run.trigger_type.value,
            _styled(run.status.value),
            ", ".join(f"{o.action_type.value}:{o.status.value}" for o in run.outcomes),
            str(run.duration_ms),
        )
    console.print(table)


@app.command()
def worker(
    once: bool = typer.Option(False, "--once", help="Fire due actions once and exit"),
) -> None:
    """Run the delayed-action scheduler until interrupted."""

    async def go(service):
        if service.scheduler is None:
            console.print("[red]Scheduler is disabled in config.[/red]")
            raise typer.Exit(1)
        if once:
            await service.queue.requeue_stale()
            outcomes = await service.scheduler.tick()
            console.print(f"Fired {len(outcomes)} delayed action(s)")
            return
        await service.start()
        console.print("[cyan]Scheduler running. Ctrl+C to stop.[/cyan]")
        try:
            while True:
                await asyncio.sleep(3600)
        except asyncio.CancelledError:
            pass

    try:
        _run(go)
    except KeyboardInterrupt:
        console.print("[dim]Stopped.[/dim]")


if __name__ == "__main__":
    app()
