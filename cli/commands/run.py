"""
Run command: seed a scenario and drive the controller to completion
"""

import json
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from simkernel.config import FailurePolicy, KernelConfig
from simkernel.core.errors import InvocationFailure, OrderingViolation
from simkernel.logging_config import setup_logging
from simkernel.metrics import start_metrics_server
from simkernel.runtime.controller import Controller

from .scenario import ScenarioError, load_scenario

console = Console()


def run_command(
    scenario: str = typer.Argument(..., help="Seed function as module:function"),
    until: Optional[int] = typer.Option(None, "--until", "-u", help="Last simulated instant to dispatch"),
    policy: Optional[FailurePolicy] = typer.Option(
        None, "--policy", "-p", case_sensitive=False, help="Uncaught failure policy"
    ),
    show_spectrum: bool = typer.Option(False, "--show-spectrum", "-s", help="Show dispatch count per behavior"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ERROR"),
):
    """
    Run a simulation scenario.

    Examples:
        simkernel run simkernel.demo:seed
        simkernel run simkernel.demo:seed --until 4
        simkernel run simkernel.demo:seed_overdraft --policy continue
        simkernel run simkernel.demo:seed --json
    """
    config = KernelConfig.from_env()
    setup_logging(level=log_level or ("WARNING" if json_output else None))
    start_metrics_server(config.metrics_enabled, config.metrics_port)

    try:
        seed = load_scenario(scenario)
    except ScenarioError as e:
        _error(json_output, str(e))
        raise typer.Exit(2)

    controller = Controller(config, failure_policy=policy, end_time=until)
    seed(controller)

    failure: Optional[InvocationFailure] = None
    try:
        controller.run()
    except InvocationFailure as e:
        failure = e
    except OrderingViolation as e:
        _error(json_output, f"Ordering violation: {e}")
        raise typer.Exit(2)

    stats = controller.statistics
    if json_output:
        output = {
            "success": failure is None,
            "state": controller.state.value,
            "now": controller.now,
            "pending": len(controller.queue),
            "statistics": stats.to_dict(),
            "failures": [f"{record}: {error!r}" for record, error in controller.failures],
        }
        if failure is not None:
            output["error"] = str(failure)
        print(json.dumps(output, indent=2))
    else:
        if failure is None:
            console.print(f"[green]✓ Simulation {controller.state.value} at t={controller.now}[/green]")
        else:
            console.print(f"[red]✗ Simulation aborted at t={controller.now}:[/red] {failure}")
        console.print(f"  Events dispatched: [cyan]{stats.total_events}[/cyan]")
        console.print(f"  Continuations resumed: [cyan]{stats.continuations_resumed}[/cyan]")
        console.print(f"  Uncaught failures: [yellow]{stats.uncaught_failures}[/yellow]")
        console.print(f"  Pending: [cyan]{len(controller.queue)}[/cyan]")

        if show_spectrum:
            table = Table(title="Event Spectrum")
            table.add_column("Behavior", style="green")
            table.add_column("Count", style="cyan", justify="right")
            for signature, count in sorted(stats.spectrum.items()):
                table.add_row(signature, str(count))
            console.print(table)

    raise typer.Exit(1 if failure is not None else 0)


def _error(json_output: bool, message: str) -> None:
    if json_output:
        print(json.dumps({"error": message}))
    else:
        console.print(f"[red]Error:[/red] {message}")
