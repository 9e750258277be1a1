"""
Inspect command: show the seeded queue of a scenario without running it
"""

import json

import typer
from rich.console import Console
from rich.table import Table

from simkernel.runtime.controller import Controller

from .scenario import ScenarioError, load_scenario

console = Console()


def inspect_command(
    scenario: str = typer.Argument(..., help="Seed function as module:function"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    List the initial events of a scenario in dispatch order.

    Examples:
        simkernel inspect simkernel.demo:seed
        simkernel inspect simkernel.demo:seed --json
    """
    try:
        seed = load_scenario(scenario)
    except ScenarioError as e:
        if json_output:
            print(json.dumps({"error": str(e)}))
        else:
            console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2)

    controller = Controller()
    seed(controller)
    records = list(controller.queue)

    if json_output:
        events = [
            {"time": r.time, "signature": r.signature, "label": r.debug_label}
            for r in records
        ]
        print(json.dumps({"events": events, "count": len(events)}, indent=2))
        raise typer.Exit(0)

    if not records:
        console.print("[yellow]Scenario posts no events[/yellow]")
        raise typer.Exit(0)

    table = Table(title=f"Pending events: {scenario}")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Time", style="cyan", justify="right")
    table.add_column("Behavior", style="green")
    table.add_column("Label", style="yellow")
    for idx, record in enumerate(records):
        table.add_row(str(idx), str(record.time), record.signature, record.debug_label or "")
    console.print(table)
    console.print(f"\n[bold]Total events:[/bold] {len(records)}")
