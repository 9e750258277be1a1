#!/usr/bin/env python3
"""
simkernel CLI - discrete-event simulation driver

Main entrypoint for the simkernel command-line tool.
"""

import typer
from rich.console import Console
from rich.table import Table

from cli.commands import inspect, run

# Initialize Typer app
app = typer.Typer(
    name="simkernel",
    help="Discrete-event simulation kernel CLI",
    add_completion=False,
)

# Console for rich output
console = Console()

app.command("run")(run.run_command)
app.command("inspect")(inspect.inspect_command)


@app.command()
def version():
    """Show version information."""
    from cli import __version__

    table = Table(show_header=False, box=None)
    table.add_row("[bold]simkernel[/bold]", f"v{__version__}")
    table.add_row("Scheduler", "time-ordered, FIFO ties")
    table.add_row("Continuations", "generator behaviors")

    console.print(table)


def main():
    """Main entrypoint."""
    app()


if __name__ == "__main__":
    main()
