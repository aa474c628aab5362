"""Command-line interface for nodeflow - run workflow graphs from JSON files."""

import json
import logging
import sys

import click
from rich.table import Table

from nodeflow import __version__
from nodeflow.config import settings
from nodeflow.logger import console, setup_global_logger
from nodeflow.workflows.engine.errors import EngineError
from nodeflow.workflows.engine.executor import RunResult, WorkflowEngine
from nodeflow.workflows.engine.graph import WorkflowGraph
from nodeflow.workflows.engine.nodes.registry import get_default_registry
from nodeflow.workflows.engine.runtime.http import SimulatedTransport

logger = logging.getLogger(__name__)

LOG_STYLES = {"info": "cyan", "success": "green", "error": "bold red"}


@click.group()
@click.version_option(version=__version__)
@click.option("--log-level", default=None, help="Process log level (default: LOG_LEVEL setting)")
def main(log_level):
    """
    nodeflow - Workflow execution engine.

    Run node graphs exported by the editor and inspect the node library.
    """
    setup_global_logger(log_level or settings.LOG_LEVEL)


@main.command()
@click.argument("graph_file", type=click.File("r"))
@click.option("--merge", is_flag=True, help="Run each node once with the items of all incoming edges")
@click.option("--parallel", is_flag=True, help="Run sibling branches concurrently")
@click.option("--simulate-http", is_flag=True, help="Answer HTTP requests offline instead of calling out")
@click.option("--trigger-data", default=None, help="JSON object or list of objects handed to the triggers")
@click.option("--json", "as_json", is_flag=True, help="Print the run result as JSON")
def run(graph_file, merge: bool, parallel: bool, simulate_http: bool, trigger_data, as_json: bool):
    """Run the workflow graph in GRAPH_FILE."""
    try:
        graph = WorkflowGraph.from_json(graph_file.read())
    except ValueError as e:
        console.print(f"[red]❌ Could not read graph: {e}[/red]")
        sys.exit(2)

    items = None
    if trigger_data:
        try:
            parsed = json.loads(trigger_data)
        except ValueError as e:
            console.print(f"[red]❌ --trigger-data is not valid JSON: {e}[/red]")
            sys.exit(2)
        items = parsed if isinstance(parsed, list) else [parsed]

    engine = WorkflowEngine(
        fan_in="merge" if merge else None,
        parallel=True if parallel else None,
        http=SimulatedTransport() if simulate_http else None,
    )

    try:
        result = engine.run_sync(graph, trigger_data=items)
    except EngineError as e:
        console.print(f"[red]❌ {e}[/red]")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2, default=str))
    else:
        _print_result(result)

    sys.exit(0 if not result.errors else 1)


def _print_result(result: RunResult) -> None:
    table = Table(title="Execution log", show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Node", style="bold blue")
    table.add_column("Message")

    for entry in result.log:
        style = LOG_STYLES.get(entry.type, "")
        table.add_row(str(entry.seq), entry.node_id, f"[{style}]{entry.message}[/{style}]")

    console.print(table)

    if result.errors:
        console.print(f"[red]✗ Workflow {result.status.value} with {len(result.errors)} error(s)[/red]")
        for error in result.errors:
            console.print(f"  [red]{error.node_id}[/red]: {error.message} [dim]({error.category})[/dim]")
    else:
        console.print(f"[green]✓ Workflow {result.status.value}[/green]")


@main.command()
def nodes():
    """List the registered node types."""
    table = Table(title="Node types")
    table.add_column("Type", style="bold")
    table.add_column("Name")
    table.add_column("Group", style="cyan")
    table.add_column("Outputs", justify="right")
    table.add_column("Description", style="dim")

    for descriptor in sorted(get_default_registry().list_types(), key=lambda d: d.name):
        table.add_row(
            descriptor.name,
            descriptor.displayName,
            ", ".join(descriptor.group),
            ", ".join(descriptor.outputs),
            descriptor.description,
        )

    console.print(table)


@main.command()
@click.argument("node_type")
def describe(node_type: str):
    """Show the properties of NODE_TYPE."""
    node = get_default_registry().get(node_type)
    if node is None:
        console.print(f"[red]❌ Unknown node type: {node_type}[/red]")
        sys.exit(1)

    descriptor = node.description
    console.print(f"[bold]{descriptor.displayName}[/bold] ({descriptor.name}) - {descriptor.description}")
    console.print(f"Inputs: {descriptor.inputCount}  Outputs: {', '.join(descriptor.outputs)}")

    table = Table()
    table.add_column("Property", style="bold")
    table.add_column("Type", style="cyan")
    table.add_column("Default")
    table.add_column("Required")
    table.add_column("Shown when", style="dim")

    for prop in descriptor.properties:
        shown = ""
        if prop.displayOptions and prop.displayOptions.show:
            shown = "; ".join(f"{k} in {v}" for k, v in prop.displayOptions.show.items())
        table.add_row(
            prop.name,
            prop.type,
            json.dumps(prop.default, default=str),
            "yes" if prop.required else "",
            shown,
        )

    console.print(table)


if __name__ == "__main__":
    main()
