"""Job graph CLI.

Commands:
- milestones: Show the milestone catalog
- init: Create an initial job graph state (JSON)
- process: Run one orchestration pass over a saved state
"""

from __future__ import annotations

from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from jobgraph.core.clock import new_id
from jobgraph.core.logging import configure_logging
from jobgraph.milestones.catalog import MILESTONE_DEFINITIONS, STANDARD_MILESTONE_KEYS
from jobgraph.models import ConflictSeverity, JobGraphState
from jobgraph.orchestrator import JobGraphOrchestrator, create_job_graph

app = typer.Typer(
    name="jobgraph",
    help="Job graph orchestrator for heating survey-to-quote",
    no_args_is_help=True,
)

console = Console()

_SEVERITY_STYLE = {
    ConflictSeverity.CRITICAL: "red",
    ConflictSeverity.WARNING: "yellow",
    ConflictSeverity.INFO: "cyan",
}


@app.callback()
def main() -> None:
    configure_logging()


@app.command()
def milestones():
    """Show the milestone catalog."""
    table = Table(title="Milestone Catalog")
    table.add_column("Key", style="cyan")
    table.add_column("Label")
    table.add_column("Criticality")
    table.add_column("Requires")
    table.add_column("Depends on", style="dim")
    table.add_column("Standard", justify="center")

    for definition in MILESTONE_DEFINITIONS.values():
        table.add_row(
            definition.key,
            definition.label,
            definition.criticality.value,
            ", ".join(c.value for c in definition.required_fact_categories) or "-",
            ", ".join(definition.dependencies) or "-",
            "✓" if definition.key in STANDARD_MILESTONE_KEYS else "",
        )

    console.print(table)


@app.command()
def init(
    visit_id: str = typer.Option(..., "--visit", help="Visit ID"),
    property_id: str = typer.Option(..., "--property", help="Property ID"),
    job_graph_id: str | None = typer.Option(None, "--id", help="Job graph ID (generated if omitted)"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write state JSON to file"),
):
    """Create an initial job graph state with the standard milestones."""
    _, state = create_job_graph(job_graph_id or new_id(), visit_id, property_id)
    payload = state.model_dump_json(indent=2)

    if output is None:
        typer.echo(payload)
        return

    output.write_text(payload)
    console.print(
        f"[bold green]✓[/bold green] Job graph {state.graph.id} written to {output} "
        f"({len(state.milestones)} milestones)"
    )


@app.command()
def process(
    state_file: Path = typer.Argument(..., help="Job graph state JSON"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write updated state JSON"),
):
    """Run one orchestration pass and show the result."""
    if not state_file.exists():
        console.print(f"[red]Error: File not found: {state_file}[/red]")
        raise typer.Exit(1)

    try:
        state = JobGraphState.model_validate_json(state_file.read_text())
    except ValidationError as e:
        console.print(f"[red]Error: Invalid job graph state in {state_file}[/red]")
        console.print(str(e), style="dim")
        raise typer.Exit(1)

    graph = state.graph
    orchestrator = JobGraphOrchestrator(graph.id, graph.visit_id, graph.property_id)
    result = orchestrator.process_state(state)

    summary = result.summary
    completeness = result.completeness
    console.print(f"[bold]Job graph:[/bold] {summary.id} (visit {summary.visit_id})")
    console.print(f"  Status: {summary.status.value}")
    console.print(f"  Confidence: {summary.overall_confidence}%")
    console.print(f"  Milestones: {summary.completed_milestones}/{summary.total_milestones} complete")
    console.print(
        f"  Conflicts: {summary.critical_conflicts} critical, {summary.warning_conflicts} warnings"
    )
    console.print(
        f"  Ready: quote={completeness.ready_for_quote} pdf={completeness.ready_for_pdf} "
        f"portal={completeness.ready_for_portal}"
    )

    if completeness.missing_critical_facts:
        console.print("\n[bold]Missing critical facts:[/bold]")
        for missing in completeness.missing_critical_facts:
            console.print(f"  [yellow]⚠[/yellow] {missing.description} ({missing.category.value}:{missing.key})")

    if completeness.unresolved_conflicts:
        table = Table(title="Unresolved Conflicts")
        table.add_column("Severity")
        table.add_column("Type", style="dim")
        table.add_column("Description")
        for conflict in completeness.unresolved_conflicts:
            style = _SEVERITY_STYLE[conflict.severity]
            table.add_row(
                f"[{style}]{conflict.severity.value}[/{style}]",
                conflict.conflict_type.value,
                conflict.description,
            )
        console.print(table)

    if result.warnings:
        console.print("\n[bold]Warnings:[/bold]")
        for warning in result.warnings:
            console.print(f"  {warning}", style="dim")

    if output is not None:
        output.write_text(result.updated_state.model_dump_json(indent=2))
        console.print(f"\n[bold green]✓[/bold green] Updated state written to {output}")


if __name__ == "__main__":
    app()
