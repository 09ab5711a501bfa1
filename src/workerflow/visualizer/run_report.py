"""Rich views for run reports and catalog listings."""

from typing import Iterable, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from ..definitions.models import WorkflowDefinition
from ..orchestrator.aggregator import SEVERITIES, FinalResult
from ..workers.models import WorkerDescriptor
from .utils import format_duration, format_timestamp, status_markup

PHASE_ICONS = {
	"succeeded": "[green][x][/green]",
	"partially_failed": "[yellow][~][/yellow]",
	"failed": "[red][!][/red]",
	"skipped": "[dim][-][/dim]",
	"pending": "[dim][ ][/dim]",
	"running": "[cyan][>][/cyan]",
}


def render_run_report(result: FinalResult, console: Optional[Console] = None) -> None:
	"""Render a run as a Rich Tree of phases and worker outcomes, then a summary panel."""
	console = console or Console()

	tree = Tree(
		f"[bold]{result.workflow}[/bold]  "
		f"[dim](run {result.run_id}, {len(result.phase_summaries)} phases)[/dim]"
	)

	for phase in result.phase_summaries:
		icon = PHASE_ICONS.get(phase.status, "[ ]")
		label = f"{icon} [bold]{phase.name}[/bold] {status_markup(phase.status)}"
		if phase.loop_condition:
			label += f" [dim]loop '{phase.loop_condition}', {phase.iterations} iteration(s)"
			label += ", exhausted[/dim]" if phase.loop_exhausted else "[/dim]"
		if phase.skip_reason:
			label += f" [dim]- {phase.skip_reason}[/dim]"
		branch = tree.add(label)

		for worker in phase.workers:
			line = f"{worker.worker_id} {status_markup(worker.status)}"
			if phase.iterations > 1:
				line = f"#{worker.iteration} {line}"
			if worker.advisory:
				line += " [dim](advisory)[/dim]"
			line += f" [dim]{format_duration(worker.duration_seconds)}[/dim]"
			error = worker.diagnostics.get("error")
			if error:
				line += f"\n[red]{error}[/red]"
			branch.add(line)

		for worker_ref in phase.not_run:
			branch.add(f"[dim]{worker_ref} not run[/dim]")

	console.print(tree)
	render_run_summary(result, console)


def render_run_summary(result: FinalResult, console: Optional[Console] = None) -> None:
	"""Render the terminal status, severity counts and follow-ups of a run."""
	console = console or Console()

	lines = []
	lines.append(f"[bold]Status:[/bold] {status_markup(result.status.value)} (exit code {result.exit_code})")
	if result.argument:
		lines.append(f"[bold]Argument:[/bold] {result.argument}")
	severity = "  ".join(f"{s}: {result.severity_totals.get(s, 0)}" for s in SEVERITIES)
	lines.append(f"[bold]Issues:[/bold] {severity}")

	if result.cancelled:
		lines.append("[red]Run was cancelled[/red]")
	if result.error:
		lines.append(f"[bold]Error:[/bold] [red]{result.error}[/red]")

	failures = result.failures()
	if failures:
		lines.append("")
		lines.append("[bold]Failures:[/bold]")
		for phase_name, worker in failures:
			lines.append(f"  - {phase_name}/{worker.worker_id}: {worker.diagnostics.get('error', 'failed')}")

	if result.follow_ups:
		lines.append("")
		lines.append("[bold]Suggested follow-ups:[/bold]")
		for f in result.follow_ups:
			lines.append(f"  - {f.worker_id} after {f.source_worker} ({f.mode})")

	border = {0: "green", 1: "red", 2: "yellow"}.get(result.exit_code, "cyan")
	console.print(Panel("\n".join(lines), title=f"Run: {result.run_id}", border_style=border))


def render_workflow_table(definitions: Iterable[WorkflowDefinition], console: Optional[Console] = None) -> None:
	"""Render a table of available workflows."""
	console = console or Console()

	table = Table(title="Workflows")
	table.add_column("Name", style="cyan")
	table.add_column("Phases")
	table.add_column("Loops", justify="right")
	table.add_column("Description")

	for definition in definitions:
		loops = sum(1 for p in definition.phases if p.loop_until is not None)
		table.add_row(
			definition.name,
			" -> ".join(p.name for p in definition.phases),
			str(loops),
			definition.description,
		)

	console.print(table)


def render_worker_table(descriptors: Iterable[WorkerDescriptor], console: Optional[Console] = None) -> None:
	"""Render a table of registered workers."""
	console = console or Console()

	table = Table(title="Workers")
	table.add_column("Id", style="cyan")
	table.add_column("Capabilities")
	table.add_column("Triggers")
	table.add_column("Bound", justify="center")

	for d in descriptors:
		triggers = ", ".join(
			f"{p.kind.value}{'?' if p.mode.value == 'confirm' else ''}" for p in d.trigger_predicates
		)
		table.add_row(
			d.id,
			", ".join(d.capabilities),
			triggers or "[dim]-[/dim]",
			"[green]yes[/green]" if d.handler is not None else "[dim]no[/dim]",
		)

	console.print(table)


def render_run_history(results: list[FinalResult], console: Optional[Console] = None) -> None:
	"""Render a table of archived runs, newest first."""
	console = console or Console()

	if not results:
		console.print("[dim]No archived runs yet.[/dim]")
		return

	table = Table(title=f"Run History (last {len(results)})")
	table.add_column("Run", style="cyan")
	table.add_column("Workflow")
	table.add_column("Status")
	table.add_column("Critical", justify="right")
	table.add_column("Started")

	for r in results:
		table.add_row(
			r.run_id,
			r.workflow,
			status_markup(r.status.value),
			str(r.severity_totals.get("critical", 0)),
			format_timestamp(r.started_at or r.created_at),
		)

	console.print(table)
