"""CLI for workerflow: run, trigger, workflows, workers, history and serve commands."""

import argparse
import asyncio
import json
import os
import sys

from rich.console import Console
from rich.prompt import Confirm

from .config import Config, load_config
from .errors import WorkflowError
from .events import Event
from .logging_config import setup_logging
from .orchestrator.aggregator import OutcomeAggregator
from .orchestrator.run import PhaseRecord, RunOptions, WorkflowRun
from .orchestrator.scheduler import Orchestrator
from .runs.store import RunArchive
from .runtime import build_catalog, build_registry, run_workflow
from .triggers import TriggerEvaluator, TriggerMatch
from .visualizer.run_report import (
	render_run_history,
	render_run_report,
	render_worker_table,
	render_workflow_table,
)

console = Console()


def _event_from_args(args: argparse.Namespace) -> Event:
	if args.file:
		return Event.file_changed(args.file)
	if args.error:
		return Event.error_observed(args.error)
	return Event.command(args.worker, args.argument or "")


async def _ask_approval(run: WorkflowRun, record: PhaseRecord) -> bool:
	"""Approval gate for interactive runs."""
	prompt = f"Phase '{record.name}' finished ({record.status.value}). Continue?"
	return await asyncio.to_thread(Confirm.ask, prompt, default=True)


async def _ask_confirm_trigger(match: TriggerMatch, event: Event) -> bool:
	prompt = f"Run {match.worker_id} for {event.kind.value}?"
	return await asyncio.to_thread(Confirm.ask, prompt, default=False)


async def _run(args: argparse.Namespace, config: Config):
	archive = None if args.no_archive else RunArchive(config.runs_db_path)
	try:
		return await run_workflow(
			config,
			args.workflow,
			argument=args.argument or "",
			options=RunOptions(
				focus=args.focus,
				interactive=args.interactive,
				max_iterations=args.max_iterations,
			),
			project_path=args.project,
			dry_run=args.dry_run,
			on_approval_needed=_ask_approval if args.interactive else None,
			archive=archive,
		)
	finally:
		if archive is not None:
			await archive.close()


def cmd_run(args: argparse.Namespace) -> None:
	"""Run a workflow and exit with its report code."""
	config = load_config()
	if args.max_iterations is not None and args.max_iterations < 1:
		console.print("[red]--max-iterations must be at least 1[/red]")
		sys.exit(1)

	try:
		result = asyncio.run(_run(args, config))
	except WorkflowError as e:
		console.print(f"[red]Error:[/red] {e}")
		sys.exit(1)

	if args.json:
		print(result.model_dump_json(indent=2))
	else:
		render_run_report(result, console)
	sys.exit(result.exit_code)


async def _trigger(args: argparse.Namespace, config: Config) -> int:
	registry = build_registry(config, args.project, dry_run=args.dry_run)
	event = _event_from_args(args)

	if not args.execute:
		matches = TriggerEvaluator().evaluate_matches(event, registry)
		if args.json:
			print(json.dumps([{"worker_id": m.worker_id, "mode": m.mode.value} for m in matches], indent=2))
		elif not matches:
			console.print("[dim]No workers match this event.[/dim]")
		else:
			for m in matches:
				console.print(f"{m.worker_id} [dim]({m.mode.value})[/dim]")
		return 0

	orchestrator = Orchestrator(registry, config=config, on_confirm_trigger=_ask_confirm_trigger)
	run = await orchestrator.handle_event(event)
	if run is None:
		console.print("[dim]No workers selected.[/dim]")
		return 0

	result = OutcomeAggregator().aggregate(run)
	if args.json:
		print(result.model_dump_json(indent=2))
	else:
		render_run_report(result, console)
	return result.exit_code


def cmd_trigger(args: argparse.Namespace) -> None:
	"""Evaluate an event against worker triggers, optionally running the matches."""
	if not (args.file or args.error or args.worker):
		console.print("[red]Give one of --file, --error or --worker[/red]")
		sys.exit(1)

	config = load_config()
	try:
		code = asyncio.run(_trigger(args, config))
	except WorkflowError as e:
		console.print(f"[red]Error:[/red] {e}")
		sys.exit(1)
	sys.exit(code)


def cmd_workflows(args: argparse.Namespace) -> None:
	"""List available workflows."""
	catalog = build_catalog(load_config(), args.project)
	if args.json:
		print(json.dumps([d.model_dump(mode="json") for d in catalog], indent=2))
	else:
		render_workflow_table(catalog, console)


def cmd_workers(args: argparse.Namespace) -> None:
	"""List registered workers."""
	registry = build_registry(load_config(), args.project)
	if args.json:
		print(json.dumps(registry.list_workers(), indent=2))
	else:
		render_worker_table(registry, console)


async def _history(args: argparse.Namespace, config: Config) -> None:
	archive = RunArchive(config.runs_db_path)
	try:
		if args.run_id:
			result = await archive.get(args.run_id)
			if result is None:
				console.print(f"No archived run '{args.run_id}'.")
				return
			render_run_report(result, console)
		else:
			render_run_history(await archive.list_recent(workflow=args.workflow, limit=args.limit), console)
	finally:
		await archive.close()


def cmd_history(args: argparse.Namespace) -> None:
	"""Show archived runs."""
	asyncio.run(_history(args, load_config()))


def cmd_serve(args: argparse.Namespace) -> None:
	"""Run the MCP server (stdio transport)."""
	from .server import mcp
	mcp.run()


def _add_project_arg(parser: argparse.ArgumentParser) -> None:
	parser.add_argument("--project", type=str, default=None, help="Project root (default: current directory)")


def build_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(
		prog="workerflow",
		description="Run multi-phase workflows of autonomous workers",
	)
	parser.add_argument(
		"--log-level",
		type=str,
		default=os.getenv("LOG_LEVEL", "WARNING"),
		help="Console log level (default: WARNING or $LOG_LEVEL)",
	)
	subparsers = parser.add_subparsers(dest="command")

	# run
	run_parser = subparsers.add_parser("run", help="Run a workflow")
	run_parser.add_argument("workflow", help="Workflow name (see 'workerflow workflows')")
	run_parser.add_argument("argument", nargs="?", default="", help="File reference, error text or description")
	run_parser.add_argument("--focus", type=str, default=None, help="Only dispatch workers with this capability")
	run_parser.add_argument("--interactive", action="store_true", help="Ask for approval after each phase")
	run_parser.add_argument("--max-iterations", type=int, default=None, help="Override loop caps")
	run_parser.add_argument("--dry-run", action="store_true", help="Use placeholder workers where none is bound")
	run_parser.add_argument("--no-archive", action="store_true", help="Don't store the run report")
	run_parser.add_argument("--json", action="store_true", help="Print the report as JSON")
	_add_project_arg(run_parser)
	run_parser.set_defaults(func=cmd_run)

	# trigger
	trigger_parser = subparsers.add_parser("trigger", help="Evaluate worker triggers for an event")
	source = trigger_parser.add_mutually_exclusive_group()
	source.add_argument("--file", type=str, default=None, help="A changed file path")
	source.add_argument("--error", type=str, default=None, help="An observed error message")
	source.add_argument("--worker", type=str, default=None, help="Invoke a worker explicitly")
	trigger_parser.add_argument("--argument", type=str, default=None, help="Argument for --worker")
	trigger_parser.add_argument("--execute", action="store_true", help="Run the matched workers")
	trigger_parser.add_argument("--dry-run", action="store_true", help="Use placeholder workers where none is bound")
	trigger_parser.add_argument("--json", action="store_true", help="Print JSON")
	_add_project_arg(trigger_parser)
	trigger_parser.set_defaults(func=cmd_trigger)

	# workflows
	workflows_parser = subparsers.add_parser("workflows", help="List workflows")
	workflows_parser.add_argument("--json", action="store_true", help="Print JSON")
	_add_project_arg(workflows_parser)
	workflows_parser.set_defaults(func=cmd_workflows)

	# workers
	workers_parser = subparsers.add_parser("workers", help="List workers")
	workers_parser.add_argument("--json", action="store_true", help="Print JSON")
	_add_project_arg(workers_parser)
	workers_parser.set_defaults(func=cmd_workers)

	# history
	history_parser = subparsers.add_parser("history", help="Show archived runs")
	history_parser.add_argument("run_id", nargs="?", default=None, help="Run ID for the full report")
	history_parser.add_argument("--workflow", type=str, default=None, help="Filter by workflow")
	history_parser.add_argument("--limit", type=int, default=20, help="Max results")
	history_parser.set_defaults(func=cmd_history)

	# serve
	serve_parser = subparsers.add_parser("serve", help="Run MCP server (stdio)")
	serve_parser.set_defaults(func=cmd_serve)

	return parser


def main(argv: list[str] | None = None) -> None:
	"""CLI entry point."""
	parser = build_parser()
	args = parser.parse_args(argv)

	if not args.command:
		parser.print_help()
		sys.exit(1)

	setup_logging(args.log_level, log_dir=load_config().log_dir)
	args.func(args)


if __name__ == "__main__":
	main()
