"""Catalog and trigger MCP tools."""

import json

from mcp.server.fastmcp import FastMCP

from ..config import Config
from ..errors import UnknownWorkerError
from ..events import Event, EventKind
from ..runtime import build_catalog, build_registry
from ..triggers import TriggerEvaluator


def _build_event(kind: str, value: str) -> Event:
	event_kind = EventKind(kind)
	if event_kind == EventKind.FILE_CHANGED:
		return Event.file_changed(value)
	if event_kind == EventKind.ERROR_OBSERVED:
		return Event.error_observed(value)
	if event_kind == EventKind.EXPLICIT_COMMAND:
		return Event.command(value)
	return Event.worker_completed(value, "success")


def register_workflow_tools(mcp: FastMCP, config: Config) -> None:
	"""Register catalog and trigger tools."""

	@mcp.tool()
	async def list_workflows(project_path: str = "") -> str:
		"""
		List all available workflows with their phases.

		Workflows are loaded from the built-in catalog, the global
		workflows directory and the project's .workerflow/workflows/.

		Args:
			project_path: Project path for project-specific workflows (default: current directory)
		"""
		catalog = build_catalog(config, project_path or None)
		workflows = [
			{
				"name": d.name,
				"description": d.description,
				"tags": d.tags,
				"phases": [
					{
						"name": p.name,
						"workers": p.workers,
						"parallel": p.parallel,
						"loop_until": str(p.loop_until) if p.loop_until else None,
						"max_iterations": p.max_iterations,
					}
					for p in d.phases
				],
			}
			for d in catalog
		]
		return json.dumps({"workflows": workflows, "total": len(workflows)}, indent=2)

	@mcp.tool()
	async def list_workers(project_path: str = "") -> str:
		"""
		List all registered workers with capabilities and triggers.

		Args:
			project_path: Project path for project-specific workers
		"""
		registry = build_registry(config, project_path or None)
		workers = registry.list_workers()
		return json.dumps({"workers": workers, "total": len(workers)}, indent=2)

	@mcp.tool()
	async def evaluate_trigger(kind: str, value: str, project_path: str = "") -> str:
		"""
		Show which workers an event would trigger.

		Args:
			kind: file_changed, error_observed, explicit_command or worker_completed
			value: File path, error text, worker id or completed worker id
			project_path: Project path for project-specific workers
		"""
		try:
			event = _build_event(kind, value)
		except ValueError:
			return json.dumps({
				"error": f"Unknown event kind: {kind}",
				"valid_kinds": [k.value for k in EventKind],
			}, indent=2)

		registry = build_registry(config, project_path or None)
		try:
			matches = TriggerEvaluator().evaluate_matches(event, registry)
		except UnknownWorkerError as e:
			return json.dumps({"error": str(e)}, indent=2)

		return json.dumps({
			"event": {"kind": event.kind.value, "payload": event.payload},
			"matches": [{"worker_id": m.worker_id, "mode": m.mode.value} for m in matches],
		}, indent=2)
