"""Workflow execution and run report MCP tools."""

import json

from mcp.server.fastmcp import FastMCP

from ..config import Config
from ..errors import WorkflowError
from ..orchestrator.run import RunOptions
from ..runs.store import get_run_archive
from ..runtime import run_workflow as execute_workflow


def register_run_tools(mcp: FastMCP, config: Config) -> None:
	"""Register run tools."""

	@mcp.tool()
	async def run_workflow(
		workflow: str,
		argument: str = "",
		focus: str = "",
		max_iterations: int = 0,
		dry_run: bool = False,
		project_path: str = "",
	) -> str:
		"""
		Run a workflow to completion and return its report.

		Interactive approval is not available over MCP; every phase
		advances automatically.

		Args:
			workflow: Workflow name (see list_workflows)
			argument: File reference, error text or description
			focus: Only dispatch workers with this capability tag
			max_iterations: Override loop caps (0 = use the workflow's)
			dry_run: Use placeholder workers where no implementation is bound
			project_path: Project path for project-specific definitions
		"""
		try:
			options = RunOptions(focus=focus or None, max_iterations=max_iterations or None)
			result = await execute_workflow(
				config,
				workflow,
				argument=argument,
				options=options,
				project_path=project_path or None,
				dry_run=dry_run,
				archive=await get_run_archive(str(config.runs_db_path)),
			)
		except (WorkflowError, ValueError) as e:
			return json.dumps({"error": str(e)}, indent=2)

		return result.model_dump_json(indent=2)

	@mcp.tool()
	async def get_run_report(run_id: str = "", workflow: str = "", limit: int = 10) -> str:
		"""
		Get an archived run report, or list recent runs.

		Args:
			run_id: Run ID for the full report (empty = list recent runs)
			workflow: Filter the listing by workflow name
			limit: Maximum runs to list
		"""
		archive = await get_run_archive(str(config.runs_db_path))

		if run_id:
			result = await archive.get(run_id)
			if result is None:
				return json.dumps({"error": f"Run not found: {run_id}"}, indent=2)
			return result.model_dump_json(indent=2)

		results = await archive.list_recent(workflow=workflow or None, limit=limit)
		return json.dumps({
			"runs": [
				{
					"run_id": r.run_id,
					"workflow": r.workflow,
					"status": r.status.value,
					"exit_code": r.exit_code,
					"severity_totals": r.severity_totals,
					"created_at": r.created_at,
				}
				for r in results
			],
			"total": len(results),
		}, indent=2)
