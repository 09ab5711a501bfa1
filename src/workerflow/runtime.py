"""
Runtime assembly - builds registries and catalogs from every source.

Sources are layered, later ones overriding earlier ones by id/name:
1. Built-in catalog
2. Global definitions under the config directory
3. Project definitions under <project>/.workerflow/
"""

import logging
from pathlib import Path
from typing import Optional

from .catalog import BUILTIN_WORKERS, BUILTIN_WORKFLOWS
from .config import Config
from .definitions.loader import PROJECT_WORKFLOWS_DIR, WorkflowCatalog
from .orchestrator.aggregator import FinalResult, OutcomeAggregator
from .orchestrator.run import RunOptions
from .orchestrator.scheduler import ApprovalCallback, Orchestrator
from .runs.store import RunArchive
from .workers.base import EchoWorker
from .workers.loader import WorkerLoader
from .workers.registry import WorkerRegistry

logger = logging.getLogger(__name__)


def build_registry(
	config: Config,
	project_path: Optional[str] = None,
	dry_run: bool = False,
) -> WorkerRegistry:
	"""
	Build a worker registry from built-ins and WORKER.md definitions.

	Args:
		config: Supplies the global workers directory
		project_path: Project root for .workerflow/workers (default: cwd)
		dry_run: Bind an EchoWorker to every worker without an implementation
	"""
	registry = WorkerRegistry(BUILTIN_WORKERS)

	loader = WorkerLoader(global_dir=config.workers_dir, project_path=project_path)
	for descriptor in loader.discover().values():
		registry.register(descriptor, replace=True)

	if dry_run:
		for descriptor in registry:
			if descriptor.handler is None:
				registry.bind(descriptor.id, EchoWorker(descriptor.id, descriptor.output_contract))

	return registry


def build_catalog(config: Config, project_path: Optional[str] = None) -> WorkflowCatalog:
	"""Build the workflow catalog from built-ins, global and project YAML files."""
	catalog = WorkflowCatalog(BUILTIN_WORKFLOWS)
	catalog.load_dir(config.workflows_dir)
	project_root = Path(project_path) if project_path else Path.cwd()
	catalog.load_dir(project_root / PROJECT_WORKFLOWS_DIR)
	return catalog


async def run_workflow(
	config: Config,
	workflow_name: str,
	argument: str = "",
	options: Optional[RunOptions] = None,
	project_path: Optional[str] = None,
	dry_run: bool = False,
	on_approval_needed: Optional[ApprovalCallback] = None,
	archive: Optional[RunArchive] = None,
) -> FinalResult:
	"""
	Run a named workflow end to end and return its report.

	Raises:
		WorkflowDefinitionError: If the workflow is unknown
		UnknownWorkerError: If a phase names a worker nobody provides
	"""
	definition = build_catalog(config, project_path).get(workflow_name)
	registry = build_registry(config, project_path, dry_run=dry_run)

	orchestrator = Orchestrator(registry, config=config, on_approval_needed=on_approval_needed)
	run = await orchestrator.run(definition, argument=argument, options=options)
	result = OutcomeAggregator().aggregate(run)

	if archive is not None:
		await archive.archive(result)
	return result
