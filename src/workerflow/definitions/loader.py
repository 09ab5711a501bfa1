"""
Workflow Loader - reads workflow definitions from YAML files.

Example file (<workflows_dir>/quality-sprint.yaml):

	name: quality-sprint
	phases:
	  - name: review
	    workers: [code-reviewer]
	    loop_until: diagnostics.critical_count == 0
	    max_iterations: 3
	  - name: refactor
	    workers: [refactoring-expert]
"""

import logging
from pathlib import Path
from typing import Iterable, Optional

import yaml
from pydantic import ValidationError

from ..errors import WorkflowDefinitionError
from .models import WorkflowDefinition

logger = logging.getLogger(__name__)

PROJECT_WORKFLOWS_DIR = Path(".workerflow") / "workflows"


def load_workflow_file(path: Path) -> WorkflowDefinition:
	"""
	Load and validate one workflow file.

	Raises:
		WorkflowDefinitionError: If the file is unreadable or invalid
	"""
	try:
		data = yaml.safe_load(path.read_text(encoding="utf-8"))
	except (OSError, yaml.YAMLError) as e:
		raise WorkflowDefinitionError(f"Cannot read workflow file {path}: {e}") from e

	if not isinstance(data, dict):
		raise WorkflowDefinitionError(f"Workflow file {path} must contain a mapping")
	data.setdefault("name", path.stem)

	try:
		return WorkflowDefinition.model_validate(data)
	except ValidationError as e:
		raise WorkflowDefinitionError(f"Invalid workflow in {path}: {e}") from e


class WorkflowCatalog:
	"""Named workflow definitions, later additions overriding earlier ones."""

	def __init__(self, definitions: Iterable[WorkflowDefinition] = ()):
		self._definitions: dict[str, WorkflowDefinition] = {}
		for definition in definitions:
			self.add(definition)

	def add(self, definition: WorkflowDefinition) -> None:
		if definition.name in self._definitions:
			logger.info(f"Workflow '{definition.name}' overrides earlier definition")
		self._definitions[definition.name] = definition

	def get(self, name: str) -> WorkflowDefinition:
		"""
		Get a workflow by name.

		Raises:
			WorkflowDefinitionError: If no workflow has that name
		"""
		try:
			return self._definitions[name]
		except KeyError:
			available = ", ".join(self._definitions) or "none"
			raise WorkflowDefinitionError(f"Unknown workflow '{name}' (available: {available})") from None

	def names(self) -> list[str]:
		return list(self._definitions)

	def __iter__(self):
		return iter(list(self._definitions.values()))

	def __len__(self) -> int:
		return len(self._definitions)

	def load_dir(self, directory: Optional[Path]) -> int:
		"""
		Load every *.yaml / *.yml file in a directory.

		Invalid files are logged and skipped so one bad definition does
		not hide the rest.

		Returns:
			Number of workflows loaded
		"""
		if directory is None or not directory.exists():
			return 0

		loaded = 0
		for path in sorted(directory.iterdir()):
			if path.suffix not in (".yaml", ".yml"):
				continue
			try:
				self.add(load_workflow_file(path))
				loaded += 1
			except WorkflowDefinitionError as e:
				logger.error(str(e))
		logger.debug(f"Loaded {loaded} workflows from {directory}")
		return loaded
