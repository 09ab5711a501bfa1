"""
Worker Loader - discovers worker descriptors from WORKER.md files.

Workers are discovered from:
- Global: <config_dir>/workers/
- Project: .workerflow/workers/

Project workers take precedence over global workers with the same name.
"""

import dataclasses
import logging
import re
from pathlib import Path
from typing import Any, Optional

import yaml

from ..events import EventKind
from .command import CommandWorker
from .models import ContractField, TriggerMode, TriggerPredicate, WorkerDescriptor

logger = logging.getLogger(__name__)

WORKER_FILENAME = "WORKER.md"
PROJECT_WORKERS_DIR = Path(".workerflow") / "workers"


class WorkerLoader:
	"""
	Discovers and parses worker descriptors.

	Each worker lives in its own directory:
	- <workers_dir>/<worker-name>/WORKER.md

	A descriptor with a `command` entry is bound to a CommandWorker
	running inside the worker's directory.
	"""

	def __init__(self, global_dir: Optional[Path] = None, project_path: Optional[str] = None):
		"""
		Initialize the worker loader.

		Args:
			global_dir: Directory holding global worker definitions
			project_path: Path to the project root (for project-specific workers)
		"""
		self.global_dir = global_dir
		self.project_path = Path(project_path) if project_path else Path.cwd()

	@property
	def project_workers_path(self) -> Path:
		return self.project_path / PROJECT_WORKERS_DIR

	def discover(self) -> dict[str, WorkerDescriptor]:
		"""
		Discover all worker definitions.

		Returns:
			Dict mapping worker id to descriptor, global ones first
		"""
		found: dict[str, WorkerDescriptor] = {}

		for base, origin in ((self.global_dir, "global"), (self.project_workers_path, "project")):
			if base is None or not base.exists():
				continue
			for worker_dir in sorted(base.iterdir()):
				if not worker_dir.is_dir():
					continue
				descriptor = self._load_worker(worker_dir)
				if descriptor is None:
					continue
				if descriptor.id in found:
					logger.info(f"{origin.title()} worker '{descriptor.id}' overrides earlier definition")
				found[descriptor.id] = descriptor
				logger.debug(f"Loaded {origin} worker: {descriptor.id}")

		logger.info(f"Discovered {len(found)} worker definitions")
		return found

	def _load_worker(self, worker_dir: Path) -> Optional[WorkerDescriptor]:
		worker_file = worker_dir / WORKER_FILENAME

		if not worker_file.exists():
			logger.warning(f"No {WORKER_FILENAME} in {worker_dir}")
			return None

		try:
			content = worker_file.read_text(encoding="utf-8")
			return parse_worker_file(content, str(worker_file))
		except (OSError, ValueError) as e:
			logger.error(f"Failed to load worker from {worker_dir}: {e}")
			return None


def parse_worker_file(content: str, source_path: str = "") -> Optional[WorkerDescriptor]:
	"""
	Parse a WORKER.md file.

	Expected format:
	```
	---
	name: code-reviewer
	description: Reviews changed code for defects
	capabilities: [code-review, security-review]
	triggers:
	  - kind: file_changed
	    pattern: '\\.py$'
	inputs: [argument, {name: changed_files, required: false, default: []}]
	outputs: [review_report]
	timeout: 300
	command: python review.py
	---

	# Notes for humans...
	```

	Returns:
		WorkerDescriptor or None when the frontmatter is missing or invalid

	Raises:
		ValueError: If a trigger or contract entry is malformed
	"""
	frontmatter_match = re.match(
		r"^---\s*\n(.*?)\n---\s*(?:\n(.*))?$",
		content,
		re.DOTALL,
	)

	if not frontmatter_match:
		logger.warning(f"No frontmatter found in {source_path}")
		return None

	try:
		frontmatter = yaml.safe_load(frontmatter_match.group(1))
	except yaml.YAMLError as e:
		logger.error(f"Invalid YAML frontmatter in {source_path}: {e}")
		return None

	if not frontmatter:
		logger.warning(f"Empty frontmatter in {source_path}")
		return None

	name = frontmatter.get("name")
	if not name:
		logger.warning(f"Missing 'name' in {source_path}")
		return None

	timeout = frontmatter.get("timeout")
	descriptor = WorkerDescriptor(
		id=name,
		capabilities=tuple(_split_list(frontmatter.get("capabilities", []))),
		trigger_predicates=tuple(_parse_trigger(t) for t in frontmatter.get("triggers") or []),
		input_contract=tuple(_parse_input(i) for i in frontmatter.get("inputs") or []),
		output_contract=tuple(_split_list(frontmatter.get("outputs", []))),
		description=frontmatter.get("description", ""),
		timeout=float(timeout) if timeout is not None else None,
		source_path=source_path,
	)

	command = frontmatter.get("command")
	if command:
		cwd = str(Path(source_path).parent) if source_path else None
		descriptor = dataclasses.replace(descriptor, handler=CommandWorker(name, command, cwd=cwd))

	return descriptor


def _split_list(raw: Any) -> list[str]:
	"""Accept either a YAML list or a comma-separated string."""
	if isinstance(raw, str):
		return [item.strip() for item in raw.split(",") if item.strip()]
	if isinstance(raw, list):
		return [str(item) for item in raw]
	return []


def _parse_trigger(raw: Any) -> TriggerPredicate:
	if not isinstance(raw, dict) or "kind" not in raw:
		raise ValueError(f"Trigger must be a mapping with 'kind': {raw!r}")
	return TriggerPredicate(
		kind=EventKind(raw["kind"]),
		pattern=raw.get("pattern"),
		field=raw.get("field"),
		mode=TriggerMode(raw.get("mode", TriggerMode.AUTO.value)),
	)


def _parse_input(raw: Any) -> ContractField:
	if isinstance(raw, str):
		return ContractField(name=raw)
	if isinstance(raw, dict) and "name" in raw:
		# A declared default makes the field optional
		has_default = "default" in raw
		return ContractField(
			name=raw["name"],
			required=raw.get("required", not has_default),
			default=raw.get("default"),
		)
	raise ValueError(f"Input must be a name or a mapping with 'name': {raw!r}")
