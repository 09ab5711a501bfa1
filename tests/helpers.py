"""Shared test fixtures and helpers for workerflow tests."""

import asyncio
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from workerflow.config import Config
from workerflow.definitions.models import PhaseDefinition, WorkflowDefinition
from workerflow.workers.base import CallableWorker, Worker
from workerflow.workers.models import (
	ContractField,
	Outcome,
	OutcomeStatus,
	TriggerPredicate,
	WorkerDescriptor,
)
from workerflow.workers.registry import WorkerRegistry


class ScriptedWorker(Worker):
	"""Returns prepared outcomes in order, repeating the last one."""

	def __init__(self, *outcomes: Outcome, delay: float = 0.0):
		self.outcomes = list(outcomes) or [Outcome.success()]
		self.delay = delay
		self.calls: list[dict[str, Any]] = []

	async def invoke(self, snapshot, inputs):
		self.calls.append({"snapshot": dict(snapshot), "inputs": dict(inputs)})
		if self.delay:
			await asyncio.sleep(self.delay)
		index = min(len(self.calls), len(self.outcomes)) - 1
		return self.outcomes[index]


def with_diagnostics(status: OutcomeStatus = OutcomeStatus.SUCCESS, **diagnostics: Any) -> Outcome:
	return Outcome(status=status, diagnostics=dict(diagnostics))


def make_descriptor(
	worker_id: str,
	worker: Optional[Worker] = None,
	capabilities: Iterable[str] = (),
	inputs: Iterable[ContractField] = (),
	outputs: Iterable[str] = (),
	triggers: Iterable[TriggerPredicate] = (),
	timeout: Optional[float] = None,
) -> WorkerDescriptor:
	"""Create a descriptor bound to a worker (a succeeding one by default)."""
	return WorkerDescriptor(
		id=worker_id,
		capabilities=tuple(capabilities),
		trigger_predicates=tuple(triggers),
		input_contract=tuple(inputs),
		output_contract=tuple(outputs),
		timeout=timeout,
		handler=worker if worker is not None else ScriptedWorker(),
	)


def make_registry(*descriptors: WorkerDescriptor) -> WorkerRegistry:
	return WorkerRegistry(descriptors)


def make_workflow(name: str = "test-flow", *phases: PhaseDefinition) -> WorkflowDefinition:
	return WorkflowDefinition(name=name, phases=list(phases))


def recording_worker(log: list[str], name: str, result: Optional[Outcome] = None, delay: float = 0.0) -> CallableWorker:
	"""A worker appending its name to a shared log when it finishes."""

	async def run(snapshot, inputs):
		if delay:
			await asyncio.sleep(delay)
		log.append(name)
		return result or Outcome.success()

	return CallableWorker(run)


def make_config(tmp_path: Path) -> Config:
	"""Config rooted in a temporary directory."""
	config = Config(config_dir=tmp_path / "config", data_dir=tmp_path / "data")
	config.ensure_dirs()
	return config


def write_worker_file(root: Path, worker_id: str, body: str) -> Path:
	"""Write <root>/<worker_id>/WORKER.md and return its path."""
	worker_dir = root / worker_id
	worker_dir.mkdir(parents=True, exist_ok=True)
	path = worker_dir / "WORKER.md"
	path.write_text(body)
	return path


def capture_tools(config: Config, register_fn: Callable) -> dict:
	"""Register tools on a mock MCP and return the captured tool functions.

	Args:
		config: Config object to pass to the registration function
		register_fn: The registration function (e.g., register_run_tools)

	Returns:
		Dict mapping tool name to the tool function
	"""
	captured = {}

	class MockMCP:
		def tool(self):
			def decorator(fn):
				captured[fn.__name__] = fn
				return fn
			return decorator

	register_fn(MockMCP(), config)
	return captured
