"""Base worker definition used by the orchestrator."""

import abc
import asyncio
import inspect
from collections.abc import Mapping
from typing import Any, Awaitable, Callable, Union

from .models import Outcome, OutcomeStatus

WorkerFunction = Callable[[Mapping[str, Any], dict[str, Any]], Union[Outcome, Awaitable[Outcome]]]


class Worker(abc.ABC):
	"""
	Uniform capability interface.

	Every concrete specialization (review, refactor, test, document,
	language experts) sits behind this one operation and is selected
	by id or capability tag, never by subclass.
	"""

	@abc.abstractmethod
	async def invoke(self, snapshot: Mapping[str, Any], inputs: dict[str, Any]) -> Outcome:
		"""Run the capability against a read-only context snapshot."""


class CallableWorker(Worker):
	"""Adapts a plain sync or async function to the Worker interface."""

	def __init__(self, fn: WorkerFunction):
		self._fn = fn

	async def invoke(self, snapshot: Mapping[str, Any], inputs: dict[str, Any]) -> Outcome:
		result = self._fn(snapshot, inputs)
		if inspect.isawaitable(result):
			result = await result
		return result


class EchoWorker(Worker):
	"""Dry-run stand-in: succeeds and fills every declared output with a placeholder."""

	def __init__(self, worker_id: str, outputs: tuple[str, ...] = (), delay: float = 0.0):
		self.worker_id = worker_id
		self.outputs = outputs
		self.delay = delay

	async def invoke(self, snapshot: Mapping[str, Any], inputs: dict[str, Any]) -> Outcome:
		if self.delay:
			await asyncio.sleep(self.delay)
		produced = {name: f"<dry-run {self.worker_id}>" for name in self.outputs}
		return Outcome(
			status=OutcomeStatus.SUCCESS,
			produced_fields=produced,
			diagnostics={"dry_run": True, "inputs": sorted(inputs)},
		)
