"""
Dispatcher - invokes workers and turns every failure into an Outcome.

Timeouts and errors raised by an external capability never escape:
they are recorded as Failure outcomes with diagnostic detail.
Concurrency across a parallel fan-out is capped with a semaphore.
"""

import asyncio
import logging
import time
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Optional

from ..errors import MissingContextError, WorkerInvocationError, WorkerTimeoutError
from ..workers.models import Outcome, WorkerDescriptor
from .run import WorkerRecord

logger = logging.getLogger(__name__)


def resolve_inputs(descriptor: WorkerDescriptor, snapshot: Mapping[str, Any]) -> dict[str, Any]:
	"""
	Collect a worker's declared inputs from a context snapshot.

	Raises:
		MissingContextError: If a required field was never written
	"""
	inputs: dict[str, Any] = {}
	for contract_field in descriptor.input_contract:
		if contract_field.name in snapshot:
			inputs[contract_field.name] = snapshot[contract_field.name]
		elif not contract_field.required:
			inputs[contract_field.name] = contract_field.default
		else:
			raise MissingContextError(contract_field.name, descriptor.id)
	return inputs


class WorkerDispatcher:
	"""Runs single worker invocations with deadlines and a concurrency cap."""

	def __init__(self, max_concurrency: int = 8, default_timeout: Optional[float] = None):
		"""
		Initialize the dispatcher.

		Args:
			max_concurrency: Maximum worker invocations in flight
			default_timeout: Deadline for workers that declare none (None = no deadline)
		"""
		self.max_concurrency = max_concurrency
		self.default_timeout = default_timeout
		self._semaphore = asyncio.Semaphore(max_concurrency)

	async def invoke(
		self,
		descriptor: WorkerDescriptor,
		ref: str,
		snapshot: Mapping[str, Any],
		inputs: dict[str, Any],
		advisory: bool = False,
	) -> WorkerRecord:
		"""Invoke one worker; always returns a record, never raises worker errors."""
		started_at = datetime.now().isoformat()
		start = time.monotonic()

		async with self._semaphore:
			outcome = await self._call(descriptor, snapshot, inputs)

		duration = round(time.monotonic() - start, 4)
		if outcome.failed:
			logger.warning(f"Worker {descriptor.id} failed: {outcome.diagnostics.get('error', 'unknown error')}")
		else:
			logger.info(f"Worker {descriptor.id} finished: {outcome.status.value} ({duration}s)")

		return WorkerRecord(
			worker_id=descriptor.id,
			ref=ref,
			outcome=outcome,
			advisory=advisory,
			duration_seconds=duration,
			started_at=started_at,
		)

	async def _call(
		self,
		descriptor: WorkerDescriptor,
		snapshot: Mapping[str, Any],
		inputs: dict[str, Any],
	) -> Outcome:
		if descriptor.handler is None:
			error = WorkerInvocationError(descriptor.id, "no implementation bound")
			return Outcome.failure(str(error))

		timeout = descriptor.timeout if descriptor.timeout is not None else self.default_timeout

		try:
			result = await asyncio.wait_for(descriptor.handler.invoke(snapshot, inputs), timeout=timeout)
		except asyncio.TimeoutError:
			error = WorkerTimeoutError(descriptor.id, timeout)
			return Outcome.failure(str(error), error_type="TimeoutError", timeout=timeout)
		except WorkerInvocationError as e:
			return Outcome.failure(str(e))
		except Exception as e:
			logger.debug(f"Worker {descriptor.id} raised", exc_info=True)
			error = WorkerInvocationError(descriptor.id, f"{type(e).__name__}: {e}")
			return Outcome.failure(str(error), cause=type(e).__name__)

		if not isinstance(result, Outcome):
			error = WorkerInvocationError(descriptor.id, f"returned {type(result).__name__}, expected Outcome")
			return Outcome.failure(str(error))
		return result
