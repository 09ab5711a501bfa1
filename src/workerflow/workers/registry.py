"""
Worker Registry - holds descriptors for every known capability module.

Descriptors are registered once at startup and are immutable afterwards.
Registration order is preserved: capability lookups and trigger
evaluation both walk workers in the order they were registered.
"""

import dataclasses
import logging
from typing import Iterable, Iterator

from ..errors import DuplicateWorkerError, UnknownWorkerError
from .base import Worker
from .models import WorkerDescriptor

logger = logging.getLogger(__name__)


class WorkerRegistry:
	"""Insertion-ordered registry of worker descriptors."""

	def __init__(self, descriptors: Iterable[WorkerDescriptor] = ()):
		self._workers: dict[str, WorkerDescriptor] = {}
		for descriptor in descriptors:
			self.register(descriptor)

	def register(self, descriptor: WorkerDescriptor, replace: bool = False) -> None:
		"""
		Register a worker descriptor.

		Args:
			descriptor: Descriptor to register
			replace: Replace an existing descriptor with the same id

		Raises:
			DuplicateWorkerError: If the id exists and replace is False
		"""
		if descriptor.id in self._workers and not replace:
			raise DuplicateWorkerError(descriptor.id)
		if descriptor.id in self._workers:
			# Dict assignment keeps the original registration slot
			logger.info(f"Replacing worker descriptor: {descriptor.id}")
		else:
			logger.debug(f"Registered worker: {descriptor.id}")
		self._workers[descriptor.id] = descriptor

	def lookup(self, worker_id: str) -> WorkerDescriptor:
		"""Get a descriptor by id, raising UnknownWorkerError if absent."""
		try:
			return self._workers[worker_id]
		except KeyError:
			raise UnknownWorkerError(worker_id) from None

	def find_by_capability(self, tag: str) -> list[WorkerDescriptor]:
		"""All descriptors carrying a capability tag, in registration order."""
		return [d for d in self._workers.values() if d.has_capability(tag)]

	def resolve(self, ref: str) -> WorkerDescriptor:
		"""
		Resolve a phase entry to a descriptor.

		A concrete id wins; otherwise the first worker registered with
		that capability tag is the default.
		"""
		if ref in self._workers:
			return self._workers[ref]
		candidates = self.find_by_capability(ref)
		if candidates:
			return candidates[0]
		raise UnknownWorkerError(ref)

	def bind(self, worker_id: str, worker: Worker) -> WorkerDescriptor:
		"""Attach an implementation to a registered descriptor."""
		descriptor = dataclasses.replace(self.lookup(worker_id), handler=worker)
		self._workers[worker_id] = descriptor
		return descriptor

	def __contains__(self, worker_id: object) -> bool:
		return worker_id in self._workers

	def __iter__(self) -> Iterator[WorkerDescriptor]:
		return iter(list(self._workers.values()))

	def __len__(self) -> int:
		return len(self._workers)

	def list_workers(self) -> list[dict]:
		"""List all workers with basic info."""
		return [
			{
				"id": d.id,
				"description": d.description,
				"capabilities": list(d.capabilities),
				"triggers": [p.kind.value for p in d.trigger_predicates],
				"bound": d.handler is not None,
			}
			for d in self._workers.values()
		]
