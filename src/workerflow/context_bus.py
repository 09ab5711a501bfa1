"""
Context Bus - append-only key/value store scoped to one workflow run.

Keys are (phase, worker, field) triples. Each key is written at most
once; a re-run of a phase writes under a new phase-iteration id.
Reads look a field up by name and return its most recent write.
"""

import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any

from .errors import KeyCollisionError, MissingContextError

_MISSING = object()


@dataclass(frozen=True)
class ContextEntry:
	"""One write on the bus."""
	sequence: int
	phase: str
	worker_id: str
	field: str
	value: Any
	written_at: str = field(default_factory=lambda: datetime.now().isoformat())


class ContextBus:
	"""
	Write-once context store.

	The collision check and the insert happen under one lock, so of two
	concurrent writers to the same key exactly one succeeds.
	"""

	def __init__(self) -> None:
		self._entries: dict[tuple[str, str, str], ContextEntry] = {}
		self._latest: dict[str, ContextEntry] = {}
		self._sequence = 0
		self._lock = threading.Lock()

	def write(self, phase: str, worker_id: str, field: str, value: Any) -> ContextEntry:
		"""
		Write a value under (phase, worker_id, field).

		Raises:
			KeyCollisionError: If the key already holds a value
		"""
		key = (phase, worker_id, field)
		with self._lock:
			if key in self._entries:
				raise KeyCollisionError(phase, worker_id, field)
			self._sequence += 1
			entry = ContextEntry(self._sequence, phase, worker_id, field, value)
			self._entries[key] = entry
			self._latest[field] = entry
		return entry

	def read(self, field: str, default: Any = _MISSING) -> Any:
		"""
		Most recent value written for a field across all phases.

		Raises:
			MissingContextError: If never written and no default is given
		"""
		entry = self._latest.get(field)
		if entry is not None:
			return entry.value
		if default is not _MISSING:
			return default
		raise MissingContextError(field)

	def has(self, field: str) -> bool:
		return field in self._latest

	def get(self, phase: str, worker_id: str, field: str) -> Any:
		"""Exact-key lookup."""
		entry = self._entries.get((phase, worker_id, field))
		if entry is None:
			raise MissingContextError(field, worker_id)
		return entry.value

	def snapshot(self) -> Mapping[str, Any]:
		"""Read-only view of field -> latest value, frozen at call time."""
		with self._lock:
			return MappingProxyType({name: entry.value for name, entry in self._latest.items()})

	def entries(self) -> list[ContextEntry]:
		"""All writes in the order they happened."""
		with self._lock:
			return sorted(self._entries.values(), key=lambda e: e.sequence)

	def __len__(self) -> int:
		return len(self._entries)
