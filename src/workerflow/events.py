"""Events that drive trigger evaluation."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class EventKind(str, Enum):
	"""Kinds of events the trigger evaluator understands."""
	FILE_CHANGED = "file_changed"
	ERROR_OBSERVED = "error_observed"
	EXPLICIT_COMMAND = "explicit_command"
	WORKER_COMPLETED = "worker_completed"


# Payload key a trigger pattern is matched against when none is declared
DEFAULT_PAYLOAD_FIELDS: dict[EventKind, str] = {
	EventKind.FILE_CHANGED: "path",
	EventKind.ERROR_OBSERVED: "message",
	EventKind.EXPLICIT_COMMAND: "command",
	EventKind.WORKER_COMPLETED: "worker_id",
}


@dataclass
class Event:
	"""A transient event, created externally or by the orchestrator."""
	kind: EventKind
	payload: dict[str, Any] = field(default_factory=dict)
	created_at: str = field(default_factory=lambda: datetime.now().isoformat())

	@classmethod
	def file_changed(cls, path: str) -> "Event":
		return cls(EventKind.FILE_CHANGED, {"path": path})

	@classmethod
	def error_observed(cls, message: str) -> "Event":
		return cls(EventKind.ERROR_OBSERVED, {"message": message})

	@classmethod
	def command(cls, worker: str, argument: str = "") -> "Event":
		return cls(EventKind.EXPLICIT_COMMAND, {"worker": worker, "command": worker, "argument": argument})

	@classmethod
	def worker_completed(cls, worker_id: str, status: str, phase: str = "") -> "Event":
		return cls(
			EventKind.WORKER_COMPLETED,
			{"worker_id": worker_id, "status": status, "phase": phase},
		)
