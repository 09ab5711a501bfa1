"""
Worker Models - descriptors, contracts and outcomes.

A worker is an opaque capability module. The orchestrator only knows
its descriptor: which capability tags it carries, which events trigger
it, which context fields it reads and which it writes.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from ..events import DEFAULT_PAYLOAD_FIELDS, Event, EventKind

if TYPE_CHECKING:
	from .base import Worker


class OutcomeStatus(str, Enum):
	"""Status reported by a single worker invocation."""
	SUCCESS = "success"
	FAILURE = "failure"
	NEEDS_FOLLOW_UP = "needs_follow_up"


class TriggerMode(str, Enum):
	"""Whether a matched trigger fires immediately or waits for approval."""
	AUTO = "auto"
	CONFIRM = "confirm"


@dataclass(frozen=True)
class TriggerPredicate:
	"""A declared condition over an event that selects a worker."""
	kind: EventKind
	pattern: Optional[str] = None
	field: Optional[str] = None
	mode: TriggerMode = TriggerMode.AUTO

	def matches(self, event: Event) -> bool:
		"""Check whether the event satisfies this predicate."""
		if event.kind != self.kind:
			return False
		if not self.pattern:
			return True
		key = self.field or DEFAULT_PAYLOAD_FIELDS[self.kind]
		value = event.payload.get(key)
		if value is None:
			return False
		return re.search(self.pattern, str(value)) is not None


@dataclass(frozen=True)
class ContractField:
	"""A context field a worker expects to read."""
	name: str
	required: bool = True
	default: Any = None


@dataclass(frozen=True)
class WorkerDescriptor:
	"""Metadata for a registered worker. Immutable once registered."""
	id: str
	capabilities: tuple[str, ...] = ()
	trigger_predicates: tuple[TriggerPredicate, ...] = ()
	input_contract: tuple[ContractField, ...] = ()
	output_contract: tuple[str, ...] = ()
	description: str = ""
	timeout: Optional[float] = None
	source_path: str = ""
	handler: Optional["Worker"] = field(default=None, repr=False, compare=False)

	def has_capability(self, tag: str) -> bool:
		return tag in self.capabilities

	def matches_focus(self, focus: str) -> bool:
		"""A worker is in focus when a tag equals it or is prefixed by it."""
		return any(tag == focus or tag.startswith(f"{focus}-") for tag in self.capabilities)


@dataclass
class Outcome:
	"""Result of one worker invocation."""
	status: OutcomeStatus
	produced_fields: dict[str, Any] = field(default_factory=dict)
	diagnostics: dict[str, Any] = field(default_factory=dict)

	@property
	def failed(self) -> bool:
		return self.status == OutcomeStatus.FAILURE

	@classmethod
	def success(cls, **produced_fields: Any) -> "Outcome":
		return cls(OutcomeStatus.SUCCESS, produced_fields=dict(produced_fields))

	@classmethod
	def failure(cls, error: str, error_type: str = "WorkerInvocationError", **diagnostics: Any) -> "Outcome":
		return cls(
			OutcomeStatus.FAILURE,
			diagnostics={"error": error, "error_type": error_type, **diagnostics},
		)

	def to_dict(self) -> dict[str, Any]:
		return {
			"status": self.status.value,
			"produced_fields": self.produced_fields,
			"diagnostics": self.diagnostics,
		}

	@classmethod
	def from_dict(cls, data: dict[str, Any]) -> "Outcome":
		"""Build an outcome from a JSON-shaped dict."""
		return cls(
			status=OutcomeStatus(data.get("status", OutcomeStatus.SUCCESS.value)),
			produced_fields=dict(data.get("produced_fields") or {}),
			diagnostics=dict(data.get("diagnostics") or {}),
		)
