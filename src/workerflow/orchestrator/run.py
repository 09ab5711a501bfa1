"""
Workflow Run - per-run state owned by the orchestrator.

Every run gets its own Context Bus and phase records; nothing about a
run lives in process-wide state, so runs are independent and disposable.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from ..context_bus import ContextBus
from ..definitions.models import FOLLOW_UP_METRIC, WorkflowDefinition
from ..workers.models import Outcome, OutcomeStatus, TriggerMode


class RunStatus(str, Enum):
	"""Lifecycle of a workflow run."""
	PENDING = "pending"
	RUNNING = "running"
	SUCCEEDED = "succeeded"
	PARTIALLY_FAILED = "partially_failed"
	FAILED = "failed"

	@property
	def is_terminal(self) -> bool:
		return self in (RunStatus.SUCCEEDED, RunStatus.PARTIALLY_FAILED, RunStatus.FAILED)


class PhaseStatus(str, Enum):
	"""Per-phase status."""
	PENDING = "pending"
	RUNNING = "running"
	SUCCEEDED = "succeeded"
	PARTIALLY_FAILED = "partially_failed"
	FAILED = "failed"
	SKIPPED = "skipped"


@dataclass
class RunOptions:
	"""Flags selected on the invocation surface."""
	focus: Optional[str] = None
	interactive: bool = False
	max_iterations: Optional[int] = None

	def __post_init__(self):
		if self.max_iterations is not None and self.max_iterations < 1:
			raise ValueError("max_iterations must be at least 1")


@dataclass
class WorkerRecord:
	"""One worker invocation inside a phase iteration."""
	worker_id: str
	ref: str
	outcome: Outcome
	advisory: bool = False
	duration_seconds: float = 0.0
	started_at: str = ""


@dataclass
class PhaseIteration:
	"""One pass over a phase's workers."""
	number: int
	records: list[WorkerRecord] = field(default_factory=list)
	not_run: list[str] = field(default_factory=list)
	diagnostics: dict[str, Any] = field(default_factory=dict)
	loop_satisfied: Optional[bool] = None


@dataclass
class PhaseRecord:
	"""Execution history of one phase."""
	name: str
	status: PhaseStatus = PhaseStatus.PENDING
	iterations: list[PhaseIteration] = field(default_factory=list)
	skip_reason: str = ""
	loop_exhausted: bool = False


@dataclass
class FollowUp:
	"""
	A worker matched by a WorkerCompleted event during the run.

	Follow-ups are recorded, never dispatched, whatever their mode: a run
	executes exactly the phases its definition declares. `mode` tells the
	caller whether the match would fire on its own (auto) or needs a
	confirmation, e.g. when feeding it to Orchestrator.handle_event().
	"""
	phase: str
	source_worker: str
	worker_id: str
	mode: TriggerMode


def phase_key(phase: str, iteration: int) -> str:
	"""Context Bus phase identifier for one iteration."""
	return f"{phase}#{iteration}"


def sum_diagnostics(outcomes: list[Outcome]) -> dict[str, Any]:
	"""
	Merge worker diagnostics for loop evaluation.

	Numeric counters are summed, everything else is collected into a
	list so no worker's detail is lost.
	"""
	merged: dict[str, Any] = {FOLLOW_UP_METRIC: 0}
	for outcome in outcomes:
		if outcome.status == OutcomeStatus.NEEDS_FOLLOW_UP:
			merged[FOLLOW_UP_METRIC] += 1
		for key, value in outcome.diagnostics.items():
			if isinstance(value, (int, float)) and not isinstance(value, bool):
				current = merged.get(key, 0)
				merged[key] = (current if isinstance(current, (int, float)) else 0) + value
			else:
				merged.setdefault(f"{key}_values", []).append(value)
	return merged


class WorkflowRun:
	"""A single execution of a workflow definition."""

	def __init__(
		self,
		definition: WorkflowDefinition,
		argument: str = "",
		options: Optional[RunOptions] = None,
		run_id: Optional[str] = None,
	):
		self.id = run_id or str(uuid.uuid4())[:12]
		self.definition = definition
		self.argument = argument
		self.options = options or RunOptions()
		self.bus = ContextBus()
		self.status = RunStatus.PENDING
		self.phase_cursor: Optional[str] = None
		self.phases: dict[str, PhaseRecord] = {p.name: PhaseRecord(p.name) for p in definition.phases}
		self.follow_ups: list[FollowUp] = []
		self.error: Optional[str] = None
		self.cancelled = False
		self.created_at = datetime.now().isoformat()
		self.started_at: Optional[str] = None
		self.finished_at: Optional[str] = None
		self._cancel_event = asyncio.Event()

	@property
	def is_terminal(self) -> bool:
		return self.status.is_terminal

	@property
	def cancel_requested(self) -> bool:
		return self._cancel_event.is_set()

	def cancel(self) -> None:
		"""Request cancellation; in-flight workers of the current phase are cancelled."""
		self._cancel_event.set()

	async def wait_cancelled(self) -> None:
		await self._cancel_event.wait()

	def phase_records(self) -> list[PhaseRecord]:
		"""Phase records in declaration order."""
		return [self.phases[p.name] for p in self.definition.phases]

	def __repr__(self) -> str:
		return f"WorkflowRun(id={self.id!r}, workflow={self.definition.name!r}, status={self.status.value})"
