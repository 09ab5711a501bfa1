"""
Outcome Aggregator - folds a terminal run into a FinalResult.

Aggregation is a pure read of the run: nothing on the run is mutated,
so aggregating the same run twice yields equal results. Diagnostics
are concatenated per worker invocation, never overwritten.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field

from ..errors import RunNotTerminalError
from .run import PhaseRecord, RunStatus, WorkerRecord, WorkflowRun

SEVERITIES = ("critical", "high", "medium", "low")

EXIT_CODES = {
	RunStatus.SUCCEEDED: 0,
	RunStatus.FAILED: 1,
	RunStatus.PARTIALLY_FAILED: 2,
}


class WorkerSummary(BaseModel):
	"""Outcome of one worker invocation."""
	worker_id: str
	ref: str = Field(description="Phase entry the worker was resolved from")
	iteration: int
	status: str
	advisory: bool = False
	produced_fields: list[str] = Field(default_factory=list)
	diagnostics: dict[str, Any] = Field(default_factory=dict)
	duration_seconds: float = 0.0


class PhaseSummary(BaseModel):
	"""Per-phase view of a run, in declaration order."""
	name: str
	status: str
	parallel: bool = False
	iterations: int = 0
	loop_condition: Optional[str] = None
	loop_satisfied: Optional[bool] = None
	loop_exhausted: bool = False
	workers: list[WorkerSummary] = Field(default_factory=list)
	not_run: list[str] = Field(default_factory=list)
	skip_reason: str = ""

	@property
	def failed_workers(self) -> list[WorkerSummary]:
		return [w for w in self.workers if w.status == "failure"]


class DiagnosticRecord(BaseModel):
	"""Diagnostics of one invocation, tagged with where they came from."""
	phase: str
	iteration: int
	worker_id: str
	diagnostics: dict[str, Any] = Field(default_factory=dict)


class FollowUpSummary(BaseModel):
	phase: str
	source_worker: str
	worker_id: str
	mode: str


class FinalResult(BaseModel):
	"""Structured run report."""
	run_id: str
	workflow: str
	argument: str = ""
	status: RunStatus
	exit_code: int
	created_at: str
	started_at: Optional[str] = None
	finished_at: Optional[str] = None
	phase_summaries: list[PhaseSummary] = Field(default_factory=list)
	merged_diagnostics: list[DiagnosticRecord] = Field(default_factory=list)
	severity_totals: dict[str, int] = Field(default_factory=dict)
	follow_ups: list[FollowUpSummary] = Field(default_factory=list)
	error: Optional[str] = None
	cancelled: bool = False

	def failures(self) -> list[tuple[str, WorkerSummary]]:
		"""Every failed invocation as (phase name, worker summary)."""
		return [(p.name, w) for p in self.phase_summaries for w in p.failed_workers]


def severity_count(diagnostics: dict[str, Any], severity: str) -> int:
	"""Read '<severity>_count' (or the camelCase form) from diagnostics."""
	for key in (f"{severity}_count", f"{severity}Count"):
		value = diagnostics.get(key)
		if isinstance(value, (int, float)) and not isinstance(value, bool):
			return int(value)
	return 0


class OutcomeAggregator:
	"""Builds FinalResult reports from terminal runs."""

	def aggregate(self, run: WorkflowRun) -> FinalResult:
		"""
		Aggregate a terminal run.

		Raises:
			RunNotTerminalError: If the run is still pending or running
		"""
		if not run.is_terminal:
			raise RunNotTerminalError(run.id, run.status.value)

		phase_summaries = [self._summarize_phase(run, record) for record in run.phase_records()]

		merged = [
			DiagnosticRecord(
				phase=summary.name,
				iteration=worker.iteration,
				worker_id=worker.worker_id,
				diagnostics=dict(worker.diagnostics),
			)
			for summary in phase_summaries
			for worker in summary.workers
		]

		return FinalResult(
			run_id=run.id,
			workflow=run.definition.name,
			argument=run.argument,
			status=run.status,
			exit_code=EXIT_CODES[run.status],
			created_at=run.created_at,
			started_at=run.started_at,
			finished_at=run.finished_at,
			phase_summaries=phase_summaries,
			merged_diagnostics=merged,
			severity_totals=self._severity_totals(run),
			follow_ups=[
				FollowUpSummary(
					phase=f.phase,
					source_worker=f.source_worker,
					worker_id=f.worker_id,
					mode=f.mode.value,
				)
				for f in run.follow_ups
			],
			error=run.error,
			cancelled=run.cancelled,
		)

	def _summarize_phase(self, run: WorkflowRun, record: PhaseRecord) -> PhaseSummary:
		phase = run.definition.get_phase(record.name)
		last = record.iterations[-1] if record.iterations else None
		return PhaseSummary(
			name=record.name,
			status=record.status.value,
			parallel=phase.parallel,
			iterations=len(record.iterations),
			loop_condition=str(phase.loop_until) if phase.loop_until else None,
			loop_satisfied=last.loop_satisfied if last else None,
			loop_exhausted=record.loop_exhausted,
			workers=[
				self._summarize_worker(iteration.number, worker_record)
				for iteration in record.iterations
				for worker_record in iteration.records
			],
			not_run=list(last.not_run) if last else [],
			skip_reason=record.skip_reason,
		)

	@staticmethod
	def _summarize_worker(iteration: int, record: WorkerRecord) -> WorkerSummary:
		return WorkerSummary(
			worker_id=record.worker_id,
			ref=record.ref,
			iteration=iteration,
			status=record.outcome.status.value,
			advisory=record.advisory,
			produced_fields=list(record.outcome.produced_fields),
			diagnostics=dict(record.outcome.diagnostics),
			duration_seconds=record.duration_seconds,
		)

	@staticmethod
	def _severity_totals(run: WorkflowRun) -> dict[str, int]:
		"""
		Sum severity counts over the last iteration of every phase.

		Earlier loop iterations describe issues the loop went on to fix,
		so only the final pass counts toward the totals.
		"""
		totals = {severity: 0 for severity in SEVERITIES}
		for record in run.phase_records():
			if not record.iterations:
				continue
			for worker_record in record.iterations[-1].records:
				for severity in SEVERITIES:
					totals[severity] += severity_count(worker_record.outcome.diagnostics, severity)
		return totals
