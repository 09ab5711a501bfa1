"""
Orchestrator - walks a workflow's phase graph and dispatches workers.

Execution model:
- Phases run one at a time in dependency order, ties broken by
  declaration order. A phase never starts before its dependencies
  reached a terminal status.
- Parallel phases fan out all workers and fan in before anything is
  committed; outcomes are committed in declaration order.
- Sequential phases commit after each worker so later workers in the
  phase read earlier outputs, and stop at the first critical failure.
- loop_until phases re-run under a new iteration id until the
  predicate holds or max_iterations is reached.
- A failed phase aborts the run; the remaining phases are skipped.
"""

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, Optional

from ..config import Config
from ..definitions.models import PhaseDefinition, WorkflowDefinition
from ..errors import ContractError, WorkflowDefinitionError
from ..events import Event
from ..triggers import TriggerEvaluator, TriggerMatch
from ..workers.models import Outcome, TriggerMode, WorkerDescriptor
from ..workers.registry import WorkerRegistry
from .dispatch import WorkerDispatcher, resolve_inputs
from .run import (
	FollowUp,
	PhaseIteration,
	PhaseRecord,
	PhaseStatus,
	RunOptions,
	RunStatus,
	WorkerRecord,
	WorkflowRun,
	phase_key,
	sum_diagnostics,
)

logger = logging.getLogger(__name__)

INPUT_PHASE = "input"
INPUT_WORKER = "user"

ApprovalCallback = Callable[[WorkflowRun, PhaseRecord], Awaitable[bool]]
ConfirmCallback = Callable[[TriggerMatch, Event], Awaitable[bool]]


class Orchestrator:
	"""
	Runs workflow definitions against a worker registry.

	The orchestrator holds no per-run state: every call to run()
	creates a fresh WorkflowRun with its own Context Bus.
	"""

	def __init__(
		self,
		registry: WorkerRegistry,
		evaluator: Optional[TriggerEvaluator] = None,
		config: Optional[Config] = None,
		on_approval_needed: Optional[ApprovalCallback] = None,
		on_confirm_trigger: Optional[ConfirmCallback] = None,
		max_concurrency: Optional[int] = None,
		default_timeout: Optional[float] = None,
	):
		"""
		Initialize the orchestrator.

		Args:
			registry: Worker registry used to resolve phase entries
			evaluator: Trigger evaluator for WorkerCompleted events
			config: Source of concurrency and timeout defaults
			on_approval_needed: Callback(run, phase_record) -> approved, for interactive runs
			on_confirm_trigger: Callback(match, event) -> approved, for confirm-mode triggers
			max_concurrency: Overrides config.max_concurrency
			default_timeout: Overrides config.default_worker_timeout
		"""
		self.registry = registry
		self.evaluator = evaluator or TriggerEvaluator()
		self.on_approval_needed = on_approval_needed
		self.on_confirm_trigger = on_confirm_trigger
		self.max_concurrency = max_concurrency or (config.max_concurrency if config else 8)
		if default_timeout is None and config is not None:
			default_timeout = config.default_worker_timeout
		self.default_timeout = default_timeout
		self.default_max_iterations = config.default_max_iterations if config else None

	# ------------------------------------------------------------------
	# Setup
	# ------------------------------------------------------------------

	def validate(self, definition: WorkflowDefinition) -> dict[str, list[WorkerDescriptor]]:
		"""
		Resolve every phase entry against the registry.

		Raises:
			UnknownWorkerError: If any entry resolves to nothing
			WorkflowDefinitionError: If two entries of a phase resolve to the same worker
		"""
		resolved: dict[str, list[WorkerDescriptor]] = {}
		for phase in definition.phases:
			descriptors = [self.registry.resolve(ref) for ref in phase.workers]
			seen: dict[str, str] = {}
			for ref, descriptor in zip(phase.workers, descriptors):
				if descriptor.id in seen:
					raise WorkflowDefinitionError(
						f"Phase '{phase.name}' of '{definition.name}': entries '{seen[descriptor.id]}' "
						f"and '{ref}' both resolve to worker '{descriptor.id}'"
					)
				seen[descriptor.id] = ref
			resolved[phase.name] = descriptors
		return resolved

	def prepare(
		self,
		definition: WorkflowDefinition,
		argument: str = "",
		options: Optional[RunOptions] = None,
	) -> WorkflowRun:
		"""Validate a definition and create a pending run for it."""
		self.validate(definition)
		return WorkflowRun(definition, argument=argument, options=options)

	async def run(
		self,
		definition: WorkflowDefinition,
		argument: str = "",
		options: Optional[RunOptions] = None,
	) -> WorkflowRun:
		"""Validate, execute and return a terminal run."""
		return await self.execute(self.prepare(definition, argument, options))

	# ------------------------------------------------------------------
	# Execution
	# ------------------------------------------------------------------

	async def execute(self, run: WorkflowRun) -> WorkflowRun:
		"""Drive a pending run to a terminal status."""
		if run.status != RunStatus.PENDING:
			raise ValueError(f"Run {run.id} already {run.status.value}")

		definition = run.definition
		dispatcher = WorkerDispatcher(self.max_concurrency, self.default_timeout)
		run.status = RunStatus.RUNNING
		run.started_at = datetime.now().isoformat()
		logger.info(f"Run {run.id}: starting workflow '{definition.name}'")

		order = definition.topological_order()
		abort_reason: Optional[str] = None

		try:
			run.bus.write(INPUT_PHASE, INPUT_WORKER, "argument", run.argument)

			for index, name in enumerate(order):
				record = run.phases[name]
				if abort_reason is None and run.cancel_requested:
					run.cancelled = True
					abort_reason = "run cancelled"
				if abort_reason is not None:
					record.status = PhaseStatus.SKIPPED
					record.skip_reason = abort_reason
					continue

				run.phase_cursor = name
				await self._execute_phase(run, definition.get_phase(name), record, dispatcher)

				if run.cancelled:
					abort_reason = "run cancelled"
				elif record.status == PhaseStatus.FAILED:
					abort_reason = f"phase '{name}' failed"
				elif run.options.interactive and index < len(order) - 1:
					if not await self._approve(run, record):
						abort_reason = f"approval denied after phase '{name}'"
						run.error = abort_reason
		except ContractError as e:
			# Static contract violation: the definition is wrong, not the worker
			logger.error(f"Run {run.id}: contract violation: {e}")
			run.error = str(e)
			for record in run.phase_records():
				if record.status == PhaseStatus.RUNNING:
					record.status = PhaseStatus.FAILED
				elif record.status == PhaseStatus.PENDING:
					record.status = PhaseStatus.SKIPPED
					record.skip_reason = "contract violation"

		run.phase_cursor = None
		run.status = self._final_status(run)
		run.finished_at = datetime.now().isoformat()
		logger.info(f"Run {run.id}: finished with status {run.status.value}")
		return run

	async def _execute_phase(
		self,
		run: WorkflowRun,
		phase: PhaseDefinition,
		record: PhaseRecord,
		dispatcher: WorkerDispatcher,
	) -> None:
		workers = self._select_workers(phase, run.options)
		if not workers:
			record.status = PhaseStatus.SKIPPED
			record.skip_reason = f"no workers match focus '{run.options.focus}'"
			logger.info(f"Run {run.id}: skipping phase '{phase.name}' ({record.skip_reason})")
			return

		max_iterations = self._iteration_cap(phase, run.options)

		record.status = PhaseStatus.RUNNING
		for number in range(1, max_iterations + 1):
			iteration = PhaseIteration(number)
			record.iterations.append(iteration)
			logger.info(f"Run {run.id}: phase '{phase.name}' iteration {number}/{max_iterations}")

			if phase.parallel:
				await self._run_parallel(run, phase, iteration, workers, dispatcher)
			else:
				await self._run_sequential(run, phase, iteration, workers, dispatcher)

			iteration.diagnostics = sum_diagnostics([r.outcome for r in iteration.records])

			if run.cancelled:
				record.status = PhaseStatus.FAILED
				return

			verdict = self._iteration_verdict(iteration)
			if verdict == PhaseStatus.FAILED or phase.loop_until is None:
				record.status = verdict
				return

			iteration.loop_satisfied = phase.loop_until.is_satisfied(iteration.diagnostics)
			if iteration.loop_satisfied:
				record.status = verdict
				return

			logger.info(
				f"Run {run.id}: phase '{phase.name}' loop condition '{phase.loop_until}' "
				f"not met after iteration {number}"
			)

		record.status = PhaseStatus.PARTIALLY_FAILED
		record.loop_exhausted = True
		logger.warning(
			f"Run {run.id}: phase '{phase.name}' exhausted {max_iterations} iterations "
			f"without satisfying '{phase.loop_until}'"
		)

	async def _run_sequential(
		self,
		run: WorkflowRun,
		phase: PhaseDefinition,
		iteration: PhaseIteration,
		workers: list[tuple[str, WorkerDescriptor]],
		dispatcher: WorkerDispatcher,
	) -> None:
		key = phase_key(phase.name, iteration.number)
		for position, (ref, descriptor) in enumerate(workers):
			snapshot = run.bus.snapshot()
			inputs = resolve_inputs(descriptor, snapshot)
			advisory = phase.is_advisory(ref)

			task = asyncio.ensure_future(dispatcher.invoke(descriptor, ref, snapshot, inputs, advisory))
			records, cancelled = await self._await_or_cancel(run, [task])

			worker_record = records[0]
			if worker_record is None:
				iteration.records.append(self._cancelled_record(descriptor, ref, advisory))
			else:
				self._commit(run, key, descriptor, worker_record)
				iteration.records.append(worker_record)
				self._emit_completion(run, phase.name, worker_record)

			if cancelled:
				iteration.not_run.extend(r for r, _ in workers[position + 1:])
				return

			if worker_record.outcome.failed and not advisory:
				skipped = [r for r, _ in workers[position + 1:]]
				if skipped:
					logger.warning(
						f"Run {run.id}: {descriptor.id} failed in phase '{phase.name}', "
						f"not running: {', '.join(skipped)}"
					)
				iteration.not_run.extend(skipped)
				return

	async def _run_parallel(
		self,
		run: WorkflowRun,
		phase: PhaseDefinition,
		iteration: PhaseIteration,
		workers: list[tuple[str, WorkerDescriptor]],
		dispatcher: WorkerDispatcher,
	) -> None:
		key = phase_key(phase.name, iteration.number)
		snapshot = run.bus.snapshot()
		# Resolve every input before fanning out so a contract error runs nothing
		prepared = [(ref, descriptor, resolve_inputs(descriptor, snapshot)) for ref, descriptor in workers]

		tasks = [
			asyncio.ensure_future(
				dispatcher.invoke(descriptor, ref, snapshot, inputs, phase.is_advisory(ref))
			)
			for ref, descriptor, inputs in prepared
		]
		records, _ = await self._await_or_cancel(run, tasks)

		# Declaration order, independent of completion order
		for (ref, descriptor), worker_record in zip(workers, records):
			if worker_record is None:
				iteration.records.append(self._cancelled_record(descriptor, ref, phase.is_advisory(ref)))
				continue
			self._commit(run, key, descriptor, worker_record)
			iteration.records.append(worker_record)
			self._emit_completion(run, phase.name, worker_record)

	async def _await_or_cancel(
		self,
		run: WorkflowRun,
		tasks: list[asyncio.Future],
	) -> tuple[list[Optional[WorkerRecord]], bool]:
		"""
		Wait for all tasks unless the run is cancelled first.

		Returns:
			Records in task order (None where a task was cancelled before
			finishing) and whether the run was cancelled
		"""
		gathered = asyncio.gather(*tasks)
		cancel_waiter = asyncio.ensure_future(run.wait_cancelled())
		try:
			done, _ = await asyncio.wait({gathered, cancel_waiter}, return_when=asyncio.FIRST_COMPLETED)
		finally:
			cancel_waiter.cancel()

		if gathered in done:
			return gathered.result(), False

		pending = sum(1 for t in tasks if not t.done())
		logger.warning(f"Run {run.id}: cancellation requested, stopping {pending} worker(s)")
		run.cancelled = True
		gathered.cancel()
		await asyncio.gather(*tasks, return_exceptions=True)

		# Workers that finished before the cancel keep their outcomes
		records = [
			None if task.cancelled() or task.exception() is not None else task.result()
			for task in tasks
		]
		return records, True

	@staticmethod
	def _cancelled_record(descriptor: WorkerDescriptor, ref: str, advisory: bool) -> WorkerRecord:
		"""Failure record for a worker stopped mid-flight by run cancellation."""
		return WorkerRecord(
			worker_id=descriptor.id,
			ref=ref,
			outcome=Outcome.failure(
				f"Worker {descriptor.id} cancelled before finishing",
				error_type="CancelledError",
				cancelled=True,
			),
			advisory=advisory,
		)

	def _commit(
		self,
		run: WorkflowRun,
		key: str,
		descriptor: WorkerDescriptor,
		worker_record: WorkerRecord,
	) -> None:
		"""Write a worker's produced fields to the bus under its phase-iteration key."""
		outcome = worker_record.outcome
		if descriptor.output_contract:
			undeclared = sorted(set(outcome.produced_fields) - set(descriptor.output_contract))
			if undeclared:
				worker_record.outcome = Outcome.failure(
					f"Worker {descriptor.id} produced undeclared fields: {', '.join(undeclared)}",
					undeclared_fields=undeclared,
				)
				logger.warning(worker_record.outcome.diagnostics["error"])
				return

		for name, value in outcome.produced_fields.items():
			run.bus.write(key, descriptor.id, name, value)

	def _emit_completion(self, run: WorkflowRun, phase_name: str, worker_record: WorkerRecord) -> None:
		"""Record WorkerCompleted trigger matches as follow-ups; none of them is run here."""
		event = Event.worker_completed(worker_record.worker_id, worker_record.outcome.status.value, phase_name)
		for match in self.evaluator.evaluate_matches(event, self.registry):
			if match.worker_id == worker_record.worker_id:
				continue
			run.follow_ups.append(
				FollowUp(
					phase=phase_name,
					source_worker=worker_record.worker_id,
					worker_id=match.worker_id,
					mode=match.mode,
				)
			)

	def _iteration_cap(self, phase: PhaseDefinition, options: RunOptions) -> int:
		"""Run option beats the phase declaration, which beats the configured default."""
		if phase.loop_until is None:
			return 1
		if options.max_iterations is not None:
			return options.max_iterations
		if "max_iterations" not in phase.model_fields_set and self.default_max_iterations:
			return self.default_max_iterations
		return phase.max_iterations

	def _select_workers(
		self,
		phase: PhaseDefinition,
		options: RunOptions,
	) -> list[tuple[str, WorkerDescriptor]]:
		"""Resolve phase entries, keeping only workers in focus when a focus is set."""
		resolved = [(ref, self.registry.resolve(ref)) for ref in phase.workers]
		if not options.focus:
			return resolved
		return [(ref, d) for ref, d in resolved if d.matches_focus(options.focus)]

	@staticmethod
	def _iteration_verdict(iteration: PhaseIteration) -> PhaseStatus:
		"""Critical failures fail the phase; advisory failures only degrade it."""
		failures = [r for r in iteration.records if r.outcome.failed]
		if any(not r.advisory for r in failures):
			return PhaseStatus.FAILED
		if failures:
			return PhaseStatus.PARTIALLY_FAILED
		return PhaseStatus.SUCCEEDED

	@staticmethod
	def _final_status(run: WorkflowRun) -> RunStatus:
		statuses = [r.status for r in run.phase_records()]
		if run.error or run.cancelled or PhaseStatus.FAILED in statuses:
			return RunStatus.FAILED
		if PhaseStatus.PARTIALLY_FAILED in statuses:
			return RunStatus.PARTIALLY_FAILED
		return RunStatus.SUCCEEDED

	async def _approve(self, run: WorkflowRun, record: PhaseRecord) -> bool:
		"""Approval gate between phases of an interactive run."""
		if self.on_approval_needed is None:
			logger.warning(f"Run {run.id}: interactive run without approval callback, continuing")
			return True
		try:
			return bool(await self.on_approval_needed(run, record))
		except Exception as e:
			logger.error(f"Approval callback failed: {e}")
			return False

	# ------------------------------------------------------------------
	# Event-driven runs
	# ------------------------------------------------------------------

	async def handle_event(self, event: Event, argument: Optional[str] = None) -> Optional[WorkflowRun]:
		"""
		React to an event by running every matched worker in one parallel phase.

		Confirm-mode matches only run when on_confirm_trigger approves them.

		Returns:
			The terminal run, or None when nothing was selected
		"""
		selected: list[str] = []
		for match in self.evaluator.evaluate_matches(event, self.registry):
			if match.mode == TriggerMode.CONFIRM and not await self._confirm(match, event):
				logger.info(f"Trigger for {match.worker_id} not confirmed, skipping")
				continue
			selected.append(match.worker_id)

		if not selected:
			return None

		definition = WorkflowDefinition(
			name=f"event-{event.kind.value}",
			description="Workers selected by trigger evaluation",
			phases=[PhaseDefinition(name="react", workers=selected, parallel=len(selected) > 1)],
		)
		if argument is None:
			if "argument" in event.payload:
				argument = str(event.payload["argument"] or "")
			else:
				argument = str(next(iter(event.payload.values()), ""))
		return await self.run(definition, argument=argument)

	async def _confirm(self, match: TriggerMatch, event: Event) -> bool:
		if self.on_confirm_trigger is None:
			return False
		try:
			return bool(await self.on_confirm_trigger(match, event))
		except Exception as e:
			logger.error(f"Trigger confirmation callback failed: {e}")
			return False
