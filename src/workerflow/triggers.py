"""
Trigger Evaluator - decides which workers react to an event.

Matching is explicit and deterministic: every registered worker's
trigger predicates are tested in registration order. Matches are
independent, so one event may select several workers (a quality smell
can wake both the reviewer and the refactoring expert).
"""

import logging
from dataclasses import dataclass

from .events import Event, EventKind
from .workers.models import TriggerMode
from .workers.registry import WorkerRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TriggerMatch:
	"""A worker selected by an event, with how it should fire."""
	worker_id: str
	mode: TriggerMode


class TriggerEvaluator:
	"""Evaluates declared trigger predicates against events."""

	def evaluate(self, event: Event, registry: WorkerRegistry) -> list[str]:
		"""
		Return the ids of the workers that should fire for an event.

		Explicit commands bypass predicates and name the worker directly.

		Raises:
			UnknownWorkerError: If an explicit command names an unknown worker
		"""
		return [match.worker_id for match in self.evaluate_matches(event, registry)]

	def evaluate_matches(self, event: Event, registry: WorkerRegistry) -> list[TriggerMatch]:
		"""Like evaluate(), keeping the trigger mode of each match."""
		if event.kind == EventKind.EXPLICIT_COMMAND:
			worker_ref = event.payload.get("worker") or event.payload.get("command", "")
			descriptor = registry.lookup(worker_ref)
			return [TriggerMatch(descriptor.id, TriggerMode.AUTO)]

		matches: list[TriggerMatch] = []
		for descriptor in registry:
			for predicate in descriptor.trigger_predicates:
				if predicate.matches(event):
					matches.append(TriggerMatch(descriptor.id, predicate.mode))
					break

		if matches:
			logger.info(
				f"Event {event.kind.value} matched {len(matches)} worker(s): "
				f"{', '.join(m.worker_id for m in matches)}"
			)
		else:
			logger.debug(f"Event {event.kind.value} matched no workers")
		return matches
