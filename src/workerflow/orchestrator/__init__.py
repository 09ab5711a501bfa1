"""Orchestrator module - Run state, dispatch, scheduling and aggregation."""

from .aggregator import FinalResult, OutcomeAggregator, PhaseSummary, WorkerSummary
from .run import RunOptions, RunStatus, PhaseStatus, WorkflowRun
from .scheduler import Orchestrator

__all__ = [
	"Orchestrator",
	"OutcomeAggregator",
	"FinalResult",
	"PhaseSummary",
	"WorkerSummary",
	"RunOptions",
	"RunStatus",
	"PhaseStatus",
	"WorkflowRun",
]
