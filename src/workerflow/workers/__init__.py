"""Workers module - Descriptors, implementations, loading and the registry."""

from .base import CallableWorker, EchoWorker, Worker
from .command import CommandWorker
from .loader import WorkerLoader
from .models import ContractField, Outcome, OutcomeStatus, TriggerMode, TriggerPredicate, WorkerDescriptor
from .registry import WorkerRegistry

__all__ = [
	"Worker",
	"CallableWorker",
	"EchoWorker",
	"CommandWorker",
	"WorkerLoader",
	"WorkerDescriptor",
	"ContractField",
	"TriggerPredicate",
	"TriggerMode",
	"Outcome",
	"OutcomeStatus",
	"WorkerRegistry",
]
