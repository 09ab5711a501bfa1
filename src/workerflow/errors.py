"""Exception hierarchy for workflow orchestration."""


class WorkflowError(Exception):
	"""Base exception for all workerflow errors."""
	pass


class UnknownWorkerError(WorkflowError):
	"""Raised when a worker id or capability cannot be resolved."""

	def __init__(self, worker_id: str):
		super().__init__(f"Unknown worker: {worker_id}")
		self.worker_id = worker_id


class DuplicateWorkerError(WorkflowError):
	"""Raised when registering an id that already exists without replace."""

	def __init__(self, worker_id: str):
		super().__init__(f"Worker already registered: {worker_id}")
		self.worker_id = worker_id


class WorkflowDefinitionError(WorkflowError):
	"""Raised when a workflow definition is invalid or cannot be found."""
	pass


class ContractError(WorkflowError):
	"""Base for static contract violations that are fatal to a run."""
	pass


class KeyCollisionError(ContractError):
	"""Raised when a Context Bus key is written twice."""

	def __init__(self, phase: str, worker_id: str, field: str):
		super().__init__(f"Context key already written: ({phase}, {worker_id}, {field})")
		self.key = (phase, worker_id, field)


class MissingContextError(ContractError):
	"""Raised when a required context field was never written."""

	def __init__(self, field: str, worker_id: str = ""):
		target = f" for worker {worker_id}" if worker_id else ""
		super().__init__(f"Missing context field '{field}'{target}")
		self.field = field
		self.worker_id = worker_id


class WorkerInvocationError(WorkflowError):
	"""Wraps a failure surfaced by an external worker implementation."""

	def __init__(self, worker_id: str, message: str):
		super().__init__(f"Worker {worker_id} failed: {message}")
		self.worker_id = worker_id


class WorkerTimeoutError(WorkerInvocationError):
	"""Raised when a worker invocation exceeds its deadline."""

	def __init__(self, worker_id: str, timeout: float):
		super().__init__(worker_id, f"timed out after {timeout}s")
		self.timeout = timeout


class RunNotTerminalError(WorkflowError):
	"""Raised when aggregating a run that has not finished."""

	def __init__(self, run_id: str, status: str):
		super().__init__(f"Run {run_id} is not terminal (status: {status})")
		self.run_id = run_id
