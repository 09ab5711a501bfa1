"""
Workflow Definitions - Pydantic schemas for declarative phase graphs.

A workflow is an ordered list of phases. Each phase names the workers
it dispatches, whether they run in parallel, and an optional bounded
validation loop. Ordering edges default to "previous phase"; the only
back-edges allowed are the self-loops declared by loop_until.
"""

import operator
import re
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..errors import WorkflowDefinitionError

_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
	"==": operator.eq,
	"!=": operator.ne,
	"<": operator.lt,
	"<=": operator.le,
	">": operator.gt,
	">=": operator.ge,
}

_CONDITION_RE = re.compile(
	r"^\s*(?:diagnostics\.)?(?P<metric>[A-Za-z_][A-Za-z0-9_]*)\s*"
	r"(?P<op>==|!=|<=|>=|<|>)\s*(?P<value>-?\d+(?:\.\d+)?)\s*$"
)

NO_FOLLOW_UP = "no_follow_up"
FOLLOW_UP_METRIC = "needs_follow_up"


class LoopCondition(BaseModel):
	"""A predicate over a phase's aggregated diagnostics."""
	metric: str = Field(description="Diagnostic counter to compare, e.g. 'critical_count'")
	op: str = Field(default="==", description="One of == != < <= > >=")
	value: float = Field(default=0)

	@field_validator("op")
	@classmethod
	def _known_operator(cls, v: str) -> str:
		if v not in _OPERATORS:
			raise ValueError(f"Unknown operator: {v}")
		return v

	@classmethod
	def parse(cls, expression: str) -> "LoopCondition":
		"""Parse 'diagnostics.critical_count == 0' or 'no_follow_up'."""
		if expression.strip() == NO_FOLLOW_UP:
			return cls(metric=FOLLOW_UP_METRIC, op="==", value=0)
		match = _CONDITION_RE.match(expression)
		if not match:
			raise ValueError(f"Cannot parse loop condition: {expression!r}")
		return cls(metric=match["metric"], op=match["op"], value=float(match["value"]))

	def is_satisfied(self, diagnostics: dict[str, Any]) -> bool:
		"""Metrics that no worker reported count as zero."""
		observed = diagnostics.get(self.metric, 0)
		if isinstance(observed, bool) or not isinstance(observed, (int, float)):
			observed = 0
		return _OPERATORS[self.op](observed, self.value)

	def __str__(self) -> str:
		value = int(self.value) if self.value == int(self.value) else self.value
		return f"{self.metric} {self.op} {value}"


class PhaseDefinition(BaseModel):
	"""One node of the workflow graph."""
	name: str = Field(description="Phase identifier, unique within a workflow")
	description: str = Field(default="")
	workers: list[str] = Field(description="Worker ids or capability tags, in dispatch order")
	parallel: bool = Field(default=False)
	loop_until: Optional[LoopCondition] = Field(default=None)
	max_iterations: int = Field(default=1, ge=1)
	depends_on: Optional[list[str]] = Field(
		default=None,
		description="Phase names this depends on; None means the previous phase",
	)
	advisory: list[str] = Field(
		default_factory=list,
		description="Workers whose failures only degrade the phase",
	)

	@field_validator("loop_until", mode="before")
	@classmethod
	def _parse_condition(cls, v: Any) -> Any:
		if isinstance(v, str):
			return LoopCondition.parse(v)
		return v

	@field_validator("workers")
	@classmethod
	def _non_empty(cls, v: list[str]) -> list[str]:
		if not v:
			raise ValueError("A phase needs at least one worker")
		if len(set(v)) != len(v):
			raise ValueError("A worker may appear only once per phase")
		return v

	@model_validator(mode="after")
	def _advisory_subset(self) -> "PhaseDefinition":
		unknown = set(self.advisory) - set(self.workers)
		if unknown:
			raise ValueError(f"Advisory workers not in phase: {sorted(unknown)}")
		return self

	def is_advisory(self, worker_ref: str) -> bool:
		return worker_ref in self.advisory


class WorkflowDefinition(BaseModel):
	"""A named multi-phase pipeline."""
	name: str = Field(description="Workflow identifier, e.g. 'quality-sprint'")
	description: str = Field(default="")
	phases: list[PhaseDefinition] = Field(default_factory=list)
	tags: list[str] = Field(default_factory=list)

	@model_validator(mode="after")
	def _validate_graph(self) -> "WorkflowDefinition":
		if not self.phases:
			raise ValueError("A workflow needs at least one phase")
		names = [p.name for p in self.phases]
		if len(set(names)) != len(names):
			raise ValueError("Phase names must be unique")
		for phase_name, deps in self.dependencies().items():
			missing = [d for d in deps if d not in names]
			if missing:
				raise ValueError(f"Phase '{phase_name}' depends on unknown phases: {missing}")
			if phase_name in deps:
				raise ValueError(f"Phase '{phase_name}' depends on itself; use loop_until")
		self.topological_order()
		return self

	def get_phase(self, name: str) -> PhaseDefinition:
		for phase in self.phases:
			if phase.name == name:
				return phase
		raise WorkflowDefinitionError(f"No phase '{name}' in workflow '{self.name}'")

	def dependencies(self) -> dict[str, list[str]]:
		"""Explicit dependency lists, with the implicit previous-phase edge filled in."""
		deps: dict[str, list[str]] = {}
		previous: Optional[str] = None
		for phase in self.phases:
			if phase.depends_on is None:
				deps[phase.name] = [previous] if previous else []
			else:
				deps[phase.name] = list(phase.depends_on)
			previous = phase.name
		return deps

	def topological_order(self) -> list[str]:
		"""
		Phase names in an order respecting dependencies.

		Ties are broken by declaration order.

		Raises:
			ValueError: If the dependency graph has a cycle
		"""
		deps = self.dependencies()
		order: list[str] = []
		done: set[str] = set()
		remaining = [p.name for p in self.phases]

		while remaining:
			ready = next((n for n in remaining if all(d in done for d in deps[n])), None)
			if ready is None:
				raise ValueError(f"Dependency cycle among phases: {remaining}")
			order.append(ready)
			done.add(ready)
			remaining.remove(ready)

		return order

	def max_total_iterations(self) -> int:
		"""Upper bound on phase executions for one run."""
		return sum(p.max_iterations for p in self.phases)
