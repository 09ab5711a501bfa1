"""
Built-in worker descriptors and workflow definitions.

Descriptors here carry no implementation. Implementations come from
WORKER.md `command` entries, from Python callers binding handlers, or
from EchoWorker in dry runs.
"""

from .definitions.models import PhaseDefinition, WorkflowDefinition
from .events import EventKind
from .workers.models import ContractField, TriggerMode, TriggerPredicate, WorkerDescriptor

SOURCE_PATTERN = r"\.(py|js|jsx|ts|tsx|go|rs|java|rb)$"

ARGUMENT = ContractField(name="argument", required=False, default="")


def _optional(name: str, default=None) -> ContractField:
	return ContractField(name=name, required=False, default=default)


def _after(*worker_ids: str) -> str:
	return r"^(" + "|".join(worker_ids) + r")$"


def _language_expert(worker_id: str, language: str, pattern: str) -> WorkerDescriptor:
	return WorkerDescriptor(
		id=worker_id,
		description=f"Implements and fixes {language} code",
		capabilities=("implementation", f"language-{language}", "bug-fix"),
		trigger_predicates=(
			TriggerPredicate(EventKind.FILE_CHANGED, pattern=pattern, mode=TriggerMode.CONFIRM),
		),
		input_contract=(ARGUMENT, _optional("fix_plan"), _optional("review_issues", [])),
		output_contract=("implementation_summary", "changed_files"),
	)


BUILTIN_WORKERS: tuple[WorkerDescriptor, ...] = (
	WorkerDescriptor(
		id="code-reviewer",
		description="Reviews code for correctness, security and maintainability",
		capabilities=("code-review", "quality-review", "security-review"),
		trigger_predicates=(
			TriggerPredicate(EventKind.FILE_CHANGED, pattern=SOURCE_PATTERN),
		),
		input_contract=(ARGUMENT, _optional("changed_files", [])),
		output_contract=("review_report", "review_issues"),
	),
	WorkerDescriptor(
		id="debugger",
		description="Finds the root cause of an observed error",
		capabilities=("debugging", "error-analysis"),
		trigger_predicates=(
			TriggerPredicate(EventKind.ERROR_OBSERVED),
		),
		input_contract=(ARGUMENT,),
		output_contract=("root_cause", "fix_plan"),
	),
	WorkerDescriptor(
		id="test-engineer",
		description="Writes and runs tests for changed behaviour",
		capabilities=("test-generation", "testing", "quality-testing"),
		trigger_predicates=(
			TriggerPredicate(
				EventKind.WORKER_COMPLETED,
				pattern=_after("refactoring-expert", "python-expert", "javascript-expert", "typescript-expert", "go-expert"),
				mode=TriggerMode.CONFIRM,
			),
		),
		input_contract=(ARGUMENT, _optional("changed_files", []), _optional("api_spec")),
		output_contract=("test_report",),
	),
	WorkerDescriptor(
		id="documentation-writer",
		description="Writes reference and user documentation",
		capabilities=("documentation",),
		trigger_predicates=(
			TriggerPredicate(EventKind.WORKER_COMPLETED, pattern=_after("api-designer"), mode=TriggerMode.CONFIRM),
		),
		input_contract=(ARGUMENT, _optional("api_spec"), _optional("implementation_summary")),
		output_contract=("documentation",),
	),
	WorkerDescriptor(
		id="refactoring-expert",
		description="Restructures code without changing behaviour",
		capabilities=("refactoring", "quality-improvement"),
		trigger_predicates=(
			TriggerPredicate(EventKind.WORKER_COMPLETED, pattern=_after("code-reviewer"), mode=TriggerMode.CONFIRM),
		),
		input_contract=(ARGUMENT, _optional("review_issues", [])),
		output_contract=("refactor_summary", "changed_files"),
	),
	_language_expert("python-expert", "python", r"\.py$"),
	_language_expert("javascript-expert", "javascript", r"\.(js|jsx|mjs)$"),
	_language_expert("typescript-expert", "typescript", r"\.(ts|tsx)$"),
	_language_expert("go-expert", "go", r"\.go$"),
	WorkerDescriptor(
		id="api-designer",
		description="Designs API contracts before implementation",
		capabilities=("api-design", "design"),
		input_contract=(ARGUMENT,),
		output_contract=("api_spec",),
	),
	WorkerDescriptor(
		id="visual-design-extractor",
		description="Extracts design tokens and layout from mockups",
		capabilities=("visual-design", "design-extraction", "design"),
		trigger_predicates=(
			TriggerPredicate(EventKind.FILE_CHANGED, pattern=r"\.(png|jpe?g|svg|fig)$", mode=TriggerMode.CONFIRM),
		),
		input_contract=(ARGUMENT,),
		output_contract=("design_tokens",),
	),
	WorkerDescriptor(
		id="security-auditor",
		description="Audits code and dependencies for vulnerabilities",
		capabilities=("security-review", "security-audit"),
		trigger_predicates=(
			TriggerPredicate(EventKind.FILE_CHANGED, pattern=r"(requirements.*\.txt|pyproject\.toml|package\.json|go\.mod)$"),
		),
		input_contract=(ARGUMENT, _optional("changed_files", [])),
		output_contract=("security_report",),
	),
	WorkerDescriptor(
		id="performance-analyzer",
		description="Profiles hot paths and flags regressions",
		capabilities=("performance-review", "performance-analysis"),
		input_contract=(ARGUMENT, _optional("changed_files", [])),
		output_contract=("performance_report",),
	),
)


BUILTIN_WORKFLOWS: tuple[WorkflowDefinition, ...] = (
	WorkflowDefinition(
		name="quality-sprint",
		description="Review, refactor, test and document a code area",
		tags=["quality"],
		phases=[
			PhaseDefinition(
				name="review",
				workers=["code-reviewer", "security-auditor", "performance-analyzer"],
				parallel=True,
				advisory=["performance-analyzer"],
				loop_until="diagnostics.critical_count == 0",
				max_iterations=3,
			),
			PhaseDefinition(name="refactor", workers=["refactoring-expert"]),
			PhaseDefinition(name="test", workers=["test-engineer"]),
			PhaseDefinition(name="document", workers=["documentation-writer"], advisory=["documentation-writer"]),
		],
	),
	WorkflowDefinition(
		name="debug",
		description="Diagnose an error, fix it and verify until tests pass",
		tags=["debugging"],
		phases=[
			PhaseDefinition(name="diagnose", workers=["debugger"]),
			PhaseDefinition(
				name="fix-and-verify",
				workers=["bug-fix", "test-engineer"],
				loop_until="diagnostics.failed_test_count == 0",
				max_iterations=3,
			),
			PhaseDefinition(name="review", workers=["code-reviewer"], advisory=["code-reviewer"]),
		],
	),
	WorkflowDefinition(
		name="api-first",
		description="Design the API contract, implement it, then test and document in parallel",
		tags=["api"],
		phases=[
			PhaseDefinition(name="design", workers=["api-designer"]),
			PhaseDefinition(name="implement", workers=["implementation"]),
			PhaseDefinition(name="test", workers=["test-engineer"], depends_on=["implement"]),
			PhaseDefinition(
				name="document",
				workers=["documentation-writer"],
				depends_on=["design"],
				advisory=["documentation-writer"],
			),
			PhaseDefinition(
				name="review",
				workers=["code-reviewer", "refactoring-expert"],
				depends_on=["test", "document"],
				loop_until="diagnostics.critical_count == 0",
				max_iterations=2,
			),
		],
	),
	WorkflowDefinition(
		name="full-stack-feature",
		description="Deliver a feature across backend and frontend",
		tags=["feature"],
		phases=[
			PhaseDefinition(
				name="design",
				workers=["api-designer", "visual-design-extractor"],
				parallel=True,
				advisory=["visual-design-extractor"],
			),
			PhaseDefinition(name="implement", workers=["python-expert", "typescript-expert"], parallel=True),
			PhaseDefinition(
				name="review-and-fix",
				workers=["code-reviewer", "refactoring-expert"],
				loop_until="diagnostics.critical_count == 0",
				max_iterations=3,
			),
			PhaseDefinition(name="test", workers=["test-engineer"]),
			PhaseDefinition(name="document", workers=["documentation-writer"], advisory=["documentation-writer"]),
		],
	),
	WorkflowDefinition(
		name="security-audit",
		description="Audit for vulnerabilities and remediate until none are critical",
		tags=["security"],
		phases=[
			PhaseDefinition(
				name="audit",
				workers=["security-auditor", "code-reviewer"],
				parallel=True,
				advisory=["code-reviewer"],
			),
			PhaseDefinition(
				name="remediate",
				workers=["bug-fix", "security-auditor"],
				loop_until="diagnostics.critical_count == 0",
				max_iterations=3,
			),
		],
	),
)
