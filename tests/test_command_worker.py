"""Tests for the subprocess-backed worker."""

import json
import sys

import pytest

from workerflow.errors import WorkerInvocationError
from workerflow.workers.command import CommandWorker
from workerflow.workers.models import OutcomeStatus

ECHO_SCRIPT = """
import json, sys
request = json.load(sys.stdin)
print("starting review")
print(json.dumps({
    "status": "success",
    "produced_fields": {"seen": request["inputs"]["argument"], "worker": request["worker"]},
    "diagnostics": {"critical_count": 0, "context_keys": sorted(request["context"])},
}))
"""


def _python(script: str) -> list[str]:
	return [sys.executable, "-c", script]


class TestCommandWorker:
	@pytest.mark.asyncio
	async def test_json_round_trip(self):
		worker = CommandWorker("code-reviewer", _python(ECHO_SCRIPT))

		outcome = await worker.invoke({"argument": "src/app.py"}, {"argument": "src/app.py"})

		assert outcome.status == OutcomeStatus.SUCCESS
		assert outcome.produced_fields == {"seen": "src/app.py", "worker": "code-reviewer"}
		assert outcome.diagnostics["context_keys"] == ["argument"]

	@pytest.mark.asyncio
	async def test_failure_status_passes_through(self):
		script = "import json; print(json.dumps({'status': 'failure', 'diagnostics': {'critical_count': 2}}))"
		outcome = await CommandWorker("auditor", _python(script)).invoke({}, {})

		assert outcome.status == OutcomeStatus.FAILURE
		assert outcome.diagnostics["critical_count"] == 2

	@pytest.mark.asyncio
	async def test_non_zero_exit(self):
		script = "import sys; sys.stderr.write('boom'); sys.exit(3)"
		with pytest.raises(WorkerInvocationError, match="exit code 3: boom"):
			await CommandWorker("auditor", _python(script)).invoke({}, {})

	@pytest.mark.asyncio
	async def test_unparseable_output(self):
		with pytest.raises(WorkerInvocationError, match="not a JSON outcome"):
			await CommandWorker("auditor", _python("print('hello')")).invoke({}, {})

	@pytest.mark.asyncio
	async def test_unknown_status(self):
		script = "print('{\"status\": \"maybe\"}')"
		with pytest.raises(WorkerInvocationError, match="invalid outcome"):
			await CommandWorker("auditor", _python(script)).invoke({}, {})

	@pytest.mark.asyncio
	async def test_command_not_found(self):
		with pytest.raises(WorkerInvocationError, match="command not found"):
			await CommandWorker("ghost", "definitely-not-a-real-binary-xyz").invoke({}, {})

	@pytest.mark.asyncio
	async def test_extra_env(self):
		script = "import json, os; print(json.dumps({'produced_fields': {'mode': os.environ['REVIEW_MODE']}}))"
		worker = CommandWorker("auditor", _python(script), env={"REVIEW_MODE": "strict"})

		outcome = await worker.invoke({}, {})

		assert outcome.produced_fields == {"mode": "strict"}

	def test_string_command_is_split(self):
		worker = CommandWorker("w", "python review.py --strict")
		assert worker.argv == ["python", "review.py", "--strict"]

	def test_parse_whole_multiline_json(self):
		worker = CommandWorker("w", "true")
		outcome = worker._parse_output(json.dumps({"status": "needs_follow_up"}, indent=2))
		assert outcome.status == OutcomeStatus.NEEDS_FOLLOW_UP
