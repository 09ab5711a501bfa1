"""Tests for the run archive."""

from pathlib import Path

import pytest
import pytest_asyncio

from workerflow.definitions.models import PhaseDefinition
from workerflow.orchestrator.aggregator import OutcomeAggregator
from workerflow.orchestrator.run import RunStatus
from workerflow.orchestrator.scheduler import Orchestrator
from workerflow.runs.store import RunArchive
from workerflow.workers.models import Outcome

from .helpers import ScriptedWorker, make_descriptor, make_registry, make_workflow


async def _result(workflow_name: str, outcome: Outcome):
	registry = make_registry(make_descriptor("w", ScriptedWorker(outcome)))
	workflow = make_workflow(workflow_name, PhaseDefinition(name="p", workers=["w"]))
	return OutcomeAggregator().aggregate(await Orchestrator(registry).run(workflow))


@pytest_asyncio.fixture
async def archive(tmp_path: Path):
	store = RunArchive(tmp_path / "nested" / "runs.db")
	await store.init()
	yield store
	await store.close()


class TestRunArchive:
	@pytest.mark.asyncio
	async def test_archive_and_get(self, archive):
		result = await _result("quality", Outcome.success())

		run_id = await archive.archive(result)

		assert run_id == result.run_id
		assert await archive.get(run_id) == result

	@pytest.mark.asyncio
	async def test_get_missing(self, archive):
		assert await archive.get("nope") is None

	@pytest.mark.asyncio
	async def test_archive_replaces_same_run(self, archive):
		result = await _result("quality", Outcome.success())
		await archive.archive(result)
		await archive.archive(result)

		assert len(await archive.list_recent()) == 1

	@pytest.mark.asyncio
	async def test_list_recent_filters(self, archive):
		ok = await _result("quality", Outcome.success())
		failed = await _result("audit", Outcome.failure("boom"))
		await archive.archive(ok)
		await archive.archive(failed)

		assert {r.run_id for r in await archive.list_recent()} == {ok.run_id, failed.run_id}
		assert [r.run_id for r in await archive.list_recent(workflow="audit")] == [failed.run_id]
		assert [r.run_id for r in await archive.list_recent(status=RunStatus.SUCCEEDED)] == [ok.run_id]
		assert len(await archive.list_recent(limit=1)) == 1

	@pytest.mark.asyncio
	async def test_lazy_init(self, tmp_path: Path):
		store = RunArchive(tmp_path / "lazy.db")
		try:
			assert await store.list_recent() == []
		finally:
			await store.close()
