"""Tests for the MCP tool surface."""

import json
from pathlib import Path

import pytest
import pytest_asyncio

from workerflow.runs import store
from workerflow.tools.runs import register_run_tools
from workerflow.tools.workflows import register_workflow_tools

from .helpers import capture_tools, make_config


@pytest.fixture
def config(tmp_path: Path):
	return make_config(tmp_path)


@pytest_asyncio.fixture
async def fresh_archive(monkeypatch):
	"""Isolate the global archive per test."""
	monkeypatch.setattr(store, "_archive", None)
	yield
	if store._archive is not None:
		await store._archive.close()


class TestCatalogTools:
	@pytest.mark.asyncio
	async def test_list_workflows(self, config, tmp_path):
		tools = capture_tools(config, register_workflow_tools)

		data = json.loads(await tools["list_workflows"](project_path=str(tmp_path)))

		names = [w["name"] for w in data["workflows"]]
		assert "quality-sprint" in names
		sprint = next(w for w in data["workflows"] if w["name"] == "quality-sprint")
		assert sprint["phases"][0]["loop_until"] == "critical_count == 0"

	@pytest.mark.asyncio
	async def test_list_workers(self, config, tmp_path):
		tools = capture_tools(config, register_workflow_tools)

		data = json.loads(await tools["list_workers"](project_path=str(tmp_path)))

		assert data["total"] == len(data["workers"])
		assert "debugger" in [w["id"] for w in data["workers"]]

	@pytest.mark.asyncio
	async def test_evaluate_trigger(self, config, tmp_path):
		tools = capture_tools(config, register_workflow_tools)

		data = json.loads(await tools["evaluate_trigger"]("error_observed", "KeyError: 'id'", str(tmp_path)))

		assert data["matches"] == [{"worker_id": "debugger", "mode": "auto"}]

	@pytest.mark.asyncio
	async def test_evaluate_trigger_bad_kind(self, config):
		tools = capture_tools(config, register_workflow_tools)

		data = json.loads(await tools["evaluate_trigger"]("telepathy", "x"))

		assert "error" in data
		assert "file_changed" in data["valid_kinds"]

	@pytest.mark.asyncio
	async def test_evaluate_trigger_unknown_command(self, config, tmp_path):
		tools = capture_tools(config, register_workflow_tools)

		data = json.loads(await tools["evaluate_trigger"]("explicit_command", "ghost", str(tmp_path)))

		assert "ghost" in data["error"]


class TestRunTools:
	@pytest.mark.asyncio
	async def test_dry_run_and_report(self, config, tmp_path, fresh_archive):
		tools = capture_tools(config, register_run_tools)

		report = json.loads(await tools["run_workflow"](
			"quality-sprint",
			argument="src/",
			dry_run=True,
			project_path=str(tmp_path),
		))

		assert report["status"] == "succeeded"
		assert report["exit_code"] == 0
		assert [p["name"] for p in report["phase_summaries"]] == ["review", "refactor", "test", "document"]

		fetched = json.loads(await tools["get_run_report"](run_id=report["run_id"]))
		assert fetched["run_id"] == report["run_id"]

		listing = json.loads(await tools["get_run_report"]())
		assert listing["total"] == 1
		assert listing["runs"][0]["workflow"] == "quality-sprint"

	@pytest.mark.asyncio
	async def test_focus_and_iterations(self, config, tmp_path, fresh_archive):
		tools = capture_tools(config, register_run_tools)

		report = json.loads(await tools["run_workflow"](
			"quality-sprint",
			focus="security",
			max_iterations=1,
			dry_run=True,
			project_path=str(tmp_path),
		))

		review = report["phase_summaries"][0]
		assert [w["worker_id"] for w in review["workers"]] == ["code-reviewer", "security-auditor"]
		assert report["phase_summaries"][1]["status"] == "skipped"

	@pytest.mark.asyncio
	async def test_unknown_workflow(self, config, tmp_path, fresh_archive):
		tools = capture_tools(config, register_run_tools)

		data = json.loads(await tools["run_workflow"]("ghost", project_path=str(tmp_path)))

		assert "Unknown workflow" in data["error"]

	@pytest.mark.asyncio
	async def test_missing_report(self, config, fresh_archive):
		tools = capture_tools(config, register_run_tools)

		data = json.loads(await tools["get_run_report"](run_id="nope"))

		assert "not found" in data["error"]
