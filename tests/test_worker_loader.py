"""Tests for WORKER.md discovery and parsing."""

from pathlib import Path

import pytest

from workerflow.events import EventKind
from workerflow.workers.command import CommandWorker
from workerflow.workers.loader import WorkerLoader, parse_worker_file
from workerflow.workers.models import TriggerMode

from .helpers import write_worker_file

REVIEWER = """---
name: code-reviewer
description: Reviews changed code
capabilities: [code-review, security-review]
triggers:
  - kind: file_changed
    pattern: '\\.py$'
  - kind: worker_completed
    pattern: '^python-expert$'
    mode: confirm
inputs:
  - argument
  - {name: changed_files, default: []}
outputs: review_report, review_issues
timeout: 120
---

# Reviewer

Free-form notes.
"""


class TestParseWorkerFile:
	def test_full_frontmatter(self):
		descriptor = parse_worker_file(REVIEWER, "/workers/code-reviewer/WORKER.md")

		assert descriptor.id == "code-reviewer"
		assert descriptor.capabilities == ("code-review", "security-review")
		assert descriptor.output_contract == ("review_report", "review_issues")
		assert descriptor.timeout == 120.0
		assert descriptor.handler is None

		first, second = descriptor.trigger_predicates
		assert first.kind == EventKind.FILE_CHANGED
		assert first.mode == TriggerMode.AUTO
		assert second.mode == TriggerMode.CONFIRM

		argument, changed = descriptor.input_contract
		assert argument.required is True
		assert changed.required is False
		assert changed.default == []

	def test_command_binds_command_worker(self, tmp_path: Path):
		content = "---\nname: linter\ncommand: ruff check --output-format json\n---\n"
		descriptor = parse_worker_file(content, str(tmp_path / "linter" / "WORKER.md"))

		assert isinstance(descriptor.handler, CommandWorker)
		assert descriptor.handler.argv == ["ruff", "check", "--output-format", "json"]
		assert descriptor.handler.cwd == str(tmp_path / "linter")

	def test_missing_frontmatter(self):
		assert parse_worker_file("# Just markdown") is None

	def test_missing_name(self):
		assert parse_worker_file("---\ndescription: nameless\n---\n") is None

	def test_malformed_trigger(self):
		with pytest.raises(ValueError):
			parse_worker_file("---\nname: x\ntriggers: [file_changed]\n---\n")


class TestWorkerLoader:
	def test_project_overrides_global(self, tmp_path: Path):
		global_dir = tmp_path / "global"
		project = tmp_path / "project"
		write_worker_file(global_dir, "debugger", "---\nname: debugger\ndescription: global\n---\n")
		write_worker_file(global_dir, "api-designer", "---\nname: api-designer\n---\n")
		write_worker_file(
			project / ".workerflow" / "workers",
			"debugger",
			"---\nname: debugger\ndescription: project\n---\n",
		)

		found = WorkerLoader(global_dir=global_dir, project_path=str(project)).discover()

		assert set(found) == {"debugger", "api-designer"}
		assert found["debugger"].description == "project"

	def test_invalid_definitions_are_skipped(self, tmp_path: Path):
		write_worker_file(tmp_path, "good", "---\nname: good\n---\n")
		write_worker_file(tmp_path, "bad", "---\nname: bad\ntriggers: [oops]\n---\n")
		(tmp_path / "empty-dir").mkdir()

		found = WorkerLoader(global_dir=tmp_path, project_path=str(tmp_path / "none")).discover()

		assert list(found) == ["good"]

	def test_missing_directories(self, tmp_path: Path):
		loader = WorkerLoader(global_dir=tmp_path / "absent", project_path=str(tmp_path))
		assert loader.discover() == {}
