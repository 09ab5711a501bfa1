"""Tests for the worker registry."""

import pytest

from workerflow.errors import DuplicateWorkerError, UnknownWorkerError
from workerflow.workers.base import EchoWorker
from workerflow.workers.models import WorkerDescriptor
from workerflow.workers.registry import WorkerRegistry

from .helpers import make_descriptor


class TestRegister:
	def test_register_and_lookup(self):
		registry = WorkerRegistry()
		descriptor = WorkerDescriptor(id="code-reviewer", capabilities=("code-review",))
		registry.register(descriptor)

		assert registry.lookup("code-reviewer") is descriptor
		assert "code-reviewer" in registry
		assert len(registry) == 1

	def test_duplicate_id_rejected(self):
		registry = WorkerRegistry([WorkerDescriptor(id="debugger")])

		with pytest.raises(DuplicateWorkerError) as exc_info:
			registry.register(WorkerDescriptor(id="debugger", description="again"))
		assert exc_info.value.worker_id == "debugger"
		assert registry.lookup("debugger").description == ""

	def test_replace_keeps_registration_slot(self):
		registry = WorkerRegistry([WorkerDescriptor(id="a"), WorkerDescriptor(id="b")])
		registry.register(WorkerDescriptor(id="a", description="new"), replace=True)

		assert [d.id for d in registry] == ["a", "b"]
		assert registry.lookup("a").description == "new"

	def test_lookup_unknown(self):
		with pytest.raises(UnknownWorkerError, match="ghost"):
			WorkerRegistry().lookup("ghost")


class TestCapabilities:
	def test_find_by_capability_in_insertion_order(self):
		registry = WorkerRegistry([
			WorkerDescriptor(id="python-expert", capabilities=("implementation", "bug-fix")),
			WorkerDescriptor(id="debugger", capabilities=("debugging",)),
			WorkerDescriptor(id="go-expert", capabilities=("implementation",)),
		])

		found = registry.find_by_capability("implementation")
		assert [d.id for d in found] == ["python-expert", "go-expert"]
		assert registry.find_by_capability("nothing") == []

	def test_resolve_prefers_concrete_id(self):
		registry = WorkerRegistry([
			WorkerDescriptor(id="python-expert", capabilities=("debugger",)),
			WorkerDescriptor(id="debugger"),
		])
		assert registry.resolve("debugger").id == "debugger"

	def test_resolve_falls_back_to_first_capability_match(self):
		registry = WorkerRegistry([
			WorkerDescriptor(id="python-expert", capabilities=("bug-fix",)),
			WorkerDescriptor(id="go-expert", capabilities=("bug-fix",)),
		])
		assert registry.resolve("bug-fix").id == "python-expert"

	def test_resolve_unknown(self):
		with pytest.raises(UnknownWorkerError):
			WorkerRegistry().resolve("bug-fix")


class TestBinding:
	def test_bind_attaches_handler_without_mutating_original(self):
		original = WorkerDescriptor(id="api-designer", output_contract=("api_spec",))
		registry = WorkerRegistry([original])
		worker = EchoWorker("api-designer", ("api_spec",))

		bound = registry.bind("api-designer", worker)

		assert bound.handler is worker
		assert registry.lookup("api-designer").handler is worker
		assert original.handler is None

	def test_bind_unknown(self):
		with pytest.raises(UnknownWorkerError):
			WorkerRegistry().bind("ghost", EchoWorker("ghost"))

	def test_list_workers(self):
		registry = WorkerRegistry([
			make_descriptor("reviewer", capabilities=["code-review"]),
			WorkerDescriptor(id="unbound"),
		])
		listing = registry.list_workers()

		assert listing[0]["id"] == "reviewer"
		assert listing[0]["capabilities"] == ["code-review"]
		assert listing[0]["bound"] is True
		assert listing[1]["bound"] is False


class TestFocus:
	@pytest.mark.parametrize("focus,expected", [
		("security", True),
		("security-review", True),
		("secure", False),
		("performance", False),
	])
	def test_matches_focus(self, focus, expected):
		descriptor = WorkerDescriptor(id="auditor", capabilities=("security-review", "code-review"))
		assert descriptor.matches_focus(focus) is expected
