"""
Command Worker - runs an external capability as a subprocess.

The process receives a JSON document on stdin:

	{"worker": "<id>", "inputs": {...}, "context": {...}}

and must print a JSON outcome on stdout:

	{"status": "success", "produced_fields": {...}, "diagnostics": {...}}

Deadlines are enforced by the orchestrator, which cancels the
invocation; the process is killed on cancellation.
"""

import asyncio
import json
import logging
import os
import shlex
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional

from ..errors import WorkerInvocationError
from .base import Worker
from .models import Outcome

logger = logging.getLogger(__name__)


class CommandWorker(Worker):
	"""Worker backed by an external command speaking JSON over stdio."""

	def __init__(
		self,
		worker_id: str,
		command: str | list[str],
		cwd: Optional[str] = None,
		env: Optional[dict[str, str]] = None,
	):
		"""
		Initialize the command worker.

		Args:
			worker_id: Id of the descriptor this worker implements
			command: Command line (string is split with shlex)
			cwd: Working directory for the process
			env: Extra environment for the process
		"""
		self.worker_id = worker_id
		self.argv = shlex.split(command) if isinstance(command, str) else list(command)
		self.cwd = str(Path(cwd).expanduser()) if cwd else None
		self.env = env

	async def invoke(self, snapshot: Mapping[str, Any], inputs: dict[str, Any]) -> Outcome:
		request = json.dumps(
			{"worker": self.worker_id, "inputs": inputs, "context": dict(snapshot)},
			default=str,
		).encode("utf-8")

		try:
			proc = await asyncio.create_subprocess_exec(
				*self.argv,
				stdin=asyncio.subprocess.PIPE,
				stdout=asyncio.subprocess.PIPE,
				stderr=asyncio.subprocess.PIPE,
				cwd=self.cwd,
				env=self._build_env(),
			)
		except FileNotFoundError:
			raise WorkerInvocationError(self.worker_id, f"command not found: {self.argv[0]}")

		try:
			stdout, stderr = await proc.communicate(request)
		except asyncio.CancelledError:
			if proc.returncode is None:
				proc.kill()
				await proc.wait()
			raise

		if proc.returncode != 0:
			detail = stderr.decode("utf-8", errors="replace").strip()[-500:]
			raise WorkerInvocationError(
				self.worker_id,
				f"exit code {proc.returncode}: {detail}" if detail else f"exit code {proc.returncode}",
			)

		return self._parse_output(stdout.decode("utf-8", errors="replace"))

	def _parse_output(self, output: str) -> Outcome:
		"""Parse the last JSON object printed by the process."""
		text = output.strip()
		if not text:
			raise WorkerInvocationError(self.worker_id, "no output")

		# Tools often log before the result; the outcome is the final line
		candidates = [text, text.splitlines()[-1]]
		for candidate in candidates:
			try:
				data = json.loads(candidate)
			except json.JSONDecodeError:
				continue
			if isinstance(data, dict):
				try:
					return Outcome.from_dict(data)
				except ValueError as e:
					raise WorkerInvocationError(self.worker_id, f"invalid outcome: {e}")

		logger.debug(f"Unparseable output from {self.worker_id}: {text[:200]}")
		raise WorkerInvocationError(self.worker_id, "output is not a JSON outcome")

	def _build_env(self) -> Optional[dict[str, str]]:
		if not self.env:
			return None
		return {**os.environ, **self.env}
