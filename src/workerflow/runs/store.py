"""
Run Archive - SQLite-backed storage of finished run reports.

Only terminal runs are archived, as their FinalResult JSON, so a report
can be re-rendered later without re-running any worker.
"""

import logging
from pathlib import Path
from typing import Optional, Union

import aiosqlite

from ..orchestrator.aggregator import FinalResult
from ..orchestrator.run import RunStatus

logger = logging.getLogger(__name__)


class RunArchive:
	"""
	SQLite-backed archive of FinalResult reports.

	Usage:
		archive = RunArchive(config.runs_db_path)
		await archive.init()

		await archive.archive(result)
		result = await archive.get(run_id)
		recent = await archive.list_recent(workflow="quality-sprint")
	"""

	def __init__(self, db_path: Union[str, Path]):
		"""Initialize the run archive."""
		self.db_path = Path(db_path)
		self.db_path.parent.mkdir(parents=True, exist_ok=True)
		self._db: Optional[aiosqlite.Connection] = None

	async def init(self):
		"""Initialize the database schema."""
		self._db = await aiosqlite.connect(str(self.db_path))
		self._db.row_factory = aiosqlite.Row

		await self._db.execute("""
			CREATE TABLE IF NOT EXISTS runs (
				id TEXT PRIMARY KEY,
				workflow TEXT NOT NULL,
				status TEXT NOT NULL,
				exit_code INTEGER NOT NULL,
				data TEXT NOT NULL,
				created_at TEXT NOT NULL,
				finished_at TEXT
			)
		""")

		await self._db.execute("""
			CREATE INDEX IF NOT EXISTS idx_runs_workflow ON runs(workflow)
		""")

		await self._db.commit()
		logger.info(f"Run archive initialized: {self.db_path}")

	async def close(self):
		"""Close the database connection."""
		if self._db:
			await self._db.close()
			self._db = None

	async def archive(self, result: FinalResult) -> str:
		"""
		Store a run report, replacing any earlier copy of the same run.

		Args:
			result: Aggregated report of a terminal run

		Returns:
			Run ID
		"""
		if not self._db:
			await self.init()

		await self._db.execute(
			"""
			INSERT OR REPLACE INTO runs (id, workflow, status, exit_code, data, created_at, finished_at)
			VALUES (?, ?, ?, ?, ?, ?, ?)
			""",
			(
				result.run_id,
				result.workflow,
				result.status.value,
				result.exit_code,
				result.model_dump_json(),
				result.created_at,
				result.finished_at,
			)
		)

		await self._db.commit()
		logger.info(f"Archived run {result.run_id} ({result.status.value})")

		return result.run_id

	async def get(self, run_id: str) -> Optional[FinalResult]:
		"""
		Get an archived report.

		Returns:
			FinalResult or None if not found
		"""
		if not self._db:
			await self.init()

		async with self._db.execute(
			"SELECT data FROM runs WHERE id = ?",
			(run_id,)
		) as cursor:
			row = await cursor.fetchone()

		if not row:
			return None

		return FinalResult.model_validate_json(row["data"])

	async def list_recent(
		self,
		workflow: Optional[str] = None,
		status: Optional[RunStatus] = None,
		limit: int = 20,
	) -> list[FinalResult]:
		"""
		List archived reports, newest first.

		Args:
			workflow: Filter by workflow name
			status: Filter by terminal status
			limit: Maximum number of reports
		"""
		if not self._db:
			await self.init()

		conditions = []
		params: list = []

		if workflow:
			conditions.append("workflow = ?")
			params.append(workflow)

		if status:
			conditions.append("status = ?")
			params.append(status.value)

		where_clause = " AND ".join(conditions) if conditions else "1=1"
		params.append(limit)

		async with self._db.execute(
			f"SELECT data FROM runs WHERE {where_clause} ORDER BY created_at DESC LIMIT ?",
			params
		) as cursor:
			rows = await cursor.fetchall()

		return [FinalResult.model_validate_json(row["data"]) for row in rows]


# Global archive instance
_archive: Optional[RunArchive] = None


async def get_run_archive(db_path: str = "") -> RunArchive:
	"""Get or create the global run archive."""
	global _archive
	if _archive is None:
		if not db_path:
			from ..config import get_config
			db_path = str(get_config().runs_db_path)
		_archive = RunArchive(db_path)
		await _archive.init()
	return _archive
