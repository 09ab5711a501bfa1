"""Tests for settings resolution."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from workerflow.config import Config, _apply_env_overrides, _apply_toml, load_config


def _env(tmp_path: Path, **extra: str) -> dict[str, str]:
	return {
		"WORKERFLOW_CONFIG_DIR": str(tmp_path / "config"),
		"WORKERFLOW_DATA_DIR": str(tmp_path / "data"),
		**extra,
	}


class TestDefaults:
	def test_directories_derive_from_roots(self, tmp_path: Path):
		config = Config(config_dir=tmp_path / "c", data_dir=tmp_path / "d")

		assert config.workers_dir == tmp_path / "c" / "workers"
		assert config.workflows_dir == tmp_path / "c" / "workflows"
		assert config.runs_db_path == tmp_path / "d" / "runs.db"
		assert config.log_dir == tmp_path / "d" / "logs"

	def test_platform_roots_and_tunables(self):
		config = Config()

		assert config.config_dir.is_absolute()
		assert config.data_dir.is_absolute()
		assert (config.default_max_iterations, config.max_concurrency) == (3, 8)

	def test_derived_paths_follow_root_changes(self, tmp_path: Path):
		config = Config(config_dir=tmp_path / "a")
		config.config_dir = tmp_path / "b"

		assert config.workers_dir == tmp_path / "b" / "workers"


class TestOverrides:
	def test_environment(self):
		with patch.dict(os.environ, {
			"WORKERFLOW_DATA_DIR": "/srv/workerflow",
			"WORKERFLOW_WORKER_TIMEOUT": "30",
			"WORKERFLOW_MAX_ITERATIONS": "5",
			"WORKERFLOW_MAX_CONCURRENCY": "2",
		}):
			config = _apply_env_overrides(Config())

		assert config.runs_db_path == Path("/srv/workerflow/runs.db")
		assert config.default_worker_timeout == 30.0
		assert config.default_max_iterations == 5
		assert config.max_concurrency == 2

	def test_toml_file(self, tmp_path: Path):
		(tmp_path / "config.toml").write_text(
			f'data_dir = "{tmp_path / "state"}"\n'
			"default_worker_timeout = 45\n"
			'theme = "dark"\n'
		)

		config = _apply_toml(Config(config_dir=tmp_path))

		assert config.log_dir == tmp_path / "state" / "logs"
		assert config.default_worker_timeout == 45.0
		assert not hasattr(config, "theme")

	def test_missing_toml_is_fine(self, tmp_path: Path):
		config = _apply_toml(Config(config_dir=tmp_path))

		assert config.max_concurrency == 8

	def test_environment_beats_toml(self, tmp_path: Path):
		config_dir = tmp_path / "config"
		config_dir.mkdir()
		(config_dir / "config.toml").write_text("max_concurrency = 4\ndefault_max_iterations = 7\n")

		with patch.dict(os.environ, _env(tmp_path, WORKERFLOW_MAX_CONCURRENCY="16")):
			config = load_config()

		assert config.max_concurrency == 16
		assert config.default_max_iterations == 7


class TestLoadConfig:
	def test_creates_directories(self, tmp_path: Path):
		with patch.dict(os.environ, _env(tmp_path)):
			config = load_config()

		assert config.config_dir.is_dir()
		assert config.log_dir.is_dir()

	def test_rejects_non_positive_tunables(self, tmp_path: Path):
		with patch.dict(os.environ, _env(tmp_path, WORKERFLOW_MAX_ITERATIONS="0")):
			with pytest.raises(ValueError, match="default_max_iterations"):
				load_config()
