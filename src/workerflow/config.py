"""
Settings for workerflow.

Directories follow platform conventions via platformdirs; everything
under them is derived. Values resolve in order env > config.toml > defaults.

	# <config_dir>/config.toml
	data_dir = "~/workerflow-data"
	default_worker_timeout = 300
	default_max_iterations = 3
	max_concurrency = 4
"""

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import platformdirs

logger = logging.getLogger(__name__)

APP_NAME = "workerflow"
ENV_PREFIX = "WORKERFLOW_"


def _expand_path(value: Any) -> Path:
	return Path(os.path.expanduser(str(value)))


@dataclass
class Config:
	"""Directories and orchestration tunables."""

	config_dir: Path = field(default_factory=lambda: Path(platformdirs.user_config_dir(APP_NAME)))
	data_dir: Path = field(default_factory=lambda: Path(platformdirs.user_data_dir(APP_NAME)))

	# Per-invocation deadline when a worker declares none
	default_worker_timeout: float = 600.0
	# Loop cap for phases that declare loop_until but no max_iterations
	default_max_iterations: int = 3
	# Upper bound on concurrently running workers in a parallel phase
	max_concurrency: int = 8

	@property
	def workers_dir(self) -> Path:
		return self.config_dir / "workers"

	@property
	def workflows_dir(self) -> Path:
		return self.config_dir / "workflows"

	@property
	def runs_db_path(self) -> Path:
		return self.data_dir / "runs.db"

	@property
	def log_dir(self) -> Path:
		return self.data_dir / "logs"

	def validate(self) -> None:
		"""
		Reject tunables the orchestrator cannot honour.

		Raises:
			ValueError: If a tunable is not positive
		"""
		for name in ("default_worker_timeout", "default_max_iterations", "max_concurrency"):
			if getattr(self, name) <= 0:
				raise ValueError(f"{name} must be positive, got {getattr(self, name)}")

	def ensure_dirs(self) -> None:
		"""Create the config, data and log directories."""
		for directory in (self.config_dir, self.data_dir, self.log_dir):
			directory.mkdir(parents=True, exist_ok=True)


# setting name -> converter, shared by config.toml and WORKERFLOW_<NAME>
_SETTINGS: dict[str, Callable[[Any], Any]] = {
	"config_dir": _expand_path,
	"data_dir": _expand_path,
	"default_worker_timeout": float,
	"default_max_iterations": int,
	"max_concurrency": int,
}

# Environment names that differ from WORKERFLOW_<SETTING>
_ENV_ALIASES = {
	"default_worker_timeout": "WORKER_TIMEOUT",
	"default_max_iterations": "MAX_ITERATIONS",
}


def _env_name(setting: str) -> str:
	return ENV_PREFIX + _ENV_ALIASES.get(setting, setting.upper())


def _apply_env_overrides(config: Config) -> Config:
	"""Apply WORKERFLOW_* environment variables, e.g. WORKERFLOW_MAX_CONCURRENCY=2."""
	for setting, convert in _SETTINGS.items():
		raw = os.getenv(_env_name(setting))
		if raw:
			setattr(config, setting, convert(raw))
	return config


def _apply_toml(config: Config) -> Config:
	"""Apply <config_dir>/config.toml when present; unknown keys are ignored."""
	toml_path = config.config_dir / "config.toml"
	if not toml_path.exists():
		return config

	with open(toml_path, "rb") as f:
		data = tomllib.load(f)

	for key, value in data.items():
		convert = _SETTINGS.get(key)
		if convert is None:
			logger.debug(f"Ignoring unknown setting '{key}' in {toml_path}")
			continue
		setattr(config, key, convert(value))
	return config


def load_config() -> Config:
	"""Load config with precedence: env vars > config.toml > defaults."""
	# config.toml is looked up in the config dir the environment selects
	env_config_dir = os.getenv(_env_name("config_dir"))
	config = Config(config_dir=_expand_path(env_config_dir)) if env_config_dir else Config()
	config = _apply_env_overrides(_apply_toml(config))
	config.validate()
	config.ensure_dirs()
	return config


_config: Config | None = None


def get_config() -> Config:
	"""Get or create the global config instance."""
	global _config
	if _config is None:
		_config = load_config()
	return _config
