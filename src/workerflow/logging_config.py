"""Logging setup for the CLI and the MCP server."""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

ROOT_LOGGER = "workerflow"
LOG_FILENAME = "workerflow.log"

# Chatty dependencies only surface warnings
QUIET_LOGGERS = ("aiosqlite", "mcp")

CONSOLE_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s"


def setup_logging(
	level: Optional[str] = None,
	log_dir: Optional[Path] = None,
	console: bool = True,
) -> logging.Logger:
	"""
	Configure the package logger once per process.

	Args:
		level: Console level name; falls back to $LOG_LEVEL, then INFO
		log_dir: Directory for the rotating run log (no file log when None)
		console: Log to stderr, leaving stdout to reports and the MCP stdio transport

	Returns:
		The package logger
	"""
	level_name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
	console_level = logging.getLevelName(level_name)
	if not isinstance(console_level, int):
		console_level = logging.INFO

	logger = logging.getLogger(ROOT_LOGGER)
	if logger.handlers:
		return logger

	# The file log keeps DEBUG detail whatever the console shows
	logger.setLevel(logging.DEBUG if log_dir is not None else console_level)

	if console:
		stream = logging.StreamHandler(sys.stderr)
		stream.setLevel(console_level)
		stream.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))
		logger.addHandler(stream)

	if log_dir is not None:
		Path(log_dir).mkdir(parents=True, exist_ok=True)
		rotating = RotatingFileHandler(
			Path(log_dir) / LOG_FILENAME,
			maxBytes=10 * 1024 * 1024,
			backupCount=5,
			encoding="utf-8",
		)
		rotating.setLevel(logging.DEBUG)
		rotating.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
		logger.addHandler(rotating)

	for name in QUIET_LOGGERS:
		logging.getLogger(name).setLevel(logging.WARNING)

	return logger
