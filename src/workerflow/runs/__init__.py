"""Runs module - Archive of finished run reports."""

from .store import RunArchive, get_run_archive

__all__ = [
	"RunArchive",
	"get_run_archive",
]
