"""Visualizer package - Rich terminal views for run reports."""

from .run_report import (
	render_run_history,
	render_run_report,
	render_run_summary,
	render_worker_table,
	render_workflow_table,
)

__all__ = [
	"render_run_history",
	"render_run_report",
	"render_run_summary",
	"render_worker_table",
	"render_workflow_table",
]
