"""Formatting helpers shared by the run views."""

from datetime import datetime
from typing import Optional


def format_duration(seconds: Optional[float]) -> str:
	"""Compact duration: '45ms', '1.2s', '2m 3s'; '-' when unknown."""
	if seconds is None:
		return "-"
	if seconds < 0.001:
		return "<1ms"
	if seconds < 1.0:
		return f"{seconds * 1000:.0f}ms"
	if seconds < 60.0:
		return f"{seconds:.1f}s"
	minutes, remainder = divmod(seconds, 60)
	return f"{int(minutes)}m {remainder:.0f}s"


def format_timestamp(iso_str: Optional[str], now: Optional[datetime] = None) -> str:
	"""
	Render a run timestamp for history listings.

	Runs from today show the time only, older runs the date and minute.
	Unparseable values are shown as given.
	"""
	if not iso_str:
		return "-"
	try:
		moment = datetime.fromisoformat(iso_str)
	except ValueError:
		return iso_str[:19]

	now = now or datetime.now()
	if moment.date() == now.date():
		return moment.strftime("%H:%M:%S")
	return moment.strftime("%Y-%m-%d %H:%M")


# Run, phase and outcome statuses share one palette
STATUS_STYLES = {
	"succeeded": "green",
	"success": "green",
	"partially_failed": "yellow",
	"needs_follow_up": "yellow",
	"failed": "red",
	"failure": "red",
	"skipped": "dim",
	"pending": "dim",
	"running": "cyan",
}


def status_markup(status: str) -> str:
	"""Wrap a status value in its Rich style."""
	style = STATUS_STYLES.get(status, "white")
	return f"[{style}]{status}[/{style}]"
