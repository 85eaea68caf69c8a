"""
activity_log.py – Append-only Markdown activity log.

Each run appends rows to a local table so users can see what happened
after the console has scrolled away.  Writing is best-effort: a log that
cannot be written never interrupts an analysis.
"""

from __future__ import annotations

import getpass
import logging
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger("pbi-analyzer")

HEADER = "| Timestamp | User | Status | Details |\n|---|---|---|---|\n"

JOB_STARTED = "JOB_STARTED"
IN_PROGRESS = "IN_PROGRESS"
SUCCESS = "SUCCESS"
FAILURE = "FAILURE"
JOB_COMPLETED = "JOB_COMPLETED"


def _current_user() -> str:
    try:
        return getpass.getuser()
    except (OSError, KeyError, ImportError):
        return "User"


def sanitize(details: str) -> str:
    """Keep *details* inside a single Markdown table cell."""
    return details.replace("|", "-").replace("\r", " ").replace("\n", " ")


class ActivityLog:
    """Markdown table of job events, one row per call to :meth:`record`."""

    def __init__(self, path: str | Path, user: str | None = None) -> None:
        self._path = Path(path)
        self._user = user or _current_user()

    @property
    def path(self) -> Path:
        return self._path

    def record(self, status: str, details: str) -> None:
        timestamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
        row = f"| {timestamp} | {self._user} | **{status}** | {sanitize(details)} |\n"
        try:
            if not self._path.exists():
                self._path.parent.mkdir(parents=True, exist_ok=True)
                self._path.write_text(HEADER, encoding="utf-8")
            with self._path.open("a", encoding="utf-8") as fh:
                fh.write(row)
        except OSError as exc:
            logger.debug("Activity log not written (%s): %s", self._path, exc)
