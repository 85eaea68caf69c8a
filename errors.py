"""
errors.py – Exception hierarchy for the analyzer.

Only configuration, reference parsing and fetching can fail; the text
pipeline degrades to empty results instead of raising.
"""

from __future__ import annotations


class AnalyzerError(Exception):
    """Base class for every user-visible failure."""


class ConfigError(AnalyzerError):
    """Required settings are missing or malformed."""


class WorkItemUrlError(AnalyzerError, ValueError):
    """The work-item URL or ID could not be understood."""


class WorkItemFetchError(AnalyzerError):
    """A work item could not be retrieved from Azure DevOps."""

    def __init__(
        self,
        message: str,
        work_item_id: int | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.work_item_id = work_item_id
        self.status_code = status_code

    @classmethod
    def for_status(
        cls, work_item_id: int | None, status_code: int | None, detail: str = ""
    ) -> "WorkItemFetchError":
        """Build the descriptive error for an HTTP *status_code*."""
        if status_code in (401, 203):
            message = (
                "Authentication failed (401). Check your PAT: it may be "
                "expired or lack the 'Work Items (Read)' scope."
            )
        elif status_code == 404:
            message = (
                f"Work item {work_item_id} not found (404). Check the ID and "
                "that the project is correct."
            )
        else:
            message = f"Failed to fetch work item {work_item_id}: {detail or 'unknown error'}"
        return cls(message, work_item_id=work_item_id, status_code=status_code)
