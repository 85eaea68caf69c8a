"""
config.py – Settings loaded from environment variables.

A `Settings` value is built once per run and passed explicitly to the
client, the pipeline and the CLI; nothing reads the environment after that.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace

from dotenv import load_dotenv

from errors import ConfigError

DEFAULT_OUTPUT_DIR = "./reports"
DEFAULT_ACTIVITY_LOG = "AzDo_PBI_Analyzer_Activity_Log.md"


@dataclass(frozen=True)
class Settings:
    """Validated, read-only application settings."""

    # ── Azure DevOps ────────────────────────────────────────
    ado_org_url: str = ""
    ado_project: str = ""
    ado_pat: str = ""

    # ── Behaviour ───────────────────────────────────────────
    output_dir: str = DEFAULT_OUTPUT_DIR
    dedup_threshold: float = 0.85
    related_item_limit: int = 10
    fetch_workers: int = 4
    request_timeout: float = 30.0
    activity_log: str = DEFAULT_ACTIVITY_LOG

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "Settings":
        """Read settings from the process environment (and `.env`)."""
        if load_env_file:
            load_dotenv()
        try:
            return cls(
                ado_org_url=os.getenv("ADO_ORG_URL", "").rstrip("/"),
                ado_project=os.getenv("ADO_PROJECT", ""),
                ado_pat=os.getenv("ADO_PAT", ""),
                output_dir=os.getenv("OUTPUT_DIR", DEFAULT_OUTPUT_DIR),
                dedup_threshold=float(os.getenv("DEDUP_THRESHOLD", "0.85")),
                related_item_limit=int(os.getenv("RELATED_ITEM_LIMIT", "10")),
                fetch_workers=int(os.getenv("FETCH_WORKERS", "4")),
                request_timeout=float(os.getenv("REQUEST_TIMEOUT", "30")),
                activity_log=os.getenv("ACTIVITY_LOG", DEFAULT_ACTIVITY_LOG),
            )
        except ValueError as exc:
            raise ConfigError(f"Invalid numeric setting: {exc}") from exc

    def with_overrides(self, **changes) -> "Settings":
        """Return a copy with *changes* applied; ``None`` values are ignored."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    def missing(self, require_project: bool = False) -> list[str]:
        missing: list[str] = []
        if not self.ado_pat:
            missing.append("ADO_PAT")
        if require_project:
            if not self.ado_org_url:
                missing.append("ADO_ORG_URL")
            if not self.ado_project:
                missing.append("ADO_PROJECT")
        return missing

    def validate(self, require_project: bool = False) -> None:
        """Halt early if required values are missing."""
        missing = self.missing(require_project=require_project)
        if missing:
            raise ConfigError(
                f"Missing required environment variables: {', '.join(missing)}\n"
                "  → Copy .env.example to .env and fill in all values."
            )
        if not 0.0 < self.dedup_threshold <= 1.0:
            raise ConfigError(
                f"DEDUP_THRESHOLD must be in (0, 1], got {self.dedup_threshold}"
            )
