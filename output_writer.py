"""
output_writer.py – Persist an AnalysisReport as files.

Layout under the output directory:
  pbi/{id}/
    story-analysis.md
    manual-test-cases.md
    gherkin-spec.feature
    automated/
      cypress-pseudo.js
      playwright-pseudo.js
"""

from __future__ import annotations

import logging
from pathlib import Path

from models import AnalysisReport

logger = logging.getLogger("pbi-analyzer")

ARTIFACT_FILES = {
    "story_analysis": "story-analysis.md",
    "manual_tests": "manual-test-cases.md",
    "gherkin": "gherkin-spec.feature",
    "cypress": "automated/cypress-pseudo.js",
    "playwright": "automated/playwright-pseudo.js",
}


class OutputWriter:
    """Writes every rendered artifact of a report to disk."""

    def __init__(self, output_dir: str | Path) -> None:
        self._root = Path(output_dir)

    def write(self, report: AnalysisReport) -> Path:
        """Write *report* and return the per-item directory."""
        pbi_dir = self._root / "pbi" / str(report.fields.id)
        (pbi_dir / "automated").mkdir(parents=True, exist_ok=True)

        for kind, relative in ARTIFACT_FILES.items():
            content = report.artifacts.get(kind)
            if content is None:
                continue
            target = pbi_dir / relative
            target.write_text(content, encoding="utf-8")
            logger.debug("Wrote %s", target)

        logger.info("Artifacts written to %s", pbi_dir)
        return pbi_dir
