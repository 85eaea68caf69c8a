"""
dedup_engine.py – Fuzzy detection of duplicate test cases.

Titles are compared with a normalised Levenshtein similarity.  Two titles
scoring at or above the threshold (default 85 %) are reported as probable
duplicates; when several earlier titles qualify, the first one found in a
linear scan wins.
"""

from __future__ import annotations

import logging
from typing import Iterable

from models import DedupResult, ExistingTestCase, TestHealth

logger = logging.getLogger("pbi-analyzer")

DEFAULT_THRESHOLD = 0.85


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance (insert, delete and substitute all cost 1)."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (ca != cb),
                )
            )
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """Return 0.0–1.0 similarity, ignoring case."""
    a, b = (a or "").casefold(), (b or "").casefold()
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - edit_distance(a, b) / longest


# ── Public API ──────────────────────────────────────────────────────────

class DedupEngine:
    """Compare test-case titles against each other or an existing set."""

    def __init__(
        self,
        existing: Iterable[ExistingTestCase] = (),
        threshold: float | None = None,
    ) -> None:
        self._threshold = DEFAULT_THRESHOLD if threshold is None else threshold
        self._existing = list(existing)
        logger.debug(
            "Dedup engine loaded with %d existing TCs (threshold=%.0f%%)",
            len(self._existing),
            self._threshold * 100,
        )

    @property
    def threshold(self) -> float:
        return self._threshold

    def check(self, title: str) -> DedupResult:
        """Return the first existing test whose title matches *title*."""
        for tc in self._existing:
            score = similarity(title, tc.title)
            if score >= self._threshold:
                logger.info(
                    "Duplicate detected: '%s' ↔ existing #%s (%.1f%%)",
                    title,
                    tc.id,
                    score * 100,
                )
                return DedupResult(
                    is_duplicate=True,
                    matched_id=tc.id,
                    matched_title=tc.title,
                    score=score,
                )
        return DedupResult()

    def find_duplicates(self, titles: list[str]) -> list[DedupResult]:
        """For each title, the first *earlier* title it duplicates.

        ``matched_id`` holds the 1-based position of the earlier title.
        """
        results: list[DedupResult] = []
        for i, title in enumerate(titles):
            result = DedupResult()
            for j in range(i):
                score = similarity(title, titles[j])
                if score >= self._threshold:
                    result = DedupResult(
                        is_duplicate=True,
                        matched_id=j + 1,
                        matched_title=titles[j],
                        score=score,
                    )
                    break
            results.append(result)
        return results

    def review_portfolio(self, tests: list[ExistingTestCase]) -> list[TestHealth]:
        """Flag linked test cases that need attention.

        Tests still in *Design* should be reviewed and moved to *Ready*;
        a test whose title duplicates an earlier one should be retired.
        """
        titles = [tc.title for tc in tests]
        report: list[TestHealth] = []
        for tc, dup in zip(tests, self.find_duplicates(titles)):
            health = TestHealth(id=tc.id, title=tc.title, state=tc.state)
            if tc.state == "Design":
                health.action_required = "Review Steps & Move to Ready"
            if dup.is_duplicate:
                original = tests[dup.matched_id - 1]
                health.is_duplicate = True
                health.duplicate_of_id = original.id
                health.action_required = (
                    f"Possible Duplicate of {original.id}. Review & Retire."
                )
            report.append(health)
        logger.info(
            "Reviewed %d linked test case(s); %d probable duplicate(s).",
            len(report),
            sum(1 for h in report if h.is_duplicate),
        )
        return report
