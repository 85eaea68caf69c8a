"""
scenario_generator.py – Turn acceptance criteria into tagged test scenarios.

Each criterion yields exactly one scenario.  The tag is chosen by a
case-insensitive keyword scan: critical keywords are checked first, then
smoke keywords; anything else is non-regression.
"""

from __future__ import annotations

import logging
from typing import Iterable

from models import TAG_CRITICAL, TAG_NON_REGRESSION, TAG_SMOKE, TestScenario

logger = logging.getLogger("pbi-analyzer")

CRITICAL_KEYWORDS = (
    "login", "auth", "password", "payment", "checkout", "security",
    "permission", "role", "access", "token", "session", "encrypt",
    "delete", "remove", "data loss",
)

SMOKE_KEYWORDS = (
    "display", "show", "render", "page load", "navigate", "view",
    "visible", "appear", "open", "launch", "homepage", "landing",
)

TITLE_MAX_LENGTH = 60


def classify(criterion: str) -> str:
    """Return the test tag for *criterion*."""
    lower = criterion.lower()
    if any(keyword in lower for keyword in CRITICAL_KEYWORDS):
        return TAG_CRITICAL
    if any(keyword in lower for keyword in SMOKE_KEYWORDS):
        return TAG_SMOKE
    return TAG_NON_REGRESSION


def _truncate(text: str, limit: int = TITLE_MAX_LENGTH) -> str:
    return text[:limit] + "..." if len(text) > limit else text


def build_scenario(index: int, criterion: str) -> TestScenario:
    """Build the scenario for the criterion at 1-based *index*."""
    tag = classify(criterion)
    return TestScenario(
        title=f"[{tag.upper()}] AC{index}: {_truncate(criterion)}",
        steps=(
            "Navigate to the relevant page/feature",
            f"Perform action to verify: {criterion}",
            "Observe the result and validate against expected outcome",
        ),
        expected=f'The criterion "{criterion}" is satisfied.',
        tag=tag,
    )


def synthesize(criteria: Iterable[str]) -> list[TestScenario]:
    """Return one scenario per criterion, in the same order."""
    scenarios = [build_scenario(i, text) for i, text in enumerate(criteria, 1)]
    logger.debug("Synthesised %d scenario(s)", len(scenarios))
    return scenarios
