"""
gherkin_renderer.py – Render scenarios as a Gherkin feature file.
"""

from __future__ import annotations

from models import TestScenario

PRECONDITION = "the user is on the application"


def render_gherkin(title: str, scenarios: list[TestScenario]) -> str:
    lines = [f"Feature: {title}", ""]

    if not scenarios:
        lines.append("  # No scenarios generated")
        return "\n".join(lines)

    for scenario in scenarios:
        lines.append(f"  @{scenario.tag}")
        lines.append(f"  Scenario: {scenario.title}")
        lines.append(f"    Given {PRECONDITION}")
        for step in scenario.steps:
            lines.append(f"    When {step.lower()}")
        lines.append(f"    Then {scenario.expected.lower()}")
        lines.append("")

    return "\n".join(lines)
