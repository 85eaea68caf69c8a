"""
automation_renderer.py – Pseudo-code UI automation stubs (Cypress, Playwright).

Only smoke and critical scenarios are automated; non-regression scenarios
are left to the manual suite.
"""

from __future__ import annotations

from models import TAG_CRITICAL, TAG_SMOKE, TestScenario

AUTOMATED_TAGS = (TAG_SMOKE, TAG_CRITICAL)


def automatable(scenarios: list[TestScenario]) -> list[TestScenario]:
    """Return the scenarios that get automation stubs, order preserved."""
    return [s for s in scenarios if s.tag in AUTOMATED_TAGS]


def _js_string(text: str) -> str:
    return text.replace("\\", "\\\\").replace("'", "\\'").replace("\n", " ")


def _js_comment(text: str) -> str:
    return text.replace("\n", " ").replace("*/", "* /")


def render_cypress(title: str, scenarios: list[TestScenario]) -> str:
    selected = automatable(scenarios)
    lines = [
        f"// Cypress pseudo-code: {_js_comment(title)}",
        "// Generated for smoke and critical scenarios only.",
        "",
        f"describe('{_js_string(title)}', () => {{",
    ]

    if not selected:
        lines.append("  // No smoke or critical scenarios to automate.")

    for scenario in selected:
        lines += [
            f"  // @{scenario.tag}",
            f"  it('{_js_string(scenario.title)}', () => {{",
            "    cy.visit('/');",
        ]
        for n, step in enumerate(scenario.steps, 1):
            lines.append(f"    // Step {n}: {_js_comment(step)}")
        lines += [
            "    cy.get('[data-testid=\"TODO-selector\"]').should('exist');",
            f"    // Expected: {_js_comment(scenario.expected)}",
            "    cy.get('body').should('be.visible');",
            "  });",
            "",
        ]

    lines += ["});", ""]
    return "\n".join(lines)


def render_playwright(title: str, scenarios: list[TestScenario]) -> str:
    selected = automatable(scenarios)
    lines = [
        "import { test, expect } from '@playwright/test';",
        "",
        f"// Playwright pseudo-code: {_js_comment(title)}",
        "// Generated for smoke and critical scenarios only.",
        "",
        f"test.describe('{_js_string(title)}', () => {{",
    ]

    if not selected:
        lines.append("  // No smoke or critical scenarios to automate.")

    for scenario in selected:
        lines += [
            f"  // @{scenario.tag}",
            f"  test('{_js_string(scenario.title)}', async ({{ page }}) => {{",
            "    await page.goto('/');",
        ]
        for n, step in enumerate(scenario.steps, 1):
            lines.append(f"    // Step {n}: {_js_comment(step)}")
        lines += [
            "    await expect(page.locator('[data-testid=\"TODO-selector\"]')).toBeAttached();",
            f"    // Expected: {_js_comment(scenario.expected)}",
            "    await expect(page.locator('body')).toBeVisible();",
            "  });",
            "",
        ]

    lines += ["});", ""]
    return "\n".join(lines)
