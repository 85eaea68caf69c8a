"""
manual_test_renderer.py – Markdown manual test cases plus an Azure DevOps
bulk-import CSV block.

The CSV follows the Test Plans bulk-import layout: one row per step, with
the test-case level columns (type, title, priority, state, tags) filled in
on the first row of each test case only.
See https://learn.microsoft.com/en-us/azure/devops/test/bulk-import-export-test-cases
"""

from __future__ import annotations

import csv
import io

from models import TAG_CRITICAL, TAG_SMOKE, TestScenario

CSV_HEADERS = (
    "ID",
    "Work Item Type",
    "Title",
    "Test Step",
    "Step Action",
    "Step Expected",
    "Priority",
    "Assigned To",
    "State",
    "Tags",
)
DEFAULT_STATE = "Design"


def priority_for(tag: str) -> int:
    """Map a scenario tag onto an ADO priority (1 = highest)."""
    if tag == TAG_CRITICAL:
        return 1
    if tag == TAG_SMOKE:
        return 2
    return 3


def _cell(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ")


# ── CSV ─────────────────────────────────────────────────────────────────

def render_csv(scenarios: list[TestScenario]) -> str:
    """Return the bulk-import CSV (header plus one row per step)."""
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)

    for scenario in scenarios:
        last = len(scenario.steps) - 1
        for index, step in enumerate(scenario.steps):
            first = index == 0
            writer.writerow([
                "",
                "Test Case" if first else "",
                scenario.title if first else "",
                index + 1,
                step,
                scenario.expected if index == last else "",
                priority_for(scenario.tag) if first else "",
                "",
                DEFAULT_STATE if first else "",
                scenario.tag if first else "",
            ])

    return output.getvalue().rstrip("\n")


# ── Markdown ────────────────────────────────────────────────────────────

def render_manual_tests(title: str, scenarios: list[TestScenario]) -> str:
    lines = ["# Manual Test Cases", "", f"**PBI:** {title}", ""]

    if not scenarios:
        lines.append("*No test scenarios generated.*")
        return "\n".join(lines)

    lines += [
        "## Test Case Summary",
        "",
        "| # | Title | Tag | Steps | Expected Result |",
        "| --- | --- | --- | --- | --- |",
    ]
    for i, scenario in enumerate(scenarios, 1):
        steps_text = " ".join(f"{n}. {s}" for n, s in enumerate(scenario.steps, 1))
        lines.append(
            f"| {i} | {_cell(scenario.title)} | {scenario.tag} | "
            f"{_cell(steps_text)} | {_cell(scenario.expected)} |"
        )
    lines.append("")

    lines += ["## Detailed Test Cases", ""]
    for i, scenario in enumerate(scenarios, 1):
        lines += [
            f"### TC-{i}: {scenario.title}",
            "",
            f"**Tag:** `{scenario.tag}`",
            "",
            "**Steps:**",
            "",
        ]
        lines += [f"{n}. {step}" for n, step in enumerate(scenario.steps, 1)]
        lines += ["", f"**Expected Result:** {scenario.expected}", "", "---", ""]

    lines += [
        "## Azure DevOps Bulk Import CSV",
        "",
        "Copy the block below and save as `.csv` for import into Azure Test Plans.",
        "",
        "```csv",
        render_csv(scenarios),
        "```",
        "",
    ]
    return "\n".join(lines)
