#!/usr/bin/env python3
"""
run.py – CLI entry-point for the PBI analyzer.

Usage:
    python run.py https://dev.azure.com/org/project/_workitems/edit/12345
    python run.py 12345 --output ./reports --check-tests
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

import activity_log
from activity_log import ActivityLog
from ado_client import ADOClient
from config import DEFAULT_ACTIVITY_LOG, Settings
from dedup_engine import DedupEngine
from errors import AnalyzerError
from models import AnalysisReport, QualityAssessment, TestScenario, WorkItemFields
from output_writer import OutputWriter
from report_assembler import ReportAssembler
from url_parser import resolve_work_item

console = Console()
logger = logging.getLogger("pbi-analyzer")

ClientFactory = Callable[[Settings, str], ADOClient]

# ── Logging ─────────────────────────────────────────────────────────────

def _configure_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, markup=False)],
    )


# ── Pretty output helpers ──────────────────────────────────────────────

def _show_item(fields: WorkItemFields) -> None:
    console.print(
        Panel(
            f"[bold cyan]{escape(fields.title)}[/]\n\n"
            f"[dim]Type:[/] {fields.work_item_type}  |  "
            f"[dim]State:[/] {fields.state}  |  "
            f"[dim]Priority:[/] {fields.priority}  |  "
            f"[dim]Tags:[/] {escape(', '.join(fields.tags)) or '—'}",
            title=f"Work Item #{fields.id}",
            border_style="blue",
        )
    )


def _show_scenarios(scenarios: list[TestScenario]) -> None:
    table = Table(title="Generated Test Scenarios", show_lines=True)
    table.add_column("#", style="dim", width=4)
    table.add_column("Title", style="bold")
    table.add_column("Tag", width=16)

    for i, scenario in enumerate(scenarios, 1):
        table.add_row(str(i), escape(scenario.title), scenario.tag)
    console.print(table)


def _show_quality(quality: QualityAssessment) -> None:
    colour = "green" if quality.is_ready else "yellow"
    body = [f"[{colour} bold]Score:[/] {quality.score}/100"]
    body += [f"[red]✗[/] {escape(issue)}" for issue in quality.issues]
    body += [f"[yellow]•[/] {escape(s)}" for s in quality.suggestions]
    console.print(Panel("\n".join(body), title="Readiness", border_style=colour))


def _show_results(report: AnalysisReport, out_dir: Path) -> None:
    console.print()
    console.print(
        Panel(
            f"[green bold]Criteria:[/]   {len(report.criteria)}\n"
            f"[green bold]Scenarios:[/]  {len(report.scenarios)}\n"
            f"[yellow bold]Questions:[/]  {len(report.questions)}\n"
            f"[blue bold]Related:[/]    {len(report.related)}\n"
            f"[cyan bold]Area:[/]       {escape(report.impact.functional_area)}\n"
            f"[bold]Output:[/]     {escape(str(out_dir))}",
            title="Analysis Summary",
            border_style="green",
        )
    )


# ── Core orchestration ─────────────────────────────────────────────────

def _default_client(settings: Settings, org_url: str) -> ADOClient:
    return ADOClient(settings, org_url=org_url)


def run(
    target: str,
    settings: Settings,
    check_tests: bool = False,
    client_factory: ClientFactory | None = None,
    log: ActivityLog | None = None,
) -> AnalysisReport:
    """End-to-end pipeline: Resolve → Fetch → Analyze → Write."""
    log = log or ActivityLog(settings.activity_log)

    # ── Phase 1: Resolve ────────────────────────────────────────────
    console.rule("[bold blue]Phase 1 · Resolve Work Item")
    ref = resolve_work_item(target, settings)
    settings.validate()
    console.print(
        f"  Parsed: [yellow]{escape(ref.organization)}[/]/[yellow]{escape(ref.project)}[/] "
        f"– Work Item #[yellow]{ref.work_item_id}[/]"
    )
    log.record(
        activity_log.IN_PROGRESS,
        f"Parsed PBI reference: {ref.organization}/{ref.project} #{ref.work_item_id}",
    )

    # ── Phase 2: Fetch ──────────────────────────────────────────────
    console.rule("[bold blue]Phase 2 · Fetch Work Item")
    client = (client_factory or _default_client)(settings, ref.org_url)
    client.check_connection()
    log.record(activity_log.IN_PROGRESS, "Connected to Azure DevOps successfully.")

    fields, relations = client.get_work_item(ref.work_item_id, ref.project)
    _show_item(fields)

    related = client.get_related_items(relations, ref.project)
    console.print(f"  Found [cyan]{len(related)}[/] related work items.\n")
    log.record(activity_log.IN_PROGRESS, f"Fetched {len(related)} related items.")

    # ── Phase 3: Analyze ────────────────────────────────────────────
    console.rule("[bold blue]Phase 3 · Analyze")
    assembler = ReportAssembler(settings.dedup_threshold)
    report = assembler.assemble(fields, related)
    _show_scenarios(report.scenarios)
    _show_quality(report.quality)

    for title, original, score in report.duplicate_titles:
        console.print(
            f"  [yellow]↻[/]  '{escape(title)}' resembles '{escape(original)}' ({score:.0%})"
        )

    if check_tests:
        tests = client.get_linked_test_cases(relations, ref.project)
        health = DedupEngine(threshold=settings.dedup_threshold).review_portfolio(tests)
        assembler.attach_test_health(report, health)
        flagged = sum(1 for h in health if h.is_duplicate)
        console.print(
            f"  Reviewed [cyan]{len(health)}[/] linked test cases, "
            f"[yellow]{flagged}[/] probable duplicates."
        )

    log.record(
        activity_log.IN_PROGRESS,
        f"Generated {len(report.scenarios)} scenarios from {len(report.criteria)} criteria.",
    )

    # ── Phase 4: Write ──────────────────────────────────────────────
    console.rule("[bold blue]Phase 4 · Write Artifacts")
    out_dir = OutputWriter(settings.output_dir).write(report)
    log.record(activity_log.SUCCESS, f"Report generated at: {out_dir}")

    _show_results(report, out_dir)
    return report


# ── CLI ─────────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pbi-analyzer",
        description="Analyze an Azure DevOps PBI and generate test artifacts.",
    )
    parser.add_argument(
        "target",
        help="Work item URL, or a numeric ID resolved against ADO_ORG_URL/ADO_PROJECT.",
    )
    parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="Output directory for generated artifacts (default: OUTPUT_DIR or ./reports).",
    )
    parser.add_argument(
        "--check-tests",
        action="store_true",
        default=False,
        help="Also review linked test cases for probable duplicates.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Enable debug-level logging.",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    console.print(
        Panel(
            "[bold white]PBI Analyzer[/]  –  Azure DevOps story analysis & test design",
            border_style="bright_magenta",
        )
    )

    log = ActivityLog(DEFAULT_ACTIVITY_LOG)
    exit_code = 0
    try:
        settings = Settings.from_env().with_overrides(output_dir=args.output)
        log = ActivityLog(settings.activity_log)
        log.record(activity_log.JOB_STARTED, f"Analysis started for: {args.target}")
        run(args.target, settings, check_tests=args.check_tests, log=log)
    except KeyboardInterrupt:
        console.print("\n[red]Aborted by user.[/]")
        log.record(activity_log.FAILURE, "Aborted by user.")
        exit_code = 130
    except AnalyzerError as exc:
        console.print(f"\n[red bold]Error:[/] {escape(str(exc))}")
        console.print(f"[yellow]See {log.path} for details.[/]")
        log.record(activity_log.FAILURE, f"Analysis failed: {exc}")
        logger.debug("Traceback:", exc_info=True)
        exit_code = 1
    except Exception as exc:
        console.print(f"\n[red bold]Unexpected error:[/] {escape(str(exc))}")
        log.record(activity_log.FAILURE, f"Unexpected error: {exc}")
        logger.debug("Traceback:", exc_info=True)
        exit_code = 1
    finally:
        log.record(activity_log.JOB_COMPLETED, "Analysis process terminated.")

    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
