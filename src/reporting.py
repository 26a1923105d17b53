"""
Summary reporter for reconciliation runs.

Renders a finalized ReconciliationReport as coloured text or JSON. Rendering
never mutates the report.
"""

import json
from typing import Any, Dict, List, Tuple

import click
from tabulate import tabulate

from baseline.base import Outcome, ReconciliationReport

# Marker and colour per outcome
_STYLES: Dict[Outcome, Tuple[str, str]] = {
    Outcome.ALREADY_SATISFIED: ("✅", "green"),
    Outcome.APPLIED: ("✅", "green"),
    Outcome.PLANNED: ("⚠️ ", "yellow"),
    Outcome.LOOKUP_ABSENT: ("⚠️ ", "yellow"),
    Outcome.FAILED: ("❌", "red"),
}

_LABELS: Dict[Outcome, str] = {
    Outcome.ALREADY_SATISFIED: "already configured",
    Outcome.APPLIED: "applied",
    Outcome.PLANNED: "would change",
    Outcome.LOOKUP_ABSENT: "not found",
    Outcome.FAILED: "failed",
}


def format_report(report: ReconciliationReport, output: str = "text") -> str:
    """
    Format a report for display.

    Args:
        report: A finalized report
        output: "text" or "json"

    Returns:
        The rendered report.
    """
    if output == "json":
        return json.dumps(report.to_dict(), indent=2, default=str)
    return "\n".join(_text_lines(report))


def render_report(report: ReconciliationReport, output: str = "text") -> None:
    """Write a report to stdout."""
    click.echo(format_report(report, output))


def _text_lines(report: ReconciliationReport) -> List[str]:
    lines = [click.style(f"{report.reconciler}: {report.target}", bold=True)]
    if report.identity:
        lines.append(f"Authenticated as {report.identity}")
    if report.dry_run:
        lines.append(click.style("Dry run: no changes were made", fg="yellow"))
    lines.append("")

    for result in report.results:
        marker, colour = _STYLES[result.outcome]
        text = f"{marker} {result.name}: {_LABELS[result.outcome]}"
        if result.message:
            text += f" ({result.message})"
        lines.append(click.style(text, fg=colour))
        if result.reason:
            lines.append(click.style(f"     {result.reason}", fg="red"))
        for step in result.remediation:
            lines.append(click.style(f"     {step}", fg="bright_black"))

    if report.fatal is not None:
        lines.append(
            click.style(
                f"❌ Aborted ({type(report.fatal).__name__}): {report.fatal}",
                fg="red",
                bold=True,
            )
        )

    if report.snapshot:
        lines.append("")
        lines.append(click.style("Summary", bold=True))
        lines.append(_snapshot_table(report.snapshot))

    if report.next_steps:
        lines.append("")
        lines.append(click.style("Next steps", bold=True))
        lines.extend(report.next_steps)

    return lines


def _snapshot_table(snapshot: Dict[str, Any]) -> str:
    rows = [[key, _display(value)] for key, value in snapshot.items()]
    return tabulate(rows, tablefmt="simple")


def _display(value: Any) -> str:
    if isinstance(value, bool):
        return "enabled" if value else "disabled"
    return str(value)
