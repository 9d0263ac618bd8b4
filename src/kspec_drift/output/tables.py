"""Rich table builders for each command."""

from __future__ import annotations

from rich.panel import Panel
from rich.table import Table

from kspec_drift.models.drift import DriftEvent, DriftHistory, DriftReport
from kspec_drift.output.themes import styled_kind, styled_severity, styled_status


def _diff_lines(event: DriftEvent, limit: int = 3) -> str:
    if event.diff is None:
        return event.message
    lines: list[str] = []
    for path, mod in event.diff.modified.items():
        lines.append(f"Changed {path}: {mod.old_value!r} -> {mod.new_value!r}")
    for path in event.diff.added:
        lines.append(f"Added: {path}")
    for path in event.diff.removed:
        lines.append(f"Removed: {path}")
    text = "\n".join(lines[:limit])
    if len(lines) > limit:
        text += f"\n... +{len(lines) - limit} more"
    return text


def drift_report_table(report: DriftReport) -> Table:
    table = Table(title=f"Drift Report: {report.spec.name} {report.spec.version}".strip(), expand=True)
    table.add_column("Type", style="blue", no_wrap=True)
    table.add_column("Kind", no_wrap=True)
    table.add_column("Severity", no_wrap=True)
    table.add_column("Resource", style="bold")
    table.add_column("Details", max_width=60)

    for e in report.events:
        table.add_row(
            e.type.value,
            styled_kind(e.drift_kind),
            styled_severity(e.severity),
            e.resource.path,
            _diff_lines(e),
        )
    return table


def remediation_table(report: DriftReport, dry_run: bool = False) -> Table:
    title = "Remediation Plan" if dry_run else "Remediation Results"
    table = Table(title=title, expand=True)
    table.add_column("Resource", style="bold")
    table.add_column("Kind", no_wrap=True)
    table.add_column("Action", style="cyan", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Details", max_width=60)

    for e in report.events:
        if e.remediation is None:
            table.add_row(e.resource.path, styled_kind(e.drift_kind), "-", "[dim]not eligible[/dim]", "")
            continue
        r = e.remediation
        table.add_row(
            e.resource.path,
            styled_kind(e.drift_kind),
            r.action,
            styled_status(r.status),
            r.error or r.details,
        )
    return table


def history_table(history: DriftHistory) -> Table:
    table = Table(title="Drift History", expand=True)
    table.add_column("Time", style="dim", no_wrap=True)
    table.add_column("Type", style="blue", no_wrap=True)
    table.add_column("Kind", no_wrap=True)
    table.add_column("Severity", no_wrap=True)
    table.add_column("Resource", style="bold")
    table.add_column("Remediation", no_wrap=True)

    for e in history.events:
        table.add_row(
            e.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            e.type.value,
            styled_kind(e.drift_kind),
            styled_severity(e.severity),
            e.resource.path,
            styled_status(e.remediation.status) if e.remediation else "-",
        )
    return table


def stats_panel(history: DriftHistory) -> Panel:
    stats = history.stats
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="bold cyan", no_wrap=True)
    table.add_column("Value")

    table.add_row("Total events", str(stats.total_events))
    for t, n in stats.events_by_type.items():
        table.add_row(f"  {t.value}", str(n))
    for s, n in sorted(stats.events_by_severity.items(), key=lambda kv: -kv[0].rank):
        table.add_row(f"  {styled_severity(s)}", str(n))
    table.add_row("Remediation success", f"{stats.remediation_success_rate:.0%}")
    if stats.first_event:
        table.add_row("First event", stats.first_event.strftime("%Y-%m-%d %H:%M:%S"))
    if stats.last_event:
        table.add_row("Last event", stats.last_event.strftime("%Y-%m-%d %H:%M:%S"))

    return Panel(table, title="[bold]Drift Statistics[/bold]", border_style="blue")
