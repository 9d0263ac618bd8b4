"""Table / JSON / YAML output dispatch."""

from __future__ import annotations

import json

import yaml
from rich.console import Console

from kspec_drift.models.drift import DriftHistory, DriftReport

console = Console()


def _emit(data: dict, fmt: str) -> None:
    if fmt == "json":
        console.print_json(json.dumps(data, indent=2, default=str))
    else:
        console.print(yaml.safe_dump(data, default_flow_style=False, sort_keys=False))


def output_report(report: DriftReport, fmt: str) -> None:
    if fmt in ("json", "yaml"):
        _emit(report.to_dict(), fmt)
        return

    from kspec_drift.output.tables import drift_report_table
    if report.events:
        console.print(drift_report_table(report))

    counts = report.drift.counts
    if report.drift.detected:
        console.print(
            f"\n[yellow]Drift detected:[/yellow] {counts.total} events "
            f"({counts.policies} policy, {counts.compliance} compliance), "
            f"highest severity {report.drift.severity.value}"
        )
    else:
        console.print("\n[green]No drift detected. Cluster matches the specification.[/green]")


def output_remediation(report: DriftReport, fmt: str, dry_run: bool = False) -> None:
    if fmt in ("json", "yaml"):
        data = report.to_dict()
        data["dry_run"] = dry_run
        _emit(data, fmt)
        return

    from kspec_drift.output.tables import remediation_table
    if not report.events:
        console.print("[green]No drift detected, nothing to remediate.[/green]")
        return
    console.print(remediation_table(report, dry_run=dry_run))
    if dry_run:
        console.print("\n[dim]Dry-run: no changes were applied.[/dim]")


def output_history(history: DriftHistory, fmt: str) -> None:
    if fmt in ("json", "yaml"):
        _emit(history.to_dict(), fmt)
        return

    from kspec_drift.output.tables import history_table, stats_panel
    if history.events:
        console.print(history_table(history))
    console.print(stats_panel(history))
