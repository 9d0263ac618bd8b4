"""kspec-drift detect - Detect drift between the specification and the cluster."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from kspec_drift.cli.common import EXIT_DRIFT, fail, load_inputs
from kspec_drift.cli.options import (
    ChecksOption,
    ContextOption,
    KubeconfigOption,
    OutputOption,
    PoliciesOption,
    SpecOption,
    TypesOption,
)
from kspec_drift.config.settings import settings
from kspec_drift.core.detector import Detector
from kspec_drift.core.storage import FileStorage
from kspec_drift.exceptions import ClientError, ConfigurationError
from kspec_drift.output.formatters import output_report

app = typer.Typer()


@app.callback(invoke_without_command=True)
def detect(
    spec: Path = SpecOption,
    policies: Optional[Path] = PoliciesOption,
    output: str = OutputOption,
    kubeconfig: Optional[str] = KubeconfigOption,
    context: Optional[str] = ContextOption,
    types: Optional[list[str]] = TypesOption,
    checks: Optional[list[str]] = ChecksOption,
    record: bool = typer.Option(False, "--record", help="Append detected events to the history file"),
    history_file: Optional[Path] = typer.Option(None, "--history-file", help="History file (default: state dir)"),
) -> None:
    """Compare the specification's policies and compliance against the live cluster."""
    try:
        cluster_spec, k8s, source, check_list = load_inputs(spec, policies, kubeconfig, context, checks)
        report = Detector(k8s, source, check_list).detect(cluster_spec, enabled_types=types)
    except (ClientError, ConfigurationError) as e:
        fail(f"Drift detection failed: {e}")

    if record:
        store = FileStorage(history_file or settings.history_file)
        try:
            for event in report.events:
                store.store(event)
        except (OSError, ValueError) as e:
            fail(f"Failed to record drift history: {e}")

    output_report(report, output)

    if report.drift.detected:
        raise typer.Exit(code=EXIT_DRIFT)
