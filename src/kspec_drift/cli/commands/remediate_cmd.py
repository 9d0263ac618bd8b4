"""kspec-drift remediate - Detect and repair drift."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from kspec_drift.cli.common import EXIT_REMEDIATION_FAILED, fail, load_inputs
from kspec_drift.cli.options import (
    ChecksOption,
    ContextOption,
    KubeconfigOption,
    OutputOption,
    PoliciesOption,
    SpecOption,
    TypesOption,
)
from kspec_drift.core.remediator import RemediateOptions, remediate_all
from kspec_drift.exceptions import ClientError, ConfigurationError, RemediationError
from kspec_drift.output.formatters import output_remediation

app = typer.Typer()


@app.callback(invoke_without_command=True)
def remediate(
    spec: Path = SpecOption,
    policies: Optional[Path] = PoliciesOption,
    output: str = OutputOption,
    kubeconfig: Optional[str] = KubeconfigOption,
    context: Optional[str] = ContextOption,
    types: Optional[list[str]] = TypesOption,
    checks: Optional[list[str]] = ChecksOption,
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be fixed without applying changes"),
    force: bool = typer.Option(False, "--force", help="Delete extra engine-generated policies (use with caution)"),
) -> None:
    """Restore the cluster to the specification.

    Missing policies are created, modified ones updated, extra ones reported
    (deleted with --force). Compliance drift always needs manual action.
    """
    options = RemediateOptions(dry_run=dry_run, types=types or [], force=force)
    try:
        cluster_spec, k8s, source, check_list = load_inputs(spec, policies, kubeconfig, context, checks)
        report = remediate_all(k8s, source, check_list, cluster_spec, options)
    except RemediationError as e:
        output_remediation(e.report, output, dry_run=dry_run)
        fail(f"Remediation had failures: {e}", code=EXIT_REMEDIATION_FAILED)
    except (ClientError, ConfigurationError) as e:
        fail(f"Remediation failed: {e}")

    output_remediation(report, output, dry_run=dry_run)
