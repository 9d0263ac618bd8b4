"""Shared CLI options."""

from __future__ import annotations

import typer

from kspec_drift.config.settings import settings

OutputOption = typer.Option(settings.default_output, "--output", "-o", help="Output format: table, json, yaml")
SpecOption = typer.Option(..., "--spec", "-s", help="Path to cluster specification file")
PoliciesOption = typer.Option(
    None, "--policies", "-p", help="Directory of rendered policy manifests expected in the cluster",
)
KubeconfigOption = typer.Option(None, "--kubeconfig", help="Path to kubeconfig file")
ContextOption = typer.Option(None, "--context", help="Kubernetes context name")
TypesOption = typer.Option(None, "--types", "-t", help="Drift types: policy, compliance (repeatable)")
ChecksOption = typer.Option(None, "--check", help="Compliance check to run (repeatable, default: all)")
