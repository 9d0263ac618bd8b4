"""Helpers shared by the drift commands."""

from __future__ import annotations

import re
from datetime import timedelta
from pathlib import Path
from typing import Optional

import typer

from kspec_drift.core.checks import Check, create_default_registry
from kspec_drift.core.k8s_client import K8sClient
from kspec_drift.core.policy_source import ManifestPolicySource, PolicySource, StaticPolicySource
from kspec_drift.exceptions import ConfigurationError
from kspec_drift.models.spec import ClusterSpecification, load_spec

# Drift detected and remediation failures are distinct outcomes
EXIT_OK = 0
EXIT_DRIFT = 1
EXIT_REMEDIATION_FAILED = 2
EXIT_ERROR = 3

_DURATION = re.compile(r"^(\d+(?:\.\d+)?)([smhd])$")
_UNITS = {"s": "seconds", "m": "minutes", "h": "hours", "d": "days"}


def parse_duration(raw: str) -> timedelta:
    """Parse durations such as ``30s``, ``5m``, ``24h`` or ``7d``."""
    match = _DURATION.match(raw.strip())
    if not match:
        raise ConfigurationError(f"invalid duration {raw!r} (expected e.g. 30s, 5m, 24h, 7d)")
    value, unit = match.groups()
    return timedelta(**{_UNITS[unit]: float(value)})


def load_inputs(
    spec_path: Path,
    policies: Optional[Path],
    kubeconfig: Optional[str],
    context: Optional[str],
    check_names: Optional[list[str]] = None,
) -> tuple[ClusterSpecification, K8sClient, PolicySource, list[Check]]:
    spec = load_spec(spec_path)
    k8s = K8sClient(context=context, kubeconfig=kubeconfig)
    source: PolicySource = ManifestPolicySource(policies) if policies else StaticPolicySource([])
    checks = create_default_registry().select(check_names)
    return spec, k8s, source, checks


def fail(message: str, code: int = EXIT_ERROR) -> None:
    typer.secho(message, err=True, fg=typer.colors.RED)
    raise typer.Exit(code=code)
