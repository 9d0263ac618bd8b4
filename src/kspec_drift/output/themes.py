"""Severity, drift kind and remediation status color maps."""

from kspec_drift.models import Severity
from kspec_drift.models.drift import DriftKind, DriftStatus

SEVERITY_COLORS: dict[Severity, str] = {
    Severity.CRITICAL: "red bold",
    Severity.HIGH: "red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "cyan",
}

KIND_COLORS: dict[DriftKind, str] = {
    DriftKind.MISSING: "red",
    DriftKind.MODIFIED: "yellow",
    DriftKind.EXTRA: "cyan",
    DriftKind.VIOLATION: "magenta",
}

STATUS_COLORS: dict[DriftStatus, str] = {
    DriftStatus.DETECTED: "yellow",
    DriftStatus.REMEDIATED: "green",
    DriftStatus.FAILED: "red bold",
    DriftStatus.MANUAL_REQUIRED: "magenta",
}


def styled_severity(severity: Severity | None) -> str:
    if severity is None:
        return "[dim]-[/dim]"
    color = SEVERITY_COLORS.get(severity, "white")
    return f"[{color}]{severity.value}[/{color}]"


def styled_kind(kind: DriftKind | str) -> str:
    if not isinstance(kind, DriftKind):
        return str(kind)
    color = KIND_COLORS.get(kind, "white")
    return f"[{color}]{kind.value}[/{color}]"


def styled_status(status: DriftStatus) -> str:
    color = STATUS_COLORS.get(status, "white")
    return f"[{color}]{status.value}[/{color}]"
