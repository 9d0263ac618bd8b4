"""kspec-drift exceptions."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from kspec_drift.models.drift import DriftReport


class KspecDriftError(Exception):
    """Base exception for all kspec-drift errors."""


class ClientError(KspecDriftError):
    """The cluster could not be reached or a listing failed."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class RemediationError(KspecDriftError):
    """One or more drift events could not be remediated.

    Raised only after every eligible event was processed; ``report`` holds the
    partially remediated report.
    """

    def __init__(self, failed: int, succeeded: int, report: DriftReport | None = None):
        super().__init__(f"remediation completed with {failed} failures ({succeeded} succeeded)")
        self.failed = failed
        self.succeeded = succeeded
        self.report = report


class ConfigurationError(KspecDriftError):
    """Invalid options, specification or storage configuration."""
