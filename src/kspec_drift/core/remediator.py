"""Repair detected drift under dry-run, force and type-filter controls."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field

from kubernetes.client import ApiException
from urllib3.exceptions import HTTPError

from kspec_drift.core.checks import Check
from kspec_drift.core.detector import Detector
from kspec_drift.core.k8s_client import K8sClient, object_key
from kspec_drift.core.policy_source import PolicySource
from kspec_drift.exceptions import RemediationError
from kspec_drift.models.drift import (
    DriftEvent,
    DriftKind,
    DriftReport,
    DriftStatus,
    DriftType,
    RemediationResult,
    parse_types,
)
from kspec_drift.models.spec import ClusterSpecification

logger = logging.getLogger(__name__)

# Fields that must not be sent back on create/replace
_SERVER_METADATA = ("resourceVersion", "uid", "creationTimestamp", "generation", "managedFields", "selfLink")


@dataclass
class RemediateOptions:
    dry_run: bool = False
    types: list[DriftType | str] = field(default_factory=list)
    force: bool = False


class _EventFailed(Exception):
    """Internal: the current event's remediation failed and was recorded."""


def _api_error(e: Exception) -> str:
    if isinstance(e, ApiException):
        return f"{e.status} {e.reason}".strip()
    return str(e)


def _prepare_body(policy: dict) -> dict:
    body = copy.deepcopy(policy)
    body.pop("status", None)
    metadata = body.setdefault("metadata", {})
    for key in _SERVER_METADATA:
        metadata.pop(key, None)
    return body


class Remediator:
    """Mutates cluster state to resolve the events of a drift report."""

    def __init__(self, k8s: K8sClient):
        self.k8s = k8s

    def remediate(
        self,
        spec: ClusterSpecification,
        report: DriftReport,
        dry_run: bool = False,
        types: list[DriftType | str] | None = None,
        force: bool = False,
    ) -> None:
        """Remediate every eligible event of ``report`` in place.

        Every event is processed even if some fail. Raises RemediationError
        afterwards when at least one event failed.
        """
        enabled = parse_types(types)
        remediated = 0
        failed = 0

        for i in range(len(report.events)):
            event = report.events[i]
            if not self.is_type_enabled(event.type, enabled):
                continue
            if event.is_remediated:
                continue

            try:
                if event.type == DriftType.POLICY:
                    self._remediate_policy(event, dry_run, force)
                elif event.type == DriftType.COMPLIANCE:
                    event.remediation = RemediationResult(
                        action="manual-required",
                        status=DriftStatus.MANUAL_REQUIRED,
                        details="Compliance drift requires manual intervention",
                    )
                else:
                    event.remediation = RemediationResult(
                        action="report",
                        status=DriftStatus.MANUAL_REQUIRED,
                        details=f"Remediation not supported for type {event.type.value}",
                    )
            except _EventFailed:
                failed += 1
                continue

            if event.is_remediated:
                remediated += 1

        logger.info(
            "Remediation for spec %s finished: %d remediated, %d failed%s",
            spec.name, remediated, failed, " (dry-run)" if dry_run else "",
        )
        if failed:
            raise RemediationError(failed=failed, succeeded=remediated, report=report)

    @staticmethod
    def is_type_enabled(drift_type: DriftType, enabled: list[DriftType]) -> bool:
        # By default only policy drift is auto-remediated
        if not enabled:
            return drift_type == DriftType.POLICY
        return drift_type in enabled

    def _remediate_policy(self, event: DriftEvent, dry_run: bool, force: bool) -> None:
        if event.drift_kind == DriftKind.MISSING:
            self._remediate_missing(event, dry_run)
        elif event.drift_kind == DriftKind.MODIFIED:
            self._remediate_modified(event, dry_run)
        elif event.drift_kind == DriftKind.EXTRA:
            self._remediate_extra(event, dry_run, force)
        else:
            event.remediation = RemediationResult(
                action="skip",
                status=DriftStatus.MANUAL_REQUIRED,
                details=f"Unknown drift kind '{event.kind_value}' for {event.resource.path}; inspect manually",
            )

    def _fail(self, event: DriftEvent, action: str, error: str) -> None:
        logger.warning("Failed to %s %s: %s", action, event.resource.path, error)
        event.remediation = RemediationResult(
            action=action,
            status=DriftStatus.FAILED,
            error=error,
        )
        raise _EventFailed(error)

    def _remediate_missing(self, event: DriftEvent, dry_run: bool) -> None:
        path = event.resource.path
        if not event.expected:
            self._fail(event, "create", "no expected policy to create")

        if dry_run:
            event.remediation = RemediationResult(
                action="would-create",
                status=DriftStatus.DETECTED,
                details=f"Would create {path} (dry-run)",
            )
            return

        try:
            self.k8s.create_policy(_prepare_body(event.expected))
        except (ApiException, HTTPError) as e:
            self._fail(event, "create", _api_error(e))

        event.remediation = RemediationResult(
            action="create",
            status=DriftStatus.REMEDIATED,
            details=f"Created {path}",
        )

    def _remediate_modified(self, event: DriftEvent, dry_run: bool) -> None:
        path = event.resource.path
        if not event.expected:
            self._fail(event, "update", "no expected policy to update to")

        if dry_run:
            event.remediation = RemediationResult(
                action="would-update",
                status=DriftStatus.DETECTED,
                details=f"Would update {path} (dry-run)",
            )
            return

        body = _prepare_body(event.expected)
        kind, namespace, name = object_key(body)
        try:
            existing = self.k8s.get_policy(body.get("apiVersion", ""), kind, name, namespace)
        except (ApiException, HTTPError) as e:
            self._fail(event, "update", f"failed to get existing policy: {_api_error(e)}")
        if existing is None:
            self._fail(event, "update", f"{path} no longer exists")

        # Optimistic concurrency: replace against the version just read
        body["metadata"]["resourceVersion"] = existing.get("metadata", {}).get("resourceVersion", "")
        try:
            self.k8s.replace_policy(body)
        except (ApiException, HTTPError) as e:
            self._fail(event, "update", _api_error(e))

        event.remediation = RemediationResult(
            action="update",
            status=DriftStatus.REMEDIATED,
            details=f"Updated {path}",
        )

    def _remediate_extra(self, event: DriftEvent, dry_run: bool, force: bool) -> None:
        path = event.resource.path
        # Extra policies are only deleted on explicit request
        if not force:
            event.remediation = RemediationResult(
                action="skip",
                status=DriftStatus.MANUAL_REQUIRED,
                details=f"Extra policy {path} not deleted (use --force to delete)",
            )
            return

        if dry_run:
            event.remediation = RemediationResult(
                action="would-delete",
                status=DriftStatus.DETECTED,
                details=f"Would delete {path} (dry-run)",
            )
            return

        res = event.resource
        try:
            existed = self.k8s.delete_policy(res.api_version, res.kind, res.name, res.namespace)
        except (ApiException, HTTPError) as e:
            self._fail(event, "delete", _api_error(e))

        event.remediation = RemediationResult(
            action="delete",
            status=DriftStatus.REMEDIATED,
            details=f"Deleted {path}" if existed else f"{path} was already absent",
        )


def remediate_all(
    k8s: K8sClient,
    policy_source: PolicySource,
    checks: list[Check] | None,
    spec: ClusterSpecification,
    options: RemediateOptions | None = None,
) -> DriftReport:
    """Detect drift and remediate it when any was found.

    Remediation failures raise RemediationError carrying the report.
    """
    options = options or RemediateOptions()
    detector = Detector(k8s, policy_source, checks)
    report = detector.detect(spec, enabled_types=options.types)

    if report.drift.detected:
        Remediator(k8s).remediate(
            spec,
            report,
            dry_run=options.dry_run,
            types=options.types,
            force=options.force,
        )
    return report
