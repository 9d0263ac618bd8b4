"""Compare the policies and compliance a specification implies against the live cluster."""

from __future__ import annotations

import logging
import re
from typing import Any

from deepdiff import DeepDiff

from kspec_drift.config.settings import settings
from kspec_drift.core.checks import Check, execution_failed, run_checks
from kspec_drift.core.k8s_client import K8sClient, object_key
from kspec_drift.core.policy_source import PolicySource
from kspec_drift.exceptions import ClientError
from kspec_drift.models import Severity
from kspec_drift.models.check import CheckStatus
from kspec_drift.models.drift import (
    POLICY_SEVERITY,
    DriftCounts,
    DriftDiff,
    DriftEvent,
    DriftKind,
    DriftModification,
    DriftReport,
    DriftResource,
    DriftSummary,
    DriftType,
    parse_types,
)
from kspec_drift.models.spec import ClusterSpecification

logger = logging.getLogger(__name__)

# Fields managed by the server that should be ignored in drift comparison
IGNORED_FIELDS = {
    "metadata.resourceVersion",
    "metadata.uid",
    "metadata.creationTimestamp",
    "metadata.generation",
    "metadata.managedFields",
    "metadata.selfLink",
    "metadata.annotations.kubectl.kubernetes.io/last-applied-configuration",
    "status",
}

_PATH_PART = re.compile(r"\['((?:[^'\\]|\\.)*)'\]|\[(\d+)\]")


def strip_server_fields(obj: dict, prefix: str = "") -> dict:
    """Remove server-managed fields from a resource dict for comparison."""
    cleaned = {}
    for key, value in obj.items():
        full_key = f"{prefix}.{key}" if prefix else key
        if full_key in IGNORED_FIELDS:
            continue
        if isinstance(value, dict):
            inner = strip_server_fields(value, full_key)
            if inner:
                cleaned[key] = inner
        else:
            cleaned[key] = value
    return cleaned


def is_engine_generated(obj: dict) -> bool:
    """True if the object carries the engine-ownership annotation."""
    metadata = obj.get("metadata", {}) or {}
    annotations = metadata.get("annotations", {}) or {}
    return annotations.get(settings.ownership_annotation) == settings.ownership_value


def _dotted_path(path: str) -> str:
    """Turn a DeepDiff path like ``root['spec']['rules'][0]`` into ``spec.rules[0]``."""
    out = ""
    for key, index in _PATH_PART.findall(path):
        if index:
            out += f"[{index}]"
        else:
            out += f".{key}" if out else key
    return out or path


def _items(section: Any) -> list[tuple[str, Any]]:
    if section is None:
        return []
    if isinstance(section, dict):
        return list(section.items())
    return [(path, None) for path in section]


def compute_diff(expected: dict, actual: dict) -> DriftDiff | None:
    """Structured difference between two policy objects, ignoring volatile fields.

    Returns None when the objects are semantically equal.
    """
    diff = DeepDiff(
        strip_server_fields(expected),
        strip_server_fields(actual),
        ignore_order=True,
        verbose_level=2,
    )
    if not diff:
        return None

    result = DriftDiff()
    for key in ("dictionary_item_added", "iterable_item_added"):
        for path, value in _items(diff.get(key)):
            result.added[_dotted_path(path)] = value
    for key in ("dictionary_item_removed", "iterable_item_removed"):
        for path, value in _items(diff.get(key)):
            result.removed[_dotted_path(path)] = value
    for key in ("values_changed", "type_changes"):
        for path, change in _items(diff.get(key)):
            change = change or {}
            result.modified[_dotted_path(path)] = DriftModification(
                old_value=change.get("old_value"),
                new_value=change.get("new_value"),
            )
    if result.empty:
        return None
    return result


def _resource_of(obj: dict) -> DriftResource:
    kind, namespace, name = object_key(obj)
    return DriftResource(
        kind=kind,
        name=name,
        namespace=namespace,
        api_version=obj.get("apiVersion", ""),
    )


class Detector:
    """Detects policy and compliance drift for a cluster specification."""

    def __init__(
        self,
        k8s: K8sClient,
        policy_source: PolicySource,
        checks: list[Check] | None = None,
        policy_kinds: list[tuple[str, str]] | None = None,
    ):
        self.k8s = k8s
        self.policy_source = policy_source
        self.checks = list(checks or [])
        self.policy_kinds = list(policy_kinds if policy_kinds is not None else settings.policy_kinds)

    def detect(
        self,
        spec: ClusterSpecification,
        enabled_types: list[DriftType | str] | None = None,
    ) -> DriftReport:
        """Run every enabled detection path and build a report.

        Raises ClientError if the cluster cannot be listed; no partial report
        is returned in that case.
        """
        types = parse_types(enabled_types)
        report = DriftReport(spec=spec.info)

        if self._enabled(DriftType.POLICY, types):
            report.events.extend(self.detect_policy_drift(spec))
        if self._enabled(DriftType.COMPLIANCE, types):
            report.events.extend(self.detect_compliance_drift(spec))

        self.update_summary(report)
        if report.drift.detected:
            logger.info(
                "Drift detected for spec %s: %d events (severity: %s)",
                spec.name, report.drift.counts.total, report.drift.severity.value,
            )
        else:
            logger.info("No drift detected for spec %s", spec.name)
        return report

    @staticmethod
    def _enabled(drift_type: DriftType, types: list[DriftType]) -> bool:
        return not types or drift_type in types

    def detect_policy_drift(self, spec: ClusterSpecification) -> list[DriftEvent]:
        expected_list = self.policy_source.expected_policies(spec)

        expected: dict[tuple[str, str, str], dict] = {}
        for policy in expected_list:
            expected.setdefault(object_key(policy), policy)

        actual: dict[tuple[str, str, str], dict] = {}
        for api_version, kind in self._kinds_in_play(expected_list):
            for obj in self.k8s.list_policies(api_version, kind):
                # Only engine-generated objects take part; user-authored ones are invisible
                if not is_engine_generated(obj):
                    continue
                actual.setdefault(object_key(obj), obj)

        events: list[DriftEvent] = []
        for key, exp in expected.items():
            resource = _resource_of(exp)
            live = actual.get(key)
            if live is None:
                events.append(DriftEvent(
                    type=DriftType.POLICY,
                    severity=POLICY_SEVERITY[DriftKind.MISSING],
                    resource=resource,
                    drift_kind=DriftKind.MISSING,
                    message=f"{resource.kind} '{resource.name}' is missing from the cluster",
                    expected=exp,
                ))
                continue

            diff = compute_diff(exp, live)
            if diff is not None:
                events.append(DriftEvent(
                    type=DriftType.POLICY,
                    severity=POLICY_SEVERITY[DriftKind.MODIFIED],
                    resource=resource,
                    drift_kind=DriftKind.MODIFIED,
                    message=f"{resource.kind} '{resource.name}' differs from the expected definition",
                    expected=exp,
                    actual=live,
                    diff=diff,
                ))

        for key, live in actual.items():
            if key in expected:
                continue
            resource = _resource_of(live)
            events.append(DriftEvent(
                type=DriftType.POLICY,
                severity=POLICY_SEVERITY[DriftKind.EXTRA],
                resource=resource,
                drift_kind=DriftKind.EXTRA,
                message=f"{resource.kind} '{resource.name}' is not part of the specification",
                actual=live,
            ))

        logger.debug(
            "Policy drift: %d expected, %d engine-generated in cluster, %d events",
            len(expected), len(actual), len(events),
        )
        return events

    def _kinds_in_play(self, expected: list[dict]) -> list[tuple[str, str]]:
        kinds: list[tuple[str, str]] = []
        for pair in self.policy_kinds + [(p.get("apiVersion", ""), p.get("kind", "")) for p in expected]:
            if pair[0] and pair[1] and pair not in kinds:
                kinds.append(pair)
        return kinds

    def detect_compliance_drift(self, spec: ClusterSpecification) -> list[DriftEvent]:
        """Re-run the check suite; every currently failing check is a violation."""
        if not self.checks:
            return []

        results = run_checks(self.checks, self.k8s, spec)
        if all(execution_failed(r) for r in results):
            raise ClientError(f"all {len(results)} compliance checks failed to execute")

        events: list[DriftEvent] = []
        for result in results:
            if result.status != CheckStatus.FAIL:
                continue
            events.append(DriftEvent(
                type=DriftType.COMPLIANCE,
                severity=result.severity or Severity.MEDIUM,
                resource=DriftResource(kind="ComplianceCheck", name=result.name),
                drift_kind=DriftKind.VIOLATION,
                message=result.message,
                expected={"status": CheckStatus.PASS.value},
                actual={
                    "status": result.status.value,
                    "evidence": result.evidence,
                    "remediation": result.remediation,
                },
            ))
        return events

    @staticmethod
    def update_summary(report: DriftReport) -> None:
        counts = DriftCounts(total=len(report.events))
        severity: Severity | None = None
        types: list[DriftType] = []

        for event in report.events:
            if event.type == DriftType.POLICY:
                counts.policies += 1
            elif event.type == DriftType.COMPLIANCE:
                counts.compliance += 1
            elif event.type == DriftType.CONFIGURATION:
                counts.configuration += 1
            if severity is None or event.severity.rank > severity.rank:
                severity = event.severity
            if event.type not in types:
                types.append(event.type)

        report.drift = DriftSummary(
            detected=bool(report.events),
            severity=severity,
            types=types,
            counts=counts,
        )
