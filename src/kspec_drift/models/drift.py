"""Drift event, report and history models."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from kspec_drift.exceptions import ConfigurationError
from kspec_drift.models import Severity, SpecInfo


class DriftType(enum.Enum):
    POLICY = "policy"
    COMPLIANCE = "compliance"
    CONFIGURATION = "configuration"

    @classmethod
    def parse(cls, value: DriftType | str) -> DriftType:
        """Coerce a user-supplied value, rejecting unsupported drift types."""
        if isinstance(value, cls):
            return value
        for member in cls:
            if member.value == value:
                return member
        raise ConfigurationError(f"unsupported drift type: {value!r}")


class DriftKind(enum.Enum):
    MISSING = "missing"
    MODIFIED = "modified"
    EXTRA = "extra"
    VIOLATION = "violation"


class DriftStatus(enum.Enum):
    DETECTED = "detected"
    REMEDIATED = "remediated"
    FAILED = "failed"
    MANUAL_REQUIRED = "manual-required"


# Policy drift severity depends only on the kind of divergence.
POLICY_SEVERITY: dict[DriftKind, Severity] = {
    DriftKind.MISSING: Severity.HIGH,
    DriftKind.MODIFIED: Severity.MEDIUM,
    DriftKind.EXTRA: Severity.LOW,
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_time(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    return dt.isoformat()


def parse_time(raw: str | None) -> datetime | None:
    if not raw:
        return None
    dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def parse_types(values: list | None) -> list[DriftType]:
    """Normalize an optional list of drift type filters."""
    if not values:
        return []
    return [DriftType.parse(v) for v in values]


@dataclass
class DriftResource:
    kind: str
    name: str
    namespace: str = ""
    api_version: str = ""

    @property
    def path(self) -> str:
        if self.namespace:
            return f"{self.kind}/{self.namespace}/{self.name}"
        return f"{self.kind}/{self.name}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "name": self.name,
            "namespace": self.namespace,
            "api_version": self.api_version,
            "path": self.path,
        }

    @classmethod
    def from_dict(cls, d: dict) -> DriftResource:
        return cls(
            kind=d.get("kind", ""),
            name=d.get("name", ""),
            namespace=d.get("namespace", ""),
            api_version=d.get("api_version", ""),
        )


@dataclass
class DriftModification:
    old_value: Any
    new_value: Any


@dataclass
class DriftDiff:
    added: dict[str, Any] = field(default_factory=dict)
    removed: dict[str, Any] = field(default_factory=dict)
    modified: dict[str, DriftModification] = field(default_factory=dict)

    @property
    def empty(self) -> bool:
        return not (self.added or self.removed or self.modified)

    def to_dict(self) -> dict[str, Any]:
        return {
            "added": dict(self.added),
            "removed": dict(self.removed),
            "modified": {
                path: {"old_value": m.old_value, "new_value": m.new_value}
                for path, m in self.modified.items()
            },
        }

    @classmethod
    def from_dict(cls, d: dict) -> DriftDiff:
        return cls(
            added=d.get("added", {}) or {},
            removed=d.get("removed", {}) or {},
            modified={
                path: DriftModification(m.get("old_value"), m.get("new_value"))
                for path, m in (d.get("modified", {}) or {}).items()
            },
        )


@dataclass
class RemediationResult:
    action: str
    status: DriftStatus
    timestamp: datetime = field(default_factory=utcnow)
    details: str = ""
    error: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "status": self.status.value,
            "timestamp": format_time(self.timestamp),
            "details": self.details,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, d: dict) -> RemediationResult:
        return cls(
            action=d.get("action", ""),
            status=DriftStatus(d.get("status", DriftStatus.DETECTED.value)),
            timestamp=parse_time(d.get("timestamp")) or utcnow(),
            details=d.get("details", ""),
            error=d.get("error", ""),
        )


@dataclass
class DriftEvent:
    type: DriftType
    severity: Severity
    resource: DriftResource
    drift_kind: DriftKind | str
    message: str = ""
    expected: dict[str, Any] | None = None
    actual: dict[str, Any] | None = None
    diff: DriftDiff | None = None
    remediation: RemediationResult | None = None
    timestamp: datetime = field(default_factory=utcnow)

    @property
    def kind_value(self) -> str:
        if isinstance(self.drift_kind, DriftKind):
            return self.drift_kind.value
        return str(self.drift_kind)

    @property
    def is_remediated(self) -> bool:
        return self.remediation is not None and self.remediation.status == DriftStatus.REMEDIATED

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": format_time(self.timestamp),
            "type": self.type.value,
            "severity": self.severity.value,
            "resource": self.resource.to_dict(),
            "drift_kind": self.kind_value,
            "message": self.message,
            "expected": self.expected,
            "actual": self.actual,
            "diff": self.diff.to_dict() if self.diff else None,
            "remediation": self.remediation.to_dict() if self.remediation else None,
        }

    @classmethod
    def from_dict(cls, d: dict) -> DriftEvent:
        raw_kind = d.get("drift_kind", "")
        try:
            drift_kind: DriftKind | str = DriftKind(raw_kind)
        except ValueError:
            drift_kind = raw_kind
        diff = d.get("diff")
        remediation = d.get("remediation")
        return cls(
            type=DriftType.parse(d.get("type", DriftType.POLICY.value)),
            severity=Severity.from_str(d.get("severity"), default=Severity.LOW),
            resource=DriftResource.from_dict(d.get("resource", {}) or {}),
            drift_kind=drift_kind,
            message=d.get("message", ""),
            expected=d.get("expected"),
            actual=d.get("actual"),
            diff=DriftDiff.from_dict(diff) if diff else None,
            remediation=RemediationResult.from_dict(remediation) if remediation else None,
            timestamp=parse_time(d.get("timestamp")) or utcnow(),
        )


@dataclass
class DriftCounts:
    total: int = 0
    policies: int = 0
    compliance: int = 0
    configuration: int = 0


@dataclass
class DriftSummary:
    detected: bool = False
    severity: Severity | None = None
    types: list[DriftType] = field(default_factory=list)
    counts: DriftCounts = field(default_factory=DriftCounts)


@dataclass
class DriftReport:
    spec: SpecInfo = field(default_factory=SpecInfo)
    events: list[DriftEvent] = field(default_factory=list)
    drift: DriftSummary = field(default_factory=DriftSummary)
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": format_time(self.timestamp),
            "spec": {"name": self.spec.name, "version": self.spec.version},
            "drift": {
                "detected": self.drift.detected,
                "severity": self.drift.severity.value if self.drift.severity else None,
                "types": [t.value for t in self.drift.types],
                "counts": {
                    "total": self.drift.counts.total,
                    "policies": self.drift.counts.policies,
                    "compliance": self.drift.counts.compliance,
                    "configuration": self.drift.counts.configuration,
                },
            },
            "events": [e.to_dict() for e in self.events],
        }


@dataclass
class DriftStats:
    total_events: int = 0
    events_by_type: dict[DriftType, int] = field(default_factory=dict)
    events_by_severity: dict[Severity, int] = field(default_factory=dict)
    remediation_success_rate: float = 0.0
    first_event: datetime | None = None
    last_event: datetime | None = None

    @classmethod
    def from_events(cls, events: list[DriftEvent]) -> DriftStats:
        stats = cls(total_events=len(events))
        if not events:
            return stats

        remediated = 0
        for event in events:
            stats.events_by_type[event.type] = stats.events_by_type.get(event.type, 0) + 1
            stats.events_by_severity[event.severity] = stats.events_by_severity.get(event.severity, 0) + 1
            if event.is_remediated:
                remediated += 1

        stats.remediation_success_rate = remediated / len(events)
        stats.first_event = min(e.timestamp for e in events)
        stats.last_event = max(e.timestamp for e in events)
        return stats

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_events": self.total_events,
            "events_by_type": {t.value: n for t, n in self.events_by_type.items()},
            "events_by_severity": {s.value: n for s, n in self.events_by_severity.items()},
            "remediation_success_rate": self.remediation_success_rate,
            "first_event": format_time(self.first_event),
            "last_event": format_time(self.last_event),
        }


@dataclass
class DriftHistory:
    events: list[DriftEvent] = field(default_factory=list)
    stats: DriftStats = field(default_factory=DriftStats)

    def to_dict(self) -> dict[str, Any]:
        return {
            "events": [e.to_dict() for e in self.events],
            "stats": self.stats.to_dict(),
        }
