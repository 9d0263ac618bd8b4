"""Pluggable compliance checks and the runner that isolates their failures."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from kspec_drift.core.k8s_client import K8sClient
from kspec_drift.exceptions import ConfigurationError
from kspec_drift.models import Severity
from kspec_drift.models.check import CheckResult, CheckStatus
from kspec_drift.models.spec import ClusterSpecification
from kspec_drift.utils.version_compare import in_range, parse_version, same_version

logger = logging.getLogger(__name__)


@runtime_checkable
class Check(Protocol):
    """A compliance check run against the live cluster."""

    @property
    def name(self) -> str: ...

    def run(self, k8s: K8sClient, spec: ClusterSpecification) -> CheckResult: ...


class CheckRegistry:
    """Registry of checks keyed by name."""

    def __init__(self) -> None:
        self._checks: dict[str, Check] = {}

    def register(self, check: Check) -> None:
        self._checks[check.name] = check

    def get(self, name: str) -> Check:
        check = self._checks.get(name)
        if check is None:
            raise ConfigurationError(
                f"no check registered as {name!r} (available: {', '.join(self.names) or 'none'})"
            )
        return check

    def select(self, names: list[str] | None = None) -> list[Check]:
        """Return the named checks in the given order, or all when names is empty."""
        if not names:
            return list(self._checks.values())
        return [self.get(n) for n in names]

    @property
    def names(self) -> list[str]:
        return list(self._checks.keys())


def run_checks(checks: list[Check], k8s: K8sClient, spec: ClusterSpecification) -> list[CheckResult]:
    """Run every check; one check raising never stops the others."""
    results: list[CheckResult] = []
    for check in checks:
        try:
            result = check.run(k8s, spec)
        except Exception as e:
            logger.warning("Check %s failed to execute: %s", check.name, e)
            logger.debug("Check %s traceback", check.name, exc_info=True)
            results.append(CheckResult(
                name=check.name,
                status=CheckStatus.FAIL,
                severity=Severity.HIGH,
                message=f"Check failed to execute: {e}",
                evidence={"error": str(e), "execution_error": True},
            ))
            continue
        results.append(result)
    return results


def execution_failed(result: CheckResult) -> bool:
    return bool(result.evidence.get("execution_error"))


class KubernetesVersionCheck:
    """Validates the cluster version against the specification's range."""

    name = "kubernetes.version"

    def run(self, k8s: K8sClient, spec: ClusterSpecification) -> CheckResult:
        req = spec.kubernetes
        if not req.min_version and not req.max_version and not req.excluded_versions:
            return CheckResult(
                name=self.name,
                status=CheckStatus.SKIP,
                message="No Kubernetes version requirements in spec",
            )

        git_version = k8s.server_version()
        current = parse_version(git_version)
        if current is None:
            raise ValueError(f"failed to parse cluster version {git_version}")

        for excluded in req.excluded_versions:
            if same_version(git_version, excluded):
                return CheckResult(
                    name=self.name,
                    status=CheckStatus.FAIL,
                    severity=Severity.CRITICAL,
                    message=f"Cluster version {current} is explicitly excluded",
                    evidence={"current": str(current), "excluded_version": excluded},
                    remediation=f"Upgrade cluster to a version outside {', '.join(req.excluded_versions)}",
                )

        ok = in_range(git_version, req.min_version, req.max_version)
        if ok is None:
            raise ValueError(
                f"invalid version range {req.min_version or '*'} - {req.max_version or '*'}"
            )
        evidence = {
            "current": str(current),
            "required_min": req.min_version,
            "required_max": req.max_version,
        }
        bounds = f"{req.min_version or '*'} - {req.max_version or '*'}"
        if not ok:
            return CheckResult(
                name=self.name,
                status=CheckStatus.FAIL,
                severity=Severity.CRITICAL,
                message=f"Cluster version {current} is outside allowed range {bounds}",
                evidence=evidence,
                remediation=f"Upgrade cluster to Kubernetes version between {bounds}",
            )
        return CheckResult(
            name=self.name,
            status=CheckStatus.PASS,
            message=f"Cluster version {current} is within spec range {bounds}",
            evidence=evidence,
        )


def create_default_registry() -> CheckRegistry:
    """Create a registry with the built-in checks."""
    registry = CheckRegistry()
    registry.register(KubernetesVersionCheck())
    return registry
