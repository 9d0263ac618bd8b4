"""Cluster specification models."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from kspec_drift.exceptions import ConfigurationError
from kspec_drift.models import SpecInfo


@dataclass
class KubernetesSpec:
    min_version: str = ""
    max_version: str = ""
    excluded_versions: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: dict) -> KubernetesSpec:
        if not d:
            return cls()
        return cls(
            min_version=str(d.get("minVersion", "") or ""),
            max_version=str(d.get("maxVersion", "") or ""),
            excluded_versions=[str(v) for v in d.get("excludedVersions", []) or []],
        )


@dataclass
class ClusterSpecification:
    name: str = ""
    version: str = ""
    description: str = ""
    kubernetes: KubernetesSpec = field(default_factory=KubernetesSpec)
    pod_security: dict[str, Any] = field(default_factory=dict)
    network: dict[str, Any] = field(default_factory=dict)
    workloads: dict[str, Any] = field(default_factory=dict)
    rbac: dict[str, Any] = field(default_factory=dict)
    admission: dict[str, Any] = field(default_factory=dict)
    observability: dict[str, Any] = field(default_factory=dict)
    compliance: dict[str, Any] = field(default_factory=dict)

    @property
    def info(self) -> SpecInfo:
        return SpecInfo(name=self.name, version=self.version)

    @classmethod
    def from_dict(cls, d: dict) -> ClusterSpecification:
        metadata = d.get("metadata", {}) or {}
        spec = d.get("spec", {}) or {}
        return cls(
            name=metadata.get("name", ""),
            version=str(metadata.get("version", "") or ""),
            description=metadata.get("description", ""),
            kubernetes=KubernetesSpec.from_dict(spec.get("kubernetes", {})),
            pod_security=spec.get("podSecurity", {}) or {},
            network=spec.get("network", {}) or {},
            workloads=spec.get("workloads", {}) or {},
            rbac=spec.get("rbac", {}) or {},
            admission=spec.get("admission", {}) or {},
            observability=spec.get("observability", {}) or {},
            compliance=spec.get("compliance", {}) or {},
        )


def load_spec(path: Path | str) -> ClusterSpecification:
    """Load a cluster specification from a YAML file."""
    path = Path(path)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigurationError(f"failed to read spec {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"failed to parse spec {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"spec {path} is not a mapping")
    spec = ClusterSpecification.from_dict(data)
    if not spec.name:
        raise ConfigurationError(f"spec {path} has no metadata.name")
    return spec
