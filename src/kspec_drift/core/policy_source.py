"""Sources of the expected policy set for a specification."""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from kspec_drift.config.settings import settings
from kspec_drift.exceptions import ConfigurationError
from kspec_drift.models.spec import ClusterSpecification
from kspec_drift.utils.manifest_parser import load_manifest_dir

logger = logging.getLogger(__name__)


@runtime_checkable
class PolicySource(Protocol):
    """Derives the canonical set of policy objects a specification implies."""

    def expected_policies(self, spec: ClusterSpecification) -> list[dict]: ...


def mark_generated(policy: dict) -> dict:
    """Return a copy of ``policy`` carrying the engine-ownership annotation."""
    marked = copy.deepcopy(policy)
    metadata = marked.setdefault("metadata", {})
    annotations = metadata.get("annotations") or {}
    annotations[settings.ownership_annotation] = settings.ownership_value
    metadata["annotations"] = annotations
    return marked


class StaticPolicySource:
    """A fixed list of policy objects, independent of the specification."""

    def __init__(self, policies: list[dict]):
        self._policies = [mark_generated(p) for p in policies]

    def expected_policies(self, spec: ClusterSpecification) -> list[dict]:
        return copy.deepcopy(self._policies)


class ManifestPolicySource:
    """Pre-rendered policy manifests loaded from a directory of YAML files."""

    def __init__(self, directory: Path | str):
        self.directory = Path(directory)

    def expected_policies(self, spec: ClusterSpecification) -> list[dict]:
        if not self.directory.is_dir():
            raise ConfigurationError(f"policy directory {self.directory} does not exist")

        policies: list[dict] = []
        for res in load_manifest_dir(self.directory):
            if not res.kind or not res.name or not res.api_version:
                logger.debug("Skipping manifest without apiVersion/kind/name in %s", self.directory)
                continue
            policies.append(mark_generated(res.raw))
        logger.debug("Loaded %d expected policies for spec %s", len(policies), spec.name)
        return policies
