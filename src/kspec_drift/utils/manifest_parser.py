"""Parse multi-document YAML manifests into individual resources."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

MANIFEST_SUFFIXES = (".yaml", ".yml")


@dataclass
class ParsedResource:
    api_version: str
    kind: str
    name: str
    namespace: str
    raw: dict[str, Any]


def parse_manifest(manifest: str) -> list[ParsedResource]:
    """Parse a multi-document YAML string into a list of ParsedResource."""
    resources: list[ParsedResource] = []
    if not manifest:
        return resources

    for doc in yaml.safe_load_all(manifest):
        if not doc or not isinstance(doc, dict):
            continue
        # Flatten v1/List wrappers
        if doc.get("kind") == "List" and isinstance(doc.get("items"), list):
            docs = [d for d in doc["items"] if isinstance(d, dict)]
        else:
            docs = [doc]
        for d in docs:
            metadata = d.get("metadata", {}) or {}
            resources.append(ParsedResource(
                api_version=d.get("apiVersion", ""),
                kind=d.get("kind", ""),
                name=metadata.get("name", ""),
                namespace=metadata.get("namespace", "") or "",
                raw=d,
            ))
    return resources


def load_manifest_dir(directory: Path) -> list[ParsedResource]:
    """Parse every YAML file under ``directory`` in sorted path order."""
    resources: list[ParsedResource] = []
    paths = sorted(p for p in directory.rglob("*") if p.is_file() and p.suffix in MANIFEST_SUFFIXES)
    for path in paths:
        resources.extend(parse_manifest(path.read_text(encoding="utf-8")))
    return resources
