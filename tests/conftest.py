"""Shared fixtures: an in-memory cluster and sample specifications."""

from __future__ import annotations

import copy
from typing import Any

import pytest
from kubernetes.client import ApiException

from kspec_drift.core.k8s_client import object_key
from kspec_drift.core.policy_source import StaticPolicySource, mark_generated
from kspec_drift.exceptions import ClientError
from kspec_drift.models.spec import ClusterSpecification, KubernetesSpec


class FakeK8sClient:
    """In-memory stand-in for K8sClient.

    ``failures`` maps a method name to the exception it raises; every call is
    recorded in ``calls`` as ``(method, identity)``.
    """

    def __init__(self, objects: list[dict] | None = None, git_version: str = "v1.29.2"):
        self.objects: dict[tuple[str, str, str], dict] = {}
        self.calls: list[tuple[str, Any]] = []
        self.failures: dict[str, Exception] = {}
        self.git_version = git_version
        self._rv = 100
        for obj in objects or []:
            self.put(obj)

    def put(self, obj: dict) -> dict:
        stored = copy.deepcopy(obj)
        metadata = stored.setdefault("metadata", {})
        self._rv += 1
        metadata["resourceVersion"] = str(self._rv)
        metadata.setdefault("uid", f"uid-{metadata.get('name', '')}")
        metadata.setdefault("creationTimestamp", "2024-01-01T00:00:00Z")
        self.objects[object_key(stored)] = stored
        return stored

    def _maybe_fail(self, method: str) -> None:
        exc = self.failures.get(method)
        if exc is not None:
            raise exc

    @property
    def mutating_calls(self) -> list[tuple[str, Any]]:
        return [c for c in self.calls if c[0] in ("create_policy", "replace_policy", "delete_policy")]

    def server_version(self) -> str:
        self.calls.append(("server_version", None))
        self._maybe_fail("server_version")
        return self.git_version

    def list_policies(self, api_version: str, kind: str) -> list[dict]:
        self.calls.append(("list_policies", (api_version, kind)))
        self._maybe_fail("list_policies")
        return [
            copy.deepcopy(o) for o in self.objects.values()
            if o.get("apiVersion") == api_version and o.get("kind") == kind
        ]

    def get_policy(self, api_version: str, kind: str, name: str, namespace: str = "") -> dict | None:
        self.calls.append(("get_policy", (kind, namespace, name)))
        self._maybe_fail("get_policy")
        obj = self.objects.get((kind, namespace, name))
        return copy.deepcopy(obj) if obj else None

    def create_policy(self, body: dict) -> dict:
        key = object_key(body)
        self.calls.append(("create_policy", key))
        self._maybe_fail("create_policy")
        if key in self.objects:
            raise ApiException(status=409, reason="AlreadyExists")
        return self.put(body)

    def replace_policy(self, body: dict) -> dict:
        key = object_key(body)
        self.calls.append(("replace_policy", key))
        self._maybe_fail("replace_policy")
        current = self.objects.get(key)
        if current is None:
            raise ApiException(status=404, reason="NotFound")
        if body["metadata"].get("resourceVersion") != current["metadata"]["resourceVersion"]:
            raise ApiException(status=409, reason="Conflict")
        return self.put(body)

    def delete_policy(self, api_version: str, kind: str, name: str, namespace: str = "") -> bool:
        key = (kind, namespace, name)
        self.calls.append(("delete_policy", key))
        self._maybe_fail("delete_policy")
        return self.objects.pop(key, None) is not None


def make_policy(name: str, rules: list[dict] | None = None, generated: bool = True, **extra: Any) -> dict:
    policy = {
        "apiVersion": "kyverno.io/v1",
        "kind": "ClusterPolicy",
        "metadata": {"name": name},
        "spec": {
            "validationFailureAction": "Enforce",
            "rules": rules if rules is not None else [{"name": f"{name}-rule", "match": {"any": []}}],
        },
    }
    policy.update(extra)
    return mark_generated(policy) if generated else policy


@pytest.fixture
def spec() -> ClusterSpecification:
    return ClusterSpecification(name="prod-baseline", version="1.2.0")


@pytest.fixture
def versioned_spec() -> ClusterSpecification:
    return ClusterSpecification(
        name="prod-baseline",
        version="1.2.0",
        kubernetes=KubernetesSpec(min_version="1.27.0", max_version="1.30.0"),
    )


@pytest.fixture
def fake_k8s() -> FakeK8sClient:
    return FakeK8sClient()


@pytest.fixture
def expected_policies() -> list[dict]:
    return [make_policy("require-labels"), make_policy("disallow-privileged")]


@pytest.fixture
def policy_source(expected_policies) -> StaticPolicySource:
    return StaticPolicySource(expected_policies)


@pytest.fixture
def list_error() -> ClientError:
    return ClientError("failed to list ClusterPolicy (kyverno.io/v1): Forbidden", status=403)


@pytest.fixture
def spec_file(tmp_path):
    path = tmp_path / "spec.yaml"
    path.write_text(
        "apiVersion: kspec.io/v1\n"
        "kind: ClusterSpecification\n"
        "metadata:\n"
        "  name: prod-baseline\n"
        "  version: 1.2.0\n"
        "spec:\n"
        "  kubernetes:\n"
        "    minVersion: 1.27.0\n"
        "    maxVersion: 1.30.0\n",
        encoding="utf-8",
    )
    return path
