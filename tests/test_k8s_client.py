"""Tests for the Kubernetes API wrapper's error translation."""

from __future__ import annotations

import pytest
from kubernetes import config
from kubernetes.client import ApiException
from urllib3.exceptions import HTTPError

from kspec_drift.core.k8s_client import K8sClient
from kspec_drift.exceptions import ClientError


class _StubCustomObjects:
    """Stands in for CustomObjectsApi; raises ``error`` from every call when set."""

    def __init__(self, items: list[dict] | None = None, error: Exception | None = None):
        self.items = items or []
        self.error = error
        self.calls: list[tuple[str, dict]] = []

    def _call(self, method: str, kwargs: dict):
        self.calls.append((method, kwargs))
        if self.error is not None:
            raise self.error

    def list_cluster_custom_object(self, **kwargs):
        self._call("list", kwargs)
        return {"items": self.items}

    def get_cluster_custom_object(self, **kwargs):
        self._call("get", kwargs)
        return {"metadata": {"name": kwargs["name"]}}

    def get_namespaced_custom_object(self, **kwargs):
        self._call("get_namespaced", kwargs)
        return {"metadata": {"name": kwargs["name"], "namespace": kwargs["namespace"]}}

    def delete_cluster_custom_object(self, **kwargs):
        self._call("delete", kwargs)

    def delete_namespaced_custom_object(self, **kwargs):
        self._call("delete_namespaced", kwargs)


def _client(stub: _StubCustomObjects) -> K8sClient:
    k8s = K8sClient()
    k8s._custom = stub
    return k8s


def test_list_fills_in_api_version_and_kind():
    """List responses omit apiVersion/kind on items; the client restores them."""
    stub = _StubCustomObjects(items=[{"metadata": {"name": "a"}}, {"apiVersion": "kyverno.io/v2", "kind": "X"}])

    items = _client(stub).list_policies("kyverno.io/v1", "ClusterPolicy")

    assert items[0]["apiVersion"] == "kyverno.io/v1"
    assert items[0]["kind"] == "ClusterPolicy"
    assert items[1]["apiVersion"] == "kyverno.io/v2"
    method, kwargs = stub.calls[0]
    assert (kwargs["group"], kwargs["version"], kwargs["plural"]) == ("kyverno.io", "v1", "clusterpolicies")
    assert "_request_timeout" in kwargs


def test_list_missing_crd_is_empty():
    stub = _StubCustomObjects(error=ApiException(status=404, reason="Not Found"))

    assert _client(stub).list_policies("kyverno.io/v1", "ClusterPolicy") == []


def test_list_forbidden_raises_client_error():
    stub = _StubCustomObjects(error=ApiException(status=403, reason="Forbidden"))

    with pytest.raises(ClientError, match="Forbidden") as exc_info:
        _client(stub).list_policies("kyverno.io/v1", "ClusterPolicy")

    assert exc_info.value.status == 403


def test_list_transport_error_raises_client_error():
    stub = _StubCustomObjects(error=HTTPError("connection refused"))

    with pytest.raises(ClientError, match="connection refused") as exc_info:
        _client(stub).list_policies("kyverno.io/v1", "ClusterPolicy")

    assert exc_info.value.status is None


def test_get_missing_policy_is_none():
    stub = _StubCustomObjects(error=ApiException(status=404, reason="Not Found"))

    assert _client(stub).get_policy("kyverno.io/v1", "ClusterPolicy", "p") is None


def test_get_other_errors_propagate():
    stub = _StubCustomObjects(error=ApiException(status=500, reason="Internal Server Error"))

    with pytest.raises(ApiException):
        _client(stub).get_policy("kyverno.io/v1", "ClusterPolicy", "p")


def test_get_namespaced_policy():
    stub = _StubCustomObjects()

    obj = _client(stub).get_policy("kyverno.io/v1", "Policy", "p", namespace="apps")

    assert obj["metadata"]["namespace"] == "apps"
    assert stub.calls[0][0] == "get_namespaced"


def test_delete_returns_whether_policy_existed():
    assert _client(_StubCustomObjects()).delete_policy("kyverno.io/v1", "ClusterPolicy", "p") is True

    gone = _StubCustomObjects(error=ApiException(status=404, reason="Not Found"))
    assert _client(gone).delete_policy("kyverno.io/v1", "ClusterPolicy", "p") is False


def test_delete_other_errors_propagate():
    stub = _StubCustomObjects(error=ApiException(status=403, reason="Forbidden"))

    with pytest.raises(ApiException):
        _client(stub).delete_policy("kyverno.io/v1", "Policy", "p", namespace="apps")


@pytest.mark.parametrize(
    ("kind", "plural"),
    [("ClusterPolicy", "clusterpolicies"), ("Policy", "policies"), ("ValidatingAdmissionPolicy", "validatingadmissionpolicies"), ("Issuer", "issuers")],
)
def test_kind_to_plural(kind, plural):
    assert K8sClient._kind_to_plural(kind) == plural


def _no_kubeconfig(*args, **kwargs):
    raise config.ConfigException("Invalid kube-config file. No configuration found.")


def test_no_cluster_configuration_raises_client_error(monkeypatch):
    def no_incluster(*args, **kwargs):
        raise config.ConfigException("Service host/port is not set.")

    monkeypatch.setattr(config, "load_kube_config", _no_kubeconfig)
    monkeypatch.setattr(config, "load_incluster_config", no_incluster)

    with pytest.raises(ClientError, match="no usable cluster configuration"):
        K8sClient().list_policies("kyverno.io/v1", "ClusterPolicy")


def test_in_cluster_configuration_disables_retries(monkeypatch):
    def incluster(client_configuration=None, **kwargs):
        client_configuration.host = "https://10.0.0.1:443"

    monkeypatch.setattr(config, "load_kube_config", _no_kubeconfig)
    monkeypatch.setattr(config, "load_incluster_config", incluster)

    api_client = K8sClient()._load_config()

    assert api_client.configuration.host == "https://10.0.0.1:443"
    assert api_client.configuration.retries is False


def test_kubeconfig_disables_retries(monkeypatch):
    def kubeconfig(config_file=None, context=None, client_configuration=None, **kwargs):
        client_configuration.host = "https://cluster.example:6443"

    monkeypatch.setattr(config, "load_kube_config", kubeconfig)

    assert K8sClient(context="prod")._load_config().configuration.retries is False
