"""Kubernetes API wrapper."""

from __future__ import annotations

import logging

from kubernetes import client, config
from kubernetes.client import ApiException
from urllib3.exceptions import HTTPError

from kspec_drift.config.settings import settings
from kspec_drift.exceptions import ClientError

logger = logging.getLogger(__name__)


CLUSTER_SCOPED_KINDS: frozenset[str] = frozenset({
    "ClusterPolicy",
    "ClusterCleanupPolicy",
    "ClusterRole",
    "ClusterRoleBinding",
    "CustomResourceDefinition",
    "Namespace",
    "MutatingWebhookConfiguration",
    "ValidatingWebhookConfiguration",
    "ValidatingAdmissionPolicy",
    "ValidatingAdmissionPolicyBinding",
})


def split_api_version(api_version: str) -> tuple[str, str]:
    """Split ``group/version`` into its parts; the core group is empty."""
    if "/" in api_version:
        group, version = api_version.rsplit("/", 1)
        return group, version
    return "", api_version


def object_key(obj: dict) -> tuple[str, str, str]:
    """Identity of a policy object: (kind, namespace, name)."""
    metadata = obj.get("metadata", {}) or {}
    return (
        obj.get("kind", ""),
        metadata.get("namespace", "") or "",
        metadata.get("name", ""),
    )


class K8sClient:
    """Thin wrapper around the Kubernetes Python client.

    Policy objects are handled as plain dicts through the custom objects API so
    any policy engine's CRDs can take part in drift detection.
    """

    def __init__(self, context: str | None = None, kubeconfig: str | None = None):
        self.context = context
        self.kubeconfig = kubeconfig
        self._custom: client.CustomObjectsApi | None = None
        self._version: client.VersionApi | None = None
        self._api_client: client.ApiClient | None = None

    def _load_config(self) -> client.ApiClient:
        if self._api_client is not None:
            return self._api_client
        cfg = client.Configuration()
        try:
            config.load_kube_config(
                config_file=self.kubeconfig,
                context=self.context,
                client_configuration=cfg,
            )
        except config.ConfigException:
            try:
                config.load_incluster_config(client_configuration=cfg)
            except config.ConfigException as e:
                raise ClientError(f"no usable cluster configuration: {e}") from e
        # No retries inside the engine; callers own retry policy
        cfg.retries = False
        self._api_client = client.ApiClient(configuration=cfg)
        return self._api_client

    @property
    def custom(self) -> client.CustomObjectsApi:
        if self._custom is None:
            self._custom = client.CustomObjectsApi(api_client=self._load_config())
        return self._custom

    @property
    def version(self) -> client.VersionApi:
        if self._version is None:
            self._version = client.VersionApi(api_client=self._load_config())
        return self._version

    @staticmethod
    def is_cluster_scoped(kind: str, namespace: str = "") -> bool:
        """Return True if the resource kind is cluster-scoped."""
        if kind in CLUSTER_SCOPED_KINDS:
            return True
        # Heuristic: unknown Cluster*-prefixed kinds with no namespace
        if kind.startswith("Cluster") and not namespace:
            return True
        return False

    def server_version(self) -> str:
        """Return the cluster's git version string, e.g. ``v1.29.2``."""
        try:
            info = self.version.get_code(_request_timeout=settings.request_timeout)
        except ApiException as e:
            raise ClientError(f"failed to get server version: {e.reason}", status=e.status) from e
        except HTTPError as e:
            raise ClientError(f"failed to get server version: {e}") from e
        return info.git_version

    def list_policies(self, api_version: str, kind: str) -> list[dict]:
        """List every object of a policy kind across the cluster.

        A 404 means the CRD is not installed, so there are no objects of that
        kind. Any other failure raises ClientError.
        """
        group, version = split_api_version(api_version)
        plural = self._kind_to_plural(kind)
        try:
            result = self.custom.list_cluster_custom_object(
                group=group,
                version=version,
                plural=plural,
                _request_timeout=settings.request_timeout,
            )
        except ApiException as e:
            if e.status == 404:
                logger.debug("No %s resources served for %s, treating as empty", plural, api_version)
                return []
            raise ClientError(f"failed to list {kind} ({api_version}): {e.reason}", status=e.status) from e
        except HTTPError as e:
            raise ClientError(f"failed to list {kind} ({api_version}): {e}") from e

        items = result.get("items", []) or []
        # List responses omit apiVersion/kind on items
        for item in items:
            item.setdefault("apiVersion", api_version)
            item.setdefault("kind", kind)
        return items

    def get_policy(self, api_version: str, kind: str, name: str, namespace: str = "") -> dict | None:
        """Get a single policy object, or None if it does not exist."""
        group, version = split_api_version(api_version)
        plural = self._kind_to_plural(kind)
        try:
            if self.is_cluster_scoped(kind, namespace):
                return self.custom.get_cluster_custom_object(
                    group=group, version=version, plural=plural, name=name,
                    _request_timeout=settings.request_timeout,
                )
            return self.custom.get_namespaced_custom_object(
                group=group, version=version, namespace=namespace, plural=plural, name=name,
                _request_timeout=settings.request_timeout,
            )
        except ApiException as e:
            if e.status == 404:
                return None
            raise

    def create_policy(self, body: dict) -> dict:
        group, version = split_api_version(body.get("apiVersion", ""))
        kind, namespace, _ = object_key(body)
        plural = self._kind_to_plural(kind)
        if self.is_cluster_scoped(kind, namespace):
            return self.custom.create_cluster_custom_object(
                group=group, version=version, plural=plural, body=body,
                _request_timeout=settings.request_timeout,
            )
        return self.custom.create_namespaced_custom_object(
            group=group, version=version, namespace=namespace, plural=plural, body=body,
            _request_timeout=settings.request_timeout,
        )

    def replace_policy(self, body: dict) -> dict:
        """Replace a policy; ``body`` must carry the current resourceVersion."""
        group, version = split_api_version(body.get("apiVersion", ""))
        kind, namespace, name = object_key(body)
        plural = self._kind_to_plural(kind)
        if self.is_cluster_scoped(kind, namespace):
            return self.custom.replace_cluster_custom_object(
                group=group, version=version, plural=plural, name=name, body=body,
                _request_timeout=settings.request_timeout,
            )
        return self.custom.replace_namespaced_custom_object(
            group=group, version=version, namespace=namespace, plural=plural, name=name, body=body,
            _request_timeout=settings.request_timeout,
        )

    def delete_policy(self, api_version: str, kind: str, name: str, namespace: str = "") -> bool:
        """Delete a policy. Returns False if it was already gone."""
        group, version = split_api_version(api_version)
        plural = self._kind_to_plural(kind)
        try:
            if self.is_cluster_scoped(kind, namespace):
                self.custom.delete_cluster_custom_object(
                    group=group, version=version, plural=plural, name=name,
                    _request_timeout=settings.request_timeout,
                )
            else:
                self.custom.delete_namespaced_custom_object(
                    group=group, version=version, namespace=namespace, plural=plural, name=name,
                    _request_timeout=settings.request_timeout,
                )
        except ApiException as e:
            if e.status == 404:
                return False
            raise
        return True

    @staticmethod
    def _kind_to_plural(kind: str) -> str:
        k = kind.lower()
        if k.endswith("s"):
            return k + "es"
        if k.endswith("y"):
            return k[:-1] + "ies"
        return k + "s"
