"""In-memory cluster state and fake API clients."""

from __future__ import annotations

import copy
from typing import Any

from kubernetes.client import (
    V1Container,
    V1Deployment,
    V1DeploymentList,
    V1DeploymentSpec,
    V1LabelSelector,
    V1ObjectMeta,
    V1PodSpec,
    V1PodTemplateSpec,
    V1ServiceAccount,
    V1ServiceAccountList,
)
from kubernetes.client.exceptions import ApiException

Key = tuple[str, str]


def make_service_account(
    name: str,
    namespace: str = "default",
    labels: dict[str, str] | None = None,
    annotations: dict[str, str] | None = None,
) -> V1ServiceAccount:
    return V1ServiceAccount(
        metadata=V1ObjectMeta(
            name=name,
            namespace=namespace,
            labels=labels,
            annotations=annotations,
        )
    )


def make_deployment(
    name: str,
    namespace: str = "default",
    service_account: str | None = None,
    template_annotations: dict[str, str] | None = None,
) -> V1Deployment:
    return V1Deployment(
        metadata=V1ObjectMeta(name=name, namespace=namespace),
        spec=V1DeploymentSpec(
            selector=V1LabelSelector(match_labels={"app": name}),
            template=V1PodTemplateSpec(
                metadata=V1ObjectMeta(labels={"app": name}, annotations=template_annotations),
                spec=V1PodSpec(
                    service_account_name=service_account,
                    containers=[V1Container(name="app", image="nginx:1.27")],
                ),
            ),
        ),
    )


def _not_found(kind: str, namespace: str, name: str) -> ApiException:
    e = ApiException(status=404, reason="Not Found")
    e.body = f'{kind} "{name}" not found in namespace "{namespace}"'
    return e


def _injected(failure: int | Exception, reason: str = "Injected failure") -> Exception:
    """An HTTP status becomes an ApiException; any other exception is raised as given."""
    if isinstance(failure, Exception):
        return failure
    return ApiException(status=failure, reason=reason)


def _conflict(kind: str, name: str) -> ApiException:
    e = ApiException(status=409, reason="Conflict")
    e.body = (
        f'Operation cannot be fulfilled on {kind} "{name}": the object has been '
        "modified; please apply your changes to the latest version and try again"
    )
    return e


class MockCluster:
    """Object store shared by the fake API clients.

    Stored objects are never handed out directly; every read returns a deep
    copy so callers cannot mutate cluster state without a write.
    """

    def __init__(self) -> None:
        self.service_accounts: dict[Key, V1ServiceAccount] = {}
        self.deployments: dict[Key, V1Deployment] = {}
        self._resource_version = 0

        # Failure injection: an HTTP status or an exception instance to raise
        self.fail_list_service_accounts: int | Exception | None = None
        self.fail_list_deployments: int | Exception | None = None
        self.fail_update: dict[Key, int | Exception] = {}
        self.fail_get: dict[Key, int | Exception] = {}

        # Call tracking
        self.service_account_lists = 0
        self.service_account_updates: list[Key] = []
        self.deployment_updates: list[Key] = []
        self.deployment_reads: list[Key] = []

    def _next_version(self) -> str:
        self._resource_version += 1
        return str(self._resource_version)

    def _store(self, store: dict[Key, Any], obj: Any) -> Any:
        stored = copy.deepcopy(obj)
        stored.metadata.resource_version = self._next_version()
        store[(stored.metadata.namespace, stored.metadata.name)] = stored
        return copy.deepcopy(stored)

    def add_service_account(self, sa: V1ServiceAccount) -> V1ServiceAccount:
        return self._store(self.service_accounts, sa)

    def add_deployment(self, dep: V1Deployment) -> V1Deployment:
        return self._store(self.deployments, dep)

    def service_account(self, namespace: str, name: str) -> V1ServiceAccount:
        return copy.deepcopy(self.service_accounts[(namespace, name)])

    def deployment(self, namespace: str, name: str) -> V1Deployment:
        return copy.deepcopy(self.deployments[(namespace, name)])

    def edit_deployment(self, namespace: str, name: str, **template_annotations: str) -> None:
        """Simulate another writer changing a Deployment's pod template."""
        dep = self.deployment(namespace, name)
        meta = dep.spec.template.metadata
        meta.annotations = {**(meta.annotations or {}), **template_annotations}
        self._store(self.deployments, dep)

    def touch_service_account(self, namespace: str, name: str) -> None:
        """Simulate another writer bumping a ServiceAccount's resourceVersion."""
        self._store(self.service_accounts, self.service_account(namespace, name))

    def replace(
        self, store: dict[Key, Any], kind: str, name: str, namespace: str, body: Any
    ) -> Any:
        key = (namespace, name)
        if key in self.fail_update:
            raise _injected(self.fail_update[key])
        current = store.get(key)
        if current is None:
            raise _not_found(kind, namespace, name)
        if body.metadata.resource_version != current.metadata.resource_version:
            raise _conflict(kind, name)
        return self._store(store, body)


class MockCoreV1Api:
    """Fake ``CoreV1Api`` covering the ServiceAccount calls the controller makes."""

    def __init__(self, cluster: MockCluster) -> None:
        self._cluster = cluster

    def list_service_account_for_all_namespaces(self, **kwargs: Any) -> V1ServiceAccountList:
        self._cluster.service_account_lists += 1
        if self._cluster.fail_list_service_accounts is not None:
            raise _injected(self._cluster.fail_list_service_accounts, "Injected")
        items = [copy.deepcopy(sa) for sa in self._cluster.service_accounts.values()]
        return V1ServiceAccountList(items=items)

    def replace_namespaced_service_account(
        self, name: str, namespace: str, body: V1ServiceAccount, **kwargs: Any
    ) -> V1ServiceAccount:
        result = self._cluster.replace(
            self._cluster.service_accounts, "serviceaccounts", name, namespace, body
        )
        self._cluster.service_account_updates.append((namespace, name))
        return result


class MockAppsV1Api:
    """Fake ``AppsV1Api`` covering the Deployment calls the controller makes."""

    def __init__(self, cluster: MockCluster) -> None:
        self._cluster = cluster

    def list_deployment_for_all_namespaces(self, **kwargs: Any) -> V1DeploymentList:
        if self._cluster.fail_list_deployments is not None:
            raise _injected(self._cluster.fail_list_deployments, "Injected")
        items = [copy.deepcopy(d) for d in self._cluster.deployments.values()]
        return V1DeploymentList(items=items)

    def read_namespaced_deployment(self, name: str, namespace: str, **kwargs: Any) -> V1Deployment:
        key = (namespace, name)
        self._cluster.deployment_reads.append(key)
        if key in self._cluster.fail_get:
            raise _injected(self._cluster.fail_get[key])
        if key not in self._cluster.deployments:
            raise _not_found("deployments.apps", namespace, name)
        return self._cluster.deployment(namespace, name)

    def replace_namespaced_deployment(
        self, name: str, namespace: str, body: V1Deployment, **kwargs: Any
    ) -> V1Deployment:
        result = self._cluster.replace(
            self._cluster.deployments, "deployments.apps", name, namespace, body
        )
        self._cluster.deployment_updates.append((namespace, name))
        return result
