"""Finds Deployments whose pods run as a newly bound ServiceAccount."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from kubernetes.client import AppsV1Api, V1Deployment

from .kube import KUBE_API_ERRORS, describe_api_error


class ImpactAnalysisError(Exception):
    """Listing Deployments failed; no restarts can be planned this tick."""

    def __init__(self, cause: Exception) -> None:
        super().__init__(f"Failed to list deployments {describe_api_error(cause)}")
        self.cause = cause


class DeploymentImpactFinder:
    """Maps changed ServiceAccount names to the Deployments that use them."""

    def __init__(self, apps_api: AppsV1Api, logger: logging.Logger | None = None) -> None:
        self._apps_api = apps_api
        self._logger = logger or logging.getLogger(__name__)

    def find_impacted(self, changed_names: Iterable[str]) -> list[V1Deployment]:
        """Return every Deployment whose pod template uses a changed account.

        Deployments are listed across all namespaces in a single call and
        matched on the exact ``serviceAccountName``. Each Deployment appears
        at most once, in list order.

        Raises:
            ImpactAnalysisError: If the Deployment list call fails.
        """
        wanted = set(changed_names)
        if not wanted:
            return []

        try:
            deployments = self._apps_api.list_deployment_for_all_namespaces()
        except KUBE_API_ERRORS as e:
            raise ImpactAnalysisError(e) from e

        found: list[V1Deployment] = []
        seen: set[tuple[str, str]] = set()
        for dep in deployments.items:
            key = (dep.metadata.namespace, dep.metadata.name)
            if key in seen:
                continue
            if _service_account_name(dep) in wanted:
                seen.add(key)
                found.append(dep)
                self._logger.debug(
                    "Deployment uses changed ServiceAccount",
                    extra={
                        "deployment": dep.metadata.name,
                        "namespace": dep.metadata.namespace,
                        "service_account": _service_account_name(dep),
                    },
                )

        return found


def _service_account_name(dep: V1Deployment) -> str | None:
    spec = dep.spec
    if spec is None or spec.template is None or spec.template.spec is None:
        return None
    return spec.template.spec.service_account_name
