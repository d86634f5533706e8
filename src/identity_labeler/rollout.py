"""Rolling restarts of Deployments, the same way ``kubectl rollout restart`` does.

The restart is requested by stamping the pod template with the
``kubectl.kubernetes.io/restartedAt`` annotation; the Deployment controller
notices the template change and replaces the pods.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime

from kubernetes.client import AppsV1Api, V1Deployment, V1ObjectMeta
from .constants import RESTARTED_AT_ANNOTATION
from .kube import KUBE_API_ERRORS, api_error_status, describe_api_error
from .models import ItemOutcome, OutcomeStatus, RestartResult

KIND = "Deployment"


def format_rfc3339(moment: datetime) -> str:
    """Format an aware datetime as an RFC3339 UTC timestamp with second precision."""
    return moment.astimezone(UTC).replace(microsecond=0).isoformat().replace("+00:00", "Z")


class RolloutTrigger:
    """Restarts Deployments by annotating a freshly read copy of each one."""

    def __init__(
        self,
        apps_api: AppsV1Api,
        clock: Callable[[], datetime] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._apps_api = apps_api
        self._clock = clock or (lambda: datetime.now(UTC))
        self._logger = logger or logging.getLogger(__name__)

    def restart(self, deployments: Iterable[V1Deployment]) -> RestartResult:
        """Trigger a rolling restart of every Deployment in ``deployments``.

        The objects passed in are only used for their namespace and name.
        Each Deployment is read again right before the write so that changes
        made since it was listed are kept. A failure on one Deployment is
        logged and does not stop the others.
        """
        result = RestartResult()
        for dep in deployments:
            outcome = self._restart_one(dep.metadata.namespace, dep.metadata.name)
            result.outcomes.append(outcome)
            if outcome.status == OutcomeStatus.RESTARTED:
                result.restarted.append(outcome.name)
        return result

    def _restart_one(self, namespace: str, name: str) -> ItemOutcome:
        log_extra = {"deployment": name, "namespace": namespace}

        try:
            fresh = self._apps_api.read_namespaced_deployment(name=name, namespace=namespace)
        except KUBE_API_ERRORS as e:
            self._logger.warning(
                "Failed to get deployment",
                extra={**log_extra, "status": api_error_status(e), "error": describe_api_error(e)},
            )
            return ItemOutcome(
                KIND, namespace, name, OutcomeStatus.FAILED, f"get failed {describe_api_error(e)}"
            )

        template = fresh.spec.template
        if template.metadata is None:
            template.metadata = V1ObjectMeta()
        if template.metadata.annotations is None:
            template.metadata.annotations = {}

        timestamp = format_rfc3339(self._clock())
        template.metadata.annotations[RESTARTED_AT_ANNOTATION] = timestamp

        try:
            self._apps_api.replace_namespaced_deployment(name=name, namespace=namespace, body=fresh)
        except KUBE_API_ERRORS as e:
            self._logger.warning(
                "Failed to update deployment",
                extra={**log_extra, "status": api_error_status(e), "error": describe_api_error(e)},
            )
            return ItemOutcome(
                KIND,
                namespace,
                name,
                OutcomeStatus.FAILED,
                f"update failed {describe_api_error(e)}",
            )

        self._logger.debug("Restarted deployment", extra={**log_extra, "restarted_at": timestamp})
        return ItemOutcome(KIND, namespace, name, OutcomeStatus.RESTARTED, timestamp)
