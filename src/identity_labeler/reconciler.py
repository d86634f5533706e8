"""Core reconciliation loop.

Each tick:
1. List every ServiceAccount in the cluster
2. Bind the ones that request a managed identity and are not bound yet
3. If any were bound, find the Deployments that run as them
4. Trigger a rolling restart of those Deployments
5. Sleep for the configured interval and repeat

Failures on individual objects are logged and retried on the next tick.
Failing to list ServiceAccounts means the control plane connection is broken,
so it ends the loop and the process exits.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime

from kubernetes.client import AppsV1Api, CoreV1Api
from .annotator import ServiceAccountAnnotator
from .config import Config
from .identities import IdentityCatalog
from .impact import DeploymentImpactFinder, ImpactAnalysisError
from .kube import KUBE_API_ERRORS, api_error_status, describe_api_error
from .models import ReconcileResult
from .rollout import RolloutTrigger


class ServiceAccountListError(Exception):
    """Listing ServiceAccounts failed. Fatal for the controller."""

    def __init__(self, cause: Exception) -> None:
        super().__init__(f"Failed to list service accounts {describe_api_error(cause)}")
        self.cause = cause


class Reconciler:
    """Runs the polling control loop.

    Ticks run strictly one after another, each in a worker thread.
    ``shutdown()`` only interrupts the sleep between ticks; a tick that has
    started always runs to completion.
    """

    def __init__(
        self,
        config: Config,
        core_api: CoreV1Api,
        apps_api: AppsV1Api,
        catalog: IdentityCatalog,
        logger: logging.Logger | None = None,
        rollout: RolloutTrigger | None = None,
    ) -> None:
        self._config = config
        self._core_api = core_api
        self._logger = logger or logging.getLogger(__name__)
        self._annotator = ServiceAccountAnnotator(core_api, catalog, logger=self._logger)
        self._impact_finder = DeploymentImpactFinder(apps_api, logger=self._logger)
        self._rollout = rollout or RolloutTrigger(apps_api, logger=self._logger)
        self._shutdown_event = asyncio.Event()

    @property
    def config(self) -> Config:
        """Get the reconciler configuration."""
        return self._config

    async def run(self) -> None:
        """Run reconciliation ticks at the configured interval until shutdown.

        Raises:
            ServiceAccountListError: If ServiceAccounts cannot be listed.
        """
        self._logger.info(
            "Starting workload-identity-labeler controller",
            extra={
                "scan_interval_seconds": self._config.interval_seconds,
                "subscription_id": self._config.subscription_id,
            },
        )

        loop = asyncio.get_running_loop()
        while not self._shutdown_event.is_set():
            # Kubernetes and Azure SDK calls block
            await loop.run_in_executor(None, self.reconcile_once)

            # Wait for next tick or shutdown
            try:
                await asyncio.wait_for(
                    self._shutdown_event.wait(),
                    timeout=self._config.interval_seconds,
                )
            except TimeoutError:
                pass

        self._logger.info("Reconciler shutdown complete")

    def shutdown(self) -> None:
        """Signal the reconciler to stop after the current tick."""
        self._logger.info("Shutdown requested")
        self._shutdown_event.set()

    def reconcile_once(self) -> ReconcileResult:
        """Execute a single reconciliation tick.

        Raises:
            ServiceAccountListError: If ServiceAccounts cannot be listed.
        """
        result = ReconcileResult()

        self._logger.debug("Listing all ServiceAccounts in the cluster")
        try:
            service_accounts = self._core_api.list_service_account_for_all_namespaces().items
        except KUBE_API_ERRORS as e:
            self._logger.error(
                "Failed to list service accounts",
                extra={"status": api_error_status(e), "error": describe_api_error(e)},
            )
            raise ServiceAccountListError(e) from e

        result.service_accounts_seen = len(service_accounts)
        for sa in service_accounts:
            self._logger.debug(
                "Found ServiceAccount",
                extra={"service_account": sa.metadata.name, "namespace": sa.metadata.namespace},
            )

        annotated = self._annotator.annotate(service_accounts)
        result.outcomes.extend(annotated.outcomes)
        result.changed_service_accounts = list(annotated.changed)

        if annotated.changed:
            self._logger.info(
                "Changed ServiceAccounts",
                extra={"service_accounts": annotated.changed},
            )
            self._restart_impacted(annotated.changed, result)

        result.end_time = datetime.now(UTC)
        self._log_result(result)
        return result

    def _restart_impacted(self, changed: list[str], result: ReconcileResult) -> None:
        try:
            deployments = self._impact_finder.find_impacted(changed)
        except ImpactAnalysisError as e:
            self._logger.error(
                "Failed to search deployments for ServiceAccounts",
                extra={"error": str(e)},
            )
            result.impact_error = e
            return

        result.impacted_deployments = [d.metadata.name for d in deployments]
        if not deployments:
            self._logger.info(
                "No deployments found using ServiceAccounts with workload.identity.labeler label"
            )
            return

        restarted = self._rollout.restart(deployments)
        result.outcomes.extend(restarted.outcomes)
        result.restarted_deployments = list(restarted.restarted)

        if restarted.restarted:
            self._logger.info(
                "Restarted Deployments",
                extra={"deployments": restarted.restarted},
            )
        else:
            self._logger.info("No deployments were restarted")

    def _log_result(self, result: ReconcileResult) -> None:
        """Log the outcome of a tick."""
        self._logger.debug(
            "Reconciliation tick complete",
            extra={
                "duration_seconds": result.duration_seconds,
                "service_accounts_seen": result.service_accounts_seen,
                "changed": len(result.changed_service_accounts),
                "restarted": len(result.restarted_deployments),
                "failures": result.failures,
            },
        )
