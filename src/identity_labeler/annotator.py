"""Binds labelled ServiceAccounts to their managed identity client id.

A ServiceAccount asks for a binding by carrying the
``workload.identity.labeler/azure-mi-client-name`` label. Once the
``azure.workload.identity/client-id`` annotation is present the account is
bound and is never looked at again, even if the label changes afterwards.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from kubernetes.client import CoreV1Api, V1ServiceAccount
from .constants import CLIENT_ID_ANNOTATION, MI_NAME_LABEL
from .identities import IdentityCatalog, IdentityResolutionError
from .kube import KUBE_API_ERRORS, api_error_status, describe_api_error
from .models import AnnotateResult, ItemOutcome, OutcomeStatus

KIND = "ServiceAccount"


class ServiceAccountAnnotator:
    """Writes resolved client ids onto ServiceAccounts that request one."""

    def __init__(
        self,
        core_api: CoreV1Api,
        catalog: IdentityCatalog,
        logger: logging.Logger | None = None,
    ) -> None:
        self._core_api = core_api
        self._catalog = catalog
        self._logger = logger or logging.getLogger(__name__)

    def annotate(self, service_accounts: Iterable[V1ServiceAccount]) -> AnnotateResult:
        """Bind every ServiceAccount in ``service_accounts`` that needs it.

        Each account is handled on its own: a failed lookup or update is
        logged and skipped, and the remaining accounts are still processed.
        Skipped accounts are left untouched so the next tick retries them.
        """
        self._logger.info("Scanning for ServiceAccounts...")
        result = AnnotateResult()

        for sa in service_accounts:
            outcome = self._annotate_one(sa)
            result.outcomes.append(outcome)
            if outcome.status == OutcomeStatus.BOUND:
                result.changed.append(outcome.name)

        return result

    def _annotate_one(self, sa: V1ServiceAccount) -> ItemOutcome:
        name = sa.metadata.name
        namespace = sa.metadata.namespace
        log_extra: dict[str, Any] = {"service_account": name, "namespace": namespace}

        labels = sa.metadata.labels
        if not labels:
            self._logger.debug("ServiceAccount has no labels", extra=log_extra)
            return _outcome(sa, OutcomeStatus.SKIPPED, "no labels")

        mi_name = labels.get(MI_NAME_LABEL)
        if not mi_name:
            return _outcome(sa, OutcomeStatus.SKIPPED, "no identity label")

        original_annotations = sa.metadata.annotations
        annotations = original_annotations or {}
        if CLIENT_ID_ANNOTATION in annotations:
            self._logger.debug(
                f"ServiceAccount already has {CLIENT_ID_ANNOTATION} annotation",
                extra=log_extra,
            )
            return _outcome(sa, OutcomeStatus.SKIPPED, "already bound")

        self._logger.debug(
            "Found ServiceAccount requesting identity",
            extra={**log_extra, "mi_name": mi_name},
        )

        try:
            client_id = self._catalog.resolve(mi_name)
        except IdentityResolutionError as e:
            self._logger.warning(
                "Failed to get client id",
                extra={**log_extra, "mi_name": mi_name, "error": str(e)},
            )
            return _outcome(sa, OutcomeStatus.FAILED, str(e))

        # Merge into the existing map so other annotations survive the write.
        sa.metadata.annotations = {**annotations, CLIENT_ID_ANNOTATION: client_id}

        try:
            # replace carries metadata.resourceVersion, so a concurrent change
            # makes the API server reject this write with 409 Conflict.
            self._core_api.replace_namespaced_service_account(
                name=name, namespace=namespace, body=sa
            )
        except KUBE_API_ERRORS as e:
            sa.metadata.annotations = original_annotations
            self._logger.warning(
                "Failed to update ServiceAccount",
                extra={**log_extra, "status": api_error_status(e), "error": describe_api_error(e)},
            )
            return _outcome(sa, OutcomeStatus.FAILED, f"update failed {describe_api_error(e)}")

        self._logger.debug(
            "Updated ServiceAccount with client-id annotation",
            extra={**log_extra, "mi_name": mi_name},
        )
        return _outcome(sa, OutcomeStatus.BOUND, mi_name)


def _outcome(sa: V1ServiceAccount, status: OutcomeStatus, reason: str) -> ItemOutcome:
    return ItemOutcome(
        kind=KIND,
        namespace=sa.metadata.namespace,
        name=sa.metadata.name,
        status=status,
        reason=reason,
    )
