"""Kubernetes API client construction and API error helpers."""

from __future__ import annotations

import logging

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import HTTPError

logger = logging.getLogger(__name__)

# Errors a kubernetes client call can raise: API server rejections, and
# transport failures (connection resets, timeouts) surfaced by urllib3.
KUBE_API_ERRORS: tuple[type[Exception], ...] = (ApiException, HTTPError)


class ClusterConfigError(Exception):
    """Raised when no usable cluster configuration can be loaded."""

    pass


def load_cluster_config() -> str:
    """Load in-cluster configuration, falling back to the local kubeconfig.

    Returns:
        ``"in-cluster"`` or ``"kubeconfig"``, whichever was loaded.

    Raises:
        ClusterConfigError: If neither source is available.
    """
    try:
        config.load_incluster_config()
        logger.info("Using in-cluster Kubernetes config")
        return "in-cluster"
    except ConfigException:
        pass

    try:
        config.load_kube_config()
    except (ConfigException, FileNotFoundError) as e:
        raise ClusterConfigError(f"Failed to load Kubernetes configuration: {e}") from e

    logger.info("Using local kubeconfig")
    return "kubeconfig"


def create_api_clients() -> tuple[client.CoreV1Api, client.AppsV1Api]:
    """Load cluster configuration and build the Core and Apps API clients."""
    load_cluster_config()
    api_client = client.ApiClient()
    return client.CoreV1Api(api_client), client.AppsV1Api(api_client)


def describe_api_error(error: Exception) -> str:
    """Short ``(status): reason`` text for a failed API call."""
    if isinstance(error, ApiException):
        return f"({error.status}): {error.reason}"
    return f"(transport): {error}"


def api_error_status(error: Exception) -> int | None:
    """HTTP status of a failed API call, or None when the request never got a response."""
    return error.status if isinstance(error, ApiException) else None
