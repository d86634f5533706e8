"""Kubernetes API mocks for testing.

An in-memory object store behind fake ``CoreV1Api`` and ``AppsV1Api``
clients. Objects are real ``kubernetes.client`` models; writes are checked
against ``metadata.resourceVersion`` and conflicting writes raise a 409
``ApiException`` like the API server does.
"""

from .cluster import (
    MockAppsV1Api,
    MockCluster,
    MockCoreV1Api,
    make_deployment,
    make_service_account,
)

__all__ = [
    "MockAppsV1Api",
    "MockCluster",
    "MockCoreV1Api",
    "make_deployment",
    "make_service_account",
]
