"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Add tests to path for azure_mock / kube_mock imports
tests_path = Path(__file__).parent
sys.path.insert(0, str(tests_path))

from kube_mock import MockAppsV1Api, MockCluster, MockCoreV1Api  # noqa: E402

from identity_labeler.config import Config  # noqa: E402

SUBSCRIPTION_ID = "00000000-0000-0000-0000-000000000001"


@pytest.fixture
def cluster() -> MockCluster:
    """Empty in-memory cluster."""
    return MockCluster()


@pytest.fixture
def core_api(cluster: MockCluster) -> MockCoreV1Api:
    return MockCoreV1Api(cluster)


@pytest.fixture
def apps_api(cluster: MockCluster) -> MockAppsV1Api:
    return MockAppsV1Api(cluster)


@pytest.fixture
def config() -> Config:
    """Minimal valid configuration."""
    return Config(subscription_id=SUBSCRIPTION_ID, interval_seconds=0.01)
