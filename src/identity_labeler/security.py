"""Azure credential acquisition.

Credentials come from DefaultAzureCredential: workload identity or managed
identity in a cluster, environment service principals, or a developer login
when run locally.

Clusters that must only ever use federated or managed identities can set
REQUIRE_SECRETLESS; the controller then refuses to start while a client
secret, certificate or password is present in its environment.
"""

from __future__ import annotations

import logging
import os

from azure.identity import DefaultAzureCredential

logger = logging.getLogger(__name__)

# Variables through which DefaultAzureCredential picks up secret-based credentials
FORBIDDEN_CREDENTIAL_ENV_VARS: tuple[str, ...] = (
    "AZURE_CLIENT_SECRET",
    "AZURE_CLIENT_CERTIFICATE_PATH",
    "AZURE_CLIENT_CERTIFICATE_PASSWORD",
    "AZURE_USERNAME",
    "AZURE_PASSWORD",
)

SECRETLESS_VIOLATION_MESSAGE = (
    "REQUIRE_SECRETLESS is set but {env_var} is present. Remove it and give the "
    "controller a workload or managed identity with Reader access on the "
    "subscription instead."
)


class SecretlessViolationError(Exception):
    """A secret-bearing credential variable is set while secretless mode is required."""

    pass


def enforce_secretless_architecture() -> None:
    """Fail if any secret-bearing credential variable is set.

    Raises:
        SecretlessViolationError: On the first forbidden variable found.
    """
    for env_var in FORBIDDEN_CREDENTIAL_ENV_VARS:
        if os.environ.get(env_var):
            logger.critical(
                "Secret-based credential found in secretless mode",
                extra={
                    "security_event": "credential_detected",
                    "env_var": env_var,
                    "action": "startup_blocked",
                },
            )
            raise SecretlessViolationError(SECRETLESS_VIOLATION_MESSAGE.format(env_var=env_var))


def get_azure_credential(require_secretless: bool = False) -> DefaultAzureCredential:
    """Return the credential used for Azure calls.

    Args:
        require_secretless: Refuse secret-based credentials in the environment.

    Raises:
        SecretlessViolationError: If ``require_secretless`` is set and a
            secret-bearing variable is present.
    """
    if require_secretless:
        enforce_secretless_architecture()

    client_id = os.environ.get("AZURE_CLIENT_ID")
    if client_id:
        logger.info(
            "Using federated/managed identity",
            extra={"client_id": client_id[:8] + "..." if len(client_id) > 8 else client_id},
        )
    return DefaultAzureCredential()
