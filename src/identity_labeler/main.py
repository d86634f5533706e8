"""Main entry point for the workload identity labeler controller.

The process runs the reconciliation loop until it is signalled or a fatal
error occurs. Fatal errors exit non-zero so the pod's restart policy starts
a fresh process.
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys

from azure.core.exceptions import AzureError

from .config import Config, ConfigurationError
from .identities import IdentityCatalog, create_identity_client
from .kube import ClusterConfigError, create_api_clients
from .logging_setup import setup_logging
from .reconciler import Reconciler, ServiceAccountListError
from .security import SecretlessViolationError, get_azure_credential

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_SECURITY_VIOLATION = 2


def build_reconciler(config: Config) -> Reconciler:
    """Create the Kubernetes and Azure clients and wire up a Reconciler.

    Raises:
        ClusterConfigError: If no Kubernetes configuration is available.
        SecretlessViolationError: If secretless mode is required and secret
            credentials are in the environment.
        AzureError: If the Azure client cannot be created.
    """
    core_api, apps_api = create_api_clients()
    catalog = build_catalog(config)
    return Reconciler(config, core_api, apps_api, catalog)


def build_catalog(config: Config) -> IdentityCatalog:
    """Create the managed identity catalog for the configured subscription."""
    credential = get_azure_credential(require_secretless=config.require_secretless)
    client = create_identity_client(config.subscription_id, credential)
    return IdentityCatalog(client, cache_ttl_seconds=config.identity_cache_ttl_seconds)


async def main() -> int:
    """Run the controller.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    setup_logging()
    logger = logging.getLogger(__name__)

    try:
        config = Config.from_env()
    except ConfigurationError as e:
        logger.error("Configuration error", extra={"error": str(e)})
        return EXIT_ERROR

    try:
        reconciler = build_reconciler(config)
    except SecretlessViolationError as e:
        logger.critical(
            "Secretless mode required but credentials found in environment",
            extra={"error": str(e)},
        )
        return EXIT_SECURITY_VIOLATION
    except ClusterConfigError as e:
        logger.error("Failed to create k8s client", extra={"error": str(e)})
        return EXIT_ERROR
    except AzureError as e:
        logger.error("Failed to create Azure MSI client", extra={"error": str(e)})
        return EXIT_ERROR

    # Set up signal handlers for graceful shutdown
    loop = asyncio.get_running_loop()

    def signal_handler(sig: signal.Signals) -> None:
        logger.info("Received signal", extra={"signal": sig.name})
        reconciler.shutdown()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))

    try:
        await reconciler.run()
    except ServiceAccountListError as e:
        logger.error("Cannot list ServiceAccounts, exiting", extra={"error": str(e)})
        return EXIT_ERROR
    except Exception as e:
        logger.exception("Unhandled exception", extra={"error": str(e)})
        return EXIT_ERROR

    logger.info("Controller stopped")
    return EXIT_OK


def run() -> None:
    """Entry point for the controller process."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
