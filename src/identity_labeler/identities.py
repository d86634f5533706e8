"""Managed identity lookups against the Azure identity catalog.

Resolves the logical name of a user-assigned managed identity to its client
id by paging through every identity visible in the configured subscription.

There is no server-side filter by name, so each lookup walks the catalog
page by page and stops at the first exact match. If the provider returns two
identities with the same name (different resource groups), whichever comes
first in pagination order wins.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from azure.core.credentials import TokenCredential
from azure.core.exceptions import AzureError
from azure.mgmt.msi import ManagedServiceIdentityClient


class IdentityResolutionError(Exception):
    """Base class for managed identity lookup failures."""

    def __init__(self, name: str, message: str) -> None:
        super().__init__(message)
        self.name = name


class IdentityNotFoundError(IdentityResolutionError):
    """No identity with the requested name exists in the catalog."""

    def __init__(self, name: str) -> None:
        super().__init__(name, f"Managed identity not found: {name}")


class IdentityLookupError(IdentityResolutionError):
    """Paging through the catalog failed; worth retrying on the next tick."""

    def __init__(self, name: str, cause: Exception) -> None:
        super().__init__(name, f"Failed to page managed identities while resolving {name}: {cause}")
        self.cause = cause


def create_identity_client(
    subscription_id: str, credential: TokenCredential
) -> ManagedServiceIdentityClient:
    """Create the Azure client used to list user-assigned identities."""
    return ManagedServiceIdentityClient(credential=credential, subscription_id=subscription_id)


class IdentityCatalog:
    """Resolves managed identity names to client ids.

    Args:
        client: A ManagedServiceIdentityClient (or compatible object exposing
            ``user_assigned_identities.list_by_subscription()``).
        cache_ttl_seconds: Cache successful lookups for this long. 0 disables
            caching so every call reads the live catalog.
        logger: Logger to report through; defaults to the module logger.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        client: Any,
        cache_ttl_seconds: float = 0,
        logger: logging.Logger | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._cache_ttl = cache_ttl_seconds
        self._logger = logger or logging.getLogger(__name__)
        self._clock = clock
        self._cache: dict[str, tuple[str, float]] = {}

    def resolve(self, name: str) -> str:
        """Return the client id of the identity called ``name``.

        Raises:
            ValueError: If ``name`` is empty.
            IdentityNotFoundError: If no identity in the catalog has that name.
            IdentityLookupError: If a page could not be retrieved.
        """
        if not name:
            raise ValueError("Managed identity name must not be empty")

        cached = self._cached(name)
        if cached is not None:
            self._logger.debug("Managed identity resolved from cache", extra={"mi_name": name})
            return cached

        client_id = self._scan(name)
        if self._cache_ttl > 0:
            self._cache[name] = (client_id, self._clock() + self._cache_ttl)
        return client_id

    def clear_cache(self) -> None:
        self._cache.clear()

    def _cached(self, name: str) -> str | None:
        if self._cache_ttl <= 0:
            return None
        entry = self._cache.get(name)
        if entry is None:
            return None
        client_id, expires_at = entry
        if self._clock() >= expires_at:
            del self._cache[name]
            return None
        return client_id

    def _scan(self, name: str) -> str:
        page_count = 0
        try:
            pages = self._client.user_assigned_identities.list_by_subscription().by_page()
            for page in pages:
                page_count += 1
                for identity in page:
                    if not identity.name or not identity.client_id:
                        continue
                    if identity.name == name:
                        self._logger.debug(
                            "Managed identity found",
                            extra={"mi_name": name, "pages_read": page_count},
                        )
                        return identity.client_id
        except AzureError as e:
            self._logger.error(
                "Failed to page managed identities",
                extra={"mi_name": name, "error": str(e)},
            )
            raise IdentityLookupError(name, e) from e

        self._logger.error(
            "Managed identity not found. Check if the authenticated identity "
            "(azure client) has reader access on correct scope.",
            extra={"mi_name": name, "pages_read": page_count},
        )
        raise IdentityNotFoundError(name)
