"""Azure API mocks for testing.

Provides an in-memory user-assigned identity catalog and a mock credential
so the controller can be exercised without Azure connectivity.

Key Features:
- Paged identity listing with configurable page boundaries
- Error injection on any page
- Call tracking for assertions on pagination behaviour

Usage:
    from azure_mock import MockAzureContext, MockIdentity

    with MockAzureContext(pages=[[MockIdentity("mi-foo", "1111...")]]) as ctx:
        catalog = build_catalog(config)
        assert catalog.resolve("mi-foo") == "1111..."
        assert ctx.identity_client.list_calls == 1
"""

from .context import MockAzureContext
from .credential import MockAzureCredential, create_mock_credential
from .identities import MockIdentity, MockIdentityClient, create_mock_identity_client

__all__ = [
    "MockAzureContext",
    "MockAzureCredential",
    "MockIdentity",
    "MockIdentityClient",
    "create_mock_credential",
    "create_mock_identity_client",
]
