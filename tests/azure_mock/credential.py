"""Stand-in for DefaultAzureCredential.

The mocked identity client never asks it for a token; it only needs to be
passed through so tests can check which credential the client was built with.
"""

from __future__ import annotations

from typing import Any


class MockAzureCredential:
    """Opaque credential object, closed state tracked for assertions."""

    def __init__(self, label: str = "workload-identity") -> None:
        self.label = label
        self.closed = False

    def get_token(self, *scopes: str, **kwargs: Any) -> Any:
        raise AssertionError(f"unexpected token request for {scopes}")

    def close(self) -> None:
        self.closed = True

    def __repr__(self) -> str:
        return f"MockAzureCredential({self.label!r})"


def create_mock_credential() -> MockAzureCredential:
    return MockAzureCredential()
