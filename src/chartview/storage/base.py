"""
Storage interfaces for chartview.

These protocols define the boundary between the serving pipeline and the
upstream adapters, enabling clean dependency injection and testing with fakes.
"""
from __future__ import annotations

from typing import Dict, List, Protocol, runtime_checkable

from ..models import Credential

__all__ = ["SecretStore", "ChartRepository"]


@runtime_checkable
class SecretStore(Protocol):
    """Read-only access to secret material."""

    def get_secret(self, name: str, namespace: str) -> Dict[str, bytes]:
        """
        Fetch a secret's decoded data map.

        Args:
            name: Secret name
            namespace: Secret namespace

        Returns:
            Mapping of key to raw (already base64-decoded) bytes

        Raises:
            NotFoundError: If the secret does not exist
            TransientNetworkError: If the store cannot be reached
        """
        ...


@runtime_checkable
class ChartRepository(Protocol):
    """
    Capability shared by index-based and registry-based repositories.

    Errors are distinguished by kind: TransientNetworkError (caller may
    retry), NotFoundError (never retried), AuthenticationError (fatal).
    """

    def resolve_version(self, name: str, constraint: str) -> str:
        """
        Resolve a version constraint to a concrete version.

        Args:
            name: Chart name
            constraint: Exact version, semver range, or "" for latest

        Returns:
            The concrete version string as listed by the repository

        Raises:
            NotFoundError: If no available version matches
            ConfigurationError: If the constraint cannot be parsed
        """
        ...

    def download(self, name: str, version: str) -> bytes:
        """
        Download the chart archive (.tgz) for a concrete version.

        Raises:
            NotFoundError: If the version or its archive is absent
        """
        ...

    def login(self, credential: Credential) -> None:
        """Authenticate with the repository. No-op for index repositories."""
        ...

    def logout(self) -> None:
        """Undo login. Idempotent; a no-op if login was never invoked."""
        ...

    def list_charts(self) -> List[str]:
        """Sorted chart names available in the repository."""
        ...

    def list_versions(self, name: str) -> List[str]:
        """Available versions of a chart, newest first."""
        ...
