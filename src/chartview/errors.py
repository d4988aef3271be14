"""
chartview error classes.

Provides a clear taxonomy of errors that can occur while resolving, fetching
and serving charts. Errors from httpx, oras and the cloud SDKs are mapped
into this hierarchy at the adapter boundary so callers get a consistent
interface regardless of the repository kind.
"""
from __future__ import annotations


class ChartViewError(Exception):
    """Base class for all chartview errors."""
    pass


class ConfigurationError(ChartViewError):
    """
    Malformed or missing source reference fields.

    Raised before any network activity is attempted:
    - Unsupported URL scheme or repository kind
    - Non-positive timeout
    - Unparseable version constraint
    """
    pass


class AuthenticationError(ChartViewError):
    """
    Credentials could not be obtained or were rejected.

    Raised when:
    - The referenced secret cannot be read or decoded
    - Cloud auto-login fails for a configured provider
    - The remote service answers 401/403
    """
    pass


class NotFoundError(ChartViewError):
    """
    Chart, version or file absent.

    Never retried internally; maps to a not-found outcome.
    """
    pass


class TransientNetworkError(ChartViewError):
    """
    Timeouts, connection failures and unexpected upstream responses.

    Surfaced to the caller, which owns retry policy.
    """
    pass


class ValidationError(ChartViewError):
    """
    A value would corrupt generated output or cannot be processed.

    Raised before any external effect occurs.
    """
    pass


class ProviderUnconfigured(ChartViewError):
    """
    Cloud auto-login does not apply to the registry.

    Not an error for callers: the credential resolver treats it as
    "no credential available" and falls back to anonymous access.
    """
    pass


__all__ = [
    "ChartViewError",
    "ConfigurationError",
    "AuthenticationError",
    "NotFoundError",
    "TransientNetworkError",
    "ValidationError",
    "ProviderUnconfigured",
]
