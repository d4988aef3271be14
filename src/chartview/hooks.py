"""
Extension points with no-op defaults.

Signature verification and cache event emission are pluggable strategies:
the service always calls them, and deployments substitute real
implementations without touching the pipeline.
"""
from __future__ import annotations

import logging
from typing import Literal, Protocol, runtime_checkable

__all__ = [
    "CacheEvent",
    "ChartVerifier",
    "NoopVerifier",
    "CacheEventRecorder",
    "NoopEventRecorder",
    "LoggingEventRecorder",
]

logger = logging.getLogger(__name__)

CacheEvent = Literal["hit", "miss"]


@runtime_checkable
class ChartVerifier(Protocol):
    """Verifies a downloaded archive before it is cached."""

    def verify(self, repo_url: str, name: str, version: str, archive: bytes) -> None:
        """
        Raise AuthenticationError (or another ChartViewError) to reject the archive.
        """
        ...


class NoopVerifier:
    """Accepts every archive."""

    def verify(self, repo_url: str, name: str, version: str, archive: bytes) -> None:
        return None


@runtime_checkable
class CacheEventRecorder(Protocol):
    """Receives one event per cache lookup."""

    def record(self, event: CacheEvent, repo_url: str, name: str) -> None:
        ...


class NoopEventRecorder:
    """Discards events."""

    def record(self, event: CacheEvent, repo_url: str, name: str) -> None:
        return None


class LoggingEventRecorder:
    """Writes cache events to the debug log."""

    def record(self, event: CacheEvent, repo_url: str, name: str) -> None:
        logger.debug(f"cache {event}: {repo_url} {name}")
