"""
De-duplicating chart content cache.

Entries are keyed by (repository scope, chart name, resolved version). At most
one upstream fetch runs per key: concurrent callers for a key that is being
fetched wait for the in-flight call and share its outcome, value or error.
A failed fetch leaves nothing behind, so the next caller starts over.
Successful entries live as long as the cache instance.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Tuple

from .hooks import CacheEventRecorder, NoopEventRecorder
from .models import CachedChart, CacheKey, ChartFile

__all__ = ["ChartCache", "Fetch"]

logger = logging.getLogger(__name__)

Fetch = Callable[[], Tuple[ChartFile, ...]]


@dataclass
class _Call:
    """A fetch in progress; followers block on done."""
    done: threading.Event = field(default_factory=threading.Event)
    result: Optional[CachedChart] = None
    error: Optional[BaseException] = None


class ChartCache:
    """
    Thread-safe single-flight cache of chart contents.

    Example:
        >>> cache = ChartCache()
        >>> chart = cache.get(url, "podinfo", "6.5.0", fetch=lambda: load_archive(data))
    """

    def __init__(self, events: Optional[CacheEventRecorder] = None,
                 clock: Callable[[], float] = time.time) -> None:
        self._events = events or NoopEventRecorder()
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[CacheKey, CachedChart] = {}
        self._calls: Dict[CacheKey, _Call] = {}

    def peek(self, repo_url: str, name: str, version: str) -> Optional[CachedChart]:
        """Return the cached chart for a key without fetching."""
        with self._lock:
            return self._entries.get((repo_url, name, version))

    def get(self, repo_url: str, name: str, version: str, fetch: Fetch) -> CachedChart:
        """
        Return the chart for a key, fetching it at most once concurrently.

        Args:
            repo_url: Normalized repository URL
            name: Chart name
            version: Resolved (concrete) version
            fetch: Loads the chart files; called only by the leading caller

        Returns:
            Cached chart for the key

        Raises:
            Whatever fetch raised, to the leader and every waiting follower
        """
        key: CacheKey = (repo_url, name, version)

        with self._lock:
            cached = self._entries.get(key)
            if cached is not None:
                self._events.record("hit", repo_url, name)
                return cached

            call = self._calls.get(key)
            leader = call is None
            if leader:
                call = _Call()
                self._calls[key] = call

        if not leader:
            logger.debug(f"Waiting for in-flight fetch of {name} {version} from {repo_url}")
            call.done.wait()
            if call.error is not None:
                raise call.error
            return call.result

        self._events.record("miss", repo_url, name)
        try:
            files = fetch()
            chart = CachedChart(key=key, files=tuple(files), fetched_at=self._clock())
        except BaseException as e:
            call.error = e
            with self._lock:
                del self._calls[key]
            call.done.set()
            raise

        call.result = chart
        with self._lock:
            self._entries[key] = chart
            del self._calls[key]
        call.done.set()
        logger.info(f"Cached {name} {version} from {repo_url} ({len(chart.files)} files)")
        return chart

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
