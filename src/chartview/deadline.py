"""
Deadline enforcement for blocking upstream calls.

Some SDKs (oras-py, cloud identity clients) do not expose a per-call timeout.
call_with_timeout() runs the call on a worker thread and stops waiting once
the deadline passes, turning expiry into a TransientNetworkError.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Callable, TypeVar

from .errors import TransientNetworkError

__all__ = ["call_with_timeout"]

logger = logging.getLogger(__name__)

T = TypeVar("T")


def call_with_timeout(func: Callable[[], T], timeout_s: float, what: str) -> T:
    """
    Run func and wait at most timeout_s seconds for its result.

    Exceptions raised by func propagate unchanged. The worker thread is
    abandoned on expiry; its eventual result is discarded.

    Args:
        func: Zero-argument callable to run
        timeout_s: Deadline in seconds
        what: Description used in the error message

    Raises:
        TransientNetworkError: If the deadline expires
    """
    pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="chartview-deadline")
    try:
        future = pool.submit(func)
        try:
            return future.result(timeout=timeout_s)
        except FutureTimeout:
            future.cancel()
            logger.warning(f"{what} did not complete within {timeout_s}s")
            raise TransientNetworkError(f"{what} timed out after {timeout_s}s") from None
    finally:
        pool.shutdown(wait=False)
