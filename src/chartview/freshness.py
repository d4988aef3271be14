"""
HTTP freshness evaluation interface.

Whether an upstream response may be cached, and until when, is decided by an
external evaluator that implements the Cache-Control grammar. This module
only defines its contract, gathers the evaluator's input from an httpx
response, and loads an evaluator from an import string ("module:attr") so
deployments can plug one in from the command line.
"""
from __future__ import annotations

import email.utils
import inspect
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional, Protocol, Tuple, runtime_checkable

import httpx
from uvicorn.importer import ImportFromStringError, import_from_string

from .errors import ConfigurationError, TransientNetworkError

__all__ = [
    "FreshnessInput",
    "FreshnessResult",
    "FreshnessEvaluator",
    "parse_cache_control",
    "inspect_response",
    "load_evaluator",
    "check_url",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FreshnessInput:
    """Everything the evaluator needs to judge one response."""
    method: str
    request_directives: Dict[str, str]
    response_directives: Dict[str, str]
    status: int
    now: datetime
    expires: Optional[datetime] = None
    date: Optional[datetime] = None
    last_modified: Optional[datetime] = None


@dataclass(frozen=True)
class FreshnessResult:
    """Evaluator verdict."""
    cacheable: bool
    reasons: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    expiration: Optional[datetime] = None


@runtime_checkable
class FreshnessEvaluator(Protocol):
    """Decides cacheability and expiration of a response."""

    def evaluate(self, data: FreshnessInput) -> FreshnessResult:
        ...


def parse_cache_control(value: Optional[str]) -> Dict[str, str]:
    """
    Split a Cache-Control header into lowercase directive names and raw values.

    Directives without a value map to "". Grammar validation is left to the
    evaluator.

    Examples:
        >>> parse_cache_control('private, max-age=60')
        {'private': '', 'max-age': '60'}
    """
    directives: Dict[str, str] = {}
    if not value:
        return directives
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        key, _, raw = part.partition("=")
        directives[key.strip().lower()] = raw.strip().strip('"')
    return directives


def _http_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = email.utils.parsedate_to_datetime(value)
    except (TypeError, ValueError):
        logger.debug(f"Ignoring unparseable HTTP date: {value!r}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def inspect_response(response: httpx.Response, evaluator: FreshnessEvaluator,
                     now: Optional[datetime] = None) -> FreshnessResult:
    """
    Evaluate the freshness of an httpx response.

    Args:
        response: Response with its originating request attached
        evaluator: Freshness evaluator
        now: Reference time (default: current UTC time)
    """
    request = response.request
    data = FreshnessInput(
        method=request.method,
        request_directives=parse_cache_control(request.headers.get("cache-control")),
        response_directives=parse_cache_control(response.headers.get("cache-control")),
        status=response.status_code,
        now=now or datetime.now(timezone.utc),
        expires=_http_date(response.headers.get("expires")),
        date=_http_date(response.headers.get("date")),
        last_modified=_http_date(response.headers.get("last-modified")),
    )
    result = evaluator.evaluate(data)
    for warning in result.warnings:
        logger.debug(f"freshness warning for {request.url}: {warning}")
    return result


def load_evaluator(import_string: str) -> FreshnessEvaluator:
    """
    Load an evaluator from "module:attr".

    attr may be an evaluator instance, or a class or factory that builds one
    without arguments.

    Raises:
        ConfigurationError: If the import fails or the object is not an evaluator
    """
    try:
        target = import_from_string(import_string)
    except ImportFromStringError as e:
        raise ConfigurationError(f"cannot load freshness evaluator: {e}") from e

    evaluator = target() if inspect.isclass(target) else target
    if not isinstance(evaluator, FreshnessEvaluator) and callable(evaluator):
        evaluator = evaluator()
    if not isinstance(evaluator, FreshnessEvaluator):
        raise ConfigurationError(f"{import_string} is not a freshness evaluator")
    return evaluator


def check_url(url: str, evaluator: FreshnessEvaluator, *,
              transport: Optional[httpx.BaseTransport] = None,
              timeout_s: float = 30.0) -> FreshnessResult:
    """
    GET a URL and evaluate the freshness of its response.

    Meant for checking chartview's own file endpoints from the client side.

    Raises:
        TransientNetworkError: If the request fails
    """
    try:
        with httpx.Client(transport=transport, timeout=timeout_s, follow_redirects=True) as client:
            response = client.get(url)
            response.read()
    except httpx.HTTPError as e:
        raise TransientNetworkError(f"GET {url} failed: {e}") from e
    logger.debug(f"GET {url} -> {response.status_code}")
    return inspect_response(response, evaluator)
