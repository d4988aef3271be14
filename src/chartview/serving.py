"""
Conditional serving of chart files.

Computes the revalidator and freshness lifetime for a file response and
answers conditional requests with 304 Not Modified. Transport agnostic: the
FastAPI layer turns a FileResponse into an HTTP response.
"""
from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Optional

from .convert import convert
from .errors import ValidationError
from .models import ChartSourceRef
from .path_safety import safe_relpath
from .settings import FLOATING_MAX_AGE_S, PINNED_MAX_AGE_S, Settings
from .storage.versions import is_pinned_version

if TYPE_CHECKING:
    from .service import ChartService

__all__ = ["FileRequest", "FileResponse", "serve_file", "make_etag", "etag_matches", "max_age_for"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileRequest:
    """
    A request for one file of a chart.

    The chart is addressed by url, or through a chart-source record when
    source is set.
    """
    url: str
    name: str
    version: str
    path: str
    format: str = ""
    source: Optional[ChartSourceRef] = None


@dataclass(frozen=True)
class FileResponse:
    """Status, body and headers of a served file."""
    status: int
    body: bytes = field(repr=False)
    headers: Dict[str, str] = field(default_factory=dict)


def make_etag(data: bytes) -> str:
    """Strong entity tag: the quoted SHA-256 hex digest of the content."""
    return f'"{hashlib.sha256(data).hexdigest()}"'


def etag_matches(if_none_match: Optional[str], etag: str) -> bool:
    """
    Check an If-None-Match header against an entity tag.

    Accepts "*", comma-separated lists, weak validators and unquoted tags.
    """
    if not if_none_match:
        return False
    bare = etag.strip('"')
    for candidate in if_none_match.split(","):
        candidate = candidate.strip()
        if candidate == "*":
            return True
        if candidate.startswith("W/"):
            candidate = candidate[2:]
        if candidate.strip('"') == bare:
            return True
    return False


def max_age_for(constraint: str, settings: Optional[Settings] = None) -> int:
    """Pinned versions are immutable and get the long lifetime; ranges and latest the short one."""
    if is_pinned_version(constraint):
        return settings.pinned_max_age_s if settings else PINNED_MAX_AGE_S
    return settings.floating_max_age_s if settings else FLOATING_MAX_AGE_S


def serve_file(service: ChartService, request: FileRequest, if_none_match: Optional[str] = None,
               settings: Optional[Settings] = None) -> FileResponse:
    """
    Serve one chart file with conditional-caching semantics.

    Args:
        service: ChartService used to resolve and fetch the chart
        request: The file request
        if_none_match: Value of the client's If-None-Match header
        settings: Supplies max-age policy (defaults apply when omitted)

    Returns:
        200 with content, or 304 with an empty body when the client's
        revalidator matches

    Raises:
        ValidationError: Invalid file path or format
        NotFoundError: Chart, version or file absent
    """
    try:
        path = safe_relpath(request.path)
    except ValueError as e:
        raise ValidationError(f"invalid file path {request.path!r}: {e}") from e

    chart_file = service.get_file(request.url, request.name, request.version, path, source=request.source)
    body, content_type = convert(chart_file.name, chart_file.data, request.format)

    etag = make_etag(body)
    headers = {
        "ETag": etag,
        "Cache-Control": f"private, must-revalidate, max-age={max_age_for(request.version, settings)}",
    }

    if etag_matches(if_none_match, etag):
        logger.debug(f"Not modified: {request.name} {request.version} {path}")
        return FileResponse(status=304, body=b"", headers=headers)

    headers["Content-Type"] = content_type
    return FileResponse(status=200, body=body, headers=headers)
