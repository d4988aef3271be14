"""
FastAPI application exposing chart files and repository listings.

Endpoints are synchronous; FastAPI runs them on its worker threadpool, so
concurrent requests meet only at the chart cache.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, Header, Query, Request, Response, status
from fastapi.responses import JSONResponse

from .errors import (
    AuthenticationError,
    ChartViewError,
    ConfigurationError,
    NotFoundError,
    TransientNetworkError,
    ValidationError,
)
from .models import ChartSourceRef, PackageView
from .service import ChartService
from .serving import FileRequest, serve_file
from .settings import Settings

__all__ = ["create_app", "status_for", "ChartQuery", "chart_query"]

logger = logging.getLogger(__name__)

_STATUS = {
    ConfigurationError: status.HTTP_400_BAD_REQUEST,
    ValidationError: status.HTTP_400_BAD_REQUEST,
    AuthenticationError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    TransientNetworkError: status.HTTP_502_BAD_GATEWAY,
}


def status_for(exc: ChartViewError) -> int:
    """HTTP status for a chartview error; unknown subclasses map to 500."""
    for cls in type(exc).__mro__:
        if cls in _STATUS:
            return _STATUS[cls]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@dataclass(frozen=True)
class ChartQuery:
    """How a request addresses a chart: by repository URL or through a chart-source record."""
    url: str
    name: str
    version: str
    source: Optional[ChartSourceRef] = None


def chart_query(
    url: str = Query("", description="Repository URL"),
    name: str = Query(..., description="Chart name"),
    version: str = Query("", description="Exact version, semver range, or empty for latest"),
    source_name: str = Query("", alias="sourceName", description="HelmRepository name (instead of url)"),
    source_namespace: str = Query("default", alias="sourceNamespace", description="HelmRepository namespace"),
    source_kind: str = Query("", alias="sourceKind", description="Chart source kind (default HelmRepository)"),
) -> ChartQuery:
    """
    Build a ChartQuery from query parameters.

    Raises:
        ValidationError: If neither url nor sourceName is given
    """
    if source_name:
        source = ChartSourceRef(
            name=name,
            version=version,
            source_name=source_name,
            source_namespace=source_namespace,
            source_kind=source_kind,
        )
        return ChartQuery(url=url, name=name, version=version, source=source)
    if not url:
        raise ValidationError("either url or sourceName is required")
    return ChartQuery(url=url, name=name, version=version)


def create_app(service: ChartService, settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the HTTP application around a chart service.

    Args:
        service: Chart service shared by all requests
        settings: Cache policy and server settings (defaults when omitted)
    """
    settings = settings or Settings()
    app = FastAPI(title="chartview")

    @app.exception_handler(ChartViewError)
    async def _chartview_error(request: Request, exc: ChartViewError) -> JSONResponse:
        code = status_for(exc)
        if code >= 500:
            logger.warning(f"{request.method} {request.url.path} failed: {exc}")
        else:
            logger.debug(f"{request.method} {request.url.path} -> {code}: {exc}")
        return JSONResponse(status_code=code, content={"error": str(exc)})

    @app.get("/healthz")
    def healthz() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/packageview")
    def package_view(query: ChartQuery = Depends(chart_query)) -> PackageView:
        return service.package_view(query.url, query.name, query.version, source=query.source)

    @app.get("/packageview/files/{path:path}")
    def get_file(
        path: str,
        query: ChartQuery = Depends(chart_query),
        format: str = Query("", description="Output format: yaml, json or keep"),
        if_none_match: Optional[str] = Header(None),
    ) -> Response:
        request = FileRequest(
            url=query.url, name=query.name, version=query.version, path=path,
            format=format, source=query.source,
        )
        result = serve_file(service, request, if_none_match, settings)
        return Response(
            content=result.body,
            status_code=result.status,
            headers=result.headers,
        )

    @app.get("/packageview/files")
    def list_files(query: ChartQuery = Depends(chart_query)) -> List[str]:
        return service.list_files(query.url, query.name, query.version, source=query.source)

    @app.get("/chartrepositories")
    def list_repositories(
        namespace: str = Query("", description="Also list HelmRepository records of this namespace"),
    ) -> List[str]:
        return service.sources.urls(namespace or None)

    @app.get("/chartrepositories/charts")
    def list_charts(url: str = Query(..., description="Repository URL")) -> List[str]:
        return service.list_charts(url)

    @app.get("/chartrepositories/charts/{name}/versions")
    def list_versions(name: str, url: str = Query(..., description="Repository URL")) -> List[str]:
        return service.list_versions(url, name)

    return app
