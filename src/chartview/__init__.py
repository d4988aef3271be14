"""
chartview - resolve, fetch, cache and serve Helm chart files.

Charts come from index-based (index.yaml over HTTP) or registry-based (OCI)
repositories. The public surface is the ChartService pipeline and the
FastAPI application built around it.
"""

__version__ = "0.1.0"

from .errors import (
    AuthenticationError,
    ChartViewError,
    ConfigurationError,
    NotFoundError,
    TransientNetworkError,
    ValidationError,
)
from .models import ChartRef, SourceReference
from .service import ChartService
from .settings import Settings, create_settings_from_env

__all__ = [
    "__version__",
    "ChartService",
    "ChartRef",
    "SourceReference",
    "Settings",
    "create_settings_from_env",
    "ChartViewError",
    "ConfigurationError",
    "AuthenticationError",
    "NotFoundError",
    "TransientNetworkError",
    "ValidationError",
]
