"""
Index-based chart repository.

An HTTP(S) repository publishes one index.yaml listing every chart version
and the URLs of its archives. The index is loaded once per repository
instance; a fresh instance (one per request session) sees upstream changes.
"""
from __future__ import annotations

import hashlib
import logging
import os
import ssl
import tempfile
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin, urlparse

import httpx
import yaml

from ..errors import (
    AuthenticationError,
    ConfigurationError,
    NotFoundError,
    TransientNetworkError,
    ValidationError,
)
from ..models import Credential, SourceReference, StaticCredential
from .versions import select_version, sort_versions

__all__ = ["IndexChartRepository", "build_http_client", "ssl_context_for"]

logger = logging.getLogger(__name__)

# Prefer the C-accelerated YAML loader when available; large indexes load much faster
_YamlLoader = getattr(yaml, "CSafeLoader", yaml.SafeLoader)


def ssl_context_for(credential: StaticCredential) -> ssl.SSLContext:
    """
    Build a TLS context from PEM material in a static credential.

    The client key pair is written to private temporary files only for the
    duration of load_cert_chain().
    """
    ca = credential.ca_pem.decode() if credential.ca_pem else None
    context = ssl.create_default_context(cadata=ca)
    if credential.cert_pem and credential.key_pem:
        paths = []
        try:
            for pem in (credential.cert_pem, credential.key_pem):
                fd, path = tempfile.mkstemp(prefix="chartview-tls-", suffix=".pem")
                paths.append(path)
                with os.fdopen(fd, "wb") as f:
                    f.write(pem)
            context.load_cert_chain(certfile=paths[0], keyfile=paths[1])
        except ssl.SSLError as e:
            raise AuthenticationError(f"invalid TLS client certificate: {e}") from e
        finally:
            for path in paths:
                try:
                    os.remove(path)
                except OSError as e:
                    logger.warning(f"failed to delete temporary TLS file: {e}")
    return context


def build_http_client(reference: SourceReference, credential: Credential,
                      user_agent: str = "chartview/0.1.0") -> httpx.Client:
    """Create the httpx client for an index repository session."""
    verify: Any = not reference.insecure
    if isinstance(credential, StaticCredential) and credential.has_tls:
        verify = ssl_context_for(credential)
    return httpx.Client(
        timeout=httpx.Timeout(reference.timeout_s),
        follow_redirects=True,
        verify=verify,
        headers={"User-Agent": user_agent},
    )


class IndexChartRepository:
    """
    ChartRepository backed by an index.yaml served over HTTP(S).

    Args:
        reference: Source reference (kind "default")
        credential: Basic-auth credential, if any
        http: httpx client; the caller owns and closes it
    """

    def __init__(self, reference: SourceReference, credential: Credential, http: httpx.Client) -> None:
        if reference.is_oci:
            raise ConfigurationError(f"not an index repository: {reference.url}")
        self._reference = reference
        self._http = http
        self._auth: Optional[httpx.BasicAuth] = None
        if isinstance(credential, StaticCredential) and credential.username:
            self._auth = httpx.BasicAuth(credential.username, credential.password or "")
        self._entries: Optional[Dict[str, List[Dict[str, Any]]]] = None

    @property
    def url(self) -> str:
        return self._reference.url

    def _get(self, url: str, *, auth: Optional[httpx.BasicAuth], what: str) -> httpx.Response:
        try:
            response = self._http.get(url, auth=auth, timeout=self._reference.timeout_s)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 404:
                raise NotFoundError(f"{what} not found: {url}") from e
            if status in (401, 403):
                raise AuthenticationError(f"authentication failed for {url}") from e
            raise TransientNetworkError(f"{what}: {url} returned {status}") from e
        except httpx.RequestError as e:
            raise TransientNetworkError(f"network error fetching {url}: {e}") from e

    def _load_index(self) -> Dict[str, List[Dict[str, Any]]]:
        if self._entries is not None:
            return self._entries

        index_url = urljoin(self.url, "index.yaml")
        response = self._get(index_url, auth=self._auth, what="repository index")
        try:
            document = yaml.load(response.content, Loader=_YamlLoader)
        except yaml.YAMLError as e:
            raise ValidationError(f"invalid repository index at {index_url}: {e}") from e

        if not isinstance(document, dict) or not isinstance(document.get("entries") or {}, dict):
            raise ValidationError(f"invalid repository index at {index_url}: missing entries")

        entries = document.get("entries") or {}
        for name, versions in entries.items():
            if not isinstance(versions or [], list) or not all(isinstance(e, dict) for e in versions or []):
                raise ValidationError(f"invalid repository index at {index_url}: malformed entries for chart {name!r}")
        self._entries = {str(name): list(versions or []) for name, versions in entries.items()}
        logger.debug(f"Loaded index of {self.url} with {len(self._entries)} charts")
        return self._entries

    def _chart_entries(self, name: str) -> List[Dict[str, Any]]:
        entries = self._load_index().get(name)
        if not entries:
            raise NotFoundError(f"chart {name!r} not found in {self.url}")
        return entries

    def _versions(self, name: str) -> List[str]:
        return [str(e.get("version", "")) for e in self._chart_entries(name) if e.get("version") is not None]

    def resolve_version(self, name: str, constraint: str) -> str:
        version = select_version(self._versions(name), constraint, chart=name)
        logger.debug(f"Resolved {name} {constraint or '(latest)'} to {version} in {self.url}")
        return version

    def _send_auth_to(self, archive_url: str) -> Optional[httpx.BasicAuth]:
        """Credentials go to the repository host, or everywhere with pass_credentials."""
        if self._auth is None:
            return None
        if self._reference.pass_credentials:
            return self._auth
        if urlparse(archive_url).netloc == urlparse(self.url).netloc:
            return self._auth
        return None

    def download(self, name: str, version: str) -> bytes:
        """Fetch the first archive URL listed for the version and verify its digest."""
        entry = next((e for e in self._chart_entries(name) if str(e.get("version")) == version), None)
        if entry is None:
            raise NotFoundError(f"chart {name!r} version {version} not found in {self.url}")

        urls = entry.get("urls") or []
        if not urls:
            raise NotFoundError(f"chart {name!r} version {version} has no download URL")
        archive_url = urljoin(self.url, str(urls[0]))

        response = self._get(archive_url, auth=self._send_auth_to(archive_url), what="chart archive")
        data = response.content

        expected = entry.get("digest")
        if expected:
            actual = hashlib.sha256(data).hexdigest()
            if actual != str(expected).removeprefix("sha256:"):
                raise TransientNetworkError(
                    f"digest mismatch for {archive_url}: expected {expected}, got {actual}"
                )

        logger.info(f"Downloaded {archive_url} ({len(data)} bytes)")
        return data

    def login(self, credential: Credential) -> None:
        return None

    def logout(self) -> None:
        return None

    def list_charts(self) -> List[str]:
        return sorted(self._load_index())

    def list_versions(self, name: str) -> List[str]:
        return sort_versions(self._versions(name))
