"""
Chart pipeline orchestration.

Ties the components together for one request:

    SourceRegistry -> CredentialResolver -> client session -> login ->
    resolve version -> ChartCache (download, verify, unpack) -> logout

Every repository session is scoped: logout and temporary credential file
removal happen on all exit paths.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

import httpx
import yaml

from .archive import load_archive
from .cache import ChartCache
from .credentials import CredentialResolver
from .errors import NotFoundError, ValidationError
from .hooks import ChartVerifier, NoopVerifier
from .models import (
    CachedChart,
    ChartFile,
    ChartRef,
    ChartSourceRef,
    Credential,
    PackageView,
    SourceReference,
)
from .sources import SourceRegistry
from .storage.base import ChartRepository
from .storage.index_repository import IndexChartRepository, build_http_client
from .storage.oci_repository import OciChartRepository
from .storage.registry_factory import RegistryClientFactory
from .storage.versions import is_pinned_version

__all__ = ["ChartService"]

logger = logging.getLogger(__name__)

HttpClientFactory = Callable[[SourceReference, Credential, str], httpx.Client]


class ChartService:
    """
    Resolves, fetches and caches charts from configured sources.

    Args:
        sources: Source registry for URL lookups
        resolver: Credential resolver
        factory: Registry client factory for OCI sources
        cache: Chart cache (a new one if omitted)
        http_client_factory: Builds the httpx client for index sources
        verifier: Archive verification hook
        user_agent: User-Agent for index repository requests
    """

    def __init__(self, sources: SourceRegistry, resolver: CredentialResolver,
                 factory: RegistryClientFactory, cache: Optional[ChartCache] = None, *,
                 http_client_factory: HttpClientFactory = build_http_client,
                 verifier: Optional[ChartVerifier] = None,
                 user_agent: str = "chartview/0.1.0") -> None:
        self._sources = sources
        self._resolver = resolver
        self._factory = factory
        self._cache = cache if cache is not None else ChartCache()
        self._http_client_factory = http_client_factory
        self._verifier = verifier or NoopVerifier()
        self._user_agent = user_agent

    @property
    def cache(self) -> ChartCache:
        return self._cache

    @property
    def sources(self) -> SourceRegistry:
        return self._sources

    @contextmanager
    def open_repository(self, reference: SourceReference) -> Iterator[ChartRepository]:
        """
        Open an authenticated repository session for a reference.

        Credentials are resolved first; an OCI session builds a registry
        client (with private credential storage when a login is needed) and
        logs in. On exit the session logs out and its credentials file is
        deleted, whether the body succeeded or not.

        Raises:
            AuthenticationError: If credentials cannot be obtained or are rejected
            TransientNetworkError: If login times out
        """
        credential = self._resolver.resolve(reference)

        if reference.is_oci:
            with self._factory.session(credential.requires_login, insecure=reference.insecure) as client:
                repo = OciChartRepository(reference, client)
                try:
                    repo.login(credential)
                    yield repo
                finally:
                    repo.logout()
            return

        http = self._http_client_factory(reference, credential, self._user_agent)
        try:
            yield IndexChartRepository(reference, credential, http)
        finally:
            http.close()

    def _fetch(self, repo: ChartRepository, reference: SourceReference, name: str, version: str):
        def fetch():
            archive = repo.download(name, version)
            self._verifier.verify(reference.url, name, version, archive)
            return load_archive(archive)
        return fetch

    def get_chart(self, url: str, name: str, constraint: str = "") -> CachedChart:
        """
        Resolve a chart version and return its (possibly cached) content.

        A pinned version already in the cache is served without contacting
        the repository or obtaining credentials.

        Args:
            url: Repository URL
            name: Chart name
            constraint: Exact version, semver range, or "" for latest

        Raises:
            ConfigurationError: Invalid reference or constraint
            AuthenticationError: Credentials missing or rejected
            NotFoundError: Chart or version does not exist
            TransientNetworkError: Upstream unreachable or timed out
        """
        chart = ChartRef(name=name, version=constraint)
        reference = self._sources.get(url)
        return self._get(reference, chart)

    def get_chart_for_source(self, ref: ChartSourceRef) -> CachedChart:
        """Like get_chart(), addressing the repository through a chart-source record."""
        reference = self._sources.get_for_source(ref)
        return self._get(reference, ChartRef(name=ref.name, version=ref.version))

    def _get(self, reference: SourceReference, chart: ChartRef) -> CachedChart:
        if is_pinned_version(chart.version):
            cached = self._cache.peek(reference.cache_scope, chart.name, chart.version)
            if cached is not None:
                return self._cache.get(reference.cache_scope, chart.name, chart.version, lambda: cached.files)

        with self.open_repository(reference) as repo:
            version = repo.resolve_version(chart.name, chart.version)
            return self._cache.get(
                reference.cache_scope, chart.name, version, self._fetch(repo, reference, chart.name, version)
            )

    def resolve_chart(self, url: str, name: str, constraint: str = "",
                      source: Optional[ChartSourceRef] = None) -> CachedChart:
        """Dispatch to get_chart_for_source() when a chart-source record is given, else get_chart()."""
        if source is not None:
            return self.get_chart_for_source(source)
        return self.get_chart(url, name, constraint)

    def get_file(self, url: str, name: str, constraint: str, path: str,
                 source: Optional[ChartSourceRef] = None) -> ChartFile:
        """
        Return one file of a chart.

        Raises:
            NotFoundError: If the chart does not contain the file
        """
        chart = self.resolve_chart(url, name, constraint, source)
        found = chart.file(path.lstrip("/"))
        if found is None:
            raise NotFoundError(f"file {path!r} not found in chart {name} {chart.version}")
        return found

    def list_files(self, url: str, name: str, constraint: str = "",
                   source: Optional[ChartSourceRef] = None) -> List[str]:
        """Sorted file names of a chart version."""
        return self.resolve_chart(url, name, constraint, source).file_names()

    def package_view(self, url: str, name: str, constraint: str = "",
                     source: Optional[ChartSourceRef] = None) -> PackageView:
        """
        Chart.yaml metadata and file list of a chart version.

        Raises:
            ValidationError: If Chart.yaml is not a YAML mapping
        """
        chart = self.resolve_chart(url, name, constraint, source)
        metadata = {}
        chart_yaml = chart.file("Chart.yaml")
        if chart_yaml is not None:
            try:
                metadata = yaml.safe_load(chart_yaml.data) or {}
            except yaml.YAMLError as e:
                raise ValidationError(f"invalid Chart.yaml in chart {name} {chart.version}: {e}") from e
            if not isinstance(metadata, dict):
                raise ValidationError(f"invalid Chart.yaml in chart {name} {chart.version}: not a mapping")
        return PackageView(name=name, version=chart.version, metadata=metadata, files=chart.file_names())

    def list_charts(self, url: str) -> List[str]:
        """Chart names of an index repository."""
        reference = self._sources.get(url)
        with self.open_repository(reference) as repo:
            return repo.list_charts()

    def list_versions(self, url: str, name: str) -> List[str]:
        """Versions of a chart, newest first."""
        ChartRef(name=name)
        reference = self._sources.get(url)
        with self.open_repository(reference) as repo:
            return repo.list_versions(name)
