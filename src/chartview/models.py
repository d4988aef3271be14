"""
Core data model for chartview.

Immutable value types flowing through the pipeline:
SourceReference -> Credential -> resolved version -> CachedChart.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Tuple, Union
from urllib.parse import urlparse

from .errors import ConfigurationError

__all__ = [
    "SourceKind",
    "Provider",
    "SecretRef",
    "SourceReference",
    "ChartRef",
    "ChartSourceRef",
    "AnonymousCredential",
    "StaticCredential",
    "CloudCredential",
    "Credential",
    "ChartFile",
    "CacheKey",
    "CachedChart",
    "PackageView",
    "normalize_url",
    "is_oci_url",
]

# Repository kinds: "default" is an index-based HTTP repository, "oci" a registry
SourceKind = Literal["default", "oci"]
KIND_INDEX: SourceKind = "default"
KIND_OCI: SourceKind = "oci"

# Cloud providers for registry auto-login
Provider = Literal["none", "generic", "aws", "azure", "gcp"]
PROVIDERS = ("none", "generic", "aws", "azure", "gcp")
CLOUD_PROVIDERS = ("aws", "azure", "gcp")

OCI_SCHEME = "oci://"

# Chart names as accepted by Helm
_CHART_NAME_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9._-]*$")


def is_oci_url(url: str) -> bool:
    """Return True if url uses the oci:// scheme."""
    return url.startswith(OCI_SCHEME)


def normalize_url(url: str) -> str:
    """
    Normalize a repository URL.

    OCI URLs lose any trailing slash; index URLs always end with one so that
    relative chart URLs in the index resolve against the repository root.

    Examples:
        >>> normalize_url("https://charts.example.com/stable")
        'https://charts.example.com/stable/'
        >>> normalize_url("oci://ghcr.io/org/charts/")
        'oci://ghcr.io/org/charts'
    """
    url = url.strip()
    if is_oci_url(url):
        return url.rstrip("/")
    if not url.endswith("/"):
        url = url + "/"
    return url


@dataclass(frozen=True)
class SecretRef:
    """Reference to a secret holding repository credentials."""
    name: str
    namespace: str = "default"

    def __post_init__(self) -> None:
        if not self.name:
            raise ConfigurationError("secret reference requires a name")


@dataclass(frozen=True)
class SourceReference:
    """
    A chart repository and the way to reach it.

    Invariants:
    - url is normalized (see normalize_url)
    - kind "oci" requires an oci:// URL; kind "default" requires http(s)
    - timeout_s > 0
    - immutable once resolution begins
    """
    url: str
    kind: SourceKind = KIND_INDEX
    secret_ref: Optional[SecretRef] = None
    provider: Provider = "generic"
    timeout_s: float = 60.0
    pass_credentials: bool = False
    insecure: bool = False

    def __post_init__(self) -> None:
        """Validate and normalize the reference."""
        if not self.url:
            raise ConfigurationError("source reference requires a url")

        object.__setattr__(self, "url", normalize_url(self.url))

        if self.kind == KIND_OCI:
            if not is_oci_url(self.url):
                raise ConfigurationError(f"invalid OCI registry URL: {self.url}")
        elif self.kind == KIND_INDEX:
            scheme = urlparse(self.url).scheme
            if scheme not in ("http", "https"):
                raise ConfigurationError(
                    f"unsupported scheme '{scheme}' for index repository {self.url}; expected http or https"
                )
        else:
            raise ConfigurationError(f"unknown repository kind: {self.kind}")

        if self.provider not in PROVIDERS:
            raise ConfigurationError(
                f"unknown provider '{self.provider}', expected one of: {', '.join(PROVIDERS)}"
            )

        if self.timeout_s <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout_s}")

    @classmethod
    def from_url(cls, url: str, *, timeout_s: float = 60.0) -> SourceReference:
        """
        Build a default reference for an unconfigured repository URL.

        The kind is inferred from the scheme; no secret, generic provider.
        """
        kind = KIND_OCI if is_oci_url(url.strip()) else KIND_INDEX
        return cls(url=url, kind=kind, timeout_s=timeout_s)

    @property
    def is_oci(self) -> bool:
        return self.kind == KIND_OCI

    @property
    def wants_auto_login(self) -> bool:
        """True if cloud auto-login applies when no secret is configured."""
        return self.is_oci and self.provider in CLOUD_PROVIDERS

    @property
    def cache_scope(self) -> str:
        """
        Cache namespace for charts fetched through this reference.

        Secret-backed references get a scope of their own so content obtained
        with one tenant's credentials is never served to another caller.
        """
        if self.secret_ref is None:
            return self.url
        return f"{self.url}#secret={self.secret_ref.namespace}/{self.secret_ref.name}"

    @property
    def registry_host(self) -> str:
        """Registry hostname (with port) of an OCI reference."""
        return self.url[len(OCI_SCHEME):].split("/", 1)[0]


@dataclass(frozen=True)
class ChartRef:
    """
    A chart within a repository.

    version is an exact version, a semver range, or "" for latest.
    """
    name: str
    version: str = ""

    def __post_init__(self) -> None:
        if not self.name or not _CHART_NAME_RE.match(self.name):
            raise ConfigurationError(f"invalid chart name: {self.name!r}")
        object.__setattr__(self, "version", self.version.strip())


@dataclass(frozen=True)
class ChartSourceRef:
    """
    A chart addressed through a chart-source record rather than a URL.

    Missing source kind and API group default to a Flux HelmRepository.
    """
    name: str
    version: str = ""
    source_name: str = ""
    source_namespace: str = "default"
    source_kind: str = ""
    source_api_group: str = ""

    def with_defaults(self) -> ChartSourceRef:
        api_group = self.source_api_group
        kind = self.source_kind
        if not api_group:
            api_group = "source.toolkit.fluxcd.io"
        if not kind:
            kind = "HelmRepository"
        elif kind in ("Legacy", "Local", "Embed"):
            api_group = "charts.x-helm.dev"
        return ChartSourceRef(
            name=self.name,
            version=self.version,
            source_name=self.source_name,
            source_namespace=self.source_namespace,
            source_kind=kind,
            source_api_group=api_group,
        )


# Credentials: exactly one variant is selected per reference


@dataclass(frozen=True)
class AnonymousCredential:
    """No authentication material."""

    @property
    def requires_login(self) -> bool:
        return False


@dataclass(frozen=True)
class StaticCredential:
    """
    Credential decoded from a secret.

    Username and password are both set or both absent; TLS material is PEM.
    """
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    cert_pem: Optional[bytes] = field(default=None, repr=False)
    key_pem: Optional[bytes] = field(default=None, repr=False)
    ca_pem: Optional[bytes] = field(default=None, repr=False)

    @property
    def requires_login(self) -> bool:
        return bool(self.username)

    @property
    def has_tls(self) -> bool:
        return bool(self.cert_pem or self.ca_pem)


@dataclass(frozen=True)
class CloudCredential:
    """Short-lived registry credential obtained through cloud auto-login."""
    provider: str
    username: str
    password: str = field(repr=False)

    @property
    def requires_login(self) -> bool:
        return True


Credential = Union[AnonymousCredential, StaticCredential, CloudCredential]


@dataclass(frozen=True)
class ChartFile:
    """One file of a chart archive, path relative to the chart root."""
    name: str
    data: bytes = field(repr=False)


CacheKey = Tuple[str, str, str]


@dataclass(frozen=True)
class CachedChart:
    """
    Fetched chart content.

    key is (repository cache scope, chart name, resolved version); files keep
    archive order. The scope is the repository URL, extended with the secret
    reference for secret-backed sources.
    """
    key: CacheKey
    files: Tuple[ChartFile, ...]
    fetched_at: float

    @property
    def version(self) -> str:
        return self.key[2]

    def file(self, name: str) -> Optional[ChartFile]:
        """Return the named file, or None if the chart does not contain it."""
        for f in self.files:
            if f.name == name:
                return f
        return None

    def file_names(self) -> list[str]:
        """Sorted file names."""
        return sorted(f.name for f in self.files)


@dataclass(frozen=True)
class PackageView:
    """Overview of one chart version: its Chart.yaml metadata and file list."""
    name: str
    version: str
    metadata: Dict[str, Any]
    files: List[str]
