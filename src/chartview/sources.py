"""
Chart-source configuration records.

A SourceRegistry answers "how do I reach this repository URL?" with a
SourceReference. Records come from a YAML sources file, from Kubernetes
HelmRepository objects, or both; URLs without a record get defaults.

Sources file format:

    sources:
      - url: oci://123456789012.dkr.ecr.us-east-1.amazonaws.com/charts
        type: oci
        provider: aws
      - url: https://charts.example.com/private
        secretRef: {name: repo-auth, namespace: charts}
        timeout: 30s
        passCredentials: true
"""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import ConfigurationError
from .models import PROVIDERS, ChartSourceRef, SecretRef, SourceReference, normalize_url
from .storage.kubernetes import KubernetesSourceStore, parse_duration

__all__ = ["SecretRefConfig", "SourceConfig", "SourcesFile", "SourceRegistry"]

logger = logging.getLogger(__name__)


class SecretRefConfig(BaseModel):
    """Secret reference as written in the sources file."""
    name: str = Field(..., description="Secret name")
    namespace: str = Field(default="default", description="Secret namespace")


class SourceConfig(BaseModel):
    """One chart source from the sources file."""
    model_config = ConfigDict(populate_by_name=True)

    url: str = Field(..., description="Repository URL (http(s):// or oci://)")
    type: Optional[Literal["default", "oci"]] = Field(
        default=None, description="Repository kind; inferred from the URL when omitted"
    )
    secret_ref: Optional[SecretRefConfig] = Field(
        default=None, alias="secretRef", description="Secret holding credentials"
    )
    provider: str = Field(default="generic", description="Cloud provider for registry auto-login")
    timeout: Optional[Union[str, float]] = Field(
        default=None, description="Timeout as seconds or a duration such as '30s'"
    )
    pass_credentials: bool = Field(
        default=False, alias="passCredentials", description="Send credentials to other hosts"
    )
    insecure: bool = Field(default=False, description="Allow plain HTTP / skip TLS verification")

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v):
        if v not in PROVIDERS:
            raise ValueError(f"unknown provider '{v}', expected one of: {', '.join(PROVIDERS)}")
        return v

    def to_reference(self, default_timeout_s: float) -> SourceReference:
        """Build the validated SourceReference for this record."""
        timeout_s = default_timeout_s
        if isinstance(self.timeout, str):
            timeout_s = parse_duration(self.timeout)
        elif self.timeout is not None:
            timeout_s = float(self.timeout)

        kind = self.type or ("oci" if self.url.strip().startswith("oci://") else "default")
        secret_ref = None
        if self.secret_ref is not None:
            secret_ref = SecretRef(name=self.secret_ref.name, namespace=self.secret_ref.namespace)

        return SourceReference(
            url=self.url,
            kind=kind,
            secret_ref=secret_ref,
            provider=self.provider,
            timeout_s=timeout_s,
            pass_credentials=self.pass_credentials,
            insecure=self.insecure,
        )


class SourcesFile(BaseModel):
    """Top-level sources file document."""
    sources: List[SourceConfig] = Field(default_factory=list, description="Chart sources")

    @classmethod
    def from_yaml_file(cls, path: Path) -> SourcesFile:
        """Load a sources file."""
        import yaml

        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Sources file not found: {path}")

        with open(path, "r") as f:
            data = yaml.safe_load(f)

        return cls.model_validate(data or {})


class SourceRegistry:
    """
    Maps repository URLs to source references.

    Args:
        sources: Initial references
        default_timeout_s: Timeout for URLs without a record
        records: HelmRepository store for chart-source lookups (optional)
    """

    def __init__(self, sources: Iterable[SourceReference] = (), *,
                 default_timeout_s: float = 60.0,
                 records: Optional[KubernetesSourceStore] = None) -> None:
        self._default_timeout_s = default_timeout_s
        self._records = records
        self._lock = threading.Lock()
        self._sources: Dict[str, SourceReference] = {}
        for reference in sources:
            self.register(reference)

    @classmethod
    def from_file(cls, path: Path, *, default_timeout_s: float = 60.0,
                  records: Optional[KubernetesSourceStore] = None) -> SourceRegistry:
        """
        Build a registry from a YAML sources file.

        Raises:
            ConfigurationError: If the file is missing or invalid
        """
        from pydantic import ValidationError as PydanticValidationError

        try:
            document = SourcesFile.from_yaml_file(path)
        except FileNotFoundError as e:
            raise ConfigurationError(str(e)) from e
        except PydanticValidationError as e:
            raise ConfigurationError(f"invalid sources file {path}: {e}") from e

        references = [s.to_reference(default_timeout_s) for s in document.sources]
        logger.info(f"Loaded {len(references)} chart sources from {path}")
        return cls(references, default_timeout_s=default_timeout_s, records=records)

    def register(self, reference: SourceReference) -> None:
        """Add or replace the record for a reference's URL."""
        with self._lock:
            self._sources[reference.url] = reference

    def get(self, url: str) -> SourceReference:
        """
        Return the reference for a URL, or defaults for an unknown URL.

        Raises:
            ConfigurationError: If the URL is empty or unsupported
        """
        if not url or not url.strip():
            raise ConfigurationError("repository url is required")
        with self._lock:
            reference = self._sources.get(normalize_url(url))
        if reference is not None:
            return reference
        return SourceReference.from_url(url, timeout_s=self._default_timeout_s)

    def get_for_source(self, ref: ChartSourceRef) -> SourceReference:
        """
        Resolve a chart addressed through a chart-source record.

        The reference is returned, never registered: its secret belongs to the
        record's namespace and must not leak into plain URL lookups.

        Raises:
            ConfigurationError: If no record store is configured or the kind is unsupported
            NotFoundError: If the record does not exist
        """
        ref = ref.with_defaults()
        if ref.source_kind != "HelmRepository":
            raise ConfigurationError(
                f"unsupported chart source kind {ref.source_api_group}/{ref.source_kind}"
            )
        if self._records is None:
            raise ConfigurationError("chart-source records require Kubernetes access")
        return self._records.get_helm_repository(ref.source_name, ref.source_namespace)

    def urls(self, namespace: Optional[str] = None) -> List[str]:
        """
        Sorted URLs of known repositories.

        With a namespace and a record store, the URLs of that namespace's
        HelmRepository records are included.
        """
        with self._lock:
            known = set(self._sources)
        if namespace and self._records is not None:
            known.update(r.url for r in self._records.list_helm_repositories(namespace))
        return sorted(known)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sources)
