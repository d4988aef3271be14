"""
Registry-based chart repository.

Charts live in an OCI registry as tagged artifacts: one repository per chart
under the source URL, one tag per version. Semver build metadata ("+") is
not valid in OCI tags, so charts are pushed with "_" in its place and the
mapping is reversed when listing.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List

from ..deadline import call_with_timeout
from ..errors import ConfigurationError, NotFoundError, ValidationError
from ..models import OCI_SCHEME, Credential, SourceReference
from .registry_factory import RegistryClient
from .versions import select_version, sort_versions

__all__ = ["OciChartRepository", "HELM_CHART_CONTENT", "HELM_CHART_CONTENT_LEGACY"]

logger = logging.getLogger(__name__)

HELM_CHART_CONTENT = "application/vnd.cncf.helm.chart.content.v1.tar+gzip"
HELM_CHART_CONTENT_LEGACY = "application/tar+gzip"


def _tag_to_version(tag: str) -> str:
    return tag.replace("_", "+")


def _version_to_tag(version: str) -> str:
    return version.replace("+", "_")


class OciChartRepository:
    """
    ChartRepository for OCI registries.

    Operations run through the shared RegistryClient and are bounded by the
    source reference timeout.
    """

    def __init__(self, reference: SourceReference, client: RegistryClient) -> None:
        if not reference.is_oci:
            raise ConfigurationError(f"not an OCI source: {reference.url}")
        self._reference = reference
        self._client = client
        self._host = reference.registry_host
        self._base = reference.url[len(OCI_SCHEME):]
        self._logged_in = False

    @property
    def url(self) -> str:
        return self._reference.url

    def _container(self, name: str, tag: str = "") -> str:
        container = f"{self._base}/{name}"
        return f"{container}:{tag}" if tag else container

    def _call(self, func, what: str):
        return call_with_timeout(func, self._reference.timeout_s, what)

    def _versions(self, name: str) -> List[str]:
        container = self._container(name)
        tags = self._call(lambda: self._client.get_tags(container), f"listing tags of {container}")
        return [_tag_to_version(t) for t in tags]

    def resolve_version(self, name: str, constraint: str) -> str:
        versions = self._versions(name)
        if not versions:
            raise NotFoundError(f"no tags found for chart {name!r} in {self.url}")
        version = select_version(versions, constraint, chart=name)
        logger.debug(f"Resolved {name} {constraint or '(latest)'} to {version} in {self.url}")
        return version

    def _chart_layer(self, manifest: Dict[str, Any], target: str) -> Dict[str, Any]:
        if not isinstance(manifest, dict) or not isinstance(manifest.get("layers") or [], list):
            raise ValidationError(f"invalid manifest for {target}")
        for layer in manifest.get("layers") or []:
            if not isinstance(layer, dict):
                raise ValidationError(f"invalid manifest for {target}: malformed layer")
            if layer.get("mediaType") in (HELM_CHART_CONTENT, HELM_CHART_CONTENT_LEGACY):
                return layer
        raise NotFoundError(f"{target} does not contain a chart layer")

    def download(self, name: str, version: str) -> bytes:
        """Pull the chart content layer of a tagged chart artifact."""
        target = self._container(name, _version_to_tag(version))
        manifest = self._call(lambda: self._client.get_manifest(target), f"fetching manifest {target}")
        layer = self._chart_layer(manifest, target)
        digest = layer.get("digest")
        if not digest:
            raise ValidationError(f"invalid manifest for {target}: chart layer has no digest")
        data = self._call(lambda: self._client.get_blob(target, digest), f"pulling {target}")
        logger.info(f"Pulled {target} ({len(data)} bytes)")
        return data

    def login(self, credential: Credential) -> None:
        """Log in to the registry when the credential carries a username."""
        if not credential.requires_login:
            return
        self._call(
            lambda: self._client.login(self._host, credential.username, credential.password),
            f"login to {self._host}",
        )
        self._logged_in = True

    def logout(self) -> None:
        """Idempotent; a no-op if login was never invoked."""
        if not self._logged_in:
            return
        self._logged_in = False
        self._client.logout(self._host)

    def list_charts(self) -> List[str]:
        raise ConfigurationError(f"listing charts is not supported for OCI registries ({self.url})")

    def list_versions(self, name: str) -> List[str]:
        return sort_versions(self._versions(name))
