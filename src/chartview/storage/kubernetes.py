"""
Kubernetes-backed secret and chart-source stores.

Secrets hold repository credentials; Flux HelmRepository objects
(source.toolkit.fluxcd.io/v1beta2) describe chart sources. Both are read-only.
"""
from __future__ import annotations

import base64
import logging
import re
from typing import Any, Dict, List, Optional

from ..errors import ConfigurationError, NotFoundError, TransientNetworkError
from ..models import SecretRef, SourceReference

__all__ = [
    "KubernetesClient",
    "KubernetesSecretStore",
    "KubernetesSourceStore",
    "source_from_helm_repository",
    "parse_duration",
]

logger = logging.getLogger(__name__)

HELM_REPOSITORY_GROUP = "source.toolkit.fluxcd.io"
HELM_REPOSITORY_VERSION = "v1beta2"
HELM_REPOSITORY_PLURAL = "helmrepositories"

_DURATION_RE = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_DURATION_UNITS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}


def parse_duration(value: str) -> float:
    """
    Parse a Kubernetes duration ("60s", "1m30s", "1h") into seconds.

    Raises:
        ConfigurationError: If the value is not a valid duration
    """
    value = value.strip()
    pos = 0
    total = 0.0
    for match in _DURATION_RE.finditer(value):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if not value or pos != len(value):
        raise ConfigurationError(f"invalid duration: {value!r}")
    return total


def source_from_helm_repository(obj: Dict[str, Any], *, default_timeout_s: float = 60.0) -> SourceReference:
    """
    Convert a HelmRepository object into a SourceReference.

    Raises:
        ConfigurationError: If the object is missing required fields
    """
    metadata = obj.get("metadata") or {}
    spec = obj.get("spec") or {}
    url = spec.get("url")
    if not url:
        raise ConfigurationError(
            f"HelmRepository {metadata.get('namespace')}/{metadata.get('name')} has no spec.url"
        )

    secret_ref = None
    if (spec.get("secretRef") or {}).get("name"):
        secret_ref = SecretRef(
            name=spec["secretRef"]["name"],
            namespace=metadata.get("namespace") or "default",
        )

    timeout_s = default_timeout_s
    if spec.get("timeout"):
        timeout_s = parse_duration(str(spec["timeout"]))

    return SourceReference(
        url=url,
        kind=spec.get("type") or "default",
        secret_ref=secret_ref,
        provider=spec.get("provider") or "generic",
        timeout_s=timeout_s,
        pass_credentials=bool(spec.get("passCredentials", False)),
        insecure=bool(spec.get("insecure", False)),
    )


class KubernetesClient:
    """Thin lazy wrapper around the Kubernetes Python client."""

    def __init__(self, context: Optional[str] = None):
        self.context = context
        self._api_client = None
        self._core_v1 = None
        self._custom = None

    def _load_config(self):
        from kubernetes import client, config

        if self._api_client is not None:
            return self._api_client
        try:
            cfg = client.Configuration()
            config.load_kube_config(context=self.context, client_configuration=cfg)
            # Prevent indefinite hangs on unreachable clusters
            cfg.retries = 1
            self._api_client = client.ApiClient(configuration=cfg)
        except config.ConfigException:
            config.load_incluster_config()
            self._api_client = client.ApiClient()
        return self._api_client

    @property
    def core_v1(self):
        from kubernetes import client

        if self._core_v1 is None:
            self._core_v1 = client.CoreV1Api(api_client=self._load_config())
        return self._core_v1

    @property
    def custom(self):
        from kubernetes import client

        if self._custom is None:
            self._custom = client.CustomObjectsApi(api_client=self._load_config())
        return self._custom


def _map_api_error(e: Exception, what: str) -> Exception:
    status = getattr(e, "status", None)
    if status == 404:
        return NotFoundError(f"{what} not found")
    return TransientNetworkError(f"failed to read {what}: {e}")


class KubernetesSecretStore:
    """SecretStore reading core/v1 Secrets."""

    def __init__(self, client: KubernetesClient) -> None:
        self._client = client

    def get_secret(self, name: str, namespace: str) -> Dict[str, bytes]:
        from kubernetes.client import ApiException

        try:
            secret = self._client.core_v1.read_namespaced_secret(name, namespace)
        except ApiException as e:
            raise _map_api_error(e, f"secret {namespace}/{name}") from e
        except OSError as e:
            raise TransientNetworkError(f"failed to read secret {namespace}/{name}: {e}") from e

        data = {}
        for key, value in (secret.data or {}).items():
            data[key] = base64.b64decode(value) if value else b""
        return data


class KubernetesSourceStore:
    """Reads Flux HelmRepository objects as chart-source configuration records."""

    def __init__(self, client: KubernetesClient, *, default_timeout_s: float = 60.0) -> None:
        self._client = client
        self._default_timeout_s = default_timeout_s

    def get_helm_repository(self, name: str, namespace: str) -> SourceReference:
        from kubernetes.client import ApiException

        try:
            obj = self._client.custom.get_namespaced_custom_object(
                HELM_REPOSITORY_GROUP, HELM_REPOSITORY_VERSION, namespace, HELM_REPOSITORY_PLURAL, name
            )
        except ApiException as e:
            raise _map_api_error(e, f"HelmRepository {namespace}/{name}") from e
        except OSError as e:
            raise TransientNetworkError(f"failed to read HelmRepository {namespace}/{name}: {e}") from e
        return source_from_helm_repository(obj, default_timeout_s=self._default_timeout_s)

    def list_helm_repositories(self, namespace: str) -> List[SourceReference]:
        from kubernetes.client import ApiException

        try:
            result = self._client.custom.list_namespaced_custom_object(
                HELM_REPOSITORY_GROUP, HELM_REPOSITORY_VERSION, namespace, HELM_REPOSITORY_PLURAL
            )
        except ApiException as e:
            raise _map_api_error(e, f"HelmRepositories in {namespace}") from e

        sources = []
        for item in result.get("items") or []:
            try:
                sources.append(source_from_helm_repository(item, default_timeout_s=self._default_timeout_s))
            except ConfigurationError as e:
                logger.warning(f"Skipping HelmRepository: {e}")
        return sources
