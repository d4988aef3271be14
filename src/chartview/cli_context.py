"""
CLI Context for managing application dependencies.

Wires settings, stores and the chart service once per CLI invocation,
avoiding global state and enabling proper dependency injection.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .cache import ChartCache
from .credentials import CredentialResolver
from .hooks import LoggingEventRecorder
from .providers import LoginManager, default_login_providers
from .service import ChartService
from .settings import Settings, create_settings_from_env
from .sources import SourceRegistry
from .storage.registry_factory import RegistryClientFactory

logger = logging.getLogger(__name__)


def build_service(settings: Settings) -> ChartService:
    """
    Construct the chart service described by settings.

    Kubernetes secret and HelmRepository stores are only created when
    kube_enabled is set; without them secret references fail with an
    AuthenticationError.
    """
    secrets = None
    records = None
    if settings.kube_enabled:
        from .storage.kubernetes import KubernetesClient, KubernetesSecretStore, KubernetesSourceStore

        client = KubernetesClient(context=settings.kube_context)
        secrets = KubernetesSecretStore(client)
        records = KubernetesSourceStore(client, default_timeout_s=settings.default_timeout_s)

    if settings.sources_file:
        sources = SourceRegistry.from_file(
            settings.sources_file, default_timeout_s=settings.default_timeout_s, records=records
        )
    else:
        sources = SourceRegistry(default_timeout_s=settings.default_timeout_s, records=records)

    return ChartService(
        sources=sources,
        resolver=CredentialResolver(secrets, LoginManager(default_login_providers())),
        factory=RegistryClientFactory(),
        cache=ChartCache(events=LoggingEventRecorder()),
        user_agent=settings.user_agent,
    )


@dataclass
class CLIContext:
    """
    Shared context for CLI commands.

    Holds settings and lazily builds the chart service on first access, so
    commands that fail argument validation never touch the environment.
    """
    settings: Settings
    _service: Optional[ChartService] = None

    @classmethod
    def from_env(cls) -> CLIContext:
        """Create CLI context from environment variables."""
        return cls(settings=create_settings_from_env())

    @property
    def service(self) -> ChartService:
        if self._service is None:
            self._service = build_service(self.settings)
        return self._service
