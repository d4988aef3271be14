# Chart repository adapters and the stores they read from

from .base import ChartRepository, SecretStore
from .index_repository import IndexChartRepository
from .oci_repository import OciChartRepository
from .registry_factory import RegistryClient, RegistryClientFactory

__all__ = [
    "ChartRepository",
    "SecretStore",
    "IndexChartRepository",
    "OciChartRepository",
    "RegistryClient",
    "RegistryClientFactory",
]
