"""Root pytest configuration for chartview tests."""
import pytest

from chartview.cache import ChartCache
from chartview.credentials import CredentialResolver
from chartview.providers import LoginManager
from chartview.service import ChartService
from chartview.settings import Settings
from chartview.sources import SourceRegistry
from chartview.storage.registry_factory import RegistryClientFactory

from .helpers.charts import simple_chart
from .storage.fakes import FakeOrasClient, FakeSecretStore


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (requires network access)"
    )


@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    """Keep tests independent of the caller's chartview environment."""
    for key in (
        "CHARTVIEW_HOST", "CHARTVIEW_PORT", "CHARTVIEW_LOG_LEVEL", "CHARTVIEW_TIMEOUT",
        "CHARTVIEW_USER_AGENT", "CHARTVIEW_SOURCES_FILE", "CHARTVIEW_KUBE_ENABLED",
        "CHARTVIEW_KUBE_CONTEXT", "CHARTVIEW_PINNED_MAX_AGE", "CHARTVIEW_FLOATING_MAX_AGE",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def settings():
    """Standard test settings."""
    return Settings(default_timeout_s=5.0)


@pytest.fixture
def secrets():
    """Standard fake secret store."""
    return FakeSecretStore()


@pytest.fixture
def oras():
    """Fake registry seeded with podinfo 6.4.0, 6.5.0 and 7.0.0-rc.1."""
    client = FakeOrasClient()
    for version in ("6.4.0", "6.5.0", "7.0.0-rc.1"):
        client.push_chart("ghcr.io/stefanprodan/charts/podinfo", version, simple_chart("podinfo", version))
    return client


@pytest.fixture
def tmp_credentials_dir(tmp_path):
    """Directory receiving temporary credentials files."""
    path = tmp_path / "credentials"
    path.mkdir()
    return path


@pytest.fixture
def factory(oras, tmp_credentials_dir):
    """Registry client factory handing out the fake oras client."""
    return RegistryClientFactory(client_builder=lambda insecure: oras, tmp_dir=str(tmp_credentials_dir))


@pytest.fixture
def service(secrets, factory):
    """Chart service wired with fakes and no cloud providers."""
    return ChartService(
        sources=SourceRegistry(default_timeout_s=5.0),
        resolver=CredentialResolver(secrets, LoginManager([])),
        factory=factory,
        cache=ChartCache(),
    )
