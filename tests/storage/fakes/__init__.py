# Fake implementations for testing

from .fake_oras import FakeBlobResponse, FakeOrasClient
from .fake_secrets import FakeSecretStore

__all__ = ["FakeBlobResponse", "FakeOrasClient", "FakeSecretStore"]
