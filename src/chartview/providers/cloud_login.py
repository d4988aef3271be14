"""
Cloud-provider registry auto-login.

Each provider recognizes its registry hostnames and exchanges ambient cloud
identity (instance role, workload identity, application default credentials)
for a short-lived registry credential:

- aws: Amazon ECR via boto3 ecr.get_authorization_token
- azure: Azure Container Registry via azure-identity + ACR token exchange
- gcp: Artifact Registry / Container Registry via google-auth

A registry that the named provider does not serve is "unconfigured": the
manager raises ProviderUnconfigured and the caller continues anonymously.
"""
from __future__ import annotations

import base64
import logging
import re
from typing import List, Optional, Protocol, Sequence

import httpx

from ..deadline import call_with_timeout
from ..errors import AuthenticationError, ProviderUnconfigured, TransientNetworkError
from ..models import OCI_SCHEME, CloudCredential

__all__ = [
    "LoginProvider",
    "LoginManager",
    "AwsEcrLogin",
    "AzureAcrLogin",
    "GcpRegistryLogin",
    "default_login_providers",
    "registry_host",
]

logger = logging.getLogger(__name__)

_ECR_RE = re.compile(
    r"^(\d{12})\.dkr\.ecr(?:-fips)?\.([a-z0-9-]+)\.(?:amazonaws\.com(?:\.cn)?|sc2s\.sgov\.gov|c2s\.ic\.gov)$"
)
_ACR_RE = re.compile(r"^[a-z0-9]+\.azurecr\.(?:io|cn|de|us)$")
_GCP_RE = re.compile(r"^(?:[a-z0-9-]+\.)?gcr\.io$|^[a-z0-9-]+-docker\.pkg\.dev$")

# Username ACR expects alongside an exchanged refresh token
ACR_TOKEN_USERNAME = "00000000-0000-0000-0000-000000000000"
AZURE_MANAGEMENT_SCOPE = "https://management.azure.com/.default"
GCP_SCOPE = "https://www.googleapis.com/auth/cloud-platform"


def registry_host(url: str) -> str:
    """
    Extract the registry hostname from an OCI URL or reference.

    Examples:
        >>> registry_host("oci://123456789012.dkr.ecr.us-east-1.amazonaws.com/charts")
        '123456789012.dkr.ecr.us-east-1.amazonaws.com'
    """
    if url.startswith(OCI_SCHEME):
        url = url[len(OCI_SCHEME):]
    return url.split("/", 1)[0]


def _hostname(host: str) -> str:
    return host.split(":", 1)[0].lower()


class LoginProvider(Protocol):
    """Exchanges cloud identity for a registry credential."""

    name: str

    def matches(self, host: str) -> bool:
        """True if this provider serves the registry host."""
        ...

    def login(self, host: str, timeout_s: float) -> CloudCredential:
        """
        Obtain a registry credential.

        Raises:
            AuthenticationError: If identity is unavailable or rejected
            TransientNetworkError: If the identity endpoint cannot be reached
        """
        ...


class AwsEcrLogin:
    """Amazon ECR auto-login using the default boto3 credential chain."""

    name = "aws"

    def matches(self, host: str) -> bool:
        return bool(_ECR_RE.match(_hostname(host)))

    def login(self, host: str, timeout_s: float) -> CloudCredential:
        import boto3
        from botocore.config import Config
        from botocore.exceptions import (
            BotoCoreError,
            ClientError,
            ConnectTimeoutError,
            EndpointConnectionError,
            ReadTimeoutError,
        )

        match = _ECR_RE.match(_hostname(host))
        if not match:
            raise ProviderUnconfigured(f"{host} is not an ECR registry")
        account, region = match.group(1), match.group(2)

        config = Config(
            connect_timeout=timeout_s,
            read_timeout=timeout_s,
            retries={"total_max_attempts": 1},
        )
        try:
            client = boto3.client("ecr", region_name=region, config=config)
            response = client.get_authorization_token(registryIds=[account])
            token = response["authorizationData"][0]["authorizationToken"]
        except (EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError) as e:
            raise TransientNetworkError(f"ECR login for {host} failed: {e}") from e
        except (BotoCoreError, ClientError) as e:
            raise AuthenticationError(f"ECR login for {host} failed: {e}") from e
        except (KeyError, IndexError) as e:
            raise AuthenticationError(f"ECR returned no authorization data for {host}") from e

        try:
            username, password = base64.b64decode(token).decode().split(":", 1)
        except ValueError as e:
            raise AuthenticationError(f"malformed ECR authorization token for {host}") from e

        logger.debug(f"Obtained ECR credential for {host} (region {region})")
        return CloudCredential(provider=self.name, username=username, password=password)


class AzureAcrLogin:
    """Azure Container Registry auto-login via an AAD token exchange."""

    name = "azure"

    def __init__(self, http: Optional[httpx.Client] = None) -> None:
        self._http = http

    def matches(self, host: str) -> bool:
        return bool(_ACR_RE.match(_hostname(host)))

    def _aad_token(self) -> str:
        from azure.core.exceptions import AzureError
        from azure.identity import DefaultAzureCredential

        try:
            credential = DefaultAzureCredential()
            return credential.get_token(AZURE_MANAGEMENT_SCOPE).token
        except AzureError as e:
            raise AuthenticationError(f"Azure identity unavailable: {e}") from e

    def login(self, host: str, timeout_s: float) -> CloudCredential:
        if not self.matches(host):
            raise ProviderUnconfigured(f"{host} is not an ACR registry")

        aad_token = self._aad_token()
        http = self._http or httpx.Client(timeout=timeout_s)
        try:
            response = http.post(
                f"https://{host}/oauth2/exchange",
                data={
                    "grant_type": "access_token",
                    "service": host,
                    "access_token": aad_token,
                },
                timeout=timeout_s,
            )
            response.raise_for_status()
            refresh_token = response.json()["refresh_token"]
        except httpx.HTTPStatusError as e:
            raise AuthenticationError(
                f"ACR token exchange for {host} failed with {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise TransientNetworkError(f"ACR token exchange for {host} failed: {e}") from e
        except (KeyError, ValueError) as e:
            raise AuthenticationError(f"ACR token exchange for {host} returned no refresh token") from e
        finally:
            if self._http is None:
                http.close()

        logger.debug(f"Obtained ACR credential for {host}")
        return CloudCredential(provider=self.name, username=ACR_TOKEN_USERNAME, password=refresh_token)


class GcpRegistryLogin:
    """Artifact Registry / Container Registry auto-login via application default credentials."""

    name = "gcp"

    def matches(self, host: str) -> bool:
        return bool(_GCP_RE.match(_hostname(host)))

    def login(self, host: str, timeout_s: float) -> CloudCredential:
        if not self.matches(host):
            raise ProviderUnconfigured(f"{host} is not a GCP registry")

        import google.auth
        from google.auth.exceptions import GoogleAuthError, TransportError
        from google.auth.transport.requests import Request

        try:
            credentials, _ = google.auth.default(scopes=[GCP_SCOPE])
            credentials.refresh(Request())
        except TransportError as e:
            raise TransientNetworkError(f"GCP token refresh for {host} failed: {e}") from e
        except GoogleAuthError as e:
            raise AuthenticationError(f"GCP identity unavailable: {e}") from e

        logger.debug(f"Obtained GCP credential for {host}")
        return CloudCredential(provider=self.name, username="oauth2accesstoken", password=credentials.token)


def default_login_providers() -> List[LoginProvider]:
    """Fresh provider instances for AWS, Azure and GCP."""
    return [AwsEcrLogin(), AzureAcrLogin(), GcpRegistryLogin()]


class LoginManager:
    """
    Dispatches auto-login to the provider named by a source reference.

    Providers are passed in explicitly so tests can substitute fakes.
    """

    def __init__(self, providers: Sequence[LoginProvider]) -> None:
        self._providers = list(providers)

    def login(self, url: str, provider: str, timeout_s: float) -> CloudCredential:
        """
        Log in to the registry behind url using the named provider.

        Args:
            url: OCI repository URL
            provider: Provider tag ("aws", "azure", "gcp")
            timeout_s: Deadline for the whole exchange

        Raises:
            ProviderUnconfigured: If the provider is unknown or does not serve the host
            AuthenticationError: If login fails
            TransientNetworkError: On timeout or network failure
        """
        host = registry_host(url)
        for candidate in self._providers:
            if candidate.name != provider:
                continue
            if not candidate.matches(host):
                break
            logger.info(f"Attempting {provider} auto-login for {host}")
            return call_with_timeout(
                lambda: candidate.login(host, timeout_s),
                timeout_s,
                f"{provider} auto-login for {host}",
            )
        raise ProviderUnconfigured(f"provider '{provider}' is not configured for {host}")
