"""
Credential resolution for chart sources.

Selects exactly one authentication strategy per source reference, first
match wins:

1. A configured secret reference: decode the secret into a StaticCredential.
   Any failure is fatal and cloud auto-login is never attempted.
2. An OCI source with a cloud provider: auto-login. An unconfigured
   provider falls through to anonymous access; other failures are fatal.
3. Anonymous access.
"""
from __future__ import annotations

import logging
from typing import Dict, Optional

from .errors import (
    AuthenticationError,
    ChartViewError,
    ProviderUnconfigured,
    TransientNetworkError,
)
from .models import AnonymousCredential, Credential, SourceReference, StaticCredential
from .providers.cloud_login import LoginManager
from .storage.base import SecretStore

__all__ = ["CredentialResolver", "credential_from_secret"]

logger = logging.getLogger(__name__)

# Secret keys, with the kubernetes.io/tls style names accepted as fallbacks
_CERT_KEYS = ("certFile", "tls.crt")
_KEY_KEYS = ("keyFile", "tls.key")
_CA_KEYS = ("caFile", "ca.crt")


def _first(data: Dict[str, bytes], keys) -> Optional[bytes]:
    for key in keys:
        value = data.get(key)
        if value:
            return value
    return None


def _text(data: Dict[str, bytes], key: str) -> Optional[str]:
    value = data.get(key)
    if not value:
        return None
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError as e:
        raise AuthenticationError(f"secret field '{key}' is not valid UTF-8") from e


def credential_from_secret(data: Dict[str, bytes], *, secret_name: str = "") -> StaticCredential:
    """
    Decode secret data into a static credential.

    Args:
        data: Decoded secret data map
        secret_name: Secret name for error messages

    Returns:
        StaticCredential whose fields exactly match the secret

    Raises:
        AuthenticationError: If username/password or cert/key are only half set
    """
    username = _text(data, "username")
    password = _text(data, "password")
    if bool(username) != bool(password):
        raise AuthenticationError(
            f"invalid secret '{secret_name}': username and password must be set together"
        )

    cert = _first(data, _CERT_KEYS)
    key = _first(data, _KEY_KEYS)
    if bool(cert) != bool(key):
        raise AuthenticationError(
            f"invalid secret '{secret_name}': certFile and keyFile must be set together"
        )

    return StaticCredential(
        username=username,
        password=password,
        cert_pem=cert,
        key_pem=key,
        ca_pem=_first(data, _CA_KEYS),
    )


class CredentialResolver:
    """
    Decides which credential applies to a source reference.

    Args:
        secrets: Secret store used for secret references
        login: Cloud auto-login manager
    """

    def __init__(self, secrets: Optional[SecretStore], login: LoginManager) -> None:
        self._secrets = secrets
        self._login = login

    def resolve(self, reference: SourceReference) -> Credential:
        """
        Resolve the credential for a reference.

        Raises:
            AuthenticationError: If the secret is unreadable or login fails
            TransientNetworkError: If auto-login times out
        """
        if reference.secret_ref is not None:
            return self._from_secret(reference)

        if reference.wants_auto_login:
            try:
                credential = self._login.login(reference.url, reference.provider, reference.timeout_s)
            except ProviderUnconfigured as e:
                logger.debug(f"Auto-login not applicable for {reference.url}: {e}")
            except (AuthenticationError, TransientNetworkError):
                raise
            except ChartViewError as e:
                raise AuthenticationError(
                    f"failed to get credential from {reference.provider}: {e}"
                ) from e
            else:
                logger.info(f"Using {reference.provider} auto-login credential for {reference.url}")
                return credential

        return AnonymousCredential()

    def _from_secret(self, reference: SourceReference) -> StaticCredential:
        ref = reference.secret_ref
        if self._secrets is None:
            raise AuthenticationError(
                f"failed to get secret '{ref.namespace}/{ref.name}': no secret store configured"
            )
        try:
            data = self._secrets.get_secret(ref.name, ref.namespace)
        except ChartViewError as e:
            raise AuthenticationError(f"failed to get secret '{ref.namespace}/{ref.name}': {e}") from e

        credential = credential_from_secret(data, secret_name=f"{ref.namespace}/{ref.name}")
        logger.debug(f"Using credential from secret {ref.namespace}/{ref.name} for {reference.url}")
        return credential
