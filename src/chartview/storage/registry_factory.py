"""
Registry client construction with scoped credential storage.

Logging in to a registry needs somewhere to keep the credential. Instead of
touching the user's ~/.docker/config.json, every login-requiring client gets
a private temporary credential-store file. The scope that builds the client
owns the file and deletes it on every exit path.
"""
from __future__ import annotations

import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Set, Tuple

from ..errors import (
    AuthenticationError,
    ChartViewError,
    NotFoundError,
    TransientNetworkError,
)

__all__ = ["RegistryClient", "RegistryClientFactory", "map_registry_error"]

logger = logging.getLogger(__name__)

OrasClientBuilder = Callable[[bool], Any]


def map_registry_error(e: Exception, what: str) -> ChartViewError:
    """
    Map an oras-py / requests failure into the chartview error taxonomy.

    oras-py reports registry status codes in exception messages, so the
    mapping inspects the message the same way for every operation.
    """
    if isinstance(e, ChartViewError):
        return e
    message = str(e)
    lowered = message.lower()
    if "401" in message or "403" in message or "unauthorized" in lowered or "denied" in lowered:
        return AuthenticationError(f"{what}: authentication failed: {message}")
    if "404" in message or "not found" in lowered or "_unknown" in lowered:
        return NotFoundError(f"{what}: not found")
    return TransientNetworkError(f"{what}: {message}")


def _default_oras_client(insecure: bool) -> Any:
    try:
        import oras.client
    except ImportError:
        raise ImportError("oras-py package is required for OCI registry operations")
    return oras.client.OrasClient(insecure=insecure)


class RegistryClient:
    """
    Authenticated handle to OCI registries, backed by oras-py.

    Safe for concurrent use: login state is guarded by a lock, reads go
    straight to the underlying client.
    """

    def __init__(self, oras_client: Any, *, credentials_file: Optional[str] = None) -> None:
        self._oras = oras_client
        self._credentials_file = credentials_file
        self._lock = threading.Lock()
        self._logged_in: Set[str] = set()

    @property
    def credentials_file(self) -> Optional[str]:
        return self._credentials_file

    def login(self, host: str, username: str, password: str) -> None:
        """
        Log in to a registry host.

        oras-py records the login in the client's private credentials file.

        Raises:
            AuthenticationError: If the registry rejects the credential
            TransientNetworkError: If the registry cannot be reached
        """
        with self._lock:
            if not self._credentials_file:
                raise AuthenticationError(
                    "registry client was built without credential storage; login is not possible"
                )
            try:
                self._oras.login(
                    username=username,
                    password=password,
                    hostname=host,
                    config_path=self._credentials_file,
                )
            except Exception as e:
                mapped = map_registry_error(e, f"login to {host}")
                if isinstance(mapped, NotFoundError):
                    mapped = AuthenticationError(f"login to {host} rejected: {e}")
                raise mapped from e
            self._logged_in.add(host)
        logger.debug(f"Logged in to {host}")

    def logout(self, host: str) -> None:
        """Log out of a host. No-op if not logged in; errors are logged, not raised."""
        with self._lock:
            if host not in self._logged_in:
                return
            self._logged_in.discard(host)
            try:
                self._oras.logout(host)
            except Exception as e:
                logger.warning(f"Failed to log out of {host}: {e}")
                return
        logger.debug(f"Logged out of {host}")

    def is_logged_in(self, host: str) -> bool:
        with self._lock:
            return host in self._logged_in

    def get_tags(self, container: str) -> List[str]:
        """List tags of a repository ("host/path/name")."""
        try:
            tags = self._oras.get_tags(container)
        except Exception as e:
            raise map_registry_error(e, f"list tags of {container}") from e
        # Older oras-py releases return the raw tags/list document
        if isinstance(tags, dict):
            tags = tags.get("tags") or []
        return list(tags)

    def get_manifest(self, container: str) -> Dict[str, Any]:
        """Fetch the manifest for "host/path/name:tag"."""
        try:
            return self._oras.get_manifest(container)
        except Exception as e:
            raise map_registry_error(e, f"fetch manifest {container}") from e

    def get_blob(self, container: str, digest: str) -> bytes:
        """Fetch a blob of a repository by digest."""
        try:
            response = self._oras.get_blob(container, digest)
        except Exception as e:
            raise map_registry_error(e, f"fetch blob {digest}") from e
        status = getattr(response, "status_code", 200)
        if status >= 400:
            raise map_registry_error(
                RuntimeError(f"registry returned {status}"), f"fetch blob {digest}"
            )
        return response.content


class RegistryClientFactory:
    """
    Builds registry clients, materializing credential storage on demand.

    Args:
        insecure: Allow plain-HTTP registries
        client_builder: Creates the underlying oras client (injectable for tests)
        tmp_dir: Directory for temporary credential files (default: system temp)
    """

    def __init__(self, *, insecure: bool = False,
                 client_builder: Optional[OrasClientBuilder] = None,
                 tmp_dir: Optional[str] = None) -> None:
        self._insecure = insecure
        self._client_builder = client_builder or _default_oras_client
        self._tmp_dir = tmp_dir

    def build(self, login_required: bool, *, insecure: Optional[bool] = None) -> Tuple[RegistryClient, str]:
        """
        Build a registry client.

        Args:
            login_required: Whether the caller will log in with the client
            insecure: Per-source override of the factory default

        Returns:
            (client, credentials_file_path); the path is "" when no login is
            required. The caller must delete a non-empty path on every exit
            path (see release() and session()).

        Raises:
            TransientNetworkError: If the credential file cannot be created
        """
        path = ""
        if login_required:
            try:
                fd, path = tempfile.mkstemp(prefix="chartview-credentials-", suffix=".json", dir=self._tmp_dir)
                os.close(fd)
            except OSError as e:
                raise TransientNetworkError(f"failed to create temporary credentials file: {e}") from e

        try:
            oras_client = self._client_builder(self._insecure if insecure is None else insecure)
        except BaseException:
            if path:
                self.release(path)
            raise

        return RegistryClient(oras_client, credentials_file=path or None), path

    @staticmethod
    def release(path: str) -> None:
        """Delete a temporary credentials file; failures are logged, not raised."""
        if not path:
            return
        try:
            os.remove(path)
        except OSError as e:
            logger.warning(f"failed to delete temporary credentials file: {e}")

    @contextmanager
    def session(self, login_required: bool, *, insecure: Optional[bool] = None) -> Iterator[RegistryClient]:
        """Build a client and guarantee its credentials file is deleted on exit."""
        client, path = self.build(login_required, insecure=insecure)
        try:
            yield client
        finally:
            self.release(path)

