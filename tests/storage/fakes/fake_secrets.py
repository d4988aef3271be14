"""
Fake secret store for testing.
"""
from __future__ import annotations

from typing import Dict, List, Tuple

from chartview.errors import NotFoundError

__all__ = ["FakeSecretStore"]


class FakeSecretStore:
    """
    In-memory secret store keyed by (namespace, name).

    This is a test double; not for production use. Records every lookup.
    """

    def __init__(self) -> None:
        self._secrets: Dict[Tuple[str, str], Dict[str, bytes]] = {}
        self.calls: List[Tuple[str, str]] = []

    def put(self, name: str, namespace: str, data: Dict[str, bytes]) -> None:
        self._secrets[(namespace, name)] = dict(data)

    def get_secret(self, name: str, namespace: str) -> Dict[str, bytes]:
        self.calls.append((namespace, name))
        if (namespace, name) not in self._secrets:
            raise NotFoundError(f"secret {namespace}/{name} not found")
        return dict(self._secrets[(namespace, name)])
