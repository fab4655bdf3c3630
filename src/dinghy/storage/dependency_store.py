"""Dependency store contract, in-memory store and read-only adapter."""

from __future__ import annotations

import logging
from typing import Protocol

from dinghy.errors import NotFoundError

__all__ = [
    "DependencyStoreProtocol",
    "StoreClientProtocol",
    "InMemoryDependencyStore",
    "ReadOnlyDependencyStore",
]

logger = logging.getLogger(__name__)


class DependencyStoreProtocol(Protocol):
    """Capability shared by the mutable and read-only stores."""

    def set_deps(self, parent: str, deps: list[str]) -> None:
        """Record that ``parent`` depends on each of ``deps``."""
        ...

    def get_roots(self, url: str) -> list[str]:
        """Return the roots registered for ``url``; empty if none."""
        ...

    def set_raw_data(self, url: str, raw_data: str) -> None:
        """Store the raw payload of ``url``."""
        ...

    def get_raw_data(self, url: str) -> str:
        """Return the raw payload of ``url``. Raises NotFoundError."""
        ...

    def clear(self) -> None:
        """Drop everything held by the store."""
        ...


class StoreClientProtocol(Protocol):
    """Read queries a backing store client must answer."""

    def fetch_roots(self, url: str) -> list[str]: ...

    def fetch_raw_data(self, url: str) -> str: ...


# ── In-memory implementation (dev / tests) ──────────────


class InMemoryDependencyStore:
    """Mutable store kept in process memory, for dev and tests.

    ``get_roots`` returns direct parents only; it does not walk the graph.
    """

    def __init__(self) -> None:
        self._deps: dict[str, list[str]] = {}
        self._raw: dict[str, str] = {}

    def set_deps(self, parent: str, deps: list[str]) -> None:
        self._deps[parent] = list(dict.fromkeys(deps))

    def get_roots(self, url: str) -> list[str]:
        return [parent for parent, deps in self._deps.items() if url in deps]

    def set_raw_data(self, url: str, raw_data: str) -> None:
        self._raw[url] = raw_data

    def get_raw_data(self, url: str) -> str:
        try:
            return self._raw[url]
        except KeyError:
            raise NotFoundError(url) from None

    def clear(self) -> None:
        self._deps.clear()
        self._raw.clear()


# ── Read-only adapter ────────────────────────────────────


class ReadOnlyDependencyStore:
    """Read-only view over a store written by another process.

    Reads go to the client and its errors reach the caller unchanged.
    The mutating methods accept their arguments and do nothing, so callers
    can hold either store variant behind ``DependencyStoreProtocol``.
    """

    def __init__(self, client: StoreClientProtocol) -> None:
        self._client = client

    def set_deps(self, parent: str, deps: list[str]) -> None:
        logger.debug("read-only store: ignoring set_deps for %s", parent)

    def get_roots(self, url: str) -> list[str]:
        return self._client.fetch_roots(url)

    def set_raw_data(self, url: str, raw_data: str) -> None:
        logger.debug("read-only store: ignoring set_raw_data for %s", url)

    def get_raw_data(self, url: str) -> str:
        return self._client.fetch_raw_data(url)

    def clear(self) -> None:
        logger.debug("read-only store: ignoring clear")
