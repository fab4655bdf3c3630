"""Build the read-only dependency store described by the settings."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from dinghy.storage.dependency_store import ReadOnlyDependencyStore, StoreClientProtocol

if TYPE_CHECKING:
    from dinghy.settings import Settings

__all__ = ["build_readonly_store"]

logger = logging.getLogger(__name__)


def build_readonly_store(settings: Settings) -> ReadOnlyDependencyStore:
    """SQL-backed when ``settings.sql.enabled``, Redis-backed otherwise."""
    if settings.sql.enabled:
        from dinghy.storage.postgres import SQLClient, get_connection

        client: StoreClientProtocol = SQLClient(get_connection(settings.sql.dsn(), autocommit=True))
        backend = "sql"
    else:
        from dinghy.storage.redis import RedisClient, get_redis_client

        client = RedisClient(get_redis_client(settings.redis.base_url, settings.redis.password))
        backend = "redis"

    logger.info("Read-only dependency store created (backend=%s)", backend)
    return ReadOnlyDependencyStore(client)
