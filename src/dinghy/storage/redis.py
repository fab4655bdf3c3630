"""Redis connection management and the Redis store client."""

from __future__ import annotations

from typing import Any

import redis

from dinghy.errors import NotFoundError

__all__ = ["RedisClient", "get_redis_client", "roots_key", "raw_data_key"]

KEY_PREFIX = "dinghy"


def roots_key(url: str) -> str:
    return f"{KEY_PREFIX}:roots:{url}"


def raw_data_key(url: str) -> str:
    return f"{KEY_PREFIX}:rawdata:{url}"


def get_redis_client(
    url: str = "redis://localhost:6379/0",
    password: str = "",
    **options: Any,
) -> redis.Redis:  # type: ignore[type-arg]
    """Create a Redis client.

    ``url`` may omit the scheme (``redis:6379``), as profile files usually do.
    """
    if "://" not in url:
        url = f"redis://{url}"
    return redis.Redis.from_url(url, password=password or None, decode_responses=True, **options)


class RedisClient:
    """Answers the two read queries of the dependency store in Redis.

    Roots of a URL live in a list, raw payloads in plain string keys.
    Connection errors are not caught here.
    """

    def __init__(self, client: redis.Redis) -> None:  # type: ignore[type-arg]
        self._client = client

    def fetch_roots(self, url: str) -> list[str]:
        return list(self._client.lrange(roots_key(url), 0, -1))

    def fetch_raw_data(self, url: str) -> str:
        raw = self._client.get(raw_data_key(url))
        if raw is None:
            raise NotFoundError(url)
        return raw  # type: ignore[no-any-return]

    def close(self) -> None:
        self._client.close()
