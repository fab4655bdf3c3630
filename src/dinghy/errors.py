"""Typed errors raised at the settings and storage boundaries."""

from __future__ import annotations

from typing import Any

__all__ = ["DinghyError", "ConfigurationError", "DecodeError", "NotFoundError"]


class DinghyError(Exception):
    """Base class for all dinghy errors."""


class ConfigurationError(DinghyError):
    """Settings could not be merged or loaded.

    Raised by ``configure_settings`` when an override cannot be applied and
    by ``load_settings`` when a profile file is unreadable.
    """


class DecodeError(DinghyError):
    """An untyped profile value does not fit its target field.

    Example:
        >>> err = DecodeError("redis", "mapping", "localhost")
        >>> str(err)
        "redis: expected mapping, got str ('localhost')"
    """

    def __init__(self, path: str, expected: str, value: Any) -> None:
        self.path = path
        self.expected = expected
        self.value = value
        super().__init__(f"{path}: expected {expected}, got {type(value).__name__} ({value!r})")


class NotFoundError(DinghyError):
    """No raw data is stored for the requested URL."""

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"no raw data stored for {url}")
