"""Settings models, compiled-in defaults, merge and profile decoding."""

from __future__ import annotations

import copy
import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar
from urllib.parse import quote

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict, SettingsError

from dinghy.errors import ConfigurationError, DecodeError

__all__ = [
    "Redis",
    "SQL",
    "Server",
    "Logging",
    "RepoConfig",
    "Settings",
    "new_default_settings",
    "configure_settings",
    "decode_profiles_to_settings",
    "load_profile",
    "load_settings",
]

logger = logging.getLogger(__name__)

DEFAULT_PARSER_FORMAT = "json"
_REDACTED = "********"

_M = TypeVar("_M", bound=BaseModel)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class Redis(BaseModel):
    """Connection descriptor for the Redis dependency cache."""

    base_url: str = ""
    password: str = ""


class SQL(BaseModel):
    """Connection descriptor for the SQL dependency store."""

    base_url: str = ""
    user: str = ""
    password: str = ""
    database_name: str = ""
    enabled: bool = False

    def dsn(self) -> str:
        """PostgreSQL connection string built from this section."""
        auth = quote(self.user, safe="")
        if self.password:
            auth += ":" + quote(self.password, safe="")
        host = f"{auth}@{self.base_url}" if auth else self.base_url
        return f"postgresql://{host}/{self.database_name}"


class Server(BaseModel):
    port: int = 0


class Logging(BaseModel):
    level: str = ""
    file: str = ""


class RepoConfig(BaseModel):
    """Branch binding for one repository of a source-control provider."""

    provider: str = ""  # "github" | "bitbucket" | "stash" ...
    repo: str = ""
    branch: str = ""


class Settings(BaseSettings):
    """Aggregate configuration of the process.

    Every field defaults to its empty value so that an override built from
    partial input only carries what was actually supplied.  Real defaults
    come from ``new_default_settings``.
    """

    model_config = SettingsConfigDict(
        env_prefix="DINGHY_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Templates
    template_org: str = ""
    template_repo: str = ""
    dinghy_filename: str = ""
    auto_lock_pipelines: str = ""  # string so that "false" can override "true"

    # Spinnaker
    spinnaker_api_url: str = ""
    spinnaker_ui_url: str = ""
    fiat_user: str = ""

    # Source control
    github_token: str = ""
    github_endpoint: str = ""
    stash_username: str = ""
    stash_token: str = ""
    stash_endpoint: str = ""

    parser_format: str = ""
    repo_config: list[RepoConfig] = Field(default_factory=list)

    redis: Redis = Field(default_factory=Redis)
    sql: SQL = Field(default_factory=SQL)
    server: Server = Field(default_factory=Server)
    logging: Logging = Field(default_factory=Logging)

    @classmethod
    def empty(cls) -> Settings:
        """All-empty settings, without reading the environment."""
        return cls.model_construct()

    def get_repo_config(self, provider: str, repo: str) -> RepoConfig | None:
        """Return the first entry bound to ``provider``/``repo``, or None."""
        for entry in self.repo_config:
            if entry.provider == provider and entry.repo == repo:
                return entry.model_copy()
        return None

    def redacted(self) -> dict[str, Any]:
        """Serialisable view with secrets masked, safe for logging."""
        data = self.model_dump()
        for section, key in (
            (None, "github_token"),
            (None, "stash_token"),
            ("redis", "password"),
            ("sql", "password"),
        ):
            holder = data[section] if section else data
            if holder.get(key):
                holder[key] = _REDACTED
        return data


def new_default_settings() -> Settings:
    """Build the compiled-in default configuration.

    Returns a new object on every call; callers may modify it freely.
    """
    return Settings.model_construct(
        template_org="armory",
        dinghy_filename="dinghyfile",
        auto_lock_pipelines="true",
        spinnaker_api_url="http://spin-gate:8084",
        spinnaker_ui_url="http://localhost:9000",
        github_endpoint="https://api.github.com",
        stash_endpoint="http://localhost:7990/rest/api/1.0",
        parser_format=DEFAULT_PARSER_FORMAT,
        redis=Redis(base_url="redis:6379"),
        server=Server(port=8081),
        logging=Logging(level="INFO"),
    )


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------


def _merge(defaults: _M, overrides: _M) -> _M:
    """Per-leaf merge: non-empty override values win, recursively."""
    update: dict[str, Any] = {}
    for name in type(defaults).model_fields:
        base = getattr(defaults, name)
        value = getattr(overrides, name)
        if isinstance(base, BaseModel) and isinstance(value, BaseModel):
            update[name] = _merge(base, value)
        elif value:
            update[name] = copy.deepcopy(value)
    return defaults.model_copy(update=update, deep=True)


def configure_settings(
    defaults: Settings,
    overrides: Settings | Mapping[str, Any],
) -> Settings:
    """Merge ``overrides`` onto ``defaults`` and return a new Settings.

    ``overrides`` may be an untyped profile mapping, in which case it is
    decoded first.  A mapping that does not decode raises
    ``ConfigurationError`` rather than being skipped.

    Neither input is modified.
    """
    if not isinstance(defaults, Settings):
        raise ConfigurationError(f"defaults must be Settings, got {type(defaults).__name__}")

    if isinstance(overrides, Mapping):
        decoded = Settings.empty()
        try:
            decode_profiles_to_settings(overrides, decoded)
        except DecodeError as exc:
            raise ConfigurationError(f"cannot apply overrides: {exc}") from exc
        overrides = decoded
    elif not isinstance(overrides, Settings):
        raise ConfigurationError(f"overrides must be Settings or a mapping, got {type(overrides).__name__}")

    merged = _merge(defaults, overrides)
    if not merged.parser_format:
        merged.parser_format = DEFAULT_PARSER_FORMAT
    return merged


# ---------------------------------------------------------------------------
# Profile decoding
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _Key:
    """Target of one recognised profile key."""

    attr: str
    kind: str  # "str" | "bool" | "int" | "section" | "repo_list"
    section: Mapping[str, _Key] = field(default_factory=dict)


def _keys(*entries: tuple[str, str, str]) -> dict[str, _Key]:
    return {profile_key.lower(): _Key(attr, kind) for profile_key, attr, kind in entries}


_REDIS_KEYS = _keys(
    ("baseUrl", "base_url", "str"),
    ("password", "password", "str"),
)

_SQL_KEYS = _keys(
    ("baseUrl", "base_url", "str"),
    ("user", "user", "str"),
    ("password", "password", "str"),
    ("databaseName", "database_name", "str"),
    ("enabled", "enabled", "bool"),
)

_SERVER_KEYS = _keys(("port", "port", "int"))

_LOGGING_KEYS = _keys(
    ("level", "level", "str"),
    ("file", "file", "str"),
)

_REPO_CONFIG_KEYS = _keys(
    ("provider", "provider", "str"),
    ("repo", "repo", "str"),
    ("branch", "branch", "str"),
)

_SETTINGS_KEYS: dict[str, _Key] = {
    **_keys(
        ("templateOrg", "template_org", "str"),
        ("templateRepo", "template_repo", "str"),
        ("dinghyFilename", "dinghy_filename", "str"),
        ("autoLockPipelines", "auto_lock_pipelines", "str"),
        ("spinnakerApiUrl", "spinnaker_api_url", "str"),
        ("spinnakerUiUrl", "spinnaker_ui_url", "str"),
        ("fiatUser", "fiat_user", "str"),
        ("githubToken", "github_token", "str"),
        ("githubEndpoint", "github_endpoint", "str"),
        ("stashUsername", "stash_username", "str"),
        ("stashToken", "stash_token", "str"),
        ("stashEndpoint", "stash_endpoint", "str"),
        ("parserFormat", "parser_format", "str"),
        ("repoConfig", "repo_config", "repo_list"),
    ),
    "redis": _Key("redis", "section", _REDIS_KEYS),
    "sql": _Key("sql", "section", _SQL_KEYS),
    "server": _Key("server", "section", _SERVER_KEYS),
    "logging": _Key("logging", "section", _LOGGING_KEYS),
}


def _normalise(key: str) -> str:
    # baseUrl, base_url, base-url and BASEURL all address the same field
    return key.replace("_", "").replace("-", "").lower()


def _check_scalar(value: Any, kind: str, path: str) -> Any:
    if kind == "str" and isinstance(value, str):
        return value
    if kind == "bool" and isinstance(value, bool):
        return value
    if kind == "int" and isinstance(value, int) and not isinstance(value, bool):
        return value
    raise DecodeError(path, kind, value)


def _decode_repo_configs(value: Any, path: str) -> list[RepoConfig]:
    if not isinstance(value, (list, tuple)):
        raise DecodeError(path, "list", value)
    entries: list[RepoConfig] = []
    for index, item in enumerate(value):
        item_path = f"{path}[{index}]"
        if not isinstance(item, Mapping):
            raise DecodeError(item_path, "mapping", item)
        entry = RepoConfig()
        _decode_section(item, entry, _REPO_CONFIG_KEYS, item_path)
        entries.append(entry)
    return entries


def _decode_section(
    data: Mapping[str, Any],
    target: BaseModel,
    schema: Mapping[str, _Key],
    path: str,
) -> None:
    for raw_key, value in data.items():
        key_path = f"{path}.{raw_key}" if path else str(raw_key)
        key = schema.get(_normalise(str(raw_key)))
        if key is None:
            logger.debug("Ignoring unrecognised profile key %s", key_path)
            continue
        if value is None:
            # An empty YAML/JSON node carries no value
            continue

        if key.kind == "section":
            if not isinstance(value, Mapping):
                raise DecodeError(key_path, "mapping", value)
            _decode_section(value, getattr(target, key.attr), key.section, key_path)
        elif key.kind == "repo_list":
            setattr(target, key.attr, _decode_repo_configs(value, key_path))
        else:
            setattr(target, key.attr, _check_scalar(value, key.kind, key_path))


def decode_profiles_to_settings(profile: Mapping[str, Any], target: Settings) -> None:
    """Decode an untyped profile mapping into ``target`` in place.

    Only keys present in ``profile`` are written; unrecognised keys are
    ignored.  Raises ``DecodeError`` on the first value whose type does not
    fit its field.  Fields decoded before the failure stay written.
    """
    if not isinstance(profile, Mapping):
        raise DecodeError("<profile>", "mapping", profile)
    _decode_section(profile, target, _SETTINGS_KEYS, "")


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_profile(path: str | Path) -> dict[str, Any]:
    """Read one JSON profile file into a mapping."""
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"cannot read profile {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"profile {path} must contain a JSON object")
    return data


def load_settings(profile_paths: Iterable[str | Path] = ()) -> Settings:
    """Resolve the process settings.

    Precedence, lowest first: compiled-in defaults, ``DINGHY_*``
    environment variables, then each profile file in order.  Missing
    profile files are skipped.
    """
    try:
        environment = Settings()
    except (ValidationError, SettingsError) as exc:
        raise ConfigurationError(f"invalid DINGHY_* environment: {exc}") from exc
    settings = configure_settings(new_default_settings(), environment)

    for raw_path in profile_paths:
        path = Path(raw_path).expanduser()
        if not path.is_file():
            logger.debug("Profile %s not found, skipping", path)
            continue
        try:
            decode_profiles_to_settings(load_profile(path), settings)
        except DecodeError as exc:
            raise ConfigurationError(f"invalid profile {path}: {exc}") from exc
        logger.debug("Applied profile %s", path)

    if not settings.parser_format:
        settings.parser_format = DEFAULT_PARSER_FORMAT

    logger.info("settings loaded: %s", json.dumps(settings.redacted()))
    return settings
