"""Tests for decoding untyped profile mappings into Settings."""

from __future__ import annotations

from typing import Any

import pytest

from dinghy.errors import DecodeError
from dinghy.settings import (
    SQL,
    Logging,
    Redis,
    RepoConfig,
    Server,
    Settings,
    decode_profiles_to_settings,
    new_default_settings,
)


class TestDecodeProfilesToSettings:
    def test_happy_path(self) -> None:
        decoded = Settings.empty()
        decode_profiles_to_settings({"redis": {"baseUrl": "12345"}}, decoded)
        assert decoded == Settings.model_construct(redis=Redis(base_url="12345"))

    def test_partial_decode_preserves_untouched_fields(self) -> None:
        target = Settings(redis=Redis(password="P"), github_token="keep")
        decode_profiles_to_settings({"redis": {"baseUrl": "X"}}, target)
        assert target.redis == Redis(base_url="X", password="P")
        assert target.github_token == "keep"

    def test_full_profile(self) -> None:
        profile: dict[str, Any] = {
            "templateOrg": "acme",
            "templateRepo": "dinghy-templates",
            "dinghyFilename": "module.json",
            "autoLockPipelines": "false",
            "spinnakerApiUrl": "http://gate:8084",
            "spinnakerUiUrl": "http://deck:9000",
            "fiatUser": "svc",
            "githubToken": "gh",
            "githubEndpoint": "https://ghe.example.com/api/v3",
            "stashUsername": "u",
            "stashToken": "st",
            "stashEndpoint": "http://stash:7990",
            "parserFormat": "hcl",
            "repoConfig": [{"provider": "github", "repo": "r", "branch": "b"}],
            "redis": {"baseUrl": "cache:6379", "password": "pw"},
            "sql": {
                "baseUrl": "db:5432",
                "user": "dinghy",
                "password": "sqlpw",
                "databaseName": "dinghy",
                "enabled": True,
            },
            "server": {"port": 9090},
            "logging": {"level": "DEBUG", "file": "/var/log/dinghy.log"},
        }
        target = Settings.empty()
        decode_profiles_to_settings(profile, target)

        assert target.template_org == "acme"
        assert target.template_repo == "dinghy-templates"
        assert target.dinghy_filename == "module.json"
        assert target.auto_lock_pipelines == "false"
        assert target.spinnaker_api_url == "http://gate:8084"
        assert target.spinnaker_ui_url == "http://deck:9000"
        assert target.fiat_user == "svc"
        assert target.github_token == "gh"
        assert target.github_endpoint == "https://ghe.example.com/api/v3"
        assert target.stash_username == "u"
        assert target.stash_token == "st"
        assert target.stash_endpoint == "http://stash:7990"
        assert target.parser_format == "hcl"
        assert target.repo_config == [RepoConfig(provider="github", repo="r", branch="b")]
        assert target.redis == Redis(base_url="cache:6379", password="pw")
        assert target.sql == SQL(
            base_url="db:5432",
            user="dinghy",
            password="sqlpw",
            database_name="dinghy",
            enabled=True,
        )
        assert target.server == Server(port=9090)
        assert target.logging == Logging(level="DEBUG", file="/var/log/dinghy.log")

    def test_keys_match_case_insensitively(self) -> None:
        target = Settings.empty()
        decode_profiles_to_settings(
            {"REDIS": {"base_url": "a:1", "PASSWORD": "pw"}, "GitHubToken": "t", "parser-format": "yaml"},
            target,
        )
        assert target.redis == Redis(base_url="a:1", password="pw")
        assert target.github_token == "t"
        assert target.parser_format == "yaml"

    def test_unrecognised_keys_ignored(self) -> None:
        target = new_default_settings()
        decode_profiles_to_settings(
            {"orca": {"baseUrl": "http://orca"}, "redis": {"unknown": 1}, "githubToken": "t"},
            target,
        )
        expected = new_default_settings()
        expected.github_token = "t"
        assert target == expected

    def test_none_values_are_skipped(self) -> None:
        target = new_default_settings()
        decode_profiles_to_settings({"redis": None, "githubEndpoint": None}, target)
        assert target == new_default_settings()

    def test_empty_string_is_written(self) -> None:
        target = new_default_settings()
        decode_profiles_to_settings({"templateOrg": ""}, target)
        assert target.template_org == ""

    def test_repo_config_replaces_target_list(self) -> None:
        target = Settings(repo_config=[RepoConfig(provider="github", repo="old", branch="b")])
        decode_profiles_to_settings(
            {"repoConfig": [{"provider": "stash", "repo": "new"}]},
            target,
        )
        assert target.repo_config == [RepoConfig(provider="stash", repo="new", branch="")]

    def test_empty_profile_is_noop(self) -> None:
        target = new_default_settings()
        decode_profiles_to_settings({}, target)
        assert target == new_default_settings()


class TestDecodeErrors:
    @pytest.mark.parametrize(
        ("profile", "path", "expected"),
        [
            ({"redis": "localhost"}, "redis", "mapping"),
            ({"githubToken": 12345}, "githubToken", "str"),
            ({"server": {"port": "8081"}}, "server.port", "int"),
            ({"server": {"port": True}}, "server.port", "int"),
            ({"sql": {"enabled": "yes"}}, "sql.enabled", "bool"),
            ({"repoConfig": {"provider": "github"}}, "repoConfig", "list"),
            ({"repoConfig": [{"provider": "github"}, "x"]}, "repoConfig[1]", "mapping"),
            ({"repoConfig": [{"branch": 7}]}, "repoConfig[0].branch", "str"),
        ],
    )
    def test_type_mismatch(self, profile: dict[str, Any], path: str, expected: str) -> None:
        with pytest.raises(DecodeError) as excinfo:
            decode_profiles_to_settings(profile, Settings.empty())
        assert excinfo.value.path == path
        assert excinfo.value.expected == expected

    def test_non_mapping_profile(self) -> None:
        with pytest.raises(DecodeError):
            decode_profiles_to_settings(["redis"], Settings.empty())  # type: ignore[arg-type]

    def test_error_message_names_path(self) -> None:
        with pytest.raises(DecodeError, match=r"redis\.baseUrl: expected str, got int"):
            decode_profiles_to_settings({"redis": {"baseUrl": 6379}}, Settings.empty())
