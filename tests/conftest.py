"""Shared fixtures for unit tests."""

from __future__ import annotations

import os

import pytest

from dinghy.settings import RepoConfig, Settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep DINGHY_* variables of the host out of Settings()."""
    for name in list(os.environ):
        if name.upper().startswith("DINGHY_"):
            monkeypatch.delenv(name)


@pytest.fixture()
def repo_configs() -> list[RepoConfig]:
    return [
        RepoConfig(provider="github", repo="ghrepo", branch="ghbranch"),
        RepoConfig(provider="bitbucket", repo="bbrepo", branch="bbbranch"),
    ]


@pytest.fixture()
def test_settings(repo_configs: list[RepoConfig]) -> Settings:
    return Settings(
        github_token="gh-token",
        parser_format="json",
        repo_config=repo_configs,
    )
