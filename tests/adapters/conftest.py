from __future__ import annotations

import pytest

from marksync.adapters.github.client import GitHubContentsClient
from tests.adapters.fake_github import FakeGitHub


@pytest.fixture
def github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def make_client(github: FakeGitHub):
    def _make(**kwargs) -> GitHubContentsClient:
        kwargs.setdefault("max_retries", 2)
        kwargs.setdefault("retry_base_delay", 0.0)
        return GitHubContentsClient(
            "ghp_test", "octo", "bookmarks", transport=github.transport(), **kwargs
        )

    return _make
