from __future__ import annotations

import base64
import json

import httpx
import pytest

from marksync.adapters.github.client import (
    GitHubClientError,
    GitHubConflictError,
    GitHubContentsClient,
    GitHubDecodeError,
    retry_with_backoff,
)
from tests.adapters.fake_github import blob_sha

DATA = "bookmarks/data.json"


class TestGetFile:
    @pytest.mark.asyncio
    async def test_decodes_content(self, github, make_client) -> None:
        sha = github.put(DATA, '{"hello": "wörld"}')
        async with make_client() as client:
            file = await client.get_file(DATA)
        assert file is not None
        assert file.sha == sha
        assert json.loads(file.content) == {"hello": "wörld"}
        request = github.requests[-1]
        assert request.url.params["ref"] == "main"
        assert request.headers["Authorization"] == "Bearer ghp_test"
        assert request.headers["Accept"] == "application/vnd.github+json"

    @pytest.mark.asyncio
    async def test_missing_file_returns_none(self, make_client) -> None:
        async with make_client() as client:
            assert await client.get_file(DATA) is None

    @pytest.mark.asyncio
    async def test_transient_errors_are_retried(self, github, make_client) -> None:
        github.put(DATA, "{}")
        github.fail("GET", DATA, 503, 502)
        async with make_client(max_retries=2) as client:
            file = await client.get_file(DATA)
        assert file is not None
        assert len(github.requests) == 3

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, github, make_client) -> None:
        github.fail("GET", DATA, 500, 500, 500)
        async with make_client(max_retries=2) as client:
            with pytest.raises(GitHubClientError, match="after 3 attempts") as exc_info:
                await client.get_file(DATA)
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_non_retryable_error(self, github, make_client) -> None:
        github.fail("GET", DATA, 403)
        async with make_client() as client:
            with pytest.raises(GitHubClientError) as exc_info:
                await client.get_file(DATA)
        assert exc_info.value.status_code == 403
        assert len(github.requests) == 1

    @pytest.mark.asyncio
    async def test_large_file_read_through_blob(self) -> None:
        content = "x" * 32
        encoded = base64.b64encode(content.encode()).decode()

        def handler(request: httpx.Request) -> httpx.Response:
            if "/git/blobs/" in request.url.path:
                return httpx.Response(200, json={"content": encoded, "encoding": "base64"})
            return httpx.Response(
                200,
                json={
                    "type": "file",
                    "sha": "abc",
                    "size": 2_000_000,
                    "encoding": "none",
                    "content": "",
                },
            )

        async with GitHubContentsClient(
            "ghp_test", "octo", "bookmarks", transport=httpx.MockTransport(handler)
        ) as client:
            file = await client.get_file(DATA)
        assert file is not None
        assert file.content == content

    @pytest.mark.asyncio
    async def test_directory_rejected(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[{"type": "file", "name": "data.json"}])

        async with GitHubContentsClient(
            "ghp_test", "octo", "bookmarks", transport=httpx.MockTransport(handler)
        ) as client:
            with pytest.raises(GitHubClientError, match="not a file"):
                await client.get_file("bookmarks")

    @pytest.mark.asyncio
    async def test_dropped_connections_are_retried(self, github, make_client) -> None:
        github.put(DATA, "{}")
        github.respond(
            "GET",
            DATA,
            httpx.ReadError("connection reset"),
            httpx.RemoteProtocolError("server disconnected"),
        )
        async with make_client(max_retries=2) as client:
            file = await client.get_file(DATA)
        assert file is not None
        assert len(github.requests) == 3

    @pytest.mark.asyncio
    async def test_dropped_connections_exhausted(self, github, make_client) -> None:
        github.respond("GET", DATA, *(httpx.ReadError("connection reset") for _ in range(3)))
        async with make_client(max_retries=2) as client:
            with pytest.raises(GitHubClientError, match="after 3 attempts") as exc_info:
                await client.get_file(DATA)
        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_other_transport_errors_are_wrapped(self, github, make_client) -> None:
        github.respond("GET", DATA, httpx.UnsupportedProtocol("no handler for scheme"))
        async with make_client() as client:
            with pytest.raises(GitHubClientError, match="get_file failed"):
                await client.get_file(DATA)
        assert len(github.requests) == 1

    @pytest.mark.asyncio
    async def test_undecodable_content(self, github, make_client) -> None:
        github.respond(
            "GET",
            DATA,
            httpx.Response(
                200,
                json={
                    "type": "file",
                    "sha": "abc",
                    "size": 2,
                    "encoding": "base64",
                    "content": base64.b64encode(b"\xff\xfe").decode(),
                },
            ),
        )
        async with make_client() as client:
            with pytest.raises(GitHubDecodeError, match="UTF-8"):
                await client.get_file(DATA)

    @pytest.mark.asyncio
    async def test_malformed_response_body(self, github, make_client) -> None:
        github.respond("GET", DATA, httpx.Response(200, content=b"<html>oops</html>"))
        async with make_client() as client:
            with pytest.raises(GitHubDecodeError, match="Malformed"):
                await client.get_file(DATA)


class TestPutFile:
    @pytest.mark.asyncio
    async def test_create_then_update(self, github, make_client) -> None:
        async with make_client() as client:
            first = await client.put_file(DATA, "one", "create")
            second = await client.put_file(DATA, "two", "update", sha=first)
        assert first == blob_sha("one")
        assert second == blob_sha("two")
        assert github.content(DATA) == "two"
        body = json.loads(github.requests[-1].content)
        assert body["sha"] == first
        assert body["branch"] == "main"
        assert body["message"] == "update"

    @pytest.mark.asyncio
    async def test_stale_sha_is_conflict(self, github, make_client) -> None:
        github.put(DATA, "current")
        async with make_client() as client:
            with pytest.raises(GitHubConflictError) as exc_info:
                await client.put_file(DATA, "mine", "update", sha=blob_sha("older"))
        assert exc_info.value.status_code == 409
        assert github.content(DATA) == "current"

    @pytest.mark.asyncio
    async def test_missing_sha_on_existing_file_is_conflict(self, github, make_client) -> None:
        github.put(DATA, "current")
        async with make_client() as client:
            with pytest.raises(GitHubConflictError) as exc_info:
                await client.put_file(DATA, "mine", "create")
        assert exc_info.value.status_code == 422

    @pytest.mark.asyncio
    async def test_other_failures_are_client_errors(self, github, make_client) -> None:
        github.fail("PUT", DATA, 403)
        async with make_client() as client:
            with pytest.raises(GitHubClientError) as exc_info:
                await client.put_file(DATA, "mine", "create")
        assert not isinstance(exc_info.value, GitHubConflictError)


class TestAuthenticate:
    @pytest.mark.asyncio
    async def test_returns_login(self, make_client) -> None:
        async with make_client() as client:
            assert await client.authenticate() == "octo"

    @pytest.mark.asyncio
    async def test_bad_token(self, github) -> None:
        async with GitHubContentsClient(
            "wrong", "octo", "bookmarks", transport=github.transport()
        ) as client:
            with pytest.raises(GitHubClientError, match="Bad credentials") as exc_info:
                await client.authenticate()
        assert exc_info.value.status_code == 401


def test_client_requires_context_manager() -> None:
    client = GitHubContentsClient("ghp_test", "octo", "bookmarks")
    with pytest.raises(GitHubClientError, match="not initialized"):
        _ = client.client


@pytest.mark.asyncio
async def test_retry_with_backoff_retries_connect_errors() -> None:
    calls = 0

    async def flaky() -> str:
        nonlocal calls
        calls += 1
        if calls < 3:
            raise httpx.ConnectError("refused")
        return "ok"

    assert await retry_with_backoff(flaky, max_retries=3, base_delay=0.0) == "ok"
    assert calls == 3
