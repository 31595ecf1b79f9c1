from __future__ import annotations

import base64
import json

import httpx
import pytest

from marksync.adapters.github.remote_store import GitHubRemoteStore, serialize_document
from marksync.adapters.memory import InMemoryLocalStore
from marksync.config import GitHubConfig, SyncConfig
from marksync.domain.exceptions import AdapterError, ValidationError, VersionConflictError
from marksync.domain.services.schema import build_document
from marksync.sync.orchestrator import SyncOrchestrator
from marksync.sync.protocols import InMemorySnapshotStore, SyncSnapshot
from tests.helpers import document_payload

DATA = "bookmarks/data.json"
README = "bookmarks/README.md"


class TestGitHubRemoteStore:
    @pytest.mark.asyncio
    async def test_missing_document(self, make_client) -> None:
        async with make_client() as client:
            snapshot = await GitHubRemoteStore(client).read()
        assert not snapshot.exists
        assert snapshot.version_token is None

    @pytest.mark.asyncio
    async def test_write_then_read(self, github, make_client, make_record) -> None:
        record = make_record("https://example.com", tags=["docs"])
        document = build_document([record])
        async with make_client() as client:
            store = GitHubRemoteStore(client)
            token = await store.write(document, None)
            snapshot = await store.read()

        assert snapshot.version_token == token
        assert snapshot.payload == document.to_wire()
        assert github.content(DATA).endswith("\n")
        commit = json.loads(github.requests[0].content)
        assert commit["message"] == "sync: update 1 bookmark"
        assert "# My Bookmarks" in github.content(README)
        assert "[data.json](./data.json)" in github.content(README)

    @pytest.mark.asyncio
    async def test_stale_token_raises_version_conflict(
        self, github, make_client, make_record
    ) -> None:
        github.put(DATA, serialize_document(build_document([])))
        async with make_client() as client:
            store = GitHubRemoteStore(client, readme_path=None)
            with pytest.raises(VersionConflictError) as exc_info:
                await store.write(build_document([make_record("https://example.com")]), "0" * 40)
        assert exc_info.value.expected_token == "0" * 40

    @pytest.mark.asyncio
    async def test_invalid_json(self, github, make_client) -> None:
        github.put(DATA, "{not json")
        async with make_client() as client:
            with pytest.raises(ValidationError, match="not valid JSON"):
                await GitHubRemoteStore(client).read()

    @pytest.mark.asyncio
    async def test_read_failure_is_adapter_error(self, github, make_client) -> None:
        github.fail("GET", DATA, 500)
        async with make_client(max_retries=0) as client:
            with pytest.raises(AdapterError) as exc_info:
                await GitHubRemoteStore(client).read()
        assert exc_info.value.adapter == "github"
        assert exc_info.value.operation == "read"
        assert exc_info.value.details["status_code"] == 500

    @pytest.mark.asyncio
    async def test_write_failure_is_adapter_error(self, github, make_client) -> None:
        github.fail("PUT", DATA, 403)
        async with make_client() as client:
            with pytest.raises(AdapterError) as exc_info:
                await GitHubRemoteStore(client).write(build_document([]), None)
        assert exc_info.value.operation == "write"

    @pytest.mark.asyncio
    async def test_readme_failure_does_not_fail_write(self, github, make_client) -> None:
        github.fail("PUT", README, 403)
        async with make_client() as client:
            token = await GitHubRemoteStore(client).write(build_document([]), None)
        assert token == github.files[DATA][0]
        assert README not in github.files

    @pytest.mark.asyncio
    async def test_undecodable_document_is_validation_error(self, github, make_client) -> None:
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
            with pytest.raises(ValidationError, match="could not be decoded"):
                await GitHubRemoteStore(client).read()

    @pytest.mark.asyncio
    async def test_transport_failure_is_adapter_error(self, github, make_client) -> None:
        github.respond("GET", DATA, httpx.ReadError("connection reset"))
        async with make_client(max_retries=0) as client:
            with pytest.raises(AdapterError) as exc_info:
                await GitHubRemoteStore(client).read()
        assert exc_info.value.operation == "read"
        assert exc_info.value.details["status_code"] is None

    @pytest.mark.asyncio
    async def test_readme_transport_failure_does_not_fail_write(
        self, github, make_client
    ) -> None:
        github.respond("GET", README, httpx.UnsupportedProtocol("no handler for scheme"))
        async with make_client() as client:
            token = await GitHubRemoteStore(client).write(build_document([]), None)
        assert token == github.files[DATA][0]
        assert README not in github.files

    @pytest.mark.asyncio
    async def test_readme_undecodable_does_not_fail_write(self, github, make_client) -> None:
        github.respond("GET", README, httpx.Response(200, content=b"not json"))
        async with make_client() as client:
            token = await GitHubRemoteStore(client).write(build_document([]), None)
        assert token == github.files[DATA][0]

    @pytest.mark.asyncio
    async def test_readme_unchanged_is_not_rewritten(self, github, make_client) -> None:
        document = build_document([])
        async with make_client() as client:
            store = GitHubRemoteStore(client)
            token = await store.write(document, None)
            put_count = sum(1 for r in github.requests if r.method == "PUT")
            await store.write(document, token)
        assert sum(1 for r in github.requests if r.method == "PUT") == put_count + 1

    def test_from_config(self, make_client) -> None:
        config = GitHubConfig(data_path="data/marks.json", render_readme=False)
        store = GitHubRemoteStore.from_config(make_client(), config)
        assert store.data_path == "data/marks.json"
        assert store.readme_path is None


@pytest.mark.asyncio
async def test_sync_cycle_recovers_from_concurrent_push(
    github, make_client, make_record, identity
) -> None:
    a = make_record("https://example.com/a")
    b = make_record("https://example.com/b")
    c = make_record("https://example.com/c")
    sha = github.put(DATA, json.dumps(document_payload(a), indent=2))
    delays: list[float] = []

    async def sleep(delay: float) -> None:
        delays.append(delay)

    class RacingStore(GitHubRemoteStore):
        raced = False

        async def read(self):
            snapshot = await super().read()
            if not self.raced:
                self.raced = True
                github.put(DATA, json.dumps(document_payload(a, c), indent=2))
            return snapshot

    local = InMemoryLocalStore([a, b])
    async with make_client() as client:
        orchestrator = SyncOrchestrator(
            RacingStore(client),
            local,
            identity=identity,
            config=SyncConfig(retry_jitter=0),
            snapshot_store=InMemorySnapshotStore(SyncSnapshot(records=(a,), version_token=sha)),
            sleep=sleep,
        )
        result = await orchestrator.trigger()

    assert result.success
    assert result.write_attempts == 2
    assert delays == [0.25]
    ids = {item["id"] for item in json.loads(github.content(DATA))["bookmarks"]}
    assert ids == {a.id, b.id, c.id}
    assert set(local.records) == {a.id, b.id, c.id}
    assert result.version_token == github.files[DATA][0]
