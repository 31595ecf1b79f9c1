from __future__ import annotations

import pytest

from marksync.adapters.memory import InMemoryLocalStore, InMemoryRemoteStore
from marksync.domain.exceptions import VersionConflictError
from marksync.domain.services.schema import build_document
from marksync.sync.protocols import LocalStore, RemoteStore
from tests.helpers import document_payload


class TestInMemoryRemoteStore:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(InMemoryRemoteStore(), RemoteStore)

    @pytest.mark.asyncio
    async def test_create_then_conditional_update(self, make_record) -> None:
        store = InMemoryRemoteStore()
        assert (await store.read()).version_token is None

        token = await store.write(build_document([make_record("https://example.com")]), None)
        snapshot = await store.read()

        assert snapshot.version_token == token
        assert len(snapshot.payload["bookmarks"]) == 1

        with pytest.raises(VersionConflictError) as exc_info:
            await store.write(build_document([]), "stale")
        assert exc_info.value.current_token == token

    @pytest.mark.asyncio
    async def test_create_rejected_when_document_exists(self) -> None:
        store = InMemoryRemoteStore(document_payload())
        with pytest.raises(VersionConflictError):
            await store.write(build_document([]), None)

    @pytest.mark.asyncio
    async def test_injected_conflict_applies_edit(self, make_record) -> None:
        other = make_record("https://example.com/other")
        store = InMemoryRemoteStore(document_payload())
        store.inject_conflicts(
            1, edit=lambda payload: {**payload, "bookmarks": [other.to_wire()]}
        )

        with pytest.raises(VersionConflictError):
            await store.write(build_document([]), "1")

        snapshot = await store.read()
        assert snapshot.version_token == "2"
        assert snapshot.payload["bookmarks"][0]["id"] == other.id
        assert store.written == []

    @pytest.mark.asyncio
    async def test_reads_are_isolated_copies(self) -> None:
        store = InMemoryRemoteStore(document_payload())
        snapshot = await store.read()
        snapshot.payload["bookmarks"].append({"id": "tampered"})
        assert (await store.read()).payload["bookmarks"] == []


class TestInMemoryLocalStore:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(InMemoryLocalStore(), LocalStore)

    @pytest.mark.asyncio
    async def test_apply_delta(self, make_record) -> None:
        keep = make_record("https://example.com/keep")
        drop = make_record("https://example.com/drop")
        new = make_record("https://example.com/new")
        store = InMemoryLocalStore([keep, drop])

        await store.apply_delta([new], [], [drop.id])

        assert [record.id for record in await store.enumerate()] == [keep.id, new.id]
        assert store.deltas == [([new], [], [drop.id])]
