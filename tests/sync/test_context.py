from __future__ import annotations

import pytest

from marksync.adapters.memory import InMemoryLocalStore, InMemoryRemoteStore
from marksync.config import AppConfig, GitHubConfig, IdentityConfig, RuntimeConfig, SyncConfig
from marksync.sync.context import build_sync_context
from marksync.sync.scheduler import AsyncIOIntervalScheduler


def _config(**sync) -> AppConfig:
    return AppConfig(
        identity=IdentityConfig(id_prefix="bk_"),
        sync=SyncConfig(**sync),
        github=GitHubConfig(),
        runtime=RuntimeConfig(),
    )


def test_wires_identity_and_idle_scheduler() -> None:
    context = build_sync_context(
        _config(), remote_store=InMemoryRemoteStore(), local_store=InMemoryLocalStore()
    )
    assert context.identity.prefix == "bk_"
    assert isinstance(context.scheduler, AsyncIOIntervalScheduler)
    assert not context.scheduler.is_scheduled
    assert context.handler is not None


@pytest.mark.asyncio
async def test_auto_enabled_starts_schedule() -> None:
    context = build_sync_context(
        _config(auto_enabled=True, interval_minutes=30),
        remote_store=InMemoryRemoteStore(),
        local_store=InMemoryLocalStore(),
    )
    try:
        status = context.orchestrator.status()
        assert status.schedule.enabled
        assert status.schedule.interval_seconds == 1800
    finally:
        context.orchestrator.stop_schedule()


def test_auto_start_can_be_skipped() -> None:
    context = build_sync_context(
        _config(auto_enabled=True),
        remote_store=InMemoryRemoteStore(),
        local_store=InMemoryLocalStore(),
        auto_start=False,
    )
    assert not context.scheduler.is_scheduled


@pytest.mark.asyncio
async def test_handler_enables_schedule_on_default_wiring() -> None:
    context = build_sync_context(
        _config(), remote_store=InMemoryRemoteStore(), local_store=InMemoryLocalStore()
    )

    response = await context.handler.handle(
        {"method": "sync.update_schedule", "enabled": True, "interval_minutes": 5}
    )
    try:
        assert response.ok
        assert response.result.schedule.enabled
        assert response.result.schedule.interval_seconds == 300
    finally:
        context.orchestrator.stop_schedule()


@pytest.mark.asyncio
async def test_handler_drives_orchestrator() -> None:
    remote = InMemoryRemoteStore()
    local = InMemoryLocalStore()
    context = build_sync_context(_config(), remote_store=remote, local_store=local)
    local.put(context.identity.new_record("https://example.com", "Example"))

    response = await context.handler.handle({"method": "sync.trigger"})

    assert response.ok
    assert remote.payload["bookmarks"][0]["id"].startswith("bk_")
