from __future__ import annotations

from typing import Any

import pytest

from marksync.adapters.memory import InMemoryLocalStore, InMemoryRemoteStore
from marksync.config import SyncConfig
from marksync.sync.orchestrator import SyncOrchestrator
from marksync.sync.protocols import InMemorySnapshotStore


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def build_orchestrator(identity, sleep):
    """Factory wiring an orchestrator over in-memory stores."""

    def _build(
        *,
        remote: InMemoryRemoteStore | None = None,
        local: InMemoryLocalStore | None = None,
        snapshots: Any = None,
        scheduler: Any = None,
        **config: Any,
    ) -> SyncOrchestrator:
        config.setdefault("retry_jitter", 0)
        return SyncOrchestrator(
            remote or InMemoryRemoteStore(),
            local or InMemoryLocalStore(),
            identity=identity,
            config=SyncConfig(**config),
            snapshot_store=snapshots if snapshots is not None else InMemorySnapshotStore(),
            scheduler=scheduler,
            sleep=sleep,
        )

    return _build
