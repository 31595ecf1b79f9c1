"""Explicit wiring of the sync engine; no module-level singletons."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from marksync.domain.services.identity import IdentityResolver
from marksync.sync.contracts import SyncRequestHandler
from marksync.sync.orchestrator import SyncOrchestrator
from marksync.sync.protocols import InMemorySnapshotStore
from marksync.sync.scheduler import AsyncIOIntervalScheduler

if TYPE_CHECKING:
    from marksync.config import AppConfig
    from marksync.sync.protocols import LocalStore, RemoteStore, Scheduler, SnapshotStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncContext:
    config: AppConfig
    identity: IdentityResolver
    orchestrator: SyncOrchestrator
    scheduler: Scheduler
    handler: SyncRequestHandler


def build_sync_context(
    config: AppConfig,
    *,
    remote_store: RemoteStore,
    local_store: LocalStore,
    snapshot_store: SnapshotStore | None = None,
    scheduler: Scheduler | None = None,
    auto_start: bool = True,
) -> SyncContext:
    """Assemble the orchestrator and its collaborators from configuration.

    The scheduler defaults to APScheduler so ``sync.update_schedule`` can
    enable periodic sync at any time. With ``SYNC_AUTO_ENABLED`` and
    ``auto_start`` the schedule is started here, which requires a running
    event loop. One-shot callers pass ``auto_start=False``.
    """
    identity = IdentityResolver.from_config(config.identity)
    if scheduler is None:
        scheduler = AsyncIOIntervalScheduler()
    orchestrator = SyncOrchestrator(
        remote_store,
        local_store,
        identity=identity,
        config=config.sync,
        snapshot_store=snapshot_store or InMemorySnapshotStore(),
        scheduler=scheduler,
    )
    logger.debug(
        "sync_context_built",
        extra={
            "direction": config.sync.direction.value,
            "strategy": config.sync.strategy.value,
            "scheduler": type(scheduler).__name__,
            "hmac_ids": identity.uses_hmac,
        },
    )
    if auto_start and config.sync.auto_enabled:
        orchestrator.start_schedule(config.sync.interval_seconds)
    return SyncContext(
        config=config,
        identity=identity,
        orchestrator=orchestrator,
        scheduler=scheduler,
        handler=SyncRequestHandler(orchestrator),
    )
