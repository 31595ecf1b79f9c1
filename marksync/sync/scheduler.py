"""Periodic trigger capabilities for the orchestrator."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from marksync.domain.exceptions import SchedulingUnavailableError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

SYNC_JOB_ID = "marksync_sync"


class NoopScheduler:
    """Stand-in when no periodic trigger is wired in.

    Scheduling requests are refused so callers learn that nothing will run.
    """

    def schedule(self, interval_seconds: float, job: Callable[[], Awaitable[Any]]) -> None:
        logger.warning(
            "noop_scheduler_schedule_refused", extra={"interval_seconds": interval_seconds}
        )
        msg = "Periodic sync is not available: no scheduler is configured"
        raise SchedulingUnavailableError(msg, {"interval_seconds": interval_seconds})

    def cancel(self) -> None:
        return None

    @property
    def is_scheduled(self) -> bool:
        return False

    @property
    def interval_seconds(self) -> float | None:
        return None


class AsyncIOIntervalScheduler:
    """Runs the sync job on a fixed interval with APScheduler.

    Must be used from within a running event loop. Overlapping runs are
    prevented by ``max_instances=1``; missed runs are coalesced.
    """

    def __init__(self, scheduler: AsyncIOScheduler | None = None) -> None:
        self._scheduler = scheduler
        self._owns_scheduler = scheduler is None
        self._interval: float | None = None

    def schedule(self, interval_seconds: float, job: Callable[[], Awaitable[Any]]) -> None:
        """(Re)register ``job`` to run every ``interval_seconds``."""
        if self._scheduler is None:
            self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            job,
            trigger=IntervalTrigger(seconds=interval_seconds),
            id=SYNC_JOB_ID,
            name="Bookmark Sync",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        if not self._scheduler.running:
            self._scheduler.start()
        self._interval = interval_seconds
        logger.info(
            "scheduler_sync_job_added",
            extra={"job_id": SYNC_JOB_ID, "interval_seconds": interval_seconds},
        )

    def cancel(self) -> None:
        if self._scheduler is None:
            return
        if self._scheduler.get_job(SYNC_JOB_ID) is not None:
            self._scheduler.remove_job(SYNC_JOB_ID)
        if self._owns_scheduler and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
        self._interval = None
        logger.info("scheduler_sync_job_removed", extra={"job_id": SYNC_JOB_ID})

    @property
    def is_scheduled(self) -> bool:
        return self._scheduler is not None and self._scheduler.get_job(SYNC_JOB_ID) is not None

    @property
    def interval_seconds(self) -> float | None:
        return self._interval

    def next_run_time(self) -> datetime | None:
        if self._scheduler is None:
            return None
        job = self._scheduler.get_job(SYNC_JOB_ID)
        return job.next_run_time if job else None
