from __future__ import annotations

import asyncio
from typing import Any

from marksync.db.session import DatabaseSessionManager


class SqliteBaseRepository:
    """Base repository for SQLite implementations."""

    def __init__(self, session_manager: DatabaseSessionManager) -> None:
        self._session = session_manager

    async def _execute(self, operation: Any, *args: Any, **kwargs: Any) -> Any:
        """Run a blocking peewee operation in a worker thread with a connection open."""

        def _op_wrapper() -> Any:
            with self._session.connection_context():
                return operation(*args, **kwargs)

        return await asyncio.to_thread(_op_wrapper)
