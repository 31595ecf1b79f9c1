from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import peewee

from marksync.db.models import ALL_MODELS, database_proxy

logger = logging.getLogger(__name__)


@dataclass
class DatabaseSessionManager:
    """Owns the SQLite connection used by the state repositories.

    Attributes:
        path: Path to the SQLite database file, or ":memory:" for in-memory
    """

    path: str
    _database: peewee.SqliteDatabase = field(init=False)

    def __post_init__(self) -> None:
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        self._database = peewee.SqliteDatabase(
            self.path,
            pragmas={
                "journal_mode": "wal",
                "synchronous": "normal",
            },
            check_same_thread=False,
        )
        database_proxy.initialize(self._database)

    @property
    def database(self) -> peewee.SqliteDatabase:
        return self._database

    def connection_context(self) -> Any:
        return self._database.connection_context()

    def atomic(self) -> Any:
        return self._database.atomic()

    def migrate(self) -> None:
        """Create missing tables."""
        with self._database.connection_context():
            self._database.create_tables(ALL_MODELS, safe=True)
        logger.debug("state_db_migrated", extra={"path": self.path})

    def close(self) -> None:
        if not self._database.is_closed():
            self._database.close()
