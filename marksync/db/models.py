"""Peewee ORM models for the local state database."""

from __future__ import annotations

import peewee
from playhouse.sqlite_ext import JSONField

from marksync.core.time_utils import utc_now

# A proxy that will be initialised with the concrete database instance at runtime.
database_proxy: peewee.Database = peewee.DatabaseProxy()

DEFAULT_SNAPSHOT_KEY = "default"


class BaseModel(peewee.Model):
    """Base Peewee model bound to the lazily initialised database proxy."""

    class Meta:
        database = database_proxy
        legacy_table_names = False


class SyncSnapshotRow(BaseModel):
    """Base snapshot of the last successful sync, one row per remote."""

    key = peewee.TextField(primary_key=True)
    records_json = JSONField(default=list)
    record_count = peewee.IntegerField(default=0)
    version_token = peewee.TextField(null=True)
    last_synced_at = peewee.BigIntegerField(null=True)
    updated_at = peewee.DateTimeField(default=utc_now)

    class Meta:
        table_name = "sync_snapshots"


ALL_MODELS: tuple[type[BaseModel], ...] = (SyncSnapshotRow,)
