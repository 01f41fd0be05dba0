"""Record persistence for Aegis.

The record store is consumed through the RecordStore interface:
- SqlRecordStore: PostgreSQL via SQLAlchemy asyncio (PostGIS for the radius call)
- InMemoryRecordStore: single-process development and tests
"""

from aegis.persistence.memory import InMemoryRecordStore
from aegis.persistence.sql import SqlRecordStore
from aegis.persistence.store import (
    RecordStore,
    RecordStoreError,
    Row,
    SpatialQueryError,
    UnknownTableError,
)

__all__ = [
    "RecordStore",
    "RecordStoreError",
    "SpatialQueryError",
    "UnknownTableError",
    "Row",
    "InMemoryRecordStore",
    "SqlRecordStore",
]
