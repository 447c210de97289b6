"""
Record store backends.
A single-table key-value store keyed by record id, offering put, get, update,
delete, scan and batch_write. The process keeps one store handle, built lazily
from configuration and replaceable for tests.
"""

import sqlite3
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from . import config
from .db import get_db, init_db, health_check
from .schema import Record
from ..util.logging import logger


class StoreError(Exception):
    """Base class for record store failures."""


class RecordStoreError(StoreError):
    """The underlying store could not complete an operation."""


class BatchLimitExceededError(StoreError):
    """A batch write carried more records than one store call accepts."""

    def __init__(self, size: int, limit: int = config.BATCH_WRITE_LIMIT):
        super().__init__(f"Batch of {size} records exceeds the limit of {limit} per call")
        self.size = size
        self.limit = limit


class RecordStore(ABC):
    """Abstract interface for record storage operations."""

    batch_limit = config.BATCH_WRITE_LIMIT

    @abstractmethod
    def put(self, record: Record) -> None:
        """Write a single record, replacing any record with the same id."""
        pass

    @abstractmethod
    def get(self, record_id: str) -> Optional[Record]:
        """Return the record with this id, or None."""
        pass

    @abstractmethod
    def update(self, record_id: str, attributes: Dict[str, Any]) -> Record:
        """Set the given attributes and return the full record after the update.

        A missing record is created holding only the id and these attributes.
        """
        pass

    @abstractmethod
    def delete(self, record_id: str) -> None:
        """Delete a record by id; deleting an unknown id is not an error."""
        pass

    @abstractmethod
    def scan(self) -> List[Record]:
        """Return every record in the store."""
        pass

    @abstractmethod
    def _write_batch(self, records: List[Record]) -> None:
        pass

    def batch_write(self, records: List[Record]) -> None:
        """Write up to ``batch_limit`` records in one store call."""
        if len(records) > self.batch_limit:
            raise BatchLimitExceededError(len(records), self.batch_limit)
        if records:
            self._write_batch(records)

    def count(self) -> int:
        return len(self.scan())

    def health_check(self) -> bool:
        return True


class InMemoryRecordStore(RecordStore):
    """Dict-backed store, used for tests and throwaway runs."""

    def __init__(self):
        self._items = {}  # record_id -> item dict, insertion ordered
        self._lock = threading.Lock()

    def put(self, record: Record) -> None:
        with self._lock:
            self._items[record.id] = record.to_item()

    def get(self, record_id: str) -> Optional[Record]:
        with self._lock:
            item = self._items.get(record_id)
        return Record.from_item(item) if item is not None else None

    def update(self, record_id: str, attributes: Dict[str, Any]) -> Record:
        with self._lock:
            item = self._items.setdefault(record_id, {"id": record_id})
            item.update(attributes)
            return Record.from_item(item)

    def delete(self, record_id: str) -> None:
        with self._lock:
            self._items.pop(record_id, None)

    def scan(self) -> List[Record]:
        with self._lock:
            return [Record.from_item(item) for item in self._items.values()]

    def _write_batch(self, records: List[Record]) -> None:
        with self._lock:
            for record in records:
                self._items[record.id] = record.to_item()

    def clear(self) -> None:
        """Clear all records from the store."""
        with self._lock:
            self._items.clear()


class SQLiteRecordStore(RecordStore):
    """Local SQLite-backed store; one connection per call."""

    _COLUMNS = "id, name, email, created_at"

    def __init__(self, db_path: str = None):
        self.db_path = db_path or config.get_db_path()
        init_db(self.db_path)

    @staticmethod
    def _row_to_record(row) -> Record:
        record_id, name, email, created_at = row
        return Record(id=record_id, name=name, email=email, createdAt=created_at)

    def put(self, record: Record) -> None:
        try:
            with get_db(self.db_path) as conn:
                conn.execute(
                    f"INSERT OR REPLACE INTO records ({self._COLUMNS}) VALUES (?, ?, ?, ?)",
                    (record.id, record.name, record.email, record.createdAt)
                )
                conn.commit()
        except sqlite3.Error as e:
            raise RecordStoreError(f"Failed to put record '{record.id}': {e}") from e

    def get(self, record_id: str) -> Optional[Record]:
        try:
            with get_db(self.db_path) as conn:
                cursor = conn.execute(
                    f"SELECT {self._COLUMNS} FROM records WHERE id = ?", (record_id,)
                )
                row = cursor.fetchone()
        except sqlite3.Error as e:
            raise RecordStoreError(f"Failed to get record '{record_id}': {e}") from e
        return self._row_to_record(row) if row else None

    def update(self, record_id: str, attributes: Dict[str, Any]) -> Record:
        try:
            with get_db(self.db_path) as conn:
                conn.execute(
                    "INSERT INTO records (id, name, email) VALUES (?, ?, ?) "
                    "ON CONFLICT(id) DO UPDATE SET name = excluded.name, email = excluded.email",
                    (record_id, attributes.get("name"), attributes.get("email"))
                )
                conn.commit()
                row = conn.execute(
                    f"SELECT {self._COLUMNS} FROM records WHERE id = ?", (record_id,)
                ).fetchone()
        except sqlite3.Error as e:
            raise RecordStoreError(f"Failed to update record '{record_id}': {e}") from e
        return self._row_to_record(row)

    def delete(self, record_id: str) -> None:
        try:
            with get_db(self.db_path) as conn:
                conn.execute("DELETE FROM records WHERE id = ?", (record_id,))
                conn.commit()
        except sqlite3.Error as e:
            raise RecordStoreError(f"Failed to delete record '{record_id}': {e}") from e

    def scan(self) -> List[Record]:
        try:
            with get_db(self.db_path) as conn:
                rows = conn.execute(
                    f"SELECT {self._COLUMNS} FROM records ORDER BY rowid"
                ).fetchall()
        except sqlite3.Error as e:
            raise RecordStoreError(f"Failed to scan records: {e}") from e
        return [self._row_to_record(row) for row in rows]

    def _write_batch(self, records: List[Record]) -> None:
        try:
            with get_db(self.db_path) as conn:
                conn.executemany(
                    f"INSERT OR REPLACE INTO records ({self._COLUMNS}) VALUES (?, ?, ?, ?)",
                    [(r.id, r.name, r.email, r.createdAt) for r in records]
                )
                conn.commit()
        except sqlite3.Error as e:
            raise RecordStoreError(f"Failed to write batch of {len(records)} records: {e}") from e

    def count(self) -> int:
        try:
            with get_db(self.db_path) as conn:
                return conn.execute("SELECT COUNT(*) FROM records").fetchone()[0]
        except sqlite3.Error as e:
            raise RecordStoreError(f"Failed to count records: {e}") from e

    def health_check(self) -> bool:
        return health_check(self.db_path)


class DynamoDBRecordStore(RecordStore):
    """DynamoDB table with ``id`` as its only (partition) key."""

    def __init__(self, table_name: str = None, table=None, region_name: str = None):
        self.table_name = table_name or config.get_table_name()
        if table is None:
            resource = boto3.resource("dynamodb", region_name=region_name or config.AWS_REGION)
            table = resource.Table(self.table_name)
        self.table = table

    def put(self, record: Record) -> None:
        try:
            self.table.put_item(Item=record.to_item())
        except (ClientError, BotoCoreError) as e:
            raise RecordStoreError(f"Failed to put record '{record.id}': {e}") from e

    def get(self, record_id: str) -> Optional[Record]:
        try:
            response = self.table.get_item(Key={"id": record_id})
        except (ClientError, BotoCoreError) as e:
            raise RecordStoreError(f"Failed to get record '{record_id}': {e}") from e
        item = response.get("Item")
        return Record.from_item(item) if item else None

    def update(self, record_id: str, attributes: Dict[str, Any]) -> Record:
        names = {f"#{field}": field for field in attributes}
        values = {f":{field}": value for field, value in attributes.items()}
        expression = "SET " + ", ".join(f"#{field} = :{field}" for field in attributes)
        try:
            response = self.table.update_item(
                Key={"id": record_id},
                UpdateExpression=expression,
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW"
            )
        except (ClientError, BotoCoreError) as e:
            raise RecordStoreError(f"Failed to update record '{record_id}': {e}") from e
        return Record.from_item(response.get("Attributes", {"id": record_id}))

    def delete(self, record_id: str) -> None:
        try:
            self.table.delete_item(Key={"id": record_id})
        except (ClientError, BotoCoreError) as e:
            raise RecordStoreError(f"Failed to delete record '{record_id}': {e}") from e

    def scan(self) -> List[Record]:
        items = []
        scan_kwargs = {}
        try:
            while True:
                response = self.table.scan(**scan_kwargs)
                items.extend(response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                scan_kwargs["ExclusiveStartKey"] = last_key
        except (ClientError, BotoCoreError) as e:
            raise RecordStoreError(f"Failed to scan table '{self.table_name}': {e}") from e
        return [Record.from_item(item) for item in items]

    def _write_batch(self, records: List[Record]) -> None:
        request_items = {
            self.table_name: [{"PutRequest": {"Item": r.to_item()}} for r in records]
        }
        try:
            response = self.table.meta.client.batch_write_item(RequestItems=request_items)
        except (ClientError, BotoCoreError) as e:
            raise RecordStoreError(f"Failed to write batch of {len(records)} records: {e}") from e

        unprocessed = response.get("UnprocessedItems", {}).get(self.table_name, [])
        if unprocessed:
            raise RecordStoreError(
                f"{len(unprocessed)} of {len(records)} records were not written by the batch"
            )

    def health_check(self) -> bool:
        try:
            self.table.load()
            return True
        except (ClientError, BotoCoreError) as e:
            logger.warning(f"DynamoDB health check failed for table '{self.table_name}': {e}")
            return False


_store: Optional[RecordStore] = None
_store_lock = threading.Lock()


def create_store(backend: str = None) -> RecordStore:
    """Build a store for the configured backend."""
    backend = (backend or config.get_store_backend()).lower()
    if backend == "memory":
        return InMemoryRecordStore()
    elif backend == "sqlite":
        return SQLiteRecordStore()
    elif backend == "dynamodb":
        return DynamoDBRecordStore()
    raise ValueError(f"Unknown store backend: {backend}")


def get_store() -> RecordStore:
    """Return the process-wide store, building it on first use."""
    global _store
    if _store is None:
        with _store_lock:
            if _store is None:
                _store = create_store()
                logger.info(f"Record store initialized: {_store.__class__.__name__}")
    return _store


def set_store(store: RecordStore) -> None:
    """Replace the process-wide store."""
    global _store
    with _store_lock:
        _store = store


def reset_store() -> None:
    """Drop the process-wide store so the next access rebuilds it."""
    set_store(None)
