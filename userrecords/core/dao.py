"""
Record operations over the store.
Every view (list, search, stats, export) is derived from a full scan; nothing
is cached between calls.
"""

from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from faker import Faker

from .config import BATCH_WRITE_LIMIT, BULK_MAX_COUNT, RECENT_RECORDS_LIMIT
from .schema import Record, iso_timestamp, local_midnight_timestamp
from .store import RecordStore
from ..util.logging import logger

_faker = Faker()


def clamp_bulk_count(count: int) -> int:
    """Clamp a requested bulk size into [1, BULK_MAX_COUNT]."""
    return min(max(1, count), BULK_MAX_COUNT)


def chunked(records: List[Record], size: int = BATCH_WRITE_LIMIT) -> Iterator[List[Record]]:
    """Yield consecutive slices of at most ``size`` records."""
    for start in range(0, len(records), size):
        yield records[start:start + size]


def list_records(store: RecordStore) -> List[Record]:
    """All records in store scan order."""
    return store.scan()


def create_record(store: RecordStore, name: Optional[str], email: Optional[str]) -> Record:
    """Create one record with a fresh id and creation timestamp."""
    record = Record.new(name=name, email=email)
    store.put(record)
    logger.log_record_operation("create", record.id, {"name": name, "email": email})
    return record


def generate_records(count: int, faker: Faker = None, created_at: str = None) -> List[Record]:
    """Build ``count`` synthetic records sharing one creation timestamp."""
    faker = faker or _faker
    created_at = created_at or iso_timestamp()
    return [
        Record.new(name=faker.name(), email=faker.email(), created_at=created_at)
        for _ in range(count)
    ]


def bulk_create_records(store: RecordStore, count: int, faker: Faker = None) -> List[Record]:
    """Generate synthetic records and write them in sequential batches.

    A failed batch aborts the rest; batches already written stay in the store.
    """
    records = generate_records(clamp_bulk_count(count), faker=faker)
    batches = list(chunked(records, store.batch_limit))

    for index, batch in enumerate(batches):
        try:
            store.batch_write(batch)
        except Exception:
            logger.log_batch_write(index, len(batch), len(batches), status="failed")
            raise
        logger.log_batch_write(index, len(batch), len(batches))

    logger.log_record_operation("bulk_create", details={"count": len(records), "batches": len(batches)})
    return records


def search_records(store: RecordStore, query: str = "") -> List[Record]:
    """Records whose name or email contains ``query``, case-insensitively."""
    query = (query or "").lower()
    records = store.scan()
    if not query:
        return records

    return [
        r for r in records
        if (r.name and query in r.name.lower()) or (r.email and query in r.email.lower())
    ]


def record_stats(store: RecordStore, now: datetime = None) -> Dict[str, Any]:
    """Totals, records created since local midnight and the most recent records."""
    records = store.scan()
    today = local_midnight_timestamp(now)

    recent = sorted(records, key=lambda r: r.createdAt or "", reverse=True)

    return {
        "totalRecords": len(records),
        "recordsCreatedToday": sum(1 for r in records if r.createdAt and r.createdAt >= today),
        "recentRecords": recent[:RECENT_RECORDS_LIMIT],
        "lastUpdated": iso_timestamp(now),
    }


def export_records(store: RecordStore) -> List[Record]:
    """All records, for download as a JSON file."""
    return store.scan()


def get_record(store: RecordStore, record_id: str) -> Optional[Record]:
    """Single record by id, or None when absent."""
    return store.get(record_id)


def update_record(store: RecordStore, record_id: str, name: Optional[str], email: Optional[str]) -> Record:
    """Overwrite name and email; empty or missing values are stored as null."""
    attributes = {"name": name or None, "email": email or None}
    record = store.update(record_id, attributes)
    logger.log_record_operation("update", record_id, attributes)
    return record


def delete_record(store: RecordStore, record_id: str) -> None:
    """Delete by id without checking that the record exists."""
    store.delete(record_id)
    logger.log_record_operation("delete", record_id)
