"""
Record data model shared by the store backends and the router.
Timestamps are kept as ISO-8601 UTC strings so the store compares and sorts
them lexicographically.
"""

import uuid
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Any, Dict, Optional

RECORD_FIELDS = ("id", "name", "email", "createdAt")


def iso_timestamp(moment: datetime = None) -> str:
    """Format a moment as UTC ISO-8601 with millisecond precision and a Z suffix."""
    if moment is None:
        moment = datetime.now(timezone.utc)
    elif moment.tzinfo is None:
        # Naive datetimes are local wall-clock time
        moment = moment.astimezone()
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def local_midnight_timestamp(now: datetime = None) -> str:
    """ISO timestamp (UTC) of local midnight for the day containing ``now``."""
    if now is None:
        now = datetime.now()
    # Local calendar day of ``now``; naive input is already local
    now = now.astimezone()
    # Built naive so the offset in force at midnight itself is resolved
    midnight = datetime(now.year, now.month, now.day).astimezone()
    return iso_timestamp(midnight)


def new_record_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Record:
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    createdAt: Optional[str] = None

    @classmethod
    def new(cls, name: Optional[str], email: Optional[str], created_at: str = None) -> "Record":
        """Build a fresh record with a generated id and creation timestamp."""
        return cls(
            id=new_record_id(),
            name=name,
            email=email,
            createdAt=created_at or iso_timestamp()
        )

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "Record":
        """Build a record from a stored item, ignoring unknown attributes."""
        return cls(**{field: item.get(field) for field in RECORD_FIELDS})

    def to_item(self) -> Dict[str, Any]:
        """Attributes as stored; unset attributes are omitted like a schemaless table."""
        return {k: v for k, v in asdict(self).items() if v is not None or k in ("name", "email")}
