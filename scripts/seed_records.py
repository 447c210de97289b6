#!/usr/bin/env python3
"""
Bulk-generate synthetic user records against the configured store.
Writes go through the same batching as POST /records/bulk.
"""

import argparse
import sys
from pathlib import Path

# Add repository root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from userrecords.core.config import BULK_MAX_COUNT, get_store_backend
from userrecords.core.dao import bulk_create_records
from userrecords.core.store import get_store, StoreError


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Generate synthetic user records",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
  %(prog)s                  # Create 10 records
  %(prog)s --count 250      # Create 250 records in rounds of {BULK_MAX_COUNT}

Environment variables:
- STORE_BACKEND=sqlite|memory|dynamodb (default sqlite)
- DB_PATH=./data/records.db (sqlite backend)
- TABLE_NAME=users-table (dynamodb backend)
        """
    )

    parser.add_argument(
        "--count", "-c",
        type=int,
        default=10,
        help="Number of records to create"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Print every generated record"
    )

    args = parser.parse_args(argv)

    if args.count < 1:
        parser.error("--count must be at least 1")

    store = get_store()
    created = []

    try:
        remaining = args.count
        while remaining > 0:
            round_size = min(remaining, BULK_MAX_COUNT)
            created.extend(bulk_create_records(store, round_size))
            remaining -= round_size
    except StoreError as e:
        print(f"ERROR: Seeding failed after {len(created)} records: {e}")
        return 1

    print(f"Created {len(created)} records in {get_store_backend()} store")
    if args.verbose:
        for record in created:
            print(f"  {record.id}  {record.name} <{record.email}>")

    return 0


if __name__ == "__main__":
    sys.exit(main())
