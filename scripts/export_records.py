#!/usr/bin/env python3
"""
Write every stored record to a JSON file, in the same format as GET /records/export.
"""

import argparse
import sys
from pathlib import Path

# Add repository root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from userrecords.core.config import EXPORT_FILENAME
from userrecords.core.router import RecordRouter


def main(argv=None):
    parser = argparse.ArgumentParser(description="Export user records to a JSON file")

    parser.add_argument(
        "output",
        nargs="?",
        default=EXPORT_FILENAME,
        help=f"Output file (default {EXPORT_FILENAME})"
    )

    args = parser.parse_args(argv)

    result = RecordRouter().dispatch("GET", "/records/export")
    if result.status_code != 200:
        print(f"ERROR: Export failed: {result.json().get('message')}")
        return 1

    Path(args.output).write_text(result.body, encoding="utf-8")
    print(f"Exported {len(result.json())} records to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
