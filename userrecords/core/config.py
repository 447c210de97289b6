"""
Service configuration.
Every setting is read from the environment once at import time; the accessor
functions re-read the variables that tests are expected to flip at runtime.
"""

import os
from pathlib import Path

# Store backend selection
STORE_BACKEND = os.getenv("STORE_BACKEND", "sqlite")  # sqlite|memory|dynamodb

# SQLite backend
DB_PATH = os.getenv("DB_PATH", "./data/records.db")

# DynamoDB backend
TABLE_NAME = os.getenv("TABLE_NAME", "users-table")
AWS_REGION = os.getenv("AWS_REGION")  # None lets boto3 resolve the region itself

# Debug flag; also toggles the interactive API docs
DEBUG = os.getenv("DEBUG", "true").lower() == "true"

# Bulk generation limits
BULK_DEFAULT_COUNT = int(os.getenv("BULK_DEFAULT_COUNT", "10"))
BULK_MAX_COUNT = int(os.getenv("BULK_MAX_COUNT", "100"))

# DynamoDB BatchWriteItem accepts at most 25 put requests per call
BATCH_WRITE_LIMIT = 25

# Stats and export
RECENT_RECORDS_LIMIT = int(os.getenv("RECENT_RECORDS_LIMIT", "5"))
EXPORT_FILENAME = os.getenv("EXPORT_FILENAME", "users.json")

# CORS origin echoed on every router response
CORS_ALLOW_ORIGIN = os.getenv("CORS_ALLOW_ORIGIN", "*")

VERSION = "1.0.0"

VALID_STORE_BACKENDS = ["sqlite", "memory", "dynamodb"]


def get_store_backend():
    """Get configured store backend name (sqlite|memory|dynamodb)."""
    return os.getenv("STORE_BACKEND", STORE_BACKEND).lower()


def get_db_path():
    """Get the SQLite database path."""
    return os.getenv("DB_PATH", DB_PATH)


def get_table_name():
    """Get the DynamoDB table name."""
    return os.getenv("TABLE_NAME", TABLE_NAME)


def get_cors_allow_origin():
    """Get the origin allowed to read API responses from a browser."""
    return os.getenv("CORS_ALLOW_ORIGIN", CORS_ALLOW_ORIGIN)


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "true").lower() == "true"


def ensure_db_directory(db_path: str = None):
    """Ensure the database directory exists."""
    Path(db_path or get_db_path()).parent.mkdir(parents=True, exist_ok=True)


def validate_config():
    """Validate configuration and return any issues."""
    issues = []

    if get_store_backend() not in VALID_STORE_BACKENDS:
        issues.append(f"Invalid STORE_BACKEND: {get_store_backend()}")

    if get_store_backend() == "dynamodb" and not get_table_name():
        issues.append("STORE_BACKEND=dynamodb requires TABLE_NAME")

    if BULK_MAX_COUNT < 1:
        issues.append("BULK_MAX_COUNT must be >= 1")

    if not 1 <= BULK_DEFAULT_COUNT <= max(BULK_MAX_COUNT, 1):
        issues.append("BULK_DEFAULT_COUNT must be between 1 and BULK_MAX_COUNT")

    if RECENT_RECORDS_LIMIT < 0:
        issues.append("RECENT_RECORDS_LIMIT must be >= 0")

    return issues
