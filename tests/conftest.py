"""
Shared fixtures: every test runs against a fresh in-memory store unless it
builds its own.
"""

import os
import tempfile

# Configure before any userrecords import reads the environment
os.environ.setdefault('STORE_BACKEND', 'memory')
os.environ.setdefault('DB_PATH', os.path.join(tempfile.mkdtemp(), 'records.db'))

import pytest

from userrecords.core.store import InMemoryRecordStore, set_store, reset_store
from userrecords.core.router import RecordRouter


@pytest.fixture
def memory_store():
    """Fresh in-memory store installed as the process-wide store."""
    store = InMemoryRecordStore()
    set_store(store)
    yield store
    reset_store()


@pytest.fixture
def router(memory_store):
    """Router bound to the in-memory store."""
    return RecordRouter(store=memory_store)
