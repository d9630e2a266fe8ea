"""Shared fixtures: a throwaway SQLite database per test."""

import pytest

from load.db.sqlite_adapter import SQLiteAdapter
from load.store import DataStore


@pytest.fixture
def adapter(tmp_path):
    """Connected SQLite adapter with the schema created."""
    adapter = SQLiteAdapter(tmp_path / "memento.db")
    adapter.connect()
    adapter.create_schema()
    yield adapter
    adapter.close()


@pytest.fixture
def store(adapter):
    return DataStore(adapter)


@pytest.fixture
def user_id(store):
    """A user with an API key and the default timezone."""
    user_id = store.create_user("alice")
    store.upsert_user_config(user_id, limitless_api_key="test-key")
    return user_id
