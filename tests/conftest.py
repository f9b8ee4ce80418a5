"""Shared fixtures for gridsql tests."""

from unittest.mock import MagicMock

import pytest

from gridsql.database import Database
from gridsql.settings import _reload_settings


@pytest.fixture
def db():
    """In-memory SQLite database."""
    database = Database({"type": "sqlite", "database": ":memory:", "abort_on_connect_failure": False})
    yield database
    database.close()


@pytest.fixture
def mock_db():
    """Factory for databases of any dialect backed by a mocked connection."""

    def _create(dialect: str) -> Database:
        return Database(connection=MagicMock(name=f"{dialect}_connection"), dialect=dialect)

    return _create


@pytest.fixture
def statements():
    """Collects every statement passed to a database's debug callback."""
    collected = []

    def _attach(database: Database):
        database.debug(collected.append)
        return collected

    return _attach


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Isolate tests from GRIDSQL_* variables of the surrounding environment."""
    import os

    for key in list(os.environ):
        if key.startswith("GRIDSQL_"):
            monkeypatch.delenv(key, raising=False)
    _reload_settings()
    yield
    monkeypatch.undo()
    _reload_settings()
