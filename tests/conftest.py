"""
Shared pytest fixtures for database and filesystem node tests.
"""

import os
import tempfile

import pytest

from kvmount.engine.database import Database
from kvmount.fs.filesystem import FileSystem


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that is cleaned up after test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def db_path(temp_dir):
    """Provide a path for a database file."""
    return os.path.join(temp_dir, "test.db")


@pytest.fixture
def database(db_path):
    """Provide an open Database instance."""
    with Database(db_path) as db:
        yield db


@pytest.fixture
def filesystem(database):
    """Provide a FileSystem over the test database."""
    return FileSystem(database)


@pytest.fixture
def bukkit(database):
    """
    Provide a database with one top-level bucket holding a sub-bucket
    "one" and a value "two" = b"hello".
    """

    def prep(tx):
        b = tx.create_bucket(b"bukkit")
        b.create_bucket(b"one")
        b.put(b"two", b"hello")

    database.update_sync(prep)
    return database


@pytest.fixture
def read_value(database):
    """Provide a function reading a value straight from the database."""

    def stored_value(*path: bytes) -> bytes | None:
        def _get(tx):
            bucket = tx.bucket(path[0])
            for name in path[1:-1]:
                if bucket is None:
                    return None
                bucket = bucket.bucket(name)
            return None if bucket is None else bucket.get(path[-1])

        return database.view_sync(_get)

    return stored_value


@pytest.fixture
def write_value(database):
    """Provide a function writing a value straight to the database."""

    def put_value(*path: bytes, value: bytes) -> None:
        def _put(tx):
            bucket = tx.bucket(path[0])
            for name in path[1:-1]:
                bucket = bucket.bucket(name)
            bucket.put(path[-1], value)

        database.update_sync(_put)

    return put_value
