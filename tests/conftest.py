"""
Pytest configuration for zorm.

Provides fixtures for:
- Resetting the process-wide Manager and settings cache between tests
- A scripted fake DB-API connection for unit tests
- An in-memory sqlite3 database seeded with the demo item/user rows
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Generator

import pytest

from helpers import FakeConnection
from scripts.seed_demo import seed
from zorm.config import get_settings
from zorm.infrastructure.sql_client import SqlConnection
from zorm.manager import Manager, ThreadLocalManager
from zorm.session import Session


@pytest.fixture(autouse=True)
def reset_manager() -> Generator[None, None, None]:
    """
    Isolate tests from the class-level Manager state and cached settings.
    """
    Manager.reset()
    get_settings.cache_clear()
    yield
    ThreadLocalManager.close_session()
    Manager.reset()
    get_settings.cache_clear()


@pytest.fixture
def restore_root_logging() -> Generator[None, None, None]:
    """
    Snapshot the root logger so tests may call configure_logging freely.
    """
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def fake_connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def fake_session(fake_connection: FakeConnection) -> Generator[Session, None, None]:
    session = Session(fake_connection)
    yield session
    session.close()


@pytest.fixture
def sqlite_connection() -> Generator[SqlConnection, None, None]:
    """
    In-memory sqlite3 database with the demo tables and rows.
    """
    connection = SqlConnection(sqlite3.connect(":memory:"))
    seed(connection, "sqlite3")
    try:
        yield connection
    finally:
        connection.close()


@pytest.fixture
def session(sqlite_connection: SqlConnection) -> Generator[Session, None, None]:
    session = Session(sqlite_connection)
    try:
        yield session
    finally:
        session.close()
