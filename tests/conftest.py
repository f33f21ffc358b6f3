"""Shared fixtures: an in-memory SQLite database behind SQLAlchemy."""

import sqlite3
from collections.abc import Iterator
from datetime import datetime

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from sqlhooks import Handle
from sqlhooks.config import SqlHooksConfig, clear_config_instance, set_config_instance

sqlite3.register_adapter(datetime, lambda value: value.isoformat(sep=" "))

SCHEMA = [
    """CREATE TABLE people (
        id INTEGER PRIMARY KEY,
        first_name VARCHAR(50),
        last_name VARCHAR(50),
        email VARCHAR(100),
        created TIMESTAMP,
        modified TIMESTAMP
    )""",
    "CREATE TABLE people2 (id INTEGER PRIMARY KEY, first_name VARCHAR(50), last_name VARCHAR(50))",
    "CREATE TABLE users (id INTEGER PRIMARY KEY, posts_count INTEGER)",
    "CREATE TABLE posts (id INTEGER PRIMARY KEY, content VARCHAR(140), user_id INTEGER)",
    "INSERT INTO users (id, posts_count) VALUES (1, 0)",
]


@pytest.fixture
def engine() -> Iterator[Engine]:
    """Fresh in-memory database with the test schema."""
    engine = create_engine("sqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False})
    with engine.begin() as conn:
        for statement in SCHEMA:
            conn.execute(text(statement))
    yield engine
    engine.dispose()


@pytest.fixture
def handle(engine: Engine) -> Iterator[Handle]:
    """Handle in a transaction committed at the end of the test."""
    with Handle.open(engine) as h:
        yield h


@pytest.fixture(autouse=True)
def config() -> Iterator[SqlHooksConfig]:
    """Default configuration, reset after each test."""
    instance = SqlHooksConfig()
    set_config_instance(instance)
    yield instance
    clear_config_instance()


@pytest.fixture
def scalar(engine: Engine):
    """Run a one-off query in its own transaction and return the first column."""

    def fetch(sql: str, **params: object) -> object:
        with Handle.open(engine) as h:
            query = h.create_query(sql)
            for name, value in params.items():
                query.bind(name, value)
            return query.scalar()

    return fetch
