# tests/conftest.py
import logging
import shutil
import uuid
from typing import Any, Dict, List, Optional

import asyncpg
import pytest
import pytest_asyncio
from pydantic import BaseModel

from async_documents.base.config import Configuration
from async_documents.db_implementations.postgresql_documents import \
    PostgresDocumentStore
from async_documents.db_implementations.sqlite_documents import \
    SqliteDocumentStore

# --- Constants ---
TEST_TABLE = "test_table"

# --- List of available implementation keys ---
STORE_IMPLEMENTATIONS = ["sqlite", "postgresql"]


# --- Availability Checks ---
def is_postgres_available():
    """pytest-postgresql starts its own server, which needs the PostgreSQL binaries."""
    return shutil.which("pg_ctl") is not None


AVAILABLE_IMPLEMENTATIONS = ["sqlite"]
if is_postgres_available():
    AVAILABLE_IMPLEMENTATIONS.append("postgresql")
else:
    logging.warning("pg_ctl not found. Skipping PostgreSQL tests.")


# --- Test Documents ---
class SubDocument(BaseModel):
    Foo: str = ""
    Bar: str = ""


class JsonDocument(BaseModel):
    """The document shape stored by the integration tests."""

    Id: str = ""
    Value: str = ""
    NumValue: int = 0
    Sub: Optional[SubDocument] = None


def make_test_documents() -> List[Dict[str, Any]]:
    """
    Five documents; two have Value "purple", two have a Sub document, and
    NumValue runs 0, 10, 4, 17, 18.
    """
    return [
        {"Id": "one", "Value": "FIRST!", "NumValue": 0},
        {"Id": "two", "Value": "another", "NumValue": 10,
         "Sub": {"Foo": "green", "Bar": "blue"}},
        {"Id": "three", "Value": "", "NumValue": 4},
        {"Id": "four", "Value": "purple", "NumValue": 17,
         "Sub": {"Foo": "green", "Bar": "red"}},
        {"Id": "five", "Value": "purple", "NumValue": 18},
    ]


# --- Logger Fixture ---
@pytest.fixture(scope="session")
def logger():
    """Create a test logger."""
    _logger = logging.getLogger("test_documents_logger")
    if not _logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        handler.setFormatter(formatter)
        handler.setLevel(logging.DEBUG)
        _logger.addHandler(handler)
        _logger.setLevel(logging.DEBUG)
        _logger.propagate = False
    return logging.LoggerAdapter(_logger, {})


# --- PostgreSQL Pool (Function Scoped) ---
@pytest_asyncio.fixture
async def postgres_pool(postgresql_proc):
    """
    Creates an asyncpg pool on a unique temporary database for each test.
    """
    temp_db_name = f"test_db_{uuid.uuid4().hex}"
    connect_kwargs = dict(
        host=postgresql_proc.host,
        port=postgresql_proc.port,
        user=postgresql_proc.user,
        password=postgresql_proc.password or None,
    )

    admin_conn = await asyncpg.connect(database="postgres", **connect_kwargs)
    try:
        await admin_conn.execute(f'CREATE DATABASE "{temp_db_name}"')
        pool = await asyncpg.create_pool(database=temp_db_name, **connect_kwargs)

        yield pool

        await pool.close()
        await admin_conn.execute(f'DROP DATABASE "{temp_db_name}"')
    finally:
        await admin_conn.close()


# --- Store Factories (Function Scoped) ---
@pytest.fixture
def sqlite_store_factory(tmp_path, logger):
    """Stores over one temporary SQLite database file."""
    database = str(tmp_path / "documents.db")

    def _create(config: Optional[Configuration] = None) -> SqliteDocumentStore:
        return SqliteDocumentStore.for_database(database, config, logger)

    return _create


@pytest.fixture
def postgresql_store_factory(postgres_pool, logger):
    """Stores over one temporary PostgreSQL database."""

    def _create(config: Optional[Configuration] = None) -> PostgresDocumentStore:
        return PostgresDocumentStore.for_pool(postgres_pool, config, logger)

    return _create


@pytest.fixture(params=AVAILABLE_IMPLEMENTATIONS)
def store_factory(request):
    """Returns the store factory for the requested implementation."""
    if request.param not in AVAILABLE_IMPLEMENTATIONS:
        pytest.skip(f"{request.param} is not available in this environment")
    return request.getfixturevalue(f"{request.param}_store_factory")


@pytest_asyncio.fixture
async def document_store(store_factory):
    """A store whose test table exists and is empty."""
    store = store_factory()
    await store.ensure_table(TEST_TABLE)
    return store


@pytest_asyncio.fixture
async def loaded_store(document_store):
    """A store whose test table holds the five test documents."""
    for document in make_test_documents():
        await document_store.insert(TEST_TABLE, document)
    return document_store
