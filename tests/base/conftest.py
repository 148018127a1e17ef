import pytest

from async_documents.base.config import JsonDocumentSerializer
from async_documents.base.parameters import Parameters
from async_documents.base.query import QueryBuilder
from async_documents.db_implementations.postgresql_documents import \
    PostgresDialect
from async_documents.db_implementations.sqlite_documents import SqliteDialect


@pytest.fixture
def sqlite_query() -> QueryBuilder:
    return QueryBuilder(SqliteDialect())


@pytest.fixture
def postgres_query() -> QueryBuilder:
    return QueryBuilder(PostgresDialect())


@pytest.fixture
def sqlite_params() -> Parameters:
    return Parameters(SqliteDialect(), JsonDocumentSerializer())


@pytest.fixture
def postgres_params() -> Parameters:
    return Parameters(PostgresDialect(), JsonDocumentSerializer())
