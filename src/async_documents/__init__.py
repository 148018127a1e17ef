# src/async_documents/__init__.py

"""
Async Documents Library Initialization.

This package stores JSON documents in relational tables (one JSON column per
row) and provides asynchronous document operations over them, with SQLite
(aiosqlite) and PostgreSQL (asyncpg) backends.

It initializes a logger with a NullHandler and makes the document stores,
configuration, query building blocks and exceptions available at the top level.
"""

import logging

# --------------------------------------------------------------------------
# Logging Setup
# --------------------------------------------------------------------------
# Library logs are discarded unless the consuming application configures
# logging for "async_documents".
logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())
logger.propagate = False

# --------------------------------------------------------------------------
# Core Interface, Configuration and Exception Exports
# --------------------------------------------------------------------------
from .base.interfaces import DocumentStore
from .base.config import Configuration, DocumentSerializer, JsonDocumentSerializer
from .base.exceptions import ConfigurationError, UnsupportedOperationError

# --------------------------------------------------------------------------
# Query Building Exports
# --------------------------------------------------------------------------
from .base.operators import QueryFilter, QueryOperator
from .base.dialect import DocumentIndex
from .base.query import QueryBuilder
from .base.parameters import Parameters
from .base.execution import from_data, to_count, to_exists

# --------------------------------------------------------------------------
# Store Implementation Exports
# --------------------------------------------------------------------------
from .db_implementations.sqlite_documents import (SqliteDocumentStore,
                                                  sqlite_connection_factory)
from .db_implementations.postgresql_documents import (PostgresDocumentStore,
                                                      postgres_connection_factory,
                                                      postgres_pool_factory)

__all__ = [
    # Core
    "DocumentStore",
    "Configuration",
    "DocumentSerializer",
    "JsonDocumentSerializer",
    # Exceptions
    "ConfigurationError",
    "UnsupportedOperationError",
    # Query
    "QueryFilter",
    "QueryOperator",
    "DocumentIndex",
    "QueryBuilder",
    "Parameters",
    # Row mappers
    "from_data",
    "to_count",
    "to_exists",
    # Implementations
    "SqliteDocumentStore",
    "sqlite_connection_factory",
    "PostgresDocumentStore",
    "postgres_pool_factory",
    "postgres_connection_factory",
    # Logging
    "logger",
]

__version__ = "0.1.0"
