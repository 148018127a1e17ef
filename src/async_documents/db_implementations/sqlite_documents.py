# src/async_documents/db_implementations/sqlite_documents.py
import json
import logging
from datetime import date, datetime
from logging import LoggerAdapter
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import aiosqlite

from async_documents.base.config import Configuration, ConnectionFactory
from async_documents.base.dialect import Dialect, ParameterSet, split_field_path
from async_documents.base.execution import Driver
from async_documents.base.interfaces import DocumentStore
from async_documents.base.operators import QueryOperator, comparison_table
from async_documents.base.utils import prepare_for_storage


def _json_path(field_path: str) -> str:
    return "$." + ".".join(split_field_path(field_path))


class SqliteDialect(Dialect):
    """
    SQLite flavor of the document SQL (JSON1 functions, `->>` extraction).

    Documents are stored as TEXT. Whole-document containment and JSON Path
    predicates do not exist in SQLite; asking for them raises
    `UnsupportedOperationError` when the statement is built.
    """

    name = "SQLite"
    json_type = "TEXT"
    operators = comparison_table(
        IN="{path} IN (SELECT value FROM json_each({param}))",
        EXISTS="{path} IS NOT NULL",
        NOT_EXISTS="{path} IS NULL",
    )

    def path_parts(
        self, field_path: str, operator: QueryOperator, value: Any = None
    ) -> Dict[str, str]:
        parts = split_field_path(field_path)
        if len(parts) == 1:
            path = f"data ->> '{field_path}'"
            json_value = f"data -> '{field_path}'"
        else:
            path = f"data ->> '{_json_path(field_path)}'"
            json_value = f"data -> '{_json_path(field_path)}'"
        return {
            "path": path,
            "json": json_value,
            "container": "data",
            "key": _json_path(field_path),
            "name": field_path,
        }

    def key_path(self, id_field: str) -> str:
        # ->> keeps a JSON number as INTEGER, which never equals the bound text ID
        return f"CAST({super().key_path(id_field)} AS TEXT)"

    def patch_expression(self, param: str) -> str:
        return f"json_patch(data, json({param}))"

    def remove_fields_expression(self, field_names: Sequence[str]) -> str:
        names = ", ".join(f"@name{idx}" for idx in range(len(field_names)))
        return f"json_remove(data, {names})"

    def field_name_params(self, field_names: Sequence[str]) -> ParameterSet:
        return [
            (f"@name{idx}", _json_path(name)) for idx, name in enumerate(field_names)
        ]

    def prepare_scalar(self, value: Any) -> Any:
        # ISO 8601 text, the form datetimes take inside stored documents
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        return value

    def prepare_collection(self, values: Sequence[Any]) -> Any:
        # Bound as one JSON array, expanded server-side by json_each
        return json.dumps(
            prepare_for_storage([self.prepare_scalar(v) for v in values])
        )


class SqliteDriver(Driver):
    """
    aiosqlite adapter.

    `@name` placeholders are native to SQLite; sqlite3 binds them from a
    mapping keyed by the name without its prefix.
    """

    def to_driver(self, query: str, parameters: ParameterSet) -> Tuple[str, Dict[str, Any]]:
        return query, {name.lstrip("@"): value for name, value in parameters}

    async def fetch(
        self, conn: aiosqlite.Connection, query: str, parameters: ParameterSet
    ) -> List[aiosqlite.Row]:
        sql, params = self.to_driver(query, parameters)
        async with conn.execute(sql, params) as cursor:
            cursor.row_factory = aiosqlite.Row
            return list(await cursor.fetchall())

    async def execute(
        self, conn: aiosqlite.Connection, query: str, parameters: ParameterSet
    ) -> int:
        sql, params = self.to_driver(query, parameters)
        async with conn.execute(sql, params) as cursor:
            # DDL reports -1
            return max(cursor.rowcount, 0)


def sqlite_connection_factory(database: str, **kwargs: Any) -> ConnectionFactory:
    """
    Create a connection factory opening `database` with aiosqlite.

    Connections are opened in autocommit mode (`isolation_level=None`) unless
    overridden, and closed when the operation using them completes. Note that
    every ":memory:" connection is a separate, empty database.
    """
    kwargs.setdefault("isolation_level", None)

    def _connect() -> aiosqlite.Connection:
        # aiosqlite.Connection is itself an async context manager (open/close)
        return aiosqlite.connect(database, **kwargs)

    return _connect


class SqliteDocumentStore(DocumentStore):
    """
    Document store for SQLite using aiosqlite.

    Caller-provided connections are used as-is: no commit or rollback is
    issued, so a connection opened in a transactional mode must be committed
    by its owner.
    """

    def __init__(
        self,
        config: Optional[Configuration] = None,
        logger: Optional[Union[logging.Logger, LoggerAdapter]] = None,
    ):
        super().__init__(
            SqliteDialect(),
            SqliteDriver(),
            config,
            logger or logging.getLogger(f"{__name__}.{self.__class__.__name__}"),
        )

    @classmethod
    def for_database(
        cls,
        database: str,
        config: Optional[Configuration] = None,
        logger: Optional[Union[logging.Logger, LoggerAdapter]] = None,
    ) -> "SqliteDocumentStore":
        """Create a store whose connections are opened on `database`."""
        config = (config or Configuration()).with_connection_factory(
            sqlite_connection_factory(database)
        )
        return cls(config, logger)
