# src/async_documents/db_implementations/postgresql_documents.py
import logging
import re
from contextlib import asynccontextmanager
from datetime import date, datetime
from decimal import Decimal
from logging import LoggerAdapter
from typing import (Any, AsyncGenerator, Dict, List, Optional, Sequence,
                    Tuple, Union)

import asyncpg

from async_documents.base.config import Configuration, ConnectionFactory
from async_documents.base.dialect import (Dialect, DocumentIndex, ParameterSet,
                                          split_field_path)
from async_documents.base.execution import Driver
from async_documents.base.interfaces import DocumentStore
from async_documents.base.operators import QueryOperator, comparison_table

# Named placeholders outside quoted literals and identifiers; "@>" and "@?"
# operators never match.
_NAMED_PARAM = re.compile(r"'(?:[^']|'')*'|\"(?:[^\"]|\"\")*\"|@(\w+)")
# Command status tags end with the row count ("UPDATE 3", "INSERT 0 1").
_STATUS_COUNT = re.compile(r"(\d+)$")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _comparison_value(operator: QueryOperator, value: Any) -> Any:
    """The value whose type decides between text and numeric comparison."""
    if operator in (QueryOperator.BETWEEN, QueryOperator.IN):
        if isinstance(value, (list, tuple)) and value:
            return value[0]
        if isinstance(value, (set, frozenset)) and value:
            return next(iter(value))
        return None
    return value


class PostgresDialect(Dialect):
    """
    PostgreSQL flavor of the document SQL (JSONB operators).

    Text extraction (`->>`, `#>>`) is compared as-is, except that numeric
    values compare against the path cast to `numeric` (NULL where the stored
    value is not a JSON number). Containment (`@>`) and JSON Path (`@?`) are
    supported for whole documents and single fields.
    """

    name = "PostgreSQL"
    json_type = "JSONB"
    operators = comparison_table(
        IN="{path} = ANY({param})",
        EXISTS="{container} ? '{key}'",
        NOT_EXISTS="NOT COALESCE({container} ? '{key}', false)",
        CONTAINS="{json} @> {param}",
        JSON_PATH_MATCH="{json} @? {param}::jsonpath",
    )

    def path_parts(
        self, field_path: str, operator: QueryOperator, value: Any = None
    ) -> Dict[str, str]:
        parts = split_field_path(field_path)
        if len(parts) == 1:
            path = f"data ->> '{field_path}'"
            json_value = f"data -> '{field_path}'"
            container = "data"
        else:
            path = f"data #>> '{{{','.join(parts)}}}'"
            json_value = f"data #> '{{{','.join(parts)}}}'"
            container = f"data #> '{{{','.join(parts[:-1])}}}'"
        if _is_number(_comparison_value(operator, value)):
            # non-numeric JSON values compare as NULL rather than failing the cast
            path = (
                f"(CASE WHEN jsonb_typeof({json_value}) = 'number' "
                f"THEN {path} END)::numeric"
            )
        return {
            "path": path,
            "json": json_value,
            "container": container,
            "key": parts[-1],
            "name": field_path,
        }

    def patch_expression(self, param: str) -> str:
        return f"data || {param}"

    def remove_fields_expression(self, field_names: Sequence[str]) -> str:
        return "data" + "".join(
            f" #- @name{idx}::text[]" for idx in range(len(field_names))
        )

    def field_name_params(self, field_names: Sequence[str]) -> ParameterSet:
        return [
            (f"@name{idx}", split_field_path(name))
            for idx, name in enumerate(field_names)
        ]

    def where_data_contains(self, param: str) -> str:
        return f"data @> {param}"

    def where_json_path_matches(self, param: str) -> str:
        return f"data @? {param}::jsonpath"

    def document_index(self, table_name: str, index_kind: DocumentIndex) -> str:
        extra_ops = " jsonb_path_ops" if index_kind == DocumentIndex.OPTIMIZED else ""
        index_table = table_name.split(".")[-1]
        return (
            f"CREATE INDEX IF NOT EXISTS idx_{index_table} "
            f"ON {table_name} USING GIN (data{extra_ops})"
        )

    def prepare_scalar(self, value: Any) -> Any:
        if value is None:
            return None
        if _is_number(value):
            # bound against `::numeric`
            return value if isinstance(value, Decimal) else Decimal(str(value))
        if isinstance(value, bool):
            # matches the text `->>` yields for JSON booleans
            return "true" if value else "false"
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        return str(value)

    def prepare_collection(self, values: Sequence[Any]) -> Any:
        return [self.prepare_scalar(v) for v in values]


class PostgresDriver(Driver):
    """
    asyncpg adapter.

    Rewrites `@name` placeholders to asyncpg's positional `$n`, numbering
    names in order of first appearance, and passes the values positionally.
    `conn` may be an `asyncpg.Connection` or an `asyncpg.Pool`.
    """

    def to_driver(self, query: str, parameters: ParameterSet) -> Tuple[str, List[Any]]:
        values = dict(parameters)
        order: List[str] = []

        def _replace(match: "re.Match") -> str:
            if match.group(1) is None:
                return match.group(0)
            name = f"@{match.group(1)}"
            if name not in values:
                raise KeyError(f"No value bound for placeholder {name} in: {query}")
            if name not in order:
                order.append(name)
            return f"${order.index(name) + 1}"

        sql = _NAMED_PARAM.sub(_replace, query)
        return sql, [values[name] for name in order]

    async def fetch(self, conn: Any, query: str, parameters: ParameterSet) -> List[asyncpg.Record]:
        sql, args = self.to_driver(query, parameters)
        return await conn.fetch(sql, *args)

    async def execute(self, conn: Any, query: str, parameters: ParameterSet) -> int:
        sql, args = self.to_driver(query, parameters)
        status = await conn.execute(sql, *args)
        match = _STATUS_COUNT.search(status or "")
        return int(match.group(1)) if match else 0


def postgres_pool_factory(pool: asyncpg.Pool) -> ConnectionFactory:
    """Create a connection factory acquiring connections from an asyncpg pool."""

    def _acquire():
        return pool.acquire()

    return _acquire


def postgres_connection_factory(dsn: Optional[str] = None, **kwargs: Any) -> ConnectionFactory:
    """Create a connection factory opening (and closing) one asyncpg connection per operation."""

    @asynccontextmanager
    async def _connect() -> AsyncGenerator[asyncpg.Connection, None]:
        conn = await asyncpg.connect(dsn, **kwargs)
        try:
            yield conn
        finally:
            await conn.close()

    return _connect


class PostgresDocumentStore(DocumentStore):
    """
    Document store for PostgreSQL using asyncpg.

    Documents live in a single JSONB `data` column. JSONB values travel as
    JSON text (asyncpg's default codec), so no per-connection codec setup is
    required.
    """

    def __init__(
        self,
        config: Optional[Configuration] = None,
        logger: Optional[Union[logging.Logger, LoggerAdapter]] = None,
    ):
        super().__init__(
            PostgresDialect(),
            PostgresDriver(),
            config,
            logger or logging.getLogger(f"{__name__}.{self.__class__.__name__}"),
        )

    @classmethod
    def for_pool(
        cls,
        pool: asyncpg.Pool,
        config: Optional[Configuration] = None,
        logger: Optional[Union[logging.Logger, LoggerAdapter]] = None,
    ) -> "PostgresDocumentStore":
        """Create a store whose connections are acquired from `pool`."""
        config = (config or Configuration()).with_connection_factory(
            postgres_pool_factory(pool)
        )
        return cls(config, logger)
