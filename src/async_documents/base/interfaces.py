# src/async_documents/base/interfaces.py
import logging
from contextlib import asynccontextmanager
from logging import LoggerAdapter
from typing import (Any, AsyncGenerator, Callable, Generic, List, Optional,
                    Sequence, Type, TypeVar, Union)

from .config import Configuration
from .dialect import Dialect, DocumentIndex, ParameterSet
from .execution import (Driver, Executor, RowMapper, from_data, to_count,
                        to_exists)
from .operators import QueryFilter, QueryOperator
from .parameters import Parameters
from .query import QueryBuilder

T = TypeVar("T")


def _field_names(field_names: Union[str, Sequence[str]]) -> List[str]:
    if isinstance(field_names, str):
        return [field_names]
    return list(field_names)


class DocumentStore(Generic[T]):
    """
    Document operations over one JSON-capable relational backend.

    The backend is described by a `Dialect` (SQL differences) and a `Driver`
    (how statements reach the database). Every operation builds one statement,
    binds its parameters, and executes it once.

    Every operation accepts an optional `conn`:
      - when given, it is used as-is and left open (the caller owns it);
      - when omitted, a connection is taken from
        `Configuration.connection_factory` and released on every exit path.
        Without a factory, `ConfigurationError` is raised before any I/O.

    Operations that only some backends support (JSON containment, JSON Path)
    raise `UnsupportedOperationError` when the statement is built.
    """

    def __init__(
        self,
        dialect: Dialect,
        driver: Driver,
        config: Optional[Configuration] = None,
        logger: Optional[Union[logging.Logger, LoggerAdapter]] = None,
    ):
        self._dialect = dialect
        self._driver = driver
        self._config = config or Configuration()
        self._logger = logger or logging.getLogger(
            f"{__name__}.{self.__class__.__name__}"
        )
        self._query = QueryBuilder(dialect, self._config.id_field)
        self._params = Parameters(dialect, self._config.serializer)
        self._executor = Executor(driver, self._logger)

        self._logger.info(
            f"Document store created for the {dialect.name} backend "
            f"(ID Field: '{self._config.id_field}')."
        )

    # --- Properties ---
    @property
    def config(self) -> Configuration:
        return self._config

    @property
    def query(self) -> QueryBuilder:
        """The statement builder used by this store."""
        return self._query

    @property
    def parameters(self) -> Parameters:
        """The parameter binder used by this store."""
        return self._params

    # --- Connection/Session Management ---
    @asynccontextmanager
    async def _get_session(self, conn: Any = None) -> AsyncGenerator[Any, None]:
        """Yield the caller's connection, or acquire (and always release) one."""
        if conn is not None:
            yield conn
            return
        async with self._config.connect() as acquired:
            self._logger.debug(f"Acquired connection {acquired} from factory.")
            yield acquired
        self._logger.debug("Released connection to factory.")

    def _from_data(self, doc_type: Type[T]) -> RowMapper:
        return from_data(self._config.serializer, doc_type)

    @staticmethod
    def _field(
        field_name: str, op: Union[QueryOperator, str], value: Any = None
    ) -> QueryFilter:
        return QueryFilter(field_name, op, value)

    async def _list(self, query: str, params: ParameterSet, mapper: RowMapper, conn: Any):
        async with self._get_session(conn) as session:
            return await self._executor.list(session, query, params, mapper)

    async def _single(self, query: str, params: ParameterSet, mapper: RowMapper, conn: Any):
        async with self._get_session(conn) as session:
            return await self._executor.single(session, query, params, mapper)

    async def _scalar(
        self, query: str, params: ParameterSet, mapper: RowMapper, default: Any, conn: Any
    ):
        async with self._get_session(conn) as session:
            return await self._executor.scalar(session, query, params, mapper, default)

    async def _non_query(self, query: str, params: ParameterSet, conn: Any) -> int:
        async with self._get_session(conn) as session:
            return await self._executor.non_query(session, query, params)

    # --- Custom SQL ---
    async def custom_list(
        self, query: str, parameters: ParameterSet, mapper: RowMapper, conn: Any = None
    ) -> List[Any]:
        """Execute a query that returns a list of results."""
        return await self._list(query, parameters, mapper, conn)

    async def custom_single(
        self, query: str, parameters: ParameterSet, mapper: RowMapper, conn: Any = None
    ) -> Optional[Any]:
        """Execute a query that returns one or no results (None if not found)."""
        return await self._single(query, parameters, mapper, conn)

    async def custom_scalar(
        self,
        query: str,
        parameters: ParameterSet,
        mapper: RowMapper,
        default: Any = None,
        conn: Any = None,
    ) -> Any:
        """Execute a query that returns a scalar value (`default` if no row)."""
        return await self._scalar(query, parameters, mapper, default, conn)

    async def custom_non_query(
        self, query: str, parameters: ParameterSet, conn: Any = None
    ) -> int:
        """Execute a query that returns no results."""
        return await self._non_query(query, parameters, conn)

    # --- Definition ---
    async def ensure_table(self, table_name: str, conn: Any = None) -> None:
        """Create a document table and its unique key index, if they do not exist."""
        create_table = self._query.ensure_table(table_name)
        create_key = self._query.ensure_key(table_name)
        async with self._get_session(conn) as session:
            await self._executor.non_query(session, create_table, [])
            await self._executor.non_query(session, create_key, [])
        self._logger.info(f"Ensured document table '{table_name}'.")

    async def ensure_field_index(
        self, table_name: str, index_name: str, fields: Sequence[str], conn: Any = None
    ) -> None:
        """Create an index on one or more document fields, if it does not exist."""
        query = self._query.ensure_index_on(table_name, index_name, fields)
        await self._non_query(query, [], conn)
        self._logger.info(f"Ensured index '{index_name}' on '{table_name}' ({list(fields)}).")

    async def ensure_document_index(
        self, table_name: str, index_kind: DocumentIndex, conn: Any = None
    ) -> None:
        """Create a whole-document index, if it does not exist."""
        query = self._query.ensure_document_index(table_name, index_kind)
        await self._non_query(query, [], conn)
        self._logger.info(
            f"Ensured {index_kind.value} document index on '{table_name}'."
        )

    # --- Insert / Save ---
    async def insert(self, table_name: str, document: Any, conn: Any = None) -> int:
        """Insert a new document. A duplicate ID raises the driver's integrity error."""
        return await self._non_query(
            self._query.insert(table_name), self._params.data_param(document), conn
        )

    async def save(self, table_name: str, document: Any, conn: Any = None) -> int:
        """Insert a document, or replace the existing document with the same ID."""
        return await self._non_query(
            self._query.save(table_name), self._params.data_param(document), conn
        )

    # --- Count ---
    async def count_all(self, table_name: str, conn: Any = None) -> int:
        """Count all documents in a table."""
        return await self._scalar(
            self._query.count_all(table_name), [], to_count, 0, conn
        )

    async def count_by_field(
        self,
        table_name: str,
        field_name: str,
        op: Union[QueryOperator, str],
        value: Any = None,
        conn: Any = None,
    ) -> int:
        """Count documents matching a comparison on a JSON field."""
        field = self._field(field_name, op, value)
        return await self._scalar(
            self._query.count_by_field(table_name, field),
            self._params.field_params(field),
            to_count,
            0,
            conn,
        )

    async def count_by_contains(
        self, table_name: str, criteria: Any, conn: Any = None
    ) -> int:
        """Count documents matching a JSON containment query (@>)."""
        return await self._scalar(
            self._query.count_by_contains(table_name),
            self._params.criteria_param(criteria),
            to_count,
            0,
            conn,
        )

    async def count_by_json_path(
        self, table_name: str, json_path: str, conn: Any = None
    ) -> int:
        """Count documents matching a JSON Path match query (@?)."""
        return await self._scalar(
            self._query.count_by_json_path(table_name),
            self._params.path_param(json_path),
            to_count,
            0,
            conn,
        )

    # --- Exists ---
    async def exists_by_id(self, table_name: str, doc_id: Any, conn: Any = None) -> bool:
        """Determine if a document exists for the given ID."""
        return await self._scalar(
            self._query.exists_by_id(table_name),
            self._params.id_param(doc_id),
            to_exists,
            False,
            conn,
        )

    async def exists_by_field(
        self,
        table_name: str,
        field_name: str,
        op: Union[QueryOperator, str],
        value: Any = None,
        conn: Any = None,
    ) -> bool:
        """Determine if documents exist matching a comparison on a JSON field."""
        field = self._field(field_name, op, value)
        return await self._scalar(
            self._query.exists_by_field(table_name, field),
            self._params.field_params(field),
            to_exists,
            False,
            conn,
        )

    async def exists_by_contains(
        self, table_name: str, criteria: Any, conn: Any = None
    ) -> bool:
        """Determine if documents exist matching a JSON containment query (@>)."""
        return await self._scalar(
            self._query.exists_by_contains(table_name),
            self._params.criteria_param(criteria),
            to_exists,
            False,
            conn,
        )

    async def exists_by_json_path(
        self, table_name: str, json_path: str, conn: Any = None
    ) -> bool:
        """Determine if documents exist matching a JSON Path match query (@?)."""
        return await self._scalar(
            self._query.exists_by_json_path(table_name),
            self._params.path_param(json_path),
            to_exists,
            False,
            conn,
        )

    # --- Find ---
    async def find_all(
        self, table_name: str, doc_type: Type[T], conn: Any = None
    ) -> List[T]:
        """Retrieve all documents in the given table."""
        return await self._list(
            self._query.select_from_table(table_name), [], self._from_data(doc_type), conn
        )

    async def find_by_id(
        self, table_name: str, doc_id: Any, doc_type: Type[T], conn: Any = None
    ) -> Optional[T]:
        """Retrieve a document by its ID (None if not found)."""
        return await self._single(
            self._query.find_by_id(table_name),
            self._params.id_param(doc_id),
            self._from_data(doc_type),
            conn,
        )

    async def find_by_field(
        self,
        table_name: str,
        field_name: str,
        op: Union[QueryOperator, str],
        value: Any,
        doc_type: Type[T],
        conn: Any = None,
    ) -> List[T]:
        """Retrieve documents via a comparison on a JSON field."""
        field = self._field(field_name, op, value)
        return await self._list(
            self._query.find_by_field(table_name, field),
            self._params.field_params(field),
            self._from_data(doc_type),
            conn,
        )

    async def find_first_by_field(
        self,
        table_name: str,
        field_name: str,
        op: Union[QueryOperator, str],
        value: Any,
        doc_type: Type[T],
        conn: Any = None,
    ) -> Optional[T]:
        """Retrieve the first document matching a comparison on a JSON field."""
        field = self._field(field_name, op, value)
        return await self._single(
            QueryBuilder.first(self._query.find_by_field(table_name, field)),
            self._params.field_params(field),
            self._from_data(doc_type),
            conn,
        )

    async def find_by_contains(
        self, table_name: str, criteria: Any, doc_type: Type[T], conn: Any = None
    ) -> List[T]:
        """Retrieve documents matching a JSON containment query (@>)."""
        return await self._list(
            self._query.find_by_contains(table_name),
            self._params.criteria_param(criteria),
            self._from_data(doc_type),
            conn,
        )

    async def find_first_by_contains(
        self, table_name: str, criteria: Any, doc_type: Type[T], conn: Any = None
    ) -> Optional[T]:
        """Retrieve the first document matching a JSON containment query (@>)."""
        return await self._single(
            QueryBuilder.first(self._query.find_by_contains(table_name)),
            self._params.criteria_param(criteria),
            self._from_data(doc_type),
            conn,
        )

    async def find_by_json_path(
        self, table_name: str, json_path: str, doc_type: Type[T], conn: Any = None
    ) -> List[T]:
        """Retrieve documents matching a JSON Path match query (@?)."""
        return await self._list(
            self._query.find_by_json_path(table_name),
            self._params.path_param(json_path),
            self._from_data(doc_type),
            conn,
        )

    async def find_first_by_json_path(
        self, table_name: str, json_path: str, doc_type: Type[T], conn: Any = None
    ) -> Optional[T]:
        """Retrieve the first document matching a JSON Path match query (@?)."""
        return await self._single(
            QueryBuilder.first(self._query.find_by_json_path(table_name)),
            self._params.path_param(json_path),
            self._from_data(doc_type),
            conn,
        )

    # --- Update (full replacement) ---
    async def update_full(
        self, table_name: str, document: Any, doc_id: Any = None, conn: Any = None
    ) -> int:
        """
        Replace an entire document by its ID.

        When `doc_id` is omitted it is read from the document's configured ID field.
        """
        key = doc_id if doc_id is not None else self._config.id_of(document)
        return await self._non_query(
            self._query.update_full(table_name),
            self._params.id_param(key) + self._params.data_param(document),
            conn,
        )

    async def update_by_func(
        self,
        table_name: str,
        id_func: Callable[[Any], Any],
        document: Any,
        conn: Any = None,
    ) -> int:
        """Replace an entire document, using `id_func` to obtain its ID."""
        return await self.update_full(table_name, document, id_func(document), conn)

    # --- Patch (partial update) ---
    async def patch_by_id(
        self, table_name: str, doc_id: Any, patch: Any, conn: Any = None
    ) -> int:
        """Merge a partial document into the document with the given ID."""
        return await self._non_query(
            self._query.patch_by_id(table_name),
            self._params.id_param(doc_id) + self._params.data_param(patch),
            conn,
        )

    async def patch_by_field(
        self,
        table_name: str,
        field_name: str,
        op: Union[QueryOperator, str],
        value: Any,
        patch: Any,
        conn: Any = None,
    ) -> int:
        """Merge a partial document into documents matching a comparison on a JSON field."""
        field = self._field(field_name, op, value)
        return await self._non_query(
            self._query.patch_by_field(table_name, field),
            self._params.field_params(field) + self._params.data_param(patch),
            conn,
        )

    async def patch_by_contains(
        self, table_name: str, criteria: Any, patch: Any, conn: Any = None
    ) -> int:
        """Merge a partial document into documents matching a JSON containment query (@>)."""
        return await self._non_query(
            self._query.patch_by_contains(table_name),
            self._params.data_param(patch) + self._params.criteria_param(criteria),
            conn,
        )

    async def patch_by_json_path(
        self, table_name: str, json_path: str, patch: Any, conn: Any = None
    ) -> int:
        """Merge a partial document into documents matching a JSON Path match query (@?)."""
        return await self._non_query(
            self._query.patch_by_json_path(table_name),
            self._params.data_param(patch) + self._params.path_param(json_path),
            conn,
        )

    # --- Remove fields ---
    async def remove_fields_by_id(
        self,
        table_name: str,
        doc_id: Any,
        field_names: Union[str, Sequence[str]],
        conn: Any = None,
    ) -> int:
        """Remove one or more fields from the document with the given ID."""
        names = _field_names(field_names)
        return await self._non_query(
            self._query.remove_fields_by_id(table_name, names),
            self._params.field_name_params(names) + self._params.id_param(doc_id),
            conn,
        )

    async def remove_fields_by_field(
        self,
        table_name: str,
        field_name: str,
        op: Union[QueryOperator, str],
        value: Any,
        field_names: Union[str, Sequence[str]],
        conn: Any = None,
    ) -> int:
        """Remove one or more fields from documents matching a comparison on a JSON field."""
        field = self._field(field_name, op, value)
        names = _field_names(field_names)
        return await self._non_query(
            self._query.remove_fields_by_field(table_name, field, names),
            self._params.field_name_params(names) + self._params.field_params(field),
            conn,
        )

    async def remove_fields_by_contains(
        self,
        table_name: str,
        criteria: Any,
        field_names: Union[str, Sequence[str]],
        conn: Any = None,
    ) -> int:
        """Remove one or more fields from documents matching a JSON containment query (@>)."""
        names = _field_names(field_names)
        return await self._non_query(
            self._query.remove_fields_by_contains(table_name, names),
            self._params.field_name_params(names) + self._params.criteria_param(criteria),
            conn,
        )

    async def remove_fields_by_json_path(
        self,
        table_name: str,
        json_path: str,
        field_names: Union[str, Sequence[str]],
        conn: Any = None,
    ) -> int:
        """Remove one or more fields from documents matching a JSON Path match query (@?)."""
        names = _field_names(field_names)
        return await self._non_query(
            self._query.remove_fields_by_json_path(table_name, names),
            self._params.field_name_params(names) + self._params.path_param(json_path),
            conn,
        )

    # --- Delete ---
    async def delete_by_id(self, table_name: str, doc_id: Any, conn: Any = None) -> int:
        """Delete a document by its ID."""
        return await self._non_query(
            self._query.delete_by_id(table_name), self._params.id_param(doc_id), conn
        )

    async def delete_by_field(
        self,
        table_name: str,
        field_name: str,
        op: Union[QueryOperator, str],
        value: Any = None,
        conn: Any = None,
    ) -> int:
        """Delete documents matching a comparison on a JSON field."""
        field = self._field(field_name, op, value)
        return await self._non_query(
            self._query.delete_by_field(table_name, field),
            self._params.field_params(field),
            conn,
        )

    async def delete_by_contains(
        self, table_name: str, criteria: Any, conn: Any = None
    ) -> int:
        """Delete documents matching a JSON containment query (@>)."""
        return await self._non_query(
            self._query.delete_by_contains(table_name),
            self._params.criteria_param(criteria),
            conn,
        )

    async def delete_by_json_path(
        self, table_name: str, json_path: str, conn: Any = None
    ) -> int:
        """Delete documents matching a JSON Path match query (@?)."""
        return await self._non_query(
            self._query.delete_by_json_path(table_name),
            self._params.path_param(json_path),
            conn,
        )
