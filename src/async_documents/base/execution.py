# src/async_documents/base/execution.py
import logging
from abc import ABC, abstractmethod
from logging import LoggerAdapter
from typing import Any, Callable, List, Optional, Tuple, Type, TypeVar, Union

from .config import DocumentSerializer
from .dialect import ParameterSet

T = TypeVar("T")

# Maps one driver row (aiosqlite.Row / asyncpg.Record) to a result value.
RowMapper = Callable[[Any], T]

base_logger = logging.getLogger(__name__)


# --- Row mappers ---
def from_document(
    serializer: DocumentSerializer, doc_type: Type[T], column: str = "data"
) -> RowMapper:
    """Create a row mapper deserializing the JSON document held in `column`."""

    def _map(row: Any) -> T:
        return serializer.deserialize(row[column], doc_type)

    return _map


def from_data(serializer: DocumentSerializer, doc_type: Type[T]) -> RowMapper:
    """Create a row mapper deserializing the `data` column."""
    return from_document(serializer, doc_type, "data")


def to_count(row: Any) -> int:
    """Extract a count from the first column."""
    return int(row[0])


def to_exists(row: Any) -> bool:
    """Extract a true/false value from the first column (a boolean or a 0/1 count)."""
    return bool(row[0])


# --- Driver adapter ---
class Driver(ABC):
    """
    Thin adapter over one database driver.

    Converts `QueryBuilder` text and a `ParameterSet` to the driver's
    placeholder convention and runs exactly one statement. Errors raised by
    the driver are never caught here.
    """

    @abstractmethod
    def to_driver(self, query: str, parameters: ParameterSet) -> Tuple[str, Any]:
        """Return (driver SQL, driver parameters) for a built query."""

    @abstractmethod
    async def fetch(self, conn: Any, query: str, parameters: ParameterSet) -> List[Any]:
        """Execute a statement and return all of its rows."""

    @abstractmethod
    async def execute(self, conn: Any, query: str, parameters: ParameterSet) -> int:
        """Execute a statement and return the number of affected rows."""


# --- Execution pipeline ---
class Executor:
    """
    Runs one statement against a caller-provided connection and shapes the result
    as a list, an optional single value, a scalar, or an affected-row count.

    No retries and no error translation: driver and mapping errors are logged
    and re-raised unmodified.
    """

    def __init__(
        self,
        driver: Driver,
        logger: Optional[Union[logging.Logger, LoggerAdapter]] = None,
    ):
        self._driver = driver
        self._logger = logger or base_logger

    async def list(
        self, conn: Any, query: str, parameters: ParameterSet, mapper: RowMapper
    ) -> List[T]:
        """Execute a query and map every returned row, preserving row order."""
        self._logger.debug(f"Executing list query: SQL='{query}', Params={parameters}")
        try:
            rows = await self._driver.fetch(conn, query, parameters)
            return [mapper(row) for row in rows]
        except Exception as e:
            self._logger.error(
                f"Error executing list query (SQL='{query}'): {e}", exc_info=True
            )
            raise

    async def single(
        self, conn: Any, query: str, parameters: ParameterSet, mapper: RowMapper
    ) -> Optional[T]:
        """Execute a query and return its first mapped row, or None if there are none."""
        results = await self.list(conn, query, parameters, mapper)
        return results[0] if results else None

    async def scalar(
        self,
        conn: Any,
        query: str,
        parameters: ParameterSet,
        mapper: RowMapper,
        default: Any = None,
    ) -> Any:
        """Execute a query and map its first row, or return `default` if no row came back."""
        self._logger.debug(f"Executing scalar query: SQL='{query}', Params={parameters}")
        try:
            rows = await self._driver.fetch(conn, query, parameters)
            return mapper(rows[0]) if rows else default
        except Exception as e:
            self._logger.error(
                f"Error executing scalar query (SQL='{query}'): {e}", exc_info=True
            )
            raise

    async def non_query(self, conn: Any, query: str, parameters: ParameterSet) -> int:
        """Execute a statement that returns no rows; returns the affected-row count."""
        self._logger.debug(f"Executing statement: SQL='{query}', Params={parameters}")
        try:
            affected = await self._driver.execute(conn, query, parameters)
        except Exception as e:
            self._logger.error(
                f"Error executing statement (SQL='{query}'): {e}", exc_info=True
            )
            raise
        self._logger.debug(f"Statement affected {affected} row(s).")
        return affected
