# src/async_documents/base/query.py
"""
SQL text for every document operation.

`QueryBuilder` is pure: it performs no I/O, holds no mutable state, and
returns byte-identical text for identical inputs. Values never appear in the
generated text; they are referenced through named ``@placeholders`` whose
values `async_documents.base.parameters.Parameters` produces. Table and field
names are trusted and emitted verbatim.
"""
from typing import Sequence

from .dialect import Dialect, DocumentIndex
from .operators import QueryFilter, resolve_operator


ID_PARAM = "@id"
DATA_PARAM = "@data"
FIELD_PARAM = "@field"
CRITERIA_PARAM = "@criteria"
PATH_PARAM = "@path"


def _unqualified(table_name: str) -> str:
    """Strip a schema prefix ("schema.table" -> "table") for use in index names."""
    return table_name.split(".")[-1]


class QueryBuilder:
    """Builds dialect-specific SQL statements for document tables."""

    def __init__(self, dialect: Dialect, id_field: str = "Id"):
        self._dialect = dialect
        self._id_field = id_field

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    @property
    def id_field(self) -> str:
        return self._id_field

    # --- Fragments ---
    def select_from_table(self, table_name: str) -> str:
        """Create a SELECT clause to retrieve the document data from the given table."""
        return f"SELECT data FROM {table_name}"

    def where_by_field(self, field: QueryFilter, param: str = FIELD_PARAM) -> str:
        """Create a WHERE clause fragment comparing a field in a JSON document."""
        spec = resolve_operator(field.operator, self._dialect)
        parts = self._dialect.path_parts(field.field_path, field.operator, field.value)
        return spec.template.format(
            param=param, min=f"{param}min", max=f"{param}max", **parts
        )

    def where_by_id(self, param: str = ID_PARAM) -> str:
        """Create a WHERE clause fragment matching a document's ID."""
        # IDs are always bound as strings
        return f"{self._dialect.key_path(self._id_field)} = {param}"

    def where_data_contains(self, param: str = CRITERIA_PARAM) -> str:
        """Create a WHERE clause fragment matching documents containing the bound shape."""
        return self._dialect.where_data_contains(param)

    def where_json_path_matches(self, param: str = PATH_PARAM) -> str:
        """Create a WHERE clause fragment matching documents against a bound JSON Path."""
        return self._dialect.where_json_path_matches(param)

    @staticmethod
    def first(query: str) -> str:
        """Restrict a query to its first row."""
        return f"{query} LIMIT 1"

    # --- Definition ---
    def ensure_table(self, table_name: str) -> str:
        """SQL statement to create a document table."""
        return (
            f"CREATE TABLE IF NOT EXISTS {table_name} "
            f"(data {self._dialect.json_type} NOT NULL)"
        )

    def ensure_index_on(
        self, table_name: str, index_name: str, fields: Sequence[str]
    ) -> str:
        """
        SQL statement to create an index on one or more fields in a JSON document.

        Each field may carry a sort direction after a space ("Name DESC").
        """
        if not fields:
            raise ValueError("At least one field is required to create an index")
        json_fields = []
        for field in fields:
            parts = field.split(" ")
            field_name = parts[0]
            direction = f" {parts[1]}" if len(parts) > 1 else ""
            json_fields.append(f"{self._dialect.index_path(field_name)}{direction}")
        return (
            f"CREATE INDEX IF NOT EXISTS idx_{_unqualified(table_name)}_{index_name} "
            f"ON {table_name} ({', '.join(json_fields)})"
        )

    def ensure_key(self, table_name: str) -> str:
        """SQL statement to create the unique key index for a document table."""
        return (
            f"CREATE UNIQUE INDEX IF NOT EXISTS idx_{_unqualified(table_name)}_key "
            f"ON {table_name} (({self._dialect.key_path(self._id_field)}))"
        )

    def ensure_document_index(self, table_name: str, index_kind: DocumentIndex) -> str:
        """SQL statement to create a whole-document index."""
        return self._dialect.document_index(table_name, index_kind)

    # --- Insert / Save / Update ---
    def insert(self, table_name: str) -> str:
        """Query to insert a document."""
        return f"INSERT INTO {table_name} VALUES ({DATA_PARAM})"

    def save(self, table_name: str) -> str:
        """Query to insert a document, or replace it if its ID already exists."""
        return (
            f"INSERT INTO {table_name} VALUES ({DATA_PARAM}) "
            f"ON CONFLICT (({self._dialect.key_path(self._id_field)})) "
            f"DO UPDATE SET data = EXCLUDED.data"
        )

    def update_full(self, table_name: str) -> str:
        """Query to replace a whole document by its ID."""
        return f"UPDATE {table_name} SET data = {DATA_PARAM} WHERE {self.where_by_id()}"

    # --- Count ---
    def count_all(self, table_name: str) -> str:
        return f"SELECT COUNT(*) AS it FROM {table_name}"

    def count_by_field(self, table_name: str, field: QueryFilter) -> str:
        return f"{self.count_all(table_name)} WHERE {self.where_by_field(field)}"

    def count_by_contains(self, table_name: str) -> str:
        return f"{self.count_all(table_name)} WHERE {self.where_data_contains()}"

    def count_by_json_path(self, table_name: str) -> str:
        return f"{self.count_all(table_name)} WHERE {self.where_json_path_matches()}"

    # --- Exists ---
    @staticmethod
    def _exists(table_name: str, where: str) -> str:
        return f"SELECT EXISTS (SELECT 1 FROM {table_name} WHERE {where}) AS it"

    def exists_by_id(self, table_name: str) -> str:
        return self._exists(table_name, self.where_by_id())

    def exists_by_field(self, table_name: str, field: QueryFilter) -> str:
        return self._exists(table_name, self.where_by_field(field))

    def exists_by_contains(self, table_name: str) -> str:
        return self._exists(table_name, self.where_data_contains())

    def exists_by_json_path(self, table_name: str) -> str:
        return self._exists(table_name, self.where_json_path_matches())

    # --- Find ---
    def find_by_id(self, table_name: str) -> str:
        return f"{self.select_from_table(table_name)} WHERE {self.where_by_id()}"

    def find_by_field(self, table_name: str, field: QueryFilter) -> str:
        return f"{self.select_from_table(table_name)} WHERE {self.where_by_field(field)}"

    def find_by_contains(self, table_name: str) -> str:
        return f"{self.select_from_table(table_name)} WHERE {self.where_data_contains()}"

    def find_by_json_path(self, table_name: str) -> str:
        return (
            f"{self.select_from_table(table_name)} "
            f"WHERE {self.where_json_path_matches()}"
        )

    # --- Patch (merge a partial document) ---
    def _patch(self, table_name: str, where: str) -> str:
        return (
            f"UPDATE {table_name} SET data = "
            f"{self._dialect.patch_expression(DATA_PARAM)} WHERE {where}"
        )

    def patch_by_id(self, table_name: str) -> str:
        return self._patch(table_name, self.where_by_id())

    def patch_by_field(self, table_name: str, field: QueryFilter) -> str:
        return self._patch(table_name, self.where_by_field(field))

    def patch_by_contains(self, table_name: str) -> str:
        return self._patch(table_name, self.where_data_contains())

    def patch_by_json_path(self, table_name: str) -> str:
        return self._patch(table_name, self.where_json_path_matches())

    # --- Remove fields ---
    def _remove_fields(
        self, table_name: str, field_names: Sequence[str], where: str
    ) -> str:
        if not field_names:
            raise ValueError("At least one field name is required to remove fields")
        return (
            f"UPDATE {table_name} SET data = "
            f"{self._dialect.remove_fields_expression(field_names)} WHERE {where}"
        )

    def remove_fields_by_id(self, table_name: str, field_names: Sequence[str]) -> str:
        return self._remove_fields(table_name, field_names, self.where_by_id())

    def remove_fields_by_field(
        self, table_name: str, field: QueryFilter, field_names: Sequence[str]
    ) -> str:
        return self._remove_fields(table_name, field_names, self.where_by_field(field))

    def remove_fields_by_contains(
        self, table_name: str, field_names: Sequence[str]
    ) -> str:
        return self._remove_fields(table_name, field_names, self.where_data_contains())

    def remove_fields_by_json_path(
        self, table_name: str, field_names: Sequence[str]
    ) -> str:
        return self._remove_fields(
            table_name, field_names, self.where_json_path_matches()
        )

    # --- Delete ---
    def delete_by_id(self, table_name: str) -> str:
        return f"DELETE FROM {table_name} WHERE {self.where_by_id()}"

    def delete_by_field(self, table_name: str, field: QueryFilter) -> str:
        return f"DELETE FROM {table_name} WHERE {self.where_by_field(field)}"

    def delete_by_contains(self, table_name: str) -> str:
        return f"DELETE FROM {table_name} WHERE {self.where_data_contains()}"

    def delete_by_json_path(self, table_name: str) -> str:
        return f"DELETE FROM {table_name} WHERE {self.where_json_path_matches()}"
