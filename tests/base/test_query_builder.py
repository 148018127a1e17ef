# tests/base/test_query_builder.py
import pytest

from async_documents.base.dialect import DocumentIndex
from async_documents.base.exceptions import UnsupportedOperationError
from async_documents.base.operators import QueryFilter, QueryOperator
from async_documents.base.query import QueryBuilder
from async_documents.db_implementations.sqlite_documents import SqliteDialect

SQLITE_KEY = "CAST(data ->> 'Id' AS TEXT)"
POSTGRES_KEY = "data ->> 'Id'"
NUM_VALUE = (
    "(CASE WHEN jsonb_typeof(data -> 'NumValue') = 'number' "
    "THEN data ->> 'NumValue' END)::numeric"
)


# --- Shared statements ---
@pytest.mark.parametrize(
    "builder, key", [("sqlite_query", SQLITE_KEY), ("postgres_query", POSTGRES_KEY)]
)
def test_shared_statements(builder, key, request):
    query = request.getfixturevalue(builder)
    assert query.select_from_table("tbl") == "SELECT data FROM tbl"
    assert query.where_by_id() == f"{key} = @id"
    assert query.insert("tbl") == "INSERT INTO tbl VALUES (@data)"
    assert query.save("tbl") == (
        f"INSERT INTO tbl VALUES (@data) ON CONFLICT (({key})) "
        "DO UPDATE SET data = EXCLUDED.data"
    )
    assert query.count_all("tbl") == "SELECT COUNT(*) AS it FROM tbl"
    assert query.exists_by_id("tbl") == (
        f"SELECT EXISTS (SELECT 1 FROM tbl WHERE {key} = @id) AS it"
    )
    assert query.find_by_id("tbl") == f"SELECT data FROM tbl WHERE {key} = @id"
    assert query.update_full("tbl") == (
        f"UPDATE tbl SET data = @data WHERE {key} = @id"
    )
    assert query.delete_by_id("tbl") == f"DELETE FROM tbl WHERE {key} = @id"
    assert query.ensure_key("tbl") == (
        f"CREATE UNIQUE INDEX IF NOT EXISTS idx_tbl_key ON tbl (({key}))"
    )


@pytest.mark.parametrize("builder", ["sqlite_query", "postgres_query"])
def test_statements_are_deterministic(builder, request):
    query = request.getfixturevalue(builder)
    field = QueryFilter("NumValue", QueryOperator.BETWEEN, (10, 17))
    assert query.find_by_field("tbl", field) == query.find_by_field("tbl", field)
    assert query.remove_fields_by_id("tbl", ["a", "b"]) == query.remove_fields_by_id(
        "tbl", ["a", "b"]
    )


def test_first_appends_limit(sqlite_query):
    assert QueryBuilder.first(sqlite_query.find_by_id("tbl")) == (
        f"SELECT data FROM tbl WHERE {SQLITE_KEY} = @id LIMIT 1"
    )


def test_custom_id_field():
    query = QueryBuilder(SqliteDialect(), id_field="key")
    assert query.where_by_id() == "CAST(data ->> 'key' AS TEXT) = @id"
    assert query.ensure_key("tbl") == (
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_tbl_key ON tbl "
        "((CAST(data ->> 'key' AS TEXT)))"
    )


def test_sqlite_key_is_not_a_field_comparison(sqlite_query):
    # Field comparisons keep the JSON type; only the key is compared as text
    field = QueryFilter("Id", QueryOperator.EQ, "12")
    assert sqlite_query.where_by_field(field) == "data ->> 'Id' = @field"
    assert sqlite_query.where_by_id() == "CAST(data ->> 'Id' AS TEXT) = @id"


# --- Definition ---
def test_ensure_table(sqlite_query, postgres_query):
    assert sqlite_query.ensure_table("tbl") == (
        "CREATE TABLE IF NOT EXISTS tbl (data TEXT NOT NULL)"
    )
    assert postgres_query.ensure_table("tbl") == (
        "CREATE TABLE IF NOT EXISTS tbl (data JSONB NOT NULL)"
    )


def test_ensure_index_on_with_direction(sqlite_query):
    assert sqlite_query.ensure_index_on("tbl", "test", ["Name", "Age DESC"]) == (
        "CREATE INDEX IF NOT EXISTS idx_tbl_test ON tbl "
        "((data ->> 'Name'), (data ->> 'Age') DESC)"
    )


def test_ensure_index_on_nested_field(sqlite_query, postgres_query):
    assert sqlite_query.ensure_index_on("tbl", "foo", ["Sub.Foo"]) == (
        "CREATE INDEX IF NOT EXISTS idx_tbl_foo ON tbl ((data ->> '$.Sub.Foo'))"
    )
    assert postgres_query.ensure_index_on("tbl", "foo", ["Sub.Foo"]) == (
        "CREATE INDEX IF NOT EXISTS idx_tbl_foo ON tbl ((data #>> '{Sub,Foo}'))"
    )


def test_index_names_drop_the_schema(postgres_query):
    assert postgres_query.ensure_key("app.tbl") == (
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_tbl_key ON app.tbl ((data ->> 'Id'))"
    )


def test_ensure_index_on_requires_fields(sqlite_query):
    with pytest.raises(ValueError):
        sqlite_query.ensure_index_on("tbl", "empty", [])


def test_ensure_document_index(postgres_query, sqlite_query):
    assert postgres_query.ensure_document_index("tbl", DocumentIndex.FULL) == (
        "CREATE INDEX IF NOT EXISTS idx_tbl ON tbl USING GIN (data)"
    )
    assert postgres_query.ensure_document_index("tbl", DocumentIndex.OPTIMIZED) == (
        "CREATE INDEX IF NOT EXISTS idx_tbl ON tbl "
        "USING GIN (data jsonb_path_ops)"
    )
    with pytest.raises(UnsupportedOperationError):
        sqlite_query.ensure_document_index("tbl", DocumentIndex.FULL)


# --- SQLite field comparisons ---
def test_sqlite_where_by_field(sqlite_query):
    def where(field, op, value=None):
        return sqlite_query.where_by_field(QueryFilter(field, op, value))

    assert where("Value", QueryOperator.EQ, "purple") == "data ->> 'Value' = @field"
    assert where("Value", QueryOperator.NE, "purple") == "data ->> 'Value' <> @field"
    assert where("NumValue", QueryOperator.GT, 15) == "data ->> 'NumValue' > @field"
    assert where("NumValue", QueryOperator.LE, 15) == "data ->> 'NumValue' <= @field"
    assert where("NumValue", QueryOperator.BETWEEN, (1, 2)) == (
        "data ->> 'NumValue' BETWEEN @fieldmin AND @fieldmax"
    )
    assert where("Value", QueryOperator.IN, ["a", "b"]) == (
        "data ->> 'Value' IN (SELECT value FROM json_each(@field))"
    )
    assert where("Sub", QueryOperator.EXISTS) == "data ->> 'Sub' IS NOT NULL"
    assert where("Sub", QueryOperator.NOT_EXISTS) == "data ->> 'Sub' IS NULL"
    assert where("Sub.Foo", QueryOperator.EQ, "green") == (
        "data ->> '$.Sub.Foo' = @field"
    )


def test_sqlite_custom_parameter_name(sqlite_query):
    field = QueryFilter("Value", QueryOperator.EQ, "x")
    assert sqlite_query.where_by_field(field, "@val") == "data ->> 'Value' = @val"


def test_sqlite_document_changes(sqlite_query):
    field = QueryFilter("Value", QueryOperator.EQ, "purple")
    assert sqlite_query.patch_by_id("tbl") == (
        "UPDATE tbl SET data = json_patch(data, json(@data)) "
        f"WHERE {SQLITE_KEY} = @id"
    )
    assert sqlite_query.patch_by_field("tbl", field) == (
        "UPDATE tbl SET data = json_patch(data, json(@data)) "
        "WHERE data ->> 'Value' = @field"
    )
    assert sqlite_query.remove_fields_by_id("tbl", ["a", "b"]) == (
        "UPDATE tbl SET data = json_remove(data, @name0, @name1) "
        f"WHERE {SQLITE_KEY} = @id"
    )
    assert sqlite_query.delete_by_field("tbl", field) == (
        "DELETE FROM tbl WHERE data ->> 'Value' = @field"
    )
    assert sqlite_query.count_by_field(
        "tbl", QueryFilter("NumValue", QueryOperator.BETWEEN, (10, 17))
    ) == (
        "SELECT COUNT(*) AS it FROM tbl "
        "WHERE data ->> 'NumValue' BETWEEN @fieldmin AND @fieldmax"
    )
    assert sqlite_query.exists_by_field(
        "tbl", QueryFilter("Sub", QueryOperator.EXISTS)
    ) == "SELECT EXISTS (SELECT 1 FROM tbl WHERE data ->> 'Sub' IS NOT NULL) AS it"


def test_remove_fields_requires_names(sqlite_query):
    with pytest.raises(ValueError):
        sqlite_query.remove_fields_by_id("tbl", [])


@pytest.mark.parametrize(
    "build",
    [
        lambda q: q.find_by_contains("tbl"),
        lambda q: q.count_by_json_path("tbl"),
        lambda q: q.exists_by_contains("tbl"),
        lambda q: q.patch_by_json_path("tbl"),
        lambda q: q.remove_fields_by_contains("tbl", ["a"]),
        lambda q: q.delete_by_json_path("tbl"),
        lambda q: q.where_by_field(QueryFilter("Sub", QueryOperator.CONTAINS, {})),
        lambda q: q.where_by_field(
            QueryFilter("Sub", QueryOperator.JSON_PATH_MATCH, "$.a")
        ),
    ],
)
def test_sqlite_rejects_document_matching(sqlite_query, build):
    with pytest.raises(UnsupportedOperationError):
        build(sqlite_query)


# --- PostgreSQL field comparisons ---
def test_postgres_where_by_field(postgres_query):
    def where(field, op, value=None):
        return postgres_query.where_by_field(QueryFilter(field, op, value))

    assert where("Value", QueryOperator.EQ, "purple") == "data ->> 'Value' = @field"
    assert where("Flag", QueryOperator.EQ, True) == "data ->> 'Flag' = @field"
    assert where("NumValue", QueryOperator.GT, 15) == (
        f"{NUM_VALUE} > @field"
    )
    assert where("NumValue", QueryOperator.BETWEEN, [10, 17]) == (
        f"{NUM_VALUE} BETWEEN @fieldmin AND @fieldmax"
    )
    assert where("Value", QueryOperator.BETWEEN, ["a", "m"]) == (
        "data ->> 'Value' BETWEEN @fieldmin AND @fieldmax"
    )
    assert where("Value", QueryOperator.IN, ["a", "b"]) == (
        "data ->> 'Value' = ANY(@field)"
    )
    assert where("NumValue", QueryOperator.IN, [1, 2]) == (
        f"{NUM_VALUE} = ANY(@field)"
    )
    assert where("Sub.Foo", QueryOperator.EQ, "green") == (
        "data #>> '{Sub,Foo}' = @field"
    )
    assert where("Sub", QueryOperator.EXISTS) == "data ? 'Sub'"
    assert where("Sub", QueryOperator.NOT_EXISTS) == "NOT COALESCE(data ? 'Sub', false)"
    assert where("Sub.Foo", QueryOperator.NOT_EXISTS) == (
        "NOT COALESCE(data #> '{Sub}' ? 'Foo', false)"
    )
    assert where("Sub.Foo", QueryOperator.EXISTS) == "data #> '{Sub}' ? 'Foo'"
    assert where("Sub", QueryOperator.CONTAINS, {"Foo": "green"}) == (
        "data -> 'Sub' @> @field"
    )
    assert where("Sub", QueryOperator.JSON_PATH_MATCH, "$.Foo") == (
        "data -> 'Sub' @? @field::jsonpath"
    )


def test_postgres_document_matching(postgres_query):
    assert postgres_query.find_by_contains("tbl") == (
        "SELECT data FROM tbl WHERE data @> @criteria"
    )
    assert postgres_query.count_by_json_path("tbl") == (
        "SELECT COUNT(*) AS it FROM tbl WHERE data @? @path::jsonpath"
    )
    assert postgres_query.exists_by_contains("tbl") == (
        "SELECT EXISTS (SELECT 1 FROM tbl WHERE data @> @criteria) AS it"
    )
    assert postgres_query.delete_by_json_path("tbl") == (
        "DELETE FROM tbl WHERE data @? @path::jsonpath"
    )


def test_postgres_document_changes(postgres_query):
    assert postgres_query.patch_by_id("tbl") == (
        "UPDATE tbl SET data = data || @data WHERE data ->> 'Id' = @id"
    )
    assert postgres_query.patch_by_contains("tbl") == (
        "UPDATE tbl SET data = data || @data WHERE data @> @criteria"
    )
    assert postgres_query.remove_fields_by_id("tbl", ["a", "b"]) == (
        "UPDATE tbl SET data = data #- @name0::text[] #- @name1::text[] "
        "WHERE data ->> 'Id' = @id"
    )
    assert postgres_query.remove_fields_by_json_path("tbl", ["a"]) == (
        "UPDATE tbl SET data = data #- @name0::text[] WHERE data @? @path::jsonpath"
    )
