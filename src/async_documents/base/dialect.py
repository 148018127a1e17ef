# src/async_documents/base/dialect.py
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from .exceptions import UnsupportedOperationError
from .operators import OperatorSpec, QueryOperator

ParameterSet = List[Tuple[str, Any]]


class DocumentIndex(Enum):
    """The type of whole-document index to create (PostgreSQL only)."""

    # A GIN index with standard operations (all operators supported)
    FULL = "full"
    # A GIN index with JSONPath operations (optimized for @>, @?, @@ operators)
    OPTIMIZED = "optimized"


def split_field_path(field_path: str) -> List[str]:
    """Split a dotted field path ("Sub.Foo") into its keys."""
    parts = field_path.split(".")
    if any(not part for part in parts):
        raise ValueError(f"Invalid field path: {field_path!r}")
    return parts


class Dialect(ABC):
    """
    The small set of SQL capabilities that differ between JSON-capable engines.

    Everything else (statement skeletons, placeholder naming, parameter order)
    lives in the backend-neutral `QueryBuilder` and `Parameters`.
    """

    #: Human readable backend name, used in error messages.
    name: str = ""
    #: Column type used for the document payload.
    json_type: str = ""
    #: Operator table; see `async_documents.base.operators`.
    operators: Mapping[QueryOperator, OperatorSpec] = {}

    # --- Field path rendering ---
    @abstractmethod
    def path_parts(
        self, field_path: str, operator: QueryOperator, value: Any = None
    ) -> Dict[str, str]:
        """
        Render the expressions an operator template may reference.

        Must return at least the keys ``path`` (scalar extraction), ``json``
        (JSON-valued extraction), ``container`` and ``key`` (the parent
        document and the last key, for key-presence checks) and ``name``.
        """

    def index_path(self, field_path: str) -> str:
        """Expression used for a field in CREATE INDEX."""
        return f"({self.path_parts(field_path, QueryOperator.EQ)['path']})"

    def key_path(self, id_field: str) -> str:
        """Text expression of the document ID, as matched, indexed and upserted."""
        return self.path_parts(id_field, QueryOperator.EQ)["path"]

    # --- Document-changing expressions ---
    @abstractmethod
    def patch_expression(self, param: str) -> str:
        """Expression merging the bound partial document into `data`."""

    @abstractmethod
    def remove_fields_expression(self, field_names: Sequence[str]) -> str:
        """Expression removing the given fields from `data`."""

    @abstractmethod
    def field_name_params(self, field_names: Sequence[str]) -> ParameterSet:
        """Parameters matching `remove_fields_expression`."""

    # --- Whole-document predicates ---
    def where_data_contains(self, param: str) -> str:
        raise UnsupportedOperationError(
            f"JSON containment queries are not supported by the {self.name} backend."
        )

    def where_json_path_matches(self, param: str) -> str:
        raise UnsupportedOperationError(
            f"JSON Path queries are not supported by the {self.name} backend."
        )

    def document_index(self, table_name: str, index_kind: DocumentIndex) -> str:
        raise UnsupportedOperationError(
            f"Whole-document indexes are not supported by the {self.name} backend."
        )

    # --- Value preparation for field comparisons ---
    def prepare_scalar(self, value: Any) -> Any:
        return value

    def prepare_collection(self, values: Sequence[Any]) -> Any:
        return list(values)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"
