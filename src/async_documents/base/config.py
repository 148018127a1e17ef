# src/async_documents/base/config.py
import dataclasses
import json
from dataclasses import dataclass, field
from typing import (Any, AsyncContextManager, Callable, Optional, Protocol,
                    Type, TypeVar, runtime_checkable)

from pydantic import TypeAdapter

from .exceptions import ConfigurationError
from .utils import document_key, prepare_for_storage

T = TypeVar("T")

# A zero-argument callable returning an async context manager that yields an
# open driver connection and releases it on exit.
ConnectionFactory = Callable[[], AsyncContextManager[Any]]


@runtime_checkable
class DocumentSerializer(Protocol):
    """Translates documents to and from the JSON text stored in the data column."""

    def serialize(self, value: Any) -> str: ...

    def deserialize(self, text: str, doc_type: Type[T]) -> T: ...


class JsonDocumentSerializer:
    """
    Default serializer.

    Documents are converted with `prepare_for_storage` (so pydantic models and
    dataclasses are accepted) and dumped compactly with `json`. Deserialization
    validates the decoded JSON against the requested type with a pydantic
    `TypeAdapter`, which handles models, dataclasses, TypedDicts and plain
    `dict`/`list`/`Any`.
    """

    def __init__(self) -> None:
        self._adapters: dict = {}

    def serialize(self, value: Any) -> str:
        return json.dumps(prepare_for_storage(value), separators=(",", ":"))

    def deserialize(self, text: str, doc_type: Type[T]) -> T:
        adapter = self._adapters.get(doc_type)
        if adapter is None:
            adapter = TypeAdapter(doc_type)
            self._adapters[doc_type] = adapter
        return adapter.validate_json(text)

    def __repr__(self) -> str:
        return "JsonDocumentSerializer()"


@dataclass(frozen=True)
class Configuration:
    """
    Settings shared by every operation of a document store.

    Passed to the store at construction; never mutated afterwards. Use the
    `with_*` helpers to derive a modified copy.
    """

    connection_factory: Optional[ConnectionFactory] = None
    serializer: DocumentSerializer = field(default_factory=JsonDocumentSerializer)
    id_field: str = "Id"

    def with_connection_factory(self, factory: ConnectionFactory) -> "Configuration":
        return dataclasses.replace(self, connection_factory=factory)

    def with_serializer(self, serializer: DocumentSerializer) -> "Configuration":
        return dataclasses.replace(self, serializer=serializer)

    def with_id_field(self, id_field: str) -> "Configuration":
        if not id_field:
            raise ValueError("id_field must be a non-empty string")
        return dataclasses.replace(self, id_field=id_field)

    def connect(self) -> AsyncContextManager[Any]:
        """Open a connection scope from the configured factory, or fail before any I/O."""
        if self.connection_factory is None:
            raise ConfigurationError()
        return self.connection_factory()

    def id_of(self, document: Any) -> str:
        """Extract the string ID of a document using the configured ID field."""
        key = document_key(document, self.id_field)
        if key is None:
            raise ValueError(
                f"Document of type {type(document).__name__} has no value "
                f"for ID field '{self.id_field}'."
            )
        return key
