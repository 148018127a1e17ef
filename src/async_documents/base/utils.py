import logging
from dataclasses import is_dataclass, asdict
from typing import Any, Optional

logger = logging.getLogger(__name__)


def prepare_for_storage(data: Any) -> Any:
    """
    Recursively convert Pydantic models, dataclasses, and special types to JSON-compatible values.

    It handles:
    - Pydantic BaseModel instances (dumped in JSON mode, honoring field aliases)
    - Python dataclasses
    - Dictionaries (processing values recursively)
    - Lists, tuples and sets (processing each item)

    Args:
        data: The data to convert

    Returns:
        The converted data, ready to be serialized as a document
    """
    if data is None:
        return None

    if is_dataclass(data) and not isinstance(data, type):
        return prepare_for_storage(asdict(data))

    # Pydantic v2 models
    if hasattr(data, "model_dump") and callable(getattr(data, "model_dump")):
        return prepare_for_storage(data.model_dump(mode="json", by_alias=True))

    if isinstance(data, dict):
        return {k: prepare_for_storage(v) for k, v in data.items()}

    if isinstance(data, (list, tuple, set)):
        return [prepare_for_storage(item) for item in data]

    return data


def document_key(document: Any, id_field: str) -> Optional[str]:
    """
    Read the ID of a document from its configured ID field, coerced to a string.

    Works for mappings, dataclasses and pydantic models (alias names included,
    since the lookup happens on the prepared storage form).

    Returns:
        The ID as a string, or None if the document has no value for the field.
    """
    prepared = prepare_for_storage(document)
    if not isinstance(prepared, dict):
        raise TypeError(
            f"Cannot read ID field '{id_field}' from a non-object document "
            f"({type(document).__name__})."
        )
    value = prepared.get(id_field)
    if value is None:
        logger.debug(f"Document has no value for ID field '{id_field}'.")
        return None
    return str(value)
