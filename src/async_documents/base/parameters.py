# src/async_documents/base/parameters.py
from typing import Any, Sequence

from .config import DocumentSerializer
from .dialect import Dialect, ParameterSet
from .operators import OPERATOR_ARITY, QueryFilter, QueryOperator
from .query import CRITERIA_PARAM, DATA_PARAM, FIELD_PARAM, ID_PARAM, PATH_PARAM


class Parameters:
    """
    Produces the ordered (name, value) pairs matching the placeholders emitted
    by `QueryBuilder` for the same logical inputs.

    Keys are bound as strings whatever their native type; documents, patches
    and containment criteria are serialized to JSON text with the configured
    serializer.
    """

    def __init__(self, dialect: Dialect, serializer: DocumentSerializer):
        self._dialect = dialect
        self._serializer = serializer

    @staticmethod
    def no_params() -> ParameterSet:
        """An empty parameter set."""
        return []

    @staticmethod
    def id_param(key: Any) -> ParameterSet:
        """Create an ID parameter (name "@id"; the key is treated as a string)."""
        return [(ID_PARAM, str(key))]

    def json_param(self, name: str, value: Any) -> ParameterSet:
        """Create a parameter holding the JSON text of `value`."""
        return [(name, self._serializer.serialize(value))]

    def data_param(self, document: Any) -> ParameterSet:
        """Create the "@data" parameter for a document or partial document."""
        return self.json_param(DATA_PARAM, document)

    def criteria_param(self, criteria: Any) -> ParameterSet:
        """Create the "@criteria" parameter for a JSON containment query."""
        return self.json_param(CRITERIA_PARAM, criteria)

    @staticmethod
    def path_param(json_path: str) -> ParameterSet:
        """Create the "@path" parameter for a JSON Path match query."""
        if not isinstance(json_path, str):
            raise TypeError(f"JSON Path must be a string, got {type(json_path).__name__}")
        return [(PATH_PARAM, json_path)]

    def field_params(self, field: QueryFilter, param: str = FIELD_PARAM) -> ParameterSet:
        """
        Create the value parameter(s) for a field comparison.

        EXISTS / NOT_EXISTS bind nothing; BETWEEN binds "<param>min" and
        "<param>max" in that order; every other operator binds one value.
        """
        op = field.operator
        arity = OPERATOR_ARITY[op]
        if arity == 0:
            return []

        value = field.value
        if op == QueryOperator.BETWEEN:
            if isinstance(value, (str, bytes)) or not isinstance(value, Sequence) or len(value) != 2:
                raise ValueError(
                    f"Value for BETWEEN on field '{field.field_path}' must be a "
                    f"(min, max) pair, got {value!r}"
                )
            low, high = value
            return [
                (f"{param}min", self._dialect.prepare_scalar(low)),
                (f"{param}max", self._dialect.prepare_scalar(high)),
            ]

        if op == QueryOperator.IN:
            if not isinstance(value, (list, tuple, set, frozenset)):
                raise ValueError(
                    f"Value for IN on field '{field.field_path}' must be a "
                    f"list/tuple/set, got {type(value).__name__}"
                )
            return [(param, self._dialect.prepare_collection(list(value)))]

        if op == QueryOperator.CONTAINS:
            return self.json_param(param, value)

        if op == QueryOperator.JSON_PATH_MATCH:
            if not isinstance(value, str):
                raise ValueError(
                    f"Value for JSON_PATH_MATCH on field '{field.field_path}' "
                    f"must be a JSON Path string, got {type(value).__name__}"
                )
            return [(param, value)]

        return [(param, self._dialect.prepare_scalar(value))]

    def field_name_params(self, field_names: Sequence[str]) -> ParameterSet:
        """Create the parameter(s) naming fields to remove from documents."""
        if isinstance(field_names, str):
            field_names = [field_names]
        if not field_names:
            raise ValueError("At least one field name is required to remove fields")
        return self._dialect.field_name_params(field_names)
