# src/async_documents/base/operators.py
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Mapping

from .exceptions import UnsupportedOperationError

if TYPE_CHECKING:
    from .dialect import Dialect


# --- Query Operator Enum ---
class QueryOperator(Enum):
    """Enumeration of comparison operators usable against a JSON field."""

    # Comparison
    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GE = "ge"
    LT = "lt"
    LE = "le"
    # Range / membership
    BETWEEN = "between"
    IN = "in"
    # Existence
    EXISTS = "exists"
    NOT_EXISTS = "not_exists"
    # JSON-native (only where the backend supports them)
    CONTAINS = "contains"
    JSON_PATH_MATCH = "json_path_match"


# --- Structured criterion ---
@dataclass(frozen=True)
class QueryFilter:
    """Represents a single filter condition (field_path <operator> value)."""

    field_path: str
    operator: QueryOperator
    value: Any = None

    def __post_init__(self):
        if not self.field_path:
            raise ValueError("field_path must be a non-empty string")
        if not isinstance(self.operator, QueryOperator):
            # Accept the enum's string value ("eq", "between", ...)
            try:
                object.__setattr__(self, "operator", QueryOperator(self.operator))
            except ValueError:
                raise ValueError(f"Unknown query operator: {self.operator!r}") from None


@dataclass(frozen=True)
class OperatorSpec:
    """
    The SQL shape of an operator for one dialect.

    `template` may reference:
      {path}  - the dialect's extraction expression for the field
      {json}  - the field extracted as JSON (not text)
      {container}/{key} - the parent object and the last key of the path
      {name}  - the raw field name
      {param} - the single value placeholder
      {min}/{max} - the two BETWEEN placeholders
    `arity` is the number of values bound for the operator (0, 1 or 2).
    """

    template: str
    arity: int


# Arity never depends on the dialect.
OPERATOR_ARITY: Mapping[QueryOperator, int] = {
    QueryOperator.EQ: 1,
    QueryOperator.NE: 1,
    QueryOperator.GT: 1,
    QueryOperator.GE: 1,
    QueryOperator.LT: 1,
    QueryOperator.LE: 1,
    QueryOperator.BETWEEN: 2,
    QueryOperator.IN: 1,
    QueryOperator.EXISTS: 0,
    QueryOperator.NOT_EXISTS: 0,
    QueryOperator.CONTAINS: 1,
    QueryOperator.JSON_PATH_MATCH: 1,
}


def comparison_table(**overrides: str) -> Dict[QueryOperator, OperatorSpec]:
    """
    Build an operator table holding the ANSI comparisons shared by every dialect.

    Keyword arguments map operator member names (e.g. ``IN=...``) to the
    dialect's template for that operator and are added to, or replace, the
    shared entries.
    """
    templates = {
        QueryOperator.EQ: "{path} = {param}",
        QueryOperator.NE: "{path} <> {param}",
        QueryOperator.GT: "{path} > {param}",
        QueryOperator.GE: "{path} >= {param}",
        QueryOperator.LT: "{path} < {param}",
        QueryOperator.LE: "{path} <= {param}",
        QueryOperator.BETWEEN: "{path} BETWEEN {min} AND {max}",
    }
    for member_name, template in overrides.items():
        templates[QueryOperator[member_name]] = template
    return {
        op: OperatorSpec(template, OPERATOR_ARITY[op])
        for op, template in templates.items()
    }


def resolve_operator(operator: QueryOperator, dialect: "Dialect") -> OperatorSpec:
    """Map an abstract operator to the dialect's SQL template and value arity."""
    spec = dialect.operators.get(operator)
    if spec is None:
        raise UnsupportedOperationError(
            f"Operator {operator.name} is not supported by the {dialect.name} backend."
        )
    return spec
