"""Filter and sort expressions.

Filters are a tagged variant: an :class:`Operator` plus its operand(s),
never an operator string checked at each use site. Request layers that
speak PostgREST-style horizontal filtering can build expressions from
query parameters with :func:`parse_query` and :func:`parse_order`:

    ?color=eq.blue&price=lt.20000&or=(sold.is.null,model.name.like.*Fiesta*)
    &order=price.desc,model.name
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from esql.core.compat import StrEnum
from esql.exceptions import InvalidFilterError, UnsupportedOperatorError


class Operator(StrEnum):
    """Supported filter operators."""

    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    LIKE = "like"
    IN = "in"
    IS = "is"  # is.null
    AND = "and"
    OR = "or"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid operator values."""
        return [o.value for o in cls]

    @classmethod
    def parse(cls, value: str | Operator) -> Operator:
        """Parse an operator name, accepting the ``ne``/``is_null`` spellings.

        Raises:
            UnsupportedOperatorError: If the operator is not supported
        """
        name = str(value).lower()
        name = _SYNONYMS.get(name, name)
        try:
            return cls(name)
        except ValueError:
            raise UnsupportedOperatorError(str(value), cls.values()) from None

    @property
    def is_composite(self) -> bool:
        return self in (Operator.AND, Operator.OR)


_SYNONYMS = {"ne": "neq", "is_null": "is"}

# SQL for binary comparison operators
COMPARISONS: dict[Operator, str] = {
    Operator.EQ: "=",
    Operator.NEQ: "<>",
    Operator.GT: ">",
    Operator.GTE: ">=",
    Operator.LT: "<",
    Operator.LTE: "<=",
    Operator.LIKE: "LIKE",
}


class Direction(StrEnum):
    """Sort directions."""

    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: str | Direction) -> Direction:
        try:
            return cls(str(value).lower())
        except ValueError:
            raise InvalidFilterError(
                f"Invalid sort direction '{value}'. Valid directions: asc, desc",
                {"direction": str(value)},
            ) from None


class FilterExpression(BaseModel):
    """One filter condition, or an and/or composition of them.

    Leaf expressions carry a ``field`` path (``color`` or ``model.name``)
    and a ``value``. Composite expressions carry ``children`` only.
    """

    model_config = ConfigDict(frozen=True)

    operator: Operator
    field: str | None = None
    value: Any = None
    children: tuple[FilterExpression, ...] = ()

    @model_validator(mode="after")
    def _check_shape(self) -> FilterExpression:
        if self.operator.is_composite:
            if not self.children:
                raise ValueError(f"'{self.operator}' needs at least one child expression")
            if self.field is not None:
                raise ValueError(f"'{self.operator}' takes child expressions, not a field")
        elif not self.field:
            raise ValueError(f"'{self.operator}' needs a field")
        elif self.children:
            raise ValueError(f"'{self.operator}' does not take child expressions")
        return self

    @classmethod
    def condition(cls, field: str, operator: str | Operator, value: Any = None) -> FilterExpression:
        """Leaf expression; validates the operator name."""
        op = Operator.parse(operator)
        if op.is_composite:
            raise InvalidFilterError(
                f"'{op}' composes expressions; use all_of() or any_of()", {"field": field}
            )
        return cls(operator=op, field=field, value=value)

    @classmethod
    def all_of(cls, *children: FilterExpression) -> FilterExpression:
        return cls(operator=Operator.AND, children=children)

    @classmethod
    def any_of(cls, *children: FilterExpression) -> FilterExpression:
        return cls(operator=Operator.OR, children=children)


class SortExpression(BaseModel):
    """One ORDER BY entry."""

    model_config = ConfigDict(frozen=True)

    field: str
    direction: Direction = Field(default=Direction.ASC)


# === PostgREST-style string parsing ===

# Query parameters that are not filters
RESERVED_PARAMETERS = {"order", "select", "limit", "offset"}


def _split(text: str) -> list[str]:
    """Split on top-level commas, honoring parentheses and double quotes."""
    items: list[str] = []
    buf: list[str] = []
    depth = 0
    quoted = False
    for ch in text:
        if ch == '"':
            quoted = not quoted
        elif not quoted:
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
                if depth < 0:
                    break
            elif ch == "," and depth == 0:
                items.append("".join(buf).strip())
                buf = []
                continue
        buf.append(ch)
    if quoted or depth != 0:
        raise InvalidFilterError(
            f"Unbalanced quotes or parentheses in '{text}'", {"expression": text}
        )
    if buf or items:
        items.append("".join(buf).strip())
    return items


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1]
    return value


def parse_filter(field: str, expression: str) -> FilterExpression:
    """Parse one ``operator.operand`` filter string.

    Examples:
        parse_filter("color", "eq.blue")
        parse_filter("id", "in.(1,2,3)")
        parse_filter("sold", "is.null")
        parse_filter("name", "like.*Fiesta*")   # * is the wildcard

    Raises:
        UnsupportedOperatorError: If the operator is not supported
        InvalidFilterError: If the string is malformed
    """
    name, sep, operand = expression.partition(".")
    if not sep:
        raise InvalidFilterError(
            f"Filter on '{field}' must look like 'operator.value', got '{expression}'",
            {"field": field, "expression": expression},
        )

    operator = Operator.parse(name)
    if operator.is_composite:
        raise InvalidFilterError(
            f"'{operator}' cannot be applied to field '{field}'; use the '{operator}' parameter",
            {"field": field, "expression": expression},
        )

    value: Any
    if operator is Operator.IN:
        if not (operand.startswith("(") and operand.endswith(")")):
            raise InvalidFilterError(
                f"'in' expects a parenthesized list, e.g. in.(1,2), got '{operand}'",
                {"field": field, "expression": expression},
            )
        value = [_unquote(item) for item in _split(operand[1:-1])]
    elif operator is Operator.IS:
        if operand.lower() != "null":
            raise InvalidFilterError(
                f"'is' only supports 'is.null', got 'is.{operand}'",
                {"field": field, "expression": expression},
            )
        value = None
    elif operator is Operator.LIKE:
        value = _unquote(operand).replace("*", "%")
    else:
        value = _unquote(operand)

    return FilterExpression(operator=operator, field=field, value=value)


def _parse_item(item: str) -> FilterExpression:
    for logic in (Operator.AND, Operator.OR):
        if item.startswith(f"{logic}("):
            return parse_logic(logic, item[len(logic) :])

    parts = item.split(".")
    leaf_names = {o.value for o in Operator if not o.is_composite} | set(_SYNONYMS)
    for i, part in enumerate(parts[1:], start=1):
        if part.lower() in leaf_names:
            return parse_filter(".".join(parts[:i]), ".".join(parts[i:]))

    if len(parts) >= 3:
        raise UnsupportedOperatorError(parts[-2], Operator.values())
    raise InvalidFilterError(
        f"Expected 'field.operator.value', got '{item}'", {"expression": item}
    )


def parse_logic(operator: str | Operator, expression: str) -> FilterExpression:
    """Parse an and/or composition such as ``(price.lt.100,sold.eq.true)``.

    Compositions nest: ``(color.eq.red,and(price.gt.10,price.lt.20))``.

    Raises:
        UnsupportedOperatorError: If a nested operator is not supported
        InvalidFilterError: If the string is malformed
    """
    op = Operator.parse(operator)
    if not op.is_composite:
        raise InvalidFilterError(
            f"'{op}' is not a logical operator; use 'and' or 'or'", {"operator": str(op)}
        )
    if not (expression.startswith("(") and expression.endswith(")")):
        raise InvalidFilterError(
            f"'{op}' expects a parenthesized list, got '{expression}'",
            {"expression": expression},
        )
    items = _split(expression[1:-1])
    if not items or not all(items):
        raise InvalidFilterError(
            f"Empty condition in '{op}{expression}'", {"expression": expression}
        )
    return FilterExpression(operator=op, children=tuple(_parse_item(i) for i in items))


def parse_query(params: Mapping[str, str | list[str]]) -> list[FilterExpression]:
    """Filter expressions from query parameters, in parameter order.

    Repeated parameters (``price=gt.10&price=lt.20``) may be passed as lists.
    ``order``, ``select``, ``limit`` and ``offset`` are not filters and are
    skipped.
    """
    expressions: list[FilterExpression] = []
    for key, raw in params.items():
        if key in RESERVED_PARAMETERS:
            continue
        for value in [raw] if isinstance(raw, str) else raw:
            if key in (Operator.AND, Operator.OR):
                expressions.append(parse_logic(key, value))
            else:
                expressions.append(parse_filter(key, value))
    return expressions


def parse_order(expression: str) -> list[SortExpression]:
    """Sort expressions from an ``order`` parameter, e.g. ``price.desc,name``."""
    sorts = []
    for item in _split(expression):
        if not item:
            continue
        field, _, last = item.rpartition(".")
        if field and last.lower() in (Direction.ASC, Direction.DESC):
            sorts.append(SortExpression(field=field, direction=Direction.parse(last)))
        else:
            sorts.append(SortExpression(field=item))
    return sorts
