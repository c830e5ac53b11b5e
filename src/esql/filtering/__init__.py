"""Filter and sort expressions and their translation into SQL fragments."""

from esql.filtering.expressions import (
    Direction,
    FilterExpression,
    Operator,
    SortExpression,
    parse_filter,
    parse_logic,
    parse_order,
    parse_query,
)
from esql.filtering.parser import FilterParser, FilterResult, ParserState

__all__ = [
    "Direction",
    "FilterExpression",
    "Operator",
    "SortExpression",
    "parse_filter",
    "parse_logic",
    "parse_order",
    "parse_query",
    "FilterParser",
    "FilterResult",
    "ParserState",
]
