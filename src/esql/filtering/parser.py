"""Filter parsing into WHERE, JOIN and ORDER BY fragments.

The parser walks each expression through a fixed sequence of states:

    START -> PARSING_OPERATOR -> RESOLVING_FIELD -> EMITTING_FRAGMENT -> DONE

Any error aborts the whole call; a bad clause is never dropped silently.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Union

from esql.core.compat import StrEnum
from esql.core.types import Fragment
from esql.exceptions import InvalidFilterError, UnknownFieldError
from esql.filtering.expressions import (
    COMPARISONS,
    Direction,
    FilterExpression,
    Operator,
    SortExpression,
)
from esql.generation.fragments import ESQL, FragmentGenerator

logger = logging.getLogger(__name__)

RawFilter = Union[FilterExpression, Mapping[str, Any]]
RawSort = Union[SortExpression, tuple[str, str], str]


class ParserState(StrEnum):
    """States of the filter parser."""

    START = "start"
    PARSING_OPERATOR = "parsing_operator"
    RESOLVING_FIELD = "resolving_field"
    EMITTING_FRAGMENT = "emitting_fragment"
    DONE = "done"


@dataclass(frozen=True)
class FilterResult:
    """Output of :meth:`FilterParser.parse`."""

    where: Fragment
    bindings: dict[str, Any] = field(default_factory=dict)
    joins: tuple[str, ...] = ()
    order_by: str = ""

    @property
    def where_clause(self) -> str:
        """``WHERE ...``, or an empty string when there are no filters."""
        return f"WHERE {self.where}" if self.where else ""

    @property
    def join_clause(self) -> str:
        return " ".join(self.joins)

    @property
    def order_by_clause(self) -> str:
        """``ORDER BY ...``, or an empty string when there is no sort."""
        return f"ORDER BY {self.order_by}" if self.order_by else ""


class FilterParser:
    """Turns filter and sort expressions on one entity into SQL fragments.

    Field paths are either a field of the subject entity (``color``) or a
    field reached through one relation (``model.name``). Each relation
    used contributes one LEFT JOIN, however many expressions use it.

    Example:
        esql = ESQL()
        parser = FilterParser(esql, Car)
        result = parser.parse(
            [{"field": "color", "op": "eq", "value": "blue"}],
            sort=[("price", "desc")],
        )
        sql = f'''
            SELECT {esql(Car).columns()} FROM {esql(Car).table()}
            {result.join_clause} {result.where_clause} {result.order_by_clause}
        '''
        session.execute(text(sql), result.bindings)
    """

    def __init__(self, esql: ESQL, entity_type: type[Any]) -> None:
        """Initialize a parser.

        Args:
            esql: Query context the fragments will be embedded in
            entity_type: Subject entity of the filters
        """
        self._esql = esql
        self._subject = esql(entity_type)
        self._joins: dict[str, str] = {}
        self._related: dict[str, FragmentGenerator] = {}
        self.state = ParserState.START

    def parse(
        self,
        expressions: Iterable[RawFilter],
        sort: Iterable[RawSort] | None = None,
    ) -> FilterResult:
        """Compose filters (ANDed, in order) and an optional sort.

        Args:
            expressions: FilterExpression values or request-layer mappings
                ``{"field": ..., "op": ..., "value": ...}``
            sort: SortExpression values, ``(field, direction)`` pairs or field names

        Returns:
            FilterResult with the WHERE fragment, bindings, joins and ORDER BY

        Raises:
            UnsupportedOperatorError: If an operator is not supported
            UnknownFieldError: If a field path cannot be resolved
            InvalidFilterError: If an expression is malformed
        """
        self.state = ParserState.START
        self._reset()
        bindings: dict[str, Any] = {}
        try:
            parts = [self._emit(self._coerce(raw), bindings) for raw in expressions]
            order_by = self._order_by(sort) if sort is not None else ""
        except Exception:
            self._reset()
            raise

        self._transition(ParserState.DONE)
        return FilterResult(
            where=Fragment(" AND ".join(parts), tuple(bindings)),
            bindings=bindings,
            joins=tuple(self._joins.values()),
            order_by=order_by,
        )

    def order_by(self, sort: Iterable[RawSort]) -> str:
        """``alias.column DIRECTION`` list for the sort expressions.

        Joins needed by relation paths are available from :attr:`joins`
        afterwards.
        """
        self._reset()
        try:
            return self._order_by(sort)
        except Exception:
            self._reset()
            raise

    def _order_by(self, sort: Iterable[RawSort]) -> str:
        entries = []
        for raw in sort:
            if isinstance(raw, SortExpression):
                expression = raw
            elif isinstance(raw, str):
                expression = SortExpression(field=raw)
            else:
                path, direction = raw
                expression = SortExpression(field=path, direction=Direction.parse(direction))
            generator, name = self._resolve(expression.field)
            entries.append(f"{generator.column(name)} {expression.direction.value.upper()}")
        return ", ".join(entries)

    @property
    def joins(self) -> list[str]:
        """JOIN clauses of the last successful :meth:`parse` or :meth:`order_by` call."""
        return list(self._joins.values())

    def _reset(self) -> None:
        self._joins = {}
        self._related = {}

    def _transition(self, state: ParserState) -> None:
        logger.debug(f"Filter parser on {self._subject.metadata.name}: {self.state} -> {state}")
        self.state = state

    def _coerce(self, raw: RawFilter) -> FilterExpression:
        self._transition(ParserState.PARSING_OPERATOR)
        if isinstance(raw, FilterExpression):
            return raw
        if not isinstance(raw, Mapping):
            raise InvalidFilterError(
                f"Filter must be a FilterExpression or a mapping, got {type(raw).__name__}"
            )
        if "op" not in raw:
            raise InvalidFilterError("Filter mapping needs an 'op' key", {"filter": dict(raw)})

        operator = Operator.parse(raw["op"])
        if operator.is_composite:
            children = raw.get("children", raw.get("value"))
            if not children or isinstance(children, (str, Mapping)):
                raise InvalidFilterError(
                    f"'{operator}' needs a list of child filters", {"filter": dict(raw)}
                )
            return FilterExpression(
                operator=operator, children=tuple(self._coerce(c) for c in children)
            )

        path = raw.get("field")
        if not path:
            raise InvalidFilterError(f"'{operator}' needs a field", {"filter": dict(raw)})
        return FilterExpression(operator=operator, field=path, value=raw.get("value"))

    def _resolve(self, path: str) -> tuple[FragmentGenerator, str]:
        self._transition(ParserState.RESOLVING_FIELD)
        subject = self._subject
        if path in subject.metadata.columns:
            return subject, path

        relation_name, _, name = path.partition(".")
        if not name or "." in name or relation_name not in subject.metadata.relations:
            raise UnknownFieldError(path, subject.metadata.name, subject.metadata.fields)

        related = self._related.get(relation_name)
        if related is None:
            related = self._esql(subject.relation(relation_name).target)
            taken = {subject.alias} | {g.alias for g in self._related.values()}
            if related.alias in taken:
                # Second relation to the same type, or a self-relation
                related = self._esql(related.entity_type, alias=f"{subject.alias}_{relation_name}")
            self._related[relation_name] = related

        if name not in related.metadata.columns:
            raise UnknownFieldError(name, related.metadata.name, related.metadata.fields)

        if relation_name not in self._joins:
            clause = subject.join_clause(related, relation_name, kind="LEFT JOIN")
            self._joins[relation_name] = clause
            logger.debug(f"Registered join for '{relation_name}': {clause}")
        return related, name

    def _emit(self, expression: FilterExpression, bindings: dict[str, Any]) -> str:
        if expression.operator.is_composite:
            glue = f" {expression.operator.value.upper()} "
            self._transition(ParserState.EMITTING_FRAGMENT)
            return "(" + glue.join(self._emit(c, bindings) for c in expression.children) + ")"

        generator, name = self._resolve(expression.field or "")
        self._transition(ParserState.EMITTING_FRAGMENT)
        column = generator.column(name)
        operator = expression.operator
        namer = self._esql.namer

        if operator is Operator.IS:
            if expression.value is None or expression.value is True or expression.value == "null":
                return f"{column} IS NULL"
            if expression.value is False:
                return f"{column} IS NOT NULL"
            raise InvalidFilterError(
                f"'is' on '{expression.field}' expects null, true or false",
                {"field": expression.field, "value": repr(expression.value)},
            )

        if operator is Operator.IN:
            values = expression.value
            if values is None or isinstance(values, (str, bytes, Mapping)):
                values = [values]
            tokens = []
            for value in values:
                token = namer.allocate(generator.alias, name)
                bindings[token] = generator.to_sql_value(name, value)
                tokens.append(f":{token}")
            if not tokens:
                return "1 = 0"
            return f"{column} IN ({', '.join(tokens)})"

        token = namer.allocate(generator.alias, name)
        bindings[token] = generator.to_sql_value(name, expression.value)
        return f"{column} {COMPARISONS[operator]} :{token}"
