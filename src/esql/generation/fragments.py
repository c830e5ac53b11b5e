"""SQL fragment generation from entity metadata.

ESQL does not own the SQL grammar. It is a shortcut for the repetitive
metadata lookups of hand-written SQL: every method returns a plain string
or :class:`Fragment` that the caller embeds into its own statement.

Example:
    esql = ESQL(config=ESQLConfig(dialect="postgresql"))
    car, model = esql(Car), esql(Model)

    sql = f'''
        SELECT {car.columns()}, {model.column("name")}
        FROM {car.table()}
        JOIN {model.table()} ON {car.join(Model)}
        WHERE {car.identifier()}
    '''
    rows = session.execute(text(sql), car.bindings({"id": 1}))

One ``ESQL`` context covers one composed query: aliases and parameter
tokens are unique within it. Create a new context per query and never
share one across threads or requests.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from esql.core.config import ESQLConfig
from esql.core.dialects import to_sql_value
from esql.core.types import EntityMetadata, Fragment, RelationMetadata
from esql.exceptions import AliasConflictError, UnknownRelationError
from esql.generation.naming import ParameterNamer, derive_alias, sanitize
from esql.metadata.adapter import MetadataAdapter
from esql.metadata.orm import default_adapter

_BOOLEAN_STRINGS = {"true": True, "false": False}


class ESQL:
    """Query context handing out one fragment generator per entity."""

    def __init__(
        self,
        adapter: MetadataAdapter | None = None,
        config: ESQLConfig | None = None,
    ) -> None:
        """Initialize a query context.

        Args:
            adapter: Metadata adapter (defaults to the shared SQLAlchemy adapter)
            config: Dialect and alias settings (defaults to ESQLConfig())
        """
        self.adapter = adapter or default_adapter()
        self.config = config or ESQLConfig()
        self.namer = ParameterNamer()
        self._aliases: dict[type[Any], str] = {}
        self._explicit_aliases: dict[str, type[Any]] = {}
        self._generators: dict[tuple[type[Any], str], FragmentGenerator] = {}

    def __call__(self, entity_type: type[Any], alias: str | None = None) -> FragmentGenerator:
        """Get the fragment generator for an entity type.

        Args:
            entity_type: Mapped class
            alias: Explicit alias, e.g. for self-joins (derived when omitted)

        Raises:
            UnmappedTypeError: If the type carries no relational mapping
            AliasConflictError: If the explicit alias already qualifies another type
        """
        metadata = self.adapter.resolve(entity_type)
        if alias is not None:
            alias = sanitize(alias)
            owner = self._owner_of(alias)
            if owner is not None and owner is not entity_type:
                raise AliasConflictError(alias, metadata.name, owner.__name__)
            self._explicit_aliases[alias] = entity_type
        else:
            alias = self.alias_for(entity_type)

        key = (entity_type, alias)
        generator = self._generators.get(key)
        if generator is None:
            generator = FragmentGenerator(self, metadata, alias)
            self._generators[key] = generator
        return generator

    def alias_for(self, entity_type: type[Any]) -> str:
        """Derived alias of a type, stable within this context."""
        alias = self._aliases.get(entity_type)
        if alias is not None:
            return alias

        base = derive_alias(self.adapter.resolve(entity_type), self.config.alias_strategy)
        taken = set(self._aliases.values()) | set(self._explicit_aliases)
        alias = base
        n = 2
        while alias in taken:
            alias = f"{base}{n}"
            n += 1
        self._aliases[entity_type] = alias
        return alias

    def _owner_of(self, alias: str) -> type[Any] | None:
        for entity_type, derived in self._aliases.items():
            if derived == alias:
                return entity_type
        return self._explicit_aliases.get(alias)

    def to_sql_value(self, value: Any) -> Any:
        """Normalize a value for the configured dialect."""
        return to_sql_value(value, self.config.dialect)


class FragmentGenerator:
    """Fragments for one entity under one alias."""

    def __init__(self, esql: ESQL, metadata: EntityMetadata, alias: str) -> None:
        self._esql = esql
        self.metadata = metadata
        self.alias = alias

    def __repr__(self) -> str:
        return f"FragmentGenerator({self.metadata.name}, alias={self.alias!r})"

    @property
    def entity_type(self) -> type[Any]:
        return self.metadata.entity_type

    def _fields(self, fields: Iterable[str] | None) -> list[str]:
        if fields is None:
            return self.metadata.fields
        if isinstance(fields, str):
            return [fields]
        return list(fields)

    def _qualify(self, column: str, qualified: bool = True) -> str:
        return f"{self.alias}.{column}" if qualified else column

    def table(self) -> str:
        """Table name followed by its alias, for FROM and JOIN clauses."""
        return f"{self.metadata.table} {self.alias}"

    def column(self, field: str) -> str:
        """Qualified column of one field.

        Raises:
            UnknownFieldError: If the field is not mapped
        """
        return self._qualify(self.metadata.column_for(field))

    def columns(
        self,
        fields: Iterable[str] | None = None,
        separator: str = ", ",
        qualified: bool = True,
    ) -> Fragment:
        """Column list of the given fields, or of every mapped field.

        Args:
            fields: Field names (all mapped fields in declaration order if omitted)
            separator: Glue between columns
            qualified: Prefix columns with the alias. INSERT column lists
                need ``qualified=False``.

        Raises:
            UnknownFieldError: If a field is not mapped
        """
        columns = [
            self._qualify(self.metadata.column_for(f), qualified) for f in self._fields(fields)
        ]
        return Fragment(separator.join(columns))

    def select(self, fields: Iterable[str] | None = None, separator: str = ", ") -> Fragment:
        """Column list aliased as ``<alias>_<column>``.

        Lets rows of joined queries be split per entity with
        :meth:`RowMapper.sub_row`.
        """
        columns = []
        for field in self._fields(fields):
            column = self.metadata.column_for(field)
            columns.append(f"{self.alias}.{column} AS {self.alias}_{column}")
        return Fragment(separator.join(columns))

    def identifier(self) -> Fragment:
        """Conjunction matching every identifier field to a parameter."""
        parts = []
        tokens = []
        for field in self.metadata.identifiers:
            token = self._esql.namer.name_for(self.alias, field)
            parts.append(f"{self.column(field)} = :{token}")
            tokens.append(token)
        return Fragment(" AND ".join(parts), tuple(tokens))

    def predicates(
        self,
        fields: Iterable[str] | None = None,
        separator: str = ", ",
        qualified: bool = True,
    ) -> Fragment:
        """``column = :token`` per field, for SET clauses or WHERE clauses.

        Use ``separator=" AND "`` for a WHERE clause. UPDATE ... SET
        clauses need ``qualified=False`` on PostgreSQL and SQLite.

        Raises:
            UnknownFieldError: If a field is not mapped
        """
        parts = []
        tokens = []
        for field in self._fields(fields):
            column = self._qualify(self.metadata.column_for(field), qualified)
            token = self._esql.namer.name_for(self.alias, field)
            parts.append(f"{column} = :{token}")
            tokens.append(token)
        return Fragment(separator.join(parts), tuple(tokens))

    def bindings(self, values: Mapping[str, Any]) -> dict[str, Any]:
        """Bound values for :meth:`identifier` and :meth:`predicates` tokens.

        Args:
            values: Field name -> Python value

        Returns:
            Token -> normalized value
        """
        for field in values:
            self.metadata.column_for(field)
        return {
            self._esql.namer.name_for(self.alias, field): self.to_sql_value(field, value)
            for field, value in values.items()
        }

    def parameters(self, bindings: Mapping[str, Any]) -> str:
        """``:field`` tokens for the keys of ``bindings``, in order.

        Pairs with :meth:`columns` for INSERT statements; the same mapping is
        then passed as the statement's bound values.

        Raises:
            UnknownFieldError: If a key is not a mapped field
        """
        for field in bindings:
            self.metadata.column_for(field)
        return ", ".join(f":{field}" for field in bindings)

    def to_sql_value(self, field: str, value: Any) -> Any:
        """Normalize a value of ``field`` for the configured dialect.

        Boolean fields also accept the strings ``"true"`` and ``"false"``,
        as they arrive from query strings.

        Raises:
            UnknownFieldError: If the field is not mapped
        """
        self.metadata.column_for(field)
        if field in self.metadata.boolean_fields and isinstance(value, str):
            value = _BOOLEAN_STRINGS.get(value.lower(), value)
        return self._esql.to_sql_value(value)

    def relation(self, name: str) -> RelationMetadata:
        """Relation metadata by relation field name.

        Raises:
            UnknownRelationError: If the entity has no such relation
        """
        try:
            return self.metadata.relations[name]
        except KeyError:
            raise UnknownRelationError(
                name, self.metadata.name, list(self.metadata.relations)
            ) from None

    def relation_field_name(self, related: type[Any] | FragmentGenerator) -> str:
        """Name of the relation field pointing at ``related``.

        Raises:
            UnknownRelationError: If no relation targets the related type
        """
        target = related.entity_type if isinstance(related, FragmentGenerator) else related
        relations = self.metadata.relations_to(target)
        if not relations:
            raise UnknownRelationError(
                getattr(target, "__name__", repr(target)),
                self.metadata.name,
                list(self.metadata.relations),
            )
        return relations[0].name

    def join(self, related: type[Any] | FragmentGenerator, relation: str | None = None) -> str:
        """Join predicate between this entity and ``related``.

        The foreign-key side is read from relation metadata: the owning
        alias's join column equals the other alias's referenced column.
        When this entity declares no relation to ``related``, the related
        entity's relation back to this one is used.

        Args:
            related: Related type, or its generator (needed for explicit aliases)
            relation: Relation field name on this entity, when several exist

        Raises:
            UnknownRelationError: If no relation connects the two entities
        """
        other = related if isinstance(related, FragmentGenerator) else self._esql(related)

        if relation is not None:
            rel = self.relation(relation)
            if rel.target is not other.entity_type:
                candidates = self.metadata.relations_to(other.entity_type)
                raise UnknownRelationError(
                    relation, self.metadata.name, [r.name for r in candidates]
                )
            return _join_predicate(self, rel, other)

        own = self.metadata.relations_to(other.entity_type)
        if own:
            return _join_predicate(self, own[0], other)
        inverse = other.metadata.relations_to(self.entity_type)
        if inverse:
            return _join_predicate(other, inverse[0], self)

        raise UnknownRelationError(
            other.metadata.name, self.metadata.name, list(self.metadata.relations)
        )

    def join_clause(
        self,
        related: type[Any] | FragmentGenerator,
        relation: str | None = None,
        kind: str = "JOIN",
    ) -> str:
        """Full ``JOIN <table alias> ON <predicate>`` clause for ``related``."""
        other = related if isinstance(related, FragmentGenerator) else self._esql(related)
        return f"{kind} {other.table()} ON {self.join(other, relation)}"


def _join_predicate(
    subject: FragmentGenerator, relation: RelationMetadata, related: FragmentGenerator
) -> str:
    owner, referenced = (subject, related) if relation.is_owning else (related, subject)
    return " AND ".join(
        f"{owner.alias}.{join_column} = {referenced.alias}.{referenced_column}"
        for join_column, referenced_column in zip(
            relation.join_columns, relation.referenced_columns
        )
    )
