"""Custom exceptions for ESQL.

Every error names what went wrong and what the caller can use instead:
- Actionable messages listing the available fields, relations or operators
- A JSON-serializable context for request layers that report errors
"""

from __future__ import annotations

from typing import Any


class ESQLError(Exception):
    """Base exception for all ESQL errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Return error as JSON-serializable dict for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
        }


def _type_name(entity_type: Any) -> str:
    return getattr(entity_type, "__name__", None) or repr(entity_type)


class UnmappedTypeError(ESQLError):
    """Type carries no relational mapping."""

    def __init__(self, entity_type: Any) -> None:
        name = _type_name(entity_type)
        message = (
            f"Type '{name}' has no relational mapping. "
            "Map it in the metadata provider before generating SQL for it."
        )
        super().__init__(message, {"entity_type": name})
        self.entity_type = entity_type


class UnknownFieldError(ESQLError):
    """Field is not part of an entity's mapping."""

    def __init__(
        self, field_name: str, entity_name: str, available_fields: list[str] | None = None
    ) -> None:
        available = available_fields or []
        if available:
            message = (
                f"Field '{field_name}' not found on '{entity_name}'. "
                f"Available fields: {', '.join(available)}"
            )
        else:
            message = f"Field '{field_name}' not found on '{entity_name}'. No fields mapped."

        super().__init__(
            message,
            {
                "field_name": field_name,
                "entity_name": entity_name,
                "available_fields": available,
            },
        )
        self.field_name = field_name
        self.entity_name = entity_name
        self.available_fields = available


class UnknownRelationError(ESQLError):
    """No relation connects the two given entities."""

    def __init__(
        self,
        relation: str,
        entity_name: str,
        available_relations: list[str] | None = None,
    ) -> None:
        available = available_relations or []
        if available:
            message = (
                f"Relation '{relation}' not found on '{entity_name}'. "
                f"Available relations: {', '.join(available)}"
            )
        else:
            message = (
                f"Relation '{relation}' not found on '{entity_name}'. No relations defined."
            )

        super().__init__(
            message,
            {
                "relation": relation,
                "entity_name": entity_name,
                "available_relations": available,
            },
        )
        self.relation = relation
        self.entity_name = entity_name
        self.available_relations = available


class UnsupportedOperatorError(ESQLError):
    """Filter operator outside the supported vocabulary."""

    def __init__(self, operator: str, supported: list[str]) -> None:
        message = f"Unsupported filter operator '{operator}'. Supported: {', '.join(supported)}"
        super().__init__(message, {"operator": operator, "supported": supported})
        self.operator = operator
        self.supported = supported


class InvalidFilterError(ESQLError):
    """Filter expression is malformed."""

    pass


class UnmappableRowError(ESQLError):
    """Result row lacks the identifier columns of the target type."""

    def __init__(self, entity_name: str, missing_columns: list[str]) -> None:
        message = (
            f"Cannot map row to '{entity_name}': missing identifier column(s) "
            f"{', '.join(missing_columns)}. Select them or rename the row's keys first."
        )
        super().__init__(
            message, {"entity_name": entity_name, "missing_columns": missing_columns}
        )
        self.entity_name = entity_name
        self.missing_columns = missing_columns


class ConfigurationError(ESQLError):
    """Unknown configuration value."""

    def __init__(self, setting: str, value: str, valid: list[str]) -> None:
        message = f"Invalid {setting} '{value}'. Valid values: {', '.join(valid)}"
        super().__init__(message, {"setting": setting, "value": value, "valid": valid})
        self.setting = setting
        self.value = value
        self.valid = valid


class AliasConflictError(ESQLError):
    """Alias already qualifies a different entity in the same context."""

    def __init__(self, alias: str, entity_name: str, owner_name: str) -> None:
        message = (
            f"Alias '{alias}' is already used for '{owner_name}' in this query; "
            f"choose another alias for '{entity_name}'."
        )
        super().__init__(
            message, {"alias": alias, "entity_name": entity_name, "owner_name": owner_name}
        )
        self.alias = alias
        self.entity_name = entity_name
        self.owner_name = owner_name
