"""Alias derivation and bound-parameter naming.

Aliases qualify every emitted column; parameter tokens name the ``:param``
placeholders. Both must be unique within one composed query and stable
for the same input, which is what :class:`ParameterNamer` guarantees.
"""

from __future__ import annotations

import re

from esql.core.config import AliasStrategy
from esql.core.types import EntityMetadata

_camel_to_snake_pattern = re.compile(r"(?<!^)(?=[A-Z])")
_non_word_pattern = re.compile(r"\W+")


def sanitize(name: str) -> str:
    """Reduce a name to characters valid in aliases and bind names."""
    cleaned = _non_word_pattern.sub("_", name).strip("_")
    return cleaned or "_"


def derive_alias(metadata: EntityMetadata, strategy: AliasStrategy) -> str:
    """Alias for an entity under ``strategy``.

    Examples:
        CarModel, short_name -> "carmodel"
        CarModel, snake_case -> "car_model"
        table "sales.car_model", table -> "car_model"
    """
    if strategy == AliasStrategy.SNAKE_CASE:
        return sanitize(_camel_to_snake_pattern.sub("_", metadata.name).lower())
    if strategy == AliasStrategy.TABLE:
        return sanitize(metadata.table.rsplit(".", 1)[-1].lower())
    return sanitize(metadata.name.lower())


class ParameterNamer:
    """Collision-free parameter tokens for one composed query.

    ``name_for`` is stable: the same (alias, field) pair always gets the
    same token. ``allocate`` hands out a fresh token for each additional
    occurrence of a pair, such as a second filter on the same field.

    Example:
        namer = ParameterNamer()
        namer.name_for("car", "id")    # "id"
        namer.name_for("model", "id")  # "model_id"
        namer.allocate("car", "id")    # "id_1"
    """

    def __init__(self) -> None:
        self._tokens: dict[tuple[str, str], str] = {}
        self._suffixes: dict[tuple[str, str], int] = {}
        self._used: set[str] = set()

    def name_for(self, alias: str, field: str) -> str:
        key = (alias, field)
        token = self._tokens.get(key)
        if token is not None:
            return token

        bare = sanitize(field)
        if bare not in self._used:
            token = bare
        else:
            token = self._first_free(sanitize(f"{alias}_{field}"))
        self._tokens[key] = token
        self._used.add(token)
        return token

    def allocate(self, alias: str, field: str) -> str:
        key = (alias, field)
        if key not in self._tokens:
            return self.name_for(alias, field)

        base = self._tokens[key]
        n = self._suffixes.get(key, 0)
        while True:
            n += 1
            token = f"{base}_{n}"
            if token not in self._used:
                break
        self._suffixes[key] = n
        self._used.add(token)
        return token

    def tokens(self) -> set[str]:
        """Every token handed out so far."""
        return set(self._used)

    def _first_free(self, candidate: str) -> str:
        if candidate not in self._used:
            return candidate
        n = 1
        while f"{candidate}_{n}" in self._used:
            n += 1
        return f"{candidate}_{n}"
