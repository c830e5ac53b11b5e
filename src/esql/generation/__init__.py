"""SQL fragment generation for ESQL."""

from esql.generation.fragments import ESQL, FragmentGenerator
from esql.generation.naming import ParameterNamer, derive_alias

__all__ = [
    "ESQL",
    "FragmentGenerator",
    "ParameterNamer",
    "derive_alias",
]
