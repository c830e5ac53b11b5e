"""Compatibility shims for Python version differences."""

from __future__ import annotations

from enum import Enum

try:  # Python 3.11+
    from enum import StrEnum  # type: ignore[attr-defined]
except ImportError:  # Python 3.10

    class StrEnum(str, Enum):  # type: ignore[no-redef]
        """String-valued enum whose str() is its value."""

        def __str__(self) -> str:
            return str(self.value)


__all__ = ["StrEnum"]
