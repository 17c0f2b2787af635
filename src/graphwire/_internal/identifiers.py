from __future__ import annotations

import re
from typing import Any, TypeAlias

from graphwire._internal.type_checks import is_runtime_class

Identifier: TypeAlias = Any
"""A class, a type name string, the wildcard, or a virtual ``$Name``/``[Name]`` string."""

WILDCARD = "*"

_SEPARATORS = re.compile(r"[\\/:]+")


def is_wildcard(identifier: Identifier) -> bool:
    """Return whether the identifier is the default rule key."""
    return isinstance(identifier, str) and identifier.strip() == WILDCARD


def is_virtual(identifier: Identifier) -> bool:
    """Return whether the identifier names a virtual rule instead of a type.

    Virtual identifiers start with ``$`` or are wrapped in square brackets. They
    share the rule keyspace with type names but are never handed to a
    type introspector.
    """
    if not isinstance(identifier, str):
        return False
    stripped = identifier.strip()
    return stripped.startswith("$") or (stripped.startswith("[") and stripped.endswith("]"))


def type_name(cls: type[Any]) -> str:
    """Return the dotted name used to address a class."""
    return f"{cls.__module__}.{cls.__qualname__}"


def normalize_identifier(identifier: Identifier) -> str:
    """Return the case-insensitive rule/cache key for an identifier.

    Examples:
        .. code-block:: python

            normalize_identifier(Database)  # "myapp.db.database"
            normalize_identifier("\\MyApp\\Db\\Database")  # "myapp.db.database"
            normalize_identifier("$Primary")  # "$primary"

    """
    if is_runtime_class(identifier):
        return type_name(identifier).lower()
    if not isinstance(identifier, str):
        msg = f"Identifier must be a class or a string, got {identifier!r}."
        raise TypeError(msg)

    stripped = identifier.strip()
    if stripped == WILDCARD or is_virtual(stripped):
        return stripped.lower()
    return _SEPARATORS.sub(".", stripped).lstrip(".").lower()


def dotted_path(identifier: str) -> str:
    """Return the case-preserving dotted form of a type name string."""
    return _SEPARATORS.sub(".", identifier.strip()).lstrip(".")


def describe(identifier: Identifier) -> str:
    """Return a readable name for error messages."""
    if is_runtime_class(identifier):
        return type_name(identifier)
    if callable(identifier) and not isinstance(identifier, str):
        return getattr(identifier, "__qualname__", repr(identifier))
    return str(identifier)


__all__ = [
    "WILDCARD",
    "Identifier",
    "describe",
    "dotted_path",
    "is_virtual",
    "is_wildcard",
    "normalize_identifier",
    "type_name",
]
