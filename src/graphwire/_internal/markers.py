from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


class ValueSpec:
    """Base class for descriptions of how to obtain a constructor argument."""

    __slots__ = ()


@dataclass(frozen=True, slots=True)
class Value(ValueSpec):
    """Pass ``value`` as-is.

    Raw values in ``construct_params`` and ``call`` arguments are wrapped in
    ``Value`` automatically; use it explicitly to pass something that would
    otherwise be interpreted, such as another ``ValueSpec``.
    """

    value: Any


@dataclass(frozen=True, slots=True)
class Null(ValueSpec):
    """Pass ``None``, distinct from "no value supplied"."""


NULL = Null()


@dataclass(frozen=True, slots=True)
class Instance(ValueSpec):
    """Create the value from an identifier in the current request.

    Examples:
        .. code-block:: python

            container.add_rule(Service, construct_params=[Instance("$PrimaryDb")])
            container.add_rule(Service, substitutions={Database: Instance(SqliteDatabase)})

    """

    identifier: Any


@dataclass(frozen=True, slots=True)
class Callback(ValueSpec):
    """Call a zero-argument factory and pass its result."""

    factory: Callable[[], Any]


@dataclass(frozen=True, slots=True)
class Prebuilt(ValueSpec):
    """Pass an already constructed object."""

    instance: Any


def as_argument_spec(value: Any) -> ValueSpec:
    """Interpret a ``construct_params``/``call`` entry."""
    if isinstance(value, ValueSpec):
        return value
    if value is None:
        return NULL
    return Value(value)


def as_substitution_spec(value: Any) -> ValueSpec:
    """Interpret a ``substitutions`` value; raw objects are prebuilt instances."""
    if isinstance(value, ValueSpec):
        return value
    if value is None:
        return NULL
    return Prebuilt(value)


__all__ = [
    "NULL",
    "Callback",
    "Instance",
    "Null",
    "Prebuilt",
    "Value",
    "ValueSpec",
    "as_argument_spec",
    "as_substitution_spec",
]
