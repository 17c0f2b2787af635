from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, fields, replace
from types import MappingProxyType
from typing import Any, Final

from typing_extensions import Self

from graphwire._internal.identifiers import (
    WILDCARD,
    Identifier,
    is_virtual,
    is_wildcard,
    normalize_identifier,
)
from graphwire._internal.integrations.pydantic_settings import settings_rule_fields
from graphwire._internal.introspection import TypeIntrospector
from graphwire._internal.markers import ValueSpec, as_argument_spec, as_substitution_spec
from graphwire._internal.type_checks import is_runtime_class
from graphwire.exceptions import GraphWireConfigurationError

logger = logging.getLogger(__name__)


class _Unset:
    """Marker for rule fields that were never set."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Final = _Unset()
"""Value of every ``Rule`` field that was not set explicitly."""


@dataclass(frozen=True, slots=True)
class Rule:
    """Declarative override record for everything built under one identifier.

    Every field starts as ``UNSET``: a rule only changes the fields it sets, so
    ``share_instances=()`` (explicitly empty) and an unset field behave
    differently when rules are merged.

    Attributes:
        shared: Keep one instance per requested identifier for the container's
            lifetime.
        instance_of: Class, type name or virtual identifier to build instead of
            the requested one, or a factory callable invoked with the call-site
            arguments.
        construct_params: Values fed to the constructor after the call-site
            arguments. Raw values are literals, ``None`` is ``NULL``.
        substitutions: Replacement values keyed by the declared type of a
            dependency. Raw objects are prebuilt instances.
        share_instances: Identifiers shared by every dependent inside one
            top-level ``create()`` call.
        new_instances: Dependency types that are always built fresh, even when
            their own rule is ``shared``.
        call: ``(method_name, arguments)`` pairs invoked after construction.
        inherit: Whether subclasses of the identifier's type inherit this rule.

    """

    shared: Any = UNSET
    instance_of: Any = UNSET
    construct_params: Any = UNSET
    substitutions: Any = UNSET
    share_instances: Any = UNSET
    new_instances: Any = UNSET
    call: Any = UNSET
    inherit: Any = UNSET

    def __post_init__(self) -> None:
        if self.shared is not UNSET and not isinstance(self.shared, bool):
            msg = f"Rule field 'shared' must be a bool, got {self.shared!r}."
            raise GraphWireConfigurationError(msg)
        if self.inherit is not UNSET and not isinstance(self.inherit, bool):
            msg = f"Rule field 'inherit' must be a bool, got {self.inherit!r}."
            raise GraphWireConfigurationError(msg)
        if self.instance_of is not UNSET and not (
            isinstance(self.instance_of, str) or callable(self.instance_of)
        ):
            msg = (
                "Rule field 'instance_of' must be a class, a type name or a factory, "
                f"got {self.instance_of!r}."
            )
            raise GraphWireConfigurationError(msg)

        if self.construct_params is not UNSET:
            values = _as_sequence("construct_params", self.construct_params)
            object.__setattr__(
                self,
                "construct_params",
                tuple(as_argument_spec(value) for value in values),
            )
        if self.substitutions is not UNSET:
            if not isinstance(self.substitutions, Mapping):
                msg = f"Rule field 'substitutions' must be a mapping, got {self.substitutions!r}."
                raise GraphWireConfigurationError(msg)
            object.__setattr__(
                self,
                "substitutions",
                MappingProxyType(
                    {
                        _normalize_key(key): as_substitution_spec(value)
                        for key, value in self.substitutions.items()
                    },
                ),
            )
        for name in ("share_instances", "new_instances"):
            value = getattr(self, name)
            if value is not UNSET:
                object.__setattr__(self, name, _unique_identifiers(name, value))
        if self.call is not UNSET:
            object.__setattr__(self, "call", _normalize_calls(self.call))

    def is_set(self, name: str) -> bool:
        """Return whether the field ``name`` was set explicitly."""
        return getattr(self, name) is not UNSET

    @property
    def is_shared(self) -> bool:
        """Return whether instances are global singletons."""
        return self.shared is True

    @property
    def inherits(self) -> bool:
        """Return whether subclasses inherit this rule."""
        return self.inherit is not False

    @property
    def redirects(self) -> bool:
        """Return whether ``instance_of`` is set."""
        return self.instance_of is not UNSET

    def merge(self, override: Rule) -> Self:
        """Return a rule with ``override`` layered on top of this one.

        Scalar fields and ``construct_params`` are replaced when set in
        ``override``. ``substitutions`` are unioned with ``override`` winning
        on key collisions, the identifier lists are unioned, and ``call``
        entries are appended after the base calls.
        """
        changes: dict[str, Any] = {}
        for name in ("shared", "instance_of", "construct_params", "inherit"):
            if override.is_set(name):
                changes[name] = getattr(override, name)
        if override.is_set("substitutions"):
            changes["substitutions"] = {**(self.substitutions or {}), **override.substitutions}
        for name in ("share_instances", "new_instances"):
            if override.is_set(name):
                changes[name] = (*(getattr(self, name) or ()), *getattr(override, name))
        if override.is_set("call"):
            changes["call"] = (*(self.call or ()), *override.call)
        return replace(self, **changes)

    def set_fields(self) -> dict[str, Any]:
        """Return the explicitly set fields."""
        return {
            field.name: getattr(self, field.name)
            for field in fields(self)
            if getattr(self, field.name) is not UNSET
        }


EMPTY_RULE: Final = Rule()


class RuleStore:
    """Hold declared rules and compute the effective rule for an identifier.

    Effective rules are recomputed on every lookup, so rules added between two
    ``create()`` calls are always observed.
    """

    def __init__(self, introspector: TypeIntrospector) -> None:
        self._introspector = introspector
        self._rules: dict[str, Rule] = {}

    def key_for(self, identifier: Identifier) -> str:
        """Return the storage key of an identifier.

        Type name strings that resolve to a class share the key of that class,
        so rules registered by name and by class address the same entry.
        """
        if is_runtime_class(identifier) or is_wildcard(identifier) or is_virtual(identifier):
            return normalize_identifier(identifier)
        resolved = self._introspector.resolve_type(identifier)
        return _normalize_key(resolved if resolved is not None else identifier)

    def add_rule(self, identifier: Identifier, rule: Rule) -> None:
        """Merge ``rule`` into the rule stored under ``identifier``."""
        key = self.key_for(identifier)
        if rule.is_set("substitutions"):
            rule = replace(
                rule,
                substitutions={
                    self.key_for(type_key): spec for type_key, spec in rule.substitutions.items()
                },
            )

        existing = self._rules.get(key)
        self._rules[key] = rule if existing is None else existing.merge(rule)
        logger.debug("Added rule for '%s': %s", key, sorted(rule.set_fields()))

    def get_rule(self, identifier: Identifier) -> Rule:
        """Return the effective rule: wildcard, then nearest ancestor, then exact."""
        key = self.key_for(identifier)
        if key == WILDCARD:
            return self._rules.get(WILDCARD, EMPTY_RULE)

        cls = None if is_virtual(identifier) else self._introspector.resolve_type(identifier)

        effective = EMPTY_RULE if cls is None else Rule(**settings_rule_fields(cls))

        wildcard_rule = self._rules.get(WILDCARD)
        if wildcard_rule is not None:
            effective = effective.merge(wildcard_rule)

        if cls is not None:
            ancestor_rule = self._nearest_ancestor_rule(cls)
            if ancestor_rule is not None:
                effective = effective.merge(ancestor_rule)

        exact_rule = self._rules.get(key)
        if exact_rule is not None:
            effective = effective.merge(exact_rule)
        return effective

    def _nearest_ancestor_rule(self, cls: type[Any]) -> Rule | None:
        for ancestor in self._introspector.resolve_ancestors(cls):
            rule = self._rules.get(normalize_identifier(ancestor))
            if rule is None or not rule.inherits or rule.redirects:
                continue
            return rule
        return None


def _normalize_key(identifier: Identifier) -> str:
    try:
        return normalize_identifier(identifier)
    except TypeError as error:
        raise GraphWireConfigurationError(str(error)) from error


def _as_sequence(name: str, value: Any) -> Sequence[Any]:
    if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, Iterable):
        msg = f"Rule field '{name}' must be a list of values, got {value!r}."
        raise GraphWireConfigurationError(msg)
    return tuple(value)


def _unique_identifiers(name: str, identifiers: Any) -> tuple[Identifier, ...]:
    seen: set[str] = set()
    result: list[Identifier] = []
    for identifier in _as_sequence(name, identifiers):
        key = _normalize_key(identifier)
        if key in seen:
            continue
        seen.add(key)
        result.append(identifier)
    return tuple(result)


def _normalize_calls(calls: Any) -> tuple[tuple[str, tuple[ValueSpec, ...]], ...]:
    result: list[tuple[str, tuple[ValueSpec, ...]]] = []
    for entry in _as_sequence("call", calls):
        if isinstance(entry, str):
            method_name, arguments = entry, ()
        else:
            try:
                method_name, arguments = entry
            except (TypeError, ValueError) as error:
                msg = f"Rule 'call' entries must be (method_name, arguments) pairs, got {entry!r}."
                raise GraphWireConfigurationError(msg) from error
        if not isinstance(method_name, str):
            msg = f"Rule 'call' method name must be a string, got {method_name!r}."
            raise GraphWireConfigurationError(msg)
        result.append(
            (
                method_name,
                tuple(as_argument_spec(argument) for argument in _as_sequence("call", arguments)),
            ),
        )
    return tuple(result)


__all__ = [
    "EMPTY_RULE",
    "UNSET",
    "Rule",
    "RuleStore",
]
