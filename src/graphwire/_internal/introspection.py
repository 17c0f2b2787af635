from __future__ import annotations

import importlib
import inspect
import logging
import sys
import types
import typing
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from inspect import Parameter
from typing import Annotated, Any, Protocol, Union, get_args, get_origin, get_type_hints

from graphwire._internal.identifiers import (
    Identifier,
    dotted_path,
    is_virtual,
    is_wildcard,
    normalize_identifier,
)
from graphwire._internal.integrations.pydantic_settings import (
    is_preallocatable,
    takes_constructor_arguments,
)
from graphwire._internal.type_checks import is_protocol_class, is_runtime_class

logger = logging.getLogger(__name__)

_MISSING_ANNOTATION = object()
_IGNORED_ANCESTORS: tuple[Any, ...] = (object, typing.Generic, Protocol)


@dataclass(frozen=True, slots=True)
class ParameterInfo:
    """Describe one constructor or method parameter.

    Attributes:
        name: Parameter name.
        declared_type: Runtime class the parameter is annotated with, or ``None``
            when the parameter is untyped (no annotation, ``Any``, multi-member
            unions, unresolvable forward references).
        has_default: Whether the signature provides a default.
        default: The default value, ``Parameter.empty`` when there is none.
        nullable: Whether the parameter accepts ``None``.
        kind: The ``inspect.Parameter`` kind.

    """

    name: str
    declared_type: type[Any] | None
    has_default: bool
    default: Any
    nullable: bool
    kind: Any = Parameter.POSITIONAL_OR_KEYWORD


class TypeIntrospector(Protocol):
    """Answer questions about types on behalf of the container.

    ``RuntimeTypeIntrospector`` is the default implementation. Alternative
    implementations can serve ahead-of-time generated descriptors instead of
    runtime reflection.
    """

    def resolve_type(self, identifier: Identifier) -> type[Any] | None:
        """Return the class an identifier names, or ``None`` when it names nothing."""
        ...

    def resolve_constructor_parameters(self, cls: type[Any]) -> tuple[ParameterInfo, ...]:
        """Return the constructor parameters of ``cls`` in declaration order."""
        ...

    def resolve_method_parameters(
        self,
        instance: Any,
        name: str,
    ) -> tuple[ParameterInfo, ...]:
        """Return the parameters of a bound method; raise ``AttributeError`` when missing."""
        ...

    def resolve_ancestors(self, cls: type[Any]) -> tuple[type[Any], ...]:
        """Return the ancestors of ``cls`` nearest first, concrete classes before interfaces."""
        ...

    def allocate(self, cls: type[Any]) -> Any | None:
        """Return an uninitialized instance of ``cls``, or ``None`` when unsupported."""
        ...

    def initialize(self, instance: Any, args: Sequence[Any], kwargs: Mapping[str, Any]) -> None:
        """Run the constructor on an instance returned by ``allocate``."""
        ...

    def instantiate(
        self,
        cls: type[Any],
        args: Sequence[Any],
        kwargs: Mapping[str, Any],
    ) -> Any:
        """Construct ``cls`` in one step."""
        ...


class RuntimeTypeIntrospector:
    """Introspect classes with ``inspect`` and ``typing.get_type_hints``.

    String identifiers are looked up case-insensitively among registered
    aliases and classes seen before, then imported as dotted paths, falling
    back to already loaded modules whose name differs only in case. Namespace
    separators ``\\``, ``/`` and ``:`` are accepted in place of dots.
    """

    def __init__(self) -> None:
        self._types_by_name: dict[str, type[Any]] = {}
        self._parameters_cache: dict[type[Any], tuple[ParameterInfo, ...]] = {}

    def register_type(self, cls: type[Any], *aliases: str) -> None:
        """Make ``cls`` addressable by its dotted name and extra aliases.

        Args:
            cls: The class to register.
            *aliases: Additional case-insensitive names for ``cls``.

        """
        if not is_runtime_class(cls):
            msg = f"Only classes can be registered, got {cls!r}."
            raise TypeError(msg)
        self._types_by_name[normalize_identifier(cls)] = cls
        for alias in aliases:
            self._types_by_name[normalize_identifier(alias)] = cls

    def resolve_type(self, identifier: Identifier) -> type[Any] | None:
        if is_runtime_class(identifier):
            self._types_by_name.setdefault(normalize_identifier(identifier), identifier)
            return identifier
        if not isinstance(identifier, str) or is_wildcard(identifier) or is_virtual(identifier):
            return None

        known = self._types_by_name.get(normalize_identifier(identifier))
        if known is not None:
            return known

        resolved = self._import_type(dotted_path(identifier))
        if resolved is not None:
            self._types_by_name[normalize_identifier(identifier)] = resolved
        return resolved

    def resolve_constructor_parameters(self, cls: type[Any]) -> tuple[ParameterInfo, ...]:
        cached = self._parameters_cache.get(cls)
        if cached is not None:
            return cached

        if not takes_constructor_arguments(cls):
            result: tuple[ParameterInfo, ...] = ()
        else:
            try:
                signature = inspect.signature(cls)
            except (ValueError, TypeError):
                signature = inspect.Signature()
            hints = self._class_type_hints(cls)
            result = tuple(
                self._describe_parameter(parameter, hints)
                for parameter in signature.parameters.values()
            )

        self._parameters_cache[cls] = result
        return result

    def resolve_method_parameters(
        self,
        instance: Any,
        name: str,
    ) -> tuple[ParameterInfo, ...]:
        method = getattr(instance, name)
        if not callable(method):
            msg = f"'{type(instance).__qualname__}.{name}' is not callable."
            raise AttributeError(msg)

        try:
            signature = inspect.signature(method)
        except (ValueError, TypeError):
            return ()
        hints = self._callable_type_hints(method)
        return tuple(
            self._describe_parameter(parameter, hints)
            for parameter in signature.parameters.values()
        )

    def resolve_ancestors(self, cls: type[Any]) -> tuple[type[Any], ...]:
        concrete: list[type[Any]] = []
        interfaces: list[type[Any]] = []
        for ancestor in cls.__mro__[1:]:
            if ancestor in _IGNORED_ANCESTORS:
                continue
            if inspect.isabstract(ancestor) or is_protocol_class(ancestor):
                interfaces.append(ancestor)
            else:
                concrete.append(ancestor)
        return (*concrete, *interfaces)

    def allocate(self, cls: type[Any]) -> Any | None:
        if not is_preallocatable(cls):
            return None
        if type(cls).__call__ is not type.__call__:
            return None
        if cls.__new__ is not object.__new__:
            return None
        return object.__new__(cls)

    def initialize(self, instance: Any, args: Sequence[Any], kwargs: Mapping[str, Any]) -> None:
        instance.__init__(*args, **kwargs)

    def instantiate(
        self,
        cls: type[Any],
        args: Sequence[Any],
        kwargs: Mapping[str, Any],
    ) -> Any:
        return cls(*args, **kwargs)

    def _import_type(self, path: str) -> type[Any] | None:
        parts = path.split(".")
        if len(parts) < 2 or not all(parts):  # noqa: PLR2004
            return None

        for split_at in range(len(parts) - 1, 0, -1):
            module_name = ".".join(parts[:split_at])
            module = _import_module(module_name)
            if module is None:
                continue
            resolved = _lookup_attribute_path(module, parts[split_at:])
            if is_runtime_class(resolved):
                logger.debug("Resolved type name '%s' to %r", path, resolved)
                return resolved
            return None
        return None

    def _class_type_hints(self, cls: type[Any]) -> dict[str, Any]:
        hints: dict[str, Any] = {}
        for member_name in ("__init__", "__new__"):
            member = getattr(cls, member_name, None)
            if member is None or member in (object.__init__, object.__new__):
                continue
            for name, annotation in self._callable_type_hints(member).items():
                hints.setdefault(name, annotation)
        for name, annotation in self._callable_type_hints(cls).items():
            hints.setdefault(name, annotation)
        return hints

    def _callable_type_hints(self, member: Callable[..., Any] | type[Any]) -> dict[str, Any]:
        try:
            return get_type_hints(member, include_extras=True)
        except (AttributeError, NameError, TypeError):
            return {}

    def _describe_parameter(self, parameter: Parameter, hints: dict[str, Any]) -> ParameterInfo:
        annotation = hints.get(parameter.name, _MISSING_ANNOTATION)
        if annotation is _MISSING_ANNOTATION:
            raw_annotation = parameter.annotation
            if raw_annotation is not Parameter.empty and not isinstance(raw_annotation, str):
                annotation = raw_annotation

        declared_type, nullable = _describe_annotation(annotation)
        has_default = parameter.default is not Parameter.empty
        return ParameterInfo(
            name=parameter.name,
            declared_type=declared_type,
            has_default=has_default,
            default=parameter.default,
            nullable=nullable or (has_default and parameter.default is None),
            kind=parameter.kind,
        )


def _import_module(module_name: str) -> types.ModuleType | None:
    try:
        return importlib.import_module(module_name)
    except ImportError:
        lowered = module_name.lower()
        return next(
            (
                module
                for name, module in list(sys.modules.items())
                if name.lower() == lowered and module is not None
            ),
            None,
        )


def _lookup_attribute_path(root: Any, names: list[str]) -> Any:
    current = root
    for name in names:
        found = getattr(current, name, _MISSING_ANNOTATION)
        if found is _MISSING_ANNOTATION:
            lowered = name.lower()
            found = next(
                (
                    value
                    for key, value in getattr(current, "__dict__", {}).items()
                    if isinstance(key, str) and key.lower() == lowered
                ),
                None,
            )
        if found is None:
            return None
        current = found
    return current


def _describe_annotation(annotation: Any) -> tuple[type[Any] | None, bool]:
    if annotation is _MISSING_ANNOTATION or annotation is Any:
        return None, False
    if annotation is None or annotation is type(None):
        return None, True

    origin = get_origin(annotation)
    if origin is Annotated:
        return _describe_annotation(get_args(annotation)[0])
    if origin is Union or origin is types.UnionType:
        members = [arg for arg in get_args(annotation) if arg is not type(None)]
        nullable = len(members) != len(get_args(annotation))
        if len(members) == 1:
            declared_type, member_nullable = _describe_annotation(members[0])
            return declared_type, nullable or member_nullable
        return None, nullable
    if origin is not None:
        return (origin, False) if is_runtime_class(origin) else (None, False)
    if is_runtime_class(annotation):
        return annotation, False
    return None, False


__all__ = [
    "ParameterInfo",
    "RuntimeTypeIntrospector",
    "TypeIntrospector",
]
