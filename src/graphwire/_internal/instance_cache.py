from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from graphwire._internal.identifiers import Identifier
from graphwire.exceptions import GraphWireConstructionError

logger = logging.getLogger(__name__)

_MISSING = object()


class InstanceCache:
    """Global singleton storage keyed by the normalized requested identifier.

    Entries live for the container's lifetime. While a shared instance is being
    built, its entry holds the allocated but not yet initialized object, so a
    cycle that re-enters the same identifier receives the same object.
    """

    def __init__(self) -> None:
        self._instances: dict[str, Any] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._instances

    def __len__(self) -> int:
        return len(self._instances)

    def get(self, key: str, default: Any = None) -> Any:
        return self._instances.get(key, default)

    def store(self, key: str, instance: Any) -> None:
        self._instances[key] = instance

    def discard(self, key: str) -> None:
        self._instances.pop(key, None)

    def clear(self) -> None:
        self._instances.clear()


class DeferredInstance:
    """Stand-in for a singleton that is built in one step and re-entered by a cycle.

    Types with a custom ``__new__`` or metaclass ``__call__`` cannot be
    allocated before their constructor runs. A dependency that needs such an
    instance while it is still being built receives this stand-in instead.
    Once the instance exists, the stand-in is bound to it and every attribute
    holding the stand-in on objects built in the same request is pointed at
    the instance itself.

    Until then the stand-in only knows its key. Afterwards attribute access
    and ``isinstance`` checks are forwarded to the bound instance, which
    covers references the container cannot rebind (tuples, containers).
    """

    __slots__ = ("_graphwire_instance", "_graphwire_key")

    def __init__(self, key: str) -> None:
        object.__setattr__(self, "_graphwire_key", key)
        object.__setattr__(self, "_graphwire_instance", _MISSING)

    def __getattr__(self, name: str) -> Any:
        return getattr(resolve_deferred(self), name)

    def __setattr__(self, name: str, value: Any) -> None:
        setattr(resolve_deferred(self), name, value)

    def _bound_class(self) -> type[Any]:
        instance = object.__getattribute__(self, "_graphwire_instance")
        return DeferredInstance if instance is _MISSING else type(instance)

    __class__ = property(_bound_class)  # type: ignore[assignment]

    def __repr__(self) -> str:
        instance = object.__getattribute__(self, "_graphwire_instance")
        if instance is _MISSING:
            return f"<deferred {object.__getattribute__(self, '_graphwire_key')}>"
        return repr(instance)


def resolve_deferred(reference: DeferredInstance) -> Any:
    """Return the instance a stand-in is bound to."""
    instance = object.__getattribute__(reference, "_graphwire_instance")
    if instance is _MISSING:
        key = object.__getattribute__(reference, "_graphwire_key")
        msg = f"'{key}' is used by a dependency before its own construction finished."
        raise GraphWireConstructionError(key, msg)
    return instance


@dataclass(frozen=True, slots=True)
class SharedEntry:
    """An identifier listed in ``share_instances`` that is active for a subtree."""

    key: str
    identifier: Identifier
    target: type[Any] | None


@dataclass(frozen=True, slots=True)
class StackFrame:
    """One construction in progress within a request."""

    key: str
    shared: bool


@dataclass(slots=True)
class ResolutionRequest:
    """State of one top-level ``create()`` call.

    Holds the request-scoped shared instances, the ``share_instances`` entries
    active for the construction currently in progress, and the resolution
    stack. It also journals every singleton stored in the global cache during
    the call, so a failed construction can take back what was built beneath
    it. A request is never reused after its top-level call returns.
    """

    shared_instances: dict[str, Any] = field(default_factory=dict)
    active_shared: list[SharedEntry] = field(default_factory=list)
    stack: list[StackFrame] = field(default_factory=list)
    deferred: dict[str, DeferredInstance] = field(default_factory=dict)
    built: list[Any] = field(default_factory=list)
    journal: list[tuple[bool, str]] = field(default_factory=list)

    @contextmanager
    def sharing(self, entries: list[SharedEntry]) -> Iterator[None]:
        """Activate ``entries`` for the duration of one construction subtree."""
        if not entries:
            yield
            return
        depth = len(self.active_shared)
        self.active_shared.extend(entries)
        try:
            yield
        finally:
            del self.active_shared[depth:]

    @contextmanager
    def constructing(self, key: str, *, shared: bool) -> Iterator[None]:
        """Push ``key`` on the resolution stack while it is being built."""
        self.stack.append(StackFrame(key, shared))
        try:
            yield
        finally:
            self.stack.pop()

    def is_unbreakable_cycle(self, key: str) -> bool:
        """Return whether building ``key`` now would recurse forever.

        Re-entering an identifier is only safe when a singleton is being built
        between its previous occurrence and now: the next request for that
        singleton returns its forward handle or a deferred stand-in.
        """
        for frame in reversed(self.stack):
            if frame.key == key:
                return True
            if frame.shared:
                return False
        return False

    def is_constructing_shared(self, key: str) -> bool:
        """Return whether ``key`` is being built as a singleton right now."""
        return any(frame.key == key and frame.shared for frame in self.stack)

    def chain(self) -> list[str]:
        return [frame.key for frame in self.stack]

    def defer(self, key: str) -> DeferredInstance:
        """Return the stand-in handed out for ``key`` until it is settled."""
        reference = self.deferred.get(key)
        if reference is None:
            logger.debug("Deferring '%s' until its construction finishes", key)
            reference = self.deferred[key] = DeferredInstance(key)
        return reference

    def record_built(self, instance: Any) -> None:
        """Remember ``instance`` as a possible holder of a pending stand-in."""
        if self.deferred and type(instance) is not DeferredInstance:
            self.built.append(instance)

    def settle(self, key: str, instance: Any) -> None:
        """Bind the stand-in for ``key``, if any, and rebind its holders."""
        reference = self.deferred.pop(key, None)
        if reference is None:
            return
        object.__setattr__(reference, "_graphwire_instance", instance)
        for holder in (*self.built, instance):
            _rebind_attributes(holder, reference, instance)
        if not self.deferred:
            self.built.clear()

    def abandon(self, key: str) -> None:
        """Forget the stand-in for ``key`` after its construction failed."""
        self.deferred.pop(key, None)

    def get_shared(self, key: str) -> Any:
        return self.shared_instances.get(key, _MISSING)

    def store_shared(self, key: str, instance: Any) -> None:
        logger.debug("Sharing '%s' for the rest of the request", key)
        self.shared_instances[key] = instance
        self.journal.append((False, key))

    def record_singleton(self, key: str) -> None:
        """Journal a key stored in the global cache during this request."""
        self.journal.append((True, key))

    def mark(self) -> int:
        return len(self.journal)

    def rollback(self, mark: int) -> list[str]:
        """Forget everything stored since ``mark``.

        Request-shared instances are dropped here. The global cache keys are
        returned for the caller to discard.
        """
        singletons: list[str] = []
        for is_singleton, key in self.journal[mark:]:
            if is_singleton:
                singletons.append(key)
            else:
                self.shared_instances.pop(key, None)
        del self.journal[mark:]
        return singletons


def _rebind_attributes(holder: Any, reference: DeferredInstance, instance: Any) -> None:
    if type(holder) is DeferredInstance:
        return
    names = [name for name, value in _attributes(holder) if value is reference]
    for name in names:
        try:
            object.__setattr__(holder, name, instance)
        except (AttributeError, TypeError):
            logger.debug(
                "Cannot rebind '%s' on %s; it keeps the deferred stand-in",
                name,
                type(holder).__qualname__,
            )


def _attributes(holder: Any) -> Iterator[tuple[str, Any]]:
    namespace = getattr(holder, "__dict__", None)
    if isinstance(namespace, dict):
        yield from list(namespace.items())
    for cls in type(holder).__mro__:
        slots = cls.__dict__.get("__slots__", ())
        for name in (slots,) if isinstance(slots, str) else slots:
            if name in ("__dict__", "__weakref__"):
                continue
            value = getattr(holder, name, _MISSING)
            if value is not _MISSING:
                yield name, value


def is_missing(value: Any) -> bool:
    return value is _MISSING


__all__ = [
    "DeferredInstance",
    "InstanceCache",
    "ResolutionRequest",
    "SharedEntry",
    "is_missing",
    "resolve_deferred",
]
