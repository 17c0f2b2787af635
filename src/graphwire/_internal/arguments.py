from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from graphwire._internal.introspection import ParameterInfo


class ArgumentPool:
    """Explicitly supplied values waiting to be matched to parameters.

    Typed parameters take the first remaining value that is an instance of the
    declared type, wherever it sits in the pool, so object arguments can be
    passed in any order. Only when no instance matches does a typed parameter
    take a ``None``: a call-site ``None`` fills nullable parameters, while a
    ``NULL`` supplied by a rule fills the next typed parameter whatever its
    annotation. Untyped parameters take the next remaining value in the
    original order.

    Examples:
        .. code-block:: python

            pool = ArgumentPool(["name", logger])
            pool.take_instance_of(Logger)  # (True, logger)
            pool.take_next()  # (True, "name")

    """

    __slots__ = ("_entries",)

    def __init__(self, values: Iterable[Any] = ()) -> None:
        self._entries: list[tuple[Any, bool]] = [(value, False) for value in values]

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def append(self, value: Any) -> None:
        self._entries.append((value, False))

    def append_null(self) -> None:
        """Add a ``None`` that fills the next typed parameter whatever its annotation."""
        self._entries.append((None, True))

    def take_for(self, parameter: ParameterInfo) -> tuple[bool, Any]:
        """Consume the value that fills ``parameter``, if any.

        Returns:
            ``(True, value)`` when a value was consumed, ``(False, None)`` otherwise.

        """
        if parameter.declared_type is None:
            return self.take_next()
        return self.take_instance_of(parameter.declared_type, nullable=parameter.nullable)

    def take_instance_of(
        self,
        declared_type: type[Any],
        *,
        nullable: bool = False,
    ) -> tuple[bool, Any]:
        """Consume the first value assignable to ``declared_type``.

        A ``None`` is only used when no instance of ``declared_type`` is left.
        """
        for index, (value, _) in enumerate(self._entries):
            if value is not None and _is_instance(value, declared_type):
                return True, self._pop(index)
        for index, (value, explicit_null) in enumerate(self._entries):
            if explicit_null or (value is None and nullable):
                return True, self._pop(index)
        return False, None

    def take_next(self) -> tuple[bool, Any]:
        """Consume the next value in the original order."""
        if not self._entries:
            return False, None
        return True, self._pop(0)

    def remaining(self) -> tuple[Any, ...]:
        return tuple(value for value, _ in self._entries)

    def _pop(self, index: int) -> Any:
        value, _ = self._entries.pop(index)
        return value


def _is_instance(value: Any, declared_type: type[Any]) -> bool:
    try:
        return isinstance(value, declared_type)
    except TypeError:
        return False


__all__ = ["ArgumentPool"]
