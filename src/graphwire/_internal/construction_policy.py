from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, TypeGuard

from graphwire._internal.type_checks import is_protocol_class, is_runtime_class
from graphwire.defaults import DEFAULT_IGNORED_BASE_TYPES


@dataclass(frozen=True, slots=True)
class AutoConstructionPolicy:
    """Decide which declared parameter types the container builds on its own.

    A typed parameter with no call-site value, substitution or shared instance
    is only constructed recursively when its type passes this policy or a rule
    redirects the type with ``instance_of``. Value types fall through to the
    parameter default, ``None`` or an unresolvable-parameter error.
    """

    ignored_base_types: tuple[type[Any], ...] = DEFAULT_IGNORED_BASE_TYPES

    def is_eligible_concrete(self, candidate: object) -> TypeGuard[type[Any]]:
        """Return true when a candidate can be constructed without a rule.

        Args:
            candidate: Declared parameter type being checked.

        """
        if not is_runtime_class(candidate):
            return False
        if candidate.__module__ == "builtins":
            return False
        if inspect.isabstract(candidate) or is_protocol_class(candidate):
            return False
        if issubclass(candidate, type):
            return False
        return not issubclass(candidate, self.ignored_base_types)


__all__ = ["AutoConstructionPolicy"]
