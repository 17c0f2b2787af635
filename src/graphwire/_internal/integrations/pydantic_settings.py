"""Treat pydantic settings models as configuration singletons.

A settings model reads its values from the environment when it is called
without arguments, so the container builds it differently from ordinary
classes: its effective rule starts out ``shared``, its constructor signature is
ignored, and it is never allocated ahead of ``__init__``. A cycle that re-enters
a settings model is closed with a deferred stand-in instead.

Both ``pydantic_settings.BaseSettings`` and the legacy pydantic v1
``BaseSettings`` are recognized. Without pydantic installed nothing is treated
as settings.
"""

from __future__ import annotations

import importlib
import warnings
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Final

from graphwire._internal.type_checks import is_runtime_class

# pydantic.v1 warns on import under Python 3.14+.
_PYDANTIC_V1_WARNING = (
    r"Core Pydantic V1 functionality isn't compatible with Python 3\.14 or greater\."
)
_SETTINGS_MODULES: Final = ("pydantic_settings", "pydantic.v1", "pydantic")

SETTINGS_RULE_FIELDS: Final[Mapping[str, Any]] = MappingProxyType({"shared": True})
"""Rule fields every settings model starts from before declared rules apply."""


def _find_base_settings(module_name: str) -> type[Any] | None:
    # pydantic 2 raises an ImportError subclass for the moved BaseSettings.
    try:
        module = importlib.import_module(module_name)
        candidate = getattr(module, "BaseSettings", None)
    except ImportError:
        return None
    return candidate if isinstance(candidate, type) else None


def discover_settings_bases(
    module_names: tuple[str, ...] = _SETTINGS_MODULES,
) -> tuple[type[Any], ...]:
    """Return the distinct ``BaseSettings`` classes importable from ``module_names``."""
    bases: list[type[Any]] = []
    with warnings.catch_warnings():
        warnings.filterwarnings("ignore", message=_PYDANTIC_V1_WARNING, category=UserWarning)
        for module_name in module_names:
            base = _find_base_settings(module_name)
            if base is not None and base not in bases:
                bases.append(base)
    return tuple(bases)


SETTINGS_BASES: tuple[type[Any], ...] = discover_settings_bases()


def is_settings_class(candidate: object) -> bool:
    """Return whether ``candidate`` is a class deriving from a settings base."""
    if not is_runtime_class(candidate):
        return False
    try:
        return issubclass(candidate, SETTINGS_BASES)
    except TypeError:
        return False


def settings_rule_fields(cls: type[Any]) -> Mapping[str, Any]:
    """Return the rule fields ``cls`` starts from, empty for ordinary classes."""
    return SETTINGS_RULE_FIELDS if is_settings_class(cls) else MappingProxyType({})


def takes_constructor_arguments(cls: type[Any]) -> bool:
    """Return whether parameters of ``cls`` are resolved from its signature."""
    return not is_settings_class(cls)


def is_preallocatable(cls: type[Any]) -> bool:
    """Return whether ``cls`` may be allocated before its constructor runs."""
    return not is_settings_class(cls)


__all__ = [
    "SETTINGS_BASES",
    "SETTINGS_RULE_FIELDS",
    "discover_settings_bases",
    "is_preallocatable",
    "is_settings_class",
    "settings_rule_fields",
    "takes_constructor_arguments",
]
