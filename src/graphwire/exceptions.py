from __future__ import annotations

from typing import Any


class GraphWireError(Exception):
    """Represent a base class for all graphwire-specific failures.

    Catch this type when you want to handle any graphwire error path without
    matching each concrete exception class individually.
    """


class GraphWireConfigurationError(GraphWireError):
    """Signal an invalid rule configuration.

    Raised by ``Container.add_rule`` when rule fields have the wrong shape, and by
    ``Container.create`` when a rule points at something that cannot be built:
    an ``instance_of`` target with no resolvable type, a virtual ``$Name`` or
    ``[Name]`` identifier without ``instance_of``, or a ``call`` entry naming a
    method the instance does not have.

    Typical fixes include pointing ``instance_of`` at an importable class or a
    factory callable, and checking method names listed in ``call``.
    """


class GraphWireConstructionError(GraphWireError):
    """Signal that an identifier cannot be turned into an instance.

    Raised by ``Container.create`` when the requested type cannot be located by
    the type introspector or its constructor fails. graphwire never substitutes
    a default value to mask a missing type.

    Typical fixes include importing or registering the type with the
    introspector, or adding an ``instance_of`` rule for abstract types.
    """

    def __init__(self, identifier: Any, message: str) -> None:
        self.identifier = identifier
        super().__init__(message)


class GraphWireUnresolvableParameterError(GraphWireConstructionError):
    """Signal that a constructor parameter has no value source.

    No call-site or rule-supplied value matches the parameter, its declared type
    is missing or cannot be built automatically, it has no default, and it does
    not accept ``None``.

    Typical fixes include passing the value at the call site, adding it to the
    rule's ``construct_params``, or giving the parameter a default.
    """

    def __init__(self, owner: Any, parameter: str) -> None:
        self.owner = owner
        self.parameter = parameter
        super().__init__(
            owner,
            f"Cannot resolve parameter '{parameter}' of {_describe(owner)}: no matching value, "
            "no buildable declared type, no default, and None is not allowed.",
        )


class GraphWireCircularDependencyError(GraphWireConstructionError):
    """Signal a dependency cycle that cannot be closed.

    Cycles are only resolvable when at least one member of the cycle is a
    ``shared`` singleton. Raised when a cycle has no shared member, so building
    it would recurse forever.

    Typical fix is marking one of the types on the cycle ``shared=True``.
    """

    def __init__(self, identifier: Any, chain: list[str]) -> None:
        self.chain = chain
        super().__init__(
            identifier,
            f"Circular dependency detected while creating {_describe(identifier)}: "
            + " -> ".join([*chain, _describe(identifier)]),
        )


def _describe(value: Any) -> str:
    if isinstance(value, str):
        return value
    qualname = getattr(value, "__qualname__", None)
    return qualname if isinstance(qualname, str) else str(value)


__all__ = [
    "GraphWireCircularDependencyError",
    "GraphWireConfigurationError",
    "GraphWireConstructionError",
    "GraphWireError",
    "GraphWireUnresolvableParameterError",
]
