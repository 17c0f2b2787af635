from graphwire._internal.construction_policy import AutoConstructionPolicy
from graphwire.container import Container
from graphwire.exceptions import (
    GraphWireCircularDependencyError,
    GraphWireConfigurationError,
    GraphWireConstructionError,
    GraphWireError,
    GraphWireUnresolvableParameterError,
)
from graphwire.introspection import ParameterInfo, RuntimeTypeIntrospector, TypeIntrospector
from graphwire.markers import NULL, Callback, Instance, Null, Prebuilt, Value, ValueSpec
from graphwire.rules import UNSET, Rule

__all__ = [
    "NULL",
    "UNSET",
    "AutoConstructionPolicy",
    "Callback",
    "Container",
    "GraphWireCircularDependencyError",
    "GraphWireConfigurationError",
    "GraphWireConstructionError",
    "GraphWireError",
    "GraphWireUnresolvableParameterError",
    "Instance",
    "Null",
    "ParameterInfo",
    "Prebuilt",
    "Rule",
    "RuntimeTypeIntrospector",
    "TypeIntrospector",
    "Value",
    "ValueSpec",
]
