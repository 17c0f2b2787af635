from graphwire._internal.introspection import (
    ParameterInfo,
    RuntimeTypeIntrospector,
    TypeIntrospector,
)

__all__ = [
    "ParameterInfo",
    "RuntimeTypeIntrospector",
    "TypeIntrospector",
]
