from graphwire._internal.markers import NULL, Callback, Instance, Null, Prebuilt, Value, ValueSpec

__all__ = [
    "NULL",
    "Callback",
    "Instance",
    "Null",
    "Prebuilt",
    "Value",
    "ValueSpec",
]
