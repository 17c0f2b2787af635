from graphwire._internal.container import Container

__all__ = ["Container"]
