"""Shared pytest fixtures for graphwire tests."""

import pytest

from graphwire._internal.introspection import RuntimeTypeIntrospector
from graphwire.container import Container


@pytest.fixture()
def container() -> Container:
    """Default container with the runtime introspector."""
    return Container()


@pytest.fixture()
def introspector() -> RuntimeTypeIntrospector:
    """Fresh runtime introspector with no registered aliases."""
    return RuntimeTypeIntrospector()
