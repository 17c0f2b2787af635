from graphwire.integrations.pytest_plugin.plugin import (
    graphwire_container,
    pytest_configure,
)

__all__ = [
    "graphwire_container",
    "pytest_configure",
]
