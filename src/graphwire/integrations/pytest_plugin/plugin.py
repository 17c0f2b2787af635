from __future__ import annotations

from typing import Any

import pytest

from graphwire.container import Container

GRAPHWIRE_RULE_MARKER = "graphwire_rule"


def pytest_configure(config: pytest.Config) -> None:
    """Register the ``graphwire_rule`` marker."""
    config.addinivalue_line(
        "markers",
        f"{GRAPHWIRE_RULE_MARKER}(identifier, **fields): "
        "add a rule to the graphwire_container fixture before the test runs",
    )


@pytest.fixture()
def graphwire_container(request: pytest.FixtureRequest) -> Container:
    """Create a per-test container with the rules declared by markers.

    Every ``@pytest.mark.graphwire_rule(identifier, **fields)`` applied to the
    test, its class or its module is added to the container, outermost marker
    first, so markers closer to the test override broader ones. The fixture
    is function-scoped: rules and shared instances never leak between tests.

    Examples:
        .. code-block:: python

            @pytest.mark.graphwire_rule(Database, shared=True)
            def test_repository(graphwire_container: Container) -> None:
                repository = graphwire_container.create(Repository)

    Returns:
        A new ``Container`` instance.

    """
    container = Container()
    markers = list(request.node.iter_markers(GRAPHWIRE_RULE_MARKER))
    for marker in reversed(markers):
        _apply_rule_marker(container, marker)
    return container


def _apply_rule_marker(container: Container, marker: Any) -> None:
    if len(marker.args) != 1:
        msg = (
            f"@pytest.mark.{GRAPHWIRE_RULE_MARKER} takes exactly one identifier, "
            f"got {marker.args!r}."
        )
        raise pytest.UsageError(msg)
    container.add_rule(marker.args[0], **marker.kwargs)
