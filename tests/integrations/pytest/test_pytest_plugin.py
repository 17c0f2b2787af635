from __future__ import annotations

from types import SimpleNamespace
from typing import Any, cast

import pytest

from graphwire import Container
from graphwire.integrations.pytest_plugin.plugin import _apply_rule_marker


class Clock:
    pass


class Scheduler:
    def __init__(self, clock: Clock, name: str = "default") -> None:
        self.clock = clock
        self.name = name


pytestmark = pytest.mark.graphwire_rule(Scheduler, construct_params=["module"])


def test_fixture_provides_a_container(graphwire_container: Container) -> None:
    assert isinstance(graphwire_container, Container)
    assert isinstance(graphwire_container.create(Scheduler).clock, Clock)


def test_module_marker_is_applied(graphwire_container: Container) -> None:
    assert graphwire_container.create(Scheduler).name == "module"


@pytest.mark.graphwire_rule(Clock, shared=True)
def test_function_marker_is_applied(graphwire_container: Container) -> None:
    assert graphwire_container.create(Clock) is graphwire_container.create(Clock)


@pytest.mark.graphwire_rule(Scheduler, construct_params=["function"])
def test_closer_marker_overrides_broader_marker(graphwire_container: Container) -> None:
    assert graphwire_container.create(Scheduler).name == "function"


def test_containers_are_isolated_between_tests(graphwire_container: Container) -> None:
    assert graphwire_container.create(Clock) is not graphwire_container.create(Clock)


@pytest.mark.graphwire_rule(Clock, shared=True)
class TestClassMarkers:
    def test_class_marker_is_applied(self, graphwire_container: Container) -> None:
        assert graphwire_container.create(Clock) is graphwire_container.create(Clock)

    @pytest.mark.graphwire_rule(Clock, shared=False)
    def test_method_marker_overrides_class_marker(
        self,
        graphwire_container: Container,
    ) -> None:
        assert graphwire_container.create(Clock) is not graphwire_container.create(Clock)


def test_rule_marker_requires_exactly_one_identifier() -> None:
    marker = SimpleNamespace(args=(Clock, Scheduler), kwargs={"shared": True})

    with pytest.raises(pytest.UsageError, match="exactly one identifier"):
        _apply_rule_marker(Container(), cast("Any", marker))


def test_marker_is_registered(pytestconfig: pytest.Config) -> None:
    markers = pytestconfig.getini("markers")

    assert any(str(line).startswith("graphwire_rule(") for line in markers)
