from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import pytest

from graphwire._internal.identifiers import type_name
from graphwire.container import Container
from graphwire.exceptions import (
    GraphWireConfigurationError,
    GraphWireConstructionError,
    GraphWireUnresolvableParameterError,
)


class Logger:
    pass


class FileLogger(Logger):
    pass


class Mailer:
    def __init__(self, logger: Logger) -> None:
        self.logger = logger


class Newsletter:
    def __init__(self, mailer: Mailer, logger: Logger) -> None:
        self.mailer = mailer
        self.logger = logger


class Storage(ABC):
    @abstractmethod
    def save(self) -> None: ...


class NeedsStorage:
    def __init__(self, storage: Storage) -> None:
        self.storage = storage


class OptionalStorage:
    def __init__(self, storage: Storage | None) -> None:
        self.storage = storage


class Greeting:
    def __init__(self, name: str, punctuation: str = "!") -> None:
        self.text = f"Hello {name}{punctuation}"


class LabelledLogger:
    def __init__(self, logger: Logger | None, label) -> None:  # noqa: ANN001
        self.logger = logger
        self.label = label


class Untyped:
    def __init__(self, first, second=2) -> None:  # noqa: ANN001
        self.first = first
        self.second = second


class WithVariadics:
    def __init__(self, logger: Logger, *args: object, **kwargs: object) -> None:
        self.logger = logger
        self.args = args
        self.kwargs = kwargs


class PositionalOnly:
    def __init__(self, count: int = 1, label: str = "x", /) -> None:
        self.count = count
        self.label = label


class FallsBackToDefault:
    def __init__(self, greeting: Greeting | None = None) -> None:
        self.greeting = greeting


class FallsBackToNone:
    def __init__(self, greeting: Greeting | None) -> None:
        self.greeting = greeting


class RequiresGreeting:
    def __init__(self, greeting: Greeting) -> None:
        self.greeting = greeting


class Exploding:
    def __init__(self) -> None:
        msg = "boom"
        raise TypeError(msg)


@dataclass
class Settings:
    logger: Logger
    tags: list[str] = field(default_factory=list)


def test_create_builds_class_without_dependencies(container: Container) -> None:
    assert isinstance(container.create(Logger), Logger)


def test_create_builds_dependencies_recursively(container: Container) -> None:
    newsletter = container.create(Newsletter)

    assert isinstance(newsletter.mailer, Mailer)
    assert isinstance(newsletter.mailer.logger, Logger)
    assert isinstance(newsletter.logger, Logger)


def test_unshared_dependencies_are_new_objects(container: Container) -> None:
    newsletter = container.create(Newsletter)

    assert newsletter.logger is not newsletter.mailer.logger
    assert container.create(Logger) is not container.create(Logger)


def test_create_accepts_type_names(container: Container) -> None:
    mailer = container.create(type_name(Mailer).upper())

    assert isinstance(mailer, Mailer)


def test_shared_rule_returns_one_instance(container: Container) -> None:
    container.add_rule(Logger, shared=True)

    newsletter = container.create(Newsletter)

    assert newsletter.logger is newsletter.mailer.logger
    assert container.create(Logger) is newsletter.logger


def test_shared_rule_by_type_name_and_class_share_a_singleton(container: Container) -> None:
    container.add_rule(type_name(Logger), shared=True)

    assert container.create(Logger) is container.create(type_name(Logger).lower())


def test_wildcard_rule_applies_to_every_type(container: Container) -> None:
    container.add_rule("*", shared=True)

    assert container.create(Mailer) is container.create(Mailer)
    assert container.create(Mailer).logger is container.create(Logger)


def test_exact_rule_overrides_wildcard(container: Container) -> None:
    container.add_rule("*", shared=True)
    container.add_rule(Logger, shared=False)

    assert container.create(Logger) is not container.create(Logger)


def test_force_new_bypasses_and_preserves_the_singleton(container: Container) -> None:
    container.add_rule(Logger, shared=True)
    singleton = container.create(Logger)

    fresh = container.create(Logger, force_new=True)

    assert fresh is not singleton
    assert container.create(Logger) is singleton


def test_force_new_never_fills_the_cache(container: Container) -> None:
    container.add_rule(Logger, shared=True)

    fresh = container.create(Logger, force_new=True)

    assert container.create(Logger) is not fresh


def test_clear_singletons_keeps_rules(container: Container) -> None:
    container.add_rule(Logger, shared=True)
    first = container.create(Logger)

    container.clear_singletons()

    second = container.create(Logger)
    assert second is not first
    assert container.create(Logger) is second


def test_rules_added_after_creation_are_observed(container: Container) -> None:
    first = container.create(Logger)
    container.add_rule(Logger, shared=True)

    assert container.create(Logger) is not first
    assert container.create(Logger) is container.create(Logger)


def test_call_site_arguments_fill_parameters(container: Container) -> None:
    greeting = container.create(Greeting, ["World"])

    assert greeting.text == "Hello World!"


def test_call_site_objects_match_by_type_in_any_order(container: Container) -> None:
    logger = FileLogger()

    newsletter = container.create(Newsletter, [logger, Mailer(Logger())])

    assert newsletter.logger is logger


def test_call_site_none_does_not_shadow_a_matching_object(container: Container) -> None:
    logger = Logger()

    labelled = container.create(LabelledLogger, [None, logger])

    assert labelled.logger is logger
    assert labelled.label is None


def test_call_site_arguments_match_subclasses(container: Container) -> None:
    logger = FileLogger()

    assert container.create(Mailer, [logger]).logger is logger


def test_unmatched_call_site_arguments_are_dropped(container: Container) -> None:
    mailer = container.create(Mailer, ["unused", 42])

    assert isinstance(mailer.logger, Logger)


def test_untyped_parameters_take_values_in_order(container: Container) -> None:
    untyped = container.create(Untyped, ["a", "b", "c"])

    assert (untyped.first, untyped.second) == ("a", "b")


def test_untyped_parameters_fall_back_to_defaults(container: Container) -> None:
    untyped = container.create(Untyped, ["a"])

    assert untyped.second == 2


def test_untyped_parameter_without_value_is_unresolvable(container: Container) -> None:
    with pytest.raises(GraphWireUnresolvableParameterError) as exc_info:
        container.create(Untyped)

    assert exc_info.value.parameter == "first"
    assert exc_info.value.owner is Untyped


def test_scalar_parameter_without_value_is_unresolvable(container: Container) -> None:
    with pytest.raises(GraphWireUnresolvableParameterError, match="'name'"):
        container.create(Greeting)


def test_abstract_dependency_without_rule_is_unresolvable(container: Container) -> None:
    with pytest.raises(GraphWireUnresolvableParameterError, match="'storage'"):
        container.create(NeedsStorage)


def test_nullable_dependency_without_source_is_none(container: Container) -> None:
    assert container.create(OptionalStorage).storage is None


def test_nested_unresolvable_dependency_falls_back_to_default(container: Container) -> None:
    assert container.create(FallsBackToDefault).greeting is None


def test_nested_unresolvable_dependency_falls_back_to_none(container: Container) -> None:
    assert container.create(FallsBackToNone).greeting is None


def test_nested_unresolvable_dependency_without_fallback_raises(container: Container) -> None:
    with pytest.raises(GraphWireUnresolvableParameterError) as exc_info:
        container.create(RequiresGreeting)

    assert exc_info.value.owner is Greeting


def test_nested_dependency_is_built_when_resolvable(container: Container) -> None:
    container.add_rule(Greeting, construct_params=["rule"])

    assert container.create(FallsBackToDefault).greeting.text == "Hello rule!"


def test_variadic_parameters_are_skipped(container: Container) -> None:
    built = container.create(WithVariadics, ["extra"])

    assert isinstance(built.logger, Logger)
    assert built.args == ()
    assert built.kwargs == {}


def test_positional_only_defaults_are_filled_before_later_values(container: Container) -> None:
    built = container.create(PositionalOnly, ["label"])

    assert (built.count, built.label) == (1, "label")


def test_positional_only_parameters_use_defaults(container: Container) -> None:
    built = container.create(PositionalOnly)

    assert (built.count, built.label) == (1, "x")


def test_dataclass_default_factory_is_applied(container: Container) -> None:
    settings = container.create(Settings)

    assert isinstance(settings.logger, Logger)
    assert settings.tags == []


def test_missing_type_raises_construction_error(container: Container) -> None:
    with pytest.raises(GraphWireConstructionError, match="Cannot locate"):
        container.create("\\No\\Such\\Type")


def test_missing_type_error_is_not_a_configuration_error(container: Container) -> None:
    with pytest.raises(GraphWireConstructionError) as exc_info:
        container.create("no.such.Type")

    assert not isinstance(exc_info.value, GraphWireConfigurationError)
    assert exc_info.value.identifier == "no.such.Type"


def test_constructor_type_error_is_wrapped(container: Container) -> None:
    with pytest.raises(GraphWireConstructionError, match="boom") as exc_info:
        container.create(Exploding)

    assert isinstance(exc_info.value.__cause__, TypeError)


def test_failed_shared_construction_is_not_cached(container: Container) -> None:
    container.add_rule(Greeting, shared=True)

    with pytest.raises(GraphWireUnresolvableParameterError):
        container.create(Greeting)

    greeting = container.create(Greeting, ["again"])
    assert greeting.text == "Hello again!"
    assert container.create(Greeting) is greeting


def test_add_rule_rejects_unknown_fields(container: Container) -> None:
    with pytest.raises(GraphWireConfigurationError, match="Invalid rule fields"):
        container.add_rule(Logger, lifetime="singleton")


def test_add_rule_rejects_non_rule_objects(container: Container) -> None:
    with pytest.raises(GraphWireConfigurationError, match="Expected a Rule"):
        container.add_rule(Logger, {"shared": True})  # type: ignore[arg-type]


@pytest.mark.parametrize("identifier", [42, None, 3.5])
def test_identifiers_must_be_classes_or_strings(container: Container, identifier: object) -> None:
    with pytest.raises(GraphWireConfigurationError, match="must be a class or a string"):
        container.add_rule(identifier, shared=True)
    with pytest.raises(GraphWireConfigurationError, match="must be a class or a string"):
        container.create(identifier)
