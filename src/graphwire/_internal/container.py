from __future__ import annotations

import logging
from collections.abc import Sequence
from inspect import Parameter
from typing import Any

from graphwire._internal.arguments import ArgumentPool
from graphwire._internal.construction_policy import AutoConstructionPolicy
from graphwire._internal.identifiers import Identifier, describe, is_virtual, type_name
from graphwire._internal.instance_cache import (
    InstanceCache,
    ResolutionRequest,
    SharedEntry,
    is_missing,
)
from graphwire._internal.introspection import (
    ParameterInfo,
    RuntimeTypeIntrospector,
    TypeIntrospector,
)
from graphwire._internal.markers import Callback, Instance, Null, Prebuilt, Value, ValueSpec
from graphwire._internal.rules import EMPTY_RULE, Rule, RuleStore
from graphwire._internal.type_checks import is_runtime_class
from graphwire.exceptions import (
    GraphWireCircularDependencyError,
    GraphWireConfigurationError,
    GraphWireConstructionError,
    GraphWireUnresolvableParameterError,
)

logger = logging.getLogger(__name__)

_USE_DEFAULT = object()
_VARIADIC_KINDS = (Parameter.VAR_POSITIONAL, Parameter.VAR_KEYWORD)


class Container:
    """Build fully wired object graphs from rules and constructor signatures.

    Nothing has to be registered up front: ``create()`` inspects the requested
    class, builds every typed dependency recursively and injects the values
    supplied at the call site or by rules. Rules change how an identifier is
    built: lifetime (``shared``), concrete target (``instance_of``), values for
    constructor parameters, per-type substitutions, request-scoped sharing and
    post-construction calls.

    Examples:
        .. code-block:: python

            container = Container()
            container.add_rule(Database, shared=True, construct_params=["sqlite://"])
            container.add_rule(Cache, instance_of=RedisCache)

            service = container.create(Service)

    """

    __slots__ = (
        "_cache",
        "_construction_policy",
        "_introspector",
        "_rules",
    )

    def __init__(
        self,
        *,
        introspector: TypeIntrospector | None = None,
        construction_policy: AutoConstructionPolicy | None = None,
    ) -> None:
        """Initialize a container with an empty rule table.

        Args:
            introspector: Source of constructor signatures and ancestor chains.
                Defaults to ``RuntimeTypeIntrospector``.
            construction_policy: Decides which declared parameter types are
                built automatically. Defaults to ``AutoConstructionPolicy()``.

        """
        self._introspector: TypeIntrospector = introspector or RuntimeTypeIntrospector()
        self._construction_policy = construction_policy or AutoConstructionPolicy()
        self._rules = RuleStore(self._introspector)
        self._cache = InstanceCache()

    @property
    def introspector(self) -> TypeIntrospector:
        """Return the type introspector used by this container."""
        return self._introspector

    def add_rule(self, identifier: Identifier, rule: Rule | None = None, /, **fields: Any) -> None:
        """Merge a rule into the rule table.

        Fields that are not given are left untouched on any existing rule for
        ``identifier``. Dictionary-like fields are merged key by key and
        identifier lists are unioned.

        Args:
            identifier: Class, type name string, ``"*"`` for the default rule, or
                a virtual ``"$Name"``/``"[Name]"`` identifier.
            rule: Optional prepared ``Rule``.
            **fields: ``Rule`` fields (``shared``, ``instance_of``,
                ``construct_params``, ``substitutions``, ``share_instances``,
                ``new_instances``, ``call``, ``inherit``) applied on top of ``rule``.

        Raises:
            GraphWireConfigurationError: If a field is unknown or has the wrong shape.

        """
        if rule is not None and not isinstance(rule, Rule):
            msg = f"Expected a Rule instance, got {rule!r}."
            raise GraphWireConfigurationError(msg)
        combined = rule if rule is not None else EMPTY_RULE
        if fields:
            try:
                field_rule = Rule(**fields)
            except TypeError as error:
                msg = f"Invalid rule fields for {describe(identifier)}: {error}"
                raise GraphWireConfigurationError(msg) from error
            combined = combined.merge(field_rule)
        self._rules.add_rule(identifier, combined)

    def get_rule(self, identifier: Identifier) -> Rule:
        """Return the effective rule for ``identifier``.

        The result layers the default ``"*"`` rule, the rule of the nearest
        ancestor type and the rule registered for ``identifier`` itself. It is
        recomputed on every call.
        """
        return self._rules.get_rule(identifier)

    def create(
        self,
        identifier: Identifier,
        args: Sequence[Any] = (),
        force_new: bool = False,  # noqa: FBT001, FBT002
    ) -> Any:
        """Build an instance with all of its dependencies.

        Args:
            identifier: Class, type name string or virtual identifier to build.
            args: Call-site values. Values for typed parameters are matched by
                type in any order, values for untyped parameters by position.
                They take precedence over the rule's ``construct_params``.
            force_new: Build a new instance even when the rule is ``shared``.
                The cached singleton, if any, is left untouched.

        Returns:
            The constructed instance.

        Raises:
            GraphWireConstructionError: If the type cannot be located or built.
            GraphWireUnresolvableParameterError: If a parameter has no value source.
            GraphWireCircularDependencyError: If a cycle has no shared member.
            GraphWireConfigurationError: If a rule points at nothing buildable.

        """
        return self._create(identifier, tuple(args), force_new, ResolutionRequest())

    def clear_singletons(self) -> None:
        """Drop every cached shared instance; rules are kept."""
        self._cache.clear()

    def _create(
        self,
        identifier: Identifier,
        args: tuple[Any, ...],
        force_new: bool,  # noqa: FBT001
        request: ResolutionRequest,
    ) -> Any:
        key = self._rules.key_for(identifier)
        rule = self._rules.get_rule(identifier)
        shared = rule.is_shared and not force_new

        if shared and key in self._cache:
            logger.debug("Returning shared instance of '%s'", key)
            return self._cache.get(key)
        if shared and request.is_constructing_shared(key):
            return request.defer(key)
        if not shared and request.is_unbreakable_cycle(key):
            raise GraphWireCircularDependencyError(identifier, request.chain())

        target = rule.instance_of if rule.redirects else identifier
        if is_virtual(identifier) and not rule.redirects:
            msg = f"Virtual identifier '{identifier}' has no 'instance_of' rule."
            raise GraphWireConfigurationError(msg)

        mark = request.mark()
        try:
            with (
                request.constructing(key, shared=shared),
                request.sharing(self._shared_entries(rule)),
            ):
                instance = self._build(key, identifier, rule, target, args, shared, request)
                request.record_built(instance)
                if shared:
                    self._store_singleton(key, instance, request)
                    request.settle(key, instance)
                self._run_calls(instance, rule, request)
        except Exception:
            if shared:
                request.abandon(key)
                self._rollback(request, mark)
            raise
        return instance

    def _build(
        self,
        key: str,
        identifier: Identifier,
        rule: Rule,
        target: Any,
        args: tuple[Any, ...],
        shared: bool,  # noqa: FBT001
        request: ResolutionRequest,
    ) -> Any:
        if _is_factory(target):
            return target(*args)
        if is_virtual(target):
            if self._rules.key_for(target) == key:
                msg = f"Rule for '{identifier}' cannot point 'instance_of' at itself."
                raise GraphWireConfigurationError(msg)
            return self._create(target, args, False, request)

        cls = self._introspector.resolve_type(target)
        if cls is None:
            if rule.redirects:
                msg = (
                    f"Rule for {describe(identifier)} points at {describe(target)}, "
                    "which is neither a resolvable type nor a factory."
                )
                raise GraphWireConfigurationError(msg)
            msg = f"Cannot locate a type named {describe(identifier)}."
            raise GraphWireConstructionError(identifier, msg)

        parameters = self._introspector.resolve_constructor_parameters(cls)

        handle = self._allocate(identifier, cls) if shared else None
        if handle is not None:
            self._store_singleton(key, handle, request)
            logger.debug("Registered forward handle for '%s'", key)

        pool = self._argument_pool(args, rule.construct_params, request)
        positional, keyword = self._resolve_parameters(cls, parameters, pool, rule, request)
        return self._construct(identifier, cls, handle, positional, keyword)

    def _store_singleton(self, key: str, instance: Any, request: ResolutionRequest) -> None:
        self._cache.store(key, instance)
        request.record_singleton(key)

    def _rollback(self, request: ResolutionRequest, mark: int) -> None:
        for key in request.rollback(mark):
            self._cache.discard(key)
            logger.debug("Discarded shared instance of '%s' after a failed construction", key)

    def _allocate(self, identifier: Identifier, cls: type[Any]) -> Any | None:
        try:
            return self._introspector.allocate(cls)
        except TypeError as error:
            msg = f"Cannot instantiate {type_name(cls)}: {error}"
            raise GraphWireConstructionError(identifier, msg) from error

    def _construct(
        self,
        identifier: Identifier,
        cls: type[Any],
        handle: Any | None,
        positional: list[Any],
        keyword: dict[str, Any],
    ) -> Any:
        try:
            if handle is not None:
                self._introspector.initialize(handle, positional, keyword)
                return handle
            return self._introspector.instantiate(cls, positional, keyword)
        except TypeError as error:
            msg = f"Cannot instantiate {type_name(cls)}: {error}"
            raise GraphWireConstructionError(identifier, msg) from error

    def _resolve_parameters(
        self,
        owner: Any,
        parameters: Sequence[ParameterInfo],
        pool: ArgumentPool,
        rule: Rule,
        request: ResolutionRequest,
    ) -> tuple[list[Any], dict[str, Any]]:
        positional: list[Any] = []
        keyword: dict[str, Any] = {}
        pending_defaults: list[Any] = []

        for parameter in parameters:
            if parameter.kind in _VARIADIC_KINDS:
                continue
            value = self._resolve_parameter(owner, parameter, pool, rule, request)
            if parameter.kind is Parameter.POSITIONAL_ONLY:
                if value is _USE_DEFAULT:
                    pending_defaults.append(parameter.default)
                    continue
                positional.extend(pending_defaults)
                pending_defaults.clear()
                positional.append(value)
            elif value is not _USE_DEFAULT:
                keyword[parameter.name] = value

        if pool:
            logger.debug(
                "Dropping %d unmatched argument(s) for %s",
                len(pool),
                describe(owner),
            )
        return positional, keyword

    def _resolve_parameter(
        self,
        owner: Any,
        parameter: ParameterInfo,
        pool: ArgumentPool,
        rule: Rule,
        request: ResolutionRequest,
    ) -> Any:
        found, value = pool.take_for(parameter)
        if found:
            return value

        declared_type = parameter.declared_type
        if declared_type is not None:
            type_key = self._rules.key_for(declared_type)
            substitutions = rule.substitutions or {}
            if type_key in substitutions:
                return self._resolve_spec(substitutions[type_key], request)

            if any(self._rules.key_for(item) == type_key for item in rule.new_instances or ()):
                return self._create(declared_type, (), True, request)

            entry = self._find_shared_entry(declared_type, request)
            if entry is not None:
                return self._shared_instance(entry, request)

            if self._is_constructible(declared_type):
                try:
                    return self._create(declared_type, (), False, request)
                except GraphWireUnresolvableParameterError:
                    if not (parameter.has_default or parameter.nullable):
                        raise
                    logger.debug(
                        "Falling back to the default of '%s' on %s",
                        parameter.name,
                        describe(owner),
                    )

        if parameter.has_default:
            return _USE_DEFAULT
        if parameter.nullable:
            return None
        raise GraphWireUnresolvableParameterError(owner, parameter.name)

    def _is_constructible(self, declared_type: type[Any]) -> bool:
        if self._construction_policy.is_eligible_concrete(declared_type):
            return True
        return self._rules.get_rule(declared_type).redirects

    def _shared_entries(self, rule: Rule) -> list[SharedEntry]:
        entries: list[SharedEntry] = []
        for identifier in rule.share_instances or ():
            target: Any = identifier
            if is_virtual(identifier):
                shared_rule = self._rules.get_rule(identifier)
                target = shared_rule.instance_of if shared_rule.redirects else None
            resolved = (
                self._introspector.resolve_type(target)
                if is_runtime_class(target) or isinstance(target, str)
                else None
            )
            entries.append(SharedEntry(self._rules.key_for(identifier), identifier, resolved))
        return entries

    def _find_shared_entry(
        self,
        declared_type: type[Any],
        request: ResolutionRequest,
    ) -> SharedEntry | None:
        for entry in reversed(request.active_shared):
            existing = request.get_shared(entry.key)
            if not is_missing(existing):
                if isinstance(existing, declared_type):
                    return entry
            elif entry.target is not None and issubclass(entry.target, declared_type):
                return entry
        return None

    def _shared_instance(self, entry: SharedEntry, request: ResolutionRequest) -> Any:
        existing = request.get_shared(entry.key)
        if not is_missing(existing):
            return existing
        instance = self._create(entry.identifier, (), False, request)
        request.store_shared(entry.key, instance)
        return instance

    def _argument_pool(
        self,
        args: tuple[Any, ...],
        specs: Any,
        request: ResolutionRequest,
    ) -> ArgumentPool:
        pool = ArgumentPool(args)
        for spec in specs or ():
            if isinstance(spec, Null):
                pool.append_null()
            else:
                pool.append(self._resolve_spec(spec, request))
        return pool

    def _resolve_spec(self, spec: ValueSpec, request: ResolutionRequest) -> Any:
        if isinstance(spec, Value):
            return spec.value
        if isinstance(spec, Null):
            return None
        if isinstance(spec, Instance):
            return self._create(spec.identifier, (), False, request)
        if isinstance(spec, Callback):
            return spec.factory()
        if isinstance(spec, Prebuilt):
            return spec.instance
        msg = f"Unsupported value specification {spec!r}."
        raise GraphWireConfigurationError(msg)

    def _run_calls(self, instance: Any, rule: Rule, request: ResolutionRequest) -> None:
        for method_name, arguments in rule.call or ():
            try:
                parameters = self._introspector.resolve_method_parameters(instance, method_name)
            except AttributeError as error:
                msg = (
                    f"Cannot call '{method_name}' on {type(instance).__qualname__} "
                    f"after construction: {error}"
                )
                raise GraphWireConfigurationError(msg) from error

            pool = self._argument_pool((), arguments, request)
            method = getattr(instance, method_name)
            positional, keyword = self._resolve_parameters(method, parameters, pool, rule, request)
            logger.debug(
                "Calling %s.%s after construction",
                type(instance).__qualname__,
                method_name,
            )
            method(*positional, **keyword)


def _is_factory(target: Any) -> bool:
    return callable(target) and not is_runtime_class(target) and not isinstance(target, str)


__all__ = ["Container"]
