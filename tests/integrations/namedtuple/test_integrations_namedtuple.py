"""Tests for building NamedTuple classes."""

import collections
from typing import NamedTuple

from graphwire.container import Container


class DepService:
    pass


class NamedTupleModelWithDep(NamedTuple):
    dep: DepService


class NestedNamedTupleModel(NamedTuple):
    model: NamedTupleModelWithDep


class NamedTupleModelWithDefault(NamedTuple):
    dep: DepService
    name: str = "default"


class SelfReferencingTuple(NamedTuple):
    me: "SelfReferencingTuple"


class TupleOwner(NamedTuple):
    partner: "TuplePartner"


class TuplePartner:
    def __init__(self, owner: TupleOwner) -> None:
        self.owner = owner


class TestNamedTupleConstruction:
    def test_create_namedtuple_with_dependency(self, container: Container) -> None:
        """NamedTuple fields with class types are built recursively."""
        result = container.create(NamedTupleModelWithDep)

        assert isinstance(result.dep, DepService)

    def test_create_nested_namedtuples(self, container: Container) -> None:
        """Nested NamedTuple chains are built recursively."""
        result = container.create(NestedNamedTupleModel)

        assert isinstance(result.model.dep, DepService)

    def test_create_namedtuple_with_default(self, container: Container) -> None:
        """NamedTuple defaults are kept when no value is supplied."""
        result = container.create(NamedTupleModelWithDefault, ["given"])

        assert result.name == "given"
        assert container.create(NamedTupleModelWithDefault).name == "default"

    def test_shared_namedtuple_is_built_atomically(self, container: Container) -> None:
        """NamedTuples cannot be pre-allocated but are still cached when shared."""
        container.add_rule(NamedTupleModelWithDep, shared=True)

        assert container.create(NamedTupleModelWithDep) is container.create(NamedTupleModelWithDep)

    def test_shared_namedtuple_cycle_keeps_identity(self, container: Container) -> None:
        """Objects built inside the cycle end up holding the tuple itself."""
        container.add_rule(TupleOwner, shared=True)

        owner = container.create(TupleOwner)

        assert owner.partner.owner is owner
        assert container.create(TuplePartner).owner is owner

    def test_shared_namedtuple_referencing_itself_gets_a_bound_stand_in(
        self,
        container: Container,
    ) -> None:
        """A tuple cannot be rebound, so its own field forwards to the finished tuple."""
        container.add_rule(SelfReferencingTuple, shared=True)

        result = container.create(SelfReferencingTuple)

        assert isinstance(result.me, SelfReferencingTuple)
        assert result.me.me is result.me
        assert result.me._fields == ("me",)

    def test_untyped_namedtuple_fields_take_values_in_order(self, container: Container) -> None:
        """collections.namedtuple fields are untyped and filled positionally."""
        point = collections.namedtuple("point", ["x", "y"])  # noqa: PYI024

        result = container.create(point, [1, 2])

        assert (result.x, result.y) == (1, 2)
