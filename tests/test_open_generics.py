"""Tests for open generic registrations closed on demand."""

import threading
from typing import Generic, TypeVar

import pytest

from lightwire.builder import ContainerBuilder
from lightwire.container import Container
from lightwire.exceptions import (
    LightwireInvalidGenericTypeArgumentError,
    LightwireRegistrationNotFoundError,
)
from lightwire.lifecycles import Lifetime, SingletonLifecycle, TransientLifecycle
from lightwire.registration import RegistrationKey

T = TypeVar("T")


class Model:
    pass


class Foo(Model):
    pass


class Bar(Model):
    pass


class IRepository(Generic[T]):
    pass


class Repository(IRepository[T]):
    pass


class FooRepository(IRepository[Foo]):
    pass


M = TypeVar("M", bound=Model)


class IStore(Generic[M]):
    pass


class Store(IStore[M]):
    pass


class Consumer:
    def __init__(self, foos: IRepository[Foo], bars: IRepository[Bar]) -> None:
        self.foos = foos
        self.bars = bars


class TestOpenGenericClosing:
    def test_resolves_closed_contract(self, builder: ContainerBuilder) -> None:
        builder.register(IRepository, Repository)
        container = builder.build()

        repository = container.resolve(IRepository[Foo])

        assert isinstance(repository, Repository)
        assert repository.__orig_class__ == Repository[Foo]

    def test_closed_item_is_inserted_exactly_once(self, builder: ContainerBuilder) -> None:
        builder.register(IRepository, Repository)
        container = builder.build()
        before = len(container.registrations)

        container.resolve(IRepository[Foo])
        after_first = len(container.registrations)
        container.resolve(IRepository[Foo])
        after_second = len(container.registrations)

        assert after_first == before + 1
        assert after_second == after_first
        closed = container.registrations.try_get(RegistrationKey(IRepository[Foo]))
        assert closed is not None
        assert closed.implementation_type == Repository[Foo]

    def test_open_contract_alias_is_normalised(self, builder: ContainerBuilder) -> None:
        builder.register(IRepository[T], Repository[T])
        container = builder.build()

        assert container.is_registered(IRepository)
        assert isinstance(container.resolve(IRepository[Bar]), Repository)

    def test_closed_lifecycle_copies_strategy_not_state(self, builder: ContainerBuilder) -> None:
        builder.register(IRepository, Repository, lifecycle=Lifetime.SINGLETON)
        container = builder.build()

        foos = container.resolve(IRepository[Foo])
        bars = container.resolve(IRepository[Bar])

        assert foos is container.resolve(IRepository[Foo])
        assert foos is not bars
        open_item = container.registrations.try_get(RegistrationKey(IRepository))
        closed_item = container.registrations.try_get(RegistrationKey(IRepository[Foo]))
        assert open_item is not None
        assert closed_item is not None
        assert isinstance(closed_item.lifecycle, SingletonLifecycle)
        assert closed_item.lifecycle is not open_item.lifecycle

    def test_transient_open_registration_closes_transient(self, builder: ContainerBuilder) -> None:
        builder.register(IRepository, Repository)
        container = builder.build()

        first = container.resolve(IRepository[Foo])
        second = container.resolve(IRepository[Foo])

        assert first is not second
        closed_item = container.registrations.try_get(RegistrationKey(IRepository[Foo]))
        assert closed_item is not None
        assert isinstance(closed_item.lifecycle, TransientLifecycle)

    def test_existing_assignable_implementation_is_reused(self, builder: ContainerBuilder) -> None:
        builder.register(FooRepository)
        builder.register(IRepository, Repository)
        container = builder.build()

        assert isinstance(container.resolve(IRepository[Foo]), FooRepository)
        assert type(container.resolve(IRepository[Bar])) is Repository

    def test_non_generic_open_implementation_closes_only_its_contract(
        self,
        builder: ContainerBuilder,
    ) -> None:
        builder.register(IRepository, FooRepository)
        container = builder.build()

        assert isinstance(container.resolve(IRepository[Foo]), FooRepository)
        with pytest.raises(LightwireInvalidGenericTypeArgumentError):
            container.resolve(IRepository[Bar])
        assert container.registrations.try_get(RegistrationKey(IRepository[Bar])) is None

    def test_explicit_closed_registration_wins(self, builder: ContainerBuilder) -> None:
        builder.register(IRepository, Repository)
        builder.register(IRepository[Foo], FooRepository)
        container = builder.build()

        assert isinstance(container.resolve(IRepository[Foo]), FooRepository)

    def test_constructor_dependencies_are_closed(self, builder: ContainerBuilder) -> None:
        builder.register(IRepository, Repository)
        container = builder.build()

        consumer = container.resolve(Consumer)

        assert consumer.foos.__orig_class__ == Repository[Foo]
        assert consumer.bars.__orig_class__ == Repository[Bar]

    def test_named_open_registration(self, builder: ContainerBuilder) -> None:
        builder.register(IRepository, Repository, name="primary")
        container = builder.build()

        assert isinstance(container.resolve(IRepository[Foo], "primary"), Repository)
        assert container.is_registered(IRepository[Foo], "primary")

    def test_unregistered_generic_definition_fails(self, container_no_autoregister: Container) -> None:
        with pytest.raises(LightwireRegistrationNotFoundError):
            container_no_autoregister.resolve(IRepository[Foo])

    def test_typevar_bound_is_validated(self, builder: ContainerBuilder) -> None:
        builder.register(IStore, Store)
        container = builder.build()

        assert isinstance(container.resolve(IStore[Foo]), Store)
        with pytest.raises(LightwireInvalidGenericTypeArgumentError):
            container.resolve(IStore[str])

    def test_factory_open_registration_shares_factory(self, builder: ContainerBuilder) -> None:
        builder.register_factory(IRepository, lambda _container: FooRepository())
        container = builder.build()

        assert isinstance(container.resolve(IRepository[Bar]), FooRepository)

    def test_concurrent_closing_inserts_one_item(self, builder: ContainerBuilder) -> None:
        builder.register(IRepository, Repository, lifecycle=Lifetime.SINGLETON)
        container = builder.build()
        barrier = threading.Barrier(8)
        results: list[object] = []
        lock = threading.Lock()

        def worker() -> None:
            barrier.wait()
            instance = container.resolve(IRepository[Foo])
            with lock:
                results.append(instance)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == 8
        assert all(result is results[0] for result in results)
        assert not container.registrations.has_duplicate(RegistrationKey(IRepository[Foo]))
