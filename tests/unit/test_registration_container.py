"""Tests for the registration store."""

import threading

from lightwire.activators import InstanceActivator
from lightwire.lifecycles import TransientLifecycle
from lightwire.registration import RegistrationItem, RegistrationKey
from lightwire.registration_container import RegistrationContainer


class Service:
    pass


class OtherService:
    pass


def make_item(contract: object, value: object = None, name: str | None = None) -> RegistrationItem:
    return RegistrationItem(
        key=RegistrationKey(contract, name),
        activator=InstanceActivator(value),
        lifecycle=TransientLifecycle(),
    )


class TestRegistrationKey:
    def test_keys_with_same_contract_and_name_are_equal(self) -> None:
        assert RegistrationKey(Service) == RegistrationKey(Service, None)
        assert RegistrationKey(Service, "a") == RegistrationKey(Service, "a")
        assert hash(RegistrationKey(Service, "a")) == hash(RegistrationKey(Service, "a"))

    def test_keys_differ_by_name(self) -> None:
        assert RegistrationKey(Service, "a") != RegistrationKey(Service, "b")
        assert RegistrationKey(Service) != RegistrationKey(Service, "a")

    def test_str_includes_name(self) -> None:
        assert str(RegistrationKey(Service)) == "Service"
        assert str(RegistrationKey(Service, "primary")) == "Service['primary']"


class TestRegistrationItem:
    def test_registration_order_is_monotonic(self) -> None:
        first = make_item(Service)
        second = make_item(Service)

        assert second.registration_order > first.registration_order

    def test_contract_and_name_come_from_key(self) -> None:
        item = make_item(Service, name="named")

        assert item.contract is Service
        assert item.name == "named"


class TestRegistrationContainer:
    def test_try_get_returns_none_for_missing_key(self) -> None:
        registrations = RegistrationContainer()

        assert registrations.try_get(RegistrationKey(Service)) is None

    def test_add_then_try_get(self) -> None:
        registrations = RegistrationContainer()
        item = make_item(Service)

        registrations.add(item)

        assert registrations.try_get(RegistrationKey(Service)) is item
        assert len(registrations) == 1

    def test_second_add_demotes_first_to_duplicates(self) -> None:
        registrations = RegistrationContainer()
        first = make_item(Service, "first")
        second = make_item(Service, "second")

        registrations.add(first)
        registrations.add(second)

        assert registrations.try_get(RegistrationKey(Service)) is second
        assert registrations.has_duplicate(RegistrationKey(Service))
        assert len(registrations) == 1
        assert set(registrations.all_registrations) == {first, second}

    def test_has_duplicate_false_for_single_registration(self) -> None:
        registrations = RegistrationContainer()
        registrations.add(make_item(Service))

        assert not registrations.has_duplicate(RegistrationKey(Service))

    def test_add_if_absent_keeps_first(self) -> None:
        registrations = RegistrationContainer()
        first = make_item(Service)
        second = make_item(Service)

        assert registrations.add_if_absent(first) is first
        assert registrations.add_if_absent(second) is first
        assert registrations.try_get(RegistrationKey(Service)) is first
        assert not registrations.has_duplicate(RegistrationKey(Service))

    def test_remove_drops_direct_registration_only(self) -> None:
        registrations = RegistrationContainer()
        first = make_item(Service)
        second = make_item(Service)
        registrations.add(first)
        registrations.add(second)

        registrations.remove(RegistrationKey(Service))

        assert registrations.try_get(RegistrationKey(Service)) is None
        assert registrations.has_registration(RegistrationKey(Service))

    def test_remove_missing_key_is_noop(self) -> None:
        registrations = RegistrationContainer()

        registrations.remove(RegistrationKey(Service))

        assert len(registrations) == 0

    def test_is_registered_respects_name(self) -> None:
        registrations = RegistrationContainer()
        registrations.add(make_item(Service, name="named"))

        assert registrations.is_registered(Service, "named")
        assert not registrations.is_registered(Service)
        assert RegistrationKey(Service, "named") in registrations

    def test_registrations_for_returns_all_names_in_registration_order(self) -> None:
        registrations = RegistrationContainer()
        first = make_item(Service)
        named = make_item(Service, name="named")
        other = make_item(OtherService)
        second = make_item(Service)
        for item in (first, named, other, second):
            registrations.add(item)

        assert registrations.registrations_for(Service) == [first, named, second]

    def test_is_supported_by_source_consults_sources(self) -> None:
        class OnlyOther:
            def supports(self, contract: object, name: str | None = None) -> bool:
                return contract is OtherService

        registrations = RegistrationContainer([OnlyOther()])  # type: ignore[list-item]

        assert registrations.is_supported_by_source(OtherService)
        assert not registrations.is_supported_by_source(Service)

    def test_concurrent_add_if_absent_has_single_winner(self) -> None:
        registrations = RegistrationContainer()
        barrier = threading.Barrier(8)
        stored: list[RegistrationItem] = []
        lock = threading.Lock()

        def worker() -> None:
            item = make_item(Service)
            barrier.wait()
            result = registrations.add_if_absent(item)
            with lock:
                stored.append(result)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(stored) == 8
        assert all(item is stored[0] for item in stored)
        assert len(registrations) == 1
