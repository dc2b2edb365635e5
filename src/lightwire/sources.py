from __future__ import annotations

import collections.abc
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Protocol, get_args, get_origin

from lightwire._internal.autoregistration import ConcreteTypePolicy
from lightwire.activators import DelegateActivator, ReflectionActivator, activator_for_type
from lightwire.exceptions import LightwireRegistrationNotFoundError
from lightwire.generics import (
    close_implementation,
    generic_definition,
    is_assignable,
    is_closed_generic,
    is_open_generic,
)
from lightwire.lifecycles import TransientLifecycle
from lightwire.registration import RegistrationItem, RegistrationKey

if TYPE_CHECKING:
    from lightwire.container import Container
    from lightwire.registration_container import RegistrationContainer

logger = logging.getLogger(__name__)

_ENUMERABLE_ORIGINS = frozenset(
    {
        list,
        collections.abc.Iterable,
        collections.abc.Collection,
        collections.abc.Sequence,
    },
)


class RegistrationSource(Protocol):
    """Produces registrations for contracts missing from the registration container.

    Sources are consulted in order after a direct lookup misses. ``supports``
    must be cheap and side-effect free; ``get_registration_for`` is only called
    after ``supports`` returned true.
    """

    def supports(self, contract: Any, name: str | None = None) -> bool:
        """Return whether this source can produce a registration for ``contract``."""
        ...

    def get_registration_for(
        self,
        contract: Any,
        container: Container,
        name: str | None = None,
    ) -> RegistrationItem:
        """Return the registration to activate for ``contract``.

        Raises:
            LightwireRegistrationNotFoundError: If the source cannot produce a
                registration although ``supports`` claimed it could.

        """
        ...


class OpenGenericRegistrationSource:
    """Close registered open generics on demand.

    A request for ``IRepository[Foo]`` with ``IRepository`` registered to
    ``Repository`` stores a new registration for ``IRepository[Foo]`` built from
    ``Repository[Foo]``, with a fresh lifecycle of the open registration's
    strategy. Later requests find the closed registration directly.
    """

    def __init__(self, registrations: RegistrationContainer) -> None:
        self._registrations = registrations

    def supports(self, contract: Any, name: str | None = None) -> bool:
        if not is_closed_generic(contract):
            return False
        open_key = RegistrationKey(generic_definition(contract), name)
        return self._registrations.try_get(open_key) is not None

    def get_registration_for(
        self,
        contract: Any,
        container: Container,
        name: str | None = None,
    ) -> RegistrationItem:
        open_registration = self._registrations.try_get(
            RegistrationKey(generic_definition(contract), name),
        )
        if open_registration is None:
            raise LightwireRegistrationNotFoundError(generic_definition(contract), name)

        implementation = self._closed_implementation(open_registration, contract)
        if implementation is None:
            activator = open_registration.activator
        else:
            activator = ReflectionActivator(implementation)

        closed_registration = RegistrationItem(
            key=RegistrationKey(contract, name),
            activator=activator,
            lifecycle=open_registration.lifecycle.fresh(),
            implementation_type=implementation,
            group=open_registration.group,
        )
        stored = self._registrations.add_if_absent(closed_registration)
        if stored is closed_registration:
            logger.debug("Registered closed generic %s on the fly", stored.key)
        return stored

    def _closed_implementation(self, open_registration: RegistrationItem, contract: Any) -> Any:
        for registration in sorted(
            self._registrations.all_registrations,
            key=lambda item: item.registration_order,
        ):
            implementation = registration.implementation_type
            if implementation is None or is_open_generic(implementation):
                continue
            if is_assignable(implementation, contract):
                return implementation

        if open_registration.implementation_type is None:
            return None
        return close_implementation(open_registration.implementation_type, contract)


class _AggregateRegistrationSource(ABC):
    """Resolve every registration of an element contract into one collection."""

    def supports(self, contract: Any, name: str | None = None) -> bool:
        return self._element_contract(contract) is not None

    def get_registration_for(
        self,
        contract: Any,
        container: Container,
        name: str | None = None,
    ) -> RegistrationItem:
        element_contract = self._element_contract(contract)
        if element_contract is None:
            raise LightwireRegistrationNotFoundError(contract, name)

        def collect(container: Container) -> Any:
            return self._assemble(container.resolve_all(element_contract))

        return RegistrationItem(
            key=RegistrationKey(contract, name),
            activator=DelegateActivator(collect),
            lifecycle=TransientLifecycle(),
        )

    @abstractmethod
    def _element_contract(self, contract: Any) -> Any | None:
        """Return the element contract of a collection contract, or ``None``."""

    @abstractmethod
    def _assemble(self, instances: list[Any]) -> Any:
        """Build the requested collection from the resolved instances."""


class EnumerableRegistrationSource(_AggregateRegistrationSource):
    """Support ``list[T]``, ``Iterable[T]``, ``Collection[T]`` and ``Sequence[T]``.

    The result is a ``list`` of every registration of ``T`` under any name, in
    registration order. Only stored registrations are collected: a closed
    generic element such as ``IRepository[User]`` contributes its open
    registration only once it has been resolved, so ``list[IRepository[User]]``
    is empty until then. Register the closed contract to collect it up front.
    """

    def _element_contract(self, contract: Any) -> Any | None:
        if get_origin(contract) not in _ENUMERABLE_ORIGINS:
            return None
        arguments = get_args(contract)
        if len(arguments) != 1 or is_open_generic(arguments[0]):
            return None
        return arguments[0]

    def _assemble(self, instances: list[Any]) -> Any:
        return instances


class ArrayRegistrationSource(_AggregateRegistrationSource):
    """Support ``tuple[T, ...]``, resolved to a tuple of every registration of ``T``.

    Closed generic elements follow the same rule as ``EnumerableRegistrationSource``.
    """

    def _element_contract(self, contract: Any) -> Any | None:
        if get_origin(contract) is not tuple:
            return None
        arguments = get_args(contract)
        if len(arguments) != 2 or arguments[1] is not Ellipsis:
            return None
        if is_open_generic(arguments[0]):
            return None
        return arguments[0]

    def _assemble(self, instances: list[Any]) -> Any:
        return tuple(instances)


class ConcreteTypeRegistrationSource:
    """Build unregistered concrete types as if they were registered transient.

    The synthesized registration is not stored, so every request builds it
    again. Pydantic settings models are built by calling them with no arguments,
    since their fields come from the environment rather than the container.
    Register one as a singleton to load it once.
    """

    def __init__(self, policy: ConcreteTypePolicy | None = None) -> None:
        self._policy = policy or ConcreteTypePolicy()

    def supports(self, contract: Any, name: str | None = None) -> bool:
        return self._policy.is_concrete(contract)

    def get_registration_for(
        self,
        contract: Any,
        container: Container,
        name: str | None = None,
    ) -> RegistrationItem:
        if not self._policy.is_concrete(contract):
            raise LightwireRegistrationNotFoundError(contract, name)

        return RegistrationItem(
            key=RegistrationKey(contract, name),
            activator=activator_for_type(contract),
            lifecycle=TransientLifecycle(),
            implementation_type=contract,
        )


class FactoryRegistrationSource:
    """Support ``Callable[[], T]``: a zero-argument function resolving ``T`` on each call.

    Depending on a factory defers building ``T`` until it is needed, which also
    breaks constructor cycles.
    """

    def supports(self, contract: Any, name: str | None = None) -> bool:
        return self._product_contract(contract) is not None

    def get_registration_for(
        self,
        contract: Any,
        container: Container,
        name: str | None = None,
    ) -> RegistrationItem:
        product_contract = self._product_contract(contract)
        if product_contract is None:
            raise LightwireRegistrationNotFoundError(contract, name)

        def create_factory(container: Container) -> Any:
            def factory() -> Any:
                return container.resolve(product_contract)

            return factory

        return RegistrationItem(
            key=RegistrationKey(contract, name),
            activator=DelegateActivator(create_factory),
            lifecycle=TransientLifecycle(),
        )

    def _product_contract(self, contract: Any) -> Any | None:
        if get_origin(contract) is not collections.abc.Callable:
            return None
        arguments = get_args(contract)
        if len(arguments) != 2 or arguments[0] != []:
            return None
        return arguments[1]


def default_registration_sources(
    registrations: RegistrationContainer,
    *,
    register_if_missing: bool = True,
) -> list[RegistrationSource]:
    """Return the built-in source chain in priority order.

    Args:
        registrations: The registration container closed generics are stored in.
        register_if_missing: Whether unregistered concrete types are built on
            the fly. When false they fail with ``LightwireRegistrationNotFoundError``.

    """
    sources: list[RegistrationSource] = [
        OpenGenericRegistrationSource(registrations),
        EnumerableRegistrationSource(),
        ArrayRegistrationSource(),
    ]
    if register_if_missing:
        sources.append(ConcreteTypeRegistrationSource())
    sources.append(FactoryRegistrationSource())
    return sources


__all__ = [
    "ArrayRegistrationSource",
    "ConcreteTypeRegistrationSource",
    "EnumerableRegistrationSource",
    "FactoryRegistrationSource",
    "OpenGenericRegistrationSource",
    "RegistrationSource",
    "default_registration_sources",
]
