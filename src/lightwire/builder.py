from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from lightwire._internal.autoregistration import ConcreteTypePolicy
from lightwire._internal.type_checks import is_runtime_class
from lightwire.activators import Activator, DelegateActivator, InstanceActivator, activator_for_type
from lightwire.constructors import (
    ArgumentCollector,
    ArgumentCollectorProtocol,
    ConstructorSelector,
    ConstructorSelectorProtocol,
)
from lightwire.container import Container
from lightwire.exceptions import (
    LightwireContractNotImplementedByTypeError,
    LightwireInvalidRegistrationError,
)
from lightwire.generics import generic_definition, is_assignable, is_open_generic
from lightwire.lifecycles import (
    LifecycleFactory,
    LifecycleSpec,
    Lifetime,
    SingletonLifecycle,
    as_lifecycle_factory,
)
from lightwire.registration import RegistrationItem, RegistrationKey
from lightwire.registration_container import RegistrationContainer
from lightwire.sources import default_registration_sources

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class _PendingRegistration:
    key: RegistrationKey
    create_activator: Callable[[], Activator]
    lifecycle_factory: LifecycleFactory | None
    implementation_type: Any | None
    group: str | None


class RegistrationModule(ABC):
    """A reusable set of registrations applied with ``ContainerBuilder.register_module``."""

    @abstractmethod
    def register(self, builder: ContainerBuilder) -> None:
        """Add this module's registrations to ``builder``."""


class ContainerBuilder:
    """Collects registrations and builds containers from them.

    Registrations are validated immediately and committed when ``build`` is
    called, in declaration order. Each ``build`` call creates an independent
    container with its own lifecycle caches.
    """

    def __init__(
        self,
        default_lifecycle: LifecycleSpec = Lifetime.TRANSIENT,
        *,
        active_groups: str | Iterable[str] | None = None,
        register_if_missing: bool = True,
    ) -> None:
        """Initialize the builder.

        Args:
            default_lifecycle: Lifecycle of registrations that do not name one. A
                ``Lifetime`` member, a ``Lifecycle`` subclass, or a zero-argument
                factory creating a new lifecycle per registration.
            active_groups: Group names (a comma separated string or an iterable)
                whose registrations are committed. Grouped registrations outside
                these groups, or all of them when no group is active, are skipped.
            register_if_missing: Whether unregistered concrete types are built on
                the fly when resolved.

        """
        self._default_lifecycle_factory = as_lifecycle_factory(
            default_lifecycle,
            allow_instance=False,
        )
        self._active_groups = _parse_groups(active_groups)
        self._register_if_missing = register_if_missing
        self._pending: list[_PendingRegistration] = []
        self._concrete_type_policy = ConcreteTypePolicy()

    @property
    def active_groups(self) -> frozenset[str] | None:
        return self._active_groups

    @active_groups.setter
    def active_groups(self, value: str | Iterable[str] | None) -> None:
        self._active_groups = _parse_groups(value)

    def default_controlled_by(self, lifecycle: LifecycleSpec) -> None:
        """Set the lifecycle of registrations that do not name one.

        The default is applied at ``build``, so it also affects registrations
        declared before this call.
        """
        self._default_lifecycle_factory = as_lifecycle_factory(lifecycle, allow_instance=False)

    def register(
        self,
        contract: Any,
        implementation: Any | None = None,
        *,
        name: str | None = None,
        lifecycle: LifecycleSpec | None = None,
        group: str | None = None,
    ) -> None:
        """Bind ``contract`` to an implementation type built by calling its constructor.

        Omitting ``implementation`` registers ``contract`` as its own
        implementation. Open generic contracts (``IRepository`` or
        ``IRepository[T]``) take an open implementation that is closed for every
        requested type argument.

        Raises:
            LightwireInvalidRegistrationError: If a self registered contract is not
                a concrete type, or the implementation is not a class.
            LightwireContractNotImplementedByTypeError: If the implementation does
                not satisfy a closed contract.

        """
        if implementation is None:
            if not self._concrete_type_policy.is_concrete(contract):
                msg = f"Cannot register {contract!r} as its own implementation: it is not a concrete type."
                raise LightwireInvalidRegistrationError(msg)
            implementation = contract

        if is_open_generic(contract):
            contract = generic_definition(contract)
            implementation = generic_definition(implementation)
        elif not is_assignable(implementation, contract):
            raise LightwireContractNotImplementedByTypeError(contract, implementation)

        if not is_runtime_class(generic_definition(implementation)):
            msg = f"Implementation {implementation!r} of {contract!r} is not a class."
            raise LightwireInvalidRegistrationError(msg)

        self._add(
            _PendingRegistration(
                key=RegistrationKey(contract, name),
                create_activator=lambda: activator_for_type(implementation),
                lifecycle_factory=_optional_lifecycle_factory(lifecycle),
                implementation_type=implementation,
                group=group,
            ),
        )

    def register_instance(
        self,
        contract: Any,
        instance: Any,
        *,
        name: str | None = None,
        group: str | None = None,
    ) -> None:
        """Bind ``contract`` to an already built instance, returned on every resolution."""
        self._add(
            _PendingRegistration(
                key=RegistrationKey(contract, name),
                create_activator=lambda: InstanceActivator(instance),
                lifecycle_factory=SingletonLifecycle,
                implementation_type=None,
                group=group,
            ),
        )

    def register_factory(
        self,
        contract: Any,
        factory: Callable[[Container], Any],
        *,
        name: str | None = None,
        lifecycle: LifecycleSpec | None = None,
        group: str | None = None,
    ) -> None:
        """Bind ``contract`` to ``factory(container)``.

        Examples:
            .. code-block:: python

                builder.register_factory(
                    Connection,
                    lambda container: connect(container.resolve(Settings).database_url),
                    lifecycle=Lifetime.THREAD,
                )

        """
        if not callable(factory):
            msg = f"Factory for {contract!r} must be callable, got {factory!r}."
            raise LightwireInvalidRegistrationError(msg)
        if is_open_generic(contract):
            contract = generic_definition(contract)

        self._add(
            _PendingRegistration(
                key=RegistrationKey(contract, name),
                create_activator=lambda: DelegateActivator(factory),
                lifecycle_factory=_optional_lifecycle_factory(lifecycle),
                implementation_type=None,
                group=group,
            ),
        )

    def register_module(self, module: RegistrationModule) -> None:
        """Apply the registrations of ``module`` to this builder."""
        module.register(self)

    def build(self) -> Container:
        """Commit the pending registrations into a new container.

        ``ConstructorSelectorProtocol`` and ``ArgumentCollectorProtocol`` are
        registered as singletons unless registrations for them were committed.
        """
        registrations = RegistrationContainer()
        registrations.registration_sources.extend(
            default_registration_sources(
                registrations,
                register_if_missing=self._register_if_missing,
            ),
        )

        committed = 0
        for pending in self._pending:
            if not self._is_group_active(pending.group):
                logger.debug(
                    "Skipping registration %s of inactive group %r",
                    pending.key,
                    pending.group,
                )
                continue
            lifecycle_factory = pending.lifecycle_factory or self._default_lifecycle_factory
            registrations.add(
                RegistrationItem(
                    key=pending.key,
                    activator=pending.create_activator(),
                    lifecycle=lifecycle_factory(),
                    implementation_type=pending.implementation_type,
                    group=pending.group,
                ),
            )
            committed += 1

        _bootstrap(registrations, ConstructorSelectorProtocol, ConstructorSelector)
        _bootstrap(registrations, ArgumentCollectorProtocol, ArgumentCollector)

        container = Container(registrations)
        logger.debug(
            "Built container with %d of %d registrations",
            committed,
            len(self._pending),
        )
        return container

    def _add(self, pending: _PendingRegistration) -> None:
        self._pending.append(pending)

    def _is_group_active(self, group: str | None) -> bool:
        if group is None:
            return True
        if self._active_groups is None:
            return False
        return group.strip() in self._active_groups


def _bootstrap(
    registrations: RegistrationContainer,
    contract: Any,
    default: Callable[[], Any],
) -> None:
    registrations.add_if_absent(
        RegistrationItem(
            key=RegistrationKey(contract),
            activator=DelegateActivator(lambda _container: default()),
            lifecycle=SingletonLifecycle(),
            implementation_type=default,
        ),
    )


def _optional_lifecycle_factory(lifecycle: LifecycleSpec | None) -> LifecycleFactory | None:
    if lifecycle is None:
        return None
    return as_lifecycle_factory(lifecycle, allow_instance=True)


def _parse_groups(groups: str | Iterable[str] | None) -> frozenset[str] | None:
    if groups is None:
        return None
    if isinstance(groups, str):
        groups = groups.split(",")
    return frozenset(group.strip() for group in groups if group.strip())


__all__ = ["ContainerBuilder", "RegistrationModule"]
