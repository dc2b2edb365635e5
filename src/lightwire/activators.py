from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol

from lightwire._internal.integrations.pydantic_settings import is_pydantic_settings_subclass
from lightwire.constructors import (
    ArgumentCollector,
    ArgumentCollectorProtocol,
    Constructor,
    ConstructorSelector,
    ConstructorSelectorProtocol,
    get_constructors,
)
from lightwire.exceptions import LightwireResolutionFailedError

if TYPE_CHECKING:
    from lightwire.container import Container
    from lightwire.context import ResolutionContext

_INFRASTRUCTURE_CONTRACTS = (ConstructorSelectorProtocol, ArgumentCollectorProtocol)


class Activator(Protocol):
    """Creates new instances for a registration."""

    def activate_instance(self, context: ResolutionContext) -> Any:
        """Create and return a new instance."""
        ...


class ReflectionActivator:
    """Build an implementation type by calling one of its constructors.

    The constructor is picked by a constructor selector and its arguments are
    resolved by an argument collector. Both default to the ones registered in
    the container under ``ConstructorSelectorProtocol`` and
    ``ArgumentCollectorProtocol``, looked up once on first activation.
    """

    def __init__(
        self,
        implementation_type: Any,
        constructor_selector: ConstructorSelectorProtocol | None = None,
        argument_collector: ArgumentCollectorProtocol | None = None,
    ) -> None:
        self._implementation_type = implementation_type
        self._constructor_selector = constructor_selector
        self._argument_collector = argument_collector
        self._constructors: list[Constructor] | None = None
        self._container: Container | None = None

    @property
    def implementation_type(self) -> Any:
        return self._implementation_type

    def activate_instance(self, context: ResolutionContext) -> Any:
        if self._container is None:
            self._container = context.container
        container = self._container

        constructors = self._get_constructors()
        selector, collector = self._infrastructure(context)
        constructor = selector.select_constructor(constructors, context)
        arguments = collector.collect_arguments(container.resolve, constructor.parameters, context)
        if len(arguments) != len(constructor.parameters):
            raise LightwireResolutionFailedError(self._implementation_type)
        return constructor.invoke(arguments)

    def _get_constructors(self) -> list[Constructor]:
        if self._constructors is None:
            self._constructors = get_constructors(self._implementation_type)
        return self._constructors

    def _infrastructure(
        self,
        context: ResolutionContext,
    ) -> tuple[ConstructorSelectorProtocol, ArgumentCollectorProtocol]:
        if self._constructor_selector is not None and self._argument_collector is not None:
            return self._constructor_selector, self._argument_collector

        # Infrastructure contracts cannot be built with themselves.
        registration = context.registration
        if registration is not None and registration.contract in _INFRASTRUCTURE_CONTRACTS:
            return ConstructorSelector(), ArgumentCollector()

        if self._constructor_selector is None:
            self._constructor_selector = _resolve_or_default(
                context,
                ConstructorSelectorProtocol,
                ConstructorSelector,
            )
        if self._argument_collector is None:
            self._argument_collector = _resolve_or_default(
                context,
                ArgumentCollectorProtocol,
                ArgumentCollector,
            )
        return self._constructor_selector, self._argument_collector

    def __repr__(self) -> str:
        return f"ReflectionActivator({self._implementation_type!r})"


class DelegateActivator:
    """Create instances by calling ``factory(container)``."""

    def __init__(self, factory: Callable[[Container], Any]) -> None:
        self._factory = factory

    def activate_instance(self, context: ResolutionContext) -> Any:
        return self._factory(context.container)

    def __repr__(self) -> str:
        return f"DelegateActivator({self._factory!r})"


class InstanceActivator:
    """Return the same pre-built instance on every activation."""

    def __init__(self, instance: Any) -> None:
        self._instance = instance

    @property
    def instance(self) -> Any:
        return self._instance

    def activate_instance(self, context: ResolutionContext) -> Any:
        return self._instance

    def __repr__(self) -> str:
        return f"InstanceActivator({self._instance!r})"


def activator_for_type(implementation_type: Any) -> Activator:
    """Return the activator building ``implementation_type``.

    Pydantic settings models are called with no arguments so their fields are
    loaded from the environment. Every other type is built by reflection.
    """
    if is_pydantic_settings_subclass(implementation_type):
        return DelegateActivator(lambda _container: implementation_type())
    return ReflectionActivator(implementation_type)


def _resolve_or_default(
    context: ResolutionContext,
    contract: Any,
    default: Callable[[], Any],
) -> Any:
    if context.registrations.is_registered(contract):
        return context.container.resolve(contract)
    return default()


__all__ = [
    "Activator",
    "DelegateActivator",
    "InstanceActivator",
    "ReflectionActivator",
    "activator_for_type",
]
