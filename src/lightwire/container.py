from __future__ import annotations

import dataclasses
import inspect
import logging
from collections.abc import Iterator
from typing import Any, ClassVar, TypeVar, get_origin, get_type_hints, overload

from lightwire._internal.autoregistration import ConcreteTypePolicy
from lightwire._internal.resolution_stack import resolving
from lightwire.activators import InstanceActivator
from lightwire.context import unwrap_annotated
from lightwire.exceptions import LightwireRegistrationNotFoundError
from lightwire.generics import generic_definition, is_closed_generic
from lightwire.lifecycles import SingletonLifecycle
from lightwire.registration import RegistrationItem, RegistrationKey
from lightwire.registration_container import RegistrationContainer
from lightwire.sources import default_registration_sources

T = TypeVar("T")

logger = logging.getLogger(__name__)


class Container:
    """Resolves contracts from a registration container.

    Containers are normally created by ``ContainerBuilder.build``. Resolution
    is synchronous and safe to call from several threads at once.

    Examples:
        .. code-block:: python

            builder = ContainerBuilder()
            builder.register(Repository, SqlRepository, lifecycle=Lifetime.SINGLETON)
            container = builder.build()

            repository = container.resolve(Repository)

    """

    _value_type_policy: ClassVar[ConcreteTypePolicy] = ConcreteTypePolicy()

    def __init__(self, registrations: RegistrationContainer | None = None) -> None:
        """Initialize the container and register it under ``Container``.

        Args:
            registrations: Registrations to resolve from. A new registration
                container with the built-in sources is created when omitted.

        """
        if registrations is None:
            registrations = RegistrationContainer()
            registrations.registration_sources.extend(default_registration_sources(registrations))
        self._registrations = registrations

        self._registrations.add_if_absent(
            RegistrationItem(
                key=RegistrationKey(Container),
                activator=InstanceActivator(self),
                lifecycle=SingletonLifecycle(),
            ),
        )

    @property
    def registrations(self) -> RegistrationContainer:
        return self._registrations

    @overload
    def resolve(self, contract: type[T], name: str | None = None) -> T: ...

    @overload
    def resolve(self, contract: Any, name: str | None = None) -> Any: ...

    def resolve(self, contract: Any, name: str | None = None) -> Any:
        """Resolve an instance of ``contract``.

        A direct registration is used when present. Otherwise the registration
        sources are consulted in order: open generics are closed on the fly,
        collection and factory contracts are assembled, and unregistered concrete
        types are built as transient.

        Args:
            contract: The contract type, or a parametrised alias of one.
            name: Selects a named registration of the contract.

        Returns:
            The resolved instance.

        Raises:
            LightwireRegistrationNotFoundError: If nothing can satisfy the contract.
            LightwireResolutionFailedError: If no constructor of the implementation
                can be satisfied.
            LightwireCircularDependencyError: If the contract depends on itself.

        """
        contract = unwrap_annotated(contract)
        key = RegistrationKey(contract, name)
        registration = self._registrations.try_get(key)
        if registration is None:
            registration = self._registration_from_sources(contract, name)
        return self._activate(registration)

    @overload
    def resolve_all(self, contract: type[T]) -> list[T]: ...

    @overload
    def resolve_all(self, contract: Any) -> list[Any]: ...

    def resolve_all(self, contract: Any) -> list[Any]:
        """Resolve every registration of ``contract`` under any name, in registration order.

        Registrations replaced by a later one for the same name are included.
        """
        contract = unwrap_annotated(contract)
        return [
            self._activate(registration)
            for registration in self._registrations.registrations_for(contract)
        ]

    def inject_properties(self, instance: Any) -> None:
        """Assign resolved instances to the injectable attributes of ``instance``.

        Candidates are the writable annotated class attributes (``ClassVar`` and
        frozen dataclass fields excluded) and properties with an annotated setter.
        A candidate is assigned only when its type, or the open generic definition
        of its type, is registered; value types are never injected. Attributes
        that turn out to be read-only are skipped.
        """
        for attribute_name, annotation, is_property in _injectable_members(type(instance)):
            if self._value_type_policy.is_value_type(annotation):
                continue
            if not self._is_injectable(annotation):
                continue
            try:
                setattr(instance, attribute_name, self.resolve(annotation))
            except AttributeError:
                if is_property:
                    raise
                logger.debug("Skipping read-only attribute %r of %r", attribute_name, instance)

    def is_registered(self, contract: Any, name: str | None = None) -> bool:
        """Return whether ``contract`` has an explicit registration under ``name``."""
        return self._registrations.is_registered(contract, name)

    def _registration_from_sources(self, contract: Any, name: str | None) -> RegistrationItem:
        for source in self._registrations.registration_sources:
            if source.supports(contract, name):
                return source.get_registration_for(contract, self, name)
        raise LightwireRegistrationNotFoundError(contract, name)

    def _activate(self, registration: RegistrationItem) -> Any:
        with resolving(registration.key):
            return registration.activate(self)

    def _is_injectable(self, annotation: Any) -> bool:
        if self._registrations.is_registered(annotation):
            return True
        return is_closed_generic(annotation) and self._registrations.is_registered(
            generic_definition(annotation),
        )


def _injectable_members(instance_type: type[Any]) -> Iterator[tuple[str, Any, bool]]:
    seen: set[str] = set()
    frozen_fields = _frozen_dataclass_fields(instance_type)

    for attribute_name, annotation in _class_annotations(instance_type).items():
        if attribute_name in frozen_fields:
            continue
        if annotation is ClassVar or get_origin(annotation) is ClassVar:
            continue
        if isinstance(inspect.getattr_static(instance_type, attribute_name, None), property):
            continue
        seen.add(attribute_name)
        yield attribute_name, unwrap_annotated(annotation), False

    for attribute_name, attribute in inspect.getmembers(instance_type):
        if attribute_name in seen or not isinstance(attribute, property):
            continue
        if attribute.fset is None:
            continue
        annotation = _setter_annotation(attribute.fset)
        if annotation is not None:
            yield attribute_name, unwrap_annotated(annotation), True


def _frozen_dataclass_fields(instance_type: type[Any]) -> frozenset[str]:
    if not dataclasses.is_dataclass(instance_type):
        return frozenset()
    if not instance_type.__dataclass_params__.frozen:
        return frozenset()
    return frozenset(field.name for field in dataclasses.fields(instance_type))


def _class_annotations(instance_type: type[Any]) -> dict[str, Any]:
    try:
        return get_type_hints(instance_type, include_extras=True)
    except (NameError, TypeError):
        logger.debug("Falling back to raw annotations of %r", instance_type)

    annotations: dict[str, Any] = {}
    for klass in reversed(instance_type.__mro__):
        try:
            class_annotations = inspect.get_annotations(klass)
        except NameError:
            continue
        for attribute_name, annotation in class_annotations.items():
            if not isinstance(annotation, str):
                annotations[attribute_name] = annotation
    return annotations


def _setter_annotation(setter: Any) -> Any | None:
    try:
        parameters = list(inspect.signature(setter).parameters.values())
    except (TypeError, ValueError):
        return None
    if len(parameters) != 2:
        return None
    value_parameter = parameters[1]
    try:
        hints = get_type_hints(setter, include_extras=True)
    except (NameError, TypeError):
        hints = {}
    annotation = hints.get(value_parameter.name, value_parameter.annotation)
    if annotation is inspect.Parameter.empty or isinstance(annotation, str):
        return None
    return annotation


__all__ = ["Container"]
