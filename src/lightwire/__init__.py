from lightwire.activators import DelegateActivator, InstanceActivator, ReflectionActivator
from lightwire.builder import ContainerBuilder, RegistrationModule
from lightwire.constructors import (
    ArgumentCollector,
    ArgumentCollectorProtocol,
    ConstructorSelector,
    ConstructorSelectorProtocol,
    alternate_constructor,
)
from lightwire.container import Container
from lightwire.context import ResolutionContext
from lightwire.exceptions import (
    LightwireCircularDependencyError,
    LightwireContractNotImplementedByTypeError,
    LightwireError,
    LightwireInvalidGenericTypeArgumentError,
    LightwireInvalidRegistrationError,
    LightwireRegistrationNotFoundError,
    LightwireResolutionFailedError,
    LightwireScopeError,
)
from lightwire.lifecycles import (
    ExternallyScopedLifecycle,
    Lifecycle,
    Lifetime,
    SingletonLifecycle,
    ThreadSingletonLifecycle,
    TransientLifecycle,
)
from lightwire.registration import RegistrationItem, RegistrationKey
from lightwire.registration_container import RegistrationContainer
from lightwire.scope import MISSING, ContextVarScopeAccessor, ScopeAccessorProtocol

__all__ = [
    "MISSING",
    "ArgumentCollector",
    "ArgumentCollectorProtocol",
    "ConstructorSelector",
    "ConstructorSelectorProtocol",
    "Container",
    "ContainerBuilder",
    "ContextVarScopeAccessor",
    "DelegateActivator",
    "ExternallyScopedLifecycle",
    "InstanceActivator",
    "Lifecycle",
    "Lifetime",
    "LightwireCircularDependencyError",
    "LightwireContractNotImplementedByTypeError",
    "LightwireError",
    "LightwireInvalidGenericTypeArgumentError",
    "LightwireInvalidRegistrationError",
    "LightwireRegistrationNotFoundError",
    "LightwireResolutionFailedError",
    "LightwireScopeError",
    "ReflectionActivator",
    "RegistrationContainer",
    "RegistrationItem",
    "RegistrationKey",
    "RegistrationModule",
    "ResolutionContext",
    "ScopeAccessorProtocol",
    "SingletonLifecycle",
    "ThreadSingletonLifecycle",
    "TransientLifecycle",
    "alternate_constructor",
]
