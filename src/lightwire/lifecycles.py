from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeAlias, TypeVar

from lightwire.exceptions import LightwireInvalidRegistrationError
from lightwire.scope import MISSING

if TYPE_CHECKING:
    from lightwire.scope import ScopeAccessorProtocol

T = TypeVar("T")

_MISSING_INSTANCE: Any = object()


class Lifecycle(ABC):
    """Reuse policy deciding whether a resolution builds a new instance or returns a cached one.

    Every registration owns exactly one lifecycle for its whole lifetime. The
    lifecycle receives a ``build`` callable that activates a new instance and
    decides whether and when to call it.
    """

    __slots__ = ()

    @abstractmethod
    def receive_instance(self, build: Callable[[], T]) -> T:
        """Return an instance for the current resolution, calling ``build`` when needed."""

    def fresh(self) -> Lifecycle:
        """Return a new lifecycle of the same strategy with an empty cache."""
        return type(self)()


class TransientLifecycle(Lifecycle):
    """Build a new instance on every resolution."""

    __slots__ = ()

    def receive_instance(self, build: Callable[[], T]) -> T:
        return build()


class SingletonLifecycle(Lifecycle):
    """Share one instance for the lifetime of the container.

    Concurrent first resolutions build at most once: the instance is published
    under a lock and read without locking afterwards.
    """

    __slots__ = ("_instance", "_lock")

    def __init__(self) -> None:
        self._instance: Any = _MISSING_INSTANCE
        self._lock = threading.Lock()

    def receive_instance(self, build: Callable[[], T]) -> T:
        instance = self._instance
        if instance is not _MISSING_INSTANCE:
            return instance

        with self._lock:
            if self._instance is _MISSING_INSTANCE:
                self._instance = build()
            return self._instance


class ThreadSingletonLifecycle(Lifecycle):
    """Share one instance per calling thread.

    Instances are keyed by ``threading.get_ident()`` and never evicted, so
    processes that keep spawning short-lived threads grow this map without
    bound. Identifiers of finished threads may be reused by new threads, which
    then receive the cached instance.
    """

    __slots__ = ("_instances", "_lock")

    def __init__(self) -> None:
        self._instances: dict[int, Any] = {}
        self._lock = threading.Lock()

    def receive_instance(self, build: Callable[[], T]) -> T:
        thread_id = threading.get_ident()
        with self._lock:
            instance = self._instances.get(thread_id, _MISSING_INSTANCE)
            if instance is _MISSING_INSTANCE:
                instance = build()
                self._instances[thread_id] = instance
            return instance


class ExternallyScopedLifecycle(Lifecycle):
    """Share one instance per external scope, such as a web request.

    The cache lives entirely in the scope accessor; this lifecycle is only the
    key its instances are stored under.
    """

    __slots__ = ("_accessor",)

    def __init__(self, accessor: ScopeAccessorProtocol) -> None:
        self._accessor = accessor

    @property
    def accessor(self) -> ScopeAccessorProtocol:
        return self._accessor

    def receive_instance(self, build: Callable[[], T]) -> T:
        instance = self._accessor.get_instance(self)
        if instance is not MISSING:
            return instance
        return self._accessor.set_instance(self, build())

    def fresh(self) -> Lifecycle:
        return type(self)(self._accessor)


class Lifetime(Enum):
    """Shorthand for the built-in lifecycles that need no configuration."""

    TRANSIENT = "transient"
    """A new instance is created every time the contract is resolved."""

    SINGLETON = "singleton"
    """A single instance is created and shared for the lifetime of the container."""

    THREAD = "thread"
    """One instance is created and shared per calling thread."""

    def create_lifecycle(self) -> Lifecycle:
        """Create a new lifecycle for this lifetime."""
        return _LIFETIME_LIFECYCLES[self]()


_LIFETIME_LIFECYCLES: dict[Lifetime, type[Lifecycle]] = {
    Lifetime.TRANSIENT: TransientLifecycle,
    Lifetime.SINGLETON: SingletonLifecycle,
    Lifetime.THREAD: ThreadSingletonLifecycle,
}

LifecycleFactory: TypeAlias = Callable[[], Lifecycle]
"""A zero-argument callable creating a new lifecycle per registration."""

LifecycleSpec: TypeAlias = Lifetime | type[Lifecycle] | LifecycleFactory | Lifecycle
"""Anything the builder accepts as a lifecycle declaration."""


def as_lifecycle_factory(spec: LifecycleSpec, *, allow_instance: bool) -> LifecycleFactory:
    """Normalise a lifecycle declaration into a factory.

    Args:
        spec: A ``Lifetime`` member, a ``Lifecycle`` subclass, a zero-argument
            factory, or (when ``allow_instance`` is true) a ``Lifecycle`` instance.
        allow_instance: Whether a ready-made lifecycle instance is accepted. An
            accepted instance serves as a template: each call of the factory
            returns ``spec.fresh()``, so every build owns its own cache. A
            default lifecycle must not be an instance.

    Raises:
        LightwireInvalidRegistrationError: If the declaration is not usable.

    """
    if isinstance(spec, Lifetime):
        return spec.create_lifecycle
    if isinstance(spec, Lifecycle):
        if not allow_instance:
            msg = (
                f"Default lifecycle must be a lifecycle type or factory, got instance {spec!r}; "
                "each registration needs its own lifecycle."
            )
            raise LightwireInvalidRegistrationError(msg)
        return spec.fresh
    if isinstance(spec, type):
        if not issubclass(spec, Lifecycle):
            msg = f"Lifecycle type must subclass Lifecycle, got {spec!r}."
            raise LightwireInvalidRegistrationError(msg)
        return spec
    if callable(spec):
        return _checked_factory(spec)
    msg = f"Expected a Lifetime, Lifecycle type or lifecycle factory, got {spec!r}."
    raise LightwireInvalidRegistrationError(msg)


def _checked_factory(factory: Callable[[], Any]) -> LifecycleFactory:
    def create() -> Lifecycle:
        lifecycle = factory()
        if not isinstance(lifecycle, Lifecycle):
            msg = f"Lifecycle factory {factory!r} returned {lifecycle!r}, not a Lifecycle."
            raise LightwireInvalidRegistrationError(msg)
        return lifecycle

    return create


__all__ = [
    "ExternallyScopedLifecycle",
    "Lifecycle",
    "LifecycleFactory",
    "LifecycleSpec",
    "Lifetime",
    "SingletonLifecycle",
    "ThreadSingletonLifecycle",
    "TransientLifecycle",
    "as_lifecycle_factory",
]
