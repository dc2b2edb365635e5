from __future__ import annotations

from collections.abc import Sequence
from typing import Any


def _describe(dependency: Any) -> str:
    return getattr(dependency, "__qualname__", None) or repr(dependency)


class LightwireError(Exception):
    """Represent a base class for all Lightwire-specific failures.

    Catch this type when you want to handle any Lightwire error path without
    matching each concrete exception class individually.
    """


class LightwireRegistrationNotFoundError(LightwireError):
    """Signal that a contract has no registration and cannot be built on the fly.

    Raised by ``Container.resolve`` when the requested contract (direct or
    closed generic) is not registered, no registration source supports it, and
    it is not a directly instantiable concrete type.

    Typical fixes include registering the contract on the ``ContainerBuilder``,
    registering the open generic definition for a closed generic request, or
    checking the ``name`` passed to ``resolve``.
    """

    def __init__(self, contract: Any, name: str | None = None) -> None:
        self.contract = contract
        self.name = name
        if name is None:
            msg = f"No registration found for contract '{_describe(contract)}'."
        else:
            msg = f"No registration found for contract '{_describe(contract)}' with name '{name}'."
        super().__init__(msg)


class LightwireContractNotImplementedByTypeError(LightwireError):
    """Signal that an implementation does not satisfy its declared contract.

    Raised synchronously by ``ContainerBuilder.register`` for closed contracts.
    Open generic contracts are not checked at registration time.
    """

    def __init__(self, contract: Any, implementation: Any) -> None:
        self.contract = contract
        self.implementation = implementation
        msg = (
            f"Implementation '{_describe(implementation)}' does not implement "
            f"contract '{_describe(contract)}'."
        )
        super().__init__(msg)


class LightwireInvalidRegistrationError(LightwireError):
    """Signal invalid registration arguments.

    Raised by registration APIs such as ``ContainerBuilder.register`` when a
    non-concrete type is registered to itself, or when lifecycle or factory
    arguments are not usable.
    """


class LightwireResolutionFailedError(LightwireError):
    """Signal that an implementation type could not be activated.

    Raised when no constructor of the implementation has a fully satisfiable
    parameter list, or when the collected arguments do not match the selected
    constructor.

    Typical fixes include registering the missing constructor dependencies or
    giving the unresolvable parameters default values.
    """

    def __init__(self, implementation: Any, reason: str | None = None) -> None:
        self.implementation = implementation
        msg = f"No suitable constructor found for '{_describe(implementation)}'."
        if reason is not None:
            msg = f"{msg} {reason}"
        super().__init__(msg)


class LightwireCircularDependencyError(LightwireError):
    """Signal a dependency cycle in the constructor graph.

    The chain lists every registration identity from the outermost resolve call
    to the repeated one. Depend on ``Callable[[], T]`` to defer one side of the
    cycle.
    """

    def __init__(self, key: Any, chain: Sequence[Any]) -> None:
        self.key = key
        self.chain = tuple(chain)
        path = " -> ".join(str(item) for item in (*self.chain, key))
        super().__init__(f"Circular dependency detected: {path}")


class LightwireInvalidGenericTypeArgumentError(LightwireError):
    """Signal invalid closed-generic arguments for an open registration.

    Raised while closing an open generic registration when a type argument
    violates TypeVar bounds or constraints, or when the implementation's type
    parameters cannot be bound from the requested contract.
    """


class LightwireScopeError(LightwireError):
    """Signal resolution of an externally scoped registration outside a scope.

    Typical fix is entering a scope on the scope accessor before resolving, for
    example ``with accessor.enter_scope(request_id): ...``.
    """
