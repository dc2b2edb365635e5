from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

from lightwire.context import ResolutionContext

if TYPE_CHECKING:
    from lightwire.activators import Activator
    from lightwire.container import Container
    from lightwire.lifecycles import Lifecycle


@dataclass(frozen=True, slots=True)
class RegistrationKey:
    """Identity of a registration: a contract plus an optional name."""

    contract: Any
    """The contract type descriptor callers resolve."""
    name: str | None = None
    """Distinguishes several registrations of the same contract."""

    def __str__(self) -> str:
        contract_name = getattr(self.contract, "__qualname__", None) or repr(self.contract)
        if self.name is None:
            return contract_name
        return f"{contract_name}[{self.name!r}]"


@dataclass(kw_only=True, eq=False)
class RegistrationItem:
    """Describes how a contract is satisfied: an activator plus a lifecycle."""

    ORDER_COUNTER: ClassVar[itertools.count[int]] = itertools.count(1)

    key: RegistrationKey
    """The identity this item is stored under."""
    activator: Activator
    """Produces new instances. Owned exclusively by this item."""
    lifecycle: Lifecycle
    """Decides whether a resolution reuses a cached instance. Owned exclusively by this item."""
    implementation_type: Any | None = None
    """The concrete type built by a reflective activator, if any."""
    group: str | None = None
    """Optional group tag filtered by the builder before the item is committed."""

    registration_order: int = field(init=False)
    """Monotonic order in which items were created."""

    def __post_init__(self) -> None:
        self.registration_order = next(self.ORDER_COUNTER)

    @property
    def contract(self) -> Any:
        return self.key.contract

    @property
    def name(self) -> str | None:
        return self.key.name

    def activate(self, container: Container) -> Any:
        """Return an instance through this item's lifecycle, activating it when needed."""
        context = ResolutionContext(container=container, registration=self)
        return self.lifecycle.receive_instance(lambda: self.activator.activate_instance(context))

    def __repr__(self) -> str:
        return (
            f"RegistrationItem(key={self.key}, implementation_type={self.implementation_type!r}, "
            f"lifecycle={type(self.lifecycle).__name__})"
        )
