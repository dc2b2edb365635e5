from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Annotated, Any, get_args, get_origin

if TYPE_CHECKING:
    from lightwire.container import Container
    from lightwire.registration import RegistrationItem
    from lightwire.registration_container import RegistrationContainer


@dataclass(frozen=True, slots=True)
class ResolutionContext:
    """State handed to activators, constructor selectors and argument collectors."""

    container: Container
    """The container the current resolution runs in."""
    registration: RegistrationItem | None = None
    """The registration being activated, when there is one."""

    @property
    def registrations(self) -> RegistrationContainer:
        return self.container.registrations

    def can_resolve(self, dependency: Any) -> bool:
        """Return whether ``dependency`` is registered or supported by a registration source."""
        dependency = unwrap_annotated(dependency)
        if self.registrations.is_registered(dependency):
            return True
        return self.registrations.is_supported_by_source(dependency)


def unwrap_annotated(annotation: Any) -> Any:
    """Recursively unwrap ``Annotated[T, ...]`` into ``T``."""
    while get_origin(annotation) is Annotated:
        annotation = get_args(annotation)[0]
    return annotation
