from __future__ import annotations

import types
from typing import Any, TypeGuard, get_type_hints

from typing_extensions import get_protocol_members, is_protocol


def is_runtime_class(candidate: object) -> TypeGuard[type[Any]]:
    """Return true when candidate is a runtime class safe for class-only operations.

    Args:
        candidate: Value being checked for eligibility or runtime type constraints.

    """
    return isinstance(candidate, type) and not isinstance(candidate, types.GenericAlias)


def is_protocol_class(candidate: object) -> bool:
    """Return true when candidate is a ``typing.Protocol`` definition."""
    return is_runtime_class(candidate) and is_protocol(candidate)


def satisfies_protocol(implementation: type[Any], protocol: type[Any]) -> bool:
    """Return true when the implementation structurally provides every protocol member.

    Members declared only as annotations count as provided when the implementation
    (or one of its bases) annotates or defines them.
    """
    if protocol in implementation.__mro__:
        return True
    try:
        annotated = set(get_type_hints(implementation))
    except (AttributeError, NameError, TypeError):
        annotated = set()
    return all(
        hasattr(implementation, member) or member in annotated
        for member in get_protocol_members(protocol)
    )


__all__ = ["is_protocol_class", "is_runtime_class", "satisfies_protocol"]
