from __future__ import annotations

import datetime
import decimal
import inspect
import pathlib
import uuid
from dataclasses import dataclass
from typing import Any, get_origin

from lightwire._internal.type_checks import is_protocol_class, is_runtime_class
from lightwire.generics import contains_typevar


@dataclass(frozen=True, slots=True)
class ConcreteTypePolicy:
    """Internal policy deciding which unregistered types may be built on the fly."""

    ignored_base_types: tuple[type[Any], ...] = (
        pathlib.PurePath,
        datetime.datetime,
        datetime.date,
        datetime.time,
        datetime.timedelta,
        uuid.UUID,
        decimal.Decimal,
    )

    def is_concrete(self, candidate: object) -> bool:
        """Return true when a candidate is a directly instantiable concrete type.

        Closed generic aliases of eligible classes (``Repository[Foo]``) are
        concrete; open generics, abstract classes, protocols, builtins and
        value-like library types are not.

        Args:
            candidate: Value being checked for eligibility or runtime type constraints.

        """
        origin = get_origin(candidate)
        if origin is not None:
            if contains_typevar(candidate):
                return False
            return self._is_eligible_class(origin)
        if contains_typevar(candidate):
            return False
        return self._is_eligible_class(candidate)

    def is_value_type(self, candidate: object) -> bool:
        """Return true for builtins and value-like library types."""
        candidate = get_origin(candidate) or candidate
        if not is_runtime_class(candidate):
            return False
        return candidate.__module__ == "builtins" or issubclass(
            candidate,
            self.ignored_base_types,
        )

    def _is_eligible_class(self, candidate: object) -> bool:
        if not is_runtime_class(candidate):
            return False
        if candidate.__module__ == "builtins":
            return False
        if inspect.isabstract(candidate):
            return False
        if is_protocol_class(candidate):
            return False
        if issubclass(candidate, type):
            return False
        return not issubclass(candidate, self.ignored_base_types)


__all__ = ["ConcreteTypePolicy"]
