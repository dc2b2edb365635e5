from __future__ import annotations

import importlib
import warnings
from typing import Any

from lightwire._internal.type_checks import is_runtime_class

_PYDANTIC_V1_WARNING_PATTERN = (
    r"Core Pydantic V1 functionality isn't compatible with Python 3\.14 or greater\."
)

# Module names probed for a ``BaseSettings`` class, in preference order.
_SETTINGS_MODULES = ("pydantic_settings", "pydantic.v1", "pydantic")


def _import_settings_base(module_name: str) -> type[Any] | None:
    try:
        module = importlib.import_module(module_name)
    except ImportError:
        return None
    # pydantic 2 keeps a ``BaseSettings`` stub that raises on attribute access.
    try:
        settings_base = getattr(module, "BaseSettings", None)
    except ImportError:
        return None
    return settings_base if isinstance(settings_base, type) else None


def discover_settings_bases() -> tuple[type[Any], ...]:
    """Return every importable pydantic ``BaseSettings`` class, without duplicates."""
    bases: list[type[Any]] = []
    with warnings.catch_warnings():
        warnings.filterwarnings(
            "ignore",
            message=_PYDANTIC_V1_WARNING_PATTERN,
            category=UserWarning,
        )
        for module_name in _SETTINGS_MODULES:
            settings_base = _import_settings_base(module_name)
            if settings_base is not None and settings_base not in bases:
                bases.append(settings_base)
    return tuple(bases)


SETTINGS_BASES: tuple[type[Any], ...] = discover_settings_bases()


def is_pydantic_settings_subclass(candidate: object) -> bool:
    """Return whether ``candidate`` is a pydantic settings model.

    Settings models load their values from the environment and are resolved
    once per container.
    """
    if not is_runtime_class(candidate):
        return False
    if candidate in SETTINGS_BASES:
        return False
    try:
        return any(issubclass(candidate, base) for base in SETTINGS_BASES)
    except TypeError:
        return False


__all__ = [
    "SETTINGS_BASES",
    "discover_settings_bases",
    "is_pydantic_settings_subclass",
]
