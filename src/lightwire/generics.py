from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from typing import Any, TypeVar, get_args, get_origin

from lightwire._internal.type_checks import is_protocol_class, satisfies_protocol
from lightwire.exceptions import LightwireInvalidGenericTypeArgumentError

logger = logging.getLogger(__name__)


def contains_typevar(value: Any) -> bool:
    """Return whether a type expression still contains a ``TypeVar``.

    Args:
        value: Type expression or object to inspect.

    Returns:
        ``True`` when any nested node contains a TypeVar, else ``False``.

    """
    if isinstance(value, TypeVar):
        return True

    origin = get_origin(value)
    if origin is not None:
        return any(contains_typevar(argument) for argument in get_args(value))

    parameters = getattr(value, "__parameters__", ())
    return any(isinstance(parameter, TypeVar) for parameter in parameters)


def is_open_generic(dependency: Any) -> bool:
    """Return whether a contract is an open generic definition.

    Both the bare generic class (``IRepository``) and an alias that still holds
    type variables (``IRepository[T]``) are open.
    """
    if isinstance(dependency, TypeVar):
        return False
    return contains_typevar(dependency)


def is_closed_generic(dependency: Any) -> bool:
    """Return whether a contract is a parametrised alias without type variables."""
    origin = get_origin(dependency)
    if origin is None:
        return False
    arguments = get_args(dependency)
    if not arguments:
        return False
    return not any(contains_typevar(argument) for argument in arguments)


def generic_definition(dependency: Any) -> Any:
    """Return the unsubscripted generic definition of a contract.

    ``IRepository[Foo]`` and ``IRepository[T]`` both map to ``IRepository``; any
    other value is returned unchanged.
    """
    origin = get_origin(dependency)
    if origin is None:
        return dependency
    return origin


def typevar_map(dependency: Any) -> dict[TypeVar, Any]:
    """Map the type parameters of a parametrised alias to its arguments."""
    origin = get_origin(dependency)
    if origin is None:
        return {}
    parameters = tuple(
        parameter
        for parameter in getattr(origin, "__parameters__", ())
        if isinstance(parameter, TypeVar)
    )
    arguments = get_args(dependency)
    if not parameters or len(parameters) != len(arguments):
        return {}
    return dict(zip(parameters, arguments, strict=True))


def substitute_typevars(value: Any, *, mapping: Mapping[TypeVar, Any]) -> Any:
    """Substitute TypeVars in a type expression using a resolved mapping.

    Args:
        value: Type expression template that may contain TypeVars.
        mapping: Mapping from template TypeVars to concrete type arguments.

    Returns:
        The substituted type expression with available TypeVars replaced.

    """
    if not mapping:
        return value

    if isinstance(value, TypeVar):
        return mapping.get(value, value)

    origin = get_origin(value)
    if origin is None:
        return value

    arguments = get_args(value)
    if not arguments:
        return value

    substituted_arguments = tuple(
        substitute_typevars(argument, mapping=mapping) for argument in arguments
    )
    if substituted_arguments == arguments:
        return value
    return _rebuild_alias(origin=value, args=substituted_arguments, fallback=value)


def iter_generic_bases(dependency: Any) -> Iterator[Any]:
    """Yield a type and all of its bases with type variables substituted.

    For ``Repository[Foo]`` where ``class Repository(IRepository[T])`` this yields
    ``Repository[Foo]``, ``IRepository[Foo]`` and the remaining bases down to
    ``object``.
    """
    origin = get_origin(dependency)
    runtime_class = dependency if origin is None else origin
    if not isinstance(runtime_class, type):
        return

    yield dependency

    mapping = typevar_map(dependency)
    bases = runtime_class.__dict__.get("__orig_bases__", runtime_class.__bases__)
    for base in bases:
        yield from iter_generic_bases(substitute_typevars(base, mapping=mapping))


def is_assignable(implementation: Any, contract: Any) -> bool:
    """Return whether an implementation type satisfies a contract type.

    Plain class contracts use ``issubclass`` (structural member checks for
    protocols that do not support it); closed generic contracts require the
    identical parametrised base in the implementation's generic base chain.
    """
    if implementation == contract:
        return True

    implementation_class = generic_definition(implementation)
    if not isinstance(implementation_class, type):
        return False

    if get_origin(contract) is None:
        if not isinstance(contract, type):
            return False
        try:
            return issubclass(implementation_class, contract)
        except TypeError:
            if is_protocol_class(contract):
                return satisfies_protocol(implementation_class, contract)
            return False

    return any(base == contract for base in iter_generic_bases(implementation))


def close_implementation(implementation: Any, contract: Any) -> Any:
    """Bind an open implementation's type parameters to a closed contract's arguments.

    The binding follows the implementation's generic bases first
    (``class Repository(IRepository[T])``) and falls back to positional binding
    when the parameter counts agree.

    An implementation without type parameters is returned unchanged when it
    already satisfies the closed contract.

    Raises:
        LightwireInvalidGenericTypeArgumentError: If the implementation's type
            parameters cannot be bound, a bound argument violates a TypeVar
            bound or constraint, or a non-generic implementation does not
            satisfy the contract.

    """
    parameters = tuple(
        parameter
        for parameter in getattr(implementation, "__parameters__", ())
        if isinstance(parameter, TypeVar)
    )
    if not parameters:
        if not is_assignable(implementation, contract):
            msg = f"Implementation {implementation!r} does not satisfy {contract!r}."
            raise LightwireInvalidGenericTypeArgumentError(msg)
        return implementation

    mapping = _bind_through_bases(implementation=implementation, contract=contract)
    if mapping is None:
        arguments = get_args(contract)
        if len(arguments) != len(parameters):
            msg = (
                f"Cannot bind type parameters of {implementation!r} from {contract!r}: "
                f"expected {len(parameters)} type arguments, got {len(arguments)}."
            )
            raise LightwireInvalidGenericTypeArgumentError(msg)
        mapping = dict(zip(parameters, arguments, strict=True))

    unresolved = [parameter.__name__ for parameter in parameters if parameter not in mapping]
    if unresolved:
        msg = (
            f"Type parameters {', '.join(unresolved)} of {implementation!r} are not bound "
            f"by {contract!r}."
        )
        raise LightwireInvalidGenericTypeArgumentError(msg)

    validate_typevar_arguments(mapping)
    closed = _rebuild_alias(
        origin=implementation,
        args=tuple(mapping[parameter] for parameter in parameters),
        fallback=None,
    )
    if closed is None:
        msg = f"Cannot parametrise {implementation!r} for {contract!r}."
        raise LightwireInvalidGenericTypeArgumentError(msg)
    logger.debug("Closed open implementation %r as %r", implementation, closed)
    return closed


def validate_typevar_arguments(mapping: Mapping[TypeVar, Any]) -> None:
    """Validate closed generic arguments against TypeVar constraints and bounds.

    Args:
        mapping: Mapping from open TypeVars to candidate concrete arguments.

    Raises:
        LightwireInvalidGenericTypeArgumentError: If any argument violates TypeVar
            constraints or bound requirements.

    """
    for typevar, argument in mapping.items():
        if _is_type_argument_valid(typevar=typevar, argument=argument):
            continue
        constraints = typevar.__constraints__
        bound = typevar.__bound__
        if constraints:
            formatted_constraints = ", ".join(repr(item) for item in constraints)
            msg = (
                f"Generic argument {argument!r} for TypeVar '{typevar.__name__}' must satisfy "
                f"one of: {formatted_constraints}."
            )
        else:
            msg = (
                f"Generic argument {argument!r} for TypeVar '{typevar.__name__}' must satisfy "
                f"bound {bound!r}."
            )
        raise LightwireInvalidGenericTypeArgumentError(msg)


def match_typevars(*, template: Any, concrete: Any) -> dict[TypeVar, Any] | None:
    """Match a template containing TypeVars against a closed type expression."""
    mapping: dict[TypeVar, Any] = {}
    if _match_node(template=template, concrete=concrete, mapping=mapping):
        return mapping
    return None


def _bind_through_bases(*, implementation: Any, contract: Any) -> dict[TypeVar, Any] | None:
    contract_definition = generic_definition(contract)
    for base in iter_generic_bases(implementation):
        if get_origin(base) is not contract_definition:
            continue
        mapping = match_typevars(template=base, concrete=contract)
        if mapping is not None:
            return mapping
    return None


def _match_node(*, template: Any, concrete: Any, mapping: dict[TypeVar, Any]) -> bool:
    if isinstance(template, TypeVar):
        known = mapping.get(template)
        if known is None:
            mapping[template] = concrete
            return True
        return known == concrete

    template_origin = get_origin(template)
    if template_origin is None:
        return template == concrete

    if get_origin(concrete) != template_origin:
        return False

    template_arguments = get_args(template)
    concrete_arguments = get_args(concrete)
    if len(template_arguments) != len(concrete_arguments):
        return False

    return all(
        _match_node(template=template_argument, concrete=concrete_argument, mapping=mapping)
        for template_argument, concrete_argument in zip(
            template_arguments,
            concrete_arguments,
            strict=True,
        )
    )


def _rebuild_alias(*, origin: Any, args: tuple[Any, ...], fallback: Any) -> Any:
    subscriptable = get_origin(origin) or origin
    try:
        if len(args) == 1:
            return subscriptable[args[0]]
        return subscriptable[args]
    except TypeError:
        return fallback


def _is_type_argument_valid(*, typevar: TypeVar, argument: Any) -> bool:
    constraints = typevar.__constraints__
    if constraints:
        return any(
            _matches_type_constraint(argument=argument, constraint=constraint)
            for constraint in constraints
        )
    bound = typevar.__bound__
    if bound is None:
        return True
    return _matches_type_constraint(argument=argument, constraint=bound)


def _matches_type_constraint(*, argument: Any, constraint: Any) -> bool:
    if constraint is Any:
        return True
    argument_type = generic_definition(argument)
    constraint_type = generic_definition(constraint)
    if isinstance(argument_type, type) and isinstance(constraint_type, type):
        try:
            return issubclass(argument_type, constraint_type)
        except TypeError:
            return False
    return argument == constraint


__all__ = [
    "close_implementation",
    "contains_typevar",
    "generic_definition",
    "is_assignable",
    "is_closed_generic",
    "is_open_generic",
    "iter_generic_bases",
    "match_typevars",
    "substitute_typevars",
    "typevar_map",
    "validate_typevar_arguments",
]
