from __future__ import annotations

import inspect
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from inspect import Parameter
from typing import Any, Protocol, TypeVar, get_origin, get_type_hints

from lightwire.context import ResolutionContext, unwrap_annotated
from lightwire.exceptions import LightwireResolutionFailedError
from lightwire.generics import substitute_typevars, typevar_map

F = TypeVar("F")

ALTERNATE_CONSTRUCTOR_MARKER = "__lightwire_alternate_constructor__"
_IMPLICIT_FIRST_PARAMETER_NAMES = {"self", "cls"}
_VARIADIC_KINDS = {Parameter.VAR_POSITIONAL, Parameter.VAR_KEYWORD}

MISSING_ANNOTATION: Any = object()
"""Annotation of a constructor parameter that has none."""

USE_DEFAULT: Any = object()
"""Collected for a parameter that keeps its default value."""


def alternate_constructor(method: F) -> F:
    """Mark a classmethod as an additional constructor candidate.

    The container considers the primary ``__init__`` and every marked classmethod,
    and picks the candidate with the most satisfiable parameters.

    Examples:
        .. code-block:: python

            class Mailer:
                def __init__(self, transport: Transport) -> None: ...

                @alternate_constructor
                @classmethod
                def with_audit(cls, transport: Transport, audit: AuditLog) -> Mailer: ...

    """
    target = method.__func__ if isinstance(method, classmethod) else method
    setattr(target, ALTERNATE_CONSTRUCTOR_MARKER, True)
    return method


@dataclass(frozen=True, slots=True)
class ConstructorParameter:
    """A single injectable parameter of a constructor."""

    parameter: Parameter
    annotation: Any
    """Resolved annotation with type variables substituted, or ``MISSING_ANNOTATION``."""

    @property
    def name(self) -> str:
        return self.parameter.name

    @property
    def default(self) -> Any:
        return self.parameter.default

    @property
    def has_default(self) -> bool:
        return self.default is not Parameter.empty

    @property
    def is_annotated(self) -> bool:
        return self.annotation is not MISSING_ANNOTATION


@dataclass(frozen=True, slots=True)
class Constructor:
    """A way to create an implementation: ``__init__`` or a marked classmethod."""

    owner: Any
    """The implementation type (class or closed generic alias) this constructor builds."""
    factory: Callable[..., Any]
    """Called with the collected arguments."""
    parameters: tuple[ConstructorParameter, ...]
    name: str

    def invoke(self, arguments: Sequence[Any]) -> Any:
        """Call the constructor, skipping every argument collected as ``USE_DEFAULT``."""
        positional: list[Any] = []
        keyword: dict[str, Any] = {}
        for parameter, value in zip(self.parameters, arguments, strict=True):
            if value is USE_DEFAULT:
                continue
            if parameter.parameter.kind is Parameter.POSITIONAL_ONLY:
                positional.append(value)
            else:
                keyword[parameter.name] = value
        return self.factory(*positional, **keyword)


def get_constructors(implementation: Any) -> list[Constructor]:
    """Return the constructor candidates of an implementation in declaration order.

    The primary ``__init__`` comes first, followed by classmethods marked with
    ``alternate_constructor``. Type variables in parameter annotations are
    substituted when ``implementation`` is a closed generic alias.
    """
    runtime_class = get_origin(implementation) or implementation
    mapping = typevar_map(implementation)
    qualname = getattr(runtime_class, "__qualname__", repr(runtime_class))

    constructors = [
        Constructor(
            owner=implementation,
            factory=implementation,
            parameters=_constructor_parameters(
                runtime_class.__init__,
                mapping=mapping,
                skip_first_parameter=True,
            ),
            name=f"{qualname}.__init__",
        ),
    ]

    seen: set[str] = set()
    for klass in runtime_class.__mro__:
        for attribute_name, attribute in vars(klass).items():
            if attribute_name in seen:
                continue
            seen.add(attribute_name)
            if not isinstance(attribute, classmethod):
                continue
            if not getattr(attribute.__func__, ALTERNATE_CONSTRUCTOR_MARKER, False):
                continue
            bound = getattr(runtime_class, attribute_name)
            constructors.append(
                Constructor(
                    owner=implementation,
                    factory=bound,
                    parameters=_constructor_parameters(
                        bound,
                        mapping=mapping,
                        skip_first_parameter=False,
                    ),
                    name=f"{qualname}.{attribute_name}",
                ),
            )
    return constructors


class ConstructorSelectorProtocol(Protocol):
    """Picks the constructor a reflective activator invokes."""

    def select_constructor(
        self,
        constructors: Sequence[Constructor],
        context: ResolutionContext,
    ) -> Constructor:
        """Return the constructor to invoke for the current resolution."""
        ...


class ArgumentCollectorProtocol(Protocol):
    """Resolves the arguments of a selected constructor."""

    def collect_arguments(
        self,
        resolve: Callable[[Any], Any],
        parameters: Sequence[ConstructorParameter],
        context: ResolutionContext,
    ) -> list[Any]:
        """Return one value per parameter, in parameter order.

        A shorter list signals that a required parameter could not be resolved.
        """
        ...


class ConstructorSelector:
    """Prefer the constructor with the most parameters the container can satisfy.

    A parameter is satisfiable when its annotation is registered or supported
    by a registration source. Unsatisfiable parameters with defaults keep their
    defaults; an unsatisfiable required parameter disqualifies the constructor.
    Ties go to the constructor declared first.
    """

    def select_constructor(
        self,
        constructors: Sequence[Constructor],
        context: ResolutionContext,
    ) -> Constructor:
        selected: Constructor | None = None
        selected_count = -1
        for constructor in constructors:
            count = self._satisfiable_count(constructor, context)
            if count is not None and count > selected_count:
                selected = constructor
                selected_count = count

        if selected is None:
            implementation = constructors[0].owner if constructors else None
            raise LightwireResolutionFailedError(
                implementation,
                "No constructor has a fully satisfiable parameter list.",
            )
        return selected

    def _satisfiable_count(
        self,
        constructor: Constructor,
        context: ResolutionContext,
    ) -> int | None:
        count = 0
        for parameter in constructor.parameters:
            if parameter.is_annotated and context.can_resolve(parameter.annotation):
                count += 1
            elif not parameter.has_default:
                return None
        return count


class ArgumentCollector:
    """Resolve constructor arguments through the container, one per parameter."""

    def collect_arguments(
        self,
        resolve: Callable[[Any], Any],
        parameters: Sequence[ConstructorParameter],
        context: ResolutionContext,
    ) -> list[Any]:
        arguments: list[Any] = []
        for parameter in parameters:
            if parameter.is_annotated and context.can_resolve(parameter.annotation):
                arguments.append(resolve(parameter.annotation))
            elif parameter.has_default:
                arguments.append(USE_DEFAULT)
            else:
                break
        return arguments


def _constructor_parameters(
    constructor: Callable[..., Any],
    *,
    mapping: dict[TypeVar, Any],
    skip_first_parameter: bool,
) -> tuple[ConstructorParameter, ...]:
    try:
        signature = inspect.signature(constructor)
    except (TypeError, ValueError):
        return ()
    parameters = tuple(signature.parameters.values())
    if (
        skip_first_parameter
        and parameters
        and parameters[0].name in _IMPLICIT_FIRST_PARAMETER_NAMES
    ):
        parameters = parameters[1:]

    try:
        annotations = get_type_hints(constructor, include_extras=True)
    except (AttributeError, NameError, TypeError):
        annotations = {}

    result: list[ConstructorParameter] = []
    for parameter in parameters:
        if parameter.kind in _VARIADIC_KINDS:
            continue
        annotation = annotations.get(parameter.name, parameter.annotation)
        if annotation is Parameter.empty or isinstance(annotation, str):
            annotation = MISSING_ANNOTATION
        else:
            annotation = substitute_typevars(unwrap_annotated(annotation), mapping=mapping)
        result.append(
            ConstructorParameter(parameter=parameter, annotation=annotation),
        )
    return tuple(result)


__all__ = [
    "USE_DEFAULT",
    "ArgumentCollector",
    "ArgumentCollectorProtocol",
    "Constructor",
    "ConstructorParameter",
    "ConstructorSelector",
    "ConstructorSelectorProtocol",
    "alternate_constructor",
    "get_constructors",
]
