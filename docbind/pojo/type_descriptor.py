"""Type descriptors for annotated Python types.

A :class:`TypeDescriptor` is a raw class plus the descriptors of its type
arguments. It is what the property codec registry resolves codecs for, so
it is immutable, hashable and compared structurally.

:func:`TypeDescriptor.of` normalises ``typing`` expressions::

    TypeDescriptor.of(int)                  -> int
    TypeDescriptor.of(List[str])            -> list[str]
    TypeDescriptor.of(Optional[Dict[str, Node]]) -> dict[str, Node]
    TypeDescriptor.of(Tuple[int, ...])      -> tuple[int]
    TypeDescriptor.of(T)                    -> bound of T, else object
"""

import sys
import types
import typing
from dataclasses import dataclass
from typing import Annotated, Any, Dict, Optional, Tuple, TypeVar, Union, get_args, get_origin

from docbind.exceptions import DefinitionException

_UNION_TYPES: Tuple[Any, ...] = (Union,)
if sys.version_info >= (3, 10):
    _UNION_TYPES = (Union, types.UnionType)

_WRAPPER_ORIGINS = (typing.ClassVar, typing.Final)


def strip_annotation(annotation: Any) -> Any:
    """Remove ``Annotated``, ``ClassVar``, ``Final`` and ``Optional`` wrappers."""
    while True:
        origin = get_origin(annotation)
        if origin is Annotated:
            annotation = annotation.__origin__
        elif origin in _WRAPPER_ORIGINS:
            args = get_args(annotation)
            annotation = args[0] if args else object
        elif origin in _UNION_TYPES:
            args = [arg for arg in get_args(annotation) if arg is not type(None)]
            if len(args) != 1:
                return annotation
            annotation = args[0]
        elif annotation in _WRAPPER_ORIGINS:
            return object
        else:
            return annotation


def annotation_markers(annotation: Any) -> Tuple[Any, ...]:
    """Collect the ``Annotated`` metadata found in an annotation."""
    markers = []
    while True:
        origin = get_origin(annotation)
        if origin is Annotated:
            markers.extend(annotation.__metadata__)
            annotation = annotation.__origin__
        elif origin in _WRAPPER_ORIGINS:
            args = get_args(annotation)
            if not args:
                break
            annotation = args[0]
        else:
            break
    return tuple(markers)


def is_class_var(annotation: Any) -> bool:
    return annotation is typing.ClassVar or get_origin(annotation) is typing.ClassVar


def is_final(annotation: Any) -> bool:
    while get_origin(annotation) is Annotated:
        annotation = annotation.__origin__
    return annotation is typing.Final or get_origin(annotation) is typing.Final


def type_arguments(annotation: Any) -> Tuple[Any, ...]:
    """Return the type arguments of a stripped annotation.

    ``Tuple[X, ...]`` is reported as a single argument ``X``.
    """
    args = get_args(annotation)
    if get_origin(annotation) is tuple and len(args) == 2 and args[1] is Ellipsis:
        return (args[0],)
    return args


def substitute_type_vars(annotation: Any, mapping: Dict[Any, Any]) -> Any:
    """Replace type variables in an annotation using ``mapping``."""
    if not mapping:
        return annotation
    if isinstance(annotation, TypeVar):
        return mapping.get(annotation, annotation)
    parameters = getattr(annotation, "__parameters__", ())
    if parameters and get_origin(annotation) is not None:
        replacements = tuple(mapping.get(p, p) for p in parameters)
        if replacements != tuple(parameters):
            return annotation[replacements if len(replacements) > 1 else replacements[0]]
    return annotation


@dataclass(frozen=True)
class TypeDescriptor:
    """A raw class with its resolved type arguments.

    Attributes:
        raw_type: The class, e.g. ``list`` for ``List[int]``.
        type_parameters: Descriptors of the type arguments, in order.
    """

    raw_type: type
    type_parameters: Tuple["TypeDescriptor", ...] = ()

    @classmethod
    def of(cls, annotation: Any) -> "TypeDescriptor":
        """Build a descriptor from a class or ``typing`` expression."""
        annotation = strip_annotation(annotation)
        if annotation is Any:
            return OBJECT
        if annotation is None or annotation is type(None):
            return cls(type(None))
        if isinstance(annotation, TypeVar):
            if annotation.__bound__ is not None:
                return cls.of(annotation.__bound__)
            return OBJECT
        if isinstance(annotation, (str, typing.ForwardRef)):
            raise DefinitionException(f"Unresolved forward reference {annotation!r}")
        origin = get_origin(annotation)
        if origin is None:
            if isinstance(annotation, type):
                return cls(annotation)
            return OBJECT
        if origin in _UNION_TYPES or origin is typing.Literal:
            return OBJECT
        if not isinstance(origin, type):
            return OBJECT
        return cls(origin, tuple(cls.of(arg) for arg in type_arguments(annotation)))

    @property
    def has_type_parameters(self) -> bool:
        return bool(self.type_parameters)

    def is_assignable_from(self, other: "TypeDescriptor") -> bool:
        """Return True if a value described by ``other`` fits this type."""
        if self.raw_type is object:
            return True
        try:
            if not issubclass(other.raw_type, self.raw_type):
                return False
        except TypeError:
            return False
        if self.type_parameters and other.type_parameters:
            if len(self.type_parameters) != len(other.type_parameters):
                return False
            return all(
                mine.is_assignable_from(theirs)
                for mine, theirs in zip(self.type_parameters, other.type_parameters)
            )
        return True

    @property
    def type_name(self) -> str:
        name = getattr(self.raw_type, "__qualname__", repr(self.raw_type))
        if not self.type_parameters:
            return name
        return f"{name}[{', '.join(p.type_name for p in self.type_parameters)}]"

    def __str__(self) -> str:
        return self.type_name


OBJECT = TypeDescriptor(object)


class TypeParameterMap:
    """How one property's type refers to its class's type parameters.

    Either the whole property is the class parameter at some index
    (stored under key ``-1``), or some of the property's own type
    arguments are class parameters, keyed by argument position.
    """

    WHOLE_PROPERTY = -1

    def __init__(self, property_to_class_param_index: Optional[Dict[int, int]] = None):
        self._mapping = dict(property_to_class_param_index or {})

    @property
    def property_to_class_param_index(self) -> Dict[int, int]:
        return dict(self._mapping)

    @property
    def has_type_parameters(self) -> bool:
        return bool(self._mapping)

    @classmethod
    def builder(cls) -> "TypeParameterMapBuilder":
        return TypeParameterMapBuilder()

    @classmethod
    def for_annotation(cls, annotation: Any, class_parameters: Tuple[Any, ...]) -> "TypeParameterMap":
        """Compute the map for an annotation against a class's parameters."""
        builder = cls.builder()
        stripped = strip_annotation(annotation)
        if isinstance(stripped, TypeVar):
            if stripped in class_parameters:
                builder.add_index(class_parameters.index(stripped))
        else:
            for position, arg in enumerate(type_arguments(stripped)):
                arg = strip_annotation(arg)
                if isinstance(arg, TypeVar) and arg in class_parameters:
                    builder.add_index(position, class_parameters.index(arg))
        return builder.build()

    def __eq__(self, other: object) -> bool:
        return isinstance(other, TypeParameterMap) and self._mapping == other._mapping

    def __hash__(self) -> int:
        return hash(tuple(sorted(self._mapping.items())))

    def __repr__(self) -> str:
        return f"TypeParameterMap(mapping={self._mapping})"


class TypeParameterMapBuilder:
    def __init__(self):
        self._mapping: Dict[int, int] = {}

    def add_index(self, index: int, class_param_index: Optional[int] = None) -> "TypeParameterMapBuilder":
        """Record a mapping.

        ``add_index(n)`` says the whole property is class parameter ``n``;
        ``add_index(k, n)`` says property argument ``k`` is parameter ``n``.
        """
        if class_param_index is None:
            self._mapping[TypeParameterMap.WHOLE_PROPERTY] = index
        else:
            self._mapping[index] = class_param_index
        return self

    def build(self) -> TypeParameterMap:
        if TypeParameterMap.WHOLE_PROPERTY in self._mapping and len(self._mapping) > 1:
            raise DefinitionException("You cannot have a generic field that also has type parameters.")
        return TypeParameterMap(self._mapping)


def class_type_parameters(clazz: type) -> Tuple[Any, ...]:
    """Return the unbound type variables declared by a generic class."""
    return tuple(getattr(clazz, "__parameters__", ()) or ())


def base_type_var_substitutions(clazz: type) -> Dict[type, Dict[Any, Any]]:
    """Resolve, for every class in the MRO, what its type variables mean.

    The result maps each base class to ``{TypeVar: annotation}`` where the
    annotation is expressed in terms of ``clazz``: a concrete type, or one
    of ``clazz``'s own type variables.
    """
    result: Dict[type, Dict[Any, Any]] = {clazz: {}}

    def visit(current: type, mapping: Dict[Any, Any]) -> None:
        for base in current.__dict__.get("__orig_bases__", current.__bases__):
            origin = get_origin(base) or base
            if not isinstance(origin, type) or origin is object or origin is typing.Generic:
                continue
            if origin in result:
                continue
            parameters = class_type_parameters(origin)
            args = get_args(base)
            base_mapping = {}
            for parameter, arg in zip(parameters, args):
                base_mapping[parameter] = substitute_type_vars(arg, mapping)
            result[origin] = base_mapping
            visit(origin, base_mapping)

    visit(clazz, {})
    return result
