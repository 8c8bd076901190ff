"""Property discovery for mapped classes.

A class is inspected once. Every class in its MRO contributes:

- annotated class attributes (fields),
- ``property`` objects (a getter and/or a setter).

Members are merged by property name, the most-derived declaration wins,
and a private field ``_name`` backs the property ``name`` when one exists.
Setter types seed the property type before getter types, since setters
usually accept the broader type. Type variables bound by generic base
classes are substituted so every property type is expressed in terms of
the inspected class's own type parameters.
"""

import dataclasses
import inspect
import typing
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple

from docbind.exceptions import DefinitionException, PropertyAccessException
from docbind.pojo.markers import DocumentNode, Transient
from docbind.pojo.type_descriptor import (
    TypeDescriptor,
    TypeParameterMap,
    annotation_markers,
    base_type_var_substitutions,
    class_type_parameters,
    is_class_var,
    is_final,
    substitute_type_vars,
)

_MISSING = object()

_SKIPPED_MODULES = frozenset(["builtins", "typing", "abc", "collections.abc", "enum"])


def _is_assignable_either_way(first: TypeDescriptor, second: TypeDescriptor) -> bool:
    return first.is_assignable_from(second) or second.is_assignable_from(first)


class PropertyMetadata:
    """Everything known about one property before conventions run.

    Args:
        name: The property name.
        declaring_class_name: Qualified name of the inspected class.
    """

    def __init__(self, name: str, declaring_class_name: str):
        self._name = name
        self._declaring_class_name = declaring_class_name
        self._type_data: Optional[TypeDescriptor] = None
        self._annotation: Any = None
        self._type_parameter_map = TypeParameterMap()
        self._getter: Optional[Callable] = None
        self._setter: Optional[Callable] = None
        self._field_name: Optional[str] = None
        self._field_static = False
        self._field_transient = False
        self._field_final = False
        self._read_markers: Dict[type, Any] = {}
        self._write_markers: Dict[type, Any] = {}
        self._error: Optional[str] = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def declaring_class_name(self) -> str:
        return self._declaring_class_name

    @property
    def type_data(self) -> TypeDescriptor:
        return self._type_data if self._type_data is not None else TypeDescriptor(object)

    @property
    def annotation(self) -> Any:
        """The annotation the property type was taken from."""
        return self._annotation

    @property
    def type_parameter_map(self) -> TypeParameterMap:
        return self._type_parameter_map

    @property
    def getter(self) -> Optional[Callable]:
        return self._getter

    @property
    def setter(self) -> Optional[Callable]:
        return self._setter

    @property
    def field_name(self) -> Optional[str]:
        return self._field_name

    @property
    def is_field_public(self) -> bool:
        return self._field_name is not None and not self._field_name.startswith("_")

    @property
    def read_markers(self) -> List[Any]:
        return list(self._read_markers.values())

    @property
    def write_markers(self) -> List[Any]:
        return list(self._write_markers.values())

    @property
    def error(self) -> Optional[str]:
        return self._error

    def set_error(self, error: str) -> None:
        if self._error is None:
            self._error = error

    def merge_type(self, annotation: Any, class_parameters: Tuple[Any, ...]) -> bool:
        """Merge a declared type into this property.

        Returns:
            False if the type clashes with the type already recorded.
        """
        if annotation is _MISSING:
            return True
        type_data = TypeDescriptor.of(annotation)
        if self._type_data is None or (self._type_data.raw_type is object and type_data.raw_type is not object):
            self._type_data = type_data
            self._annotation = annotation
            self._type_parameter_map = TypeParameterMap.for_annotation(annotation, class_parameters)
            return True
        return _is_assignable_either_way(self._type_data, type_data)

    def set_getter(self, getter: Callable, markers: Tuple[Any, ...]) -> None:
        self._getter = getter
        for marker in markers:
            self.add_read_marker(marker)

    def set_setter(self, setter: Callable, markers: Tuple[Any, ...]) -> None:
        self._setter = setter
        for marker in markers:
            self.add_write_marker(marker)

    def set_field(self, field_name: str, is_static: bool, is_transient: bool, is_final: bool,
                  markers: Tuple[Any, ...]) -> None:
        self._field_name = field_name
        self._field_static = is_static
        self._field_transient = is_transient
        self._field_final = is_final
        for marker in markers:
            self.add_read_marker(marker)
            self.add_write_marker(marker)

    def add_read_marker(self, marker: Any) -> None:
        self._add_marker(self._read_markers, marker, "Read")

    def add_write_marker(self, marker: Any) -> None:
        self._add_marker(self._write_markers, marker, "Write")

    def _add_marker(self, markers: Dict[type, Any], marker: Any, direction: str) -> None:
        existing = markers.get(type(marker))
        if existing is not None:
            if existing == marker:
                return
            raise DefinitionException(
                f"{direction} marker {type(marker).__name__} for '{self._name}' "
                f"already exists in {self._declaring_class_name}"
            )
        markers[type(marker)] = marker

    @property
    def is_serializable(self) -> bool:
        if self._getter is not None:
            return self._field_name is None or not (self._field_static or self._field_transient)
        return self.is_field_public and not (self._field_static or self._field_transient)

    @property
    def is_deserializable(self) -> bool:
        if self._setter is not None:
            return self._field_name is None or not (
                self._field_final or self._field_static or self._field_transient
            )
        return self.is_field_public and not (
            self._field_final or self._field_static or self._field_transient
        )

    def __repr__(self) -> str:
        return f"PropertyMetadata(name={self._name!r}, type={self.type_data})"


class PropertyAccessor(ABC):
    """Reads and writes one property of an instance."""

    @abstractmethod
    def get(self, instance: Any) -> Any:
        pass

    @abstractmethod
    def set(self, instance: Any, value: Any) -> None:
        pass


class PropertyAccessorImpl(PropertyAccessor):
    """Accessor using the property's getter/setter, else its public field."""

    def __init__(self, metadata: PropertyMetadata):
        self._metadata = metadata

    @property
    def metadata(self) -> PropertyMetadata:
        return self._metadata

    def get(self, instance: Any) -> Any:
        if not self._metadata.is_serializable:
            raise self._error("get")
        try:
            if self._metadata.getter is not None:
                return self._metadata.getter(instance)
            return getattr(instance, self._metadata.field_name)
        except Exception as e:
            raise self._error("get", e) from e

    def set(self, instance: Any, value: Any) -> None:
        if not self._metadata.is_deserializable:
            raise self._error("set")
        try:
            if self._metadata.setter is not None:
                self._metadata.setter(instance, value)
            else:
                setattr(instance, self._metadata.field_name, value)
        except Exception as e:
            raise self._error("set", e) from e

    def _error(self, action: str, cause: Exception = None) -> PropertyAccessException:
        message = (
            f"Unable to {action} value for property '{self._metadata.name}' "
            f"in {self._metadata.declaring_class_name}"
        )
        if cause is not None:
            message = f"{message}: {cause}"
        return PropertyAccessException(message, cause)


class FieldPropertyAccessor(PropertyAccessor):
    """Accessor that writes the backing field directly, bypassing setters and frozen checks."""

    def __init__(self, wrapped: PropertyAccessor, metadata: PropertyMetadata):
        self._wrapped = wrapped
        self._metadata = metadata

    def get(self, instance: Any) -> Any:
        return self._wrapped.get(instance)

    def set(self, instance: Any, value: Any) -> None:
        try:
            object.__setattr__(instance, self._metadata.field_name, value)
        except (AttributeError, TypeError) as e:
            raise PropertyAccessException(
                f"Unable to set value for property '{self._metadata.name}' "
                f"in {self._metadata.declaring_class_name}",
                e,
            ) from e


def class_hierarchy(clazz: type) -> List[type]:
    """The classes inspected for ``clazz``, most-derived first."""
    return [
        current
        for current in clazz.__mro__
        if current is not object and current.__module__ not in _SKIPPED_MODULES
    ]


def own_type_hints(clazz: type) -> Dict[str, Any]:
    """Resolved annotations declared directly on ``clazz``."""
    own = inspect.get_annotations(clazz)
    if not own:
        return {}
    try:
        hints = typing.get_type_hints(clazz, include_extras=True)
    except NameError as e:
        raise DefinitionException(f"Cannot resolve the annotations of {clazz.__qualname__}: {e}", e) from e
    return {name: hints.get(name, annotation) for name, annotation in own.items()}


def function_type_hints(func: Callable) -> Dict[str, Any]:
    try:
        return typing.get_type_hints(func, include_extras=True)
    except NameError as e:
        raise DefinitionException(f"Cannot resolve the annotations of {func.__qualname__}: {e}", e) from e


def _getter_annotation(getter: Callable) -> Any:
    return function_type_hints(getter).get("return", _MISSING)


def _setter_annotation(setter: Callable) -> Any:
    parameters = list(inspect.signature(setter).parameters)
    if len(parameters) < 2:
        return _MISSING
    return function_type_hints(setter).get(parameters[1], _MISSING)


def _is_frozen_dataclass(clazz: type) -> bool:
    params = clazz.__dict__.get("__dataclass_params__")
    return params is not None and params.frozen


def collect_property_metadata(clazz: type) -> List[PropertyMetadata]:
    """Discover the properties of ``clazz``.

    Returns:
        The retained properties, base-class declarations first.
    """
    declaring_class_name = clazz.__qualname__
    class_parameters = class_type_parameters(clazz)
    substitutions = base_type_var_substitutions(clazz)
    hierarchy = class_hierarchy(clazz)

    accessor_names = set()
    for current in hierarchy:
        for name, member in current.__dict__.items():
            if isinstance(member, property) and not name.startswith("_"):
                accessor_names.add(name)

    metadata_by_name: Dict[str, PropertyMetadata] = {}
    names_by_class: Dict[type, List[str]] = {}

    def get_or_create(name: str) -> PropertyMetadata:
        metadata = metadata_by_name.get(name)
        if metadata is None:
            metadata = PropertyMetadata(name, declaring_class_name)
            metadata_by_name[name] = metadata
        return metadata

    def merge_accessor_type(metadata: PropertyMetadata, annotation: Any) -> None:
        previous = metadata.type_data
        if not metadata.merge_type(annotation, class_parameters):
            metadata.set_error(
                f"Property '{metadata.name}' in {declaring_class_name}, has differing data types: "
                f"{previous} and {TypeDescriptor.of(annotation)}."
            )

    for current in hierarchy:
        mapping = substitutions.get(current, {})
        class_names: List[str] = []
        properties = [
            (name, member)
            for name, member in current.__dict__.items()
            if isinstance(member, property) and not name.startswith("_")
        ]

        for name, member in properties:
            if member.fset is None:
                continue
            metadata = get_or_create(name)
            if metadata.setter is None:
                annotation = _setter_annotation(member.fset)
                if annotation is not _MISSING:
                    annotation = substitute_type_vars(annotation, mapping)
                merge_accessor_type(metadata, annotation)
                metadata.set_setter(
                    member.fset, annotation_markers(annotation) if annotation is not _MISSING else ()
                )

        for name, member in properties:
            if member.fget is None:
                continue
            metadata = get_or_create(name)
            if metadata.getter is None:
                annotation = _getter_annotation(member.fget)
                if annotation is not _MISSING:
                    annotation = substitute_type_vars(annotation, mapping)
                merge_accessor_type(metadata, annotation)
                metadata.set_getter(
                    member.fget, annotation_markers(annotation) if annotation is not _MISSING else ()
                )

        frozen = _is_frozen_dataclass(current)
        for field_name, raw_annotation in own_type_hints(current).items():
            name = field_name
            if field_name.startswith("_") and field_name[1:] in accessor_names:
                name = field_name[1:]
            class_names.append(name)
            metadata = get_or_create(name)
            if metadata.field_name is not None:
                continue
            annotation = substitute_type_vars(raw_annotation, mapping)
            markers = annotation_markers(annotation)
            if not metadata.merge_type(annotation, class_parameters):
                metadata.set_error(
                    f"Property '{name}' in {declaring_class_name}, has differing data types: "
                    f"{metadata.type_data} and {TypeDescriptor.of(annotation)}."
                )
            metadata.set_field(
                field_name,
                is_static=is_class_var(raw_annotation),
                is_transient=any(isinstance(marker, Transient) for marker in markers),
                is_final=frozen or is_final(raw_annotation),
                markers=markers,
            )

        class_names.extend(name for name, _ in properties)
        names_by_class[current] = class_names

    ordered: List[str] = []
    for current in reversed(hierarchy):
        for name in names_by_class[current]:
            if name not in ordered:
                ordered.append(name)

    strict = issubclass(clazz, DocumentNode)
    retained = []
    for name in ordered:
        metadata = metadata_by_name[name]
        if strict:
            keep = metadata.field_name is not None and (
                metadata.getter is not None or metadata.setter is not None
            )
        else:
            keep = metadata.is_serializable or metadata.is_deserializable
        if keep:
            retained.append(metadata)
    return retained


def is_no_arg_constructible(clazz: type) -> bool:
    """Return True if ``clazz()`` can be called without arguments."""
    try:
        signature = inspect.signature(clazz)
    except (TypeError, ValueError):
        return True
    for parameter in signature.parameters.values():
        if parameter.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        if parameter.default is inspect.Parameter.empty:
            return False
    return True


def is_dataclass_type(clazz: type) -> bool:
    return dataclasses.is_dataclass(clazz) and isinstance(clazz, type)
